# --------------------------- broker_intel/services/broker_stats.py ----------------------------
"""
Broker Intelligence · Broker Relationship Aggregation

OVERVIEW:
Turns a broker's load history into relationship stats: volume, recent
activity, rate quality and the lanes they keep offering.

WORKFLOW:
1. Read the broker's complete load history from the store
2. Recompute every stat from scratch (never an incremental delta)
3. Replace the stored stats row in a single upsert

BUSINESS LOGIC:
Relationship score (0-100):
- Volume (40): 50+ loads = 40, 20+ = 30, 10+ = 20, otherwise 1 per load
- Activity (30): 10+ loads in 30 days = 30, 5+ = 20, 2+ = 10
- Rate quality (20): avg $/mi at min + $0.50 = 20, at min = 15, within $0.25 = 10
- Consistency (10): share of loads on the broker's top lane

TECHNICAL ARCHITECTURE:
- BrokerRelationshipAggregator is pure: same history in, same stats out,
  regardless of input order
- BrokerStatsService serializes read-then-write per broker key; different
  brokers update in parallel
- Callers pass a timeout and an optional threading.Event to cancel
"""

import logging
import threading
import time
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

from broker_intel.config import settings
from broker_intel.exceptions import OperationCancelledError, StoreError, StoreUnavailableError
from broker_intel.models import (
    BrokerStats,
    CompanyPreferences,
    LaneStat,
    LoadRecord,
    clamp_score,
    format_lane,
)
from broker_intel.services.store import LoadStore

logger = logging.getLogger(__name__)

TOP_LANE_LIMIT = 5


def _mean(values: List[float]) -> Optional[float]:
    if not values:
        return None
    return round(sum(values) / len(values), 2)


# ╔══════════ 1. Relationship Score ══════════════════════════════════════════


def volume_tier(total_loads: int) -> float:
    if total_loads >= 50:
        return 40
    if total_loads >= 20:
        return 30
    if total_loads >= 10:
        return 20
    return total_loads


def activity_tier(loads_this_month: int) -> float:
    if loads_this_month >= 10:
        return 30
    if loads_this_month >= 5:
        return 20
    if loads_this_month >= 2:
        return 10
    return 0


def rate_tier(avg_rate_per_mile: Optional[float], min_rate_per_mile: float) -> float:
    rate = avg_rate_per_mile or 0
    if rate >= min_rate_per_mile + 0.5:
        return 20
    if rate >= min_rate_per_mile:
        return 15
    if rate >= min_rate_per_mile - 0.25:
        return 10
    return 0


def relationship_score(total_loads: int, loads_this_month: int,
                       avg_rate_per_mile: Optional[float], lane_consistency: float,
                       min_rate_per_mile: float) -> float:
    """Volume + activity + rate quality + lane consistency, clamped to 0-100."""
    score = (volume_tier(total_loads)
             + activity_tier(loads_this_month)
             + rate_tier(avg_rate_per_mile, min_rate_per_mile)
             + lane_consistency * 10)
    return round(clamp_score(score), 2)


# ╔══════════ 2. Aggregator ══════════════════════════════════════════════════


class BrokerRelationshipAggregator:
    """
    Full-recompute aggregator over one broker's load history.

    Holds no state besides the preferences; safe to share across threads.
    """

    def __init__(self, prefs: CompanyPreferences):
        self.prefs = prefs

    def recompute(self, broker_key: str, loads: Iterable[LoadRecord],
                  now: datetime = None) -> Optional[BrokerStats]:
        """
        Derive BrokerStats from the complete history.

        ARGS:
            broker_key: Broker name the history belongs to
            loads: Every load on record for the broker, in any order
            now: Reference time for the weekly/monthly windows (defaults to now)

        RETURNS:
            BrokerStats, or None when the broker has no loads
        """
        history = sorted(loads, key=lambda load: (load.extracted_at, load.message_id))
        if not history:
            return None

        if now is None:
            now = datetime.now(tz=history[-1].extracted_at.tzinfo)
        week_start = now - timedelta(days=7)
        month_start = now - timedelta(days=30)

        total_loads = len(history)
        loads_this_week = sum(1 for load in history if load.extracted_at >= week_start)
        loads_this_month = sum(1 for load in history if load.extracted_at >= month_start)

        rates = [load.rate_per_mile for load in history if load.rate_per_mile is not None]
        avg_rate = _mean(rates)

        top_lanes, lane_count = self._lane_stats(history)
        lane_consistency = top_lanes[0].count / total_loads if top_lanes else 0.0

        first_contact = history[0].extracted_at
        last_contact = history[-1].extracted_at
        avg_days_between = None
        if total_loads > 1:
            span_days = (last_contact - first_contact).total_seconds() / 86400
            avg_days_between = round(span_days / (total_loads - 1), 2)

        broker_email = next(
            (load.broker_email for load in reversed(history) if load.broker_email), None
        )

        return BrokerStats(
            broker_key=broker_key,
            broker_email=broker_email,
            total_loads=total_loads,
            loads_this_week=loads_this_week,
            loads_this_month=loads_this_month,
            avg_rate_per_mile=avg_rate,
            highest_rate=max(rates) if rates else None,
            lowest_rate=min(rates) if rates else None,
            top_lanes=tuple(top_lanes),
            lane_count=lane_count,
            first_contact_at=first_contact,
            last_contact_at=last_contact,
            avg_days_between_contacts=avg_days_between,
            relationship_score=relationship_score(
                total_loads, loads_this_month, avg_rate, lane_consistency,
                self.prefs.min_rate_per_mile,
            ),
        )

    @staticmethod
    def _lane_stats(history: List[LoadRecord]):
        lanes: Dict[str, List[Optional[float]]] = defaultdict(list)
        for load in history:
            if load.origin and load.destination:
                lanes[format_lane(load.origin, load.destination)].append(load.rate_per_mile)

        stats = [
            LaneStat(lane=lane, count=len(rates),
                     avg_rate=_mean([rate for rate in rates if rate is not None]))
            for lane, rates in lanes.items()
        ]
        stats.sort(key=lambda stat: (-stat.count, stat.lane))
        return stats[:TOP_LANE_LIMIT], len(stats)


# ╔══════════ 3. Stats Service ═══════════════════════════════════════════════


class BrokerStatsService:
    """
    Serialized read-recompute-replace of broker stats.

    CONCURRENCY:
    One lock per broker key, created on first use. Two intake threads for
    the same broker never interleave their read and write; updates for
    different brokers never wait on each other.
    The lock registry only grows: one small lock per broker key seen by
    this service instance, kept for its lifetime.
    """

    def __init__(self, store: LoadStore, aggregator: BrokerRelationshipAggregator,
                 lock_timeout: float = None):
        self.store = store
        self.aggregator = aggregator
        self.lock_timeout = settings.BROKER_STATS_LOCK_TIMEOUT if lock_timeout is None else lock_timeout
        self._registry_lock = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

    def _lock_for(self, broker_key: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(broker_key)
            if lock is None:
                lock = self._locks[broker_key] = threading.Lock()
            return lock

    @staticmethod
    def _check_cancelled(cancel_event: Optional[threading.Event], broker_key: str) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise OperationCancelledError(f"Stats update for {broker_key} cancelled")

    def update_broker_stats(self, broker_key: str, now: datetime = None,
                            timeout: float = None,
                            cancel_event: Optional[threading.Event] = None) -> Optional[BrokerStats]:
        """
        Recompute and store one broker's stats.

        ARGS:
            broker_key: Broker name
            now: Reference time for activity windows
            timeout: Seconds allowed for the whole update (lock wait included)
            cancel_event: Set by the caller to abandon the update before it writes

        RETURNS:
            The stored BrokerStats, or None when the broker has no loads

        RAISES:
            StoreUnavailableError: store failure or timeout (nothing written)
            OperationCancelledError: cancel_event was set
        """
        operation = "update_broker_stats"
        timeout = self.lock_timeout if timeout is None else timeout
        deadline = time.monotonic() + timeout

        self._check_cancelled(cancel_event, broker_key)

        lock = self._lock_for(broker_key)
        if not lock.acquire(timeout=max(timeout, 0)):
            raise StoreUnavailableError(f"Timed out waiting for stats lock on {broker_key}", operation)

        try:
            self._check_cancelled(cancel_event, broker_key)
            try:
                history = self.store.loads_for_broker(broker_key)
            except StoreError:
                raise
            except Exception as e:
                raise StoreUnavailableError(f"Could not read loads for {broker_key}: {e}", operation) from e

            stats = self.aggregator.recompute(broker_key, history, now=now)
            if stats is None:
                return None

            self._check_cancelled(cancel_event, broker_key)
            if time.monotonic() > deadline:
                raise StoreUnavailableError(f"Stats update for {broker_key} timed out", operation)

            try:
                self.store.replace_broker_stats(stats)
            except StoreError:
                raise
            except Exception as e:
                raise StoreUnavailableError(f"Could not store stats for {broker_key}: {e}", operation) from e

            logger.info(f"Updated stats for {broker_key}: {stats.total_loads} loads, "
                        f"relationship score {stats.relationship_score}")
            return stats
        finally:
            lock.release()
