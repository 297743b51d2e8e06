# --------------------------- tests/unit/test_broker_stats.py ----------------------------
"""
Broker Intelligence · Relationship Aggregation Tests

Covers the pure recompute and the per-broker serialized stats service:
lock timeouts, cancellation and store failures.
"""

import random
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from broker_intel.exceptions import OperationCancelledError, StoreUnavailableError
from broker_intel.services.broker_stats import (
    BrokerRelationshipAggregator,
    BrokerStatsService,
    activity_tier,
    rate_tier,
    relationship_score,
    volume_tier,
)
from tests.conftest import BASE_TIME, make_load


def sample_history():
    return [
        make_load("m1", 0, rate_per_mile=2.00),
        make_load("m2", 4, destination="Tulsa, OK", rate_per_mile=2.25, broker_email="ops@hubgroup.com"),
        make_load("m3", 8, rate_per_mile=2.50, broker_email=None),
    ]


def test_recompute_example(prefs):
    stats = BrokerRelationshipAggregator(prefs).recompute(
        "Hub Group", sample_history(), now=BASE_TIME + timedelta(days=10),
    )

    assert stats.total_loads == 3
    assert stats.loads_this_week == 2
    assert stats.loads_this_month == 3
    assert stats.avg_rate_per_mile == 2.25
    assert stats.highest_rate == 2.50
    assert stats.lowest_rate == 2.00
    assert stats.lane_count == 2
    assert stats.top_lanes[0].lane == "Dallas, TX → Atlanta, GA"
    assert stats.top_lanes[0].count == 2
    assert stats.top_lanes[0].avg_rate == 2.25
    assert stats.first_contact_at == BASE_TIME
    assert stats.last_contact_at == BASE_TIME + timedelta(days=8)
    assert stats.avg_days_between_contacts == 4.0
    assert stats.broker_email == "ops@hubgroup.com"
    # volume 3 + activity 10 + rate 15 + consistency 2/3 * 10
    assert stats.relationship_score == pytest.approx(34.67)


def test_recompute_is_order_independent(prefs):
    aggregator = BrokerRelationshipAggregator(prefs)
    now = BASE_TIME + timedelta(days=10)
    history = sample_history()

    first = aggregator.recompute("Hub Group", history, now=now)
    again = aggregator.recompute("Hub Group", history, now=now)
    shuffled = list(history)
    random.Random(7).shuffle(shuffled)
    reordered = aggregator.recompute("Hub Group", shuffled, now=now)

    assert first.to_dict() == again.to_dict() == reordered.to_dict()


def test_recompute_empty_history(prefs):
    assert BrokerRelationshipAggregator(prefs).recompute("Nobody", []) is None


def test_single_load_has_no_contact_interval(prefs):
    stats = BrokerRelationshipAggregator(prefs).recompute(
        "Hub Group", [make_load("m1", 0, rate_per_mile=None)], now=BASE_TIME,
    )
    assert stats.avg_days_between_contacts is None
    assert stats.avg_rate_per_mile is None
    assert stats.top_lanes[0].avg_rate is None


def test_score_tiers():
    assert [volume_tier(n) for n in (0, 9, 10, 20, 50)] == [0, 9, 20, 30, 40]
    assert [activity_tier(n) for n in (1, 2, 5, 10)] == [0, 10, 20, 30]
    assert rate_tier(2.60, 2.00) == 20
    assert rate_tier(2.00, 2.00) == 15
    assert rate_tier(1.80, 2.00) == 10
    assert rate_tier(None, 2.00) == 0
    assert relationship_score(80, 12, 3.0, 1.0, 2.00) == 100


def test_relationship_score_never_decreases_with_volume():
    previous = 0
    for total in range(0, 120):
        score = relationship_score(total, 3, 2.10, 0.5, 2.00)
        assert previous <= score <= 100
        previous = score


# ╔══════════ Stats service ══════════


def test_update_writes_stats(prefs, store):
    for load in sample_history():
        store.save_load(load)
    service = BrokerStatsService(store, BrokerRelationshipAggregator(prefs))

    stats = service.update_broker_stats("Hub Group", now=BASE_TIME + timedelta(days=10))

    assert store.get_broker_stats("Hub Group") == stats
    assert stats.total_loads == 3


def test_update_without_loads_writes_nothing(prefs, store):
    service = BrokerStatsService(store, BrokerRelationshipAggregator(prefs))
    assert service.update_broker_stats("Nobody") is None
    assert store.list_broker_stats() == []


def test_concurrent_updates_for_one_broker(prefs, store):
    service = BrokerStatsService(store, BrokerRelationshipAggregator(prefs))

    def intake(index):
        store.save_load(make_load(f"m{index}", index % 10))
        return service.update_broker_stats("Hub Group")

    with ThreadPoolExecutor(max_workers=8) as executor:
        list(executor.map(intake, range(20)))

    assert store.get_broker_stats("Hub Group").total_loads == 20


def test_lock_timeout_is_recoverable(prefs, store):
    store.save_load(make_load("m1", 0))
    service = BrokerStatsService(store, BrokerRelationshipAggregator(prefs))
    lock = service._lock_for("Hub Group")
    lock.acquire()
    try:
        with pytest.raises(StoreUnavailableError) as excinfo:
            service.update_broker_stats("Hub Group", timeout=0.05)
    finally:
        lock.release()

    assert excinfo.value.recoverable
    assert store.get_broker_stats("Hub Group") is None


def test_other_brokers_do_not_wait(prefs, store):
    store.save_load(make_load("m1", 0, broker="Echo Global"))
    service = BrokerStatsService(store, BrokerRelationshipAggregator(prefs))
    lock = service._lock_for("Hub Group")
    lock.acquire()
    try:
        stats = service.update_broker_stats("Echo Global", timeout=0.05)
    finally:
        lock.release()

    assert stats.total_loads == 1


def test_cancelled_update_writes_nothing(prefs, store):
    store.save_load(make_load("m1", 0))
    service = BrokerStatsService(store, BrokerRelationshipAggregator(prefs))
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(OperationCancelledError):
        service.update_broker_stats("Hub Group", cancel_event=cancel)

    assert store.get_broker_stats("Hub Group") is None


class BrokenStore:
    def loads_for_broker(self, broker_key):
        raise ConnectionError("connection reset")

    def replace_broker_stats(self, stats):
        raise AssertionError("must not be called")


def test_store_failure_is_wrapped(prefs):
    service = BrokerStatsService(BrokenStore(), BrokerRelationshipAggregator(prefs))

    with pytest.raises(StoreUnavailableError) as excinfo:
        service.update_broker_stats("Hub Group")

    assert excinfo.value.recoverable
    assert excinfo.value.operation == "update_broker_stats"
