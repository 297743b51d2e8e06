# --------------------------- broker_intel/services/outreach_targeting.py ----------------------------
"""
Broker Intelligence · Outreach Targeting

OVERVIEW:
Ranks brokers worth contacting and picks the kind of message each one should
get, based on their stored relationship stats. Drafting and sending the
message happen elsewhere.

BUSINESS LOGIC:
Outreach score:
- Rate (40): avg $2.50+/mi = 40, $2.00+ = 30, otherwise 10
- Volume (30): 5+ loads = 30, none yet = 15, otherwise 5 per load
- Relationship (30): relationship score scaled to 30

Message types:
- new_intro: no loads yet
- dedicated_lane: 5+ loads and relationship score 70+
- relationship_builder: 2+ loads
- follow_up: a single load
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List

from broker_intel.models import BrokerStats

logger = logging.getLogger(__name__)


class OutreachType(Enum):
    NEW_INTRO = "new_intro"
    DEDICATED_LANE = "dedicated_lane"
    RELATIONSHIP_BUILDER = "relationship_builder"
    FOLLOW_UP = "follow_up"


@dataclass
class OutreachTarget:
    """A ranked outreach candidate."""
    stats: BrokerStats
    score: float
    email_type: OutreachType
    reasoning: str


def outreach_score(stats: BrokerStats) -> float:
    score = 0.0
    avg_rate = stats.avg_rate_per_mile or 0

    if avg_rate >= 2.50:
        score += 40
    elif avg_rate >= 2.00:
        score += 30
    else:
        score += 10

    if stats.total_loads == 0:
        score += 15  # new brokers are worth reaching out to
    elif stats.total_loads >= 5:
        score += 30
    else:
        score += stats.total_loads * 5

    score += (stats.relationship_score / 100) * 30
    return round(score, 2)


def outreach_email_type(stats: BrokerStats) -> OutreachType:
    if stats.total_loads == 0:
        return OutreachType.NEW_INTRO
    if stats.total_loads >= 5 and stats.relationship_score >= 70:
        return OutreachType.DEDICATED_LANE
    if stats.total_loads >= 2:
        return OutreachType.RELATIONSHIP_BUILDER
    return OutreachType.FOLLOW_UP


def outreach_reasoning(stats: BrokerStats, email_type: OutreachType) -> str:
    top_lane = stats.top_lanes[0].lane if stats.top_lanes else None
    avg_rate = f"{stats.avg_rate_per_mile or 0:.2f}"

    if email_type == OutreachType.NEW_INTRO:
        return (f"New broker - introducing our carrier capabilities and expressing "
                f"interest in their {top_lane or 'posted'} loads")
    if email_type == OutreachType.DEDICATED_LANE:
        return (f"High volume broker ({stats.total_loads} loads, ${avg_rate}/mi avg) - "
                f"candidate for a dedicated lane partnership")
    if email_type == OutreachType.RELATIONSHIP_BUILDER:
        return f"{stats.total_loads} loads so far - time to strengthen the relationship and increase volume"
    return "Recent first load - following up to build momentum"


def top_outreach_targets(stats_list: Iterable[BrokerStats], limit: int = 10) -> List[OutreachTarget]:
    """
    Rank brokers by outreach score, highest first.

    Ties are broken by broker name so the ranking is stable.
    """
    targets = []
    for stats in stats_list:
        email_type = outreach_email_type(stats)
        targets.append(OutreachTarget(
            stats=stats,
            score=outreach_score(stats),
            email_type=email_type,
            reasoning=outreach_reasoning(stats, email_type),
        ))

    targets.sort(key=lambda target: (-target.score, target.stats.broker_key))
    logger.debug(f"Ranked {len(targets)} brokers for outreach")
    return targets[:limit]
