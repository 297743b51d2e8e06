"""
Carrier company preferences.

Loaded once per run and never mutated. Values come from the environment
(PREF_* variables) and fall back to the defaults below.

Priority Score Guide:
    80-100: EXCELLENT - Take immediately, perfect fit
    60-79:  GOOD - Consider carefully, decent opportunity
    40-59:  MARGINAL - Last resort, not ideal
    0-39:   PASS - Not worth pursuing

Relationship Score Guide:
    80-100: HOT - Contact for direct contract, high volume + good rates
    60-79:  WARM - Build relationship, consistent partner
    0-59:   COLD - Monitor only, occasional sender
"""

import os
from typing import List, Optional

from dotenv import load_dotenv

from broker_intel.models import CompanyPreferences

load_dotenv()

DEFAULT_MIN_RATE_PER_MILE = 2.00
DEFAULT_PREFERRED_STATES = ["TX", "OK", "LA", "AR", "NM"]
DEFAULT_PREFERRED_EQUIPMENT = ["Dry Van", "Reefer"]
DEFAULT_MAX_DISTANCE = 500
DEFAULT_HOME_BASE = "Dallas, TX"


def _split(raw: Optional[str], default: List[str]) -> List[str]:
    if not raw:
        return default
    return [part.strip() for part in raw.split(",") if part.strip()]


def load_company_preferences() -> CompanyPreferences:
    """
    Build CompanyPreferences from environment variables.

    RAISES:
        ValueError: If a numeric preference cannot be parsed or is negative
    """
    try:
        min_rate = float(os.getenv("PREF_MIN_RATE_PER_MILE", DEFAULT_MIN_RATE_PER_MILE))
        max_distance = float(os.getenv("PREF_MAX_DISTANCE", DEFAULT_MAX_DISTANCE))
    except ValueError as e:
        raise ValueError(f"Invalid company preference: {e}")

    if min_rate < 0 or max_distance <= 0:
        raise ValueError("PREF_MIN_RATE_PER_MILE must be >= 0 and PREF_MAX_DISTANCE > 0")

    states = _split(os.getenv("PREF_STATES"), DEFAULT_PREFERRED_STATES)
    equipment = _split(os.getenv("PREF_EQUIPMENT"), DEFAULT_PREFERRED_EQUIPMENT)

    return CompanyPreferences(
        min_rate_per_mile=min_rate,
        preferred_states=frozenset(s.upper() for s in states),
        preferred_equipment=tuple(equipment),
        max_distance_miles=max_distance,
        home_base=os.getenv("PREF_HOME_BASE", DEFAULT_HOME_BASE),
    )


def priority_label(score: float) -> str:
    if score >= 80:
        return "EXCELLENT"
    if score >= 60:
        return "GOOD"
    if score >= 40:
        return "MARGINAL"
    return "PASS"


def relationship_label(score: float) -> str:
    if score >= 80:
        return "HOT"
    if score >= 60:
        return "WARM"
    return "COLD"
