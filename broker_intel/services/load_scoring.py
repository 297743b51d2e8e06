# --------------------------- broker_intel/services/load_scoring.py ----------------------------
"""
Broker Intelligence · Load Fit Scoring

OVERVIEW:
Scores how well an extracted load fits the carrier's preferences so the
dispatcher sees the best offers first.

SCORING MODEL:
- Rate (40 points): rate per mile against the carrier's minimum
- Lane (30 points): preferred origin and destination states
- Equipment (20 points): matches a preferred trailer type
- Distance (10 points): length of haul against the preferred maximum

BUSINESS LOGIC:
- A load at exactly the minimum rate scores 25 of 40 rate points
- Each point above the minimum scales linearly up to the full 40 at +$1/mi
- Loads just under target (within $0.25) keep 10 points
- Every component that falls short says so in the notes
"""

import logging
from typing import List, Optional

from broker_intel.models import CompanyPreferences, ExtractedLoadSignal, LoadFitScore, clamp_score

logger = logging.getLogger(__name__)

RATE_POINTS = 40
LANE_POINTS_PER_END = 15
EQUIPMENT_POINTS = 20
DISTANCE_POINTS = 10


class LoadFitScorer:
    """
    Preference-driven load scorer.

    USAGE PATTERNS:
    One instance per preference set; score() is pure and thread-safe.
    """

    def __init__(self, prefs: CompanyPreferences):
        self.prefs = prefs

    def score(self, load: ExtractedLoadSignal) -> LoadFitScore:
        """
        Score a load against the carrier's preferences.

        RETURNS:
            LoadFitScore with a 0-100 score and the notes behind it
        """
        notes: List[str] = []

        rate_score = self._calculate_rate_score(load.rate_per_mile, notes)
        lane_score = self._calculate_lane_score(load.origin_state, load.dest_state, notes)
        equipment_score = self._calculate_equipment_score(load.equipment, notes)
        distance_score = self._calculate_distance_score(load.miles, notes)

        total = clamp_score(rate_score + lane_score + equipment_score + distance_score)
        return LoadFitScore(score=round(total, 2), reasons=notes)

    def _calculate_rate_score(self, rate_per_mile: Optional[float], notes: List[str]) -> float:
        minimum = self.prefs.min_rate_per_mile

        if rate_per_mile is None:
            notes.append("No rate per mile")
            return 0.0

        if rate_per_mile >= minimum + 1:
            notes.append(f"Excellent rate (${rate_per_mile:.2f}/mi)")
            return float(RATE_POINTS)

        if rate_per_mile >= minimum:
            partial = 25 + (rate_per_mile - minimum) * 15
            notes.append(f"Good rate (${rate_per_mile:.2f}/mi)")
            return partial

        if rate_per_mile >= minimum - 0.25:
            notes.append(f"Below target rate (${rate_per_mile:.2f}/mi vs ${minimum:.2f})")
            return 10.0

        notes.append(f"Rate too low (${rate_per_mile:.2f}/mi vs ${minimum:.2f})")
        return 0.0

    def _calculate_lane_score(self, origin_state: Optional[str], dest_state: Optional[str],
                              notes: List[str]) -> float:
        score = 0.0
        preferred = self.prefs.preferred_states

        if origin_state and origin_state in preferred:
            score += LANE_POINTS_PER_END
            notes.append(f"Preferred origin ({origin_state})")
        else:
            notes.append(f"Origin outside preferred states ({origin_state or 'unknown'})")

        if dest_state and dest_state in preferred:
            score += LANE_POINTS_PER_END
            notes.append(f"Preferred destination ({dest_state})")
        else:
            notes.append(f"Destination outside preferred states ({dest_state or 'unknown'})")

        return score

    def _calculate_equipment_score(self, equipment: Optional[str], notes: List[str]) -> float:
        if not equipment:
            notes.append("Equipment not specified")
            return 0.0

        found = equipment.lower()
        for preferred in self.prefs.preferred_equipment:
            wanted = preferred.lower()
            if wanted in found or found in wanted:
                notes.append(f"Equipment match ({equipment})")
                return float(EQUIPMENT_POINTS)

        notes.append(f"Equipment not preferred ({equipment})")
        return 0.0

    def _calculate_distance_score(self, miles: Optional[int], notes: List[str]) -> float:
        maximum = self.prefs.max_distance_miles

        if not miles:
            notes.append("Distance unknown")
            return 0.0

        if miles <= maximum:
            notes.append(f"Good distance ({miles} mi)")
            return float(DISTANCE_POINTS)

        if miles <= maximum * 1.5:
            notes.append(f"Long haul ({miles} mi)")
            return 5.0

        notes.append(f"Too far ({miles} mi)")
        return 0.0


def score_load(load: ExtractedLoadSignal, prefs: CompanyPreferences) -> LoadFitScore:
    """
    Convenience function for one-off scoring.

    USAGE:
    ```python
    fit = score_load(signal, load_company_preferences())
    print(fit.score, fit.reason_text)
    ```
    """
    return LoadFitScorer(prefs).score(load)
