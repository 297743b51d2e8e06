# --------------------------- broker_intel/services/distance_calculator.py ----------------------------
"""
Broker Intelligence · Lane Distance Estimation

OVERVIEW:
Estimates road miles for lanes whose email never states them. Used only when
miles estimation is switched on; an estimate never raises extraction
confidence and is flagged on the signal.

WORKFLOW:
1. Exact city pair in the common-lane matrix
2. State pair in the regional table (either direction)
3. Great-circle distance between state centroids times a road factor

BUSINESS LOGIC:
- Road miles differ from straight-line distance
- Short trips deviate less from a straight line than long ones
- Same-state lanes without a table entry get no estimate

TECHNICAL ARCHITECTURE:
- Static data only, no network geocoding on the intake path
- Results cached per lane on each calculator instance; the module-level
  helper shares one default calculator

DEPENDENCIES:
- geopy for great-circle distance
"""

import logging
from functools import lru_cache
from typing import Dict, Optional, Tuple

from geopy.distance import great_circle

logger = logging.getLogger(__name__)

# Verified road miles for frequently quoted lanes
CITY_DISTANCES: Dict[Tuple[str, str], int] = {
    # Texas Triangle
    ("Dallas, TX", "Houston, TX"): 240,
    ("Dallas, TX", "San Antonio, TX"): 275,
    ("Houston, TX", "San Antonio, TX"): 200,
    ("Dallas, TX", "Austin, TX"): 195,

    # Major lanes
    ("Los Angeles, CA", "Phoenix, AZ"): 370,
    ("Chicago, IL", "Atlanta, GA"): 720,
    ("New York, NY", "Miami, FL"): 1280,
    ("Seattle, WA", "Los Angeles, CA"): 1135,
    ("Denver, CO", "Chicago, IL"): 1000,

    # Cross-country
    ("Los Angeles, CA", "New York, NY"): 2790,
    ("Seattle, WA", "Miami, FL"): 3300,

    # Regional
    ("Atlanta, GA", "Miami, FL"): 665,
    ("Dallas, TX", "Miami, FL"): 1310,
    ("Chicago, IL", "Detroit, MI"): 285,
    ("Boston, MA", "New York, NY"): 215,
}

# Average miles between states for the regions the carrier runs most
STATE_DISTANCES: Dict[str, int] = {
    'TX-TX': 300, 'TX-NE': 900, 'TX-AL': 700, 'TX-NM': 400,
    'TX-OK': 250, 'TX-LA': 350, 'TX-AR': 400, 'TX-CO': 800,
    'VA-MO': 880, 'VA-NC': 250, 'VA-GA': 500, 'VA-TN': 450,
    'CA-TX': 1400, 'CA-AZ': 400, 'CA-NV': 450, 'CA-OR': 600,
    'FL-WY': 2000, 'FL-CO': 1900, 'FL-IL': 1200, 'FL-TX': 1300,
    'FL-GA': 350, 'FL-AL': 450, 'FL-SC': 550, 'FL-NC': 650,
    'FL-FL': 300, 'NY-CA': 2700, 'NY-FL': 1200, 'NY-TX': 1700,
    'IL-TX': 1000, 'IL-FL': 1200, 'IL-CA': 2000, 'IL-NY': 800,
    'IA-TX': 900, 'IA-IL': 300, 'IA-NE': 200, 'IA-MN': 250,
    'AZ-FL': 2000, 'AZ-TX': 900, 'AZ-CA': 400, 'AZ-NM': 350,
    'KS-TX': 500, 'KS-CO': 400, 'KS-NE': 200, 'KS-OK': 250,
    'MN-GA': 1200, 'MN-IL': 450, 'MN-TX': 1200, 'MN-FL': 1500,
    'OH-AL': 650, 'OH-GA': 700, 'OH-FL': 1100, 'OH-TX': 1200,
    'WI-IL': 200, 'WI-TX': 1100, 'WI-FL': 1400, 'WI-CA': 1900,
    'GA-TX': 1000, 'GA-FL': 350, 'GA-NC': 350, 'GA-SC': 250,
    'NC-TX': 1300, 'NC-FL': 650, 'NC-VA': 250, 'NC-SC': 200,
    'PA-FL': 1100, 'PA-TX': 1500, 'PA-OH': 350, 'PA-NY': 250,
    'MI-TX': 1200, 'MI-FL': 1300, 'MI-IL': 300, 'MI-OH': 250,
    'TN-TX': 800, 'TN-FL': 650, 'TN-GA': 250, 'TN-NC': 350,
    'MO-TX': 700, 'MO-IL': 300, 'MO-KS': 250, 'MO-AR': 250,
}

# Approximate geographic centers (lat, lon)
STATE_CENTROIDS: Dict[str, Tuple[float, float]] = {
    'AL': (32.8, -86.8), 'AK': (64.7, -152.0), 'AZ': (34.3, -111.7), 'AR': (34.9, -92.4),
    'CA': (37.2, -119.4), 'CO': (39.0, -105.5), 'CT': (41.6, -72.7), 'DE': (39.0, -75.5),
    'FL': (28.6, -82.4), 'GA': (32.7, -83.4), 'HI': (20.3, -156.4), 'ID': (44.4, -114.6),
    'IL': (40.0, -89.2), 'IN': (39.9, -86.3), 'IA': (42.1, -93.5), 'KS': (38.5, -98.4),
    'KY': (37.5, -85.3), 'LA': (31.1, -92.0), 'ME': (45.4, -69.2), 'MD': (39.1, -76.8),
    'MA': (42.3, -71.8), 'MI': (44.3, -85.4), 'MN': (46.3, -94.3), 'MS': (32.7, -89.7),
    'MO': (38.4, -92.5), 'MT': (47.0, -109.6), 'NE': (41.5, -99.8), 'NV': (39.3, -116.6),
    'NH': (43.7, -71.6), 'NJ': (40.2, -74.7), 'NM': (34.4, -106.1), 'NY': (42.9, -75.5),
    'NC': (35.6, -79.4), 'ND': (47.5, -100.5), 'OH': (40.3, -82.8), 'OK': (35.6, -97.5),
    'OR': (43.9, -120.6), 'PA': (40.9, -77.8), 'RI': (41.7, -71.5), 'SC': (33.9, -80.9),
    'SD': (44.4, -100.2), 'TN': (35.9, -86.4), 'TX': (31.5, -99.3), 'UT': (39.3, -111.7),
    'VT': (44.1, -72.7), 'VA': (37.5, -78.9), 'WA': (47.4, -120.5), 'WV': (38.6, -80.6),
    'WI': (44.6, -89.9), 'WY': (43.0, -107.6),
}


def road_factor(straight_miles: float) -> float:
    """Road miles / straight-line miles by trip length."""
    if straight_miles < 200:
        return 1.2
    if straight_miles < 500:
        return 1.25
    return 1.3


class DistanceCalculator:
    """
    Static-data lane distance estimator.

    ARCHITECTURE ROLE:
    Optional collaborator of LoadSignalExtractor. Kept free of network
    calls so batch intake stays fast and deterministic.
    """

    def __init__(self, city_distances: Dict[Tuple[str, str], int] = None,
                 state_distances: Dict[str, int] = None, cache_size: int = 1000):
        self.city_distances = CITY_DISTANCES if city_distances is None else city_distances
        self.state_distances = STATE_DISTANCES if state_distances is None else state_distances
        self._cached_miles = lru_cache(maxsize=cache_size)(self._lookup_miles)

    def _check_city_matrix(self, origin_city: Optional[str], origin_state: str,
                           dest_city: Optional[str], dest_state: str) -> Optional[int]:
        if not origin_city or not dest_city:
            return None
        origin = f"{origin_city}, {origin_state}"
        dest = f"{dest_city}, {dest_state}"
        return self.city_distances.get((origin, dest)) or self.city_distances.get((dest, origin))

    def _check_state_table(self, origin_state: str, dest_state: str) -> Optional[int]:
        return (self.state_distances.get(f"{origin_state}-{dest_state}")
                or self.state_distances.get(f"{dest_state}-{origin_state}"))

    def _estimate_by_centroids(self, origin_state: str, dest_state: str) -> Optional[int]:
        if origin_state == dest_state:
            return None
        origin = STATE_CENTROIDS.get(origin_state)
        dest = STATE_CENTROIDS.get(dest_state)
        if not origin or not dest:
            return None
        straight_miles = great_circle(origin, dest).miles
        return int(straight_miles * road_factor(straight_miles))

    def calculate_distance(self, origin_state: str, dest_state: str,
                           origin_city: Optional[str] = None,
                           dest_city: Optional[str] = None) -> Dict[str, object]:
        """
        Estimate lane miles with metadata.

        RETURNS:
            Dict containing:
            - miles: Estimated road miles (None when unknown)
            - calculation_method: distance_matrix | state_table | centroid_estimate | unknown
        """
        origin_state = (origin_state or '').upper()
        dest_state = (dest_state or '').upper()

        miles = self._check_city_matrix(origin_city, origin_state, dest_city, dest_state)
        if miles:
            return {'miles': miles, 'calculation_method': 'distance_matrix'}

        miles = self._check_state_table(origin_state, dest_state)
        if miles:
            return {'miles': miles, 'calculation_method': 'state_table'}

        miles = self._estimate_by_centroids(origin_state, dest_state)
        if miles:
            return {'miles': miles, 'calculation_method': 'centroid_estimate'}

        return {'miles': None, 'calculation_method': 'unknown'}

    def _lookup_miles(self, origin_state: str, dest_state: str,
                      origin_city: Optional[str], dest_city: Optional[str]) -> Optional[int]:
        result = self.calculate_distance(origin_state, dest_state, origin_city, dest_city)
        if result['miles'] is not None:
            logger.debug(f"Estimated {origin_state}->{dest_state} at {result['miles']} mi "
                         f"via {result['calculation_method']}")
        return result['miles']

    def estimate_lane_miles(self, origin_state: str, dest_state: str,
                            origin_city: Optional[str] = None,
                            dest_city: Optional[str] = None) -> Optional[int]:
        """Road-mile estimate for a lane, or None when nothing is known."""
        return self._cached_miles(origin_state, dest_state, origin_city, dest_city)

    def cache_info(self):
        return self._cached_miles.cache_info()


_DEFAULT_CALCULATOR = DistanceCalculator()


def default_calculator() -> DistanceCalculator:
    """Shared calculator over the built-in tables."""
    return _DEFAULT_CALCULATOR


def estimate_lane_miles(origin_state: str, dest_state: str,
                        origin_city: Optional[str] = None,
                        dest_city: Optional[str] = None) -> Optional[int]:
    """
    Convenience wrapper.

    USAGE:
    ```python
    miles = estimate_lane_miles("TX", "OK")   # 250
    ```
    """
    return default_calculator().estimate_lane_miles(origin_state, dest_state, origin_city, dest_city)
