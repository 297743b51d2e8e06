# --------------------------- broker_intel/services/load_extractor.py ----------------------------
"""
Broker Intelligence · Load Signal Extractor

OVERVIEW:
Pulls structured load fields (lane, rate, miles, equipment, weight, dates,
contact) out of normalized broker email text and scores how complete the
result is.

WORKFLOW:
1. Pre-filter: drop newsletters, require load vocabulary (is_load_offer)
2. Run every field's ordered rule list; first accepted value wins
3. Derive rate per mile and drop it when implausible
4. Sum field weights into a confidence score and reject weak results

BUSINESS LOGIC:
- Precision over recall: a value outside its plausible range is discarded,
  never clamped or guessed
- $10,000 over 100 miles is a typo or a bundled rate, not a $100/mi load
- Lanes only count when both ends carry a real US state code
- A broken rule for one field never costs the other fields

TECHNICAL ARCHITECTURE:
- Each field is a list of FieldRule(pattern, parse) evaluated in order
- parse() returns None to reject a match, so range checks live with the rule
- Pure functions over text; safe to run across a thread pool

DEPENDENCIES:
- Optional DistanceCalculator for estimating miles on lanes that omit them
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Pattern, Sequence, Tuple

from broker_intel.config import settings
from broker_intel.models import ExtractedLoadSignal
from broker_intel.services.us_states import is_valid_state
from broker_intel.utils.text_normalizer import parse_html_table

logger = logging.getLogger(__name__)

# ╔══════════ 1. Configuration & Rule Types ═══════════════════════════════════


class WeightMode(Enum):
    """Accepted weight ranges (lbs) for the two use sites."""
    LENIENT = (100, 50000)
    STRICT = (1000, 50000)

    @classmethod
    def from_name(cls, name: str) -> "WeightMode":
        try:
            return cls[(name or "lenient").upper()]
        except KeyError:
            raise ValueError(f"Unknown weight mode: {name!r}")


CONFIDENCE_WEIGHTS = {
    "lane": 30,
    "rate": 25,
    "miles": 20,
    "equipment": 10,
    "load_number": 5,
    "weight": 5,
    "pickup_date": 3,
    "delivery_date": 2,
}

RATE_RANGE = (300.0, 15000.0)
MILES_RANGE = (50, 3500)
LOAD_NUMBER_LENGTH = (4, 20)

NEWSLETTER_KEYWORDS = [
    'newsletter',
    'weekly trucking news',
    'market update',
    'industry update',
    'unsubscribe from future',
    'update profile',
]

LOAD_KEYWORDS = [
    'available load',
    'load offer',
    'pick',
    'del',
    'delivery',
    'destination',
    'origin',
    'rate:',
    'miles',
    'equipment:',
]

EQUIPMENT_TYPES = [
    'dry van', 'van', 'reefer', 'flatbed', 'stepdeck', 'step deck',
    'lowboy', 'conestoga', 'hotshot', 'box truck', 'sprinter',
    'power only', 'tanker', 'dump', 'hopper',
]

# Notification lead-ins that otherwise get glued onto the origin city
LANE_LEAD_INS = [
    re.compile(r'SLEEK FLEET NOTIFICATION[^:]+:', re.IGNORECASE),
    re.compile(r'A new load was added with pickup in', re.IGNORECASE),
    re.compile(r'\w+ Logistics Services is offering a load from', re.IGNORECASE),
]

MONTHS = ['jan', 'feb', 'mar', 'apr', 'may', 'jun', 'jul', 'aug', 'sep', 'oct', 'nov', 'dec']


@dataclass(frozen=True)
class FieldRule:
    """One extraction rule: where to look and how to accept what was found."""
    pattern: Pattern
    parse: Callable[[Any], Optional[Any]]


@dataclass(frozen=True)
class Lane:
    origin_city: Optional[str]
    origin_state: str
    dest_city: Optional[str]
    dest_state: str


def first_accepted(rules: Sequence[FieldRule], text: str) -> Optional[Any]:
    """
    Evaluate rules in order. Within a rule every match is tried left to
    right; the first value parse() accepts wins and later rules are skipped.
    """
    for rule in rules:
        for match in rule.pattern.finditer(text):
            value = rule.parse(match)
            if value is not None:
                return value
    return None


# ╔══════════ 2. Value Parsers ═══════════════════════════════════════════════


def _to_number(raw: str) -> Optional[float]:
    try:
        return float(raw.replace(',', '').replace(' ', ''))
    except (ValueError, AttributeError):
        return None


def _number_in_range(low: float, high: float, as_int: bool = False):
    def parse(match) -> Optional[float]:
        value = _to_number(match.group(1))
        if value is None or not (low <= value <= high):
            return None
        return int(value) if as_int else value
    return parse


def _load_number(match) -> Optional[str]:
    value = match.group(1).strip('-')
    low, high = LOAD_NUMBER_LENGTH
    if not (low <= len(value) <= high):
        return None
    # Words like "available" in "Load available" are not identifiers
    if not any(char.isdigit() for char in value):
        return None
    return value.upper()


def normalize_city(city: Optional[str]) -> Optional[str]:
    """Trim a city name and re-case ALL CAPS names to title case."""
    if not city:
        return None
    city = re.sub(r'\s+', ' ', city).strip(' .,')
    if not city:
        return None
    if city == city.upper():
        return ' '.join(word[:1].upper() + word[1:].lower() for word in city.split(' '))
    return city


def _city_state_lane(match) -> Optional[Lane]:
    origin_state, dest_state = match.group(2).upper(), match.group(4).upper()
    if not (is_valid_state(origin_state) and is_valid_state(dest_state)):
        return None
    return Lane(normalize_city(match.group(1)), origin_state,
                normalize_city(match.group(3)), dest_state)


def _state_only_lane(match) -> Optional[Lane]:
    origin_state, dest_state = match.group(1).upper(), match.group(2).upper()
    if not (is_valid_state(origin_state) and is_valid_state(dest_state)):
        return None
    return Lane(None, origin_state, None, dest_state)


_PLACE_RE = re.compile(r'^\s*(?:([A-Za-z][A-Za-z \.\']*?)\s*,?\s*)?\b([A-Z]{2})\b')


def parse_place(value: str) -> Optional[Tuple[Optional[str], str]]:
    """Parse 'Dallas, TX 75201' / 'DALLAS TX' / 'TX' into (city, state)."""
    if not value:
        return None
    match = _PLACE_RE.search(value.strip())
    if not match or not is_valid_state(match.group(2)):
        return None
    return normalize_city(match.group(1)), match.group(2)


_ORIGIN_LABEL = re.compile(r'\borigin\s*:\s*([^\n|]+)', re.IGNORECASE)
_DEST_LABEL = re.compile(r'\b(?:destination|dest)\s*:\s*([^\n|]+)', re.IGNORECASE)


def _labeled_lane(text: str) -> Optional[Lane]:
    origin_match = _ORIGIN_LABEL.search(text)
    dest_match = _DEST_LABEL.search(text)
    if not origin_match or not dest_match:
        return None
    origin = parse_place(origin_match.group(1))
    dest = parse_place(dest_match.group(1))
    if not origin or not dest:
        return None
    return Lane(origin[0], origin[1], dest[0], dest[1])


def _table_lane(rows: List[Dict[str, str]]) -> Optional[Lane]:
    for row in rows:
        origin_value = row.get('origin') or row.get('pickup') or row.get('from')
        dest_value = row.get('destination') or row.get('dest') or row.get('delivery') or row.get('to')
        origin = parse_place(origin_value or '')
        dest = parse_place(dest_value or '')
        if origin and dest:
            return Lane(origin[0], origin[1], dest[0], dest[1])
    return None


# ╔══════════ 3. Field Rules ═════════════════════════════════════════════════

_AMOUNT = r'([\d,]+(?:\.\d+)?)'
_COUNT = r'(\d{1,2},\d{3}|\d{2,4})'
_ARROW = r'(?:-->|->|→|—|–|(?i:to))'
_CITY = r"([A-Z][A-Za-z\.']*(?:[ ][A-Z][A-Za-z\.']*){0,2})"

LOAD_NUMBER_RULES = [
    FieldRule(re.compile(r'\bload\s*#?\s*[:=]?\s*([A-Z0-9\-]+)', re.IGNORECASE), _load_number),
    FieldRule(re.compile(r'\bref(?:erence)?[\s:]+#?\s*([A-Z0-9\-]+)', re.IGNORECASE), _load_number),
    FieldRule(re.compile(r'\border\s*#?\s*[:=]?\s*([A-Z0-9\-]+)', re.IGNORECASE), _load_number),
    FieldRule(re.compile(r'#(\d{5,})'), _load_number),
    FieldRule(re.compile(r'\b([A-Z]{2,4}\d{4,})\b'), _load_number),
]

RATE_RULES = [
    FieldRule(re.compile(r'\brate[\s:]+\$\s*' + _AMOUNT, re.IGNORECASE), _number_in_range(*RATE_RANGE)),
    FieldRule(re.compile(r'\btarget\s*rate[\s:]+\$?\s*' + _AMOUNT, re.IGNORECASE), _number_in_range(*RATE_RANGE)),
    FieldRule(re.compile(r'\bpay[\s:]+\$?\s*' + _AMOUNT, re.IGNORECASE), _number_in_range(*RATE_RANGE)),
    FieldRule(re.compile(r'\ball[\s-]*in(?:\s*rate)?[\s:]+\$?\s*' + _AMOUNT, re.IGNORECASE), _number_in_range(*RATE_RANGE)),
    FieldRule(re.compile(r'^\s*\$\s*' + _AMOUNT + r'\s*$', re.MULTILINE), _number_in_range(*RATE_RANGE)),
    FieldRule(re.compile(r'\$\s*' + _AMOUNT), _number_in_range(*RATE_RANGE)),
]

LANE_PATTERN_RULES = [
    FieldRule(re.compile(_CITY + r',?[ \t]*([A-Z]{2})\b\s*' + _ARROW + r'\s*' + _CITY + r',?[ \t]*([A-Z]{2})\b'),
              _city_state_lane),
]

STATE_LANE_RULES = [
    FieldRule(re.compile(r'\b([A-Z]{2})\s*' + _ARROW + r'\s*([A-Z]{2})\b'), _state_only_lane),
]

MILES_RULES = [
    FieldRule(re.compile(r'(?<![\d.,$])' + _COUNT + r'\s*miles?\b', re.IGNORECASE), _number_in_range(*MILES_RANGE, as_int=True)),
    FieldRule(re.compile(r'\bmiles?[\s:]+' + _COUNT + r'\b', re.IGNORECASE), _number_in_range(*MILES_RANGE, as_int=True)),
    FieldRule(re.compile(r'\bdistance[\s:]+' + _COUNT + r'\b', re.IGNORECASE), _number_in_range(*MILES_RANGE, as_int=True)),
]

_WEIGHT_VALUE = r'(\d{1,3}(?:,\d{3})+|\d{3,6})'


def weight_rules(mode: WeightMode) -> List[FieldRule]:
    low, high = mode.value
    parse = _number_in_range(low, high, as_int=True)
    return [
        FieldRule(re.compile(r'\bweight[\s:]+' + _WEIGHT_VALUE + r'\b', re.IGNORECASE), parse),
        FieldRule(re.compile(r'(?<![\d.,])' + _WEIGHT_VALUE + r'\s*(?:lbs?|pounds)\b\.?', re.IGNORECASE), parse),
    ]


_NUMERIC_DATE = re.compile(r'(?<![\d/])(\d{1,2})/(\d{1,2})/(\d{4}|\d{2})(?![\d/])')
_MONTH_DATE = re.compile(
    r'\b(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\.?\s+(\d{1,2})(?:st|nd|rd|th)?,?\s+(\d{4})\b',
    re.IGNORECASE,
)

_PHONE = re.compile(r'(?<!\d)(\+?1?[ \t]*\(?(\d{3})\)?[ \t.-]?(\d{3})[ \t.-]?(\d{4}))(?!\d)')
_EMAIL = re.compile(r'([a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,})')
CONTACT_NAME_PATTERNS = [
    re.compile(r'(?i:regards|thanks|thank you|sincerely),?[ \t]*\n\s*([A-Z][a-z]+[ \t]+[A-Z][a-z]+)'),
    re.compile(r'([A-Z][a-z]+[ \t]+[A-Z][a-z]+)[ \t]*\n\s*(?i:carrier|operations|dispatch)'),
]
PREFERRED_CONTACT_WORDS = ('ops', 'operations', 'dispatch')


# ╔══════════ 4. Load Signal Extractor ═══════════════════════════════════════


class LoadSignalExtractor:
    """
    Rule-driven load field extraction.

    USAGE PATTERNS:
    extract() works on any normalized text; extract_message() applies the
    load-offer pre-filter first and is what the intake pipeline calls.
    """

    def __init__(self, max_rate_per_mile: float = None, min_confidence: int = None,
                 weight_mode: WeightMode = None, estimate_missing_miles: bool = None,
                 distance_calculator=None):
        self.max_rate_per_mile = (settings.MAX_PLAUSIBLE_RATE_PER_MILE
                                  if max_rate_per_mile is None else max_rate_per_mile)
        self.min_confidence = settings.MIN_LOAD_CONFIDENCE if min_confidence is None else min_confidence
        self.weight_mode = weight_mode or WeightMode.from_name(settings.WEIGHT_MODE)
        self.estimate_missing_miles = (settings.ESTIMATE_MISSING_MILES
                                       if estimate_missing_miles is None else estimate_missing_miles)
        self._weight_rules = weight_rules(self.weight_mode)

        if self.estimate_missing_miles and distance_calculator is None:
            from broker_intel.services.distance_calculator import default_calculator
            distance_calculator = default_calculator()
        self.distance_calculator = distance_calculator

    # ── Pre-filter ────────────────────────────────────────────────────

    def is_load_offer(self, text: str) -> bool:
        """Newsletters never count; otherwise need two load-vocabulary hits."""
        content = (text or '').lower()
        if any(keyword in content for keyword in NEWSLETTER_KEYWORDS):
            return False
        hits = sum(1 for keyword in LOAD_KEYWORDS if keyword in content)
        return hits >= 2

    # ── Field extractors ──────────────────────────────────────────────

    def _safe(self, field_name: str, extractor: Callable[[], Any], default=None):
        try:
            return extractor()
        except Exception as e:
            logger.debug(f"Field extractor '{field_name}' failed: {e}")
            return default

    def extract_load_number(self, text: str) -> Optional[str]:
        return first_accepted(LOAD_NUMBER_RULES, text)

    def extract_rate(self, text: str) -> Optional[float]:
        return first_accepted(RATE_RULES, text)

    def extract_lane(self, text: str, html: Optional[str] = None) -> Optional[Lane]:
        """
        LANE SOURCES (in order):
        1. "City, ST to City, ST" (also ->, →, dashes)
        2. Origin: / Destination: labeled fields
        3. "ST to ST"
        4. Origin/destination columns of an HTML table, when markup is given
        """
        clean = text
        for lead_in in LANE_LEAD_INS:
            clean = lead_in.sub('', clean)

        lane = first_accepted(LANE_PATTERN_RULES, clean)
        if lane is None:
            lane = _labeled_lane(clean)
        if lane is None:
            lane = first_accepted(STATE_LANE_RULES, clean)
        if lane is None and html:
            lane = _table_lane(parse_html_table(html))
        return lane

    def extract_miles(self, text: str) -> Optional[int]:
        return first_accepted(MILES_RULES, text)

    def extract_equipment(self, text: str) -> Optional[str]:
        content = text.lower()
        for equipment in EQUIPMENT_TYPES:
            if re.search(r'\b' + re.escape(equipment) + r's?\b', content):
                return ' '.join(word.capitalize() for word in equipment.split(' '))
        return None

    def extract_weight(self, text: str) -> Optional[int]:
        return first_accepted(self._weight_rules, text)

    def extract_dates(self, text: str) -> Tuple[Optional[datetime], Optional[datetime]]:
        """Earliest date is pickup, the next one is delivery."""
        dates: List[datetime] = []

        for match in _NUMERIC_DATE.finditer(text):
            month, day, year = int(match.group(1)), int(match.group(2)), int(match.group(3))
            if year < 100:
                year += 2000
            self._append_date(dates, year, month, day)

        for match in _MONTH_DATE.finditer(text):
            month = MONTHS.index(match.group(1).lower()[:3]) + 1
            self._append_date(dates, int(match.group(3)), month, int(match.group(2)))

        dates.sort()
        pickup = dates[0] if len(dates) >= 1 else None
        delivery = dates[1] if len(dates) >= 2 else None
        return pickup, delivery

    @staticmethod
    def _append_date(dates: List[datetime], year: int, month: int, day: int) -> None:
        try:
            dates.append(datetime(year, month, day))
        except ValueError:
            pass  # 13/45/2025 and friends

    def extract_contact(self, text: str, from_address: Optional[str] = None) -> Dict[str, Optional[str]]:
        contact: Dict[str, Optional[str]] = {
            'contact_name': None,
            'contact_phone': None,
            'contact_email': None,
        }

        phone = _PHONE.search(text)
        if phone:
            contact['contact_phone'] = phone.group(1).strip()

        for match in _EMAIL.finditer(text):
            address = match.group(1).lower()
            if any(word in address for word in PREFERRED_CONTACT_WORDS):
                contact['contact_email'] = address
                break
            if contact['contact_email'] is None:
                contact['contact_email'] = address

        if contact['contact_email'] is None and from_address:
            contact['contact_email'] = from_address.lower()

        for pattern in CONTACT_NAME_PATTERNS:
            match = pattern.search(text)
            if match:
                contact['contact_name'] = match.group(1).strip()
                break

        return contact

    # ── Assembly ──────────────────────────────────────────────────────

    def rate_per_mile(self, rate: Optional[float], miles: Optional[int]) -> Optional[float]:
        if not rate or not miles:
            return None
        rpm = round(rate / miles, 2)
        if rpm > self.max_rate_per_mile:
            logger.warning(f"Suspicious rate: {rpm}/mi for ${rate}/{miles}mi - dropping rate per mile")
            return None
        return rpm

    def extract(self, text: str, html: Optional[str] = None,
                from_address: Optional[str] = None) -> Optional[ExtractedLoadSignal]:
        """
        Extract a load signal from normalized text.

        ARGS:
            text: Normalized subject + body
            html: Original markup, used only for the table lane fallback
            from_address: Sender, used when the body names no contact email

        RETURNS:
            ExtractedLoadSignal, or None when confidence is below the minimum
        """
        text = text or ''
        safe = self._safe

        load_number = safe('load_number', lambda: self.extract_load_number(text))
        lane = safe('lane', lambda: self.extract_lane(text, html))
        rate = safe('rate', lambda: self.extract_rate(text))
        miles = safe('miles', lambda: self.extract_miles(text))
        equipment = safe('equipment', lambda: self.extract_equipment(text))
        weight = safe('weight', lambda: self.extract_weight(text))
        pickup, delivery = safe('dates', lambda: self.extract_dates(text), (None, None))
        contact = safe('contact', lambda: self.extract_contact(text, from_address), {})

        present = {
            'lane': lane is not None,
            'rate': rate is not None,
            'miles': miles is not None,
            'equipment': equipment is not None,
            'load_number': load_number is not None,
            'weight': weight is not None,
            'pickup_date': pickup is not None,
            'delivery_date': delivery is not None,
        }
        confidence = min(100, sum(CONFIDENCE_WEIGHTS[name] for name, found in present.items() if found))

        if confidence < self.min_confidence:
            return None

        miles_estimated = False
        if miles is None and lane is not None and self.estimate_missing_miles:
            miles = safe('miles_estimate', lambda: self.distance_calculator.estimate_lane_miles(
                lane.origin_state, lane.dest_state, lane.origin_city, lane.dest_city))
            miles_estimated = miles is not None

        return ExtractedLoadSignal(
            confidence=confidence,
            load_number=load_number,
            origin_city=lane.origin_city if lane else None,
            origin_state=lane.origin_state if lane else None,
            dest_city=lane.dest_city if lane else None,
            dest_state=lane.dest_state if lane else None,
            rate=rate,
            miles=miles,
            rate_per_mile=self.rate_per_mile(rate, miles),
            equipment=equipment,
            weight_lbs=weight,
            pickup_date=pickup,
            delivery_date=delivery,
            contact_name=contact.get('contact_name'),
            contact_phone=contact.get('contact_phone'),
            contact_email=contact.get('contact_email'),
            miles_estimated=miles_estimated,
        )

    def extract_message(self, text: str, html: Optional[str] = None,
                        from_address: Optional[str] = None) -> Optional[ExtractedLoadSignal]:
        """Pre-filtered extraction: non-offers return None without parsing."""
        try:
            if not self.is_load_offer(text):
                return None
            return self.extract(text, html=html, from_address=from_address)
        except Exception as e:
            logger.error(f"Load extraction failed: {e}")
            return None
