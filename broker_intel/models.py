# --------------------------- broker_intel/models.py ----------------------------
"""
Broker Intelligence · Core Data Models

OVERVIEW:
Value types shared by every stage of the broker intelligence pipeline. Inputs
from the mail-sync layer, transient extraction results and the aggregates that
are handed to the persistence layer all live here.

BUSINESS LOGIC:
- Extraction results are created once per message and never mutated
- Scores are always clamped to the 0-100 range
- BrokerStats is a replace-in-place aggregate owned by the store

DEPENDENCIES:
- Standard library dataclasses and enums only
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple, FrozenSet, Any


def clamp_score(value: float, low: float = 0.0, high: float = 100.0) -> float:
    """Clamp a score into [low, high]."""
    return max(low, min(high, value))


class BrokerClass(Enum):
    """Broker segment used by the seeded directory."""
    MAJOR = "major"
    REGIONAL = "regional"
    DIGITAL = "digital"
    UNKNOWN = "unknown"


class ConfidenceTier(Enum):
    """Qualitative confidence bucket for broker identification."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# ===============================================================================
# INPUTS
# ===============================================================================

@dataclass(frozen=True)
class InboundMessage:
    """
    Message as delivered by the mail-sync collaborator.

    Only one of body_text / body_html needs to be present. When only markup
    is available it is normalized before extraction.
    """
    message_id: str
    from_address: str
    subject: str = ""
    body_text: Optional[str] = None
    body_html: Optional[str] = None
    from_display_name: Optional[str] = None
    snippet: Optional[str] = None
    received_at: Optional[datetime] = None


@dataclass(frozen=True)
class BrokerDirectoryEntry:
    """A known broker: display name, mail domain and segment."""
    name: str
    domain: str
    broker_class: BrokerClass = BrokerClass.REGIONAL


@dataclass(frozen=True)
class CompanyPreferences:
    """
    Carrier preferences that drive load fit and relationship scoring.

    home_base is informational only.
    """
    min_rate_per_mile: float
    preferred_states: FrozenSet[str]
    preferred_equipment: Tuple[str, ...]
    max_distance_miles: float
    home_base: str = ""


# ===============================================================================
# TRANSIENT RESULTS
# ===============================================================================

@dataclass
class BrokerIdentification:
    """Outcome of broker identification for a single sender."""
    is_broker: bool
    broker_name: Optional[str] = None
    confidence: ConfidenceTier = ConfidenceTier.LOW
    similarity_score: float = 0.0
    broker_class: Optional[BrokerClass] = None
    reasoning: str = ""

    def to_dict(self) -> dict:
        return {
            "is_broker": self.is_broker,
            "broker_name": self.broker_name,
            "confidence": self.confidence.value,
            "similarity_score": self.similarity_score,
            "broker_class": self.broker_class.value if self.broker_class else None,
            "reasoning": self.reasoning,
        }


@dataclass
class ContentAnalysis:
    """Keyword and pattern signals found in subject + body."""
    matched_keywords: List[str]
    has_state_references: bool
    has_city_references: bool
    subject_matches: bool
    score: int

    @property
    def has_broker_keywords(self) -> bool:
        return self.score >= 2


@dataclass(frozen=True)
class ExtractedLoadSignal:
    """
    Structured load fields pulled out of one message.

    FIELDS:
    Every field except confidence is optional; a missing or implausible value
    stays None. rate_per_mile is only present when both rate and miles were
    found and the implied rate passed the plausibility ceiling.
    """
    confidence: int
    load_number: Optional[str] = None
    origin_city: Optional[str] = None
    origin_state: Optional[str] = None
    dest_city: Optional[str] = None
    dest_state: Optional[str] = None
    rate: Optional[float] = None
    miles: Optional[int] = None
    rate_per_mile: Optional[float] = None
    equipment: Optional[str] = None
    weight_lbs: Optional[int] = None
    pickup_date: Optional[datetime] = None
    delivery_date: Optional[datetime] = None
    contact_name: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    miles_estimated: bool = False

    @property
    def origin(self) -> Optional[str]:
        return _place(self.origin_city, self.origin_state)

    @property
    def destination(self) -> Optional[str]:
        return _place(self.dest_city, self.dest_state)

    @property
    def lane(self) -> Optional[str]:
        if self.origin and self.destination:
            return format_lane(self.origin, self.destination)
        return None


def _place(city: Optional[str], state: Optional[str]) -> Optional[str]:
    if not state:
        return None
    return f"{city}, {state}" if city else state


def format_lane(origin: str, destination: str) -> str:
    return f"{origin} → {destination}"


@dataclass
class LoadFitScore:
    """Priority score for a load with the notes that explain it."""
    score: float
    reasons: List[str] = field(default_factory=list)

    @property
    def reason_text(self) -> str:
        return "; ".join(self.reasons) or "No match criteria"


# ===============================================================================
# PERSISTED SHAPES
# ===============================================================================

@dataclass
class LoadRecord:
    """Load row handed to the persistence collaborator."""
    message_id: str
    extracted_at: datetime
    origin: Optional[str] = None
    destination: Optional[str] = None
    load_number: Optional[str] = None
    distance: Optional[int] = None
    total_rate: Optional[float] = None
    rate_per_mile: Optional[float] = None
    equipment: Optional[str] = None
    weight: Optional[str] = None
    pickup_date: Optional[datetime] = None
    delivery_date: Optional[datetime] = None
    broker: Optional[str] = None
    broker_email: Optional[str] = None
    broker_phone: Optional[str] = None
    contact_name: Optional[str] = None
    priority_score: float = 0.0
    fit_reason: Optional[str] = None
    confidence: int = 0

    @classmethod
    def from_signal(cls, message_id: str, signal: ExtractedLoadSignal,
                    fit: LoadFitScore, broker: Optional[str],
                    broker_email: Optional[str],
                    extracted_at: datetime) -> "LoadRecord":
        return cls(
            message_id=message_id,
            extracted_at=extracted_at,
            origin=signal.origin,
            destination=signal.destination,
            load_number=signal.load_number,
            distance=signal.miles,
            total_rate=signal.rate,
            rate_per_mile=signal.rate_per_mile,
            equipment=signal.equipment,
            weight=str(signal.weight_lbs) if signal.weight_lbs is not None else None,
            pickup_date=signal.pickup_date,
            delivery_date=signal.delivery_date,
            broker=broker,
            broker_email=broker_email,
            broker_phone=signal.contact_phone,
            contact_name=signal.contact_name,
            priority_score=fit.score,
            fit_reason=fit.reason_text,
            confidence=signal.confidence,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for key in ("extracted_at", "pickup_date", "delivery_date"):
            if data[key] is not None:
                data[key] = data[key].isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoadRecord":
        values = {k: data.get(k) for k in cls.__dataclass_fields__ if k in data}
        for key in ("extracted_at", "pickup_date", "delivery_date"):
            if isinstance(values.get(key), str):
                values[key] = datetime.fromisoformat(values[key].replace("Z", "+00:00"))
        return cls(**values)


@dataclass(frozen=True)
class LaneStat:
    lane: str
    count: int
    avg_rate: Optional[float] = None


@dataclass(frozen=True)
class BrokerStats:
    """
    Rolling relationship aggregate for one broker.

    Always produced by a full recompute over the broker's load history and
    replaced as a whole in the store.
    """
    broker_key: str
    total_loads: int
    loads_this_week: int
    loads_this_month: int
    first_contact_at: datetime
    last_contact_at: datetime
    relationship_score: float
    avg_rate_per_mile: Optional[float] = None
    highest_rate: Optional[float] = None
    lowest_rate: Optional[float] = None
    top_lanes: Tuple[LaneStat, ...] = ()
    lane_count: int = 0
    avg_days_between_contacts: Optional[float] = None
    broker_email: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "broker": self.broker_key,
            "broker_email": self.broker_email,
            "total_loads": self.total_loads,
            "loads_this_week": self.loads_this_week,
            "loads_this_month": self.loads_this_month,
            "avg_rate_per_mile": self.avg_rate_per_mile,
            "highest_rate": self.highest_rate,
            "lowest_rate": self.lowest_rate,
            "top_lanes": [asdict(lane) for lane in self.top_lanes],
            "lane_count": self.lane_count,
            "first_contact_date": self.first_contact_at.isoformat(),
            "last_contact_date": self.last_contact_at.isoformat(),
            "avg_days_between": self.avg_days_between_contacts,
            "relationship_score": self.relationship_score,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BrokerStats":
        def _dt(value):
            if isinstance(value, str):
                return datetime.fromisoformat(value.replace("Z", "+00:00"))
            return value

        return cls(
            broker_key=data["broker"],
            broker_email=data.get("broker_email"),
            total_loads=data.get("total_loads", 0),
            loads_this_week=data.get("loads_this_week", 0),
            loads_this_month=data.get("loads_this_month", 0),
            avg_rate_per_mile=data.get("avg_rate_per_mile"),
            highest_rate=data.get("highest_rate"),
            lowest_rate=data.get("lowest_rate"),
            top_lanes=tuple(LaneStat(**lane) for lane in data.get("top_lanes") or []),
            lane_count=data.get("lane_count", 0),
            first_contact_at=_dt(data["first_contact_date"]),
            last_contact_at=_dt(data["last_contact_date"]),
            avg_days_between_contacts=data.get("avg_days_between"),
            relationship_score=data.get("relationship_score", 0.0),
        )
