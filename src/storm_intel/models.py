"""
Core data models for storm damage scoring and reporting
"""

import datetime
import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence


class InvalidInputError(ValueError):
    """Raised when an input record or parameter is malformed."""


class ReportValidationError(InvalidInputError):
    """Raised when a report request is missing required fields."""


class ReportRenderError(RuntimeError):
    """Raised when the PDF could not be drawn."""


class EventType(Enum):
    """Storm event types"""
    HAIL = "hail"
    WIND = "wind"
    TORNADO = "tornado"


class Severity(Enum):
    """Event severity levels"""
    MINOR = "minor"
    MODERATE = "moderate"
    SEVERE = "severe"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.MINOR: 0, Severity.MODERATE: 1, Severity.SEVERE: 2}


class RiskLevel(Enum):
    """Damage risk categories, lowest first"""
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def label(self) -> str:
        return self.value.capitalize()


def require_finite(name: str, value: Any) -> float:
    """Coerce value to float, rejecting booleans, NaN and infinities."""
    if isinstance(value, bool):
        raise InvalidInputError(f"{name} must be a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"{name} must be a number, got {value!r}") from None
    if not math.isfinite(number):
        raise InvalidInputError(f"{name} must be finite, got {value!r}")
    return number


def validate_coordinates(lat: Any, lon: Any) -> tuple:
    """Return (lat, lon) as floats or raise InvalidInputError."""
    lat = require_finite("latitude", lat)
    lon = require_finite("longitude", lon)
    if not -90 <= lat <= 90:
        raise InvalidInputError(f"latitude out of range: {lat}")
    if not -180 <= lon <= 180:
        raise InvalidInputError(f"longitude out of range: {lon}")
    return lat, lon


def parse_event_date(value: Any) -> datetime.date:
    """Parse an ISO date or datetime string (or date object) to a date."""
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError(f"event date must be an ISO date string, got {value!r}")
    date_part = value.strip().split('T')[0].split(' ')[0]
    try:
        return datetime.date.fromisoformat(date_part)
    except ValueError:
        raise InvalidInputError(f"unparseable event date: {value!r}") from None


def normalize_event_type(value: Any) -> EventType:
    """Map free-form NOAA event type names ("Thunderstorm Wind") to EventType."""
    if isinstance(value, EventType):
        return value
    name = str(value or '').lower()
    for event_type in EventType:
        if event_type.value in name:
            return event_type
    raise InvalidInputError(f"unknown event type: {value!r}")


def _enum_value(enum_cls, value: Any, name: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        raise InvalidInputError(f"unknown {name}: {value!r}") from None


@dataclass(frozen=True)
class WeatherEvent:
    """One observed hail, wind or tornado occurrence.

    ``magnitude`` is the hail size in inches for hail, wind speed in knots for
    wind and the EF rating for tornadoes. ``None`` means not recorded.
    """
    event_id: str
    date: datetime.date
    latitude: float
    longitude: float
    magnitude: Optional[float] = None
    event_type: EventType = EventType.HAIL
    severity: Optional[Severity] = None
    source: str = "IHM"
    location: Optional[str] = None
    distance_miles: Optional[float] = None

    def __post_init__(self):
        lat, lon = validate_coordinates(self.latitude, self.longitude)
        object.__setattr__(self, 'latitude', lat)
        object.__setattr__(self, 'longitude', lon)
        object.__setattr__(self, 'date', parse_event_date(self.date))
        object.__setattr__(self, 'event_type', normalize_event_type(self.event_type))
        if self.severity is not None:
            object.__setattr__(self, 'severity', _enum_value(Severity, self.severity, "severity"))

        if self.magnitude is not None:
            magnitude = require_finite("magnitude", self.magnitude)
            if magnitude < 0:
                raise InvalidInputError(f"magnitude must not be negative: {magnitude}")
            object.__setattr__(self, 'magnitude', magnitude)

        if self.distance_miles is not None:
            distance = require_finite("distance_miles", self.distance_miles)
            if distance < 0:
                raise InvalidInputError(f"distance_miles must not be negative: {distance}")
            object.__setattr__(self, 'distance_miles', distance)

    @property
    def is_hail(self) -> bool:
        return self.event_type is EventType.HAIL

    @property
    def hail_size(self) -> Optional[float]:
        """Hail size in inches, or None for non-hail events."""
        return self.magnitude if self.is_hail else None

    def with_distance(self, distance_miles: float) -> 'WeatherEvent':
        return replace(self, distance_miles=distance_miles)

    @classmethod
    def from_ihm(cls, record: Dict[str, Any]) -> 'WeatherEvent':
        """Build from an interactive hail map record (``hailSize``, ``severity``)."""
        return cls(
            event_id=str(_first(record, 'id', 'event_id', default='')),
            date=_first(record, 'date', 'eventDate'),
            latitude=_first(record, 'latitude', 'lat'),
            longitude=_first(record, 'longitude', 'lng', 'lon'),
            magnitude=_first(record, 'hailSize', 'hail_size', 'magnitude'),
            event_type=EventType.HAIL,
            severity=record.get('severity'),
            source=record.get('source') or 'IHM',
            location=record.get('location'),
            distance_miles=_first(record, 'distanceMiles', 'distance_miles'),
        )

    @classmethod
    def from_noaa(cls, record: Dict[str, Any]) -> 'WeatherEvent':
        """Build from a NOAA storm events record (``magnitude``, ``eventType``)."""
        return cls(
            event_id=str(_first(record, 'id', 'event_id', 'EVENT_ID', default='')),
            date=_first(record, 'date', 'BEGIN_DATE_TIME'),
            latitude=_first(record, 'latitude', 'lat', 'BEGIN_LAT'),
            longitude=_first(record, 'longitude', 'lng', 'lon', 'BEGIN_LON'),
            magnitude=_first(record, 'magnitude', 'MAGNITUDE'),
            event_type=normalize_event_type(
                _first(record, 'eventType', 'event_type', 'EVENT_TYPE', default='hail')
            ),
            severity=record.get('severity'),
            source='NOAA',
            location=_first(record, 'location', 'CZ_NAME'),
            distance_miles=_first(record, 'distanceMiles', 'distance_miles'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.event_id,
            'date': self.date.isoformat(),
            'latitude': self.latitude,
            'longitude': self.longitude,
            'magnitude': self.magnitude,
            'eventType': self.event_type.value,
            'severity': self.severity.value if self.severity else None,
            'source': self.source,
            'location': self.location,
            'distanceMiles': self.distance_miles,
        }


def _first(record: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first non-None value among keys."""
    for key in keys:
        value = record.get(key)
        if value is not None:
            return value
    return default


@dataclass
class SeverityDistribution:
    severe: int = 0
    moderate: int = 0
    minor: int = 0


@dataclass
class ScoreFactors:
    """Inputs and component points behind a damage score"""
    event_count: int = 0
    effective_event_count: float = 0.0
    max_hail_size: float = 0.0
    recent_activity: int = 0
    cumulative_exposure: float = 0.0
    severity_distribution: SeverityDistribution = field(default_factory=SeverityDistribution)
    recency_score: float = 0.0
    components: Dict[str, float] = field(default_factory=dict)


@dataclass
class DamageScoreResult:
    """Damage score with its risk level and breakdown"""
    score: int
    risk_level: RiskLevel
    factors: ScoreFactors
    summary: str
    color: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            'score': self.score,
            'riskLevel': self.risk_level.label,
            'color': self.color,
            'summary': self.summary,
            'factors': {
                'eventCount': self.factors.event_count,
                'effectiveEventCount': round(self.factors.effective_event_count, 3),
                'maxHailSize': self.factors.max_hail_size,
                'recentActivity': self.factors.recent_activity,
                'cumulativeExposure': round(self.factors.cumulative_exposure, 3),
                'severityDistribution': {
                    'severe': self.factors.severity_distribution.severe,
                    'moderate': self.factors.severity_distribution.moderate,
                    'minor': self.factors.severity_distribution.minor,
                },
                'recencyScore': round(self.factors.recency_score, 3),
                'components': {k: round(v, 3) for k, v in self.factors.components.items()},
            },
        }


@dataclass
class ReportRequest:
    """Everything needed to render one storm damage history report"""
    address: str
    latitude: float
    longitude: float
    damage_score: DamageScoreResult
    radius_miles: float = 15.0
    events: Sequence[WeatherEvent] = field(default_factory=list)
    noaa_events: Sequence[WeatherEvent] = field(default_factory=list)
    rep_name: Optional[str] = None
    rep_phone: Optional[str] = None
    rep_email: Optional[str] = None
    company_name: Optional[str] = None
    map_image: Optional[bytes] = None
    radar_image: Optional[bytes] = None
    report_id: Optional[str] = None
    generated_at: Optional[datetime.datetime] = None

    @property
    def all_events(self) -> List[WeatherEvent]:
        return list(self.events) + list(self.noaa_events)

    @property
    def rep_contact(self) -> List[str]:
        return [part for part in (self.rep_name, self.rep_phone, self.rep_email) if part]
