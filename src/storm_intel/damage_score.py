"""
Damage score calculation.

Turns the hail events recorded near a property into a 0-100 damage risk
score and a risk level. Five capped components make up the score:

- event count (0-20): proximity-weighted number of hail events
- max hail size (0-30): largest hail, discounted by distance
- recency (0-25): recent events weigh more, larger hail weighs more
- cumulative exposure (0-15): proximity-weighted sum of hail sizes
- severity distribution (0-10): points per severe/moderate/minor event

Score ranges (default thresholds):
    0-25 Low, 26-50 Moderate, 51-75 High, 76-100 Critical
"""

import datetime
import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from .config import ScoringConfig, get_scoring_config
from .geo import event_distance
from .models import (
    DamageScoreResult, InvalidInputError, RiskLevel, ScoreFactors, Severity,
    SeverityDistribution, WeatherEvent, validate_coordinates,
)

logger = logging.getLogger(__name__)

RISK_COLORS = {
    RiskLevel.CRITICAL: '#dc2626',
    RiskLevel.HIGH: '#f97316',
    RiskLevel.MODERATE: '#eab308',
    RiskLevel.LOW: '#22c55e',
}


@dataclass(frozen=True)
class _ScoredEvent:
    """A hail event reduced to what the score needs."""
    date: datetime.date
    hail_size: float
    severity: Severity
    proximity: float


class DamageScoreService:
    """Stateless damage score calculator."""

    def __init__(self, config: Optional[ScoringConfig] = None):
        self.config = config or get_scoring_config()

    def calculate_damage_score(
        self,
        lat: float,
        lng: float,
        events: Iterable[Any] = (),
        noaa_events: Iterable[Any] = (),
        as_of: Optional[datetime.date] = None,
    ) -> DamageScoreResult:
        """
        Calculate the damage score for a location

        Args:
            lat: Property latitude
            lng: Property longitude
            events: Hail map events (WeatherEvent or IHM record dicts)
            noaa_events: NOAA events (WeatherEvent or NOAA record dicts)
            as_of: Reference date for recency; defaults to today

        Returns:
            DamageScoreResult

        Raises:
            InvalidInputError: on malformed coordinates, events or dates
        """
        lat, lng = validate_coordinates(lat, lng)
        as_of = self._reference_date(as_of)

        all_events = _coerce(events, WeatherEvent.from_ihm) + _coerce(noaa_events, WeatherEvent.from_noaa)
        scored = [self._score_event(e, lat, lng) for e in all_events if self._is_scoring_event(e)]

        factors = self._build_factors(scored, as_of)
        raw_score = self._weighted_score(factors)
        score = int(math.floor(raw_score + 0.5))
        risk_level = self.get_risk_level(score)

        logger.debug(
            f"Damage score {score} ({risk_level.label}) from {factors.event_count} "
            f"scoring events of {len(all_events)} at {lat:.5f},{lng:.5f}"
        )

        return DamageScoreResult(
            score=score,
            risk_level=risk_level,
            factors=factors,
            summary=self.generate_summary(score, factors),
            color=RISK_COLORS[risk_level],
        )

    def _reference_date(self, as_of: Optional[Any]) -> datetime.date:
        if as_of is None:
            return datetime.date.today()
        if isinstance(as_of, datetime.datetime):
            return as_of.date()
        if isinstance(as_of, datetime.date):
            return as_of
        raise InvalidInputError(f"as_of must be a date, got {as_of!r}")

    @staticmethod
    def _is_scoring_event(event: WeatherEvent) -> bool:
        """Only hail with a recorded size contributes to the score."""
        return event.is_hail and event.magnitude is not None and event.magnitude > 0

    def _score_event(self, event: WeatherEvent, lat: float, lng: float) -> _ScoredEvent:
        size = event.magnitude
        severity = self.size_severity(size)
        if event.severity is not None and event.severity.rank > severity.rank:
            severity = event.severity
        return _ScoredEvent(
            date=event.date,
            hail_size=size,
            severity=severity,
            proximity=self.proximity_weight(event_distance(event, lat, lng)),
        )

    def size_severity(self, hail_size: float) -> Severity:
        """Classify a hail size in inches."""
        if hail_size >= self.config.severe_hail_in:
            return Severity.SEVERE
        if hail_size >= self.config.moderate_hail_in:
            return Severity.MODERATE
        return Severity.MINOR

    def proximity_weight(self, distance_miles: float) -> float:
        """1.0 within near_miles, then inverse distance down to the floor."""
        if distance_miles <= self.config.near_miles:
            return 1.0
        return max(self.config.min_proximity_weight, self.config.near_miles / distance_miles)

    def recency_weight(self, months_ago: float) -> float:
        for max_months, weight in self.config.recency_bands:
            if months_ago <= max_months:
                return weight
        return self.config.older_weight

    def _build_factors(self, scored: List[_ScoredEvent], as_of: datetime.date) -> ScoreFactors:
        cfg = self.config
        multipliers = {
            Severity.SEVERE: cfg.severe_multiplier,
            Severity.MODERATE: cfg.moderate_multiplier,
            Severity.MINOR: cfg.minor_multiplier,
        }
        severity_points = {
            Severity.SEVERE: cfg.severe_points,
            Severity.MODERATE: cfg.moderate_points,
            Severity.MINOR: cfg.minor_points,
        }

        distribution = SeverityDistribution()
        recency_score = 0.0
        severity_score = 0.0
        max_hail_points = 0.0
        recent = 0

        for event in scored:
            months_ago = (as_of - event.date).days / cfg.days_per_month
            if months_ago <= cfg.recent_activity_months:
                recent += 1
            setattr(distribution, event.severity.value, getattr(distribution, event.severity.value) + 1)

            recency_score += self.recency_weight(months_ago) * multipliers[event.severity] * event.proximity
            severity_score += severity_points[event.severity] * event.proximity
            max_hail_points = max(max_hail_points, self.hail_size_points(event.hail_size) * event.proximity)

        effective_count = sum(e.proximity for e in scored)
        exposure = sum(e.hail_size * e.proximity for e in scored)

        factors = ScoreFactors(
            event_count=len(scored),
            effective_event_count=effective_count,
            max_hail_size=max((e.hail_size for e in scored), default=0.0),
            recent_activity=recent,
            cumulative_exposure=exposure,
            severity_distribution=distribution,
            recency_score=min(cfg.recency_cap, recency_score),
        )
        factors.components = {
            'event_count': self.event_count_points(effective_count),
            'max_hail': max_hail_points,
            'recency': factors.recency_score,
            'exposure': min(cfg.exposure_cap, exposure * cfg.exposure_multiplier),
            'severity': min(cfg.severity_cap, severity_score),
        }
        return factors

    def event_count_points(self, count: float) -> float:
        """0-20 points; 1-2 events low, 3-5 moderate, 6-10 high, 11+ max."""
        if count <= 0:
            return 0.0
        if count <= 2:
            points = 5 + count * 2.5
        elif count <= 5:
            points = 10 + (count - 2) * 2
        elif count <= 10:
            points = 16 + (count - 5) * 0.6
        else:
            points = self.config.event_count_cap
        return min(self.config.event_count_cap, points)

    def hail_size_points(self, hail_size: float) -> float:
        for min_size, points in self.config.max_hail_points:
            if hail_size >= min_size:
                return points
        return 0.0

    def _weighted_score(self, factors: ScoreFactors) -> float:
        return min(100.0, max(0.0, sum(factors.components.values())))

    def get_risk_level(self, score: float) -> RiskLevel:
        if score >= self.config.critical_threshold:
            return RiskLevel.CRITICAL
        if score >= self.config.high_threshold:
            return RiskLevel.HIGH
        if score >= self.config.moderate_threshold:
            return RiskLevel.MODERATE
        return RiskLevel.LOW

    def generate_summary(self, score: int, factors: ScoreFactors) -> str:
        """Human-readable one-paragraph summary."""
        event_count = factors.event_count
        if score == 0 or event_count == 0:
            return 'No significant hail history detected in this area. Low risk for storm damage.'

        risk_level = self.get_risk_level(score)
        max_size = factors.max_hail_size
        recent = factors.recent_activity
        severe = factors.severity_distribution.severe

        summary = f"{risk_level.label} risk area with {event_count} recorded hail event{_plural(event_count)}."
        if max_size >= self.config.severe_hail_in:
            summary += f' Maximum hail size of {max_size:.1f}" indicates significant damage potential.'
        elif max_size >= self.config.moderate_hail_in:
            summary += f' Maximum hail size of {max_size:.1f}" suggests moderate damage risk.'
        if recent > 0:
            summary += (f" {recent} event{_plural(recent)} occurred in the past 12 months, "
                        f"indicating active storm activity.")
        if severe > 0:
            summary += f' {severe} severe event{_plural(severe)} ({self.config.severe_hail_in:g}"+) recorded.'
        return summary


def _plural(count: int) -> str:
    return '' if count == 1 else 's'


def _coerce(events: Iterable[Any], factory: Callable[[Dict[str, Any]], WeatherEvent]) -> List[WeatherEvent]:
    coerced = []
    for event in events or ():
        if isinstance(event, WeatherEvent):
            coerced.append(event)
        elif isinstance(event, dict):
            coerced.append(factory(event))
        else:
            raise InvalidInputError(f"expected WeatherEvent or record dict, got {type(event).__name__}")
    return coerced


def calculate_damage_score(lat: float, lng: float, events: Iterable[Any] = (),
                           noaa_events: Iterable[Any] = (),
                           as_of: Optional[datetime.date] = None) -> DamageScoreResult:
    """Calculate a damage score with the configured weights."""
    return DamageScoreService().calculate_damage_score(lat, lng, events, noaa_events, as_of=as_of)
