"""
Tests for the damage score calculation, including property-based checks of
clamping, monotonicity and determinism.
"""

import datetime
import math
from unittest.mock import patch

import pytest
from hypothesis import HealthCheck, given, settings, strategies as st

from conftest import PROPERTY_LAT, PROPERTY_LNG, make_hail
from storm_intel.config import ScoringConfig
from storm_intel.damage_score import RISK_COLORS, DamageScoreService, calculate_damage_score
from storm_intel.models import EventType, InvalidInputError, RiskLevel, Severity, WeatherEvent

AS_OF = datetime.date(2024, 6, 1)
SERVICE = DamageScoreService(ScoringConfig())


def score_of(events):
    return SERVICE.calculate_damage_score(PROPERTY_LAT, PROPERTY_LNG, events, as_of=AS_OF).score


@pytest.mark.unit
class TestDamageScore:

    def test_no_events_is_low(self, score_service, as_of):
        result = score_service.calculate_damage_score(PROPERTY_LAT, PROPERTY_LNG, [], [], as_of=as_of)
        assert result.score == 0
        assert result.risk_level is RiskLevel.LOW
        assert result.color == RISK_COLORS[RiskLevel.LOW]
        assert result.summary.startswith('No significant hail history')

    def test_single_severe_event_components(self, score_service, as_of):
        event = make_hail(30, 2.0, 0.0, as_of)
        result = score_service.calculate_damage_score(PROPERTY_LAT, PROPERTY_LNG, [event], as_of=as_of)
        components = result.factors.components
        assert components['event_count'] == pytest.approx(7.5)
        assert components['max_hail'] == pytest.approx(30)
        assert components['recency'] == pytest.approx(3.0)
        assert components['exposure'] == pytest.approx(3.0)
        assert components['severity'] == pytest.approx(3.0)
        assert result.score == 47
        assert result.risk_level is RiskLevel.MODERATE
        assert result.factors.severity_distribution.severe == 1
        assert result.factors.recent_activity == 1

    def test_distant_event_is_discounted(self, score_service, as_of):
        near = score_service.calculate_damage_score(
            PROPERTY_LAT, PROPERTY_LNG, [make_hail(30, 2.0, 0.0, as_of)], as_of=as_of)
        far = score_service.calculate_damage_score(
            PROPERTY_LAT, PROPERTY_LNG, [make_hail(30, 2.0, 4.0, as_of)], as_of=as_of)
        assert far.factors.effective_event_count == pytest.approx(0.25)
        assert far.score == 15
        assert far.score < near.score

    def test_proximity_weight_floor(self, score_service):
        assert score_service.proximity_weight(0.5) == 1.0
        assert score_service.proximity_weight(2.0) == 0.5
        assert score_service.proximity_weight(500.0) == 0.25

    def test_declared_severity_raises_contribution(self, score_service, as_of):
        derived = make_hail(30, 0.5, 0.0, as_of)
        declared = make_hail(30, 0.5, 0.0, as_of, severity=Severity.SEVERE)
        low = score_service.calculate_damage_score(PROPERTY_LAT, PROPERTY_LNG, [derived], as_of=as_of)
        high = score_service.calculate_damage_score(PROPERTY_LAT, PROPERTY_LNG, [declared], as_of=as_of)
        assert low.score == 10
        assert high.score == 14

    def test_declared_severity_never_lowers(self, score_service, as_of):
        big = make_hail(30, 2.0, 0.0, as_of, severity=Severity.MINOR)
        result = score_service.calculate_damage_score(PROPERTY_LAT, PROPERTY_LNG, [big], as_of=as_of)
        assert result.factors.severity_distribution.severe == 1

    def test_saturates_at_100(self, score_service, as_of):
        events = [make_hail(10, 4.0, 0.0, as_of, event_id=str(i)) for i in range(100)]
        result = score_service.calculate_damage_score(PROPERTY_LAT, PROPERTY_LNG, events, as_of=as_of)
        assert result.score == 100
        assert result.risk_level is RiskLevel.CRITICAL

    def test_wind_and_unsized_hail_do_not_score(self, score_service, as_of):
        wind = WeatherEvent('w', as_of, PROPERTY_LAT, PROPERTY_LNG, magnitude=80, event_type=EventType.WIND)
        unsized = WeatherEvent('h', as_of, PROPERTY_LAT, PROPERTY_LNG)
        result = score_service.calculate_damage_score(PROPERTY_LAT, PROPERTY_LNG, [unsized], [wind], as_of=as_of)
        assert result.score == 0
        assert result.factors.event_count == 0

    def test_accepts_record_dicts(self, score_service, as_of):
        result = score_service.calculate_damage_score(
            PROPERTY_LAT, PROPERTY_LNG,
            events=[{'id': 1, 'date': '2024-05-01', 'latitude': PROPERTY_LAT, 'longitude': PROPERTY_LNG,
                     'hailSize': 1.5, 'severity': 'severe', 'source': 'IHM'}],
            noaa_events=[{'id': 2, 'date': '2024-05-02', 'latitude': PROPERTY_LAT, 'longitude': PROPERTY_LNG,
                          'magnitude': 1.0, 'eventType': 'Hail'}],
            as_of=as_of,
        )
        assert result.factors.event_count == 2
        assert result.factors.max_hail_size == 1.5

    def test_sample_events(self, sample_score):
        assert sample_score.factors.event_count == 4
        assert 0 < sample_score.score <= 100
        assert '4 recorded hail events' in sample_score.summary

    def test_risk_level_thresholds(self, score_service):
        assert score_service.get_risk_level(25) is RiskLevel.LOW
        assert score_service.get_risk_level(26) is RiskLevel.MODERATE
        assert score_service.get_risk_level(51) is RiskLevel.HIGH
        assert score_service.get_risk_level(76) is RiskLevel.CRITICAL

    def test_risk_level_follows_rounded_score(self, score_service, sample_events, as_of):
        with patch.object(DamageScoreService, '_weighted_score', return_value=25.6):
            result = score_service.calculate_damage_score(PROPERTY_LAT, PROPERTY_LNG, sample_events, as_of=as_of)
        assert result.score == 26
        assert result.risk_level is RiskLevel.MODERATE

    def test_recency_weights(self, score_service):
        assert score_service.recency_weight(3) == 1.5
        assert score_service.recency_weight(12) == 1.2
        assert score_service.recency_weight(20) == 0.8
        assert score_service.recency_weight(40) == 0.5

    def test_event_count_points_cap(self, score_service):
        assert score_service.event_count_points(0) == 0
        assert score_service.event_count_points(2) == 10
        assert score_service.event_count_points(5) == 16
        assert score_service.event_count_points(50) == 20

    def test_custom_weights(self, as_of):
        config = ScoringConfig(near_miles=5.0)
        service = DamageScoreService(config)
        event = make_hail(30, 2.0, 4.0, as_of)
        result = service.calculate_damage_score(PROPERTY_LAT, PROPERTY_LNG, [event], as_of=as_of)
        assert result.score == 47

    def test_module_function(self, as_of):
        result = calculate_damage_score(PROPERTY_LAT, PROPERTY_LNG, [make_hail(30, 2.0, 0.0, as_of)], as_of=as_of)
        assert result.score == 47


@pytest.mark.unit
class TestInvalidInput:

    @pytest.mark.parametrize('lat,lng', [(math.nan, 0), (0, math.inf), (95, 0), ('x', 0)])
    def test_bad_coordinates(self, score_service, lat, lng):
        with pytest.raises(InvalidInputError):
            score_service.calculate_damage_score(lat, lng, [])

    def test_bad_event_record(self, score_service):
        with pytest.raises(InvalidInputError):
            score_service.calculate_damage_score(
                PROPERTY_LAT, PROPERTY_LNG,
                [{'id': 1, 'date': 'not a date', 'latitude': 1, 'longitude': 1, 'hailSize': 1.0}],
            )

    def test_bad_event_type(self, score_service):
        with pytest.raises(InvalidInputError):
            score_service.calculate_damage_score(PROPERTY_LAT, PROPERTY_LNG, ['hail'])

    def test_non_finite_hail_size(self, score_service):
        with pytest.raises(InvalidInputError):
            score_service.calculate_damage_score(
                PROPERTY_LAT, PROPERTY_LNG,
                [{'id': 1, 'date': '2024-01-01', 'latitude': 1, 'longitude': 1, 'hailSize': float('nan')}],
            )

    def test_bad_as_of(self, score_service):
        with pytest.raises(InvalidInputError):
            score_service.calculate_damage_score(PROPERTY_LAT, PROPERTY_LNG, [], as_of='2024-01-01')


severities = st.sampled_from([None, Severity.MINOR, Severity.MODERATE, Severity.SEVERE])
event_specs = st.tuples(
    st.integers(min_value=0, max_value=3650),
    st.floats(min_value=0.1, max_value=5.0),
    st.floats(min_value=0.0, max_value=50.0),
    severities,
)


def build(specs):
    return [
        make_hail(days, size, distance, AS_OF, severity=severity, event_id=str(i))
        for i, (days, size, distance, severity) in enumerate(specs)
    ]


@pytest.mark.unit
class TestScoreProperties:

    @settings(max_examples=60, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
    @given(specs=st.lists(event_specs, max_size=40))
    def test_score_within_bounds(self, specs):
        result = SERVICE.calculate_damage_score(PROPERTY_LAT, PROPERTY_LNG, build(specs), as_of=AS_OF)
        assert isinstance(result.score, int)
        assert 0 <= result.score <= 100
        assert result.color == RISK_COLORS[result.risk_level]
        assert result.risk_level is SERVICE.get_risk_level(result.score)

    @settings(max_examples=40, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
    @given(specs=st.lists(event_specs, max_size=20))
    def test_deterministic(self, specs):
        events = build(specs)
        first = SERVICE.calculate_damage_score(PROPERTY_LAT, PROPERTY_LNG, events, as_of=AS_OF)
        second = SERVICE.calculate_damage_score(PROPERTY_LAT, PROPERTY_LNG, list(events), as_of=AS_OF)
        assert first.to_dict() == second.to_dict()

    @settings(max_examples=60, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
    @given(specs=st.lists(event_specs, min_size=1, max_size=20), data=st.data())
    def test_monotonic_in_hail_size(self, specs, data):
        index = data.draw(st.integers(min_value=0, max_value=len(specs) - 1))
        bump = data.draw(st.floats(min_value=0.0, max_value=3.0))
        days, size, distance, severity = specs[index]
        bigger = list(specs)
        bigger[index] = (days, size + bump, distance, severity)
        assert score_of(build(bigger)) >= score_of(build(specs))

    @settings(max_examples=60, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
    @given(specs=st.lists(event_specs, min_size=1, max_size=20), data=st.data())
    def test_monotonic_in_recency(self, specs, data):
        index = data.draw(st.integers(min_value=0, max_value=len(specs) - 1))
        days, size, distance, severity = specs[index]
        newer_days = data.draw(st.integers(min_value=0, max_value=days))
        newer = list(specs)
        newer[index] = (newer_days, size, distance, severity)
        assert score_of(build(newer)) >= score_of(build(specs))

    @settings(max_examples=60, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
    @given(specs=st.lists(event_specs, min_size=1, max_size=20), data=st.data())
    def test_monotonic_in_proximity(self, specs, data):
        index = data.draw(st.integers(min_value=0, max_value=len(specs) - 1))
        days, size, distance, severity = specs[index]
        closer_distance = data.draw(st.floats(min_value=0.0, max_value=distance))
        closer = list(specs)
        closer[index] = (days, size, closer_distance, severity)
        assert score_of(build(closer)) >= score_of(build(specs))

    @settings(max_examples=60, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
    @given(specs=st.lists(event_specs, min_size=1, max_size=20), data=st.data())
    def test_monotonic_in_declared_severity(self, specs, data):
        index = data.draw(st.integers(min_value=0, max_value=len(specs) - 1))
        days, size, distance, _ = specs[index]
        escalated = list(specs)
        escalated[index] = (days, size, distance, Severity.SEVERE)
        assert score_of(build(escalated)) >= score_of(build(specs))

    @settings(max_examples=30, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
    @given(specs=st.lists(event_specs, max_size=10))
    def test_adding_an_event_never_lowers_score(self, specs):
        more = list(specs) + [(0, 1.0, 0.0, None)]
        assert score_of(build(more)) >= score_of(build(specs))
