"""
Pytest configuration and fixtures for the Storm Intel test suite.
"""

import datetime
import io

import pytest
from PIL import Image

from storm_intel.config import ReportConfig, ScoringConfig, reset_config
from storm_intel.damage_score import DamageScoreService
from storm_intel.models import EventType, ReportRequest, Severity, WeatherEvent

PROPERTY_LAT = 32.7767
PROPERTY_LNG = -96.7970

CONFIG_ENV_VARS = (
    'LOG_LEVEL', 'LOG_FILE', 'ENVIRONMENT', 'DEBUG', 'GOOGLE_MAPS_API_KEY', 'GEOAPIFY_API_KEY',
    'MAP_IMAGE_TIMEOUT', 'MAP_IMAGE_MAX_RETRIES', 'REPORT_COMPANY_NAME', 'SCORE_NEAR_MILES',
    'SCORE_MIN_PROXIMITY_WEIGHT', 'SCORE_SEVERE_HAIL_IN', 'SCORE_MODERATE_HAIL_IN',
)


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Run every test with default configuration and no config.json on disk."""
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def as_of():
    return datetime.date(2024, 6, 1)


@pytest.fixture
def scoring_config():
    return ScoringConfig()


@pytest.fixture
def score_service(scoring_config):
    return DamageScoreService(scoring_config)


@pytest.fixture
def sample_events():
    """Interactive hail map events around the test property."""
    return [
        WeatherEvent(
            event_id='ihm-1', date=datetime.date(2024, 4, 10), latitude=32.78, longitude=-96.80,
            magnitude=1.75, severity=Severity.SEVERE, source='IHM', distance_miles=0.5,
        ),
        WeatherEvent(
            event_id='ihm-2', date=datetime.date(2023, 8, 2), latitude=32.80, longitude=-96.82,
            magnitude=1.0, source='IHM', distance_miles=2.0,
        ),
        WeatherEvent(
            event_id='ihm-3', date=datetime.date(2021, 5, 15), latitude=32.83, longitude=-96.75,
            magnitude=0.75, source='IHM', distance_miles=4.0,
        ),
    ]


@pytest.fixture
def sample_noaa_events():
    """NOAA storm events: one hail, one thunderstorm wind."""
    return [
        WeatherEvent.from_noaa({
            'id': 'noaa-100', 'date': '2023-05-20T18:30:00', 'latitude': 32.77, 'longitude': -96.79,
            'magnitude': 2.0, 'eventType': 'Hail', 'location': 'DALLAS',
        }),
        WeatherEvent.from_noaa({
            'id': 'noaa-101', 'date': '2022-04-11', 'latitude': 32.76, 'longitude': -96.81,
            'magnitude': 65, 'eventType': 'Thunderstorm Wind', 'location': 'DALLAS',
        }),
    ]


@pytest.fixture
def sample_score(score_service, sample_events, sample_noaa_events, as_of):
    return score_service.calculate_damage_score(
        PROPERTY_LAT, PROPERTY_LNG, sample_events, sample_noaa_events, as_of=as_of
    )


@pytest.fixture
def empty_score(score_service, as_of):
    return score_service.calculate_damage_score(PROPERTY_LAT, PROPERTY_LNG, [], [], as_of=as_of)


@pytest.fixture
def png_bytes():
    """A small valid PNG image."""
    buffer = io.BytesIO()
    Image.new('RGB', (200, 100), (30, 90, 200)).save(buffer, format='PNG')
    return buffer.getvalue()


@pytest.fixture
def report_config():
    return ReportConfig()


@pytest.fixture
def report_request(sample_events, sample_noaa_events, sample_score):
    return ReportRequest(
        address='1234 Elm Street, Dallas, TX 75201',
        latitude=PROPERTY_LAT,
        longitude=PROPERTY_LNG,
        radius_miles=10,
        damage_score=sample_score,
        events=sample_events,
        noaa_events=sample_noaa_events,
        rep_name='Jordan Smith',
        rep_phone='(214) 555-0142',
        rep_email='jordan@example.com',
        report_id='SR-20240601-TEST01',
        generated_at=datetime.datetime(2024, 6, 1, 15, 30, tzinfo=datetime.timezone.utc),
    )


def make_hail(days_ago, size, distance, as_of, severity=None, event_id='e'):
    """Hail event at a fixed distance from the test property."""
    return WeatherEvent(
        event_id=event_id,
        date=as_of - datetime.timedelta(days=days_ago),
        latitude=PROPERTY_LAT,
        longitude=PROPERTY_LNG,
        magnitude=size,
        event_type=EventType.HAIL,
        severity=severity,
        distance_miles=distance,
    )


# Custom pytest markers
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests (fast, isolated)"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (render full documents, CLI)"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow"
    )
