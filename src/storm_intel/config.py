"""
Configuration management for Storm Intel.

This module handles environment variables, scoring weights, report layout and
map image provider settings.
"""

import os
import logging
from typing import Optional, Dict, Any, Tuple
from dataclasses import dataclass, field, asdict
from pathlib import Path
import json

logger = logging.getLogger(__name__)


@dataclass
class ScoringConfig:
    """Weights and thresholds for the damage score heuristic."""
    # Hail size classes (inches)
    severe_hail_in: float = 1.5
    moderate_hail_in: float = 1.0

    # Recency bands: (max months ago, weight); anything older gets older_weight
    recency_bands: Tuple[Tuple[float, float], ...] = ((6.0, 1.5), (12.0, 1.2), (24.0, 0.8))
    older_weight: float = 0.5
    recent_activity_months: float = 12.0
    days_per_month: float = 30.0

    # Per-event multipliers by effective severity
    severe_multiplier: float = 2.0
    moderate_multiplier: float = 1.5
    minor_multiplier: float = 1.0

    # Max hail size ladder: (min size, points), largest first
    max_hail_points: Tuple[Tuple[float, float], ...] = (
        (2.0, 30.0), (1.75, 25.0), (1.5, 20.0), (1.25, 15.0), (1.0, 10.0), (0.75, 5.0),
    )

    # Component caps
    event_count_cap: float = 20.0
    recency_cap: float = 25.0
    exposure_cap: float = 15.0
    exposure_multiplier: float = 1.5
    severity_cap: float = 10.0
    severe_points: float = 3.0
    moderate_points: float = 1.5
    minor_points: float = 0.5

    # Proximity
    near_miles: float = 1.0
    min_proximity_weight: float = 0.25

    # Risk level thresholds (inclusive lower bounds)
    critical_threshold: float = 76.0
    high_threshold: float = 51.0
    moderate_threshold: float = 26.0


@dataclass
class ReportConfig:
    """PDF report layout and branding."""
    company_name: str = "SA21 Storm Intelligence"
    page_size: str = "LETTER"
    margin_top: float = 50.0
    margin_bottom: float = 50.0
    margin_left: float = 50.0
    margin_right: float = 50.0
    footer_height: float = 40.0
    chunk_size: int = 8192
    spool_max_bytes: int = 16 * 1024 * 1024
    image_height: float = 220.0


@dataclass
class MapImageConfig:
    """Configuration for static map image providers."""
    google_maps_api_key: Optional[str] = None
    geoapify_api_key: Optional[str] = None
    google_base_url: str = "https://maps.googleapis.com/maps/api/staticmap"
    geoapify_base_url: str = "https://maps.geoapify.com/v1/staticmap"
    osm_tile_url: str = "https://tile.openstreetmap.org/{zoom}/{x}/{y}.png"
    user_agent: str = "StormIntel/1.0"
    timeout: int = 15
    max_retries: int = 3
    retry_wait_min: float = 1.0
    retry_wait_max: float = 10.0
    cache_ttl_hours: int = 24
    cache_max_entries: int = 50
    default_zoom: int = 14
    default_width: int = 600
    default_height: int = 300


@dataclass
class SystemConfig:
    """Main system configuration."""
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    report: ReportConfig = field(default_factory=ReportConfig)
    maps: MapImageConfig = field(default_factory=MapImageConfig)

    # System-wide settings
    debug: bool = False
    environment: str = "development"
    version: str = "1.0.0"
    log_level: str = "INFO"
    log_file: Optional[Path] = None


class ConfigManager:
    """Configuration manager for handling environment variables and settings."""

    def __init__(self, config_file: Optional[Path] = None):
        self.config_file = Path(config_file) if config_file else Path("config.json")
        self.config = SystemConfig()
        self._load_config()

    def _load_config(self):
        """Load configuration from config file, then environment variables."""
        if self.config_file.exists():
            try:
                with open(self.config_file, 'r') as f:
                    config_data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Failed to load config file {self.config_file}: {e}")
            else:
                self._update_config_from_dict(config_data)
                logger.info(f"Loaded configuration from {self.config_file}")

        self._load_from_environment()
        self._validate_config()

    def _update_config_from_dict(self, config_data: Dict[str, Any]):
        """Update configuration from dictionary."""
        sections = {
            'scoring': self.config.scoring,
            'report': self.config.report,
            'maps': self.config.maps,
        }
        for name, section in sections.items():
            for key, value in config_data.get(name, {}).items():
                if not hasattr(section, key):
                    logger.warning(f"Ignoring unknown {name} setting: {key}")
                    continue
                if isinstance(getattr(section, key), tuple):
                    value = tuple(tuple(item) if isinstance(item, list) else item for item in value)
                setattr(section, key, value)

        if 'system' in config_data:
            sys_data = config_data['system']
            self.config.debug = sys_data.get('debug', self.config.debug)
            self.config.environment = sys_data.get('environment', self.config.environment)
            self.config.log_level = sys_data.get('log_level', self.config.log_level)
            if sys_data.get('log_file'):
                self.config.log_file = Path(sys_data['log_file'])

    def _load_from_environment(self):
        """Load configuration from environment variables."""
        # Scoring
        scoring = self.config.scoring
        scoring.near_miles = float(os.getenv('SCORE_NEAR_MILES', str(scoring.near_miles)))
        scoring.min_proximity_weight = float(
            os.getenv('SCORE_MIN_PROXIMITY_WEIGHT', str(scoring.min_proximity_weight))
        )
        scoring.severe_hail_in = float(os.getenv('SCORE_SEVERE_HAIL_IN', str(scoring.severe_hail_in)))
        scoring.moderate_hail_in = float(os.getenv('SCORE_MODERATE_HAIL_IN', str(scoring.moderate_hail_in)))

        # Report
        self.config.report.company_name = os.getenv('REPORT_COMPANY_NAME', self.config.report.company_name)

        # Map images
        maps = self.config.maps
        maps.google_maps_api_key = os.getenv('GOOGLE_MAPS_API_KEY', maps.google_maps_api_key)
        maps.geoapify_api_key = os.getenv('GEOAPIFY_API_KEY', maps.geoapify_api_key)
        maps.timeout = int(os.getenv('MAP_IMAGE_TIMEOUT', str(maps.timeout)))
        maps.max_retries = int(os.getenv('MAP_IMAGE_MAX_RETRIES', str(maps.max_retries)))

        # System
        if 'DEBUG' in os.environ:
            self.config.debug = os.environ['DEBUG'].lower() == 'true'
        self.config.environment = os.getenv('ENVIRONMENT', self.config.environment)
        self.config.log_level = os.getenv('LOG_LEVEL', self.config.log_level)
        if os.getenv('LOG_FILE'):
            self.config.log_file = Path(os.environ['LOG_FILE'])

    def _validate_config(self):
        """Validate configuration settings."""
        errors = []
        scoring = self.config.scoring
        report = self.config.report

        if scoring.near_miles <= 0:
            errors.append("near_miles must be positive")

        if not (0 < scoring.min_proximity_weight <= 1):
            errors.append("min_proximity_weight must be in (0, 1]")

        if scoring.moderate_hail_in >= scoring.severe_hail_in:
            errors.append("moderate_hail_in must be smaller than severe_hail_in")

        if not (scoring.moderate_threshold < scoring.high_threshold < scoring.critical_threshold <= 100):
            errors.append("risk thresholds must increase: moderate < high < critical <= 100")

        bands = [months for months, _ in scoring.recency_bands]
        if bands != sorted(bands):
            errors.append("recency_bands must be ordered by months ascending")

        weights = [weight for _, weight in scoring.recency_bands] + [scoring.older_weight]
        if weights != sorted(weights, reverse=True):
            errors.append("recency weights must not increase with age")

        if min(report.margin_top, report.margin_bottom, report.margin_left, report.margin_right) < 0:
            errors.append("report margins must not be negative")

        if report.footer_height < 36:
            errors.append("report footer_height must be at least 36 points")

        if report.page_size.upper() not in ('LETTER', 'A4', 'LEGAL'):
            errors.append(f"Unsupported report page size: {report.page_size}")

        if report.chunk_size <= 0:
            errors.append("report chunk_size must be positive")

        if report.spool_max_bytes < 0:
            errors.append("report spool_max_bytes must not be negative")

        if self.config.maps.timeout <= 0:
            errors.append("map image timeout must be positive")

        if self.config.log_level.upper() not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            errors.append(f"Invalid log level: {self.config.log_level}")

        if errors:
            raise ValueError(f"Configuration validation failed: {'; '.join(errors)}")

        logger.debug("Configuration validation passed")

    def get_scoring_config(self) -> ScoringConfig:
        """Get scoring configuration."""
        return self.config.scoring

    def get_report_config(self) -> ReportConfig:
        """Get report configuration."""
        return self.config.report

    def get_map_image_config(self) -> MapImageConfig:
        """Get map image configuration."""
        return self.config.maps

    def get_system_config(self) -> SystemConfig:
        """Get system configuration."""
        return self.config

    def save_config(self):
        """Save current configuration to file (API keys are not written).

        Refused in production, where configuration is managed externally.
        """
        if self.is_production():
            raise RuntimeError("Refusing to overwrite configuration in production")

        maps = asdict(self.config.maps)
        maps.pop('google_maps_api_key')
        maps.pop('geoapify_api_key')
        config_data = {
            'scoring': asdict(self.config.scoring),
            'report': asdict(self.config.report),
            'maps': maps,
            'system': {
                'debug': self.config.debug,
                'environment': self.config.environment,
                'log_level': self.config.log_level,
                'log_file': str(self.config.log_file) if self.config.log_file else None,
            }
        }

        try:
            with open(self.config_file, 'w') as f:
                json.dump(config_data, f, indent=2)
            logger.info(f"Configuration saved to {self.config_file}")
        except OSError as e:
            logger.error(f"Failed to save configuration: {e}")
            raise

    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.config.environment == 'production'


def get_config() -> SystemConfig:
    """Get global configuration instance."""
    if not hasattr(get_config, '_instance'):
        get_config._instance = ConfigManager()
    return get_config._instance.get_system_config()


def reset_config():
    """Drop the cached configuration so the next get_config() reloads it."""
    if hasattr(get_config, '_instance'):
        del get_config._instance


def get_scoring_config() -> ScoringConfig:
    """Get scoring configuration."""
    return get_config().scoring


def get_report_config() -> ReportConfig:
    """Get report configuration."""
    return get_config().report


def get_map_image_config() -> MapImageConfig:
    """Get map image configuration."""
    return get_config().maps
