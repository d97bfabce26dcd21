"""
Storm Intel

Storm damage scoring and PDF storm history reports for roofing sales:
turns nearby hail and wind events into a 0-100 damage score and renders
a multi-page report for the homeowner and insurance carrier.
"""

__version__ = "1.0.0"
__author__ = "Storm Intel Team"

from .models import (
    WeatherEvent, EventType, Severity, RiskLevel, DamageScoreResult, ScoreFactors,
    ReportRequest, InvalidInputError, ReportValidationError, ReportRenderError,
)
from .damage_score import DamageScoreService, calculate_damage_score
from .pdf_report import PDFReportService, RenderedReport, PageLayout
from .map_images import MapImageService, fetch_map_image

__all__ = [
    'WeatherEvent',
    'EventType',
    'Severity',
    'RiskLevel',
    'DamageScoreResult',
    'ScoreFactors',
    'ReportRequest',
    'InvalidInputError',
    'ReportValidationError',
    'ReportRenderError',
    'DamageScoreService',
    'calculate_damage_score',
    'PDFReportService',
    'RenderedReport',
    'PageLayout',
    'MapImageService',
    'fetch_map_image',
]
