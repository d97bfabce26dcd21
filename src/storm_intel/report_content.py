"""
Report copy: risk descriptions, summary templates, disclaimers and
display formatting used by the PDF report.
"""

from dataclasses import dataclass
from typing import Tuple

from .models import RiskLevel

REPORT_TITLE = "Storm Damage History Report"
REPORT_SUBTITLE = "Comprehensive Weather Event Analysis & Risk Assessment"


@dataclass(frozen=True)
class RiskDescription:
    title: str
    description: str
    recommendation: str
    insurance_note: str
    next_steps: Tuple[str, ...]


MINIMAL_RISK = RiskDescription(
    title="MINIMAL RISK",
    description=(
        "No significant storm events were recorded within the search parameters. This property "
        "shows minimal storm exposure history based on available meteorological data."
    ),
    recommendation=(
        "Standard maintenance recommended. Continue routine inspections according to manufacturer "
        "warranty requirements and document property condition for future insurance purposes."
    ),
    insurance_note=(
        "No documented storm events. Any damage claims should be thoroughly documented and "
        "professionally assessed."
    ),
    next_steps=(
        "Maintain regular roof inspection schedule",
        "Follow manufacturer maintenance guidelines",
        "Document roof condition annually with photographs",
        "Keep records of all maintenance and repairs",
    ),
)

RISK_DESCRIPTIONS = {
    RiskLevel.CRITICAL: RiskDescription(
        title="CRITICAL RISK",
        description=(
            "This property has experienced multiple severe weather events with significant hail "
            "activity. Historical data indicates a high probability of roof system damage requiring "
            "immediate attention."
        ),
        recommendation=(
            "Immediate professional inspection is strongly recommended. Contact a licensed roofing "
            "contractor and your insurance provider to document potential storm damage. Unaddressed "
            "storm damage may lead to secondary water intrusion and void manufacturer warranties."
        ),
        insurance_note=(
            "This property's storm history suggests a strong basis for an insurance claim. Document "
            "all visible damage and contact your insurance carrier promptly."
        ),
        next_steps=(
            "Schedule a roof inspection within 48 hours",
            "Contact insurance carrier to file a storm damage claim",
            "Document all visible damage with photographs",
            "Request a detailed assessment from a licensed contractor",
            "Obtain written estimates for necessary repairs",
        ),
    ),
    RiskLevel.HIGH: RiskDescription(
        title="HIGH RISK",
        description=(
            "This property has been exposed to significant severe weather activity with documented "
            "hail events of 1.5 inches or larger. The probability of roof damage is substantial."
        ),
        recommendation=(
            "Professional inspection strongly advised. The storm exposure history indicates potential "
            "granule loss, cracked shingles, compromised flashing and possible underlayment damage."
        ),
        insurance_note=(
            "Storm events documented in this report may support an insurance claim for roof damage. "
            "Professional inspection recommended to document claim-eligible damage."
        ),
        next_steps=(
            "Schedule professional roof inspection within 7 days",
            "Review homeowner's insurance policy for storm damage coverage",
            "Obtain multiple estimates from licensed contractors",
            "Document current roof condition with photographs",
        ),
    ),
    RiskLevel.MODERATE: RiskDescription(
        title="MODERATE RISK",
        description=(
            "This property has experienced moderate storm activity with hail events ranging from 1.0 "
            "to 1.5 inches. Major structural damage is less likely, but hidden damage is possible."
        ),
        recommendation=(
            "Preventative inspection recommended. Moderate hail can cause granule loss, shingle "
            "bruising and minor seal damage that shortens roof life without being visible."
        ),
        insurance_note=(
            "Documented storm events may support claims for hidden damage discovered during "
            "professional inspection."
        ),
        next_steps=(
            "Schedule routine roof inspection within 30 days",
            "Check gutters for granules and look for cracked shingles",
            "Maintain photographic records for future reference",
            "Monitor for leaks or interior water damage",
        ),
    ),
    RiskLevel.LOW: RiskDescription(
        title="LOW RISK",
        description=(
            "This property has experienced minimal severe weather exposure. Recorded storm events were "
            "small or occurred at considerable distance from the property."
        ),
        recommendation=(
            "Continue regular maintenance. Routine inspections every 3-5 years keep the roof system "
            "and manufacturer warranty in good standing."
        ),
        insurance_note=(
            "Limited storm history. Any damage claims should be supported by professional inspection "
            "and documentation of specific damage."
        ),
        next_steps=(
            "Maintain regular inspection schedule (every 3-5 years)",
            "Document current roof condition for future reference",
            "Keep gutters and downspouts clear of debris",
        ),
    ),
}

SUMMARY_TEMPLATES = {
    RiskLevel.LOW: (
        "This property has experienced {count} recorded storm event(s) during the analysis period, "
        "with a maximum documented hail size of {max_size} inches. Based on storm proximity, "
        "intensity and frequency, the overall Damage Risk Score is classified as LOW. Significant "
        "damage is unlikely, but routine inspection is recommended to verify roof condition."
    ),
    RiskLevel.MODERATE: (
        "This property has been exposed to {count} documented storm event(s) during the analysis "
        "period, including {severe_count} severe event(s). Maximum recorded hail size was {max_size} "
        "inches. Moderate hail can cause granule loss, shingle bruising and accelerated aging of "
        "roofing materials. Professional inspection is advisable before hidden damage leads to water "
        "intrusion."
    ),
    RiskLevel.HIGH: (
        "This property has significant documented storm exposure with {count} recorded storm "
        "event(s), including {severe_count} severe event(s) with hail of 1.5 inches or larger. "
        "Maximum recorded hail size was {max_size} inches. Hail of this magnitude has a high "
        "probability of damaging asphalt shingles. Professional inspection is strongly recommended "
        "to document damage and preserve insurance claim rights."
    ),
    RiskLevel.CRITICAL: (
        "This property has experienced {count} storm event(s) during the analysis period, with "
        "maximum recorded hail measuring {max_size} inches in diameter and {severe_count} severe "
        "event(s). Multiple damaging events substantially increase the probability of compromised "
        "roof integrity. Immediate professional inspection is strongly recommended, and the "
        "insurance carrier should be notified without delay."
    ),
}

NO_EVENTS_SUMMARY = (
    "No significant storm events were recorded within the specified search parameters for this "
    "property. Absence of recorded events does not guarantee absence of damage, as minor weather "
    "events may not be captured in meteorological databases. Standard roof maintenance and periodic "
    "inspection remain recommended."
)

URGENCY_MESSAGES = {
    RiskLevel.CRITICAL: "Time-sensitive: most insurance policies require storm damage claims within 1-2 years of the event.",
    RiskLevel.HIGH: "Act now: early detection of storm damage prevents costly secondary damage.",
    RiskLevel.MODERATE: "Don't wait: hidden damage can worsen over time and may not be covered later.",
    RiskLevel.LOW: "Stay protected: regular inspections maintain your roof warranty and insurance coverage.",
}

EVIDENCE_INTRO = "This report contains official storm event data from certified sources:"

EVIDENCE_SOURCES = (
    "1. NOAA Storm Events Database - the National Oceanic and Atmospheric Administration maintains "
    "the official record of severe weather events in the United States. NOAA data in this report "
    "is sourced from that database and represents verified storm events.",
    "2. Interactive Hail Maps (IHM) - a professional storm tracking service that aggregates NEXRAD "
    "radar, NOAA reports and ground observations.",
)

EVIDENCE_NOTE = (
    "IMPORTANT: This report provides historical storm data only. Physical roof inspection by a "
    "qualified professional is required to determine actual damage."
)

DISCLAIMER = (
    "DISCLAIMER: This report is provided for informational purposes only. Storm data is based on "
    "historical records and may not capture all weather events. This report does not constitute a "
    "roof inspection or damage assessment. Professional inspection required for insurance claims."
)

CONFIDENTIAL_NOTICE = "CONFIDENTIAL - For insurance and property assessment purposes only"

DATA_SOURCES = "NOAA Storm Events Database, Interactive Hail Maps"


def get_risk_description(risk_level: RiskLevel, event_count: int = 1) -> RiskDescription:
    """Description for a risk level; properties with no events get the minimal copy."""
    if event_count == 0:
        return MINIMAL_RISK
    return RISK_DESCRIPTIONS[risk_level]


def get_summary_text(risk_level: RiskLevel, event_count: int, max_size: float, severe_count: int) -> str:
    if event_count == 0:
        return NO_EVENTS_SUMMARY
    return SUMMARY_TEMPLATES[risk_level].format(
        count=event_count,
        max_size=f"{max_size:.2f}",
        severe_count=severe_count,
    )


def get_urgency_message(risk_level: RiskLevel) -> str:
    return URGENCY_MESSAGES[risk_level]


_HAIL_SIZE_LABELS = (
    (0.5, "pea-sized"),
    (0.75, "penny-sized"),
    (1.0, "quarter-sized"),
    (1.5, "half-dollar"),
    (1.75, "golf ball"),
    (2.0, "lime-sized"),
    (2.75, "baseball-sized"),
    (3.0, "tea cup"),
    (4.0, "softball"),
)


def format_hail_size(size: float) -> str:
    """Hail size with its common comparison object, e.g. 1.75" (lime-sized)."""
    if not size:
        return "Unknown"
    for upper, label in _HAIL_SIZE_LABELS:
        if size < upper:
            return f'{size:.2f}" ({label})'
    return f'{size:.2f}" (EXTREME)'


def format_distance(miles: float) -> str:
    if miles < 0.1:
        return "Direct impact"
    if miles < 1:
        return f"{miles * 5280:.0f} feet"
    return f"{miles:.2f} miles"
