"""
PDF report generation.

Renders a storm damage history report for a property: header, property
information, damage score, executive summary, impact narrative, storm event
timeline, map/radar imagery, historical activity by year, evidence and
disclaimer, with a footer on every page.
"""

import datetime
import io
import logging
import math
import tempfile
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO, Callable, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from PIL import Image, UnidentifiedImageError
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, LEGAL, LETTER
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfbase.pdfmetrics import getDescent, stringWidth
from reportlab.pdfgen import canvas

from . import report_content as content
from .config import ReportConfig, get_report_config
from .geo import event_distance
from .models import (
    DamageScoreResult, EventType, InvalidInputError, ReportRenderError, ReportRequest,
    ReportValidationError, Severity, WeatherEvent, require_finite, validate_coordinates,
)

logger = logging.getLogger(__name__)

PAGE_SIZES = {'LETTER': LETTER, 'A4': A4, 'LEGAL': LEGAL}

COLORS = {
    'primary': colors.HexColor('#1e3a8a'),
    'secondary': colors.HexColor('#475569'),
    'accent': colors.HexColor('#0ea5e9'),
    'critical': colors.HexColor('#dc2626'),
    'high': colors.HexColor('#f97316'),
    'moderate': colors.HexColor('#eab308'),
    'low': colors.HexColor('#22c55e'),
    'text_dark': colors.HexColor('#1e293b'),
    'text_light': colors.HexColor('#64748b'),
    'border': colors.HexColor('#cbd5e1'),
    'row_alt': colors.HexColor('#f8fafc'),
    'white': colors.white,
}

SEVERITY_COLORS = {
    Severity.SEVERE: COLORS['critical'],
    Severity.MODERATE: COLORS['moderate'],
    Severity.MINOR: COLORS['low'],
}

SEVERE_HAIL_IN = 1.5


@dataclass
class PageLayout:
    """Where things ended up on one rendered page (top-down coordinates)."""
    page_number: int
    page_height: float
    margin_bottom: float
    footer_y: float
    content_bottom: float

    @property
    def printable_bottom(self) -> float:
        return self.page_height - self.margin_bottom


@dataclass
class RenderedReport:
    report_id: str
    pdf: bytes
    pages: List[PageLayout] = field(default_factory=list)

    @property
    def page_count(self) -> int:
        return len(self.pages)


@dataclass(frozen=True)
class _TimelineRow:
    date: datetime.date
    type_label: str
    size_label: str
    severity: Severity
    source: str
    distance: float


def display_severity(event: WeatherEvent) -> Severity:
    """
    Severity shown in the timeline.

    A declared severity wins. Otherwise tornadoes are severe, wind is always
    moderate, and hail is graded by size (unknown size is minor).
    """
    if event.severity is not None:
        return event.severity
    if event.event_type is EventType.WIND:
        return Severity.MODERATE
    if event.event_type is EventType.TORNADO:
        return Severity.SEVERE
    if not event.magnitude:
        return Severity.MINOR
    if event.magnitude >= SEVERE_HAIL_IN:
        return Severity.SEVERE
    if event.magnitude >= 1.0:
        return Severity.MODERATE
    return Severity.MINOR


def format_magnitude(event: WeatherEvent) -> str:
    if not event.magnitude:
        return 'N/A'
    if event.event_type is EventType.HAIL:
        return f'{event.magnitude:.2f}"'
    if event.event_type is EventType.WIND:
        return f'{event.magnitude:.0f} kt'
    return f'EF{int(event.magnitude)}'


def format_date(value: datetime.date) -> str:
    return f"{value:%b} {value.day}, {value.year}"


class _NumberedCanvas(canvas.Canvas):
    """Canvas that draws footers at save time, once the page count is known."""

    def __init__(self, *args, footer: Callable[['_NumberedCanvas', int, int], float], **kwargs):
        canvas.Canvas.__init__(self, *args, **kwargs)
        self._saved_page_states: List[Dict[str, Any]] = []
        self._footer = footer
        self.footer_positions: List[float] = []

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        page_count = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self.footer_positions.append(self._footer(self, self._pageNumber, page_count))
            canvas.Canvas.showPage(self)
        canvas.Canvas.save(self)


class _PageWriter:
    """Top-down cursor over a ReportLab canvas with automatic page breaks."""

    def __init__(self, pdf: canvas.Canvas, page_size: Tuple[float, float], config: ReportConfig):
        self.c = pdf
        self.width, self.height = page_size
        self.left = config.margin_left
        self.right = self.width - config.margin_right
        self.top = config.margin_top
        self.content_bottom = self.height - config.margin_bottom - config.footer_height
        self.y = self.top
        self.page_number = 1
        self.extents: Dict[int, float] = {1: self.top}

    @property
    def content_width(self) -> float:
        return self.right - self.left

    @property
    def available_height(self) -> float:
        """Height of the content area on a fresh page."""
        return self.content_bottom - self.top

    def pdf_y(self, y: float) -> float:
        return self.height - y

    def _mark(self, y: float):
        self.extents[self.page_number] = max(self.extents.get(self.page_number, self.top), y)

    def new_page(self):
        self.c.showPage()
        self.page_number += 1
        self.y = self.top
        self.extents[self.page_number] = self.top

    def ensure_space(self, height: float) -> bool:
        """Start a new page unless height fits above the footer. Returns True on a break."""
        if self.y + height > self.content_bottom and self.y > self.top:
            self.new_page()
            return True
        return False

    def move_down(self, amount: float):
        self.y += amount

    def text(self, text: str, font: str = 'Helvetica', size: float = 10,
             color=COLORS['text_dark'], x: Optional[float] = None, width: Optional[float] = None,
             align: str = 'left', leading: Optional[float] = None):
        """Wrapped paragraph at the cursor, breaking pages between lines."""
        x = self.left if x is None else x
        width = width or (self.right - x)
        leading = leading or size * 1.3
        for line in simpleSplit(text, font, size, width) or ['']:
            self.ensure_space(leading)
            self.text_at(line, x, self.y + size, font, size, color, width=width, align=align)
            self.y += leading
            self._mark(self.y)

    def text_at(self, text: str, x: float, baseline: float, font: str, size: float, color,
                width: Optional[float] = None, align: str = 'left'):
        """Single line at an absolute top-down baseline."""
        self.c.setFont(font, size)
        self.c.setFillColor(color)
        y = self.pdf_y(baseline)
        if align == 'center' and width:
            self.c.drawCentredString(x + width / 2, y, text)
        elif align == 'right' and width:
            self.c.drawRightString(x + width, y, text)
        else:
            self.c.drawString(x, y, text)
        self._mark(baseline - getDescent(font, size))

    def rect(self, x: float, y: float, w: float, h: float, fill=None, stroke=None,
             line_width: float = 1, fill_alpha: float = 1.0, radius: float = 0):
        self.c.saveState()
        if fill is not None:
            self.c.setFillColor(fill)
            self.c.setFillAlpha(fill_alpha)
        if stroke is not None:
            self.c.setStrokeColor(stroke)
            self.c.setLineWidth(line_width)
        do_stroke = int(stroke is not None)
        do_fill = int(fill is not None)
        if radius:
            self.c.roundRect(x, self.pdf_y(y + h), w, h, radius, stroke=do_stroke, fill=do_fill)
        else:
            self.c.rect(x, self.pdf_y(y + h), w, h, stroke=do_stroke, fill=do_fill)
        self.c.restoreState()
        self._mark(y + h)

    def hline(self, color, line_width: float = 1):
        self.c.saveState()
        self.c.setStrokeColor(color)
        self.c.setLineWidth(line_width)
        self.c.line(self.left, self.pdf_y(self.y), self.right, self.pdf_y(self.y))
        self.c.restoreState()

    def image(self, reader: ImageReader, x: float, y: float, w: float, h: float):
        self.c.drawImage(reader, x, self.pdf_y(y + h), width=w, height=h,
                         preserveAspectRatio=True, mask='auto')
        self._mark(y + h)

    def section_header(self, title: str):
        self.ensure_space(60)
        self.text(title, font='Helvetica-Bold', size=14, color=COLORS['primary'])
        self.move_down(3)
        self.hline(COLORS['accent'], 1)
        self.move_down(10)

    def info_table(self, rows: Sequence[Tuple[str, str]]):
        """Label/value rows. A value taller than the space left continues on the next page."""
        label_width = self.content_width * 0.35
        value_width = self.content_width - label_width - 20
        for index, (label, value) in enumerate(rows):
            lines = simpleSplit(value, 'Helvetica', 10, value_width) or ['']
            first = True
            while lines:
                needed = max(22.0, 9 + 13 * len(lines))
                self.ensure_space(needed if needed <= self.available_height else 22.0)
                room = max(1, int((self.content_bottom - self.y - 9) // 13))
                segment, lines = lines[:room], lines[room:]
                self._info_row(label if first else '', segment, label_width, shaded=index % 2 == 0)
                first = False

    def _info_row(self, label: str, lines: Sequence[str], label_width: float, shaded: bool):
        row_height = max(22.0, 9 + 13 * len(lines))
        y = self.y
        if shaded:
            self.rect(self.left, y, self.content_width, row_height, fill=COLORS['row_alt'])
        self.rect(self.left, y, self.content_width, row_height, stroke=COLORS['border'])
        self.text_at(label, self.left + 10, y + 15, 'Helvetica-Bold', 10, COLORS['text_light'])
        for offset, line in enumerate(lines):
            self.text_at(line, self.left + label_width + 10, y + 15 + 13 * offset,
                         'Helvetica', 10, COLORS['text_dark'])
        self.y = y + row_height

    def table(self, headers: Sequence[str], fractions: Sequence[float],
              rows: Sequence[Sequence[Tuple[str, str, Any]]], header_height: float = 22,
              row_height: float = 18):
        """Grid table; each cell is (text, font, color). Headers repeat after page breaks."""
        widths = [self.content_width * f for f in fractions]

        def draw_header():
            self.ensure_space(header_height + row_height)
            y = self.y
            self.rect(self.left, y, self.content_width, header_height, fill=COLORS['primary'])
            x = self.left
            for header, width in zip(headers, widths):
                self.text_at(_fit(header, 'Helvetica-Bold', 9, width - 10), x + 5, y + 14,
                             'Helvetica-Bold', 9, COLORS['white'])
                x += width
            self.y = y + header_height

        draw_header()
        for index, row in enumerate(rows):
            if self.y + row_height > self.content_bottom:
                self.new_page()
                draw_header()
            y = self.y
            if index % 2 == 0:
                self.rect(self.left, y, self.content_width, row_height, fill=COLORS['row_alt'])
            self.rect(self.left, y, self.content_width, row_height, stroke=COLORS['border'])
            x = self.left
            for (text, font, color), width in zip(row, widths):
                self.text_at(_fit(text, font, 8, width - 10), x + 5, y + 12, font, 8, color)
                x += width
            self.y = y + row_height


def _fit(text: str, font: str, size: float, width: float) -> str:
    """Truncate text with an ellipsis so it fits width."""
    if stringWidth(text, font, size) <= width:
        return text
    while text and stringWidth(text + '...', font, size) > width:
        text = text[:-1]
    return text + '...'


class PDFReportService:
    """Stateless storm damage history report renderer."""

    def __init__(self, config: Optional[ReportConfig] = None):
        self.config = config or get_report_config()

    @property
    def page_size(self) -> Tuple[float, float]:
        try:
            return PAGE_SIZES[self.config.page_size.upper()]
        except KeyError:
            raise ValueError(f"Unsupported page size: {self.config.page_size}") from None

    def validate_request(self, request: ReportRequest):
        """Raise ReportValidationError if the request cannot produce a report."""
        if not isinstance(request, ReportRequest):
            raise ReportValidationError(f"expected ReportRequest, got {type(request).__name__}")
        if not isinstance(request.address, str) or not request.address.strip():
            raise ReportValidationError("address is required")
        if request.latitude is None or request.longitude is None:
            raise ReportValidationError("coordinates are required")
        try:
            validate_coordinates(request.latitude, request.longitude)
            radius = require_finite("radius_miles", request.radius_miles)
        except InvalidInputError as e:
            raise ReportValidationError(str(e)) from e
        if radius <= 0:
            raise ReportValidationError(f"radius_miles must be positive, got {radius}")
        if not isinstance(request.damage_score, DamageScoreResult):
            raise ReportValidationError("damage_score is required")
        for event in request.all_events:
            if not isinstance(event, WeatherEvent):
                raise ReportValidationError(f"events must be WeatherEvent, got {type(event).__name__}")
        for name in ('map_image', 'radar_image'):
            value = getattr(request, name)
            if value is not None and not isinstance(value, (bytes, bytearray)):
                raise ReportValidationError(f"{name} must be bytes")

    def generate_report(self, request: ReportRequest) -> Iterator[bytes]:
        """
        Generate the PDF and return it as a single-pass stream of byte chunks.

        The request is validated immediately. The document is drawn when the
        stream is first advanced; drawing errors surface as ReportRenderError
        before any chunk is produced.
        """
        self.validate_request(request)
        return self._stream(request)

    def _stream(self, request: ReportRequest) -> Iterator[bytes]:
        chunk_size = self.config.chunk_size
        with tempfile.SpooledTemporaryFile(max_size=self.config.spool_max_bytes) as spool:
            report_id, pages = self._draw(request, spool)
            size = spool.tell()
            logger.info(f"Streaming report {report_id}: {len(pages)} page(s), {size} bytes")
            spool.seek(0)
            while True:
                chunk = spool.read(chunk_size)
                if not chunk:
                    break
                yield chunk

    def write_report(self, request: ReportRequest, destination: Union[str, Path, BinaryIO]) -> int:
        """Stream the report to a path or binary file object. Returns bytes written."""
        stream = self.generate_report(request)
        if hasattr(destination, 'write'):
            return _copy(stream, destination)

        path = Path(destination)
        first = next(stream, b'')
        with open(path, 'wb') as f:
            f.write(first)
            written = len(first) + _copy(stream, f)
        logger.info(f"Wrote {written} byte report to {path}")
        return written

    def render(self, request: ReportRequest) -> RenderedReport:
        """Draw the complete report and return its bytes and page layout."""
        self.validate_request(request)
        buffer = io.BytesIO()
        report_id, pages = self._draw(request, buffer)
        pdf_bytes = buffer.getvalue()
        logger.info(f"Rendered report {report_id}: {len(pages)} page(s), {len(pdf_bytes)} bytes")
        return RenderedReport(report_id=report_id, pdf=pdf_bytes, pages=pages)

    def _draw(self, request: ReportRequest, target: BinaryIO) -> Tuple[str, List[PageLayout]]:
        """Draw every section into target and return the report id and page layout."""
        generated_at = request.generated_at or datetime.datetime.now(datetime.timezone.utc)
        report_id = request.report_id or self.generate_report_id(generated_at)
        company = request.company_name or self.config.company_name
        page_size = self.page_size

        try:
            pdf = _NumberedCanvas(
                target,
                pagesize=page_size,
                footer=lambda c, page, total: self._draw_footer(c, page, total, request, company),
            )
            pdf.setTitle(content.REPORT_TITLE)
            pdf.setAuthor(company)
            pdf.setSubject(f"Storm History for {request.address}")
            pdf.setKeywords("storm damage, hail, insurance, NOAA")

            writer = _PageWriter(pdf, page_size, self.config)
            self._add_header(writer, company, report_id, generated_at)
            self._add_property_information(writer, request)
            self._add_damage_score(writer, request.damage_score)
            self._add_executive_summary(writer, request)
            self._add_impact_narrative(writer, request)
            self._add_storm_timeline(writer, request)
            self._add_imagery(writer, request)
            self._add_historical_table(writer, request)
            self._add_evidence(writer)

            pdf.showPage()
            pdf.save()
        except ReportRenderError:
            raise
        except Exception as e:
            logger.error(f"Failed to render report {report_id}: {e}")
            raise ReportRenderError(f"Failed to render report {report_id}: {e}") from e

        pages = [
            PageLayout(
                page_number=number,
                page_height=page_size[1],
                margin_bottom=self.config.margin_bottom,
                footer_y=footer_y,
                content_bottom=writer.extents.get(number, writer.top),
            )
            for number, footer_y in enumerate(pdf.footer_positions, start=1)
        ]
        return report_id, pages

    @staticmethod
    def generate_report_id(generated_at: datetime.datetime) -> str:
        return f"SR-{generated_at:%Y%m%d}-{uuid.uuid4().hex[:6].upper()}"

    def _add_header(self, w: _PageWriter, company: str, report_id: str,
                    generated_at: datetime.datetime):
        badge = (company.split() or ['SI'])[0][:4].upper()
        w.c.saveState()
        w.c.setStrokeColor(COLORS['primary'])
        w.c.setLineWidth(2)
        w.c.circle(w.left + 28, w.pdf_y(w.top + 28), 25, stroke=1, fill=0)
        w.c.restoreState()
        w.text_at(badge, w.left + 3, w.top + 33, 'Helvetica-Bold', 14, COLORS['primary'],
                  width=50, align='center')

        title_x = w.left + 75
        w.text(content.REPORT_TITLE.upper(), font='Helvetica-Bold', size=20,
               color=COLORS['primary'], x=title_x)
        w.text(content.REPORT_SUBTITLE, size=10, color=COLORS['secondary'], x=title_x)
        w.move_down(2)
        generated = f"{format_date(generated_at.date())} {generated_at:%H:%M} UTC"
        w.text(f"Report ID: {report_id}", size=9, color=COLORS['text_light'], x=title_x)
        w.text(f"Generated: {generated}", size=9, color=COLORS['text_light'], x=title_x)
        w.y = max(w.y, w.top + 60) + 8
        w.hline(COLORS['primary'], 2)
        w.move_down(16)

    def _add_property_information(self, w: _PageWriter, request: ReportRequest):
        w.section_header('Property Information')
        w.info_table([
            ('Address', request.address.strip()),
            ('Coordinates', f"{request.latitude:.6f}, {request.longitude:.6f}"),
            ('Search Radius', f"{request.radius_miles:g} miles"),
            ('Data Sources', content.DATA_SOURCES),
        ])
        w.move_down(18)

    def _add_damage_score(self, w: _PageWriter, score: DamageScoreResult):
        w.section_header('Damage Risk Assessment')
        color = colors.HexColor(score.color)
        box_width = w.content_width
        summary_x = w.left + 220
        summary_width = box_width - 240
        summary_lines = simpleSplit(score.summary, 'Helvetica', 9, summary_width)
        fit = max(0, int((w.available_height - 72) // 12))
        summary_lines, overflow = summary_lines[:fit], summary_lines[fit:]
        box_height = min(max(130.0, 72 + 12 * len(summary_lines)), w.available_height)

        w.ensure_space(box_height)
        y = w.y
        w.rect(w.left, y, box_width, box_height, fill=color, fill_alpha=0.1)
        w.rect(w.left, y, box_width, box_height, stroke=color, line_width=2)
        w.text_at(str(score.score), w.left + 30, y + 78, 'Helvetica-Bold', 54, color,
                  width=150, align='center')
        w.text_at('DAMAGE SCORE', w.left + 30, y + 104, 'Helvetica', 11, COLORS['text_light'],
                  width=150, align='center')
        w.rect(summary_x, y + 18, 150, 36, fill=color, radius=5)
        w.text_at(score.risk_level.label.upper(), summary_x, y + 42, 'Helvetica-Bold', 18,
                  COLORS['white'], width=150, align='center')
        for offset, line in enumerate(summary_lines):
            w.text_at(line, summary_x, y + 72 + 12 * offset, 'Helvetica', 9, COLORS['text_dark'])
        w.y = y + box_height + 14
        if overflow:
            w.text(' '.join(overflow), size=9, x=summary_x, width=summary_width, leading=12)
            w.move_down(10)

        factors = score.factors
        w.text('Risk Factors:', font='Helvetica-Bold', size=12)
        w.move_down(4)
        w.info_table([
            ('Total Hail Events', str(factors.event_count)),
            ('Proximity-Weighted Events', f"{factors.effective_event_count:.1f}"),
            ('Max Hail Size', f'{factors.max_hail_size:.2f}"'),
            ('Recent Activity (12mo)', str(factors.recent_activity)),
            ('Severe Events', str(factors.severity_distribution.severe)),
            ('Cumulative Exposure', f"{factors.cumulative_exposure:.2f}"),
        ])
        w.move_down(18)

    def _add_executive_summary(self, w: _PageWriter, request: ReportRequest):
        w.section_header('Executive Summary')
        events = request.all_events
        hail_sizes = [e.magnitude for e in events if e.is_hail and e.magnitude]
        largest = max(hail_sizes, default=0.0)
        severe = sum(1 for size in hail_sizes if size >= SEVERE_HAIL_IN)
        dates = [e.date for e in events]
        most_recent = format_date(max(dates)) if dates else 'None recorded'
        years = math.ceil((max(dates) - min(dates)).days / 365) if dates else 0

        points = [
            f"Total Storm Events: {len(events)} events within {request.radius_miles:g} miles",
            f"Largest Recorded Hail: {content.format_hail_size(largest) if largest else 'No hail recorded'}",
            f"Most Recent Event: {most_recent}",
            f'Severe Hail Events ({SEVERE_HAIL_IN:g}"+): {severe}',
            f"Historical Data Coverage: {years} year{'s' if years != 1 else ''}",
        ]
        for point in points:
            w.text(f"• {point}", size=11)
            w.move_down(3)
        w.move_down(15)

    def _add_impact_narrative(self, w: _PageWriter, request: ReportRequest):
        score = request.damage_score
        event_count = len(request.all_events)
        description = content.get_risk_description(score.risk_level, event_count)

        w.section_header('Impact Assessment')
        w.text(description.title, font='Helvetica-Bold', size=12, color=colors.HexColor(score.color))
        w.move_down(4)
        w.text(description.description, size=10)
        w.move_down(6)
        w.text(content.get_summary_text(
            score.risk_level,
            event_count,
            score.factors.max_hail_size,
            score.factors.severity_distribution.severe,
        ), size=10)
        w.move_down(6)
        w.text(f"Recommendation: {description.recommendation}", size=10)
        w.move_down(6)
        w.text(f"Insurance: {description.insurance_note}", size=10)
        w.move_down(8)
        w.text('Recommended Next Steps:', font='Helvetica-Bold', size=11)
        for step in description.next_steps:
            w.text(f"• {step}", size=10, x=w.left + 10)
        w.move_down(6)
        w.text(content.get_urgency_message(score.risk_level), font='Helvetica-Oblique', size=10,
               color=COLORS['secondary'])
        w.move_down(18)

    def _timeline_rows(self, request: ReportRequest) -> List[_TimelineRow]:
        rows = [
            _TimelineRow(
                date=event.date,
                type_label=event.event_type.value.capitalize(),
                size_label=format_magnitude(event),
                severity=display_severity(event),
                source=event.source,
                distance=event_distance(event, request.latitude, request.longitude),
            )
            for event in request.all_events
        ]
        return sorted(rows, key=lambda r: (r.date, r.source, r.distance), reverse=True)

    def _add_storm_timeline(self, w: _PageWriter, request: ReportRequest):
        w.section_header('Storm Event Timeline')
        rows = self._timeline_rows(request)
        if not rows:
            w.text('No storm events found in the specified search area.',
                   font='Helvetica-Oblique', size=11, color=COLORS['text_light'])
            w.move_down(18)
            return

        dark = COLORS['text_dark']
        w.table(
            ['Date', 'Type', 'Size/Magnitude', 'Severity', 'Source', 'Distance'],
            [0.19, 0.13, 0.19, 0.15, 0.15, 0.19],
            [
                [
                    (format_date(row.date), 'Helvetica', dark),
                    (row.type_label, 'Helvetica', dark),
                    (row.size_label, 'Helvetica', dark),
                    (row.severity.value.upper(), 'Helvetica-Bold', SEVERITY_COLORS[row.severity]),
                    (row.source, 'Helvetica', dark),
                    (f"{row.distance:.1f} mi", 'Helvetica', dark),
                ]
                for row in rows
            ],
        )
        w.move_down(18)

    def _add_imagery(self, w: _PageWriter, request: ReportRequest):
        images = [
            ('Property Map', request.map_image),
            ('Radar Imagery', request.radar_image),
        ]
        images = [(caption, data) for caption, data in images if data]
        if not images:
            return

        w.section_header('Storm Imagery')
        for caption, data in images:
            reader, (img_w, img_h) = _load_image(caption, data)
            max_height = min(self.config.image_height, w.available_height - 24)
            scale = min(w.content_width / img_w, max_height / img_h)
            draw_w, draw_h = img_w * scale, img_h * scale
            w.ensure_space(draw_h + 24)
            w.text(caption, font='Helvetica-Bold', size=11)
            w.move_down(4)
            w.image(reader, w.left + (w.content_width - draw_w) / 2, w.y, draw_w, draw_h)
            w.y += draw_h + 14

    def _add_historical_table(self, w: _PageWriter, request: ReportRequest):
        w.section_header('Historical Storm Activity')
        by_year: Dict[int, List[WeatherEvent]] = {}
        for event in request.all_events:
            by_year.setdefault(event.date.year, []).append(event)
        if not by_year:
            w.text('No historical storm activity recorded for this location.',
                   font='Helvetica-Oblique', size=11, color=COLORS['text_light'])
            w.move_down(18)
            return

        dark = COLORS['text_dark']
        rows = []
        for year in sorted(by_year, reverse=True):
            year_events = by_year[year]
            hail = [e.magnitude for e in year_events if e.is_hail and e.magnitude]
            rows.append([
                (str(year), 'Helvetica-Bold', dark),
                (str(len(year_events)), 'Helvetica', dark),
                (str(len(hail)), 'Helvetica', dark),
                (f'{max(hail):.2f}"' if hail else '-', 'Helvetica', dark),
                (str(sum(1 for size in hail if size >= SEVERE_HAIL_IN)), 'Helvetica', dark),
                (str(sum(1 for e in year_events if not e.is_hail)), 'Helvetica', dark),
            ])
        w.table(
            ['Year', 'Events', 'Hail Events', 'Max Hail', f'Severe ({SEVERE_HAIL_IN:g}"+)', 'Wind/Tornado'],
            [0.14, 0.14, 0.18, 0.16, 0.20, 0.18],
            rows,
        )
        w.move_down(18)

    def _add_evidence(self, w: _PageWriter):
        w.ensure_space(200)
        w.section_header('Evidence for Insurance Claims')
        w.text(content.EVIDENCE_INTRO, size=10)
        w.move_down(5)
        for paragraph in content.EVIDENCE_SOURCES:
            w.text(paragraph, size=10)
            w.move_down(5)
        w.text(content.EVIDENCE_NOTE, size=10)
        w.move_down(12)

        text_width = w.content_width - 20
        lines = simpleSplit(content.DISCLAIMER, 'Helvetica-Oblique', 8, text_width)
        box_height = 16 + 10 * len(lines)
        w.ensure_space(box_height)
        y = w.y
        w.rect(w.left, y, w.content_width, box_height, fill=COLORS['secondary'], fill_alpha=0.05)
        w.rect(w.left, y, w.content_width, box_height, stroke=COLORS['border'])
        for offset, line in enumerate(lines):
            w.text_at(line, w.left + 10, y + 16 + 10 * offset, 'Helvetica-Oblique', 8,
                      COLORS['text_light'])
        w.y = y + box_height + 10

    def _draw_footer(self, c: canvas.Canvas, page_number: int, page_count: int,
                     request: ReportRequest, company: str) -> float:
        """Draw the footer band above the bottom margin; returns its lowest top-down Y."""
        width, height = self.page_size
        left = self.config.margin_left
        right = width - self.config.margin_right
        limit = height - self.config.margin_bottom

        notice_baseline = limit + getDescent('Helvetica-Oblique', 7) - 1
        contact_baseline = notice_baseline - 10
        company_baseline = contact_baseline - 10
        line_y = company_baseline - 11

        c.saveState()
        c.setStrokeColor(COLORS['border'])
        c.setLineWidth(1)
        c.line(left, height - line_y, right, height - line_y)

        c.setFillColor(COLORS['text_light'])
        c.setFont('Helvetica', 8)
        c.drawString(left, height - company_baseline, f"Generated by {company}")
        c.drawRightString(right, height - company_baseline, f"Page {page_number} of {page_count}")
        if request.rep_contact:
            c.drawCentredString((left + right) / 2, height - contact_baseline,
                                " • ".join(request.rep_contact))
        c.setFont('Helvetica-Oblique', 7)
        c.drawCentredString((left + right) / 2, height - notice_baseline, content.CONFIDENTIAL_NOTICE)
        c.restoreState()

        return notice_baseline - getDescent('Helvetica-Oblique', 7)


def _load_image(caption: str, data: bytes) -> Tuple[ImageReader, Tuple[int, int]]:
    """Decode image bytes; undecodable images fail the report."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
        with Image.open(io.BytesIO(data)) as img:
            size = img.size
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise ReportRenderError(f"{caption} image could not be decoded: {e}") from e
    return ImageReader(io.BytesIO(data)), size


def _copy(stream: Iterator[bytes], target: BinaryIO) -> int:
    written = 0
    for chunk in stream:
        target.write(chunk)
        written += len(chunk)
    return written
