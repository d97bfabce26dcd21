#!/usr/bin/env python3
"""
Storm Intel command line.

    storm-intel score property.json --as-of 2024-06-01
    storm-intel report property.json -o report.pdf --fetch-map
"""

import argparse
import datetime
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import get_config
from .damage_score import DamageScoreService
from .geo import filter_by_distance
from .map_images import MapImageService
from .models import InvalidInputError, ReportRenderError, ReportRequest, WeatherEvent, require_finite
from .pdf_report import PDFReportService

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INVALID_INPUT = 2

DEFAULT_RADIUS_MILES = 15.0


def setup_logging(level: str = 'INFO', log_file: Optional[Path] = None):
    """Configure root logging once for the process."""
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True,
    )


def _iso_date(value: str) -> datetime.date:
    try:
        return datetime.date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an ISO date: {value!r}") from None


def load_property_input(path: Path) -> Dict[str, Any]:
    """Read a property JSON file (address, lat, lng, radius, events, noaaEvents, rep fields)."""
    try:
        with open(path, 'r') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise InvalidInputError(f"{path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise InvalidInputError(f"{path} must contain a JSON object")
    for key in ('lat', 'lng'):
        if key not in data:
            raise InvalidInputError(f"{path} is missing '{key}'")
    return data


def _events(data: Dict[str, Any], key: str, factory) -> List[WeatherEvent]:
    records = data.get(key) or []
    if not isinstance(records, list):
        raise InvalidInputError(f"'{key}' must be a list")
    for record in records:
        if not isinstance(record, dict):
            raise InvalidInputError(f"'{key}' entries must be objects")
    return [factory(record) for record in records]


def _events_in_radius(data: Dict[str, Any]):
    radius = require_finite("radius", data.get("radius", DEFAULT_RADIUS_MILES))
    lat, lng = data['lat'], data['lng']
    events = filter_by_distance(_events(data, 'events', WeatherEvent.from_ihm), lat, lng, radius)
    noaa_events = filter_by_distance(_events(data, 'noaaEvents', WeatherEvent.from_noaa), lat, lng, radius)
    return radius, events, noaa_events


def cmd_score(args: argparse.Namespace) -> int:
    data = load_property_input(args.input)
    _, events, noaa_events = _events_in_radius(data)
    result = DamageScoreService().calculate_damage_score(
        data['lat'], data['lng'], events, noaa_events, as_of=args.as_of
    )
    json.dump(result.to_dict(), sys.stdout, indent=2)
    sys.stdout.write('\n')
    return EXIT_OK


def cmd_report(args: argparse.Namespace) -> int:
    data = load_property_input(args.input)
    radius, events, noaa_events = _events_in_radius(data)
    score = DamageScoreService().calculate_damage_score(
        data['lat'], data['lng'], events, noaa_events, as_of=args.as_of
    )
    logger.info(f"Damage score {score.score} ({score.risk_level.label}) for {data.get('address')}")

    map_image = args.map_image.read_bytes() if args.map_image else None
    radar_image = args.radar_image.read_bytes() if args.radar_image else None
    if map_image is None and args.fetch_map:
        service = MapImageService()
        try:
            map_image = service.fetch_map_image(data['lat'], data['lng'])
        finally:
            service.close()

    request = ReportRequest(
        address=data.get('address') or '',
        latitude=data['lat'],
        longitude=data['lng'],
        radius_miles=radius,
        damage_score=score,
        events=events,
        noaa_events=noaa_events,
        rep_name=data.get('repName'),
        rep_phone=data.get('repPhone'),
        rep_email=data.get('repEmail'),
        company_name=data.get('companyName'),
        map_image=map_image,
        radar_image=radar_image,
    )
    written = PDFReportService().write_report(request, args.output)
    logger.info(f"Report saved to {args.output} ({written} bytes)")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='storm-intel', description='Storm damage scoring and PDF reports')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable verbose logging')
    parser.add_argument('--log-file', type=Path, help='Also write logs to this file')
    subparsers = parser.add_subparsers(dest='command', required=True)

    score = subparsers.add_parser('score', help='Print the damage score as JSON')
    score.add_argument('input', type=Path, help='Property JSON file')
    score.add_argument('--as-of', type=_iso_date, help='Reference date for recency (default: today)')
    score.set_defaults(func=cmd_score)

    report = subparsers.add_parser('report', help='Generate a PDF storm damage report')
    report.add_argument('input', type=Path, help='Property JSON file')
    report.add_argument('-o', '--output', type=Path, required=True, help='Output PDF path')
    report.add_argument('--as-of', type=_iso_date, help='Reference date for recency (default: today)')
    report.add_argument('--fetch-map', action='store_true', help='Fetch a static map image for the property')
    report.add_argument('--map-image', type=Path, help='Map image file to embed')
    report.add_argument('--radar-image', type=Path, help='Radar image file to embed')
    report.set_defaults(func=cmd_report)
    return parser


def main(argv=None) -> int:
    """Main entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = get_config()
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return EXIT_INVALID_INPUT

    setup_logging('DEBUG' if args.verbose or config.debug else config.log_level,
                  args.log_file or config.log_file)

    try:
        return args.func(args)
    except InvalidInputError as e:
        logger.error(f"Invalid input: {e}")
        return EXIT_INVALID_INPUT
    except (ReportRenderError, OSError) as e:
        logger.error(f"{args.command} failed: {e}")
        return EXIT_FAILURE


if __name__ == '__main__':
    sys.exit(main())
