"""
Command line interface for tripwise.

    python -m tripwise --from "Tokyo Station" --stop "Tokyo Tower@30" --to "Haneda Airport"
    python -m tripwise --flight NH105 --to "Santa Monica Pier" --provider osm --json

Credentials are read from the environment (or a ``.env`` file), see
``tripwise.config``.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from tripwise.config import PROVIDERS, PlanningConfig
from tripwise.engine import plan
from tripwise.errors import PlanningError
from tripwise.models import PlanRequest, StartMode, StopRequest, TimezoneMode
from tripwise.schedule import format_itinerary_text
from tripwise.visualisation import create_folium_map


def parse_stop(text: str) -> StopRequest:
    """Parse ``NAME`` or ``NAME@MINUTES`` into a stop with a buffer."""
    name, sep, buffer = text.rpartition("@")
    if sep and buffer.strip().isdigit():
        return StopRequest(name.strip(), int(buffer))
    return StopRequest(text.strip())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tripwise", description="Plan a multi-stop driving journey.")
    start = parser.add_mutually_exclusive_group(required=True)
    start.add_argument("--from", dest="start_address", help="Start address")
    start.add_argument("--flight", dest="flight_code", help="Arriving flight number, e.g. NH105")
    parser.add_argument("--to", dest="destination", required=True, help="Destination address")
    parser.add_argument(
        "--stop",
        dest="stops",
        action="append",
        default=[],
        type=parse_stop,
        help="Intermediate stop, optionally NAME@BUFFER_MINUTES; repeat for more stops",
    )
    parser.add_argument("--provider", choices=PROVIDERS, help="Geocoding and routing backend")
    parser.add_argument(
        "--timezone-mode",
        choices=[mode.value for mode in TimezoneMode],
        help="Show times in the origin or destination timezone",
    )
    parser.add_argument("--json", action="store_true", help="Print the itinerary as JSON")
    parser.add_argument("--map", dest="map_file", help="Write an HTML map of the routes to this file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    request = PlanRequest(
        destination=args.destination,
        start_mode=StartMode.FLIGHT if args.flight_code else StartMode.ADDRESS,
        start_address=args.start_address,
        flight_code=args.flight_code,
        stops=tuple(args.stops),
        provider=args.provider,
        timezone_mode=TimezoneMode(args.timezone_mode) if args.timezone_mode else None,
    )
    try:
        config = PlanningConfig.from_env()
        itinerary = plan(request, config)
    except PlanningError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(itinerary.to_dict(), indent=2))
    else:
        print(format_itinerary_text(itinerary))
    if args.map_file:
        create_folium_map(itinerary).save(args.map_file)
    return 0


if __name__ == "__main__":
    sys.exit(main())
