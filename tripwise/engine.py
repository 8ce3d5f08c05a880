"""
Journey planning engine.

``plan`` is the single entry point. One call runs, in dependency order:

1. request validation (no network traffic when it fails);
2. flight lookup in flight mode;
3. concurrent geocoding of start, stops and destination;
4. the as-entered route, concurrently with the stop-order optimization,
   followed by the route in the recommended order;
5. timezone lookup for the start and the destination;
6. both timelines.

Fatal failures raise a ``PlanningError``. Optimization problems only
remove (or mark as estimated) the optimized parts of the ``Itinerary``.
Nothing is shared between calls.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Sequence, Tuple

from tripwise.cancellation import CancellationToken
from tripwise.config import PlanningConfig
from tripwise.errors import ConfigurationError, InputError, PlanningCancelled, PlanningError
from tripwise.flights import AviationstackFlightLookup, FlightLookup
from tripwise.geocode import resolve_places
from tripwise.models import (
    Itinerary,
    PlanRequest,
    RouteResult,
    StartMode,
    StopRequest,
    Waypoint,
)
from tripwise.optimisation import optimize_stop_order, reorder_waypoints
from tripwise.providers import get_provider
from tripwise.providers.base import ProviderAdapter
from tripwise.routing import build_route
from tripwise.schedule import TimelineStart, build_optimized_timeline, build_timeline
from tripwise.timezones import TimezoneFinderLookup, TimezoneLookup, get_zone, localize_wall_clock

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def validate_request(request: PlanRequest) -> Tuple[StopRequest, ...]:
    """Check required fields and return the non-blank stops."""
    if not (request.destination or "").strip():
        raise InputError("Please enter a destination.", subject="destination")
    if request.start_mode == StartMode.FLIGHT:
        if not (request.flight_code or "").strip():
            raise InputError("Please enter a flight number.", subject="flight_code")
    elif not (request.start_address or "").strip():
        raise InputError("Please enter a start address.", subject="start_address")
    return request.active_stops()


def _build_optimized_route(
    provider: ProviderAdapter, waypoints: Sequence[Waypoint], token: CancellationToken
) -> Optional[RouteResult]:
    try:
        return build_route(provider, waypoints, token)
    except PlanningCancelled:
        raise
    except PlanningError as exc:
        logger.warning(f"Failed to calculate optimized route legs: {exc}")
        return None


def plan(
    request: PlanRequest,
    config: PlanningConfig,
    *,
    provider: Optional[ProviderAdapter] = None,
    flight_lookup: Optional[FlightLookup] = None,
    timezone_lookup: Optional[TimezoneLookup] = None,
    clock: Optional[Clock] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> Itinerary:
    """Plan one journey.

    Args:
        request: Start, stops, destination and per-run choices.
        config: Credentials and settings for this call.
        provider: Adapter to use instead of the one named by the config.
        flight_lookup: Flight service; AviationStack by default.
        timezone_lookup: Coordinate to zone lookup; timezonefinder by default.
        clock: Current time for address mode departures.
        cancel_token: Cancelling it aborts the run with ``PlanningCancelled``.

    Returns:
        A fresh, immutable ``Itinerary``.

    Raises:
        PlanningError: ``InputError``/``ConfigurationError`` before any
            network call, or ``NotFound``/``NoRoute``/``ProviderError``/
            ``PlanningCancelled`` during the run.
    """
    token = cancel_token or CancellationToken()
    stops = validate_request(request)
    if request.provider:
        config = config.with_provider(request.provider)
    timezone_mode = request.timezone_mode or config.timezone_mode

    if provider is None:
        provider = get_provider(config)
    if request.start_mode == StartMode.FLIGHT and flight_lookup is None:
        if not config.aviationstack_api_key:
            raise ConfigurationError("AviationStack API key is missing.", subject="aviationstack")
        flight_lookup = AviationstackFlightLookup(config.aviationstack_api_key, timeout=config.http_timeout)
    timezone_lookup = timezone_lookup or TimezoneFinderLookup()
    clock = clock or _utc_now

    flight = None
    if request.start_mode == StartMode.FLIGHT:
        token.raise_if_cancelled()
        flight = flight_lookup.lookup(request.flight_code)
        start_query = flight.start_label
    else:
        start_query = request.start_address.strip()

    places = resolve_places(
        provider,
        start_query,
        stops,
        request.destination.strip(),
        cancel_token=token,
        max_workers=config.max_workers,
    )
    points = places.points

    optimized_route = None
    with ThreadPoolExecutor(max_workers=1) as pool:
        route_future = pool.submit(build_route, provider, points, token)
        optimization = optimize_stop_order(provider, points, token)
        if optimization.available:
            optimized_route = _build_optimized_route(provider, reorder_waypoints(points, optimization), token)
        route = route_future.result()

    origin_tz = timezone_lookup.timezone_for(places.start.coordinate)
    destination_tz = timezone_lookup.timezone_for(places.destination.coordinate)

    if flight is not None:
        flight_arrival = localize_wall_clock(flight.arrival_time, destination_tz)
        departure = flight_arrival + timedelta(minutes=config.airport_buffer_minutes)
    else:
        flight_arrival = None
        now = clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        departure = now.astimezone(get_zone(destination_tz))

    start = TimelineStart(
        departure=departure,
        start_label=places.start.label,
        flight=flight,
        flight_arrival=flight_arrival,
        airport_buffer_minutes=config.airport_buffer_minutes,
        provider_name=provider.display_name,
    )
    timeline = build_timeline(start, route)
    optimized_timeline = build_optimized_timeline(
        start, optimization, places.stops, places.destination, route, optimized_route
    )

    itinerary = Itinerary(
        start=places.start,
        destination=places.destination,
        stops=places.stops,
        route=route,
        timeline=timeline,
        origin_timezone=origin_tz,
        destination_timezone=destination_tz,
        optimization=optimization,
        optimized_route=optimized_route,
        optimized_timeline=optimized_timeline,
        flight=flight,
        provider=provider.name,
        timezone_mode=timezone_mode,
    )
    logger.info(
        f"Planned {places.start.label} -> {places.destination.label} via {len(places.stops)} stop(s) "
        f"with {provider.name}: arrival {itinerary.arrival_time.isoformat()}"
    )
    return itinerary
