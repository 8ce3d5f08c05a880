"""
Timeline synthesis for tripwise.

This module turns routed legs into a time-ordered list of events:

    (flight-arrival ->) depart -> (arrive-at-stop -> (leave-stop)?)* -> arrive-at-destination

Leg durations are rounded to whole minutes before they are added. A stop
with a positive buffer gets a ``leave-stop`` event after the buffer; a
stop without one is left as soon as it is reached.

The optimized timeline follows the recommended stop order. When the
optimized route does not cover every leg, the as-entered duration of the
leg that reached the same stop is used instead and the event is marked as
an estimate. A stop with no duration at all is skipped with a warning.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple

from tripwise.errors import PartialTimelineData
from tripwise.models import (
    EventKind,
    FlightInfo,
    Itinerary,
    OptimizationResult,
    RouteLeg,
    RouteResult,
    TimelineEvent,
    Waypoint,
    round_minutes,
)
from tripwise.timezones import format_event_time

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimelineStart:
    """How a timeline begins.

    In flight mode ``flight`` and ``flight_arrival`` are set and
    ``departure`` is the arrival plus the airport buffer.
    ``provider_name`` is appended to a direct trip's destination detail.
    """

    departure: datetime
    start_label: str
    flight: Optional[FlightInfo] = None
    flight_arrival: Optional[datetime] = None
    airport_buffer_minutes: int = 0
    provider_name: str = ""


def opening_events(start: TimelineStart) -> List[TimelineEvent]:
    if start.flight is not None and start.flight_arrival is not None:
        return [
            TimelineEvent(
                timestamp=start.flight_arrival,
                kind=EventKind.FLIGHT_ARRIVAL,
                label=f"Flight Arrives at {start.flight.arrival_iata or start.flight.arrival_airport}",
                detail=f"Flight {start.flight.flight_code} from {start.flight.origin_iata or 'unknown origin'}",
            ),
            TimelineEvent(
                timestamp=start.departure,
                kind=EventKind.DEPART,
                label="Leave Airport",
                detail=f"Includes {start.airport_buffer_minutes} min buffer for deplaning & baggage",
            ),
        ]
    return [
        TimelineEvent(
            timestamp=start.departure,
            kind=EventKind.DEPART,
            label="Depart from Start",
            detail=f"Starting from {start.start_label}",
        )
    ]


def _visit_stop(
    events: List[TimelineEvent],
    current: datetime,
    number: int,
    stop: Waypoint,
    minutes: int,
    estimated: bool = False,
) -> datetime:
    """Append arrive (and leave) events for one stop; return the new time."""
    arrive = current + timedelta(minutes=minutes)
    detail = f"~{minutes} min drive to {stop.label} (estimated)" if estimated else f"{minutes} min drive to {stop.label}"
    events.append(TimelineEvent(arrive, EventKind.ARRIVE_AT_STOP, f"Arrive at Stop {number}", detail, estimated))
    if stop.buffer_minutes > 0:
        leave = arrive + timedelta(minutes=stop.buffer_minutes)
        events.append(
            TimelineEvent(
                leave, EventKind.LEAVE_STOP, f"Leave Stop {number}", f"{stop.buffer_minutes} min buffer at stop"
            )
        )
        return leave
    return arrive


def build_timeline(start: TimelineStart, route: RouteResult) -> Tuple[TimelineEvent, ...]:
    """Timeline for the as-entered order of ``route``."""
    events = opening_events(start)
    current = start.departure
    for number, leg in enumerate(route.legs[:-1], start=1):
        current = _visit_stop(events, current, number, leg.destination, leg.rounded_minutes)

    final = route.legs[-1]
    minutes = final.rounded_minutes
    if len(route.legs) > 1:
        detail = f"{minutes} min drive from last stop to {final.destination.label}"
    else:
        detail = f"{minutes} min drive to {final.destination.label}"
        if start.provider_name:
            detail += f" (via {start.provider_name})"
    events.append(
        TimelineEvent(
            current + timedelta(minutes=minutes), EventKind.ARRIVE_AT_DESTINATION, "Arrive at Destination", detail
        )
    )
    return tuple(events)


def _optimized_leg(legs: Sequence[RouteLeg], index: int) -> RouteLeg:
    if index >= len(legs):
        raise PartialTimelineData(f"Optimized route has no leg {index + 1}")
    return legs[index]


def build_optimized_timeline(
    start: TimelineStart,
    optimization: OptimizationResult,
    stops: Sequence[Waypoint],
    destination: Waypoint,
    as_entered: RouteResult,
    optimized: Optional[RouteResult] = None,
) -> Optional[Tuple[TimelineEvent, ...]]:
    """Timeline for the recommended stop order, or ``None`` without one.

    Args:
        start: Same opening as the as-entered timeline.
        optimization: Recommended order of as-entered stop positions.
        stops: Stops in as-entered order.
        destination: Destination waypoint.
        as_entered: Route in as-entered order, used for estimates.
        optimized: Route in the recommended order, possibly missing.
    """
    if not optimization.available:
        return None
    order = optimization.stop_order
    optimized_legs = optimized.legs if optimized is not None else ()

    events = opening_events(start)
    current = start.departure
    for i, position in enumerate(order):
        stop = stops[position]
        try:
            minutes = _optimized_leg(optimized_legs, i).rounded_minutes
            estimated = False
        except PartialTimelineData as exc:
            fallback = as_entered.legs[position] if position < len(as_entered.legs) else None
            if fallback is None:
                logger.warning(f"{exc}; no duration for '{stop.label}', skipping it in the optimized timeline")
                continue
            logger.warning(f"{exc}; estimating '{stop.label}' from the as-entered route")
            minutes = fallback.rounded_minutes
            estimated = True
        current = _visit_stop(events, current, i + 1, stop, minutes, estimated)

    try:
        minutes = _optimized_leg(optimized_legs, len(order)).rounded_minutes
        detail = f"{minutes} min drive to {destination.label} (Optimized route)"
        estimated = False
    except PartialTimelineData:
        minutes = as_entered.legs[-1].rounded_minutes
        detail = f"~{minutes} min drive to {destination.label} (estimated)"
        estimated = True
    events.append(
        TimelineEvent(
            current + timedelta(minutes=minutes),
            EventKind.ARRIVE_AT_DESTINATION,
            "Arrive at Destination",
            detail,
            estimated,
        )
    )
    return tuple(events)


def _format_duration(minutes: float) -> str:
    total = round_minutes(minutes)
    return f"{total // 60}h {total % 60}m"


def _format_events(events: Sequence[TimelineEvent], tz_name: str) -> List[str]:
    lines = []
    for event in events:
        lines.append(f"{format_event_time(event.timestamp, tz_name):>18}  {event.label}: {event.detail}")
    return lines


def format_itinerary_text(itinerary: Itinerary) -> str:
    """Format an itinerary as plain text for display or messaging."""
    tz_name = itinerary.display_timezone
    lines = ["Your itinerary:", ""]
    lines.extend(_format_events(itinerary.timeline, tz_name))
    lines.append("")
    lines.append(f"Total travel time: {_format_duration(itinerary.route.total_duration_minutes)}")
    lines.append(f"Total distance: {itinerary.route.total_distance_meters / 1000:.1f} km")

    optimization = itinerary.optimization
    if optimization.available:
        lines.append("")
        lines.append(f"Recommended stop order: {' -> '.join(optimization.labels)}")
        if optimization.duration_minutes is not None:
            saving = round_minutes(itinerary.route.total_duration_minutes) - round_minutes(
                optimization.duration_minutes
            )
            change = f"saves {saving} min" if saving > 0 else "no time saved" if saving == 0 else f"adds {-saving} min"
            lines.append(f"Optimized travel time: {_format_duration(optimization.duration_minutes)} ({change})")
        if optimization.distance_meters is not None:
            lines.append(f"Optimized distance: {optimization.distance_meters / 1000:.1f} km")
        if itinerary.optimized_timeline:
            lines.append("")
            lines.append("Optimized timeline:")
            lines.extend(_format_events(itinerary.optimized_timeline, tz_name))
    return "\n".join(lines)
