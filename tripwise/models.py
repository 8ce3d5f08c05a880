"""
Data model for tripwise.

Every object here is created fresh for one planning run and is frozen
after construction. Coordinates are always (latitude, longitude) at this
level; provider-specific axis orders never leak past the adapters.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Tuple


def round_minutes(value: float) -> int:
    """Round a minute count to the nearest integer, halves rounding up."""
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"longitude out of range: {self.longitude}")

    def as_tuple(self) -> Tuple[float, float]:
        return self.latitude, self.longitude

    def latlng(self) -> str:
        """Comma separated ``lat,lng`` as used by Google."""
        return f"{self.latitude},{self.longitude}"

    def lnglat(self) -> str:
        """Comma separated ``lng,lat`` as used by Mapbox and OSRM."""
        return f"{self.longitude},{self.latitude}"


class Role(str, Enum):
    START = "start"
    STOP = "stop"
    DESTINATION = "destination"


class StartMode(str, Enum):
    ADDRESS = "address"
    FLIGHT = "flight"


class TimezoneMode(str, Enum):
    ORIGIN = "origin"
    DESTINATION = "destination"


class EventKind(str, Enum):
    FLIGHT_ARRIVAL = "flight-arrival"
    DEPART = "depart"
    ARRIVE_AT_STOP = "arrive-at-stop"
    LEAVE_STOP = "leave-stop"
    ARRIVE_AT_DESTINATION = "arrive-at-destination"


@dataclass(frozen=True)
class Waypoint:
    """A geocoded point of the journey.

    ``position`` is the stop's index in the as-entered order and stays
    attached to the stop when it is reordered; it is ``None`` for the
    start and the destination.
    """

    coordinate: Coordinate
    label: str
    role: Role
    position: Optional[int] = None
    buffer_minutes: int = 0


@dataclass(frozen=True)
class StopRequest:
    query: str
    buffer_minutes: int = 0


@dataclass(frozen=True)
class PlanRequest:
    """Everything a caller supplies for one planning run."""

    destination: str
    start_mode: StartMode = StartMode.ADDRESS
    start_address: Optional[str] = None
    flight_code: Optional[str] = None
    stops: Tuple[StopRequest, ...] = ()
    provider: Optional[str] = None
    timezone_mode: Optional[TimezoneMode] = None

    def active_stops(self) -> Tuple[StopRequest, ...]:
        """Stops with a non-blank query, each keeping its own buffer."""
        return tuple(
            StopRequest(stop.query.strip(), max(int(stop.buffer_minutes or 0), 0))
            for stop in self.stops
            if stop.query and stop.query.strip()
        )


@dataclass(frozen=True)
class FlightInfo:
    flight_code: str
    arrival_airport: str
    arrival_iata: str
    arrival_time: str
    origin_iata: str

    @property
    def start_label(self) -> str:
        if not self.arrival_iata:
            return self.arrival_airport
        return f"{self.arrival_airport} ({self.arrival_iata})"


@dataclass(frozen=True)
class RouteLeg:
    origin: Waypoint
    destination: Waypoint
    duration_minutes: float
    distance_meters: float
    geometry: Tuple[Coordinate, ...] = ()

    @property
    def rounded_minutes(self) -> int:
        return round_minutes(self.duration_minutes)


@dataclass(frozen=True)
class RouteResult:
    legs: Tuple[RouteLeg, ...]
    total_duration_minutes: float
    total_distance_meters: float
    geometry: Tuple[Coordinate, ...]

    @classmethod
    def from_legs(cls, legs: Sequence[RouteLeg], geometry: Sequence[Coordinate]) -> "RouteResult":
        """Build a result whose totals are the sums of its legs."""
        legs = tuple(legs)
        return cls(
            legs=legs,
            total_duration_minutes=sum(leg.duration_minutes for leg in legs),
            total_distance_meters=sum(leg.distance_meters for leg in legs),
            geometry=tuple(geometry),
        )

    @property
    def waypoints(self) -> Tuple[Waypoint, ...]:
        if not self.legs:
            return ()
        return (self.legs[0].origin,) + tuple(leg.destination for leg in self.legs)


@dataclass(frozen=True)
class OptimizationResult:
    """Recommended stop order, or nothing when optimization is unavailable.

    ``stop_order`` holds as-entered stop positions in recommended visiting
    order; ``labels`` holds the matching stop labels.
    """

    stop_order: Optional[Tuple[int, ...]] = None
    labels: Optional[Tuple[str, ...]] = None
    duration_minutes: Optional[float] = None
    distance_meters: Optional[float] = None

    @property
    def available(self) -> bool:
        return bool(self.stop_order)


@dataclass(frozen=True)
class TimelineEvent:
    timestamp: datetime
    kind: EventKind
    label: str
    detail: str
    estimated: bool = False


@dataclass(frozen=True)
class Itinerary:
    """Terminal output of one planning run."""

    start: Waypoint
    destination: Waypoint
    stops: Tuple[Waypoint, ...]
    route: RouteResult
    timeline: Tuple[TimelineEvent, ...]
    origin_timezone: str
    destination_timezone: str
    optimization: OptimizationResult = field(default_factory=OptimizationResult)
    optimized_route: Optional[RouteResult] = None
    optimized_timeline: Optional[Tuple[TimelineEvent, ...]] = None
    flight: Optional[FlightInfo] = None
    provider: str = ""
    timezone_mode: TimezoneMode = TimezoneMode.DESTINATION

    @property
    def arrival_time(self) -> datetime:
        return self.timeline[-1].timestamp

    @property
    def display_timezone(self) -> str:
        if self.timezone_mode == TimezoneMode.ORIGIN:
            return self.origin_timezone
        return self.destination_timezone

    def to_dict(self) -> Dict[str, Any]:
        """Plain JSON-compatible representation."""
        return _jsonable(asdict(self))


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return value
