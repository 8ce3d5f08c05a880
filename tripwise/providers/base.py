"""
Provider adapter interface.

Each backend (Google, Mapbox, OpenStreetMap) implements the same three
capabilities: ``geocode``, ``route_leg`` (or ``route`` over several
points) and ``optimize_order``. Adapters speak (latitude, longitude) at
their boundary and translate to whatever axis order the vendor expects.

Geocoding is delegated to ``geopy`` geocoders; routing and optimization
are plain HTTP calls through a ``requests.Session``. Encoded polylines are
decoded with the ``polyline`` package.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

import polyline
import requests
from geopy.exc import GeopyError
from geopy.extra.rate_limiter import RateLimiter

from tripwise.config import PlanningConfig
from tripwise.errors import NotFound, OptimizationUnavailable, ProviderError
from tripwise.models import Coordinate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderRoute:
    """Raw route returned by a backend for an ordered list of points.

    ``leg_geometries`` is filled when the backend reports geometry per leg;
    otherwise only the overall ``geometry`` is known.
    """

    leg_durations_s: Tuple[float, ...]
    leg_distances_m: Tuple[float, ...]
    geometry: Tuple[Coordinate, ...]
    leg_geometries: Optional[Tuple[Tuple[Coordinate, ...], ...]] = None


@dataclass(frozen=True)
class ProviderTrip:
    """Optimized visiting order as indices into the submitted points.

    The first and last entries are always ``0`` and ``len(points) - 1``.
    """

    visit_order: Tuple[int, ...]
    duration_s: Optional[float] = None
    distance_m: Optional[float] = None


def decode_polyline(encoded: str, precision: int = 5) -> Tuple[Coordinate, ...]:
    """Decode an encoded polyline into (lat, lng) coordinates."""
    if not encoded:
        return ()
    return tuple(Coordinate(lat, lng) for lat, lng in polyline.decode(encoded, precision))


def visit_order_from_waypoints(waypoints: Sequence[Dict[str, Any]]) -> Tuple[int, ...]:
    """Invert an OSRM-style ``waypoints`` array into a visit order.

    The array is in input order and ``waypoint_index`` is each input's
    position within the trip, so the visit order is the inverse
    permutation.
    """
    if not all(isinstance(wp, dict) for wp in waypoints):
        raise OptimizationUnavailable("Trip waypoints are not objects")
    positions = [wp.get("waypoint_index") for wp in waypoints]
    if sorted(p for p in positions if isinstance(p, int)) != list(range(len(positions))):
        raise OptimizationUnavailable(f"Trip waypoints are not a permutation: {positions}")
    order = [0] * len(positions)
    for input_index, trip_position in enumerate(positions):
        order[trip_position] = input_index
    return tuple(order)


class ProviderAdapter(ABC):
    """Uniform capability set over one geolocation/routing backend."""

    name = ""
    # Whether ``route`` accepts more than two points in one request.
    supports_multipoint = False
    max_route_points = 25
    max_optimize_points = 25
    # Upper bound on simultaneous geocoding requests; None means unbounded.
    geocode_concurrency: Optional[int] = None
    # Minimum seconds between geocoding requests; 0 means no delay.
    geocode_min_delay = 0.0
    # Shown in timeline details, e.g. "(via OpenStreetMap)".
    display_name = ""

    def __init__(
        self,
        config: PlanningConfig,
        session: Optional[requests.Session] = None,
        geocoder: Any = None,
    ) -> None:
        self.config = config
        self.session = session if session is not None else requests.Session()
        self._geocoder = geocoder
        self._geocode_fn: Optional[Callable[..., Any]] = None

    @property
    def geocoder(self) -> Any:
        if self._geocoder is None:
            self._geocoder = self._build_geocoder()
        return self._geocoder

    @property
    def geocode_fn(self) -> Callable[..., Any]:
        """The geocoder's ``geocode``, throttled when ``geocode_min_delay`` is set."""
        if self._geocode_fn is None:
            if self.geocode_min_delay > 0:
                self._geocode_fn = RateLimiter(
                    self.geocoder.geocode,
                    min_delay_seconds=self.geocode_min_delay,
                    max_retries=0,
                    swallow_exceptions=False,
                )
            else:
                self._geocode_fn = self.geocoder.geocode
        return self._geocode_fn

    @abstractmethod
    def _build_geocoder(self) -> Any:
        """Return a geopy geocoder for this backend."""

    def geocode(self, query: str) -> Coordinate:
        """Return the first match for ``query``; raise ``NotFound`` if none."""
        logger.debug(f"[{self.name}] geocoding '{query}'")
        try:
            location = self.geocode_fn(query, exactly_one=True, timeout=self.config.http_timeout)
        except GeopyError as exc:
            raise ProviderError(f"Geocoding failed for '{query}' ({self.name}): {exc}", subject=query) from exc
        if location is None:
            raise NotFound(f"Location not found: {query}", subject=query)
        try:
            return Coordinate(location.latitude, location.longitude)
        except (AttributeError, TypeError, ValueError) as exc:
            raise ProviderError(f"Geocoder returned an invalid location for '{query}': {exc}", subject=query) from exc

    def route_leg(self, origin: Coordinate, destination: Coordinate) -> ProviderRoute:
        return self.route([origin, destination])

    @abstractmethod
    def route(self, points: Sequence[Coordinate]) -> ProviderRoute:
        """Route through ``points`` in order; raise ``NoRoute`` if impossible."""

    def optimize_order(self, points: Sequence[Coordinate]) -> ProviderTrip:
        """Reorder interior points with first and last fixed."""
        raise OptimizationUnavailable(f"{self.name} does not support trip optimization")

    def _get_json(self, url: str, params: Dict[str, Any], subject: Optional[str] = None) -> Dict[str, Any]:
        logger.debug(f"[{self.name}] GET {url}")
        try:
            resp = self.session.get(url, params=params, timeout=self.config.http_timeout)
        except requests.RequestException as exc:
            raise ProviderError(f"{self.name} request failed: {exc}", subject=subject) from exc
        try:
            data = resp.json()
        except ValueError as exc:
            raise ProviderError(
                f"{self.name} returned malformed JSON (HTTP {resp.status_code})", subject=subject
            ) from exc
        if not isinstance(data, dict):
            raise ProviderError(f"{self.name} returned an unexpected payload", subject=subject)
        # OSRM-style services answer routing failures with 4xx plus a ``code``.
        if resp.status_code >= 400 and "code" not in data:
            message = data.get("message") or data.get("error_message") or f"HTTP {resp.status_code}"
            raise ProviderError(f"{self.name} request failed: {message}", subject=subject)
        return data
