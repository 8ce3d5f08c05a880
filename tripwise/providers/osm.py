"""OpenStreetMap backend: Nominatim geocoding and OSRM routing/trips.

``OsrmAdapter`` also carries the response handling shared with Mapbox,
whose Directions and Optimized Trips APIs use the OSRM response format.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Sequence

from geopy.geocoders import Nominatim

from tripwise.errors import NoRoute, OptimizationUnavailable, ProviderError
from tripwise.models import Coordinate
from tripwise.providers.base import (
    ProviderAdapter,
    ProviderRoute,
    ProviderTrip,
    decode_polyline,
    visit_order_from_waypoints,
)

logger = logging.getLogger(__name__)

_NO_ROUTE_CODES = ("NoRoute", "NoSegment", "NoTrips")


def coordinate_path(points: Sequence[Coordinate]) -> str:
    # OSRM expects lon,lat order and semicolon separated list
    return ";".join(p.lnglat() for p in points)


class OsrmAdapter(ProviderAdapter):
    name = "osm"
    display_name = "OpenStreetMap"
    # The public demo server is queried one leg at a time.
    supports_multipoint = False
    max_route_points = 100
    max_optimize_points = 100
    # Nominatim allows one request per second per client.
    geocode_concurrency = 1
    geocode_min_delay = 1.0

    def _build_geocoder(self) -> Nominatim:
        # Nominatim's usage policy requires an identifying user agent.
        return Nominatim(user_agent=self.config.nominatim_user_agent)

    def _route_url(self, points: Sequence[Coordinate]) -> str:
        return f"{self.config.osrm_base_url}/route/v1/driving/{coordinate_path(points)}"

    def _trip_url(self, points: Sequence[Coordinate]) -> str:
        return f"{self.config.osrm_base_url}/trip/v1/driving/{coordinate_path(points)}"

    def _auth_params(self) -> Dict[str, Any]:
        return {}

    def route(self, points: Sequence[Coordinate]) -> ProviderRoute:
        params = {"overview": "full", "geometries": "polyline", **self._auth_params()}
        data = self._get_json(self._route_url(points), params)
        code = data.get("code")
        if code in _NO_ROUTE_CODES or (code == "Ok" and not data.get("routes")):
            raise NoRoute(
                f"No route found between {points[0].latlng()} and {points[-1].latlng()} ({self.name})"
            )
        if code != "Ok":
            raise ProviderError(f"{self.name} routing error: {data.get('message') or code}")

        route = data["routes"][0]
        if not isinstance(route, dict):
            raise ProviderError(f"Malformed {self.name} route response: {route!r}")
        legs = route.get("legs") or []
        if len(legs) != len(points) - 1:
            raise ProviderError(f"{self.name} returned {len(legs)} legs for {len(points)} points")
        try:
            return ProviderRoute(
                leg_durations_s=tuple(float(leg["duration"]) for leg in legs),
                leg_distances_m=tuple(float(leg["distance"]) for leg in legs),
                geometry=decode_polyline(route.get("geometry") or ""),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ProviderError(f"Malformed {self.name} route response: {exc}") from exc

    def optimize_order(self, points: Sequence[Coordinate]) -> ProviderTrip:
        if len(points) > self.max_optimize_points:
            raise OptimizationUnavailable(f"{self.name} optimizes at most {self.max_optimize_points} points")
        params = {
            "source": "first",
            "destination": "last",
            "roundtrip": "false",
            "overview": "false",
            **self._auth_params(),
        }
        try:
            data = self._get_json(self._trip_url(points), params)
        except ProviderError as exc:
            raise OptimizationUnavailable(f"{self.name} trip request failed: {exc}") from exc
        if data.get("code") != "Ok" or not data.get("trips"):
            raise OptimizationUnavailable(f"No optimized trip found ({self.name}): {data.get('code')}")

        trip = data["trips"][0]
        waypoints = data.get("waypoints") or []
        if not isinstance(trip, dict) or not isinstance(waypoints, list):
            raise OptimizationUnavailable(f"Malformed {self.name} trip response")
        if len(waypoints) != len(points):
            raise OptimizationUnavailable(
                f"{self.name} returned {len(waypoints)} trip waypoints for {len(points)} points"
            )
        visit_order = visit_order_from_waypoints(waypoints)
        logger.debug(f"[{self.name}] trip visit order {visit_order}")
        return ProviderTrip(
            visit_order=visit_order,
            duration_s=trip.get("duration"),
            distance_m=trip.get("distance"),
        )
