"""Google Maps backend: GoogleV3 geocoding and the Directions API."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence, Tuple

from geopy.geocoders import GoogleV3

from tripwise.errors import NoRoute, OptimizationUnavailable, ProviderError
from tripwise.models import Coordinate
from tripwise.providers.base import ProviderAdapter, ProviderRoute, ProviderTrip, decode_polyline

logger = logging.getLogger(__name__)

DIRECTIONS_URL = "https://maps.googleapis.com/maps/api/directions/json"
_NO_ROUTE_STATUSES = ("ZERO_RESULTS", "NOT_FOUND")


class GoogleAdapter(ProviderAdapter):
    name = "google"
    display_name = "Google Maps"
    supports_multipoint = True
    # origin + destination + 23 waypoints
    max_route_points = 25
    max_optimize_points = 25

    def _build_geocoder(self) -> GoogleV3:
        return GoogleV3(api_key=self.config.google_maps_api_key)

    def _directions(self, points: Sequence[Coordinate], optimize: bool = False) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "origin": points[0].latlng(),
            "destination": points[-1].latlng(),
            "key": self.config.google_maps_api_key,
            "departure_time": "now",
        }
        interior = [p.latlng() for p in points[1:-1]]
        if interior:
            prefix = ["optimize:true"] if optimize else []
            params["waypoints"] = "|".join(prefix + interior)
        return self._get_json(DIRECTIONS_URL, params)

    def route(self, points: Sequence[Coordinate]) -> ProviderRoute:
        data = self._directions(points)
        status = data.get("status")
        if status in _NO_ROUTE_STATUSES or (status == "OK" and not data.get("routes")):
            raise NoRoute(f"No route found between {points[0].latlng()} and {points[-1].latlng()} (Google)")
        if status != "OK":
            raise ProviderError(f"Google Directions error: {data.get('error_message') or status}")

        route = data["routes"][0]
        if not isinstance(route, dict):
            raise ProviderError(f"Malformed Google Directions response: {route!r}")
        legs = route.get("legs") or []
        if len(legs) != len(points) - 1:
            raise ProviderError(f"Google returned {len(legs)} legs for {len(points)} points")
        try:
            return ProviderRoute(
                leg_durations_s=tuple(float(leg["duration"]["value"]) for leg in legs),
                leg_distances_m=tuple(float(leg["distance"]["value"]) for leg in legs),
                geometry=decode_polyline((route.get("overview_polyline") or {}).get("points", "")),
                leg_geometries=_leg_geometries(legs),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ProviderError(f"Malformed Google Directions response: {exc}") from exc

    def optimize_order(self, points: Sequence[Coordinate]) -> ProviderTrip:
        if len(points) > self.max_optimize_points:
            raise OptimizationUnavailable(f"Google optimizes at most {self.max_optimize_points} points")
        try:
            data = self._directions(points, optimize=True)
        except ProviderError as exc:
            raise OptimizationUnavailable(f"Google optimization failed: {exc}") from exc
        if data.get("status") != "OK" or not data.get("routes"):
            raise OptimizationUnavailable(f"Google optimization failed: {data.get('status')}")

        route = data["routes"][0]
        if not isinstance(route, dict):
            raise OptimizationUnavailable("Malformed Google optimization response")
        waypoint_order = route.get("waypoint_order") or []
        legs = route.get("legs") or []
        try:
            duration = sum(float(leg["duration"]["value"]) for leg in legs)
            distance = sum(float(leg["distance"]["value"]) for leg in legs)
            visit_order = (0,) + tuple(int(i) + 1 for i in waypoint_order) + (len(points) - 1,)
        except (KeyError, TypeError, ValueError) as exc:
            raise OptimizationUnavailable(f"Malformed Google optimization response: {exc}") from exc
        logger.debug(f"[google] waypoint_order={waypoint_order}")
        return ProviderTrip(visit_order=visit_order, duration_s=duration, distance_m=distance)


def _leg_geometries(legs: List[Dict[str, Any]]):
    """Per-leg geometry from step polylines, or ``None`` if steps are absent."""
    result: List[Tuple[Coordinate, ...]] = []
    for leg in legs:
        steps = leg.get("steps")
        if not steps:
            return None
        coords: List[Coordinate] = []
        for step in steps:
            segment = decode_polyline((step.get("polyline") or {}).get("points", ""))
            # consecutive steps share their boundary vertex
            if coords and segment and coords[-1] == segment[0]:
                segment = segment[1:]
            coords.extend(segment)
        result.append(tuple(coords))
    return tuple(result)
