"""Mapbox backend: MapBox geocoding, Directions v5 and Optimized Trips v1."""

from __future__ import annotations

from typing import Any, Dict, Sequence

from geopy.geocoders import MapBox

from tripwise.models import Coordinate
from tripwise.providers.osm import OsrmAdapter, coordinate_path

API_URL = "https://api.mapbox.com"
PROFILE = "mapbox/driving-traffic"


class MapboxAdapter(OsrmAdapter):
    name = "mapbox"
    display_name = "Mapbox"
    supports_multipoint = True
    max_route_points = 25
    max_optimize_points = 12
    geocode_concurrency = None
    geocode_min_delay = 0.0

    def _build_geocoder(self) -> MapBox:
        return MapBox(api_key=self.config.mapbox_access_token)

    def _route_url(self, points: Sequence[Coordinate]) -> str:
        return f"{API_URL}/directions/v5/{PROFILE}/{coordinate_path(points)}"

    def _trip_url(self, points: Sequence[Coordinate]) -> str:
        return f"{API_URL}/optimized-trips/v1/{PROFILE}/{coordinate_path(points)}"

    def _auth_params(self) -> Dict[str, Any]:
        return {"access_token": self.config.mapbox_access_token}
