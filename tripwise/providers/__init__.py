"""
Provider adapters for tripwise.

    base    – Adapter interface, raw route/trip results and shared helpers.
    google  – Google Maps geocoding and Directions.
    mapbox  – Mapbox geocoding, Directions and Optimized Trips.
    osm     – Nominatim geocoding with OSRM routing and trips.

``get_provider`` picks the adapter once per run from the configuration.
"""

from __future__ import annotations

from typing import Any, Optional

import requests

from tripwise.config import PlanningConfig
from tripwise.errors import InputError
from tripwise.providers.base import ProviderAdapter, ProviderRoute, ProviderTrip
from tripwise.providers.google import GoogleAdapter
from tripwise.providers.mapbox import MapboxAdapter
from tripwise.providers.osm import OsrmAdapter

ADAPTERS = {
    "google": GoogleAdapter,
    "mapbox": MapboxAdapter,
    "osm": OsrmAdapter,
}


def get_provider(
    config: PlanningConfig,
    session: Optional[requests.Session] = None,
    geocoder: Any = None,
) -> ProviderAdapter:
    """Instantiate the adapter selected by ``config.provider``."""
    try:
        adapter_cls = ADAPTERS[config.provider]
    except KeyError:
        raise InputError(f"Unknown provider '{config.provider}'", subject=config.provider) from None
    config.require_provider_credentials()
    return adapter_cls(config, session=session, geocoder=geocoder)


__all__ = [
    "ADAPTERS",
    "GoogleAdapter",
    "MapboxAdapter",
    "OsrmAdapter",
    "ProviderAdapter",
    "ProviderRoute",
    "ProviderTrip",
    "get_provider",
]
