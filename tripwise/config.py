"""Configuration for planning runs.

A ``PlanningConfig`` is an immutable value passed into every ``plan``
call. ``PlanningConfig.from_env`` builds one from environment variables,
reading a ``.env`` file first when present.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

from dotenv import load_dotenv

from tripwise.errors import ConfigurationError, InputError
from tripwise.models import TimezoneMode

PROVIDERS = ("google", "mapbox", "osm")
DEFAULT_PROVIDER = "google"
DEFAULT_OSRM_URL = "https://router.project-osrm.org"
DEFAULT_USER_AGENT = "tripwise/0.1"
AIRPORT_BUFFER_MINUTES = 45


@dataclass(frozen=True)
class PlanningConfig:
    provider: str = DEFAULT_PROVIDER
    google_maps_api_key: str = ""
    mapbox_access_token: str = ""
    aviationstack_api_key: str = ""
    nominatim_user_agent: str = DEFAULT_USER_AGENT
    osrm_base_url: str = DEFAULT_OSRM_URL
    http_timeout: float = 30.0
    airport_buffer_minutes: int = AIRPORT_BUFFER_MINUTES
    max_workers: int = 8
    timezone_mode: TimezoneMode = TimezoneMode.DESTINATION

    def __post_init__(self) -> None:
        if self.provider not in PROVIDERS:
            raise InputError(
                f"Unknown provider '{self.provider}'. Choose one of: {', '.join(PROVIDERS)}",
                subject=self.provider,
            )
        if self.max_workers < 1:
            raise InputError("max_workers must be at least 1")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PlanningConfig":
        """Build a config from ``environ`` (defaults to ``os.environ``)."""
        if environ is None:
            load_dotenv()
            environ = os.environ
        try:
            http_timeout = float(environ.get("TRIPWISE_HTTP_TIMEOUT", "30"))
            airport_buffer = int(environ.get("TRIPWISE_AIRPORT_BUFFER_MINUTES", str(AIRPORT_BUFFER_MINUTES)))
            max_workers = int(environ.get("TRIPWISE_MAX_WORKERS", "8"))
            timezone_mode = TimezoneMode(
                environ.get("TRIPWISE_TIMEZONE_MODE", TimezoneMode.DESTINATION.value).strip().lower()
            )
        except ValueError as exc:
            raise InputError(f"Invalid tripwise setting: {exc}") from exc
        return cls(
            provider=environ.get("TRIPWISE_PROVIDER", DEFAULT_PROVIDER).strip().lower(),
            google_maps_api_key=environ.get("GOOGLE_MAPS_API_KEY", ""),
            mapbox_access_token=environ.get("MAPBOX_ACCESS_TOKEN", ""),
            aviationstack_api_key=environ.get("AVIATIONSTACK_API_KEY", ""),
            nominatim_user_agent=environ.get("NOMINATIM_USER_AGENT", DEFAULT_USER_AGENT),
            osrm_base_url=environ.get("OSRM_BASE_URL", DEFAULT_OSRM_URL).rstrip("/"),
            http_timeout=http_timeout,
            airport_buffer_minutes=airport_buffer,
            max_workers=max_workers,
            timezone_mode=timezone_mode,
        )

    def with_provider(self, provider: str) -> "PlanningConfig":
        return replace(self, provider=provider.strip().lower())

    def require_provider_credentials(self) -> None:
        """Raise ``ConfigurationError`` if the selected provider lacks a key."""
        if self.provider == "google" and not self.google_maps_api_key:
            raise ConfigurationError("Google Maps API key is missing.", subject="google")
        if self.provider == "mapbox" and not self.mapbox_access_token:
            raise ConfigurationError("Mapbox Access Token is missing.", subject="mapbox")
