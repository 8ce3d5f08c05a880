"""
Timezone helpers for tripwise.

Coordinates are mapped to IANA zone names offline with ``timezonefinder``;
anything it cannot resolve falls back to ``"UTC"``. Timestamps are
localised with ``zoneinfo``.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Optional, Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from timezonefinder import TimezoneFinder

from tripwise.errors import ProviderError
from tripwise.models import Coordinate

logger = logging.getLogger(__name__)

FALLBACK_TIMEZONE = "UTC"
_OFFSET_SUFFIX = re.compile(r"([+-]\d{2}:?\d{2}|Z)$")


class TimezoneLookup(Protocol):
    def timezone_for(self, coordinate: Coordinate) -> str:
        ...


class TimezoneFinderLookup:
    """Offline coordinate to zone lookup. The finder is loaded on first use."""

    def __init__(self, finder: Optional[TimezoneFinder] = None) -> None:
        self._finder = finder

    @property
    def finder(self) -> TimezoneFinder:
        if self._finder is None:
            self._finder = TimezoneFinder()
        return self._finder

    def timezone_for(self, coordinate: Coordinate) -> str:
        name = self.finder.timezone_at(lng=coordinate.longitude, lat=coordinate.latitude)
        if not name:
            logger.warning(f"No timezone for {coordinate.latlng()}, using {FALLBACK_TIMEZONE}")
            return FALLBACK_TIMEZONE
        return name


def get_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone '{name}', using {FALLBACK_TIMEZONE}")
        return ZoneInfo(FALLBACK_TIMEZONE)


def localize_wall_clock(text: str, tz_name: str) -> datetime:
    """Read an ISO timestamp as local wall-clock time in ``tz_name``.

    Any trailing UTC offset or ``Z`` is dropped first: flight data already
    reports local times and only labels them as UTC.
    """
    cleaned = _OFFSET_SUFFIX.sub("", text.strip())
    try:
        naive = datetime.fromisoformat(cleaned)
    except ValueError as exc:
        raise ProviderError(f"Unreadable arrival time '{text}'", subject=text) from exc
    return naive.replace(tzinfo=get_zone(tz_name))


def format_event_time(timestamp: datetime, tz_name: str) -> str:
    """Format as ``h:mm AM (TZ)`` in ``tz_name``."""
    local = timestamp.astimezone(get_zone(tz_name))
    hour = local.hour % 12 or 12
    return f"{hour}:{local:%M %p} ({local.tzname()})"
