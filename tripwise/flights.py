"""Flight lookup via the AviationStack flights API."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

import requests

from tripwise.errors import FlightNotFound, InputError, ProviderError
from tripwise.models import FlightInfo

logger = logging.getLogger(__name__)

# The free plan only serves plain HTTP.
AVIATIONSTACK_URL = "http://api.aviationstack.com/v1/flights"


class FlightLookup(Protocol):
    def lookup(self, flight_code: str) -> FlightInfo:
        ...


def normalize_flight_code(flight_code: str) -> str:
    return "".join(flight_code.split()).upper()


class AviationstackFlightLookup:
    def __init__(
        self,
        access_key: str,
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
    ) -> None:
        self.access_key = access_key.strip()
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout

    def lookup(self, flight_code: str) -> FlightInfo:
        """Return the arrival details of the first flight matching ``flight_code``."""
        code = normalize_flight_code(flight_code)
        if not code:
            raise InputError("Flight number is required.", subject=flight_code)

        logger.debug(f"Looking up flight {code}")
        try:
            resp = self.session.get(
                AVIATIONSTACK_URL,
                params={"access_key": self.access_key, "flight_iata": code},
                timeout=self.timeout,
            )
            payload = resp.json()
        except requests.RequestException as exc:
            raise ProviderError(f"Failed to fetch flight data: {exc}", subject=code) from exc
        except ValueError as exc:
            raise ProviderError("Flight service returned malformed JSON", subject=code) from exc

        if isinstance(payload, dict) and payload.get("error"):
            error = payload["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise ProviderError(f"Failed to fetch flight data: {message}", subject=code)

        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, list) or not data:
            raise FlightNotFound("Flight not found. Please check the flight number.", subject=code)
        return _flight_info(code, data[0])


def _flight_info(code: str, record: Dict[str, Any]) -> FlightInfo:
    arrival = record.get("arrival") or {}
    departure = record.get("departure") or {}
    airport = arrival.get("airport")
    arrival_time = arrival.get("estimated") or arrival.get("scheduled")
    if not airport or not arrival_time:
        raise FlightNotFound(f"Flight {code} has no arrival airport or time.", subject=code)
    return FlightInfo(
        flight_code=(record.get("flight") or {}).get("iata") or code,
        arrival_airport=airport,
        arrival_iata=arrival.get("iata") or "",
        arrival_time=arrival_time,
        origin_iata=departure.get("iata") or "",
    )
