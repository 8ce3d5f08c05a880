"""Offline stand-ins for vendor services used across the tests."""

from types import SimpleNamespace

from tripwise.config import PlanningConfig
from tripwise.errors import NoRoute, OptimizationUnavailable
from tripwise.models import Coordinate
from tripwise.providers.base import ProviderAdapter, ProviderRoute


class FakeGeocoder:
    """Mimics a geopy geocoder over a fixed query -> (lat, lng) table."""

    def __init__(self, places, error=None):
        self.places = places
        self.error = error
        self.queries = []

    def geocode(self, query, exactly_one=True, timeout=None):
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        if query not in self.places:
            return None
        lat, lng = self.places[query]
        return SimpleNamespace(latitude=lat, longitude=lng, address=query)


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class FakeSession:
    """Returns queued responses in order and records each request."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, dict(params or {})))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class RoutingSession:
    """Answers each request with the payload whose key occurs in the URL."""

    def __init__(self, payloads):
        self.payloads = payloads
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, dict(params or {})))
        for fragment, payload in self.payloads.items():
            if fragment in url:
                return FakeResponse(payload)
        raise AssertionError(f"unexpected request to {url}")


class ScriptedProvider(ProviderAdapter):
    """Provider whose geocoding, leg durations and trip are scripted.

    Leg durations are given in minutes per (from, to) place name; the leg
    distance is 1 km per minute.
    """

    name = "scripted"

    def __init__(self, places, leg_minutes=None, default_minutes=10, trip=None,
                 trip_error=None, no_route=(), multipoint=False):
        super().__init__(PlanningConfig(provider="osm"), session=FakeSession(),
                         geocoder=FakeGeocoder(places))
        self.names = {Coordinate(*coord): name for name, coord in places.items()}
        self.leg_minutes = dict(leg_minutes or {})
        self.default_minutes = default_minutes
        self.trip = trip
        self.trip_error = trip_error
        self.no_route = set(no_route)
        self.supports_multipoint = multipoint
        self.route_calls = []
        self.optimize_calls = 0

    def _build_geocoder(self):
        return self._geocoder

    def route(self, points):
        names = [self.names[p] for p in points]
        self.route_calls.append(tuple(names))
        durations, distances = [], []
        for a, b in zip(names, names[1:]):
            if (a, b) in self.no_route:
                raise NoRoute(f"No route found between {a} and {b}")
            minutes = self.leg_minutes.get((a, b), self.default_minutes)
            durations.append(minutes * 60.0)
            distances.append(minutes * 1000.0)
        return ProviderRoute(tuple(durations), tuple(distances), tuple(points))

    def optimize_order(self, points):
        self.optimize_calls += 1
        if self.trip_error is not None:
            raise self.trip_error
        if self.trip is None:
            raise OptimizationUnavailable("no trip scripted")
        return self.trip


class FixedTimezones:
    """Zone per (lat, lng) tuple, with a default for everything else."""

    def __init__(self, zones=None, default="UTC"):
        self.zones = dict(zones or {})
        self.default = default

    def timezone_for(self, coordinate):
        return self.zones.get(coordinate.as_tuple(), self.default)


class FakeFlightLookup:
    def __init__(self, info=None, error=None):
        self.info = info
        self.error = error
        self.codes = []

    def lookup(self, flight_code):
        self.codes.append(flight_code)
        if self.error is not None:
            raise self.error
        return self.info
