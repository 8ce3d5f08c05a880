import unittest
from datetime import datetime, timedelta, timezone

from fakes import FakeFlightLookup, FakeGeocoder, FixedTimezones, RoutingSession, ScriptedProvider
from tripwise.cancellation import CancellationToken
from tripwise.config import PlanningConfig
from tripwise.engine import plan, validate_request
from tripwise.errors import (
    ConfigurationError,
    FlightNotFound,
    InputError,
    NoRoute,
    NotFound,
    OptimizationUnavailable,
    PlanningCancelled,
)
from tripwise.models import (
    EventKind,
    FlightInfo,
    PlanRequest,
    StartMode,
    StopRequest,
    TimezoneMode,
)
from tripwise.providers import OsrmAdapter
from tripwise.providers.base import ProviderTrip

PLACES = {
    "A": (35.6812, 139.7671),
    "S1": (35.6586, 139.7454),
    "S2": (35.6295, 139.7936),
    "B": (35.5494, 139.7798),
    "Los Angeles International (LAX)": (33.9416, -118.4085),
    "Times Square": (40.7580, -73.9855),
}
ZONES = FixedTimezones(
    {
        PLACES["Los Angeles International (LAX)"]: "America/Los_Angeles",
        PLACES["Times Square"]: "America/New_York",
    },
    default="Asia/Tokyo",
)
NOW = datetime(2025, 6, 1, 0, 0, tzinfo=timezone.utc)
CONFIG = PlanningConfig(provider="osm")


def run(request, provider, **kwargs):
    kwargs.setdefault("timezone_lookup", ZONES)
    kwargs.setdefault("clock", lambda: NOW)
    return plan(request, CONFIG, provider=provider, **kwargs)


def two_stop_request(**kwargs):
    return PlanRequest(
        destination="B",
        start_address="A",
        stops=(StopRequest("S1", 10), StopRequest("S2", 0)),
        **kwargs,
    )


class TestValidateRequest(unittest.TestCase):
    def test_missing_destination(self):
        with self.assertRaises(InputError) as ctx:
            validate_request(PlanRequest(destination="  ", start_address="A"))
        self.assertEqual(str(ctx.exception), "Please enter a destination.")

    def test_missing_start_address(self):
        with self.assertRaises(InputError):
            validate_request(PlanRequest(destination="B"))

    def test_missing_flight_code(self):
        with self.assertRaises(InputError) as ctx:
            validate_request(PlanRequest(destination="B", start_mode=StartMode.FLIGHT))
        self.assertEqual(ctx.exception.subject, "flight_code")

    def test_blank_stops_dropped(self):
        request = PlanRequest(
            destination="B",
            start_address="A",
            stops=(StopRequest(" S1 ", 5), StopRequest("   ", 30), StopRequest("S2", -4)),
        )
        self.assertEqual(validate_request(request), (StopRequest("S1", 5), StopRequest("S2", 0)))


class TestPlan(unittest.TestCase):
    def test_no_stops(self):
        provider = ScriptedProvider(PLACES, leg_minutes={("A", "B"): 40})
        itinerary = run(PlanRequest(destination="B", start_address="A"), provider)
        self.assertEqual(len(itinerary.route.legs), 1)
        self.assertIsNone(itinerary.optimized_route)
        self.assertIsNone(itinerary.optimized_timeline)
        self.assertEqual([e.kind for e in itinerary.timeline], [EventKind.DEPART, EventKind.ARRIVE_AT_DESTINATION])
        self.assertEqual(provider.optimize_calls, 0)

    def test_two_stops_timeline(self):
        provider = ScriptedProvider(PLACES, leg_minutes={("A", "S1"): 20, ("S1", "S2"): 15, ("S2", "B"): 25})
        itinerary = run(two_stop_request(), provider)
        t0 = itinerary.timeline[0].timestamp
        offsets = [int((e.timestamp - t0).total_seconds() // 60) for e in itinerary.timeline]
        self.assertEqual(offsets, [0, 20, 30, 45, 70])
        self.assertEqual(itinerary.arrival_time, t0 + timedelta(minutes=70))
        self.assertAlmostEqual(itinerary.route.total_duration_minutes, 60.0)
        self.assertEqual([wp.label for wp in itinerary.stops], ["S1", "S2"])
        self.assertEqual(itinerary.provider, "scripted")

    def test_departure_is_now_in_destination_zone(self):
        provider = ScriptedProvider(PLACES)
        itinerary = run(PlanRequest(destination="B", start_address="A"), provider)
        depart = itinerary.timeline[0].timestamp
        self.assertEqual(depart, NOW)
        self.assertEqual(str(depart.tzinfo), "Asia/Tokyo")
        self.assertEqual(depart.hour, 9)

    def test_naive_clock_is_utc(self):
        provider = ScriptedProvider(PLACES)
        itinerary = run(
            PlanRequest(destination="B", start_address="A"), provider, clock=lambda: datetime(2025, 6, 1, 0, 0)
        )
        self.assertEqual(itinerary.timeline[0].timestamp, NOW)

    def test_flight_arrival_in_destination_zone(self):
        flight = FlightInfo("NH105", "Los Angeles International", "LAX", "2025-06-01T10:00:00", "HND")
        lookup = FakeFlightLookup(info=flight)
        provider = ScriptedProvider(PLACES)
        request = PlanRequest(destination="Times Square", start_mode=StartMode.FLIGHT, flight_code="NH105")
        itinerary = run(request, provider, flight_lookup=lookup)

        arrival, leave = itinerary.timeline[0], itinerary.timeline[1]
        self.assertEqual(arrival.kind, EventKind.FLIGHT_ARRIVAL)
        self.assertEqual(str(arrival.timestamp.tzinfo), "America/New_York")
        self.assertEqual((arrival.timestamp.hour, arrival.timestamp.minute), (10, 0))
        self.assertEqual(leave.kind, EventKind.DEPART)
        self.assertEqual((leave.timestamp.hour, leave.timestamp.minute), (10, 45))
        self.assertEqual(itinerary.start.label, "Los Angeles International (LAX)")
        self.assertEqual(itinerary.origin_timezone, "America/Los_Angeles")
        self.assertEqual(itinerary.destination_timezone, "America/New_York")
        self.assertEqual(lookup.codes, ["NH105"])
        self.assertEqual(itinerary.flight, flight)

    def test_flight_not_found(self):
        provider = ScriptedProvider(PLACES)
        lookup = FakeFlightLookup(error=FlightNotFound("Flight not found. Please check the flight number."))
        request = PlanRequest(destination="B", start_mode=StartMode.FLIGHT, flight_code="ZZ1")
        with self.assertRaises(FlightNotFound):
            run(request, provider, flight_lookup=lookup)
        self.assertEqual(provider.geocoder.queries, [])

    def test_optimization_unavailable(self):
        trip = ProviderTrip(visit_order=(0, 2, 1, 3), duration_s=2400, distance_m=40000)
        with_trip = run(two_stop_request(), ScriptedProvider(PLACES, trip=trip))
        provider = ScriptedProvider(PLACES, trip_error=OptimizationUnavailable("no trips"))
        itinerary = run(two_stop_request(), provider)
        self.assertIsNone(itinerary.optimized_route)
        self.assertIsNone(itinerary.optimized_timeline)
        self.assertFalse(itinerary.optimization.available)
        # the as-entered fields match a run that did get a recommendation
        self.assertTrue(with_trip.optimization.available)
        self.assertEqual(itinerary.route, with_trip.route)
        self.assertEqual(itinerary.timeline, with_trip.timeline)
        self.assertEqual(itinerary.stops, with_trip.stops)
        self.assertEqual(itinerary.start, with_trip.start)
        self.assertEqual(itinerary.destination, with_trip.destination)
        self.assertEqual(itinerary.origin_timezone, with_trip.origin_timezone)
        self.assertEqual(itinerary.destination_timezone, with_trip.destination_timezone)

    def test_malformed_trip_payload_degrades(self):
        leg = {"code": "Ok", "routes": [{"geometry": "", "legs": [{"duration": 600.0, "distance": 5000.0}]}]}
        trips = [
            {"code": "Ok", "trips": [None], "waypoints": [{"waypoint_index": i} for i in range(4)]},
            {"code": "Ok", "trips": [{"duration": 1800.0, "distance": 20000.0}], "waypoints": [0, 2, 1, 3]},
            {"code": "Ok", "trips": [{"duration": "soon"}], "waypoints": [{"waypoint_index": i} for i in range(4)]},
        ]
        for trip in trips:
            with self.subTest(trip=trip):
                session = RoutingSession({"/route/v1/": leg, "/trip/v1/": trip})
                provider = OsrmAdapter(CONFIG, session=session, geocoder=FakeGeocoder(PLACES))
                provider.geocode_min_delay = 0
                with self.assertLogs("tripwise.optimisation", level="WARNING"):
                    itinerary = run(two_stop_request(), provider)
                self.assertFalse(itinerary.optimization.available)
                self.assertIsNone(itinerary.optimized_timeline)
                self.assertEqual(len(itinerary.route.legs), 3)
                self.assertEqual(itinerary.timeline[-1].detail, "10 min drive from last stop to B")

    def test_direct_trip_names_provider(self):
        leg = {"code": "Ok", "routes": [{"geometry": "", "legs": [{"duration": 1500.0, "distance": 9000.0}]}]}
        provider = OsrmAdapter(CONFIG, session=RoutingSession({"/route/v1/": leg}), geocoder=FakeGeocoder(PLACES))
        provider.geocode_min_delay = 0
        itinerary = run(PlanRequest(destination="B", start_address="A"), provider)
        self.assertEqual(itinerary.timeline[-1].detail, "25 min drive to B (via OpenStreetMap)")

    def test_recommended_order(self):
        trip = ProviderTrip(visit_order=(0, 2, 1, 3), duration_s=2400, distance_m=40000)
        provider = ScriptedProvider(
            PLACES,
            leg_minutes={("A", "S2"): 12, ("S2", "S1"): 15, ("S1", "B"): 18},
            trip=trip,
        )
        itinerary = run(two_stop_request(), provider)
        self.assertEqual(itinerary.optimization.labels, ("S2", "S1"))
        self.assertEqual(
            [leg.destination.label for leg in itinerary.optimized_route.legs], ["S2", "S1", "B"]
        )
        details = [e.detail for e in itinerary.optimized_timeline]
        self.assertIn("12 min drive to S2", details)
        self.assertIn("18 min drive to B (Optimized route)", details)
        # the as-entered itinerary is untouched
        self.assertEqual([wp.label for wp in itinerary.stops], ["S1", "S2"])

    def test_optimized_route_failure_falls_back_to_estimates(self):
        trip = ProviderTrip(visit_order=(0, 2, 1, 3))
        provider = ScriptedProvider(PLACES, trip=trip, no_route=[("A", "S2")])
        with self.assertLogs("tripwise", level="WARNING"):
            itinerary = run(two_stop_request(), provider)
        self.assertIsNone(itinerary.optimized_route)
        self.assertTrue(itinerary.optimization.available)
        self.assertTrue(all(e.estimated for e in itinerary.optimized_timeline if e.kind != EventKind.DEPART
                            and e.kind != EventKind.LEAVE_STOP))

    def test_destination_not_found(self):
        places = {k: v for k, v in PLACES.items() if k != "B"}
        provider = ScriptedProvider(places)
        with self.assertRaises(NotFound) as ctx:
            run(PlanRequest(destination="B", start_address="A"), provider)
        self.assertEqual(ctx.exception.kind, "NotFound")
        self.assertEqual(ctx.exception.subject, "B")
        self.assertEqual(provider.route_calls, [])

    def test_no_route(self):
        provider = ScriptedProvider(PLACES, no_route=[("A", "B")])
        with self.assertRaises(NoRoute):
            run(PlanRequest(destination="B", start_address="A"), provider)

    def test_invalid_request_makes_no_calls(self):
        provider = ScriptedProvider(PLACES)
        with self.assertRaises(InputError):
            run(PlanRequest(destination="", start_address="A"), provider)
        self.assertEqual(provider.geocoder.queries, [])

    def test_missing_provider_credentials(self):
        request = PlanRequest(destination="B", start_address="A", provider="mapbox")
        with self.assertRaises(ConfigurationError) as ctx:
            plan(request, CONFIG, timezone_lookup=ZONES)
        self.assertEqual(str(ctx.exception), "Mapbox Access Token is missing.")

    def test_missing_flight_key(self):
        request = PlanRequest(destination="B", start_mode=StartMode.FLIGHT, flight_code="NH105")
        with self.assertRaises(ConfigurationError):
            run(request, ScriptedProvider(PLACES))

    def test_cancelled_run(self):
        provider = ScriptedProvider(PLACES)
        token = CancellationToken()
        token.cancel()
        with self.assertRaises(PlanningCancelled):
            run(two_stop_request(), provider, cancel_token=token)
        self.assertEqual(provider.geocoder.queries, [])
        self.assertEqual(provider.route_calls, [])

    def test_same_inputs_same_itinerary(self):
        trip = ProviderTrip(visit_order=(0, 2, 1, 3), duration_s=2400, distance_m=40000)
        first = run(two_stop_request(), ScriptedProvider(PLACES, trip=trip))
        second = run(two_stop_request(), ScriptedProvider(PLACES, trip=trip))
        self.assertEqual(first, second)
        self.assertEqual(first.to_dict(), second.to_dict())

    def test_timezone_mode_from_request(self):
        request = two_stop_request(timezone_mode=TimezoneMode.ORIGIN)
        itinerary = run(request, ScriptedProvider(PLACES))
        self.assertEqual(itinerary.timezone_mode, TimezoneMode.ORIGIN)
        self.assertEqual(itinerary.display_timezone, itinerary.origin_timezone)

    def test_to_dict_is_plain(self):
        itinerary = run(two_stop_request(), ScriptedProvider(PLACES))
        data = itinerary.to_dict()
        self.assertEqual(data["timeline"][0]["kind"], "depart")
        self.assertIsInstance(data["timeline"][0]["timestamp"], str)
        self.assertEqual(data["stops"][0]["role"], "stop")


if __name__ == "__main__":
    unittest.main()
