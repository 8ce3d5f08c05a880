"""
tripwise package initialization.

This package plans multi-stop driving journeys: it geocodes a start
(an address or the arrival airport of a flight), optional stops and a
destination, routes through them, asks the routing provider for a better
stop order, and builds time-stamped timelines for both orders.

Modules:
    engine        – ``plan``: the planning run from request to itinerary.
    providers     – Google, Mapbox and OpenStreetMap adapters.
    geocode       – Concurrent geocoding of the request's places.
    routing       – Multi-leg route construction.
    optimisation  – Provider-backed stop reordering.
    schedule      – Timeline synthesis and text formatting.
    flights       – Flight arrival lookup.
    timezones     – Coordinate to timezone lookup and time formatting.
    visualisation – Folium based map creation utilities.
"""

from tripwise.config import PlanningConfig
from tripwise.engine import plan
from tripwise.errors import PlanningError
from tripwise.models import Itinerary, PlanRequest, StartMode, StopRequest, TimezoneMode

__all__ = [
    "Itinerary",
    "PlanRequest",
    "PlanningConfig",
    "PlanningError",
    "StartMode",
    "StopRequest",
    "TimezoneMode",
    "plan",
]
