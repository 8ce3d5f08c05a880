"""
Map visualisation utilities for tripwise.

This module provides a helper function to build an interactive map
of an itinerary using the Folium library. It renders numbered markers for
the start, each stop and the destination, draws the as-entered route as a
polyline and, when available, the optimized route as a dashed one.
"""

from __future__ import annotations

from typing import List, Sequence

import folium

from tripwise.models import Coordinate, Itinerary, Waypoint

_MARKER_HTML = (
    "<div style='font-size: 12px; color: white; background-color: {color}; border-radius: 50%; "
    "width: 24px; height: 24px; text-align: center; line-height: 24px;'>{text}</div>"
)


def _as_locations(coords: Sequence[Coordinate]) -> List[List[float]]:
    return [[c.latitude, c.longitude] for c in coords]


def create_folium_map(itinerary: Itinerary) -> folium.Map:
    """Create a Folium map with numbered markers and polylines for the routes.

    Args:
        itinerary: Result of ``tripwise.engine.plan``.

    Returns:
        A Folium Map object ready to be saved or embedded.
    """
    waypoints: List[Waypoint] = [itinerary.start, *itinerary.stops, itinerary.destination]
    # Compute map centre as the mean of all waypoints
    avg_lat = sum(wp.coordinate.latitude for wp in waypoints) / len(waypoints)
    avg_lon = sum(wp.coordinate.longitude for wp in waypoints) / len(waypoints)
    m = folium.Map(location=[avg_lat, avg_lon], zoom_start=10, tiles="OpenStreetMap")

    for order, wp in enumerate(waypoints):
        if wp is itinerary.start:
            text, color = "S", "#28a745"
        elif wp is itinerary.destination:
            text, color = "D", "#dc3545"
        else:
            text, color = str(order), "#007bff"
        folium.Marker(
            location=[wp.coordinate.latitude, wp.coordinate.longitude],
            popup=folium.Popup(wp.label, parse_html=True),
            icon=folium.DivIcon(html=_MARKER_HTML.format(color=color, text=text)),
        ).add_to(m)

    if itinerary.route.geometry:
        folium.PolyLine(
            _as_locations(itinerary.route.geometry), color="blue", weight=4, opacity=0.6, tooltip="Route"
        ).add_to(m)
    if itinerary.optimized_route is not None and itinerary.optimized_route.geometry:
        folium.PolyLine(
            _as_locations(itinerary.optimized_route.geometry),
            color="green",
            weight=4,
            opacity=0.7,
            dash_array="6",
            tooltip="Optimized route",
        ).add_to(m)
    return m
