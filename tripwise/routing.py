"""
Route builder for tripwise.

This module chains routing calls across an ordered list of waypoints
(start, zero or more stops, destination) and produces a ``RouteResult``
with one ``RouteLeg`` per consecutive pair. When the active provider can
route several points in a single request it is used; otherwise each leg
is requested separately and the leg geometries are concatenated in order.

A failure on any leg raises ``NoRoute`` (or ``ProviderError``) and no
partial result is returned.

Example usage:

    route = build_route(provider, places.points)
    print(route.total_duration_minutes, len(route.legs))
"""

from __future__ import annotations

import logging
import math
from typing import List, Optional, Sequence, Tuple

from tripwise.cancellation import CancellationToken
from tripwise.errors import InputError, ProviderError
from tripwise.models import Coordinate, RouteLeg, RouteResult, Waypoint
from tripwise.providers.base import ProviderAdapter, ProviderRoute

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0


def haversine_distance(coord1: Tuple[float, float], coord2: Tuple[float, float]) -> float:
    """Compute the great‑circle distance between two coordinates in kilometers."""
    lat1, lon1 = coord1
    lat2, lon2 = coord2
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def closest_vertex(geometry: Sequence[Coordinate], target: Coordinate, start: int = 0) -> int:
    """Index of the vertex in ``geometry[start:]`` nearest to ``target``."""
    best_i = start
    best_d = float("inf")
    for i in range(start, len(geometry)):
        d = haversine_distance(geometry[i].as_tuple(), target.as_tuple())
        if d < best_d:
            best_d = d
            best_i = i
    return best_i


def split_geometry(
    geometry: Sequence[Coordinate], points: Sequence[Coordinate]
) -> Tuple[Tuple[Coordinate, ...], ...]:
    """Cut one route geometry into ``len(points) - 1`` leg segments.

    Each interior point is matched to its nearest vertex, searching
    forward from the previous cut. Neighbouring segments share the cut
    vertex.
    """
    n_legs = len(points) - 1
    if not geometry:
        return tuple(() for _ in range(n_legs))
    cuts = [0]
    for point in points[1:-1]:
        cuts.append(closest_vertex(geometry, point, start=cuts[-1]))
    cuts.append(len(geometry) - 1)
    return tuple(tuple(geometry[cuts[i]:cuts[i + 1] + 1]) for i in range(n_legs))


def _join(segments: Sequence[Sequence[Coordinate]]) -> Tuple[Coordinate, ...]:
    joined: List[Coordinate] = []
    for segment in segments:
        segment = list(segment)
        if joined and segment and joined[-1] == segment[0]:
            segment = segment[1:]
        joined.extend(segment)
    return tuple(joined)


def _check_leg_count(raw: ProviderRoute, expected: int) -> None:
    if len(raw.leg_durations_s) != expected or len(raw.leg_distances_m) != expected:
        raise ProviderError(f"Expected {expected} legs, provider returned {len(raw.leg_durations_s)}")


def build_route(
    provider: ProviderAdapter,
    waypoints: Sequence[Waypoint],
    cancel_token: Optional[CancellationToken] = None,
) -> RouteResult:
    """Route through ``waypoints`` in the given order.

    Args:
        provider: Active provider adapter.
        waypoints: At least two waypoints; first is the start, last the
            destination.
        cancel_token: Checked before each request.

    Returns:
        A ``RouteResult`` with exactly ``len(waypoints) - 1`` legs whose
        durations and distances sum to the totals.
    """
    if len(waypoints) < 2:
        raise InputError("A route needs at least two points")
    token = cancel_token or CancellationToken()
    coords = [wp.coordinate for wp in waypoints]
    n_legs = len(coords) - 1

    if n_legs > 1 and provider.supports_multipoint and len(coords) <= provider.max_route_points:
        token.raise_if_cancelled()
        raw = provider.route(coords)
        _check_leg_count(raw, n_legs)
        durations = raw.leg_durations_s
        distances = raw.leg_distances_m
        if raw.leg_geometries and len(raw.leg_geometries) == n_legs:
            segments = raw.leg_geometries
        else:
            segments = split_geometry(raw.geometry, coords)
        geometry = raw.geometry or _join(segments)
    else:
        durations, distances, collected = [], [], []
        for origin, destination in zip(coords, coords[1:]):
            token.raise_if_cancelled()
            raw = provider.route_leg(origin, destination)
            _check_leg_count(raw, 1)
            durations.append(raw.leg_durations_s[0])
            distances.append(raw.leg_distances_m[0])
            collected.append(raw.geometry)
        segments = tuple(collected)
        geometry = _join(segments)

    legs = [
        RouteLeg(
            origin=waypoints[i],
            destination=waypoints[i + 1],
            duration_minutes=durations[i] / 60.0,
            distance_meters=float(distances[i]),
            geometry=tuple(segments[i]),
        )
        for i in range(n_legs)
    ]
    result = RouteResult.from_legs(legs, geometry)
    logger.debug(
        f"[{provider.name}] routed {len(waypoints)} points: "
        f"{result.total_duration_minutes:.1f} min, {result.total_distance_meters / 1000:.1f} km"
    )
    return result
