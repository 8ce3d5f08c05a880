"""
Geocoding resolver for tripwise.

This module turns the free-text locations of a request (the start
address or the airport reported by a flight lookup, every stop, and the
destination) into ``Waypoint`` objects using the active provider
adapter. Queries that do not depend on each other are geocoded
concurrently on a thread pool; the resolver waits for all of them and
fails with the first error in query order, so no itinerary is built on
partial geocoding.

Example usage:

    from tripwise.geocode import geocode_queries
    coords = geocode_queries(provider, ["Tokyo Tower", "Tokyo Station"])
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from tripwise.cancellation import CancellationToken
from tripwise.errors import PlanningError
from tripwise.models import Coordinate, Role, StopRequest, Waypoint
from tripwise.providers.base import ProviderAdapter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedPlaces:
    start: Waypoint
    stops: Tuple[Waypoint, ...]
    destination: Waypoint

    @property
    def points(self) -> Tuple[Waypoint, ...]:
        """Start, stops in as-entered order, destination."""
        return (self.start,) + self.stops + (self.destination,)


def geocode_queries(
    provider: ProviderAdapter,
    queries: Sequence[str],
    cancel_token: Optional[CancellationToken] = None,
    max_workers: int = 8,
) -> List[Coordinate]:
    """Geocode independent queries concurrently.

    Args:
        provider: Adapter whose ``geocode`` is called once per query.
        queries: Free-form texts; duplicates are geocoded independently.
        cancel_token: Checked before each request.
        max_workers: Thread pool size, further capped by the adapter's
            ``geocode_concurrency``.

    Returns:
        Coordinates in the same order as ``queries``.

    Raises:
        PlanningError: the first failure in query order (typically
            ``NotFound``), after every request has finished.
    """
    if not queries:
        return []
    token = cancel_token or CancellationToken()
    workers = min(max_workers, len(queries))
    if provider.geocode_concurrency:
        workers = min(workers, provider.geocode_concurrency)

    def _geocode(query: str) -> Coordinate:
        token.raise_if_cancelled()
        return provider.geocode(query)

    started = time.time()
    with ThreadPoolExecutor(max_workers=max(workers, 1)) as pool:
        futures = [pool.submit(_geocode, query) for query in queries]

    coords: List[Coordinate] = []
    first_error: Optional[PlanningError] = None
    for query, future in zip(queries, futures):
        try:
            coords.append(future.result())
        except PlanningError as exc:
            logger.warning(f"Failed to geocode '{query}': {exc}")
            if first_error is None:
                first_error = exc
    if first_error is not None:
        raise first_error

    logger.info(f"Batch geocoded {len(queries)} places in {time.time() - started:.2f}s")
    return coords


def resolve_places(
    provider: ProviderAdapter,
    start_query: str,
    stops: Sequence[StopRequest],
    destination_query: str,
    cancel_token: Optional[CancellationToken] = None,
    max_workers: int = 8,
    start_label: Optional[str] = None,
) -> ResolvedPlaces:
    """Geocode start, stops and destination in one concurrent batch.

    ``start_label`` overrides the start waypoint's label; by default the
    query text is used.
    """
    queries = [start_query] + [stop.query for stop in stops] + [destination_query]
    coords = geocode_queries(provider, queries, cancel_token=cancel_token, max_workers=max_workers)

    start = Waypoint(coords[0], start_label or start_query, Role.START)
    stop_points = tuple(
        Waypoint(coord, stop.query, Role.STOP, position=i, buffer_minutes=stop.buffer_minutes)
        for i, (coord, stop) in enumerate(zip(coords[1:-1], stops))
    )
    destination = Waypoint(coords[-1], destination_query, Role.DESTINATION)
    return ResolvedPlaces(start=start, stops=stop_points, destination=destination)
