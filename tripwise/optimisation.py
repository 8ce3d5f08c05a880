"""
Trip optimisation for tripwise.

The stop order is never optimised locally: the active provider is asked
for a reordering of the interior stops with the start and destination
fixed, and its answer is translated back to the as-entered stops.

The provider reports a visiting order over the submitted points. That
order is validated as a bijection by position (stop labels may repeat, so
matching by value is not safe) before it becomes an
``OptimizationResult``. Any failure degrades to an empty result; it never
aborts the plan.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from tripwise.cancellation import CancellationToken
from tripwise.errors import OptimizationUnavailable, PlanningCancelled, PlanningError
from tripwise.models import OptimizationResult, Waypoint
from tripwise.providers.base import ProviderAdapter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StopPermutation:
    """Maps recommended visiting position to as-entered stop position."""

    order: Tuple[int, ...]

    @classmethod
    def from_visit_order(cls, visit_order: Sequence[int], n_points: int) -> "StopPermutation":
        """Validate a provider visit order over all points and keep the stops.

        Raises ``OptimizationUnavailable`` unless ``visit_order`` starts at
        0, ends at ``n_points - 1`` and visits every interior point exactly
        once.
        """
        order = list(visit_order)
        if len(order) != n_points:
            raise OptimizationUnavailable(f"Visit order has {len(order)} entries for {n_points} points")
        if order[0] != 0 or order[-1] != n_points - 1:
            raise OptimizationUnavailable(f"Visit order moved a fixed endpoint: {order}")
        interior = order[1:-1]
        if sorted(interior) != list(range(1, n_points - 1)):
            raise OptimizationUnavailable(f"Visit order is not a permutation of the stops: {order}")
        return cls(order=tuple(i - 1 for i in interior))

    def apply(self, stops: Sequence[Waypoint]) -> Tuple[Waypoint, ...]:
        return tuple(stops[i] for i in self.order)


def optimize_stop_order(
    provider: ProviderAdapter,
    waypoints: Sequence[Waypoint],
    cancel_token: Optional[CancellationToken] = None,
) -> OptimizationResult:
    """Ask the provider for a better stop order.

    Args:
        provider: Active provider adapter.
        waypoints: Start, stops in as-entered order, destination.
        cancel_token: Checked before the request; cancellation is the only
            failure that propagates.

    Returns:
        An ``OptimizationResult``; empty when there are fewer than two
        stops or the provider could not help. The reported duration and
        distance are whatever the provider returned, which is not
        guaranteed to beat the as-entered order.
    """
    stops = list(waypoints[1:-1])
    if len(stops) < 2:
        return OptimizationResult()
    token = cancel_token or CancellationToken()
    token.raise_if_cancelled()

    coords = [wp.coordinate for wp in waypoints]
    try:
        trip = provider.optimize_order(coords)
        permutation = StopPermutation.from_visit_order(trip.visit_order, len(coords))
        duration_minutes = float(trip.duration_s) / 60.0 if trip.duration_s is not None else None
        distance_meters = float(trip.distance_m) if trip.distance_m is not None else None
    except PlanningCancelled:
        raise
    except (PlanningError, AttributeError, KeyError, TypeError, ValueError) as exc:
        logger.warning(f"[{provider.name}] optimization unavailable: {exc}")
        return OptimizationResult()

    ordered = permutation.apply(stops)
    result = OptimizationResult(
        stop_order=permutation.order,
        labels=tuple(stop.label for stop in ordered),
        duration_minutes=duration_minutes,
        distance_meters=distance_meters,
    )
    logger.info(f"[{provider.name}] recommended stop order: {' -> '.join(result.labels)}")
    return result


def reorder_waypoints(
    waypoints: Sequence[Waypoint], optimization: OptimizationResult
) -> Tuple[Waypoint, ...]:
    """Start, stops in the recommended order, destination."""
    stops = list(waypoints[1:-1])
    ordered = tuple(stops[i] for i in optimization.stop_order or range(len(stops)))
    return (waypoints[0],) + ordered + (waypoints[-1],)
