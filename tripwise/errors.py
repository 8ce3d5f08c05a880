"""
Error taxonomy for tripwise.

Every failure a planning run can report derives from ``PlanningError``.
Each error carries a ``kind`` tag and the ``subject`` (the query text or
location) it concerns so callers can show a single, specific message.

Fatal kinds abort the run: ``InputError``, ``ConfigurationError``,
``NotFound``, ``NoRoute``, ``ProviderError`` and ``PlanningCancelled``.
``OptimizationUnavailable`` and ``PartialTimelineData`` are raised and
absorbed inside the engine; they never reach a caller of ``plan``.
"""

from __future__ import annotations

from typing import Optional


class PlanningError(Exception):
    """Base class for all planning failures."""

    kind = "PlanningError"

    def __init__(self, message: str, subject: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.subject = subject

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind!r}, subject={self.subject!r})"


class InputError(PlanningError):
    """A required field of the request is missing or invalid."""

    kind = "InputError"


class ConfigurationError(InputError):
    """The selected provider or start mode lacks a credential."""

    kind = "ConfigurationError"


class NotFound(PlanningError):
    """A geocoding query returned zero results."""

    kind = "NotFound"


class FlightNotFound(NotFound):
    """The flight lookup returned no flight for the code."""

    kind = "FlightNotFound"


class NoRoute(PlanningError):
    """The routing backend returned no route between two points."""

    kind = "NoRoute"


class ProviderError(PlanningError):
    """Transport failure or malformed response from a vendor service."""

    kind = "ProviderError"


class PlanningCancelled(PlanningError):
    """The caller cancelled the run before it completed."""

    kind = "PlanningCancelled"


class OptimizationUnavailable(PlanningError):
    """Stop-order optimization failed or is unsupported. Non-fatal."""

    kind = "OptimizationUnavailable"


class PartialTimelineData(PlanningError):
    """Optimized legs do not cover every stop. Non-fatal."""

    kind = "PartialTimelineData"


__all__ = [
    "PlanningError",
    "InputError",
    "ConfigurationError",
    "NotFound",
    "FlightNotFound",
    "NoRoute",
    "ProviderError",
    "PlanningCancelled",
    "OptimizationUnavailable",
    "PartialTimelineData",
]
