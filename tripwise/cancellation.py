"""Cooperative cancellation for planning runs."""

from __future__ import annotations

import threading

from tripwise.errors import PlanningCancelled


class CancellationToken:
    """Flag checked before every outbound call of a run.

    Starting a new run for the same session should call ``cancel`` on the
    token handed to the previous one.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise PlanningCancelled("Planning run was cancelled.")
