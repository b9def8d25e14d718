"""Trailing-edge debouncer on the asyncio event loop."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any


class Debouncer:
    """Coalesce rapid calls so only the last one within ``delay`` fires.

    Each ``call`` cancels the previously scheduled invocation and schedules
    a new one ``delay`` seconds later on the running event loop. Outside a
    running loop nothing is scheduled; the latest call stays pending until
    ``flush`` runs it.

    Example:
        >>> debouncer = Debouncer(1.0, history.take_snapshot)
        >>> debouncer.call("Update config")
        >>> debouncer.call("Update config")  # replaces the first call
    """

    def __init__(self, delay: float, func: Callable[..., Any]) -> None:
        """Initialize the debouncer.

        Args:
            delay: Quiet period in seconds before the pending call fires.
            func: Callable invoked with the arguments of the last call.
        """
        self.delay = delay
        self._func = func
        self._handle: asyncio.TimerHandle | None = None
        self._pending: tuple[tuple[Any, ...], dict[str, Any]] | None = None

    @property
    def pending(self) -> bool:
        """Whether a call is waiting to fire."""
        return self._pending is not None

    def call(self, *args: Any, **kwargs: Any) -> None:
        """Schedule ``func(*args, **kwargs)``, replacing any pending call."""
        self._cancel_handle()
        self._pending = (args, kwargs)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._handle = loop.call_later(self.delay, self._fire)

    def flush(self) -> bool:
        """Run the pending call now.

        Returns:
            True if a pending call was run.
        """
        if self._pending is None:
            return False
        self._fire()
        return True

    def cancel(self) -> None:
        """Drop the pending call without running it."""
        self._cancel_handle()
        self._pending = None

    def _cancel_handle(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._cancel_handle()
        pending, self._pending = self._pending, None
        if pending is None:
            return
        args, kwargs = pending
        self._func(*args, **kwargs)


__all__ = ["Debouncer"]
