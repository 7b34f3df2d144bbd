"""Trailing-edge throttle for snapshot emission.

Coalesces any number of buffer mutations inside one throttle window into a
single emission, using one event-loop timer at a time.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable


class ThrottledEmitter:
    """Rate-limits calls to ``emit`` to at most one per ``delay`` seconds.

    The first ``notify_dirty()`` of a cycle arms a timer; further calls
    before it fires only record that newer state exists. When the timer
    fires the emitter calls ``emit`` once and goes idle until the next
    ``notify_dirty()``. ``flush_immediately()`` bypasses the window so the
    final state is never stuck behind a timer.
    """

    def __init__(self, emit: Callable[[], None], delay: float = 0.05) -> None:
        if delay <= 0:
            raise ValueError(f"delay must be > 0, got {delay}")
        self._emit = emit
        self._delay = delay
        self._timer: asyncio.TimerHandle | None = None
        self._pending_emission: bool = False
        self._last_emission_time: float | None = None
        self._emission_count: int = 0
        self._closed: bool = False

    # ── State ─────────────────────────────────────────────────────

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def scheduled(self) -> bool:
        """True while a timer is armed."""
        return self._timer is not None

    @property
    def pending_emission(self) -> bool:
        """True when state changed since the last emission."""
        return self._pending_emission

    @property
    def last_emission_time(self) -> float | None:
        """``time.monotonic()`` of the most recent emission."""
        return self._last_emission_time

    @property
    def emission_count(self) -> int:
        return self._emission_count

    @property
    def closed(self) -> bool:
        return self._closed

    # ── Control ───────────────────────────────────────────────────

    def notify_dirty(self) -> None:
        """Record a mutation, arming the timer if none is pending."""
        if self._closed:
            return
        self._pending_emission = True
        if self._timer is None:
            loop = asyncio.get_running_loop()
            self._timer = loop.call_later(self._delay, self._on_timer)

    def flush_immediately(self) -> None:
        """Cancel any armed timer and emit now."""
        self._cancel_timer()
        self._fire()

    def cancel(self) -> None:
        """Disarm the timer and forget pending state without emitting."""
        self._cancel_timer()
        self._pending_emission = False

    def close(self) -> None:
        """Cancel and ignore every later ``notify_dirty()``."""
        self.cancel()
        self._closed = True

    # ── Internals ─────────────────────────────────────────────────

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        self._timer = None
        if self._pending_emission:
            self._fire()

    def _fire(self) -> None:
        self._pending_emission = False
        self._last_emission_time = time.monotonic()
        self._emission_count += 1
        self._emit()
