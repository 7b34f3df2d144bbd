"""Tests for inkstream.throttle: trailing-edge coalescing of emissions."""

from __future__ import annotations

import asyncio
import math
import time

import pytest

from inkstream.throttle import ThrottledEmitter


class _Counter:
    def __init__(self) -> None:
        self.calls = 0
        self.times: list[float] = []

    def __call__(self) -> None:
        self.calls += 1
        self.times.append(time.monotonic())


class TestConstruction:
    def test_rejects_non_positive_delay(self):
        with pytest.raises(ValueError):
            ThrottledEmitter(lambda: None, delay=0)
        with pytest.raises(ValueError):
            ThrottledEmitter(lambda: None, delay=-1)

    def test_initial_state(self):
        emitter = ThrottledEmitter(lambda: None, delay=0.05)
        assert emitter.delay == 0.05
        assert emitter.scheduled is False
        assert emitter.pending_emission is False
        assert emitter.last_emission_time is None
        assert emitter.emission_count == 0

    def test_flush_without_event_loop(self):
        counter = _Counter()
        emitter = ThrottledEmitter(counter, delay=0.05)
        emitter.flush_immediately()
        assert counter.calls == 1
        assert emitter.last_emission_time is not None


class TestCoalescing:
    @pytest.mark.asyncio
    async def test_burst_collapses_into_one_emission(self):
        counter = _Counter()
        emitter = ThrottledEmitter(counter, delay=0.02)

        for _ in range(100):
            emitter.notify_dirty()
        assert emitter.scheduled is True
        assert emitter.pending_emission is True
        assert counter.calls == 0

        await asyncio.sleep(0.06)
        assert counter.calls == 1
        assert emitter.scheduled is False
        assert emitter.pending_emission is False

    @pytest.mark.asyncio
    async def test_does_not_reschedule_itself(self):
        counter = _Counter()
        emitter = ThrottledEmitter(counter, delay=0.01)
        emitter.notify_dirty()
        await asyncio.sleep(0.05)
        assert counter.calls == 1
        await asyncio.sleep(0.05)
        assert counter.calls == 1
        assert emitter.scheduled is False

    @pytest.mark.asyncio
    async def test_next_notify_starts_fresh_cycle(self):
        counter = _Counter()
        emitter = ThrottledEmitter(counter, delay=0.01)
        emitter.notify_dirty()
        await asyncio.sleep(0.04)
        emitter.notify_dirty()
        assert emitter.scheduled is True
        await asyncio.sleep(0.04)
        assert counter.calls == 2

    @pytest.mark.asyncio
    async def test_emissions_respect_window(self):
        counter = _Counter()
        delay = 0.02
        emitter = ThrottledEmitter(counter, delay=delay)

        start = time.monotonic()
        deadline = start + 0.2
        while time.monotonic() < deadline:
            emitter.notify_dirty()
            await asyncio.sleep(0.001)
        duration = time.monotonic() - start
        emitter.flush_immediately()

        assert counter.calls <= math.ceil(duration / delay) + 1
        gaps = [b - a for a, b in zip(counter.times[:-2], counter.times[1:-1])]
        # Loop timers may fire a hair early; allow a small tolerance.
        assert all(gap >= delay * 0.8 for gap in gaps)


class TestFlushAndCancel:
    @pytest.mark.asyncio
    async def test_flush_cancels_timer_and_emits(self):
        counter = _Counter()
        emitter = ThrottledEmitter(counter, delay=0.05)
        emitter.notify_dirty()
        emitter.flush_immediately()
        assert counter.calls == 1
        assert emitter.scheduled is False
        await asyncio.sleep(0.08)
        assert counter.calls == 1

    @pytest.mark.asyncio
    async def test_cancel_drops_pending_emission(self):
        counter = _Counter()
        emitter = ThrottledEmitter(counter, delay=0.01)
        emitter.notify_dirty()
        emitter.cancel()
        assert emitter.scheduled is False
        assert emitter.pending_emission is False
        await asyncio.sleep(0.03)
        assert counter.calls == 0

    @pytest.mark.asyncio
    async def test_close_ignores_later_notifications(self):
        counter = _Counter()
        emitter = ThrottledEmitter(counter, delay=0.01)
        emitter.close()
        emitter.notify_dirty()
        assert emitter.closed is True
        assert emitter.scheduled is False
        await asyncio.sleep(0.03)
        assert counter.calls == 0

    @pytest.mark.asyncio
    async def test_emission_count_tracks_calls(self):
        counter = _Counter()
        emitter = ThrottledEmitter(counter, delay=0.01)
        emitter.notify_dirty()
        await asyncio.sleep(0.03)
        emitter.flush_immediately()
        assert emitter.emission_count == counter.calls == 2
