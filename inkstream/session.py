"""Stream session: binds one chunk source to one buffer and one throttle.

The session consumes an async chunk source on its own pump task, feeds
every chunk through the TokenBuffer, and lets the ThrottledEmitter decide
when listeners see a new Snapshot. Completion and source errors both
finalize the buffer and flush, so received text is never lost; only
``cancel()`` stops without a final emission.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import AsyncIterable, AsyncIterator, Callable
from enum import StrEnum
from typing import Any
from uuid import uuid4

from inkstream.buffer import TokenBuffer
from inkstream.exceptions import (
    SessionDisposedError,
    SessionStateError,
    SourceStreamError,
)
from inkstream.schemas.config import AssemblerConfig
from inkstream.schemas.streaming import (
    FinalizedContent,
    RenderState,
    Snapshot,
    StreamFailure,
    StreamingContent,
)
from inkstream.sources import ChunkChannel
from inkstream.throttle import ThrottledEmitter

logger = logging.getLogger(__name__)

# Type alias for snapshot listener callbacks
SnapshotListener = Callable[[Snapshot], Any]


class SessionState(StrEnum):
    """Lifecycle state of a stream session."""

    IDLE = "idle"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ERRORED = "errored"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset(
    {SessionState.COMPLETED, SessionState.ERRORED, SessionState.CANCELLED}
)


class StreamSession:
    """Assembles one streamed LLM response into throttled snapshots.

    Lifecycle: ``idle → streaming → completed | errored | cancelled``.
    Listeners can be sync or async callables; they receive each emitted
    Snapshot in order. Listener exceptions are logged but never propagate.

    Usage::

        async with StreamSession(throttle_ms=50) as session:
            session.add_listener(render)
            session.attach(provider_stream)
            final = await session.wait()
    """

    def __init__(
        self,
        config: AssemblerConfig | None = None,
        *,
        throttle_ms: float | None = None,
    ) -> None:
        config = config or AssemblerConfig()
        if throttle_ms is not None:
            config = AssemblerConfig.model_validate(
                {**config.model_dump(), "throttle_ms": throttle_ms}
            )
        self._config = config
        self.session_id: str = uuid4().hex[:12]

        self._buffer = TokenBuffer(config.boundary)
        self._emitter = ThrottledEmitter(self._emit, config.throttle_seconds)
        self._state = SessionState.IDLE
        self._disposed = False

        # Subscription
        self._task: asyncio.Task[None] | None = None
        self._channel: ChunkChannel | None = None
        self._chunk_count: int = 0

        # Outputs
        self._listeners: list[SnapshotListener] = []
        self._streams: set[asyncio.Queue[Snapshot | None]] = set()
        self._listener_tasks: set[asyncio.Task[Any]] = set()
        self._last_snapshot: Snapshot | None = None
        self._emitting = False
        self._emit_again = False
        self._close_after_emit = False
        self._error: StreamFailure | None = None
        self._exception: SourceStreamError | None = None
        self._finished = asyncio.Event()

    # ── Introspection ─────────────────────────────────────────────

    @property
    def config(self) -> AssemblerConfig:
        return self._config

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def buffer(self) -> TokenBuffer:
        """The underlying buffer (read it, do not mutate it)."""
        return self._buffer

    @property
    def snapshot(self) -> Snapshot:
        """Current buffer state, whether or not it has been emitted yet."""
        return self._buffer.snapshot(
            streaming=self._state is SessionState.STREAMING,
            error=self._error,
        )

    @property
    def last_snapshot(self) -> Snapshot | None:
        """The most recently emitted snapshot."""
        return self._last_snapshot

    @property
    def content(self) -> RenderState:
        """Two-variant render state for the display layer."""
        if self._buffer.is_complete:
            return FinalizedContent(text=self._buffer.full_text(), error=self._error)
        return StreamingContent(snapshot=self._last_snapshot or self.snapshot)

    @property
    def error(self) -> StreamFailure | None:
        """Summary of the source failure, if the session errored."""
        return self._error

    @property
    def exception(self) -> SourceStreamError | None:
        """The source failure itself; the original is its ``__cause__``."""
        return self._exception

    @property
    def chunk_count(self) -> int:
        return self._chunk_count

    @property
    def emission_count(self) -> int:
        return self._emitter.emission_count

    # ── Listeners ─────────────────────────────────────────────────

    def add_listener(self, listener: SnapshotListener) -> None:
        """Register a listener to receive emitted snapshots."""
        self._check_not_disposed()
        self._listeners.append(listener)

    def remove_listener(self, listener: SnapshotListener) -> None:
        """Remove a previously registered listener."""
        self._listeners = [ln for ln in self._listeners if ln is not listener]

    async def snapshots(self) -> AsyncIterator[Snapshot]:
        """Iterate emitted snapshots until the session finishes.

        Only snapshots emitted after iteration starts are yielded. On an
        already finished session this yields the last emitted snapshot,
        if any, and stops.
        """
        if self._state.is_terminal or self._disposed:
            if self._last_snapshot is not None:
                yield self._last_snapshot
            return

        queue: asyncio.Queue[Snapshot | None] = asyncio.Queue()
        self._streams.add(queue)
        try:
            while True:
                item = await queue.get()
                if item is None:
                    return
                yield item
        finally:
            self._streams.discard(queue)

    # ── Lifecycle ─────────────────────────────────────────────────

    def attach(self, source: AsyncIterable[str]) -> asyncio.Task[None]:
        """Start consuming ``source`` on a pump task.

        Must be called from a running event loop. A ChunkChannel passed
        here is detached on cancel or dispose, like one from
        ``open_channel()``.

        Raises:
            TypeError: If ``source`` is not an async iterable.
            SessionStateError: If the session is not idle.
            SessionDisposedError: If the session was disposed.
        """
        self._check_not_disposed()
        if self._state is not SessionState.IDLE:
            raise SessionStateError(
                f"Cannot attach a source to a {self._state} session"
            )
        loop = asyncio.get_running_loop()
        iterator = aiter(source)
        if isinstance(source, ChunkChannel):
            self._channel = source
        self._transition(SessionState.STREAMING)
        self._task = loop.create_task(
            self._pump(iterator), name=f"inkstream-pump-{self.session_id}"
        )
        return self._task

    def open_channel(self) -> ChunkChannel:
        """Attach a new push-based channel and return it to the producer."""
        self._check_not_disposed()
        if self._state is not SessionState.IDLE:
            raise SessionStateError(
                f"Cannot open a channel on a {self._state} session"
            )
        channel = ChunkChannel()
        self.attach(channel)
        return channel

    def set_text(self, text: str) -> None:
        """Load an already finished text and complete immediately."""
        self._check_not_disposed()
        if self._state is not SessionState.IDLE:
            raise SessionStateError(f"Cannot set text on a {self._state} session")
        self._buffer.set_text(text)
        self._finalize(SessionState.COMPLETED)

    def complete(self) -> None:
        """Force completion: detach the source, finalize and flush.

        No-op once the session has finished.
        """
        self._check_not_disposed()
        if self._state.is_terminal:
            return
        self._detach_source()
        self._finalize(SessionState.COMPLETED)

    def cancel(self) -> None:
        """Stop immediately without a final emission.

        No-op once the session has finished or been disposed.
        """
        if self._disposed or self._state.is_terminal:
            return
        self._transition(SessionState.CANCELLED)
        self._detach_source()
        self._emitter.close()
        self._close_streams()
        self._finished.set()

    def dispose(self) -> None:
        """Release the source, timer and listeners. Idempotent."""
        if self._disposed:
            return
        self.cancel()
        self._emitter.close()
        self._listeners.clear()
        self._disposed = True
        logger.debug("Session %s disposed", self.session_id)

    async def wait(self) -> Snapshot:
        """Wait until the session finishes and return its final state."""
        await self._finished.wait()
        return self.snapshot

    async def __aenter__(self) -> StreamSession:
        return self

    async def __aexit__(self, *args: object) -> None:
        self.dispose()

    # ── Source handling ───────────────────────────────────────────

    async def _pump(self, iterator: AsyncIterator[str]) -> None:
        try:
            async for chunk in iterator:
                if self._state is not SessionState.STREAMING:
                    break
                self._on_chunk(chunk)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._on_error(exc)
        else:
            self._on_done()
        finally:
            if inspect.isasyncgen(iterator):
                await iterator.aclose()

    def _on_chunk(self, chunk: str) -> None:
        self._chunk_count += 1
        if self._buffer.add_chunk(chunk):
            self._emitter.notify_dirty()

    def _on_done(self) -> None:
        if self._state is not SessionState.STREAMING:
            return
        logger.debug(
            "Session %s source finished after %d chunks",
            self.session_id, self._chunk_count,
        )
        self._finalize(SessionState.COMPLETED)

    def _on_error(self, exc: Exception) -> None:
        if self._state is not SessionState.STREAMING:
            logger.debug("Session %s ignoring late source error: %s", self.session_id, exc)
            return
        self._exception = SourceStreamError(exc)
        self._error = StreamFailure.from_exception(exc)
        logger.warning(
            "Session %s source failed after %d chunks: %s",
            self.session_id, self._chunk_count, self._exception,
        )
        self._finalize(SessionState.ERRORED)

    def _detach_source(self) -> None:
        if self._channel is not None:
            self._channel.detach()
        task = self._task
        if task is not None and not task.done():
            try:
                current = asyncio.current_task()
            except RuntimeError:
                current = None
            if task is not current:
                task.cancel()

    # ── Emission ──────────────────────────────────────────────────

    def _finalize(self, state: SessionState) -> None:
        self._buffer.complete()
        self._transition(state)
        self._emitter.flush_immediately()
        self._emitter.close()
        self._close_streams()
        self._finished.set()

    def _emit(self) -> None:
        # Re-entrant calls (a listener completing the session) are replayed
        # after every listener has seen the current snapshot.
        if self._emitting:
            self._emit_again = True
            return

        self._emitting = True
        try:
            while True:
                self._emit_again = False
                self._deliver(self.snapshot)
                if not self._emit_again:
                    break
        finally:
            self._emitting = False

        if self._close_after_emit:
            self._close_after_emit = False
            self._close_streams()

    def _deliver(self, snapshot: Snapshot) -> None:
        self._last_snapshot = snapshot

        for listener in list(self._listeners):
            if self._disposed:
                break
            try:
                result = listener(snapshot)
                if inspect.isawaitable(result):
                    self._spawn(result)
            except Exception:
                logger.exception("Snapshot listener error in session %s", self.session_id)

        for queue in self._streams:
            queue.put_nowait(snapshot)

    def _spawn(self, awaitable: Any) -> None:
        task = asyncio.ensure_future(awaitable)
        self._listener_tasks.add(task)
        task.add_done_callback(self._on_listener_task_done)

    def _on_listener_task_done(self, task: asyncio.Task[Any]) -> None:
        self._listener_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Async snapshot listener error in session %s",
                self.session_id, exc_info=exc,
            )

    def _close_streams(self) -> None:
        if self._emitting:
            self._close_after_emit = True
            return
        for queue in self._streams:
            queue.put_nowait(None)

    # ── Helpers ───────────────────────────────────────────────────

    def _transition(self, state: SessionState) -> None:
        logger.debug("Session %s: %s -> %s", self.session_id, self._state, state)
        self._state = state

    def _check_not_disposed(self) -> None:
        if self._disposed:
            raise SessionDisposedError(f"Session {self.session_id} was disposed")

    def __repr__(self) -> str:
        return (
            f"StreamSession(id={self.session_id!r}, state={self._state}, "
            f"chunks={self._chunk_count}, emissions={self.emission_count})"
        )
