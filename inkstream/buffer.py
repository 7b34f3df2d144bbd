"""Token buffer that splits streamed text into settled and pending segments.

Settled segments never change once appended, so a renderer can draw them
once and only redraw the trailing pending word. Concatenating the settled
segments and the pending segment always reproduces the received text
exactly, whitespace included.
"""

from __future__ import annotations

from inkstream.exceptions import BufferClosedError
from inkstream.schemas.config import BoundaryMode
from inkstream.schemas.streaming import Snapshot, StreamFailure


class TokenBuffer:
    """Accumulates streamed chunks as boundary-terminated segments.

    Each settled segment ends with exactly one boundary character (except
    the final segment added by ``complete()``). ``pending`` never contains
    a boundary, so only newly received text has to be scanned.
    """

    def __init__(self, boundary: BoundaryMode = BoundaryMode.WHITESPACE) -> None:
        self._boundary = BoundaryMode(boundary)
        self._settled: list[str] = []
        self._pending: str = ""
        self._stable_cache: str | None = ""
        self._is_streaming: bool = False
        self._is_complete: bool = False
        self._revision: int = 0

    # ── Mutation ──────────────────────────────────────────────────

    def add_chunk(self, chunk: str) -> bool:
        """Append a chunk and settle every complete unit it finishes.

        Returns:
            True if the buffer changed, False for an empty chunk.

        Raises:
            TypeError: If the chunk is not a string.
            BufferClosedError: If the buffer was already completed.
        """
        if self._is_complete:
            raise BufferClosedError("Cannot add text to a completed buffer")
        if not isinstance(chunk, str):
            raise TypeError(f"Chunk must be str, not {type(chunk).__name__}")
        if not chunk:
            return False

        self._is_streaming = True
        self._revision += 1

        match = self._boundary.head_pattern.match(chunk)
        if match is None:
            self._pending += chunk
            return True

        head = self._pending + chunk[: match.end()]
        self._pending = chunk[match.end():]
        self._settled.extend(self._boundary.unit_pattern.findall(head))
        self._stable_cache = None
        return True

    def complete(self) -> None:
        """Settle the pending segment and close the buffer. Idempotent."""
        if self._is_complete:
            return
        if self._pending:
            self._settled.append(self._pending)
            self._pending = ""
            self._stable_cache = None
        self._is_streaming = False
        self._is_complete = True
        self._revision += 1

    def clear(self) -> None:
        """Drop all text and reopen the buffer."""
        self._settled.clear()
        self._pending = ""
        self._stable_cache = ""
        self._is_streaming = False
        self._is_complete = False
        self._revision = 0

    def set_text(self, text: str) -> None:
        """Replace the contents with a finished text."""
        self.clear()
        self.add_chunk(text)
        self.complete()

    # ── Views ─────────────────────────────────────────────────────

    @property
    def boundary(self) -> BoundaryMode:
        return self._boundary

    @property
    def settled(self) -> tuple[str, ...]:
        """Settled segments in order."""
        return tuple(self._settled)

    @property
    def pending(self) -> str:
        return self._pending

    @property
    def stable_text(self) -> str:
        """All settled segments joined."""
        if self._stable_cache is None:
            self._stable_cache = "".join(self._settled)
        return self._stable_cache

    @property
    def segment_count(self) -> int:
        return len(self._settled)

    @property
    def revision(self) -> int:
        """Mutation counter; grows with every chunk and on completion."""
        return self._revision

    @property
    def is_streaming(self) -> bool:
        return self._is_streaming

    @property
    def is_complete(self) -> bool:
        return self._is_complete

    def full_text(self) -> str:
        """Everything received so far, exactly as received."""
        return self.stable_text + self._pending

    def snapshot(
        self,
        *,
        streaming: bool | None = None,
        error: StreamFailure | None = None,
    ) -> Snapshot:
        """Return an immutable copy of the current state.

        Args:
            streaming: Overrides the buffer's own streaming flag; the
                session sets it from its lifecycle state.
            error: Failure to attach to the snapshot.
        """
        return Snapshot(
            stable_text=self.stable_text,
            pending_text=self._pending,
            is_streaming=self._is_streaming if streaming is None else streaming,
            is_complete=self._is_complete,
            revision=self._revision,
            error=error,
        )

    def __len__(self) -> int:
        return len(self.stable_text) + len(self._pending)

    def __repr__(self) -> str:
        return (
            f"TokenBuffer(segments={len(self._settled)}, "
            f"pending={self._pending!r}, complete={self._is_complete})"
        )
