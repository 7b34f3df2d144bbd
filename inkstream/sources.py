"""Chunk sources that feed a StreamSession.

A session consumes any ``AsyncIterable[str]``: each item is a chunk,
exhaustion means the stream is done, and a raised exception means it
failed. The helpers here adapt push-style producers and plain text to
that shape.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Iterator

logger = logging.getLogger(__name__)

_DONE = object()


class _Failure:
    __slots__ = ("exc",)

    def __init__(self, exc: BaseException) -> None:
        self.exc = exc


class ChunkChannel:
    """Push-based chunk source backed by an asyncio queue.

    Producers that deliver text through callbacks call ``push()`` for each
    chunk, then ``close()`` or ``fail()``. A single consumer iterates the
    channel with ``async for``. Once closed, failed or detached, further
    pushes are ignored.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._closed = False
        self._detached = False

    @property
    def closed(self) -> bool:
        """True once no more chunks will be accepted."""
        return self._closed or self._detached

    def push(self, text: str) -> bool:
        """Queue a chunk. Returns False if the channel no longer accepts text."""
        if self.closed:
            logger.debug("Ignoring %d chars pushed to closed channel", len(text))
            return False
        self._queue.put_nowait(text)
        return True

    def close(self) -> None:
        """Signal normal end of stream."""
        if self.closed:
            return
        self._closed = True
        self._queue.put_nowait(_DONE)

    def fail(self, exc: BaseException) -> None:
        """Signal that the producer failed with ``exc``."""
        if self.closed:
            return
        self._closed = True
        self._queue.put_nowait(_Failure(exc))

    def detach(self) -> None:
        """Stop accepting pushes and wake the consumer."""
        if self._detached:
            return
        self._detached = True
        self._queue.put_nowait(_DONE)

    def __aiter__(self) -> AsyncIterator[str]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[str]:
        while True:
            item = await self._queue.get()
            if item is _DONE:
                return
            if isinstance(item, _Failure):
                raise item.exc
            if self._detached:
                return
            yield item

    def __repr__(self) -> str:
        return f"ChunkChannel(queued={self._queue.qsize()}, closed={self.closed})"


def split_chunks(text: str, size: int) -> Iterator[str]:
    """Yield ``text`` in consecutive slices of ``size`` characters."""
    if size <= 0:
        raise ValueError("size must be > 0")
    for start in range(0, len(text), size):
        yield text[start:start + size]


async def replay_text(
    text: str,
    chunk_size: int = 4,
    delay: float = 0.0,
) -> AsyncIterator[str]:
    """Replay ``text`` as a simulated token stream.

    Args:
        text: The full text to replay.
        chunk_size: Characters per chunk.
        delay: Seconds to sleep between chunks. With 0 the generator still
            yields control to the event loop after every chunk.

    Yields:
        Consecutive slices of ``text``.
    """
    for chunk in split_chunks(text, chunk_size):
        yield chunk
        await asyncio.sleep(delay)
