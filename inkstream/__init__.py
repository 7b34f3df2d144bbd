"""inkstream: incremental streaming-text assembly for LLM chat clients."""

__version__ = "0.1.0"

from inkstream.buffer import TokenBuffer
from inkstream.exceptions import (
    BufferClosedError,
    InkstreamError,
    SessionDisposedError,
    SessionStateError,
    SourceStreamError,
)
from inkstream.schemas.config import AssemblerConfig, BoundaryMode
from inkstream.schemas.streaming import (
    FinalizedContent,
    RenderState,
    Snapshot,
    StreamFailure,
    StreamingContent,
)
from inkstream.session import SessionState, StreamSession
from inkstream.sources import ChunkChannel, replay_text, split_chunks
from inkstream.throttle import ThrottledEmitter

__all__ = [
    "AssemblerConfig",
    "BoundaryMode",
    "BufferClosedError",
    "ChunkChannel",
    "FinalizedContent",
    "InkstreamError",
    "RenderState",
    "SessionDisposedError",
    "SessionState",
    "SessionStateError",
    "Snapshot",
    "SourceStreamError",
    "StreamFailure",
    "StreamSession",
    "StreamingContent",
    "ThrottledEmitter",
    "TokenBuffer",
    "replay_text",
    "split_chunks",
]
