"""inkstream schema definitions.

Pydantic v2 models shared by the buffer, session and display layers.
"""

from inkstream.schemas.config import AssemblerConfig, BoundaryMode
from inkstream.schemas.streaming import (
    FinalizedContent,
    RenderState,
    Snapshot,
    StreamFailure,
    StreamingContent,
)

__all__ = [
    "AssemblerConfig",
    "BoundaryMode",
    "FinalizedContent",
    "RenderState",
    "Snapshot",
    "StreamFailure",
    "StreamingContent",
]
