"""Streaming schemas for snapshot delivery.

Defines the immutable Snapshot handed to consumers on every emission,
the StreamFailure attached when the source stream errors, and the
two-variant render state (streaming vs finalized) used by the display.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field


class StreamFailure(BaseModel):
    """Summary of the exception that ended a source stream."""

    model_config = ConfigDict(frozen=True)

    error_type: str = Field(description="Exception class name")
    message: str = Field(default="", description="Exception message")

    @classmethod
    def from_exception(cls, exc: BaseException) -> StreamFailure:
        return cls(error_type=type(exc).__name__, message=str(exc))


class Snapshot(BaseModel):
    """Point-in-time view of a token buffer.

    ``stable_text`` never changes once shown: every later snapshot of the
    same session starts with it. ``pending_text`` is the trailing word
    still being formed and may be replaced by the next snapshot.
    """

    model_config = ConfigDict(frozen=True)

    stable_text: str = Field(default="", description="Concatenated settled segments")
    pending_text: str = Field(default="", description="In-flight trailing segment")
    is_streaming: bool = Field(
        default=False, description="True while chunks are still expected"
    )
    is_complete: bool = Field(
        default=False, description="True once the buffer has been finalized"
    )
    revision: int = Field(
        default=0, ge=0, description="Number of buffer mutations so far"
    )
    error: StreamFailure | None = Field(
        default=None, description="Set when the source stream failed"
    )

    @property
    def full_text(self) -> str:
        """Stable and pending text joined."""
        return self.stable_text + self.pending_text


class StreamingContent(BaseModel):
    """Render state while text is still arriving."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["streaming"] = "streaming"
    snapshot: Snapshot = Field(description="Latest snapshot to draw")


class FinalizedContent(BaseModel):
    """Render state once the text will never change again."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["finalized"] = "finalized"
    text: str = Field(default="", description="Full final text")
    error: StreamFailure | None = Field(
        default=None, description="Set when the stream ended with an error"
    )


RenderState = Annotated[
    StreamingContent | FinalizedContent, Field(discriminator="kind")
]
