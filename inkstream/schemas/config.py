"""Assembler configuration schemas.

Defines the boundary character sets used to split streamed text into
settled segments, and the AssemblerConfig loaded from defaults.toml.
"""

from __future__ import annotations

import re
from enum import StrEnum

from pydantic import BaseModel, Field


class BoundaryMode(StrEnum):
    """Which characters terminate a segment.

    WHITESPACE splits on every character matched by ``\\s`` (spaces, tabs,
    newlines and the Unicode space separators). SPACE splits on U+0020 only.
    """

    WHITESPACE = "whitespace"
    SPACE = "space"

    @property
    def head_pattern(self) -> re.Pattern[str]:
        """Greedy pattern matching everything up to the last boundary."""
        return _HEAD_PATTERNS[self]

    @property
    def unit_pattern(self) -> re.Pattern[str]:
        """Pattern matching one boundary-terminated unit."""
        return _UNIT_PATTERNS[self]


_HEAD_PATTERNS: dict[BoundaryMode, re.Pattern[str]] = {
    BoundaryMode.WHITESPACE: re.compile(r".*\s", re.DOTALL),
    BoundaryMode.SPACE: re.compile(r".* ", re.DOTALL),
}

_UNIT_PATTERNS: dict[BoundaryMode, re.Pattern[str]] = {
    BoundaryMode.WHITESPACE: re.compile(r"\S*\s"),
    BoundaryMode.SPACE: re.compile(r"[^ ]* "),
}


class AssemblerConfig(BaseModel):
    """Tunables for a streaming session."""

    throttle_ms: float = Field(
        default=50.0,
        gt=0.0,
        description="Minimum interval between emitted snapshots, in milliseconds",
    )
    boundary: BoundaryMode = Field(
        default=BoundaryMode.WHITESPACE,
        description="Character set that settles a segment",
    )

    @property
    def throttle_seconds(self) -> float:
        """Throttle window in seconds, as the event loop expects it."""
        return self.throttle_ms / 1000.0
