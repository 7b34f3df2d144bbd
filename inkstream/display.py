"""Rich Live renderer for streaming sessions.

Draws settled text as-is, the pending word dimmed, and a block cursor
while streaming. Once the text is finalized it is re-rendered as
markdown in one pass.
"""

from __future__ import annotations

from rich.console import Console, Group, RenderableType
from rich.live import Live
from rich.markdown import Markdown
from rich.text import Text

from inkstream.schemas.streaming import (
    FinalizedContent,
    RenderState,
    Snapshot,
    StreamFailure,
    StreamingContent,
)
from inkstream.session import SnapshotListener

_CURSOR = "▌"


def _failure_line(error: StreamFailure) -> Text:
    text = Text()
    text.append("✗ ", style="bold red")
    text.append(f"Stream failed: {error.error_type}", style="red")
    if error.message:
        text.append(f": {error.message}", style="dim red")
    return text


def render_snapshot(snapshot: Snapshot, *, cursor: bool = True) -> Text:
    """Render a snapshot as plain stable text plus dimmed pending text."""
    text = Text(snapshot.stable_text)
    if snapshot.pending_text:
        text.append(snapshot.pending_text, style="dim")
    if cursor and snapshot.is_streaming:
        text.append(_CURSOR, style="bold cyan")
    return text


def render_content(content: RenderState) -> RenderableType:
    """Render either variant of the session render state."""
    match content:
        case StreamingContent(snapshot=snapshot):
            body: RenderableType = render_snapshot(snapshot)
            if snapshot.error is not None:
                return Group(body, _failure_line(snapshot.error))
            return body
        case FinalizedContent(text=text, error=error):
            markdown = Markdown(text)
            if error is not None:
                return Group(markdown, _failure_line(error))
            return markdown
    raise TypeError(f"Unknown render state: {type(content).__name__}")


class LiveRenderer:
    """Rich Live display fed by session snapshots.

    Use as a context manager around the session's lifetime and register
    ``create_listener()`` on the session.
    """

    def __init__(self, console: Console, *, markdown: bool = True) -> None:
        self._console = console
        self._markdown = markdown
        self._live: Live | None = None
        self._latest: Snapshot | None = None
        self._updates: int = 0

    @property
    def updates(self) -> int:
        """Number of snapshots drawn."""
        return self._updates

    @property
    def latest(self) -> Snapshot | None:
        return self._latest

    def __enter__(self) -> LiveRenderer:
        """Start the Rich Live display."""
        self._live = Live(
            Text(""),
            console=self._console,
            auto_refresh=False,
            transient=False,
        )
        self._live.__enter__()
        return self

    def __exit__(self, *args: object) -> None:
        """Stop the Rich Live display."""
        if self._live:
            self._live.__exit__(*args)
            self._live = None

    def create_listener(self) -> SnapshotListener:
        """Create a snapshot listener that redraws the display."""

        def _handle(snapshot: Snapshot) -> None:
            self._latest = snapshot
            self._updates += 1
            self._refresh(snapshot)

        return _handle

    def _refresh(self, snapshot: Snapshot) -> None:
        if self._live is None:
            return
        self._live.update(self._renderable(snapshot), refresh=True)

    def _renderable(self, snapshot: Snapshot) -> RenderableType:
        content: RenderState
        if snapshot.is_complete and self._markdown:
            content = FinalizedContent(text=snapshot.full_text, error=snapshot.error)
        else:
            content = StreamingContent(snapshot=snapshot)
        return render_content(content)
