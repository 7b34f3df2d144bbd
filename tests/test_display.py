"""Tests for the live snapshot renderer."""

from __future__ import annotations

import asyncio
from io import StringIO

import pytest
from rich.console import Console, Group
from rich.markdown import Markdown
from rich.text import Text

from inkstream.display import LiveRenderer, render_content, render_snapshot
from inkstream.schemas.streaming import (
    FinalizedContent,
    Snapshot,
    StreamFailure,
    StreamingContent,
)
from inkstream.session import StreamSession


def _console() -> Console:
    return Console(file=StringIO(), width=80, force_terminal=False, color_system=None)


class TestRenderSnapshot:
    def test_stable_and_pending(self):
        snap = Snapshot(stable_text="Hello ", pending_text="wor", is_streaming=True)
        text = render_snapshot(snap)
        assert text.plain == "Hello wor▌"
        assert any(span.style == "dim" for span in text.spans)

    def test_no_cursor_when_not_streaming(self):
        snap = Snapshot(stable_text="Hello ", pending_text="world")
        assert render_snapshot(snap).plain == "Hello world"

    def test_cursor_disabled(self):
        snap = Snapshot(stable_text="Hi ", is_streaming=True)
        assert render_snapshot(snap, cursor=False).plain == "Hi "


class TestRenderContent:
    def test_streaming_variant(self):
        content = StreamingContent(snapshot=Snapshot(stable_text="a ", is_streaming=True))
        rendered = render_content(content)
        assert isinstance(rendered, Text)
        assert rendered.plain.startswith("a ")

    def test_finalized_variant_is_markdown(self):
        rendered = render_content(FinalizedContent(text="# Title\n\nBody"))
        assert isinstance(rendered, Markdown)

    def test_finalized_with_error(self):
        failure = StreamFailure(error_type="ConnectionError", message="lost")
        rendered = render_content(FinalizedContent(text="partial", error=failure))
        assert isinstance(rendered, Group)

        console = Console(record=True, width=80, file=StringIO())
        console.print(rendered)
        output = console.export_text()
        assert "partial" in output
        assert "ConnectionError" in output
        assert "lost" in output

    def test_streaming_with_error(self):
        failure = StreamFailure(error_type="TimeoutError")
        content = StreamingContent(snapshot=Snapshot(stable_text="x", error=failure))
        assert isinstance(render_content(content), Group)

    def test_unknown_state_rejected(self):
        with pytest.raises(TypeError):
            render_content("not a state")


class TestLiveRenderer:
    def test_listener_tracks_updates(self):
        renderer = LiveRenderer(_console())
        listener = renderer.create_listener()
        snap = Snapshot(stable_text="one ")
        listener(snap)
        assert renderer.updates == 1
        assert renderer.latest == snap

    @pytest.mark.asyncio
    async def test_renders_session_output(self):
        console = Console(record=True, width=80, file=StringIO())
        session = StreamSession(throttle_ms=5)

        with LiveRenderer(console) as renderer:
            session.add_listener(renderer.create_listener())
            channel = session.open_channel()
            for word in ["Streaming ", "into ", "the ", "terminal"]:
                channel.push(word)
                await asyncio.sleep(0.01)
            channel.close()
            await session.wait()

        assert renderer.updates >= 1
        assert renderer.latest.is_complete is True
        assert "Streaming into the terminal" in console.export_text()
