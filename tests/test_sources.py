"""Tests for inkstream.sources: push channel and text replay."""

from __future__ import annotations

import asyncio

import pytest

from inkstream.sources import ChunkChannel, replay_text, split_chunks


async def _drain(source) -> list[str]:
    return [chunk async for chunk in source]


class TestSplitChunks:
    def test_even_split(self):
        assert list(split_chunks("abcdef", 2)) == ["ab", "cd", "ef"]

    def test_remainder(self):
        assert list(split_chunks("abcde", 2)) == ["ab", "cd", "e"]

    def test_empty_text(self):
        assert list(split_chunks("", 3)) == []

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            list(split_chunks("abc", 0))


class TestReplayText:
    @pytest.mark.asyncio
    async def test_yields_all_text(self):
        chunks = await _drain(replay_text("hello world", chunk_size=4))
        assert chunks == ["hell", "o wo", "rld"]
        assert "".join(chunks) == "hello world"

    @pytest.mark.asyncio
    async def test_delay_between_chunks(self):
        loop = asyncio.get_running_loop()
        start = loop.time()
        await _drain(replay_text("abcd", chunk_size=1, delay=0.01))
        assert loop.time() - start >= 0.03


class TestChunkChannel:
    @pytest.mark.asyncio
    async def test_push_then_close(self):
        channel = ChunkChannel()
        assert channel.push("a") is True
        assert channel.push("b") is True
        channel.close()
        assert await _drain(channel) == ["a", "b"]
        assert channel.closed is True

    @pytest.mark.asyncio
    async def test_push_after_close_is_ignored(self):
        channel = ChunkChannel()
        channel.push("kept")
        channel.close()
        assert channel.push("dropped") is False
        assert await _drain(channel) == ["kept"]

    @pytest.mark.asyncio
    async def test_fail_raises_after_queued_chunks(self):
        channel = ChunkChannel()
        channel.push("partial")
        channel.fail(ConnectionResetError("peer reset"))
        received = []
        with pytest.raises(ConnectionResetError):
            async for chunk in channel:
                received.append(chunk)
        assert received == ["partial"]

    @pytest.mark.asyncio
    async def test_close_after_fail_is_noop(self):
        channel = ChunkChannel()
        channel.fail(RuntimeError("boom"))
        channel.close()
        with pytest.raises(RuntimeError):
            await _drain(channel)

    @pytest.mark.asyncio
    async def test_detach_drops_queued_chunks(self):
        channel = ChunkChannel()
        channel.push("stale")
        channel.detach()
        assert channel.push("late") is False
        assert await _drain(channel) == []

    @pytest.mark.asyncio
    async def test_consumer_waits_for_producer(self):
        channel = ChunkChannel()

        async def produce():
            for word in ["slow ", "producer"]:
                await asyncio.sleep(0.01)
                channel.push(word)
            channel.close()

        producer = asyncio.ensure_future(produce())
        chunks = await _drain(channel)
        await producer
        assert chunks == ["slow ", "producer"]
