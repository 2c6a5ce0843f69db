"""Tests for the polling loop."""

import asyncio

import pytest

from andee.infrastructure.poll_loop import PollLoop, start_poll_loop


class TestPollLoop:
    @pytest.mark.asyncio
    async def test_calls_repeatedly_until_stopped(self):
        calls = []

        async def tick() -> None:
            calls.append(1)

        loop = start_poll_loop("Test", 0.01, tick)
        assert loop.running
        await asyncio.sleep(0.05)
        await loop.stop()

        assert len(calls) >= 2
        assert not loop.running
        count = len(calls)
        await asyncio.sleep(0.03)
        assert len(calls) == count

    @pytest.mark.asyncio
    async def test_errors_do_not_stop_the_loop(self):
        calls = []

        async def flaky() -> None:
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("first call fails")

        loop = PollLoop("Flaky", 0.01, flaky)
        loop.start()
        await asyncio.sleep(0.05)
        await loop.stop()

        assert len(calls) >= 2
