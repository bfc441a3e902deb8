"""
Unit tests for CancellationToken.
"""

import asyncio

import pytest

from learnforge.core.cancellation import CancellationToken, ensure_token
from learnforge.core.errors import GenerationCancelled


class TestCancellationToken:
    def test_fresh_token_is_live(self):
        token = CancellationToken()
        token.raise_if_cancelled()
        assert not token.cancelled
        assert token.remaining() is None

    def test_cancel(self):
        token = CancellationToken()
        token.cancel("user navigated away")
        assert token.cancelled
        with pytest.raises(GenerationCancelled, match="user navigated away"):
            token.raise_if_cancelled()

    def test_deadline(self, clock):
        token = CancellationToken(deadline_seconds=5, clock=clock)
        assert token.remaining() == 5
        clock.advance(3)
        assert token.remaining() == 2
        clock.advance(2)
        assert token.expired
        with pytest.raises(GenerationCancelled) as exc_info:
            token.raise_if_cancelled()
        assert exc_info.value.code == "CANCELLED"

    def test_ensure_token(self):
        token = CancellationToken()
        assert ensure_token(token) is token
        assert isinstance(ensure_token(None), CancellationToken)


class TestWait:
    @pytest.mark.asyncio
    async def test_wait_uses_injected_sleep(self, no_sleep):
        token = CancellationToken()
        await token.wait(2.5, sleep=no_sleep)
        assert no_sleep.delays == [2.5]

    @pytest.mark.asyncio
    async def test_zero_wait_does_not_sleep(self, no_sleep):
        await CancellationToken().wait(0, sleep=no_sleep)
        assert no_sleep.delays == []

    @pytest.mark.asyncio
    async def test_wait_on_cancelled_token_raises_immediately(self, no_sleep):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(GenerationCancelled):
            await token.wait(1, sleep=no_sleep)
        assert no_sleep.delays == []

    @pytest.mark.asyncio
    async def test_cancel_interrupts_pending_wait(self):
        token = CancellationToken()

        async def cancel_soon():
            await asyncio.sleep(0.01)
            token.cancel("stop")

        canceller = asyncio.ensure_future(cancel_soon())
        loop = asyncio.get_running_loop()
        started = loop.time()
        with pytest.raises(GenerationCancelled):
            await token.wait(30)
        assert loop.time() - started < 5
        await canceller

    @pytest.mark.asyncio
    async def test_wait_past_deadline_raises(self, clock, clocked_sleep):
        token = CancellationToken(deadline_seconds=3, clock=clock)
        with pytest.raises(GenerationCancelled):
            await token.wait(10, sleep=clocked_sleep)
        assert clocked_sleep.delays == [3]
