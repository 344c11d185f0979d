"""
Tests for the per-session cancellation token.
"""

import asyncio

import pytest

from ogc_loader.cancellation import CancellationToken, is_cancellation
from ogc_loader.exceptions import LoadCancelledError, PageFetchError


class TestCancellationToken:

    def test_initial_state(self):
        token = CancellationToken()
        assert not token.cancelled
        assert token.reason is None
        token.raise_if_cancelled()

    def test_cancel_is_idempotent_first_reason_wins(self):
        token = CancellationToken()
        token.cancel("Extent changed")
        token.cancel("Other")

        assert token.cancelled
        assert token.reason == "Extent changed"
        with pytest.raises(LoadCancelledError) as exc_info:
            token.raise_if_cancelled()
        assert exc_info.value.reason == "Extent changed"

    @pytest.mark.asyncio
    async def test_run_returns_result(self):
        async def work():
            return 42

        assert await CancellationToken().run(work()) == 42

    @pytest.mark.asyncio
    async def test_run_after_cancel_does_not_start(self):
        started = False

        async def work():
            nonlocal started
            started = True

        token = CancellationToken()
        token.cancel()
        with pytest.raises(LoadCancelledError):
            await token.run(work())
        assert not started

    @pytest.mark.asyncio
    async def test_cancel_aborts_in_flight_calls(self):
        token = CancellationToken()

        async def slow():
            await asyncio.sleep(10)

        calls = [asyncio.ensure_future(token.run(slow())) for _ in range(3)]
        await asyncio.sleep(0)
        token.cancel("Extent changed")

        results = await asyncio.gather(*calls, return_exceptions=True)
        assert all(isinstance(r, LoadCancelledError) for r in results)

    @pytest.mark.asyncio
    async def test_cancel_after_call_completed(self):
        token = CancellationToken()

        async def work():
            asyncio.get_running_loop().call_soon(token.cancel, "Extent changed")
            return 42

        with pytest.raises(LoadCancelledError) as exc_info:
            await token.run(work())
        assert exc_info.value.reason == "Extent changed"

    @pytest.mark.asyncio
    async def test_outer_cancellation_propagates_unchanged(self):
        token = CancellationToken()

        async def slow():
            await asyncio.sleep(10)

        outer = asyncio.ensure_future(token.run(slow()))
        await asyncio.sleep(0)
        outer.cancel()

        with pytest.raises(asyncio.CancelledError):
            await outer
        assert not token.cancelled

    @pytest.mark.asyncio
    async def test_errors_pass_through(self):
        async def failing():
            raise PageFetchError("boom", status_code=500)

        with pytest.raises(PageFetchError):
            await CancellationToken().run(failing())


def test_is_cancellation():
    assert is_cancellation(LoadCancelledError())
    assert not is_cancellation(PageFetchError("boom"))
    assert not is_cancellation(asyncio.CancelledError())
