"""Tests for cancel module."""

import asyncio

import pytest

from ollama_stream.resilience import CancellableStream, CancelReason, CancelToken


async def _numbers(n: int):
    for i in range(n):
        yield i


class TestCancelToken:
    """Tests for CancelToken."""

    def test_initial_state(self) -> None:
        """Test initial token state."""
        token = CancelToken()
        assert token.is_cancelled is False
        assert token.reason is None

    def test_cancel(self) -> None:
        """Test cancellation."""
        token = CancelToken()
        assert token.cancel(CancelReason.TIMEOUT) is True
        assert token.is_cancelled is True
        assert token.reason == CancelReason.TIMEOUT
        assert token.state.timestamp is not None

    def test_cancel_twice(self) -> None:
        """Test the first reason wins."""
        token = CancelToken()
        assert token.cancel(CancelReason.USER_REQUEST) is True
        assert token.cancel(CancelReason.TIMEOUT) is False
        assert token.reason == CancelReason.USER_REQUEST

    def test_cancel_with_metadata(self) -> None:
        """Test cancellation with metadata."""
        token = CancelToken()
        token.cancel(CancelReason.TIMEOUT, deadline_s=80)
        assert token.state.metadata["deadline_s"] == 80

    def test_on_cancel_callback(self) -> None:
        """Test callback on cancel."""
        reasons: list[CancelReason] = []
        token = CancelToken().on_cancel(reasons.append)
        token.cancel(CancelReason.SHUTDOWN)
        assert reasons == [CancelReason.SHUTDOWN]

    def test_on_cancel_after_cancelled(self) -> None:
        """Test a late callback runs immediately."""
        token = CancelToken()
        token.cancel()
        reasons: list[CancelReason] = []
        token.on_cancel(reasons.append)
        assert reasons == [CancelReason.USER_REQUEST]

    def test_failing_callback_does_not_block_others(self) -> None:
        """Test one failing callback does not stop the rest."""
        reasons: list[CancelReason] = []

        def broken(_reason: CancelReason) -> None:
            raise RuntimeError("callback bug")

        token = CancelToken().on_cancel(broken).on_cancel(reasons.append)
        assert token.cancel() is True
        assert reasons == [CancelReason.USER_REQUEST]

    def test_raise_if_cancelled(self) -> None:
        """Test raise_if_cancelled."""
        token = CancelToken()
        token.raise_if_cancelled()
        token.cancel()
        with pytest.raises(asyncio.CancelledError):
            token.raise_if_cancelled()

    @pytest.mark.asyncio
    async def test_wait(self) -> None:
        """Test waiting for cancellation."""
        token = CancelToken()

        async def cancel_later() -> None:
            await asyncio.sleep(0.01)
            token.cancel(CancelReason.TIMEOUT)

        task = asyncio.create_task(cancel_later())
        assert await token.wait() == CancelReason.TIMEOUT
        await task


class TestCancellableStream:
    """Tests for CancellableStream."""

    @pytest.mark.asyncio
    async def test_passes_items_through(self) -> None:
        """Test an uncancelled stream is unchanged."""
        stream = CancellableStream(_numbers(3), CancelToken())
        assert [i async for i in stream] == [0, 1, 2]
        assert stream.finished is True

    @pytest.mark.asyncio
    async def test_cancel_mid_stream(self) -> None:
        """Test cancellation stops at the next item boundary."""
        token = CancelToken()
        stream = CancellableStream(_numbers(10), token)
        items: list[int] = []

        with pytest.raises(asyncio.CancelledError):
            async for i in stream:
                items.append(i)
                if i == 2:
                    token.cancel()

        assert items == [0, 1, 2]
        assert stream.finished is True

    @pytest.mark.asyncio
    async def test_aclose_closes_source(self) -> None:
        """Test closing the wrapper closes the wrapped iterator."""
        source = _numbers(5)
        stream = CancellableStream(source, CancelToken())
        assert await stream.__anext__() == 0
        await stream.aclose()
        assert stream.finished is True
        with pytest.raises(StopAsyncIteration):
            await source.__anext__()
