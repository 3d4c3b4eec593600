"""Tests for request/response correlation."""

import asyncio

import pytest

from toolrelay.errors import RpcError, RpcTimeoutError, TransportClosedError
from toolrelay.relay import RelayMessage, RequestCorrelator


class RecordingSender:
    def __init__(self):
        self.messages = []

    async def __call__(self, message: RelayMessage) -> None:
        self.messages.append(message)


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def correlator(sender):
    return RequestCorrelator(sender, default_timeout=1.0)


class TestRequestCorrelator:
    """Test id assignment, settlement and failure paths."""

    @pytest.mark.asyncio
    async def test_ids_are_sequential_from_one(self, correlator, sender):
        first = asyncio.create_task(correlator.call("a"))
        second = asyncio.create_task(correlator.call("b"))
        await asyncio.sleep(0)

        assert [message.id for message in sender.messages] == [1, 2]

        correlator.resolve({"id": 1, "result": "one"})
        correlator.resolve({"id": 2, "result": "two"})
        assert await first == "one"
        assert await second == "two"

    @pytest.mark.asyncio
    async def test_out_of_order_responses_reach_their_callers(self, correlator, sender):
        calls = [asyncio.create_task(correlator.call("m", {"n": n})) for n in range(5)]
        await asyncio.sleep(0)

        for message in reversed(sender.messages):
            correlator.resolve({"id": message.id, "result": message.params["n"]})

        assert await asyncio.gather(*calls) == [0, 1, 2, 3, 4]
        assert correlator.pending_count == 0

    @pytest.mark.asyncio
    async def test_error_object_raises_rpc_error(self, correlator):
        call = asyncio.create_task(correlator.call("mcpServer/resource/read"))
        await asyncio.sleep(0)

        correlator.resolve({"id": 1, "error": {"code": -32601, "message": "Method not found"}})

        with pytest.raises(RpcError) as exc_info:
            await call
        assert exc_info.value.code == -32601
        assert exc_info.value.method == "mcpServer/resource/read"
        assert exc_info.value.message == "JSON-RPC -32601: Method not found"

    @pytest.mark.asyncio
    async def test_error_without_code_or_message(self, correlator):
        call = asyncio.create_task(correlator.call("m"))
        await asyncio.sleep(0)

        correlator.resolve({"id": 1, "error": {}})

        with pytest.raises(RpcError, match="JSON-RPC unknown: Unknown error"):
            await call

    @pytest.mark.asyncio
    async def test_non_object_error_is_treated_as_success(self, correlator):
        call = asyncio.create_task(correlator.call("m"))
        await asyncio.sleep(0)

        correlator.resolve({"id": 1, "error": "oops", "result": {"ok": True}})
        assert await call == {"ok": True}

    @pytest.mark.asyncio
    async def test_timeout_then_late_response_is_ignored(self, correlator):
        with pytest.raises(RpcTimeoutError) as exc_info:
            await correlator.call("slow/method", timeout=0.05)

        assert exc_info.value.timeout == 0.05
        assert "slow/method" in exc_info.value.message
        assert correlator.pending_count == 0
        assert correlator.resolve({"id": 1, "result": "late"}) is False

    @pytest.mark.asyncio
    async def test_duplicate_response_settles_once(self, correlator):
        call = asyncio.create_task(correlator.call("m"))
        await asyncio.sleep(0)

        assert correlator.resolve({"id": 1, "result": "first"}) is True
        assert correlator.resolve({"id": 1, "result": "second"}) is False
        assert await call == "first"

    @pytest.mark.asyncio
    async def test_unknown_id_is_ignored(self, correlator):
        assert correlator.resolve({"id": 99, "result": {}}) is False

    @pytest.mark.asyncio
    async def test_close_fails_every_pending_call(self, correlator):
        calls = [asyncio.create_task(correlator.call("m")) for _ in range(3)]
        await asyncio.sleep(0)

        correlator.close("worker exited (code=1, signal=null)", returncode=1)

        results = await asyncio.gather(*calls, return_exceptions=True)
        assert all(isinstance(result, TransportClosedError) for result in results)
        assert all(result.returncode == 1 for result in results)
        assert correlator.pending_count == 0

    @pytest.mark.asyncio
    async def test_calls_after_close_fail_fast(self, correlator, sender):
        correlator.close("worker exited", signal=15)

        with pytest.raises(TransportClosedError) as exc_info:
            await correlator.call("m")

        assert exc_info.value.signal == 15
        assert sender.messages == []

    @pytest.mark.asyncio
    async def test_send_failure_removes_pending_entry(self):
        async def broken_send(message):
            raise TransportClosedError("pipe closed")

        correlator = RequestCorrelator(broken_send)

        with pytest.raises(TransportClosedError):
            await correlator.call("m")
        assert correlator.pending_count == 0

    @pytest.mark.asyncio
    async def test_cancelled_caller_leaves_no_pending_entry(self, correlator):
        call = asyncio.create_task(correlator.call("m"))
        await asyncio.sleep(0)
        assert correlator.pending_count == 1

        call.cancel()
        with pytest.raises(asyncio.CancelledError):
            await call
        assert correlator.pending_count == 0

    @pytest.mark.asyncio
    async def test_rejects_invalid_arguments(self, correlator):
        with pytest.raises(ValueError):
            await correlator.call("")
        with pytest.raises(ValueError):
            await correlator.call("m", timeout=0)

    def test_rejects_non_positive_default_timeout(self, sender):
        with pytest.raises(ValueError):
            RequestCorrelator(sender, default_timeout=0)
