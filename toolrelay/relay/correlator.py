"""
Request/response correlation for the worker's JSON-RPC stream.

Each outbound call gets the next integer id and one PendingCall entry. The
entry is removed before its future is settled, so an id settles exactly once:
a late response after a timeout, or a duplicate response, finds no entry and
is ignored.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from toolrelay.errors import RpcError, RpcTimeoutError, TransportClosedError
from toolrelay.utils import JsonObject, as_string

from .messages import RelayMessage

log = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT = 20.0

SendFunc = Callable[[RelayMessage], Awaitable[None]]


@dataclass
class PendingCall:
    id: int
    method: str
    future: asyncio.Future
    deadline: float


class RequestCorrelator:
    """Issues numbered calls and settles them from response lines, timeouts or transport loss."""

    def __init__(self, send: SendFunc, default_timeout: float = DEFAULT_REQUEST_TIMEOUT):
        if default_timeout <= 0:
            raise ValueError("default_timeout must be positive")
        self._send = send
        self.default_timeout = default_timeout
        self._pending: Dict[int, PendingCall] = {}
        self._last_id = 0
        self._closed: Optional[TransportClosedError] = None

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def closed(self) -> bool:
        return self._closed is not None

    def _closed_error(self) -> TransportClosedError:
        assert self._closed is not None
        return TransportClosedError(
            self._closed.message, returncode=self._closed.returncode, signal=self._closed.signal
        )

    async def call(self, method: str, params: Optional[JsonObject] = None, timeout: Optional[float] = None) -> Any:
        """
        Send a request and wait for its result.

        Raises:
            RpcError: The worker answered with an error object
            RpcTimeoutError: No answer before the deadline
            TransportClosedError: The worker exited, or exits while waiting
        """
        if not method:
            raise ValueError("method is required")
        if timeout is None:
            timeout = self.default_timeout
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        if self._closed is not None:
            raise self._closed_error()

        self._last_id += 1
        request_id = self._last_id

        loop = asyncio.get_running_loop()
        future = loop.create_future()
        self._pending[request_id] = PendingCall(
            id=request_id, method=method, future=future, deadline=loop.time() + timeout
        )

        try:
            await self._send(RelayMessage.request(method, request_id, params))
            return await asyncio.wait_for(future, timeout=timeout)
        except asyncio.TimeoutError:
            log.debug(f"[RequestCorrelator] {method} (id: {request_id}) timed out after {timeout}s")
            raise RpcTimeoutError(method, timeout) from None
        finally:
            self._pending.pop(request_id, None)

    def resolve(self, message: JsonObject) -> bool:
        """
        Settle the pending call a response line answers.

        Returns False when no call is waiting for that id.
        """
        request_id = message.get("id")
        pending = self._pending.pop(request_id, None)
        if pending is None or pending.future.done():
            log.debug(f"[RequestCorrelator] No pending call for response {request_id}")
            return False

        error = message.get("error")
        if isinstance(error, dict):
            rpc_error = RpcError(
                pending.method,
                code=error.get("code"),
                detail=as_string(error.get("message")),
                data=error.get("data"),
            )
            pending.future.set_exception(rpc_error)
            log.debug(f"[RequestCorrelator] {pending.method} (id: {request_id}) failed: {rpc_error.message}")
        else:
            pending.future.set_result(message.get("result"))
            log.debug(f"[RequestCorrelator] {pending.method} (id: {request_id}) completed")
        return True

    def fail_all(self, reason: str, returncode: Optional[int] = None, signal: Optional[int] = None) -> int:
        """Fail every outstanding call with a transport error. Returns how many were failed."""
        pending_calls = list(self._pending.values())
        self._pending.clear()
        for pending in pending_calls:
            if not pending.future.done():
                pending.future.set_exception(
                    TransportClosedError(reason, returncode=returncode, signal=signal)
                )
        return len(pending_calls)

    def close(self, reason: str, returncode: Optional[int] = None, signal: Optional[int] = None) -> None:
        """Fail outstanding calls and make every later call fail fast with the same reason."""
        if self._closed is None:
            self._closed = TransportClosedError(reason, returncode=returncode, signal=signal)
        failed = self.fail_all(reason, returncode=returncode, signal=signal)
        if failed:
            log.warning(f"[RequestCorrelator] Failed {failed} pending call(s): {reason}")
