"""In-memory stand-ins for the worker process used across the test suite."""

import asyncio
from typing import Any, Callable, Dict, List, Optional, Union

from toolrelay.errors import TransportClosedError
from toolrelay.relay import ExitStatus, RelayChannel, RelayMessage

# Handler result meaning "never answer this request".
NO_REPLY = object()

Handler = Union[Any, Callable[[Dict[str, Any]], Any]]


class WorkerFault(Exception):
    """Raised by a handler to make the scripted worker answer with an error object."""

    def __init__(self, code: int, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class ScriptedChannel(RelayChannel):
    """
    Channel backed by a queue instead of a subprocess.

    Requests are answered from ``handlers`` keyed by method name. A handler is
    either the result itself or a callable receiving the params. Methods with
    no handler are answered with a "method not found" error.
    """

    def __init__(self, handlers: Optional[Dict[str, Handler]] = None):
        self.handlers: Dict[str, Handler] = {"initialize": {"userAgent": "scripted-worker"}}
        self.handlers.update(handlers or {})
        self.sent: List[RelayMessage] = []
        self.connect_count = 0
        self.closed = False
        self._queue: Optional[asyncio.Queue] = None
        self._exit_status: Optional[ExitStatus] = None

    @property
    def exit_status(self) -> Optional[ExitStatus]:
        return self._exit_status

    def calls_to(self, method: str) -> List[Dict[str, Any]]:
        """Params of every request sent for ``method``, in order."""
        return [message.params for message in self.sent if message.method == method and message.id is not None]

    def notifications_sent(self) -> List[str]:
        return [message.method for message in self.sent if message.id is None]

    async def connect(self) -> None:
        self.connect_count += 1
        self._queue = asyncio.Queue()

    async def send(self, message: RelayMessage) -> None:
        if self._queue is None or self.closed or self._exit_status is not None:
            raise TransportClosedError("scripted worker is not running")
        self.sent.append(message)
        if message.id is None:
            return

        if message.method not in self.handlers:
            self.push({"id": message.id, "error": {"code": -32601, "message": f"Method not found: {message.method}"}})
            return

        handler = self.handlers[message.method]
        try:
            result = handler(message.params) if callable(handler) else handler
        except WorkerFault as e:
            self.push({"id": message.id, "error": {"code": e.code, "message": e.message}})
            return

        if result is NO_REPLY:
            return
        self.push({"id": message.id, "result": result})

    def push(self, data: Dict[str, Any]) -> None:
        """Deliver one inbound line as if the worker had written it."""
        assert self._queue is not None, "connect() first"
        self._queue.put_nowait(data)

    def exit(self, returncode: Optional[int] = 1, signal: Optional[int] = None) -> None:
        """Simulate the worker process ending."""
        self._exit_status = ExitStatus(returncode=returncode, signal=signal)
        if self._queue is not None:
            self._queue.put_nowait(None)

    async def listen(self):
        assert self._queue is not None, "connect() first"
        while True:
            data = await self._queue.get()
            if data is None:
                return
            yield data

    async def close(self) -> None:
        self.closed = True
        if self._queue is not None:
            self._queue.put_nowait(None)


def status_page(rows: List[Dict[str, Any]], next_cursor: Optional[str] = None) -> Dict[str, Any]:
    return {"data": rows, "nextCursor": next_cursor}


def server_row(name: str, tools: Optional[Dict[str, Any]] = None, resources=None, resource_templates=None) -> Dict[str, Any]:
    return {
        "name": name,
        "tools": tools or {},
        "resources": resources or [],
        "resourceTemplates": resource_templates or [],
    }
