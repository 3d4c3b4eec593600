"""
Relay Gateway

Owns one worker process and exposes its JSON-RPC surface as coroutines.

Inbound lines are routed by id: a numeric id answers one of our calls and goes
to the correlator, anything else is a notification and is enriched, then fanned
out to subscribers. Every domain call first awaits the one-time session
handshake (``initialize`` followed by the ``initialized`` notification).
"""

import asyncio
import copy
import json
import logging
import time
from typing import Any, Callable, List, Optional, Sequence

from toolrelay.errors import ProtocolError, TransportClosedError
from toolrelay.settings import RelayConfig
from toolrelay.utils import JsonObject, as_record, as_string
from toolrelay.widgets import UiRenderPolicy

from .channels import RelayChannel, StdioChannel
from .correlator import RequestCorrelator
from .enrichment import enrich_notification
from .messages import RelayMessage, is_numeric_id
from .resources import (
    DEFAULT_RESOURCE_READ_ATTEMPTS,
    DEFAULT_TEMPLATE_READ_ATTEMPTS,
    ReadAttempt,
    ResourceReadResult,
    ResourceResolver,
    ResourceTemplateReadResult,
)
from .status_cache import ServerStatusSnapshot, StatusDirectoryCache
from .subscribers import Listener, NotificationFanout

log = logging.getLogger(__name__)

GATEWAY_CLOSED = "gateway closed"


def _data_list(result: Any) -> List[JsonObject]:
    data = (as_record(result) or {}).get("data")
    return data if isinstance(data, list) else []


class RelayGateway:
    """
    Async client for a long-lived worker speaking line-delimited JSON-RPC.

    Args:
        config: Command, timeouts, cache tuning and handshake identity
        channel: Transport to use instead of spawning ``config.command`` over stdio
        ui_policy: Render policy applied during enrichment; defaults to ``config.ui_policy``
        resource_attempts: Call shapes tried in order when reading a resource
        template_attempts: Call shapes tried in order when reading a resource template
        clock: Monotonic time source for the status cache
    """

    def __init__(
        self,
        config: Optional[RelayConfig] = None,
        channel: Optional[RelayChannel] = None,
        ui_policy: Optional[UiRenderPolicy] = None,
        resource_attempts: Sequence[ReadAttempt] = DEFAULT_RESOURCE_READ_ATTEMPTS,
        template_attempts: Sequence[ReadAttempt] = DEFAULT_TEMPLATE_READ_ATTEMPTS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or RelayConfig()
        self.channel = channel or StdioChannel(self.config.command)
        self.ui_policy = ui_policy if ui_policy is not None else self.config.ui_policy

        self.correlator = RequestCorrelator(self._send, default_timeout=self.config.request_timeout)
        self.fanout = NotificationFanout()
        self.status_cache = StatusDirectoryCache(
            self._fetch_status_page,
            refresh_interval=self.config.status_refresh_interval,
            page_size=self.config.status_page_size,
            clock=clock,
        )
        self.resources = ResourceResolver(
            self.status_cache,
            self._request,
            resource_attempts=resource_attempts,
            template_attempts=template_attempts,
            attempt_timeout=self.config.resource_read_timeout,
        )

        self._started = False
        self._closing = False
        self._start_lock = asyncio.Lock()
        self._message_listener_task: Optional[asyncio.Task] = None
        self._handshake: Optional[asyncio.Task] = None

    @property
    def started(self) -> bool:
        return self._started

    @property
    def closed(self) -> bool:
        return self._closing

    async def __aenter__(self) -> "RelayGateway":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:
        await self.close()

    async def start(self) -> None:
        """Spawn the worker and begin reading its output. Later calls are no-ops."""
        async with self._start_lock:
            if self._closing:
                raise TransportClosedError(GATEWAY_CLOSED)
            if self._started:
                return

            log.info(f"[RelayGateway] Starting {self.channel.name}")
            await self.channel.connect()
            self._message_listener_task = asyncio.create_task(self._message_listener())
            self._started = True

    async def close(self) -> None:
        """Stop writing, fail outstanding calls, then stop the worker."""
        if self._closing:
            return
        self._closing = True
        log.info(f"[RelayGateway] Closing {self.channel.name}")

        self.correlator.close(GATEWAY_CLOSED)

        await self.channel.close()

        if self._message_listener_task is not None and not self._message_listener_task.done():
            self._message_listener_task.cancel()
            try:
                await self._message_listener_task
            except asyncio.CancelledError:
                pass

        self._started = False
        log.info("[RelayGateway] Closed")

    async def _send(self, message: RelayMessage) -> None:
        if self._closing:
            raise TransportClosedError(GATEWAY_CLOSED)
        await self.channel.send(message)

    async def _message_listener(self) -> None:
        log.debug("[RelayGateway] Starting message listener")
        reason = f"{self.channel.name} output ended"
        try:
            async for message in self.channel.listen():
                self._handle_message(message)
        except Exception as e:
            reason = f"{self.channel.name} stream failed: {e}"
            log.error(f"[RelayGateway] Message listener error: {e}")
        finally:
            status = self.channel.exit_status
            if self._closing:
                reason = GATEWAY_CLOSED
            elif status is not None:
                reason = status.describe(self.channel.name)
            self.correlator.close(
                reason,
                returncode=status.returncode if status else None,
                signal=status.signal if status else None,
            )
            log.debug("[RelayGateway] Message listener stopped")

    def _handle_message(self, message: JsonObject) -> None:
        try:
            if is_numeric_id(message.get("id")):
                self.correlator.resolve(message)
                return
            self.fanout.emit(enrich_notification(message, self.status_cache, self.ui_policy))
        except Exception:
            log.exception(f"[RelayGateway] Error handling message: {message.get('method')}")

    async def _initialize_session(self) -> None:
        log.info("[RelayGateway] Initializing session")
        await self.correlator.call(
            "initialize",
            {
                "clientInfo": {
                    "name": self.config.client_name,
                    "title": self.config.client_title,
                    "version": self.config.client_version,
                }
            },
        )
        await self._send(RelayMessage.notification("initialized", {}))
        log.info("[RelayGateway] Session initialized")

    def _on_handshake_done(self, task: asyncio.Task) -> None:
        # Retrieve the outcome even when every waiter has gone away.
        if not task.cancelled():
            exc = task.exception()
            if exc is None:
                return
            log.warning(f"[RelayGateway] Session handshake failed: {exc!r}")
        if self._handshake is task:
            self._handshake = None

    async def _ensure_initialized(self) -> None:
        await self.start()
        if self._handshake is None:
            self._handshake = asyncio.create_task(self._initialize_session())
            self._handshake.add_done_callback(self._on_handshake_done)
        handshake = self._handshake
        try:
            await asyncio.shield(handshake)
        except Exception:
            # Let a later call retry the handshake.
            if self._handshake is handshake:
                self._handshake = None
            raise

    async def _request(self, method: str, params: Optional[JsonObject] = None, timeout: Optional[float] = None) -> Any:
        await self._ensure_initialized()
        return await self.correlator.call(method, params, timeout)

    async def _fetch_status_page(self, cursor: Optional[str], limit: int) -> Any:
        return await self._request("mcpServerStatus/list", {"cursor": cursor, "limit": limit})

    async def initialize(self) -> None:
        """Start the worker and complete the session handshake if that has not happened yet."""
        await self._ensure_initialized()

    async def wait_closed(self) -> None:
        """Wait until the worker's output ends."""
        if self._message_listener_task is not None:
            await asyncio.shield(self._message_listener_task)

    async def call(self, method: str, params: Optional[JsonObject] = None, timeout: Optional[float] = None) -> Any:
        """Issue any JSON-RPC call after the session handshake."""
        return await self._request(method, params, timeout)

    async def notify(self, method: str, params: Optional[JsonObject] = None) -> None:
        """Send a fire-and-forget notification."""
        await self.start()
        await self._send(RelayMessage.notification(method, params))

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Receive every (enriched) notification from now on. Returns the unsubscribe function."""
        return self.fanout.subscribe(listener)

    async def list_models(self, limit: int = 50) -> List[JsonObject]:
        result = await self._request("model/list", {"limit": limit, "includeHidden": False})
        return _data_list(result)

    async def list_apps(self, force_refetch: bool = False, limit: int = 100) -> List[JsonObject]:
        result = await self._request("app/list", {"cursor": None, "limit": limit, "forceRefetch": force_refetch})
        return _data_list(result)

    async def start_thread(self, model: Optional[str] = None) -> str:
        """
        Start a conversation thread.

        Returns:
            The new thread's id

        Raises:
            ProtocolError: The response did not carry ``thread.id``
        """
        params: JsonObject = {"model": model} if model else {}
        result = as_record(await self._request("thread/start", params)) or {}
        thread = as_record(result.get("thread")) or {}
        thread_id = as_string(thread.get("id"))
        if not thread_id:
            raise ProtocolError("thread/start did not return thread.id")
        return thread_id

    async def start_turn(self, thread_id: str, input: List[JsonObject]) -> None:
        await self._request("turn/start", {"threadId": thread_id, "input": input})

    async def steer_turn(self, thread_id: str, input: List[JsonObject]) -> None:
        await self._request("turn/steer", {"threadId": thread_id, "input": input})

    async def relay_tool_call_via_turn(
        self,
        thread_id: str,
        tool_name: str,
        arguments: Any = None,
        app_slug: Optional[str] = None,
    ) -> None:
        """Ask the agent, within a running turn, to call one tool and return its raw result."""
        serialized = json.dumps(arguments if arguments is not None else {}, separators=(",", ":"), ensure_ascii=False)
        mention = f"${app_slug} " if app_slug else ""
        text = (
            f'{mention}Call tool "{tool_name}" with arguments {serialized}. '
            "Return the raw tool result with minimal additional narration."
        )
        await self.steer_turn(thread_id, [{"type": "text", "text": text}])

    async def list_server_status(self, force_refresh: bool = False) -> List[ServerStatusSnapshot]:
        return await self.status_cache.list_server_status(force_refresh=force_refresh)

    async def read_tool(self, server: str, tool: str) -> Optional[JsonObject]:
        await self.status_cache.list_server_status()
        return copy.deepcopy(self.status_cache.get_tool_descriptor(server, tool))

    async def read_resource(self, server: str, uri: str) -> ResourceReadResult:
        return await self.resources.read_resource(server, uri)

    async def read_resource_template(self, server: str, uri_template: str) -> ResourceTemplateReadResult:
        return await self.resources.read_resource_template(server, uri_template)
