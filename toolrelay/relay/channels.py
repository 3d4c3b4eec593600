"""
Relay Transport Channels

Transport abstraction between the gateway and the worker process. The stdio
channel owns the worker subprocess: structured JSON lines travel on stdin and
stdout, while stderr carries the worker's own diagnostics and is only logged.
"""

import asyncio
import logging
import os
import signal as signal_module
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, Optional, Sequence

from toolrelay.errors import TransportClosedError

from .messages import RelayMessage, parse_line

log = logging.getLogger(__name__)

# Resource reads can return whole HTML documents on a single line.
STREAM_LIMIT = 16 * 1024 * 1024
CLOSE_TIMEOUT = 5.0


@dataclass(frozen=True)
class ExitStatus:
    """How the worker process ended. Exactly one of the fields is set once it has exited."""

    returncode: Optional[int] = None
    signal: Optional[int] = None

    @classmethod
    def from_returncode(cls, returncode: Optional[int]) -> "ExitStatus":
        # asyncio reports death-by-signal as a negative return code
        if returncode is not None and returncode < 0:
            return cls(returncode=None, signal=-returncode)
        return cls(returncode=returncode)

    @property
    def signal_name(self) -> Optional[str]:
        if self.signal is None:
            return None
        try:
            return signal_module.Signals(self.signal).name
        except ValueError:
            return str(self.signal)

    def describe(self, name: str) -> str:
        code = "null" if self.returncode is None else str(self.returncode)
        sig = self.signal_name or "null"
        return f"{name} exited (code={code}, signal={sig})"


class RelayChannel(ABC):
    """Abstract base for worker transports."""

    @abstractmethod
    async def connect(self) -> None:
        """Start the worker and open its streams."""
        pass

    @abstractmethod
    async def send(self, message: RelayMessage) -> None:
        """
        Write one framed message.

        Raises:
            TransportClosedError: If the channel is not connected, closing, or the pipe broke
        """
        pass

    @abstractmethod
    def listen(self) -> AsyncIterator[Dict[str, Any]]:
        """
        Yield every inbound JSON object until the worker's output ends.

        Lines that are not JSON objects are dropped.
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Stop the worker and release resources."""
        pass

    @property
    @abstractmethod
    def exit_status(self) -> Optional[ExitStatus]:
        """Set once the worker has exited."""
        pass

    @property
    def name(self) -> str:
        return self.__class__.__name__


class StdioChannel(RelayChannel):
    """Channel to a long-lived worker subprocess over its stdio pipes."""

    def __init__(
        self,
        command: Sequence[str],
        env: Optional[Dict[str, str]] = None,
        cwd: Optional[str] = None,
    ):
        if not command:
            raise ValueError("command is required")
        self.command = list(command)
        self.env = env
        self.cwd = cwd
        self.process: Optional[asyncio.subprocess.Process] = None
        self._connected = False
        self._closing = False
        self._write_lock = asyncio.Lock()
        self._stderr_task: Optional[asyncio.Task] = None
        self._exit_status: Optional[ExitStatus] = None

    @property
    def name(self) -> str:
        return " ".join(self.command)

    @property
    def exit_status(self) -> Optional[ExitStatus]:
        return self._exit_status

    @property
    def connected(self) -> bool:
        return self._connected and not self._closing

    async def connect(self) -> None:
        """Spawn the worker process and wire its pipes."""
        if self._connected:
            return

        log.info(f"[StdioChannel] Starting worker: {self.name}")

        try:
            self.process = await asyncio.create_subprocess_exec(
                *self.command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env={**os.environ, **self.env} if self.env else None,
                cwd=self.cwd,
                limit=STREAM_LIMIT,
            )
        except OSError as e:
            log.error(f"[StdioChannel] Failed to start worker {self.name}: {e}")
            raise TransportClosedError(f"Failed to start {self.name}: {e}") from e

        self._connected = True
        self._stderr_task = asyncio.create_task(self._drain_stderr())
        log.info(f"[StdioChannel] Worker started (pid: {self.process.pid})")

    async def send(self, message: RelayMessage) -> None:
        """Write the message as one JSON line on the worker's stdin."""
        if not self.connected or self.process is None or self.process.stdin is None:
            raise TransportClosedError(f"{self.name} channel is not connected")
        if self._exit_status is not None:
            raise TransportClosedError(self._exit_status.describe(self.name))

        data = (message.to_json() + "\n").encode("utf-8")

        # A single writer at a time keeps lines whole on the shared pipe.
        async with self._write_lock:
            try:
                self.process.stdin.write(data)
                await self.process.stdin.drain()
            except (BrokenPipeError, ConnectionResetError) as e:
                log.error(f"[StdioChannel] Failed to write to {self.name}: {e}")
                raise TransportClosedError(f"{self.name} pipe closed: {e}") from e

        log.debug(f"[StdioChannel] Sent message: {message.method} (id: {message.id})")

    async def listen(self) -> AsyncIterator[Dict[str, Any]]:
        """Read JSON objects from stdout until EOF, then record the exit status."""
        if self.process is None or self.process.stdout is None:
            raise TransportClosedError(f"{self.name} channel is not connected")

        stdout = self.process.stdout
        while True:
            try:
                raw = await stdout.readline()
            except ValueError as e:
                # Over-long line; the reader has already skipped past it.
                log.warning(f"[StdioChannel] Discarded oversized line: {e}")
                continue

            if not raw:
                break

            data = parse_line(raw.decode("utf-8", errors="replace"))
            if data is None:
                log.debug("[StdioChannel] Discarded non-JSON line")
                continue
            yield data

        returncode = await self.process.wait()
        self._exit_status = ExitStatus.from_returncode(returncode)
        if self._closing:
            log.info(f"[StdioChannel] Worker stopped: {self._exit_status.describe(self.name)}")
        else:
            log.error(f"[StdioChannel] {self._exit_status.describe(self.name)}")

    async def _drain_stderr(self) -> None:
        assert self.process is not None and self.process.stderr is not None
        stderr = self.process.stderr
        while True:
            try:
                raw = await stderr.readline()
            except ValueError:
                continue
            if not raw:
                return
            log.debug(f"[StdioChannel] worker stderr: {raw.decode('utf-8', errors='replace').rstrip()}")

    async def close(self) -> None:
        """Stop writing, then terminate the worker gracefully (kill after a grace period)."""
        if self._closing:
            return
        self._closing = True

        if self.process is not None:
            if self.process.stdin is not None and not self.process.stdin.is_closing():
                self.process.stdin.close()

            if self.process.returncode is None:
                try:
                    self.process.terminate()
                    await asyncio.wait_for(self.process.wait(), timeout=CLOSE_TIMEOUT)
                except ProcessLookupError:
                    pass
                except asyncio.TimeoutError:
                    log.warning("[StdioChannel] Worker did not terminate gracefully, killing")
                    self.process.kill()
                    await self.process.wait()

        if self._stderr_task is not None and not self._stderr_task.done():
            self._stderr_task.cancel()
            try:
                await self._stderr_task
            except asyncio.CancelledError:
                pass

        self._connected = False
        log.info("[StdioChannel] Closed connection")
