from typing import Any, Optional

from colorama import Fore, Style


class RelayError(Exception):
    """Base class for all relay errors with custom formatting."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self):
        start_bold = "\033[1m"
        end_bold = "\033[0m"
        return f"{start_bold}{Fore.RED}{self.__class__.__name__}:{end_bold} {self.message}{Style.RESET_ALL}"


class TransportClosedError(RelayError):
    """
    The worker process is gone, or the gateway is shutting down.

    Raised for every call that was outstanding when the process exited and for
    any call issued afterwards.
    """

    def __init__(self, message: str, returncode: Optional[int] = None, signal: Optional[int] = None):
        super().__init__(message)
        self.returncode = returncode
        self.signal = signal


class RpcError(RelayError):
    """The worker answered with a JSON-RPC error object."""

    def __init__(self, method: str, code: Any = None, detail: Optional[str] = None, data: Any = None):
        self.method = method
        self.code = code
        self.detail = detail or "Unknown error"
        self.data = data
        code_text = "unknown" if code is None else str(code)
        super().__init__(f"JSON-RPC {code_text}: {self.detail}")


class RpcTimeoutError(RelayError):
    """No response arrived before the call's deadline."""

    def __init__(self, method: str, timeout: float):
        self.method = method
        self.timeout = timeout
        super().__init__(f"Timeout waiting for {method} response after {timeout:g}s.")


class ProtocolError(RelayError):
    """
    A response arrived but its shape cannot be used.
    """


class ConfigError(RelayError):
    pass
