"""
Relay Message Types and Serialization

Handles the line-oriented JSON-RPC format spoken by the worker process. The
worker omits the ``jsonrpc`` version member, so neither side sends it.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional


def is_numeric_id(value: Any) -> bool:
    """Only integers correlate with outstanding calls; booleans are not ids."""
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass
class RelayMessage:
    """One JSON-RPC message on the worker's stdio streams."""

    id: Optional[Any] = None
    method: Optional[str] = None
    params: Optional[Dict[str, Any]] = None
    result: Optional[Any] = None
    error: Optional[Any] = None

    @property
    def is_response(self) -> bool:
        """A message answering one of our calls."""
        return is_numeric_id(self.id)

    @property
    def is_notification(self) -> bool:
        """Everything without a numeric id is fanned out to subscribers."""
        return not self.is_response

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data: Dict[str, Any] = {}

        if self.method is not None:
            data["method"] = self.method

        if self.id is not None:
            data["id"] = self.id

        if self.params is not None:
            data["params"] = self.params

        if self.result is not None:
            data["result"] = self.result

        if self.error is not None:
            data["error"] = self.error

        return data

    def to_json(self) -> str:
        """Serialize to a single JSON line (without the terminating newline)."""
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)

    @classmethod
    def request(cls, method: str, id: int, params: Optional[Dict[str, Any]] = None) -> "RelayMessage":
        return cls(id=id, method=method, params=params if params is not None else {})

    @classmethod
    def notification(cls, method: str, params: Optional[Dict[str, Any]] = None) -> "RelayMessage":
        return cls(method=method, params=params if params is not None else {})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RelayMessage":
        """Create message from dictionary."""
        return cls(
            id=data.get("id"),
            method=data.get("method"),
            params=data.get("params"),
            result=data.get("result"),
            error=data.get("error"),
        )


def parse_line(line: str) -> Optional[Dict[str, Any]]:
    """
    Parse one inbound line into a JSON object.

    Returns None for blank lines, invalid JSON and JSON values that are not
    objects; the caller drops those silently.
    """
    text = line.strip()
    if not text:
        return None
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None
