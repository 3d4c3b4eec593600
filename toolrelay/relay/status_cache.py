"""
Tool-server status directory cache.

Maps a tool-server name to the tools, resources and resource templates it
advertises. The whole directory is fetched page by page and swapped in at
once; readers never observe a half-finished refresh.
"""

import asyncio
import copy
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from toolrelay.utils import JsonObject, as_record, as_string, records

log = logging.getLogger(__name__)

REFRESH_INTERVAL = 60.0
PAGE_SIZE = 100

FetchPage = Callable[[Optional[str], int], Awaitable[Any]]


@dataclass(frozen=True)
class ServerStatusSnapshot:
    name: str
    tools: Dict[str, JsonObject] = field(default_factory=dict)
    resources: List[JsonObject] = field(default_factory=list)
    resource_templates: List[JsonObject] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: Any) -> Optional["ServerStatusSnapshot"]:
        """Decode one status row. Rows without a usable name yield None."""
        data = as_record(row)
        if data is None:
            return None
        name = as_string(data.get("name"))
        if not name:
            return None

        raw_tools = as_record(data.get("tools")) or {}
        tools = {tool_name: descriptor for tool_name, descriptor in raw_tools.items() if isinstance(descriptor, dict)}

        templates = data.get("resourceTemplates")
        if not isinstance(templates, list):
            templates = data.get("resource_templates")

        return cls(
            name=name,
            tools=tools,
            resources=records(data.get("resources")),
            resource_templates=records(templates),
        )

    def find_resource(self, uri: str) -> Optional[JsonObject]:
        for entry in self.resources:
            if as_string(entry.get("uri")) == uri:
                return entry
        return None

    def find_resource_template(self, uri_template: str) -> Optional[JsonObject]:
        for entry in self.resource_templates:
            if as_string(entry.get("uriTemplate")) == uri_template or as_string(entry.get("uri_template")) == uri_template:
                return entry
        return None

    def to_dict(self) -> JsonObject:
        """Plain JSON view, deep-copied from the snapshot."""
        return copy.deepcopy(
            {
                "name": self.name,
                "tools": self.tools,
                "resources": self.resources,
                "resourceTemplates": self.resource_templates,
            }
        )


class StatusDirectoryCache:
    """
    Time-to-live cache of server status snapshots.

    Args:
        fetch_page: Coroutine returning one directory page ``{data, nextCursor}`` for a cursor and page size
        refresh_interval: Seconds after which the cache counts as stale
        page_size: Rows requested per page
        clock: Monotonic time source, injectable for tests
    """

    def __init__(
        self,
        fetch_page: FetchPage,
        refresh_interval: float = REFRESH_INTERVAL,
        page_size: int = PAGE_SIZE,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._fetch_page = fetch_page
        self.refresh_interval = refresh_interval
        self.page_size = page_size
        self._clock = clock
        self._snapshots: Dict[str, ServerStatusSnapshot] = {}
        self._last_refresh_at: Optional[float] = None
        self._refresh_lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._snapshots)

    @property
    def last_refresh_at(self) -> Optional[float]:
        return self._last_refresh_at

    def is_stale(self) -> bool:
        if not self._snapshots or self._last_refresh_at is None:
            return True
        return self._clock() - self._last_refresh_at > self.refresh_interval

    async def list_server_status(self, force_refresh: bool = False) -> List[ServerStatusSnapshot]:
        """Return all snapshots, refreshing first when forced, empty, or stale."""
        if force_refresh or self.is_stale():
            async with self._refresh_lock:
                # A concurrent caller may have refreshed while we waited.
                if force_refresh or self.is_stale():
                    await self.refresh()
        return list(self._snapshots.values())

    async def refresh(self) -> None:
        """
        Fetch every page and replace the cache in one step.

        If any page fails the previous contents stay in place and the error propagates.
        """
        fetched: Dict[str, ServerStatusSnapshot] = {}
        cursor: Optional[str] = None
        pages = 0
        while True:
            page = as_record(await self._fetch_page(cursor, self.page_size)) or {}
            pages += 1
            for row in records(page.get("data")):
                snapshot = ServerStatusSnapshot.from_row(row)
                if snapshot is not None:
                    fetched[snapshot.name] = snapshot
            cursor = as_string(page.get("nextCursor"))
            if not cursor:
                break

        self._snapshots = fetched
        self._last_refresh_at = self._clock()
        log.info(f"[StatusDirectoryCache] Refreshed {len(fetched)} server(s) from {pages} page(s)")

    def get_snapshot(self, server: str) -> Optional[ServerStatusSnapshot]:
        return self._snapshots.get(server)

    def get_tool_descriptor(self, server: str, tool: str) -> Optional[JsonObject]:
        """Pure cache lookup; a missing server or tool yields None."""
        snapshot = self._snapshots.get(server)
        if snapshot is None:
            return None
        return snapshot.tools.get(tool)
