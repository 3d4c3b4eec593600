"""
Resource and resource-template reads with fallback.

The worker does not document one fixed parameter shape for reading a tool
server's resource, so a read walks an ordered list of call shapes
(``ReadAttempt``), then falls back to the status directory cache, and finally
reports the resource as unavailable. Only the last case carries an error, and
it is returned rather than raised.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple

from toolrelay.errors import RelayError
from toolrelay.types import WIDGET_CSP_KEY, WIDGET_DOMAIN_KEY, meta_block
from toolrelay.utils import JsonObject, as_record, as_string, records, to_string_list

from .status_cache import StatusDirectoryCache

log = logging.getLogger(__name__)

RESOURCE_READ_TIMEOUT = 10.0

CallFunc = Callable[[str, JsonObject, float], Awaitable[Any]]


class ReadSource(str, Enum):
    REMOTE = "remote"
    CACHE = "cache"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class ReadAttempt:
    """One call shape for a read: the method plus the parameter names carrying server and identity."""

    method: str
    server_key: str
    identity_key: str

    def params(self, server: str, identity: str) -> JsonObject:
        return {self.server_key: server, self.identity_key: identity}


DEFAULT_RESOURCE_READ_ATTEMPTS: Tuple[ReadAttempt, ...] = (
    ReadAttempt("mcpServer/resource/read", "serverName", "uri"),
    ReadAttempt("mcpServer/resource/read", "name", "uri"),
    ReadAttempt("mcpServer/resource/read", "server", "uri"),
    ReadAttempt("mcpServer/resources/read", "serverName", "uri"),
)

DEFAULT_TEMPLATE_READ_ATTEMPTS: Tuple[ReadAttempt, ...] = (
    ReadAttempt("mcpServer/resourceTemplate/read", "serverName", "uriTemplate"),
    ReadAttempt("mcpServer/resourceTemplate/read", "name", "uriTemplate"),
    ReadAttempt("mcpServer/resourceTemplate/read", "server", "uriTemplate"),
)


@dataclass
class SecurityPolicy:
    """Widget sandbox policy advertised in a resource's metadata."""

    widget_domain: Optional[str] = None
    connect_domains: List[str] = field(default_factory=list)
    resource_domains: List[str] = field(default_factory=list)
    frame_domains: List[str] = field(default_factory=list)

    @classmethod
    def from_resource(cls, resource: Optional[JsonObject]) -> "SecurityPolicy":
        meta = meta_block(resource) or {}
        csp = as_record(meta.get(WIDGET_CSP_KEY)) or {}
        return cls(
            widget_domain=as_string(meta.get(WIDGET_DOMAIN_KEY)),
            connect_domains=to_string_list(csp.get("connect_domains")),
            resource_domains=to_string_list(csp.get("resource_domains")),
            frame_domains=to_string_list(csp.get("frame_domains")),
        )

    def to_dict(self) -> JsonObject:
        return {
            "widgetDomain": self.widget_domain,
            "connectDomains": list(self.connect_domains),
            "resourceDomains": list(self.resource_domains),
            "frameDomains": list(self.frame_domains),
        }


@dataclass
class ResourceReadResult:
    server: str
    uri: str
    source: ReadSource
    resource: Optional[JsonObject] = None
    contents: List[JsonObject] = field(default_factory=list)
    security: SecurityPolicy = field(default_factory=SecurityPolicy)
    error: Optional[str] = None

    def to_dict(self) -> JsonObject:
        return {
            "server": self.server,
            "uri": self.uri,
            "source": self.source.value,
            "resource": self.resource,
            "contents": self.contents,
            "security": self.security.to_dict(),
            "error": self.error,
        }


@dataclass
class ResourceTemplateReadResult:
    server: str
    uri_template: str
    source: ReadSource
    template: Optional[JsonObject] = None
    error: Optional[str] = None

    def to_dict(self) -> JsonObject:
        return {
            "server": self.server,
            "uriTemplate": self.uri_template,
            "source": self.source.value,
            "template": self.template,
            "error": self.error,
        }


class ResourceResolver:
    """
    Three-tier reads: remote attempt chain, then status cache, then unavailable.

    Args:
        cache: Status directory cache consulted before and after the remote attempts
        call: Coroutine ``call(method, params, timeout)`` issuing one RPC
        resource_attempts: Call shapes tried in order for resource reads
        template_attempts: Call shapes tried in order for resource-template reads
        attempt_timeout: Deadline for each individual attempt
    """

    def __init__(
        self,
        cache: StatusDirectoryCache,
        call: CallFunc,
        resource_attempts: Sequence[ReadAttempt] = DEFAULT_RESOURCE_READ_ATTEMPTS,
        template_attempts: Sequence[ReadAttempt] = DEFAULT_TEMPLATE_READ_ATTEMPTS,
        attempt_timeout: float = RESOURCE_READ_TIMEOUT,
    ):
        self._cache = cache
        self._call = call
        self.resource_attempts = tuple(resource_attempts)
        self.template_attempts = tuple(template_attempts)
        self.attempt_timeout = attempt_timeout

    async def _try_attempts(
        self, attempts: Sequence[ReadAttempt], server: str, identity: str
    ) -> Tuple[bool, Any]:
        """Return ``(True, result)`` for the first attempt that answers, ``(False, None)`` if all fail."""
        for attempt in attempts:
            try:
                result = await self._call(attempt.method, attempt.params(server, identity), self.attempt_timeout)
            except RelayError as e:
                log.debug(
                    f"[ResourceResolver] {attempt.method} ({attempt.server_key}, {attempt.identity_key}) failed: {e.message}"
                )
                continue
            return True, result
        return False, None

    async def read_resource(self, server: str, uri: str) -> ResourceReadResult:
        await self._cache.list_server_status()

        answered, result = await self._try_attempts(self.resource_attempts, server, uri)
        remote = as_record(result) if answered else None
        if remote is not None:
            resource = as_record(remote.get("resource"))
            return ResourceReadResult(
                server=server,
                uri=uri,
                source=ReadSource.REMOTE,
                resource=resource,
                contents=records(remote.get("contents")),
                security=SecurityPolicy.from_resource(resource),
            )

        snapshot = self._cache.get_snapshot(server)
        cached = snapshot.find_resource(uri) if snapshot else None
        if cached is not None:
            log.debug(f"[ResourceResolver] Serving {uri} for {server} from status cache")
            return ResourceReadResult(
                server=server,
                uri=uri,
                source=ReadSource.CACHE,
                resource=cached,
                security=SecurityPolicy.from_resource(cached),
            )

        log.info(f"[ResourceResolver] Resource {uri} unavailable for {server}")
        return ResourceReadResult(
            server=server,
            uri=uri,
            source=ReadSource.UNAVAILABLE,
            security=SecurityPolicy.from_resource(None),
            error=f'Resource "{uri}" was not found for MCP server "{server}".',
        )

    async def read_resource_template(self, server: str, uri_template: str) -> ResourceTemplateReadResult:
        await self._cache.list_server_status()

        answered, result = await self._try_attempts(self.template_attempts, server, uri_template)
        remote = as_record(result) if answered else None
        if remote is not None:
            template = as_record(remote.get("template"))
            if template is None:
                template = as_record(remote.get("resourceTemplate"))
            return ResourceTemplateReadResult(
                server=server,
                uri_template=uri_template,
                source=ReadSource.REMOTE,
                template=template,
            )

        snapshot = self._cache.get_snapshot(server)
        cached = snapshot.find_resource_template(uri_template) if snapshot else None
        if cached is not None:
            return ResourceTemplateReadResult(
                server=server,
                uri_template=uri_template,
                source=ReadSource.CACHE,
                template=cached,
            )

        log.info(f"[ResourceResolver] Resource template {uri_template} unavailable for {server}")
        return ResourceTemplateReadResult(
            server=server,
            uri_template=uri_template,
            source=ReadSource.UNAVAILABLE,
            error=f'Resource template "{uri_template}" was not found for MCP server "{server}".',
        )
