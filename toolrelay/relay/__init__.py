from .channels import ExitStatus, RelayChannel, StdioChannel
from .correlator import PendingCall, RequestCorrelator
from .enrichment import enrich_notification, enrich_tool_call_item
from .gateway import RelayGateway
from .messages import RelayMessage, is_numeric_id, parse_line
from .resources import (
    DEFAULT_RESOURCE_READ_ATTEMPTS,
    DEFAULT_TEMPLATE_READ_ATTEMPTS,
    ReadAttempt,
    ReadSource,
    ResourceReadResult,
    ResourceResolver,
    ResourceTemplateReadResult,
    SecurityPolicy,
)
from .status_cache import ServerStatusSnapshot, StatusDirectoryCache
from .subscribers import NotificationFanout

__all__ = [
    "DEFAULT_RESOURCE_READ_ATTEMPTS",
    "DEFAULT_TEMPLATE_READ_ATTEMPTS",
    "ExitStatus",
    "NotificationFanout",
    "PendingCall",
    "ReadAttempt",
    "ReadSource",
    "RelayChannel",
    "RelayGateway",
    "RelayMessage",
    "RequestCorrelator",
    "ResourceReadResult",
    "ResourceResolver",
    "ResourceTemplateReadResult",
    "SecurityPolicy",
    "ServerStatusSnapshot",
    "StatusDirectoryCache",
    "StdioChannel",
    "enrich_notification",
    "enrich_tool_call_item",
    "is_numeric_id",
    "parse_line",
]
