"""
Decoded views over the loosely-typed metadata blocks the worker sends.

Descriptors stay plain JSON objects; only the fields the relay inspects are
lifted into explicit optionals here, once, at the boundary.
"""

from dataclasses import dataclass
from typing import Any, Optional

from toolrelay.utils import JsonObject, as_record, as_string

OUTPUT_TEMPLATE_KEY = "openai/outputTemplate"
WIDGET_DOMAIN_KEY = "openai/widgetDomain"
WIDGET_CSP_KEY = "openai/widgetCSP"


def meta_block(descriptor: Optional[JsonObject]) -> Optional[JsonObject]:
    """Return a descriptor's metadata object, read from `_meta` and falling back to `meta`."""
    if not descriptor:
        return None
    candidate = descriptor.get("_meta")
    if candidate is None:
        candidate = descriptor.get("meta")
    return as_record(candidate)


@dataclass(frozen=True)
class ToolMeta:
    """The metadata block of a tool descriptor."""

    raw: JsonObject
    ui: Optional[JsonObject] = None
    output_template: Any = None
    connector_name: Optional[str] = None
    connector_id: Optional[str] = None

    @classmethod
    def from_descriptor(cls, descriptor: Optional[JsonObject]) -> Optional["ToolMeta"]:
        meta = meta_block(descriptor)
        if meta is None:
            return None
        return cls(
            raw=meta,
            ui=as_record(meta.get("ui")),
            output_template=meta.get(OUTPUT_TEMPLATE_KEY),
            connector_name=as_string(meta.get("connector_name")),
            connector_id=as_string(meta.get("connector_id")),
        )
