"""
Notification enrichment.

Tool-call items announced by the worker carry only the server and tool names.
Before they reach subscribers, the descriptor already held in the status cache
is folded into ``result.result_meta`` so a renderer can pick a template and
honour the render policy without another round trip. Enrichment only reads the
cache; it never issues a call of its own.
"""

import logging
from typing import Optional

from toolrelay.adapters import extract_trusted_figma_url, is_figma_render_capable_tool
from toolrelay.types import OUTPUT_TEMPLATE_KEY, ToolMeta
from toolrelay.utils import JsonObject, as_record, as_string
from toolrelay.widgets import UiRenderPolicy, is_ui_render_allowed, resolve_template_uri

from .status_cache import StatusDirectoryCache

log = logging.getLogger(__name__)

TOOL_CALL_ITEM_TYPE = "mcpToolCall"
ENRICHED_METHODS = frozenset({"item/started", "item/completed"})


def enrich_tool_call_item(item: JsonObject, cache: StatusDirectoryCache, policy: UiRenderPolicy) -> JsonObject:
    """Return a copy of a tool-call item with resolved metadata, or the item itself when nothing applies."""
    if as_string(item.get("type")) != TOOL_CALL_ITEM_TYPE:
        return item

    server = as_string(item.get("server"))
    tool = as_string(item.get("tool"))
    if not server or not tool:
        return item

    descriptor = cache.get_tool_descriptor(server, tool)
    if descriptor is None:
        return item

    tool_meta = ToolMeta.from_descriptor(descriptor)
    raw_tool_meta: Optional[JsonObject] = tool_meta.raw if tool_meta else None
    connector_name = tool_meta.connector_name if tool_meta else None
    connector_id = tool_meta.connector_id if tool_meta else None

    result = as_record(item.get("result"))
    result = dict(result) if result is not None else None
    existing_meta = as_record(result.get("result_meta")) if result is not None else None
    existing_meta = existing_meta or {}

    resolved = resolve_template_uri(result_meta=existing_meta, tool_meta=raw_tool_meta)

    resolved_meta = {
        **existing_meta,
        "tool_meta": raw_tool_meta,
        OUTPUT_TEMPLATE_KEY: tool_meta.output_template if tool_meta else None,
        "ui": tool_meta.ui if tool_meta else None,
        "connector_name": connector_name,
        "connector_id": connector_id,
        "resolved_template_uri": resolved.uri,
        "resolved_template_source": resolved.source.value if resolved.source else None,
        "ui_allowed": is_ui_render_allowed(policy, connector_name, connector_id),
        "figma": {
            "renderCapable": is_figma_render_capable_tool(server, tool),
            "trustedPreviewUrl": extract_trusted_figma_url(result),
        },
    }

    if result is not None:
        result["result_meta"] = resolved_meta

    log.debug(f"[Enrichment] Enriched {server}/{tool} (template: {resolved.uri})")
    return {**item, "result": result, "tool_meta": raw_tool_meta}


def enrich_notification(message: JsonObject, cache: StatusDirectoryCache, policy: UiRenderPolicy) -> JsonObject:
    """Enrich ``item/started`` and ``item/completed`` notifications; pass every other message through."""
    method = as_string(message.get("method"))
    if method not in ENRICHED_METHODS:
        return message

    params = as_record(message.get("params"))
    if params is None:
        return message

    item = as_record(params.get("item"))
    if item is None:
        return message

    return {**message, "params": {**params, "item": enrich_tool_call_item(item, cache, policy)}}
