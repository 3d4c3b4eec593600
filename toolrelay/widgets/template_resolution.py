"""
Widget template resolution.

Decides which template URI, if any, should render a tool result. Candidates
are checked in a fixed order and the first non-blank one wins:

1. ``result_meta.ui.resourceUri``
2. ``result_meta["openai/outputTemplate"]``
3. ``tool_meta.ui.resourceUri``
4. ``tool_meta["openai/outputTemplate"]``

The tool metadata is the one nested in the result metadata (``tool_meta``)
when present, otherwise the one supplied by the caller.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from toolrelay.types import OUTPUT_TEMPLATE_KEY
from toolrelay.utils import as_string


class TemplateSource(str, Enum):
    """Where a resolved template URI came from."""

    RESULT_UI = "result_meta.ui.resourceUri"
    RESULT_OUTPUT_TEMPLATE = "result_meta.openai/outputTemplate"
    TOOL_UI = "tool_meta.ui.resourceUri"
    TOOL_OUTPUT_TEMPLATE = "tool_meta.openai/outputTemplate"


@dataclass(frozen=True)
class ResolvedTemplate:
    uri: Optional[str] = None
    source: Optional[TemplateSource] = None

    @property
    def found(self) -> bool:
        return self.uri is not None


def _ui_resource_uri(meta: Optional[Mapping[str, Any]]) -> Optional[str]:
    if not meta:
        return None
    ui = meta.get("ui")
    if not isinstance(ui, Mapping):
        return None
    return as_string(ui.get("resourceUri"))


def _output_template(meta: Optional[Mapping[str, Any]]) -> Optional[str]:
    if not meta:
        return None
    return as_string(meta.get(OUTPUT_TEMPLATE_KEY))


def resolve_template_uri(
    result_meta: Optional[Mapping[str, Any]] = None,
    tool_meta: Optional[Mapping[str, Any]] = None,
) -> ResolvedTemplate:
    nested_tool_meta = result_meta.get("tool_meta") if result_meta else None
    effective_tool_meta = nested_tool_meta if isinstance(nested_tool_meta, Mapping) else tool_meta

    candidates = (
        (_ui_resource_uri(result_meta), TemplateSource.RESULT_UI),
        (_output_template(result_meta), TemplateSource.RESULT_OUTPUT_TEMPLATE),
        (_ui_resource_uri(effective_tool_meta), TemplateSource.TOOL_UI),
        (_output_template(effective_tool_meta), TemplateSource.TOOL_OUTPUT_TEMPLATE),
    )
    for uri, source in candidates:
        if uri:
            return ResolvedTemplate(uri=uri, source=source)

    return ResolvedTemplate()
