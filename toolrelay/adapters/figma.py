import json
import re
from typing import Any, Optional
from urllib.parse import urlparse

FIGMA_RENDER_TOOLS = frozenset(
    {
        "figma.generate_diagram",
        "figma.generate_deck",
        "figma.generate_asset",
        "figma_generate_diagram",
        "figma_generate_deck",
        "figma_generate_asset",
    }
)

FIGMA_ALLOWED_HOSTS = frozenset({"figma.com", "www.figma.com"})

_FIGMA_URL = re.compile(r"https://(?:www\.)?figma\.com/[^\s\"'<>)]+", re.IGNORECASE)
_GENERATE_TOOL = re.compile(r"generate_(diagram|deck|asset)", re.IGNORECASE)


def is_figma_render_capable_tool(server: Optional[str], tool: Optional[str]) -> bool:
    if not tool:
        return False
    normalized_server = (server or "").strip().lower()
    normalized_tool = tool.strip()

    if normalized_tool in FIGMA_RENDER_TOOLS:
        return True

    if normalized_server == "figma":
        return _GENERATE_TOOL.search(normalized_tool) is not None

    return False


def extract_trusted_figma_url(result: Any) -> Optional[str]:
    """
    Find the first figma.com link anywhere in a tool result.

    Only links whose parsed host is exactly figma.com or www.figma.com are returned.
    """
    haystack = json.dumps(result if result is not None else {}, ensure_ascii=False, default=str)
    match = _FIGMA_URL.search(haystack)
    if not match:
        return None

    candidate = match.group(0)
    try:
        parsed = urlparse(candidate)
    except ValueError:
        return None

    if (parsed.hostname or "").lower() not in FIGMA_ALLOWED_HOSTS:
        return None
    if not parsed.path.startswith("/"):
        return None
    return parsed.geturl()
