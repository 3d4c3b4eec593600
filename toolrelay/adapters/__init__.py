from .figma import FIGMA_RENDER_TOOLS, extract_trusted_figma_url, is_figma_render_capable_tool

__all__ = ["FIGMA_RENDER_TOOLS", "extract_trusted_figma_url", "is_figma_render_capable_tool"]
