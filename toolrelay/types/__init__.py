from .protocol import OUTPUT_TEMPLATE_KEY, WIDGET_CSP_KEY, WIDGET_DOMAIN_KEY, ToolMeta, meta_block

__all__ = [
    "OUTPUT_TEMPLATE_KEY",
    "WIDGET_CSP_KEY",
    "WIDGET_DOMAIN_KEY",
    "ToolMeta",
    "meta_block",
]
