from .template_resolution import ResolvedTemplate, TemplateSource, resolve_template_uri
from .ui_policy import UiRenderPolicy, is_ui_render_allowed

__all__ = [
    "ResolvedTemplate",
    "TemplateSource",
    "UiRenderPolicy",
    "is_ui_render_allowed",
    "resolve_template_uri",
]
