"""projgen fallback generators.

Minimal, tool-free skeletons for every component kind, rendered from the
embedded Jinja2 template sets under ``templates/``.

Key classes:
    TemplateRenderer           - Renders a whole template set in memory
    TemplateFallbackGenerator  - Writes a rendered set through the journal
"""

from .generator import FallbackGenerator, TemplateFallbackGenerator, default_fallback, template_set_for
from .templates import RenderedFile, TemplateRenderer

__all__ = [
    "FallbackGenerator",
    "RenderedFile",
    "TemplateFallbackGenerator",
    "TemplateRenderer",
    "default_fallback",
    "template_set_for",
]
