"""Jinja2 template rendering for fallback generators.

Provides the ``TemplateRenderer`` class which loads the embedded ``.j2``
template sets from ``projgen/fallback/templates/`` and renders a whole set in
memory. Relative output paths may themselves contain template expressions
(``Sources/{{ name_pascal }}/main.swift.j2``), so one template set serves every
project name. Writing the rendered files is left to the caller so that every
write can be journaled.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from projgen.utils import sanitize_name, to_camel, to_pascal, to_snake


# ---------------------------------------------------------------------------
# Template directory discovery
# ---------------------------------------------------------------------------

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"


@dataclass(frozen=True)
class RenderedFile:
    """One rendered template: POSIX path relative to the component root, and content."""

    path: str
    content: str


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders embedded Jinja2 template sets for fallback generation.

    Undefined variables are errors rather than empty strings, so a template
    that references context a generator did not provide fails loudly instead
    of producing a silently broken skeleton.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        if template_dir is None:
            template_dir = _DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([]),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["slugify"] = sanitize_name
        self.env.filters["pascal_case"] = to_pascal
        self.env.filters["snake_case"] = to_snake
        self.env.filters["camel_case"] = to_camel

    # -- Single template rendering -----------------------------------------

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render a single template (path relative to the template root)."""
        template = self.env.get_template(template_path)
        return template.render(**context)

    def render_string(self, template_string: str, context: dict[str, Any]) -> str:
        """Render an inline template string with the provided context."""
        template = self.env.from_string(template_string)
        return template.render(**context)

    # -- Set rendering -----------------------------------------------------

    def render_set(self, template_set: str, context: dict[str, Any]) -> list[RenderedFile]:
        """Render every ``*.j2`` file of *template_set*, sorted by output path.

        Raises:
            KeyError: If *template_set* does not exist.
            jinja2.TemplateError: On any template syntax or undefined-variable error.
            ValueError: If a rendered path escapes the component root.
        """
        available = self.template_sets()
        if template_set not in available:
            raise KeyError(f"unknown template set: {template_set!r} (available: {', '.join(available)})")

        rendered: list[RenderedFile] = []
        for template_path in self.list_templates(template_set):
            rel = template_path[len(template_set) + 1 :]
            out_rel = self.render_string(rel[: -len(".j2")], context).strip()
            if not out_rel or out_rel.startswith("/") or ".." in Path(out_rel).parts:
                raise ValueError(f"template {rel} renders to an unsafe path: {out_rel!r}")
            content = self.render(template_path, context)
            rendered.append(RenderedFile(path=out_rel, content=content))
        return sorted(rendered, key=lambda f: f.path)

    # -- Utility -----------------------------------------------------------

    def list_templates(self, prefix: str = "") -> list[str]:
        """Return a sorted list of all ``.j2`` template paths under *prefix*."""
        search_dir = self.template_dir / prefix if prefix else self.template_dir
        if not search_dir.is_dir():
            return []
        return sorted(
            p.relative_to(self.template_dir).as_posix()
            for p in search_dir.rglob("*.j2")
        )

    def template_sets(self) -> list[str]:
        if not self.template_dir.is_dir():
            return []
        return sorted(p.name for p in self.template_dir.iterdir() if p.is_dir())
