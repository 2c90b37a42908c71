"""Jinja2 rendering for built-in template files.

Files in a template tree whose name ends in ``.j2`` are rendered with the
project context before being written; everything else is copied verbatim by
the assembler.  Rendering is strict: a template that references an unknown
variable fails instead of producing a half-empty file.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import Environment, StrictUndefined

TEMPLATE_SUFFIX = ".j2"


class TemplateRenderer:
    """Renders ``.j2`` template files with a project context."""

    def __init__(self) -> None:
        self.env = Environment(
            autoescape=False,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=StrictUndefined,
        )
        self.env.filters["alias_prefix"] = _alias_prefix_filter

    def render_string(self, template_string: str, context: dict[str, Any]) -> str:
        """Render an inline template string with the provided context."""
        template = self.env.from_string(template_string)
        return template.render(**context)

    def render_file(self, template_path: Path, context: dict[str, Any]) -> str:
        """Render the template stored at *template_path*."""
        return self.render_string(template_path.read_text(encoding="utf-8"), context)


def is_template(path: Path) -> bool:
    return path.name.endswith(TEMPLATE_SUFFIX)


def strip_template_suffix(name: str) -> str:
    """``"page.tsx.j2"`` -> ``"page.tsx"``; other names are returned unchanged."""
    return name.removesuffix(TEMPLATE_SUFFIX)


# ---------------------------------------------------------------------------
# Jinja2 custom filters
# ---------------------------------------------------------------------------


def _alias_prefix_filter(value: str) -> str:
    """``"@/*"`` -> ``"@/"``: the import prefix used in source files."""
    return value.removesuffix("*")
