"""Tests for the Jinja2 template renderer (create_pop_app.scaffolder.templates).

Covers:
- render_string / render_file
- Strict undefined handling
- The alias_prefix filter
- Template suffix helpers
"""

from __future__ import annotations

from pathlib import Path

import pytest
from jinja2 import UndefinedError

from create_pop_app.scaffolder.templates import (
    TemplateRenderer,
    is_template,
    strip_template_suffix,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def renderer() -> TemplateRenderer:
    return TemplateRenderer()


class TestRenderer:
    def test_render_string(self, renderer: TemplateRenderer):
        assert renderer.render_string("# {{ project_name }}", {"project_name": "app"}) == "# app"

    def test_render_file_keeps_trailing_newline(self, renderer: TemplateRenderer, tmp_path: Path):
        path = tmp_path / "README.md.j2"
        path.write_text("# {{ name }}\n", encoding="utf-8")
        assert renderer.render_file(path, {"name": "x"}) == "# x\n"

    def test_block_lines_are_trimmed(self, renderer: TemplateRenderer):
        template = "a\n{% if flag %}\nb\n{% endif %}\nc\n"
        assert renderer.render_string(template, {"flag": True}) == "a\nb\nc\n"
        assert renderer.render_string(template, {"flag": False}) == "a\nc\n"

    def test_undefined_variable_raises(self, renderer: TemplateRenderer):
        with pytest.raises(UndefinedError):
            renderer.render_string("{{ missing }}", {})

    def test_no_html_escaping(self, renderer: TemplateRenderer):
        assert renderer.render_string("{{ v }}", {"v": "<App />"}) == "<App />"


class TestFilters:
    @pytest.mark.parametrize("alias, expected", [("@/*", "@/"), ("~/*", "~/"), ("#src/*", "#src/")])
    def test_alias_prefix(self, renderer: TemplateRenderer, alias: str, expected: str):
        assert renderer.render_string("{{ a | alias_prefix }}", {"a": alias}) == expected


class TestSuffixHelpers:
    def test_is_template(self):
        assert is_template(Path("page.tsx.j2"))
        assert not is_template(Path("page.tsx"))

    def test_strip_template_suffix(self):
        assert strip_template_suffix("page.tsx.j2") == "page.tsx"
        assert strip_template_suffix("next.config.js") == "next.config.js"
