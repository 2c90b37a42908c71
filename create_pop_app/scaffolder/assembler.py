"""Project tree assembly.

Copies a template (one or more layered directories) into the target project
directory.  Which files are copied is decided up front from a declarative
table of ``InclusionRule`` entries, so the copy loop itself knows nothing
about individual feature flags.

Name transforms applied while copying:

* ``dot-<name>`` becomes ``.<name>`` (npm strips real dotfiles such as
  ``.gitignore`` from published packages, so templates carry a placeholder).
* ``<name>.j2`` is rendered with Jinja2 and written as ``<name>``.
* With ``src_dir`` set, the top-level source directories of a built-in
  template move under ``src/``.
"""

from __future__ import annotations

import asyncio
import os
import shutil
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path, PurePosixPath
from typing import Any

from jinja2 import TemplateError

from ..config import ProjectRequest
from .templates import TemplateRenderer, is_template, strip_template_suffix

# Never copied from any template; they are regenerated by the package manager
# or belong to the template's own repository.
IGNORED_NAMES = frozenset({
    ".git",
    ".next",
    ".DS_Store",
    "node_modules",
    "package-lock.json",
    "pnpm-lock.yaml",
    "yarn.lock",
})

DOTFILE_PREFIX = "dot-"

# Top-level directories that hold application source in built-in templates.
SOURCE_DIRS = frozenset({"app", "pages", "styles", "lib"})


class AssemblyError(Exception):
    """Raised when the project tree cannot be written."""

    def __init__(self, path: str | Path, message: str) -> None:
        self.path = Path(path)
        super().__init__(f"{path}: {message}")


# ---------------------------------------------------------------------------
# Inclusion table
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class InclusionRule:
    """Keep files matching *patterns* only when *flags* are on (or off).

    Patterns are ``fnmatch`` globs matched against the template-relative
    POSIX path with any ``.j2`` suffix removed; ``*`` also matches ``/``.
    With several flags the rule treats them as alternatives.
    """

    patterns: tuple[str, ...]
    flags: tuple[str, ...]
    when_enabled: bool = True

    def matches(self, relative: str) -> bool:
        return any(fnmatchcase(relative, pattern) for pattern in self.patterns)

    def keeps(self, request: ProjectRequest) -> bool:
        enabled = any(getattr(request, flag) for flag in self.flags)
        return enabled == self.when_enabled


INCLUSION_RULES: tuple[InclusionRule, ...] = (
    InclusionRule(("*.scss",), ("sass",)),
    InclusionRule(("*.css",), ("sass",), when_enabled=False),
    InclusionRule(("dot-eslintrc.json",), ("eslint",)),
    InclusionRule(("dot-prettierrc.json", "dot-prettierignore"), ("prettier",)),
    InclusionRule(("tailwind.config.js", "postcss.config.js"), ("tailwind",)),
    InclusionRule(("*providers.*",), ("component_library", "data_fetching")),
    InclusionRule(("*fetcher.*",), ("data_fetching",)),
)


def build_filter(
    request: ProjectRequest,
    rules: Iterable[InclusionRule] = INCLUSION_RULES,
) -> Callable[[str], bool]:
    """Evaluate *rules* against *request* once and return a path predicate."""
    excluded = [rule for rule in rules if not rule.keeps(request)]

    def include(relative: str) -> bool:
        return not any(rule.matches(relative) for rule in excluded)

    return include


# ---------------------------------------------------------------------------
# Assembler
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CopyEntry:
    """One file of the copy plan."""

    source: Path
    destination: PurePosixPath
    render: bool


def build_context(request: ProjectRequest) -> dict[str, Any]:
    """Build the Jinja2 context shared by every rendered template."""
    return {
        "project_name": request.name,
        "typescript": request.typescript,
        "app_router": request.app_router,
        "src_dir": request.src_dir,
        "import_alias": request.import_alias,
        "alias_target": "./src/*" if request.src_dir else "./*",
        "source_root": "src/" if request.src_dir else "",
        "eslint": request.eslint,
        "prettier": request.prettier,
        "tailwind": request.tailwind,
        "sass": request.sass,
        "component_library": request.component_library,
        "data_fetching": request.data_fetching,
        "style_ext": "scss" if request.sass else "css",
        "script_ext": "ts" if request.typescript else "js",
    }


def dotfile_name(name: str) -> str:
    """``"dot-gitignore"`` -> ``".gitignore"``."""
    if name.startswith(DOTFILE_PREFIX) and len(name) > len(DOTFILE_PREFIX):
        return "." + name[len(DOTFILE_PREFIX):]
    return name


class TreeAssembler:
    """Copies template roots into a project directory for one request.

    Args:
        request: The resolved project request.
        rules: Inclusion table; defaults to ``INCLUSION_RULES``.
    """

    def __init__(
        self,
        request: ProjectRequest,
        rules: Iterable[InclusionRule] = INCLUSION_RULES,
    ) -> None:
        self.request = request
        self.rules = tuple(rules)
        self.renderer = TemplateRenderer()

    # -- Planning ----------------------------------------------------------

    def plan(self, roots: Iterable[Path], *, apply_rules: bool = True) -> list[CopyEntry]:
        """Return the sorted copy plan for *roots*.

        Later roots override files of earlier roots at the same destination.
        With *apply_rules* off (remote examples) only the ignore list and the
        ``dot-`` rename apply; ``.j2`` files are copied as published.
        """
        include = build_filter(self.request, self.rules)
        entries: dict[PurePosixPath, CopyEntry] = {}

        for root in roots:
            root = Path(root)
            if not root.is_dir():
                raise AssemblyError(root, "template directory does not exist")
            for source in _walk(root):
                relative = PurePosixPath(source.relative_to(root).as_posix())
                logical = relative
                if apply_rules:
                    logical = relative.with_name(strip_template_suffix(relative.name))
                    if not include(str(logical)):
                        continue
                destination = self._destination(logical, relocate=apply_rules)
                entries[destination] = CopyEntry(
                    source=source,
                    destination=destination,
                    render=is_template(source) and apply_rules,
                )

        return [entries[key] for key in sorted(entries)]

    def _destination(self, logical: PurePosixPath, *, relocate: bool) -> PurePosixPath:
        parts = list(logical.parts)
        parts[-1] = dotfile_name(parts[-1])
        if relocate and self.request.src_dir and len(parts) > 1 and parts[0] in SOURCE_DIRS:
            parts.insert(0, "src")
        return PurePosixPath(*parts)

    # -- Copying -----------------------------------------------------------

    async def assemble(
        self,
        roots: Iterable[Path],
        target: str | Path,
        *,
        apply_rules: bool = True,
    ) -> list[Path]:
        """Copy *roots* into *target* and return the written files.

        The target is trusted to be empty or absent.  Files already in it
        that are not part of the plan are left untouched; nothing is rolled
        back on failure.

        Raises:
            AssemblyError: On any filesystem or template error, naming the
                offending path.
        """
        target_path = Path(target)
        entries = self.plan(roots, apply_rules=apply_rules)
        context = build_context(self.request)
        return await asyncio.to_thread(self._copy_all, entries, target_path, context)

    def _copy_all(
        self,
        entries: list[CopyEntry],
        target: Path,
        context: dict[str, Any],
    ) -> list[Path]:
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise AssemblyError(target, exc.strerror or str(exc)) from exc

        resolved_target = target.resolve()
        written: list[Path] = []
        for entry in entries:
            out = target / Path(*entry.destination.parts)
            if not out.resolve().is_relative_to(resolved_target):
                raise AssemblyError(out, "refusing to write outside the project directory")
            try:
                out.parent.mkdir(parents=True, exist_ok=True)
                if entry.render:
                    content = self.renderer.render_file(entry.source, context)
                    out.write_text(content, encoding="utf-8")
                else:
                    if entry.source.is_symlink() and out.is_symlink():
                        out.unlink()
                    shutil.copy2(entry.source, out, follow_symlinks=False)
            except OSError as exc:
                raise AssemblyError(out, exc.strerror or str(exc)) from exc
            except TemplateError as exc:
                raise AssemblyError(entry.source, f"template error: {exc}") from exc
            written.append(out)
        return written


async def assemble(
    roots: Iterable[Path],
    request: ProjectRequest,
    target: str | Path,
    *,
    apply_rules: bool = True,
) -> list[Path]:
    """Copy *roots* into *target* for *request*; see ``TreeAssembler.assemble``."""
    return await TreeAssembler(request).assemble(roots, target, apply_rules=apply_rules)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _walk(root: Path) -> list[Path]:
    """List files under *root*, skipping ignored names, without following links.

    A symlinked directory is listed as an entry of its own and copied as a
    link.
    """
    files: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root, followlinks=False):
        dirnames[:] = sorted(d for d in dirnames if d not in IGNORED_NAMES)
        links = [d for d in dirnames if os.path.islink(os.path.join(dirpath, d))]
        for name in sorted(filenames + links):
            if name not in IGNORED_NAMES:
                files.append(Path(dirpath) / name)
    return files
