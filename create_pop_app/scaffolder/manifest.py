"""Package manifest (``package.json``) rewriting.

The manifest copied from a template is parsed into a ``Manifest`` model with
named sections for the keys this tool edits and a residual mapping for
everything else, so unknown keys and the original key order survive the
rewrite.  Dependency versions come from ``DEPENDENCY_TABLE``; nothing is
looked up in a registry.
"""

from __future__ import annotations

import asyncio
import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..config import ProjectRequest
from ..package_manager import PackageManager

MANIFEST_NAME = "package.json"

INITIAL_VERSION = "0.1.0"

# Named sections in their conventional order.
KNOWN_KEYS: tuple[str, ...] = (
    "name",
    "version",
    "private",
    "scripts",
    "dependencies",
    "devDependencies",
)


class ManifestError(Exception):
    """Raised when a manifest cannot be parsed or written."""

    def __init__(self, path: str | Path, message: str) -> None:
        self.path = Path(path)
        super().__init__(f"{path}: {message}")


# ---------------------------------------------------------------------------
# Dependency table
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DependencyCategory:
    """Packages and scripts that belong to one optional feature.

    The category is enabled when every flag in *flags* is set on the
    request; a category without flags is always enabled.
    """

    name: str
    flags: tuple[str, ...] = ()
    dependencies: dict[str, str] = field(default_factory=dict)
    dev_dependencies: dict[str, str] = field(default_factory=dict)
    scripts: dict[str, str] = field(default_factory=dict)

    def enabled(self, request: ProjectRequest) -> bool:
        return all(getattr(request, flag) for flag in self.flags)


DEPENDENCY_TABLE: tuple[DependencyCategory, ...] = (
    DependencyCategory(
        "framework",
        dependencies={"next": "14.0.4", "react": "^18", "react-dom": "^18"},
    ),
    DependencyCategory(
        "typescript",
        ("typescript",),
        dev_dependencies={
            "typescript": "^5",
            "@types/node": "^20",
            "@types/react": "^18",
            "@types/react-dom": "^18",
        },
    ),
    DependencyCategory(
        "eslint",
        ("eslint",),
        dev_dependencies={"eslint": "^8", "eslint-config-next": "14.0.4"},
        scripts={"lint": "next lint"},
    ),
    DependencyCategory(
        "prettier",
        ("prettier",),
        dev_dependencies={"prettier": "^3.1.1"},
        scripts={"format": "prettier --write .", "format:check": "prettier --check ."},
    ),
    DependencyCategory(
        "eslint-prettier",
        ("eslint", "prettier"),
        dev_dependencies={"eslint-config-prettier": "^9.1.0"},
    ),
    DependencyCategory(
        "tailwind",
        ("tailwind",),
        dev_dependencies={"tailwindcss": "^3.3.0", "postcss": "^8", "autoprefixer": "^10.0.1"},
    ),
    DependencyCategory(
        "sass",
        ("sass",),
        dev_dependencies={"sass": "^1.69.5"},
    ),
    DependencyCategory(
        "component-library",
        ("component_library",),
        dependencies={
            "@mui/material": "^5.15.2",
            "@emotion/react": "^11.11.3",
            "@emotion/styled": "^11.11.0",
        },
    ),
    DependencyCategory(
        "data-fetching",
        ("data_fetching",),
        dependencies={"swr": "^2.2.4"},
    ),
)


def expected_dependencies(request: ProjectRequest) -> tuple[dict[str, str], dict[str, str]]:
    """Return the ``(dependencies, devDependencies)`` the table yields for *request*."""
    dependencies: dict[str, str] = {}
    dev_dependencies: dict[str, str] = {}
    for category in DEPENDENCY_TABLE:
        if category.enabled(request):
            dependencies.update(category.dependencies)
            dev_dependencies.update(category.dev_dependencies)
    return dependencies, dev_dependencies


# ---------------------------------------------------------------------------
# Manifest model
# ---------------------------------------------------------------------------


class Manifest(BaseModel):
    """A ``package.json`` document.

    ``extra`` holds every top-level key that is not a named section and
    ``key_order`` remembers the order keys appeared in the source file.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str | None = None
    version: str | None = None
    private: bool | None = None
    scripts: dict[str, str] = Field(default_factory=dict)
    dependencies: dict[str, str] = Field(default_factory=dict)
    dev_dependencies: dict[str, str] = Field(default_factory=dict, alias="devDependencies")
    extra: dict[str, Any] = Field(default_factory=dict)
    key_order: list[str] = Field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Manifest":
        named = {key: data[key] for key in KNOWN_KEYS if key in data}
        extra = {key: value for key, value in data.items() if key not in KNOWN_KEYS}
        return cls.model_validate({**named, "extra": extra, "key_order": list(data)})

    def to_dict(self) -> dict[str, Any]:
        """Return the document with original key order and sorted dependencies.

        Dependency sections that were absent and are still empty are
        omitted; new named sections are placed at their conventional
        position.
        """
        sections: dict[str, Any] = {
            "name": self.name,
            "version": self.version,
            "private": self.private,
            "scripts": dict(self.scripts),
            "dependencies": dict(sorted(self.dependencies.items())),
            "devDependencies": dict(sorted(self.dev_dependencies.items())),
        }
        present = {
            key: value
            for key, value in sections.items()
            if value is not None and (value != {} or key in self.key_order)
        }

        document: dict[str, Any] = {}
        for key in self._ordered_keys(present):
            document[key] = present[key] if key in present else self.extra[key]
        return document

    def _ordered_keys(self, present: dict[str, Any]) -> list[str]:
        order = [k for k in self.key_order if k in present or k in self.extra]
        for index, key in enumerate(KNOWN_KEYS):
            if key not in present or key in order:
                continue
            # Insert after the closest preceding named section already placed.
            position = 0
            for previous in reversed(KNOWN_KEYS[:index]):
                if previous in order:
                    position = order.index(previous) + 1
                    break
            order.insert(position, key)
        order.extend(k for k in self.extra if k not in order)
        return order

    def dumps(self) -> str:
        """Serialise with two-space indentation and a trailing newline."""
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False) + "\n"


def load_manifest(path: str | Path) -> Manifest:
    """Read and parse the manifest at *path*.

    Raises:
        ManifestError: If the file is missing, is not valid JSON, or does
            not hold a JSON object with well-formed sections.
    """
    manifest_path = Path(path)
    try:
        raw = manifest_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ManifestError(manifest_path, exc.strerror or str(exc)) from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ManifestError(manifest_path, f"invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ManifestError(manifest_path, "expected a JSON object at the top level")
    try:
        return Manifest.from_dict(data)
    except ValidationError as exc:
        raise ManifestError(manifest_path, f"malformed manifest: {exc}") from exc


# ---------------------------------------------------------------------------
# Rewriting
# ---------------------------------------------------------------------------


def rewrite_scripts(scripts: dict[str, str], package_manager: PackageManager) -> dict[str, str]:
    """Rewrite script invocations to *package_manager*'s run syntax.

    ``npm run x``, ``pnpm [run] x`` and ``yarn [run] x`` are rewritten when
    ``x`` names a script of this manifest.
    """
    if not scripts:
        return {}
    names = sorted(scripts, key=len, reverse=True)
    pattern = re.compile(
        r"\b(?:npm run|pnpm(?: run)?|yarn(?: run)?)\s+("
        + "|".join(re.escape(name) for name in names)
        + r")(?=$|[\s;&|)])"
    )
    return {
        key: pattern.sub(lambda match: package_manager.run(match.group(1)), value)
        for key, value in scripts.items()
    }


def apply_request(
    manifest: Manifest,
    request: ProjectRequest,
    package_manager: PackageManager,
    *,
    select_dependencies: bool = True,
) -> Manifest:
    """Return a copy of *manifest* configured for *request*."""
    updated = manifest.model_copy(deep=True)
    updated.name = request.name
    updated.version = INITIAL_VERSION
    updated.private = True

    if select_dependencies:
        dependencies, dev_dependencies = expected_dependencies(request)
        for category in DEPENDENCY_TABLE:
            if category.enabled(request):
                for script, command in category.scripts.items():
                    updated.scripts.setdefault(script, command)
                continue
            for package in category.dependencies:
                updated.dependencies.pop(package, None)
            for package in category.dev_dependencies:
                updated.dev_dependencies.pop(package, None)
            for script in category.scripts:
                updated.scripts.pop(script, None)
        updated.dependencies.update(dependencies)
        updated.dev_dependencies.update(dev_dependencies)

    updated.scripts = rewrite_scripts(updated.scripts, package_manager)
    return updated


# Config stubs for managers that need one next to the manifest.
MANAGER_STUBS: dict[PackageManager, tuple[str, str]] = {
    PackageManager.PNPM: (".npmrc", "auto-install-peers=true\n"),
    PackageManager.YARN: ("yarn.lock", ""),
}


def write_manager_stub(project_root: Path, package_manager: PackageManager) -> Path | None:
    """Write *package_manager*'s stub file unless the project already has it."""
    stub = MANAGER_STUBS.get(package_manager)
    if stub is None:
        return None
    filename, content = stub
    path = project_root / filename
    if path.exists():
        return None
    path.write_text(content, encoding="utf-8")
    return path


def _rewrite_sync(
    manifest_path: Path,
    request: ProjectRequest,
    package_manager: PackageManager,
    select_dependencies: bool,
) -> Manifest:
    manifest = load_manifest(manifest_path)
    updated = apply_request(
        manifest, request, package_manager, select_dependencies=select_dependencies
    )
    content = updated.dumps()
    try:
        manifest_path.write_text(content, encoding="utf-8")
        write_manager_stub(manifest_path.parent, package_manager)
    except OSError as exc:
        raise ManifestError(manifest_path, exc.strerror or str(exc)) from exc
    return updated


async def rewrite(
    manifest_path: str | Path,
    request: ProjectRequest,
    package_manager: PackageManager,
    *,
    select_dependencies: bool = True,
) -> Manifest:
    """Rewrite the manifest at *manifest_path* in place.

    The file is fully parsed before anything is written.

    Args:
        manifest_path: Path to ``package.json`` inside the assembled project.
        request: The project request.
        package_manager: Manager whose run syntax and stub file to use.
        select_dependencies: Apply the dependency table; turned off for
            remote examples, whose dependencies are kept as published.

    Returns:
        The manifest as written.

    Raises:
        ManifestError: On a parse or write failure.
    """
    return await asyncio.to_thread(
        _rewrite_sync,
        Path(manifest_path),
        request,
        package_manager,
        select_dependencies,
    )
