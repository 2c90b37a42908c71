"""Project tree assembly and manifest rewriting.

Quick usage::

    from create_pop_app.scaffolder import TreeAssembler, rewrite

    await TreeAssembler(request).assemble(roots, request.path)
    await rewrite(request.path / "package.json", request, PackageManager.NPM)
"""

from create_pop_app.scaffolder.assembler import (
    INCLUSION_RULES,
    AssemblyError,
    InclusionRule,
    TreeAssembler,
    assemble,
)
from create_pop_app.scaffolder.manifest import (
    DEPENDENCY_TABLE,
    Manifest,
    ManifestError,
    load_manifest,
    rewrite,
)
from create_pop_app.scaffolder.templates import TemplateRenderer

__all__ = [
    "AssemblyError",
    "DEPENDENCY_TABLE",
    "INCLUSION_RULES",
    "InclusionRule",
    "Manifest",
    "ManifestError",
    "TemplateRenderer",
    "TreeAssembler",
    "assemble",
    "load_manifest",
    "rewrite",
]
