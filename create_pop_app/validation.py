"""Project name and target directory checks.

These run before the pipeline touches the filesystem.  ``validate_npm_name``
follows the npm package naming rules for new packages; ``is_folder_empty``
reports files that would collide with a freshly generated project.
"""

from __future__ import annotations

import re
from pathlib import Path
from urllib.parse import quote

from .utils import console


class InvalidRequestError(Exception):
    """Raised when a project request is rejected before any mutation."""

    def __init__(self, message: str, problems: list[str] | None = None) -> None:
        self.problems = problems or []
        super().__init__(message)


# ---------------------------------------------------------------------------
# Package names
# ---------------------------------------------------------------------------

MAX_NAME_LENGTH = 214

_BLACKLISTED_NAMES = frozenset({"node_modules", "favicon.ico"})

_SCOPED_NAME = re.compile(r"^(?:@([^/]+?)[/])?([^/]+?)$")
_SPECIAL_CHARS = re.compile(r"[~'!()*]")


def validate_npm_name(name: str) -> tuple[bool, list[str]]:
    """Check *name* against npm's rules for new package names.

    Returns:
        A ``(valid, problems)`` tuple.  *problems* is empty when valid.
    """
    problems: list[str] = []

    if not name:
        return False, ["name length must be greater than zero"]

    if name.startswith("."):
        problems.append("name cannot start with a period")
    if name.startswith("_"):
        problems.append("name cannot start with an underscore")
    if name.strip() != name:
        problems.append("name cannot contain leading or trailing spaces")
    if name.lower() in _BLACKLISTED_NAMES:
        problems.append(f"{name} is a blacklisted name")
    if len(name) > MAX_NAME_LENGTH:
        problems.append(f"name can no longer contain more than {MAX_NAME_LENGTH} characters")
    if name.lower() != name:
        problems.append("name can no longer contain capital letters")
    if _SPECIAL_CHARS.search(name.split("/")[-1]):
        problems.append('name can no longer contain special characters ("~\'!()*")')

    if quote(name, safe="") != name:
        # Scoped packages may contain exactly one slash after the scope.
        match = _SCOPED_NAME.match(name)
        if not (
            match
            and match.group(1)
            and quote(match.group(1), safe="") == match.group(1)
            and quote(match.group(2), safe="") == match.group(2)
        ):
            problems.append("name can only contain URL-friendly characters")

    return not problems, problems


# ---------------------------------------------------------------------------
# Target directory
# ---------------------------------------------------------------------------

# Files a user commonly has in a fresh directory that do not conflict with
# a generated project.
VALID_FILES = frozenset({
    ".DS_Store",
    ".git",
    ".gitattributes",
    ".gitignore",
    ".gitlab-ci.yml",
    ".hg",
    ".hgcheck",
    ".hgignore",
    ".idea",
    ".npmignore",
    ".travis.yml",
    "LICENSE",
    "Thumbs.db",
    "docs",
    "mkdocs.yml",
    "npm-debug.log",
    "yarn-debug.log",
    "yarn-error.log",
    "yarnrc.yml",
    ".yarn",
})


def conflicting_files(root: str | Path) -> list[str]:
    """Return the names in *root* that would conflict with a new project."""
    root_path = Path(root)
    if not root_path.exists():
        return []
    return sorted(
        entry.name
        for entry in root_path.iterdir()
        # IntelliJ project files are harmless.
        if entry.name not in VALID_FILES and not entry.name.endswith(".iml")
    )


def is_folder_empty(root: str | Path, name: str) -> bool:
    """Return ``True`` if *root* has no files that conflict with a new project.

    Conflicts are listed on the console so the user can move them.
    """
    conflicts = conflicting_files(root)
    if not conflicts:
        return True

    console.print(f"The directory [green]{name}[/green] contains files that could conflict:")
    console.print()
    for file in conflicts:
        entry = Path(root) / file
        if entry.is_dir():
            console.print(f"  [blue]{file}[/blue]/")
        else:
            console.print(f"  {file}")
    console.print()
    console.print(
        "Either try using a new directory name, or remove the files listed above."
    )
    console.print()
    return False
