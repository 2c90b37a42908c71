"""Initial git commit for a freshly created project.

Everything here is best effort: a missing git binary, an existing enclosing
repository, or a failing commit never fails the scaffolding run.
"""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path

from .utils import print_warning, run_command

INITIAL_COMMIT_MESSAGE = "Initial commit from Create Pop React App"


async def is_in_git_repository(root: Path) -> bool:
    returncode, stdout, _ = await run_command(
        ["git", "rev-parse", "--is-inside-work-tree"], cwd=root
    )
    return returncode == 0 and stdout == "true"


async def try_git_init(root: str | Path) -> bool:
    """Initialise a repository in *root* with one commit.

    Returns:
        ``True`` if a repository was created, ``False`` when git is not
        available, *root* already belongs to a work tree, or a step failed.
    """
    root = Path(root)
    returncode, _, _ = await run_command(["git", "--version"], cwd=root)
    if returncode != 0:
        return False
    if await is_in_git_repository(root):
        return False

    returncode, _, stderr = await run_command(["git", "init"], cwd=root)
    if returncode != 0:
        print_warning(f"  git init failed: {stderr}")
        return False

    for cmd in (
        ["git", "checkout", "-b", "main"],
        ["git", "add", "-A"],
        ["git", "commit", "-m", INITIAL_COMMIT_MESSAGE],
    ):
        returncode, _, stderr = await run_command(cmd, cwd=root)
        if returncode != 0:
            print_warning(f"  {' '.join(cmd)} failed: {stderr}")
            await asyncio.to_thread(shutil.rmtree, root / ".git", True)
            return False

    return True
