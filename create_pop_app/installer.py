"""Dependency installation.

Runs the chosen package manager's install command inside the assembled
project.  Output is not captured: the child inherits the terminal so the
user sees progress as it happens, and an interrupt from the terminal reaches
the child directly.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

from .outcome import Failure, InstallOutcome, Stage, Success
from .package_manager import PackageManager
from .utils import console, is_online

# Quiets postinstall banners and keeps devDependencies installable.
INSTALL_ENV: dict[str, str] = {
    "ADBLOCK": "1",
    "NODE_ENV": "development",
    "DISABLE_OPENCOLLECTIVE": "1",
}


class InstallError(Exception):
    """Raised when the install command exits unsuccessfully."""

    def __init__(self, command: str, exit_code: int | None, message: str = "") -> None:
        self.command = command
        self.exit_code = exit_code
        super().__init__(message or f"{command} exited with code {exit_code}")


async def run_install(
    project_root: str | Path,
    package_manager: PackageManager,
    *,
    online: bool = True,
) -> None:
    """Spawn the install command and wait for it to finish.

    Raises:
        InstallError: On a non-zero exit or when the executable is missing.
    """
    cmd = package_manager.install_command(online=online)
    cmd_str = " ".join(cmd)

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            cwd=str(project_root),
            env={**os.environ, **INSTALL_ENV},
        )
    except FileNotFoundError as exc:
        raise InstallError(
            cmd_str, None, f"{package_manager.executable} is not installed or not on PATH"
        ) from exc

    returncode = await process.wait()
    if returncode != 0:
        raise InstallError(cmd_str, returncode)


async def install(
    project_root: str | Path,
    package_manager: PackageManager,
    *,
    registry_host: str = "registry.yarnpkg.com",
) -> InstallOutcome:
    """Install the project's dependencies and report the outcome.

    Yarn falls back to its offline cache when the registry does not resolve.
    There are no retries; a failed install leaves the tree in place so the
    user can rerun the command by hand.
    """
    root = Path(project_root)
    online = True
    if package_manager is PackageManager.YARN:
        online = await is_online(registry_host)
        if not online:
            console.print("  [yellow]You appear to be offline.[/yellow]")
            console.print("  [yellow]Falling back to the local Yarn cache.[/yellow]")

    console.print(f"  Installing dependencies with [cyan]{package_manager}[/cyan]...")
    console.print()
    try:
        await run_install(root, package_manager, online=online)
    except InstallError as exc:
        return Failure(
            stage=Stage.INSTALL,
            message=str(exc),
            command=exc.command,
            exit_code=exc.exit_code,
        )
    return Success(project_path=root)
