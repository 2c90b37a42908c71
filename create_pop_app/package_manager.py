"""Package-manager detection.

The tool is normally launched through ``npm create``, ``pnpm create`` or
``yarn create``; each of them exports ``npm_config_user_agent`` to the child
process, which is the only signal consulted here.
"""

from __future__ import annotations

import enum
import os
from collections.abc import Mapping


class PackageManager(enum.Enum):
    """Supported package managers and their conventions."""

    NPM = ("npm", "package-lock.json", True)
    PNPM = ("pnpm", "pnpm-lock.yaml", False)
    YARN = ("yarn", "yarn.lock", False)

    def __init__(self, executable: str, lockfile: str, needs_run_keyword: bool) -> None:
        self.executable = executable
        self.lockfile = lockfile
        self.needs_run_keyword = needs_run_keyword

    def __str__(self) -> str:
        return self.executable

    def install_command(self, *, online: bool = True) -> list[str]:
        """Argument list that installs the project's dependencies."""
        cmd = [self.executable, "install"]
        if self is PackageManager.YARN and not online:
            cmd.append("--offline")
        return cmd

    def run(self, script: str) -> str:
        """Return the shell syntax that runs *script* from the manifest."""
        if self.needs_run_keyword:
            return f"{self.executable} run {script}"
        return f"{self.executable} {script}"


def detect(
    override: PackageManager | None = None,
    environ: Mapping[str, str] | None = None,
) -> PackageManager:
    """Decide which package manager drives this run.

    An explicit *override* always wins.  Otherwise the user agent of the
    launching package manager is inspected; with no recognisable signal npm
    is used.
    """
    if override is not None:
        return override

    env = os.environ if environ is None else environ
    user_agent = env.get("npm_config_user_agent", "")
    if user_agent.startswith("yarn"):
        return PackageManager.YARN
    if user_agent.startswith("pnpm"):
        return PackageManager.PNPM
    return PackageManager.NPM
