"""Terminal results of a scaffolding run."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import Path


class Stage(enum.Enum):
    """Pipeline stage a failure is attributed to."""

    INPUT = "input"
    DOWNLOAD = "download"
    ASSEMBLY = "assembly"
    MANIFEST = "manifest"
    INSTALL = "install"


@dataclass(frozen=True)
class Success:
    """The project was created (and installed, unless installation was skipped)."""

    project_path: Path

    @property
    def ok(self) -> bool:
        return True

    @property
    def is_download_failure(self) -> bool:
        return False


@dataclass(frozen=True)
class Failure:
    """A stage failed.

    Only ``Stage.DOWNLOAD`` failures are recoverable by retrying with the
    built-in template.
    """

    stage: Stage
    message: str
    command: str | None = None
    exit_code: int | None = None

    @property
    def ok(self) -> bool:
        return False

    @property
    def is_download_failure(self) -> bool:
        return self.stage is Stage.DOWNLOAD

    def summary(self) -> str:
        """Return a one-paragraph description for the terminal."""
        lines = [f"Stage: {self.stage.value}", self.message]
        if self.command:
            lines.append(f"Command: {self.command}")
        if self.exit_code is not None:
            lines.append(f"Exit code: {self.exit_code}")
        return "\n".join(lines)


InstallOutcome = Success | Failure
