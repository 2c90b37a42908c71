"""create-pop-react-app configuration.

Typed configuration for the scaffolding pipeline.  ``ProjectRequest`` is the
fully-resolved description of one invocation, ``Settings`` holds the tunable
endpoints and timeouts, and ``Preferences`` is the small per-user record the
CLI uses to pre-fill prompt answers.  All of them are Pydantic v2 models so
they are validated at construction time and serialise to JSON without
boiler-plate.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .validation import validate_npm_name

# Default answers for every feature toggle when neither a flag nor a stored
# preference is available.
DEFAULT_CONFIG: dict[str, Any] = {
    "typescript": True,
    "eslint": True,
    "prettier": True,
    "tailwind": False,
    "src_dir": False,
    "app_router": True,
    "import_alias": "@/*",
    "sass": True,
    "component_library": True,
    "data_fetching": True,
}

# Example value that explicitly asks for the built-in template.
DEFAULT_EXAMPLE = "default"

_IMPORT_ALIAS = re.compile(r"^[^*\"\s]+/\*$")


class ProjectRequest(BaseModel):
    """The resolved configuration for one scaffolding run.

    The project name is the final segment of ``path``.  It must be a valid
    npm package name; an invalid name fails validation before anything is
    written to disk.
    """

    model_config = ConfigDict(frozen=True)

    path: Path
    typescript: bool = True
    eslint: bool = True
    prettier: bool = True
    tailwind: bool = False
    src_dir: bool = False
    app_router: bool = True
    sass: bool = True
    component_library: bool = True
    data_fetching: bool = True
    import_alias: str = "@/*"
    example: str | None = None
    example_path: str | None = None

    @field_validator("path")
    @classmethod
    def _absolute_path(cls, value: Path) -> Path:
        return value.expanduser().resolve()

    @field_validator("example", "example_path")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        return value or None

    @field_validator("import_alias")
    @classmethod
    def _check_alias(cls, value: str) -> str:
        if not _IMPORT_ALIAS.match(value):
            raise ValueError(f"Import alias must follow the pattern <prefix>/*, got {value!r}")
        return value

    @model_validator(mode="after")
    def _check_name(self) -> "ProjectRequest":
        valid, problems = validate_npm_name(self.name)
        if not valid:
            raise ValueError(
                f"Could not create a project called {self.name!r} because of npm "
                f"naming restrictions: {'; '.join(problems)}"
            )
        return self

    @property
    def name(self) -> str:
        """Project name, taken from the target directory."""
        return self.path.name

    @property
    def wants_example(self) -> bool:
        """``True`` when a remote example was requested."""
        return self.example is not None and self.example != DEFAULT_EXAMPLE

    def without_example(self) -> "ProjectRequest":
        """Return a copy that uses the built-in template."""
        return self.model_copy(update={"example": None, "example_path": None})


class Settings(BaseModel):
    """Endpoints and limits used while resolving and installing a project."""

    examples_repo: str = Field(default="vercel/next.js", pattern=r"^[^/\s]+/[^/\s]+$")
    examples_branch: str = Field(default="canary")
    examples_dir: str = Field(default="examples")
    github_api_url: str = Field(default="https://api.github.com")
    codeload_url: str = Field(default="https://codeload.github.com")
    github_token: str | None = Field(default=None, repr=False)
    http_timeout: int = Field(default=30, ge=1, description="Per-request timeout in seconds")
    registry_host: str = Field(default="registry.yarnpkg.com")
    preferences_path: Path = Field(
        default_factory=lambda: _config_home() / "create-pop-react-app" / "preferences.json"
    )

    @classmethod
    def from_env(cls) -> "Settings":
        """Build ``Settings`` from environment variables.

        Recognised variables (all optional):
            CPRA_EXAMPLES_REPO, CPRA_EXAMPLES_BRANCH, CPRA_EXAMPLES_DIR,
            CPRA_HTTP_TIMEOUT, CPRA_REGISTRY_HOST, CPRA_PREFERENCES_PATH,
            GITHUB_TOKEN.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("CPRA_EXAMPLES_REPO"):
            kwargs["examples_repo"] = os.environ["CPRA_EXAMPLES_REPO"]
        if os.environ.get("CPRA_EXAMPLES_BRANCH"):
            kwargs["examples_branch"] = os.environ["CPRA_EXAMPLES_BRANCH"]
        if os.environ.get("CPRA_EXAMPLES_DIR"):
            kwargs["examples_dir"] = os.environ["CPRA_EXAMPLES_DIR"]
        if os.environ.get("CPRA_HTTP_TIMEOUT"):
            kwargs["http_timeout"] = int(os.environ["CPRA_HTTP_TIMEOUT"])
        if os.environ.get("CPRA_REGISTRY_HOST"):
            kwargs["registry_host"] = os.environ["CPRA_REGISTRY_HOST"]
        if os.environ.get("CPRA_PREFERENCES_PATH"):
            kwargs["preferences_path"] = Path(os.environ["CPRA_PREFERENCES_PATH"])
        if os.environ.get("GITHUB_TOKEN"):
            kwargs["github_token"] = os.environ["GITHUB_TOKEN"]
        return cls(**kwargs)

    def github_headers(self) -> dict[str, str]:
        """Headers for GitHub API requests."""
        headers = {"Accept": "application/vnd.github+json"}
        if self.github_token:
            headers["Authorization"] = f"Bearer {self.github_token}"
        return headers


class Preferences(BaseModel):
    """Answers remembered between runs to pre-fill the prompts."""

    sass: bool | None = None
    component_library: bool | None = None
    data_fetching: bool | None = None
    src_dir: bool | None = None

    def get(self, field: str) -> Any:
        """Return the stored answer for *field*, or its default."""
        value = getattr(self, field, None)
        return DEFAULT_CONFIG.get(field) if value is None else value

    def save(self, path: Path) -> Path:
        """Persist the preferences as JSON, creating parent directories."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2, exclude_none=True), encoding="utf-8")
        return path

    @classmethod
    def load(cls, path: Path) -> "Preferences":
        """Load preferences from *path*.

        A missing or unreadable file yields empty preferences; they only
        seed prompt defaults.
        """
        if not path.exists():
            return cls()
        try:
            return cls.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError):
            return cls()

    @staticmethod
    def clear(path: Path) -> None:
        """Delete the stored preferences."""
        path.unlink(missing_ok=True)


def _config_home() -> Path:
    xdg = os.environ.get("XDG_CONFIG_HOME")
    return Path(xdg) if xdg else Path.home() / ".config"
