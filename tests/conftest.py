"""Shared pytest fixtures for the create-pop-react-app test suite.

Provides reusable fixtures for:
- Project requests pointing into a temporary directory
- Settings that never touch the user's real config directory
- In-memory codeload-style tarballs
- httpx clients backed by ``httpx.MockTransport``
- Mock subprocess helpers
"""

from __future__ import annotations

import io
import json
import tarfile
from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from create_pop_app.config import ProjectRequest, Settings


# ---------------------------------------------------------------------------
# Requests & Settings
# ---------------------------------------------------------------------------

@pytest.fixture
def make_request(tmp_path: Path) -> Callable[..., ProjectRequest]:
    """Factory for ``ProjectRequest`` objects rooted in ``tmp_path``.

    Usage:
        def test_something(make_request):
            request = make_request(sass=False, src_dir=True)
    """
    def factory(name: str = "my-app", **overrides: Any) -> ProjectRequest:
        return ProjectRequest(path=tmp_path / name, **overrides)

    return factory


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings with preferences stored under ``tmp_path``."""
    return Settings(preferences_path=tmp_path / "config" / "preferences.json")


# ---------------------------------------------------------------------------
# Archives
# ---------------------------------------------------------------------------

def build_tarball(files: dict[str, str | bytes]) -> bytes:
    """Return a gzipped tarball holding *files* (member name -> content)."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for name, content in files.items():
            data = content.encode("utf-8") if isinstance(content, str) else content
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o644
            tar.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


@pytest.fixture
def example_tarball() -> bytes:
    """A codeload-style archive of ``vercel/next.js@canary`` with one example."""
    manifest = {
        "name": "with-redux",
        "version": "9.9.9",
        "private": False,
        "scripts": {"dev": "npm run build:css && next dev", "build:css": "sass styles"},
        "dependencies": {"next": "latest", "react-redux": "^9.0.0"},
    }
    return build_tarball({
        "next.js-canary/package.json": "{}\n",
        "next.js-canary/examples/with-redux/package.json": json.dumps(manifest, indent=2),
        "next.js-canary/examples/with-redux/dot-env.example": "API_URL=\n",
        "next.js-canary/examples/with-redux/app/page.tsx": "export default function Page() {}\n",
        "next.js-canary/examples/with-redux/yarn.lock": "# lock\n",
        "next.js-canary/examples/other/package.json": "{}\n",
    })


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_http() -> Callable[..., httpx.AsyncClient]:
    """Factory for an ``httpx.AsyncClient`` answered by *handler*.

    Usage:
        def test_fetch(mock_http):
            client = mock_http(lambda request: httpx.Response(200))
    """
    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return factory


def github_handler(
    tarball: bytes,
    *,
    existing: tuple[str, ...] = ("examples/with-redux",),
    codeload_status: int = 200,
    default_branch: str = "main",
) -> Callable[[httpx.Request], httpx.Response]:
    """Build a MockTransport handler that imitates the GitHub endpoints used."""
    def handler(request: httpx.Request) -> httpx.Response:
        host = request.url.host
        path = request.url.path
        if host == "codeload.github.com":
            if codeload_status != 200:
                return httpx.Response(codeload_status)
            return httpx.Response(200, content=tarball)
        if host == "api.github.com" and "/contents/" in path:
            contents = path.split("/contents/", 1)[1]
            found = any(
                contents == item or contents == f"{item}/package.json" for item in existing
            )
            return httpx.Response(200 if found else 404)
        if host == "api.github.com" and path.startswith("/repos/"):
            return httpx.Response(200, json={"default_branch": default_branch})
        return httpx.Response(404)

    return handler


# ---------------------------------------------------------------------------
# Mock Subprocess (generic)
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_subprocess():
    """Mock asyncio subprocess for testing command execution.

    Returns a factory that creates mock subprocess instances with configurable
    stdout, stderr, and return codes.

    Usage:
        def test_command(mock_subprocess):
            proc = mock_subprocess(stdout="output", returncode=0)
            with patch("asyncio.create_subprocess_exec", return_value=proc):
                ...
    """
    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> AsyncMock:
        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(
            return_value=(stdout.encode("utf-8"), stderr.encode("utf-8"))
        )
        mock_proc.returncode = returncode
        mock_proc.pid = 99999
        mock_proc.kill = MagicMock()
        mock_proc.wait = AsyncMock(return_value=returncode)
        return mock_proc

    return factory


@pytest.fixture
def tarball_factory() -> Callable[[dict[str, str | bytes]], bytes]:
    """The ``build_tarball`` helper, for tests that need custom archives."""
    return build_tarball


@pytest.fixture
def github() -> Callable[..., Callable[[httpx.Request], httpx.Response]]:
    """The ``github_handler`` factory, for MockTransport-backed clients."""
    return github_handler
