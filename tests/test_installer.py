"""Unit tests for dependency installation (create_pop_app.installer).

Tests cover:
- run_install command, cwd and environment
- InstallError on non-zero exit and missing executable
- install() outcome mapping (Success / Failure at the install stage)
- Yarn offline fallback driven by the registry probe
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from create_pop_app.installer import INSTALL_ENV, InstallError, install, run_install
from create_pop_app.outcome import Failure, Stage, Success
from create_pop_app.package_manager import PackageManager


# ---------------------------------------------------------------------------
# run_install
# ---------------------------------------------------------------------------


class TestRunInstall:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_spawns_install_in_project(self, tmp_path: Path, mock_subprocess):
        proc = mock_subprocess(returncode=0)
        with patch("asyncio.create_subprocess_exec", return_value=proc) as spawn:
            await run_install(tmp_path, PackageManager.PNPM)

        args, kwargs = spawn.call_args
        assert args == ("pnpm", "install")
        assert kwargs["cwd"] == str(tmp_path)
        for key, value in INSTALL_ENV.items():
            assert kwargs["env"][key] == value
        assert "stdout" not in kwargs

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_offline_yarn(self, tmp_path: Path, mock_subprocess):
        proc = mock_subprocess(returncode=0)
        with patch("asyncio.create_subprocess_exec", return_value=proc) as spawn:
            await run_install(tmp_path, PackageManager.YARN, online=False)
        assert spawn.call_args.args == ("yarn", "install", "--offline")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_non_zero_exit(self, tmp_path: Path, mock_subprocess):
        proc = mock_subprocess(returncode=1)
        with patch("asyncio.create_subprocess_exec", return_value=proc):
            with pytest.raises(InstallError) as exc_info:
                await run_install(tmp_path, PackageManager.NPM)
        assert exc_info.value.command == "npm install"
        assert exc_info.value.exit_code == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_executable(self, tmp_path: Path):
        with patch("asyncio.create_subprocess_exec", side_effect=FileNotFoundError("pnpm")):
            with pytest.raises(InstallError, match="not installed") as exc_info:
                await run_install(tmp_path, PackageManager.PNPM)
        assert exc_info.value.exit_code is None


# ---------------------------------------------------------------------------
# install
# ---------------------------------------------------------------------------


class TestInstall:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_success(self, tmp_path: Path):
        with patch("create_pop_app.installer.run_install", new_callable=AsyncMock) as run:
            outcome = await install(tmp_path, PackageManager.NPM)
        assert outcome == Success(project_path=tmp_path)
        run.assert_awaited_once_with(tmp_path, PackageManager.NPM, online=True)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failure_keeps_tree(self, tmp_path: Path):
        (tmp_path / "package.json").write_text("{}", encoding="utf-8")
        error = InstallError("npm install", 1)
        with patch("create_pop_app.installer.run_install", new_callable=AsyncMock, side_effect=error):
            outcome = await install(tmp_path, PackageManager.NPM)

        assert isinstance(outcome, Failure)
        assert outcome.stage is Stage.INSTALL
        assert outcome.command == "npm install"
        assert outcome.exit_code == 1
        assert outcome.is_download_failure is False
        assert (tmp_path / "package.json").exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_yarn_offline_fallback(self, tmp_path: Path):
        with patch("create_pop_app.installer.is_online", new_callable=AsyncMock, return_value=False) as probe, patch(
            "create_pop_app.installer.run_install", new_callable=AsyncMock
        ) as run:
            await install(tmp_path, PackageManager.YARN, registry_host="registry.example.com")
        probe.assert_awaited_once_with("registry.example.com")
        run.assert_awaited_once_with(tmp_path, PackageManager.YARN, online=False)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_probe_only_for_yarn(self, tmp_path: Path):
        with patch("create_pop_app.installer.is_online", new_callable=AsyncMock) as probe, patch(
            "create_pop_app.installer.run_install", new_callable=AsyncMock
        ):
            await install(tmp_path, PackageManager.PNPM)
        probe.assert_not_awaited()
