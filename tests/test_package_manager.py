"""Unit tests for package-manager detection (create_pop_app.package_manager).

Tests cover:
- detect() from the user agent, with overrides and without a signal
- install_command() including the Yarn offline flag
- run() script syntax per manager
"""

from __future__ import annotations

import pytest

from create_pop_app.package_manager import PackageManager, detect

pytestmark = pytest.mark.unit


class TestDetect:
    @pytest.mark.parametrize(
        "user_agent, expected",
        [
            ("yarn/1.22.19 npm/? node/v20.10.0 darwin arm64", PackageManager.YARN),
            ("pnpm/8.12.1 npm/? node/v20.10.0 linux x64", PackageManager.PNPM),
            ("npm/10.2.3 node/v20.10.0 linux x64 workspaces/false", PackageManager.NPM),
            ("bun/1.0.0", PackageManager.NPM),
        ],
    )
    def test_from_user_agent(self, user_agent: str, expected: PackageManager):
        assert detect(environ={"npm_config_user_agent": user_agent}) is expected

    def test_no_signal_defaults_to_npm(self):
        assert detect(environ={}) is PackageManager.NPM

    def test_override_wins(self):
        env = {"npm_config_user_agent": "yarn/1.22.19"}
        assert detect(PackageManager.PNPM, environ=env) is PackageManager.PNPM

    def test_reads_process_environment(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("npm_config_user_agent", "pnpm/8.0.0")
        assert detect() is PackageManager.PNPM


class TestInstallCommand:
    @pytest.mark.parametrize("manager", list(PackageManager))
    def test_online(self, manager: PackageManager):
        assert manager.install_command() == [manager.executable, "install"]

    def test_yarn_offline(self):
        assert PackageManager.YARN.install_command(online=False) == ["yarn", "install", "--offline"]

    @pytest.mark.parametrize("manager", [PackageManager.NPM, PackageManager.PNPM])
    def test_offline_flag_only_for_yarn(self, manager: PackageManager):
        assert "--offline" not in manager.install_command(online=False)


class TestRunSyntax:
    def test_npm_needs_run(self):
        assert PackageManager.NPM.run("dev") == "npm run dev"

    def test_pnpm(self):
        assert PackageManager.PNPM.run("dev") == "pnpm dev"

    def test_yarn(self):
        assert PackageManager.YARN.run("build") == "yarn build"

    def test_str_is_executable(self):
        assert str(PackageManager.PNPM) == "pnpm"

    def test_lockfiles(self):
        assert PackageManager.NPM.lockfile == "package-lock.json"
        assert PackageManager.PNPM.lockfile == "pnpm-lock.yaml"
        assert PackageManager.YARN.lockfile == "yarn.lock"
