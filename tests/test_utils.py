"""Unit tests for utility functions (create_pop_app.utils).

Tests cover:
- run_command (success, failure, missing executable, timeout, env vars)
- is_online (resolver success and failure)
- format_duration
- STAGE_COLORS constants
- Rich output helpers (print_step_header, print_summary_table, etc.)
"""

from __future__ import annotations

import asyncio
import socket
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

from create_pop_app.utils import (
    STAGE_COLORS,
    create_progress,
    format_duration,
    is_online,
    print_error,
    print_step_header,
    print_success,
    print_summary_table,
    print_warning,
    run_command,
)


# ---------------------------------------------------------------------------
# run_command
# ---------------------------------------------------------------------------


class TestRunCommand:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_successful_command(self):
        returncode, stdout, stderr = await run_command([sys.executable, "-c", "print('hello')"])
        assert returncode == 0
        assert stdout == "hello"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failed_command(self):
        returncode, _, stderr = await run_command(
            [sys.executable, "-c", "import sys; sys.stderr.write('boom'); sys.exit(3)"]
        )
        assert returncode == 3
        assert stderr == "boom"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_command_with_cwd(self, tmp_path: Path):
        returncode, stdout, _ = await run_command(
            [sys.executable, "-c", "import os; print(os.getcwd())"], cwd=tmp_path
        )
        assert returncode == 0
        assert Path(stdout).resolve() == tmp_path.resolve()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_env_is_merged(self):
        returncode, stdout, _ = await run_command(
            [sys.executable, "-c", "import os; print(os.environ['CPRA_TEST_VALUE'])"],
            env={"CPRA_TEST_VALUE": "42"},
        )
        assert returncode == 0
        assert stdout == "42"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_executable(self):
        returncode, stdout, stderr = await run_command(["definitely-not-a-real-binary-xyz"])
        assert returncode == 127
        assert stdout == ""
        assert "Command not found" in stderr

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_timeout_kills_process(self, mock_subprocess):
        proc = mock_subprocess()

        async def never_finishes():
            await asyncio.sleep(10)

        proc.communicate.side_effect = never_finishes
        with patch("asyncio.create_subprocess_exec", return_value=proc):
            returncode, _, stderr = await run_command(["sleep", "10"], timeout=0.01)
        assert returncode == -1
        assert "timed out" in stderr
        proc.kill.assert_called_once()
        proc.wait.assert_awaited_once()


# ---------------------------------------------------------------------------
# is_online
# ---------------------------------------------------------------------------


class TestIsOnline:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_resolvable_host(self):
        with patch("socket.getaddrinfo", return_value=[("addr",)]):
            assert await is_online("registry.yarnpkg.com") is True

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unresolvable_host(self):
        with patch("socket.getaddrinfo", side_effect=socket.gaierror("no dns")):
            assert await is_online("registry.yarnpkg.com") is False


# ---------------------------------------------------------------------------
# format_duration
# ---------------------------------------------------------------------------


class TestFormatDuration:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "seconds, expected",
        [(0, "0.0s"), (3.7, "3.7s"), (59.9, "59.9s"), (65.2, "1m 5s"), (3600, "60m 0s"), (-1, "0.0s")],
    )
    def test_format(self, seconds: float, expected: str):
        assert format_duration(seconds) == expected


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


class TestOutputHelpers:
    @pytest.mark.unit
    def test_stage_colors(self):
        assert set(STAGE_COLORS) == {"resolve", "assemble", "manifest", "install"}

    @pytest.mark.unit
    def test_helpers_do_not_raise(self):
        print_step_header("resolve", "Resolving template")
        print_step_header("unknown", "Unknown step")
        print_summary_table({"npm run dev": "Starts the development server."}, title="Commands")
        print_success("done")
        print_warning("careful")
        print_error("failed")

    @pytest.mark.unit
    def test_print_error_goes_to_stderr(self):
        with patch("create_pop_app.utils.err_console.print") as err_print, patch(
            "create_pop_app.utils.console.print"
        ) as out_print:
            print_error("failed")
        err_print.assert_called_once()
        out_print.assert_not_called()

    @pytest.mark.unit
    def test_create_progress(self):
        progress = create_progress()
        with progress:
            task = progress.add_task("Working...")
            progress.update(task, advance=1)
