"""Shared utility functions for create-pop-react-app.

Subprocess helpers, a registry reachability probe and the Rich output
helpers every stage reports through.  Normal output goes to ``console`` and
errors to ``err_console`` so a failing run can be piped without losing the
reason.
"""

from __future__ import annotations

import asyncio
import os
import socket
from pathlib import Path

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.rule import Rule
from rich.table import Table

console = Console()
err_console = Console(stderr=True)

# ---------------------------------------------------------------------------
# Subprocesses
# ---------------------------------------------------------------------------


def _decode(raw: bytes | None) -> str:
    return (raw or b"").decode("utf-8", errors="replace").strip()


async def run_command(
    cmd: list[str],
    cwd: str | Path | None = None,
    timeout: int = 120,
    env: dict[str, str] | None = None,
) -> tuple[int, str, str]:
    """Run *cmd* without a shell and capture stdout and stderr.

    *env* entries are layered over the current environment.  Returns
    ``(returncode, stdout, stderr)``; a missing executable yields 127 and a
    timeout yields -1 after the child has been killed.
    """
    child_env = {**os.environ, **env} if env else None
    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd) if cwd else None,
            env=child_env,
        )
    except FileNotFoundError:
        return 127, "", f"Command not found: {cmd[0]}"

    try:
        out, err = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return -1, "", f"{' '.join(cmd)} timed out after {timeout}s"

    return process.returncode or 0, _decode(out), _decode(err)


# ---------------------------------------------------------------------------
# Network probe
# ---------------------------------------------------------------------------


async def is_online(host: str) -> bool:
    """Return ``True`` if *host* resolves through DNS.

    The lookup runs in the default executor so the event loop is not
    blocked by a slow resolver.
    """
    loop = asyncio.get_running_loop()

    def _resolve() -> bool:
        try:
            socket.getaddrinfo(host, None)
        except OSError:
            return False
        return True

    return await loop.run_in_executor(None, _resolve)


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """``3.7`` -> ``"3.7s"``, ``65.2`` -> ``"1m 5s"``; negatives clamp to zero."""
    minutes, secs = divmod(max(seconds, 0.0), 60)
    if minutes:
        return f"{int(minutes)}m {int(secs)}s"
    return f"{secs:.1f}s"


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


STAGE_COLORS: dict[str, str] = {
    "resolve": "bright_cyan",
    "assemble": "bright_green",
    "manifest": "bright_yellow",
    "install": "bright_magenta",
}


def print_step_header(step: str, message: str) -> None:
    """Print a rule announcing a pipeline step."""
    color = STAGE_COLORS.get(step, "white")
    console.print()
    console.print(Rule(f"[bold {color}]{message}[/bold {color}]", style=color))


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print *data* as a command/description table."""
    table = Table(title=title, title_justify="left", header_style="bold cyan", box=None)
    table.add_column("Command", style="cyan", no_wrap=True)
    table.add_column("Description")
    for command, description in data.items():
        table.add_row(command, str(description))
    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message to stderr."""
    err_console.print(f"[bold red]{message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{message}[/bold yellow]")


def create_progress() -> Progress:
    """Create a Rich spinner for long-running steps.

    Returns:
        A ``Progress`` instance suitable for use as a context manager.
    """
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )
