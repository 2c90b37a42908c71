"""Command-line entry point.

Usage::

    create-pop-react-app my-app
    create-pop-react-app my-app --no-app --src-dir --use-pnpm
    create-pop-react-app my-app --example with-redux
    python -m create_pop_app.cli my-app --example https://github.com/org/repo/tree/main/examples/foo
"""

from __future__ import annotations

import argparse
import asyncio
import os
import signal
import sys
from pathlib import Path
from types import FrameType

from pydantic import ValidationError
from rich.prompt import Confirm, Prompt

from .config import DEFAULT_CONFIG, DEFAULT_EXAMPLE, Preferences, ProjectRequest, Settings
from .outcome import Failure, InstallOutcome
from .package_manager import PackageManager
from .pipeline import run_pipeline
from .utils import console, err_console, print_error
from .validation import is_folder_empty, validate_npm_name

PROGRAM_NAME = "create-pop-react-app"

# Toggles the user is asked about when no flag settles them, with the
# answer used in CI where nobody can answer.
PROMPTED_TOGGLES: tuple[tuple[str, str, bool], ...] = (
    ("app_router", "Use [#007acc]App Router[/#007acc] (recommended)?", True),
    ("sass", "Would you like to use [#007acc]Sass[/#007acc] with this project?", False),
    (
        "component_library",
        "Would you like to use [#007acc]Material UI[/#007acc] with this project?",
        False,
    ),
    ("data_fetching", "Would you like to use [#007acc]SWR[/#007acc] with this project?", False),
    ("src_dir", "Would you like to use [#007acc]`src/` directory[/#007acc] with this project?", False),
)

# Toggles whose answers are remembered between runs.
REMEMBERED_TOGGLES = frozenset({"sass", "component_library", "data_fetching", "src_dir"})


def _handle_signal(signum: int, frame: FrameType | None) -> None:
    """Exit immediately; a running install receives the same interrupt."""
    console.show_cursor(True)
    console.file.flush()
    os._exit(0)


def is_ci() -> bool:
    return bool(os.environ.get("CI")) and os.environ.get("CI", "").lower() != "false"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROGRAM_NAME,
        description="Create a ready-to-run React application",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            f"  {PROGRAM_NAME} my-app\n"
            f"  {PROGRAM_NAME} my-app --no-app --src-dir --use-pnpm\n"
            f"  {PROGRAM_NAME} my-app --example with-redux\n"
        ),
    )
    parser.add_argument("project_directory", nargs="?", help="Directory to create the project in")

    language = parser.add_mutually_exclusive_group()
    language.add_argument(
        "--ts", "--typescript", dest="typescript", action="store_true", default=None,
        help="Initialize as a TypeScript project (default)",
    )
    language.add_argument(
        "--js", "--javascript", dest="typescript", action="store_false", default=None,
        help="Initialize as a JavaScript project",
    )

    toggles = [
        ("--tailwind", "tailwind", "Initialize with Tailwind CSS config"),
        ("--eslint", "eslint", "Initialize with ESLint config"),
        ("--prettier", "prettier", "Initialize with Prettier config"),
        ("--app", "app_router", "Initialize as an App Router project"),
        ("--src-dir", "src_dir", "Initialize inside a `src/` directory"),
        ("--sass", "sass", "Initialize with Sass stylesheets"),
        ("--mui", "component_library", "Initialize with Material UI"),
        ("--swr", "data_fetching", "Initialize with SWR"),
    ]
    for flag, dest, help_text in toggles:
        parser.add_argument(
            flag, dest=dest, action=argparse.BooleanOptionalAction, default=None, help=help_text
        )

    parser.add_argument(
        "--import-alias", default=None, metavar="ALIAS",
        help='Import alias to configure (default "@/*")',
    )

    managers = parser.add_mutually_exclusive_group()
    for manager in PackageManager:
        managers.add_argument(
            f"--use-{manager.executable}", dest="package_manager",
            action="store_const", const=manager,
            help=f"Bootstrap the application using {manager.executable}",
        )

    parser.add_argument(
        "-e", "--example", nargs="?", const="", default=None, metavar="NAME_OR_URL",
        help="An example name from the examples repository or a GitHub URL; "
        "the URL can use any branch and/or subdirectory",
    )
    parser.add_argument(
        "--example-path", default=None, metavar="PATH",
        help="Path to the example inside the repository, needed when the "
        "branch name in the URL contains a slash (e.g. bug/fix-1)",
    )
    parser.add_argument(
        "--skip-install", action="store_true",
        help="Create the project without installing dependencies",
    )
    parser.add_argument(
        "--reset-preferences", action="store_true",
        help="Forget the answers remembered from previous runs",
    )
    return parser


def _ask_project_path() -> str:
    while True:
        answer = Prompt.ask("What is your project named?", default="my-app", console=console).strip()
        valid, problems = validate_npm_name(Path(answer).resolve().name)
        if valid:
            return answer
        print_error(f"Invalid project name: {problems[0]}")


def resolve_toggles(
    args: argparse.Namespace,
    preferences: Preferences,
    *,
    interactive: bool,
) -> dict[str, object]:
    """Settle every feature toggle from flags, prompts and defaults.

    Prompts are only shown for the built-in template; an example brings
    its own setup.  Answers for remembered toggles are written back into
    *preferences*.
    """
    wants_example = bool(args.example) and args.example.strip() != DEFAULT_EXAMPLE
    toggles: dict[str, object] = {}
    for field in ("typescript", "eslint", "prettier", "tailwind"):
        value = getattr(args, field)
        toggles[field] = DEFAULT_CONFIG[field] if value is None else value
    toggles["import_alias"] = args.import_alias or DEFAULT_CONFIG["import_alias"]

    for field, question, ci_default in PROMPTED_TOGGLES:
        value = getattr(args, field)
        if value is None:
            if wants_example:
                value = DEFAULT_CONFIG[field]
            elif not interactive:
                value = ci_default
            else:
                default = preferences.get(field) if field in REMEMBERED_TOGGLES else DEFAULT_CONFIG[field]
                value = Confirm.ask(question, default=bool(default), console=console)
                if field in REMEMBERED_TOGGLES:
                    setattr(preferences, field, value)
        toggles[field] = value
    return toggles


def report_failure(outcome: Failure) -> None:
    """Print the failing stage and command to stderr."""
    err_console.print()
    err_console.print("Aborting installation.")
    if outcome.command:
        err_console.print(f"  [cyan]{outcome.command}[/cyan] has failed.")
    err_console.print(f"  [red]{outcome.stage.value}[/red]: {outcome.message}")
    err_console.print()


async def create(
    request: ProjectRequest,
    package_manager: PackageManager | None,
    settings: Settings,
    *,
    skip_install: bool = False,
    interactive: bool = True,
) -> InstallOutcome:
    """Run the pipeline, offering the built-in template after a download failure."""
    outcome = await run_pipeline(
        request, package_manager, settings=settings, skip_install=skip_install
    )
    if not outcome.is_download_failure:
        return outcome

    use_builtin = interactive and Confirm.ask(
        f'Could not download "{request.example}" because of a connectivity issue '
        "between your machine and GitHub.\nDo you want to use the default template instead?",
        default=True,
        console=console,
    )
    if not use_builtin:
        return outcome
    return await run_pipeline(
        request.without_example(), package_manager, settings=settings, skip_install=skip_install
    )


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``create-pop-react-app``."""
    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    args = build_parser().parse_args(argv)
    settings = Settings.from_env()
    interactive = not is_ci() and sys.stdin.isatty()

    if args.reset_preferences:
        Preferences.clear(settings.preferences_path)
        console.print("Preferences reset successfully")
        return

    project_path = (args.project_directory or "").strip()
    if not project_path and interactive:
        project_path = _ask_project_path()
    if not project_path:
        console.print(
            "\nPlease specify the project directory:\n"
            f"  [cyan]{PROGRAM_NAME}[/cyan] [green]<project-directory>[/green]\n"
            "For example:\n"
            f"  [cyan]{PROGRAM_NAME}[/cyan] [green]my-react-app[/green]\n\n"
            f"Run [cyan]{PROGRAM_NAME} --help[/cyan] to see all options."
        )
        sys.exit(1)

    root = Path(project_path).expanduser().resolve()
    valid, problems = validate_npm_name(root.name)
    if not valid:
        print_error(
            f'Could not create a project called "{root.name}" because of npm naming restrictions:'
        )
        for problem in problems:
            err_console.print(f"    [bold red]*[/bold red] {problem}")
        sys.exit(1)

    if args.example == "":
        print_error("Please provide an example name or url, otherwise remove the example option.")
        sys.exit(1)

    if root.exists() and not is_folder_empty(root, root.name):
        sys.exit(1)

    preferences = Preferences.load(settings.preferences_path)
    toggles = resolve_toggles(args, preferences, interactive=interactive)

    try:
        request = ProjectRequest(
            path=root,
            example=args.example,
            example_path=args.example_path,
            **toggles,
        )
    except ValidationError as exc:
        for error in exc.errors():
            print_error(error["msg"])
        sys.exit(1)

    outcome = asyncio.run(
        create(
            request,
            args.package_manager,
            settings,
            skip_install=args.skip_install,
            interactive=interactive,
        )
    )
    if isinstance(outcome, Failure):
        report_failure(outcome)
        sys.exit(1)
    preferences.save(settings.preferences_path)


if __name__ == "__main__":
    main()
