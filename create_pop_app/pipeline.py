"""create-pop-react-app pipeline orchestrator.

Turns a ``ProjectRequest`` into an installed project in strictly sequential
steps:

1. DETECT   -- pick the package manager.
2. RESOLVE  -- choose the built-in template or locate a remote example.
3. ASSEMBLE -- stage the template and copy it into the target directory.
4. MANIFEST -- rewrite ``package.json`` for the request and manager.
5. INSTALL  -- run the manager's install command, then create a git repo.

Every stage failure is returned as a ``Failure`` value.  A failure at the
``DOWNLOAD`` stage is the only one a caller may recover from, by running
again without the example.
"""

from __future__ import annotations

import time
from pathlib import Path

import httpx
from rich.panel import Panel

from .config import ProjectRequest, Settings
from .examples import DownloadError, RemoteTemplate, resolve, staged
from .git import try_git_init
from .installer import install
from .outcome import Failure, InstallOutcome, Stage, Success
from .package_manager import PackageManager, detect
from .scaffolder.assembler import AssemblyError, TreeAssembler
from .scaffolder.manifest import MANIFEST_NAME, ManifestError, rewrite
from .utils import (
    console,
    format_duration,
    print_error,
    print_step_header,
    print_success,
    print_summary_table,
)
from .validation import InvalidRequestError


class Pipeline:
    """Drives one scaffolding run.

    Attributes:
        request: The resolved project request.
        settings: Endpoints and limits for resolution and install.
        package_manager: The manager in use, set once ``run`` has started.
    """

    def __init__(
        self,
        request: ProjectRequest,
        package_manager: PackageManager | None = None,
        *,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
        skip_install: bool = False,
        init_git: bool = True,
    ) -> None:
        self.request = request
        self.settings = settings or Settings()
        self.client = client
        self.skip_install = skip_install
        self.init_git = init_git
        self._override = package_manager
        self.package_manager: PackageManager | None = None

    async def run(self) -> InstallOutcome:
        """Execute every stage in order and return the outcome."""
        started = time.monotonic()
        self.package_manager = detect(self._override)

        console.print(
            Panel(
                f"Creating a new app in [green]{self.request.path}[/green]\n"
                f"Package manager : {self.package_manager}\n"
                f"Template        : {self.request.example or 'built-in'}",
                title="[bold]create-pop-react-app[/bold]",
                border_style="bright_cyan",
            )
        )

        try:
            outcome = await self._run_stages(self.package_manager)
        except InvalidRequestError as exc:
            outcome = Failure(stage=Stage.INPUT, message=str(exc))
        except DownloadError as exc:
            outcome = Failure(stage=Stage.DOWNLOAD, message=str(exc))
        except AssemblyError as exc:
            outcome = Failure(stage=Stage.ASSEMBLY, message=str(exc))
        except ManifestError as exc:
            outcome = Failure(stage=Stage.MANIFEST, message=str(exc))

        self._print_final_summary(outcome, time.monotonic() - started)
        return outcome

    async def _run_stages(self, package_manager: PackageManager) -> InstallOutcome:
        root = self.request.path

        print_step_header("resolve", "Resolving template")
        source = await resolve(self.request, self.settings, self.client)
        remote = isinstance(source, RemoteTemplate)

        print_step_header("assemble", "Copying files")
        assembler = TreeAssembler(self.request)
        async with staged(source, self.settings, self.client) as roots:
            written = await assembler.assemble(roots, root, apply_rules=not remote)
        console.print(f"  Wrote [bold]{len(written)}[/bold] file(s)")

        print_step_header("manifest", "Writing package.json")
        manifest = await rewrite(
            root / MANIFEST_NAME,
            self.request,
            package_manager,
            select_dependencies=not remote,
        )
        if manifest.dependencies:
            console.print("  Dependencies: " + ", ".join(f"[cyan]{d}[/cyan]" for d in manifest.dependencies))
        if manifest.dev_dependencies:
            console.print(
                "  Dev dependencies: "
                + ", ".join(f"[cyan]{d}[/cyan]" for d in manifest.dev_dependencies)
            )

        if self.skip_install:
            return Success(project_path=root)

        print_step_header("install", "Installing dependencies")
        outcome = await install(root, package_manager, registry_host=self.settings.registry_host)
        if outcome.ok and self.init_git and await try_git_init(root):
            console.print("  Initialized a git repository.")
        return outcome

    def _print_final_summary(self, outcome: InstallOutcome, elapsed: float) -> None:
        console.print()
        if isinstance(outcome, Success):
            self._print_success(outcome.project_path)
        else:
            print_error(f"Aborting installation after {format_duration(elapsed)}.")
            console.print(
                Panel(outcome.summary(), title="[bold]Failed[/bold]", border_style="bold red")
            )

    def _print_success(self, project_path: Path) -> None:
        pm = self.package_manager or PackageManager.NPM
        print_success(f"Success! Created {project_path.name} at {project_path}")
        print_summary_table(
            {
                pm.run("dev"): "Starts the development server.",
                pm.run("build"): "Builds the app for production.",
                pm.run("start"): "Runs the built app in production mode.",
            },
            title="Inside that directory, you can run several commands",
        )
        cd_path = _display_path(project_path)
        body = "We suggest that you begin by typing:\n\n"
        if cd_path is not None:
            body += f"  [cyan]cd[/cyan] {cd_path}\n"
        if self.skip_install:
            body += f"  [cyan]{' '.join(pm.install_command())}[/cyan]\n"
        body += f"  [cyan]{pm.run('dev')}[/cyan]"
        console.print(Panel(body, border_style="bold green"))


async def run_pipeline(
    request: ProjectRequest,
    package_manager: PackageManager | None = None,
    *,
    settings: Settings | None = None,
    client: httpx.AsyncClient | None = None,
    skip_install: bool = False,
) -> InstallOutcome:
    """Create the project described by *request*; see ``Pipeline``."""
    pipeline = Pipeline(
        request,
        package_manager,
        settings=settings,
        client=client,
        skip_install=skip_install,
    )
    return await pipeline.run()


def _display_path(project_path: Path) -> str | None:
    """Path to show after ``cd``, or ``None`` if it is the working directory."""
    cwd = Path.cwd()
    if project_path == cwd:
        return None
    if project_path.is_relative_to(cwd):
        return str(project_path.relative_to(cwd))
    return str(project_path)
