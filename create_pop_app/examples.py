"""Template source resolution and remote example download.

A project starts either from one of the built-in templates shipped in
``scaffolder/templates/`` or from an example hosted on GitHub.  Remote
examples are fetched as a codeload tarball into a private staging directory
that only lives for the duration of ``staged()``.

Only ``DownloadError`` signals a connectivity or archive problem; callers
use it to offer the built-in template instead.
"""

from __future__ import annotations

import asyncio
import shutil
import tarfile
import tempfile
import zlib
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote, urlparse

import httpx

from .config import ProjectRequest, Settings
from .utils import console, create_progress
from .validation import InvalidRequestError

TEMPLATES_DIR = Path(__file__).parent / "scaffolder" / "templates"

_GITHUB_HOSTS = frozenset({"github.com", "www.github.com"})


class DownloadError(Exception):
    """Raised when a remote template cannot be fetched or extracted."""

    def __init__(self, message: str, url: str = "") -> None:
        self.url = url
        super().__init__(message)


# ---------------------------------------------------------------------------
# Template sources
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RepoInfo:
    """A directory inside a GitHub repository at a given branch."""

    username: str
    name: str
    branch: str
    file_path: str = ""

    @property
    def archive_root(self) -> str:
        """Top-level directory name used inside codeload tarballs."""
        return f"{self.name}-{self.branch.replace('/', '-')}"

    @property
    def archive_prefix(self) -> str:
        """Member-name prefix of the files that make up the example."""
        if self.file_path:
            return f"{self.archive_root}/{self.file_path.strip('/')}/"
        return f"{self.archive_root}/"


@dataclass(frozen=True)
class LocalTemplate:
    """A built-in template made of one or more layered directories."""

    template_id: str
    roots: tuple[Path, ...]


@dataclass(frozen=True)
class RemoteTemplate:
    """An example that must be downloaded before assembly."""

    repo: RepoInfo
    example: str


TemplateSource = LocalTemplate | RemoteTemplate


def local_template(request: ProjectRequest) -> LocalTemplate:
    """Select the built-in template variant for *request*.

    The router mode and language pick the variant; ``common`` holds the files
    every variant shares and is layered underneath it.
    """
    mode = "app" if request.app_router else "default"
    language = "ts" if request.typescript else "js"
    return LocalTemplate(
        template_id=f"{mode}/{language}",
        roots=(TEMPLATES_DIR / "common", TEMPLATES_DIR / mode / language),
    )


# ---------------------------------------------------------------------------
# HTTP helpers
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _http_client(
    client: httpx.AsyncClient | None, settings: Settings
) -> AsyncIterator[httpx.AsyncClient]:
    """Yield *client*, or a short-lived client when none was supplied."""
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout),
        follow_redirects=True,
    ) as owned:
        yield owned


async def _url_exists(client: httpx.AsyncClient, url: str, settings: Settings) -> bool:
    """Return whether *url* answers 200, ``False`` on 404.

    Any other status or a transport failure is treated as a connectivity
    problem with GitHub.
    """
    try:
        response = await client.head(url, headers=settings.github_headers())
    except httpx.HTTPError as exc:
        raise DownloadError(f"Could not reach {url}: {exc}", url=url) from exc
    if response.status_code == 200:
        return True
    if response.status_code == 404:
        return False
    raise DownloadError(f"GitHub returned {response.status_code} for {url}", url=url)


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def is_url(value: str) -> bool:
    parsed = urlparse(value)
    return bool(parsed.scheme and parsed.netloc)


async def get_repo_info(
    url: str,
    example_path: str | None,
    settings: Settings,
    client: httpx.AsyncClient,
) -> RepoInfo:
    """Parse a GitHub URL into a ``RepoInfo``.

    ``https://github.com/<user>/<repo>`` resolves the default branch through
    the GitHub API.  ``.../tree/<branch>/<path>`` is split at the first
    segment after ``tree``; when *example_path* is given it is taken as the
    path instead and everything before it becomes the branch, which allows
    branch names that contain slashes.

    Raises:
        DownloadError: The host is not GitHub or the API is unreachable.
        InvalidRequestError: The URL does not point at a repository.
    """
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or parsed.hostname not in _GITHUB_HOSTS:
        raise DownloadError(
            f"Unsupported example host {parsed.hostname or url!r}; only GitHub URLs are supported",
            url=url,
        )

    segments = [s for s in parsed.path.split("/") if s]
    if len(segments) < 2:
        raise InvalidRequestError(f"Invalid GitHub repository URL: {url}")

    username = segments[0]
    name = segments[1].removesuffix(".git")
    remainder = segments[2:]

    if not remainder:
        api_url = f"{settings.github_api_url}/repos/{username}/{name}"
        try:
            response = await client.get(api_url, headers=settings.github_headers())
        except httpx.HTTPError as exc:
            raise DownloadError(f"Could not reach {api_url}: {exc}", url=api_url) from exc
        if response.status_code == 404:
            raise InvalidRequestError(f"Repository {username}/{name} does not exist")
        if response.status_code != 200:
            raise DownloadError(
                f"GitHub returned {response.status_code} for {api_url}", url=api_url
            )
        try:
            branch = response.json()["default_branch"]
        except (ValueError, KeyError) as exc:
            raise DownloadError(f"Unexpected response from {api_url}", url=api_url) from exc
        file_path = (example_path or "").strip("/")
        return RepoInfo(username, name, branch, file_path)

    if remainder[0] != "tree" or len(remainder) < 2:
        raise InvalidRequestError(f"Invalid GitHub repository URL: {url}")

    tail = "/".join(remainder[1:])
    if example_path:
        file_path = example_path.strip("/")
        if file_path and tail.endswith("/" + file_path):
            branch = tail[: -(len(file_path) + 1)]
        else:
            branch = tail.rstrip("/")
    else:
        branch = remainder[1]
        file_path = "/".join(remainder[2:])

    return RepoInfo(username, name, branch, file_path)


async def has_repo(repo: RepoInfo, settings: Settings, client: httpx.AsyncClient) -> bool:
    """Return whether *repo* contains a ``package.json`` at its path."""
    contents = "/".join(p for p in (repo.file_path.strip("/"), "package.json") if p)
    url = (
        f"{settings.github_api_url}/repos/{repo.username}/{repo.name}"
        f"/contents/{contents}?ref={quote(repo.branch, safe='')}"
    )
    return await _url_exists(client, url, settings)


async def example_exists(name: str, settings: Settings, client: httpx.AsyncClient) -> bool:
    """Return whether *name* is a directory in the examples index."""
    url = (
        f"{settings.github_api_url}/repos/{settings.examples_repo}/contents/"
        f"{settings.examples_dir}/{quote(name)}?ref={quote(settings.examples_branch, safe='')}"
    )
    return await _url_exists(client, url, settings)


async def resolve(
    request: ProjectRequest,
    settings: Settings | None = None,
    client: httpx.AsyncClient | None = None,
) -> TemplateSource:
    """Decide where the project's files come from.

    Returns a ``LocalTemplate`` when no example was requested, otherwise a
    ``RemoteTemplate`` that has been checked to exist.

    Raises:
        DownloadError: GitHub could not be reached or the host is unsupported.
        InvalidRequestError: The example or repository does not exist.
    """
    settings = settings or Settings()
    if not request.wants_example:
        return local_template(request)

    example = request.example or ""
    async with _http_client(client, settings) as http:
        if is_url(example):
            repo = await get_repo_info(example, request.example_path, settings, http)
            if not await has_repo(repo, settings, http):
                raise InvalidRequestError(
                    f"Could not locate the repository for {example!r}. "
                    "Please check that the repository exists and try again."
                )
        else:
            if not await example_exists(example, settings, http):
                raise InvalidRequestError(
                    f"Could not locate an example named {example!r}. "
                    f"It could be due to the following:\n"
                    f"  1. Your spelling of example {example!r} might be incorrect.\n"
                    f"  2. You might not be connected to the internet or you are behind a proxy."
                )
            username, name = settings.examples_repo.split("/")
            repo = RepoInfo(
                username,
                name,
                settings.examples_branch,
                f"{settings.examples_dir}/{example}",
            )

    return RemoteTemplate(repo=repo, example=example)


# ---------------------------------------------------------------------------
# Download and staging
# ---------------------------------------------------------------------------


def _extract_subtree(archive: Path, dest: Path, prefix: str) -> None:
    """Extract the members under *prefix* into *dest*, dropping the prefix."""
    with tarfile.open(archive, "r:gz") as tar:
        members: list[tarfile.TarInfo] = []
        for member in tar.getmembers():
            if not member.name.startswith(prefix):
                continue
            relative = member.name[len(prefix):]
            if not relative:
                continue
            if member.islnk():
                # Hard links name their target by archive path.
                if not member.linkname.startswith(prefix):
                    continue
                member.linkname = member.linkname[len(prefix):]
            member.name = relative
            members.append(member)
        dest.mkdir(parents=True, exist_ok=True)
        tar.extractall(dest, members=members, filter="data")


async def download_and_extract(
    repo: RepoInfo,
    staging: Path,
    settings: Settings,
    client: httpx.AsyncClient | None = None,
) -> Path:
    """Download *repo* into *staging* and return the extracted example root.

    Raises:
        DownloadError: On any network, archive or extraction failure, or when
            the example directory is missing or empty in the archive.
    """
    url = f"{settings.codeload_url}/{repo.username}/{repo.name}/tar.gz/{repo.branch}"
    archive = staging / "archive.tar.gz"

    with create_progress() as progress:
        progress.add_task(f"Downloading files from [cyan]{repo.username}/{repo.name}[/cyan]...")
        try:
            async with _http_client(client, settings) as http:
                async with http.stream("GET", url) as response:
                    if response.status_code != 200:
                        raise DownloadError(
                            f"Download of {url} failed with status {response.status_code}",
                            url=url,
                        )
                    with archive.open("wb") as fh:
                        async for chunk in response.aiter_bytes():
                            fh.write(chunk)
        except httpx.HTTPError as exc:
            raise DownloadError(f"Could not download {url}: {exc}", url=url) from exc
        except OSError as exc:
            raise DownloadError(f"Could not save {url} to {archive}: {exc}", url=url) from exc

    extracted = staging / "example"
    try:
        await asyncio.to_thread(_extract_subtree, archive, extracted, repo.archive_prefix)
    except (tarfile.TarError, OSError, EOFError, KeyError, zlib.error) as exc:
        raise DownloadError(f"Could not extract {url}: {exc}", url=url) from exc

    if not extracted.is_dir() or not any(extracted.iterdir()):
        raise DownloadError(
            f"{repo.file_path or repo.name!r} was not found or is empty in {url}", url=url
        )

    archive.unlink()
    return extracted


@asynccontextmanager
async def staged(
    source: TemplateSource,
    settings: Settings | None = None,
    client: httpx.AsyncClient | None = None,
) -> AsyncIterator[tuple[Path, ...]]:
    """Yield the directories to copy from for *source*.

    Remote sources are downloaded into a fresh temporary directory that is
    removed when the block exits, on success and on failure alike.
    """
    if isinstance(source, LocalTemplate):
        yield source.roots
        return

    settings = settings or Settings()
    staging = Path(await asyncio.to_thread(tempfile.mkdtemp, prefix="create-pop-react-app-"))
    try:
        console.print(
            f"  Downloading example [cyan]{source.example}[/cyan]. This might take a moment."
        )
        root = await download_and_extract(source.repo, staging, settings, client)
        yield (root,)
    finally:
        await asyncio.to_thread(shutil.rmtree, staging, True)
