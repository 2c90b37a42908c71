"""create-pop-react-app -- scaffold a ready-to-run React application.

Quick usage::

    from create_pop_app import ProjectRequest, run_pipeline

    request = ProjectRequest(path="my-app", sass=False)
    outcome = await run_pipeline(request)
    if outcome.is_download_failure:
        outcome = await run_pipeline(request.without_example())
"""

from create_pop_app.config import DEFAULT_CONFIG, Preferences, ProjectRequest, Settings
from create_pop_app.examples import DownloadError
from create_pop_app.outcome import Failure, InstallOutcome, Stage, Success
from create_pop_app.package_manager import PackageManager, detect
from create_pop_app.pipeline import Pipeline, run_pipeline
from create_pop_app.validation import InvalidRequestError

__version__ = "0.1.0"

__all__ = [
    # Configuration
    "DEFAULT_CONFIG",
    "Preferences",
    "ProjectRequest",
    "Settings",
    # Package managers
    "PackageManager",
    "detect",
    # Pipeline
    "Pipeline",
    "run_pipeline",
    # Outcomes and errors
    "InstallOutcome",
    "Success",
    "Failure",
    "Stage",
    "DownloadError",
    "InvalidRequestError",
]
