# Load .env vars from file before everything else
from dotenv import load_dotenv

load_dotenv()

from .logger import setup_logging  # noqa: E402

setup_logging()

# TYPE_CHECKING imports provide full IDE support (autocomplete, type hints)
# while __getattr__ enables lazy loading at runtime for fast CLI startup
from typing import TYPE_CHECKING  # noqa: E402

if TYPE_CHECKING:
    from .api import BuildServerClient, EventStream
    from .execute import BuildExecution
    from .jobconfig import load_job_config
    from .models import Build, JobConfig, Pipe


def __getattr__(name):
    """Lazily import core modules only when accessed."""
    if name in ("BuildServerClient", "EventStream"):
        from . import api

        return getattr(api, name)
    elif name == "BuildExecution":
        from .execute.orchestrator import BuildExecution

        return BuildExecution
    elif name == "load_job_config":
        from .jobconfig import load_job_config

        return load_job_config
    elif name in ("Build", "JobConfig", "Pipe"):
        from . import models

        return getattr(models, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "Build",
    "BuildExecution",
    "BuildServerClient",
    "EventStream",
    "JobConfig",
    "Pipe",
    "load_job_config",
]
