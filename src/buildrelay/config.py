"""Configuration constants for the buildrelay client."""

import os
from typing import Optional

# Build server
TARGET_URL_ENV = "BUILDRELAY_URL"
DEFAULT_TARGET_URL = "http://127.0.0.1:8080"

# Job configuration
DEFAULT_CONFIG_FILE = "build.yml"

# HTTP client configuration
DEFAULT_REQUEST_TIMEOUT = 30.0  # seconds
DEFAULT_CONNECT_TIMEOUT = 30.0  # seconds

# Archive production
ARCHIVE_CHUNK_SIZE = 64 * 1024
TAR_EXECUTABLE = "tar"
EXCLUDED_DIRECTORIES = (".git",)
TEMPFILE_PREFIX = "buildrelay"

# Process exit codes
EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_FORCED = 2


def get_target_url(explicit: Optional[str] = None) -> str:
    """Resolve the build server URL.

    Args:
        explicit: URL given on the command line, if any.

    Returns:
        The explicit URL, else BUILDRELAY_URL, else the local default.
    """
    if explicit:
        return explicit
    return os.environ.get(TARGET_URL_ENV) or DEFAULT_TARGET_URL
