"""Custom exceptions for buildrelay.

Every failure in a build execution is fatal for the invocation; the CLI
maps any BuildRelayError to exit code 1.
"""

from typing import Optional


class BuildRelayError(Exception):
    """Base exception for buildrelay errors."""

    pass


class ConfigurationError(BuildRelayError):
    """Raised when the job config or input mappings are unusable."""

    pass


class ServerResponseError(BuildRelayError):
    """Raised when the build server rejects a request or cannot be reached.

    Attributes:
        status_code: HTTP status of the rejected response, if one was received.
        response_dump: Full text dump of the response for diagnosis.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_dump: Optional[str] = None,
    ):
        self.status_code = status_code
        self.response_dump = response_dump
        if response_dump:
            message = f"{message}\n{response_dump}"
        super().__init__(message)


class PipeAllocationError(ServerResponseError):
    """Raised when a pipe cannot be allocated."""

    pass


class BuildCreationError(ServerResponseError):
    """Raised when the build record cannot be created."""

    pass


class UploadError(ServerResponseError):
    """Raised when an input archive cannot be written into its pipe."""

    pass


class EventStreamError(BuildRelayError):
    """Raised when the build event stream cannot be opened or ends early."""

    pass


class ArchiveError(BuildRelayError):
    """Raised when an input directory cannot be archived."""

    pass
