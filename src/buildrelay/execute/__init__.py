"""Build execution: uploads, rendering, cancellation and orchestration."""

from .cancellation import AbortOnSignal, CancellationState
from .orchestrator import BuildExecution, execute
from .rendering import BuildLogRenderer

__all__ = [
    "AbortOnSignal",
    "BuildExecution",
    "BuildLogRenderer",
    "CancellationState",
    "execute",
]
