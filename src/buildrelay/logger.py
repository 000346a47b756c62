import logging
import os
import sys
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler


def is_rich_enabled() -> bool:
    """Check if Rich log output is requested via BUILDRELAY_RICH_UI."""
    return os.environ.get("BUILDRELAY_RICH_UI", "false").lower() in (
        "true",
        "1",
        "yes",
    )


def setup_logging(
    level: Union[int, str] = logging.INFO,
    stream=None,
    fmt: Optional[str] = None,
):
    """
    Sets up the root logger with a stream handler and basic formatting.

    Logs always go to stderr by default; stdout is reserved for the remote
    build's own output. Uses a Rich handler when enabled, otherwise falls
    back to standard logging. Does nothing if handlers are already configured.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    if stream is None:
        stream = sys.stderr

    root_logger = logging.getLogger()
    if not root_logger.hasHandlers():
        if is_rich_enabled():
            handler = RichHandler(
                console=Console(file=stream),
                show_time=True,
                show_path=False,
                markup=False,
                rich_tracebacks=True,
            )
        else:
            if fmt is None:
                if level == logging.DEBUG:
                    fmt = "%(asctime)s | %(levelname)-5s | %(name)s | %(filename)s:%(lineno)d | %(message)s"
                else:
                    fmt = "%(asctime)s | %(levelname)-5s | %(message)s"

            handler = logging.StreamHandler(stream)
            handler.setFormatter(logging.Formatter(fmt))

        root_logger.setLevel(level)
        root_logger.addHandler(handler)

    # Optionally allow log level override via env var
    env_level = os.environ.get("LOG_LEVEL")
    if env_level:
        root_logger.setLevel(env_level.upper())

    # httpx logs every request at INFO
    for logger_name in ("httpx", "httpcore"):
        logging.getLogger(logger_name).setLevel(logging.WARNING)
