"""buildrelay execute - run a one-off build against local inputs."""

import asyncio
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape

from ...config import EXIT_FAILURE, get_target_url
from ...exceptions import BuildRelayError
from ...execute.orchestrator import execute

logger = logging.getLogger(__name__)
console = Console(stderr=True)


def execute_command(
    config: Path,
    inputs: Optional[List[str]],
    args: Optional[List[str]],
    url: Optional[str],
):
    """
    Submit a build, stream local inputs into it and relay its output.

    Exits with the build's status code, 1 on any local failure and 2 when
    interrupted twice.
    """
    target_url = get_target_url(url)
    logger.debug(f"Executing {config} against {target_url}")

    try:
        exit_code = asyncio.run(
            execute(
                target_url,
                inputs or [],
                config,
                args or [],
            )
        )
    except BuildRelayError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}", highlight=False)
        raise typer.Exit(EXIT_FAILURE)
    except KeyboardInterrupt:
        # Signals only abort the build once the abort handler is installed
        console.print("[yellow]Interrupted[/yellow]")
        raise typer.Exit(EXIT_FAILURE)

    raise typer.Exit(exit_code)
