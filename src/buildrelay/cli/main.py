"""Main CLI entry point for buildrelay."""

from importlib import metadata
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console

from ..config import DEFAULT_CONFIG_FILE, TARGET_URL_ENV


def get_version() -> str:
    """Get the package version from metadata."""
    try:
        return metadata.version("buildrelay")
    except metadata.PackageNotFoundError:
        return "unknown"


console = Console()

# command: buildrelay
app = typer.Typer(
    name="buildrelay",
    help="Run one-off builds on a remote build server with local inputs",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


@app.command("execute")
def execute_cmd(
    args: Optional[List[str]] = typer.Argument(
        None, help="Extra arguments appended to the build's run.args"
    ),
    config: Path = typer.Option(
        DEFAULT_CONFIG_FILE, "--config", "-c", help="Build configuration file"
    ),
    inputs: Optional[List[str]] = typer.Option(
        None,
        "--input",
        "-i",
        help="Input mapping NAME=PATH (repeatable, defaults to the current directory)",
    ),
    url: Optional[str] = typer.Option(
        None,
        "--url",
        "-u",
        envvar=TARGET_URL_ENV,
        help="Build server URL",
    ),
):
    """Execute a build with local inputs and stream its output."""
    from .commands.execute import execute_command

    return execute_command(config, inputs, args, url)


@app.callback(invoke_without_command=True)
def main(
    version: bool = typer.Option(False, "--version", "-v", help="Show version"),
):
    """Run one-off builds on a remote build server with local inputs."""
    if version:
        console.print(f"buildrelay v{get_version()}")
        raise typer.Exit()


if __name__ == "__main__":
    app()
