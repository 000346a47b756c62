"""Loading of the YAML job configuration file."""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence

import yaml
from pydantic import ValidationError

from .exceptions import ConfigurationError
from .models import JobConfig

log = logging.getLogger(__name__)


def load_yaml(path: Path) -> Dict[str, Any]:
    """Load a YAML file and return its contents as a dict.

    Scalars are kept as the text written in the file, so values such as
    ``1.10``, ``0755`` or ``yes`` reach the server unchanged.

    Raises:
        ConfigurationError: If the file cannot be read, is not valid YAML,
            or does not contain a mapping.
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.load(f, Loader=yaml.BaseLoader)
    except OSError as e:
        raise ConfigurationError(f"could not open config file: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"could not parse config file: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"could not parse config file: expected a YAML mapping, got {type(data).__name__}"
        )
    return data


def apply_param_overrides(
    config: JobConfig, environ: Optional[Mapping[str, str]] = None
) -> JobConfig:
    """Overwrite params whose name is a set environment variable.

    Params without a matching variable keep their configured value, and
    variables that are not already params are ignored.
    """
    if environ is None:
        environ = os.environ

    params = dict(config.params)
    for key in params:
        if key in environ:
            log.debug(f"param {key} overridden from environment")
            params[key] = environ[key]

    return config.model_copy(update={"params": params})


def load_job_config(
    config_path: Path,
    args: Sequence[str] = (),
    environ: Optional[Mapping[str, str]] = None,
) -> JobConfig:
    """Load a job config, append extra run args and apply env overrides.

    Args:
        config_path: Path to the YAML config file.
        args: Arguments appended to ``run.args``.
        environ: Environment used for params overrides. Defaults to os.environ.

    Returns:
        The validated JobConfig.

    Raises:
        ConfigurationError: If the file is missing, unparseable or invalid.
    """
    data = load_yaml(Path(config_path))

    try:
        config = JobConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"invalid config file {config_path}: {e}") from e

    if args:
        run = config.run.model_copy(update={"args": [*config.run.args, *args]})
        config = config.model_copy(update={"run": run})

    return apply_param_overrides(config, environ)
