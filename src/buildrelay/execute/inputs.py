"""Parsing of ``name=path`` input mappings."""

from pathlib import Path
from typing import List, Optional, Sequence

from ..exceptions import ConfigurationError
from ..models import InputMapping


def parse_input_mapping(mapping: str, base_dir: Optional[Path] = None) -> InputMapping:
    """Parse one ``name=path`` mapping into an absolute input.

    Raises:
        ConfigurationError: If the mapping has no ``=``, an empty name, or
            its path is not a directory.
    """
    name, sep, raw_path = mapping.partition("=")
    if not sep or not name:
        raise ConfigurationError(f"malformed input: {mapping}")

    path = Path(raw_path).expanduser()
    if not path.is_absolute():
        path = (base_dir or Path.cwd()) / path
    path = path.resolve()

    if not path.is_dir():
        raise ConfigurationError(f"could not locate input {name}: {path} is not a directory")

    return InputMapping(name=name, path=path)


def parse_input_mappings(
    mappings: Sequence[str], base_dir: Optional[Path] = None
) -> List[InputMapping]:
    """Parse input mappings in order.

    With no mappings, the working directory is the single input, named
    after its basename.
    """
    if not mappings:
        cwd = (base_dir or Path.cwd()).resolve()
        return [InputMapping(name=cwd.name, path=cwd)]

    return [parse_input_mapping(m, base_dir) for m in mappings]
