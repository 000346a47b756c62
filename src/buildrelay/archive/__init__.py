"""Archive producers for input directories."""

from .base import ArchiveStrategy, ArchiveStream, produce_archive, select_strategy
from .builtin import BuiltinTarStrategy
from .command import TarCommandStrategy

__all__ = [
    "ArchiveStrategy",
    "ArchiveStream",
    "BuiltinTarStrategy",
    "TarCommandStrategy",
    "produce_archive",
    "select_strategy",
]
