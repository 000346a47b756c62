"""
Data models exchanged with the build server.

Wire models (Pipe, Build, JobConfig, BuildSpec) are pydantic models; the
purely local values (InputMapping, Input, SessionTokens) are frozen
dataclasses.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _empty_as_default(value: Any, default: Any) -> Any:
    # A key written with no value loads as an empty scalar
    if value is None or value == "":
        return default
    return value


class Pipe(BaseModel):
    """Relay channel allocated by the server.

    The pipe's buffer lives on the worker at ``peer_addr``, so reads must be
    addressed to that node rather than to the API gateway.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    peer_addr: str


class Build(BaseModel):
    """Build record returned by the server on creation."""

    model_config = ConfigDict(extra="allow")

    id: int
    status: Optional[str] = None


class RunConfig(BaseModel):
    model_config = ConfigDict(extra="allow")

    path: str
    args: List[str] = Field(default_factory=list)

    @field_validator("args", mode="before")
    @classmethod
    def _empty_args(cls, value: Any) -> Any:
        return _empty_as_default(value, [])


class JobConfig(BaseModel):
    """Job configuration loaded from the build config file.

    Keys not modelled here are kept and sent to the server as-is.
    """

    model_config = ConfigDict(extra="allow")

    image: Optional[str] = None
    run: RunConfig
    params: Dict[str, str] = Field(default_factory=dict)

    @field_validator("image", mode="before")
    @classmethod
    def _empty_image(cls, value: Any) -> Any:
        return _empty_as_default(value, None)

    @field_validator("params", mode="before")
    @classmethod
    def _empty_params(cls, value: Any) -> Any:
        return _empty_as_default(value, {})


class InputSource(BaseModel):
    name: str
    type: Literal["archive"] = "archive"
    source: Dict[str, str]


class BuildSpec(BaseModel):
    """Body of the build creation request."""

    model_config = ConfigDict(frozen=True)

    privileged: bool = True
    config: JobConfig
    inputs: List[InputSource] = Field(default_factory=list)


@dataclass(frozen=True)
class InputMapping:
    """A declared ``name=path`` input before its pipe exists."""

    name: str
    path: Path


@dataclass(frozen=True)
class Input:
    name: str
    path: Path
    pipe: Pipe


@dataclass(frozen=True)
class SessionTokens:
    """Session affinity cookies captured from build creation.

    Replayed on the event stream handshake so that it lands on the node
    that accepted the build.
    """

    cookies: Tuple[Tuple[str, str], ...] = ()

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[str, str]]) -> "SessionTokens":
        return cls(cookies=tuple((name, value) for name, value in pairs))

    def header_value(self) -> str:
        """Render the cookies as a ``Cookie`` request header value."""
        return "; ".join(f"{name}={value}" for name, value in self.cookies)

    def __bool__(self) -> bool:
        return bool(self.cookies)
