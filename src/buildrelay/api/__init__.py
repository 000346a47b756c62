"""Clients for the build server API."""

from .client import BuildServerClient
from .events import EventStream

__all__ = ["BuildServerClient", "EventStream"]
