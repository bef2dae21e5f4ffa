"""Adapters — bindings for the host's package manager, services and files.

Public re-exports for convenient access.
"""

from setupctl.adapters.base import Adapter, ExecutionContext
from setupctl.adapters.mock import MockAdapter
from setupctl.adapters.registry import AdapterRegistry

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "ExecutionContext",
    "MockAdapter",
]
