"""Pluggable address discovery for cluster joins."""

from .directive import DiscoveryDirective, parse_directive
from .file_backend import FileDiscoveryBackend
from .registry import (
    DiscoveryBackend,
    DiscoveryProvider,
    DiscoveryRegistry,
    create_default_registry,
)

__all__ = [
    "DiscoveryBackend",
    "DiscoveryDirective",
    "DiscoveryProvider",
    "DiscoveryRegistry",
    "FileDiscoveryBackend",
    "create_default_registry",
    "parse_directive",
]
