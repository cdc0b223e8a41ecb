"""Core data types and configuration for hyphae."""

from __future__ import annotations

import importlib.machinery
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from hyphae.tree.namespace import Namespace


# Conventional build-output locations for compiled extension modules,
# probed in order under a binding's root directory.
BINDING_SEARCH_PATHS = (
    "build",
    "build/Debug",
    "build/Release",
    "out/Debug",
    "Debug",
    "out/Release",
    "Release",
    "build/default",
    "compiled",
    "lib",
)


@dataclass
class LoaderConfig:
    source_suffix: str = ".py"
    export_attribute: str = "__export__"
    ignore: set[str] = field(default_factory=lambda: {"__pycache__", "__init__"})
    binding_search_paths: tuple[str, ...] = BINDING_SEARCH_PATHS
    binding_suffixes: tuple[str, ...] = field(
        default_factory=lambda: tuple(importlib.machinery.EXTENSION_SUFFIXES)
    )
    verbose: bool = False
    quiet: bool = False

    def should_ignore(self, name: str) -> bool:
        """Check whether a directory entry (or stem) is hidden or ignored."""
        return name in self.ignore or name.startswith(".")


@dataclass(frozen=True)
class Provenance:
    """Where a loaded unit came from."""
    file: str
    namespace: Namespace

    def __repr__(self) -> str:
        return f"Provenance(file={self.file!r}, namespace={self.namespace.full_name!r})"


@dataclass(frozen=True)
class Found:
    value: Any


@dataclass(frozen=True)
class NotFound:
    name: str
    namespace: str

    def __bool__(self) -> bool:
        return False


ResolveResult = Found | NotFound
