"""A node of the namespace tree that resolves children on demand from disk."""

from __future__ import annotations

import logging
import os
import stat
import threading
import weakref
from typing import Any, Iterator

from hyphae.config import Found, LoaderConfig, NotFound, Provenance, ResolveResult
from hyphae.errors import (
    ChildNotFound,
    DirectoryAlreadySet,
    DirectoryNotSet,
    InvalidSegment,
)
from hyphae.loading.units import load_unit

logger = logging.getLogger(__name__)

SEPARATOR = "."

_UNSET = object()


def validate_segment(name: str) -> str:
    """Reject empty names and names containing the separator."""
    if not isinstance(name, str) or not name or SEPARATOR in name:
        raise InvalidSegment(name)
    return name


def normalise_directory(directory) -> str | tuple[str, ...] | None:
    if directory is None:
        return None
    if isinstance(directory, (list, tuple)):
        return tuple(os.fspath(d) for d in directory)
    return os.fspath(directory)


def _probe(path: str, want_dir: bool) -> bool:
    """stat() a candidate path; absence is a miss, anything else is raised."""
    try:
        st = os.stat(path)
    except (FileNotFoundError, NotADirectoryError):
        return False
    except OSError as e:
        logger.error(f"Failed to probe {path}: {e}")
        raise
    return stat.S_ISDIR(st.st_mode) if want_dir else stat.S_ISREG(st.st_mode)


class Namespace:
    """A named node with an optional backing directory.

    Children are sub-namespaces (backed by sub-directories) or units (values
    exported by source files). A child is probed for on first access and
    cached; a cached name never touches the filesystem again.
    """

    def __init__(
        self,
        name: str,
        parent: Namespace | None = None,
        directory=None,
        config: LoaderConfig | None = None,
    ) -> None:
        self._name = validate_segment(name)
        self._parent = weakref.ref(parent) if parent is not None else None
        self._directory = normalise_directory(directory)
        if config is None:
            config = parent.config if parent is not None else LoaderConfig()
        self.config = config
        self._children: dict[str, Any] = {}
        self._provenance: dict[str, Provenance] = {}
        self._lock = threading.RLock()
        self._name_locks: dict[str, threading.RLock] = {}

    @classmethod
    def unnamed(cls, directory=None, config: LoaderConfig | None = None) -> Namespace:
        """Create the anonymous top node that holds a registry's roots."""
        ns = cls("_", None, directory, config)
        ns._name = ""
        return ns

    # --- Identity ---

    @property
    def name(self) -> str:
        return self._name

    @property
    def parent(self) -> Namespace | None:
        return self._parent() if self._parent is not None else None

    @property
    def full_name(self) -> str:
        parent = self.parent
        if parent is not None and parent.full_name:
            return f"{parent.full_name}{SEPARATOR}{self._name}"
        return self._name

    def __repr__(self) -> str:
        return f"<Namespace {self.full_name or '<top>'} directory={self._directory!r}>"

    # --- Directory ---

    @property
    def directory(self) -> str | tuple[str, ...] | None:
        return self._directory

    @directory.setter
    def directory(self, directory) -> None:
        self.set_directory(directory)

    def set_directory(self, directory) -> None:
        """Assign the backing directory; allowed exactly once."""
        with self._lock:
            if self._directory is not None:
                raise DirectoryAlreadySet(self.full_name, self._directory)
            self._directory = normalise_directory(directory)

    def _directories(self) -> tuple[str, ...]:
        if self._directory is None:
            return ()
        if isinstance(self._directory, tuple):
            return self._directory
        return (self._directory,)

    # --- Children ---

    @property
    def children(self) -> list[str]:
        """Names currently cached, sub-namespaces and units alike."""
        return sorted(self._children)

    def cached(self) -> dict[str, Any]:
        return dict(self._children)

    def peek(self, name: str, default: Any = None) -> Any:
        """The cached child for *name*, or *default*. Never probes the filesystem."""
        return self._children.get(name, default)

    def provenance(self, name: str) -> Provenance | None:
        return self._provenance.get(name)

    def set_child(self, name: str, value: Any) -> Any:
        """Register an explicit child. The first registration of a name wins."""
        validate_segment(name)
        with self._lock:
            return self._children.setdefault(name, value)

    def _name_lock(self, name: str) -> threading.RLock:
        with self._lock:
            lock = self._name_locks.get(name)
            if lock is None:
                lock = self._name_locks[name] = threading.RLock()
            return lock

    def resolve_child(self, name: str, value: Any = _UNSET) -> Any:
        """Resolve *name* to a cached, discovered or loaded child.

        Raises ChildNotFound when neither ``<dir>/<name>/`` nor
        ``<dir>/<name>.py`` exists, DirectoryNotSet when there is nowhere to
        look and LoadFailure when the unit file fails to execute.
        """
        validate_segment(name)
        if value is not _UNSET:
            return self.set_child(name, value)

        with self._lock:
            if name in self._children:
                return self._children[name]
            if self._directory is None:
                raise DirectoryNotSet(self.full_name)

        # Only callers of the same name wait for each other; the node lock
        # is released while a unit body runs.
        with self._name_lock(name):
            with self._lock:
                if name in self._children:
                    return self._children[name]

            subdirs = [
                os.path.join(d, name)
                for d in self._directories()
                if _probe(os.path.join(d, name), want_dir=True)
            ]
            if subdirs:
                directory = subdirs[0] if len(subdirs) == 1 else tuple(subdirs)
                child = Namespace(name, self, directory)
                logger.debug(f"Discovered namespace {child.full_name} at {directory}")
                with self._lock:
                    return self._children.setdefault(name, child)

            for d in self._directories():
                file = os.path.join(d, name + self.config.source_suffix)
                if _probe(file, want_dir=False):
                    unit = load_unit(file, self.config)
                    provenance = Provenance(file=file, namespace=self)
                    _attach_provenance(unit, provenance)
                    with self._lock:
                        # Replaces any value cached by a re-entrant
                        # resolution from inside the unit's own body.
                        self._provenance[name] = provenance
                        self._children[name] = unit
                    logger.debug(f"Loaded unit {self.full_name}.{name} from {file}")
                    return unit

        raise ChildNotFound(name, self.full_name)

    def child(self, name: str) -> Any:
        """Strict lookup: the child value or ChildNotFound."""
        return self.resolve_child(name)

    def get(self, name: str) -> ResolveResult:
        """Tolerant lookup: Found(value) or NotFound, never ChildNotFound."""
        try:
            return Found(self.resolve_child(name))
        except (ChildNotFound, DirectoryNotSet):
            return NotFound(name, self.full_name)

    def available(self) -> list[str]:
        """Names that could be resolved here, without loading anything."""
        names = set(self._children)
        suffix = self.config.source_suffix
        for d in self._directories():
            try:
                with os.scandir(d) as it:
                    entries = list(it)
            except FileNotFoundError:
                continue
            for entry in entries:
                if entry.is_dir():
                    stem = entry.name
                elif entry.is_file() and entry.name.endswith(suffix):
                    stem = entry.name[: -len(suffix)]
                else:
                    continue
                if stem and SEPARATOR not in stem and not self.config.should_ignore(stem):
                    names.add(stem)
        return sorted(names)

    def __getitem__(self, name: str) -> Any:
        return self.resolve_child(name)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and isinstance(self.get(name), Found)

    def __iter__(self) -> Iterator[str]:
        return iter(self.children)


def _attach_provenance(unit: Any, provenance: Provenance) -> None:
    """Tag classes, functions and modules; immutable values keep it on the namespace only."""
    try:
        setattr(unit, "__autoload__", provenance)
    except (AttributeError, TypeError):
        logger.debug(f"Cannot attach provenance to {type(unit).__name__} from {provenance.file}")
