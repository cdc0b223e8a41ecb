"""Dotted-path registration of namespaces and their directories."""

from __future__ import annotations

import logging

from hyphae.config import Found, LoaderConfig
from hyphae.errors import (
    DirectoryAlreadySet,
    HyphaeError,
    NotANamespace,
    RegistryFrozen,
)
from hyphae.tree.namespace import SEPARATOR, Namespace, normalise_directory, validate_segment

logger = logging.getLogger(__name__)

_MISSING = object()


class Registry:
    """Builds the namespace tree from registrations made in any order.

    Roots are the children of a hidden, unnamed top namespace. Registering
    the empty path gives that top node a directory, so top-level names are
    then discovered lazily like any other child.
    """

    def __init__(self, config: LoaderConfig | None = None) -> None:
        self.config = config or LoaderConfig()
        self._top = Namespace.unnamed(config=self.config)
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def top(self) -> Namespace:
        return self._top

    def register_namespace(self, path: str, directory=None) -> Namespace:
        """Create or extend the tree down to *path*.

        Intermediate namespaces are created without a directory. Only the last
        segment receives *directory*: an unset directory is filled in, the
        same directory again is a no-op, a different one raises
        DirectoryAlreadySet.
        """
        if self._frozen:
            raise RegistryFrozen(f"cannot register {path!r}: registry is finalized")

        if path == "":
            segments: list[str] = []
        else:
            segments = [validate_segment(s) for s in path.split(SEPARATOR)]

        ns = self._top
        for i, segment in enumerate(segments):
            existing = ns.peek(segment, _MISSING)
            if existing is _MISSING:
                existing = ns.set_child(segment, Namespace(segment, ns))
                logger.debug(f"Registered namespace {existing.full_name}")
            elif not isinstance(existing, Namespace):
                raise NotANamespace(SEPARATOR.join(segments[: i + 1]))
            ns = existing

        if directory is not None:
            self._assign_directory(ns, directory)
        return ns

    @staticmethod
    def _assign_directory(ns: Namespace, directory) -> None:
        if ns.directory is None:
            ns.set_directory(directory)
        elif ns.directory != normalise_directory(directory):
            raise DirectoryAlreadySet(ns.full_name or "<top>", ns.directory)

    def finalize(self) -> None:
        if self._frozen:
            raise RegistryFrozen("registry is already finalized")
        self._frozen = True
        logger.debug(f"Registry finalized with roots {sorted(self.get_roots())}")

    def get_root(self, name: str) -> Namespace | None:
        """Return the root namespace called *name*, or None. Never raises."""
        cached = self._top.peek(name, _MISSING)
        if isinstance(cached, Namespace):
            return cached
        if cached is not _MISSING or self._top.directory is None:
            return None
        try:
            found = self._top.get(name)
        except (HyphaeError, OSError) as e:
            logger.debug(f"No root {name!r}: {e}")
            return None
        if isinstance(found, Found) and isinstance(found.value, Namespace):
            return found.value
        return None

    def get_roots(self) -> dict[str, Namespace]:
        return {
            name: value
            for name, value in self._top.cached().items()
            if isinstance(value, Namespace)
        }

    def lookup(self, path: str):
        """Strictly resolve a dotted path to a namespace or unit."""
        value = self._top
        segments = path.split(SEPARATOR)
        for i, segment in enumerate(segments):
            if not isinstance(value, Namespace):
                raise NotANamespace(SEPARATOR.join(segments[:i]))
            value = value.resolve_child(segment)
        return value
