"""Autoloader: registers namespaces and exposes them through ``hyphae.ns``."""

from __future__ import annotations

import logging
from typing import Any, ClassVar

from hyphae import ambient
from hyphae.config import LoaderConfig
from hyphae.errors import AlreadyRegistered, NotRegistered
from hyphae.loading import bulk
from hyphae.loading.bindings import load_binding
from hyphae.tree.namespace import Namespace
from hyphae.tree.registry import Registry

logger = logging.getLogger(__name__)


class Autoloader:
    """Front end over a Registry plus the ambient accessor table.

    Only one autoloader can be registered per process at a time.
    """

    _active: ClassVar[Autoloader | None] = None

    def __init__(self, config: LoaderConfig | None = None) -> None:
        self.registry = Registry(config)
        self._installed: list[str] = []

    @property
    def registered(self) -> bool:
        return Autoloader._active is self

    @staticmethod
    def load(path, recursive: bool = True, callback=None, config: LoaderConfig | None = None) -> list[Any]:
        """Load a file or directory of units; see hyphae.loading.bulk.load."""
        return bulk.load(path, recursive=recursive, callback=callback, config=config)

    def namespace(self, path: str, directory=None) -> Namespace:
        """Register a namespace; fails once the registry is finalized."""
        return self.registry.register_namespace(path, directory)

    def binding(self, path: str, root_directory) -> Namespace:
        """Register a namespace populated from a compiled extension module."""
        return load_binding(self.registry, path, root_directory)

    def register(self) -> None:
        """Finalize the registry and install an accessor for every root."""
        if Autoloader._active is not None:
            raise AlreadyRegistered("an autoloader is already registered")
        if not self.registry.frozen:
            self.registry.finalize()

        installed = []
        try:
            for name, root in sorted(self.registry.get_roots().items()):
                ambient.register_global_accessor(name, root)
                installed.append(name)
        except AlreadyRegistered:
            for name in installed:
                ambient.unregister_global_accessor(name)
            raise

        self._installed = installed
        Autoloader._active = self
        logger.debug(f"Autoloader registered: {', '.join(installed) or 'no roots'}")

    @classmethod
    def active(cls) -> Autoloader | None:
        return cls._active

    def discover(self, name: str) -> ambient.NamespaceProxy | None:
        """Install an accessor for a root found lazily under the top directory.

        Roots under a directory registered at ``""`` are not known when
        register() runs, so ``hyphae.ns`` asks the active autoloader on a miss.
        """
        root = self.registry.get_root(name)
        if root is None:
            return None
        try:
            proxy = ambient.register_global_accessor(name, root)
        except AlreadyRegistered:
            return ambient.lookup(name)
        self._installed.append(name)
        logger.debug(f"Discovered root {name} at {root.directory}")
        return proxy

    def unregister(self) -> None:
        if not self.registered:
            raise NotRegistered("autoloader is not registered")
        for name in self._installed:
            ambient.unregister_global_accessor(name)
        self._installed = []
        Autoloader._active = None
        logger.debug("Autoloader unregistered")

    def __enter__(self) -> Autoloader:
        self.register()
        return self

    def __exit__(self, *exc) -> None:
        self.unregister()
