"""Load compiled extension modules from conventional build-output directories."""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

from hyphae.config import LoaderConfig
from hyphae.errors import BindingNotFound
from hyphae.loading.units import load_module
from hyphae.tree.namespace import SEPARATOR

if TYPE_CHECKING:
    from hyphae.tree.namespace import Namespace
    from hyphae.tree.registry import Registry

logger = logging.getLogger(__name__)


def find_binding(name: str, root: str, config: LoaderConfig | None = None) -> str | None:
    """Return the first ``<root>/<search path>/<name><suffix>`` file, or None."""
    config = config or LoaderConfig()
    for sub in config.binding_search_paths:
        directory = os.path.join(root, *sub.split("/"))
        for suffix in config.binding_suffixes:
            candidate = os.path.join(directory, name + suffix)
            if os.path.isfile(candidate):
                return candidate
    return None


def load_binding(
    registry: Registry,
    namespace_path: str,
    root_directory,
    config: LoaderConfig | None = None,
) -> Namespace:
    """Load the binding named after the last segment of *namespace_path*.

    Every public attribute of the loaded module becomes a child of the
    namespace registered at *namespace_path*.
    """
    config = config or registry.config
    root = os.fspath(root_directory)
    name = namespace_path.rsplit(SEPARATOR, 1)[-1]

    path = find_binding(name, root, config)
    if path is None:
        raise BindingNotFound(name, root)

    module = load_module(path)
    ns = registry.register_namespace(namespace_path)
    exports = [attr for attr in dir(module) if not attr.startswith("_")]
    for attr in exports:
        ns.set_child(attr, getattr(module, attr))
    logger.debug(f"Bound {len(exports)} export(s) from {path} to {ns.full_name}")
    return ns
