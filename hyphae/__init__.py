"""hyphae - Lazily-resolving namespace registry backed by directories."""

from hyphae.autoloader import Autoloader
from hyphae.config import Found, LoaderConfig, NotFound, Provenance
from hyphae.tree.namespace import Namespace
from hyphae.tree.registry import Registry

__version__ = "0.1.0"
__all__ = [
    "Autoloader",
    "Found",
    "LoaderConfig",
    "Namespace",
    "NotFound",
    "Provenance",
    "Registry",
]
