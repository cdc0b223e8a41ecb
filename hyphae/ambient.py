"""Process-wide table of namespace accessors, read through ``hyphae.ns``."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable

from hyphae.config import Found, ResolveResult
from hyphae.errors import AlreadyRegistered, AttributeChildNotFound, NotRegistered
from hyphae.tree.namespace import Namespace

logger = logging.getLogger(__name__)

Resolver = Callable[[str], ResolveResult]

_accessors: dict[str, NamespaceProxy] = {}
_lock = threading.Lock()


class NamespaceProxy:
    """Attribute-style view of a namespace.

    ``proxy.Child`` resolves lazily through *resolver*; a miss raises
    AttributeError so callers can fall through to other lookups. Nested
    namespaces come back wrapped in their own (cached) proxies.
    """

    __slots__ = ("_namespace", "_resolver", "_proxies")

    def __init__(self, namespace: Namespace, resolver: Resolver | None = None) -> None:
        object.__setattr__(self, "_namespace", namespace)
        object.__setattr__(self, "_resolver", resolver or namespace.get)
        object.__setattr__(self, "_proxies", {})

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__"):
            raise AttributeError(name)
        result = self._resolver(name)
        if not isinstance(result, Found):
            raise AttributeChildNotFound(name, self._namespace.full_name)
        value = result.value
        if isinstance(value, Namespace):
            proxy = self._proxies.get(name)
            if proxy is None or proxy._namespace is not value:
                proxy = NamespaceProxy(value)
                self._proxies[name] = proxy
            return proxy
        return value

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"namespace {self._namespace.full_name!r} is read-only")

    def __invert__(self) -> Namespace:
        return self._namespace

    def __dir__(self) -> list[str]:
        return self._namespace.available()

    def __repr__(self) -> str:
        return f"<NamespaceProxy {self._namespace.full_name}>"


def unwrap(proxy: NamespaceProxy) -> Namespace:
    """Return the namespace behind a proxy."""
    return ~proxy


def register_global_accessor(name: str, namespace: Namespace, resolver: Resolver | None = None) -> NamespaceProxy:
    """Make *namespace* reachable as ``hyphae.ns.<name>``."""
    with _lock:
        if name in _accessors:
            raise AlreadyRegistered(f"an accessor for {name!r} is already installed")
        proxy = NamespaceProxy(namespace, resolver)
        _accessors[name] = proxy
    logger.debug(f"Installed accessor {name}")
    return proxy


def unregister_global_accessor(name: str) -> None:
    with _lock:
        if name not in _accessors:
            raise NotRegistered(f"no accessor is installed for {name!r}")
        del _accessors[name]
    logger.debug(f"Removed accessor {name}")


def lookup(name: str) -> NamespaceProxy | None:
    return _accessors.get(name)


def installed() -> list[str]:
    return sorted(_accessors)
