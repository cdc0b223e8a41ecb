"""Ambient access to registered namespaces: ``from hyphae import ns; ns.app.models.User``."""

from __future__ import annotations

from hyphae import ambient
from hyphae.autoloader import Autoloader


def __getattr__(name: str):
    proxy = ambient.lookup(name)
    if proxy is None and not name.startswith("__"):
        active = Autoloader.active()
        if active is not None:
            proxy = active.discover(name)
    if proxy is None:
        raise AttributeError(f"no namespace {name!r} is registered")
    return proxy


def __dir__() -> list[str]:
    return ambient.installed()
