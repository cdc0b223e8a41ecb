"""Load a single source file as a unit through importlib."""

from __future__ import annotations

import hashlib
import importlib.machinery
import importlib.util
import logging
import os
import sys
import threading
from types import ModuleType
from typing import Any

from hyphae.config import LoaderConfig
from hyphae.errors import LoadFailure

logger = logging.getLogger(__name__)

# Loaded modules keyed by absolute path, so a file is executed at most once
# per process no matter how many namespaces or bulk loads reach it.
_modules: dict[str, ModuleType] = {}
# Modules whose body is still executing, so a unit that reaches itself
# (directly or through a cycle) gets its partial module back.
_loading: dict[str, ModuleType] = {}
_path_locks: dict[str, threading.RLock] = {}
# Guards the three dicts above. Never held while a unit executes.
_modules_lock = threading.Lock()


def _module_name(path: str) -> str:
    """Synthesise a sys.modules key that cannot collide with real imports."""
    digest = hashlib.sha1(path.encode("utf-8")).hexdigest()[:12]
    stem = os.path.splitext(os.path.basename(path))[0]
    safe_stem = "".join(c if c.isalnum() else "_" for c in stem)
    return f"_hyphae_unit_{digest}_{safe_stem}"


def _extension_name(path: str) -> str | None:
    """Return the init name of a compiled extension, or None for other files.

    Extension modules export ``PyInit_<name>``, so they must be loaded
    under the name their file was built with.
    """
    basename = os.path.basename(path)
    for suffix in sorted(importlib.machinery.EXTENSION_SUFFIXES, key=len, reverse=True):
        if basename.endswith(suffix):
            return basename[: -len(suffix)]
    return None


def _path_lock(path: str) -> threading.RLock:
    with _modules_lock:
        lock = _path_locks.get(path)
        if lock is None:
            lock = _path_locks[path] = threading.RLock()
        return lock


def _execute_extension(path: str, name: str) -> ModuleType:
    spec = importlib.util.spec_from_file_location(name, path)
    if spec is None or spec.loader is None:
        raise LoadFailure(path, "no import loader for this file type")

    previous = sys.modules.get(name)
    logger.debug(f"Loading extension {path} as {name}")
    try:
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
    except Exception as e:
        raise LoadFailure(path, f"{type(e).__name__}: {e}") from e
    finally:
        # Single-phase extensions put themselves in sys.modules during init;
        # a binding must not shadow the module imported under that name.
        if previous is not None:
            sys.modules[name] = previous
        else:
            sys.modules.pop(name, None)
    return module


def _execute(path: str) -> ModuleType:
    extension_name = _extension_name(path)
    if extension_name is not None:
        return _execute_extension(path, extension_name)

    name = _module_name(path)
    spec = importlib.util.spec_from_file_location(name, path)
    if spec is None or spec.loader is None:
        raise LoadFailure(path, "no import loader for this file type")

    module = importlib.util.module_from_spec(spec)
    # Registered before execution so dataclasses, pickling and
    # self-references inside the unit can find it.
    sys.modules[name] = module
    with _modules_lock:
        _loading[path] = module
    logger.debug(f"Loading unit {path} as {name}")
    try:
        spec.loader.exec_module(module)
    except FileNotFoundError as e:
        sys.modules.pop(name, None)
        raise LoadFailure(path, "no such file") from e
    except Exception as e:
        sys.modules.pop(name, None)
        raise LoadFailure(path, f"{type(e).__name__}: {e}") from e
    finally:
        with _modules_lock:
            _loading.pop(path, None)
    return module


def load_module(path: str) -> ModuleType:
    """Execute the file at *path* and return its module, cached by absolute path.

    Different files load in parallel. Callers racing on the same file wait
    for the first one. A unit that reaches itself while its body is still
    running gets the partially initialised module.
    """
    path = os.path.abspath(path)
    with _modules_lock:
        cached = _modules.get(path)
    if cached is not None:
        return cached

    with _path_lock(path):
        with _modules_lock:
            cached = _modules.get(path, _loading.get(path))
        if cached is not None:
            return cached

        module = _execute(path)
        with _modules_lock:
            _modules[path] = module
        return module


def exported_value(module: ModuleType, path: str, config: LoaderConfig | None = None) -> Any:
    """Pick the value a unit file exports.

    The ``__export__`` attribute wins, then the attribute named after the
    file stem (``Point.py`` -> ``Point``), then the module itself.
    """
    config = config or LoaderConfig()
    if hasattr(module, config.export_attribute):
        return getattr(module, config.export_attribute)
    stem = os.path.splitext(os.path.basename(path))[0]
    if hasattr(module, stem):
        return getattr(module, stem)
    return module


def load_unit(path: str, config: LoaderConfig | None = None) -> Any:
    """Load a unit file and return its exported value."""
    module = load_module(path)
    return exported_value(module, path, config)
