"""Bulk loading of unit files, independent of the namespace tree."""

from __future__ import annotations

import asyncio
import logging
import os
from concurrent.futures import CancelledError, Executor, Future, ThreadPoolExecutor
from typing import Any, Callable

from hyphae.config import LoaderConfig
from hyphae.errors import LoadFailure
from hyphae.loading.units import load_unit

logger = logging.getLogger(__name__)

UnitCallback = Callable[[Any], None]


def _plan(path: str, recursive: bool, config: LoaderConfig) -> list[str]:
    """List the unit files to load under *path*, in depth-first sorted order."""
    if not os.path.exists(path):
        raise LoadFailure(path, "no such file or directory") from FileNotFoundError(path)

    if not os.path.isdir(path):
        if path.endswith(config.source_suffix):
            return [path]
        logger.debug(f"Skipping {path}: not a {config.source_suffix} file")
        return []

    files: list[str] = []
    with os.scandir(path) as it:
        entries = sorted(it, key=lambda e: e.name)
    for entry in entries:
        if entry.name.startswith(".") or entry.name in config.ignore:
            continue
        if entry.is_dir():
            if recursive:
                files.extend(_plan(entry.path, recursive, config))
        elif entry.is_file() and entry.name.endswith(config.source_suffix):
            files.append(entry.path)
        else:
            logger.debug(f"Skipping {entry.path}")
    return files


def load(
    path,
    recursive: bool = False,
    callback: UnitCallback | None = None,
    config: LoaderConfig | None = None,
) -> list[Any]:
    """Load a unit file, or every unit file in a directory.

    Sub-directories are only walked when *recursive* is set. *callback* is
    called once per loaded unit with its exported value. Raises LoadFailure
    for a missing path or a unit that fails to execute.
    """
    config = config or LoaderConfig()
    units = []
    for file in _plan(os.fspath(path), recursive, config):
        unit = load_unit(file, config)
        units.append(unit)
        if callback:
            callback(unit)
    logger.debug(f"Loaded {len(units)} unit(s) from {path}")
    return units


async def load_async(
    path,
    recursive: bool = False,
    callback: UnitCallback | None = None,
    config: LoaderConfig | None = None,
) -> list[Any]:
    """Like load(), but executes each file in a worker thread.

    Units are still loaded and reported one at a time, in the same
    depth-first order as load().
    """
    config = config or LoaderConfig()
    files = await asyncio.to_thread(_plan, os.fspath(path), recursive, config)
    units = []
    for file in files:
        unit = await asyncio.to_thread(load_unit, file, config)
        units.append(unit)
        if callback:
            callback(unit)
    return units


def submit_load(
    path,
    recursive: bool = False,
    callback: UnitCallback | None = None,
    on_complete: Callable[[BaseException | None], None] | None = None,
    executor: Executor | None = None,
    config: LoaderConfig | None = None,
) -> Future:
    """Run load() in the background and return its Future.

    *on_complete* is called exactly once, with the error or None.
    """
    own_executor = executor is None
    if own_executor:
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="hyphae-load")

    future = executor.submit(load, path, recursive, callback, config)

    def _done(f: Future) -> None:
        # exception() raises on a cancelled future instead of returning it.
        error = CancelledError() if f.cancelled() else f.exception()
        if error is not None:
            logger.warning(f"Background load of {path} failed: {error}")
        if on_complete:
            on_complete(error)

    future.add_done_callback(_done)
    if own_executor:
        executor.shutdown(wait=False)
    return future
