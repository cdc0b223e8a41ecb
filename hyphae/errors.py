"""Exception types raised by the namespace registry and its loaders."""

from __future__ import annotations


class HyphaeError(Exception):
    """Base class for every error raised by hyphae."""


class InvalidSegment(HyphaeError, ValueError):
    """A path segment is empty or contains the '.' separator."""

    def __init__(self, segment: str) -> None:
        super().__init__(f"invalid namespace segment {segment!r}: segments cannot be empty or contain '.'")
        self.segment = segment


class DirectoryNotSet(HyphaeError):
    def __init__(self, namespace: str) -> None:
        super().__init__(f"directory is not set for namespace {namespace!r}")
        self.namespace = namespace


class DirectoryAlreadySet(HyphaeError):
    def __init__(self, namespace: str, directory) -> None:
        super().__init__(
            f"cannot set the directory for namespace {namespace!r}: already set to {directory!r}"
        )
        self.namespace = namespace
        self.directory = directory


class RegistryFrozen(HyphaeError):
    """A registration was attempted after the registry was finalized."""


class AlreadyRegistered(HyphaeError):
    """An accessor or autoloader is already active."""


class NotRegistered(HyphaeError):
    """Deactivation of an accessor or autoloader that is not active."""


class ChildNotFound(HyphaeError, LookupError):
    """Neither a sub-directory nor a unit file backs the requested name."""

    def __init__(self, name: str, namespace: str) -> None:
        super().__init__(f"cannot resolve {name!r} under namespace {namespace!r}")
        self.name = name
        self.namespace = namespace


class AttributeChildNotFound(ChildNotFound, AttributeError):
    """ChildNotFound raised from attribute access, so getattr() defaults work."""


class LoadFailure(HyphaeError):
    """A unit file could not be loaded (missing, syntax or runtime error)."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"failed to load {path}: {reason}")
        self.path = path


class BindingNotFound(HyphaeError):
    def __init__(self, name: str, root: str) -> None:
        super().__init__(f"no compiled binding {name!r} found under {root}")
        self.name = name
        self.root = root


class NotANamespace(HyphaeError, TypeError):
    """A registration path runs through a cached unit instead of a namespace."""

    def __init__(self, path: str) -> None:
        super().__init__(f"{path!r} is a loaded unit, not a namespace")
        self.path = path
