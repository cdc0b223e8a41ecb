"""Tests for Registry: dotted-path registration, finalization and lookup."""

from __future__ import annotations

import itertools
import os

import pytest

from hyphae.config import LoaderConfig, Provenance
from hyphae.errors import (
    ChildNotFound,
    DirectoryAlreadySet,
    InvalidSegment,
    NotANamespace,
    RegistryFrozen,
)
from hyphae.graph.namespace_graph import NamespaceGraph
from hyphae.tree.namespace import Namespace
from hyphae.tree.registry import Registry

FIXTURES_DIR = os.path.join(os.path.dirname(__file__), "fixtures")
NAMESPACE_DIR = os.path.join(FIXTURES_DIR, "namespaces")


def _shape(registry: Registry) -> set[tuple[str, str]]:
    return NamespaceGraph.from_registry(registry).edges()


def _directories(registry: Registry) -> dict[str, object]:
    return {n["full_name"]: n["directory"] for n in NamespaceGraph.from_registry(registry).namespaces()}


class TestRegisterNamespace:
    def test_registers_root(self):
        registry = Registry()
        ns = registry.register_namespace("rt", NAMESPACE_DIR)
        assert registry.get_root("rt") is ns
        assert ns.directory == NAMESPACE_DIR
        assert ns.full_name == "rt"

    def test_creates_intermediates_without_directory(self):
        registry = Registry()
        leaf = registry.register_namespace("namespace.sub.sub", NAMESPACE_DIR)
        root = registry.get_root("namespace")
        assert root.directory is None
        assert root.child("sub").directory is None
        assert root.child("sub").child("sub") is leaf
        assert leaf.directory == NAMESPACE_DIR
        assert leaf.full_name == "namespace.sub.sub"

    def test_fills_unset_directories(self):
        registry = Registry()
        registry.register_namespace("rt.c", NAMESPACE_DIR)
        registry.register_namespace("rt", NAMESPACE_DIR)
        registry.register_namespace("namespace.sub.sub.sub", NAMESPACE_DIR)
        registry.register_namespace("namespace.sub", NAMESPACE_DIR)

        rt = registry.get_root("rt")
        namespace = registry.get_root("namespace")
        assert rt.directory == NAMESPACE_DIR
        assert rt.child("c").directory == NAMESPACE_DIR
        assert namespace.directory is None
        assert namespace.child("sub").directory == NAMESPACE_DIR
        assert namespace.child("sub").child("sub").directory is None
        assert namespace.child("sub").child("sub").child("sub").directory == NAMESPACE_DIR

    def test_registration_never_probes_the_filesystem(self):
        # rt/a exists on disk, but the registered rt.a keeps its own directory
        registry = Registry()
        registry.register_namespace("rt", NAMESPACE_DIR)
        a = registry.register_namespace("rt.a", FIXTURES_DIR)
        assert a.directory == FIXTURES_DIR

    def test_reuses_existing_nodes(self):
        registry = Registry()
        first = registry.register_namespace("a.b")
        second = registry.register_namespace("a.b")
        assert first is second

    def test_same_directory_is_a_no_op(self):
        registry = Registry()
        registry.register_namespace("a", NAMESPACE_DIR)
        assert registry.register_namespace("a", NAMESPACE_DIR).directory == NAMESPACE_DIR

    def test_conflicting_directory_fails(self):
        registry = Registry()
        registry.register_namespace("a", NAMESPACE_DIR)
        with pytest.raises(DirectoryAlreadySet):
            registry.register_namespace("a", FIXTURES_DIR)

    def test_no_directory_leaves_existing_one(self):
        registry = Registry()
        registry.register_namespace("a.b", NAMESPACE_DIR)
        registry.register_namespace("a.b")
        assert registry.get_root("a").child("b").directory == NAMESPACE_DIR

    @pytest.mark.parametrize("path", ["a..b", ".a", "a.", "."])
    def test_rejects_empty_segments(self, path):
        with pytest.raises(InvalidSegment):
            Registry().register_namespace(path, NAMESPACE_DIR)

    def test_rejects_path_through_unit(self):
        registry = Registry()
        registry.register_namespace("a").set_child("unit", 1)
        with pytest.raises(NotANamespace):
            registry.register_namespace("a.unit.deeper")

    def test_registered_nodes_share_config(self):
        config = LoaderConfig(source_suffix=".unit")
        registry = Registry(config)
        assert registry.register_namespace("a.b").config is config


class TestTreeShape:
    PAIRS = [
        ("a.b.c", "/tmp/ns/c"),
        ("a.b", "/tmp/ns/b"),
        ("a", "/tmp/ns/a"),
        ("x.y", "/tmp/ns/y"),
        ("a.d", None),
    ]

    def test_order_independent(self):
        expected_shape = None
        expected_dirs = None
        for order in itertools.permutations(self.PAIRS):
            registry = Registry()
            for path, directory in order:
                registry.register_namespace(path, directory)
            shape, dirs = _shape(registry), _directories(registry)
            if expected_shape is None:
                expected_shape, expected_dirs = shape, dirs
            assert shape == expected_shape
            assert dirs == expected_dirs

    def test_expected_edges(self):
        registry = Registry()
        for path, directory in self.PAIRS:
            registry.register_namespace(path, directory)
        assert _shape(registry) == {
            ("ns:", "ns:a"),
            ("ns:a", "ns:a.b"),
            ("ns:a.b", "ns:a.b.c"),
            ("ns:a", "ns:a.d"),
            ("ns:", "ns:x"),
            ("ns:x", "ns:x.y"),
        }


class TestFinalize:
    def test_rejects_registration_after_finalize(self):
        registry = Registry()
        registry.register_namespace("rt", NAMESPACE_DIR)
        registry.finalize()
        assert registry.frozen
        with pytest.raises(RegistryFrozen):
            registry.register_namespace("ns", NAMESPACE_DIR)
        with pytest.raises(RegistryFrozen):
            registry.register_namespace("rt", NAMESPACE_DIR)

    def test_finalize_only_once(self):
        registry = Registry()
        registry.finalize()
        with pytest.raises(RegistryFrozen):
            registry.finalize()

    def test_read_accessors_still_work(self):
        registry = Registry()
        rt = registry.register_namespace("rt", NAMESPACE_DIR)
        registry.finalize()
        assert registry.get_root("rt") is rt
        assert registry.get_roots() == {"rt": rt}

    def test_resolution_continues_after_finalize(self):
        registry = Registry()
        rt = registry.register_namespace("rt", NAMESPACE_DIR)
        registry.finalize()
        assert isinstance(rt.child("a"), Namespace)
        assert rt.children == ["a"]


class TestRoots:
    def test_get_root_missing(self):
        registry = Registry()
        assert registry.get_root("missing") is None

    def test_get_root_never_raises(self):
        registry = Registry()
        registry.register_namespace("", NAMESPACE_DIR)
        assert registry.get_root("Broken") is None
        assert registry.get_root("a.b") is None
        assert registry.get_root("Missing") is None

    def test_top_directory_discovers_roots(self):
        registry = Registry()
        registry.register_namespace("", NAMESPACE_DIR)
        a = registry.get_root("a")
        assert isinstance(a, Namespace)
        assert a.full_name == "a"
        assert a.directory == os.path.join(NAMESPACE_DIR, "a")
        assert registry.get_roots() == {"a": a}

    def test_units_at_top_level_are_not_roots(self):
        registry = Registry()
        registry.register_namespace("", NAMESPACE_DIR)
        assert registry.get_root("Top") is None

    def test_get_roots_is_a_copy(self):
        registry = Registry()
        registry.register_namespace("a")
        roots = registry.get_roots()
        roots.clear()
        assert "a" in registry.get_roots()

    def test_get_root_swallows_os_errors(self, monkeypatch):
        import hyphae.tree.namespace as namespace_module

        real_stat = os.stat
        denied = os.path.join(NAMESPACE_DIR, "a")

        def fake_stat(path, *args, **kwargs):
            if os.fspath(path) == denied:
                raise PermissionError(13, "Permission denied", denied)
            return real_stat(path, *args, **kwargs)

        monkeypatch.setattr(namespace_module.os, "stat", fake_stat)
        registry = Registry()
        registry.register_namespace("", NAMESPACE_DIR)
        assert registry.get_root("a") is None
        assert registry.get_roots() == {}

    def test_none_unit_at_top_level_is_not_a_root(self):
        registry = Registry()
        registry.top.set_child("empty", None)
        assert registry.get_root("empty") is None
        with pytest.raises(NotANamespace):
            registry.register_namespace("empty.deeper")


class TestLookup:
    def test_end_to_end(self, tmp_path):
        base = tmp_path / "ns"
        for name in ("a", "b", "c"):
            (base / name).mkdir(parents=True)
        (base / "c" / "D.py").write_text("D = 42\n")

        registry = Registry()
        registry.register_namespace("a.b.c", str(base / "c"))
        registry.register_namespace("a.b", str(base / "b"))
        registry.register_namespace("a", str(base / "a"))
        registry.finalize()

        a = registry.lookup("a")
        b = registry.lookup("a.b")
        c = registry.lookup("a.b.c")
        assert (a.name, a.directory) == ("a", str(base / "a"))
        assert (b.name, b.directory) == ("b", str(base / "b"))
        assert (c.name, c.directory) == ("c", str(base / "c"))
        assert c.full_name == "a.b.c"

        assert registry.lookup("a.b.c.D") == 42
        assert c.provenance("D") == Provenance(file=str(base / "c" / "D.py"), namespace=c)

    def test_missing_raises(self):
        registry = Registry()
        registry.register_namespace("rt", NAMESPACE_DIR)
        with pytest.raises(ChildNotFound, match="'rt.a'"):
            registry.lookup("rt.a.Missing")

    def test_through_unit_raises(self):
        registry = Registry()
        registry.register_namespace("rt", NAMESPACE_DIR)
        with pytest.raises(NotANamespace):
            registry.lookup("rt.Top.attr")
