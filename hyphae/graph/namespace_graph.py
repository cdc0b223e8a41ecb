"""Snapshot of the cached namespace tree as a networkx.DiGraph."""

from __future__ import annotations

import networkx as nx

from hyphae.tree.namespace import Namespace
from hyphae.tree.registry import Registry

TOP = "ns:"


class NamespaceGraph:
    """Wrapper around networkx.DiGraph with namespace/unit nodes and CONTAINS edges.

    Only what is already cached is recorded; building a snapshot never
    touches the filesystem.
    """

    def __init__(self) -> None:
        self.graph = nx.DiGraph()
        self.graph.add_node(TOP, node_type="namespace", name="", full_name="", directory=None)

    @classmethod
    def from_registry(cls, registry: Registry) -> NamespaceGraph:
        snapshot = cls()
        snapshot.add_tree(registry.top, TOP)
        return snapshot

    @classmethod
    def from_namespace(cls, namespace: Namespace) -> NamespaceGraph:
        snapshot = cls()
        node_id = snapshot.add_namespace(namespace, TOP)
        snapshot.add_tree(namespace, node_id)
        return snapshot

    # --- Node addition ---

    def add_namespace(self, namespace: Namespace, parent_id: str) -> str:
        node_id = f"ns:{namespace.full_name}"
        directory = namespace.directory
        self.graph.add_node(
            node_id,
            node_type="namespace",
            name=namespace.name,
            full_name=namespace.full_name,
            directory=list(directory) if isinstance(directory, tuple) else directory,
        )
        self.graph.add_edge(parent_id, node_id, edge_type="CONTAINS")
        return node_id

    def add_unit(self, namespace: Namespace, name: str, value, parent_id: str) -> str:
        full_name = f"{namespace.full_name}.{name}" if namespace.full_name else name
        node_id = f"unit:{full_name}"
        provenance = namespace.provenance(name)
        self.graph.add_node(
            node_id,
            node_type="unit",
            name=name,
            full_name=full_name,
            kind=type(value).__name__,
            file=provenance.file if provenance else None,
        )
        self.graph.add_edge(parent_id, node_id, edge_type="CONTAINS")
        return node_id

    def add_tree(self, namespace: Namespace, node_id: str) -> None:
        for name, value in sorted(namespace.cached().items()):
            if isinstance(value, Namespace):
                child_id = self.add_namespace(value, node_id)
                self.add_tree(value, child_id)
            else:
                self.add_unit(namespace, name, value, node_id)

    # --- Queries ---

    def namespaces(self) -> list[dict]:
        return [
            data for nid, data in self.graph.nodes(data=True)
            if data.get("node_type") == "namespace" and nid != TOP
        ]

    def units(self) -> list[dict]:
        return [data for _, data in self.graph.nodes(data=True) if data.get("node_type") == "unit"]

    def edges(self) -> set[tuple[str, str]]:
        return {(src, tgt) for src, tgt, data in self.graph.edges(data=True) if data.get("edge_type") == "CONTAINS"}

    def children_of(self, node_id: str) -> list[dict]:
        return [
            {"id": tgt, **self.graph.nodes[tgt]}
            for tgt in sorted(self.graph.successors(node_id))
        ]

    def roots(self) -> list[dict]:
        return self.children_of(TOP)
