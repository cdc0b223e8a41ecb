"""hyphae CLI - inspect and load lazily-resolved namespace trees."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import click

from hyphae.config import LoaderConfig
from hyphae.errors import HyphaeError
from hyphae.graph.namespace_graph import TOP, NamespaceGraph
from hyphae.loading import bulk
from hyphae.tree.namespace import Namespace
from hyphae.tree.registry import Registry


@click.group()
@click.option("--verbose", is_flag=True, help="Log probes and loads")
def cli(verbose: bool) -> None:
    """hyphae - load namespaces from directories on first use."""
    if verbose:
        from rich.logging import RichHandler

        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(show_path=False)],
        )


def _is_directory_child(ns: Namespace, name: str) -> bool:
    directory = ns.directory
    directories = directory if isinstance(directory, tuple) else (directory,)
    return any(d is not None and os.path.isdir(os.path.join(d, name)) for d in directories)


def _discover(ns: Namespace, depth: int, load: bool, seen: dict[str, Namespace]) -> None:
    """Resolve sub-namespaces (and units, if *load*) down to *depth* levels."""
    seen[ns.full_name] = ns
    if depth == 0:
        return
    for name in ns.available():
        if not load and not _is_directory_child(ns, name):
            continue
        child = ns.resolve_child(name)
        if isinstance(child, Namespace):
            _discover(child, depth - 1, load, seen)


def _render(graph: NamespaceGraph, node_id: str, branch, seen: dict[str, Namespace]) -> None:
    data = graph.graph.nodes[node_id]
    listed = set()
    for child in graph.children_of(node_id):
        listed.add(child["name"])
        if child["node_type"] == "namespace":
            sub = branch.add(f"[bold blue]{child['name']}[/bold blue]/")
            _render(graph, child["id"], sub, seen)
        else:
            branch.add(f"[green]{child['name']}[/green] [dim]{child['kind']}[/dim]")

    ns = seen.get(data.get("full_name", ""))
    if ns is not None and ns.directory is not None:
        for name in ns.available():
            if name not in listed:
                branch.add(f"[dim]{name}[/dim]")


@cli.command("tree")
@click.argument("path", type=click.Path(exists=True, file_okay=False))
@click.option("-n", "--name", default=None, help="Namespace name (defaults to the directory name)")
@click.option("--depth", default=-1, type=int, help="Maximum depth to discover (-1 for unlimited)")
@click.option("--load", "load_units", is_flag=True, help="Also load unit files")
def tree_cmd(path: str, name: str | None, depth: int, load_units: bool) -> None:
    """Show the namespace tree backed by a directory."""
    from rich.console import Console
    from rich.tree import Tree

    directory = Path(path).resolve()
    name = name or directory.name

    registry = Registry(LoaderConfig())
    try:
        ns = registry.register_namespace(name, str(directory))
        registry.finalize()
        seen: dict[str, Namespace] = {}
        _discover(ns, depth, load_units, seen)
    except HyphaeError as e:
        raise click.ClickException(str(e)) from e

    graph = NamespaceGraph.from_registry(registry)
    root = Tree(f"[bold]{name}[/bold] [dim]{directory}[/dim]")
    for child in graph.children_of(TOP):
        _render(graph, child["id"], root, seen)

    console = Console()
    console.print(root)
    console.print(
        f"[green]{len(graph.namespaces())}[/green] namespace(s), "
        f"[green]{len(graph.units())}[/green] unit(s) loaded"
    )


@cli.command("load")
@click.argument("path", type=click.Path(exists=True))
@click.option("-r", "--recursive", is_flag=True, help="Walk sub-directories")
@click.option("--quiet", is_flag=True, help="Suppress all output except errors")
def load_cmd(path: str, recursive: bool, quiet: bool) -> None:
    """Load every unit file under PATH."""
    loaded: list[object] = []
    try:
        bulk.load(path, recursive=recursive, callback=loaded.append)
    except HyphaeError as e:
        raise click.ClickException(str(e)) from e

    if quiet:
        return

    from rich.console import Console
    from rich.table import Table

    table = Table(title=f"Loaded units: {Path(path).name}", show_edge=False)
    table.add_column("Unit", style="bold")
    table.add_column("Type", justify="right")
    for unit in loaded:
        table.add_row(getattr(unit, "__name__", repr(unit)), type(unit).__name__)
    Console().print(table)


if __name__ == "__main__":
    cli()
