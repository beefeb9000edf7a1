"""Scoped view projection over the cached graph."""

from .types import CachedGraph, ScopedGraph


def project(graph: CachedGraph, scope: str) -> ScopedGraph:
    """
    Derive the subset of the graph belonging to one time scope.

    Keeps nodes tagged with `scope`, and links tagged with `scope` whose
    source and target are both among those nodes. No side effects, no cache.
    """
    nodes = tuple(n for n in graph.nodes if n.time == scope)
    node_ids = {n.id for n in nodes}
    links = tuple(
        l for l in graph.links
        if l.time == scope and l.source in node_ids and l.target in node_ids
    )
    return ScopedGraph(scope=scope, nodes=nodes, links=links)


def node_ids_in_scope(graph: CachedGraph, scope: str) -> set[str]:
    """Ids of every node tagged with `scope`."""
    return {n.id for n in graph.nodes if n.time == scope}
