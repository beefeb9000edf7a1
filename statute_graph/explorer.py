"""Explorer service: the operations the application surfaces call."""

import asyncio
import logging
from collections import Counter
from collections.abc import Iterable

from .config import ExplorerConfig
from .core import (
    NODE_SEARCH_LIMIT,
    NO_TEXT_MESSAGE,
    BuilderRequest,
    ConsistencyController,
    DatasetSource,
    FileDatasetSource,
    GraphCache,
    GraphError,
    HttpDatasetSource,
    Manifest,
    Node,
    NodeDetail,
    Relationship,
    RelationshipListing,
    ScopedGraph,
    apply_node_budget,
    project,
    truncate_links,
    validate_scope,
)
from .core.consistency import CommitHook
from .core.types import Link

logger = logging.getLogger(__name__)


def _relationship_endpoints(rel: Relationship) -> tuple[str, str]:
    return rel.actor_id, rel.target_id


def to_relationships(links: Iterable[Link], nodes: dict[str, Node]) -> list[Relationship]:
    """Flatten links into listing rows, resolving names within one scope."""
    rows = []
    for idx, link in enumerate(links):
        source = nodes.get(link.source)
        target = nodes.get(link.target)
        rows.append(Relationship(
            id=idx,
            doc_id=link.source,
            actor=source.name if source else link.source,
            action=link.action,
            target=target.name if target else link.target,
            actor_id=link.source,
            target_id=link.target,
            actor_type=source.node_type if source else None,
            target_type=target.node_type if target else None,
            actor_display_label=source.display_label if source else None,
            target_display_label=target.display_label if target else None,
            definition=link.definition,
            location=link.location,
            timestamp=link.timestamp,
        ))
    return rows


def create_source(config: ExplorerConfig) -> DatasetSource:
    """Pick the dataset source from configuration."""
    if config.data_url:
        return HttpDatasetSource(config.data_url, timeout=config.fetch_timeout)
    return FileDatasetSource(config.data_dir)


class GraphExplorer:
    """
    Facade over the graph cache and the consistency controller.

    Read operations project the cached graph on demand and require a loaded
    title; state-changing operations go through the controller.
    """

    def __init__(
        self,
        config: ExplorerConfig,
        source: DatasetSource | None = None,
        on_commit: CommitHook | None = None,
    ):
        self.config = config
        self.source = source or create_source(config)
        self.cache = GraphCache(self.source, config.manifest_file)
        self.controller = ConsistencyController(
            self.cache,
            scope=config.default_scope,
            link_limit=config.link_limit,
            on_commit=on_commit,
            node_cap=config.node_budget,
        )

    @property
    def scope(self) -> str:
        return self.controller.scope

    def _scoped(self, scope: str | None) -> ScopedGraph:
        scope = scope or self.controller.scope
        validate_scope(scope)
        return project(self.cache.graph, scope)

    # ========================================================================
    # State-changing operations
    # ========================================================================

    async def titles(self) -> Manifest:
        return await self.cache.manifest()

    async def load_title(self, title_id: str | int) -> bool:
        return await self.controller.reload_title(title_id)

    async def switch_scope(self, scope: str) -> bool:
        return await self.controller.switch_scope(scope)

    async def run_search(self, request: BuilderRequest) -> bool:
        return await self.controller.search(request)

    async def clear_search(self) -> bool:
        return await self.controller.clear_search()

    async def select(self, node_id: str | None):
        return await self.controller.select(node_id)

    # ========================================================================
    # Read operations
    # ========================================================================

    def scoped_view(self, scope: str | None = None) -> ScopedGraph:
        return self._scoped(scope)

    def _find_node(self, node_id: str, scope: str) -> Node | None:
        graph = self.cache.graph
        for node in graph.nodes:
            if node.id == node_id and node.time == scope:
                return node
        for node in graph.nodes:
            if node.name == node_id and node.time == scope:
                return node
        return None

    async def fetch_node_detail(self, node_id: str, scope: str | None = None) -> NodeDetail:
        """Look up one node; any failure yields an explicit unavailable value."""
        scope = scope or self.controller.scope
        try:
            node = self._find_node(node_id, scope)
        except GraphError as e:
            logger.warning(f"Node detail lookup failed for '{node_id}' in {scope}: {e}")
            return NodeDetail.unavailable(node_id, scope)

        if node is None:
            return NodeDetail.unavailable(node_id, scope)

        fields = node.to_dict()
        fields.update(node.properties)
        return NodeDetail(node_id=node.id, scope=scope, available=True, fields=fields)

    def document_text(self, node_id: str, scope: str | None = None) -> str:
        scope = scope or self.controller.scope
        node = self._find_node(node_id, scope)
        if node is None:
            return NO_TEXT_MESSAGE
        return (
            node.properties.get("text")
            or node.text
            or node.properties.get("full_name")
            or node.full_name
            or NO_TEXT_MESSAGE
        )

    def relationships(
        self,
        scope: str | None = None,
        limit: int | None = None,
        edge_types: Iterable[str] | None = None,
        node_types: Iterable[str] | None = None,
        node_budget: int | None = None,
    ) -> RelationshipListing:
        """
        Capped relationship listing for a scope.

        Applies edge-type and node-type filters, then the node budget (drops
        every row touching a dropped node), then hub-first link truncation.
        """
        scoped = self._scoped(scope)
        limit = self.config.link_limit if limit is None else limit
        node_budget = self.config.node_budget if node_budget is None else node_budget
        if limit < 0:
            raise ValueError("limit must be >= 0")

        links = scoped.links
        if edge_types:
            allowed_edges = set(edge_types)
            links = tuple(l for l in links if l.edge_type in allowed_edges)

        by_id = {n.id: n for n in scoped.nodes}
        rows = to_relationships(links[: limit * 2], by_id)

        if node_types:
            allowed_nodes = set(node_types)
            rows = [
                r for r in rows
                if r.actor_type in allowed_nodes and r.target_type in allowed_nodes
            ]

        total = len(rows)
        rows, truncated = apply_node_budget(rows, node_budget, _relationship_endpoints)

        rows, limited = truncate_links(rows, limit, _relationship_endpoints)
        return RelationshipListing(
            relationships=tuple(rows),
            total_before_limit=total,
            truncated=truncated or limited,
        )

    def node_relationships(
        self,
        node_id: str,
        scope: str | None = None,
        edge_types: Iterable[str] | None = None,
    ) -> RelationshipListing:
        scoped = self._scoped(scope)
        by_id = {n.id: n for n in scoped.nodes}
        if node_id not in by_id:
            return RelationshipListing(relationships=(), total_before_limit=0)

        allowed_edges = set(edge_types) if edge_types else None
        links = [
            l for l in scoped.links
            if (l.source == node_id or l.target == node_id)
            and (allowed_edges is None or l.edge_type in allowed_edges)
        ]
        rows = to_relationships(links, by_id)
        return RelationshipListing(relationships=tuple(rows), total_before_limit=len(rows))

    def node_counts(
        self,
        scope: str | None = None,
        node_ids: Iterable[str] | None = None,
    ) -> dict[str, int]:
        """Dataset-wide degree per node, optionally restricted to some ids."""
        graph = self.cache.graph
        if scope is None:
            nodes = graph.nodes
        else:
            validate_scope(scope)
            nodes = tuple(n for n in graph.nodes if n.time == scope)

        if node_ids:
            by_id = {}
            for node in nodes:
                by_id.setdefault(node.id, node)
            return {i: by_id[i].degree for i in node_ids if i in by_id}
        return {n.id: n.degree for n in nodes}

    async def relationship_overview(
        self,
        scope: str | None = None,
        limit: int | None = None,
        edge_types: Iterable[str] | None = None,
        node_types: Iterable[str] | None = None,
        node_budget: int | None = None,
    ) -> dict:
        """Listing, node counts and the selected node's rows, fetched together."""
        scope = scope or self.controller.scope
        selection = self.controller.actionable_selection

        tasks = [
            asyncio.to_thread(self.relationships, scope, limit, edge_types, node_types, node_budget),
            asyncio.to_thread(self.node_counts, scope),
        ]
        if selection is not None and selection.scope == scope:
            tasks.append(asyncio.to_thread(self.node_relationships, selection.node_id, scope, edge_types))

        results = await asyncio.gather(*tasks)
        return {
            "listing": results[0],
            "counts": results[1],
            "selected": results[2] if len(results) > 2 else None,
        }

    def search_nodes(self, query: str, scope: str | None = None, limit: int = NODE_SEARCH_LIMIT) -> list[dict]:
        """Substring search over name and display label within one scope."""
        scoped = self._scoped(scope)
        needle = query.lower()
        matches = [
            n for n in scoped.nodes
            if needle in (n.name or "").lower() or needle in (n.display_label or "").lower()
        ]
        matches.sort(key=lambda n: n.label.lower())
        return [
            {"id": n.id, "name": n.label, "connection_count": n.degree, "time": n.time}
            for n in matches[:limit]
        ]

    def stats(self) -> dict:
        graph = self.cache.graph
        node_types = Counter(n.node_type for n in graph.nodes)
        edge_types = Counter(l.edge_type for l in graph.links)
        return {
            "title_id": graph.title_id,
            "total_documents": node_types.get("index", 0),
            "total_actors": node_types.get("entity", 0) + node_types.get("concept", 0),
            "total_triples": len(graph.links),
            "categories": [
                {"category": edge_type, "count": count}
                for edge_type, count in sorted(edge_types.items())
            ],
        }

    async def aclose(self):
        await self.source.aclose()
