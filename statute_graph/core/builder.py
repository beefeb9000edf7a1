"""Bottom-up network builder: keyword seeds, ranked breadth-first expansion."""

import logging
from collections import Counter
from collections.abc import Callable

from .constants import EDGE_TYPES, MATCH_LOGIC, NODE_TYPES, RANKING_MODES, SEARCH_FIELDS
from .exceptions import InvalidRequestError
from .ranking import rank_stable
from .types import BuilderRequest, BuilderResult, Link, Node, ScopedGraph

logger = logging.getLogger(__name__)


def validate_request(request: BuilderRequest) -> tuple[str, ...]:
    """
    Validate a builder request before any matching work.
    Returns the normalized (lower-cased, trimmed, non-empty) search terms.
    """
    if not request.search_fields:
        raise InvalidRequestError("At least one search field must be selected")

    unknown = set(request.search_fields) - set(SEARCH_FIELDS)
    if unknown:
        raise InvalidRequestError(f"Unknown search fields: {sorted(unknown)}")

    unknown = set(request.allowed_node_types) - set(NODE_TYPES)
    if unknown:
        raise InvalidRequestError(f"Unknown node types: {sorted(unknown)}")

    unknown = set(request.allowed_edge_types) - set(EDGE_TYPES)
    if unknown:
        raise InvalidRequestError(f"Unknown edge types: {sorted(unknown)}")

    if request.match_logic not in MATCH_LOGIC:
        raise InvalidRequestError(f"Invalid match logic '{request.match_logic}', must be one of {MATCH_LOGIC}")

    if request.ranking_mode not in RANKING_MODES:
        raise InvalidRequestError(f"Invalid ranking mode '{request.ranking_mode}', must be one of {RANKING_MODES}")

    if request.expansion_depth < 0:
        raise InvalidRequestError("expansion_depth must be >= 0")
    if request.max_nodes_per_expansion < 1:
        raise InvalidRequestError("max_nodes_per_expansion must be >= 1")
    if request.max_total_nodes < 1:
        raise InvalidRequestError("max_total_nodes must be >= 1")

    terms = tuple(t.strip().lower() for t in request.search_terms if t and t.strip())
    if not terms:
        raise InvalidRequestError("Enter at least one keyword to search for")
    return terms


def _field_value(node: Node, field: str) -> str | None:
    if field == "text":
        return node.text
    if field == "full_name":
        return node.full_name or node.properties.get("full_name")
    if field == "display_label":
        return node.display_label
    if field == "definition":
        return node.definition
    if field == "node_type":
        return node.node_type
    return None


def matches(node: Node, terms: tuple[str, ...], fields, match_logic: str) -> bool:
    """Case-insensitive substring match of terms over a node's eligible fields."""
    haystack = []
    for field in fields:
        value = _field_value(node, field)
        if value:
            haystack.append(str(value).lower())

    if not haystack:
        return False

    def found(term: str) -> bool:
        return any(term in value for value in haystack)

    if match_logic == "and":
        return all(found(t) for t in terms)
    return any(found(t) for t in terms)


class NetworkBuilder:
    """Builds capped subgraphs from one scoped view."""

    def __init__(self, scoped: ScopedGraph):
        self.scope = scoped.scope
        self.nodes = scoped.nodes
        self.links = scoped.links
        self._by_id: dict[str, Node] = {}
        for node in self.nodes:
            self._by_id.setdefault(node.id, node)

    def build_network(self, request: BuilderRequest) -> BuilderResult:
        terms = validate_request(request)

        allowed_links = [l for l in self.links if l.edge_type in request.allowed_edge_types]
        neighbors = self._neighbor_counts(allowed_links)

        seeds = [
            n.id for n in self.nodes
            if n.node_type in request.allowed_node_types
            and matches(n, terms, request.search_fields, request.match_logic)
        ]
        matched_count = len(seeds)

        if not seeds:
            logger.debug(f"No seed matches for {list(terms)} in {self.scope}")
            return BuilderResult(matched_count=0)

        max_total = request.max_total_nodes
        cap = request.max_nodes_per_expansion
        truncated = False

        seed_set = set(seeds)
        ranked_seeds = rank_stable(seeds, self._scorer(request.ranking_mode, neighbors, seed_set))
        if len(ranked_seeds) > max_total:
            ranked_seeds = ranked_seeds[:max_total]
            truncated = True

        # dict as an insertion-ordered set
        selected: dict[str, None] = dict.fromkeys(ranked_seeds)
        frontier = list(ranked_seeds)

        for level in range(request.expansion_depth):
            if not frontier:
                break
            next_frontier: list[str] = []
            for position, node_id in enumerate(frontier):
                if len(selected) >= max_total:
                    if self._has_fresh_neighbors(frontier[position:], neighbors, selected):
                        truncated = True
                    break

                candidates = [nb for nb in neighbors.get(node_id, ()) if nb not in selected]
                if not candidates:
                    continue

                score = self._scorer(request.ranking_mode, neighbors, selected)
                ranked = rank_stable(candidates, score)
                if len(ranked) > cap:
                    truncated = True
                for nb in ranked[:cap]:
                    selected[nb] = None
                    next_frontier.append(nb)

            logger.debug(f"Expansion level {level + 1}: admitted {len(next_frontier)} nodes")
            frontier = next_frontier
            if len(selected) >= max_total:
                if self._has_fresh_neighbors(frontier, neighbors, selected) and level + 1 < request.expansion_depth:
                    truncated = True
                break

        final_ids = list(selected)
        if len(final_ids) > max_total:
            selected_set = set(final_ids)
            score = self._scorer(request.ranking_mode, neighbors, selected_set)
            keep = set(rank_stable(final_ids, score)[:max_total])
            final_ids = [i for i in final_ids if i in keep]
            truncated = True

        final_set = set(final_ids)
        final_links = tuple(
            l for l in allowed_links if l.source in final_set and l.target in final_set
        )
        final_nodes = tuple(self._by_id[i] for i in final_ids)

        logger.info(
            f"Built network in {self.scope}: {matched_count} matches, "
            f"{len(final_nodes)} nodes, {len(final_links)} links, truncated={truncated}"
        )
        return BuilderResult(
            nodes=final_nodes,
            links=final_links,
            truncated=truncated,
            matched_count=matched_count,
        )

    @staticmethod
    def _neighbor_counts(links: list[Link]) -> dict[str, Counter]:
        """Undirected adjacency with link multiplicity, in link order."""
        neighbors: dict[str, Counter] = {}
        for link in links:
            neighbors.setdefault(link.source, Counter())[link.target] += 1
            if link.source != link.target:
                neighbors.setdefault(link.target, Counter())[link.source] += 1
        return neighbors

    def _scorer(self, mode: str, neighbors: dict[str, Counter], assembled) -> Callable[[str], float]:
        if mode == "global":
            return lambda node_id: self._by_id[node_id].degree

        def local_degree(node_id: str) -> int:
            counts = neighbors.get(node_id)
            if not counts:
                return 0
            return sum(c for nb, c in counts.items() if nb in assembled)

        return local_degree

    @staticmethod
    def _has_fresh_neighbors(frontier, neighbors: dict[str, Counter], selected) -> bool:
        return any(
            nb not in selected
            for node_id in frontier
            for nb in neighbors.get(node_id, ())
        )


def build_network(scoped: ScopedGraph, request: BuilderRequest) -> BuilderResult:
    """Match, rank and expand a capped subgraph of `scoped`."""
    return NetworkBuilder(scoped).build_network(request)
