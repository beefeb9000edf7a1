"""Type definitions for the statute graph."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from .constants import DEFAULT_MAX_PER_EXPANSION, DEFAULT_MAX_TOTAL_NODES, NO_DETAILS_MESSAGE


def _empty_mapping() -> Mapping[str, Any]:
    return MappingProxyType({})


@dataclass(frozen=True)
class Node:
    """Node in the statute graph (section, entity, concept or index)."""
    id: str
    name: str
    node_type: str
    time: str | None = None
    degree: int = 0
    source_title: str | None = None
    display_label: str | None = None
    full_name: str | None = None
    text: str | None = None
    definition: str | None = None
    term_type: str | None = None
    title: str | None = None
    subtitle: str | None = None
    part: str | None = None
    chapter: str | None = None
    subchapter: str | None = None
    section: str | None = None
    subsection: str | None = None
    properties: Mapping[str, Any] = field(default_factory=_empty_mapping)

    @property
    def label(self) -> str:
        return self.display_label or self.name

    def to_dict(self) -> dict:
        data = {k: v for k, v in self.__dict__.items() if k != "properties"}
        data["properties"] = dict(self.properties)
        return data


@dataclass(frozen=True)
class Link:
    """Edge between two node ids; endpoints are always plain ids."""
    source: str
    target: str
    edge_type: str
    action: str
    time: str | None = None
    weight: float = 1
    source_title: str | None = None
    definition: str | None = None
    location: str | None = None
    timestamp: str | None = None

    def to_dict(self) -> dict:
        return dict(self.__dict__)


@dataclass(frozen=True)
class CachedGraph:
    """Immutable snapshot of every node and link for one title."""
    title_id: str
    nodes: tuple[Node, ...]
    links: tuple[Link, ...]


@dataclass(frozen=True)
class ScopedGraph:
    """Nodes and links belonging to one time scope."""
    scope: str
    nodes: tuple[Node, ...]
    links: tuple[Link, ...]


@dataclass(frozen=True)
class BuilderRequest:
    """Parameters for a bottom-up network search."""
    search_terms: tuple[str, ...]
    search_fields: frozenset[str]
    allowed_node_types: frozenset[str]
    allowed_edge_types: frozenset[str]
    match_logic: str = "or"
    expansion_depth: int = 1
    max_nodes_per_expansion: int = DEFAULT_MAX_PER_EXPANSION
    max_total_nodes: int = DEFAULT_MAX_TOTAL_NODES
    ranking_mode: str = "global"

    @classmethod
    def from_keywords(cls, keywords: str, **kwargs) -> "BuilderRequest":
        """Build a request from a comma-separated keyword string."""
        terms = tuple(t.strip() for t in keywords.split(",") if t.strip())
        for key in ("search_fields", "allowed_node_types", "allowed_edge_types"):
            if key in kwargs:
                kwargs[key] = frozenset(kwargs[key])
        return cls(search_terms=terms, **kwargs)


@dataclass(frozen=True)
class BuilderResult:
    """Capped subgraph produced by the network builder."""
    nodes: tuple[Node, ...] = ()
    links: tuple[Link, ...] = ()
    truncated: bool = False
    matched_count: int = 0

    def to_dict(self) -> dict:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "links": [l.to_dict() for l in self.links],
            "truncated": self.truncated,
            "matched_count": self.matched_count,
        }


@dataclass(frozen=True)
class Selection:
    """A node id paired with the scope it was chosen in."""
    node_id: str
    scope: str


@dataclass(frozen=True)
class Relationship:
    """Flattened link row used by relationship listings."""
    id: int
    doc_id: str
    actor: str
    action: str
    target: str
    actor_id: str
    target_id: str
    actor_type: str | None = None
    target_type: str | None = None
    actor_display_label: str | None = None
    target_display_label: str | None = None
    definition: str | None = None
    location: str | None = None
    timestamp: str | None = None

    def to_dict(self) -> dict:
        return dict(self.__dict__)


@dataclass(frozen=True)
class RelationshipListing:
    """Result of a capped relationship listing."""
    relationships: tuple[Relationship, ...]
    total_before_limit: int
    truncated: bool = False

    def to_dict(self) -> dict:
        return {
            "relationships": [r.to_dict() for r in self.relationships],
            "total_before_limit": self.total_before_limit,
            "truncated": self.truncated,
        }


@dataclass(frozen=True)
class NodeDetail:
    """Node lookup outcome; unavailable details are a value, not an error."""
    node_id: str
    scope: str
    available: bool
    fields: Mapping[str, Any] = field(default_factory=_empty_mapping)
    message: str | None = None

    @classmethod
    def unavailable(cls, node_id: str, scope: str) -> "NodeDetail":
        return cls(node_id=node_id, scope=scope, available=False, message=NO_DETAILS_MESSAGE)

    def to_dict(self) -> dict:
        return {
            "node_id": self.node_id,
            "scope": self.scope,
            "available": self.available,
            "fields": dict(self.fields),
            "message": self.message,
        }


@dataclass(frozen=True)
class DisplayState:
    """What the consistency controller last committed for display."""
    generation: int = 0
    title_id: str | None = None
    scope: str | None = None
    result: BuilderResult | None = None
    link_limit_truncated: bool = False
    switching: bool = False
    selection: Selection | None = None

    def to_dict(self) -> dict:
        return {
            "generation": self.generation,
            "title_id": self.title_id,
            "scope": self.scope,
            "result": self.result.to_dict() if self.result else None,
            "link_limit_truncated": self.link_limit_truncated,
            "switching": self.switching,
            "selection": (
                {"node_id": self.selection.node_id, "scope": self.selection.scope}
                if self.selection else None
            ),
        }
