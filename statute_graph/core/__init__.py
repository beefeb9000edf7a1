"""Core statute graph components."""

from .types import (
    Node,
    Link,
    CachedGraph,
    ScopedGraph,
    BuilderRequest,
    BuilderResult,
    Selection,
    Relationship,
    RelationshipListing,
    NodeDetail,
    DisplayState,
)
from .constants import *
from .exceptions import *
from .schema import Manifest, ManifestEntry, RawGraph, SplitMeta
from .sources import DatasetSource, HttpDatasetSource, FileDatasetSource
from .loader import GraphCache, assemble_graph, merge_parts
from .projector import project, node_ids_in_scope
from .ranking import degree_map, rank_stable, top_by_score, truncate_links, apply_node_budget
from .builder import NetworkBuilder, build_network, validate_request
from .consistency import ConsistencyController, Ticket, apply_link_limit, default_view
from .utils import scoped_key, normalize_title_id, link_endpoints, validate_scope

__all__ = [
    # Types
    "Node",
    "Link",
    "CachedGraph",
    "ScopedGraph",
    "BuilderRequest",
    "BuilderResult",
    "Selection",
    "Relationship",
    "RelationshipListing",
    "NodeDetail",
    "DisplayState",
    # Constants
    "TIME_SCOPES",
    "DEFAULT_SCOPE",
    "NODE_TYPES",
    "EDGE_TYPES",
    "DEFAULT_EDGE_TYPE",
    "SEARCH_FIELDS",
    "MATCH_LOGIC",
    "RANKING_MODES",
    "MANIFEST_FILE",
    "MANIFEST_VERSION",
    "DEFAULT_TITLE",
    "DEFAULT_LINK_LIMIT",
    "DEFAULT_NODE_BUDGET",
    "DEFAULT_MAX_PER_EXPANSION",
    "DEFAULT_MAX_TOTAL_NODES",
    "NODE_SEARCH_LIMIT",
    "FETCH_TIMEOUT_SECONDS",
    "NO_DETAILS_MESSAGE",
    "NO_TEXT_MESSAGE",
    # Exceptions
    "GraphError",
    "TitleNotFoundError",
    "FetchFailureError",
    "InvalidRequestError",
    "DatasetNotLoadedError",
    "NodeNotFoundError",
    # Wire models
    "Manifest",
    "ManifestEntry",
    "RawGraph",
    "SplitMeta",
    # Classes
    "DatasetSource",
    "HttpDatasetSource",
    "FileDatasetSource",
    "GraphCache",
    "NetworkBuilder",
    "ConsistencyController",
    "Ticket",
    # Functions
    "assemble_graph",
    "merge_parts",
    "project",
    "node_ids_in_scope",
    "degree_map",
    "rank_stable",
    "top_by_score",
    "truncate_links",
    "apply_node_budget",
    "build_network",
    "validate_request",
    "apply_link_limit",
    "default_view",
    "scoped_key",
    "normalize_title_id",
    "link_endpoints",
    "validate_scope",
]
