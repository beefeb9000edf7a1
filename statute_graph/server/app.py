"""FastAPI HTTP server for the statute graph explorer."""

import logging
import os
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field

from .. import __version__
from ..config import ExplorerConfig
from ..core import (
    DEFAULT_MAX_TOTAL_NODES,
    EDGE_TYPES,
    NODE_TYPES,
    BuilderRequest,
    DatasetNotLoadedError,
    FetchFailureError,
    GraphError,
    InvalidRequestError,
    NodeNotFoundError,
    TitleNotFoundError,
)
from ..explorer import GraphExplorer
from .websocket import ConnectionManager

# Configure logging
log_level = os.getenv("SG_LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stderr
)
logger = logging.getLogger(__name__)


# ============================================================================
# Request/Response Models
# ============================================================================

class LoadTitleRequest(BaseModel):
    """Request to load (or switch to) a title."""
    title_id: str = Field(..., description="Title number from the manifest, e.g. '26'")


class ScopeRequest(BaseModel):
    """Request to switch the active time scope."""
    scope: str = Field(..., description="Time scope: 'pre-OBBBA' or 'post-OBBBA'")


class SelectionRequest(BaseModel):
    """Request to select (or clear) a node in the active scope."""
    node_id: str | None = Field(None, description="Node id; null clears the selection")


class SearchRequest(BaseModel):
    """Bottom-up network search parameters."""
    keywords: str = Field(..., description="Comma-separated search terms")
    search_fields: list[str] = Field(..., description="Fields to match terms against")
    node_types: list[str] = Field(default_factory=lambda: list(NODE_TYPES))
    edge_types: list[str] = Field(default_factory=lambda: list(EDGE_TYPES))
    search_logic: str = Field("or", description="'and' or 'or'")
    expansion_depth: int = Field(1, description="Breadth-first expansion levels")
    max_nodes_per_expansion: int | None = Field(None, description="Neighbours admitted per expanded node")
    max_total_nodes: int = Field(DEFAULT_MAX_TOTAL_NODES, description="Overall node cap")
    ranking_mode: str = Field("global", description="'global' or 'subgraph'")


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    loaded_title: str | None
    scope: str
    generation: int
    connections: int


# ============================================================================
# Global State
# ============================================================================

explorer: GraphExplorer | None = None
connection_manager: ConnectionManager | None = None

# Set by the launcher; the lifespan falls back to the environment
explorer_config: ExplorerConfig | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    global explorer, connection_manager

    # Startup
    logger.info("Starting Statute Graph Explorer...")

    config = explorer_config or ExplorerConfig.from_env()
    connection_manager = ConnectionManager()

    async def broadcast_callback(message: dict):
        """Push committed state to connected WebSocket clients."""
        await connection_manager.broadcast_all(message)

    explorer = GraphExplorer(config, on_commit=broadcast_callback)

    if config.load_on_startup:
        try:
            await explorer.load_title(config.default_title)
        except GraphError as e:
            logger.warning(f"Could not load default title {config.default_title}: {e}")

    logger.info("Server ready")

    yield

    # Shutdown
    if explorer:
        await explorer.aclose()

    logger.info("Server stopped")


# Create FastAPI app
app = FastAPI(
    title="Statute Graph Explorer",
    description="Scoped legal knowledge graph with bottom-up network search",
    version=__version__,
    lifespan=lifespan
)


def _require_explorer() -> GraphExplorer:
    if not explorer:
        raise HTTPException(status_code=500, detail="Explorer not initialized")
    return explorer


def _raise_http(e: Exception, action: str):
    """Map explorer errors to HTTP errors."""
    if isinstance(e, (TitleNotFoundError, NodeNotFoundError)):
        raise HTTPException(status_code=404, detail=str(e))
    if isinstance(e, FetchFailureError):
        raise HTTPException(status_code=502, detail=str(e))
    if isinstance(e, DatasetNotLoadedError):
        raise HTTPException(status_code=409, detail=str(e))
    if isinstance(e, (InvalidRequestError, GraphError, ValueError)):
        raise HTTPException(status_code=400, detail=str(e))
    logger.error(f"Error {action}: {e}", exc_info=True)
    raise HTTPException(status_code=500, detail=str(e))


def _state(ex: GraphExplorer) -> dict:
    return ex.controller.display.to_dict()


# ============================================================================
# API Endpoints
# ============================================================================

@app.get("/api/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    ex = _require_explorer()
    return {
        "status": "ok",
        "version": __version__,
        "loaded_title": ex.cache.title_id if ex.cache.loaded else None,
        "scope": ex.scope,
        "generation": ex.controller.generation,
        "connections": connection_manager.count() if connection_manager else 0,
    }


@app.get("/api/titles")
async def list_titles():
    """List the titles available in the manifest."""
    ex = _require_explorer()
    try:
        manifest = await ex.titles()
        return {
            "version": manifest.version,
            "titles": [t.model_dump(exclude_none=True) for t in manifest.titles],
        }
    except Exception as e:
        _raise_http(e, "reading manifest")


@app.post("/api/titles/load")
async def load_title(request: LoadTitleRequest):
    """
    Load a title, replacing the cached graph.
    A failed load leaves the previous title in place.
    """
    ex = _require_explorer()
    try:
        committed = await ex.load_title(request.title_id)
        return {"committed": committed, "state": _state(ex)}
    except Exception as e:
        _raise_http(e, "loading title")


@app.post("/api/scope")
async def switch_scope(request: ScopeRequest):
    """Switch the active time scope, re-running any active search."""
    ex = _require_explorer()
    try:
        committed = await ex.switch_scope(request.scope)
        return {"committed": committed, "state": _state(ex)}
    except Exception as e:
        _raise_http(e, "switching scope")


@app.post("/api/selection")
async def select_node(request: SelectionRequest):
    """Select a node in the active scope (selecting it again clears it)."""
    ex = _require_explorer()
    try:
        await ex.select(request.node_id)
        return _state(ex)
    except Exception as e:
        _raise_http(e, "selecting node")


@app.post("/api/search")
async def run_search(request: SearchRequest):
    """Run a bottom-up network search in the active scope."""
    ex = _require_explorer()
    try:
        builder_request = BuilderRequest.from_keywords(
            request.keywords,
            search_fields=request.search_fields,
            allowed_node_types=request.node_types,
            allowed_edge_types=request.edge_types,
            match_logic=request.search_logic.lower(),
            expansion_depth=request.expansion_depth,
            max_nodes_per_expansion=request.max_nodes_per_expansion or ex.config.max_per_expansion,
            max_total_nodes=request.max_total_nodes,
            ranking_mode=request.ranking_mode,
        )
        committed = await ex.run_search(builder_request)
        return {"committed": committed, "state": _state(ex)}
    except Exception as e:
        _raise_http(e, "running search")


@app.delete("/api/search")
async def clear_search():
    """Drop the active search and show the capped scope view."""
    ex = _require_explorer()
    await ex.clear_search()
    return _state(ex)


@app.get("/api/state")
async def get_state():
    """The last committed display state."""
    return _state(_require_explorer())


@app.get("/api/relationships")
async def get_relationships(
    scope: str | None = None,
    limit: int | None = None,
    edge_types: list[str] | None = Query(None),
    node_types: list[str] | None = Query(None),
    node_budget: int | None = None,
):
    """Capped relationship listing for a scope."""
    ex = _require_explorer()
    try:
        listing = ex.relationships(scope, limit, edge_types, node_types, node_budget)
        return listing.to_dict()
    except Exception as e:
        _raise_http(e, "listing relationships")


@app.get("/api/overview")
async def get_overview(
    scope: str | None = None,
    limit: int | None = None,
    edge_types: list[str] | None = Query(None),
    node_types: list[str] | None = Query(None),
    node_budget: int | None = None,
):
    """Relationship listing, node counts and selected-node rows in one call."""
    ex = _require_explorer()
    try:
        overview = await ex.relationship_overview(scope, limit, edge_types, node_types, node_budget)
        return {
            "listing": overview["listing"].to_dict(),
            "counts": overview["counts"],
            "selected": overview["selected"].to_dict() if overview["selected"] else None,
        }
    except Exception as e:
        _raise_http(e, "building overview")


@app.get("/api/nodes")
async def search_nodes(q: str, scope: str | None = None):
    """Search nodes by name or display label within a scope."""
    ex = _require_explorer()
    try:
        return ex.search_nodes(q, scope)
    except Exception as e:
        _raise_http(e, "searching nodes")


@app.get("/api/nodes/{node_id}")
async def get_node(node_id: str, scope: str | None = None):
    """Node details; unknown nodes report 'no details available'."""
    ex = _require_explorer()
    detail = await ex.fetch_node_detail(node_id, scope)
    return detail.to_dict()


@app.get("/api/nodes/{node_id}/text")
async def get_node_text(node_id: str, scope: str | None = None):
    """Best available text for a node."""
    ex = _require_explorer()
    try:
        return {"text": ex.document_text(node_id, scope)}
    except Exception as e:
        _raise_http(e, "reading node text")


@app.get("/api/nodes/{node_id}/relationships")
async def get_node_relationships(
    node_id: str,
    scope: str | None = None,
    edge_types: list[str] | None = Query(None),
):
    """Every relationship touching one node in a scope."""
    ex = _require_explorer()
    try:
        return ex.node_relationships(node_id, scope, edge_types).to_dict()
    except Exception as e:
        _raise_http(e, "listing node relationships")


@app.get("/api/counts")
async def get_counts(scope: str | None = None, ids: list[str] | None = Query(None)):
    """Dataset-wide degree per node."""
    ex = _require_explorer()
    try:
        return ex.node_counts(scope, ids)
    except Exception as e:
        _raise_http(e, "counting nodes")


@app.get("/api/stats")
async def get_stats():
    """Node and link totals for the loaded title."""
    ex = _require_explorer()
    try:
        return ex.stats()
    except Exception as e:
        _raise_http(e, "computing stats")


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for committed display updates.
    Clients connect with: ws://localhost:8766/ws
    """
    if not connection_manager or not explorer:
        await websocket.close(code=1011, reason="Server not initialized")
        return

    client_id = await connection_manager.connect(websocket)
    await websocket.send_json({"type": "hello", "state": _state(explorer)})

    try:
        # Keep connection alive and receive messages (for heartbeat/ping)
        while True:
            data = await websocket.receive_text()
            # Echo back for heartbeat
            await websocket.send_json({"type": "pong", "message": data})

    except WebSocketDisconnect:
        connection_manager.disconnect(client_id)
    except Exception as e:
        logger.error(f"WebSocket error for {client_id}: {e}")
        connection_manager.disconnect(client_id)
