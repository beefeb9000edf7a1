#!/usr/bin/env python3
"""
Statute Graph MCP Server
Exposes the explorer (title loading, scope switching, bottom-up network
search, node lookups and relationship listings) as MCP tools over stdio.
"""

import asyncio
import json
import logging
import os
import sys
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from .config import ExplorerConfig
from .core import (
    DEFAULT_MAX_TOTAL_NODES,
    EDGE_TYPES,
    MATCH_LOGIC,
    NODE_TYPES,
    RANKING_MODES,
    SEARCH_FIELDS,
    TIME_SCOPES,
    BuilderRequest,
    GraphError,
)
from .explorer import GraphExplorer

logger = logging.getLogger(__name__)


# Initialize server
app = Server("statute-graph")

# Global explorer instance
explorer: GraphExplorer | None = None


TOOLS = [
    Tool(
        name="sg_load_title",
        description="Load a title of the code into memory. Replaces the currently loaded title; a failed load keeps the previous one.",
        inputSchema={
            "type": "object",
            "properties": {
                "title_id": {"type": "string", "description": "Title number, e.g. '26'"}
            },
            "required": ["title_id"]
        }
    ),
    Tool(
        name="sg_switch_scope",
        description="Switch the active time scope. Re-runs the active network search in the new scope.",
        inputSchema={
            "type": "object",
            "properties": {
                "scope": {"type": "string", "enum": list(TIME_SCOPES)}
            },
            "required": ["scope"]
        }
    ),
    Tool(
        name="sg_search_network",
        description="Bottom-up network search: match keywords, then expand breadth-first through allowed edge types under size caps.",
        inputSchema={
            "type": "object",
            "properties": {
                "keywords": {"type": "string", "description": "Comma-separated search terms"},
                "search_fields": {"type": "array", "items": {"type": "string", "enum": list(SEARCH_FIELDS)}},
                "node_types": {"type": "array", "items": {"type": "string", "enum": list(NODE_TYPES)}},
                "edge_types": {"type": "array", "items": {"type": "string", "enum": list(EDGE_TYPES)}},
                "search_logic": {"type": "string", "enum": list(MATCH_LOGIC)},
                "expansion_depth": {"type": "integer", "minimum": 0},
                "max_total_nodes": {"type": "integer", "minimum": 1},
                "ranking_mode": {"type": "string", "enum": list(RANKING_MODES)}
            },
            "required": ["keywords", "search_fields"]
        }
    ),
    Tool(
        name="sg_select",
        description="Select a node in the active scope (selecting it again clears the selection).",
        inputSchema={
            "type": "object",
            "properties": {
                "id": {"type": ["string", "null"], "description": "Node ID, or null to clear"}
            },
            "required": ["id"]
        }
    ),
    Tool(
        name="sg_node_details",
        description="Details for one node in a scope. Unknown nodes report that no details are available.",
        inputSchema={
            "type": "object",
            "properties": {
                "id": {"type": "string"},
                "scope": {"type": "string", "enum": list(TIME_SCOPES)}
            },
            "required": ["id"]
        }
    ),
    Tool(
        name="sg_relationships",
        description="Hub-first capped relationship listing for a scope, or every relationship of one node when 'id' is given.",
        inputSchema={
            "type": "object",
            "properties": {
                "id": {"type": "string", "description": "Optional node ID"},
                "scope": {"type": "string", "enum": list(TIME_SCOPES)},
                "limit": {"type": "integer", "minimum": 0},
                "edge_types": {"type": "array", "items": {"type": "string", "enum": list(EDGE_TYPES)}},
                "node_types": {"type": "array", "items": {"type": "string", "enum": list(NODE_TYPES)}},
                "node_budget": {"type": "integer", "minimum": 0}
            }
        }
    ),
    Tool(
        name="sg_search_nodes",
        description="Find nodes whose name or display label contains a substring, within a scope.",
        inputSchema={
            "type": "object",
            "properties": {
                "query": {"type": "string"},
                "scope": {"type": "string", "enum": list(TIME_SCOPES)}
            },
            "required": ["query"]
        }
    ),
    Tool(
        name="sg_stats",
        description="Node and link totals for the loaded title.",
        inputSchema={"type": "object", "properties": {}}
    ),
    Tool(
        name="sg_ping",
        description="Health check for MCP connectivity. Returns server status.",
        inputSchema={"type": "object", "properties": {}}
    ),
]


async def dispatch(ex: GraphExplorer, name: str, arguments: dict) -> Any:
    """Run one tool against the explorer and return a JSON-serializable result."""
    if name == "sg_load_title":
        committed = await ex.load_title(arguments["title_id"])
        return {"committed": committed, "stats": ex.stats()}

    elif name == "sg_switch_scope":
        committed = await ex.switch_scope(arguments["scope"])
        return {"committed": committed, "state": ex.controller.display.to_dict()}

    elif name == "sg_search_network":
        request = BuilderRequest.from_keywords(
            arguments["keywords"],
            search_fields=arguments["search_fields"],
            allowed_node_types=arguments.get("node_types", NODE_TYPES),
            allowed_edge_types=arguments.get("edge_types", EDGE_TYPES),
            match_logic=arguments.get("search_logic", "or"),
            expansion_depth=arguments.get("expansion_depth", 1),
            max_nodes_per_expansion=ex.config.max_per_expansion,
            max_total_nodes=arguments.get("max_total_nodes", DEFAULT_MAX_TOTAL_NODES),
            ranking_mode=arguments.get("ranking_mode", "global"),
        )
        committed = await ex.run_search(request)
        return {"committed": committed, "state": ex.controller.display.to_dict()}

    elif name == "sg_select":
        selection = await ex.select(arguments.get("id"))
        return {"selection": {"node_id": selection.node_id, "scope": selection.scope} if selection else None}

    elif name == "sg_node_details":
        detail = await ex.fetch_node_detail(arguments["id"], arguments.get("scope"))
        return detail.to_dict()

    elif name == "sg_relationships":
        if arguments.get("id"):
            listing = ex.node_relationships(arguments["id"], arguments.get("scope"), arguments.get("edge_types"))
        else:
            listing = ex.relationships(
                arguments.get("scope"),
                arguments.get("limit"),
                arguments.get("edge_types"),
                arguments.get("node_types"),
                arguments.get("node_budget"),
            )
        return listing.to_dict()

    elif name == "sg_search_nodes":
        return ex.search_nodes(arguments["query"], arguments.get("scope"))

    elif name == "sg_stats":
        return ex.stats()

    elif name == "sg_ping":
        return {
            "status": "ok",
            "loaded_title": ex.cache.title_id if ex.cache.loaded else None,
            "scope": ex.scope,
            "generation": ex.controller.generation,
        }

    raise GraphError(f"Unknown tool: {name}")


@app.list_tools()
async def list_tools() -> list[Tool]:
    """List available statute graph tools."""
    return TOOLS


@app.call_tool()
async def call_tool(name: str, arguments: Any) -> list[TextContent]:
    """Handle tool calls with uniform error handling."""
    try:
        result = await dispatch(explorer, name, arguments or {})
        return [TextContent(type="text", text=json.dumps(result, indent=2))]

    except (GraphError, KeyError, ValueError) as e:
        # Structured error response for known errors
        logger.warning(f"Graph error in {name}: {e}")
        return [TextContent(type="text", text=json.dumps({"error": str(e)}))]

    except Exception as e:
        # Unexpected errors
        logger.error(f"Unexpected error in {name}: {e}", exc_info=True)
        return [TextContent(type="text", text=json.dumps({"error": f"Internal error: {str(e)}"}))]


async def main():
    """Main entry point."""
    global explorer

    config = ExplorerConfig.from_env()
    explorer = GraphExplorer(config)

    if config.load_on_startup:
        try:
            await explorer.load_title(config.default_title)
        except GraphError as e:
            logger.warning(f"Could not load default title {config.default_title}: {e}")

    logger.info("Starting Statute Graph MCP Server...")

    try:
        async with stdio_server() as (read_stream, write_stream):
            await app.run(read_stream, write_stream, app.create_initialization_options())
    finally:
        await explorer.aclose()


def run():
    """Console script entry point."""
    # Configure logging to stderr (never stdout for MCP)
    log_level = os.getenv("SG_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr
    )
    asyncio.run(main())


if __name__ == "__main__":
    run()
