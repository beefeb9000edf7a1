#!/usr/bin/env python3
"""
Startup script for the Statute Graph Explorer HTTP server.

Usage:
    statute-graph-server [--port PORT] [--host HOST] [--data-dir DIR | --data-url URL]

Command-line options override the SG_* environment variables read by
ExplorerConfig.from_env().
"""

import argparse
import dataclasses
import logging
import sys
from pathlib import Path

from statute_graph.config import ExplorerConfig


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Statute Graph Explorer HTTP Server")
    parser.add_argument("--port", type=int, default=None, help="Server port (default: 8766)")
    parser.add_argument("--host", default=None, help="Server host (default: 127.0.0.1)")
    parser.add_argument("--log-level", default=None, help="Log level (default: INFO)")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--data-dir", default=None, help="Local dataset directory")
    source.add_argument("--data-url", default=None, help="Base URL of the dataset files")
    parser.add_argument("--title", default=None, help="Title to load at startup")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> ExplorerConfig:
    """Environment configuration with command-line overrides applied."""
    overrides = {
        "host": args.host,
        "port": args.port,
        "log_level": args.log_level.upper() if args.log_level else None,
        "data_dir": Path(args.data_dir) if args.data_dir else None,
        "data_url": args.data_url,
        "default_title": args.title,
    }
    config = ExplorerConfig.from_env()
    if args.data_dir:
        # An explicit directory wins over SG_DATA_URL
        config = dataclasses.replace(config, data_url=None)
    return dataclasses.replace(config, **{k: v for k, v in overrides.items() if v is not None})


def main(argv: list[str] | None = None):
    """Start the HTTP server."""
    config = build_config(parse_args(argv))
    logging.getLogger().setLevel(getattr(logging, config.log_level, logging.INFO))

    print(f"Starting Statute Graph Explorer on {config.host}:{config.port}")
    print(f"Log level: {config.log_level}")
    print("Press Ctrl+C to stop")
    print("")

    try:
        import uvicorn
        from statute_graph.server import app as server_app

        server_app.explorer_config = config
        uvicorn.run(
            server_app.app,
            host=config.host,
            port=config.port,
            log_level=config.log_level.lower(),
        )
    except KeyboardInterrupt:
        print("\nServer stopped by user")
    except Exception as e:
        print(f"Error starting server: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
