"""Explorer configuration."""

import os
from dataclasses import dataclass
from pathlib import Path

from .core.constants import (
    DEFAULT_LINK_LIMIT,
    DEFAULT_MAX_PER_EXPANSION,
    DEFAULT_NODE_BUDGET,
    DEFAULT_SCOPE,
    DEFAULT_TITLE,
    FETCH_TIMEOUT_SECONDS,
    MANIFEST_FILE,
)


@dataclass(frozen=True)
class ExplorerConfig:
    """Statute graph explorer configuration."""
    data_url: str | None = None
    data_dir: Path = Path("public")
    manifest_file: str = MANIFEST_FILE
    default_title: str = DEFAULT_TITLE
    default_scope: str = DEFAULT_SCOPE
    link_limit: int = DEFAULT_LINK_LIMIT
    node_budget: int = DEFAULT_NODE_BUDGET
    max_per_expansion: int = DEFAULT_MAX_PER_EXPANSION
    fetch_timeout: float = FETCH_TIMEOUT_SECONDS
    load_on_startup: bool = True
    host: str = "127.0.0.1"
    port: int = 8766
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "ExplorerConfig":
        """Create configuration from environment variables."""
        return cls(
            data_url=os.getenv("SG_DATA_URL") or None,
            data_dir=Path(os.getenv("SG_DATA_DIR", str(cls.data_dir))),
            manifest_file=os.getenv("SG_MANIFEST", MANIFEST_FILE),
            default_title=os.getenv("SG_DEFAULT_TITLE", DEFAULT_TITLE),
            default_scope=os.getenv("SG_DEFAULT_SCOPE", DEFAULT_SCOPE),
            link_limit=int(os.getenv("SG_LINK_LIMIT", str(DEFAULT_LINK_LIMIT))),
            node_budget=int(os.getenv("SG_NODE_BUDGET", str(DEFAULT_NODE_BUDGET))),
            max_per_expansion=int(os.getenv("SG_MAX_PER_EXPANSION", str(DEFAULT_MAX_PER_EXPANSION))),
            fetch_timeout=float(os.getenv("SG_FETCH_TIMEOUT", str(FETCH_TIMEOUT_SECONDS))),
            load_on_startup=os.getenv("SG_LOAD_ON_STARTUP", "1") not in ("0", "false", "no"),
            host=os.getenv("SG_HTTP_HOST", "127.0.0.1"),
            port=int(os.getenv("SG_HTTP_PORT", "8766")),
            log_level=os.getenv("SG_LOG_LEVEL", "INFO").upper(),
        )
