"""Utility functions for statute graph operations."""

from .constants import TIME_SCOPES
from .exceptions import InvalidRequestError
from .types import Link


def scoped_key(scope: str | None, node_id: str) -> str:
    """Generate the composite key identifying a node within a scope."""
    return f"{scope}::{node_id}"


def normalize_title_id(title_id: str | int) -> str:
    """Title ids compare as strings ("26" == 26)."""
    return str(title_id).strip()


def link_endpoints(link: Link) -> tuple[str, str]:
    """Endpoint accessor for Link objects."""
    return link.source, link.target


def validate_scope(scope: str):
    """Validate a time scope. Raises InvalidRequestError if unknown."""
    if scope not in TIME_SCOPES:
        raise InvalidRequestError(f"Invalid scope '{scope}', must be one of {TIME_SCOPES}")
