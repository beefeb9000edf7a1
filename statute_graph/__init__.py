"""Statute graph explorer: scoped legal knowledge graphs and bottom-up network search."""

__version__ = "0.3.0"
