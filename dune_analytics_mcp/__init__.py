"""Dune Analytics query results exposed as MCP tools."""

from dune_analytics_mcp.client import DuneClient, rows_to_csv
from dune_analytics_mcp.config import DuneSettings
from dune_analytics_mcp.server import create_server

__version__ = "1.0.0"

__all__ = ["DuneClient", "DuneSettings", "create_server", "rows_to_csv"]
