"""
Notegraph MCP - a multi-tenant notebook with a note-linking knowledge graph.
This package implements a Model Context Protocol (MCP) server for notes that
reference each other inline with ``[[<id>|<label>]]`` links. Links are derived
from note bodies on every query and resolved into a per-tenant graph and
backlink lists.

This version uses synchronous operations.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("notegraph-mcp")
except PackageNotFoundError:
    __version__ = "0.3.0"
