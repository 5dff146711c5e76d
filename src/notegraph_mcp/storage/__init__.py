"""Storage layer for the Notegraph MCP server."""

from notegraph_mcp.storage.note_repository import NoteRepository

__all__ = [
    "NoteRepository",
]
