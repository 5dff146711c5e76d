"""MCP server implementation for the notebook."""

import json
import logging
import uuid
from contextlib import contextmanager
from typing import Iterator, Optional

from mcp.server.fastmcp import FastMCP

from notegraph_mcp.config import config
from notegraph_mcp.exceptions import NotebookError
from notegraph_mcp.observability import metrics, timed_operation
from notegraph_mcp.services.note_service import NoteService
from notegraph_mcp.tenant.context import TenantContext, resolve_tenant, tenant_scope
from notegraph_mcp.utils import parse_tag_list

logger = logging.getLogger(__name__)


def _validate_input_lengths(
    title: Optional[str] = None, content: Optional[str] = None
) -> None:
    """Validate input string lengths at the MCP boundary."""
    if title and len(title) > config.max_title_length:
        raise ValueError(
            f"Title exceeds maximum length of {config.max_title_length} characters"
        )
    if content and len(content) > config.max_content_length:
        raise ValueError(
            f"Content exceeds maximum length of {config.max_content_length} characters"
        )


@contextmanager
def _operation_scope(
    user_id: Optional[int],
    tenant_id: Optional[int] = None,
    tenant_kind: Optional[str] = None,
) -> Iterator[TenantContext]:
    """Resolve the caller's tenant and hold it for one tool call."""
    tenant = resolve_tenant(user_id, tenant_id, tenant_kind)
    with tenant_scope(tenant.id, tenant.kind) as ctx:
        yield ctx


class NotebookMcpServer:
    """MCP server for the notebook.

    Every tool is one operation: it resolves the caller's tenant from
    ``user_id`` (or an explicit ``tenant_id``/``tenant_kind`` pair for
    organization spaces), runs under its own tenant scope, and clears it
    when the call ends.
    """

    def __init__(self, engine=None):
        """Initialize the MCP server.

        Args:
            engine: Pre-configured SQLAlchemy engine shared by the services.
        """
        self.mcp = FastMCP(config.server_name)
        self.note_service = NoteService(engine=engine)
        self._register_tools()
        logger.info("Notebook MCP server initialized")

    def format_error_response(self, error: Exception) -> str:
        """Format an error response in a consistent way.

        Args:
            error: The exception that occurred

        Returns:
            Formatted error message with appropriate level of detail
        """
        error_id = str(uuid.uuid4())[:8]

        if isinstance(error, NotebookError):
            logger.error(
                f"[{error.code.name}] [{error_id}]: {error.message}",
                extra={"error_details": error.details},
            )
            return f"Error: {error.message}"
        elif isinstance(error, ValueError):
            logger.error(f"Validation error [{error_id}]: {str(error)}")
            return f"Error: Invalid input (ref: {error_id})"
        else:
            logger.error(f"Unexpected error [{error_id}]: {str(error)}", exc_info=True)
            return f"Error: An unexpected error occurred (ref: {error_id})"

    def _register_tools(self) -> None:
        """Register MCP tools."""

        @self.mcp.tool(name="nb_get_graph")
        def nb_get_graph(
            user_id: int,
            tenant_id: Optional[int] = None,
            tenant_kind: Optional[str] = None,
        ) -> str:
            """Get the knowledge graph of every note in the active space.
            Args:
                user_id: The acting user
                tenant_id: Organization space id (with tenant_kind) instead of the personal space
                tenant_kind: PERSONAL or ORGANIZATION
            Returns:
                JSON {"nodes": [{id, title, folderId, tags, updatedAt}], "edges": [{source, target}]}
            """
            with timed_operation("nb_get_graph", user_id=user_id) as op:
                try:
                    with _operation_scope(user_id, tenant_id, tenant_kind) as ctx:
                        graph = self.note_service.get_graph(ctx.current_tenant())
                    op["node_count"] = len(graph.nodes)
                    op["edge_count"] = len(graph.edges)
                    return json.dumps(graph.to_dict())
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nb_get_backlinks")
        def nb_get_backlinks(
            note_id: int,
            user_id: int,
            tenant_id: Optional[int] = None,
            tenant_kind: Optional[str] = None,
        ) -> str:
            """List notes that reference a note with [[<note_id>|...]].
            Args:
                note_id: The referenced note (must be in the active space)
                user_id: The acting user
                tenant_id: Organization space id (with tenant_kind)
                tenant_kind: PERSONAL or ORGANIZATION
            Returns:
                JSON array of note summaries, most recently updated first
            """
            with timed_operation("nb_get_backlinks", note_id=note_id) as op:
                try:
                    with _operation_scope(user_id, tenant_id, tenant_kind) as ctx:
                        notes = self.note_service.get_backlinks(
                            note_id, ctx.current_tenant()
                        )
                    op["result_count"] = len(notes)
                    return json.dumps([n.to_summary() for n in notes])
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nb_create_note")
        def nb_create_note(
            user_id: int,
            title: str = "",
            content: Optional[str] = None,
            excerpt: str = "",
            folder_id: Optional[int] = None,
            is_pinned: bool = False,
            tags: Optional[str] = None,
            tenant_id: Optional[int] = None,
            tenant_kind: Optional[str] = None,
        ) -> str:
            """Create a new note.
            Args:
                user_id: The acting user
                title: The title of the note
                content: The body; reference other notes as [[<id>|<label>]]
                excerpt: Short plain-text excerpt (searched by nb_search_notes)
                folder_id: Optional folder id
                is_pinned: Pin the note to the top of listings
                tags: Comma-separated list of tags (optional)
                tenant_id: Organization space id (with tenant_kind)
                tenant_kind: PERSONAL or ORGANIZATION
            """
            with timed_operation("nb_create_note", title=(title or "")[:30]) as op:
                try:
                    _validate_input_lengths(title=title, content=content)
                    with _operation_scope(user_id, tenant_id, tenant_kind) as ctx:
                        note = self.note_service.create_note(
                            ctx.current_tenant(),
                            title=title,
                            content=content,
                            excerpt=excerpt,
                            folder_id=folder_id,
                            is_pinned=is_pinned,
                            tags=parse_tag_list(tags),
                        )
                    op["note_id"] = note.id
                    return f"Note created successfully with ID: {note.id}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nb_get_note")
        def nb_get_note(
            note_id: int,
            user_id: int,
            tenant_id: Optional[int] = None,
            tenant_kind: Optional[str] = None,
        ) -> str:
            """Retrieve a note by ID.
            Args:
                note_id: The ID of the note
                user_id: The acting user
                tenant_id: Organization space id (with tenant_kind)
                tenant_kind: PERSONAL or ORGANIZATION
            """
            with timed_operation("nb_get_note", note_id=note_id):
                try:
                    with _operation_scope(user_id, tenant_id, tenant_kind) as ctx:
                        note = self.note_service.get_note(note_id, ctx.current_tenant())
                    result = f"# {note.title}\n"
                    result += f"ID: {note.id}\n"
                    if note.folder_id is not None:
                        result += f"Folder: {note.folder_id}\n"
                    if note.is_pinned:
                        result += "Pinned: yes\n"
                    result += f"Created: {note.created_at.isoformat()}\n"
                    result += f"Updated: {note.updated_at.isoformat()}\n"
                    if note.tags:
                        result += f"Tags: {', '.join(note.tags)}\n"
                    result += f"\n{note.content or ''}\n"
                    return result
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nb_update_note")
        def nb_update_note(
            note_id: int,
            user_id: int,
            title: Optional[str] = None,
            content: Optional[str] = None,
            excerpt: Optional[str] = None,
            folder_id: Optional[int] = None,
            is_pinned: Optional[bool] = None,
            tags: Optional[str] = None,
            tenant_id: Optional[int] = None,
            tenant_kind: Optional[str] = None,
        ) -> str:
            """Update an existing note. Omitted fields are left unchanged.
            Args:
                note_id: The ID of the note to update
                user_id: The acting user
                title: New title (optional)
                content: New body (optional)
                excerpt: New excerpt (optional)
                folder_id: New folder id (optional)
                is_pinned: New pin state (optional)
                tags: Comma-separated list of tags replacing the current ones (optional)
                tenant_id: Organization space id (with tenant_kind)
                tenant_kind: PERSONAL or ORGANIZATION
            """
            with timed_operation("nb_update_note", note_id=note_id):
                try:
                    _validate_input_lengths(title=title, content=content)
                    with _operation_scope(user_id, tenant_id, tenant_kind) as ctx:
                        note = self.note_service.update_note(
                            note_id,
                            ctx.current_tenant(),
                            title=title,
                            content=content,
                            excerpt=excerpt,
                            folder_id=folder_id,
                            is_pinned=is_pinned,
                            tags=parse_tag_list(tags) if tags is not None else None,
                        )
                    return f"Note updated successfully: {note.id}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nb_delete_note")
        def nb_delete_note(
            note_id: int,
            user_id: int,
            tenant_id: Optional[int] = None,
            tenant_kind: Optional[str] = None,
        ) -> str:
            """Delete a note. References to it in other notes are kept but no longer resolve.
            Args:
                note_id: The ID of the note to delete
                user_id: The acting user
                tenant_id: Organization space id (with tenant_kind)
                tenant_kind: PERSONAL or ORGANIZATION
            """
            with timed_operation("nb_delete_note", note_id=note_id):
                try:
                    with _operation_scope(user_id, tenant_id, tenant_kind) as ctx:
                        self.note_service.delete_note(note_id, ctx.current_tenant())
                    return f"Note deleted successfully: {note_id}"
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nb_list_notes")
        def nb_list_notes(
            user_id: int,
            folder_id: Optional[int] = None,
            tenant_id: Optional[int] = None,
            tenant_kind: Optional[str] = None,
        ) -> str:
            """List notes in the active space, pinned first then most recently updated.
            Args:
                user_id: The acting user
                folder_id: Only list notes in this folder (optional)
                tenant_id: Organization space id (with tenant_kind)
                tenant_kind: PERSONAL or ORGANIZATION
            Returns:
                JSON array of note summaries
            """
            with timed_operation("nb_list_notes", user_id=user_id) as op:
                try:
                    with _operation_scope(user_id, tenant_id, tenant_kind) as ctx:
                        notes = self.note_service.list_notes(
                            ctx.current_tenant(), folder_id=folder_id
                        )
                    op["result_count"] = len(notes)
                    return json.dumps([n.to_summary() for n in notes])
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nb_search_notes")
        def nb_search_notes(
            query: str,
            user_id: int,
            tenant_id: Optional[int] = None,
            tenant_kind: Optional[str] = None,
        ) -> str:
            """Search notes whose title or excerpt contains the query (case-insensitive).
            Args:
                query: Text to look for
                user_id: The acting user
                tenant_id: Organization space id (with tenant_kind)
                tenant_kind: PERSONAL or ORGANIZATION
            Returns:
                JSON array of note summaries
            """
            with timed_operation("nb_search_notes", query=query[:30]) as op:
                try:
                    with _operation_scope(user_id, tenant_id, tenant_kind) as ctx:
                        notes = self.note_service.search_notes(ctx.current_tenant(), query)
                    op["result_count"] = len(notes)
                    return json.dumps([n.to_summary() for n in notes])
                except Exception as e:
                    return self.format_error_response(e)

        @self.mcp.tool(name="nb_status")
        def nb_status(
            user_id: int,
            tenant_id: Optional[int] = None,
            tenant_kind: Optional[str] = None,
        ) -> str:
            """Show note count for the active space and server operation metrics.
            Args:
                user_id: The acting user
                tenant_id: Organization space id (with tenant_kind)
                tenant_kind: PERSONAL or ORGANIZATION
            """
            try:
                with _operation_scope(user_id, tenant_id, tenant_kind) as ctx:
                    tenant = ctx.current_tenant()
                    count = self.note_service.count_notes(tenant)
                summary = metrics.get_summary()
                result = f"# Notebook Status ({tenant})\n"
                result += f"Notes: {count}\n"
                result += f"Operations: {summary['total_operations']} "
                result += f"({summary['total_errors']} errors)\n"
                result += f"Uptime: {summary['uptime_seconds']:.0f}s\n"
                return result
            except Exception as e:
                return self.format_error_response(e)

    def run(self) -> None:
        """Run the MCP server."""
        self.mcp.run()
