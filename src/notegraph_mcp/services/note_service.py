"""Service layer for notebook operations."""

import logging
from typing import Any, List, Optional

from sqlalchemy.engine import Engine

from notegraph_mcp.exceptions import ErrorCode, NoteNotFoundError, ValidationError
from notegraph_mcp.models.schema import KnowledgeGraph, Note, Tenant, utc_now
from notegraph_mcp.observability import traced
from notegraph_mcp.services.backlink_resolver import BacklinkResolver
from notegraph_mcp.services.graph_builder import GraphBuilder
from notegraph_mcp.storage.note_repository import NoteRepository
from notegraph_mcp.tenant.context import require_tenant
from notegraph_mcp.tenant.guard import assert_owned

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = ("title", "content", "excerpt", "is_pinned", "folder_id", "tags")


class NoteService:
    """Service for managing notes and their link graph.

    Every public method takes the tenant explicitly. Lookups by bare id go
    through the tenant guard before the note is returned or changed.
    """

    def __init__(
        self,
        repository: Optional[NoteRepository] = None,
        engine: Optional[Engine] = None,
    ):
        """Initialize the service.

        Args:
            repository: Note storage backend. Created with defaults if None.
            engine: Pre-configured SQLAlchemy engine to pass to NoteRepository.
                Only used when repository is None.
        """
        if repository is not None:
            self.repository = repository
        else:
            self.repository = NoteRepository(engine=engine)
        self.graph_builder = GraphBuilder(self.repository)
        self.backlink_resolver = BacklinkResolver(self.repository)

    def _get_owned(self, note_id: int, tenant: Tenant) -> Note:
        note = self.repository.get_by_id(note_id)
        if note is None:
            raise NoteNotFoundError(note_id)
        return assert_owned(note, tenant)

    # =========================================================================
    # Note CRUD
    # =========================================================================

    @traced("list_notes")
    def list_notes(self, tenant: Tenant, folder_id: Optional[int] = None) -> List[Note]:
        """List a tenant's notes, pinned first, then most recently updated."""
        return self.repository.list_sorted_for_tenant(require_tenant(tenant), folder_id)

    @traced("get_note")
    def get_note(self, note_id: int, tenant: Tenant) -> Note:
        """Retrieve a note by ID.

        Raises:
            NoteNotFoundError: If no note has this id.
            AccessDeniedError: If the note belongs to another tenant.
        """
        return self._get_owned(note_id, require_tenant(tenant))

    @traced("create_note")
    def create_note(
        self,
        tenant: Tenant,
        title: Optional[str] = "",
        content: Optional[str] = None,
        excerpt: Optional[str] = "",
        folder_id: Optional[int] = None,
        is_pinned: bool = False,
        tags: Optional[List[str]] = None,
    ) -> Note:
        """Create a new note in the tenant's space.

        Args:
            tenant: Owner of the new note.
            title: Note title (may be empty).
            content: Note body; may contain ``[[<id>|<label>]]`` references.
            excerpt: Short plain-text excerpt used by search.
            folder_id: Optional containing folder.
            is_pinned: Pin to the top of listings.
            tags: List of tag names.

        Returns:
            Created Note object with its assigned id.
        """
        tenant = require_tenant(tenant)
        note = Note(
            tenant_id=tenant.id,
            tenant_kind=tenant.kind,
            folder_id=folder_id,
            title=title,
            content=content,
            excerpt=excerpt,
            is_pinned=is_pinned,
            tags=tags or [],
        )
        created = self.repository.create(note)
        logger.info(f"Created note {created.id} for {tenant}")
        return created

    @traced("update_note")
    def update_note(self, note_id: int, tenant: Tenant, **fields: Any) -> Note:
        """Update an existing note.

        Only the given fields change; a field passed as None is left as is.
        Accepted fields: title, content, excerpt, is_pinned, folder_id, tags.

        Returns:
            Updated Note object.
        """
        unknown = set(fields) - set(_UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(
                f"Cannot update field(s): {', '.join(sorted(unknown))}",
                field=sorted(unknown)[0],
                code=ErrorCode.NOTE_VALIDATION_FAILED,
            )
        note = self._get_owned(note_id, require_tenant(tenant))

        for name, value in fields.items():
            if value is not None:
                setattr(note, name, value)

        note.updated_at = utc_now()
        return self.repository.update(note)

    @traced("delete_note")
    def delete_note(self, note_id: int, tenant: Tenant) -> None:
        """Delete a note.

        References to it from other notes are left in place and stop
        appearing in graphs and backlink lists.
        """
        self._get_owned(note_id, require_tenant(tenant))
        self.repository.delete(note_id)
        logger.info(f"Deleted note {note_id} for {tenant}")

    def count_notes(self, tenant: Tenant) -> int:
        """Count the tenant's notes."""
        return self.repository.count_for_tenant(require_tenant(tenant))

    @traced("search_notes")
    def search_notes(self, tenant: Tenant, query: str) -> List[Note]:
        """Find notes whose title or excerpt contains ``query``."""
        return self.repository.list_matching(require_tenant(tenant), query or "")

    # =========================================================================
    # Link graph
    # =========================================================================

    @traced("get_graph")
    def get_graph(self, tenant: Tenant) -> KnowledgeGraph:
        """Build the knowledge graph of the tenant's notes."""
        return self.graph_builder.build(require_tenant(tenant))

    @traced("get_backlinks")
    def get_backlinks(self, note_id: int, tenant: Tenant) -> List[Note]:
        """Get the tenant's notes that reference ``note_id``.

        Raises:
            NoteNotFoundError: If ``note_id`` is not one of the tenant's
                notes (missing and foreign ids look the same).
        """
        tenant = require_tenant(tenant)
        if self.repository.get_for_tenant(note_id, tenant) is None:
            raise NoteNotFoundError(note_id)
        return self.backlink_resolver.resolve(note_id, tenant)
