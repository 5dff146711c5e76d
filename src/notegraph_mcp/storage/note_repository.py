"""Repository for note storage and retrieval.

Every listing method takes the tenant and filters on it inside the SQL
query; nothing is loaded for one tenant and filtered afterwards. The only
unscoped read is ``get_by_id``, whose callers must run the tenant guard.
"""

import logging
from typing import Any, List, Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from notegraph_mcp.exceptions import ErrorCode, NoteNotFoundError, StorageError
from notegraph_mcp.models.db_models import DBNote, get_session_factory, init_db
from notegraph_mcp.models.schema import (
    Note,
    Tenant,
    TenantKind,
    ensure_timezone_aware,
)
from notegraph_mcp.utils import escape_like_pattern

logger = logging.getLogger(__name__)


def _tenant_clause(tenant: Tenant):
    return and_(
        DBNote.tenant_id == tenant.id,
        DBNote.tenant_kind == tenant.kind.value,
    )


class NoteRepository:
    """Repository for note storage and retrieval.

    Notes live in a single SQL table keyed by an autoincrement id. Links
    are not stored: they are re-read from note bodies whenever a graph or
    backlink list is requested.
    """

    def __init__(self, engine: Optional[Engine] = None):
        """Initialize the repository.

        Args:
            engine: Pre-configured SQLAlchemy engine. When None, one is
                    created from the global config via init_db().
        """
        self.engine = engine if engine is not None else init_db()
        self.session_factory = get_session_factory(self.engine)
        logger.info(f"NoteRepository initialized: db_url={self.engine.url}")

    @staticmethod
    def _db_note_to_model(db_note: DBNote) -> Note:
        """Convert a SQLAlchemy DBNote to a domain Note."""
        return Note(
            id=db_note.id,
            tenant_id=db_note.tenant_id,
            tenant_kind=TenantKind(db_note.tenant_kind),
            folder_id=db_note.folder_id,
            title=db_note.title,
            content=db_note.content,
            excerpt=db_note.excerpt,
            is_pinned=bool(db_note.is_pinned),
            tags=list(db_note.tags or []),
            created_at=ensure_timezone_aware(db_note.created_at),
            updated_at=ensure_timezone_aware(db_note.updated_at),
        )

    @staticmethod
    def _apply_model(db_note: DBNote, note: Note) -> None:
        db_note.tenant_id = note.tenant_id
        db_note.tenant_kind = note.tenant_kind.value
        db_note.folder_id = note.folder_id
        db_note.title = note.title
        db_note.content = note.content
        db_note.excerpt = note.excerpt
        db_note.is_pinned = note.is_pinned
        db_note.tags = list(note.tags)
        db_note.created_at = note.created_at
        db_note.updated_at = note.updated_at

    def _select(self, query: Any, operation: str) -> List[Note]:
        try:
            with self.session_factory() as session:
                db_notes = session.scalars(query).all()
                return [self._db_note_to_model(n) for n in db_notes]
        except SQLAlchemyError as e:
            raise StorageError(
                "Failed to read notes",
                operation=operation,
                code=ErrorCode.STORAGE_READ_FAILED,
                original_error=e,
            ) from e

    # =========================================================================
    # Reads
    # =========================================================================

    def get_by_id(self, note_id: int) -> Optional[Note]:
        """Get a note by ID regardless of tenant.

        The caller is responsible for the ownership check.

        Returns:
            Note object if found, None otherwise
        """
        try:
            with self.session_factory() as session:
                db_note = session.get(DBNote, note_id)
                return self._db_note_to_model(db_note) if db_note else None
        except SQLAlchemyError as e:
            raise StorageError(
                f"Failed to read note {note_id}",
                operation="get_by_id",
                original_error=e,
            ) from e

    def get_for_tenant(self, note_id: int, tenant: Tenant) -> Optional[Note]:
        """Get a note by ID only if it belongs to ``tenant``."""
        query = select(DBNote).where(DBNote.id == note_id, _tenant_clause(tenant))
        notes = self._select(query, "get_for_tenant")
        return notes[0] if notes else None

    def list_for_tenant(
        self, tenant: Tenant, folder_id: Optional[int] = None
    ) -> List[Note]:
        """Get all of a tenant's notes in a single query, ordered by id.

        Args:
            tenant: The owning tenant.
            folder_id: Optional folder filter.
        """
        query = select(DBNote).where(_tenant_clause(tenant))
        if folder_id is not None:
            query = query.where(DBNote.folder_id == folder_id)
        return self._select(query.order_by(DBNote.id.asc()), "list_for_tenant")

    def list_sorted_for_tenant(
        self, tenant: Tenant, folder_id: Optional[int] = None
    ) -> List[Note]:
        """Get a tenant's notes pinned first, then most recently updated."""
        query = select(DBNote).where(_tenant_clause(tenant))
        if folder_id is not None:
            query = query.where(DBNote.folder_id == folder_id)
        query = query.order_by(
            DBNote.is_pinned.desc(), DBNote.updated_at.desc(), DBNote.id.desc()
        )
        return self._select(query, "list_sorted_for_tenant")

    def list_matching(self, tenant: Tenant, text_filter: str) -> List[Note]:
        """Find a tenant's notes whose title or excerpt contains ``text_filter``.

        Matching is a case-insensitive substring test; LIKE wildcards in the
        filter are treated literally.
        """
        pattern = f"%{escape_like_pattern(text_filter.lower())}%"
        query = (
            select(DBNote)
            .where(_tenant_clause(tenant))
            .where(
                or_(
                    func.lower(DBNote.title).like(pattern, escape="\\"),
                    func.lower(DBNote.excerpt).like(pattern, escape="\\"),
                )
            )
            .order_by(DBNote.updated_at.desc(), DBNote.id.desc())
        )
        return self._select(query, "list_matching")

    def list_containing(
        self, tenant: Tenant, *fragments: str, exclude_id: Optional[int] = None
    ) -> List[Note]:
        """Find a tenant's notes whose body contains any of ``fragments`` verbatim.

        Results are ordered most recently updated first.

        Args:
            tenant: The owning tenant.
            *fragments: Literal texts to look for (case-sensitive).
            exclude_id: Optional note id to leave out of the result.
        """
        if not fragments:
            return []
        # LIKE is case-insensitive for ASCII in SQLite; instr() is exact.
        query = (
            select(DBNote)
            .where(_tenant_clause(tenant))
            .where(DBNote.content.is_not(None))
            .where(or_(*(func.instr(DBNote.content, f) > 0 for f in fragments)))
        )
        if exclude_id is not None:
            query = query.where(DBNote.id != exclude_id)
        query = query.order_by(DBNote.updated_at.desc(), DBNote.id.desc())
        return self._select(query, "list_containing")

    def count_for_tenant(self, tenant: Tenant) -> int:
        """Count a tenant's notes."""
        try:
            with self.session_factory() as session:
                result = session.execute(
                    select(func.count(DBNote.id)).where(_tenant_clause(tenant))
                )
                return result.scalar() or 0
        except SQLAlchemyError as e:
            raise StorageError(
                "Failed to count notes",
                operation="count_for_tenant",
                original_error=e,
            ) from e

    # =========================================================================
    # Writes
    # =========================================================================

    def create(self, note: Note) -> Note:
        """Insert a new note and return it with its assigned id."""
        db_note = DBNote()
        self._apply_model(db_note, note)
        if note.id is not None:
            db_note.id = note.id
        try:
            with self.session_factory() as session:
                session.add(db_note)
                session.commit()
                return self._db_note_to_model(db_note)
        except SQLAlchemyError as e:
            raise StorageError(
                "Failed to create note",
                operation="create",
                code=ErrorCode.STORAGE_WRITE_FAILED,
                original_error=e,
            ) from e

    def update(self, note: Note) -> Note:
        """Persist changes to an existing note.

        Raises:
            NoteNotFoundError: If the note no longer exists.
        """
        try:
            with self.session_factory() as session:
                db_note = session.get(DBNote, note.id)
                if db_note is None:
                    raise NoteNotFoundError(note.id)
                self._apply_model(db_note, note)
                session.commit()
                return self._db_note_to_model(db_note)
        except SQLAlchemyError as e:
            logger.error(f"Failed to update note {note.id} in database: {e}")
            raise StorageError(
                f"Failed to update note {note.id}",
                operation="update",
                code=ErrorCode.STORAGE_WRITE_FAILED,
                original_error=e,
            ) from e

    def delete(self, note_id: int) -> None:
        """Delete a note by ID.

        Other notes that reference it are left untouched; their references
        simply stop resolving.

        Raises:
            NoteNotFoundError: If the note doesn't exist.
        """
        try:
            with self.session_factory() as session:
                db_note = session.get(DBNote, note_id)
                if db_note is None:
                    raise NoteNotFoundError(note_id)
                session.delete(db_note)
                session.commit()
        except SQLAlchemyError as e:
            raise StorageError(
                f"Failed to delete note {note_id}",
                operation="delete",
                code=ErrorCode.STORAGE_DELETE_FAILED,
                original_error=e,
            ) from e

