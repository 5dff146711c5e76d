"""Backlink lookup: which notes reference a given note."""
import logging
from typing import Iterable, List

from notegraph_mcp.models.schema import Note, Tenant
from notegraph_mcp.services.link_extractor import candidate_prefixes, references_target
from notegraph_mcp.storage.note_repository import NoteRepository
from notegraph_mcp.tenant.context import require_tenant

logger = logging.getLogger(__name__)


def _recency_key(note: Note):
    return (note.updated_at, note.id or 0)


def find_backlinks(note_id: int, notes: Iterable[Note]) -> List[Note]:
    """Select the notes that reference ``note_id``.

    The note itself is never included, even if it references itself.

    Args:
        note_id: The referenced note.
        notes: Candidate notes, all from the same tenant.

    Returns:
        Matching notes, most recently updated first.
    """
    matches = [
        note
        for note in notes
        if note.id != note_id and references_target(note.content, note_id)
    ]
    return sorted(matches, key=_recency_key, reverse=True)


class BacklinkResolver:
    """Finds backlinks within a tenant using the note store."""

    def __init__(self, repository: NoteRepository):
        self.repository = repository

    def resolve(self, note_id: int, tenant: Tenant) -> List[Note]:
        """Return the tenant's notes that reference ``note_id``.

        The store narrows candidates to bodies containing the literal
        ``[[<id>|`` prefix or a zero-padded id (``[[0``); each candidate is
        then confirmed by running the extractor, so a bare numeral or a
        broken reference never matches.
        """
        tenant = require_tenant(tenant)
        candidates = self.repository.list_containing(
            tenant, *candidate_prefixes(note_id), exclude_id=note_id
        )
        backlinks = find_backlinks(note_id, candidates)
        if len(backlinks) != len(candidates):
            logger.debug(
                f"Backlinks for note {note_id}: {len(candidates) - len(backlinks)} "
                "prefix matches rejected by the extractor"
            )
        return backlinks
