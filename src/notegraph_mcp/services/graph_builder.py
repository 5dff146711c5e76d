"""Knowledge-graph construction from a tenant's notes."""
import logging
from typing import Iterable, List, Set, Tuple

from notegraph_mcp.models.schema import (
    GraphEdge,
    GraphNode,
    KnowledgeGraph,
    Note,
    Tenant,
)
from notegraph_mcp.services.link_extractor import extract_references
from notegraph_mcp.storage.note_repository import NoteRepository
from notegraph_mcp.tenant.context import require_tenant

logger = logging.getLogger(__name__)


def build_graph(notes: Iterable[Note]) -> KnowledgeGraph:
    """Build the graph for a snapshot of one tenant's notes.

    Nodes follow the input order. An edge is emitted for each reference
    whose target is among ``notes`` and is not the source itself; repeated
    references from the same source to the same target (with any label)
    collapse into the first one. Cycles are kept.

    A note whose body cannot be scanned contributes its node and whatever
    edges were found before the failure.

    Args:
        notes: All notes of a single tenant.

    Returns:
        The nodes and edges of the graph.
    """
    notes = list(notes)
    valid_ids = {note.id for note in notes}
    nodes = [GraphNode.from_note(note) for note in notes]

    edges: List[GraphEdge] = []
    seen: Set[Tuple[int, int]] = set()
    for note in notes:
        try:
            for ref in extract_references(note.content):
                if ref.target_id not in valid_ids or ref.target_id == note.id:
                    continue
                key = (note.id, ref.target_id)
                if key in seen:
                    continue
                seen.add(key)
                edges.append(GraphEdge(source=note.id, target=ref.target_id))
        except (TypeError, ValueError) as e:
            logger.warning(f"Could not scan note {note.id} for references: {e}")

    return KnowledgeGraph(nodes=nodes, edges=edges)


class GraphBuilder:
    """Builds a tenant's knowledge graph from the note store."""

    def __init__(self, repository: NoteRepository):
        self.repository = repository

    def build(self, tenant: Tenant) -> KnowledgeGraph:
        """Load every note of ``tenant`` in one query and build its graph.

        Storage failures propagate; no partial graph is returned.
        """
        tenant = require_tenant(tenant)
        notes = self.repository.list_for_tenant(tenant)
        graph = build_graph(notes)
        logger.debug(
            f"Built graph for {tenant}: {len(graph.nodes)} nodes, {len(graph.edges)} edges"
        )
        return graph
