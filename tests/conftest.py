"""Common test fixtures for the Notegraph MCP server."""

import datetime
from datetime import timezone

import pytest

from notegraph_mcp.config import config
from notegraph_mcp.models.db_models import init_db
from notegraph_mcp.models.schema import Note, Tenant, TenantKind
from notegraph_mcp.observability import metrics
from notegraph_mcp.services.note_service import NoteService
from notegraph_mcp.storage.note_repository import NoteRepository

BASE_TIME = datetime.datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _reset_metrics():
    """Keep the global metrics collector isolated between tests."""
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def test_config(tmp_path, monkeypatch):
    """Point the global config at a temporary database (auto-restored)."""
    monkeypatch.setattr(config, "base_dir", tmp_path)
    monkeypatch.setattr(config, "database_path", tmp_path / "db" / "test_notebook.db")
    monkeypatch.setattr(config, "in_memory_db", False)
    yield config


@pytest.fixture
def engine():
    """Shared in-memory database engine with the schema created."""
    engine = init_db(in_memory=True)
    yield engine
    engine.dispose()


@pytest.fixture
def file_engine(test_config):
    """File-backed database engine (WAL mode) for multi-threaded tests."""
    engine = init_db(in_memory=False)
    yield engine
    engine.dispose()


@pytest.fixture
def note_repository(engine):
    """Create a test note repository."""
    return NoteRepository(engine=engine)


@pytest.fixture
def note_service(note_repository):
    """Create a test NoteService."""
    return NoteService(repository=note_repository)


@pytest.fixture
def alice():
    return Tenant(id=1, kind=TenantKind.PERSONAL)


@pytest.fixture
def bob():
    return Tenant(id=2, kind=TenantKind.PERSONAL)


@pytest.fixture
def acme():
    """Organization whose id collides with alice's user id."""
    return Tenant(id=1, kind=TenantKind.ORGANIZATION)


@pytest.fixture
def add_note(note_repository):
    """Factory that stores a note for a tenant.

    ``minutes`` offsets updated_at from a fixed base time so recency
    ordering is deterministic.
    """

    def _add(tenant, content=None, title="Note", minutes=0, **fields):
        stamp = BASE_TIME + datetime.timedelta(minutes=minutes)
        note = Note(
            tenant_id=tenant.id,
            tenant_kind=tenant.kind,
            title=title,
            content=content,
            created_at=stamp,
            updated_at=stamp,
            **fields,
        )
        return note_repository.create(note)

    return _add


@pytest.fixture
def set_content(note_repository):
    """Replace a stored note's body (used to close reference cycles)."""

    def _set(note, content):
        note.content = content
        return note_repository.update(note)

    return _set
