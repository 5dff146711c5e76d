"""SQLAlchemy database models for the Notegraph MCP server."""
from typing import Optional

from sqlalchemy import (JSON, BigInteger, Boolean, Column, DateTime, Index,
                        Integer, String, Text, create_engine, event)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from notegraph_mcp.config import config
from notegraph_mcp.models.schema import TenantKind, utc_now

# Create base class for SQLAlchemy models
Base = declarative_base()


class DBNote(Base):
    """Database model for a note."""
    __tablename__ = "notes"
    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(BigInteger, nullable=False)
    tenant_kind = Column(String(20), default=TenantKind.PERSONAL.value, nullable=False)
    folder_id = Column(Integer, nullable=True, index=True)
    title = Column(String(255), nullable=False, default="")
    content = Column(Text, nullable=True)
    excerpt = Column(Text, nullable=False, default="")
    is_pinned = Column(Boolean, nullable=False, default=False)
    tags = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, nullable=False, index=True)

    # Every listing query filters on the tenant pair first
    __table_args__ = (
        Index("ix_notes_tenant", "tenant_id", "tenant_kind"),
    )

    def __repr__(self) -> str:
        """Return string representation of note."""
        return (
            f"<Note(id={self.id}, tenant={self.tenant_kind}:{self.tenant_id}, "
            f"title='{self.title}')>"
        )


def init_db(in_memory: Optional[bool] = None) -> Engine:
    """Initialize the database and return its engine.

    File databases get SQLite's crash-resilience settings:
    - WAL (Write-Ahead Logging) mode so readers never block the writer
    - NORMAL synchronous mode (good balance of safety vs speed)
    - QueuePool for connection reuse with size limits
    - Pool pre-ping to detect stale connections

    In-memory databases use a single shared connection (StaticPool) so that
    every thread sees the same data.

    Args:
        in_memory: Override ``config.in_memory_db``.
    """
    if in_memory is None:
        in_memory = config.in_memory_db

    if in_memory:
        engine = create_engine(
            "sqlite:///:memory:",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_engine(
            config.get_db_url(),
            poolclass=QueuePool,
            pool_size=5,           # Base pool size (concurrent reads)
            max_overflow=10,       # Allow up to 15 total connections under load
            pool_timeout=30,       # Wait up to 30s for a connection
            pool_recycle=3600,     # Recycle connections after 1 hour
            pool_pre_ping=True,    # Validate connections before use
        )

        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.execute("PRAGMA cache_size=-64000")  # 64MB cache
            cursor.close()

    Base.metadata.create_all(engine)
    return engine


def get_session_factory(engine: Optional[Engine] = None):
    """Get a session factory for the database."""
    if engine is None:
        engine = init_db()
    # Notes are converted to domain models after commit
    return sessionmaker(bind=engine, expire_on_commit=False)
