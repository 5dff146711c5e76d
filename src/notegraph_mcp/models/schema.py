"""Data models for the Notegraph MCP server."""

import datetime
from dataclasses import dataclass
from datetime import timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from notegraph_mcp.utils import dedupe_tags


def utc_now() -> datetime.datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Current time with UTC timezone info attached.
    """
    return datetime.datetime.now(timezone.utc)


def ensure_timezone_aware(dt_value: Optional[datetime.datetime]) -> datetime.datetime:
    """Ensure a datetime is timezone-aware, treating naive datetimes as UTC.

    SQLite hands back naive datetimes even for timezone-aware columns, so
    every value read from the database passes through here.

    Args:
        dt_value: A datetime that may or may not have timezone info.

    Returns:
        The same datetime with UTC timezone if it was naive, otherwise unchanged.
    """
    if dt_value is None:
        return utc_now()
    if dt_value.tzinfo is None:
        return dt_value.replace(tzinfo=timezone.utc)
    return dt_value


class TenantKind(str, Enum):
    """Kinds of isolation boundary a note can belong to."""

    PERSONAL = "PERSONAL"  # A single user's space; tenant id == user id
    ORGANIZATION = "ORGANIZATION"  # An organization's shared space


class Tenant(BaseModel):
    """A resolved tenant identity."""

    id: int = Field(..., description="Tenant id (user id for personal spaces)")
    kind: TenantKind = Field(..., description="Tenant kind")

    model_config = {"frozen": True}

    def owns(self, tenant_id: Any, tenant_kind: Any) -> bool:
        """Check whether the given (id, kind) pair denotes this tenant."""
        if tenant_id != self.id:
            return False
        try:
            return TenantKind(tenant_kind) == self.kind
        except ValueError:
            return False

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"


class Note(BaseModel):
    """A notebook note.

    The body (``content``) is the only source of link information; links
    are never stored separately.
    """

    id: Optional[int] = Field(default=None, description="Store-assigned note id")
    tenant_id: int = Field(..., description="Owning tenant id")
    tenant_kind: TenantKind = Field(..., description="Owning tenant kind")
    folder_id: Optional[int] = Field(default=None, description="Containing folder")
    title: str = Field(default="", description="Title of the note")
    content: Optional[str] = Field(default=None, description="Body text")
    excerpt: str = Field(default="", description="Short plain-text excerpt")
    is_pinned: bool = Field(default=False, description="Pinned to the top of listings")
    tags: List[str] = Field(default_factory=list, description="Tag names")
    created_at: datetime.datetime = Field(
        default_factory=utc_now, description="When the note was created (UTC)"
    )
    updated_at: datetime.datetime = Field(
        default_factory=utc_now, description="When the note was last updated (UTC)"
    )

    model_config = {"validate_assignment": True, "extra": "forbid"}

    @field_validator("tags", mode="before")
    @classmethod
    def validate_tags(cls, v: Optional[List[str]]) -> List[str]:
        """Treat a missing tag list as empty and drop blank/repeated tags."""
        if v is None:
            return []
        return dedupe_tags(str(t).strip() for t in v)

    @field_validator("title", "excerpt", mode="before")
    @classmethod
    def validate_text(cls, v: Optional[str]) -> str:
        """Store absent titles and excerpts as empty strings."""
        return "" if v is None else v

    def to_summary(self) -> Dict[str, Any]:
        """Convert the note to its JSON-ready summary form."""
        return {
            "id": self.id,
            "folderId": self.folder_id,
            "title": self.title,
            "content": self.content,
            "excerpt": self.excerpt,
            "isPinned": self.is_pinned,
            "tags": list(self.tags),
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class LinkReference:
    """A reference found in a note body: ``[[<target_id>|<label>]]``.

    Attributes:
        target_id: Id of the referenced note (not validated).
        label: Display text after the ``|``.
    """

    target_id: int
    label: str


class GraphNode(BaseModel):
    """A note as it appears in the knowledge graph."""

    id: int
    title: str
    folder_id: Optional[int] = Field(default=None, alias="folderId")
    tags: List[str] = Field(default_factory=list)
    updated_at: datetime.datetime = Field(..., alias="updatedAt")

    model_config = {"frozen": True, "populate_by_name": True}

    @classmethod
    def from_note(cls, note: Note) -> "GraphNode":
        return cls(
            id=note.id,
            title=note.title,
            folder_id=note.folder_id,
            tags=list(note.tags or []),
            updated_at=note.updated_at,
        )


class GraphEdge(BaseModel):
    """A directed, deduplicated reference from one note to another."""

    source: int
    target: int

    model_config = {"frozen": True}


class KnowledgeGraph(BaseModel):
    """A point-in-time snapshot of a tenant's note graph."""

    nodes: List[GraphNode] = Field(default_factory=list)
    edges: List[GraphEdge] = Field(default_factory=list)

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        """Convert to the wire format ``{"nodes": [...], "edges": [...]}``."""
        return {
            "nodes": [n.model_dump(mode="json", by_alias=True) for n in self.nodes],
            "edges": [e.model_dump(mode="json") for e in self.edges],
        }
