"""Custom exceptions for the Notegraph MCP server.

Provides a structured exception hierarchy with error codes and
machine-readable error information for better error handling.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Error codes for machine-readable error identification."""

    # Note errors (1xxx)
    NOTE_NOT_FOUND = 1001
    NOTE_VALIDATION_FAILED = 1002

    # Link errors (2xxx)
    LINK_MALFORMED = 2001

    # Tenant errors (3xxx)
    ACCESS_DENIED = 3001
    TENANT_CONTEXT_MISSING = 3002
    TENANT_KIND_INVALID = 3003

    # Storage errors (4xxx)
    STORAGE_READ_FAILED = 4001
    STORAGE_WRITE_FAILED = 4002
    STORAGE_DELETE_FAILED = 4003

    # Validation errors (7xxx)
    VALIDATION_FAILED = 7001


class NotebookError(Exception):
    """Base exception for all notebook errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for serialization."""
        return {
            "error": self.__class__.__name__,
            "code": self.code.value,
            "code_name": self.code.name,
            "message": self.message,
            "details": self.details
        }

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code.name}] {self.message} ({detail_str})"
        return f"[{self.code.name}] {self.message}"


class NoteNotFoundError(NotebookError):
    """Raised when a note does not exist or is not visible to the tenant.

    The two cases are deliberately indistinguishable to the caller.
    """

    def __init__(self, note_id: Any, message: Optional[str] = None):
        super().__init__(
            message or f"Note with ID '{note_id}' not found",
            code=ErrorCode.NOTE_NOT_FOUND,
            details={"note_id": note_id}
        )
        self.note_id = note_id


class AccessDeniedError(NotebookError):
    """Raised when an entity fetched by bare id belongs to another tenant."""

    def __init__(self, entity_id: Any = None, message: str = "Access denied"):
        details = {}
        if entity_id is not None:
            details["entity_id"] = entity_id
        super().__init__(message, code=ErrorCode.ACCESS_DENIED, details=details)
        self.entity_id = entity_id


class MissingTenantContextError(NotebookError):
    """Raised when an operation runs without an established tenant identity.

    Always an integration defect in the calling layer; the operation fails.
    """

    def __init__(self, message: str = "No tenant context established for this operation"):
        super().__init__(message, code=ErrorCode.TENANT_CONTEXT_MISSING)


class MalformedReferenceError(NotebookError):
    """Raised by the link parser for a reference token it cannot use.

    Never surfaced to callers: the extractor skips the offending occurrence.
    """

    def __init__(self, token: str, reason: str):
        super().__init__(
            f"Malformed note reference '{token[:40]}': {reason}",
            code=ErrorCode.LINK_MALFORMED,
            details={"token": token[:40]}
        )
        self.token = token
        self.reason = reason


class StorageError(NotebookError):
    """Raised for storage/persistence errors."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        code: ErrorCode = ErrorCode.STORAGE_READ_FAILED,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if original_error:
            details["original_error"] = str(original_error)[:200]

        super().__init__(message, code=code, details=details)
        self.operation = operation
        self.original_error = original_error


class ValidationError(NotebookError):
    """Raised for general validation errors."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED
    ):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)[:100]

        super().__init__(message, code=code, details=details)
        self.field = field
        self.value = value
