"""Ownership check for entities looked up by bare id."""
import logging
from typing import TypeVar

from notegraph_mcp.exceptions import AccessDeniedError
from notegraph_mcp.models.schema import Tenant

logger = logging.getLogger(__name__)

E = TypeVar("E")


def assert_owned(entity: E, tenant: Tenant) -> E:
    """Fail unless ``entity`` belongs to ``tenant``.

    Must run before any content-returning or mutating use of an entity
    whose lookup was not already tenant-filtered. ``entity`` only needs
    ``tenant_id`` and ``tenant_kind`` attributes, so both domain notes and
    raw database rows can be checked.

    Returns:
        The entity, for chaining.

    Raises:
        AccessDeniedError: If the entity belongs to a different tenant.
    """
    if not tenant.owns(getattr(entity, "tenant_id", None), getattr(entity, "tenant_kind", None)):
        entity_id = getattr(entity, "id", None)
        logger.warning("Cross-tenant access to entity %s rejected for %s", entity_id, tenant)
        raise AccessDeniedError(entity_id)
    return entity
