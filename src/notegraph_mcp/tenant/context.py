"""Per-operation tenant identity.

A ``TenantContext`` is an explicit handle created for one inbound operation
and passed to whatever needs the tenant. There is no module-level or
thread-local "current tenant": two operations only share an identity if
they share the handle, so concurrent operations (and later operations
reusing the same worker thread) cannot observe each other's tenant.
"""
import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Union

from notegraph_mcp.exceptions import (
    ErrorCode,
    MissingTenantContextError,
    ValidationError,
)
from notegraph_mcp.models.schema import Tenant, TenantKind

logger = logging.getLogger(__name__)

TenantKindLike = Union[TenantKind, str]


def _coerce_kind(tenant_kind: TenantKindLike) -> TenantKind:
    try:
        return TenantKind(
            tenant_kind.upper() if isinstance(tenant_kind, str) else tenant_kind
        )
    except ValueError as e:
        raise ValidationError(
            f"Invalid tenant kind: {tenant_kind}. "
            f"Valid kinds are: {', '.join(k.value for k in TenantKind)}",
            field="tenant_kind",
            value=tenant_kind,
            code=ErrorCode.TENANT_KIND_INVALID,
        ) from e


class TenantContext:
    """Holds the tenant identity for a single operation."""

    def __init__(self) -> None:
        self._tenant: Optional[Tenant] = None

    def set_context(self, tenant_id: int, tenant_kind: TenantKindLike) -> Tenant:
        """Establish the active identity for this operation.

        Returns:
            The resolved Tenant.
        """
        self._tenant = Tenant(id=int(tenant_id), kind=_coerce_kind(tenant_kind))
        return self._tenant

    def current_tenant(self) -> Tenant:
        """Return the active identity.

        Raises:
            MissingTenantContextError: If no identity has been set.
        """
        if self._tenant is None:
            raise MissingTenantContextError()
        return self._tenant

    def clear_context(self) -> None:
        """Remove the identity. Safe to call when nothing is set."""
        self._tenant = None

    @property
    def is_set(self) -> bool:
        return self._tenant is not None

    def __repr__(self) -> str:
        return f"<TenantContext({self._tenant or 'unset'})>"


@contextmanager
def tenant_scope(
    tenant_id: int, tenant_kind: TenantKindLike
) -> Iterator[TenantContext]:
    """Run one operation under a fresh tenant identity.

    The identity is cleared when the block exits, including on exceptions.

    Example:
        with tenant_scope(7, TenantKind.PERSONAL) as ctx:
            graph = service.get_graph(ctx.current_tenant())
    """
    ctx = TenantContext()
    ctx.set_context(tenant_id, tenant_kind)
    try:
        yield ctx
    finally:
        ctx.clear_context()


def resolve_tenant(
    user_id: Optional[int],
    tenant_id: Optional[int] = None,
    tenant_kind: Optional[TenantKindLike] = None,
) -> Tenant:
    """Work out which tenant an authenticated caller is acting for.

    An explicit (tenant_id, tenant_kind) pair switches to that space, which
    is how organization notebooks are addressed. Otherwise the caller works
    in their personal space, whose id is their user id. Supplying only one
    half of the pair is ignored.

    Raises:
        MissingTenantContextError: If there is neither a user nor an
            explicit tenant.
        ValidationError: If the explicit kind is not a known tenant kind.
    """
    if tenant_id is not None and tenant_kind is not None:
        return Tenant(id=int(tenant_id), kind=_coerce_kind(tenant_kind))
    if tenant_id is not None or tenant_kind is not None:
        logger.debug("Ignoring partial tenant override (id=%s, kind=%s)", tenant_id, tenant_kind)
    if user_id is None:
        raise MissingTenantContextError("No authenticated user to derive a tenant from")
    return Tenant(id=int(user_id), kind=TenantKind.PERSONAL)


def require_tenant(tenant: Optional[Tenant]) -> Tenant:
    """Return ``tenant``, failing if the caller passed none."""
    if tenant is None:
        raise MissingTenantContextError()
    return tenant
