"""Tenant identity and isolation for the Notegraph MCP server."""

from notegraph_mcp.tenant.context import (
    TenantContext,
    require_tenant,
    resolve_tenant,
    tenant_scope,
)
from notegraph_mcp.tenant.guard import assert_owned

__all__ = [
    "TenantContext",
    "tenant_scope",
    "resolve_tenant",
    "require_tenant",
    "assert_owned",
]
