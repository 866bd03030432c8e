"""
fiscal_services.rbac_authority -- Runtime capability checks for public operations.

Responsibility:
    Decide whether the role in a RequestContext may exercise a capability
    (``ledger.post``, ``taxes.file``, ...).  ``RolePermissionChecker`` is the
    default implementation of the kernel's PermissionChecker protocol.

Architecture position:
    Services layer.  Injected into every kernel service and the tax module;
    the kernel itself never imports this module.

Invariants:
    - Deny by default: an unknown permission or an unknown role is refused.
    - Kernel remains actor-agnostic; this module does not resolve actor
      identity (authentication happened upstream and produced the role).
"""

from __future__ import annotations

from typing import Mapping

from fiscal_kernel.domain.context import RequestContext, Role

# permission -> roles granted it
DEFAULT_ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    # Chart of accounts
    "accounts.view": frozenset({Role.ADMIN.value, Role.ACCOUNTANT.value}),
    "accounts.create": frozenset({Role.ADMIN.value, Role.ACCOUNTANT.value}),
    "accounts.edit": frozenset({Role.ADMIN.value, Role.ACCOUNTANT.value}),
    "accounts.delete": frozenset({Role.ADMIN.value}),
    # Journal / ledger
    "ledger.view": frozenset({Role.ADMIN.value, Role.ACCOUNTANT.value}),
    "ledger.create": frozenset({Role.ADMIN.value, Role.ACCOUNTANT.value}),
    "ledger.edit": frozenset({Role.ADMIN.value, Role.ACCOUNTANT.value}),
    "ledger.post": frozenset({Role.ADMIN.value, Role.ACCOUNTANT.value}),
    "ledger.delete": frozenset({Role.ADMIN.value}),
    # Tax filings
    "taxes.view": frozenset({Role.ADMIN.value, Role.ACCOUNTANT.value}),
    "taxes.file": frozenset({Role.ADMIN.value, Role.ACCOUNTANT.value}),
}


def check_rbac(
    role_permissions: Mapping[str, frozenset[str]],
    role: str | None,
    required_permission: str,
) -> tuple[bool, str]:
    """Check whether ``role`` holds ``required_permission``.

    Returns:
        (allowed, reason). reason is empty when allowed, or a short message
        when denied.
    """
    if not role or not str(role).strip():
        return (False, "RBAC: no role in request context")

    granted = role_permissions.get(required_permission)
    if granted is None:
        return (False, f"RBAC: unknown permission '{required_permission}'")

    role_name = str(getattr(role, "value", role)).upper()
    if role_name not in granted:
        return (
            False,
            f"RBAC: permission '{required_permission}' not granted to role {role_name}",
        )
    return (True, "")


class RolePermissionChecker:
    """PermissionChecker backed by a static permission -> roles table."""

    def __init__(self, role_permissions: Mapping[str, frozenset[str]] | None = None):
        self._role_permissions = dict(
            role_permissions if role_permissions is not None else DEFAULT_ROLE_PERMISSIONS
        )

    def check(self, context: RequestContext, permission: str) -> tuple[bool, str]:
        return check_rbac(self._role_permissions, context.role, permission)

    def permissions_for(self, role: str) -> frozenset[str]:
        """Every permission granted to ``role``."""
        role_name = str(getattr(role, "value", role)).upper()
        return frozenset(
            perm for perm, roles in self._role_permissions.items() if role_name in roles
        )
