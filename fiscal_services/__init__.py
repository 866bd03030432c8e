"""
fiscal_services -- Runtime collaborators wired around the kernel.

Responsibility:
    Default implementations of the kernel's injected seams: the capability
    check (``RolePermissionChecker``) and the ledger read-view cache
    (``LedgerViewCache``).

Architecture position:
    Services -- depends on fiscal_kernel.

    Dependency direction:
        fiscal_services/ -> fiscal_kernel/  (allowed)
        fiscal_kernel/   -> fiscal_services/ (FORBIDDEN)
"""

from fiscal_services.rbac_authority import (
    DEFAULT_ROLE_PERMISSIONS,
    RolePermissionChecker,
    check_rbac,
)
from fiscal_services.read_cache import LedgerViewCache

__all__ = [
    "DEFAULT_ROLE_PERMISSIONS",
    "LedgerViewCache",
    "RolePermissionChecker",
    "check_rbac",
]
