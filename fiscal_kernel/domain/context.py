"""Request context passed to every public service operation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class Role(str, Enum):
    """Organization membership roles."""

    ADMIN = "ADMIN"
    ACCOUNTANT = "ACCOUNTANT"
    EMPLOYEE = "EMPLOYEE"


@dataclass(frozen=True)
class RequestContext:
    """
    Who is acting, in which organization.

    Contract:
        Authentication happened upstream; this is the resolved identity.
        ``organization_id`` is the sole tenant boundary for every read and
        write.
    """

    organization_id: UUID
    actor_id: UUID
    role: str

    def log_fields(self) -> dict[str, str]:
        return {
            "organization_id": str(self.organization_id),
            "actor_id": str(self.actor_id),
        }
