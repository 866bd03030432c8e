"""
Module: fiscal_kernel.models.audit_log
Responsibility: ORM persistence for the audit trail written by the default
    audit collaborator (AuditLogService).
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Rows are append-only; nothing in the kernel updates or deletes them.
    - action is one of AuditAction.

Failure modes:
    - Write failures are contained by AuditLogService's savepoint and never
      reach the mutation that triggered them.

Audit relevance:
    One row per successful journal, account, and filing mutation: who, what,
    which entity, and a human-readable summary.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import JSON, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from fiscal_kernel.db.base import Base, UUIDString


class AuditAction(str, Enum):
    """Auditable action codes."""

    # Journal lifecycle
    JOURNAL_CREATE = "journal.create"
    JOURNAL_UPDATE = "journal.update"
    JOURNAL_POST = "journal.post"
    JOURNAL_UNPOST = "journal.unpost"
    JOURNAL_DELETE = "journal.delete"

    # Chart of accounts
    ACCOUNT_CREATE = "account.create"
    ACCOUNT_UPDATE = "account.update"
    ACCOUNT_ACTIVATE = "account.activate"
    ACCOUNT_DEACTIVATE = "account.deactivate"
    ACCOUNT_DELETE = "account.delete"
    ACCOUNT_SEED = "account.seed"

    # Tax filings
    TAX_CALCULATE = "tax.calculate"
    TAX_STATUS_CHANGE = "tax.status_change"
    TAX_DELETE = "tax.delete"


class AuditLogRecord(Base):
    """
    One audit trail row.

    Contract:
        Written once, inside a savepoint, after the audited mutation has been
        flushed.  Never updated.
    """

    __tablename__ = "audit_logs"

    __table_args__ = (
        Index("idx_audit_org_time", "organization_id", "occurred_at"),
        Index("idx_audit_entity", "entity_type", "entity_id"),
    )

    organization_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    action: Mapped[str] = mapped_column(String(50), nullable=False)

    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)

    entity_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    summary: Mapped[str] = mapped_column(String(1000), nullable=False)

    context: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<AuditLogRecord {self.action} {self.entity_type}:{self.entity_id}>"
