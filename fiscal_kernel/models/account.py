"""
Module: fiscal_kernel.models.account
Responsibility: ORM persistence for the organization-scoped Chart of Accounts,
    the target of every journal line.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Account code is unique per organization (uq_account_org_code).
    - parent_id references an account of the same organization; the parent
      graph is acyclic (walked by AccountRegistry before every parent change,
      not enforceable as a constraint).
    - Depth is derived from the parent chain, never stored.

Failure modes:
    - IntegrityError on duplicate (organization_id, code).
    - IntegrityError on hard delete of an account that journal lines reference
      (AccountRegistry soft-deactivates such accounts instead).

Audit relevance:
    Account rows define the structure of the general ledger.  Deactivation
    keeps historical lines resolvable by code and name.
"""

from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fiscal_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from fiscal_kernel.models.journal import JournalLine


class AccountType(str, Enum):
    """Types of accounts in the chart of accounts."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"


class Account(TrackedBase):
    """
    Chart of Accounts entry -- a single node in an organization's ledger tree.

    Contract:
        (organization_id, code) is unique.  parent_id, when set, points at
        another account of the same organization.

    Guarantees:
        - code is a non-empty digit string.
        - account_type is one of ASSET, LIABILITY, EQUITY, REVENUE, EXPENSE.

    Non-goals:
        - This model does NOT check parent acyclicity or delete safety; that
          is AccountRegistry's job.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("organization_id", "code", name="uq_account_org_code"),
        Index("idx_account_org", "organization_id"),
        Index("idx_account_parent", "parent_id"),
        Index("idx_account_active", "organization_id", "is_active"),
    )

    # Owning organization (tenant boundary)
    organization_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    # Hierarchical digit code (e.g. 1, 11, 1101, 110101)
    code: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # Account type determines financial statement placement
    account_type: Mapped[AccountType] = mapped_column(
        String(20),
        nullable=False,
    )

    # Whether the account accepts new postings
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    # Parent account for the hierarchical chart
    parent_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=True,
    )

    parent: Mapped["Account | None"] = relationship(
        remote_side="Account.id",
        lazy="select",
    )

    journal_lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="account",
        lazy="dynamic",
    )

    def __repr__(self) -> str:
        return f"<Account {self.code}: {self.name}>"
