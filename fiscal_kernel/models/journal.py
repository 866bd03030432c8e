"""
Module: fiscal_kernel.models.journal
Responsibility: ORM persistence for journal entries and journal lines, the
    single source of ledger truth.
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - Balance: checked by JournalStore before any row is written; re-checkable
      on the read side through is_balanced.
    - Ordering: entry_number is allocated per organization from the
      sequence_counters table and never reused; line_seq orders lines
      within an entry.
    - Lines live and die with their entry (cascade delete-orphan).

Failure modes:
    - IntegrityError on duplicate (organization_id, entry_number).
    - IntegrityError on a line referencing an unknown account.

Audit relevance:
    JournalEntry and JournalLine rows are the authoritative financial record.
    Every ledger and trial balance query derives from these rows.  Posted
    entries are frozen by JournalStore.
"""

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    Boolean,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fiscal_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from fiscal_kernel.models.account import Account


class JournalEntry(TrackedBase):
    """
    A dated, balanced set of journal lines.

    Contract:
        Created unposted.  While unposted it may be edited (lines replaced
        wholesale) or deleted; once posted both are refused by JournalStore.

    Guarantees:
        - entry_number is unique within the organization and increases with
          creation order.
        - lines are loaded eagerly in line_seq order.

    Non-goals:
        - Posting is a boolean flag, not a status machine.
    """

    __tablename__ = "journal_entries"

    __table_args__ = (
        UniqueConstraint(
            "organization_id", "entry_number", name="uq_journal_org_number"
        ),
        Index("idx_journal_org_date", "organization_id", "entry_date"),
        Index("idx_journal_posted", "organization_id", "is_posted"),
    )

    organization_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    # Per-organization creation order ("insertion order" within a date)
    entry_number: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
    )

    entry_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    description: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )

    reference_number: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    is_posted: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="entry",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="JournalLine.line_seq",
    )

    def __repr__(self) -> str:
        return (
            f"<JournalEntry #{self.entry_number} {self.entry_date} "
            f"posted={self.is_posted}>"
        )

    @property
    def total_debits(self) -> Decimal:
        """Sum of all debit amounts."""
        return sum((line.debit for line in self.lines), Decimal("0"))

    @property
    def total_credits(self) -> Decimal:
        """Sum of all credit amounts."""
        return sum((line.credit for line in self.lines), Decimal("0"))

    @property
    def is_balanced(self) -> bool:
        """Read-side check that debits equal credits."""
        return self.total_debits == self.total_credits


class JournalLine(TrackedBase):
    """
    One posting line: exactly one of debit/credit is positive.

    Contract:
        Belongs to exactly one JournalEntry and references one Account.
    """

    __tablename__ = "journal_lines"

    __table_args__ = (
        Index("idx_line_entry", "journal_entry_id"),
        Index("idx_line_account", "account_id"),
    )

    journal_entry_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id", ondelete="CASCADE"),
        nullable=False,
    )

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    debit: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
        default=Decimal("0"),
    )

    credit: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
        default=Decimal("0"),
    )

    description: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )

    # Line sequence within entry (for deterministic ordering)
    line_seq: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    entry: Mapped["JournalEntry"] = relationship(
        back_populates="lines",
    )

    account: Mapped["Account"] = relationship(
        back_populates="journal_lines",
    )

    def __repr__(self) -> str:
        return f"<JournalLine dr={self.debit} cr={self.credit}>"
