"""
Domain DTOs -- immutable data shapes crossing the service boundary.

Responsibility:
    Input and output shapes for the Account Registry, Journal Store, Ledger
    Aggregator and Trial Balance Calculator.  Services return these, never
    ORM instances.

Architecture position:
    Kernel > Domain -- pure value objects, zero I/O.

Invariants enforced:
    - All DTOs are frozen.
    - Monetary fields are ``Decimal``; JournalLineInput coerces int/str input
      and rejects float.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from fiscal_kernel.db.types import to_money
from fiscal_kernel.models.account import AccountType

UNKNOWN_ACCOUNT_CODE = "???"
UNKNOWN_ACCOUNT_NAME = "Unknown account"


@dataclass(frozen=True)
class JournalLineInput:
    """One proposed journal line."""

    account_id: UUID
    debit: Decimal = Decimal("0")
    credit: Decimal = Decimal("0")
    description: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "debit", to_money(self.debit))
        object.__setattr__(self, "credit", to_money(self.credit))


@dataclass(frozen=True)
class JournalLineView:
    id: UUID
    account_id: UUID
    debit: Decimal
    credit: Decimal
    description: str | None
    line_seq: int


@dataclass(frozen=True)
class JournalEntryView:
    """A journal entry with its lines, as stored."""

    id: UUID
    organization_id: UUID
    entry_number: int
    entry_date: date
    description: str
    reference_number: str | None
    is_posted: bool
    lines: tuple[JournalLineView, ...]

    @property
    def total_debit(self) -> Decimal:
        return sum((line.debit for line in self.lines), Decimal("0"))

    @property
    def total_credit(self) -> Decimal:
        return sum((line.credit for line in self.lines), Decimal("0"))


@dataclass(frozen=True)
class JournalEntryPage:
    """One page of journal entries plus the total matching count."""

    entries: tuple[JournalEntryView, ...]
    total: int


@dataclass(frozen=True)
class LedgerEntry:
    """
    One journal line enriched with its entry header and account.

    ``account_type`` is None when the account cannot be resolved in the
    entry's organization; code and name then carry the unknown-account
    placeholders.
    """

    entry_id: UUID
    line_id: UUID
    entry_number: int
    line_seq: int
    entry_date: date
    entry_description: str
    reference_number: str | None
    is_posted: bool
    account_id: UUID
    account_code: str
    account_name: str
    account_type: AccountType | None
    debit: Decimal
    credit: Decimal
    line_description: str | None

    @property
    def is_unknown_account(self) -> bool:
        return self.account_type is None


@dataclass(frozen=True)
class TrialBalanceRow:
    """A single row in a trial balance report."""

    account_id: UUID
    account_code: str
    account_name: str
    account_type: AccountType | None
    total_debit: Decimal
    total_credit: Decimal

    @property
    def balance(self) -> Decimal:
        """Net balance (debits - credits)."""
        return self.total_debit - self.total_credit


@dataclass(frozen=True)
class TrialBalance:
    rows: tuple[TrialBalanceRow, ...]
    total_debit: Decimal
    total_credit: Decimal

    @property
    def is_balanced(self) -> bool:
        return self.total_debit == self.total_credit


@dataclass(frozen=True)
class AccountView:
    """Chart-of-accounts node with derived depth (root = 0)."""

    id: UUID
    organization_id: UUID
    code: str
    name: str
    account_type: AccountType
    parent_id: UUID | None
    is_active: bool
    depth: int = 0
