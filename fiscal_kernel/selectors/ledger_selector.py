"""
Module: fiscal_kernel.selectors.ledger_selector
Responsibility: The Ledger Aggregator and the Trial Balance Calculator.
    ledger() projects journal lines into enriched LedgerEntry rows;
    trial_balance() reduces that projection to one row per account.
Architecture position: Kernel > Selectors.  May import from models/, domain/
    and selectors/base.py.  MUST NOT import from services/ or outer layers.

Invariants enforced:
    - No stored balances.  Every figure is derived from journal lines at
      query time.
    - Ordering: entry_date ASC, then entry_number ASC (creation order), then
      line_seq ASC.
    - Lines whose account cannot be resolved inside the entry's organization
      are still returned, labelled with the unknown-account placeholders.
    - Trial balance: sum(total_debit) == sum(total_credit) over all rows
      whenever every entry in scope balances.

Failure modes:
    - Returns an empty ledger / an empty trial balance when nothing matches.

Audit relevance:
    The trial balance is the first place an upstream balance bug would show;
    TrialBalance.is_balanced is checked by the test suite for every range.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from sqlalchemy import and_, select
from sqlalchemy.orm import Session

from fiscal_kernel.domain.dtos import (
    UNKNOWN_ACCOUNT_CODE,
    UNKNOWN_ACCOUNT_NAME,
    LedgerEntry,
    TrialBalance,
    TrialBalanceRow,
)
from fiscal_kernel.models.account import Account, AccountType
from fiscal_kernel.models.journal import JournalEntry, JournalLine
from fiscal_kernel.selectors.base import BaseSelector


@dataclass
class _Accumulator:
    account_code: str
    account_name: str
    account_type: AccountType | None
    debit: Decimal = Decimal("0")
    credit: Decimal = Decimal("0")


def build_trial_balance(entries: Iterable[LedgerEntry]) -> TrialBalance:
    """
    Reduce ledger entries to a trial balance.

    Postconditions: one row per distinct account_id, sorted by account code
        (ties broken by account id for determinism); balance = debit - credit;
        totals are sums over rows.
    """
    by_account: dict[UUID, _Accumulator] = {}
    for entry in entries:
        acc = by_account.get(entry.account_id)
        if acc is None:
            acc = _Accumulator(entry.account_code, entry.account_name, entry.account_type)
            by_account[entry.account_id] = acc
        acc.debit += entry.debit
        acc.credit += entry.credit

    rows = tuple(
        sorted(
            (
                TrialBalanceRow(
                    account_id=account_id,
                    account_code=acc.account_code,
                    account_name=acc.account_name,
                    account_type=acc.account_type,
                    total_debit=acc.debit,
                    total_credit=acc.credit,
                )
                for account_id, acc in by_account.items()
            ),
            key=lambda row: (row.account_code, str(row.account_id)),
        )
    )

    return TrialBalance(
        rows=rows,
        total_debit=sum((r.total_debit for r in rows), Decimal("0")),
        total_credit=sum((r.total_credit for r in rows), Decimal("0")),
    )


class LedgerSelector(BaseSelector[JournalLine]):
    """
    Selector for ledger queries.

    Contract:
        The ledger is a derived view over journal lines of one organization.
        Filters are a conjunction of every provided predicate.

    Guarantees:
        - Lines referencing an account outside the organization (or a row
          that no longer exists) surface with code "???" and name
          "Unknown account" instead of failing.
        - Deactivated accounts keep their real code and name.
        - All amounts are Decimal.

    Non-goals:
        - No currency translation; amounts are reported as stored.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    def ledger(
        self,
        organization_id: UUID,
        account_id: UUID | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        posted_only: bool = False,
    ) -> list[LedgerEntry]:
        """
        Project journal lines into LedgerEntry rows.

        Args:
            organization_id: Tenant scope.
            account_id: Only lines on this account.
            start_date: Inclusive lower bound on entry_date.
            end_date: Inclusive upper bound on entry_date.
            posted_only: Exclude unposted entries.

        Returns:
            LedgerEntry list ordered by date, entry number, line sequence.
        """
        query = (
            select(JournalLine, JournalEntry, Account)
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .outerjoin(
                Account,
                and_(
                    Account.id == JournalLine.account_id,
                    Account.organization_id == JournalEntry.organization_id,
                ),
            )
            .where(JournalEntry.organization_id == organization_id)
        )

        if account_id is not None:
            query = query.where(JournalLine.account_id == account_id)
        if start_date is not None:
            query = query.where(JournalEntry.entry_date >= start_date)
        if end_date is not None:
            query = query.where(JournalEntry.entry_date <= end_date)
        if posted_only:
            query = query.where(JournalEntry.is_posted.is_(True))

        query = query.order_by(
            JournalEntry.entry_date,
            JournalEntry.entry_number,
            JournalLine.line_seq,
        )

        return [
            self._to_ledger_entry(line, entry, account)
            for line, entry, account in self.session.execute(query).all()
        ]

    def trial_balance(
        self,
        organization_id: UUID,
        start_date: date | None = None,
        end_date: date | None = None,
        posted_only: bool = True,
    ) -> TrialBalance:
        """
        Compute the trial balance for a date range.

        Defaults to posted entries only; pass ``posted_only=False`` to preview
        drafts.
        """
        return build_trial_balance(
            self.ledger(
                organization_id,
                start_date=start_date,
                end_date=end_date,
                posted_only=posted_only,
            )
        )

    @staticmethod
    def _to_ledger_entry(
        line: JournalLine,
        entry: JournalEntry,
        account: Account | None,
    ) -> LedgerEntry:
        if account is None:
            code, name, account_type = UNKNOWN_ACCOUNT_CODE, UNKNOWN_ACCOUNT_NAME, None
        else:
            code, name = account.code, account.name
            account_type = AccountType(account.account_type)

        return LedgerEntry(
            entry_id=entry.id,
            line_id=line.id,
            entry_number=entry.entry_number,
            line_seq=line.line_seq,
            entry_date=entry.entry_date,
            entry_description=entry.description,
            reference_number=entry.reference_number,
            is_posted=entry.is_posted,
            account_id=line.account_id,
            account_code=code,
            account_name=name,
            account_type=account_type,
            debit=line.debit,
            credit=line.credit,
            line_description=line.description,
        )
