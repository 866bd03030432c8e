"""
Module: fiscal_kernel.selectors.journal_selector
Responsibility: Read-only journal entry queries: paged listing with total
    count and single-entry lookup, both returning entries with their lines.
Architecture position: Kernel > Selectors.  May import from models/, domain/
    and selectors/base.py.

Invariants enforced:
    - Organization scoping on every query.
    - Listing order: entry_date DESC, entry_number DESC (newest first).

Failure modes:
    - get_entry() returns None for unknown ids (or ids of another
      organization); callers turn that into EntryNotFoundError.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from fiscal_kernel.domain.dtos import JournalEntryPage, JournalEntryView, JournalLineView
from fiscal_kernel.models.journal import JournalEntry
from fiscal_kernel.selectors.base import BaseSelector


def entry_to_view(entry: JournalEntry) -> JournalEntryView:
    """Convert an ORM entry (with loaded lines) into its DTO."""
    return JournalEntryView(
        id=entry.id,
        organization_id=entry.organization_id,
        entry_number=entry.entry_number,
        entry_date=entry.entry_date,
        description=entry.description,
        reference_number=entry.reference_number,
        is_posted=entry.is_posted,
        lines=tuple(
            JournalLineView(
                id=line.id,
                account_id=line.account_id,
                debit=line.debit,
                credit=line.credit,
                description=line.description,
                line_seq=line.line_seq,
            )
            for line in sorted(entry.lines, key=lambda ln: ln.line_seq)
        ),
    )


class JournalSelector(BaseSelector[JournalEntry]):
    """Selector for journal entry listings."""

    def __init__(self, session: Session):
        super().__init__(session)

    def list_entries(
        self,
        organization_id: UUID,
        start_date: date | None = None,
        end_date: date | None = None,
        posted_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> JournalEntryPage:
        """
        One page of entries plus the total count matching the filters.

        Args:
            organization_id: Tenant scope.
            start_date: Inclusive lower bound on entry_date.
            end_date: Inclusive upper bound on entry_date.
            posted_only: Exclude unposted entries.
            limit: Page size.
            offset: Rows to skip.
        """
        conditions = [JournalEntry.organization_id == organization_id]
        if start_date is not None:
            conditions.append(JournalEntry.entry_date >= start_date)
        if end_date is not None:
            conditions.append(JournalEntry.entry_date <= end_date)
        if posted_only:
            conditions.append(JournalEntry.is_posted.is_(True))

        total = self.session.execute(
            select(func.count(JournalEntry.id)).where(*conditions)
        ).scalar_one()

        entries = self.session.execute(
            select(JournalEntry)
            .where(*conditions)
            .order_by(JournalEntry.entry_date.desc(), JournalEntry.entry_number.desc())
            .limit(limit)
            .offset(offset)
        ).scalars().all()

        return JournalEntryPage(
            entries=tuple(entry_to_view(e) for e in entries),
            total=total,
        )

    def get_entry(self, organization_id: UUID, entry_id: UUID) -> JournalEntryView | None:
        entry = self.session.execute(
            select(JournalEntry).where(
                JournalEntry.id == entry_id,
                JournalEntry.organization_id == organization_id,
            )
        ).scalar_one_or_none()
        return entry_to_view(entry) if entry is not None else None
