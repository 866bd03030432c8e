"""
JournalStore -- write side of the journal.

Responsibility:
    Creates, replaces, posts/unposts and deletes journal entries.  Every
    entry that reaches the store satisfies the double-entry rules of
    ``fiscal_kernel.domain.double_entry``.

Architecture position:
    Kernel > Services.  Calls the pure validator, SequenceService for the
    entry number, and AccountSelector-style lookups for line accounts.
    Reads go through LedgerQueryService; JournalStore returns the DTO of
    the entry it just wrote.

Invariants enforced:
    - Balance: every persisted entry has >= 2 one-sided lines with
      |debits - credits| < 0.01 and debits > 0 (checked on create and on
      update, before anything is written).
    - Posted immutability: update and delete of a posted entry are refused
      with EntryPostedError; the entry is left unchanged.
    - No orphan headers: the header is flushed first, the lines are written
      inside a savepoint, and a failed line write deletes the header before
      the error surfaces.
    - Lines only target active accounts of the entry's organization.

Failure modes:
    - ValidationError family from the validator, InvalidAccountError for a
      foreign/inactive/unknown account, or a bad description.
    - EntryPostedError, EntryNotFoundError.
    - PersistenceError when the store fails (after compensation).

Audit relevance:
    Every successful mutation records a ``journal.*`` audit action and
    invalidates the organization's cached ledger views.
"""

from datetime import date
from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fiscal_kernel.domain.clock import Clock
from fiscal_kernel.domain.collaborators import (
    AuditSink,
    PermissionChecker,
    ReadViewCache,
)
from fiscal_kernel.domain.context import RequestContext
from fiscal_kernel.domain.double_entry import validate_entry_lines
from fiscal_kernel.domain.dtos import JournalEntryView, JournalLineInput
from fiscal_kernel.domain.result import OperationResult
from fiscal_kernel.exceptions import (
    EntryNotFoundError,
    EntryPostedError,
    InvalidAccountError,
    PersistenceError,
    ValidationError,
)
from fiscal_kernel.logging_config import LogContext, get_logger
from fiscal_kernel.models.account import Account
from fiscal_kernel.models.audit_log import AuditAction
from fiscal_kernel.models.journal import JournalEntry, JournalLine
from fiscal_kernel.selectors.journal_selector import entry_to_view
from fiscal_kernel.services.base import TransactionalService
from fiscal_kernel.services.sequence_service import SequenceService

logger = get_logger("services.journal_store")

MAX_DESCRIPTION_LENGTH = 500
MAX_REFERENCE_LENGTH = 100


def _validate_header(description: str, reference_number: str | None) -> tuple[str, str | None]:
    description = (description or "").strip()
    if not description or len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(
            f"Description must be 1-{MAX_DESCRIPTION_LENGTH} characters",
            field="description",
        )
    reference = (reference_number or "").strip() or None
    if reference is not None and len(reference) > MAX_REFERENCE_LENGTH:
        raise ValidationError(
            f"Reference number must be at most {MAX_REFERENCE_LENGTH} characters",
            field="reference_number",
        )
    return description, reference


class JournalStore(TransactionalService):
    """
    Journal entry write service.

    Contract:
        Every public method takes a RequestContext and returns an
        OperationResult.  Permissions: ``ledger.create`` (create),
        ``ledger.edit`` (update), ``ledger.post`` (post/unpost),
        ``ledger.delete`` (delete).

    Guarantees:
        - A failed operation leaves the store as it was.
        - Entry numbers are strictly increasing per organization.

    Non-goals:
        - Does NOT re-validate on post/unpost; entries were validated when
          written.
        - Does NOT diff lines on update; they are replaced wholesale.
    """

    def __init__(
        self,
        session: Session,
        permissions: PermissionChecker,
        audit: AuditSink | None = None,
        clock: Clock | None = None,
        cache: ReadViewCache | None = None,
        auto_commit: bool = True,
    ):
        super().__init__(
            session,
            permissions,
            audit=audit,
            clock=clock,
            cache=cache,
            auto_commit=auto_commit,
        )
        self._sequence = SequenceService(session)

    def create_entry(
        self,
        context: RequestContext,
        entry_date: date,
        description: str,
        lines: Sequence[JournalLineInput],
        reference_number: str | None = None,
    ) -> OperationResult[JournalEntryView]:
        """
        Validate and persist a new unposted entry with its lines.

        Postconditions:
            - On success the entry and all its lines exist; on failure
              neither does.
        """

        def work() -> JournalEntryView:
            org = context.organization_id
            clean_description, reference = _validate_header(description, reference_number)
            total_debit, _ = validate_entry_lines(lines)
            self._check_accounts(org, lines)

            entry = JournalEntry(
                organization_id=org,
                entry_number=self._sequence.next_value(
                    SequenceService.journal_sequence_name(org)
                ),
                entry_date=entry_date,
                description=clean_description,
                reference_number=reference,
                is_posted=False,
                created_by_id=context.actor_id,
            )
            self.session.add(entry)
            self.session.flush()

            with LogContext.bind(entry_id=entry.id):
                try:
                    self._write_lines(entry, lines, context.actor_id)
                except SQLAlchemyError as exc:
                    logger.error(
                        "journal_lines_write_failed",
                        extra={"entry_number": entry.entry_number},
                        exc_info=True,
                    )
                    self._discard_header(entry)
                    raise PersistenceError("create_entry") from exc

                logger.info(
                    "journal_entry_created",
                    extra={
                        "entry_number": entry.entry_number,
                        "entry_date": entry_date,
                        "line_count": len(lines),
                        "total_debit": total_debit,
                    },
                )
                self._audit(
                    context,
                    AuditAction.JOURNAL_CREATE,
                    "journal",
                    entry.id,
                    f"Created journal entry #{entry.entry_number}: {clean_description}",
                    {"reference_number": reference, "total": str(total_debit)},
                )
            self._invalidate_views(org)
            return entry_to_view(entry)

        return self._execute(context, "ledger.create", "create_entry", work)

    def update_entry(
        self,
        context: RequestContext,
        entry_id: UUID,
        entry_date: date,
        description: str,
        lines: Sequence[JournalLineInput],
        reference_number: str | None = None,
    ) -> OperationResult[JournalEntryView]:
        """Replace header fields and all lines of an unposted entry."""

        def work() -> JournalEntryView:
            org = context.organization_id
            with LogContext.bind(entry_id=entry_id):
                entry = self._load(org, entry_id)
                if entry.is_posted:
                    raise EntryPostedError(str(entry_id), "update")

                clean_description, reference = _validate_header(
                    description, reference_number
                )
                total_debit, _ = validate_entry_lines(lines)
                self._check_accounts(org, lines)

                entry.entry_date = entry_date
                entry.description = clean_description
                entry.reference_number = reference
                entry.updated_by_id = context.actor_id

                entry.lines.clear()
                self.session.flush()
                try:
                    self._write_lines(entry, lines, context.actor_id)
                except SQLAlchemyError as exc:
                    logger.error("journal_lines_write_failed", exc_info=True)
                    raise PersistenceError("update_entry") from exc

                logger.info(
                    "journal_entry_updated",
                    extra={
                        "entry_number": entry.entry_number,
                        "line_count": len(lines),
                        "total_debit": total_debit,
                    },
                )
                self._audit(
                    context,
                    AuditAction.JOURNAL_UPDATE,
                    "journal",
                    entry.id,
                    f"Updated journal entry #{entry.entry_number}: {clean_description}",
                    {"reference_number": reference, "total": str(total_debit)},
                )
            self._invalidate_views(org)
            return entry_to_view(entry)

        return self._execute(context, "ledger.edit", "update_entry", work)

    def set_posted(
        self,
        context: RequestContext,
        entry_id: UUID,
        posted: bool,
    ) -> OperationResult[JournalEntryView]:
        """Post or unpost an entry.  Amounts are never touched."""

        def work() -> JournalEntryView:
            org = context.organization_id
            with LogContext.bind(entry_id=entry_id):
                entry = self._load(org, entry_id)
                entry.is_posted = posted
                entry.updated_by_id = context.actor_id
                self.session.flush()

                logger.info(
                    "journal_entry_posted" if posted else "journal_entry_unposted",
                    extra={"entry_number": entry.entry_number},
                )
                self._audit(
                    context,
                    AuditAction.JOURNAL_POST if posted else AuditAction.JOURNAL_UNPOST,
                    "journal",
                    entry.id,
                    f"{'Posted' if posted else 'Unposted'} journal entry "
                    f"#{entry.entry_number}",
                )
            self._invalidate_views(org)
            return entry_to_view(entry)

        return self._execute(context, "ledger.post", "set_posted", work)

    def delete_entry(
        self, context: RequestContext, entry_id: UUID
    ) -> OperationResult[None]:
        """Remove an unposted entry together with its lines."""

        def work() -> None:
            org = context.organization_id
            with LogContext.bind(entry_id=entry_id):
                entry = self._load(org, entry_id)
                if entry.is_posted:
                    raise EntryPostedError(str(entry_id), "delete")

                entry_number = entry.entry_number
                summary = f"Deleted journal entry #{entry_number}: {entry.description}"
                self.session.delete(entry)
                self.session.flush()

                logger.info(
                    "journal_entry_deleted", extra={"entry_number": entry_number}
                )
                self._audit(context, AuditAction.JOURNAL_DELETE, "journal", entry_id, summary)
            self._invalidate_views(org)

        return self._execute(context, "ledger.delete", "delete_entry", work)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load(self, organization_id: UUID, entry_id: UUID) -> JournalEntry:
        entry = self.session.execute(
            select(JournalEntry).where(
                JournalEntry.id == entry_id,
                JournalEntry.organization_id == organization_id,
            )
        ).scalar_one_or_none()
        if entry is None:
            raise EntryNotFoundError(str(entry_id))
        return entry

    def _check_accounts(
        self, organization_id: UUID, lines: Sequence[JournalLineInput]
    ) -> None:
        account_ids = {line.account_id for line in lines}
        rows = self.session.execute(
            select(Account.id, Account.is_active).where(
                Account.id.in_(account_ids),
                Account.organization_id == organization_id,
            )
        ).all()
        active = {row.id: row.is_active for row in rows}

        for line in lines:
            if line.account_id not in active:
                raise InvalidAccountError(
                    str(line.account_id), "account not found in organization"
                )
            if not active[line.account_id]:
                raise InvalidAccountError(str(line.account_id), "account is inactive")

    def _write_lines(
        self,
        entry: JournalEntry,
        lines: Sequence[JournalLineInput],
        actor_id: UUID,
    ) -> None:
        with self.session.begin_nested():
            for seq, line in enumerate(lines, start=1):
                entry.lines.append(
                    JournalLine(
                        account_id=line.account_id,
                        debit=line.debit,
                        credit=line.credit,
                        description=(line.description or None),
                        line_seq=seq,
                        created_by_id=actor_id,
                    )
                )
            self.session.flush()

    def _discard_header(self, entry: JournalEntry) -> None:
        self.session.delete(entry)
        self.session.flush()
        logger.warning(
            "journal_header_discarded",
            extra={"entry_number": entry.entry_number},
        )
