"""
LedgerQueryService -- permission-gated, cached read surface of the ledger.

Responsibility:
    Exposes the general ledger, the trial balance and the journal listing to
    callers.  Wraps the selectors with the ``ledger.view`` capability check
    and an optional per-organization read-view cache.

Architecture position:
    Kernel > Services.  Reads only; never commits.

Invariants enforced:
    - Permission is checked before the cache is consulted, so a denied
      caller never sees a cached view.
    - Cached values are immutable DTOs (tuples of frozen dataclasses).
    - While this session holds uncommitted writes for an organization its
      views are computed fresh and never stored.

Failure modes:
    - EntryNotFoundError from ``get_entry``.
    - PersistenceError on store failure.
"""

from datetime import date
from typing import Callable, TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from fiscal_kernel.domain.clock import Clock
from fiscal_kernel.domain.collaborators import PermissionChecker, ReadViewCache
from fiscal_kernel.domain.context import RequestContext
from fiscal_kernel.domain.dtos import (
    JournalEntryPage,
    JournalEntryView,
    LedgerEntry,
    TrialBalance,
)
from fiscal_kernel.domain.result import OperationResult
from fiscal_kernel.exceptions import EntryNotFoundError
from fiscal_kernel.logging_config import get_logger
from fiscal_kernel.selectors.journal_selector import JournalSelector
from fiscal_kernel.selectors.ledger_selector import LedgerSelector
from fiscal_kernel.services.base import TransactionalService

logger = get_logger("services.ledger_query")

T = TypeVar("T")

VIEW_PERMISSION = "ledger.view"


class LedgerQueryService(TransactionalService):
    """
    Read-side service for ledger views.

    Contract:
        ``get_ledger``, ``get_trial_balance``, ``list_entries`` and
        ``get_entry`` all require ``ledger.view``.

    Guarantees:
        - ``get_trial_balance`` defaults to posted entries only.
        - Results are identical with and without a cache, as long as
          every mutation goes through a service that shares the cache.
    """

    def __init__(
        self,
        session: Session,
        permissions: PermissionChecker,
        clock: Clock | None = None,
        cache: ReadViewCache | None = None,
    ):
        super().__init__(session, permissions, clock=clock, cache=cache, auto_commit=False)
        self._ledger = LedgerSelector(session)
        self._journal = JournalSelector(session)

    def get_ledger(
        self,
        context: RequestContext,
        account_id: UUID | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        posted_only: bool = False,
    ) -> OperationResult[tuple[LedgerEntry, ...]]:
        """Ledger lines ordered by entry date, then creation order."""
        params = (account_id, start_date, end_date, posted_only)
        return self._execute(
            context,
            VIEW_PERMISSION,
            "get_ledger",
            lambda: self._cached(
                context.organization_id,
                "ledger",
                params,
                lambda: tuple(
                    self._ledger.ledger(
                        context.organization_id,
                        account_id=account_id,
                        start_date=start_date,
                        end_date=end_date,
                        posted_only=posted_only,
                    )
                ),
            ),
            read_only=True,
        )

    def get_trial_balance(
        self,
        context: RequestContext,
        start_date: date | None = None,
        end_date: date | None = None,
        posted_only: bool = True,
    ) -> OperationResult[TrialBalance]:
        params = (start_date, end_date, posted_only)

        def work() -> TrialBalance:
            balance = self._cached(
                context.organization_id,
                "trial_balance",
                params,
                lambda: self._ledger.trial_balance(
                    context.organization_id,
                    start_date=start_date,
                    end_date=end_date,
                    posted_only=posted_only,
                ),
            )
            if not balance.is_balanced:
                logger.error(
                    "trial_balance_out_of_balance",
                    extra={
                        "total_debit": balance.total_debit,
                        "total_credit": balance.total_credit,
                    },
                )
            return balance

        return self._execute(
            context, VIEW_PERMISSION, "get_trial_balance", work, read_only=True
        )

    def list_entries(
        self,
        context: RequestContext,
        start_date: date | None = None,
        end_date: date | None = None,
        posted_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> OperationResult[JournalEntryPage]:
        """Newest entries first, with the total count of matching entries."""
        params = (start_date, end_date, posted_only, limit, offset)
        return self._execute(
            context,
            VIEW_PERMISSION,
            "list_entries",
            lambda: self._cached(
                context.organization_id,
                "journal_listing",
                params,
                lambda: self._journal.list_entries(
                    context.organization_id,
                    start_date=start_date,
                    end_date=end_date,
                    posted_only=posted_only,
                    limit=limit,
                    offset=offset,
                ),
            ),
            read_only=True,
        )

    def get_entry(
        self, context: RequestContext, entry_id: UUID
    ) -> OperationResult[JournalEntryView]:
        def work() -> JournalEntryView:
            view = self._journal.get_entry(context.organization_id, entry_id)
            if view is None:
                raise EntryNotFoundError(str(entry_id))
            return view

        return self._execute(context, VIEW_PERMISSION, "get_entry", work, read_only=True)

    def _cached(
        self,
        organization_id: UUID,
        view: str,
        params: tuple,
        compute: Callable[[], T],
    ) -> T:
        if self._cache is None or self._views_pending(organization_id):
            return compute()
        hit = self._cache.get(organization_id, view, params)
        if hit is not None:
            return hit
        value = compute()
        self._cache.put(organization_id, view, params, value)
        return value
