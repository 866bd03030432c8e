"""
FilingService -- statutory filing calculation and lifecycle.

Responsibility:
    Pulls the period's sales documents, expenses and payroll runs from the
    injected sources, computes F-07, F-11 or F-14 with the pure helpers,
    upserts one filing row per (organization, form, period), and moves
    filings through the lifecycle in ``workflows.py``.

Architecture position:
    Modules layer.  Orchestrates collaborators and ``helpers`` (pure) over
    ``TaxFilingModel`` rows.  Inherits transaction handling from the kernel's
    ``TransactionalService``.

Invariants enforced:
    - One row per (organization, form, year, month).  A concurrent insert
      that loses the unique-index race is retried as an update.
    - Recomputation never overwrites a FILED or ACCEPTED filing.
    - Status moves only along the declared transitions; FILED stamps
      ``filed_at`` from the injected clock.
    - Deletion only from DRAFT or CALCULATED.

Failure modes:
    - InvalidPeriodError for a month outside 1-12 or an out-of-range year.
    - FilingLockedError, InvalidFilingTransitionError,
      FilingNotDeletableError (StateError family).
    - FilingNotFoundError for an id outside the organization.

Audit relevance:
    ``tax.calculate``, ``tax.status_change`` and ``tax.delete`` are recorded
    with the figures or the state change in the structured context.
"""

from datetime import date
from decimal import Decimal
from typing import Callable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fiscal_kernel.db.types import round_money
from fiscal_kernel.domain.clock import Clock
from fiscal_kernel.domain.collaborators import (
    AuditSink,
    ExpenseRecord,
    ExpenseSource,
    PayrollRunRecord,
    PayrollSource,
    PermissionChecker,
    SalesDocumentRecord,
    SalesDocumentSource,
)
from fiscal_kernel.domain.context import RequestContext
from fiscal_kernel.domain.result import OperationResult
from fiscal_kernel.exceptions import (
    FilingLockedError,
    FilingNotDeletableError,
    FilingNotFoundError,
    InvalidFilingTransitionError,
    InvalidPeriodError,
    ValidationError,
)
from fiscal_kernel.logging_config import LogContext, get_logger
from fiscal_kernel.models.audit_log import AuditAction
from fiscal_kernel.services.base import TransactionalService
from fiscal_modules.tax import helpers
from fiscal_modules.tax.config import TaxConfig
from fiscal_modules.tax.models import (
    DELETABLE_STATUSES,
    PENDING_STATUSES,
    RECOMPUTABLE_STATUSES,
    SUBMITTED_STATUSES,
    ZERO,
    FilingStatus,
    FormType,
    TaxFilingView,
    TaxStats,
)
from fiscal_modules.tax.orm import TaxFilingModel
from fiscal_modules.tax.workflows import FILING_WORKFLOW

logger = get_logger("modules.tax.service")

MIN_YEAR = 1900
MAX_YEAR = 9999
MAX_REFERENCE_LENGTH = 100
MAX_NOTES_LENGTH = 1000


def _validate_period(year: int, month: int | None) -> None:
    if not isinstance(year, int) or not MIN_YEAR <= year <= MAX_YEAR:
        raise InvalidPeriodError(year, month)
    if month is not None and (not isinstance(month, int) or not 1 <= month <= 12):
        raise InvalidPeriodError(year, month)


def _parse_status(status: FilingStatus | str) -> FilingStatus:
    try:
        return FilingStatus(str(getattr(status, "value", status)).lower())
    except ValueError:
        raise ValidationError(
            f"Unknown filing status: {status!r}", field="status"
        ) from None


class FilingService(TransactionalService):
    """
    Statutory filing service.

    Contract:
        Every public method takes a RequestContext and returns an
        OperationResult.  Calculations, transitions and deletion require
        ``taxes.file``; reads require ``taxes.view``.

    Guarantees:
        - Recomputing with unchanged upstream data yields identical figures
          on the same row.
        - Upstream records are re-filtered by status and date here, so a
          source that over-returns cannot skew a form.

    Non-goals:
        - Does NOT transmit filings to the tax authority; FILED records the
          caller's submission.
    """

    def __init__(
        self,
        session: Session,
        permissions: PermissionChecker,
        sales_source: SalesDocumentSource,
        expense_source: ExpenseSource,
        payroll_source: PayrollSource,
        audit: AuditSink | None = None,
        clock: Clock | None = None,
        config: TaxConfig | None = None,
        auto_commit: bool = True,
    ):
        super().__init__(
            session,
            permissions,
            audit=audit,
            clock=clock,
            auto_commit=auto_commit,
        )
        self._sales = sales_source
        self._expenses = expense_source
        self._payroll = payroll_source
        self._config = config or TaxConfig.with_defaults()

    # ------------------------------------------------------------------
    # Calculations
    # ------------------------------------------------------------------

    def calculate_f07(
        self, context: RequestContext, year: int, month: int
    ) -> OperationResult[TaxFilingView]:
        """Compute and store the monthly VAT declaration."""

        def work() -> TaxFilingView:
            _validate_period(year, month)
            org = context.organization_id
            start, end = helpers.month_bounds(year, month)
            figures = helpers.compute_f07(
                self._sales_in(org, start, end),
                self._expenses_in(org, start, end),
                self._config.vat_rate,
                self._config.rounding,
            )
            return self._store(
                context, FormType.F07, year, month,
                lambda filing: filing.apply_f07(figures),
            )

        return self._execute(context, "taxes.file", "calculate_f07", work)

    def calculate_f11(
        self, context: RequestContext, year: int, month: int
    ) -> OperationResult[TaxFilingView]:
        """Compute and store the monthly advance payment and withholding."""

        def work() -> TaxFilingView:
            _validate_period(year, month)
            org = context.organization_id
            start, end = helpers.month_bounds(year, month)
            figures = helpers.compute_f11(
                self._sales_in(org, start, end),
                self._payroll_overlapping(org, start, end),
                self._config.advance_income_tax_rate,
                self._config.rounding,
            )
            return self._store(
                context, FormType.F11, year, month,
                lambda filing: filing.apply_f11(figures),
            )

        return self._execute(context, "taxes.file", "calculate_f11", work)

    def calculate_f14(
        self, context: RequestContext, year: int
    ) -> OperationResult[TaxFilingView]:
        """Compute and store the annual income tax."""

        def work() -> TaxFilingView:
            _validate_period(year, None)
            org = context.organization_id
            start, end = helpers.year_bounds(year)
            rounding = self._config.rounding

            income = helpers.gross_income(self._sales_in(org, start, end), rounding)
            costs = helpers.deductible_costs(
                self._expenses_in(org, start, end),
                self._payroll_within(org, start, end),
                rounding,
            )
            figures = helpers.compute_f14(
                income,
                costs,
                self._accumulated_advances(org, year),
                self._config.corporate_income_tax_rate,
                rounding,
            )
            return self._store(
                context, FormType.F14, year, None,
                lambda filing: filing.apply_f14(figures),
            )

        return self._execute(context, "taxes.file", "calculate_f14", work)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def transition_filing(
        self,
        context: RequestContext,
        filing_id: UUID,
        new_status: FilingStatus | str,
        filing_reference: str | None = None,
        notes: str | None = None,
    ) -> OperationResult[TaxFilingView]:
        def work() -> TaxFilingView:
            target = _parse_status(new_status)
            if filing_reference is not None and len(filing_reference) > MAX_REFERENCE_LENGTH:
                raise ValidationError(
                    f"Filing reference must be at most {MAX_REFERENCE_LENGTH} characters",
                    field="filing_reference",
                )
            if notes is not None and len(notes) > MAX_NOTES_LENGTH:
                raise ValidationError(
                    f"Notes must be at most {MAX_NOTES_LENGTH} characters",
                    field="notes",
                )

            filing = self._load(context.organization_id, filing_id)
            with LogContext.bind(filing_id=str(filing.id)):
                current = filing.status
                transition = FILING_WORKFLOW.transition_for(current, target.value)
                if transition is None:
                    raise InvalidFilingTransitionError(
                        str(filing.id), current, target.value
                    )

                filing.status = target.value
                if transition.stamps_submission:
                    filing.filed_at = self._clock.now()
                    if filing_reference is not None:
                        filing.filing_reference = filing_reference
                if notes is not None:
                    filing.notes = notes
                filing.updated_by_id = context.actor_id
                self.session.flush()

                logger.info(
                    "tax_filing_transitioned",
                    extra={
                        "form_type": filing.form_type,
                        "from_status": current,
                        "to_status": target.value,
                        "transition_action": transition.action,
                    },
                )
                self._audit(
                    context,
                    AuditAction.TAX_STATUS_CHANGE,
                    "tax_filing",
                    filing.id,
                    f"{filing.form_type} {self._period_label(filing)}: "
                    f"{current} -> {target.value}",
                    {
                        "from_status": current,
                        "to_status": target.value,
                        "filing_reference": filing.filing_reference,
                    },
                )
                return filing.to_dto()

        return self._execute(context, "taxes.file", "transition_filing", work)

    def delete_filing(
        self, context: RequestContext, filing_id: UUID
    ) -> OperationResult[UUID]:
        def work() -> UUID:
            filing = self._load(context.organization_id, filing_id)
            if FilingStatus(filing.status) not in DELETABLE_STATUSES:
                raise FilingNotDeletableError(str(filing.id), filing.status)

            label = f"{filing.form_type} {self._period_label(filing)}"
            self.session.delete(filing)
            self.session.flush()

            logger.info(
                "tax_filing_deleted",
                extra={"filing_id": str(filing_id), "form_type": filing.form_type},
            )
            self._audit(
                context,
                AuditAction.TAX_DELETE,
                "tax_filing",
                filing_id,
                f"Deleted filing {label}",
            )
            return filing_id

        return self._execute(context, "taxes.file", "delete_filing", work)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_filings(
        self,
        context: RequestContext,
        form_type: FormType | str | None = None,
        year: int | None = None,
        status: FilingStatus | str | None = None,
    ) -> OperationResult[list[TaxFilingView]]:
        def work() -> list[TaxFilingView]:
            stmt = select(TaxFilingModel).where(
                TaxFilingModel.organization_id == context.organization_id
            )
            if form_type is not None:
                stmt = stmt.where(TaxFilingModel.form_type == FormType(form_type).value)
            if year is not None:
                stmt = stmt.where(TaxFilingModel.period_year == year)
            if status is not None:
                stmt = stmt.where(TaxFilingModel.status == _parse_status(status).value)
            stmt = stmt.order_by(
                TaxFilingModel.period_year.desc(),
                TaxFilingModel.period_month.desc(),
                TaxFilingModel.form_type,
            )
            return [row.to_dto() for row in self.session.scalars(stmt)]

        return self._execute(
            context, "taxes.view", "list_filings", work, read_only=True
        )

    def get_filing(
        self, context: RequestContext, filing_id: UUID
    ) -> OperationResult[TaxFilingView]:
        return self._execute(
            context,
            "taxes.view",
            "get_filing",
            lambda: self._load(context.organization_id, filing_id).to_dto(),
            read_only=True,
        )

    def get_tax_stats(self, context: RequestContext) -> OperationResult[TaxStats]:
        def work() -> TaxStats:
            rows = self.session.scalars(
                select(TaxFilingModel).where(
                    TaxFilingModel.organization_id == context.organization_id
                )
            ).all()
            current_year = self._clock.now().year
            rounding = self._config.rounding

            vat_paid = advances = ZERO
            pending = current = 0
            for row in rows:
                status = FilingStatus(row.status)
                if status in PENDING_STATUSES:
                    pending += 1
                if row.period_year == current_year:
                    current += 1
                if status in SUBMITTED_STATUSES:
                    if row.form_type == FormType.F07.value:
                        vat_paid += row.total_payable
                    elif row.form_type == FormType.F11.value:
                        advances += row.advance_payment

            return TaxStats(
                total_filings=len(rows),
                pending_filings=pending,
                total_vat_paid=round_money(vat_paid, rounding=rounding),
                total_advance_payments=round_money(advances, rounding=rounding),
                current_year_filings=current,
            )

        return self._execute(
            context, "taxes.view", "get_tax_stats", work, read_only=True
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _sales_in(self, org: UUID, start: date, end: date) -> list[SalesDocumentRecord]:
        statuses = self._config.sales_document_statuses
        return [
            doc
            for doc in self._sales.list_sales_documents(org, start, end, statuses)
            if doc.status in statuses and start <= doc.document_date <= end
        ]

    def _expenses_in(self, org: UUID, start: date, end: date) -> list[ExpenseRecord]:
        statuses = self._config.expense_statuses
        return [
            expense
            for expense in self._expenses.list_expenses(org, start, end, statuses)
            if expense.status in statuses and start <= expense.expense_date <= end
        ]

    def _payroll_overlapping(
        self, org: UUID, start: date, end: date
    ) -> list[PayrollRunRecord]:
        statuses = self._config.payroll_run_statuses
        return [
            run
            for run in self._payroll.list_payroll_runs(org, start, end, statuses)
            if run.status in statuses and run.overlaps(start, end)
        ]

    def _payroll_within(
        self, org: UUID, start: date, end: date
    ) -> list[PayrollRunRecord]:
        # A run straddling the year boundary belongs to neither year.
        return [run for run in self._payroll_overlapping(org, start, end) if run.within(start, end)]

    def _accumulated_advances(self, org: UUID, year: int) -> Decimal:
        advances = self.session.scalars(
            select(TaxFilingModel.advance_payment).where(
                TaxFilingModel.organization_id == org,
                TaxFilingModel.form_type == FormType.F11.value,
                TaxFilingModel.period_year == year,
                TaxFilingModel.status.in_(self._config.advance_filing_statuses),
            )
        ).all()
        return sum(advances, ZERO)

    def _find(
        self, org: UUID, form_type: FormType, year: int, month: int | None
    ) -> TaxFilingModel | None:
        stmt = select(TaxFilingModel).where(
            TaxFilingModel.organization_id == org,
            TaxFilingModel.form_type == form_type.value,
            TaxFilingModel.period_year == year,
        )
        if month is None:
            stmt = stmt.where(TaxFilingModel.period_month.is_(None))
        else:
            stmt = stmt.where(TaxFilingModel.period_month == month)
        return self.session.scalars(stmt).one_or_none()

    def _load(self, org: UUID, filing_id: UUID) -> TaxFilingModel:
        filing = self.session.get(TaxFilingModel, filing_id)
        if filing is None or filing.organization_id != org:
            raise FilingNotFoundError(str(filing_id))
        return filing

    def _store(
        self,
        context: RequestContext,
        form_type: FormType,
        year: int,
        month: int | None,
        apply: Callable[[TaxFilingModel], None],
    ) -> TaxFilingView:
        org = context.organization_id
        filing = self._find(org, form_type, year, month)

        if filing is None:
            try:
                with self.session.begin_nested():
                    filing = TaxFilingModel(
                        organization_id=org,
                        form_type=form_type.value,
                        period_year=year,
                        period_month=month,
                        status=FilingStatus.CALCULATED.value,
                        created_by_id=context.actor_id,
                    )
                    apply(filing)
                    self.session.add(filing)
                    self.session.flush()
                created = True
            except IntegrityError:
                # Lost the insert race; the winner's row is updated below.
                logger.warning(
                    "tax_filing_insert_conflict",
                    extra={"form_type": form_type.value, "period_year": year},
                )
                filing = self._find(org, form_type, year, month)
                if filing is None:
                    raise
                created = False
        else:
            created = False

        with LogContext.bind(filing_id=str(filing.id)):
            if not created:
                if FilingStatus(filing.status) not in RECOMPUTABLE_STATUSES:
                    raise FilingLockedError(str(filing.id), filing.status)
                apply(filing)
                filing.status = FilingStatus.CALCULATED.value
                filing.updated_by_id = context.actor_id
                self.session.flush()

            logger.info(
                "tax_filing_calculated",
                extra={
                    "form_type": form_type.value,
                    "period_year": year,
                    "period_month": month,
                    "total_payable": str(filing.total_payable),
                    "filing_created": created,
                },
            )
            self._audit(
                context,
                AuditAction.TAX_CALCULATE,
                "tax_filing",
                filing.id,
                f"Calculated {form_type.value} {self._period_label(filing)}",
                {"total_payable": str(filing.total_payable), "created": created},
            )
            return filing.to_dto()

    @staticmethod
    def _period_label(filing: TaxFilingModel) -> str:
        if filing.period_month is None:
            return str(filing.period_year)
        return f"{filing.period_year}-{filing.period_month:02d}"
