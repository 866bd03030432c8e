"""
Collaborator boundary -- typed records and protocols for external subsystems.

Responsibility:
    Defines what the kernel and the tax module consume from outside: sales
    documents, expense records, payroll runs, permission checks, and the
    audit trail.  Loosely shaped upstream rows are converted into the frozen
    records below at the boundary and never travel further as dicts.

Architecture position:
    Kernel > Domain -- pure value objects and ``typing.Protocol`` seams.
    Concrete implementations live in ``fiscal_services`` (permissions),
    ``fiscal_kernel.services.audit_log_service`` (audit), or in the host
    application (the three upstream data sources).

Invariants enforced:
    - All monetary fields are ``Decimal``; ``from_mapping`` rejects floats.
    - A blank supplier tax id is normalized to ``None``.

Failure modes:
    - ``KeyError`` from ``from_mapping`` when a required field is missing.
    - ``ValueError`` for non-numeric or float amounts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Mapping, Protocol
from uuid import UUID

from fiscal_kernel.db.types import to_money
from fiscal_kernel.domain.context import RequestContext


def _as_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


@dataclass(frozen=True)
class SalesDocumentRecord:
    """Snapshot of one issued sales document (tax computed at issue time)."""

    document_date: date
    status: str
    taxed_base: Decimal = Decimal("0")
    exempt_base: Decimal = Decimal("0")
    non_subject_base: Decimal = Decimal("0")
    tax_collected: Decimal = Decimal("0")
    tax_withheld: Decimal = Decimal("0")

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> SalesDocumentRecord:
        return cls(
            document_date=_as_date(row["document_date"]),
            status=str(row["status"]),
            taxed_base=to_money(row.get("taxed_base")),
            exempt_base=to_money(row.get("exempt_base")),
            non_subject_base=to_money(row.get("non_subject_base")),
            tax_collected=to_money(row.get("tax_collected")),
            tax_withheld=to_money(row.get("tax_withheld")),
        )


@dataclass(frozen=True)
class ExpenseRecord:
    """Snapshot of one expense.  ``amount`` is tax-inclusive when a supplier id is present."""

    expense_date: date
    status: str
    amount: Decimal
    supplier_tax_id: str | None = None

    def __post_init__(self):
        if self.supplier_tax_id is not None and not self.supplier_tax_id.strip():
            object.__setattr__(self, "supplier_tax_id", None)

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> ExpenseRecord:
        return cls(
            expense_date=_as_date(row["expense_date"]),
            status=str(row["status"]),
            amount=to_money(row["amount"]),
            supplier_tax_id=row.get("supplier_tax_id"),
        )


@dataclass(frozen=True)
class PayrollDetailRecord:
    """Per-employee payroll detail; only the withheld income tax is consumed."""

    income_tax_withheld: Decimal


@dataclass(frozen=True)
class PayrollRunRecord:
    """Snapshot of one payroll run with its detail rows."""

    period_start: date
    period_end: date
    status: str
    total_gross: Decimal
    details: tuple[PayrollDetailRecord, ...] = field(default_factory=tuple)

    def overlaps(self, start: date, end: date) -> bool:
        """True when the run's period intersects [start, end]."""
        return self.period_start <= end and self.period_end >= start

    def within(self, start: date, end: date) -> bool:
        """True when the whole run period lies inside [start, end]."""
        return start <= self.period_start and self.period_end <= end

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> PayrollRunRecord:
        return cls(
            period_start=_as_date(row["period_start"]),
            period_end=_as_date(row["period_end"]),
            status=str(row["status"]),
            total_gross=to_money(row.get("total_gross")),
            details=tuple(
                PayrollDetailRecord(income_tax_withheld=to_money(d.get("income_tax_withheld")))
                for d in row.get("details", ())
            ),
        )


class SalesDocumentSource(Protocol):
    """Read-only access to an organization's sales documents."""

    def list_sales_documents(
        self,
        organization_id: UUID,
        start_date: date,
        end_date: date,
        statuses: frozenset[str],
    ) -> Iterable[SalesDocumentRecord]:
        ...


class ExpenseSource(Protocol):
    """Read-only access to an organization's expense records."""

    def list_expenses(
        self,
        organization_id: UUID,
        start_date: date,
        end_date: date,
        statuses: frozenset[str],
    ) -> Iterable[ExpenseRecord]:
        ...


class PayrollSource(Protocol):
    """Read-only access to payroll runs overlapping a date range."""

    def list_payroll_runs(
        self,
        organization_id: UUID,
        start_date: date,
        end_date: date,
        statuses: frozenset[str],
    ) -> Iterable[PayrollRunRecord]:
        ...


class PermissionChecker(Protocol):
    """Capability check: ``(allowed, reason)``; reason is empty when allowed."""

    def check(self, context: RequestContext, permission: str) -> tuple[bool, str]:
        ...


class AuditSink(Protocol):
    """Fire-and-forget audit trail."""

    def record(
        self,
        context: RequestContext,
        action: str,
        entity_type: str,
        entity_id: str | None,
        summary: str,
        structured_context: Mapping[str, Any] | None = None,
    ) -> None:
        ...


class ReadViewCache(Protocol):
    """Memo of derived read views, invalidated per organization on mutation."""

    def get(self, organization_id: UUID, view: str, params: tuple) -> Any | None:
        ...

    def put(self, organization_id: UUID, view: str, params: tuple, value: Any) -> None:
        ...

    def invalidate_organization(self, organization_id: UUID) -> int:
        ...
