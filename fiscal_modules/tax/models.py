"""
Tax Domain Models.

Responsibility:
    Frozen dataclass DTOs for statutory filings: the form and status enums,
    the computed figures of each form, the filing view returned to callers,
    and the dashboard statistics.

Architecture:
    fiscal_modules -- thin glue over the kernel (this layer).
    Pure data containers with no I/O and no ORM coupling.

Invariants:
    - All models are ``frozen=True``.
    - All monetary fields use ``Decimal`` -- NEVER ``float``.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

ZERO = Decimal("0.00")


class FormType(str, Enum):
    """Statutory filing forms."""

    F07 = "F-07"  # monthly VAT declaration
    F11 = "F-11"  # monthly advance income tax + payroll withholding
    F14 = "F-14"  # annual income tax


class FilingStatus(str, Enum):
    """Filing lifecycle states; transitions live in ``workflows.py``."""

    DRAFT = "draft"
    CALCULATED = "calculated"
    FILED = "filed"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


# Recomputation may overwrite these; FILED/ACCEPTED are locked.
RECOMPUTABLE_STATUSES = frozenset(
    {FilingStatus.DRAFT, FilingStatus.CALCULATED, FilingStatus.REJECTED}
)
DELETABLE_STATUSES = frozenset({FilingStatus.DRAFT, FilingStatus.CALCULATED})
PENDING_STATUSES = frozenset({FilingStatus.DRAFT, FilingStatus.CALCULATED})
SUBMITTED_STATUSES = frozenset({FilingStatus.FILED, FilingStatus.ACCEPTED})


@dataclass(frozen=True)
class F07Figures:
    """Monthly VAT declaration."""

    taxed_sales: Decimal = ZERO
    exempt_sales: Decimal = ZERO
    vat_debit: Decimal = ZERO
    vat_withheld: Decimal = ZERO
    vat_perceived: Decimal = ZERO
    taxed_purchases: Decimal = ZERO
    exempt_purchases: Decimal = ZERO
    vat_credit: Decimal = ZERO
    vat_payable: Decimal = ZERO

    @property
    def total_payable(self) -> Decimal:
        return self.vat_payable


@dataclass(frozen=True)
class F11Figures:
    """Monthly advance payment and income tax withheld."""

    gross_income: Decimal = ZERO
    advance_payment: Decimal = ZERO
    employee_income_tax_withheld: Decimal = ZERO
    third_party_income_tax_withheld: Decimal = ZERO
    total_payable: Decimal = ZERO


@dataclass(frozen=True)
class F14Figures:
    """Annual income tax."""

    annual_income: Decimal = ZERO
    deductible_costs: Decimal = ZERO
    taxable_income: Decimal = ZERO
    annual_income_tax: Decimal = ZERO
    accumulated_advances: Decimal = ZERO
    balance_due: Decimal = ZERO

    @property
    def total_payable(self) -> Decimal:
        return self.balance_due


@dataclass(frozen=True)
class TaxFilingView:
    """A filing as returned by FilingService."""

    id: UUID
    organization_id: UUID
    form_type: FormType
    period_year: int
    period_month: int | None
    status: FilingStatus
    # F-07
    vat_debit: Decimal
    vat_credit: Decimal
    vat_withheld: Decimal
    vat_perceived: Decimal
    vat_payable: Decimal
    taxed_sales: Decimal
    exempt_sales: Decimal
    taxed_purchases: Decimal
    exempt_purchases: Decimal
    # F-11
    gross_income: Decimal
    advance_payment: Decimal
    employee_income_tax_withheld: Decimal
    third_party_income_tax_withheld: Decimal
    # F-14
    annual_income: Decimal
    deductible_costs: Decimal
    taxable_income: Decimal
    annual_income_tax: Decimal
    accumulated_advances: Decimal
    balance_due: Decimal
    # All forms
    total_payable: Decimal
    filed_at: datetime | None = None
    filing_reference: str | None = None
    notes: str | None = None

    @property
    def is_locked(self) -> bool:
        return self.status in SUBMITTED_STATUSES


@dataclass(frozen=True)
class TaxStats:
    """Dashboard counters over all filings of an organization."""

    total_filings: int
    pending_filings: int
    total_vat_paid: Decimal
    total_advance_payments: Decimal
    current_year_filings: int
