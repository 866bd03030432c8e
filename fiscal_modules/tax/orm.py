"""
Tax ORM Persistence Model (``fiscal_modules.tax.orm``).

Responsibility:
    SQLAlchemy model for statutory filings.  ``TaxFilingModel`` carries the
    figures of all three forms; fields that do not belong to a row's form
    stay zero.

Architecture position:
    **Modules layer** -- persistence companion to ``fiscal_modules.tax.models``.
    Inherits from ``TrackedBase`` (kernel DB base) which provides:
    id (UUID PK, auto-generated), created_at, updated_at,
    created_by_id (NOT NULL UUID), updated_by_id (nullable UUID).

Invariants enforced:
    - At most one filing per (organization, form, year, month): two partial
      unique indexes, one for monthly forms (month NOT NULL) and one for the
      annual form (month NULL), because NULLs never collide in a plain
      unique constraint.
    - All monetary fields use Decimal (maps to Numeric(38,9)) -- NEVER float.
    - Enum fields stored as String(20) containing the enum .value string.

Audit relevance:
    ``filed_at`` and ``filing_reference`` record the submission to the tax
    authority.  Rows are only written by FilingService.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import DateTime, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from fiscal_kernel.db.base import TrackedBase, UUIDString
from fiscal_modules.tax.models import (
    ZERO,
    F07Figures,
    F11Figures,
    F14Figures,
    FilingStatus,
    FormType,
    TaxFilingView,
)


def _money() -> Mapped[Decimal]:
    return mapped_column(nullable=False, default=ZERO)


class TaxFilingModel(TrackedBase):
    """
    ORM model for ``TaxFilingView`` -- one statutory filing.

    Contract:
        (organization_id, form_type, period_year, period_month) is unique;
        period_month is NULL exactly for F-14.

    Guarantees:
        - ``status`` stores the FilingStatus .value string.
        - ``apply_*`` methods overwrite every figure of their form in one
          step, so a row never mixes two computations.
    """

    __tablename__ = "tax_filings"

    __table_args__ = (
        Index(
            "uq_tax_filing_monthly",
            "organization_id",
            "form_type",
            "period_year",
            "period_month",
            unique=True,
            sqlite_where=text("period_month IS NOT NULL"),
            postgresql_where=text("period_month IS NOT NULL"),
        ),
        Index(
            "uq_tax_filing_annual",
            "organization_id",
            "form_type",
            "period_year",
            unique=True,
            sqlite_where=text("period_month IS NULL"),
            postgresql_where=text("period_month IS NULL"),
        ),
        Index("idx_tax_filing_org_status", "organization_id", "status"),
    )

    organization_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    form_type: Mapped[str] = mapped_column(String(10), nullable=False)
    period_year: Mapped[int] = mapped_column(Integer, nullable=False)
    period_month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=FilingStatus.DRAFT.value
    )

    # F-07
    vat_debit: Mapped[Decimal] = _money()
    vat_credit: Mapped[Decimal] = _money()
    vat_withheld: Mapped[Decimal] = _money()
    vat_perceived: Mapped[Decimal] = _money()
    vat_payable: Mapped[Decimal] = _money()
    taxed_sales: Mapped[Decimal] = _money()
    exempt_sales: Mapped[Decimal] = _money()
    taxed_purchases: Mapped[Decimal] = _money()
    exempt_purchases: Mapped[Decimal] = _money()

    # F-11
    gross_income: Mapped[Decimal] = _money()
    advance_payment: Mapped[Decimal] = _money()
    employee_income_tax_withheld: Mapped[Decimal] = _money()
    third_party_income_tax_withheld: Mapped[Decimal] = _money()

    # F-14
    annual_income: Mapped[Decimal] = _money()
    deductible_costs: Mapped[Decimal] = _money()
    taxable_income: Mapped[Decimal] = _money()
    annual_income_tax: Mapped[Decimal] = _money()
    accumulated_advances: Mapped[Decimal] = _money()
    balance_due: Mapped[Decimal] = _money()

    total_payable: Mapped[Decimal] = _money()

    filed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    filing_reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<TaxFiling {self.form_type} {self.period_year}-{self.period_month} "
            f"{self.status}>"
        )

    def apply_f07(self, figures: F07Figures) -> None:
        self.vat_debit = figures.vat_debit
        self.vat_credit = figures.vat_credit
        self.vat_withheld = figures.vat_withheld
        self.vat_perceived = figures.vat_perceived
        self.vat_payable = figures.vat_payable
        self.taxed_sales = figures.taxed_sales
        self.exempt_sales = figures.exempt_sales
        self.taxed_purchases = figures.taxed_purchases
        self.exempt_purchases = figures.exempt_purchases
        self.total_payable = figures.total_payable

    def apply_f11(self, figures: F11Figures) -> None:
        self.gross_income = figures.gross_income
        self.advance_payment = figures.advance_payment
        self.employee_income_tax_withheld = figures.employee_income_tax_withheld
        self.third_party_income_tax_withheld = figures.third_party_income_tax_withheld
        self.total_payable = figures.total_payable

    def apply_f14(self, figures: F14Figures) -> None:
        self.annual_income = figures.annual_income
        self.deductible_costs = figures.deductible_costs
        self.taxable_income = figures.taxable_income
        self.annual_income_tax = figures.annual_income_tax
        self.accumulated_advances = figures.accumulated_advances
        self.balance_due = figures.balance_due
        self.total_payable = figures.total_payable

    def to_dto(self) -> TaxFilingView:
        return TaxFilingView(
            id=self.id,
            organization_id=self.organization_id,
            form_type=FormType(self.form_type),
            period_year=self.period_year,
            period_month=self.period_month,
            status=FilingStatus(self.status),
            vat_debit=self.vat_debit,
            vat_credit=self.vat_credit,
            vat_withheld=self.vat_withheld,
            vat_perceived=self.vat_perceived,
            vat_payable=self.vat_payable,
            taxed_sales=self.taxed_sales,
            exempt_sales=self.exempt_sales,
            taxed_purchases=self.taxed_purchases,
            exempt_purchases=self.exempt_purchases,
            gross_income=self.gross_income,
            advance_payment=self.advance_payment,
            employee_income_tax_withheld=self.employee_income_tax_withheld,
            third_party_income_tax_withheld=self.third_party_income_tax_withheld,
            annual_income=self.annual_income,
            deductible_costs=self.deductible_costs,
            taxable_income=self.taxable_income,
            annual_income_tax=self.annual_income_tax,
            accumulated_advances=self.accumulated_advances,
            balance_due=self.balance_due,
            total_payable=self.total_payable,
            filed_at=self.filed_at,
            filing_reference=self.filing_reference,
            notes=self.notes,
        )
