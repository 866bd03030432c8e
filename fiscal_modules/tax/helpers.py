"""
Tax Helpers -- Pure statutory arithmetic for F-07, F-11 and F-14.

Responsibility:
    Turn already-filtered upstream records into the figures of each form.
    Filtering by status and date happens in ``FilingService``; these
    functions only do arithmetic.

Architecture:
    fiscal_modules -- thin glue over the kernel (this layer).
    Every function is pure: no I/O, no side effects, no database.

Invariants:
    - All inputs and outputs are ``Decimal`` -- NEVER ``float``.
    - Every intermediate monetary value is rounded to cents right after the
      operation that produces it, with the configured rounding mode.
    - Payable amounts are floored at zero.

Audit relevance:
    The last cent of each form depends on when rounding happens.  The order
    of operations here mirrors the statutory form line by line.
"""

from __future__ import annotations

import calendar
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from fiscal_kernel.db.types import MONEY_DECIMAL_PLACES, round_money
from fiscal_kernel.domain.collaborators import (
    ExpenseRecord,
    PayrollRunRecord,
    SalesDocumentRecord,
)
from fiscal_modules.tax.models import ZERO, F07Figures, F11Figures, F14Figures


def _r(value: Decimal, rounding: str) -> Decimal:
    return round_money(value, MONEY_DECIMAL_PLACES, rounding)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last calendar day of a month."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def year_bounds(year: int) -> tuple[date, date]:
    return date(year, 1, 1), date(year, 12, 31)


def split_tax_inclusive(
    amount: Decimal,
    vat_rate: Decimal,
    rounding: str = ROUND_HALF_UP,
) -> tuple[Decimal, Decimal]:
    """
    Back out the tax-exclusive base and the tax from a tax-inclusive amount.

    Postconditions:
        - ``base = round(amount / (1 + vat_rate))``
        - ``tax = round(amount - base)``
    """
    base = _r(amount / (Decimal("1") + vat_rate), rounding)
    tax = _r(amount - base, rounding)
    return base, tax


def compute_f07(
    sales: Iterable[SalesDocumentRecord],
    expenses: Iterable[ExpenseRecord],
    vat_rate: Decimal,
    rounding: str = ROUND_HALF_UP,
) -> F07Figures:
    """
    Monthly VAT declaration.

    Sales figures are summed as issued (tax was computed on each document).
    Expenses carrying a supplier tax id are tax-inclusive purchases whose tax
    is creditable; the rest are exempt purchases.
    """
    taxed_sales = exempt_sales = vat_debit = vat_withheld = ZERO
    for doc in sales:
        taxed_sales += doc.taxed_base
        exempt_sales += doc.exempt_base
        vat_debit += doc.tax_collected
        vat_withheld += doc.tax_withheld

    taxed_purchases = exempt_purchases = vat_credit = ZERO
    for expense in expenses:
        if expense.supplier_tax_id:
            base, tax = split_tax_inclusive(expense.amount, vat_rate, rounding)
            taxed_purchases += base
            vat_credit += tax
        else:
            exempt_purchases += expense.amount

    vat_debit = _r(vat_debit, rounding)
    vat_credit = _r(vat_credit, rounding)
    vat_withheld = _r(vat_withheld, rounding)
    vat_payable = max(ZERO, _r(vat_debit - vat_credit - vat_withheld, rounding))

    return F07Figures(
        taxed_sales=_r(taxed_sales, rounding),
        exempt_sales=_r(exempt_sales, rounding),
        vat_debit=vat_debit,
        vat_withheld=vat_withheld,
        vat_perceived=ZERO,
        taxed_purchases=_r(taxed_purchases, rounding),
        exempt_purchases=_r(exempt_purchases, rounding),
        vat_credit=vat_credit,
        vat_payable=vat_payable,
    )


def gross_income(sales: Iterable[SalesDocumentRecord], rounding: str = ROUND_HALF_UP) -> Decimal:
    """Taxed + exempt + non-subject bases of the given documents."""
    total = sum(
        (doc.taxed_base + doc.exempt_base + doc.non_subject_base for doc in sales),
        ZERO,
    )
    return _r(total, rounding)


def compute_f11(
    sales: Iterable[SalesDocumentRecord],
    payroll_runs: Iterable[PayrollRunRecord],
    advance_rate: Decimal,
    rounding: str = ROUND_HALF_UP,
) -> F11Figures:
    """Monthly advance payment on gross income plus employee income tax withheld."""
    income = gross_income(sales, rounding)
    advance = _r(income * advance_rate, rounding)

    withheld = sum(
        (detail.income_tax_withheld for run in payroll_runs for detail in run.details),
        ZERO,
    )
    withheld = _r(withheld, rounding)

    return F11Figures(
        gross_income=income,
        advance_payment=advance,
        employee_income_tax_withheld=withheld,
        third_party_income_tax_withheld=ZERO,
        total_payable=_r(advance + withheld, rounding),
    )


def deductible_costs(
    expenses: Iterable[ExpenseRecord],
    payroll_runs: Iterable[PayrollRunRecord],
    rounding: str = ROUND_HALF_UP,
) -> Decimal:
    """Approved expense amounts plus payroll gross for the year."""
    total = sum((e.amount for e in expenses), ZERO)
    total += sum((run.total_gross for run in payroll_runs), ZERO)
    return _r(total, rounding)


def compute_f14(
    annual_income: Decimal,
    deductible: Decimal,
    accumulated_advances: Decimal,
    corporate_rate: Decimal,
    rounding: str = ROUND_HALF_UP,
) -> F14Figures:
    """
    Annual income tax.

    Postconditions:
        - ``taxable_income = max(0, income - costs)``
        - ``annual_income_tax = round(taxable_income * rate)``
        - ``balance_due = max(0, annual_income_tax - advances)``
    """
    income = _r(annual_income, rounding)
    costs = _r(deductible, rounding)
    advances = _r(accumulated_advances, rounding)

    taxable = max(ZERO, _r(income - costs, rounding))
    annual_tax = _r(taxable * corporate_rate, rounding)
    balance_due = max(ZERO, _r(annual_tax - advances, rounding))

    return F14Figures(
        annual_income=income,
        deductible_costs=costs,
        taxable_income=taxable,
        annual_income_tax=annual_tax,
        accumulated_advances=advances,
        balance_due=balance_due,
    )
