"""
Tax Module.

Responsibility:
    Statutory filings over upstream sales, expense and payroll records:
    F-07 (monthly VAT), F-11 (monthly advance income tax and payroll
    withholding) and F-14 (annual income tax), with their filing lifecycle.

Architecture:
    fiscal_modules -- thin glue over the kernel (this layer).
    Arithmetic lives in ``helpers`` (pure); persistence in ``orm``; the
    transaction boundary, permissions and audit come from the kernel's
    ``TransactionalService``.

Invariants:
    - All monetary amounts use ``Decimal`` -- NEVER ``float``.
    - One filing per (organization, form, period).
    - FILED and ACCEPTED filings are never recomputed.

Failure modes:
    - ``TaxConfig.__post_init__`` raises ``ValueError`` for out-of-range
      rates or an unknown rounding mode.
    - Service operations return failed ``OperationResult`` values for
      invalid periods, refused transitions and unknown filings.
"""

from fiscal_modules.tax.config import TaxConfig
from fiscal_modules.tax.models import (
    F07Figures,
    F11Figures,
    F14Figures,
    FilingStatus,
    FormType,
    TaxFilingView,
    TaxStats,
)
from fiscal_modules.tax.service import FilingService
from fiscal_modules.tax.workflows import FILING_WORKFLOW

__all__ = [
    "F07Figures",
    "F11Figures",
    "F14Figures",
    "FILING_WORKFLOW",
    "FilingService",
    "FilingStatus",
    "FormType",
    "TaxConfig",
    "TaxFilingView",
    "TaxStats",
]
