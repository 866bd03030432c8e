"""
Statutory configuration schema.

Frozen dataclasses for the packaged defaults.  YAML files are parsed into
these types by ``fiscal_config.loader``; nothing else in the code base reads
the YAML directly.
"""

from __future__ import annotations

import decimal
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

# Rounding modes accepted in configuration, by their ``decimal`` module name.
ROUNDING_MODES = frozenset(
    {
        decimal.ROUND_HALF_UP,
        decimal.ROUND_HALF_EVEN,
        decimal.ROUND_HALF_DOWN,
        decimal.ROUND_UP,
        decimal.ROUND_DOWN,
        decimal.ROUND_CEILING,
        decimal.ROUND_FLOOR,
    }
)

ACCOUNT_TYPES = frozenset({"asset", "liability", "equity", "revenue", "expense"})


# ---------------------------------------------------------------------------
# Statutory rates
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StatutoryRates:
    """Tax rates, rounding convention and filing status filters."""

    vat_rate: Decimal = Decimal("0.13")
    advance_income_tax_rate: Decimal = Decimal("0.0175")
    corporate_income_tax_rate: Decimal = Decimal("0.30")
    rounding: str = decimal.ROUND_HALF_UP
    sales_document_statuses: frozenset[str] = frozenset(
        {"APPROVED", "SIGNED", "TRANSMITTED"}
    )
    expense_statuses: frozenset[str] = frozenset({"APPROVED"})
    payroll_run_statuses: frozenset[str] = frozenset({"APPROVED", "PAID"})
    advance_filing_statuses: frozenset[str] = frozenset(
        {"calculated", "filed", "accepted"}
    )
    effective_from: date | None = None
    name: str = "default"
    version: int = 1


# ---------------------------------------------------------------------------
# Chart of accounts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChartAccountDef:
    """One account of the standard chart."""

    code: str
    name: str
    account_type: str


@dataclass(frozen=True)
class ChartOfAccountsDef:
    """The standard chart; ``levels`` are the code lengths of each tree level."""

    name: str
    version: int
    levels: tuple[int, ...]
    accounts: tuple[ChartAccountDef, ...] = field(default_factory=tuple)

    def parent_code(self, code: str) -> str | None:
        """Code of the parent level for ``code``, or None at the root level."""
        shorter = [level for level in self.levels if level < len(code)]
        if not shorter:
            return None
        return code[: max(shorter)]
