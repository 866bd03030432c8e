"""
Tax Configuration Schema.

Statutory rates, rounding convention and the status filters applied to each
upstream source.  Defaults come from the packaged statutory YAML; override
at instantiation for tests or another jurisdiction:

    config = TaxConfig(vat_rate=Decimal("0.15"))
    config = TaxConfig.from_dict({"vat_rate": "0.15"})
"""

from dataclasses import dataclass, field, fields
from decimal import Decimal
from pathlib import Path
from typing import Any, Mapping, Self

from fiscal_config import get_statutory_rates
from fiscal_config.loader import parse_decimal
from fiscal_config.schema import ROUNDING_MODES
from fiscal_kernel.logging_config import get_logger

logger = get_logger("modules.tax.config")

_RATE_FIELDS = ("vat_rate", "advance_income_tax_rate", "corporate_income_tax_rate")
_STATUS_FIELDS = (
    "sales_document_statuses",
    "expense_statuses",
    "payroll_run_statuses",
    "advance_filing_statuses",
)


@dataclass(frozen=True)
class TaxConfig:
    """
    Configuration schema for the tax module.

    Field defaults are the statutory values; ``with_defaults()`` reads them
    from ``fiscal_config`` instead so a packaged rate change needs no code
    change.
    """

    # Rates
    vat_rate: Decimal = Decimal("0.13")
    advance_income_tax_rate: Decimal = Decimal("0.0175")
    corporate_income_tax_rate: Decimal = Decimal("0.30")

    # Rounding
    rounding: str = "ROUND_HALF_UP"

    # Upstream status filters
    sales_document_statuses: frozenset[str] = field(
        default_factory=lambda: frozenset({"APPROVED", "SIGNED", "TRANSMITTED"})
    )
    expense_statuses: frozenset[str] = field(
        default_factory=lambda: frozenset({"APPROVED"})
    )
    payroll_run_statuses: frozenset[str] = field(
        default_factory=lambda: frozenset({"APPROVED", "PAID"})
    )
    # F-11 filings whose advance payment counts toward F-14
    advance_filing_statuses: frozenset[str] = field(
        default_factory=lambda: frozenset({"calculated", "filed", "accepted"})
    )

    def __post_init__(self):
        for name in _RATE_FIELDS:
            rate = getattr(self, name)
            if not isinstance(rate, Decimal):
                raise ValueError(f"{name} must be Decimal, got {type(rate).__name__}")
            if rate < 0 or rate >= 1:
                raise ValueError(f"{name} must be in [0, 1), got {rate}")

        if self.rounding not in ROUNDING_MODES:
            raise ValueError(
                f"rounding must be one of {sorted(ROUNDING_MODES)}, got '{self.rounding}'"
            )

        for name in _STATUS_FIELDS:
            statuses = getattr(self, name)
            if not statuses:
                raise ValueError(f"{name} cannot be empty")
            object.__setattr__(self, name, frozenset(statuses))

        logger.debug(
            "tax_config_initialized",
            extra={
                "vat_rate": str(self.vat_rate),
                "advance_income_tax_rate": str(self.advance_income_tax_rate),
                "corporate_income_tax_rate": str(self.corporate_income_tax_rate),
                "rounding": self.rounding,
            },
        )

    @classmethod
    def with_defaults(cls, path: Path | None = None) -> Self:
        """Build from the packaged statutory YAML (or ``path``)."""
        rates = get_statutory_rates(path)
        return cls(
            vat_rate=rates.vat_rate,
            advance_income_tax_rate=rates.advance_income_tax_rate,
            corporate_income_tax_rate=rates.corporate_income_tax_rate,
            rounding=rates.rounding,
            sales_document_statuses=rates.sales_document_statuses,
            expense_statuses=rates.expense_statuses,
            payroll_run_statuses=rates.payroll_run_statuses,
            advance_filing_statuses=rates.advance_filing_statuses,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        """Build from a mapping; unknown keys raise ``ValueError``."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown tax config keys: {sorted(unknown)}")

        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            if key in _RATE_FIELDS:
                kwargs[key] = parse_decimal(value, key)
            elif key in _STATUS_FIELDS:
                kwargs[key] = frozenset(value)
            else:
                kwargs[key] = value
        return cls(**kwargs)
