"""
fiscal_config -- packaged statutory defaults.

Responsibility:
    Provides the statutory rates and the standard chart of accounts shipped
    with the package.  Files are parsed once per process and cached; tests
    may pass an explicit path to load an alternative file.

Architecture position:
    Configuration.  Sits beside ``fiscal_kernel``; the tax module and the
    Account Registry read from here, never from the YAML files.

Failure modes:
    - ``FileNotFoundError`` -- explicit path does not exist.
    - ``ValueError`` / ``KeyError`` -- malformed file.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from fiscal_config.loader import load_chart_of_accounts, load_statutory_rates
from fiscal_config.schema import ChartAccountDef, ChartOfAccountsDef, StatutoryRates

_logger = logging.getLogger("fiscal_kernel.config")

DEFAULTS_DIR = Path(__file__).parent / "defaults"
STATUTORY_FILE = DEFAULTS_DIR / "statutory.yaml"
CHART_FILE = DEFAULTS_DIR / "chart_of_accounts.yaml"


@lru_cache(maxsize=8)
def _statutory_rates(path: Path) -> StatutoryRates:
    rates = load_statutory_rates(path)
    _logger.info(
        "statutory_rates_loaded",
        extra={
            "config_name": rates.name,
            "config_version": rates.version,
            "vat_rate": str(rates.vat_rate),
            "rounding": rates.rounding,
        },
    )
    return rates


@lru_cache(maxsize=8)
def _chart(path: Path) -> ChartOfAccountsDef:
    chart = load_chart_of_accounts(path)
    _logger.info(
        "chart_of_accounts_loaded",
        extra={
            "config_name": chart.name,
            "config_version": chart.version,
            "account_count": len(chart.accounts),
        },
    )
    return chart


def get_statutory_rates(path: Path | None = None) -> StatutoryRates:
    """Statutory rates from ``path`` or the packaged default."""
    return _statutory_rates(Path(path) if path else STATUTORY_FILE)


def get_standard_chart(path: Path | None = None) -> ChartOfAccountsDef:
    """Standard chart of accounts from ``path`` or the packaged default."""
    return _chart(Path(path) if path else CHART_FILE)


__all__ = [
    "CHART_FILE",
    "ChartAccountDef",
    "ChartOfAccountsDef",
    "STATUTORY_FILE",
    "StatutoryRates",
    "get_standard_chart",
    "get_statutory_rates",
]
