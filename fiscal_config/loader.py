"""
Configuration Loader (``fiscal_config.loader``).

Responsibility
--------------
Loads the packaged YAML files and parses them into the frozen dataclasses
of ``fiscal_config.schema``.  Runtime callers use the getters in
``fiscal_config`` instead of calling this module directly.

Invariants enforced
-------------------
* All parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required fields.
* Rates are parsed as ``Decimal`` from their string form, never through
  ``float``.
* Chart codes are unique digit strings whose parent level is present.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Invalid rate, rounding mode or account type  -> ``ValueError``.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from fiscal_config.schema import (
    ACCOUNT_TYPES,
    ROUNDING_MODES,
    ChartAccountDef,
    ChartOfAccountsDef,
    StatutoryRates,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise ValueError(f"Cannot parse date from {value!r}")


def parse_decimal(value: Any, field_name: str) -> Decimal:
    """Parse a rate from a YAML string or int.  Floats are refused."""
    if isinstance(value, float):
        raise ValueError(
            f"{field_name} must be quoted in YAML to keep its exact decimal value, "
            f"got float {value!r}"
        )
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{field_name} is not a decimal: {value!r}") from exc


def parse_statutory_rates(data: dict[str, Any]) -> StatutoryRates:
    """
    Parse ``StatutoryRates`` from the statutory YAML mapping.

    Raises:
        KeyError: if ``rates`` or one of its three entries is missing.
        ValueError: for non-decimal rates or an unknown rounding mode.
    """
    rates = data["rates"]
    rounding = data.get("rounding", {})
    filings = data.get("filings", {})

    mode = rounding.get("mode", "ROUND_HALF_UP")
    if mode not in ROUNDING_MODES:
        raise ValueError(f"Unknown rounding mode: {mode!r}")

    defaults = StatutoryRates()
    return StatutoryRates(
        vat_rate=parse_decimal(rates["vat"], "rates.vat"),
        advance_income_tax_rate=parse_decimal(
            rates["advance_income_tax"], "rates.advance_income_tax"
        ),
        corporate_income_tax_rate=parse_decimal(
            rates["corporate_income_tax"], "rates.corporate_income_tax"
        ),
        rounding=mode,
        sales_document_statuses=frozenset(
            filings.get("sales_document_statuses", defaults.sales_document_statuses)
        ),
        expense_statuses=frozenset(
            filings.get("expense_statuses", defaults.expense_statuses)
        ),
        payroll_run_statuses=frozenset(
            filings.get("payroll_run_statuses", defaults.payroll_run_statuses)
        ),
        advance_filing_statuses=frozenset(
            filings.get("advance_filing_statuses", defaults.advance_filing_statuses)
        ),
        effective_from=(
            parse_date(data["effective_from"]) if data.get("effective_from") else None
        ),
        name=data.get("name", "default"),
        version=data.get("version", 1),
    )


def parse_chart_account(data: dict[str, Any]) -> ChartAccountDef:
    code = str(data["code"])
    if not code.isdigit():
        raise ValueError(f"Account code must be digits: {code!r}")
    account_type = str(data["type"]).lower()
    if account_type not in ACCOUNT_TYPES:
        raise ValueError(f"Unknown account type for {code}: {data['type']!r}")
    return ChartAccountDef(code=code, name=data["name"], account_type=account_type)


def parse_chart_of_accounts(data: dict[str, Any]) -> ChartOfAccountsDef:
    """
    Parse the standard chart.

    Raises:
        KeyError: if ``accounts`` is missing or an entry lacks a key.
        ValueError: on duplicate codes, a code length outside ``levels``,
            or an account whose parent is not defined before it.
    """
    levels = tuple(sorted(int(level) for level in data.get("levels", (1, 2, 4, 6))))
    accounts = tuple(parse_chart_account(a) for a in data["accounts"])

    chart = ChartOfAccountsDef(
        name=data.get("name", "standard"),
        version=data.get("version", 1),
        levels=levels,
        accounts=accounts,
    )

    seen: set[str] = set()
    for account in accounts:
        if account.code in seen:
            raise ValueError(f"Duplicate account code in chart: {account.code}")
        if len(account.code) not in levels:
            raise ValueError(
                f"Account code {account.code} does not match any level {levels}"
            )
        parent = chart.parent_code(account.code)
        if parent is not None and parent not in seen:
            raise ValueError(
                f"Account {account.code} has no parent account {parent} "
                "defined before it in chart"
            )
        seen.add(account.code)
    return chart


def load_statutory_rates(path: Path) -> StatutoryRates:
    return parse_statutory_rates(load_yaml_file(path))


def load_chart_of_accounts(path: Path) -> ChartOfAccountsDef:
    return parse_chart_of_accounts(load_yaml_file(path))
