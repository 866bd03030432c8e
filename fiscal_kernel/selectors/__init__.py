"""Selectors for the fiscal kernel (read side)."""

from fiscal_kernel.selectors.account_selector import AccountSelector
from fiscal_kernel.selectors.journal_selector import JournalSelector, entry_to_view
from fiscal_kernel.selectors.ledger_selector import LedgerSelector, build_trial_balance

__all__ = [
    "AccountSelector",
    "JournalSelector",
    "LedgerSelector",
    "build_trial_balance",
    "entry_to_view",
]
