"""
Fiscal Kernel - double-entry ledger core

A multi-tenant bookkeeping kernel with:
- Double-entry validation at write time
- Organization-scoped chart of accounts with acyclic parent links
- Derived general ledger and trial balance (no stored balances)
- Fire-and-forget audit trail
- Tagged success/failure results for every public operation
"""

__version__ = "0.1.0"
