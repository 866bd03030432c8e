"""
Fiscal Modules.

Thin orchestration layers over the Fiscal Kernel.
Each module contains:
- Domain models (the nouns)
- Pure calculation helpers
- Workflows (state machines)
- Configuration schemas (rates and filters)

Modules:
- Tax: statutory filings F-07 (VAT), F-11 (monthly advance income tax and
  payroll withholding), F-14 (annual income tax)
"""

from fiscal_modules import tax

__all__ = ["tax"]
