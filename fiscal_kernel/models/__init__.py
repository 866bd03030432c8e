"""ORM models for the fiscal kernel."""

from fiscal_kernel.models.account import Account, AccountType
from fiscal_kernel.models.audit_log import AuditAction, AuditLogRecord
from fiscal_kernel.models.journal import JournalEntry, JournalLine

__all__ = [
    "Account",
    "AccountType",
    "AuditAction",
    "AuditLogRecord",
    "JournalEntry",
    "JournalLine",
]
