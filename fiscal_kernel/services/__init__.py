"""Write and query services for the fiscal kernel."""

from fiscal_kernel.services.account_registry import (
    AccountDeleteOutcome,
    AccountRegistry,
)
from fiscal_kernel.services.audit_log_service import AuditLogService
from fiscal_kernel.services.base import BaseService, TransactionalService
from fiscal_kernel.services.journal_store import JournalStore
from fiscal_kernel.services.ledger_query_service import LedgerQueryService
from fiscal_kernel.services.sequence_service import SequenceCounter, SequenceService

__all__ = [
    "AccountDeleteOutcome",
    "AccountRegistry",
    "AuditLogService",
    "BaseService",
    "JournalStore",
    "LedgerQueryService",
    "SequenceCounter",
    "SequenceService",
    "TransactionalService",
]
