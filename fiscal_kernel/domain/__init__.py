"""
Pure domain layer.

Value objects, protocols and pure rules with NO dependencies on sessions,
the database, or the wall clock (the Clock abstraction is injected).
"""

from fiscal_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from fiscal_kernel.domain.collaborators import (
    AuditSink,
    ExpenseRecord,
    ExpenseSource,
    PayrollDetailRecord,
    PayrollRunRecord,
    PayrollSource,
    PermissionChecker,
    ReadViewCache,
    SalesDocumentRecord,
    SalesDocumentSource,
)
from fiscal_kernel.domain.context import RequestContext, Role
from fiscal_kernel.domain.double_entry import BALANCE_TOLERANCE, validate_entry_lines
from fiscal_kernel.domain.dtos import (
    AccountView,
    JournalEntryPage,
    JournalEntryView,
    JournalLineInput,
    JournalLineView,
    LedgerEntry,
    TrialBalance,
    TrialBalanceRow,
)
from fiscal_kernel.domain.result import OperationResult
from fiscal_kernel.domain.workflow import Transition, Workflow

__all__ = [
    "AccountView",
    "AuditSink",
    "BALANCE_TOLERANCE",
    "Clock",
    "DeterministicClock",
    "ExpenseRecord",
    "ExpenseSource",
    "JournalEntryPage",
    "JournalEntryView",
    "JournalLineInput",
    "JournalLineView",
    "LedgerEntry",
    "OperationResult",
    "PayrollDetailRecord",
    "PayrollRunRecord",
    "PayrollSource",
    "PermissionChecker",
    "ReadViewCache",
    "RequestContext",
    "Role",
    "SalesDocumentRecord",
    "SalesDocumentSource",
    "SystemClock",
    "Transition",
    "TrialBalance",
    "TrialBalanceRow",
    "Workflow",
    "validate_entry_lines",
]
