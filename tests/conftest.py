"""
Pytest fixtures for the fiscal kernel test suite.

Provides:
- In-memory SQLite sessions (one fresh database per test)
- Request contexts for each role, in two organizations
- Fake upstream sources for sales documents, expenses and payroll runs
- Captured structured logs

Environment Variables:
- DATABASE_URL: run against another database (e.g. PostgreSQL) instead of
  in-memory SQLite.  Tables are created and dropped around each test.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO
from uuid import UUID, uuid4

import pytest

from fiscal_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from fiscal_kernel.domain.clock import DeterministicClock
from fiscal_kernel.domain.collaborators import (
    ExpenseRecord,
    PayrollRunRecord,
    SalesDocumentRecord,
)
from fiscal_kernel.domain.context import RequestContext, Role
from fiscal_kernel.domain.dtos import JournalLineInput
from fiscal_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from fiscal_kernel.models.account import Account, AccountType
from fiscal_kernel.services.account_registry import AccountRegistry
from fiscal_kernel.services.audit_log_service import AuditLogService
from fiscal_kernel.services.journal_store import JournalStore
from fiscal_kernel.services.ledger_query_service import LedgerQueryService
from fiscal_modules.tax.config import TaxConfig
from fiscal_modules.tax.service import FilingService
from fiscal_services.rbac_authority import RolePermissionChecker
from fiscal_services.read_cache import LedgerViewCache

DEFAULT_DATABASE_URL = "sqlite://"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture fiscal_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, journal_store):
            journal_store.create_entry(...)
            logs = captured_logs()
            assert any(r["message"] == "journal_entry_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("fiscal_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def engine():
    eng = init_engine_from_url(os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL))
    create_tables()
    yield eng
    drop_tables()
    reset_engine()


@pytest.fixture
def session(engine):
    s = get_session()
    yield s
    s.rollback()
    s.close()


# =============================================================================
# Identity fixtures
# =============================================================================


@pytest.fixture
def org_id() -> UUID:
    return uuid4()


@pytest.fixture
def other_org_id() -> UUID:
    return uuid4()


@pytest.fixture
def test_actor_id() -> UUID:
    return uuid4()


@pytest.fixture
def admin_ctx(org_id, test_actor_id) -> RequestContext:
    return RequestContext(org_id, test_actor_id, Role.ADMIN.value)


@pytest.fixture
def accountant_ctx(org_id, test_actor_id) -> RequestContext:
    return RequestContext(org_id, test_actor_id, Role.ACCOUNTANT.value)


@pytest.fixture
def employee_ctx(org_id, test_actor_id) -> RequestContext:
    return RequestContext(org_id, test_actor_id, Role.EMPLOYEE.value)


@pytest.fixture
def other_admin_ctx(other_org_id, test_actor_id) -> RequestContext:
    return RequestContext(other_org_id, test_actor_id, Role.ADMIN.value)


# =============================================================================
# Collaborators
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(datetime(2024, 6, 15, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def permissions() -> RolePermissionChecker:
    return RolePermissionChecker()


@pytest.fixture
def audit_sink(session, deterministic_clock) -> AuditLogService:
    return AuditLogService(session, clock=deterministic_clock)


@pytest.fixture
def view_cache(deterministic_clock) -> LedgerViewCache:
    return LedgerViewCache(clock=deterministic_clock, ttl_seconds=300)


@dataclass
class FakeUpstream:
    """In-memory stand-in for the sales, expense and payroll subsystems.

    Returns every stored record regardless of filters so the service's own
    status/date filtering is exercised.
    """

    sales: list[SalesDocumentRecord] = field(default_factory=list)
    expenses: list[ExpenseRecord] = field(default_factory=list)
    payroll_runs: list[PayrollRunRecord] = field(default_factory=list)
    calls: list[tuple] = field(default_factory=list)

    def list_sales_documents(self, organization_id, start_date, end_date, statuses):
        self.calls.append(("sales", organization_id, start_date, end_date, statuses))
        return list(self.sales)

    def list_expenses(self, organization_id, start_date, end_date, statuses):
        self.calls.append(("expenses", organization_id, start_date, end_date, statuses))
        return list(self.expenses)

    def list_payroll_runs(self, organization_id, start_date, end_date, statuses):
        self.calls.append(("payroll", organization_id, start_date, end_date, statuses))
        return list(self.payroll_runs)


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def account_registry(session, permissions, audit_sink, deterministic_clock, view_cache):
    return AccountRegistry(
        session,
        permissions,
        audit=audit_sink,
        clock=deterministic_clock,
        cache=view_cache,
    )


@pytest.fixture
def journal_store(session, permissions, audit_sink, deterministic_clock, view_cache):
    return JournalStore(
        session,
        permissions,
        audit=audit_sink,
        clock=deterministic_clock,
        cache=view_cache,
    )


@pytest.fixture
def ledger_queries(session, permissions, deterministic_clock, view_cache):
    return LedgerQueryService(
        session, permissions, clock=deterministic_clock, cache=view_cache
    )


@pytest.fixture
def filing_service(session, permissions, audit_sink, deterministic_clock, upstream):
    return FilingService(
        session,
        permissions,
        sales_source=upstream,
        expense_source=upstream,
        payroll_source=upstream,
        audit=audit_sink,
        clock=deterministic_clock,
        config=TaxConfig(),
    )


# =============================================================================
# Data helpers
# =============================================================================


@pytest.fixture
def create_account(session, test_actor_id):
    """Insert an account row directly; returns the ORM instance."""

    def _create(
        organization_id: UUID,
        code: str,
        name: str | None = None,
        account_type: AccountType = AccountType.ASSET,
        is_active: bool = True,
        parent_id: UUID | None = None,
    ) -> Account:
        account = Account(
            organization_id=organization_id,
            code=code,
            name=name or f"Account {code}",
            account_type=account_type.value,
            is_active=is_active,
            parent_id=parent_id,
            created_by_id=test_actor_id,
        )
        session.add(account)
        session.flush()
        return account

    return _create


@pytest.fixture
def standard_accounts(session, org_id, create_account):
    """Cash, bank, receivables, payables, equity, sales and expense accounts."""
    accounts = {
        "cash": create_account(org_id, "110101", "Cash", AccountType.ASSET),
        "bank": create_account(org_id, "110102", "Bank", AccountType.ASSET),
        "receivables": create_account(org_id, "110301", "Receivables", AccountType.ASSET),
        "payables": create_account(org_id, "210101", "Payables", AccountType.LIABILITY),
        "equity": create_account(org_id, "310101", "Share capital", AccountType.EQUITY),
        "sales": create_account(org_id, "510101", "Sales", AccountType.REVENUE),
        "expense": create_account(org_id, "410101", "Operating expenses", AccountType.EXPENSE),
    }
    session.commit()
    return accounts


def line(account, debit="0", credit="0", description=None) -> JournalLineInput:
    """Shorthand for a JournalLineInput from an account row and string amounts."""
    return JournalLineInput(
        account_id=account.id,
        debit=Decimal(debit),
        credit=Decimal(credit),
        description=description,
    )


@pytest.fixture
def make_line():
    return line


@pytest.fixture
def posted_entry(journal_store, admin_ctx, standard_accounts, make_line):
    """Create and post an entry; returns the posted JournalEntryView."""

    def _post(entry_date: date, debit_account: str, credit_account: str, amount: str):
        created = journal_store.create_entry(
            admin_ctx,
            entry_date,
            f"{debit_account} / {credit_account}",
            [
                make_line(standard_accounts[debit_account], debit=amount),
                make_line(standard_accounts[credit_account], credit=amount),
            ],
        ).unwrap()
        return journal_store.set_posted(admin_ctx, created.id, True).unwrap()

    return _post
