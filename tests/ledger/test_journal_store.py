"""
Tests for JournalStore (fiscal_kernel/services/journal_store.py).

Validates:
- Balanced entries are stored with sequential numbers per organization
- Unbalanced and malformed entries are refused with no row written
- Posted entries cannot be edited or deleted
- Account checks: foreign-organization and inactive accounts are refused
- Line write failure removes the orphaned header
- Audit rows and log events for every mutation
- Non-finite amounts are refused as invalid lines
- Cached views are dropped when the transaction commits or rolls back
- A failing audit sink never blocks the write
"""

from datetime import date
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from fiscal_kernel.exceptions import (
    EntryNotFoundError,
    EntryPostedError,
    InvalidAccountError,
    InvalidLineError,
    PermissionDeniedError,
    PersistenceError,
    StateError,
    UnbalancedEntryError,
    ValidationError,
)
from fiscal_kernel.models.account import AccountType
from fiscal_kernel.models.audit_log import AuditLogRecord
from fiscal_kernel.models.journal import JournalEntry, JournalLine
from fiscal_kernel.services.journal_store import JournalStore


def _entry_count(session, organization_id) -> int:
    return session.execute(
        select(func.count(JournalEntry.id)).where(
            JournalEntry.organization_id == organization_id
        )
    ).scalar_one()


# =============================================================================
# Create
# =============================================================================


class TestCreateEntry:

    def test_balanced_entry_accepted(
        self, journal_store, admin_ctx, standard_accounts, make_line
    ):
        result = journal_store.create_entry(
            admin_ctx,
            date(2024, 3, 1),
            "Cash sale",
            [
                make_line(standard_accounts["cash"], debit="500.00"),
                make_line(standard_accounts["sales"], credit="500.00"),
            ],
        )

        assert result.is_success, result.error_message
        entry = result.value
        assert entry.entry_number == 1
        assert entry.is_posted is False
        assert entry.total_debit == entry.total_credit == Decimal("500.00")
        assert [l.line_seq for l in entry.lines] == [1, 2]

    def test_off_by_one_cent_rejected(
        self, journal_store, admin_ctx, standard_accounts, make_line, session, org_id
    ):
        result = journal_store.create_entry(
            admin_ctx,
            date(2024, 3, 1),
            "Cash sale",
            [
                make_line(standard_accounts["cash"], debit="500.00"),
                make_line(standard_accounts["sales"], credit="499.99"),
            ],
        )

        assert not result.is_success
        assert isinstance(result.error, ValidationError)
        assert isinstance(result.error, UnbalancedEntryError)
        assert _entry_count(session, org_id) == 0

    def test_entry_numbers_increase_per_organization(
        self,
        journal_store,
        admin_ctx,
        other_admin_ctx,
        other_org_id,
        standard_accounts,
        create_account,
        make_line,
        session,
    ):
        cash = standard_accounts["cash"]
        sales = standard_accounts["sales"]
        first = journal_store.create_entry(
            admin_ctx, date(2024, 3, 1), "one",
            [make_line(cash, debit="1.00"), make_line(sales, credit="1.00")],
        ).unwrap()
        second = journal_store.create_entry(
            admin_ctx, date(2024, 2, 1), "two",
            [make_line(cash, debit="2.00"), make_line(sales, credit="2.00")],
        ).unwrap()

        foreign_cash = create_account(other_org_id, "110101", "Cash")
        foreign_sales = create_account(other_org_id, "510101", "Sales", AccountType.REVENUE)
        session.commit()
        foreign = journal_store.create_entry(
            other_admin_ctx, date(2024, 3, 1), "elsewhere",
            [make_line(foreign_cash, debit="3.00"), make_line(foreign_sales, credit="3.00")],
        ).unwrap()

        assert (first.entry_number, second.entry_number) == (1, 2)
        assert foreign.entry_number == 1

    def test_account_from_other_organization_refused(
        self,
        journal_store,
        admin_ctx,
        standard_accounts,
        create_account,
        other_org_id,
        make_line,
        session,
        org_id,
    ):
        foreign = create_account(other_org_id, "110101", "Foreign cash")
        session.commit()

        result = journal_store.create_entry(
            admin_ctx,
            date(2024, 3, 1),
            "Cross-tenant",
            [make_line(foreign, debit="10.00"), make_line(standard_accounts["sales"], credit="10.00")],
        )

        assert isinstance(result.error, InvalidAccountError)
        assert result.error.account_id == str(foreign.id)
        assert _entry_count(session, org_id) == 0

    def test_inactive_account_refused(
        self, journal_store, admin_ctx, org_id, create_account, standard_accounts, make_line, session
    ):
        dormant = create_account(org_id, "110199", "Dormant", is_active=False)
        session.commit()

        result = journal_store.create_entry(
            admin_ctx,
            date(2024, 3, 1),
            "Dormant",
            [make_line(dormant, debit="10.00"), make_line(standard_accounts["sales"], credit="10.00")],
        )

        assert isinstance(result.error, InvalidAccountError)
        assert "inactive" in result.error_message

    def test_unknown_account_refused(self, journal_store, admin_ctx, standard_accounts, make_line):
        ghost = type("Ghost", (), {"id": uuid4()})()
        result = journal_store.create_entry(
            admin_ctx,
            date(2024, 3, 1),
            "Ghost",
            [make_line(ghost, debit="10.00"), make_line(standard_accounts["sales"], credit="10.00")],
        )
        assert isinstance(result.error, InvalidAccountError)

    @pytest.mark.parametrize(
        "description,reference",
        [
            ("", None),
            ("   ", None),
            ("x" * 501, None),
            ("ok", "r" * 101),
        ],
    )
    def test_header_validation(
        self, journal_store, admin_ctx, standard_accounts, make_line, description, reference
    ):
        result = journal_store.create_entry(
            admin_ctx,
            date(2024, 3, 1),
            description,
            [
                make_line(standard_accounts["cash"], debit="1.00"),
                make_line(standard_accounts["sales"], credit="1.00"),
            ],
            reference_number=reference,
        )
        assert isinstance(result.error, ValidationError)

    def test_employee_cannot_create(
        self, journal_store, employee_ctx, standard_accounts, make_line, session, org_id
    ):
        result = journal_store.create_entry(
            employee_ctx,
            date(2024, 3, 1),
            "Not allowed",
            [
                make_line(standard_accounts["cash"], debit="1.00"),
                make_line(standard_accounts["sales"], credit="1.00"),
            ],
        )
        assert isinstance(result.error, PermissionDeniedError)
        assert result.error.permission == "ledger.create"
        assert _entry_count(session, org_id) == 0

    def test_permission_checked_before_validation(
        self, journal_store, employee_ctx
    ):
        result = journal_store.create_entry(employee_ctx, date(2024, 3, 1), "", [])
        assert isinstance(result.error, PermissionDeniedError)

    def test_create_is_audited_and_logged(
        self, journal_store, admin_ctx, standard_accounts, make_line, session, captured_logs
    ):
        entry = journal_store.create_entry(
            admin_ctx,
            date(2024, 3, 1),
            "Audited",
            [
                make_line(standard_accounts["cash"], debit="5.00"),
                make_line(standard_accounts["sales"], credit="5.00"),
            ],
            reference_number="INV-1",
        ).unwrap()

        audit = session.execute(
            select(AuditLogRecord).where(AuditLogRecord.entity_id == str(entry.id))
        ).scalars().all()
        assert [a.action for a in audit] == ["journal.create"]
        assert audit[0].context["reference_number"] == "INV-1"

        created = [r for r in captured_logs() if r["message"] == "journal_entry_created"]
        assert len(created) == 1
        assert created[0]["entry_id"] == str(entry.id)
        assert created[0]["organization_id"] == str(admin_ctx.organization_id)


# =============================================================================
# Update / post / delete
# =============================================================================


class TestEntryLifecycle:

    @pytest.fixture
    def draft(self, journal_store, admin_ctx, standard_accounts, make_line):
        return journal_store.create_entry(
            admin_ctx,
            date(2024, 3, 1),
            "Draft",
            [
                make_line(standard_accounts["cash"], debit="100.00"),
                make_line(standard_accounts["sales"], credit="100.00"),
            ],
        ).unwrap()

    def test_update_replaces_lines(
        self, journal_store, admin_ctx, draft, standard_accounts, make_line, session
    ):
        result = journal_store.update_entry(
            admin_ctx,
            draft.id,
            date(2024, 3, 2),
            "Reworked",
            [
                make_line(standard_accounts["bank"], debit="113.00"),
                make_line(standard_accounts["sales"], credit="100.00"),
                make_line(standard_accounts["payables"], credit="13.00"),
            ],
        )

        assert result.is_success, result.error_message
        updated = result.value
        assert updated.entry_number == draft.entry_number
        assert updated.description == "Reworked"
        assert len(updated.lines) == 3
        line_count = session.execute(
            select(func.count(JournalLine.id)).where(JournalLine.journal_entry_id == draft.id)
        ).scalar_one()
        assert line_count == 3

    def test_update_with_unbalanced_lines_keeps_original(
        self, journal_store, ledger_queries, admin_ctx, draft, standard_accounts, make_line
    ):
        result = journal_store.update_entry(
            admin_ctx,
            draft.id,
            date(2024, 3, 2),
            "Broken",
            [
                make_line(standard_accounts["cash"], debit="100.00"),
                make_line(standard_accounts["sales"], credit="10.00"),
            ],
        )

        assert isinstance(result.error, UnbalancedEntryError)
        stored = ledger_queries.get_entry(admin_ctx, draft.id).unwrap()
        assert stored.description == "Draft"
        assert stored.total_credit == Decimal("100.00")

    def test_post_and_unpost_keep_amounts(self, journal_store, admin_ctx, draft):
        posted = journal_store.set_posted(admin_ctx, draft.id, True).unwrap()
        assert posted.is_posted is True
        assert [(l.debit, l.credit) for l in posted.lines] == [
            (l.debit, l.credit) for l in draft.lines
        ]

        unposted = journal_store.set_posted(admin_ctx, draft.id, False).unwrap()
        assert unposted.is_posted is False
        assert unposted.total_debit == draft.total_debit

    def test_posted_entry_cannot_be_updated(
        self, journal_store, admin_ctx, draft, standard_accounts, make_line
    ):
        journal_store.set_posted(admin_ctx, draft.id, True).unwrap()
        result = journal_store.update_entry(
            admin_ctx,
            draft.id,
            date(2024, 3, 1),
            "Sneaky",
            [
                make_line(standard_accounts["cash"], debit="1.00"),
                make_line(standard_accounts["sales"], credit="1.00"),
            ],
        )
        assert isinstance(result.error, EntryPostedError)
        assert result.error.attempted_action == "update"

    def test_delete_posted_entry_is_state_error(
        self, journal_store, ledger_queries, admin_ctx, draft
    ):
        journal_store.set_posted(admin_ctx, draft.id, True).unwrap()

        result = journal_store.delete_entry(admin_ctx, draft.id)

        assert isinstance(result.error, StateError)
        assert result.error_category == "state"
        stored = ledger_queries.get_entry(admin_ctx, draft.id).unwrap()
        assert stored.is_posted is True
        assert stored.total_debit == Decimal("100.00")
        assert len(stored.lines) == 2

    def test_delete_unposted_entry_removes_lines(
        self, journal_store, admin_ctx, draft, session, org_id
    ):
        result = journal_store.delete_entry(admin_ctx, draft.id)

        assert result.is_success
        assert _entry_count(session, org_id) == 0
        assert session.execute(select(func.count(JournalLine.id))).scalar_one() == 0

    def test_accountant_cannot_delete(self, journal_store, accountant_ctx, draft):
        result = journal_store.delete_entry(accountant_ctx, draft.id)
        assert isinstance(result.error, PermissionDeniedError)

    def test_entry_of_other_organization_not_found(
        self, journal_store, other_admin_ctx, draft
    ):
        result = journal_store.set_posted(other_admin_ctx, draft.id, True)
        assert isinstance(result.error, EntryNotFoundError)

    def test_lifecycle_audit_trail(
        self, journal_store, audit_sink, admin_ctx, draft, deterministic_clock
    ):
        deterministic_clock.advance(1)
        journal_store.set_posted(admin_ctx, draft.id, True).unwrap()
        deterministic_clock.advance(1)
        journal_store.set_posted(admin_ctx, draft.id, False).unwrap()
        deterministic_clock.advance(1)
        journal_store.delete_entry(admin_ctx, draft.id).unwrap()

        actions = [r.action for r in audit_sink.list_for_entity("journal", str(draft.id))]
        assert actions == [
            "journal.create",
            "journal.post",
            "journal.unpost",
            "journal.delete",
        ]


# =============================================================================
# Compensation on line write failure
# =============================================================================


def _failing_write(*args, **kwargs):
    raise OperationalError("INSERT INTO journal_lines", {}, Exception("disk full"))


class TestLineWriteFailure:

    def test_header_removed_and_persistence_error_returned(
        self,
        journal_store,
        admin_ctx,
        standard_accounts,
        make_line,
        session,
        org_id,
        monkeypatch,
        captured_logs,
    ):
        monkeypatch.setattr(journal_store, "_write_lines", _failing_write)

        result = journal_store.create_entry(
            admin_ctx,
            date(2024, 3, 1),
            "Doomed",
            [
                make_line(standard_accounts["cash"], debit="10.00"),
                make_line(standard_accounts["sales"], credit="10.00"),
            ],
        )

        assert isinstance(result.error, PersistenceError)
        assert result.error_category == "persistence"
        assert "disk full" not in result.error_message
        assert _entry_count(session, org_id) == 0
        messages = [r["message"] for r in captured_logs()]
        assert "journal_lines_write_failed" in messages
        assert "journal_header_discarded" in messages

    def test_header_removed_without_auto_commit(
        self,
        session,
        permissions,
        deterministic_clock,
        admin_ctx,
        standard_accounts,
        make_line,
        org_id,
        monkeypatch,
    ):
        store = JournalStore(
            session, permissions, clock=deterministic_clock, auto_commit=False
        )
        monkeypatch.setattr(store, "_write_lines", _failing_write)

        result = store.create_entry(
            admin_ctx,
            date(2024, 3, 1),
            "Doomed",
            [
                make_line(standard_accounts["cash"], debit="10.00"),
                make_line(standard_accounts["sales"], credit="10.00"),
            ],
        )

        assert isinstance(result.error, PersistenceError)
        assert _entry_count(session, org_id) == 0


# =============================================================================
# Non-finite amounts
# =============================================================================


class TestNonFiniteAmounts:

    @pytest.mark.parametrize("amount", ["NaN", "Infinity"])
    def test_refused_as_invalid_line(
        self, journal_store, admin_ctx, standard_accounts, session, org_id, amount
    ):
        lines = [
            SimpleNamespace(
                account_id=standard_accounts["cash"].id,
                debit=Decimal(amount),
                credit=Decimal("0"),
                description=None,
            ),
            SimpleNamespace(
                account_id=standard_accounts["sales"].id,
                debit=Decimal("0"),
                credit=Decimal("10.00"),
                description=None,
            ),
        ]

        result = journal_store.create_entry(admin_ctx, date(2024, 3, 1), "Broken", lines)

        assert not result.is_success
        assert isinstance(result.error, InvalidLineError)
        assert result.error_category == "validation"
        assert _entry_count(session, org_id) == 0


# =============================================================================
# Read views across transaction boundaries
# =============================================================================


class TestViewInvalidationAtTransactionEnd:

    @pytest.fixture
    def open_store(self, session, permissions, deterministic_clock, view_cache):
        return JournalStore(
            session,
            permissions,
            clock=deterministic_clock,
            cache=view_cache,
            auto_commit=False,
        )

    def _create(self, store, ctx, accounts, make_line):
        return store.create_entry(
            ctx,
            date(2024, 3, 1),
            "Uncommitted",
            [
                make_line(accounts["cash"], debit="10.00"),
                make_line(accounts["sales"], credit="10.00"),
            ],
        ).unwrap()

    def test_rolled_back_lines_not_served_from_cache(
        self,
        open_store,
        ledger_queries,
        view_cache,
        admin_ctx,
        standard_accounts,
        make_line,
        session,
    ):
        self._create(open_store, admin_ctx, standard_accounts, make_line)

        assert len(ledger_queries.get_ledger(admin_ctx).unwrap()) == 2
        assert len(view_cache) == 0

        session.rollback()

        assert ledger_queries.get_ledger(admin_ctx).unwrap() == ()

    def test_views_cached_again_after_commit(
        self,
        open_store,
        ledger_queries,
        view_cache,
        admin_ctx,
        standard_accounts,
        make_line,
        session,
    ):
        self._create(open_store, admin_ctx, standard_accounts, make_line)
        session.commit()

        assert len(ledger_queries.get_ledger(admin_ctx).unwrap()) == 2
        assert len(view_cache) == 1

    def test_view_stored_before_commit_is_dropped_on_commit(
        self, open_store, view_cache, admin_ctx, standard_accounts, make_line, session, org_id
    ):
        self._create(open_store, admin_ctx, standard_accounts, make_line)
        params = (None, None, None, False)
        # Another reader memoizes a pre-commit snapshot.
        view_cache.put(org_id, "ledger", params, ())

        session.commit()

        assert view_cache.get(org_id, "ledger", params) is None

    def test_view_stored_before_rollback_is_dropped_on_rollback(
        self, open_store, view_cache, admin_ctx, standard_accounts, make_line, session, org_id
    ):
        self._create(open_store, admin_ctx, standard_accounts, make_line)
        params = (None, None, None, False)
        view_cache.put(org_id, "ledger", params, ("phantom",))

        session.rollback()

        assert view_cache.get(org_id, "ledger", params) is None

    def test_other_organization_views_untouched(
        self, open_store, view_cache, admin_ctx, standard_accounts, make_line, session, other_org_id
    ):
        params = (None, None, None, False)
        view_cache.put(other_org_id, "ledger", params, ("kept",))

        self._create(open_store, admin_ctx, standard_accounts, make_line)
        session.commit()

        assert view_cache.get(other_org_id, "ledger", params) == ("kept",)


# =============================================================================
# Audit sink failure
# =============================================================================


class _BrokenAuditSink:

    def __init__(self):
        self.calls = 0

    def record(self, *args, **kwargs):
        self.calls += 1
        raise RuntimeError("audit store offline")


class TestAuditFailureDoesNotBlockWrites:

    def test_entry_committed_and_warning_logged(
        self,
        session,
        permissions,
        deterministic_clock,
        admin_ctx,
        standard_accounts,
        make_line,
        org_id,
        captured_logs,
    ):
        sink = _BrokenAuditSink()
        store = JournalStore(
            session, permissions, audit=sink, clock=deterministic_clock
        )

        result = store.create_entry(
            admin_ctx,
            date(2024, 3, 1),
            "Unaudited",
            [
                make_line(standard_accounts["cash"], debit="10.00"),
                make_line(standard_accounts["sales"], credit="10.00"),
            ],
        )

        assert result.is_success, result.error_message
        assert sink.calls == 1
        session.rollback()
        assert _entry_count(session, org_id) == 1
        warnings = [r for r in captured_logs() if r["message"] == "audit_record_failed"]
        assert len(warnings) == 1
        assert warnings[0]["action"] == "journal.create"
        assert warnings[0]["entity_id"] == str(result.value.id)
