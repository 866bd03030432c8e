"""
Hypothesis-based property tests for the pure ledger and tax rules.

Properties:
- Any set of paired debit/credit lines is accepted with equal totals
- A gap of one cent or more is always rejected
- Trial balances built from balanced entries are balanced
- The tax-inclusive split always reassembles the original amount
- Form payables are never negative
- Float amounts never cross the record boundary
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from fiscal_kernel.db.types import to_money
from fiscal_kernel.domain.collaborators import ExpenseRecord, SalesDocumentRecord
from fiscal_kernel.domain.double_entry import validate_entry_lines
from fiscal_kernel.domain.dtos import JournalLineInput, LedgerEntry
from fiscal_kernel.exceptions import UnbalancedEntryError
from fiscal_kernel.models.account import AccountType
from fiscal_kernel.selectors.ledger_selector import build_trial_balance
from fiscal_modules.tax import helpers

VAT = Decimal("0.13")

money = st.decimals(
    min_value=Decimal("0.01"),
    max_value=Decimal("99999999.99"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)
non_negative_money = st.decimals(
    min_value=Decimal("0.00"),
    max_value=Decimal("9999999.99"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)

ACCOUNTS = [uuid4() for _ in range(5)]


def _ledger_entry(account_id, debit, credit):
    return LedgerEntry(
        entry_id=uuid4(),
        line_id=uuid4(),
        entry_number=1,
        line_seq=1,
        entry_date=date(2024, 1, 1),
        entry_description="fuzz",
        reference_number=None,
        is_posted=True,
        account_id=account_id,
        account_code=str(ACCOUNTS.index(account_id)),
        account_name="fuzz",
        account_type=AccountType.ASSET,
        debit=debit,
        credit=credit,
        line_description=None,
    )


class TestDoubleEntryProperties:

    @given(
        pairs=st.lists(
            st.tuples(money, st.sampled_from(ACCOUNTS), st.sampled_from(ACCOUNTS)),
            min_size=1,
            max_size=20,
        )
    )
    @settings(max_examples=200)
    def test_paired_lines_always_balance(self, pairs):
        lines = []
        for amount, debit_account, credit_account in pairs:
            lines.append(JournalLineInput(account_id=debit_account, debit=amount))
            lines.append(JournalLineInput(account_id=credit_account, credit=amount))

        total_debit, total_credit = validate_entry_lines(lines)

        assert total_debit == total_credit == sum(a for a, _, _ in pairs)

    @given(amount=money, gap=money)
    @settings(max_examples=200)
    def test_gap_of_a_cent_or_more_rejected(self, amount, gap):
        lines = [
            JournalLineInput(account_id=ACCOUNTS[0], debit=amount + gap),
            JournalLineInput(account_id=ACCOUNTS[1], credit=amount),
        ]

        with pytest.raises(UnbalancedEntryError) as exc_info:
            validate_entry_lines(lines)

        assert exc_info.value.difference == gap


class TestTrialBalanceProperties:

    @given(
        pairs=st.lists(
            st.tuples(money, st.sampled_from(ACCOUNTS), st.sampled_from(ACCOUNTS)),
            max_size=30,
        )
    )
    @settings(max_examples=200)
    def test_balanced_entries_give_balanced_trial_balance(self, pairs):
        entries = []
        for amount, debit_account, credit_account in pairs:
            entries.append(_ledger_entry(debit_account, amount, Decimal("0")))
            entries.append(_ledger_entry(credit_account, Decimal("0"), amount))

        tb = build_trial_balance(entries)

        assert tb.is_balanced
        assert sum(row.balance for row in tb.rows) == 0
        codes = [row.account_code for row in tb.rows]
        assert codes == sorted(codes)
        assert len(set(row.account_id for row in tb.rows)) == len(tb.rows)


class TestTaxProperties:

    @given(amount=money)
    @settings(max_examples=300)
    def test_split_reassembles_amount(self, amount):
        base, tax = helpers.split_tax_inclusive(amount, VAT)

        assert base + tax == amount
        assert base.as_tuple().exponent == -2
        assert tax.as_tuple().exponent == -2

    @given(
        sales=st.lists(st.tuples(non_negative_money, non_negative_money), max_size=10),
        purchases=st.lists(non_negative_money, max_size=10),
    )
    @settings(max_examples=200)
    def test_vat_payable_never_negative(self, sales, purchases):
        figures = helpers.compute_f07(
            [
                SalesDocumentRecord(
                    document_date=date(2024, 5, 1),
                    status="APPROVED",
                    taxed_base=base,
                    tax_collected=tax,
                )
                for base, tax in sales
            ],
            [
                ExpenseRecord(
                    expense_date=date(2024, 5, 1),
                    status="APPROVED",
                    amount=amount,
                    supplier_tax_id="supplier",
                )
                for amount in purchases
            ],
            VAT,
        )

        assert figures.vat_payable >= 0
        assert figures.total_payable == figures.vat_payable

    @given(income=non_negative_money, costs=non_negative_money, advances=non_negative_money)
    @settings(max_examples=200)
    def test_annual_balance_never_negative(self, income, costs, advances):
        figures = helpers.compute_f14(income, costs, advances, Decimal("0.30"))

        assert figures.taxable_income >= 0
        assert figures.annual_income_tax >= 0
        assert figures.balance_due >= 0
        assert figures.balance_due <= figures.annual_income_tax


class TestBoundaryCoercion:

    @given(value=st.floats(allow_nan=False, allow_infinity=False))
    def test_floats_rejected(self, value):
        with pytest.raises(ValueError):
            to_money(value)

    @given(value=st.floats(min_value=0, max_value=1e6, allow_nan=False))
    def test_expense_mapping_rejects_float(self, value):
        with pytest.raises(ValueError):
            ExpenseRecord.from_mapping(
                {"expense_date": "2024-05-01", "status": "APPROVED", "amount": value}
            )
