"""Tests for TaxConfig (fiscal_modules/tax/config.py)."""

from decimal import Decimal

import pytest

from fiscal_modules.tax.config import TaxConfig


class TestTaxConfig:

    def test_defaults_are_statutory(self):
        config = TaxConfig()
        assert config.vat_rate == Decimal("0.13")
        assert config.advance_income_tax_rate == Decimal("0.0175")
        assert config.corporate_income_tax_rate == Decimal("0.30")
        assert config.rounding == "ROUND_HALF_UP"
        assert config.sales_document_statuses == frozenset({"APPROVED", "SIGNED", "TRANSMITTED"})
        assert config.payroll_run_statuses == frozenset({"APPROVED", "PAID"})

    def test_with_defaults_matches_packaged_yaml(self):
        assert TaxConfig.with_defaults() == TaxConfig()

    def test_from_dict_parses_rates(self):
        config = TaxConfig.from_dict({"vat_rate": "0.15", "expense_statuses": ["APPROVED", "PAID"]})
        assert config.vat_rate == Decimal("0.15")
        assert config.expense_statuses == frozenset({"APPROVED", "PAID"})

    def test_from_dict_rejects_unknown_keys(self):
        with pytest.raises(ValueError, match="Unknown tax config keys"):
            TaxConfig.from_dict({"vat": "0.13"})

    def test_from_dict_rejects_float(self):
        with pytest.raises(ValueError):
            TaxConfig.from_dict({"vat_rate": 0.13})

    @pytest.mark.parametrize("rate", [Decimal("-0.01"), Decimal("1"), Decimal("1.5")])
    def test_out_of_range_rate(self, rate):
        with pytest.raises(ValueError):
            TaxConfig(vat_rate=rate)

    def test_float_rate_rejected(self):
        with pytest.raises(ValueError):
            TaxConfig(corporate_income_tax_rate=0.3)

    def test_unknown_rounding(self):
        with pytest.raises(ValueError):
            TaxConfig(rounding="ROUND_NEAREST")

    def test_empty_status_filter(self):
        with pytest.raises(ValueError):
            TaxConfig(expense_statuses=frozenset())
