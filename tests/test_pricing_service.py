"""Tests for the pure cost, settlement and profit arithmetic."""

from types import SimpleNamespace

import pytest

from models import Currency, PaymentMethod
from services import pricing_service as pricing


# ---------------------------------------------------------------------------
# Form value parsing
# ---------------------------------------------------------------------------

class TestToAmount:
    def test_comma_separated_string(self):
        assert pricing.to_amount("1,234.50") == pytest.approx(1234.50)

    def test_blank_and_none_are_zero(self):
        assert pricing.to_amount("") == 0.0
        assert pricing.to_amount("   ") == 0.0
        assert pricing.to_amount(None) == 0.0

    def test_garbage_is_zero(self):
        assert pricing.to_amount("abc") == 0.0
        assert pricing.to_amount(float("nan")) == 0.0

    def test_optional_keeps_missing_as_none(self):
        assert pricing.to_optional_amount("") is None
        assert pricing.to_optional_amount(None) is None
        assert pricing.to_optional_amount("250") == 250.0


# ---------------------------------------------------------------------------
# CIF and the invoice / undial split
# ---------------------------------------------------------------------------

class TestCif:
    def test_cif_total_sums_five_components(self):
        assert pricing.cif_total(500000, 50000, 20000, 30000, 0) == 600000

    def test_cif_total_treats_missing_as_zero(self):
        assert pricing.cif_total(500000, None, "", 30000) == 530000

    def test_suggest_undial(self):
        assert pricing.suggest_undial(600000, 400000) == 200000

    def test_suggest_undial_never_negative(self):
        assert pricing.suggest_undial(600000, 700000) == 0.0

    def test_no_suggestion_without_cif_or_invoice(self):
        assert pricing.suggest_undial(0, 400000) is None
        assert pricing.suggest_undial(600000, "") is None
        assert pricing.suggest_undial(600000, "x") is None
        assert pricing.suggest_undial(600000, -5) is None


class TestCifSplit:
    @pytest.fixture(autouse=True)
    def split(self):
        self.split = pricing.CifSplit(cif_total=600000)

    def test_invoice_edit_suggests_undial(self):
        self.split.set_invoice_amount(400000)
        assert self.split.undial_amount == 200000
        assert self.split.difference == 0

    def test_manual_undial_wins(self):
        self.split.set_invoice_amount(400000)
        self.split.set_undial_amount(150000)
        assert self.split.undial_overridden
        assert self.split.undial_amount == 150000
        assert self.split.difference == 50000

    def test_invoice_edit_after_override_resuggests(self):
        self.split.set_invoice_amount(400000)
        self.split.set_undial_amount(150000)
        self.split.set_invoice_amount(450000)
        assert not self.split.undial_overridden
        assert self.split.undial_amount == 150000

    def test_clearing_invoice_keeps_undial(self):
        self.split.set_invoice_amount(400000)
        self.split.set_invoice_amount("")
        assert self.split.invoice_amount is None
        assert self.split.undial_amount == 200000


# ---------------------------------------------------------------------------
# Japan total and local costs
# ---------------------------------------------------------------------------

class TestTotals:
    def test_japan_total_scenario(self):
        """400,000 @ 1.98 + 200,000 @ 2.00 = 1,192,000."""
        assert pricing.japan_total_lkr(400000, 1.98, 200000, 2.00) == pytest.approx(1_192_000)

    def test_japan_total_without_undial(self):
        assert pricing.japan_total_lkr(400000, 1.98) == pytest.approx(792_000)

    def test_vehicle_japan_total(self):
        vehicle = SimpleNamespace(invoice_amount_jpy=400000, invoice_jpy_to_lkr_rate=1.98,
                                  undial_amount_jpy=200000, undial_jpy_to_lkr_rate=2.00)
        assert pricing.vehicle_japan_total_lkr(vehicle) == pytest.approx(1_192_000)

    def test_running_totals_follow_fixed_order(self):
        totals = pricing.local_cost_running_totals(1_000_000, {"transport": 10_000, "tax": 200_000})
        assert [name for name, _ in totals] == list(pricing.LOCAL_COST_FIELDS)
        assert totals[0] == ("tax", 1_200_000)
        assert totals[2] == ("transport", 1_210_000)
        assert totals[-1][1] == 1_210_000

    def test_final_total(self):
        costs = {"tax": 300000, "clearance": 25000, "extra1": 2772}
        assert pricing.final_total_lkr(1_192_000, costs) == pytest.approx(1_519_772)

    def test_lc_commission(self):
        """0.35% of the invoice leg in LKR."""
        assert pricing.lc_commission(792_000) == pytest.approx(2772.0)

    def test_lc_commission_rounds_to_cents(self):
        assert pricing.lc_commission(1234.567) == pytest.approx(4.32)

    def test_extra1_slot(self):
        assert pricing.extra1_holds_lc_commission(None)
        assert pricing.extra1_holds_lc_commission(pricing.LC_COMMISSION_LABEL)
        assert not pricing.extra1_holds_lc_commission("Repair")


# ---------------------------------------------------------------------------
# Advances and settlement
# ---------------------------------------------------------------------------

class TestSettlement:
    def test_advance_position(self):
        """3,500,000 agreed, 500,000 + 300,000 paid."""
        payments = [500_000, 300_000]
        assert pricing.total_advance(payments) == 800_000
        assert pricing.remaining_balance(3_500_000, payments) == 2_700_000

    def test_total_advance_reads_payment_rows(self):
        rows = [SimpleNamespace(amount_lkr=500_000), SimpleNamespace(amount_lkr=None)]
        assert pricing.total_advance(rows) == 500_000

    def test_invoice_price_jpy_rate_defaults_to_one(self):
        assert pricing.invoice_price_lkr(1000, Currency.JPY) == 1000
        assert pricing.invoice_price_lkr(1000, Currency.JPY, 2.5) == 2500
        assert pricing.invoice_price_lkr(1000, Currency.LKR, 2.5) == 1000

    def test_balance_settlement_subtracts_lease_only_when_leasing(self):
        assert pricing.balance_settlement(2_700_000, 1_000_000, has_leasing=True) == 1_700_000
        assert pricing.balance_settlement(2_700_000, 1_000_000, has_leasing=False) == 2_700_000

    def test_cash_total_counts_notes(self):
        assert pricing.cash_total({5000: 10, 1000: 3, 100: "2"}) == 53_200

    def test_payment_received_by_method(self):
        assert pricing.payment_received(PaymentMethod.CASH, 100, 50) == 100
        assert pricing.payment_received(PaymentMethod.CHEQUE, 100, 50) == 50
        assert pricing.payment_received(PaymentMethod.BOTH, 100, 50) == 150
        assert pricing.payment_received(None, 100, 50) == 0

    def test_other_charges(self):
        assert pricing.other_charges_total(15000, 5000, None) == 20000


# ---------------------------------------------------------------------------
# Profit
# ---------------------------------------------------------------------------

class TestProfit:
    def test_cost_basis_prefers_final_total(self):
        assert pricing.vehicle_cost_basis(SimpleNamespace(final_total_lkr=1_500_000, japan_total_lkr=1_192_000)) == 1_500_000
        assert pricing.vehicle_cost_basis(SimpleNamespace(final_total_lkr=None, japan_total_lkr=1_192_000)) == 1_192_000

    def test_profit_lkr_sale(self):
        assert pricing.profit_lkr(1_500_000, 1_192_000) == 308_000

    def test_profit_jpy_sale_uses_rate(self):
        assert pricing.profit_lkr(700_000, 1_192_000, Currency.JPY, 2.0) == 208_000

    def test_sell_now_quote(self):
        quote = pricing.sell_now_quote(600_000, 100_000, 2.0, 1_192_000)
        assert quote["sold_price_jpy"] == 700_000
        assert quote["sold_price_lkr"] == pytest.approx(1_400_000)
        assert quote["expected_profit_lkr"] == pytest.approx(200_000)
        assert quote["profit_lkr"] == pytest.approx(208_000)


# ---------------------------------------------------------------------------
# Lease settlement
# ---------------------------------------------------------------------------

class TestLeaseSettlement:
    def test_full_collection_with_deposits(self):
        settlement = pricing.LeaseSettlement(1_000_000, 600_000, 400_000, deposits_complete=True)
        assert settlement.total_collected == 1_000_000
        assert settlement.fully_collected
        assert settlement.should_mark_collected

    def test_full_collection_without_deposits_is_not_marked(self):
        settlement = pricing.LeaseSettlement(1_000_000, 1_000_000)
        assert settlement.fully_collected
        assert not settlement.should_mark_collected

    def test_partial(self):
        settlement = pricing.LeaseSettlement(1_000_000, 600_000, deposits_complete=True)
        assert settlement.remaining == 400_000
        assert not settlement.fully_collected
        assert not settlement.should_mark_collected

    def test_within_half_a_cent_counts_as_full(self):
        settlement = pricing.LeaseSettlement(1000.00, 999.996, deposits_complete=True)
        assert settlement.fully_collected

    def test_over_collection(self):
        assert pricing.LeaseSettlement(1000, 1200).over_collected
