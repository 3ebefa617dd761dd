# services/pricing_service.py
"""
Cost and pricing arithmetic shared by every screen that touches money:
Add Vehicle, Edit Costs, Mark Sold, Generate Invoice and Reports.

Everything here is pure. Inputs may come straight from form fields, so any
absent or unparseable amount is treated as zero.
"""
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from models import Currency, PaymentMethod

LC_COMMISSION_LABEL = "LC Commission"
LC_COMMISSION_RATE = 0.0035

# Order matters for the running "TOTAL so far" display
LOCAL_COST_FIELDS = ("tax", "clearance", "transport", "extra1", "extra2", "extra3")

CASH_NOTES = (5000, 2000, 1000, 500, 100)


def to_amount(value: Any) -> float:
    """Parses a form value into a float, returning 0.0 for anything unusable."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def to_optional_amount(value: Any) -> Optional[float]:
    """Like to_amount, but keeps 'not entered' as None for storage."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return to_amount(value)


# --- CIF ---

def cif_total(bid=None, commission=None, insurance=None, inland_transport=None, other=None) -> float:
    return (
        to_amount(bid)
        + to_amount(commission)
        + to_amount(insurance)
        + to_amount(inland_transport)
        + to_amount(other)
    )


def vehicle_cif_total(vehicle) -> float:
    return cif_total(
        vehicle.bid_jpy,
        vehicle.commission_jpy,
        vehicle.insurance_jpy,
        vehicle.inland_transport_jpy,
        vehicle.other_jpy,
    )


def suggest_undial(cif: Any, invoice_amount: Any) -> Optional[float]:
    """
    Undial is whatever part of CIF the invoice does not cover.
    Returns None when no suggestion applies (invalid invoice or no CIF yet).
    """
    cif_value = to_amount(cif)
    if invoice_amount is None or str(invoice_amount).strip() == "":
        return None
    try:
        invoice_value = float(str(invoice_amount).replace(",", ""))
    except ValueError:
        return None
    if math.isnan(invoice_value) or invoice_value < 0 or cif_value <= 0:
        return None
    return max(cif_value - invoice_value, 0.0)


@dataclass
class CifSplit:
    """
    Invoice/undial split of a CIF total as edited in a form.

    Editing the invoice amount re-suggests undial; editing undial directly
    wins until the invoice amount changes again. The two legs are not forced
    to add up to CIF afterwards.
    """
    cif_total: float
    invoice_amount: Optional[float] = None
    undial_amount: Optional[float] = None
    undial_overridden: bool = False

    def set_invoice_amount(self, value: Any) -> None:
        if value is None or str(value).strip() == "":
            self.invoice_amount = None
            return
        self.invoice_amount = to_amount(value)
        suggestion = suggest_undial(self.cif_total, value)
        if suggestion is not None:
            self.undial_amount = suggestion
            self.undial_overridden = False

    def set_undial_amount(self, value: Any) -> None:
        self.undial_amount = to_optional_amount(value)
        self.undial_overridden = True

    def set_cif_total(self, value: Any) -> None:
        self.cif_total = to_amount(value)

    @property
    def difference(self) -> float:
        """How far invoice + undial is from CIF (0 when they agree)."""
        return self.cif_total - to_amount(self.invoice_amount) - to_amount(self.undial_amount)


# --- CURRENCY ---

def convert_jpy_to_lkr(amount_jpy: Any, rate: Any) -> float:
    return to_amount(amount_jpy) * to_amount(rate)


def japan_total_lkr(invoice_amount_jpy=None, invoice_rate=None, undial_amount_jpy=None, undial_rate=None) -> float:
    return convert_jpy_to_lkr(invoice_amount_jpy, invoice_rate) + convert_jpy_to_lkr(undial_amount_jpy, undial_rate)


def vehicle_japan_total_lkr(vehicle) -> float:
    return japan_total_lkr(
        vehicle.invoice_amount_jpy,
        vehicle.invoice_jpy_to_lkr_rate,
        vehicle.undial_amount_jpy,
        vehicle.undial_jpy_to_lkr_rate,
    )


# --- LOCAL COSTS ---

def local_cost_running_totals(base: Any, costs: Dict[str, Any]) -> List[Tuple[str, float]]:
    """
    Returns (field, total so far) after each local cost line, in the fixed
    order tax, clearance, transport, extra1, extra2, extra3.
    """
    running = to_amount(base)
    totals = []
    for name in LOCAL_COST_FIELDS:
        running += to_amount(costs.get(name))
        totals.append((name, running))
    return totals


def local_cost_total(costs: Dict[str, Any]) -> float:
    return sum(to_amount(costs.get(name)) for name in LOCAL_COST_FIELDS)


def final_total_lkr(base: Any, costs: Dict[str, Any]) -> float:
    return to_amount(base) + local_cost_total(costs)


def vehicle_local_costs(vehicle) -> Dict[str, Optional[float]]:
    return {
        "tax": vehicle.tax_lkr,
        "clearance": vehicle.clearance_lkr,
        "transport": vehicle.transport_lkr,
        "extra1": vehicle.local_extra1_lkr,
        "extra2": vehicle.local_extra2_lkr,
        "extra3": vehicle.local_extra3_lkr,
    }


def lc_commission(invoice_lkr: Any) -> float:
    """Letter-of-credit commission charged on the invoice leg."""
    return round(to_amount(invoice_lkr) * LC_COMMISSION_RATE, 2)


def extra1_holds_lc_commission(label: Optional[str]) -> bool:
    return not label or label == LC_COMMISSION_LABEL


# --- ADVANCES & SETTLEMENT ---

def total_advance(payments: Iterable[Any]) -> float:
    """Sums payment amounts. Accepts AdvancePayment rows or plain numbers."""
    total = 0.0
    for payment in payments:
        amount = getattr(payment, "amount_lkr", payment)
        total += to_amount(amount)
    return total


def remaining_balance(selling_price: Any, payments: Iterable[Any]) -> float:
    return to_amount(selling_price) - total_advance(payments)


def invoice_price_lkr(price: Any, currency: str = Currency.LKR, rate: Any = None) -> float:
    if currency == Currency.JPY:
        # No rate entered means 1
        rate_value = to_amount(rate) or 1.0
        return to_amount(price) * rate_value
    return to_amount(price)


def balance_to_pay(price_lkr: Any, advance_total: Any) -> float:
    return to_amount(price_lkr) - to_amount(advance_total)


def balance_settlement(balance_after_advance: Any, lease_amount: Any = None, has_leasing: bool = False) -> float:
    """Cash + cheque expected at settlement. Other charges are never subtracted."""
    balance = to_amount(balance_after_advance)
    if has_leasing:
        balance -= to_amount(lease_amount)
    return balance


def cash_total(denominations: Dict[int, Any]) -> float:
    """denominations maps note value -> note count."""
    return sum(note * to_amount(denominations.get(note)) for note in CASH_NOTES)


def cheque_total(cheque1_amount: Any = None, cheque2_amount: Any = None) -> float:
    return to_amount(cheque1_amount) + to_amount(cheque2_amount)


def payment_received(method: Optional[str], cash: float, cheques: float) -> float:
    if method == PaymentMethod.CASH:
        return cash
    if method == PaymentMethod.CHEQUE:
        return cheques
    if method == PaymentMethod.BOTH:
        return cash + cheques
    return 0.0


def other_charges_total(registration: Any = None, valuation: Any = None, r_licence: Any = None) -> float:
    return to_amount(registration) + to_amount(valuation) + to_amount(r_licence)


# --- PROFIT ---

def vehicle_cost_basis(vehicle) -> float:
    """Final total when local costs were entered, otherwise the Japan total."""
    return to_amount(vehicle.final_total_lkr) or to_amount(vehicle.japan_total_lkr)


def sold_price_lkr(sold_price: Any, currency: str = Currency.LKR, rate: Any = None) -> float:
    if currency == Currency.JPY:
        return to_amount(sold_price) * to_amount(rate)
    return to_amount(sold_price)


def profit_lkr(sold_price: Any, cost_basis_lkr: Any, currency: str = Currency.LKR, rate: Any = None) -> float:
    return sold_price_lkr(sold_price, currency, rate) - to_amount(cost_basis_lkr)


def sell_now_quote(base_jpy: Any, expected_profit_jpy: Any, rate: Any, japan_total: Any) -> Dict[str, float]:
    """
    Prices a JPY quote: sold price = base (invoice amount, or CIF when selling
    straight from the cost step) + expected profit, converted at 'rate'.
    """
    sold_jpy = to_amount(base_jpy) + to_amount(expected_profit_jpy)
    sold_lkr = sold_jpy * to_amount(rate)
    return {
        "sold_price_jpy": sold_jpy,
        "sold_price_lkr": sold_lkr,
        "expected_profit_lkr": to_amount(expected_profit_jpy) * to_amount(rate),
        "profit_lkr": sold_lkr - to_amount(japan_total),
    }


# --- LEASE COLLECTION ---

@dataclass
class LeaseSettlement:
    due_amount: float
    cheque_amount: float = 0.0
    personal_loan_amount: float = 0.0
    deposits_complete: bool = False
    warnings: List[str] = field(default_factory=list)

    @property
    def total_collected(self) -> float:
        return self.cheque_amount + self.personal_loan_amount

    @property
    def remaining(self) -> float:
        return self.due_amount - self.total_collected

    @property
    def over_collected(self) -> bool:
        return self.remaining < 0

    @property
    def fully_collected(self) -> bool:
        return math.isclose(self.remaining, 0.0, abs_tol=0.005)

    @property
    def should_mark_collected(self) -> bool:
        return self.fully_collected and self.deposits_complete
