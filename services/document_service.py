# services/document_service.py
"""
Printable documents. Every builder returns the PDF as bytes, ready for
st.download_button. Layout lives here as data handed to utils.pdf_layout;
amounts come from pricing_service so documents and screens never disagree.
"""
import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

import models
from services import pricing_service as pricing
from services.sales_service import settlement_figures
from services.vehicle_service import undial_transfer_summary
from utils.config_utils import get_setting
from utils.format_utils import format_currency, format_date, format_mileage, format_number
from utils.number_words import number_to_words
from utils.pdf_layout import LABEL_X, MARGIN_LEFT, DocumentLayout, render_pdf
from utils import raster_invoice

logger = logging.getLogger(__name__)

RIGHT_BLOCK_X = 140
ADVANCE_DATE_X = 40
ADVANCE_AMOUNT_X = 100


def document_number(prefix: Optional[str] = None, when: Optional[datetime] = None) -> str:
    """e.g. INV-20240315-093012. The prefix defaults to the configured INVOICE_PREFIX."""
    prefix = prefix or get_setting("INVOICE_PREFIX")
    when = when or models.local_now()
    return f"{prefix}-{when:%Y%m%d-%H%M%S}"


def _company_header(layout: DocumentLayout, title: str, number_label: str, number: str, doc_date: date) -> None:
    layout.centered(get_setting("COMPANY_NAME"), size=24, bold=True, y=20)
    layout.centered(get_setting("COMPANY_ADDRESS"), size=10, y=28)
    layout.centered(f"Tel: {get_setting('COMPANY_PHONE')}", size=10, y=34)
    layout.centered(f"Email : {get_setting('COMPANY_EMAIL')}", size=10, y=40)
    layout.rule(y=45)
    layout.centered(title, size=18, bold=True, y=55)
    layout.text(f"Date: {format_date(doc_date)}", MARGIN_LEFT, y=65, size=11, bold=True)
    layout.text(f"{number_label}: {number}", RIGHT_BLOCK_X, y=65, size=11, bold=True)
    layout.y = 75


def _address_lines(address: Optional[str]) -> List[str]:
    return [part.strip() for part in (address or "").split(",") if part.strip()]


def _vehicle_description(layout: DocumentLayout, vehicle: models.Vehicle, with_invoice_fields: bool = False) -> None:
    layout.rule()
    layout.move(8)
    layout.centered("Description", size=12, bold=True)
    layout.move(8)
    layout.field("Maker", vehicle.maker)
    layout.field("Model", vehicle.model)
    layout.field("Chassis Number", vehicle.chassis_no)
    layout.field("Year", vehicle.manufacturer_year)
    layout.field("Mileage", format_mileage(vehicle.mileage))
    if with_invoice_fields:
        layout.field("Engine No", vehicle.engine_no)
        layout.field("Engine Capacity", f"{vehicle.engine_capacity} cc" if vehicle.engine_capacity else None)
        layout.field("Colour", vehicle.color)
        layout.field("Fuel Type", vehicle.fuel_type)
        layout.field("Seating Capacity", vehicle.seating_capacity)
    layout.move(2)


def _advance_block(layout: DocumentLayout, payments: Iterable[Any]) -> float:
    payments = list(payments)
    total = pricing.total_advance(payments)
    if not payments:
        return total
    layout.text("Advance Payments", MARGIN_LEFT + 10, size=11, bold=True)
    layout.move(7)
    layout.columns(["Date", "Amount"], [ADVANCE_DATE_X, ADVANCE_AMOUNT_X], bold=True)
    for payment in payments:
        layout.columns([format_date(payment.paid_date), format_currency(payment.amount_lkr)],
                       [ADVANCE_DATE_X, ADVANCE_AMOUNT_X])
    layout.move(2)
    layout.field("Total Advance", format_currency(total), size=11, bold=True, step=8)
    return total


def _signatures(layout: DocumentLayout, customer: bool = False) -> None:
    layout.ensure_space(30)
    layout.move(15)
    layout.text("..............................", MARGIN_LEFT)
    if customer:
        layout.text("..............................", 110)
    layout.move(8)
    layout.text("Authorized Signature", MARGIN_LEFT, bold=True)
    if customer:
        layout.text("Customer Signature", 110, bold=True)


def _payment_footer(layout: DocumentLayout) -> None:
    layout.ensure_space(20)
    layout.move(12)
    layout.centered(f"Please draw the payment in favour of {get_setting('COMPANY_NAME')}", size=11, bold=True)


# --- INVOICE ---

def build_invoice_pdf(
    vehicle: models.Vehicle,
    customer: Dict[str, Any],
    invoice_price_lkr: float,
    payments: Iterable[Any] = (),
    invoice_date: Optional[date] = None,
    invoice_no: Optional[str] = None,
    bank_name: Optional[str] = None,
    bank_address: Optional[str] = None,
) -> bytes:
    layout = DocumentLayout(title=f"Invoice {vehicle.chassis_no}")
    _company_header(layout, "INVOICE", "Invoice No", invoice_no or document_number(),
                    invoice_date or models.local_now().date())

    top = layout.y
    if bank_name:
        layout.text("To:", MARGIN_LEFT, size=11, bold=True)
        layout.move(7)
        layout.text(bank_name, MARGIN_LEFT)
        for line in _address_lines(bank_address):
            layout.move(5)
            layout.text(line, MARGIN_LEFT)
        left_bottom = layout.y

        layout.y = top
        layout.text("Deliver To:", RIGHT_BLOCK_X, size=11, bold=True)
        layout.move(7)
        customer_x = RIGHT_BLOCK_X
    else:
        layout.text("To:", MARGIN_LEFT, size=11, bold=True)
        layout.move(7)
        left_bottom = top
        customer_x = MARGIN_LEFT

    layout.text(customer.get("customer_name") or "N/A", customer_x)
    if customer.get("customer_phone"):
        layout.move(7)
        layout.text(f"Phone: {customer['customer_phone']}", customer_x)
    for line in _address_lines(customer.get("customer_address")):
        layout.move(5)
        layout.text(line, customer_x)
    layout.y = max(layout.y, left_bottom) + 8

    _vehicle_description(layout, vehicle, with_invoice_fields=True)
    layout.field("Unit Price", format_currency(invoice_price_lkr), size=11, bold=True, step=8)
    layout.rule()
    layout.move(8)

    total_advance = _advance_block(layout, payments)
    layout.rule()
    layout.move(8)
    balance = pricing.balance_to_pay(invoice_price_lkr, total_advance)
    layout.field("Balance Settlement", format_currency(balance), size=11, bold=True, step=8)
    layout.text(f"Amount in Words: {number_to_words(max(balance, 0))} Rupees Only", MARGIN_LEFT, size=9)

    _payment_footer(layout)
    _signatures(layout)
    logger.info("Built invoice for %s", vehicle.chassis_no)
    return render_pdf(layout)


def build_bulk_invoice_pdf(
    lines: List[Dict[str, Any]],
    customer: Dict[str, Any],
    invoice_date: Optional[date] = None,
    invoice_no: Optional[str] = None,
) -> bytes:
    """lines: the entries returned by sales_service.bulk_sell (vehicle + quote)."""
    layout = DocumentLayout(title="Bulk Invoice")
    _company_header(layout, "INVOICE", "Invoice No", invoice_no or document_number(),
                    invoice_date or models.local_now().date())

    layout.text("To:", MARGIN_LEFT, size=11, bold=True)
    layout.move(7)
    layout.text(customer.get("customer_name") or "N/A", MARGIN_LEFT)
    for line in _address_lines(customer.get("customer_address")):
        layout.move(5)
        layout.text(line, MARGIN_LEFT)
    layout.move(12)

    xs = [MARGIN_LEFT, 80, 120, 150]
    header = ["Maker + Model", "Chassis", "Year", "Price"]
    layout.columns(header, xs, bold=True, step=2)
    layout.rule()
    layout.move(6)

    total = 0.0
    for line in lines:
        vehicle = line["vehicle"]
        price_lkr = line["quote"]["sold_price_lkr"]
        total += price_lkr
        if layout.ensure_space(6):
            layout.columns(header, xs, bold=True, step=2)
            layout.rule()
            layout.move(6)
        layout.columns(
            [f"{vehicle.maker} {vehicle.model}"[:32], vehicle.chassis_no, vehicle.manufacturer_year,
             format_currency(price_lkr)],
            xs,
        )

    layout.move(3)
    layout.rule()
    layout.move(6)
    layout.columns(["Total", "", "", format_currency(total)], xs, size=11, bold=True)
    _payment_footer(layout)
    return render_pdf(layout)


def build_raster_invoice_pdf(
    vehicle: models.Vehicle,
    customer: Dict[str, Any],
    vehicle_price_lkr: float,
    payments: Iterable[Any] = (),
    invoice_date: Optional[date] = None,
    invoice_no: Optional[str] = None,
    bank_name: Optional[str] = None,
    bank_address: Optional[str] = None,
    template: Any = None,
) -> bytes:
    """Invoice printed onto the letterhead bitmap (INVOICE_TEMPLATE_PATH)."""
    payments = list(payments)
    total_advance = pricing.total_advance(payments)
    balance = pricing.balance_to_pay(vehicle_price_lkr, total_advance)
    values = {
        "invoice_no": f"Invoice No: {invoice_no or document_number()}",
        "date": f"Date: {format_date(invoice_date or models.local_now().date())}",
        "customer_name": f"Name: {customer.get('customer_name') or 'N/A'}",
        "customer_phone": f"Phone: {customer.get('customer_phone') or 'N/A'}",
        "customer_address": customer.get("customer_address") or "N/A",
        "bank_name": f"Name: {bank_name}" if bank_name else None,
        "bank_address": bank_address if bank_name else None,
        "maker": f"Maker: {vehicle.maker}",
        "model": f"Model: {vehicle.model}",
        "year": f"Year: {vehicle.manufacturer_year}",
        "chassis_no": f"Chassis Number: {vehicle.chassis_no}",
        "mileage": f"Mileage: {format_mileage(vehicle.mileage)}",
        "engine_no": f"Engine No: {vehicle.engine_no or 'N/A'}",
        "engine_capacity": f"Engine Capacity: {vehicle.engine_capacity or 'N/A'} cc",
        "colour": f"Colour: {vehicle.color or 'N/A'}",
        "fuel_type": f"Fuel Type: {vehicle.fuel_type or 'N/A'}",
        "seating_capacity": f"Seating Capacity: {vehicle.seating_capacity or 'N/A'}",
        "vehicle_price": f"Vehicle Price: {format_currency(vehicle_price_lkr)}",
        "advance_rows": [(format_date(p.paid_date), format_currency(p.amount_lkr)) for p in payments],
        "total_advance": format_currency(total_advance) if total_advance > 0 else None,
        "amount_to_be_paid": f"Amount to be Paid: {format_currency(balance)}",
        "amount_in_words": f"Amount in Words: {number_to_words(max(balance, 0))} Rupees Only",
    }
    image = raster_invoice.draw_invoice(template or get_setting("INVOICE_TEMPLATE_PATH"), values)
    return raster_invoice.image_to_pdf(image, title=f"Invoice {vehicle.chassis_no}")


# --- ADVANCE RECEIPT ---

def build_advance_receipt_pdf(
    vehicle: models.Vehicle,
    advance: models.Advance,
    payments: Iterable[Any],
    receipt_date: Optional[date] = None,
    receipt_no: Optional[str] = None,
) -> bytes:
    layout = DocumentLayout(title=f"Advance Receipt {vehicle.chassis_no}")
    _company_header(layout, "ADVANCE PAYMENT RECEIPT", "Receipt No", receipt_no or document_number("ADV"),
                    receipt_date or models.local_now().date())

    layout.text(f"Customer Name: {advance.customer_name}", MARGIN_LEFT)
    for label, value in (("Phone", advance.customer_phone), ("Address", advance.customer_address),
                         ("ID", advance.customer_id)):
        if value:
            layout.move(6)
            layout.text(f"{label}: {value}", MARGIN_LEFT)
    layout.move(10)

    _vehicle_description(layout, vehicle)
    layout.field("Unit Price", format_currency(advance.expected_sell_price_lkr), size=11, bold=True, step=8)
    layout.rule()
    layout.move(8)

    payments = list(payments)
    _advance_block(layout, payments)
    layout.rule()
    layout.move(8)
    remaining = pricing.remaining_balance(advance.expected_sell_price_lkr, payments)
    layout.field("Amount to be Paid", format_currency(remaining), size=11, bold=True, step=8)

    _signatures(layout)
    return render_pdf(layout)


# --- TRANSACTION SUMMARY ---

def build_transaction_summary_pdf(
    vehicle: models.Vehicle,
    sale: models.Sale,
    detail: models.TransactionDetail,
    payments: Iterable[Any] = (),
    advance: Optional[models.Advance] = None,
    summary_no: Optional[str] = None,
) -> bytes:
    """
    Settlement sheet printed at Mark Sold and reprinted from the sold list.
    The unit price is the sale price in LKR.
    """
    payments = list(payments)
    unit_price = pricing.sold_price_lkr(sale.sold_price, sale.sold_currency, sale.rate_jpy_to_lkr)
    figures = settlement_figures(detail, unit_price, pricing.total_advance(payments))

    layout = DocumentLayout(title=f"Transaction Summary {vehicle.chassis_no}")
    _company_header(layout, "TRANSACTION SUMMARY", "Summary No", summary_no or document_number("TS"),
                    sale.sold_date)

    layout.text("To:", MARGIN_LEFT, size=11, bold=True)
    layout.text(detail.customer_name or sale.customer_name or "N/A", 32)
    for line in _address_lines(detail.customer_address or sale.customer_address):
        layout.move(5)
        layout.text(line, 32)
    if advance is not None and advance.customer_id:
        layout.move(5)
        layout.text(f"ID: {advance.customer_id}", 32)
    layout.move(10)

    _vehicle_description(layout, vehicle)
    layout.field("Unit Price", format_currency(figures["unit_price"]), size=11, bold=True, step=8)
    _advance_block(layout, payments)
    layout.field("Amount to be Paid", format_currency(figures["amount_to_be_paid"]), size=11, bold=True, step=8)

    if figures["leasing"] > 0:
        layout.text("Leasing Details", 30, size=11, bold=True)
        layout.move(6)
        layout.field("  Lease Company", detail.lease_company)
        layout.field("  Lease Amount", format_currency(figures["leasing"]))

    layout.rule()
    layout.move(8)
    layout.field("Balance Settlement", format_currency(figures["balance_settlement"]), size=11, bold=True, step=10)

    block_top = layout.y
    cheques = [(detail.cheque1_no, detail.cheque1_amount), (detail.cheque2_no, detail.cheque2_amount)]
    cheques = [(no, amount) for no, amount in cheques if no or pricing.to_amount(amount) > 0]
    if cheques:
        layout.text("Cheque Details:", MARGIN_LEFT, bold=True)
        layout.move(6)
        layout.columns(["Cheque No:", "Amount:"], [MARGIN_LEFT, 70])
        for no, amount in cheques:
            layout.columns([no or "", format_currency(amount)], [MARGIN_LEFT, 70])
    left_bottom = layout.y

    cash_lines = [(note, count) for note, count in detail.cash_denominations().items() if count]
    if cash_lines:
        layout.y = block_top
        layout.text("Cash Details:", 120, bold=True)
        layout.move(6)
        for note, count in cash_lines:
            layout.text(f"{note:,} x {count} = {format_currency(note * count)}", 120)
            layout.move(6)
        layout.text(f"Total Cash = {format_currency(figures['cash_total'])}", 120, bold=True)
        layout.move(6)
    layout.y = max(layout.y, left_bottom) + 4

    if figures["other_charges"] > 0:
        layout.text("Other Charges:", 30, size=11, bold=True)
        layout.move(6)
        for label, amount in (("Registration", detail.registration), ("Valuation", detail.valuation),
                              ("R/Licence", detail.r_licence)):
            if pricing.to_amount(amount) > 0:
                layout.text(f"{label}: {format_currency(amount)}", 30)
                layout.move(6)
        layout.field("Other Charges Total", format_currency(figures["other_charges"]), bold=True)

    _signatures(layout, customer=True)
    return render_pdf(layout)


# --- LEASE REPORT ---

def build_lease_report_pdf(collection: models.LeaseCollection, vehicle: models.Vehicle,
                           sale: Optional[models.Sale] = None) -> bytes:
    settlement = pricing.LeaseSettlement(
        due_amount=pricing.to_amount(collection.due_amount_lkr),
        cheque_amount=pricing.to_amount(collection.cheque_amount),
        personal_loan_amount=pricing.to_amount(collection.personal_loan_amount),
    )

    layout = DocumentLayout(title=f"Lease Report {vehicle.chassis_no}")
    layout.centered("Lease Collection Report", size=18, bold=True)
    layout.move(8)
    layout.centered(f"Generated: {format_date(models.local_now().date())}", size=10)
    layout.move(10)

    layout.text("Vehicle", MARGIN_LEFT, size=12, bold=True)
    layout.move(6)
    for text in (f"Maker   : {vehicle.maker}", f"Model   : {vehicle.model}",
                 f"Chassis : {vehicle.chassis_no}", f"Year    : {vehicle.manufacturer_year}"):
        layout.text(text, MARGIN_LEFT)
        layout.move(5)
    layout.move(5)

    if sale is not None:
        layout.text("Customer", MARGIN_LEFT, size=12, bold=True)
        layout.move(6)
        for text in (f"Name    : {sale.customer_name or 'N/A'}", f"Phone   : {sale.customer_phone or 'N/A'}",
                     f"Address : {sale.customer_address or 'N/A'}"):
            layout.text(text, MARGIN_LEFT)
            layout.move(5)
        layout.move(5)

    layout.rule()
    layout.move(8)
    layout.text("Collection Details", MARGIN_LEFT, size=12, bold=True)
    layout.move(6)
    rows = [
        ("Due Amount", format_currency(settlement.due_amount)),
        ("Due Date", format_date(collection.due_date)),
        ("Cheque Amount", format_currency(settlement.cheque_amount)),
        ("Cheque No", collection.cheque_no),
        ("Cheque Deposit Bank Name", collection.cheque_deposit_bank_name),
        ("Cheque Deposit Bank Acc No", collection.cheque_deposit_bank_acc_no),
        ("Cheque Deposit Date", format_date(collection.cheque_deposit_date)),
        ("Personal Loan Amount", format_currency(settlement.personal_loan_amount)),
        ("PL Deposit Bank Name", collection.personal_loan_deposit_bank_name),
        ("PL Deposit Bank Acc No", collection.personal_loan_deposit_bank_acc_no),
        ("PL Deposit Date", format_date(collection.personal_loan_deposit_date)),
        ("Lease Company", collection.lease_company),
        ("Collected Date", format_date(collection.collected_date)),
    ]
    for label, value in rows:
        layout.text(f"{label:<28}: {value or 'N/A'}", MARGIN_LEFT)
        layout.move(5)
    layout.move(2)
    layout.text(f"Total Collected : {format_currency(settlement.total_collected)}", MARGIN_LEFT, bold=True)
    layout.move(5)
    layout.text(f"Balance Due     : {format_currency(settlement.remaining)}", MARGIN_LEFT, bold=True)
    return render_pdf(layout)


# --- COST REPORTS ---

def build_cost_breakdown_pdf(vehicle: models.Vehicle) -> bytes:
    layout = DocumentLayout(title=f"Cost Breakdown {vehicle.chassis_no}")
    layout.centered("Cost Breakdown Report", size=18, bold=True)
    layout.move(15)

    def heading(text):
        layout.ensure_space(14)
        layout.text(text, MARGIN_LEFT, size=12, bold=True)
        layout.move(7)

    def line(text, bold=False):
        layout.ensure_space(6)
        layout.text(text, MARGIN_LEFT, bold=bold)
        layout.move(6)

    heading("Vehicle Information")
    line(f"Maker: {vehicle.maker}")
    line(f"Model: {vehicle.model}")
    line(f"Chassis Number: {vehicle.chassis_no}")
    line(f"Year: {vehicle.manufacturer_year}")
    line(f"Mileage: {format_mileage(vehicle.mileage)}")
    layout.move(4)

    heading("Japan Costs (JPY)")
    line(f"Bidding Price: {format_number(vehicle.bid_jpy)} JPY")
    line(f"Commission: {format_number(vehicle.commission_jpy)} JPY")
    line(f"Insurance: {format_number(vehicle.insurance_jpy)} JPY")
    line(f"Inland Transport: {format_number(vehicle.inland_transport_jpy)} JPY")
    if pricing.to_amount(vehicle.other_jpy) > 0:
        line(f"{vehicle.other_label or 'Other'}: {format_number(vehicle.other_jpy)} JPY")
    line(f"Total CIF: {format_number(pricing.vehicle_cif_total(vehicle))} JPY", bold=True)
    layout.move(4)

    heading("CIF Split")
    invoice_rate = pricing.to_amount(vehicle.invoice_jpy_to_lkr_rate)
    line(f"Invoice Amount: {format_number(vehicle.invoice_amount_jpy)} JPY")
    line(f"Invoice Rate: {invoice_rate:.4f}")
    line(f"Invoice Amount (LKR): {format_currency(pricing.convert_jpy_to_lkr(vehicle.invoice_amount_jpy, invoice_rate))}")
    if pricing.to_amount(vehicle.undial_amount_jpy) > 0:
        undial_rate = pricing.to_amount(vehicle.undial_jpy_to_lkr_rate)
        line(f"Undial Amount: {format_number(vehicle.undial_amount_jpy)} JPY")
        line(f"Undial Rate: {undial_rate:.4f}")
        line(f"Undial Amount (LKR): {format_currency(pricing.convert_jpy_to_lkr(vehicle.undial_amount_jpy, undial_rate))}")
    japan_total = pricing.vehicle_japan_total_lkr(vehicle)
    line(f"Total Japan Cost (LKR): {format_currency(japan_total)}", bold=True)
    layout.move(4)

    heading("Local Costs (LKR)")
    labels = {
        "tax": "Tax",
        "clearance": "Clearance",
        "transport": "Transport",
        "extra1": vehicle.local_extra1_label or "Extra 1",
        "extra2": vehicle.local_extra2_label or "Extra 2",
        "extra3": vehicle.local_extra3_label or "Extra 3",
    }
    costs = pricing.vehicle_local_costs(vehicle)
    for name in pricing.LOCAL_COST_FIELDS:
        if pricing.to_amount(costs[name]) > 0:
            line(f"{labels[name]}: {format_currency(costs[name])}")
    line(f"Total Local Costs (LKR): {format_currency(pricing.local_cost_total(costs))}", bold=True)
    layout.move(4)
    layout.rule()
    layout.move(8)
    line(f"Final Combined Total (LKR): {format_currency(pricing.final_total_lkr(japan_total, costs))}", bold=True)
    return render_pdf(layout)


def build_undial_transfer_pdf(vehicle: models.Vehicle) -> bytes:
    summary = undial_transfer_summary(vehicle)

    layout = DocumentLayout(title=f"Undial Transfer {vehicle.chassis_no}")
    layout.centered("Undial Transfer Report", size=18, bold=True)
    layout.move(8)
    layout.centered(f"Generated: {format_date(models.local_now().date())}", size=10)
    layout.move(12)

    layout.field("Maker", vehicle.maker)
    layout.field("Model", vehicle.model)
    layout.field("Chassis Number", vehicle.chassis_no)
    layout.field("Year", vehicle.manufacturer_year)
    layout.move(4)
    layout.rule()
    layout.move(8)

    layout.field("CIF Total", f"{format_number(summary['cif_jpy'])} JPY")
    layout.field("Invoice Amount", f"{format_number(summary['invoice_jpy'])} JPY")
    layout.field("Invoice Rate", f"{summary['invoice_rate']:.4f}")
    layout.field("Undial Amount", f"{format_number(summary['undial_jpy'])} JPY", bold=True)
    layout.field("Undial Rate", f"{summary['undial_rate']:.4f}")
    layout.field("Undial Amount (LKR)", format_currency(summary["undial_lkr"]), bold=True)
    layout.move(4)
    layout.rule()
    layout.move(8)

    layout.text("Transfer Details", MARGIN_LEFT, size=12, bold=True)
    layout.move(7)
    if summary["has_bank"]:
        layout.field("Bank Name", summary["bank_name"])
        layout.field("Account No", summary["bank_acc_no"])
        layout.field("Transfer Date", format_date(summary["transfer_date"]))
    else:
        layout.text("No bank transfer recorded.", LABEL_X)
        layout.move(6)

    _signatures(layout)
    return render_pdf(layout)
