# ui/generate_invoice.py
from datetime import date

import streamlit as st

from database import SessionLocal
from models import Currency, DocumentType, VehicleStatus
from services import pricing_service as pricing
from services import advance_service, document_service, sales_service, vehicle_service
from services.errors import ValidationError
from utils.format_utils import format_currency


def render(user):
    st.title("Generate Invoice")
    try:
        with SessionLocal() as db:
            vehicles = [v for v in vehicle_service.list_vehicle_objects(db, VehicleStatus.AVAILABLE)
                        if not vehicle_service.is_invoice_generated(v)]
    except Exception as e:
        st.error(f"Error: {e}")
        return

    search = st.text_input("Search by chassis number", key="inv_search").strip().lower()
    vehicles = [v for v in vehicles if search in v.chassis_no.lower()]
    if not vehicles:
        st.info("No vehicles waiting for an invoice.")
    else:
        options = {f"{v.maker} {v.model} | {v.chassis_no}": v for v in vehicles}
        vehicle = options[st.selectbox("Vehicle", list(options.keys()), key="inv_vehicle")]
        _invoice_form(vehicle)

    pdf = st.session_state.get("inv_pdf")
    if pdf:
        st.download_button("Download Invoice", pdf["bytes"], file_name=pdf["name"], mime="application/pdf")


def _invoice_form(vehicle):
    chassis = vehicle.chassis_no
    with SessionLocal() as db:
        advance = advance_service.get_advance(db, chassis)
        payments = advance_service.list_payments(db, chassis)
    total_advance = pricing.total_advance(payments)

    with st.form(f"invoice_form_{chassis}"):
        c1, c2, c3 = st.columns(3)
        price = c1.number_input("Invoice Price *", min_value=0.0, step=10000.0,
                                value=float(advance.expected_sell_price_lkr) if advance else 0.0)
        currency = c2.selectbox("Currency", [Currency.LKR, Currency.JPY])
        rate = c3.number_input("Exchange Rate (JPY only)", min_value=0.0, format="%.4f")
        invoice_date = c1.date_input("Invoice Date", value=date.today())

        c1, c2 = st.columns(2)
        customer = {
            "customer_name": c1.text_input("Customer Name *", value=advance.customer_name if advance else ""),
            "customer_phone": c2.text_input("Customer Phone", value=(advance.customer_phone or "") if advance else ""),
            "customer_address": st.text_input("Customer Address",
                                              value=(advance.customer_address or "") if advance else ""),
        }
        bank_name = c1.text_input("Bank Name *")
        bank_address = c2.text_input("Bank Address *")

        st.markdown("**Vehicle Description**")
        c1, c2, c3 = st.columns(3)
        details = {
            "engine_no": c1.text_input("Engine No *", value=vehicle.engine_no or ""),
            "engine_capacity": c2.text_input("Engine Capacity (cc) *", value=vehicle.engine_capacity or ""),
            "color": c3.text_input("Colour *", value=vehicle.color or ""),
            "fuel_type": c1.text_input("Fuel Type *", value=vehicle.fuel_type or ""),
            "seating_capacity": c2.text_input("Seating Capacity *", value=vehicle.seating_capacity or ""),
        }

        price_lkr = pricing.invoice_price_lkr(price, currency, rate)
        st.info(f"Invoice Price: {format_currency(price_lkr)} | Total Advance: {format_currency(total_advance)} | "
                f"Balance: {format_currency(pricing.balance_to_pay(price_lkr, total_advance))}")

        if st.form_submit_button("Generate Invoice", type="primary"):
            try:
                if not price or not customer["customer_name"].strip() or not bank_name or not bank_address:
                    raise ValidationError("Please fill in all required fields "
                                          "(Invoice Price, Customer Name, Bank Name, Bank Address)")
                if currency == Currency.JPY and not rate:
                    raise ValidationError("Please enter exchange rate for JPY")
                with SessionLocal() as db:
                    saved = vehicle_service.record_invoice_details(db, chassis, details)
                    sales_service.save_transaction_detail(db, chassis, customer, DocumentType.INVOICE)
                    pdf = document_service.build_invoice_pdf(
                        saved, customer, price_lkr, payments, invoice_date,
                        bank_name=bank_name, bank_address=bank_address,
                    )
                st.session_state.inv_pdf = {"bytes": pdf, "name": f"Invoice-{chassis}.pdf"}
                st.success("Invoice generated. The vehicle is now marked as 'Invoice Generated'.")
            except Exception as e:
                st.error(f"Error: {e}")
