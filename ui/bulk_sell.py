# ui/bulk_sell.py
import streamlit as st

from database import SessionLocal
from models import VehicleStatus
from services import pricing_service as pricing
from services import document_service, sales_service, vehicle_service
from utils.format_utils import format_currency


def render(user):
    st.title("Bulk Sell")
    try:
        with SessionLocal() as db:
            vehicles = vehicle_service.list_vehicle_objects(db, VehicleStatus.AVAILABLE)
    except Exception as e:
        st.error(f"Error: {e}")
        return

    if not vehicles:
        st.info("No available vehicles.")
        return

    by_chassis = {v.chassis_no: v for v in vehicles}
    selected = st.multiselect(
        "Vehicles", list(by_chassis.keys()),
        format_func=lambda c: f"{by_chassis[c].maker} {by_chassis[c].model} | {c}",
        key="bulk_selected",
    )

    with st.form("bulk_form"):
        customer = {
            "customer_name": st.text_input("Customer Name *"),
            "customer_address": st.text_input("Customer Address"),
        }
        profits = {}
        total = 0.0
        for chassis in selected:
            vehicle = by_chassis[chassis]
            profits[chassis] = st.number_input(f"Expected profit (JPY) for {vehicle.maker} {vehicle.model} ({chassis})",
                                               min_value=0.0, step=1000.0, key=f"bulk_profit_{chassis}")
            quote = pricing.sell_now_quote(vehicle.invoice_amount_jpy, profits[chassis],
                                           vehicle.invoice_jpy_to_lkr_rate, vehicle.japan_total_lkr)
            total += quote["sold_price_lkr"]
        st.info(f"Total: {format_currency(total)}")

        if st.form_submit_button("Generate Bulk Invoice & Mark Sold", type="primary"):
            try:
                with SessionLocal() as db:
                    lines = sales_service.bulk_sell(db, profits, customer)
                    st.session_state.bulk_pdf = document_service.build_bulk_invoice_pdf(lines, customer)
                st.success("Bulk invoice generated and vehicles marked as sold successfully!")
            except Exception as e:
                st.error(f"Error: {e}")

    if st.session_state.get("bulk_pdf"):
        st.download_button("Download Bulk Invoice", st.session_state.bulk_pdf,
                           file_name="Bulk-Invoice.pdf", mime="application/pdf")
