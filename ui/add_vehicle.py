# ui/add_vehicle.py
import streamlit as st

from database import SessionLocal
from models import VehicleStatus
from services import pricing_service as pricing
from services import vehicle_service, sales_service, document_service
from services.exchange_rate_service import fetch_jpy_to_lkr_rate
from utils.format_utils import format_currency, format_number

SPLIT_KEY = "add_vehicle_split"


@st.cache_data(ttl=3600)
def _default_rate() -> float:
    return fetch_jpy_to_lkr_rate()


def _split() -> pricing.CifSplit:
    if SPLIT_KEY not in st.session_state:
        st.session_state[SPLIT_KEY] = pricing.CifSplit(cif_total=0.0)
    return st.session_state[SPLIT_KEY]


def _on_invoice_change():
    split = _split()
    split.set_invoice_amount(st.session_state.av_invoice_amount)
    if split.undial_amount is not None:
        st.session_state.av_undial_amount = split.undial_amount


def _on_undial_change():
    _split().set_undial_amount(st.session_state.av_undial_amount)


def _reset_form():
    for key in list(st.session_state.keys()):
        if key.startswith("av_") or key == SPLIT_KEY:
            del st.session_state[key]


def render(user):
    st.title("Add Vehicle")

    # --- STEP 1: DETAILS ---
    st.subheader("Step 1: Vehicle Details")
    c1, c2 = st.columns(2)
    chassis_no = c1.text_input("Chassis Number *", key="av_chassis_no")
    maker = c2.text_input("Maker *", key="av_maker")
    model = c1.text_input("Model *", key="av_model")
    year = c2.number_input("Manufacturer Year *", min_value=1900, max_value=2100, value=2020, step=1, key="av_year")
    mileage = c1.number_input("Mileage (km) *", min_value=0, value=0, step=1000, key="av_mileage")

    # --- STEP 2: JAPAN COSTS ---
    st.subheader("Step 2: Japan Costs (JPY)")
    c1, c2, c3 = st.columns(3)
    bid = c1.number_input("Bidding Price", min_value=0.0, step=1000.0, key="av_bid")
    commission = c2.number_input("Commission", min_value=0.0, step=1000.0, key="av_commission")
    insurance = c3.number_input("Insurance", min_value=0.0, step=1000.0, key="av_insurance")
    inland = c1.number_input("Inland Transport", min_value=0.0, step=1000.0, key="av_inland")
    other = c2.number_input("Other", min_value=0.0, step=1000.0, key="av_other")
    other_label = c3.text_input("Other Label", key="av_other_label")

    cif = pricing.cif_total(bid, commission, insurance, inland, other)
    split = _split()
    split.set_cif_total(cif)
    st.info(f"Total CIF: {format_number(cif)} JPY")

    default_rate = _default_rate()
    c1, c2 = st.columns(2)
    c1.number_input("Invoice Amount (JPY)", min_value=0.0, step=1000.0, key="av_invoice_amount",
                    on_change=_on_invoice_change)
    invoice_rate = c2.number_input("Invoice Rate (JPY→LKR)", min_value=0.0, value=default_rate,
                                   format="%.4f", key="av_invoice_rate")
    c1.number_input("Undial Amount (JPY)", min_value=0.0, step=1000.0, key="av_undial_amount",
                    on_change=_on_undial_change)
    undial_rate = c2.number_input("Undial Rate (JPY→LKR)", min_value=0.0, value=default_rate,
                                  format="%.4f", key="av_undial_rate")

    invoice_amount = st.session_state.get("av_invoice_amount") or 0.0
    undial_amount = st.session_state.get("av_undial_amount") or 0.0
    if abs(split.difference) > 0.005 and invoice_amount:
        st.caption(f"Invoice + Undial differs from CIF by {format_number(split.difference)} JPY.")

    japan_total = pricing.japan_total_lkr(invoice_amount, invoice_rate, undial_amount, undial_rate)
    st.success(f"Japan Total: {format_currency(japan_total)}")

    data = {
        "chassis_no": chassis_no, "maker": maker, "model": model,
        "manufacturer_year": year, "mileage": mileage,
        "bid_jpy": bid, "commission_jpy": commission, "insurance_jpy": insurance,
        "inland_transport_jpy": inland, "other_jpy": other, "other_label": other_label,
        "invoice_amount_jpy": invoice_amount or None, "invoice_jpy_to_lkr_rate": invoice_rate or None,
        "undial_amount_jpy": undial_amount or None, "undial_jpy_to_lkr_rate": undial_rate or None,
    }

    c1, c2 = st.columns(2)
    if c1.button("Save as Available", type="primary", use_container_width=True):
        _save(data, VehicleStatus.AVAILABLE)
    if c2.button("Save as Not Available", use_container_width=True):
        _save(data, VehicleStatus.NOT_AVAILABLE)

    # --- SELL NOW (from the cost step: CIF is invoiced in full) ---
    with st.expander("Sell Now"):
        with st.form("av_sell_now"):
            buyer_name = st.text_input("Buyer Name *")
            buyer_phone = st.text_input("Buyer Phone")
            buyer_address = st.text_input("Buyer Address")
            expected_profit = st.number_input("Expected Profit (JPY) *", min_value=0.0, step=1000.0)
            quote = pricing.sell_now_quote(cif, expected_profit, invoice_rate, cif * invoice_rate)
            st.caption(f"Sold price: {format_number(quote['sold_price_jpy'])} JPY "
                       f"({format_currency(quote['sold_price_lkr'])})")
            if st.form_submit_button("Save & Sell"):
                sell_data = dict(data, invoice_amount_jpy=cif, undial_amount_jpy=None, undial_jpy_to_lkr_rate=None)
                customer = {"customer_name": buyer_name, "customer_phone": buyer_phone,
                            "customer_address": buyer_address}
                try:
                    with SessionLocal() as db:
                        vehicle_service.save_vehicle(db, sell_data, VehicleStatus.AVAILABLE)
                        result = sales_service.sell_now(db, chassis_no.strip(), expected_profit, customer,
                                                        use_cif_as_invoice=True)
                        vehicle = vehicle_service.get_vehicle(db, chassis_no.strip())
                        st.session_state.av_invoice_pdf = document_service.build_raster_invoice_pdf(
                            vehicle, customer, result["quote"]["sold_price_lkr"])
                    st.success("Vehicle saved and marked as sold.")
                except FileNotFoundError as e:
                    st.warning(f"Sale saved, but the invoice template is missing: {e}")
                except Exception as e:
                    st.error(f"Error: {e}")

    if st.session_state.get("av_invoice_pdf"):
        st.download_button("Download Invoice", st.session_state.av_invoice_pdf,
                           file_name=f"Invoice-{chassis_no}.pdf", mime="application/pdf")


def _save(data, status):
    try:
        with SessionLocal() as db:
            vehicle = vehicle_service.save_vehicle(db, data, status)
        st.success(f"Vehicle {vehicle.chassis_no} saved as {status.replace('_', ' ')}.")
        _reset_form()
    except Exception as e:
        st.error(f"Error: {e}")
