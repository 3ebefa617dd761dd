# ui/not_available_vehicles.py
from datetime import date

import streamlit as st

from database import SessionLocal
from models import VehicleStatus
from services import pricing_service as pricing
from services import document_service, vehicle_service
from utils.format_utils import format_currency, format_number


def render(user):
    st.title("Not Available Vehicles")
    try:
        with SessionLocal() as db:
            vehicles = vehicle_service.list_vehicle_objects(db, VehicleStatus.NOT_AVAILABLE)
    except Exception as e:
        st.error(f"Error: {e}")
        return

    if not vehicles:
        st.info("No vehicles waiting for costs.")
        return

    for vehicle in vehicles:
        with st.expander(f"{vehicle.maker} {vehicle.model} ({vehicle.manufacturer_year}) | {vehicle.chassis_no}"):
            _edit_form(vehicle)
            st.download_button(
                "Undial Transfer Report", document_service.build_undial_transfer_pdf(vehicle),
                file_name=f"Undial-Transfer-{vehicle.chassis_no}.pdf", mime="application/pdf",
                key=f"undial_pdf_{vehicle.chassis_no}",
            )
            if user.is_admin and st.button("Delete Vehicle", key=f"na_del_{vehicle.chassis_no}"):
                try:
                    with SessionLocal() as db:
                        vehicle_service.delete_vehicle(db, vehicle.chassis_no)
                    st.rerun()
                except Exception as e:
                    st.error(f"Error: {e}")


def _edit_form(vehicle):
    chassis = vehicle.chassis_no
    with st.form(f"na_form_{chassis}"):
        c1, c2, c3 = st.columns(3)
        data = {
            "bid_jpy": c1.number_input("Bidding Price", min_value=0.0, value=float(vehicle.bid_jpy or 0)),
            "commission_jpy": c2.number_input("Commission", min_value=0.0, value=float(vehicle.commission_jpy or 0)),
            "insurance_jpy": c3.number_input("Insurance", min_value=0.0, value=float(vehicle.insurance_jpy or 0)),
            "inland_transport_jpy": c1.number_input("Inland Transport", min_value=0.0,
                                                    value=float(vehicle.inland_transport_jpy or 0)),
            "other_jpy": c2.number_input("Other", min_value=0.0, value=float(vehicle.other_jpy or 0)),
            "other_label": c3.text_input("Other Label", value=vehicle.other_label or ""),
        }
        cif = pricing.cif_total(data["bid_jpy"], data["commission_jpy"], data["insurance_jpy"],
                                data["inland_transport_jpy"], data["other_jpy"])
        st.caption(f"Total CIF: {format_number(cif)} JPY")

        c1, c2 = st.columns(2)
        data["invoice_amount_jpy"] = c1.number_input("Invoice Amount (JPY)", min_value=0.0,
                                                     value=float(vehicle.invoice_amount_jpy or 0))
        data["invoice_jpy_to_lkr_rate"] = c2.number_input("Invoice Rate", min_value=0.0, format="%.4f",
                                                          value=float(vehicle.invoice_jpy_to_lkr_rate or 0))
        suggested = pricing.suggest_undial(cif, data["invoice_amount_jpy"])
        undial_default = vehicle.undial_amount_jpy if vehicle.undial_amount_jpy is not None else (suggested or 0)
        data["undial_amount_jpy"] = c1.number_input("Undial Amount (JPY)", min_value=0.0,
                                                    value=float(undial_default))
        data["undial_jpy_to_lkr_rate"] = c2.number_input("Undial Rate", min_value=0.0, format="%.4f",
                                                         value=float(vehicle.undial_jpy_to_lkr_rate or 0))

        data["undial_transfer_has_bank"] = st.checkbox("Undial transferred through bank",
                                                       value=bool(vehicle.undial_transfer_has_bank))
        c1, c2, c3 = st.columns(3)
        data["undial_transfer_bank_name"] = c1.text_input("Bank Name", value=vehicle.undial_transfer_bank_name or "")
        data["undial_transfer_acc_no"] = c2.text_input("Account No", value=vehicle.undial_transfer_acc_no or "")
        data["undial_transfer_date"] = c3.date_input("Transfer Date",
                                                     value=vehicle.undial_transfer_date or date.today())

        japan_total = pricing.japan_total_lkr(data["invoice_amount_jpy"], data["invoice_jpy_to_lkr_rate"],
                                              data["undial_amount_jpy"], data["undial_jpy_to_lkr_rate"])
        st.info(f"Japan Total: {format_currency(japan_total)}")

        c1, c2 = st.columns(2)
        save = c1.form_submit_button("Save")
        move = c2.form_submit_button("Save & Move to Available", type="primary")
        if save or move:
            try:
                with SessionLocal() as db:
                    vehicle_service.update_japan_costs(db, chassis, data, move_to_available=move)
                st.success("Moved to Available." if move else "Costs saved.")
                st.rerun()
            except Exception as e:
                st.error(f"Error: {e}")
