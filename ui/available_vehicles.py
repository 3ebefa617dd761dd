# ui/available_vehicles.py
from datetime import date

import streamlit as st

from database import SessionLocal
from models import PaymentMethod, VehicleStatus
from services import pricing_service as pricing
from services import advance_service, document_service, sales_service, vehicle_service
from utils.format_utils import format_currency, format_mileage, format_number


def render(user):
    st.title("Available Vehicles")

    search = st.text_input("Search by chassis number", key="avl_search").strip().lower()
    try:
        with SessionLocal() as db:
            vehicles = vehicle_service.list_vehicle_objects(db, VehicleStatus.AVAILABLE)
            pending = vehicle_service.list_vehicle_objects(db, VehicleStatus.PENDING_SALE)
    except Exception as e:
        st.error(f"Error: {e}")
        return

    for vehicle in pending:
        _render_pending(vehicle)

    vehicles = [v for v in vehicles if search in v.chassis_no.lower()]
    if not vehicles:
        st.info("No available vehicles.")
        return

    for vehicle in vehicles:
        badge = " ✅ Invoice Generated" if vehicle.invoice_generated else ""
        title = f"{vehicle.maker} {vehicle.model} ({vehicle.manufacturer_year}) | {vehicle.chassis_no}{badge}"
        with st.expander(title):
            c1, c2, c3 = st.columns(3)
            c1.metric("Mileage", format_mileage(vehicle.mileage))
            c2.metric("Japan Total", format_currency(vehicle.japan_total_lkr))
            c3.metric("Final Total", format_currency(vehicle.final_total_lkr))

            tabs = st.tabs(["Advance", "Local Costs", "Mark Sold", "Sell Now", "Reports"])
            with tabs[0]:
                _advance_tab(vehicle)
            with tabs[1]:
                _local_costs_tab(vehicle)
            with tabs[2]:
                _mark_sold_tab(vehicle)
            with tabs[3]:
                _sell_now_tab(vehicle)
            with tabs[4]:
                _reports_tab(vehicle, user)


# --- ADVANCES ---

def _advance_tab(vehicle):
    chassis = vehicle.chassis_no
    with SessionLocal() as db:
        position = advance_service.get_advance_position(db, chassis)
        advance = position["advance"]

        if advance:
            st.write(f"**Customer:** {advance.customer_name} | **Selling Price:** "
                     f"{format_currency(advance.expected_sell_price_lkr)}")
            for payment in position["payments"]:
                st.caption(f"{payment.paid_date}: {format_currency(payment.amount_lkr)}")
            c1, c2 = st.columns(2)
            c1.metric("Total Advance", format_currency(position["total_advance"]))
            c2.metric("Remaining", format_currency(position["remaining_balance"]))
            st.download_button(
                "Advance Receipt",
                document_service.build_advance_receipt_pdf(vehicle, advance, position["payments"]),
                file_name=f"Advance-{chassis}.pdf", mime="application/pdf", key=f"adv_pdf_{chassis}",
            )

    with st.form(f"adv_form_{chassis}"):
        customer = {}
        if not advance:
            customer["customer_name"] = st.text_input("Customer Name *")
            customer["customer_phone"] = st.text_input("Phone")
            customer["customer_address"] = st.text_input("Address")
            customer["customer_id"] = st.text_input("ID Number")
            customer["expected_sell_price_lkr"] = st.number_input("Selling Price (LKR) *", min_value=0.0, step=10000.0)
        amount = st.number_input("Payment Amount (LKR) *", min_value=0.0, step=10000.0)
        paid_date = st.date_input("Paid Date", value=date.today())
        st.caption("Bank transfer (optional)")
        c1, c2, c3 = st.columns(3)
        bank_name = c1.text_input("Bank Name")
        bank_acc_no = c2.text_input("Account No")
        reference = c3.text_input("Reference")
        if st.form_submit_button("Add Payment"):
            try:
                with SessionLocal() as db:
                    advance_service.add_advance_payment(db, chassis, amount, paid_date, customer,
                                                        bank_name, bank_acc_no, reference)
                st.success("Advance payment recorded.")
                st.rerun()
            except Exception as e:
                st.error(f"Error: {e}")

    if advance and st.button("Delete Advance", key=f"adv_del_{chassis}"):
        with SessionLocal() as db:
            ok, msg = advance_service.delete_advances(db, chassis)
        (st.success if ok else st.error)(msg)
        if ok:
            st.rerun()


# --- LOCAL COSTS ---

def _local_costs_tab(vehicle):
    chassis = vehicle.chassis_no
    suggested_lc = vehicle_service.suggest_lc_commission(vehicle)
    with st.form(f"lc_form_{chassis}"):
        costs = {
            "tax": st.number_input("Tax", min_value=0.0, value=float(vehicle.tax_lkr or 0)),
            "clearance": st.number_input("Clearance", min_value=0.0, value=float(vehicle.clearance_lkr or 0)),
            "transport": st.number_input("Transport", min_value=0.0, value=float(vehicle.transport_lkr or 0)),
        }
        for n in (1, 2, 3):
            c1, c2 = st.columns([1, 2])
            label = getattr(vehicle, f"local_extra{n}_label")
            amount = getattr(vehicle, f"local_extra{n}_lkr")
            if n == 1 and suggested_lc is not None:
                label, amount = pricing.LC_COMMISSION_LABEL, suggested_lc
            costs[f"extra{n}_label"] = c1.text_input(f"Extra {n} Label", value=label or "")
            costs[f"extra{n}"] = c2.number_input(f"Extra {n}", min_value=0.0, value=float(amount or 0))

        base = vehicle.japan_total_lkr or 0
        for name, running in pricing.local_cost_running_totals(base, costs):
            st.caption(f"After {name}: TOTAL so far {format_currency(running)}")

        if st.form_submit_button("Save Local Costs"):
            try:
                with SessionLocal() as db:
                    vehicle_service.update_local_costs(db, chassis, costs)
                st.success("Local costs saved.")
                st.rerun()
            except Exception as e:
                st.error(f"Error: {e}")


# --- MARK SOLD ---

def _mark_sold_tab(vehicle):
    chassis = vehicle.chassis_no
    with SessionLocal() as db:
        advance = advance_service.get_advance(db, chassis)
        total_advance = advance_service.get_total_advance(db, chassis)

    with st.form(f"sold_form_{chassis}"):
        c1, c2 = st.columns(2)
        customer_name = c1.text_input("Customer Name *", value=advance.customer_name if advance else "")
        customer_phone = c2.text_input("Phone", value=(advance.customer_phone or "") if advance else "")
        customer_address = st.text_input("Address", value=(advance.customer_address or "") if advance else "")
        sold_price = c1.number_input(
            "Sold Price (LKR) *", min_value=0.0, step=10000.0,
            value=float(advance.expected_sell_price_lkr) if advance else 0.0,
        )
        sold_date = c2.date_input("Sold Date", value=date.today())
        st.caption(f"Total advance: {format_currency(total_advance)}")

        has_leasing = st.checkbox("Leasing")
        lease_company = c1.text_input("Lease Company")
        lease_amount = c2.number_input("Lease Amount (LKR)", min_value=0.0, step=10000.0)

        method = st.radio("Payment Method", [PaymentMethod.CASH, PaymentMethod.CHEQUE, PaymentMethod.BOTH],
                          horizontal=True)
        c1, c2 = st.columns(2)
        cheque1_no = c1.text_input("Cheque 1 No")
        cheque1_amount = c2.number_input("Cheque 1 Amount", min_value=0.0)
        cheque2_no = c1.text_input("Cheque 2 No")
        cheque2_amount = c2.number_input("Cheque 2 Amount", min_value=0.0)
        cash_cols = st.columns(len(pricing.CASH_NOTES))
        cash = {note: col.number_input(f"{note} x", min_value=0, step=1)
                for note, col in zip(pricing.CASH_NOTES, cash_cols)}
        c1, c2, c3 = st.columns(3)
        registration = c1.number_input("Registration", min_value=0.0)
        valuation = c2.number_input("Valuation", min_value=0.0)
        r_licence = c3.number_input("R/Licence", min_value=0.0)

        balance = pricing.balance_settlement(pricing.balance_to_pay(sold_price, total_advance),
                                             lease_amount, has_leasing)
        st.info(f"Balance Settlement: {format_currency(balance)}")

        if st.form_submit_button("Mark Sold", type="primary"):
            sale_data = {
                "sold_price": sold_price, "sold_date": sold_date, "customer_name": customer_name,
                "customer_phone": customer_phone, "customer_address": customer_address,
            }
            transaction = {
                "payment_method": method,
                "cheque1_no": cheque1_no, "cheque1_amount": cheque1_amount,
                "cheque2_no": cheque2_no, "cheque2_amount": cheque2_amount,
                "cash": cash, "registration": registration, "valuation": valuation, "r_licence": r_licence,
            }
            lease = {"has_leasing": has_leasing, "lease_company": lease_company, "lease_amount": lease_amount}
            try:
                with SessionLocal() as db:
                    sales_service.begin_sale(db, chassis, sale_data, transaction, lease)
                st.rerun()
            except Exception as e:
                st.error(f"Error: {e}")


def _render_pending(vehicle):
    """A provisional sale waiting for the user to confirm or cancel."""
    chassis = vehicle.chassis_no
    with st.container(border=True):
        st.warning(f"Sale pending confirmation: {vehicle.maker} {vehicle.model} | {chassis}")
        try:
            with SessionLocal() as db:
                sale = sales_service.get_sale(db, chassis)
                detail = sales_service.get_transaction_detail(db, chassis)
                payments = advance_service.list_payments(db, chassis)
                advance = advance_service.get_advance(db, chassis)
                if sale and detail:
                    st.download_button(
                        "Transaction Summary",
                        document_service.build_transaction_summary_pdf(vehicle, sale, detail, payments, advance),
                        file_name=f"Transaction-{chassis}.pdf", mime="application/pdf",
                        key=f"ts_pending_{chassis}",
                    )
        except Exception as e:
            st.error(f"Error: {e}")

        c1, c2 = st.columns(2)
        if c1.button("Confirm Sale", key=f"confirm_{chassis}", type="primary"):
            try:
                with SessionLocal() as db:
                    sales_service.commit_sale(db, chassis)
                st.rerun()
            except Exception as e:
                st.error(f"Error: {e}")
        if c2.button("Cancel Sale", key=f"cancel_{chassis}"):
            try:
                with SessionLocal() as db:
                    sales_service.rollback_sale(db, chassis)
                st.rerun()
            except Exception as e:
                st.error(f"Error: {e}")


# --- SELL NOW ---

def _sell_now_tab(vehicle):
    chassis = vehicle.chassis_no
    with st.form(f"sell_now_{chassis}"):
        buyer_name = st.text_input("Buyer Name *")
        buyer_phone = st.text_input("Buyer Phone")
        buyer_address = st.text_input("Buyer Address")
        expected_profit = st.number_input("Expected Profit (JPY) *", min_value=0.0, step=1000.0)
        st.caption("Profit is converted at the invoice rate, stored in LKR and not shown on the invoice.")
        if st.form_submit_button("Sell Now"):
            customer = {"customer_name": buyer_name, "customer_phone": buyer_phone,
                        "customer_address": buyer_address}
            try:
                with SessionLocal() as db:
                    result = sales_service.sell_now(db, chassis, expected_profit, customer)
                    st.session_state[f"sell_now_pdf_{chassis}"] = document_service.build_invoice_pdf(
                        result["sale"].vehicle, customer, result["quote"]["sold_price_lkr"])
                st.success(f"Sold for {format_number(result['quote']['sold_price_jpy'])} JPY.")
            except Exception as e:
                st.error(f"Error: {e}")

    pdf = st.session_state.get(f"sell_now_pdf_{chassis}")
    if pdf:
        st.download_button("Download Invoice", pdf, file_name=f"Invoice-{chassis}.pdf",
                           mime="application/pdf", key=f"sell_now_dl_{chassis}")


# --- REPORTS / DELETE ---

def _reports_tab(vehicle, user):
    chassis = vehicle.chassis_no
    st.download_button("Cost Breakdown", document_service.build_cost_breakdown_pdf(vehicle),
                       file_name=f"Cost-Breakdown-{chassis}.pdf", mime="application/pdf",
                       key=f"cost_pdf_{chassis}")
    if user.is_admin and st.button("Delete Vehicle", key=f"del_{chassis}"):
        try:
            with SessionLocal() as db:
                vehicle_service.delete_vehicle(db, chassis)
            st.rerun()
        except Exception as e:
            st.error(f"Error: {e}")
