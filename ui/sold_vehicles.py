# ui/sold_vehicles.py
import streamlit as st

from database import SessionLocal
from services import advance_service, document_service, sales_service, vehicle_service
from utils.format_utils import format_currency


def render(user):
    st.title("Sold Vehicles")
    try:
        with SessionLocal() as db:
            df = sales_service.list_sold_vehicles(db)
    except Exception as e:
        st.error(f"Error: {e}")
        return

    if df.empty:
        st.info("No sold vehicles yet.")
        return

    columns = ["chassis_no", "maker", "model", "manufacturer_year", "sold_price", "sold_currency",
               "sold_date", "customer_name"]
    if user.is_admin:
        columns.append("profit")
    st.dataframe(df[columns], use_container_width=True, hide_index=True)

    chassis = st.selectbox("Select vehicle", df["chassis_no"].tolist(), key="sold_select")
    if not chassis:
        return

    with SessionLocal() as db:
        vehicle = vehicle_service.get_vehicle(db, chassis)
        sale = sales_service.get_sale(db, chassis)
        detail = sales_service.get_transaction_detail(db, chassis)
        payments = advance_service.list_payments(db, chassis)
        advance = advance_service.get_advance(db, chassis)

        c1, c2, c3 = st.columns(3)
        if sale and detail:
            c1.download_button(
                "Reprint Transaction Summary",
                document_service.build_transaction_summary_pdf(vehicle, sale, detail, payments, advance),
                file_name=f"Transaction-{chassis}.pdf", mime="application/pdf",
            )
        elif sale:
            c1.caption("No transaction details were saved for this sale.")
        c2.download_button("Cost Breakdown", document_service.build_cost_breakdown_pdf(vehicle),
                           file_name=f"Cost-Breakdown-{chassis}.pdf", mime="application/pdf")

    if user.is_admin:
        st.caption(f"Stored profit: {format_currency(sale.profit if sale else 0)}")
        if c3.button("Delete Sale", key=f"del_sale_{chassis}"):
            with SessionLocal() as db:
                ok, msg = sales_service.delete_sale(db, chassis)
            (st.success if ok else st.error)(msg)
            if ok:
                st.rerun()
        if c3.button("Delete Vehicle", key=f"del_sold_vehicle_{chassis}"):
            try:
                with SessionLocal() as db:
                    vehicle_service.delete_vehicle(db, chassis)
                st.rerun()
            except Exception as e:
                st.error(f"Error: {e}")
