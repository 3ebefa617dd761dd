# ui/reports.py
import streamlit as st

from database import SessionLocal
from services import report_service
from utils.auth_utils import require_admin
from utils.format_utils import format_currency


def render(user):
    st.title("Reports")
    if not require_admin():
        return

    try:
        with SessionLocal() as db:
            stats = report_service.get_dashboard_stats(db, user.role)
            series = report_service.get_monthly_profit_series(db)
            sales = report_service.get_sales_summary(db)
            advances = report_service.get_advance_summary(db)
            leases = report_service.get_lease_summary(db)
    except Exception as e:
        st.error(f"Error: {e}")
        return

    st.metric("Profit This Month", format_currency(stats["monthly_profit"]))

    st.subheader("Monthly Profit (last 12 months)")
    st.bar_chart(series.set_index("month")["profit"], use_container_width=True)

    st.subheader("Sales")
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Total Sales", format_currency(sales["total_sales"]))
    c2.metric("Total Profit", format_currency(sales["total_profit"]))
    c3.metric("Vehicles Sold", sales["count"])
    c4.metric("Average Profit", format_currency(sales["average_profit"]))

    st.subheader("Advances & Leasing")
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Total Advances", format_currency(advances["total_advance"]))
    c2.metric("Advance Payments", advances["count"])
    c3.metric("Lease Pending", format_currency(leases["pending"]))
    c4.metric("Lease Collected", format_currency(leases["collected"]))
