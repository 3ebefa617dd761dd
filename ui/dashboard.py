# ui/dashboard.py
import streamlit as st

from database import SessionLocal
from services import report_service
from utils.format_utils import format_currency


def render(user):
    st.title("Dashboard")
    try:
        with SessionLocal() as db:
            stats = report_service.get_dashboard_stats(db, user.role)
    except Exception as e:
        st.error(f"Error: {e}")
        return

    cols = st.columns(4 if user.is_admin else 3)
    cols[0].metric("Sold This Month", stats["sold_this_month"])
    cols[1].metric("Advance Money", format_currency(stats["advance_money"]))
    cols[2].metric("Lease Money to Collect", format_currency(stats["lease_money_to_collect"]))
    if user.is_admin:
        cols[3].metric("Monthly Profit", format_currency(stats["monthly_profit"]))
