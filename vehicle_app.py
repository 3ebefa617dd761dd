# vehicle_app.py
import logging

import streamlit as st

from database import init_db
from ui import (
    login, dashboard, add_vehicle, available_vehicles, not_available_vehicles,
    sold_vehicles, lease_collections, generate_invoice, bulk_sell, reports
)
from utils.auth_utils import get_session_user, clear_session

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

# --- PAGE CONFIG ---
st.set_page_config(page_title="Vehicle Import Books", layout="wide")

PAGES = {
    "Dashboard": dashboard.render,
    "Add Vehicle": add_vehicle.render,
    "Available Vehicles": available_vehicles.render,
    "Not Available Vehicles": not_available_vehicles.render,
    "Generate Invoice": generate_invoice.render,
    "Bulk Sell": bulk_sell.render,
    "Sold Vehicles": sold_vehicles.render,
    "Lease Collections": lease_collections.render,
    "Reports": reports.render,
}


@st.cache_resource
def _prepare_database():
    init_db()
    return True


# --- MAIN APP ROUTER ---
def main():
    _prepare_database()

    user = get_session_user()
    if user is None:
        login.render()
        return

    # --- Common Sidebar for Logged-in Users ---
    with st.sidebar:
        st.success(f"User: **{user.email}**")
        st.info(f"Role: **{user.role}**")
        page = st.radio("Go to", list(PAGES.keys()), key="nav_page")
        st.markdown("---")
        if st.button("Logout", type="primary", use_container_width=True):
            clear_session()
            st.rerun()

    PAGES[page](user)


if __name__ == "__main__":
    main()
