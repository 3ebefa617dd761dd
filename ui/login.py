# ui/login.py
import streamlit as st

from database import SessionLocal
from utils.auth_utils import authenticate, set_session_user


def render():
    """Email + password login. On success the session user is stored once for all pages."""
    col1, col2, col3 = st.columns([1, 1.2, 1])

    with col2:
        st.header("Vehicle Import Books")
        st.subheader("Sign in")

        with st.container(border=True):
            with st.form("login_form"):
                email = st.text_input("Email", placeholder="you@example.com")
                password = st.text_input("Password", type="password")

                if st.form_submit_button("Login", use_container_width=True, type="primary"):
                    try:
                        with SessionLocal() as db:
                            user = authenticate(db, email, password)
                    except Exception as e:
                        st.error(f"Error: {e}")
                        return

                    if user:
                        set_session_user(user)
                        st.rerun()
                    else:
                        st.error("Invalid email or password.")
