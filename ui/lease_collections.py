# ui/lease_collections.py
from datetime import date

import streamlit as st

from database import SessionLocal
from services import document_service, lease_service, sales_service
from utils.format_utils import format_currency


def render(user):
    st.title("Lease Collections")
    try:
        with SessionLocal() as db:
            collections = lease_service.list_collections(db)
    except Exception as e:
        st.error(f"Error: {e}")
        return

    if not collections:
        st.success("All lease payments have been collected")
        return

    for collection in collections:
        collected_so_far = (collection.cheque_amount or 0) + (collection.personal_loan_amount or 0)
        remaining = (collection.due_amount_lkr or 0) - collected_so_far
        label = (f"{collection.chassis_no} | {collection.lease_company or 'N/A'} | "
                 f"Due {format_currency(collection.due_amount_lkr)} | Remaining {format_currency(remaining)}")
        with st.expander(label):
            _collection_form(collection)


def _collection_form(collection):
    cid = collection.id
    with st.form(f"lease_form_{cid}"):
        c1, c2 = st.columns(2)
        c1.markdown("**Cheque**")
        c2.markdown("**Personal Loan**")
        data = {
            "cheque_amount": c1.number_input("Cheque Amount", min_value=0.0, value=float(collection.cheque_amount or 0)),
            "cheque_no": c1.text_input("Cheque No", value=collection.cheque_no or ""),
            "cheque_deposit_bank_name": c1.text_input("Deposit Bank", value=collection.cheque_deposit_bank_name or ""),
            "cheque_deposit_bank_acc_no": c1.text_input("Deposit Account No",
                                                        value=collection.cheque_deposit_bank_acc_no or ""),
            "cheque_deposit_date": c1.date_input("Deposit Date", value=collection.cheque_deposit_date or date.today()),
            "personal_loan_amount": c2.number_input("Personal Loan Amount", min_value=0.0,
                                                    value=float(collection.personal_loan_amount or 0)),
            "personal_loan_deposit_bank_name": c2.text_input("PL Deposit Bank",
                                                             value=collection.personal_loan_deposit_bank_name or ""),
            "personal_loan_deposit_bank_acc_no": c2.text_input(
                "PL Deposit Account No", value=collection.personal_loan_deposit_bank_acc_no or ""),
            "personal_loan_deposit_date": c2.date_input("PL Deposit Date",
                                                        value=collection.personal_loan_deposit_date or date.today()),
        }
        if st.form_submit_button("Save Collection", type="primary"):
            try:
                with SessionLocal() as db:
                    settlement = lease_service.record_collection(db, cid, data)
                    if settlement.should_mark_collected:
                        saved = lease_service.get_collection(db, cid)
                        st.session_state[f"lease_pdf_{cid}"] = document_service.build_lease_report_pdf(
                            saved, saved.vehicle, sales_service.get_sale(db, saved.chassis_no))
                for warning in settlement.warnings:
                    st.warning(warning)
                st.success("Collection details saved successfully.")
            except Exception as e:
                st.error(f"Error: {e}")

    pdf = st.session_state.get(f"lease_pdf_{cid}")
    if pdf:
        st.download_button("Download Lease Report", pdf, file_name=f"Lease-Report-{collection.chassis_no}.pdf",
                           mime="application/pdf", key=f"lease_dl_{cid}")
