# services/lease_service.py
import logging
from datetime import date
from typing import Any, Dict, Optional

import pandas as pd
from sqlalchemy import func
from sqlalchemy.orm import Session

import models
from services import pricing_service as pricing
from services.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def _deposit_filled(bank_name, acc_no, deposit_date) -> bool:
    return bool(bank_name) and bool(acc_no) and bool(deposit_date)


def needs_attention(collection: models.LeaseCollection) -> bool:
    """Still on the collections list: not collected, or a used channel lacks its deposit bank."""
    if not collection.collected:
        return True
    if pricing.to_amount(collection.cheque_amount) > 0 and not collection.cheque_deposit_bank_name:
        return True
    if pricing.to_amount(collection.personal_loan_amount) > 0 and not collection.personal_loan_deposit_bank_name:
        return True
    return False


def get_collection(db: Session, collection_id: int) -> Optional[models.LeaseCollection]:
    return db.query(models.LeaseCollection).filter(models.LeaseCollection.id == collection_id).first()


def list_collections(db: Session, include_settled: bool = False):
    """Lease collections joined with their vehicle, oldest due date first."""
    rows = (
        db.query(models.LeaseCollection)
        .join(models.Vehicle, models.Vehicle.chassis_no == models.LeaseCollection.chassis_no)
        .order_by(models.LeaseCollection.due_date, models.LeaseCollection.id)
        .all()
    )
    if include_settled:
        return rows
    return [c for c in rows if needs_attention(c)]


def settlement_for(collection: models.LeaseCollection, data: Dict[str, Any]) -> pricing.LeaseSettlement:
    """Validates a collection entry and works out whether it settles the lease."""
    cheque_amount = pricing.to_amount(data.get("cheque_amount"))
    loan_amount = pricing.to_amount(data.get("personal_loan_amount"))
    if cheque_amount < 0 or loan_amount < 0:
        raise ValidationError("Collected amounts cannot be negative")
    if cheque_amount == 0 and loan_amount == 0:
        raise ValidationError("Please enter at least one payment method (Cheque or Personal Loan)")

    settlement = pricing.LeaseSettlement(
        due_amount=pricing.to_amount(collection.due_amount_lkr),
        cheque_amount=cheque_amount,
        personal_loan_amount=loan_amount,
    )
    if settlement.over_collected:
        raise ValidationError(
            f"Total collected amount ({settlement.total_collected:,.2f}) exceeds "
            f"due amount ({settlement.due_amount:,.2f})"
        )
    if cheque_amount > 0 and not (data.get("cheque_no") or "").strip():
        raise ValidationError("Please enter cheque number")

    cheque_ok = cheque_amount == 0 or _deposit_filled(
        data.get("cheque_deposit_bank_name"), data.get("cheque_deposit_bank_acc_no"), data.get("cheque_deposit_date"))
    loan_ok = loan_amount == 0 or _deposit_filled(
        data.get("personal_loan_deposit_bank_name"), data.get("personal_loan_deposit_bank_acc_no"),
        data.get("personal_loan_deposit_date"))
    settlement.deposits_complete = cheque_ok and loan_ok

    if not settlement.fully_collected:
        settlement.warnings.append(f"Balance of {settlement.remaining:,.2f} is still due.")
    if not settlement.deposits_complete:
        settlement.warnings.append("Deposit bank details are missing for a payment method.")
    return settlement


def record_collection(db: Session, collection_id: int, data: Dict[str, Any],
                      collected_date: Optional[date] = None) -> pricing.LeaseSettlement:
    """
    Saves cheque / personal-loan amounts and deposit details. The collection
    is marked collected only when nothing is left due and every channel used
    has its deposit bank, account and date.
    """
    collection = get_collection(db, collection_id)
    if not collection:
        raise NotFoundError(f"Lease collection {collection_id} does not exist.")
    settlement = settlement_for(collection, data)

    try:
        uses_cheque = settlement.cheque_amount > 0
        uses_loan = settlement.personal_loan_amount > 0

        collection.cheque_amount = settlement.cheque_amount if uses_cheque else None
        collection.cheque_no = data.get("cheque_no") if uses_cheque else None
        collection.cheque_deposit_bank_name = (data.get("cheque_deposit_bank_name") or None) if uses_cheque else None
        collection.cheque_deposit_bank_acc_no = (data.get("cheque_deposit_bank_acc_no") or None) if uses_cheque else None
        collection.cheque_deposit_date = data.get("cheque_deposit_date") if uses_cheque else None

        collection.personal_loan_amount = settlement.personal_loan_amount if uses_loan else None
        collection.personal_loan_deposit_bank_name = (data.get("personal_loan_deposit_bank_name") or None) if uses_loan else None
        collection.personal_loan_deposit_bank_acc_no = (data.get("personal_loan_deposit_bank_acc_no") or None) if uses_loan else None
        collection.personal_loan_deposit_date = data.get("personal_loan_deposit_date") if uses_loan else None

        collection.collected = settlement.should_mark_collected
        collection.collected_date = (collected_date or models.local_now().date()) if collection.collected else None

        db.commit()
        logger.info(
            "Lease collection %s for %s: collected %.2f of %.2f (settled=%s)",
            collection_id, collection.chassis_no, settlement.total_collected,
            settlement.due_amount, collection.collected,
        )
        return settlement
    except Exception as e:
        db.rollback()
        raise e


def lease_totals(db: Session) -> Dict[str, float]:
    """Due amounts split into still-to-collect and collected."""
    rows = (
        db.query(models.LeaseCollection.collected, func.sum(models.LeaseCollection.due_amount_lkr))
        .group_by(models.LeaseCollection.collected)
        .all()
    )
    totals = {"pending": 0.0, "collected": 0.0}
    for collected, amount in rows:
        totals["collected" if collected else "pending"] += float(amount or 0)
    return totals


def list_collections_frame(db: Session) -> pd.DataFrame:
    query = (
        db.query(
            models.LeaseCollection.id,
            models.LeaseCollection.chassis_no,
            models.Vehicle.maker,
            models.Vehicle.model,
            models.LeaseCollection.lease_company,
            models.LeaseCollection.due_amount_lkr,
            models.LeaseCollection.due_date,
            models.LeaseCollection.collected,
            models.LeaseCollection.collected_date,
        )
        .join(models.Vehicle, models.Vehicle.chassis_no == models.LeaseCollection.chassis_no)
        .order_by(models.LeaseCollection.due_date)
    )
    return pd.read_sql(query.statement, db.get_bind())
