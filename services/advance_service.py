# services/advance_service.py
import logging
from datetime import date
from typing import Any, Dict, List, Optional

import pandas as pd
from sqlalchemy import func
from sqlalchemy.orm import Session

import models
from models import VehicleStatus
from services import pricing_service as pricing
from services.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def get_advance(db: Session, chassis_no: str) -> Optional[models.Advance]:
    """None means no advance has been taken yet, which is not an error."""
    return db.query(models.Advance).filter(models.Advance.chassis_no == chassis_no).first()


def list_payments(db: Session, chassis_no: str) -> List[models.AdvancePayment]:
    return (
        db.query(models.AdvancePayment)
        .filter(models.AdvancePayment.chassis_no == chassis_no)
        .order_by(models.AdvancePayment.paid_date, models.AdvancePayment.id)
        .all()
    )


def get_total_advance(db: Session, chassis_no: str) -> float:
    total = (
        db.query(func.coalesce(func.sum(models.AdvancePayment.amount_lkr), 0.0))
        .filter(models.AdvancePayment.chassis_no == chassis_no)
        .scalar()
    )
    return float(total or 0)


def get_advance_position(db: Session, chassis_no: str) -> Dict[str, Any]:
    """Agreed price, total paid and what is still owed for one vehicle."""
    advance = get_advance(db, chassis_no)
    payments = list_payments(db, chassis_no)
    total = pricing.total_advance(payments)
    selling_price = advance.expected_sell_price_lkr if advance else 0.0
    return {
        "advance": advance,
        "payments": payments,
        "total_advance": total,
        "selling_price": selling_price,
        "remaining_balance": pricing.remaining_balance(selling_price, payments) if advance else 0.0,
    }


def add_advance_payment(
    db: Session,
    chassis_no: str,
    amount_lkr: Any,
    paid_date: Optional[date] = None,
    customer: Optional[Dict[str, Any]] = None,
    bank_name: Optional[str] = None,
    bank_acc_no: Optional[str] = None,
    transfer_reference: Optional[str] = None,
) -> models.AdvancePayment:
    """
    Appends a payment to the advance ledger. The first payment for a vehicle
    also creates the Advance row, so it must bring the customer name and the
    agreed selling price; later payments may update those details.
    """
    amount = pricing.to_amount(amount_lkr)
    if amount <= 0:
        raise ValidationError("Please enter a valid payment amount")

    vehicle = db.query(models.Vehicle).filter(models.Vehicle.chassis_no == chassis_no).first()
    if not vehicle:
        raise NotFoundError(f"Vehicle with chassis number {chassis_no} does not exist.")
    if vehicle.status != VehicleStatus.AVAILABLE:
        raise ValidationError(f"Advances can only be taken on available vehicles (currently '{vehicle.status}').")

    customer = customer or {}
    advance = get_advance(db, chassis_no)
    try:
        if advance is None:
            name = (customer.get("customer_name") or "").strip()
            price = pricing.to_amount(customer.get("expected_sell_price_lkr"))
            if not name or price <= 0:
                raise ValidationError("Please fill in customer name and selling price")
            advance = models.Advance(
                chassis_no=chassis_no,
                customer_name=name,
                customer_phone=customer.get("customer_phone") or None,
                customer_address=customer.get("customer_address") or None,
                customer_id=customer.get("customer_id") or None,
                expected_sell_price_lkr=price,
            )
            db.add(advance)
            logger.info("Opened advance for %s (%s)", chassis_no, name)
        else:
            for key in ("customer_name", "customer_phone", "customer_address", "customer_id"):
                if customer.get(key):
                    setattr(advance, key, customer[key])
            if pricing.to_amount(customer.get("expected_sell_price_lkr")) > 0:
                advance.expected_sell_price_lkr = pricing.to_amount(customer["expected_sell_price_lkr"])

        payment = models.AdvancePayment(
            chassis_no=chassis_no,
            paid_date=paid_date or models.local_now().date(),
            amount_lkr=amount,
            bank_name=bank_name or None,
            bank_acc_no=bank_acc_no or None,
            transfer_reference=transfer_reference or None,
        )
        db.add(payment)
        db.commit()
        db.refresh(payment)
        logger.info("Advance payment of %.2f recorded for %s", amount, chassis_no)
        return payment
    except Exception as e:
        db.rollback()
        raise e


def delete_advances(db: Session, chassis_no: str):
    """Removes every payment and the advance itself for one vehicle."""
    try:
        db.query(models.AdvancePayment).filter(models.AdvancePayment.chassis_no == chassis_no).delete(
            synchronize_session=False
        )
        deleted = db.query(models.Advance).filter(models.Advance.chassis_no == chassis_no).delete(
            synchronize_session=False
        )
        db.commit()
        if deleted:
            logger.info("Deleted advance records for %s", chassis_no)
        return True, "Advance records deleted."
    except Exception as e:
        db.rollback()
        return False, f"Database Error: {e}"


def list_advances_frame(db: Session) -> pd.DataFrame:
    """One row per advance with the amount paid so far."""
    paid = (
        db.query(
            models.AdvancePayment.chassis_no.label("chassis_no"),
            func.sum(models.AdvancePayment.amount_lkr).label("total_advance"),
            func.count(models.AdvancePayment.id).label("payment_count"),
        )
        .group_by(models.AdvancePayment.chassis_no)
        .subquery()
    )
    query = (
        db.query(
            models.Advance.chassis_no,
            models.Advance.customer_name,
            models.Advance.customer_phone,
            models.Advance.expected_sell_price_lkr,
            models.Vehicle.maker,
            models.Vehicle.model,
            models.Vehicle.status,
            func.coalesce(paid.c.total_advance, 0.0).label("total_advance"),
            func.coalesce(paid.c.payment_count, 0).label("payment_count"),
        )
        .join(models.Vehicle, models.Vehicle.chassis_no == models.Advance.chassis_no)
        .outerjoin(paid, paid.c.chassis_no == models.Advance.chassis_no)
    )
    df = pd.read_sql(query.statement, db.get_bind())
    if not df.empty:
        df["remaining_balance"] = df["expected_sell_price_lkr"] - df["total_advance"]
    return df
