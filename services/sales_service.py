# services/sales_service.py
"""
Selling a vehicle.

Mark Sold is a two-step flow: begin_sale writes the sale, its settlement
details and the lease receivable in one transaction and parks the vehicle in
'pending_sale' while the user reviews the transaction summary. The user then
either confirms (commit_sale) or cancels (rollback_sale), which removes those
rows again and puts the vehicle back on the available list.
"""
import logging
from datetime import date
from typing import Any, Dict, List, Optional

import pandas as pd
from sqlalchemy.orm import Session

import models
from models import Currency, DocumentType, PaymentMethod, VehicleStatus
from services import pricing_service as pricing
from services.errors import InvalidTransitionError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    VehicleStatus.NOT_AVAILABLE: {VehicleStatus.AVAILABLE},
    VehicleStatus.AVAILABLE: {VehicleStatus.PENDING_SALE, VehicleStatus.SOLD},
    VehicleStatus.PENDING_SALE: {VehicleStatus.SOLD, VehicleStatus.AVAILABLE},
    VehicleStatus.SOLD: set(),
}


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, set())


def transition(vehicle: models.Vehicle, target: str) -> None:
    if not can_transition(vehicle.status, target):
        raise InvalidTransitionError(vehicle.chassis_no, vehicle.status, target)
    logger.info("Vehicle %s: %s -> %s", vehicle.chassis_no, vehicle.status, target)
    vehicle.status = target


def _get_vehicle(db: Session, chassis_no: str) -> models.Vehicle:
    vehicle = db.query(models.Vehicle).filter(models.Vehicle.chassis_no == chassis_no).first()
    if not vehicle:
        raise NotFoundError(f"Vehicle with chassis number {chassis_no} does not exist.")
    return vehicle


def _clear_sale_rows(db: Session, chassis_no: str) -> None:
    for model in (models.TransactionDetail, models.LeaseCollection, models.Sale):
        db.query(model).filter(model.chassis_no == chassis_no).delete(synchronize_session=False)


# --- READS ---

def get_sale(db: Session, chassis_no: str) -> Optional[models.Sale]:
    return db.query(models.Sale).filter(models.Sale.chassis_no == chassis_no).first()


def get_transaction_detail(db: Session, chassis_no: str,
                           document_type: str = DocumentType.TRANSACTION) -> Optional[models.TransactionDetail]:
    return (
        db.query(models.TransactionDetail)
        .filter(
            models.TransactionDetail.chassis_no == chassis_no,
            models.TransactionDetail.document_type == document_type,
        )
        .order_by(models.TransactionDetail.id.desc())
        .first()
    )


def list_sold_vehicles(db: Session) -> pd.DataFrame:
    query = (
        db.query(
            models.Vehicle.chassis_no,
            models.Vehicle.maker,
            models.Vehicle.model,
            models.Vehicle.manufacturer_year,
            models.Vehicle.japan_total_lkr,
            models.Vehicle.final_total_lkr,
            models.Sale.sold_price,
            models.Sale.sold_currency,
            models.Sale.rate_jpy_to_lkr,
            models.Sale.profit,
            models.Sale.sold_date,
            models.Sale.customer_name,
            models.Sale.customer_phone,
        )
        .join(models.Sale, models.Sale.chassis_no == models.Vehicle.chassis_no)
        .filter(models.Vehicle.status == VehicleStatus.SOLD)
        .order_by(models.Sale.sold_date.desc())
    )
    return pd.read_sql(query.statement, db.get_bind())


# --- MARK SOLD ---

def _build_sale(vehicle: models.Vehicle, sale_data: Dict[str, Any]) -> models.Sale:
    customer_name = (sale_data.get("customer_name") or "").strip()
    sold_price = pricing.to_amount(sale_data.get("sold_price"))
    if not customer_name or sold_price <= 0:
        raise ValidationError("Please fill in all required fields")

    currency = sale_data.get("sold_currency") or Currency.LKR
    rate = pricing.to_optional_amount(sale_data.get("rate_jpy_to_lkr"))
    if currency == Currency.JPY and not rate:
        raise ValidationError("A JPY sale needs the JPY to LKR rate used at the time of sale")

    # Snapshot: later cost edits on the vehicle never reach this value
    profit = pricing.profit_lkr(sold_price, pricing.vehicle_cost_basis(vehicle), currency, rate)
    return models.Sale(
        chassis_no=vehicle.chassis_no,
        sold_price=sold_price,
        sold_currency=currency,
        rate_jpy_to_lkr=rate,
        profit=profit,
        sold_date=sale_data.get("sold_date") or models.local_now().date(),
        customer_name=customer_name,
        customer_address=sale_data.get("customer_address") or None,
        customer_phone=sale_data.get("customer_phone") or None,
        bank_name=sale_data.get("bank_name") or None,
        bank_address=sale_data.get("bank_address") or None,
    )


def _apply_transaction_fields(detail: models.TransactionDetail, data: Dict[str, Any]) -> None:
    detail.customer_name = (data.get("customer_name") or "").strip()
    detail.customer_phone = data.get("customer_phone") or None
    detail.customer_address = data.get("customer_address") or None
    detail.lease_company = data.get("lease_company") or None
    detail.lease_amount = pricing.to_optional_amount(data.get("lease_amount"))

    method = data.get("payment_method")
    if method and method not in (PaymentMethod.CASH, PaymentMethod.CHEQUE, PaymentMethod.BOTH):
        raise ValidationError(f"Unknown payment method '{method}'")
    detail.payment_method = method or None

    uses_cheque = method in (PaymentMethod.CHEQUE, PaymentMethod.BOTH)
    uses_cash = method in (PaymentMethod.CASH, PaymentMethod.BOTH)
    detail.cheque1_no = (data.get("cheque1_no") or None) if uses_cheque else None
    detail.cheque1_amount = pricing.to_optional_amount(data.get("cheque1_amount")) if uses_cheque else None
    detail.cheque2_no = (data.get("cheque2_no") or None) if uses_cheque else None
    detail.cheque2_amount = pricing.to_optional_amount(data.get("cheque2_amount")) if uses_cheque else None

    cash = data.get("cash") or {}
    for note in pricing.CASH_NOTES:
        count = int(pricing.to_amount(cash.get(note))) if uses_cash else 0
        if count < 0:
            raise ValidationError("Cash note counts cannot be negative")
        setattr(detail, f"cash_{note}", count)

    detail.registration = pricing.to_amount(data.get("registration"))
    detail.valuation = pricing.to_amount(data.get("valuation"))
    detail.r_licence = pricing.to_amount(data.get("r_licence"))
    detail.customer_signature = data.get("customer_signature") or None
    detail.authorized_signature = data.get("authorized_signature") or None


def begin_sale(
    db: Session,
    chassis_no: str,
    sale_data: Dict[str, Any],
    transaction_data: Optional[Dict[str, Any]] = None,
    lease_data: Optional[Dict[str, Any]] = None,
) -> models.Sale:
    """
    Provisional sale. All rows are written in one commit; on any failure
    nothing is left behind and the vehicle stays available.

    lease_data: {"has_leasing": bool, "lease_company": str, "lease_amount": float}
    """
    vehicle = _get_vehicle(db, chassis_no)
    if not can_transition(vehicle.status, VehicleStatus.PENDING_SALE):
        raise InvalidTransitionError(chassis_no, vehicle.status, VehicleStatus.PENDING_SALE)

    lease_data = lease_data or {}
    has_leasing = bool(lease_data.get("has_leasing"))
    lease_amount = pricing.to_amount(lease_data.get("lease_amount"))
    if has_leasing and lease_amount <= 0:
        raise ValidationError("Please enter the lease amount")

    try:
        sale = _build_sale(vehicle, sale_data)
        db.add(sale)

        if transaction_data is not None:
            detail = models.TransactionDetail(chassis_no=chassis_no, document_type=DocumentType.TRANSACTION)
            data = dict(transaction_data)
            data.setdefault("customer_name", sale.customer_name)
            data.setdefault("customer_phone", sale.customer_phone)
            data.setdefault("customer_address", sale.customer_address)
            if has_leasing:
                data.setdefault("lease_company", lease_data.get("lease_company"))
                data.setdefault("lease_amount", lease_amount)
            _apply_transaction_fields(detail, data)
            db.add(detail)

        if has_leasing:
            db.add(models.LeaseCollection(
                chassis_no=chassis_no,
                due_amount_lkr=lease_amount,
                due_date=sale.sold_date,
                collected=False,
                lease_company=lease_data.get("lease_company") or None,
            ))

        transition(vehicle, VehicleStatus.PENDING_SALE)
        db.commit()
        db.refresh(sale)
        logger.info("Provisional sale written for %s, profit %.2f", chassis_no, sale.profit)
        return sale
    except Exception as e:
        db.rollback()
        raise e


def commit_sale(db: Session, chassis_no: str) -> models.Vehicle:
    """Confirms a provisional sale."""
    vehicle = _get_vehicle(db, chassis_no)
    if vehicle.status != VehicleStatus.PENDING_SALE:
        raise InvalidTransitionError(chassis_no, vehicle.status, VehicleStatus.SOLD)
    try:
        transition(vehicle, VehicleStatus.SOLD)
        db.commit()
        return vehicle
    except Exception as e:
        db.rollback()
        raise e


def rollback_sale(db: Session, chassis_no: str) -> models.Vehicle:
    """Cancels a provisional sale: removes its rows and restores 'available'."""
    vehicle = _get_vehicle(db, chassis_no)
    if vehicle.status != VehicleStatus.PENDING_SALE:
        raise InvalidTransitionError(chassis_no, vehicle.status, VehicleStatus.AVAILABLE)
    try:
        transition(vehicle, VehicleStatus.AVAILABLE)
        _clear_sale_rows(db, chassis_no)
        db.commit()
        logger.info("Provisional sale for %s cancelled", chassis_no)
        return vehicle
    except Exception as e:
        db.rollback()
        raise e


def delete_sale(db: Session, chassis_no: str):
    """Reverts a sold vehicle to available, removing its sale records."""
    try:
        vehicle = _get_vehicle(db, chassis_no)
        if vehicle.status not in (VehicleStatus.SOLD, VehicleStatus.PENDING_SALE):
            return False, f"Vehicle is '{vehicle.status}', there is no sale to delete."
        _clear_sale_rows(db, chassis_no)
        # Revert is the one way back from 'sold'; it bypasses the transition table
        vehicle.status = VehicleStatus.AVAILABLE
        db.commit()
        logger.info("Sale for %s deleted, vehicle available again", chassis_no)
        return True, "Sale deleted. Vehicle moved back to Available."
    except NotFoundError as e:
        return False, str(e)
    except Exception as e:
        db.rollback()
        return False, f"Database Error: {e}"


# --- SELL NOW / BULK SELL ---

def _quote_for(vehicle: models.Vehicle, expected_profit_jpy: Any) -> Dict[str, float]:
    rate = pricing.to_amount(vehicle.invoice_jpy_to_lkr_rate)
    return pricing.sell_now_quote(vehicle.invoice_amount_jpy, expected_profit_jpy, rate, vehicle.japan_total_lkr)


def _sell_direct(vehicle: models.Vehicle, quote: Dict[str, float], customer: Dict[str, Any],
                 sold_date: Optional[date]) -> models.Sale:
    transition(vehicle, VehicleStatus.SOLD)
    return models.Sale(
        chassis_no=vehicle.chassis_no,
        sold_price=quote["sold_price_jpy"],
        sold_currency=Currency.JPY,
        rate_jpy_to_lkr=pricing.to_amount(vehicle.invoice_jpy_to_lkr_rate),
        profit=quote["profit_lkr"],
        sold_date=sold_date or models.local_now().date(),
        customer_name=customer["customer_name"].strip(),
        customer_address=customer.get("customer_address") or None,
        customer_phone=customer.get("customer_phone") or None,
    )


def sell_now(
    db: Session,
    chassis_no: str,
    expected_profit_jpy: Any,
    customer: Dict[str, Any],
    use_cif_as_invoice: bool = False,
    sold_date: Optional[date] = None,
) -> Dict[str, Any]:
    """
    Sells an available vehicle at invoice amount + expected profit (JPY),
    priced at the invoice rate. With use_cif_as_invoice the whole CIF becomes
    the invoice leg and undial is cleared first.
    """
    if not (customer.get("customer_name") or "").strip() or expected_profit_jpy in (None, ""):
        raise ValidationError("Please fill in all required fields")

    vehicle = _get_vehicle(db, chassis_no)
    if not can_transition(vehicle.status, VehicleStatus.SOLD) or vehicle.status != VehicleStatus.AVAILABLE:
        raise InvalidTransitionError(chassis_no, vehicle.status, VehicleStatus.SOLD)
    try:
        if use_cif_as_invoice:
            vehicle.invoice_amount_jpy = pricing.vehicle_cif_total(vehicle)
            vehicle.undial_amount_jpy = 0.0
            vehicle.undial_jpy_to_lkr_rate = None
            japan_total = pricing.vehicle_japan_total_lkr(vehicle)
            vehicle.japan_total_lkr = japan_total
            vehicle.final_total_lkr = pricing.final_total_lkr(japan_total, pricing.vehicle_local_costs(vehicle))
            vehicle.buy_price = japan_total

        quote = _quote_for(vehicle, expected_profit_jpy)
        sale = _sell_direct(vehicle, quote, customer, sold_date)
        db.add(sale)
        db.commit()
        db.refresh(sale)
        logger.info("Sold %s now for JPY %.2f", chassis_no, quote["sold_price_jpy"])
        return {"sale": sale, "quote": quote}
    except Exception as e:
        db.rollback()
        raise e


def bulk_sell(
    db: Session,
    profits_by_chassis: Dict[str, Any],
    customer: Dict[str, Any],
    sold_date: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """
    Sells several available vehicles to one customer. Returns one entry per
    vehicle (vehicle, sale, quote) in the order given, for the bulk invoice.
    """
    if not (customer.get("customer_name") or "").strip():
        raise ValidationError("Please enter customer name")
    if not profits_by_chassis:
        raise ValidationError("Please select at least one vehicle")

    vehicles = []
    for chassis_no, profit in profits_by_chassis.items():
        vehicle = _get_vehicle(db, chassis_no)
        if profit in (None, ""):
            raise ValidationError(
                f"Please enter expected profit for {vehicle.maker} {vehicle.model} ({chassis_no})"
            )
        if vehicle.status != VehicleStatus.AVAILABLE:
            raise InvalidTransitionError(chassis_no, vehicle.status, VehicleStatus.SOLD)
        vehicles.append((vehicle, profit))

    try:
        results = []
        for vehicle, profit in vehicles:
            quote = _quote_for(vehicle, profit)
            sale = _sell_direct(vehicle, quote, customer, sold_date)
            db.add(sale)
            results.append({"vehicle": vehicle, "sale": sale, "quote": quote})
        db.commit()
        logger.info("Bulk sold %d vehicles to %s", len(results), customer["customer_name"])
        return results
    except Exception as e:
        db.rollback()
        raise e


# --- TRANSACTION DETAILS ---

def save_transaction_detail(
    db: Session,
    chassis_no: str,
    data: Dict[str, Any],
    document_type: str = DocumentType.TRANSACTION,
) -> models.TransactionDetail:
    """Creates or replaces the settlement details of one document type."""
    if not (data.get("customer_name") or "").strip():
        raise ValidationError("Please fill in customer name")
    _get_vehicle(db, chassis_no)
    try:
        detail = get_transaction_detail(db, chassis_no, document_type)
        if detail is None:
            detail = models.TransactionDetail(chassis_no=chassis_no, document_type=document_type)
            db.add(detail)
        _apply_transaction_fields(detail, data)
        db.commit()
        db.refresh(detail)
        return detail
    except Exception as e:
        db.rollback()
        raise e


def settlement_figures(detail: models.TransactionDetail, unit_price: Any, advance_total: Any) -> Dict[str, float]:
    """Numbers printed on the transaction summary."""
    balance_after_advance = pricing.balance_to_pay(unit_price, advance_total)
    cash = pricing.cash_total(detail.cash_denominations())
    cheques = pricing.cheque_total(detail.cheque1_amount, detail.cheque2_amount)
    has_leasing = bool(detail.lease_company) or pricing.to_amount(detail.lease_amount) > 0
    return {
        "unit_price": pricing.to_amount(unit_price),
        "total_advance": pricing.to_amount(advance_total),
        "amount_to_be_paid": balance_after_advance,
        "leasing": pricing.to_amount(detail.lease_amount) if has_leasing else 0.0,
        "balance_settlement": pricing.balance_settlement(balance_after_advance, detail.lease_amount, has_leasing),
        "cash_total": cash,
        "cheque_total": cheques,
        "payment_received": pricing.payment_received(detail.payment_method, cash, cheques),
        "other_charges": pricing.other_charges_total(detail.registration, detail.valuation, detail.r_licence),
    }
