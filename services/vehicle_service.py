# services/vehicle_service.py
import logging
from typing import Any, Dict, Optional

import pandas as pd
from sqlalchemy.orm import Session

import models
from models import Currency, VehicleStatus
from services import pricing_service as pricing
from services.errors import NotFoundError, ValidationError, InvalidTransitionError

logger = logging.getLogger(__name__)

JAPAN_COST_FIELDS = ("bid_jpy", "commission_jpy", "insurance_jpy", "inland_transport_jpy", "other_jpy")


# --- READS ---

def get_vehicle(db: Session, chassis_no: str) -> Optional[models.Vehicle]:
    return db.query(models.Vehicle).filter(models.Vehicle.chassis_no == chassis_no).first()


def require_vehicle(db: Session, chassis_no: str) -> models.Vehicle:
    vehicle = get_vehicle(db, chassis_no)
    if not vehicle:
        raise NotFoundError(f"Vehicle with chassis number {chassis_no} does not exist.")
    return vehicle


def list_vehicles(db: Session, status: str) -> pd.DataFrame:
    query = (
        db.query(models.Vehicle)
        .filter(models.Vehicle.status == status)
        .order_by(models.Vehicle.created_at.desc())
    )
    return pd.read_sql(query.statement, db.get_bind())


def list_vehicle_objects(db: Session, status: str):
    return (
        db.query(models.Vehicle)
        .filter(models.Vehicle.status == status)
        .order_by(models.Vehicle.created_at.desc())
        .all()
    )


def is_invoice_generated(vehicle: models.Vehicle) -> bool:
    return vehicle.invoice_generated


# --- VALIDATION ---

def _validate_details(data: Dict[str, Any]) -> None:
    for key in ("chassis_no", "maker", "model", "manufacturer_year", "mileage"):
        if data.get(key) in (None, ""):
            raise ValidationError("Please fill in all required vehicle details")

    try:
        year = int(data["manufacturer_year"])
    except (TypeError, ValueError):
        raise ValidationError("Please enter a valid manufacturer year")
    if year < 1900 or year > 2100:
        raise ValidationError("Please enter a valid manufacturer year")

    try:
        mileage = int(data["mileage"])
    except (TypeError, ValueError):
        raise ValidationError("Please enter a valid mileage")
    if mileage < 0:
        raise ValidationError("Please enter a valid mileage")


def can_move_to_available(data: Dict[str, Any]) -> bool:
    """Invoice amount + rate are required, and an undial rate when undial > 0."""
    if pricing.to_amount(data.get("invoice_amount_jpy")) <= 0:
        return False
    if pricing.to_amount(data.get("invoice_jpy_to_lkr_rate")) <= 0:
        return False
    if pricing.to_amount(data.get("undial_amount_jpy")) > 0 and pricing.to_amount(data.get("undial_jpy_to_lkr_rate")) <= 0:
        return False
    return True


def _apply_japan_costs(vehicle: models.Vehicle, data: Dict[str, Any]) -> None:
    for key in JAPAN_COST_FIELDS:
        setattr(vehicle, key, pricing.to_optional_amount(data.get(key)))
    vehicle.other_label = (data.get("other_label") or "").strip() or None

    vehicle.invoice_amount_jpy = pricing.to_optional_amount(data.get("invoice_amount_jpy"))
    vehicle.invoice_jpy_to_lkr_rate = pricing.to_optional_amount(data.get("invoice_jpy_to_lkr_rate"))
    vehicle.undial_amount_jpy = pricing.to_optional_amount(data.get("undial_amount_jpy"))
    # Undial rate is only meaningful when there is an undial amount
    if pricing.to_amount(vehicle.undial_amount_jpy) > 0:
        vehicle.undial_jpy_to_lkr_rate = pricing.to_optional_amount(data.get("undial_jpy_to_lkr_rate"))
    else:
        vehicle.undial_jpy_to_lkr_rate = None

    if "undial_transfer_has_bank" in data:
        has_bank = bool(data.get("undial_transfer_has_bank"))
        vehicle.undial_transfer_has_bank = has_bank
        vehicle.undial_transfer_bank_name = (data.get("undial_transfer_bank_name") or None) if has_bank else None
        vehicle.undial_transfer_acc_no = (data.get("undial_transfer_acc_no") or None) if has_bank else None
        vehicle.undial_transfer_date = data.get("undial_transfer_date") if has_bank else None

    recalculate_totals(vehicle)


def recalculate_totals(vehicle: models.Vehicle) -> None:
    """Refreshes the cached LKR totals from the stored cost fields."""
    japan_total = pricing.vehicle_japan_total_lkr(vehicle)
    vehicle.japan_total_lkr = japan_total
    vehicle.final_total_lkr = pricing.final_total_lkr(japan_total, pricing.vehicle_local_costs(vehicle))
    vehicle.buy_price = japan_total
    vehicle.buy_currency = Currency.LKR


# --- WRITES ---

def save_vehicle(db: Session, data: Dict[str, Any], status: str = VehicleStatus.AVAILABLE) -> models.Vehicle:
    """
    Inserts or updates a vehicle by chassis number (Add Vehicle wizard).
    Available vehicles need a complete invoice/undial split; not-available
    ones may be saved with costs still missing.
    """
    _validate_details(data)
    if status not in (VehicleStatus.AVAILABLE, VehicleStatus.NOT_AVAILABLE):
        raise ValidationError(f"New vehicles cannot be saved as '{status}'.")
    if status == VehicleStatus.AVAILABLE and not can_move_to_available(data):
        raise ValidationError(
            "Please complete Invoice Amount + Invoice Rate (and Undial Rate if Undial Amount > 0)."
        )

    chassis_no = str(data["chassis_no"]).strip()
    try:
        vehicle = get_vehicle(db, chassis_no)
        if vehicle is None:
            vehicle = models.Vehicle(chassis_no=chassis_no)
            db.add(vehicle)
            logger.info("Adding vehicle %s", chassis_no)
        else:
            logger.info("Updating existing vehicle %s", chassis_no)

        vehicle.maker = str(data["maker"]).strip()
        vehicle.model = str(data["model"]).strip()
        vehicle.manufacturer_year = int(data["manufacturer_year"])
        vehicle.mileage = int(data["mileage"])
        vehicle.status = status
        _apply_japan_costs(vehicle, data)

        db.commit()
        db.refresh(vehicle)
        return vehicle
    except Exception as e:
        db.rollback()
        raise e


def update_japan_costs(db: Session, chassis_no: str, data: Dict[str, Any], move_to_available: bool = False) -> models.Vehicle:
    """Edits costs of a not-available vehicle, optionally releasing it for sale."""
    vehicle = require_vehicle(db, chassis_no)
    if move_to_available:
        if vehicle.status != VehicleStatus.NOT_AVAILABLE:
            raise InvalidTransitionError(chassis_no, vehicle.status, VehicleStatus.AVAILABLE)
        if not can_move_to_available(data):
            raise ValidationError(
                "Please complete Invoice Amount + Invoice Rate (and Undial Rate if Undial Amount > 0) "
                "before moving to Available."
            )
    try:
        _apply_japan_costs(vehicle, data)
        if move_to_available:
            vehicle.status = VehicleStatus.AVAILABLE
            logger.info("Vehicle %s moved to available", chassis_no)
        db.commit()
        db.refresh(vehicle)
        return vehicle
    except Exception as e:
        db.rollback()
        raise e


def suggest_lc_commission(vehicle: models.Vehicle) -> Optional[float]:
    """
    LC commission suggestion for the extra1 slot, or None when extra1 already
    carries some other cost or the stored LC commission should be kept.
    """
    if not pricing.extra1_holds_lc_commission(vehicle.local_extra1_label):
        return None
    if vehicle.local_extra1_lkr:
        return vehicle.local_extra1_lkr
    invoice_lkr = pricing.convert_jpy_to_lkr(vehicle.invoice_amount_jpy, vehicle.invoice_jpy_to_lkr_rate)
    commission = pricing.lc_commission(invoice_lkr)
    return commission if commission > 0 else None


def update_local_costs(db: Session, chassis_no: str, costs: Dict[str, Any]) -> models.Vehicle:
    """
    costs keys: tax, clearance, transport, extra1..3 (amounts) and
    extra1_label..extra3_label. final_total_lkr is recomputed; the Sale
    profit of an already sold vehicle is left as it was.
    """
    vehicle = require_vehicle(db, chassis_no)
    try:
        vehicle.tax_lkr = pricing.to_optional_amount(costs.get("tax"))
        vehicle.clearance_lkr = pricing.to_optional_amount(costs.get("clearance"))
        vehicle.transport_lkr = pricing.to_optional_amount(costs.get("transport"))
        for n in (1, 2, 3):
            setattr(vehicle, f"local_extra{n}_label", (costs.get(f"extra{n}_label") or "").strip() or None)
            setattr(vehicle, f"local_extra{n}_lkr", pricing.to_optional_amount(costs.get(f"extra{n}")))

        base = vehicle.japan_total_lkr or 0
        vehicle.final_total_lkr = pricing.final_total_lkr(base, pricing.vehicle_local_costs(vehicle))
        db.commit()
        db.refresh(vehicle)
        logger.info("Local costs saved for %s, final total %.2f", chassis_no, vehicle.final_total_lkr)
        return vehicle
    except Exception as e:
        db.rollback()
        raise e


def record_invoice_details(db: Session, chassis_no: str, details: Dict[str, Any]) -> models.Vehicle:
    """Stores the descriptive fields printed on the invoice."""
    required = ("engine_no", "engine_capacity", "color", "fuel_type", "seating_capacity")
    if any(not str(details.get(key) or "").strip() for key in required):
        raise ValidationError(
            "Please fill in all required vehicle description fields "
            "(Engine No, Engine Capacity, Colour, Fuel Type, Seating Capacity)"
        )
    vehicle = require_vehicle(db, chassis_no)
    try:
        for key in required:
            setattr(vehicle, key, str(details[key]).strip())
        db.commit()
        db.refresh(vehicle)
        return vehicle
    except Exception as e:
        db.rollback()
        raise e


def delete_vehicle(db: Session, chassis_no: str) -> bool:
    """
    Removes the vehicle and everything keyed by its chassis number:
    advances, payments, sale, transaction details and lease collections.
    """
    vehicle = get_vehicle(db, chassis_no)
    if not vehicle:
        return False
    try:
        for model in (models.TransactionDetail, models.LeaseCollection, models.AdvancePayment,
                      models.Advance, models.Sale):
            db.query(model).filter(model.chassis_no == chassis_no).delete(synchronize_session=False)
        db.delete(vehicle)
        db.commit()
        logger.info("Deleted vehicle %s and its records", chassis_no)
        return True
    except Exception as e:
        db.rollback()
        raise e


def undial_transfer_summary(vehicle: models.Vehicle) -> Dict[str, Any]:
    """Figures printed on the undial transfer report."""
    undial_lkr = pricing.convert_jpy_to_lkr(vehicle.undial_amount_jpy, vehicle.undial_jpy_to_lkr_rate)
    return {
        "cif_jpy": pricing.vehicle_cif_total(vehicle),
        "invoice_jpy": pricing.to_amount(vehicle.invoice_amount_jpy),
        "invoice_rate": pricing.to_amount(vehicle.invoice_jpy_to_lkr_rate),
        "undial_jpy": pricing.to_amount(vehicle.undial_amount_jpy),
        "undial_rate": pricing.to_amount(vehicle.undial_jpy_to_lkr_rate),
        "undial_lkr": undial_lkr,
        "has_bank": bool(vehicle.undial_transfer_has_bank),
        "bank_name": vehicle.undial_transfer_bank_name,
        "bank_acc_no": vehicle.undial_transfer_acc_no,
        "transfer_date": vehicle.undial_transfer_date,
    }
