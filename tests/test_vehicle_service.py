"""Tests for adding, costing and deleting vehicles."""

from datetime import date

import pytest

import models
from models import VehicleStatus
from services import advance_service, sales_service, vehicle_service
from services.errors import InvalidTransitionError, NotFoundError, ValidationError

from conftest import count_rows, vehicle_data


# ---------------------------------------------------------------------------
# Add Vehicle
# ---------------------------------------------------------------------------

class TestSaveVehicle:
    def test_available_vehicle_gets_japan_total(self, db):
        vehicle = vehicle_service.save_vehicle(db, vehicle_data())
        assert vehicle.status == VehicleStatus.AVAILABLE
        assert vehicle.japan_total_lkr == pytest.approx(1_192_000)
        assert vehicle.final_total_lkr == pytest.approx(1_192_000)
        assert vehicle.buy_price == pytest.approx(1_192_000)
        assert vehicle.buy_currency == "LKR"

    def test_missing_details_rejected(self, db):
        with pytest.raises(ValidationError):
            vehicle_service.save_vehicle(db, vehicle_data(maker=""))

    @pytest.mark.parametrize("year", [1899, 2101, "abc"])
    def test_bad_year_rejected(self, db, year):
        with pytest.raises(ValidationError):
            vehicle_service.save_vehicle(db, vehicle_data(manufacturer_year=year))

    def test_negative_mileage_rejected(self, db):
        with pytest.raises(ValidationError):
            vehicle_service.save_vehicle(db, vehicle_data(mileage=-1))

    def test_available_needs_invoice_rate(self, db):
        with pytest.raises(ValidationError):
            vehicle_service.save_vehicle(db, vehicle_data(invoice_jpy_to_lkr_rate=""))
        assert vehicle_service.get_vehicle(db, "NZE141-1234567") is None

    def test_available_needs_undial_rate_when_undial_present(self, db):
        with pytest.raises(ValidationError):
            vehicle_service.save_vehicle(db, vehicle_data(undial_jpy_to_lkr_rate=None))

    def test_not_available_may_be_incomplete(self, db):
        vehicle = vehicle_service.save_vehicle(
            db, vehicle_data(invoice_amount_jpy=None, invoice_jpy_to_lkr_rate=None, undial_amount_jpy=None),
            VehicleStatus.NOT_AVAILABLE,
        )
        assert vehicle.status == VehicleStatus.NOT_AVAILABLE
        assert vehicle.japan_total_lkr == 0

    def test_cannot_save_directly_as_sold(self, db):
        with pytest.raises(ValidationError):
            vehicle_service.save_vehicle(db, vehicle_data(), VehicleStatus.SOLD)

    def test_undial_rate_cleared_without_undial(self, db):
        vehicle = vehicle_service.save_vehicle(db, vehicle_data(undial_amount_jpy=0))
        assert vehicle.undial_jpy_to_lkr_rate is None
        assert vehicle.japan_total_lkr == pytest.approx(792_000)

    def test_resave_keeps_local_costs(self, db, vehicle):
        vehicle_service.update_local_costs(db, vehicle.chassis_no, {"tax": 300_000})
        saved = vehicle_service.save_vehicle(db, vehicle_data(mileage=46000))
        assert saved.mileage == 46000
        assert saved.tax_lkr == 300_000
        assert saved.final_total_lkr == pytest.approx(1_492_000)

    def test_list_vehicles_by_status(self, db, make_vehicle):
        make_vehicle("A-1")
        make_vehicle("B-2", VehicleStatus.NOT_AVAILABLE)
        df = vehicle_service.list_vehicles(db, VehicleStatus.AVAILABLE)
        assert list(df["chassis_no"]) == ["A-1"]


# ---------------------------------------------------------------------------
# Edit costs of a not-available vehicle
# ---------------------------------------------------------------------------

class TestUpdateJapanCosts:
    def test_move_to_available(self, db, make_vehicle):
        make_vehicle("NA-1", VehicleStatus.NOT_AVAILABLE)
        vehicle = vehicle_service.update_japan_costs(db, "NA-1", vehicle_data("NA-1"), move_to_available=True)
        assert vehicle.status == VehicleStatus.AVAILABLE

    def test_move_requires_complete_split(self, db, make_vehicle):
        make_vehicle("NA-1", VehicleStatus.NOT_AVAILABLE)
        with pytest.raises(ValidationError):
            vehicle_service.update_japan_costs(db, "NA-1", vehicle_data("NA-1", invoice_amount_jpy=0),
                                               move_to_available=True)
        assert vehicle_service.get_vehicle(db, "NA-1").status == VehicleStatus.NOT_AVAILABLE

    def test_move_only_from_not_available(self, db, vehicle):
        with pytest.raises(InvalidTransitionError):
            vehicle_service.update_japan_costs(db, vehicle.chassis_no, vehicle_data(), move_to_available=True)

    def test_plain_save_keeps_status(self, db, make_vehicle):
        make_vehicle("NA-1", VehicleStatus.NOT_AVAILABLE)
        vehicle = vehicle_service.update_japan_costs(db, "NA-1", vehicle_data("NA-1", bid_jpy=550000))
        assert vehicle.status == VehicleStatus.NOT_AVAILABLE
        assert vehicle.bid_jpy == 550000

    def test_undial_transfer_details(self, db, make_vehicle):
        make_vehicle("NA-1", VehicleStatus.NOT_AVAILABLE)
        data = vehicle_data(
            "NA-1",
            undial_transfer_has_bank=True,
            undial_transfer_bank_name="Sampath Bank",
            undial_transfer_acc_no="0012345",
            undial_transfer_date=date(2024, 2, 1),
        )
        vehicle = vehicle_service.update_japan_costs(db, "NA-1", data)
        summary = vehicle_service.undial_transfer_summary(vehicle)
        assert summary["has_bank"]
        assert summary["bank_name"] == "Sampath Bank"
        assert summary["undial_lkr"] == pytest.approx(400_000)
        assert summary["cif_jpy"] == 600_000

    def test_unknown_vehicle(self, db):
        with pytest.raises(NotFoundError):
            vehicle_service.update_japan_costs(db, "NOPE", vehicle_data("NOPE"))


# ---------------------------------------------------------------------------
# Local costs
# ---------------------------------------------------------------------------

class TestLocalCosts:
    def test_final_total_recomputed(self, db, vehicle):
        costs = {"tax": 300_000, "clearance": 25_000, "transport": 15_000,
                 "extra1": 2772, "extra1_label": "LC Commission"}
        updated = vehicle_service.update_local_costs(db, vehicle.chassis_no, costs)
        assert updated.final_total_lkr == pytest.approx(1_534_772)
        assert updated.local_extra1_label == "LC Commission"

    def test_lc_commission_suggested_from_invoice_leg(self, vehicle):
        assert vehicle_service.suggest_lc_commission(vehicle) == pytest.approx(2772.0)

    def test_no_suggestion_when_extra1_used_for_something_else(self, db, vehicle):
        updated = vehicle_service.update_local_costs(db, vehicle.chassis_no,
                                                     {"extra1": 5000, "extra1_label": "Repair"})
        assert vehicle_service.suggest_lc_commission(updated) is None

    def test_stored_lc_commission_is_kept(self, db, vehicle):
        updated = vehicle_service.update_local_costs(db, vehicle.chassis_no,
                                                     {"extra1": 3000, "extra1_label": "LC Commission"})
        assert vehicle_service.suggest_lc_commission(updated) == 3000


# ---------------------------------------------------------------------------
# Invoice details and delete
# ---------------------------------------------------------------------------

class TestInvoiceDetails:
    DETAILS = {"engine_no": "1NZ-998877", "engine_capacity": "1500", "color": "White",
               "fuel_type": "Petrol", "seating_capacity": "5"}

    def test_all_fields_mark_invoice_generated(self, db, vehicle):
        assert not vehicle_service.is_invoice_generated(vehicle)
        updated = vehicle_service.record_invoice_details(db, vehicle.chassis_no, self.DETAILS)
        assert vehicle_service.is_invoice_generated(updated)
        assert updated.color == "White"

    def test_missing_field_rejected(self, db, vehicle):
        with pytest.raises(ValidationError):
            vehicle_service.record_invoice_details(db, vehicle.chassis_no, {**self.DETAILS, "fuel_type": " "})


class TestDeleteVehicle:
    def test_removes_every_related_row(self, db, vehicle, add_payment, sale_data):
        add_payment(vehicle.chassis_no, 500_000)
        sales_service.begin_sale(
            db, vehicle.chassis_no, sale_data,
            transaction_data={"payment_method": "cash", "cash": {5000: 10}},
            lease_data={"has_leasing": True, "lease_company": "LOLC", "lease_amount": 1_000_000},
        )

        assert vehicle_service.delete_vehicle(db, vehicle.chassis_no)
        for model in (models.Vehicle, models.Advance, models.AdvancePayment, models.Sale,
                      models.TransactionDetail, models.LeaseCollection):
            assert count_rows(db, model, "NZE141-1234567") == 0
        assert advance_service.get_total_advance(db, "NZE141-1234567") == 0

    def test_unknown_vehicle_returns_false(self, db):
        assert vehicle_service.delete_vehicle(db, "NOPE") is False
