"""Tests for lease receivables and their collection."""

from datetime import date

import pytest

import models
from services import lease_service, sales_service
from services.errors import NotFoundError, ValidationError

CHASSIS = "NZE141-1234567"

CHEQUE_DEPOSIT = {
    "cheque_deposit_bank_name": "Commercial Bank",
    "cheque_deposit_bank_acc_no": "1100223344",
    "cheque_deposit_date": date(2024, 4, 5),
}
LOAN_DEPOSIT = {
    "personal_loan_deposit_bank_name": "HNB",
    "personal_loan_deposit_bank_acc_no": "998877",
    "personal_loan_deposit_date": date(2024, 4, 6),
}


@pytest.fixture
def collection(db, vehicle, sale_data):
    sales_service.begin_sale(
        db, CHASSIS, sale_data,
        lease_data={"has_leasing": True, "lease_company": "LOLC Finance", "lease_amount": 1_000_000},
    )
    sales_service.commit_sale(db, CHASSIS)
    return db.query(models.LeaseCollection).filter_by(chassis_no=CHASSIS).one()


# ---------------------------------------------------------------------------
# Recording a collection
# ---------------------------------------------------------------------------

class TestRecordCollection:
    def test_full_collection_with_deposits_is_settled(self, db, collection):
        data = {"cheque_amount": 600_000, "cheque_no": "556677", **CHEQUE_DEPOSIT,
                "personal_loan_amount": 400_000, **LOAN_DEPOSIT}
        settlement = lease_service.record_collection(db, collection.id, data, collected_date=date(2024, 4, 7))
        assert settlement.should_mark_collected
        assert settlement.warnings == []

        saved = lease_service.get_collection(db, collection.id)
        assert saved.collected
        assert saved.collected_date == date(2024, 4, 7)
        assert saved.cheque_no == "556677"
        assert saved.personal_loan_deposit_bank_name == "HNB"
        assert lease_service.list_collections(db) == []
        assert lease_service.lease_totals(db) == {"pending": 0.0, "collected": 1_000_000}

    def test_full_amount_without_deposit_stays_open(self, db, collection):
        data = {"cheque_amount": 1_000_000, "cheque_no": "556677"}
        settlement = lease_service.record_collection(db, collection.id, data)
        assert settlement.fully_collected
        assert not settlement.deposits_complete
        assert "Deposit bank details are missing for a payment method." in settlement.warnings
        assert not lease_service.get_collection(db, collection.id).collected
        assert [c.id for c in lease_service.list_collections(db)] == [collection.id]

    def test_partial_collection_warns(self, db, collection):
        data = {"personal_loan_amount": 600_000, **LOAN_DEPOSIT}
        settlement = lease_service.record_collection(db, collection.id, data)
        assert settlement.remaining == 400_000
        assert settlement.warnings == ["Balance of 400,000.00 is still due."]
        saved = lease_service.get_collection(db, collection.id)
        assert not saved.collected
        assert saved.personal_loan_amount == 600_000
        assert saved.cheque_amount is None

    def test_over_collection_rejected(self, db, collection):
        data = {"cheque_amount": 700_000, "cheque_no": "1", "personal_loan_amount": 400_000}
        with pytest.raises(ValidationError) as exc:
            lease_service.record_collection(db, collection.id, data)
        assert str(exc.value) == "Total collected amount (1,100,000.00) exceeds due amount (1,000,000.00)"
        assert lease_service.get_collection(db, collection.id).cheque_amount is None

    def test_nothing_entered(self, db, collection):
        with pytest.raises(ValidationError):
            lease_service.record_collection(db, collection.id, {})

    def test_cheque_needs_number(self, db, collection):
        with pytest.raises(ValidationError):
            lease_service.record_collection(db, collection.id, {"cheque_amount": 1_000_000, **CHEQUE_DEPOSIT})

    def test_negative_amount(self, db, collection):
        with pytest.raises(ValidationError):
            lease_service.record_collection(db, collection.id, {"cheque_amount": -1, "personal_loan_amount": 10})

    def test_unknown_collection(self, db):
        with pytest.raises(NotFoundError):
            lease_service.record_collection(db, 999, {"cheque_amount": 1})


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------

class TestListing:
    def test_collected_without_deposit_bank_needs_attention(self, db, collection):
        collection.collected = True
        collection.cheque_amount = 1_000_000
        db.commit()
        assert lease_service.needs_attention(collection)
        assert len(lease_service.list_collections(db)) == 1

    def test_include_settled(self, db, collection):
        collection.collected = True
        db.commit()
        assert lease_service.list_collections(db) == []
        assert len(lease_service.list_collections(db, include_settled=True)) == 1

    def test_pending_totals(self, db, collection):
        assert lease_service.lease_totals(db) == {"pending": 1_000_000, "collected": 0.0}

    def test_frame(self, db, collection):
        df = lease_service.list_collections_frame(db)
        assert list(df["chassis_no"]) == [CHASSIS]
        assert df.iloc[0]["lease_company"] == "LOLC Finance"
