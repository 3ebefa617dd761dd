"""Shared fixtures: an in-memory SQLite database and small record factories."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401  (registers the tables on Base)
from database import Base
from models import VehicleStatus


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = Session()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


def vehicle_data(chassis_no="NZE141-1234567", **overrides):
    """Form data for the documented scenario vehicle: CIF 600,000 JPY, Japan total 1,192,000 LKR."""
    data = {
        "chassis_no": chassis_no,
        "maker": "Toyota",
        "model": "Axio",
        "manufacturer_year": 2018,
        "mileage": 45000,
        "bid_jpy": 500000,
        "commission_jpy": 50000,
        "insurance_jpy": 20000,
        "inland_transport_jpy": 30000,
        "other_jpy": 0,
        "invoice_amount_jpy": 400000,
        "invoice_jpy_to_lkr_rate": 1.98,
        "undial_amount_jpy": 200000,
        "undial_jpy_to_lkr_rate": 2.00,
    }
    data.update(overrides)
    return data


@pytest.fixture
def make_vehicle(db):
    from services import vehicle_service

    def _make(chassis_no="NZE141-1234567", status=VehicleStatus.AVAILABLE, **overrides):
        return vehicle_service.save_vehicle(db, vehicle_data(chassis_no, **overrides), status)

    return _make


@pytest.fixture
def vehicle(make_vehicle):
    return make_vehicle()


@pytest.fixture
def sale_data():
    return {
        "sold_price": 1_500_000,
        "sold_date": date(2024, 3, 15),
        "customer_name": "Nimal Perera",
        "customer_phone": "0771234567",
        "customer_address": "12, Temple Road, Gampaha",
    }


@pytest.fixture
def add_payment(db):
    from services import advance_service

    def _add(chassis_no, amount, paid_date=date(2024, 3, 1), **customer):
        customer.setdefault("customer_name", "Nimal Perera")
        customer.setdefault("expected_sell_price_lkr", 3_500_000)
        return advance_service.add_advance_payment(db, chassis_no, amount, paid_date, customer)

    return _add


def count_rows(db, model, chassis_no):
    return db.query(model).filter(model.chassis_no == chassis_no).count()

