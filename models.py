from typing import final
from sqlalchemy import (
    Boolean, Column, Integer, String, Float, JSON,
    ForeignKey, DateTime, Date, Index
)
from sqlalchemy.orm import relationship
from datetime import datetime
import hashlib
import os
import pytz

# All business dates are Sri Lankan local time
LOCAL_TIMEZONE = pytz.timezone('Asia/Colombo')

# Use a single Base for the entire application
from database import Base


def local_now() -> datetime:
    return datetime.now(LOCAL_TIMEZONE)


# --- ENUMS (Centralized) ---

@final
class VehicleStatus:
    NOT_AVAILABLE = "not_available"
    AVAILABLE = "available"
    PENDING_SALE = "pending_sale"  # provisional sale written, waiting for confirm/cancel
    SOLD = "sold"

    ALL = (NOT_AVAILABLE, AVAILABLE, PENDING_SALE, SOLD)


@final
class Currency:
    JPY = "JPY"
    LKR = "LKR"


@final
class DocumentType:
    INVOICE = "invoice"
    TRANSACTION = "transaction"


@final
class PaymentMethod:
    CASH = "cash"
    CHEQUE = "cheque"
    BOTH = "both"


@final
class UserRole:
    ADMIN = "admin"
    STAFF = "staff"


# --- 1. VEHICLES ---

class Vehicle(Base):
    """
    One imported vehicle, keyed by chassis number.
    Japan costs are JPY, local costs and all cached totals are LKR.
    """
    __tablename__ = "vehicles"
    __table_args__ = (
        Index('idx_vehicle_status', 'status'),
    )

    chassis_no = Column(String(100), primary_key=True)
    maker = Column(String(100), nullable=False)
    model = Column(String(100), nullable=False)
    manufacturer_year = Column(Integer, nullable=False)
    mileage = Column(Integer, nullable=False)
    status = Column(String(20), default=VehicleStatus.AVAILABLE, nullable=False)

    # Filled at invoice time; all five present means "invoice generated"
    engine_no = Column(String(100), nullable=True)
    engine_capacity = Column(String(50), nullable=True)
    # Persisted spelling is 'colour'
    color = Column("colour", String(50), nullable=True)
    fuel_type = Column(String(50), nullable=True)
    seating_capacity = Column(String(20), nullable=True)

    # Japan costs (JPY)
    bid_jpy = Column(Float, nullable=True)
    commission_jpy = Column(Float, nullable=True)
    insurance_jpy = Column(Float, nullable=True)
    inland_transport_jpy = Column(Float, nullable=True)
    other_jpy = Column(Float, nullable=True)
    other_label = Column(String(100), nullable=True)

    # CIF split
    invoice_amount_jpy = Column(Float, nullable=True)
    invoice_jpy_to_lkr_rate = Column(Float, nullable=True)
    undial_amount_jpy = Column(Float, nullable=True)
    undial_jpy_to_lkr_rate = Column(Float, nullable=True)

    undial_transfer_has_bank = Column(Boolean, default=False, nullable=False)
    undial_transfer_bank_name = Column(String(100), nullable=True)
    undial_transfer_acc_no = Column(String(50), nullable=True)
    undial_transfer_date = Column(Date, nullable=True)

    # Local costs (LKR)
    tax_lkr = Column(Float, nullable=True)
    clearance_lkr = Column(Float, nullable=True)
    transport_lkr = Column(Float, nullable=True)
    local_extra1_label = Column(String(100), nullable=True)
    local_extra1_lkr = Column(Float, nullable=True)
    local_extra2_label = Column(String(100), nullable=True)
    local_extra2_lkr = Column(Float, nullable=True)
    local_extra3_label = Column(String(100), nullable=True)
    local_extra3_lkr = Column(Float, nullable=True)

    # Cached totals
    japan_total_lkr = Column(Float, nullable=True)
    final_total_lkr = Column(Float, nullable=True)
    buy_price = Column(Float, nullable=True)
    buy_currency = Column(String(3), nullable=True)

    created_at = Column(DateTime, default=local_now)
    updated_at = Column(DateTime, default=local_now, onupdate=local_now)

    advance = relationship("Advance", back_populates="vehicle", uselist=False, cascade="all, delete-orphan")
    advance_payments = relationship("AdvancePayment", back_populates="vehicle", cascade="all, delete-orphan",
                                    order_by="AdvancePayment.paid_date")
    sale = relationship("Sale", back_populates="vehicle", uselist=False, cascade="all, delete-orphan")
    transaction_details = relationship("TransactionDetail", back_populates="vehicle", cascade="all, delete-orphan")
    lease_collections = relationship("LeaseCollection", back_populates="vehicle", cascade="all, delete-orphan")

    @property
    def invoice_generated(self) -> bool:
        return all([self.engine_no, self.engine_capacity, self.color, self.fuel_type, self.seating_capacity])


# --- 2. ADVANCES ---

class Advance(Base):
    """Customer snapshot and agreed price, captured at the first advance payment."""
    __tablename__ = "advances"

    chassis_no = Column(String(100), ForeignKey("vehicles.chassis_no"), primary_key=True)
    customer_name = Column(String(150), nullable=False)
    customer_phone = Column(String(30), nullable=True)
    customer_address = Column(String(255), nullable=True)
    customer_id = Column(String(50), nullable=True)
    expected_sell_price_lkr = Column(Float, nullable=False)

    created_at = Column(DateTime, default=local_now)
    updated_at = Column(DateTime, default=local_now, onupdate=local_now)

    vehicle = relationship("Vehicle", back_populates="advance")


class AdvancePayment(Base):
    """Append-only ledger of advance amounts."""
    __tablename__ = "advance_payments"

    id = Column(Integer, primary_key=True, index=True)
    chassis_no = Column(String(100), ForeignKey("vehicles.chassis_no"), nullable=False, index=True)
    paid_date = Column(Date, nullable=False)
    amount_lkr = Column(Float, nullable=False)

    # Optional bank-transfer tag
    bank_name = Column(String(100), nullable=True)
    bank_acc_no = Column(String(50), nullable=True)
    transfer_reference = Column(String(100), nullable=True)

    created_at = Column(DateTime, default=local_now)

    vehicle = relationship("Vehicle", back_populates="advance_payments")


# --- 3. SALES ---

class Sale(Base):
    """
    One sale per vehicle. 'profit' is LKR and is a snapshot taken when the
    sale is written; later cost edits on the vehicle never touch it.
    """
    __tablename__ = "sales"

    chassis_no = Column(String(100), ForeignKey("vehicles.chassis_no"), primary_key=True)
    sold_price = Column(Float, nullable=False)
    sold_currency = Column(String(3), default=Currency.LKR, nullable=False)
    rate_jpy_to_lkr = Column(Float, nullable=True)
    profit = Column(Float, nullable=False)
    sold_date = Column(Date, nullable=False)

    customer_name = Column(String(150), nullable=False)
    customer_address = Column(String(255), nullable=True)
    customer_phone = Column(String(30), nullable=True)
    bank_name = Column(String(100), nullable=True)
    bank_address = Column(String(255), nullable=True)

    created_at = Column(DateTime, default=local_now)

    vehicle = relationship("Vehicle", back_populates="sale")


class TransactionDetail(Base):
    """Settlement breakdown used to (re)print the Transaction Summary."""
    __tablename__ = "transaction_details"

    id = Column(Integer, primary_key=True, index=True)
    chassis_no = Column(String(100), ForeignKey("vehicles.chassis_no"), nullable=False, index=True)
    document_type = Column(String(20), nullable=False, default=DocumentType.TRANSACTION)

    customer_name = Column(String(150), nullable=False)
    customer_phone = Column(String(30), nullable=True)
    customer_address = Column(String(255), nullable=True)

    lease_company = Column(String(150), nullable=True)
    lease_amount = Column(Float, nullable=True)
    payment_method = Column(String(10), nullable=True)

    cheque1_no = Column(String(50), nullable=True)
    cheque1_amount = Column(Float, nullable=True)
    cheque2_no = Column(String(50), nullable=True)
    cheque2_amount = Column(Float, nullable=True)

    # Note counts, not amounts
    cash_5000 = Column(Integer, default=0, nullable=False)
    cash_2000 = Column(Integer, default=0, nullable=False)
    cash_1000 = Column(Integer, default=0, nullable=False)
    cash_500 = Column(Integer, default=0, nullable=False)
    cash_100 = Column(Integer, default=0, nullable=False)

    registration = Column(Float, default=0.0, nullable=False)
    valuation = Column(Float, default=0.0, nullable=False)
    r_licence = Column(Float, default=0.0, nullable=False)

    customer_signature = Column(String(150), nullable=True)
    authorized_signature = Column(String(150), nullable=True)

    created_at = Column(DateTime, default=local_now)
    updated_at = Column(DateTime, default=local_now, onupdate=local_now)

    vehicle = relationship("Vehicle", back_populates="transaction_details")

    def cash_denominations(self) -> dict:
        return {
            5000: self.cash_5000 or 0,
            2000: self.cash_2000 or 0,
            1000: self.cash_1000 or 0,
            500: self.cash_500 or 0,
            100: self.cash_100 or 0,
        }


class LeaseCollection(Base):
    """Amount a leasing company owes against a sold vehicle."""
    __tablename__ = "lease_collections"
    __table_args__ = (
        Index('idx_lease_collected', 'collected'),
    )

    id = Column(Integer, primary_key=True, index=True)
    chassis_no = Column(String(100), ForeignKey("vehicles.chassis_no"), nullable=False, index=True)
    due_amount_lkr = Column(Float, nullable=False)
    due_date = Column(Date, nullable=False)
    collected = Column(Boolean, default=False, nullable=False)
    collected_date = Column(Date, nullable=True)
    lease_company = Column(String(150), nullable=True)

    cheque_amount = Column(Float, nullable=True)
    cheque_no = Column(String(50), nullable=True)
    cheque_deposit_bank_name = Column(String(100), nullable=True)
    cheque_deposit_bank_acc_no = Column(String(50), nullable=True)
    cheque_deposit_date = Column(Date, nullable=True)

    personal_loan_amount = Column(Float, nullable=True)
    personal_loan_deposit_bank_name = Column(String(100), nullable=True)
    personal_loan_deposit_bank_acc_no = Column(String(50), nullable=True)
    personal_loan_deposit_date = Column(Date, nullable=True)

    created_at = Column(DateTime, default=local_now)
    updated_at = Column(DateTime, default=local_now, onupdate=local_now)

    vehicle = relationship("Vehicle", back_populates="lease_collections")


# --- 4. USER AUTHENTICATION ---

class User(Base):
    """
    Login accounts. The role lives in user_metadata['role'] and defaults
    to staff when absent.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(150), unique=True, index=True, nullable=False)

    hashed_password = Column(String(255), nullable=False)
    salt = Column(String(64), nullable=False)

    user_metadata = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=local_now)

    def verify_password(self, plain_password: str) -> bool:
        """Checks if the plain password matches the hash."""
        try:
            salt_bytes = bytes.fromhex(self.salt)
        except ValueError:
            return False
        check_hash_bytes = hashlib.pbkdf2_hmac(
            'sha256',
            plain_password.encode('utf-8'),
            salt_bytes,
            100000
        )
        return check_hash_bytes.hex() == self.hashed_password

    @staticmethod
    def hash_password(plain_password: str) -> tuple:
        """Hashes a new password for storage, returning the hash and salt."""
        salt_bytes = os.urandom(32)
        hash_bytes = hashlib.pbkdf2_hmac(
            'sha256',
            plain_password.encode('utf-8'),
            salt_bytes,
            100000
        )
        return hash_bytes.hex(), salt_bytes.hex()
