"""Tests for dashboard figures and reports, pinned to a fixed 'today'."""

from datetime import date

import pytest

from models import UserRole
from services import report_service, sales_service

TODAY = date(2024, 3, 20)


@pytest.fixture
def books(db, make_vehicle, add_payment, sale_data):
    """Two sales (January and March), one lease, advances on a sold and an available vehicle."""
    make_vehicle("MAR-1")
    add_payment("MAR-1", 200_000)
    sales_service.begin_sale(
        db, "MAR-1", sale_data,
        lease_data={"has_leasing": True, "lease_company": "LOLC Finance", "lease_amount": 1_000_000},
    )
    sales_service.commit_sale(db, "MAR-1")

    make_vehicle("JAN-1")
    sales_service.begin_sale(db, "JAN-1", {**sale_data, "sold_price": 1_400_000, "sold_date": date(2024, 1, 10)})
    sales_service.commit_sale(db, "JAN-1")

    make_vehicle("AVL-1")
    add_payment("AVL-1", 500_000)
    return db


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------

class TestDashboard:
    def test_admin_sees_monthly_profit(self, books):
        stats = report_service.get_dashboard_stats(books, UserRole.ADMIN, today=TODAY)
        assert stats["sold_this_month"] == 1
        # the 200,000 paid on MAR-1 left with the sale
        assert stats["advance_money"] == 500_000
        assert stats["lease_money_to_collect"] == 1_000_000
        assert stats["monthly_profit"] == pytest.approx(308_000)

    def test_staff_gets_no_profit(self, books):
        stats = report_service.get_dashboard_stats(books, UserRole.STAFF, today=TODAY)
        assert stats["monthly_profit"] is None
        assert stats["sold_this_month"] == 1

    def test_new_month_starts_at_zero(self, books):
        stats = report_service.get_dashboard_stats(books, UserRole.ADMIN, today=date(2024, 4, 2))
        assert stats["sold_this_month"] == 0
        assert stats["monthly_profit"] == 0.0
        assert stats["advance_money"] == 500_000

    def test_empty_books(self, db):
        stats = report_service.get_dashboard_stats(db, UserRole.ADMIN, today=TODAY)
        assert stats == {"sold_this_month": 0, "advance_money": 0.0,
                         "lease_money_to_collect": 0.0, "monthly_profit": 0.0}


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

class TestMonthlyProfit:
    def test_last_three_months(self, books):
        df = report_service.get_monthly_profit_series(books, months=3, today=TODAY)
        assert list(df["month"]) == ["Jan 2024", "Feb 2024", "Mar 2024"]
        assert list(df["profit"]) == [pytest.approx(208_000), 0.0, pytest.approx(308_000)]

    def test_default_twelve_months_without_sales(self, db):
        df = report_service.get_monthly_profit_series(db, today=TODAY)
        assert len(df) == 12
        assert df["month"].iloc[0] == "Apr 2023"
        assert df["profit"].sum() == 0


class TestSummaries:
    def test_sales_summary(self, books):
        summary = report_service.get_sales_summary(books)
        assert summary["count"] == 2
        assert summary["total_sales"] == pytest.approx(2_900_000)
        assert summary["total_profit"] == pytest.approx(516_000)
        assert summary["average_profit"] == pytest.approx(258_000)

    def test_jpy_sales_reported_in_lkr(self, db, vehicle):
        sales_service.sell_now(db, vehicle.chassis_no, 100_000, {"customer_name": "Kamal Silva"})
        summary = report_service.get_sales_summary(db)
        assert summary["total_sales"] == pytest.approx(990_000)

    def test_empty_sales_summary(self, db):
        assert report_service.get_sales_summary(db)["count"] == 0

    def test_advance_summary(self, books):
        assert report_service.get_advance_summary(books) == {"total_advance": 700_000, "count": 2}

    def test_lease_summary(self, books):
        assert report_service.get_lease_summary(books) == {"pending": 1_000_000, "collected": 0.0}
