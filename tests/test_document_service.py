"""Tests for the printable documents. Content is checked through the layout, output as PDF bytes."""

from datetime import date, datetime

import pytest
from PIL import Image

import models
from models import PaymentMethod
from services import advance_service, document_service, sales_service, vehicle_service
from utils import raster_invoice
from utils.pdf_layout import BOTTOM_LIMIT, DocumentLayout, TextItem, render_pdf

CHASSIS = "NZE141-1234567"
CUSTOMER = {"customer_name": "Nimal Perera", "customer_phone": "0771234567",
            "customer_address": "12, Temple Road, Gampaha"}


def _is_pdf(data):
    return isinstance(data, bytes) and data.startswith(b"%PDF")


@pytest.fixture
def sold(db, vehicle, add_payment, sale_data):
    add_payment(CHASSIS, 500_000, date(2024, 3, 1))
    add_payment(CHASSIS, 300_000, date(2024, 3, 10))
    sales_service.begin_sale(
        db, CHASSIS, sale_data,
        transaction_data={"payment_method": PaymentMethod.CASH, "cash": {5000: 40}, "registration": 15_000},
        lease_data={"has_leasing": True, "lease_company": "LOLC Finance", "lease_amount": 200_000},
    )
    return vehicle_service.get_vehicle(db, CHASSIS)


# ---------------------------------------------------------------------------
# Numbering and layout
# ---------------------------------------------------------------------------

class TestDocumentNumber:
    def test_default_prefix(self):
        assert document_service.document_number(when=datetime(2024, 3, 15, 9, 30, 12)) == "INV-20240315-093012"

    def test_custom_prefix(self):
        assert document_service.document_number("ADV", datetime(2024, 1, 2, 3, 4, 5)) == "ADV-20240102-030405"


class TestLayout:
    def test_flows_onto_new_page(self):
        layout = DocumentLayout()
        for i in range(60):
            layout.field(f"Row {i}", i)
        assert len(layout.pages) > 1
        assert all(item.y <= BOTTOM_LIMIT for page in layout.pages for item in page.items)

    def test_blank_field_prints_na(self):
        layout = DocumentLayout()
        layout.field("Colour", None)
        texts = [item.text for item in layout.page.items if isinstance(item, TextItem)]
        assert texts == ["Colour", ":", "N/A"]

    def test_render_multi_page(self):
        layout = DocumentLayout(title="Test")
        layout.text("first")
        layout.new_page()
        layout.text("second")
        assert _is_pdf(render_pdf(layout))


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

class TestBuilders:
    def test_invoice(self, db, vehicle, add_payment):
        add_payment(CHASSIS, 500_000)
        payments = advance_service.list_payments(db, CHASSIS)
        pdf = document_service.build_invoice_pdf(vehicle, CUSTOMER, 3_500_000, payments, date(2024, 3, 20),
                                                 bank_name="BOC", bank_address="Colombo 01")
        assert _is_pdf(pdf)

    def test_bulk_invoice(self, db, make_vehicle):
        make_vehicle("A-1")
        make_vehicle("B-2")
        lines = sales_service.bulk_sell(db, {"A-1": 100_000, "B-2": 50_000}, {"customer_name": "Kamal Silva"})
        assert _is_pdf(document_service.build_bulk_invoice_pdf(lines, {"customer_name": "Kamal Silva"}))

    def test_advance_receipt(self, db, vehicle, add_payment):
        add_payment(CHASSIS, 500_000)
        advance = advance_service.get_advance(db, CHASSIS)
        payments = advance_service.list_payments(db, CHASSIS)
        assert _is_pdf(document_service.build_advance_receipt_pdf(vehicle, advance, payments))

    def test_transaction_summary(self, db, sold):
        sale = sales_service.get_sale(db, CHASSIS)
        detail = sales_service.get_transaction_detail(db, CHASSIS)
        payments = advance_service.list_payments(db, CHASSIS)
        advance = advance_service.get_advance(db, CHASSIS)
        assert _is_pdf(document_service.build_transaction_summary_pdf(sold, sale, detail, payments, advance))

    def test_lease_report(self, db, sold):
        collection = db.query(models.LeaseCollection).filter_by(chassis_no=CHASSIS).one()
        sale = sales_service.get_sale(db, CHASSIS)
        assert _is_pdf(document_service.build_lease_report_pdf(collection, sold, sale))

    def test_cost_breakdown(self, db, vehicle):
        vehicle = vehicle_service.update_local_costs(db, CHASSIS, {"tax": 300_000, "extra1": 2772,
                                                                   "extra1_label": "LC Commission"})
        assert _is_pdf(document_service.build_cost_breakdown_pdf(vehicle))

    def test_undial_transfer(self, vehicle):
        assert _is_pdf(document_service.build_undial_transfer_pdf(vehicle))


# ---------------------------------------------------------------------------
# Letterhead invoice
# ---------------------------------------------------------------------------

class TestRasterInvoice:
    @pytest.fixture
    def template(self):
        return Image.new("RGB", (2480, 3508), "white")

    def test_text_is_drawn(self, template):
        image = raster_invoice.draw_invoice(template, {"maker": "Maker: Toyota"})
        assert image.size == template.size
        # template itself is untouched
        assert template.getextrema() == ((255, 255), (255, 255), (255, 255))
        assert image.getextrema() != ((255, 255), (255, 255), (255, 255))

    def test_builds_pdf(self, db, vehicle, add_payment, template):
        add_payment(CHASSIS, 500_000)
        payments = advance_service.list_payments(db, CHASSIS)
        pdf = document_service.build_raster_invoice_pdf(vehicle, CUSTOMER, 1_500_000, payments, template=template)
        assert _is_pdf(pdf)

    def test_missing_template_file(self, vehicle, tmp_path):
        with pytest.raises(FileNotFoundError):
            document_service.build_raster_invoice_pdf(vehicle, CUSTOMER, 1_500_000,
                                                      template=str(tmp_path / "missing.png"))
