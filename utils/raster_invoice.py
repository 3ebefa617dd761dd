# utils/raster_invoice.py
"""
Invoice printed over the scanned company letterhead: text is drawn onto the
blank template bitmap with Pillow, and the finished bitmap is placed on an
A4 PDF page.
"""
import logging
from typing import Any, Dict, List, Tuple, Union

from PIL import Image, ImageDraw, ImageFont

from utils.pdf_layout import DocumentLayout, PAGE_HEIGHT_MM, PAGE_WIDTH_MM, render_pdf

logger = logging.getLogger(__name__)

# Pixel positions on templates/invoice_blank.png: field -> (x, y, font size)
TEMPLATE_POSITIONS: Dict[str, Tuple[int, int, int]] = {
    "invoice_no": (1950, 460, 18),
    "date": (1950, 535, 16),
    "customer_name": (630, 500, 14),
    "customer_phone": (630, 520, 14),
    "customer_address": (630, 540, 14),
    "bank_name": (630, 595, 14),
    "bank_address": (630, 615, 14),
    "maker": (1000, 1370, 24),
    "model": (1000, 1430, 24),
    "year": (1000, 1490, 24),
    "chassis_no": (1000, 1550, 24),
    "mileage": (1000, 1610, 24),
    "engine_no": (1000, 1670, 24),
    "engine_capacity": (1000, 1730, 24),
    "colour": (1000, 1790, 24),
    "fuel_type": (1000, 1850, 24),
    "seating_capacity": (1000, 1910, 24),
    "vehicle_price": (1650, 2040, 14),
    "advance_rows": (450, 2270, 12),
    "total_advance": (1650, 2380, 12),
    "amount_to_be_paid": (1650, 2500, 16),
    "amount_in_words": (480, 2780, 14),
}
ADVANCE_AMOUNT_X = 1000
ADVANCE_ROW_STEP = 50
ADDRESS_LINE_STEP = {"customer_address": 25, "bank_address": 20}

FONT_CANDIDATES = ("DejaVuSans-Bold.ttf", "Arial Bold.ttf", "arialbd.ttf")


def _font(size: int):
    for name in FONT_CANDIDATES:
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    logger.warning("No TrueType font found, using Pillow's default font for the invoice template")
    return ImageFont.load_default(size=size)


def _address_lines(address: str) -> List[str]:
    return [part.strip() for part in (address or "").split(",") if part.strip()]


def draw_invoice(template: Union[str, Image.Image], values: Dict[str, Any]) -> Image.Image:
    """
    values: plain strings keyed like TEMPLATE_POSITIONS, plus
    'advance_rows' as a list of (date text, amount text) pairs.
    Missing keys are left blank.
    """
    if isinstance(template, Image.Image):
        image = template.convert("RGB")
    else:
        with Image.open(template) as source:
            image = source.convert("RGB")

    draw = ImageDraw.Draw(image)
    for key, (x, y, size) in TEMPLATE_POSITIONS.items():
        value = values.get(key)
        if value in (None, "", []):
            continue
        font = _font(size)

        if key == "advance_rows":
            for row_date, row_amount in value:
                draw.text((x, y), row_date, fill="black", font=font)
                draw.text((ADVANCE_AMOUNT_X, y), row_amount, fill="black", font=font)
                y += ADVANCE_ROW_STEP
        elif key in ADDRESS_LINE_STEP:
            for line in _address_lines(value) or ["N/A"]:
                draw.text((x, y), f"Address: {line}", fill="black", font=font)
                y += ADDRESS_LINE_STEP[key]
        else:
            draw.text((x, y), str(value), fill="black", font=font)
    return image


def image_to_pdf(image: Image.Image, title: str = "") -> bytes:
    layout = DocumentLayout(title=title)
    layout.image(image, 0, 0, PAGE_WIDTH_MM, PAGE_HEIGHT_MM)
    return render_pdf(layout)
