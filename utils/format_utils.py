# utils/format_utils.py
from datetime import date, datetime
from typing import Optional, Union


def format_number(num: Optional[float]) -> str:
    return f"{(num or 0):,.2f}"


def format_currency(amount: Optional[float], currency: str = "LKR") -> str:
    """'LKR 1,192,000.00' / '¥600,000.00'. Negative values keep the sign in front."""
    value = amount or 0
    sign = "-" if value < 0 else ""
    body = f"{abs(value):,.2f}"
    if currency == "JPY":
        return f"{sign}¥{body}"
    return f"{sign}LKR {body}"


def format_date(value: Union[date, datetime, str, None]) -> str:
    if not value:
        return ""
    if isinstance(value, str):
        return value
    return value.strftime("%d/%m/%Y")


def format_mileage(mileage: Optional[int]) -> str:
    return f"{(mileage or 0):,} km"
