# services/report_service.py
from datetime import date
from typing import Any, Dict, Optional

import pandas as pd
from sqlalchemy import func
from sqlalchemy.orm import Session

import models
from models import Currency, UserRole, VehicleStatus
from services.lease_service import lease_totals


def _today(today: Optional[date]) -> date:
    return today or models.local_now().date()


def _sales_frame(db: Session, since: Optional[date] = None) -> pd.DataFrame:
    query = db.query(
        models.Sale.chassis_no,
        models.Sale.sold_price,
        models.Sale.sold_currency,
        models.Sale.rate_jpy_to_lkr,
        models.Sale.profit,
        models.Sale.sold_date,
    )
    if since:
        query = query.filter(models.Sale.sold_date >= since)
    df = pd.read_sql(query.statement, db.get_bind())
    if df.empty:
        return df

    df['sold_date'] = pd.to_datetime(df['sold_date'])
    df['profit'] = df['profit'].fillna(0.0)
    # JPY quotes are reported in LKR at the rate stored with the sale
    is_jpy = df['sold_currency'] == Currency.JPY
    df['sold_price_lkr'] = df['sold_price'].fillna(0.0)
    df.loc[is_jpy, 'sold_price_lkr'] = df.loc[is_jpy, 'sold_price'] * df.loc[is_jpy, 'rate_jpy_to_lkr'].fillna(0.0)
    return df


def get_dashboard_stats(db: Session, role: str, today: Optional[date] = None) -> Dict[str, Any]:
    """
    Headline numbers for the dashboard. Monthly profit is only included for
    admins; for staff it is None.
    """
    start_of_month = _today(today).replace(day=1)

    sold_this_month = (
        db.query(func.count(models.Sale.chassis_no))
        .filter(models.Sale.sold_date >= start_of_month)
        .scalar()
    ) or 0

    advance_on_available = (
        db.query(func.coalesce(func.sum(models.AdvancePayment.amount_lkr), 0.0))
        .join(models.Vehicle, models.Vehicle.chassis_no == models.AdvancePayment.chassis_no)
        .filter(models.Vehicle.status == VehicleStatus.AVAILABLE)
        .scalar()
    ) or 0.0

    lease_to_collect = (
        db.query(func.coalesce(func.sum(models.LeaseCollection.due_amount_lkr), 0.0))
        .filter(models.LeaseCollection.collected.is_(False))
        .scalar()
    ) or 0.0

    monthly_profit = None
    if role == UserRole.ADMIN:
        monthly_profit = (
            db.query(func.coalesce(func.sum(models.Sale.profit), 0.0))
            .filter(models.Sale.sold_date >= start_of_month)
            .scalar()
        ) or 0.0

    return {
        "sold_this_month": int(sold_this_month),
        "advance_money": float(advance_on_available),
        "lease_money_to_collect": float(lease_to_collect),
        "monthly_profit": float(monthly_profit) if monthly_profit is not None else None,
    }


def get_monthly_profit_series(db: Session, months: int = 12, today: Optional[date] = None) -> pd.DataFrame:
    """
    Profit per calendar month for the last `months` months, oldest first,
    labelled like 'Jan 2024'. Months without sales show 0.
    """
    current = pd.Period(_today(today), freq='M')
    periods = pd.period_range(end=current, periods=months, freq='M')

    df = _sales_frame(db, since=periods[0].start_time.date())
    if df.empty:
        profit = pd.Series(0.0, index=periods)
    else:
        profit = (
            df.groupby(df['sold_date'].dt.to_period('M'))['profit'].sum()
            .reindex(periods, fill_value=0.0)
        )

    return pd.DataFrame({
        'month': [p.strftime('%b %Y') for p in periods],
        'profit': [round(float(v), 2) for v in profit.values],
    })


def get_sales_summary(db: Session) -> Dict[str, float]:
    df = _sales_frame(db)
    if df.empty:
        return {"total_sales": 0.0, "total_profit": 0.0, "count": 0, "average_profit": 0.0}
    count = len(df)
    total_profit = float(df['profit'].sum())
    return {
        "total_sales": float(df['sold_price_lkr'].sum()),
        "total_profit": total_profit,
        "count": count,
        "average_profit": total_profit / count,
    }


def get_advance_summary(db: Session) -> Dict[str, float]:
    total, count = db.query(
        func.coalesce(func.sum(models.AdvancePayment.amount_lkr), 0.0),
        func.count(models.AdvancePayment.id),
    ).one()
    return {"total_advance": float(total or 0), "count": int(count or 0)}


def get_lease_summary(db: Session) -> Dict[str, float]:
    return lease_totals(db)
