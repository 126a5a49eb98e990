# Overview: Read-only sales reports: listings, per-day summaries, monthly totals, daily trend.

from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal

from sqlalchemy import func

from ..errors import ValidationError
from ..extensions import db
from ..models import Client, Sale, Station
from ..time_utils import business_now
from ..validation import parse_date, to_decimal
from . import resource_store

# Reports take no locks and never write.


def _sales_query(*, station_id=None, client_id=None, vehicle_id=None):
    q = db.session.query(Sale)
    if station_id is not None:
        q = q.filter(Sale.station_id == station_id)
    if client_id is not None:
        q = q.filter(Sale.client_id == client_id)
    if vehicle_id is not None:
        q = q.filter(Sale.vehicle_id == vehicle_id)
    return q


def _day_range(day) -> tuple[datetime, datetime]:
    start = parse_date(day, "date")
    start = start.replace(hour=0, minute=0, second=0)
    return start, start + timedelta(days=1)


def _month_range(year: int, month: int) -> tuple[datetime, datetime]:
    if not 1 <= month <= 12:
        raise ValidationError("month must be between 1 and 12")
    start = datetime(year, month, 1)
    end = datetime(year + 1, 1, 1) if month == 12 else datetime(year, month + 1, 1)
    return start, end


def list_sales(*, station_id=None, client_id=None, vehicle_id=None, start=None, end=None) -> list[Sale]:
    q = _sales_query(station_id=station_id, client_id=client_id, vehicle_id=vehicle_id)
    start_dt = parse_date(start, "start", required=False)
    end_dt = parse_date(end, "end", required=False, end_of_day=True)
    if start_dt:
        q = q.filter(Sale.sale_date >= start_dt)
    if end_dt:
        q = q.filter(Sale.sale_date <= end_dt)
    return q.order_by(Sale.sale_date.desc(), Sale.id.desc()).all()


def sales_for_station(station_id: int) -> list[Sale]:
    resource_store.require(Station, station_id, "Station")
    return (
        _sales_query(station_id=station_id)
        .order_by(Sale.sale_date.desc(), Sale.id.desc())
        .all()
    )


def sales_for_client(client_id: int, *, page: int = 1, limit: int = 50) -> dict:
    resource_store.require(Client, client_id, "Client")
    q = _sales_query(client_id=client_id).order_by(Sale.sale_date.desc(), Sale.id.desc())
    return resource_store.paginate(q, page, limit)


def _totals(sales) -> dict:
    revenue = sum((to_decimal(s.total_price) for s in sales), Decimal("0.00"))
    quantity = sum((to_decimal(s.quantity) for s in sales), Decimal("0.00"))
    return {
        "total_sales": len(sales),
        "total_revenue": float(revenue),
        "total_quantity": float(quantity),
    }


def sales_by_date(day, *, station_id=None, client_id=None, vehicle_id=None) -> dict:
    """Sales of one business day with count/revenue/quantity totals."""
    start, end = _day_range(day)
    sales = (
        _sales_query(station_id=station_id, client_id=client_id, vehicle_id=vehicle_id)
        .filter(Sale.sale_date >= start, Sale.sale_date < end)
        .order_by(Sale.sale_date.desc(), Sale.id.desc())
        .all()
    )
    summary = {"date": start.date().isoformat()}
    summary.update(_totals(sales))
    return {"sales": sales, "summary": summary}


def monthly_totals(now=None) -> dict:
    """Count and value of sales in the current business month."""
    now = parse_date(now, "now", required=False) or business_now()
    start, end = _month_range(now.year, now.month)
    row = (
        db.session.query(
            func.count(Sale.id).label("total_sales"),
            func.coalesce(func.sum(Sale.total_price), 0).label("total_value"),
        )
        .filter(Sale.sale_date >= start, Sale.sale_date < end)
        .one()
    )
    return {
        "year": now.year,
        "month": now.month,
        "total_sales": int(row.total_sales or 0),
        "total_value": float(to_decimal(row.total_value)),
    }


def _grouped_by_day(q):
    day_expr = func.date(Sale.sale_date)
    rows = (
        q.with_entities(
            day_expr.label("day"),
            func.count(Sale.id).label("sales_count"),
            func.coalesce(func.sum(Sale.total_price), 0).label("revenue"),
            func.coalesce(func.sum(Sale.quantity), 0).label("quantity"),
        )
        .group_by(day_expr)
        .order_by(day_expr)
        .all()
    )
    # SQLite returns DATE() as text, other backends as date.
    return {str(row.day): row for row in rows}


def daily_sales_trend(start=None, end=None, *, station_id=None) -> list[dict]:
    """
    One row per day from start to end inclusive (default: current business
    month), days without sales reported as zeros.
    """
    if start is None and end is None:
        now = business_now()
        month_start, month_end = _month_range(now.year, now.month)
        first, last = month_start.date(), (month_end - timedelta(days=1)).date()
    else:
        first = parse_date(start, "start").date()
        last = parse_date(end, "end").date()
    if last < first:
        raise ValidationError("end cannot be before start")

    q = _sales_query(station_id=station_id).filter(
        Sale.sale_date >= datetime.combine(first, datetime.min.time()),
        Sale.sale_date < datetime.combine(last + timedelta(days=1), datetime.min.time()),
    )
    by_day = _grouped_by_day(q)

    out = []
    current: date = first
    while current <= last:
        row = by_day.get(current.isoformat())
        out.append({
            "date": current.isoformat(),
            "sales_count": int(row.sales_count) if row else 0,
            "daily_revenue": float(to_decimal(row.revenue)) if row else 0.0,
            "total_quantity": float(to_decimal(row.quantity)) if row else 0.0,
        })
        current += timedelta(days=1)
    return out


def sales_summaries(*, year=None, month=None, station_id=None, client_id=None, vehicle_id=None) -> list[dict]:
    """Per-day totals, optionally narrowed to a year or a year+month."""
    q = _sales_query(station_id=station_id, client_id=client_id, vehicle_id=vehicle_id)
    if month is not None and year is None:
        raise ValidationError("month requires year")
    if year is not None:
        if month is not None:
            start, end = _month_range(year, month)
        else:
            start, end = datetime(year, 1, 1), datetime(year + 1, 1, 1)
        q = q.filter(Sale.sale_date >= start, Sale.sale_date < end)

    return [
        {
            "date": day,
            "total_sales": int(row.sales_count),
            "total_revenue": float(to_decimal(row.revenue)),
            "total_quantity": float(to_decimal(row.quantity)),
        }
        for day, row in _grouped_by_day(q).items()
    ]
