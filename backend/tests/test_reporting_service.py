"""
Sales report tests.
"""

import pytest

from fuelops.errors import ValidationError
from fuelops.services import reporting_service, sales_service


@pytest.fixture
def sales(stocked_station, fuel_client, vehicle):
    posted = []
    for quantity, when in [(10, "2024-02-01 09:00:00"), (20, "2024-02-01 17:30:00"), (5, "2024-02-03 08:00:00")]:
        posted.append(sales_service.post_sale(
            station_id=stocked_station.id,
            vehicle_id=vehicle.id,
            client_id=fuel_client.id,
            quantity=quantity,
            unit_price=10,
            sale_date=when,
        ))
    return posted


def test_sales_by_date_summary(sales):
    result = reporting_service.sales_by_date("2024-02-01")
    assert len(result["sales"]) == 2
    assert result["summary"] == {
        "date": "2024-02-01",
        "total_sales": 2,
        "total_revenue": 300.0,
        "total_quantity": 30.0,
    }


def test_daily_trend_is_zero_filled(sales, stocked_station):
    trend = reporting_service.daily_sales_trend("2024-02-01", "2024-02-04", station_id=stocked_station.id)
    assert [row["date"] for row in trend] == ["2024-02-01", "2024-02-02", "2024-02-03", "2024-02-04"]
    assert [row["sales_count"] for row in trend] == [2, 0, 1, 0]
    assert trend[2]["daily_revenue"] == 50.0
    assert trend[1]["total_quantity"] == 0.0


def test_daily_trend_rejects_inverted_range(db_session):
    with pytest.raises(ValidationError):
        reporting_service.daily_sales_trend("2024-02-05", "2024-02-01")


def test_monthly_totals(sales):
    totals = reporting_service.monthly_totals(now="2024-02-20")
    assert totals["total_sales"] == 3
    assert totals["total_value"] == 350.0

    assert reporting_service.monthly_totals(now="2024-03-01")["total_sales"] == 0


def test_sales_summaries_grouped_by_day(sales, fuel_client):
    rows = reporting_service.sales_summaries(year=2024, month=2, client_id=fuel_client.id)
    assert [(r["date"], r["total_sales"], r["total_revenue"]) for r in rows] == [
        ("2024-02-01", 2, 300.0),
        ("2024-02-03", 1, 50.0),
    ]
    assert reporting_service.sales_summaries(year=2023) == []
    with pytest.raises(ValidationError):
        reporting_service.sales_summaries(month=2)


def test_sales_for_client_is_paginated(sales, fuel_client):
    page = reporting_service.sales_for_client(fuel_client.id, page=1, limit=2)
    assert page["total"] == 3
    assert page["total_pages"] == 2
    assert [s.quantity for s in page["items"]] == [5, 20]


def test_list_sales_filters(sales, stocked_station):
    assert len(reporting_service.list_sales(start="2024-02-02")) == 1
    assert len(reporting_service.list_sales(end="2024-02-01")) == 2
    assert len(reporting_service.sales_for_station(stocked_station.id)) == 3
