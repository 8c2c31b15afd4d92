"""Tests for the VAT endpoints."""

from __future__ import annotations

from datetime import date

import pytest
from httpx import AsyncClient

from src.main import app
from src.tax.vat import InMemoryTransactionSource, TransactionType, VatTransaction


def _sale(on: date, amount: int, rate: int = 2000) -> VatTransaction:
    return VatTransaction(date=on, amount=amount, vat_rate=rate, type=TransactionType.INCOME)


def _purchase(on: date, amount: int, rate: int = 2000) -> VatTransaction:
    return VatTransaction(date=on, amount=amount, vat_rate=rate, type=TransactionType.EXPENSE)


TRANSACTIONS = [
    {"date": "2024-05-01", "amount": 1000000, "vatRate": 2000, "type": "income"},
    {"date": "2024-05-10", "amount": 250000, "vatRate": 2000, "type": "expense"},
    {
        "date": "2024-06-01",
        "amount": 100000,
        "vatRate": 2000,
        "type": "expense",
        "euAcquisition": True,
    },
    {"date": "2024-07-15", "amount": 300000, "vatRate": 2000, "type": "income"},
]


@pytest.mark.asyncio
async def test_boxes(api_client: AsyncClient) -> None:
    """Boxes for a list of transactions."""
    response = await api_client.post("/vat/boxes", json={"transactions": TRANSACTIONS[:2]})

    assert response.status_code == 200
    assert response.json() == {
        "box1": 200000,
        "box2": 0,
        "box3": 200000,
        "box4": 50000,
        "box5": 150000,
        "box6": 1000000,
        "box7": 250000,
        "box8": 0,
        "box9": 0,
    }


@pytest.mark.asyncio
async def test_boxes_invalid_rate(api_client: AsyncClient) -> None:
    transaction = {"date": "2024-05-01", "amount": 100, "vatRate": 20000, "type": "income"}
    response = await api_client.post("/vat/boxes", json={"transactions": [transaction]})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_create_return(api_client: AsyncClient) -> None:
    """Only transactions inside the period count."""
    response = await api_client.post(
        "/vat/returns",
        json={
            "periodStart": "2024-04-01",
            "periodEnd": "2024-06-30",
            "transactions": TRANSACTIONS,
        },
    )

    assert response.status_code == 201
    payload = response.json()
    assert payload["status"] == "draft"
    assert payload["periodStart"] == "2024-04-01"
    assert payload["periodEnd"] == "2024-06-30"
    assert payload["transactionCount"] == 3
    assert payload["box2"] == 20000
    assert payload["box3"] == 220000
    assert payload["box4"] == 70000
    assert payload["box5"] == 150000
    assert payload["box9"] == 100000


@pytest.mark.asyncio
async def test_create_return_reversed_period(api_client: AsyncClient) -> None:
    response = await api_client.post(
        "/vat/returns",
        json={"periodStart": "2024-06-30", "periodEnd": "2024-04-01", "transactions": []},
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_threshold_status_without_source(api_client: AsyncClient) -> None:
    """Without a transaction source the endpoint is unavailable."""
    response = await api_client.get("/vat/threshold-status")
    assert response.status_code == 503


@pytest.mark.asyncio
async def test_threshold_status(api_client: AsyncClient) -> None:
    """Rolling turnover of GBP 81,000 is approaching the GBP 90,000 threshold."""
    app.state.transaction_source = InMemoryTransactionSource(
        [
            _sale(date(2024, 3, 31), 5000000),
            _sale(date(2024, 4, 1), 5000000),
            _sale(date(2025, 1, 15), 3100000),
            _purchase(date(2024, 6, 1), 9000000),
        ]
    )

    response = await api_client.get(
        "/vat/threshold-status", params={"asOf": "2025-03-31"}
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["turnover"]["rolling12Month"] == 8100000
    assert payload["turnover"]["periodStart"] == "2024-04-01"
    assert payload["turnover"]["periodEnd"] == "2025-03-31"
    assert payload["turnover"]["transactionCount"] == 2
    assert payload["turnover"]["monthly"] == {"2024-04": 5000000, "2025-01": 3100000}
    assert payload["threshold"] == {
        "registrationAmount": 9000000,
        "deregistrationAmount": 8800000,
        "taxYear": "2024-25",
    }
    assert payload["warning"]["level"] == "approaching"
    assert payload["warning"]["remainingUntilThreshold"] == 900000
    assert payload["warning"]["percentage"] == 90.0
    assert payload["isVatRegistered"] is False
    assert payload["requiresMonitoring"] is True
    assert payload["projection"] == {
        "next30Days": 1033320,
        "averageDaily": 34444,
        "exceedsThreshold": False,
    }


@pytest.mark.asyncio
async def test_threshold_status_expected_contract(api_client: AsyncClient) -> None:
    """A contract worth more than the threshold in the next 30 days forces registration."""
    app.state.transaction_source = InMemoryTransactionSource([_sale(date(2025, 1, 15), 100000)])

    response = await api_client.get(
        "/vat/threshold-status",
        params={"asOf": "2025-03-31", "expectedNext30Days": 9500000},
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["projection"]["next30Days"] == 9500000
    assert payload["projection"]["exceedsThreshold"] is True
    assert payload["warning"]["level"] == "ok"


@pytest.mark.asyncio
async def test_threshold_status_registered(api_client: AsyncClient) -> None:
    """Registered businesses are reported but not monitored."""
    app.state.transaction_source = InMemoryTransactionSource([_sale(date(2025, 1, 15), 9500000)])

    response = await api_client.get(
        "/vat/threshold-status",
        params={"asOf": "2025-03-31", "isVatRegistered": "true"},
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["isVatRegistered"] is True
    assert payload["requiresMonitoring"] is False
    assert payload["warning"]["level"] == "ok"
    assert payload["warning"]["percentage"] == 105.56


@pytest.mark.asyncio
async def test_threshold_status_unknown_year(api_client: AsyncClient) -> None:
    app.state.transaction_source = InMemoryTransactionSource()
    response = await api_client.get(
        "/vat/threshold-status", params={"asOf": "2020-01-01"}
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_dashboard_summary(api_client: AsyncClient) -> None:
    """Defaults to the whole tax year."""
    app.state.transaction_source = InMemoryTransactionSource(
        [
            _sale(date(2024, 4, 5), 900000),
            _sale(date(2024, 4, 6), 1000000),
            _purchase(date(2025, 4, 5), 250000),
        ]
    )

    response = await api_client.get("/vat/dashboard-summary", params={"taxYear": "2024-25"})

    assert response.status_code == 200
    assert response.json() == {
        "outputVat": 200000,
        "inputVat": 50000,
        "vatBalance": 150000,
        "transactionCount": 2,
        "periodStart": "2024-04-06",
        "periodEnd": "2025-04-05",
    }


@pytest.mark.asyncio
async def test_dashboard_summary_explicit_dates(api_client: AsyncClient) -> None:
    app.state.transaction_source = InMemoryTransactionSource(
        [_sale(date(2024, 5, 1), 100000), _sale(date(2024, 8, 1), 100000)]
    )

    response = await api_client.get(
        "/vat/dashboard-summary",
        params={"taxYear": "2024-25", "startDate": "2024-04-06", "endDate": "2024-06-30"},
    )

    assert response.json()["outputVat"] == 20000
