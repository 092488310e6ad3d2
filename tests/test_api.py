"""Tests for the Flask scanner API."""

from datetime import timedelta

import pytest

from edgebot.api import create_app
from edgebot.models import AlertStatus
from edgebot.reader import MAX_WINDOW_DAYS, AlertReader

from conftest import NOW, make_alert


class BrokenReader:
    def list_alerts(self, limit=None):
        return []

    def get_metrics(self, window_days=None):
        return {}

    def run_backtest(self, days=30):
        raise RuntimeError("backtest exploded")


@pytest.fixture
def client(store, clock):
    for i in range(5):
        store.insert_alert(make_alert(i, AlertStatus.ACTIVE, NOW - timedelta(minutes=i)))
    store.insert_alert(make_alert(10, AlertStatus.CONVERTED, NOW - timedelta(days=2), ev=10.0))
    store.insert_alert(make_alert(11, AlertStatus.MISSED, NOW - timedelta(days=3), ev=4.0))

    app = create_app(AlertReader(store, clock=clock))
    app.testing = True
    return app.test_client()


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.get_json() == {"status": "ok"}


def test_alerts_honour_limit(client):
    response = client.get("/api/scanner/alerts?limit=3")

    assert response.status_code == 200
    alerts = response.get_json()
    assert [alert["marketId"] for alert in alerts] == ["market-0", "market-1", "market-2"]
    assert alerts[0]["status"] == "active"
    assert alerts[0]["expectedValue"] == 5.0
    assert set(alerts[0]) >= {"id", "title", "outcome", "marketPrice", "trueProbability", "liquidity", "timestamp"}


def test_alerts_default_limit(client):
    response = client.get("/api/scanner/alerts")
    assert len(response.get_json()) == 5


def test_metrics(client):
    metrics = client.get("/api/scanner/metrics").get_json()

    assert metrics["alertsThisMonth"] == 7
    assert metrics["activeAlerts"] == 5
    assert metrics["hitRate"] == 50.0


def test_backtest_reads_days_from_json_body(client):
    response = client.post("/api/scanner/backtest", json={"days": 1})

    assert response.status_code == 200
    report = response.get_json()
    assert report["days"] == 1
    assert report["hits"] == 0
    assert report["totalOpportunities"] == 5


def test_backtest_with_invalid_days_uses_default(client):
    report = client.post("/api/scanner/backtest", json={"days": "soon"}).get_json()

    assert report["days"] == 30
    assert report["hits"] == 1
    assert report["misses"] == 1
    assert report["hitRate"] == 50.0


def test_backtest_rejects_get(client):
    response = client.get("/api/scanner/backtest")

    assert response.status_code == 405
    assert response.get_json() == {"error": "Method not allowed"}


def test_backtest_failure_returns_empty_report():
    app = create_app(BrokenReader())
    app.testing = True

    response = app.test_client().post("/api/scanner/backtest", json={"days": 7})

    assert response.status_code == 200
    assert response.get_json()["days"] == 7
    assert response.get_json()["totalOpportunities"] == 0


def test_oversized_windows_do_not_fail(client):
    metrics = client.get("/api/scanner/metrics?days=99999999")
    report = client.post("/api/scanner/backtest", json={"days": 99999999})

    assert metrics.status_code == 200
    assert metrics.get_json()["windowDays"] == MAX_WINDOW_DAYS
    assert report.status_code == 200
    assert report.get_json()["days"] == MAX_WINDOW_DAYS
    assert report.get_json()["hits"] == 1
