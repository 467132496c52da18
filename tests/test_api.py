from dataclasses import replace
from datetime import date

import pytest
from fastapi.testclient import TestClient

import api.main
from api.main import app, get_fetcher, get_market_config, get_runtime_settings
from conftest import FakeFetcher
from jobs.config import LENDERS, WAUKESHA_COUNTY
from pipelines.common import DocumentType, FetchedDocument

CRON_SECRET = "s3cret"
RATE_PAGE = b"<h3>30 Year Fixed</h3><p>Interest Rate</p><p>6.375%</p><p>APR</p><p>6.512%</p>"


def _client(fetcher, settings):
    app.dependency_overrides[get_fetcher] = lambda: fetcher
    app.dependency_overrides[get_runtime_settings] = lambda: replace(
        settings, cron_secret=CRON_SECRET
    )
    app.dependency_overrides[get_market_config] = lambda: WAUKESHA_COUNTY
    return TestClient(app)


@pytest.fixture()
def live_client(live_fetcher, settings):
    with _client(live_fetcher, settings) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def degraded_client(failing_fetcher, settings):
    with _client(failing_fetcher, settings) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_health(live_client):
    response = live_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_stats_payload(live_client):
    response = live_client.get("/stats")

    assert response.status_code == 200
    assert response.headers["cache-control"] == "s-maxage=300, stale-while-revalidate=3600"
    payload = response.json()
    assert payload["updatedAt"] == "2025-10-03"
    assert "error" not in payload
    month = payload["months"]["2025-09"]
    assert month["sf"] == {
        "medianPrice": 520000,
        "closed": 312,
        "dom": 48,
        "monthsSupply": 1.5,
        "activeListings": 1045,
    }
    assert month["condo"]["monthsSupply"] == 2.6
    assert month["sfReport"] == WAUKESHA_COUNTY.single_family.url


def test_stats_are_cached_between_requests(live_client, live_fetcher):
    live_client.get("/stats")
    live_client.get("/stats")

    assert len(live_fetcher.calls) == 2


def test_degraded_stats_are_served_but_not_cached(degraded_client, failing_fetcher):
    first = degraded_client.get("/stats").json()
    degraded_client.get("/stats")

    assert first["error"] == "sf: fetch failed; condo: fetch failed"
    assert first["months"]["2025-09"]["sf"]["medianPrice"] == 520000
    assert first["updatedAt"] == "2025-09-01"
    # Each request retried upstream: two reports per request.
    assert len(failing_fetcher.calls) == 4


@pytest.mark.parametrize("params", [{}, {"secret": "wrong"}])
def test_refresh_requires_secret(live_client, params):
    response = live_client.get("/refresh", params=params)

    assert response.status_code == 401
    assert response.json() == {"detail": "Unauthorized"}


def test_refresh_rebuilds_cached_stats(live_client, live_fetcher):
    live_client.get("/stats")

    response = live_client.get("/refresh", params={"secret": CRON_SECRET})

    assert response.status_code == 200
    assert response.json() == {
        "refreshed": True,
        "updatedAt": "2025-10-03",
        "months": ["2025-09"],
        "degraded": False,
    }
    assert len(live_fetcher.calls) == 4


def test_refresh_is_disabled_without_configured_secret(live_fetcher, settings):
    app.dependency_overrides[get_fetcher] = lambda: live_fetcher
    app.dependency_overrides[get_runtime_settings] = lambda: settings
    app.dependency_overrides[get_market_config] = lambda: WAUKESHA_COUNTY
    try:
        with TestClient(app) as test_client:
            response = test_client.get("/refresh", params={"secret": ""})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 401


def test_rates_payload(settings):
    page = FetchedDocument(
        url=LENDERS[0].url, content=RATE_PAGE, content_type="text/html", kind=DocumentType.HTML
    )
    with _client(FakeFetcher({LENDERS[0].url: page}), settings) as test_client:
        response = test_client.get("/rates")
    app.dependency_overrides.clear()

    assert response.status_code == 200
    assert response.headers["cache-control"] == "s-maxage=900, stale-while-revalidate=3600"
    payload = response.json()
    assert "error" not in payload
    [lender] = payload["lenders"]
    assert lender["name"] == "Associated Bank"
    assert lender["rate"] == 6.375
    assert lender["apr"] == 6.512
    assert lender["contactUrl"] == LENDERS[0].contact_url


def test_updated_at(live_client, monkeypatch):
    async def fake_latest(market, **kwargs):
        return date(2025, 10, 3)

    monkeypatch.setattr(api.main, "latest_report_update", fake_latest)

    response = live_client.get("/updated-at")

    assert response.status_code == 200
    assert response.json() == {"updatedAt": "2025-10-03"}


def test_sitemap(live_client):
    response = live_client.get("/sitemap.xml")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/xml")
    assert "<loc>http://testserver/</loc>" in response.text
    assert "<lastmod>2025-10-03T12:00:00Z</lastmod>" in response.text
