# tests/api/test_share_api.py
# HTTP contract of the share endpoints, served by the real app over the in-memory repository

import asyncio
import dataclasses
import uuid
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from chaoslinks import config
from chaoslinks.db import base as db_base
from chaoslinks.main import app
from chaoslinks.observability.metrics import REQUEST_COUNT, REQUEST_IN_PROGRESS, UNMATCHED_PATH
from chaoslinks.routers.share import get_service
from chaoslinks.services.share_service import ShareService
from chaoslinks.utils.expiration import utcnow


@pytest.fixture
def client(repository, share_settings):
    app.dependency_overrides[get_service] = lambda: ShareService(repository, settings=share_settings)
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def user_headers(owner_id):
    return {"X-User-Id": owner_id}


@pytest.fixture
def lorenz_body(lorenz_params):
    return {"mapType": "lorenz", "parameters": lorenz_params}


def test_create_requires_identity(client, lorenz_body):
    response = client.post("/api/share", json=lorenz_body)

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "UNAUTHORIZED"


def test_create_rejects_malformed_identity(client, lorenz_body):
    response = client.post("/api/share", json=lorenz_body, headers={"X-User-Id": "not-a-uuid"})
    assert response.status_code == 401


def test_create_returns_link(client, repository, user_headers, lorenz_body, owner_id):
    response = client.post("/api/share", json=lorenz_body, headers=user_headers)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["remaining"] == 9
    assert len(body["shortCode"]) == 8
    assert body["shareUrl"] == f"{config.PUBLIC_BASE_URL}/s/{body['shortCode']}"
    assert "expiresAt" in body
    assert len(repository.owned_by(owner_id)) == 1


def test_create_rejects_unknown_map_type(client, user_headers, lorenz_params):
    response = client.post(
        "/api/share", json={"mapType": "mandelbrot", "parameters": lorenz_params}, headers=user_headers
    )

    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Invalid map type"


def test_create_rejects_incomplete_parameters(client, user_headers):
    response = client.post(
        "/api/share", json={"mapType": "lorenz", "parameters": {"sigma": 10}}, headers=user_headers
    )

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["message"].startswith("Invalid parameters: ")
    assert "Missing required parameters: rho, beta" in error["details"]["errors"]


def test_create_rejects_missing_body_fields(client, user_headers):
    response = client.post("/api/share", json={"parameters": {}}, headers=user_headers)

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_eleventh_share_in_an_hour_is_rate_limited(client, repository, user_headers, lorenz_body, owner_id):
    now = utcnow()
    for i in range(10):
        repository.seed(owner_id=owner_id, short_code=f"SEED{i:04d}", created_at=now - timedelta(minutes=50 - i))

    response = client.post("/api/share", json=lorenz_body, headers=user_headers)

    assert response.status_code == 429
    error = response.json()["error"]
    assert error["code"] == "RATE_LIMIT_EXCEEDED"
    retry_after = int(response.headers["Retry-After"])
    # oldest share is 50 minutes old: roughly ten minutes left plus the grace second
    assert 590 <= retry_after <= 602
    assert error["details"]["retry_after"] == retry_after
    assert "reset_at" in error["details"]
    assert len(repository.owned_by(owner_id)) == 10


def test_generation_exhausted_maps_to_503(repository, share_settings, user_headers, lorenz_body):
    repository.seed(owner_id=str(uuid.uuid4()), short_code="AAAAAAAA", created_at=utcnow())
    app.dependency_overrides[get_service] = lambda: ShareService(
        repository, settings=share_settings, code_generator=lambda: "AAAAAAAA"
    )
    try:
        response = TestClient(app).post("/api/share", json=lorenz_body, headers=user_headers)
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 503
    assert response.json()["error"]["message"] == "Failed to generate share link. Please try again."


def test_get_rejects_malformed_code(client):
    response = client.get("/api/shared/bad!code")

    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Invalid share code"


def test_get_unknown_code(client):
    response = client.get("/api/shared/ABCDEFGH")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


def test_get_expired_code_is_gone(client, repository, owner_id):
    now = utcnow()
    repository.seed(
        owner_id=owner_id,
        short_code="EXPIRED1",
        created_at=now - timedelta(days=8),
        expires_at=now - timedelta(days=1),
    )

    response = client.get("/api/shared/EXPIRED1")

    assert response.status_code == 410
    assert response.json()["error"]["code"] == "SHARE_EXPIRED"
    assert client.get("/api/shared/EXPIRED1").status_code == 404


def test_get_returns_public_view(client, repository, owner_id):
    repository.seed(owner_id=owner_id, short_code="VIEW0001", created_at=utcnow(), view_count=3)

    response = client.get("/api/shared/VIEW0001")

    assert response.status_code == 200
    body = response.json()
    assert body["shortCode"] == "VIEW0001"
    assert body["username"] == "Anonymous"
    assert body["mapType"] == "lorenz"
    assert body["viewCount"] == 4
    assert body["daysRemaining"] == 7


def test_get_shows_owner_username(client, repository, owner_id):
    repository.usernames[owner_id] = "feigenbaum"
    repository.seed(owner_id=owner_id, short_code="VIEW0002", created_at=utcnow())

    assert client.get("/api/shared/VIEW0002").json()["username"] == "feigenbaum"


def test_liveness_probe(client):
    response = client.get("/health/live")

    assert response.status_code == 200
    assert response.json() == {"status": "alive"}


def test_metrics_exposes_share_counters(client, user_headers, lorenz_body):
    client.post("/api/share", json=lorenz_body, headers=user_headers)

    response = client.get("/metrics")

    assert response.status_code == 200
    assert "shares_created_total" in response.text


def test_timed_out_create_maps_to_503_and_writes_nothing(client, repository, user_headers, lorenz_body, owner_id):
    repository.transaction_error = asyncio.TimeoutError()

    response = client.post("/api/share", json=lorenz_body, headers=user_headers)

    assert response.status_code == 503
    assert response.json()["error"]["code"] == "SERVICE_UNAVAILABLE"
    assert repository.owned_by(owner_id) == []


def test_get_reports_stability_warnings(client, repository, owner_id):
    share = repository.seed(owner_id=owner_id, short_code="WILD0001", created_at=utcnow())
    repository.rows[share.id] = dataclasses.replace(share, parameters={"sigma": 100, "rho": 28, "beta": 2.667})

    body = client.get("/api/shared/WILD0001").json()

    assert body["warnings"] == ["sigma (100) is outside stable range [0, 50]"]


def test_stable_share_has_no_warnings(client, repository, owner_id):
    repository.seed(owner_id=owner_id, short_code="CALM0001", created_at=utcnow())

    assert client.get("/api/shared/CALM0001").json()["warnings"] == []


def _label_values(metric, label):
    return {
        sample.labels[label]
        for family in metric.collect()
        for sample in family.samples
        if label in sample.labels
    }


def test_request_metrics_do_not_grow_with_share_codes(client):
    for i in range(30):
        client.get(f"/api/shared/LBL{i:05d}")
        client.get(f"/no/such/page/{i}")

    assert _label_values(REQUEST_IN_PROGRESS, "path") == set()
    assert "GET" in _label_values(REQUEST_IN_PROGRESS, "method")
    paths = _label_values(REQUEST_COUNT, "path")
    assert not any(p.startswith("/api/shared/LBL") or p.startswith("/no/such/page/") for p in paths)
    assert UNMATCHED_PATH in paths


def test_lifespan_disposes_engine(monkeypatch):
    disposed = []

    class _Engine:
        async def dispose(self):
            disposed.append(True)

    monkeypatch.setattr(db_base, "async_engine", _Engine())

    with TestClient(app) as lifespan_client:
        assert lifespan_client.get("/health/live").status_code == 200
        assert disposed == []

    assert disposed == [True]
