from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from maas_gateway.config.settings import AppSettings
from maas_gateway.gateway.app import create_app


@pytest.fixture
def client(backend):
    app = create_app(AppSettings(), backend=backend)
    with TestClient(app) as test_client:
        yield test_client


def test_read_resource_as_json(client: TestClient) -> None:
    response = client.get("/v1/resources", params={"uri": "maas://machine/abc123"})
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/json")
    assert response.headers["cache-control"] == "public, max-age=300"
    assert response.json()["data"]["name"] == "node-1"


def test_read_resource_honours_accept_header(client: TestClient) -> None:
    response = client.get(
        "/v1/resources",
        params={"uri": "maas://subnet/1"},
        headers={"Accept": "application/xml"},
    )
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/xml")
    assert "<cidr>10.0.0.0/24</cidr>" in response.text


def test_paginated_collection(client: TestClient) -> None:
    response = client.get("/v1/resources", params={"uri": "maas://machines?limit=2"})
    payload = response.json()
    assert [machine["id"] for machine in payload["data"]] == ["abc123", "def456"]
    assert payload["pagination"]["totalCount"] == 3
    assert payload["links"]["next"] == "maas://machines?limit=2&offset=2"


def test_missing_resource_returns_error_envelope(client: TestClient) -> None:
    response = client.get("/v1/resources", params={"uri": "maas://machine/unknown"})
    assert response.status_code == 404
    assert response.json()["code"] == "resource_not_found"
    assert response.headers["cache-control"].startswith("no-cache")


def test_invalid_query_parameter_returns_400(client: TestClient) -> None:
    response = client.get("/v1/resources", params={"uri": "maas://machines?limit=0"})
    assert response.status_code == 400
    assert response.json()["type"] == "validation"


def test_patterns_and_validation_endpoints(client: TestClient) -> None:
    patterns = client.get("/v1/resources/patterns").json()["resources"]
    assert {entry["handler"] for entry in patterns} == {"machine", "network", "storage", "tag"}

    valid = client.get("/v1/resources/validate", params={"uri": "maas://tags"}).json()
    assert valid == {"valid": True, "errors": []}
    invalid = client.get("/v1/resources/validate", params={"uri": "maas://switch/1"}).json()
    assert invalid["valid"] is False
    assert invalid["errors"][0]["code"] == "no_handler"


def test_health_reports_handlers_and_cache(client: TestClient) -> None:
    client.get("/v1/resources", params={"uri": "maas://tags"})
    payload = client.get("/health").json()
    assert payload["status"] == "ok"
    assert payload["handlers"] == ["machine", "network", "storage", "tag"]
    assert payload["cache_entries"] == 1


def test_correlation_id_is_echoed(client: TestClient) -> None:
    response = client.get("/health", headers={"X-Correlation-ID": "corr-42"})
    assert response.headers["X-Correlation-ID"] == "corr-42"
    generated = client.get("/health")
    assert generated.headers["X-Correlation-ID"]


def test_metrics_endpoint_exposes_dispatch_counters(client: TestClient) -> None:
    client.get("/v1/resources", params={"uri": "maas://tags"})
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "maas_gateway_resource_requests_total" in response.text


def test_metrics_endpoint_can_be_disabled(backend) -> None:
    app = create_app(AppSettings(metrics={"enabled": False}), backend=backend)
    with TestClient(app) as client:
        assert client.get("/metrics").status_code == 404
