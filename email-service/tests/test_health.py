"""Health endpoints. Memory readings are patched so thresholds are deterministic."""

from unittest.mock import patch

import pytest

import health


@pytest.mark.parametrize("usage, expected", [
    (10.0, "ok"),
    (95.0, "ok"),
    (96.5, "warning"),
    (98.0, "warning"),
    (98.5, "error"),
])
def test_memory_thresholds(usage, expected):
    assert health.memory_check(usage) == expected


def test_healthy(client):
    with patch("health.process_memory_percent", return_value=40.0):
        response = client.get("/health")

    assert response.status_code == 200
    body = response.json
    assert body["status"] == "healthy"
    assert body["checks"] == {"emailService": "ok", "memory": "ok", "disk": "ok"}
    assert body["emailProvider"] == "smtp"
    assert body["environment"] == "test"
    assert body["version"] == "1.0.0"
    assert body["uptime"] >= 0
    assert "timestamp" in body


def test_memory_pressure_is_unhealthy(client):
    with patch("health.process_memory_percent", return_value=99.0):
        response = client.get("/health")

    assert response.status_code == 503
    assert response.json["status"] == "unhealthy"
    assert response.json["checks"]["memory"] == "error"


def test_memory_warning_is_unhealthy(client):
    with patch("health.process_memory_percent", return_value=96.0):
        response = client.get("/health")

    assert response.status_code == 503
    assert response.json["checks"]["memory"] == "warning"


def test_disk_failure_is_unhealthy(client):
    with patch("health.os.getcwd", side_effect=FileNotFoundError("cwd removed")):
        response = client.get("/health")

    assert response.status_code == 503
    assert response.json["checks"]["disk"] == "error"


def test_internal_error_reports_all_checks_failed(client):
    with patch("health.process_memory_percent", side_effect=RuntimeError("psutil exploded")):
        response = client.get("/health")

    assert response.status_code == 503
    assert response.json["checks"] == {"emailService": "error", "memory": "error", "disk": "error"}
    assert response.json["error"] == "psutil exploded"


def test_health_needs_no_api_key(client):
    assert client.get("/health").status_code in (200, 503)


def test_detailed(client):
    response = client.get("/health/detailed")

    assert response.status_code == 200
    body = response.json
    assert body["service"] == "muse-email-service"
    assert body["config"]["emailProvider"] == "smtp"
    assert body["config"]["rateLimit"] == {"windowMs": 900000, "maxRequests": 100}
    assert body["system"]["cpu"]["count"] >= 1
    assert body["system"]["memory"]["total"] > 0
    assert "status" not in body


def test_detailed_internal_error_is_500(client):
    with patch("health.psutil.virtual_memory", side_effect=RuntimeError("no /proc")):
        response = client.get("/health/detailed")

    assert response.status_code == 500
    assert response.json["error"] == "Health check failed"
