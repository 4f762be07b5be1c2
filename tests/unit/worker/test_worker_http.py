"""
Name: Worker HTTP Endpoint Tests

Responsibilities:
  - Validate /healthz, /readyz and /metrics route payloads
  - Validate readiness degrades to 503 when a dependency is down
"""

import json
from unittest.mock import MagicMock, patch

import pytest

from audit_relay.infrastructure.db import init_pool, reset_pool
from audit_relay.worker.worker_health import health_payload, readiness_payload
from audit_relay.worker.worker_server import build_routes

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def _no_pool():
    reset_pool()
    yield
    reset_pool()


def test_healthz_merges_status_provider():
    routes = build_routes(lambda: {"listeners_alive": 2})

    status, content_type, body = routes["/healthz"]()

    assert status == 200
    assert content_type == "application/json"
    payload = json.loads(body)
    assert payload["listeners_alive"] == 2
    assert payload["db_pool"] == {}


def test_readiness_reports_missing_pool_as_disconnected():
    redis = MagicMock()
    redis.ping.return_value = True
    with patch("audit_relay.worker.worker_health.get_redis", return_value=redis):
        payload = readiness_payload()

    assert payload == {"ok": False, "db": "disconnected", "redis": "connected"}


def test_readyz_returns_503_when_redis_is_down():
    redis = MagicMock()
    redis.ping.side_effect = ConnectionError("refused")
    with patch("audit_relay.worker.worker_health.get_redis", return_value=redis):
        status, _, body = build_routes()["/readyz"]()

    assert status == 503
    assert json.loads(body)["redis"] == "disconnected"


def test_health_payload_reports_pool_stats():
    pool = MagicMock()
    pool.get_stats.return_value = {"pool_size": 4, "pool_available": 3}
    with patch("audit_relay.infrastructure.db.pool.ConnectionPool", return_value=pool):
        init_pool("postgresql://test", min_size=1, max_size=4, role="worker")
        payload = health_payload()

    assert payload["db_pool"] == {
        "pool_size": 4,
        "pool_available": 3,
        "requests_waiting": 0,
    }


def test_metrics_route_serves_prometheus_text():
    status, content_type, _ = build_routes()["/metrics"]()

    assert status == 200
    assert content_type.startswith("text/plain")
