"""
Name: Middleware Tests

Responsibilities:
  - Validate unhandled exceptions are reported and still surface as 500
  - Validate the reported event carries request info and actor identity
  - Validate a broken reporter never masks the original error
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from audit_relay.application.exception_capture import ExceptionReporter
from audit_relay.crosscutting.middleware import (
    AuditContextMiddleware,
    ExceptionCaptureMiddleware,
)
from audit_relay.infrastructure.messaging import InMemoryEventLog

pytestmark = pytest.mark.unit


class PaymentGateway:
    def charge(self, amount):
        raise RuntimeError(f"gateway rejected {amount}")


def _build_app(reporter_factory):
    app = FastAPI()
    app.add_middleware(ExceptionCaptureMiddleware, reporter_factory=reporter_factory)
    app.add_middleware(AuditContextMiddleware, anonymous_actor="anonymous")

    @app.get("/charge")
    def charge(amount: int = 0):
        PaymentGateway().charge(amount)

    @app.get("/ok")
    def ok():
        return {"ok": True}

    return app


@pytest.fixture
def log():
    return InMemoryEventLog(topic="exception-events", partitions=3)


def test_unhandled_exception_is_reported(log):
    app = _build_app(lambda: ExceptionReporter(log))
    client = TestClient(app, raise_server_exceptions=False)

    response = client.get(
        "/charge", params={"amount": 5}, headers={"X-Username": "carol"}
    )

    assert response.status_code == 500
    (event,) = log.events()
    assert event.exception_type == "RuntimeError"
    assert event.exception_message == "gateway rejected 5"
    assert event.class_name.endswith("PaymentGateway")
    assert event.method_name == "charge"
    assert event.request_method == "GET"
    assert event.request_parameters == "amount=5"
    assert event.request_url.endswith("/charge?amount=5")
    assert event.actor.username == "carol"


def test_successful_requests_report_nothing(log):
    client = TestClient(_build_app(lambda: ExceptionReporter(log)))

    assert client.get("/ok").json() == {"ok": True}
    assert log.events() == []


def test_broken_reporter_does_not_mask_the_error():
    def factory():
        raise RuntimeError("container not ready")

    client = TestClient(_build_app(factory), raise_server_exceptions=False)

    assert client.get("/charge").status_code == 500


def test_original_exception_propagates_to_the_server(log):
    client = TestClient(_build_app(lambda: ExceptionReporter(log)))

    with pytest.raises(RuntimeError, match="gateway rejected"):
        client.get("/charge")
