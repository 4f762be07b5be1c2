"""
Name: Pytest Configuration and Shared Fixtures

Responsibilities:
  - Force the test environment (in-memory adapters, no .env file)
  - Reset container singletons and actor context between tests
  - Provide sample events, entities and a fake clock

Collaborators:
  - pytest: Test framework
  - audit_relay.container: composition root (reset per test)
  - audit_relay.domain: events and sample entities

Notes:
  - APP_ENV must be set before the first get_settings() call
  - Settings are cached with lru_cache, so every test starts from a clean cache
"""

import os
from datetime import datetime, timezone

import pytest

os.environ.setdefault("APP_ENV", "test")

from audit_relay.crosscutting import config as app_config  # noqa: E402

app_config.Settings.model_config["env_file"] = None

from audit_relay.container import reset_container  # noqa: E402
from audit_relay.context import clear_context  # noqa: E402
from audit_relay.domain.audit import (  # noqa: E402
    Actor,
    AuditAction,
    AuditEvent,
    ExceptionEvent,
)
from audit_relay.domain.entities import Invoice, User  # noqa: E402


def pytest_configure(config) -> None:
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: In-process end-to-end tests (in-memory adapters)"
    )


@pytest.fixture(autouse=True)
def _isolated_environment():
    """R: Fresh settings, singletons and context for every test."""
    app_config.get_settings.cache_clear()
    reset_container()
    clear_context()
    yield
    clear_context()
    reset_container()
    app_config.get_settings.cache_clear()


# ============================================================================
# Domain fixtures
# ============================================================================


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_actor() -> Actor:
    """R: Fully populated actor identity."""
    return Actor(
        username="alice",
        user_id="u-1",
        organization_id="org-1",
        url_domain="api.example.com",
        source_ip="10.0.0.7",
    )


@pytest.fixture
def make_audit_event(sample_actor, fixed_now):
    """R: Factory for valid AuditEvent values (CREATE by default)."""

    def _make(
        *,
        entity_id: str = "abc",
        action: AuditAction = AuditAction.CREATE,
        entity_name: str = "User",
        timestamp: datetime | None = None,
        actor: Actor | None = None,
    ) -> AuditEvent:
        old = '{"id":"%s"}' % entity_id if action is not AuditAction.CREATE else None
        new = '{"id":"%s"}' % entity_id if action is not AuditAction.DELETE else None
        return AuditEvent(
            actor=actor or sample_actor,
            entity_name=entity_name,
            entity_id=entity_id,
            action=action,
            timestamp=timestamp or fixed_now,
            old_snapshot=old,
            new_snapshot=new,
            description=f"Database {action.value} operation on {entity_name}",
        )

    return _make


@pytest.fixture
def sample_exception_event(sample_actor, fixed_now) -> ExceptionEvent:
    return ExceptionEvent(
        exception_type="ValueError",
        exception_message="boom",
        stack_trace="Traceback (most recent call last): ...",
        timestamp=fixed_now,
        class_name="billing.InvoiceService",
        method_name="approve",
        request_url="http://api.example.com/invoices/1/approve",
        request_method="POST",
        request_parameters=None,
        actor=sample_actor,
        http_status=500,
        description="Unhandled exception",
    )


@pytest.fixture
def sample_user() -> User:
    return User(username="alice", email="alice@example.com", full_name="Alice A.")


@pytest.fixture
def sample_invoice() -> Invoice:
    return Invoice(
        invoice_number="INV-001",
        customer_name="ACME",
        amount=120.5,
        items=["widget", "gadget"],
    )


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()
