"""Shared fixtures for checkout tests.

Backend collaborators are simulated with ``httpx.MockTransport`` handlers so
the real clients, status handling and error mapping are exercised.
"""

from decimal import Decimal
from typing import Callable, Generator

import httpx
import pytest
from fastapi.testclient import TestClient

from checkoutflow.api.checkouts import get_service
from checkoutflow.application.billing_config import BillingConfigLoader
from checkoutflow.application.checkout_controller import CheckoutSessionController
from checkoutflow.application.checkout_service import CheckoutService, CheckoutSessionRepository
from checkoutflow.application.outcome_emitter import OutcomeEmitter
from checkoutflow.application.reconciler import ConfirmationReconciler
from checkoutflow.domain.value_objects import CartItem, CustomerInfo
from checkoutflow.infrastructure.backend_client import ContentApiClient, PaymentsApiClient
from checkoutflow.infrastructure.config import Settings
from checkoutflow.main import app
from stubs import BACKEND_URL, PUBLIC_BASE_URL, BackendStub, RecordingSink


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def backend() -> BackendStub:
    return BackendStub()


@pytest.fixture
def content_client(backend: BackendStub) -> ContentApiClient:
    return ContentApiClient(BACKEND_URL, transport=httpx.MockTransport(backend))


@pytest.fixture
def payments_client(backend: BackendStub) -> PaymentsApiClient:
    return PaymentsApiClient(BACKEND_URL, transport=httpx.MockTransport(backend))


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def emitter(sink: RecordingSink) -> OutcomeEmitter:
    return OutcomeEmitter(sink=sink)


@pytest.fixture
def make_controller(
    content_client: ContentApiClient,
    payments_client: PaymentsApiClient,
    emitter: OutcomeEmitter,
) -> Callable[[], CheckoutSessionController]:
    """Factory for controllers sharing the stubbed backend and emitter."""

    def _make() -> CheckoutSessionController:
        return CheckoutSessionController(
            config_loader=BillingConfigLoader(content_client),
            payments=payments_client,
            reconciler=ConfirmationReconciler(payments_client, timeout=2.0),
            emitter=emitter,
            public_base_url=PUBLIC_BASE_URL,
        )

    return _make


@pytest.fixture
def logo_design() -> list[CartItem]:
    return [CartItem(id="1", name="Logo Design", unit_price=Decimal("500.00"), quantity=1)]


@pytest.fixture
def customer() -> CustomerInfo:
    return CustomerInfo(email="jo@example.com", name="Jo Citizen", city="Sydney")


@pytest.fixture
def service(
    content_client: ContentApiClient,
    payments_client: PaymentsApiClient,
    emitter: OutcomeEmitter,
) -> CheckoutService:
    return CheckoutService(
        repo=CheckoutSessionRepository(),
        content=content_client,
        payments=payments_client,
        emitter=emitter,
        config=Settings(public_base_url=PUBLIC_BASE_URL, order_lookup_timeout_seconds=2.0),
    )


@pytest.fixture
def client(service: CheckoutService) -> Generator[TestClient, None, None]:
    """Test client whose checkout service talks to the stubbed backend."""
    app.dependency_overrides[get_service] = lambda: service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
