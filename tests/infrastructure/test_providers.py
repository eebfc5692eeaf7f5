"""Tests for the payment provider adapters."""

import json
from decimal import Decimal

import httpx
import pytest

from checkoutflow.domain import (
    BillingSettings,
    CartItem,
    CartSnapshot,
    CustomerInfo,
    ProviderDeclinedError,
    ProviderKind,
    ProviderUnreachableError,
    ReferenceSignal,
    Totals,
    UserCancelledError,
)
from checkoutflow.infrastructure.backend_client import PaymentsApiClient
from checkoutflow.infrastructure.providers import (
    RedirectAdapter,
    Redirecting,
    WidgetAdapter,
    WidgetErrorPayload,
    WidgetReady,
    WidgetSuccessPayload,
    build_adapters,
    classify_error,
    parse_callback,
    parse_return_url,
)
from stubs import PUBLIC_BASE_URL, BackendStub


@pytest.fixture
def totals() -> Totals:
    return Totals(subtotal=Decimal("500.00"), tax=Decimal("50.00"), total=Decimal("550.00"))


@pytest.fixture
def snapshot() -> CartSnapshot:
    return CartSnapshot(
        items=(CartItem(id="1", name="Logo Design", unit_price=Decimal("500.00"), quantity=1),),
        currency="AUD",
        customer=CustomerInfo(email="jo@example.com", name="Jo Citizen"),
    )


# ============================================================================
# Redirect
# ============================================================================


class TestRedirectAdapter:
    """Tests for RedirectAdapter.initiate."""

    @pytest.mark.asyncio
    async def test_initiate_returns_redirect(
        self,
        payments_client: PaymentsApiClient,
        backend: BackendStub,
        totals: Totals,
        snapshot: CartSnapshot,
    ) -> None:
        adapter = RedirectAdapter(payments_client, "pk_test_123", PUBLIC_BASE_URL)
        result = await adapter.initiate(totals, snapshot)

        assert isinstance(result, Redirecting)
        assert result.external_url == "https://checkout.stripe.test/c/pay/cs_test_1"
        assert result.session_id == "cs_test_1"

        payload = json.loads(backend.requests[0].content)
        assert payload["amount"] == 550.0
        assert payload["currency"] == "AUD"
        assert payload["customerInfo"]["email"] == "jo@example.com"
        assert payload["successUrl"] == (
            "https://shop.example/order-confirmation?session_id={CHECKOUT_SESSION_ID}"
        )
        assert payload["cancelUrl"] == "https://shop.example/checkout-cancelled"

    @pytest.mark.asyncio
    async def test_backend_failure_is_unreachable(
        self,
        payments_client: PaymentsApiClient,
        backend: BackendStub,
        totals: Totals,
        snapshot: CartSnapshot,
    ) -> None:
        backend.checkout_session = httpx.ConnectError("refused")
        adapter = RedirectAdapter(payments_client, "pk_test_123", PUBLIC_BASE_URL)
        with pytest.raises(ProviderUnreachableError) as exc_info:
            await adapter.initiate(totals, snapshot)
        assert exc_info.value.provider == "redirect"

    @pytest.mark.asyncio
    async def test_missing_url_is_unreachable(
        self,
        payments_client: PaymentsApiClient,
        backend: BackendStub,
        totals: Totals,
        snapshot: CartSnapshot,
    ) -> None:
        backend.checkout_session = httpx.Response(200, json={"id": "cs_1"})
        adapter = RedirectAdapter(payments_client, "pk_test_123", PUBLIC_BASE_URL)
        with pytest.raises(ProviderUnreachableError):
            await adapter.initiate(totals, snapshot)


class TestParseReturnUrl:
    """Tests for recovering the reference from a return URL."""

    def test_success_url(self) -> None:
        reference = parse_return_url("https://shop.example/order-confirmation?session_id=sess_123")
        assert reference.token == "sess_123"
        assert reference.provider == ProviderKind.REDIRECT
        assert reference.signal == ReferenceSignal.COMPLETED

    def test_legacy_success_path(self) -> None:
        reference = parse_return_url("/checkout-success?session_id=sess_9")
        assert reference.token == "sess_9"
        assert reference.signal == ReferenceSignal.COMPLETED

    def test_cancel_path(self) -> None:
        reference = parse_return_url("https://shop.example/checkout-cancelled")
        assert reference.signal == ReferenceSignal.CANCELLED
        assert reference.token is None

    def test_declined_status(self) -> None:
        reference = parse_return_url(
            "/order-confirmation?session_id=sess_1&redirect_status=failed"
        )
        assert reference.signal == ReferenceSignal.DECLINED
        assert reference.reason == "failed"

    def test_error_parameter(self) -> None:
        reference = parse_return_url("/order-confirmation?session_id=sess_1&error=processing_error")
        assert reference.signal == ReferenceSignal.ERRORED
        assert reference.reason == "processing_error"

    @pytest.mark.parametrize(
        "url",
        [
            "https://shop.example/order-confirmation",
            "https://shop.example/order-confirmation?session_id=",
            "https://shop.example/order-confirmation?session_id={CHECKOUT_SESSION_ID}",
            "https://shop.example/checkout?redirect_status=failed&utm_source=mail",
            "https://shop.example/checkout?foo=bar",
        ],
    )
    def test_fresh_entry(self, url: str) -> None:
        """No token means a fresh entry, whatever else is in the query."""
        assert parse_return_url(url) is None


# ============================================================================
# Widget
# ============================================================================


class TestWidgetAdapter:
    """Tests for WidgetAdapter.initiate."""

    @pytest.mark.asyncio
    async def test_initiate_returns_handle(
        self,
        payments_client: PaymentsApiClient,
        backend: BackendStub,
        totals: Totals,
        snapshot: CartSnapshot,
    ) -> None:
        adapter = WidgetAdapter(payments_client, "paypal-client-1")
        result = await adapter.initiate(totals, snapshot)

        assert isinstance(result, WidgetReady)
        assert result.handle.order_id == "PAYPAL-ORDER-1"
        assert result.handle.client_id == "paypal-client-1"
        assert result.handle.amount == Decimal("550.00")
        assert result.session_id == "PAYPAL-ORDER-1"
        assert backend.requests[0].url.path.endswith("/payments/create-paypal-order")

    @pytest.mark.asyncio
    async def test_missing_order_id_is_unreachable(
        self,
        payments_client: PaymentsApiClient,
        backend: BackendStub,
        totals: Totals,
        snapshot: CartSnapshot,
    ) -> None:
        backend.widget_order = httpx.Response(200, json={})
        adapter = WidgetAdapter(payments_client, "paypal-client-1")
        with pytest.raises(ProviderUnreachableError):
            await adapter.initiate(totals, snapshot)


class TestWidgetCallbacks:
    """Tests for widget callback parsing and classification."""

    def test_parse_success(self) -> None:
        payload = parse_callback({"clientReference": "PAYPAL-ORDER-1", "amountCharged": "550.00"})
        assert payload == WidgetSuccessPayload(
            client_reference="PAYPAL-ORDER-1", amount_charged=Decimal("550.00")
        )

    def test_parse_success_ignores_bad_amount(self) -> None:
        payload = parse_callback({"clientReference": "ref", "amountCharged": "lots"})
        assert isinstance(payload, WidgetSuccessPayload)
        assert payload.amount_charged is None

    def test_parse_error(self) -> None:
        payload = parse_callback({"code": "CARD_DECLINED", "message": "Declined"})
        assert payload == WidgetErrorPayload(code="card_declined", message="Declined")

    def test_parse_empty_is_error(self) -> None:
        assert parse_callback({}) == WidgetErrorPayload(code="invalid_callback")

    def test_cancel_codes(self) -> None:
        assert isinstance(classify_error(WidgetErrorPayload(code="popup_closed")), UserCancelledError)

    def test_network_codes(self) -> None:
        error = classify_error(WidgetErrorPayload(code="script_load_error"))
        assert isinstance(error, ProviderUnreachableError)

    @pytest.mark.parametrize("code", ["card_declined", "insufficient_funds", "something_new"])
    def test_other_codes_are_declines(self, code: str) -> None:
        error = classify_error(WidgetErrorPayload(code=code))
        assert isinstance(error, ProviderDeclinedError)
        assert error.code == code


class TestBuildAdapters:
    def test_only_configured_providers(self, payments_client: PaymentsApiClient) -> None:
        billing = BillingSettings(
            tax_rate_percent=Decimal("10"),
            currency_code="AUD",
            widget_provider_client_id="client",
        )
        adapters = build_adapters(billing, payments_client, PUBLIC_BASE_URL)
        assert list(adapters) == [ProviderKind.WIDGET]
        assert isinstance(adapters[ProviderKind.WIDGET], WidgetAdapter)

    def test_both_providers(self, payments_client: PaymentsApiClient) -> None:
        billing = BillingSettings(
            tax_rate_percent=Decimal("10"),
            currency_code="AUD",
            redirect_provider_public_key="pk",
            widget_provider_client_id="client",
        )
        adapters = build_adapters(billing, payments_client, PUBLIC_BASE_URL)
        assert set(adapters) == {ProviderKind.REDIRECT, ProviderKind.WIDGET}
