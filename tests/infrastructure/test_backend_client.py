"""Tests for the backend HTTP clients."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest
import structlog

from checkoutflow.infrastructure.backend_client import (
    BackendClientError,
    ContentApiClient,
    PaymentsApiClient,
)
from stubs import BACKEND_URL, BackendStub, order_body


class TestContentApiClient:
    """Tests for ContentApiClient."""

    @pytest.mark.asyncio
    async def test_get_billing_settings(
        self, content_client: ContentApiClient, backend: BackendStub
    ) -> None:
        data = await content_client.get_billing_settings()
        assert data["stripePublishableKey"] == "pk_test_123"
        assert backend.requests[0].url.path == "/api/settings/public/billing-settings"

    @pytest.mark.asyncio
    async def test_non_200_raises(
        self, content_client: ContentApiClient, backend: BackendStub
    ) -> None:
        backend.billing = httpx.Response(503, json={"message": "maintenance"})
        with pytest.raises(BackendClientError) as exc_info:
            await content_client.get_billing_settings()
        assert exc_info.value.status_code == 503
        assert "maintenance" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_transport_error_has_no_status(
        self, content_client: ContentApiClient, backend: BackendStub
    ) -> None:
        backend.billing = httpx.ConnectError("connection refused")
        with pytest.raises(BackendClientError) as exc_info:
            await content_client.get_billing_settings()
        assert exc_info.value.is_transport_error

    @pytest.mark.asyncio
    async def test_invalid_json_raises(
        self, content_client: ContentApiClient, backend: BackendStub
    ) -> None:
        backend.billing = httpx.Response(200, text="<html>oops</html>")
        with pytest.raises(BackendClientError):
            await content_client.get_billing_settings()


class TestPaymentsApiClient:
    """Tests for PaymentsApiClient."""

    @pytest.mark.asyncio
    async def test_get_order_found(
        self, payments_client: PaymentsApiClient, backend: BackendStub
    ) -> None:
        backend.orders["sess_123"] = order_body()
        data = await payments_client.get_order_by_reference("sess_123")
        assert data["order"]["orderNumber"] == "ORD-000042"

    @pytest.mark.asyncio
    async def test_get_order_not_found_returns_none(
        self, payments_client: PaymentsApiClient
    ) -> None:
        assert await payments_client.get_order_by_reference("sess_unknown") is None

    @pytest.mark.asyncio
    async def test_get_order_server_error_raises(
        self, payments_client: PaymentsApiClient, backend: BackendStub
    ) -> None:
        backend.order_error = httpx.Response(500, json={"error": "db down"})
        with pytest.raises(BackendClientError) as exc_info:
            await payments_client.get_order_by_reference("sess_123")
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_reference_is_path_escaped(
        self, payments_client: PaymentsApiClient, backend: BackendStub
    ) -> None:
        await payments_client.get_order_by_reference("a/b c")
        assert backend.requests[0].url.raw_path.endswith(b"/payments/order/a%2Fb%20c")

    @pytest.mark.asyncio
    async def test_create_checkout_session_posts_payload(
        self, payments_client: PaymentsApiClient, backend: BackendStub
    ) -> None:
        data = await payments_client.create_checkout_session({"amount": 550.0})
        assert data["url"].startswith("https://")
        assert backend.requests[0].method == "POST"

    @pytest.mark.asyncio
    async def test_create_widget_order_error(
        self, payments_client: PaymentsApiClient, backend: BackendStub
    ) -> None:
        backend.widget_order = httpx.Response(400, json={"message": "PayPal not configured"})
        with pytest.raises(BackendClientError) as exc_info:
            await payments_client.create_widget_order({"amount": 550.0})
        assert exc_info.value.status_code == 400


class TestClientLifecycle:
    @pytest.mark.asyncio
    async def test_forwards_bound_request_id(self, backend: BackendStub) -> None:
        client = PaymentsApiClient(BACKEND_URL, transport=httpx.MockTransport(backend))
        async with client:
            structlog.contextvars.bind_contextvars(request_id="req-1")
            try:
                await client.get_order_by_reference("sess_1")
            finally:
                structlog.contextvars.unbind_contextvars("request_id")
            await client.get_order_by_reference("sess_2")

        assert backend.requests[0].headers["X-Request-ID"] == "req-1"
        assert "X-Request-ID" not in backend.requests[1].headers
        assert client._client is None

    @pytest.mark.asyncio
    async def test_timeout_maps_to_client_error(self) -> None:
        client = PaymentsApiClient(BACKEND_URL)
        mock_http = AsyncMock()
        mock_http.request.side_effect = httpx.ReadTimeout("timed out")
        with patch.object(client, "_get_client", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = mock_http
            with pytest.raises(BackendClientError) as exc_info:
                await client.get_order_by_reference("sess_1", timeout=0.5)
        assert exc_info.value.is_transport_error
        assert mock_http.request.call_args.kwargs["timeout"] == 0.5
