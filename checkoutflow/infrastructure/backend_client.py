"""HTTP clients for the content API and the payments/order service.

Both collaborators are reached over JSON HTTP. Transport failures and
unexpected statuses surface as ``BackendClientError``; callers map that into
the domain taxonomy at their own boundary.
"""

from typing import Any
from urllib.parse import quote

import httpx
import structlog

from checkoutflow.infrastructure.config import settings

logger = structlog.get_logger()


class BackendClientError(Exception):
    """Error from a backend API call.

    ``status_code`` is ``None`` when no response was received at all
    (connection failure, timeout).
    """

    def __init__(
        self, service: str, message: str, status_code: int | None = None
    ) -> None:
        self.service = service
        self.message = message
        self.status_code = status_code
        super().__init__(f"[{service}] {message}")

    @property
    def is_transport_error(self) -> bool:
        return self.status_code is None


class BackendClient:
    """Base JSON HTTP client with a lazily created ``httpx.AsyncClient``."""

    service_name = "backend"

    def __init__(
        self,
        base_url: str,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize client.

        Args:
            base_url: Root URL of the API, e.g. ``https://shop.example/api``.
            timeout: Default request timeout in seconds.
            transport: Optional transport override (tests use MockTransport).
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout if timeout is not None else settings.http_timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers={"Accept": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def _send(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        try:
            client = await self._get_client()
            kwargs: dict[str, Any] = {}
            if json is not None:
                kwargs["json"] = json
            if timeout is not None:
                kwargs["timeout"] = timeout
            # Forward the inbound request id bound by the correlation middleware
            request_id = structlog.contextvars.get_contextvars().get("request_id")
            if request_id:
                kwargs["headers"] = {"X-Request-ID": request_id}
            return await client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            logger.error(
                "Backend request failed",
                service=self.service_name,
                method=method,
                path=path,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise BackendClientError(
                self.service_name, f"Request failed: {type(e).__name__}: {e}"
            ) from e

    def _json(self, response: httpx.Response, action: str) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise BackendClientError(
                self.service_name,
                f"Invalid JSON in {action} response",
                response.status_code,
            ) from e
        if not isinstance(data, dict):
            raise BackendClientError(
                self.service_name,
                f"Unexpected {action} response body",
                response.status_code,
            )
        return data

    def _error_message(self, response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return response.text[:200]
        if isinstance(data, dict):
            return str(data.get("message") or data.get("error") or data)
        return str(data)


# ============================================================================
# Content API
# ============================================================================


class ContentApiClient(BackendClient):
    """Client for the public content/catalog API."""

    service_name = "content-api"

    async def get_billing_settings(self) -> dict[str, Any]:
        """Fetch the public billing settings document.

        Returns:
            Raw billing settings body.

        Raises:
            BackendClientError: On transport failure or non-200 status.
        """
        response = await self._send("GET", "/settings/public/billing-settings")
        if response.status_code != 200:
            raise BackendClientError(
                self.service_name,
                f"Failed to get billing settings: {self._error_message(response)}",
                response.status_code,
            )
        return self._json(response, "billing settings")


# ============================================================================
# Payments / Order Service
# ============================================================================


class PaymentsApiClient(BackendClient):
    """Client for the payments backend: provider sessions and order lookup."""

    service_name = "payments-api"

    async def get_order_by_reference(
        self, reference: str, timeout: float | None = None
    ) -> dict[str, Any] | None:
        """Look up an order by provider reference.

        Read-only; calling it repeatedly never creates orders.

        Args:
            reference: Provider reference token (session id or order id).
            timeout: Per-call timeout overriding the client default.

        Returns:
            Order body, or None when the backend reports not found/pending.

        Raises:
            BackendClientError: On transport failure or any other status.
        """
        response = await self._send(
            "GET", f"/payments/order/{quote(reference, safe='')}", timeout=timeout
        )

        if response.status_code == 404:
            return None

        if response.status_code != 200:
            raise BackendClientError(
                self.service_name,
                f"Failed to get order: {self._error_message(response)}",
                response.status_code,
            )

        return self._json(response, "order")

    async def create_checkout_session(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Create a hosted checkout session.

        Returns:
            Body containing the hosted checkout ``url`` (and ``id`` if given).

        Raises:
            BackendClientError: On transport failure or non-2xx status.
        """
        response = await self._send(
            "POST", "/payments/create-checkout-session", json=payload
        )
        if response.status_code not in (200, 201):
            raise BackendClientError(
                self.service_name,
                f"Failed to create checkout session: {self._error_message(response)}",
                response.status_code,
            )
        return self._json(response, "checkout session")

    async def create_widget_order(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Create an order for the embedded widget to approve.

        Returns:
            Body containing ``orderID``.

        Raises:
            BackendClientError: On transport failure or non-2xx status.
        """
        response = await self._send("POST", "/payments/create-paypal-order", json=payload)
        if response.status_code not in (200, 201):
            raise BackendClientError(
                self.service_name,
                f"Failed to create widget order: {self._error_message(response)}",
                response.status_code,
            )
        return self._json(response, "widget order")


# ============================================================================
# Shared Clients
# ============================================================================


_content_client: ContentApiClient | None = None
_payments_client: PaymentsApiClient | None = None


def get_content_client() -> ContentApiClient:
    """Get content API client singleton."""
    global _content_client
    if _content_client is None:
        _content_client = ContentApiClient(settings.content_api_url)
    return _content_client


def get_payments_client() -> PaymentsApiClient:
    """Get payments API client singleton."""
    global _payments_client
    if _payments_client is None:
        _payments_client = PaymentsApiClient(settings.payments_api_url)
    return _payments_client


async def close_backend_clients() -> None:
    """Close shared clients on shutdown."""
    global _content_client, _payments_client
    for client in (_content_client, _payments_client):
        if client is not None:
            await client.close()
    _content_client = None
    _payments_client = None
