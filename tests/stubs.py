"""Test doubles for the backend APIs and the analytics sink."""

from typing import Any

import httpx

from checkoutflow.domain.events import CheckoutOutcomeReported
from checkoutflow.infrastructure.analytics import AnalyticsSink

BACKEND_URL = "http://backend.test/api"
PUBLIC_BASE_URL = "https://shop.example"


class RecordingSink(AnalyticsSink):
    """Analytics sink that keeps delivered events in memory."""

    def __init__(self) -> None:
        self.events: list[CheckoutOutcomeReported] = []

    async def send(self, event: CheckoutOutcomeReported) -> None:
        self.events.append(event)


class FailingSink(AnalyticsSink):
    """Analytics sink that always raises."""

    def __init__(self) -> None:
        self.attempts = 0

    async def send(self, event: CheckoutOutcomeReported) -> None:
        self.attempts += 1
        raise ConnectionError("collector down")


def billing_body(**overrides: Any) -> dict[str, Any]:
    body = {
        "stripePublishableKey": "pk_test_123",
        "paypalClientId": "paypal-client-1",
        "currencyCode": "AUD",
        "taxRate": 10,
    }
    body.update(overrides)
    return body


def order_body(
    order_number: str = "ORD-000042",
    total: str = "550.00",
    transaction_id: str = "sess_123",
) -> dict[str, Any]:
    return {
        "order": {
            "orderNumber": order_number,
            "total": total,
            "currency": "AUD",
            "items": [{"name": "Logo Design", "quantity": 1, "price": 500.0}],
        },
        "payment": {"method": "stripe", "transactionId": transaction_id},
    }


class BackendStub:
    """Routes MockTransport requests for both backend APIs.

    Attributes default to a healthy backend; tests replace them to inject
    failures.
    """

    def __init__(self) -> None:
        self.billing: httpx.Response | Exception = httpx.Response(200, json=billing_body())
        self.orders: dict[str, dict[str, Any]] = {}
        self.order_error: Exception | httpx.Response | None = None
        self.checkout_session: httpx.Response | Exception = httpx.Response(
            200, json={"url": "https://checkout.stripe.test/c/pay/cs_test_1", "id": "cs_test_1"}
        )
        self.widget_order: httpx.Response | Exception = httpx.Response(
            200, json={"orderID": "PAYPAL-ORDER-1"}
        )
        self.requests: list[httpx.Request] = []

    def _answer(self, value: httpx.Response | Exception) -> httpx.Response:
        if isinstance(value, Exception):
            raise value
        return value

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.endswith("/settings/public/billing-settings"):
            return self._answer(self.billing)
        if path.endswith("/payments/create-checkout-session"):
            return self._answer(self.checkout_session)
        if path.endswith("/payments/create-paypal-order"):
            return self._answer(self.widget_order)
        if "/payments/order/" in path:
            if self.order_error is not None:
                return self._answer(self.order_error)
            reference = path.rsplit("/", 1)[-1]
            if reference in self.orders:
                return httpx.Response(200, json=self.orders[reference])
            return httpx.Response(404, json={"message": "Order not found"})
        return httpx.Response(404, json={"message": f"No route for {path}"})

    def lookups(self) -> list[httpx.Request]:
        return [r for r in self.requests if "/payments/order/" in r.url.path]


