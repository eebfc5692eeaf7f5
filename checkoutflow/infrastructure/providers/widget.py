"""Embedded widget provider adapter.

The widget renders in-page; the browser reports its result back through a
callback payload, which this module classifies.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, ClassVar

import structlog

from checkoutflow.domain.exceptions import (
    ProviderDeclinedError,
    ProviderError,
    ProviderUnreachableError,
    UserCancelledError,
)
from checkoutflow.domain.state_machines import ProviderKind
from checkoutflow.domain.value_objects import CartSnapshot, Totals, to_decimal
from checkoutflow.infrastructure.backend_client import BackendClientError, PaymentsApiClient
from checkoutflow.infrastructure.providers.base import (
    ProviderAdapter,
    WidgetHandle,
    WidgetReady,
)

logger = structlog.get_logger()

CANCEL_CODES = frozenset(
    {"cancelled", "canceled", "user_cancelled", "popup_closed", "window_closed"}
)
UNREACHABLE_CODES = frozenset(
    {
        "network_error",
        "script_load_error",
        "sdk_load_failed",
        "provider_unavailable",
        "init_failed",
        "timeout",
    }
)


# ============================================================================
# Callback Payloads
# ============================================================================


@dataclass(frozen=True)
class WidgetSuccessPayload:
    """Widget reported an approved payment.

    ``client_reference`` is used only as a lookup key; the order of record
    always comes from the backend.
    """

    client_reference: str
    amount_charged: Decimal | None = None


@dataclass(frozen=True)
class WidgetErrorPayload:
    code: str
    message: str = ""


WidgetCallbackPayload = WidgetSuccessPayload | WidgetErrorPayload


def parse_callback(raw: dict[str, Any]) -> WidgetCallbackPayload:
    """Parse a raw widget callback body.

    Accepts ``{"clientReference", "amountCharged"?}`` for success and
    ``{"code", "message"?}`` for errors. A body with neither is treated as an
    error with code ``invalid_callback``.
    """
    reference = str(raw.get("clientReference") or "").strip()
    if reference and not raw.get("code"):
        amount = raw.get("amountCharged")
        try:
            amount_charged = to_decimal(amount) if amount is not None else None
        except ValueError:
            logger.warning("Ignoring non-numeric amountCharged", amount_charged=amount)
            amount_charged = None
        return WidgetSuccessPayload(client_reference=reference, amount_charged=amount_charged)

    code = str(raw.get("code") or "invalid_callback").strip().lower()
    return WidgetErrorPayload(code=code, message=str(raw.get("message") or ""))


def classify_error(payload: WidgetErrorPayload) -> ProviderError:
    """Map a widget error code onto the provider error taxonomy.

    Cancel codes mean the customer backed out, network and script-load codes
    mean the widget never reached the provider; both imply no charge. Any
    other code is treated as a decline.
    """
    provider = ProviderKind.WIDGET.value
    message = payload.message or payload.code
    if payload.code in CANCEL_CODES:
        return UserCancelledError(provider, message, code=payload.code)
    if payload.code in UNREACHABLE_CODES:
        return ProviderUnreachableError(provider, message, code=payload.code)
    return ProviderDeclinedError(provider, message, code=payload.code)


# ============================================================================
# Adapter
# ============================================================================


class WidgetAdapter(ProviderAdapter):
    """Creates a backend order for the embedded widget to approve."""

    kind: ClassVar[ProviderKind] = ProviderKind.WIDGET

    def __init__(self, payments: PaymentsApiClient, client_id: str) -> None:
        super().__init__(payments)
        self.client_id = client_id

    async def initiate(self, totals: Totals, cart: CartSnapshot) -> WidgetReady:
        try:
            data = await self.payments.create_widget_order(self._base_payload(totals, cart))
        except BackendClientError as e:
            raise self._unreachable(e) from e

        order_id = data.get("orderID")
        if not order_id:
            raise self._unreachable("widget order response has no orderID")

        return WidgetReady(
            handle=WidgetHandle(
                order_id=str(order_id),
                client_id=self.client_id,
                currency=cart.currency,
                amount=totals.total,
            )
        )
