"""Confirmation reconciliation.

Turns a payment reference into exactly one ``ReconciliationOutcome`` by
asking the order service for the authoritative order. The lookup is made
once, bounded by a timeout, and never retried automatically: a failed
lookup settles as ``Degraded`` and the customer can retry explicitly.
"""

import asyncio

import structlog

from checkoutflow.domain.entities import Order
from checkoutflow.domain.exceptions import MalformedOrderError
from checkoutflow.domain.outcomes import (
    LOOKUP_FAILED,
    ORDER_MALFORMED,
    ORDER_PENDING,
    Cancelled,
    Confirmed,
    Degraded,
    Failed,
    ReconciliationOutcome,
)
from checkoutflow.domain.value_objects import PaymentReference, ReferenceSignal
from checkoutflow.infrastructure.backend_client import BackendClientError, PaymentsApiClient
from checkoutflow.infrastructure.config import settings

logger = structlog.get_logger()


class ConfirmationReconciler:
    """Maps a payment reference to a reconciliation outcome."""

    def __init__(self, payments: PaymentsApiClient, timeout: float | None = None) -> None:
        """Initialize reconciler.

        Args:
            payments: Order service client. Only its read-only lookup is used.
            timeout: Upper bound for the single lookup attempt, in seconds.
        """
        self.payments = payments
        self.timeout = timeout if timeout is not None else settings.order_lookup_timeout_seconds

    async def reconcile(self, reference: PaymentReference | None) -> ReconciliationOutcome:
        """Reconcile a reference against the order service.

        - no reference, or a cancelled signal: ``Cancelled``;
        - declined or errored signal: ``Failed``;
        - order found and well formed: ``Confirmed``;
        - not found yet: ``Degraded("order_pending")``;
        - malformed order: ``Degraded("order_malformed")``;
        - transport error, backend error or timeout: ``Degraded("lookup_failed")``.

        Calling it again with the same reference against an unchanged backend
        yields an equal outcome.
        """
        if reference is None:
            return Cancelled()

        if reference.signal == ReferenceSignal.CANCELLED:
            return Cancelled(partial_reference=reference.token)

        if reference.signal in (ReferenceSignal.DECLINED, ReferenceSignal.ERRORED):
            return Failed(
                reason=reference.reason or reference.signal.value,
                partial_reference=reference.token,
            )

        if not reference.is_present:
            return Cancelled()

        token = reference.token.strip()
        try:
            data = await asyncio.wait_for(
                self.payments.get_order_by_reference(token, timeout=self.timeout),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Order lookup timed out", reference=token, timeout=self.timeout)
            return Degraded(reason=LOOKUP_FAILED, partial_reference=token)
        except BackendClientError as e:
            logger.warning(
                "Order lookup failed",
                reference=token,
                error=e.message,
                status_code=e.status_code,
                transport=e.is_transport_error,
            )
            return Degraded(reason=LOOKUP_FAILED, partial_reference=token)

        if data is None:
            logger.info("Order not found yet", reference=token)
            return Degraded(reason=ORDER_PENDING, partial_reference=token)

        try:
            order = Order.from_api_response(data)
        except MalformedOrderError as e:
            logger.warning("Malformed order record", reference=token, reason=e.reason)
            return Degraded(reason=ORDER_MALFORMED, partial_reference=token)

        return Confirmed(order=order)
