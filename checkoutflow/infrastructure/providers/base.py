"""Provider adapter contract.

Each payment integration normalizes its own initiation and completion
semantics behind ``ProviderAdapter``. Neither variant completes
synchronously: the redirect variant resumes on a later page load, the widget
variant through an in-page callback.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, ClassVar

import structlog

from checkoutflow.domain.exceptions import ProviderUnreachableError
from checkoutflow.domain.state_machines import ProviderKind
from checkoutflow.domain.value_objects import CartSnapshot, Totals
from checkoutflow.infrastructure.backend_client import BackendClientError, PaymentsApiClient

logger = structlog.get_logger()


# ============================================================================
# Initiation Results
# ============================================================================


@dataclass(frozen=True)
class Redirecting:
    """The browser must navigate to ``external_url`` to complete payment."""

    external_url: str
    session_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"type": "redirecting", "external_url": self.external_url}


@dataclass(frozen=True)
class WidgetHandle:
    """Everything the embedded widget needs to render and approve a payment."""

    order_id: str
    client_id: str
    currency: str
    amount: Decimal


@dataclass(frozen=True)
class WidgetReady:
    """The in-page widget is ready; completion arrives via callback."""

    handle: WidgetHandle

    @property
    def session_id(self) -> str:
        return self.handle.order_id

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "widget_ready",
            "order_id": self.handle.order_id,
            "client_id": self.handle.client_id,
            "currency": self.handle.currency,
            "amount": str(self.handle.amount),
        }


InitiationResult = Redirecting | WidgetReady


# ============================================================================
# Adapter Base
# ============================================================================


class ProviderAdapter(ABC):
    """Capability interface shared by every payment integration."""

    kind: ClassVar[ProviderKind]

    def __init__(self, payments: PaymentsApiClient) -> None:
        self.payments = payments

    @abstractmethod
    async def initiate(self, totals: Totals, cart: CartSnapshot) -> InitiationResult:
        """Start a payment for the given totals.

        Raises:
            ProviderUnreachableError: If the provider could not be initialized.
                No charge has been attempted.
        """

    def _base_payload(self, totals: Totals, cart: CartSnapshot) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "amount": float(totals.total),
            "currency": cart.currency,
            "items": cart.items_payload(),
        }
        if cart.customer is not None:
            payload["customerInfo"] = cart.customer.to_payload()
        return payload

    def _unreachable(self, error: BackendClientError | str) -> ProviderUnreachableError:
        message = error.message if isinstance(error, BackendClientError) else error
        logger.warning(
            "Payment provider initiation failed",
            provider=self.kind.value,
            error=message,
            status_code=getattr(error, "status_code", None),
        )
        return ProviderUnreachableError(
            provider=self.kind.value,
            message=f"Could not start {self.kind.value} payment: {message}",
            code="initiation_failed",
        )
