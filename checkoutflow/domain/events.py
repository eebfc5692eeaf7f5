"""Domain events emitted by the checkout flow."""

from dataclasses import dataclass, field
from typing import Any, ClassVar

from checkoutflow.domain.base import DomainEvent


@dataclass(frozen=True)
class CheckoutStatusChanged(DomainEvent):
    """Raised on every checkout state transition."""

    event_type: ClassVar[str] = "checkout.status_changed"

    from_status: str = ""
    to_status: str = ""
    provider: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def _payload(self) -> dict[str, Any]:
        return {
            "from_status": self.from_status,
            "to_status": self.to_status,
            "provider": self.provider,
            "details": self.details,
        }


@dataclass(frozen=True)
class CheckoutOutcomeReported(DomainEvent):
    """Analytics notification for a terminal reconciliation outcome.

    Item entries follow the ``purchase`` shape used by the tracking sink:
    ``item_id``, ``item_name``, ``category``, ``quantity``, ``price``.
    """

    event_type: ClassVar[str] = "checkout.outcome"

    outcome: str = ""
    reference: str | None = None
    order_number: str | None = None
    reason: str | None = None
    provider: str | None = None
    total: str = "0.00"
    currency: str = ""
    amount_charged: str | None = None
    items: tuple[dict[str, Any], ...] = ()

    @property
    def dedup_key(self) -> str:
        """Key identifying one report per reference and outcome."""
        return f"{self.reference or self.aggregate_id}:{self.outcome}"

    def _payload(self) -> dict[str, Any]:
        return {
            "outcome": self.outcome,
            "transaction_id": self.reference,
            "order_number": self.order_number,
            "reason": self.reason,
            "provider": self.provider,
            "value": self.total,
            "currency": self.currency,
            "amount_charged": self.amount_charged,
            "items": list(self.items),
        }
