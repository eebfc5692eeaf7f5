"""Domain entities for the checkout flow.

``Order`` is the backend's authoritative record, only ever parsed from an
order service response. ``CheckoutSession`` is the aggregate that walks the
checkout state machine for one browser tab.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Self
from uuid import uuid4

from checkoutflow.domain.base import AggregateRoot, utcnow
from checkoutflow.domain.events import CheckoutStatusChanged
from checkoutflow.domain.exceptions import MalformedOrderError
from checkoutflow.domain.state_machines import (
    CheckoutStatus,
    ProviderKind,
    validate_checkout_transition,
)
from checkoutflow.domain.value_objects import PaymentReference, to_decimal

if TYPE_CHECKING:
    from checkoutflow.domain.outcomes import ReconciliationOutcome


# ============================================================================
# Order (backend-owned)
# ============================================================================


@dataclass(frozen=True)
class OrderLine:
    """A purchased line as recorded by the backend."""

    name: str
    quantity: int
    unit_price: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "quantity": self.quantity,
            "unit_price": str(self.unit_price),
        }


@dataclass(frozen=True)
class OrderPayment:
    method: str
    transaction_id: str


@dataclass(frozen=True)
class Order:
    """Authoritative order record.

    Attributes:
        order_number: Customer-facing order number, e.g. ``ORD-000042``.
        total: Amount charged in major units.
        currency: ISO 4217 code.
        items: Purchased lines.
        payment: Provider method and transaction id.
    """

    order_number: str
    total: Decimal
    currency: str
    items: tuple[OrderLine, ...]
    payment: OrderPayment

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "Order":
        """Parse an order service response.

        Expected shape::

            {"order": {"orderNumber", "total", "currency", "items": [...]},
             "payment": {"method", "transactionId"}}

        Raises:
            MalformedOrderError: If a required field is missing or invalid.
        """
        if not isinstance(data, dict):
            raise MalformedOrderError("response is not an object")
        order = data.get("order")
        payment = data.get("payment")
        if not isinstance(order, dict):
            raise MalformedOrderError("missing 'order'")
        if not isinstance(payment, dict):
            raise MalformedOrderError("missing 'payment'")

        order_number = order.get("orderNumber")
        if not order_number:
            raise MalformedOrderError("missing 'order.orderNumber'")
        currency = order.get("currency")
        if not currency:
            raise MalformedOrderError("missing 'order.currency'")

        try:
            total = to_decimal(order.get("total"))
            lines = tuple(
                OrderLine(
                    name=str(item["name"]),
                    quantity=int(item["quantity"]),
                    unit_price=to_decimal(item.get("unitPrice", item.get("price"))),
                )
                for item in order.get("items") or []
            )
        except (KeyError, TypeError, ValueError, ArithmeticError) as e:
            raise MalformedOrderError(f"invalid order field: {e}") from e

        return cls(
            order_number=str(order_number),
            total=total,
            currency=str(currency).upper(),
            items=lines,
            payment=OrderPayment(
                method=str(payment.get("method") or "unknown"),
                transaction_id=str(payment.get("transactionId") or ""),
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "order_number": self.order_number,
            "total": str(self.total),
            "currency": self.currency,
            "items": [line.to_dict() for line in self.items],
            "payment": {
                "method": self.payment.method,
                "transaction_id": self.payment.transaction_id,
            },
        }


# ============================================================================
# Checkout Session Aggregate
# ============================================================================


@dataclass(frozen=True)
class TransitionRecord:
    """Entry in a session's transition history."""

    at: datetime
    from_status: CheckoutStatus
    to_status: CheckoutStatus
    reason: str | None = None


def _new_checkout_id() -> str:
    return f"chk_{uuid4().hex}"


@dataclass(kw_only=True)
class CheckoutSession(AggregateRoot):
    """One checkout attempt in one browser tab.

    Attributes:
        status: Current state machine state.
        session_id: Provider-side session or order id, once initiated.
        selected_provider: Chosen payment integration.
        reference: Reference token being (or to be) reconciled.
        outcome: Terminal reconciliation outcome, once reached.
        failure_reason: Reason for Cancelled/Failed/ConfigUnavailable.
    """

    status: CheckoutStatus = CheckoutStatus.IDLE
    session_id: str | None = None
    selected_provider: ProviderKind | None = None
    reference: PaymentReference | None = None
    outcome: "ReconciliationOutcome | None" = None
    failure_reason: str | None = None
    history: list[TransitionRecord] = field(default_factory=list, compare=False)

    @classmethod
    def create(cls) -> Self:
        """Start a new session at ``Idle``."""
        return cls(id=_new_checkout_id())

    @classmethod
    def fresh_attempt(cls, provider: ProviderKind) -> Self:
        """Start a new attempt directly at ``ProviderSelected``.

        Nothing from a previous attempt is carried over.
        """
        return cls(
            id=_new_checkout_id(),
            status=CheckoutStatus.PROVIDER_SELECTED,
            selected_provider=provider,
        )

    @classmethod
    def from_redirect_return(cls, reference: PaymentReference) -> Self:
        """Rebuild a session after a full page reload from the return URL."""
        return cls(
            id=_new_checkout_id(),
            status=CheckoutStatus.AWAITING_REDIRECT_RETURN,
            selected_provider=ProviderKind.REDIRECT,
            session_id=reference.token,
            reference=reference,
        )

    # -------------------------------------------------------------------------
    # State Transitions
    # -------------------------------------------------------------------------

    def _transition(self, target: CheckoutStatus, reason: str | None = None) -> None:
        validate_checkout_transition(self.id, self.status, target)
        previous = self.status
        self.status = target
        self.history.append(
            TransitionRecord(at=utcnow(), from_status=previous, to_status=target, reason=reason)
        )
        self._touch()
        self._record_event(
            CheckoutStatusChanged(
                aggregate_id=self.id,
                from_status=previous.value,
                to_status=target.value,
                provider=self.selected_provider.value if self.selected_provider else None,
                details={"reason": reason} if reason else {},
            )
        )

    def start_config_loading(self) -> None:
        self._transition(CheckoutStatus.CONFIG_LOADING)

    def config_ready(self) -> None:
        self._transition(CheckoutStatus.CONFIG_READY)

    def config_unavailable(self, reason: str) -> None:
        self.failure_reason = reason
        self._transition(CheckoutStatus.CONFIG_UNAVAILABLE, reason=reason)

    def select_provider(self, provider: ProviderKind) -> None:
        self._transition(CheckoutStatus.PROVIDER_SELECTED)
        self.selected_provider = provider

    def start_initiation(self) -> None:
        self._transition(CheckoutStatus.INITIATING)

    def await_redirect_return(self, session_id: str | None) -> None:
        self.session_id = session_id
        self._transition(CheckoutStatus.AWAITING_REDIRECT_RETURN)

    def await_widget_callback(self, session_id: str) -> None:
        self.session_id = session_id
        self._transition(CheckoutStatus.AWAITING_WIDGET_CALLBACK)

    def begin_reconciliation(self, reference: PaymentReference) -> None:
        """Enter ``Reconciling`` for a reference.

        The transition happens before any lookup is awaited, so a second
        trigger for the same session fails the transition check.
        """
        self._transition(CheckoutStatus.RECONCILING)
        self.reference = reference

    def settle(self, outcome: "ReconciliationOutcome") -> None:
        """Record a reconciliation outcome and move to its terminal state."""
        reason = getattr(outcome, "reason", None)
        self._transition(outcome.status, reason=reason)
        self.outcome = outcome
        if outcome.status in (CheckoutStatus.CANCELLED, CheckoutStatus.FAILED):
            self.failure_reason = reason or outcome.status.value

    def abort(self, outcome: "ReconciliationOutcome") -> None:
        """Short-circuit to Cancelled or Failed without reconciling."""
        if outcome.status not in (CheckoutStatus.CANCELLED, CheckoutStatus.FAILED):
            raise ValueError(f"Cannot abort with outcome '{outcome.kind.value}'")
        self.settle(outcome)

    @property
    def reference_token(self) -> str | None:
        return self.reference.token if self.reference else None
