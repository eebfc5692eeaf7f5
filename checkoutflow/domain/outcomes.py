"""Reconciliation outcomes and their user-facing views.

A ``ReconciliationOutcome`` is the terminal artifact of a checkout: it drives
what the customer sees and is the only thing reported to analytics.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar

from checkoutflow.domain.base import ValueObject
from checkoutflow.domain.entities import Order
from checkoutflow.domain.state_machines import CheckoutStatus

# Degraded reasons
LOOKUP_FAILED = "lookup_failed"
ORDER_PENDING = "order_pending"
ORDER_MALFORMED = "order_malformed"


class OutcomeKind(str, Enum):
    CONFIRMED = "confirmed"
    DEGRADED = "degraded"
    CANCELLED = "cancelled"
    FAILED = "failed"


# ============================================================================
# Outcome Variants
# ============================================================================


@dataclass(frozen=True)
class ReconciliationOutcome(ValueObject):
    """Base of the four outcome variants."""

    kind: ClassVar[OutcomeKind]

    @property
    def status(self) -> CheckoutStatus:
        """Checkout state this outcome settles the session into."""
        return CheckoutStatus(self.kind.value)

    @property
    def reference(self) -> str | None:
        return None

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "reference": self.reference}


@dataclass(frozen=True)
class Confirmed(ReconciliationOutcome):
    """The backend returned the authoritative order."""

    kind: ClassVar[OutcomeKind] = OutcomeKind.CONFIRMED

    order: Order

    @property
    def reference(self) -> str | None:
        return self.order.payment.transaction_id or self.order.order_number

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["order"] = self.order.to_dict()
        return data


@dataclass(frozen=True)
class Degraded(ReconciliationOutcome):
    """Payment likely succeeded but the order could not be confirmed.

    ``partial_reference`` is always exposed so the customer can quote it to
    support or trigger a manual retry.
    """

    kind: ClassVar[OutcomeKind] = OutcomeKind.DEGRADED

    reason: str
    partial_reference: str

    @property
    def reference(self) -> str | None:
        return self.partial_reference

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["reason"] = self.reason
        return data


@dataclass(frozen=True)
class Cancelled(ReconciliationOutcome):
    """No charge was attempted."""

    kind: ClassVar[OutcomeKind] = OutcomeKind.CANCELLED

    partial_reference: str | None = None

    @property
    def reference(self) -> str | None:
        return self.partial_reference


@dataclass(frozen=True)
class Failed(ReconciliationOutcome):
    """The provider declined or errored before completion."""

    kind: ClassVar[OutcomeKind] = OutcomeKind.FAILED

    reason: str
    partial_reference: str | None = None

    @property
    def reference(self) -> str | None:
        return self.partial_reference

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["reason"] = self.reason
        return data


# ============================================================================
# Terminal Views
# ============================================================================


class RecoveryAction(str, Enum):
    """What the customer can do next from a terminal state."""

    RETURN_HOME = "return_home"
    RETURN_TO_CART = "return_to_cart"
    RETRY_PAYMENT = "retry_payment"
    RETRY_CONFIRMATION = "retry_confirmation"
    CONTACT_SUPPORT = "contact_support"


_DECLINE_MESSAGES = {
    "card_declined": "Your card was declined.",
    "insufficient_funds": "Your card has insufficient funds.",
    "expired_card": "Your card has expired.",
    "incorrect_cvc": "Your card's security code is incorrect.",
    "processing_error": "The payment provider could not process your card.",
}


@dataclass(frozen=True)
class TerminalView(ValueObject):
    """Distinct message and recovery actions for one terminal state."""

    status: CheckoutStatus
    title: str
    message: str
    recovery_actions: tuple[RecoveryAction, ...]
    reference: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "title": self.title,
            "message": self.message,
            "recovery_actions": [a.value for a in self.recovery_actions],
            "reference": self.reference,
        }


def config_unavailable_view() -> TerminalView:
    return TerminalView(
        status=CheckoutStatus.CONFIG_UNAVAILABLE,
        title="Payment unavailable",
        message=(
            "Payment processing is not configured right now. "
            "Your cart has been kept, please try again later."
        ),
        recovery_actions=(RecoveryAction.RETURN_TO_CART,),
    )


def view_for_outcome(outcome: ReconciliationOutcome) -> TerminalView:
    """Build the customer-facing view of an outcome.

    Degraded reads as a probable success pointing at support,
    never as a failure: the customer may already have been charged.
    """
    if isinstance(outcome, Confirmed):
        return TerminalView(
            status=CheckoutStatus.CONFIRMED,
            title="Payment successful",
            message=(
                f"Thank you for your order {outcome.order.order_number}. "
                "We've received your payment and will begin processing your order shortly."
            ),
            recovery_actions=(RecoveryAction.RETURN_HOME,),
            reference=outcome.order.order_number,
        )
    if isinstance(outcome, Degraded):
        return TerminalView(
            status=CheckoutStatus.DEGRADED,
            title="Payment received, confirmation pending",
            message=(
                "Your payment was most likely successful, but we could not load your "
                "order confirmation yet. Please do not pay again. Contact support and "
                f"quote reference {outcome.partial_reference} so we can confirm your order."
            ),
            recovery_actions=(
                RecoveryAction.CONTACT_SUPPORT,
                RecoveryAction.RETRY_CONFIRMATION,
            ),
            reference=outcome.partial_reference,
        )
    if isinstance(outcome, Cancelled):
        return TerminalView(
            status=CheckoutStatus.CANCELLED,
            title="Checkout cancelled",
            message=(
                "Your checkout was cancelled. No payment has been processed and no "
                "charges have been made. Your items are still in your cart."
            ),
            recovery_actions=(
                RecoveryAction.RETRY_PAYMENT,
                RecoveryAction.RETURN_TO_CART,
            ),
            reference=outcome.partial_reference,
        )
    if isinstance(outcome, Failed):
        detail = _DECLINE_MESSAGES.get(
            outcome.reason, "The payment provider declined this payment."
        )
        return TerminalView(
            status=CheckoutStatus.FAILED,
            title="Payment declined",
            message=(
                f"{detail} Please check your payment details or choose another "
                "payment method, then confirm a new payment."
            ),
            recovery_actions=(
                RecoveryAction.RETRY_PAYMENT,
                RecoveryAction.RETURN_TO_CART,
            ),
            reference=outcome.partial_reference,
        )
    raise TypeError(f"Unknown outcome type: {type(outcome).__name__}")
