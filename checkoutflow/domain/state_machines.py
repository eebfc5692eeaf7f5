"""Checkout session state machine.

Deterministic table of the states a checkout session moves through, from
entry to a terminal reconciliation outcome.
"""

from enum import Enum

from checkoutflow.domain.exceptions import InvalidStateTransitionError


class ProviderKind(str, Enum):
    """Payment provider integrations."""

    REDIRECT = "redirect"
    WIDGET = "widget"


class CheckoutStatus(str, Enum):
    """Checkout session lifecycle states.

    State diagram:
        IDLE
          │ enter
          ▼
        CONFIG_LOADING ─────────────────────────────► CONFIG_UNAVAILABLE
          │
          ▼
        CONFIG_READY
          │ select provider
          ▼
        PROVIDER_SELECTED ◄──────────── restart ───── CANCELLED / FAILED
          │ initiate
          ▼
        INITIATING ──────────────┐
          │                      │
          ▼                      ▼
        AWAITING_REDIRECT     AWAITING_WIDGET
        _RETURN               _CALLBACK ──────────► CANCELLED / FAILED
          │                      │
          └──────────┬───────────┘
                     ▼
                RECONCILING ◄──── manual retry ──── DEGRADED
                     │
                     ▼
        CONFIRMED | DEGRADED | CANCELLED | FAILED
    """

    IDLE = "idle"
    CONFIG_LOADING = "config_loading"
    CONFIG_READY = "config_ready"
    CONFIG_UNAVAILABLE = "config_unavailable"
    PROVIDER_SELECTED = "provider_selected"
    INITIATING = "initiating"
    AWAITING_REDIRECT_RETURN = "awaiting_redirect_return"
    AWAITING_WIDGET_CALLBACK = "awaiting_widget_callback"
    RECONCILING = "reconciling"
    CONFIRMED = "confirmed"
    DEGRADED = "degraded"
    CANCELLED = "cancelled"
    FAILED = "failed"

    def can_transition_to(self, target: "CheckoutStatus") -> bool:
        """Check if transition to target state is valid.

        Args:
            target: Target state to transition to.

        Returns:
            True if transition is valid.
        """
        return target in _CHECKOUT_TRANSITIONS.get(self, set())

    def allowed_transitions(self) -> list["CheckoutStatus"]:
        """Valid target states, sorted by name for stable messages."""
        return sorted(_CHECKOUT_TRANSITIONS.get(self, set()), key=lambda s: s.value)

    def is_terminal(self) -> bool:
        """Whether the session has reached an outcome the UI must render.

        Cancelled, Failed, and Degraded still accept explicit user actions
        (restart or manual retry) but no automatic progress.
        """
        return self in _TERMINAL

    def is_restartable(self) -> bool:
        """Whether a fresh attempt may be started from this state."""
        return self in {CheckoutStatus.CANCELLED, CheckoutStatus.FAILED}

    def is_awaiting_provider(self) -> bool:
        """Whether the session is suspended on an out-of-band provider signal."""
        return self in {
            CheckoutStatus.AWAITING_REDIRECT_RETURN,
            CheckoutStatus.AWAITING_WIDGET_CALLBACK,
        }


_TERMINAL = frozenset(
    {
        CheckoutStatus.CONFIG_UNAVAILABLE,
        CheckoutStatus.CONFIRMED,
        CheckoutStatus.DEGRADED,
        CheckoutStatus.CANCELLED,
        CheckoutStatus.FAILED,
    }
)

# Defined outside the enum to avoid Enum member restrictions
_CHECKOUT_TRANSITIONS: dict[CheckoutStatus, set[CheckoutStatus]] = {
    CheckoutStatus.IDLE: {CheckoutStatus.CONFIG_LOADING},
    CheckoutStatus.CONFIG_LOADING: {
        CheckoutStatus.CONFIG_READY,
        CheckoutStatus.CONFIG_UNAVAILABLE,
    },
    CheckoutStatus.CONFIG_READY: {CheckoutStatus.PROVIDER_SELECTED},
    CheckoutStatus.PROVIDER_SELECTED: {
        CheckoutStatus.PROVIDER_SELECTED,  # switch provider
        CheckoutStatus.INITIATING,
    },
    CheckoutStatus.INITIATING: {
        CheckoutStatus.AWAITING_REDIRECT_RETURN,
        CheckoutStatus.AWAITING_WIDGET_CALLBACK,
        CheckoutStatus.CANCELLED,
        CheckoutStatus.FAILED,
    },
    CheckoutStatus.AWAITING_REDIRECT_RETURN: {
        CheckoutStatus.RECONCILING,
        CheckoutStatus.CANCELLED,
    },
    CheckoutStatus.AWAITING_WIDGET_CALLBACK: {
        CheckoutStatus.RECONCILING,
        CheckoutStatus.CANCELLED,
        CheckoutStatus.FAILED,
    },
    CheckoutStatus.RECONCILING: {
        CheckoutStatus.CONFIRMED,
        CheckoutStatus.DEGRADED,
        CheckoutStatus.CANCELLED,
        CheckoutStatus.FAILED,
    },
    CheckoutStatus.DEGRADED: {CheckoutStatus.RECONCILING},  # manual retry only
    CheckoutStatus.CANCELLED: {CheckoutStatus.PROVIDER_SELECTED},
    CheckoutStatus.FAILED: {CheckoutStatus.PROVIDER_SELECTED},
    CheckoutStatus.CONFIRMED: set(),
    CheckoutStatus.CONFIG_UNAVAILABLE: set(),
}


def validate_checkout_transition(
    checkout_id: str,
    current_status: CheckoutStatus,
    target_status: CheckoutStatus,
) -> None:
    """Validate and raise if checkout state transition is invalid.

    Args:
        checkout_id: Checkout identifier for error message.
        current_status: Current checkout status.
        target_status: Target checkout status.

    Raises:
        InvalidStateTransitionError: If transition is not valid.
    """
    if not current_status.can_transition_to(target_status):
        raise InvalidStateTransitionError(
            entity_type="CheckoutSession",
            entity_id=checkout_id,
            current_state=current_status.value,
            target_state=target_status.value,
            allowed_transitions=[s.value for s in current_status.allowed_transitions()],
        )
