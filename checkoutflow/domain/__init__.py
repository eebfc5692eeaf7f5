"""Domain layer - value objects, state machine, entities, outcomes.

Example usage:
    from decimal import Decimal
    from checkoutflow.domain import CartItem, calculate_totals

    totals = calculate_totals(
        [CartItem(id="1", name="Logo Design", unit_price=Decimal("500.00"), quantity=1)],
        tax_rate_percent=Decimal("10"),
    )
    print(totals.total)  # 550.00
"""

from checkoutflow.domain.entities import CheckoutSession, Order, OrderLine, OrderPayment
from checkoutflow.domain.events import CheckoutOutcomeReported, CheckoutStatusChanged
from checkoutflow.domain.exceptions import (
    ConfigUnavailableError,
    DomainError,
    InvalidCartError,
    InvalidCustomerError,
    InvalidStateTransitionError,
    MalformedOrderError,
    ProviderDeclinedError,
    ProviderError,
    ProviderNotAvailableError,
    ProviderUnreachableError,
    UserCancelledError,
)
from checkoutflow.domain.outcomes import (
    Cancelled,
    Confirmed,
    Degraded,
    Failed,
    OutcomeKind,
    ReconciliationOutcome,
    RecoveryAction,
    TerminalView,
    view_for_outcome,
)
from checkoutflow.domain.state_machines import CheckoutStatus, ProviderKind
from checkoutflow.domain.totals import calculate_totals
from checkoutflow.domain.value_objects import (
    BillingSettings,
    CartItem,
    CartSnapshot,
    CustomerInfo,
    PaymentReference,
    ReferenceSignal,
    Totals,
)

__all__ = [
    "BillingSettings",
    "Cancelled",
    "CartItem",
    "CartSnapshot",
    "CheckoutOutcomeReported",
    "CheckoutSession",
    "CheckoutStatus",
    "CheckoutStatusChanged",
    "ConfigUnavailableError",
    "Confirmed",
    "CustomerInfo",
    "Degraded",
    "DomainError",
    "Failed",
    "InvalidCartError",
    "InvalidCustomerError",
    "InvalidStateTransitionError",
    "MalformedOrderError",
    "Order",
    "OrderLine",
    "OrderPayment",
    "OutcomeKind",
    "PaymentReference",
    "ProviderDeclinedError",
    "ProviderError",
    "ProviderKind",
    "ProviderNotAvailableError",
    "ProviderUnreachableError",
    "ReconciliationOutcome",
    "RecoveryAction",
    "ReferenceSignal",
    "TerminalView",
    "Totals",
    "UserCancelledError",
    "calculate_totals",
    "view_for_outcome",
]
