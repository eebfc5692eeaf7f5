"""Domain exceptions.

Every failure the checkout flow can surface is a ``DomainError``. Adapter
and network failures are translated into this taxonomy at the component
boundary so that nothing lower-level reaches the API layer.
"""

from typing import Any


class DomainError(Exception):
    """Base class for all domain exceptions."""

    error_code: str = "DOMAIN_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize domain error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ============================================================================
# State Machine Errors
# ============================================================================


class InvalidStateTransitionError(DomainError):
    """Raised when the checkout is asked to move to a state it cannot reach."""

    error_code = "INVALID_STATE"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_state: str,
        target_state: str,
        allowed_transitions: list[str] | None = None,
    ) -> None:
        allowed = allowed_transitions or []
        message = (
            f"Cannot transition {entity_type}({entity_id}) "
            f"from '{current_state}' to '{target_state}'. "
            f"Allowed transitions: {allowed}"
        )
        super().__init__(
            message,
            details={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "current_state": current_state,
                "target_state": target_state,
                "allowed_transitions": allowed,
            },
        )


# ============================================================================
# Configuration and Cart Errors
# ============================================================================


class ConfigUnavailableError(DomainError):
    """Billing configuration could not be loaded or enables no provider."""

    error_code = "CONFIG_UNAVAILABLE"

    def __init__(self, reason: str) -> None:
        super().__init__(
            f"Payment configuration unavailable: {reason}",
            details={"reason": reason},
        )
        self.reason = reason


class InvalidCartError(DomainError):
    """Cart violates a checkout precondition (empty, bad quantity or price)."""

    error_code = "INVALID_CART"

    def __init__(self, reason: str, item_id: str | None = None) -> None:
        details: dict[str, Any] = {"reason": reason}
        if item_id is not None:
            details["item_id"] = item_id
        super().__init__(f"Invalid cart: {reason}", details=details)
        self.reason = reason
        self.item_id = item_id


class InvalidCustomerError(DomainError):
    """Customer details required for payment are missing or malformed."""

    error_code = "INVALID_CUSTOMER"

    def __init__(self, field_name: str, reason: str) -> None:
        super().__init__(
            f"Invalid customer {field_name}: {reason}",
            details={"field": field_name, "reason": reason},
        )


class ProviderNotAvailableError(DomainError):
    """The requested payment provider is not configured for this checkout."""

    error_code = "PROVIDER_NOT_AVAILABLE"

    def __init__(self, provider: str, available: list[str]) -> None:
        super().__init__(
            f"Payment provider '{provider}' is not available",
            details={"provider": provider, "available": available},
        )


# ============================================================================
# Provider Errors
# ============================================================================


class ProviderError(DomainError):
    """Base class for failures signalled by a payment provider adapter."""

    error_code = "PROVIDER_ERROR"

    def __init__(
        self,
        provider: str,
        message: str,
        code: str | None = None,
    ) -> None:
        super().__init__(message, details={"provider": provider, "code": code})
        self.provider = provider
        self.code = code


class ProviderUnreachableError(ProviderError):
    """Provider could not be reached or initialized. No charge was attempted."""

    error_code = "PROVIDER_UNREACHABLE"


class UserCancelledError(ProviderError):
    """The customer cancelled before any charge was attempted."""

    error_code = "USER_CANCELLED"


class ProviderDeclinedError(ProviderError):
    """A charge was attempted and rejected.

    Never retried without a fresh confirmation from the customer.
    """

    error_code = "PROVIDER_DECLINED"


# ============================================================================
# Order Errors
# ============================================================================


class MalformedOrderError(DomainError):
    """The order service answered with a record missing required fields."""

    error_code = "ORDER_MALFORMED"

    def __init__(self, reason: str) -> None:
        super().__init__(f"Malformed order record: {reason}", details={"reason": reason})
        self.reason = reason
