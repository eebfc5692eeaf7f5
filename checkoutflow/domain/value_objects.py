"""Value objects for the checkout domain.

Immutable inputs and derived values: cart lines, customer details, the
loaded billing configuration, computed totals, and the payment reference
that crosses the provider boundary.
"""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Self

from checkoutflow.domain.base import ValueObject
from checkoutflow.domain.state_machines import ProviderKind

CENT = Decimal("0.01")


def quantize_money(amount: Decimal) -> Decimal:
    """Round a currency amount to 2 places, half-up.

    Args:
        amount: Amount in major units.

    Returns:
        Amount quantized to cents.
    """
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def to_decimal(value: Any) -> Decimal:
    """Convert a wire value (str, int, float, Decimal) into a finite Decimal.

    Floats go through ``str`` so that ``500.1`` stays ``Decimal("500.1")``.

    Raises:
        ValueError: If the value is not numeric, or is NaN or infinite.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Not a numeric amount: {value!r}")
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value))
        except InvalidOperation as e:
            raise ValueError(f"Not a numeric amount: {value!r}") from e
    if not amount.is_finite():
        raise ValueError(f"Not a finite amount: {value!r}")
    return amount


# ============================================================================
# Cart
# ============================================================================


@dataclass(frozen=True)
class CartItem(ValueObject):
    """A line in the customer's cart.

    Owned by the cart collaborator; read-only here. Quantity and price
    positivity is enforced by the totals calculator, not at construction,
    so that an invalid cart surfaces as ``InvalidCartError``.

    Attributes:
        id: Cart line identifier.
        name: Display name.
        unit_price: Price per unit in major currency units.
        quantity: Number of units.
        product_id: Catalog product, when the line maps to one.
    """

    id: str
    name: str
    unit_price: Decimal
    quantity: int
    product_id: int | None = None

    @property
    def line_total(self) -> Decimal:
        """Exact line amount (``unit_price * quantity``)."""
        return self.unit_price * self.quantity

    def to_payload(self) -> dict[str, Any]:
        """Serialize in the shape the payments backend expects."""
        return {
            "id": self.id,
            "productId": self.product_id,
            "name": self.name,
            "price": float(self.unit_price),
            "quantity": self.quantity,
        }


@dataclass(frozen=True)
class CustomerInfo(ValueObject):
    """Customer details collected before a provider is initiated."""

    email: str
    name: str
    address: str = ""
    city: str = ""
    state: str = ""
    postcode: str = ""
    country: str = "Australia"

    def to_payload(self) -> dict[str, str]:
        return {
            "email": self.email,
            "name": self.name,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "postcode": self.postcode,
            "country": self.country,
        }


@dataclass(frozen=True)
class CartSnapshot(ValueObject):
    """Immutable view of the cart handed to a provider at initiation."""

    items: tuple[CartItem, ...]
    currency: str
    customer: CustomerInfo | None = None

    def items_payload(self) -> list[dict[str, Any]]:
        return [item.to_payload() for item in self.items]


# ============================================================================
# Billing Settings
# ============================================================================


@dataclass(frozen=True)
class BillingSettings(ValueObject):
    """Public billing configuration for one checkout attempt.

    Attributes:
        tax_rate_percent: Tax rate, e.g. ``Decimal("10")`` for 10%.
        currency_code: ISO 4217 code, upper case.
        redirect_provider_public_key: Hosted-checkout publishable key.
        widget_provider_client_id: Embedded widget client id.
    """

    tax_rate_percent: Decimal
    currency_code: str
    redirect_provider_public_key: str | None = None
    widget_provider_client_id: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "currency_code", self.currency_code.upper())

    @property
    def enabled_providers(self) -> list[ProviderKind]:
        """Providers whose credentials are present, in display order."""
        providers = []
        if self.redirect_provider_public_key:
            providers.append(ProviderKind.REDIRECT)
        if self.widget_provider_client_id:
            providers.append(ProviderKind.WIDGET)
        return providers

    @property
    def has_any_provider(self) -> bool:
        return bool(self.enabled_providers)


# ============================================================================
# Totals
# ============================================================================


@dataclass(frozen=True)
class Totals(ValueObject):
    """Derived checkout amounts; never persisted.

    Invariant: ``total == subtotal + tax``.
    """

    subtotal: Decimal
    tax: Decimal
    total: Decimal

    def to_dict(self) -> dict[str, str]:
        return {
            "subtotal": str(self.subtotal),
            "tax": str(self.tax),
            "total": str(self.total),
        }


# ============================================================================
# Payment Reference
# ============================================================================


class ReferenceSignal(str, Enum):
    """What the provider reported alongside a reference."""

    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DECLINED = "declined"
    ERRORED = "errored"


@dataclass(frozen=True)
class PaymentReference(ValueObject):
    """Provider-issued token correlating a payment attempt with an order.

    This is the only state that survives a redirect round trip.

    Attributes:
        token: Opaque reference, absent when the provider returned none.
        provider: Which integration issued it.
        signal: Provider-side status accompanying the token.
        reason: Provider-supplied detail for declined/errored signals.
    """

    token: str | None
    provider: ProviderKind
    signal: ReferenceSignal = ReferenceSignal.COMPLETED
    reason: str | None = None
    amount_charged: Decimal | None = field(default=None, compare=False)

    @classmethod
    def completed(
        cls,
        token: str,
        provider: ProviderKind,
        amount_charged: Decimal | None = None,
    ) -> Self:
        return cls(
            token=token,
            provider=provider,
            signal=ReferenceSignal.COMPLETED,
            amount_charged=amount_charged,
        )

    @classmethod
    def cancelled(cls, provider: ProviderKind, token: str | None = None) -> Self:
        return cls(token=token, provider=provider, signal=ReferenceSignal.CANCELLED)

    @classmethod
    def declined(
        cls, provider: ProviderKind, reason: str, token: str | None = None
    ) -> Self:
        return cls(
            token=token,
            provider=provider,
            signal=ReferenceSignal.DECLINED,
            reason=reason,
        )

    @property
    def is_present(self) -> bool:
        return bool(self.token and self.token.strip())
