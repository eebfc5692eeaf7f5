"""API schemas for the checkout service.

Pydantic models for request/response validation and serialization.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from checkoutflow.domain.state_machines import CheckoutStatus, ProviderKind
from checkoutflow.domain.value_objects import CartItem, CustomerInfo

MAX_UNIT_PRICE = Decimal("1e12")


# ============================================================================
# Common Schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Standard error response.

    All API errors follow this format for consistency.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] = Field(
        default_factory=dict, description="Additional error details"
    )
    request_id: str | None = Field(
        default=None, description="Request ID for correlation"
    )


class TotalsSchema(BaseModel):
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    currency: str


# ============================================================================
# Request Schemas
# ============================================================================


class CartItemRequest(BaseModel):
    """Cart line supplied on checkout entry."""

    id: str = Field(..., description="Cart line ID")
    name: str = Field(..., description="Display name")
    unit_price: Decimal = Field(
        ..., lt=MAX_UNIT_PRICE, description="Unit price in major currency units"
    )
    quantity: int = Field(..., description="Quantity")
    product_id: int | None = Field(default=None, description="Catalog product ID")

    def to_domain(self) -> CartItem:
        return CartItem(
            id=self.id,
            name=self.name,
            unit_price=self.unit_price,
            quantity=self.quantity,
            product_id=self.product_id,
        )


class CheckoutCreateRequest(BaseModel):
    """Request to enter checkout with the current cart."""

    items: list[CartItemRequest] = Field(..., description="Cart lines")


class ProviderSelectRequest(BaseModel):
    provider: ProviderKind = Field(..., description="Payment provider to use")


class CustomerInfoRequest(BaseModel):
    """Customer details collected on the checkout form."""

    email: str = Field(..., description="Customer email")
    name: str = Field(..., description="Customer full name")
    address: str = ""
    city: str = ""
    state: str = ""
    postcode: str = ""
    country: str = "Australia"

    def to_domain(self) -> CustomerInfo:
        return CustomerInfo(**self.model_dump())


class InitiateRequest(BaseModel):
    customer: CustomerInfoRequest


class WidgetCallbackRequest(BaseModel):
    """Callback reported by the embedded widget.

    Success carries ``clientReference`` (and optionally ``amountCharged``);
    errors carry ``code`` and ``message``.
    """

    model_config = ConfigDict(populate_by_name=True)

    client_reference: str | None = Field(default=None, alias="clientReference")
    amount_charged: Decimal | None = Field(default=None, alias="amountCharged")
    code: str | None = None
    message: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class RestartRequest(BaseModel):
    provider: ProviderKind | None = Field(
        default=None, description="Provider for the new attempt; defaults to the previous one"
    )


class ResumeRequest(BaseModel):
    """The full URL the app was loaded with after a redirect."""

    url: str = Field(..., description="Entry URL including its query string")


# ============================================================================
# Response Schemas
# ============================================================================


class InitiationSchema(BaseModel):
    """What the client must do next to complete payment."""

    type: str = Field(..., description="redirecting or widget_ready")
    external_url: str | None = None
    order_id: str | None = None
    client_id: str | None = None
    currency: str | None = None
    amount: Decimal | None = None


class TerminalViewSchema(BaseModel):
    status: CheckoutStatus
    title: str
    message: str
    recovery_actions: list[str]
    reference: str | None = None


class TransitionSchema(BaseModel):
    at: datetime
    from_status: CheckoutStatus
    to_status: CheckoutStatus
    reason: str | None = None


class CheckoutResponse(BaseModel):
    """Checkout session response."""

    id: str = Field(..., description="Checkout ID")
    status: CheckoutStatus = Field(..., description="Current status")
    selected_provider: ProviderKind | None = None
    available_providers: list[ProviderKind] = Field(default_factory=list)
    session_id: str | None = Field(default=None, description="Provider session ID")
    reference: str | None = Field(default=None, description="Payment reference being reconciled")
    totals: TotalsSchema | None = None
    initiation: InitiationSchema | None = None
    outcome: dict[str, Any] | None = None
    view: TerminalViewSchema | None = None
    failure_reason: str | None = None
    history: list[TransitionSchema] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
