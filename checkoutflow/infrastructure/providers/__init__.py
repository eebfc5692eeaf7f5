"""Payment provider adapters."""

from checkoutflow.domain.state_machines import ProviderKind
from checkoutflow.domain.value_objects import BillingSettings
from checkoutflow.infrastructure.backend_client import PaymentsApiClient
from checkoutflow.infrastructure.providers.base import (
    InitiationResult,
    ProviderAdapter,
    Redirecting,
    WidgetHandle,
    WidgetReady,
)
from checkoutflow.infrastructure.providers.redirect import RedirectAdapter, parse_return_url
from checkoutflow.infrastructure.providers.widget import (
    WidgetAdapter,
    WidgetErrorPayload,
    WidgetSuccessPayload,
    classify_error,
    parse_callback,
)


def build_adapters(
    billing: BillingSettings,
    payments: PaymentsApiClient,
    public_base_url: str,
) -> dict[ProviderKind, ProviderAdapter]:
    """Build the adapters whose credentials are present in ``billing``."""
    adapters: dict[ProviderKind, ProviderAdapter] = {}
    if billing.redirect_provider_public_key:
        adapters[ProviderKind.REDIRECT] = RedirectAdapter(
            payments, billing.redirect_provider_public_key, public_base_url
        )
    if billing.widget_provider_client_id:
        adapters[ProviderKind.WIDGET] = WidgetAdapter(
            payments, billing.widget_provider_client_id
        )
    return adapters


__all__ = [
    "InitiationResult",
    "ProviderAdapter",
    "RedirectAdapter",
    "Redirecting",
    "WidgetAdapter",
    "WidgetErrorPayload",
    "WidgetHandle",
    "WidgetReady",
    "WidgetSuccessPayload",
    "build_adapters",
    "classify_error",
    "parse_callback",
    "parse_return_url",
]
