"""Billing configuration loading.

Settings are fetched fresh on every checkout entry; nothing is cached
between attempts.
"""

from decimal import Decimal
from typing import Any

import structlog

from checkoutflow.domain.exceptions import ConfigUnavailableError
from checkoutflow.domain.value_objects import BillingSettings, to_decimal
from checkoutflow.infrastructure.backend_client import BackendClientError, ContentApiClient

logger = structlog.get_logger()

DEFAULT_CURRENCY = "AUD"
DEFAULT_TAX_RATE = Decimal("10")


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_billing_settings(data: dict[str, Any]) -> BillingSettings:
    """Parse the content API billing document.

    Wire shape: ``{stripePublishableKey, paypalClientId, currencyCode,
    taxRate}``. Empty strings mean "not configured". A missing currency
    defaults to AUD and a missing tax rate to 10%.

    Raises:
        ConfigUnavailableError: If the currency or tax rate is invalid.
    """
    currency = str(data.get("currencyCode") or DEFAULT_CURRENCY).strip().upper()
    if len(currency) != 3 or not currency.isalpha():
        raise ConfigUnavailableError(f"invalid currency code {currency!r}")

    raw_rate = data.get("taxRate")
    if raw_rate is None or raw_rate == "":
        tax_rate = DEFAULT_TAX_RATE
    else:
        try:
            tax_rate = to_decimal(raw_rate)
        except ValueError as e:
            raise ConfigUnavailableError(f"invalid tax rate {raw_rate!r}") from e
    if not Decimal("0") <= tax_rate <= Decimal("100"):
        raise ConfigUnavailableError(f"tax rate out of range: {tax_rate}")

    return BillingSettings(
        tax_rate_percent=tax_rate,
        currency_code=currency,
        redirect_provider_public_key=_optional_str(data.get("stripePublishableKey")),
        widget_provider_client_id=_optional_str(data.get("paypalClientId")),
    )


class BillingConfigLoader:
    """Loads ``BillingSettings`` from the content API."""

    def __init__(self, content: ContentApiClient) -> None:
        self.content = content

    async def load(self) -> BillingSettings:
        """Fetch and validate billing settings.

        Read-only and idempotent. An empty provider set is returned as-is;
        the controller decides that it means "payment unavailable".

        Raises:
            ConfigUnavailableError: If the settings cannot be fetched or parsed.
        """
        try:
            data = await self.content.get_billing_settings()
        except BackendClientError as e:
            logger.warning(
                "Billing settings unavailable",
                error=e.message,
                status_code=e.status_code,
            )
            raise ConfigUnavailableError(e.message) from e

        billing = parse_billing_settings(data)
        logger.debug(
            "Billing settings loaded",
            currency=billing.currency_code,
            tax_rate=str(billing.tax_rate_percent),
            providers=[p.value for p in billing.enabled_providers],
        )
        return billing
