"""Hosted-checkout (redirect) provider adapter."""

from typing import ClassVar
from urllib.parse import parse_qs, urlsplit

from checkoutflow.domain.state_machines import ProviderKind
from checkoutflow.domain.value_objects import (
    CartSnapshot,
    PaymentReference,
    ReferenceSignal,
    Totals,
)
from checkoutflow.infrastructure.backend_client import BackendClientError, PaymentsApiClient
from checkoutflow.infrastructure.providers.base import ProviderAdapter, Redirecting

SUCCESS_PATH = "/order-confirmation"
CANCEL_PATH = "/checkout-cancelled"
SESSION_PLACEHOLDER = "{CHECKOUT_SESSION_ID}"

# redirect_status values meaning the charge was attempted and rejected
_DECLINED_STATUSES = {"failed", "requires_payment_method"}


class RedirectAdapter(ProviderAdapter):
    """Sends the browser to a hosted checkout page.

    Completion is only observable on a later page load whose URL carries the
    provider session id; see ``parse_return_url``.
    """

    kind: ClassVar[ProviderKind] = ProviderKind.REDIRECT

    def __init__(
        self,
        payments: PaymentsApiClient,
        public_key: str,
        public_base_url: str,
    ) -> None:
        super().__init__(payments)
        self.public_key = public_key
        self.public_base_url = public_base_url.rstrip("/")

    @property
    def success_url(self) -> str:
        return f"{self.public_base_url}{SUCCESS_PATH}?session_id={SESSION_PLACEHOLDER}"

    @property
    def cancel_url(self) -> str:
        return f"{self.public_base_url}{CANCEL_PATH}"

    async def initiate(self, totals: Totals, cart: CartSnapshot) -> Redirecting:
        payload = self._base_payload(totals, cart)
        payload["successUrl"] = self.success_url
        payload["cancelUrl"] = self.cancel_url

        try:
            data = await self.payments.create_checkout_session(payload)
        except BackendClientError as e:
            raise self._unreachable(e) from e

        url = data.get("url")
        if not isinstance(url, str) or not url.startswith(("https://", "http://")):
            raise self._unreachable("checkout session response has no redirect URL")

        return Redirecting(external_url=url, session_id=data.get("id"))


def parse_return_url(url: str) -> PaymentReference | None:
    """Recover the payment reference from a post-redirect entry URL.

    Only the URL survives the redirect, so this is the whole resumable state:

    - the cancel path yields a cancelled reference;
    - a ``session_id`` with a failed ``redirect_status`` yields a declined
      reference;
    - a ``session_id`` with an ``error`` parameter yields an errored reference;
    - a ``session_id`` alone yields a completed reference;
    - anything else (no token, or the unsubstituted placeholder) is a fresh
      entry and yields None, whatever other query parameters are present.

    Args:
        url: Full or path-only URL the app was loaded with.

    Returns:
        The reference, or None for a fresh entry.
    """
    parts = urlsplit(url)
    query = parse_qs(parts.query)
    token = (query.get("session_id") or [""])[0].strip()
    if token == SESSION_PLACEHOLDER:
        token = ""

    if parts.path.rstrip("/").endswith(CANCEL_PATH):
        return PaymentReference.cancelled(ProviderKind.REDIRECT, token=token or None)

    if not token:
        return None

    error = (query.get("error") or [""])[0].strip()
    if error:
        return PaymentReference(
            token=token,
            provider=ProviderKind.REDIRECT,
            signal=ReferenceSignal.ERRORED,
            reason=error,
        )

    redirect_status = (query.get("redirect_status") or [""])[0].strip().lower()
    if redirect_status in _DECLINED_STATUSES:
        return PaymentReference.declined(
            ProviderKind.REDIRECT, reason=redirect_status, token=token
        )

    return PaymentReference.completed(token, ProviderKind.REDIRECT)
