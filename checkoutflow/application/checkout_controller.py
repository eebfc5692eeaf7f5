"""Checkout session controller.

Drives one ``CheckoutSession`` through the checkout state machine:

1. Enter checkout: load billing settings, compute totals
2. Select a configured payment provider
3. Initiate payment through the provider adapter
4. Resume from a redirect return URL, or receive the widget callback
5. Reconcile the payment reference into a terminal outcome
6. Report the outcome to analytics

The controller never branches on provider identity; adapters are looked up
by ``ProviderKind`` and share one interface.
"""

from collections.abc import Callable, Iterable
from decimal import Decimal
from typing import Any

import structlog

from checkoutflow.application.billing_config import BillingConfigLoader
from checkoutflow.application.outcome_emitter import OutcomeEmitter
from checkoutflow.application.reconciler import ConfirmationReconciler
from checkoutflow.domain.entities import CheckoutSession
from checkoutflow.domain.events import CheckoutOutcomeReported, CheckoutStatusChanged
from checkoutflow.domain.exceptions import (
    ConfigUnavailableError,
    InvalidCartError,
    InvalidCustomerError,
    InvalidStateTransitionError,
    ProviderDeclinedError,
    ProviderError,
    ProviderNotAvailableError,
)
from checkoutflow.domain.outcomes import (
    LOOKUP_FAILED,
    Cancelled,
    Confirmed,
    Degraded,
    Failed,
    ReconciliationOutcome,
    TerminalView,
    config_unavailable_view,
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
    Totals,
)
from checkoutflow.infrastructure.backend_client import PaymentsApiClient
from checkoutflow.infrastructure.providers import (
    InitiationResult,
    ProviderAdapter,
    Redirecting,
    WidgetErrorPayload,
    WidgetSuccessPayload,
    build_adapters,
    classify_error,
    parse_callback,
    parse_return_url,
)

logger = structlog.get_logger()

AdapterFactory = Callable[
    [BillingSettings, PaymentsApiClient, str], dict[ProviderKind, ProviderAdapter]
]

ANALYTICS_ITEM_CATEGORY = "Service"


class CheckoutSessionController:
    """Owns the checkout state machine for one browser tab."""

    def __init__(
        self,
        config_loader: BillingConfigLoader,
        payments: PaymentsApiClient,
        reconciler: ConfirmationReconciler,
        emitter: OutcomeEmitter,
        public_base_url: str,
        adapter_factory: AdapterFactory = build_adapters,
    ) -> None:
        self.config_loader = config_loader
        self.payments = payments
        self.reconciler = reconciler
        self.emitter = emitter
        self.public_base_url = public_base_url
        self.adapter_factory = adapter_factory

        self.session = CheckoutSession.create()
        self.billing: BillingSettings | None = None
        self.cart_items: tuple[CartItem, ...] = ()
        self.totals: Totals | None = None
        self.adapters: dict[ProviderKind, ProviderAdapter] = {}
        self.initiation: InitiationResult | None = None

    @property
    def checkout_id(self) -> str:
        return self.session.id

    @property
    def status(self) -> CheckoutStatus:
        return self.session.status

    @property
    def available_providers(self) -> list[ProviderKind]:
        """Providers the customer may choose from right now."""
        if self.totals is None:
            return []
        if self.status not in (CheckoutStatus.CONFIG_READY, CheckoutStatus.PROVIDER_SELECTED):
            return []
        return list(self.adapters)

    # -------------------------------------------------------------------------
    # Entry
    # -------------------------------------------------------------------------

    async def enter(self, cart_items: Iterable[CartItem]) -> None:
        """Enter checkout with the given cart.

        Settles in ``ConfigReady`` or ``ConfigUnavailable``.

        Raises:
            InvalidCartError: If the cart is empty or has an invalid line.
                No provider is offered in that case.
        """
        items = tuple(cart_items)
        if not items:
            raise InvalidCartError("cart is empty")

        self.session.start_config_loading()
        self._log_transitions()

        try:
            billing = await self.config_loader.load()
        except ConfigUnavailableError as e:
            self._config_unavailable(e.reason)
            return

        if not billing.has_any_provider:
            self._config_unavailable("no payment provider configured")
            return

        # An invalid line fails entry before any provider is offered
        totals = calculate_totals(items, billing.tax_rate_percent)

        self.billing = billing
        self.totals = totals
        self.cart_items = items
        self.adapters = self.adapter_factory(billing, self.payments, self.public_base_url)
        self.session.config_ready()
        self._log_transitions()

        logger.info(
            "Checkout ready",
            checkout_id=self.checkout_id,
            currency=billing.currency_code,
            total=str(self.totals.total),
            providers=[p.value for p in self.adapters],
        )

    def _config_unavailable(self, reason: str) -> None:
        self.session.config_unavailable(reason)
        self._log_transitions()
        logger.warning("Payment unavailable", checkout_id=self.checkout_id, reason=reason)

    # -------------------------------------------------------------------------
    # Provider Selection and Initiation
    # -------------------------------------------------------------------------

    def select_provider(self, kind: ProviderKind) -> None:
        """Choose (or switch) the payment provider.

        Raises:
            InvalidCartError: If totals were never computed.
            ProviderNotAvailableError: If ``kind`` is not configured.
            InvalidStateTransitionError: Outside ConfigReady/ProviderSelected.
        """
        if kind not in self.adapters:
            raise ProviderNotAvailableError(kind.value, [p.value for p in self.adapters])
        if self.totals is None:
            raise InvalidCartError("totals have not been computed")
        self.session.select_provider(kind)
        self._log_transitions()

    async def initiate(self, customer: CustomerInfo) -> InitiationResult | None:
        """Start payment with the selected provider.

        Returns:
            The adapter's initiation result, or None when initiation ended
            the attempt (Cancelled or Failed).

        Raises:
            InvalidCustomerError: If email or name is missing.
            InvalidStateTransitionError: If no provider is selected.
        """
        self._validate_customer(customer)
        self.session.start_initiation()
        self._log_transitions()

        adapter = self.adapters[self.session.selected_provider]
        snapshot = CartSnapshot(
            items=self.cart_items,
            currency=self.billing.currency_code,
            customer=customer,
        )

        try:
            result = await adapter.initiate(self.totals, snapshot)
        except ProviderError as e:
            self._abort(self._outcome_for_provider_error(e, reference=None))
            return None

        if isinstance(result, Redirecting):
            self.session.await_redirect_return(result.session_id)
        else:
            self.session.await_widget_callback(result.session_id)
        self.initiation = result
        self._log_transitions()

        logger.info(
            "Payment initiated",
            checkout_id=self.checkout_id,
            provider=adapter.kind.value,
            session_id=self.session.session_id,
        )
        return result

    @staticmethod
    def _validate_customer(customer: CustomerInfo) -> None:
        email = (customer.email or "").strip()
        if not email:
            raise InvalidCustomerError("email", "is required")
        if "@" not in email:
            raise InvalidCustomerError("email", "is not a valid address")
        if not (customer.name or "").strip():
            raise InvalidCustomerError("name", "is required")

    # -------------------------------------------------------------------------
    # Provider Completion
    # -------------------------------------------------------------------------

    async def handle_widget_callback(
        self, payload: WidgetSuccessPayload | WidgetErrorPayload | dict[str, Any]
    ) -> ReconciliationOutcome:
        """Handle the widget's completion callback.

        A success payload is only a lookup key: the outcome always comes from
        reconciliation against the order service. Error payloads end the
        attempt directly as Cancelled or Failed.
        """
        if isinstance(payload, dict):
            payload = parse_callback(payload)

        if self.status != CheckoutStatus.AWAITING_WIDGET_CALLBACK:
            raise self._invalid_state(CheckoutStatus.RECONCILING)

        if isinstance(payload, WidgetErrorPayload):
            error = classify_error(payload)
            logger.info(
                "Widget reported error",
                checkout_id=self.checkout_id,
                code=payload.code,
                error_type=error.error_code,
            )
            outcome = self._outcome_for_provider_error(error, reference=self.session.session_id)
            self._abort(outcome)
            return outcome

        if (
            payload.amount_charged is not None
            and self.totals is not None
            and payload.amount_charged != self.totals.total
        ):
            logger.warning(
                "Widget charged amount differs from checkout total",
                checkout_id=self.checkout_id,
                reference=payload.client_reference,
                amount_charged=str(payload.amount_charged),
                expected_total=str(self.totals.total),
            )

        reference = PaymentReference.completed(
            payload.client_reference,
            ProviderKind.WIDGET,
            amount_charged=payload.amount_charged,
        )
        return await self._reconcile(reference)

    async def resume_from_return_url(self, url: str) -> ReconciliationOutcome | None:
        """Resume after a redirect round trip using only the entry URL.

        A URL with no reference token and no cancel signal is a fresh entry:
        the session stays ``Idle`` and None is returned.

        Raises:
            InvalidStateTransitionError: If this controller already holds a
                session that is not idle or awaiting a redirect return.
        """
        reference = parse_return_url(url)
        if reference is None:
            logger.debug("Fresh checkout entry", checkout_id=self.checkout_id)
            return None

        if self.status == CheckoutStatus.IDLE:
            self.session = CheckoutSession.from_redirect_return(reference)
            logger.info(
                "Resumed checkout from redirect return",
                checkout_id=self.checkout_id,
                reference=reference.token,
                signal=reference.signal.value,
            )
        elif self.status != CheckoutStatus.AWAITING_REDIRECT_RETURN:
            raise self._invalid_state(CheckoutStatus.AWAITING_REDIRECT_RETURN)

        return await self._reconcile(reference)

    async def retry_reconciliation(self) -> ReconciliationOutcome:
        """Retry the order lookup from ``Degraded`` on explicit user request."""
        if self.status != CheckoutStatus.DEGRADED or self.session.reference is None:
            raise self._invalid_state(CheckoutStatus.RECONCILING)
        logger.info(
            "Retrying order confirmation",
            checkout_id=self.checkout_id,
            reference=self.session.reference_token,
        )
        return await self._reconcile(self.session.reference)

    # -------------------------------------------------------------------------
    # Restart and Views
    # -------------------------------------------------------------------------

    def restart(self, kind: ProviderKind | None = None) -> CheckoutSession:
        """Start a fresh attempt after Failed or Cancelled.

        The new session has a new checkout id and no session id, reference
        or outcome. Cart, totals and billing settings are kept.

        Raises:
            InvalidStateTransitionError: If the current session is not
                Failed or Cancelled.
            InvalidCartError: If this controller never computed totals
                (a session rebuilt from a return URL has no cart).
            ProviderNotAvailableError: If the provider is not configured.
        """
        if not self.status.is_restartable():
            raise self._invalid_state(CheckoutStatus.PROVIDER_SELECTED)
        if self.totals is None:
            raise InvalidCartError("no cart for this checkout, re-enter checkout")

        kind = kind or self.session.selected_provider
        if kind not in self.adapters:
            raise ProviderNotAvailableError(
                kind.value if kind else "none", [p.value for p in self.adapters]
            )

        previous = self.session
        self.session = CheckoutSession.fresh_attempt(kind)
        self.initiation = None

        logger.info(
            "Checkout restarted",
            checkout_id=self.checkout_id,
            previous_checkout_id=previous.id,
            previous_status=previous.status.value,
            provider=kind.value,
        )
        return self.session

    def terminal_view(self) -> TerminalView | None:
        """User-facing view of the current terminal state, if any."""
        if self.status == CheckoutStatus.CONFIG_UNAVAILABLE:
            return config_unavailable_view()
        if self.status.is_terminal() and self.session.outcome is not None:
            return view_for_outcome(self.session.outcome)
        return None

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _invalid_state(self, target: CheckoutStatus) -> InvalidStateTransitionError:
        return InvalidStateTransitionError(
            entity_type="CheckoutSession",
            entity_id=self.checkout_id,
            current_state=self.status.value,
            target_state=target.value,
            allowed_transitions=[s.value for s in self.status.allowed_transitions()],
        )

    async def _reconcile(self, reference: PaymentReference) -> ReconciliationOutcome:
        # Entering Reconciling before the await rejects concurrent triggers
        self.session.begin_reconciliation(reference)
        self._log_transitions()

        try:
            outcome = await self.reconciler.reconcile(reference)
        except Exception:
            logger.exception(
                "Reconciliation failed unexpectedly",
                checkout_id=self.checkout_id,
                reference=reference.token,
            )
            outcome = Degraded(reason=LOOKUP_FAILED, partial_reference=reference.token or "")
        self._settle(outcome)
        return outcome

    def _abort(self, outcome: ReconciliationOutcome) -> None:
        self.session.abort(outcome)
        self._log_transitions()
        self._report(outcome)

    def _settle(self, outcome: ReconciliationOutcome) -> None:
        self.session.settle(outcome)
        self._log_transitions()
        self._report(outcome)

    def _outcome_for_provider_error(
        self, error: ProviderError, reference: str | None
    ) -> ReconciliationOutcome:
        if isinstance(error, ProviderDeclinedError):
            return Failed(reason=error.code or "declined", partial_reference=reference)
        return Cancelled(partial_reference=reference)

    def _report(self, outcome: ReconciliationOutcome) -> None:
        logger.info(
            "Checkout outcome",
            checkout_id=self.checkout_id,
            outcome=outcome.kind.value,
            reference=outcome.reference,
            reason=getattr(outcome, "reason", None),
        )
        self.emitter.emit(self._outcome_event(outcome))

    def _outcome_event(self, outcome: ReconciliationOutcome) -> CheckoutOutcomeReported:
        reference = self.session.reference
        amount_charged = reference.amount_charged if reference else None

        if isinstance(outcome, Confirmed):
            order = outcome.order
            total: Decimal | None = order.total
            currency = order.currency
            items = tuple(
                {
                    "item_id": str(index),
                    "item_name": line.name,
                    "category": ANALYTICS_ITEM_CATEGORY,
                    "quantity": line.quantity,
                    "price": float(line.unit_price),
                }
                for index, line in enumerate(order.items, start=1)
            )
        else:
            total = self.totals.total if self.totals else None
            currency = self.billing.currency_code if self.billing else ""
            items = tuple(
                {
                    "item_id": item.id,
                    "item_name": item.name,
                    "category": ANALYTICS_ITEM_CATEGORY,
                    "quantity": item.quantity,
                    "price": float(item.unit_price),
                }
                for item in self.cart_items
            )

        return CheckoutOutcomeReported(
            aggregate_id=self.checkout_id,
            outcome=outcome.kind.value,
            reference=outcome.reference,
            order_number=outcome.order.order_number if isinstance(outcome, Confirmed) else None,
            reason=getattr(outcome, "reason", None),
            provider=self.session.selected_provider.value if self.session.selected_provider else None,
            total=str(total) if total is not None else "0.00",
            currency=currency,
            amount_charged=str(amount_charged) if amount_charged is not None else None,
            items=items,
        )

    def _log_transitions(self) -> None:
        for event in self.session.collect_events():
            if isinstance(event, CheckoutStatusChanged):
                logger.info(
                    "Checkout status changed",
                    checkout_id=event.aggregate_id,
                    from_status=event.from_status,
                    to_status=event.to_status,
                    provider=event.provider,
                    **event.details,
                )
