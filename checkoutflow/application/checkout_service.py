"""Checkout application service.

Keeps one ``CheckoutSessionController`` per checkout id and exposes the
controller operations to the API layer as result objects, translating
domain errors into error codes.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import structlog

from checkoutflow.application.billing_config import BillingConfigLoader
from checkoutflow.application.checkout_controller import CheckoutSessionController
from checkoutflow.application.outcome_emitter import OutcomeEmitter, get_outcome_emitter
from checkoutflow.application.reconciler import ConfirmationReconciler
from checkoutflow.domain.exceptions import DomainError
from checkoutflow.domain.outcomes import Confirmed, ReconciliationOutcome
from checkoutflow.domain.state_machines import ProviderKind
from checkoutflow.domain.value_objects import CartItem, CustomerInfo
from checkoutflow.infrastructure.backend_client import (
    ContentApiClient,
    PaymentsApiClient,
    get_content_client,
    get_payments_client,
)
from checkoutflow.infrastructure.config import Settings, settings
from checkoutflow.infrastructure.providers import InitiationResult

logger = structlog.get_logger()


# ============================================================================
# In-Memory Repository
# ============================================================================


class CheckoutSessionRepository:
    """In-memory store of controllers keyed by checkout id.

    Entries expire after ``ttl_seconds`` without being read or saved.
    Expired entries are dropped lazily on ``get`` and ``save``.
    """

    def __init__(
        self,
        ttl_seconds: float = 1800.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._controllers: dict[str, tuple[CheckoutSessionController, float]] = {}

    def save(self, controller: CheckoutSessionController) -> None:
        self._purge_expired()
        self._controllers[controller.checkout_id] = (
            controller,
            self._clock() + self.ttl_seconds,
        )

    def get(self, checkout_id: str) -> CheckoutSessionController | None:
        entry = self._controllers.get(checkout_id)
        if entry is None:
            return None
        controller, expires_at = entry
        now = self._clock()
        if expires_at <= now:
            del self._controllers[checkout_id]
            logger.info("Checkout session expired", checkout_id=checkout_id)
            return None
        self._controllers[checkout_id] = (controller, now + self.ttl_seconds)
        return controller

    def remove(self, checkout_id: str) -> None:
        self._controllers.pop(checkout_id, None)

    def replace(self, previous_id: str, controller: CheckoutSessionController) -> None:
        """Re-key a controller whose session was replaced by a fresh attempt."""
        self.remove(previous_id)
        self.save(controller)

    def _purge_expired(self) -> None:
        now = self._clock()
        expired = [
            checkout_id
            for checkout_id, (_, expires_at) in self._controllers.items()
            if expires_at <= now
        ]
        for checkout_id in expired:
            del self._controllers[checkout_id]
        if expired:
            logger.info("Expired checkout sessions dropped", count=len(expired))

    def __len__(self) -> int:
        return len(self._controllers)


_checkout_repo: CheckoutSessionRepository | None = None


def get_checkout_repository() -> CheckoutSessionRepository:
    """Get checkout repository singleton."""
    global _checkout_repo
    if _checkout_repo is None:
        _checkout_repo = CheckoutSessionRepository(
            ttl_seconds=settings.checkout_session_ttl_seconds
        )
    return _checkout_repo


# ============================================================================
# Service Result Types
# ============================================================================


@dataclass
class CheckoutResult:
    """Result of a checkout operation."""

    controller: CheckoutSessionController | None = None
    initiation: InitiationResult | None = None
    outcome: ReconciliationOutcome | None = None
    success: bool = True
    error: str | None = None
    error_code: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_error(cls, error: DomainError) -> "CheckoutResult":
        return cls(
            success=False,
            error=error.message,
            error_code=error.error_code,
            details=error.details,
        )

    @classmethod
    def not_found(cls, checkout_id: str) -> "CheckoutResult":
        return cls(
            success=False,
            error=f"Checkout not found: {checkout_id}",
            error_code="CHECKOUT_NOT_FOUND",
        )


# ============================================================================
# Checkout Service
# ============================================================================


class CheckoutService:
    """Application service wrapping checkout controllers."""

    def __init__(
        self,
        repo: CheckoutSessionRepository | None = None,
        content: ContentApiClient | None = None,
        payments: PaymentsApiClient | None = None,
        emitter: OutcomeEmitter | None = None,
        config: Settings | None = None,
    ) -> None:
        self.repo = repo if repo is not None else get_checkout_repository()
        self.content = content or get_content_client()
        self.payments = payments or get_payments_client()
        self.emitter = emitter or get_outcome_emitter()
        self.config = config or settings

    def new_controller(self) -> CheckoutSessionController:
        return CheckoutSessionController(
            config_loader=BillingConfigLoader(self.content),
            payments=self.payments,
            reconciler=ConfirmationReconciler(
                self.payments, timeout=self.config.order_lookup_timeout_seconds
            ),
            emitter=self.emitter,
            public_base_url=self.config.public_base_url,
        )

    async def create_checkout(self, items: list[CartItem]) -> CheckoutResult:
        """Enter checkout with a cart.

        An invalid cart is rejected and no session is kept.
        """
        controller = self.new_controller()
        try:
            await controller.enter(items)
        except DomainError as e:
            logger.info("Checkout entry rejected", error_code=e.error_code, error=e.message)
            return CheckoutResult.from_error(e)

        self.repo.save(controller)
        return CheckoutResult(controller=controller)

    async def get_checkout(self, checkout_id: str) -> CheckoutSessionController | None:
        return self.repo.get(checkout_id)

    async def select_provider(self, checkout_id: str, kind: ProviderKind) -> CheckoutResult:
        controller = self.repo.get(checkout_id)
        if controller is None:
            return CheckoutResult.not_found(checkout_id)
        try:
            controller.select_provider(kind)
        except DomainError as e:
            return CheckoutResult.from_error(e)
        return CheckoutResult(controller=controller)

    async def initiate(self, checkout_id: str, customer: CustomerInfo) -> CheckoutResult:
        controller = self.repo.get(checkout_id)
        if controller is None:
            return CheckoutResult.not_found(checkout_id)
        try:
            initiation = await controller.initiate(customer)
        except DomainError as e:
            return CheckoutResult.from_error(e)
        return CheckoutResult(
            controller=controller,
            initiation=initiation,
            outcome=controller.session.outcome,
        )

    async def handle_widget_callback(
        self, checkout_id: str, payload: dict[str, Any]
    ) -> CheckoutResult:
        controller = self.repo.get(checkout_id)
        if controller is None:
            return CheckoutResult.not_found(checkout_id)
        try:
            outcome = await controller.handle_widget_callback(payload)
        except DomainError as e:
            return CheckoutResult.from_error(e)
        return self._settled(controller, outcome)

    async def resume(self, return_url: str) -> CheckoutResult:
        """Resume from a redirect return URL on a fresh controller.

        A fresh entry (no reference in the URL) returns an idle controller
        that is not stored. A confirmed session is not kept either.
        """
        controller = self.new_controller()
        try:
            outcome = await controller.resume_from_return_url(return_url)
        except DomainError as e:
            return CheckoutResult.from_error(e)
        if outcome is not None and not isinstance(outcome, Confirmed):
            self.repo.save(controller)
        return CheckoutResult(controller=controller, outcome=outcome)

    async def retry_reconciliation(self, checkout_id: str) -> CheckoutResult:
        controller = self.repo.get(checkout_id)
        if controller is None:
            return CheckoutResult.not_found(checkout_id)
        try:
            outcome = await controller.retry_reconciliation()
        except DomainError as e:
            return CheckoutResult.from_error(e)
        return self._settled(controller, outcome)

    async def restart(
        self, checkout_id: str, kind: ProviderKind | None = None
    ) -> CheckoutResult:
        controller = self.repo.get(checkout_id)
        if controller is None:
            return CheckoutResult.not_found(checkout_id)
        try:
            controller.restart(kind)
        except DomainError as e:
            return CheckoutResult.from_error(e)
        self.repo.replace(checkout_id, controller)
        return CheckoutResult(controller=controller)

    def _settled(
        self, controller: CheckoutSessionController, outcome: ReconciliationOutcome
    ) -> CheckoutResult:
        """Build the result for a reconciled session, dropping it once confirmed."""
        if isinstance(outcome, Confirmed):
            self.repo.remove(controller.checkout_id)
            logger.info("Checkout session closed", checkout_id=controller.checkout_id)
        return CheckoutResult(controller=controller, outcome=outcome)


def get_checkout_service() -> CheckoutService:
    """Get checkout service instance."""
    return CheckoutService()
