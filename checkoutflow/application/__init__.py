"""Application layer - checkout orchestration services."""

from checkoutflow.application.billing_config import BillingConfigLoader, parse_billing_settings
from checkoutflow.application.checkout_controller import CheckoutSessionController
from checkoutflow.application.checkout_service import (
    CheckoutResult,
    CheckoutService,
    CheckoutSessionRepository,
    get_checkout_repository,
    get_checkout_service,
)
from checkoutflow.application.outcome_emitter import OutcomeEmitter, get_outcome_emitter
from checkoutflow.application.reconciler import ConfirmationReconciler

__all__ = [
    "BillingConfigLoader",
    "CheckoutResult",
    "CheckoutService",
    "CheckoutSessionController",
    "CheckoutSessionRepository",
    "ConfirmationReconciler",
    "OutcomeEmitter",
    "get_checkout_repository",
    "get_checkout_service",
    "get_outcome_emitter",
    "parse_billing_settings",
]
