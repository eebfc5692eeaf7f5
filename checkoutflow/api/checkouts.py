"""Checkout API endpoints.

- POST /checkouts - enter checkout with the cart
- GET /checkouts/{id} - current session state
- POST /checkouts/{id}/provider - select payment provider
- POST /checkouts/{id}/initiate - start payment
- POST /checkouts/{id}/widget-callback - widget completion callback
- POST /checkouts/{id}/retry-reconciliation - retry confirmation from degraded
- POST /checkouts/{id}/restart - new attempt after failure or cancellation
- POST /checkouts/resume - resume from a redirect return URL
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from checkoutflow.api.schemas import (
    CheckoutCreateRequest,
    CheckoutResponse,
    ErrorResponse,
    InitiateRequest,
    InitiationSchema,
    ProviderSelectRequest,
    RestartRequest,
    ResumeRequest,
    TerminalViewSchema,
    TotalsSchema,
    TransitionSchema,
    WidgetCallbackRequest,
)
from checkoutflow.application.checkout_controller import CheckoutSessionController
from checkoutflow.application.checkout_service import (
    CheckoutResult,
    CheckoutService,
    get_checkout_service,
)

router = APIRouter(prefix="/checkouts", tags=["Checkouts"])

ERROR_STATUS_CODES = {
    "CHECKOUT_NOT_FOUND": 404,
    "INVALID_CART": 422,
    "INVALID_CUSTOMER": 422,
    "INVALID_STATE": 409,
    "PROVIDER_NOT_AVAILABLE": 400,
}

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
}


# ============================================================================
# Dependencies
# ============================================================================


def get_service() -> CheckoutService:
    return get_checkout_service()


# ============================================================================
# Converters
# ============================================================================


def checkout_to_response(controller: CheckoutSessionController) -> CheckoutResponse:
    """Convert a controller's session to the response schema."""
    session = controller.session

    totals = None
    if controller.totals is not None and controller.billing is not None:
        totals = TotalsSchema(
            subtotal=controller.totals.subtotal,
            tax=controller.totals.tax,
            total=controller.totals.total,
            currency=controller.billing.currency_code,
        )

    initiation = None
    if controller.initiation is not None and session.status.is_awaiting_provider():
        initiation = InitiationSchema(**controller.initiation.to_dict())

    view = controller.terminal_view()

    return CheckoutResponse(
        id=session.id,
        status=session.status,
        selected_provider=session.selected_provider,
        available_providers=controller.available_providers,
        session_id=session.session_id,
        reference=session.reference_token,
        totals=totals,
        initiation=initiation,
        outcome=session.outcome.to_dict() if session.outcome else None,
        view=TerminalViewSchema(**view.to_dict()) if view else None,
        failure_reason=session.failure_reason,
        history=[
            TransitionSchema(
                at=record.at,
                from_status=record.from_status,
                to_status=record.to_status,
                reason=record.reason,
            )
            for record in session.history
        ],
        created_at=session.created_at,
        updated_at=session.updated_at,
    )


def _raise_for_result(result: CheckoutResult, default_code: str) -> None:
    """Raise an HTTPException for a failed service result."""
    error_code = result.error_code or default_code
    raise HTTPException(
        status_code=ERROR_STATUS_CODES.get(error_code, status.HTTP_400_BAD_REQUEST),
        detail={
            "error_code": error_code,
            "message": result.error or "Checkout operation failed",
            "details": result.details,
        },
    )


def _respond(result: CheckoutResult, default_code: str) -> CheckoutResponse:
    if not result.success or result.controller is None:
        _raise_for_result(result, default_code)
    return checkout_to_response(result.controller)


# ============================================================================
# Endpoints
# ============================================================================


@router.post(
    "",
    response_model=CheckoutResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    summary="Enter checkout",
    description="Load billing settings and compute totals. State: config_ready or config_unavailable",
)
async def create_checkout(
    request: CheckoutCreateRequest,
    service: Annotated[CheckoutService, Depends(get_service)],
) -> CheckoutResponse:
    """Enter checkout with the current cart.

    An empty cart, or a line with non-positive quantity or price, is
    rejected with 422 before any provider is offered.
    """
    result = await service.create_checkout([item.to_domain() for item in request.items])
    return _respond(result, "CREATE_FAILED")


@router.post(
    "/resume",
    response_model=CheckoutResponse,
    responses=ERROR_RESPONSES,
    summary="Resume from redirect return",
    description="Rebuild checkout state from the URL the hosted checkout returned to.",
)
async def resume_checkout(
    request: ResumeRequest,
    service: Annotated[CheckoutService, Depends(get_service)],
) -> CheckoutResponse:
    """Resume after a redirect round trip.

    A URL without a reference token is a fresh entry and returns an idle
    session.
    """
    result = await service.resume(request.url)
    return _respond(result, "RESUME_FAILED")


@router.get(
    "/{checkout_id}",
    response_model=CheckoutResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get checkout state",
)
async def get_checkout(
    checkout_id: str,
    service: Annotated[CheckoutService, Depends(get_service)],
) -> CheckoutResponse:
    controller = await service.get_checkout(checkout_id)
    if controller is None:
        _raise_for_result(CheckoutResult.not_found(checkout_id), "CHECKOUT_NOT_FOUND")
    return checkout_to_response(controller)


@router.post(
    "/{checkout_id}/provider",
    response_model=CheckoutResponse,
    responses=ERROR_RESPONSES,
    summary="Select payment provider",
    description="Choose or switch provider. State: provider_selected",
)
async def select_provider(
    checkout_id: str,
    request: ProviderSelectRequest,
    service: Annotated[CheckoutService, Depends(get_service)],
) -> CheckoutResponse:
    result = await service.select_provider(checkout_id, request.provider)
    return _respond(result, "SELECT_FAILED")


@router.post(
    "/{checkout_id}/initiate",
    response_model=CheckoutResponse,
    responses=ERROR_RESPONSES,
    summary="Initiate payment",
    description=(
        "Start payment with the selected provider. "
        "State: awaiting_redirect_return, awaiting_widget_callback, cancelled or failed"
    ),
)
async def initiate_payment(
    checkout_id: str,
    request: InitiateRequest,
    service: Annotated[CheckoutService, Depends(get_service)],
) -> CheckoutResponse:
    """Initiate payment.

    For the redirect provider the response carries ``initiation.external_url``
    to navigate to; for the widget provider it carries the widget order id
    and client id.
    """
    result = await service.initiate(checkout_id, request.customer.to_domain())
    return _respond(result, "INITIATE_FAILED")


@router.post(
    "/{checkout_id}/widget-callback",
    response_model=CheckoutResponse,
    responses=ERROR_RESPONSES,
    summary="Deliver widget callback",
)
async def widget_callback(
    checkout_id: str,
    request: WidgetCallbackRequest,
    service: Annotated[CheckoutService, Depends(get_service)],
) -> CheckoutResponse:
    result = await service.handle_widget_callback(checkout_id, request.to_payload())
    return _respond(result, "CALLBACK_FAILED")


@router.post(
    "/{checkout_id}/retry-reconciliation",
    response_model=CheckoutResponse,
    responses=ERROR_RESPONSES,
    summary="Retry order confirmation",
    description="Explicit retry from degraded. Never triggered automatically.",
)
async def retry_reconciliation(
    checkout_id: str,
    service: Annotated[CheckoutService, Depends(get_service)],
) -> CheckoutResponse:
    result = await service.retry_reconciliation(checkout_id)
    return _respond(result, "RETRY_FAILED")


@router.post(
    "/{checkout_id}/restart",
    response_model=CheckoutResponse,
    responses=ERROR_RESPONSES,
    summary="Restart checkout",
    description="Fresh attempt after failed or cancelled. Returns a new checkout ID.",
)
async def restart_checkout(
    checkout_id: str,
    service: Annotated[CheckoutService, Depends(get_service)],
    request: RestartRequest | None = None,
) -> CheckoutResponse:
    provider = request.provider if request else None
    result = await service.restart(checkout_id, provider)
    return _respond(result, "RESTART_FAILED")
