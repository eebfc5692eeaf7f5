"""Tests for the checkout service and its in-memory repository."""

import pytest

from checkoutflow.application.checkout_service import CheckoutService, CheckoutSessionRepository
from checkoutflow.domain import CartItem, CheckoutStatus, CustomerInfo, ProviderKind
from stubs import BackendStub, order_body

RETURN_URL = "https://shop.example/order-confirmation?session_id=sess_123"


class TestCheckoutService:
    """Tests for CheckoutService result handling and storage."""

    @pytest.mark.asyncio
    async def test_create_stores_checkout(
        self, service: CheckoutService, logo_design: list[CartItem]
    ) -> None:
        result = await service.create_checkout(logo_design)

        assert result.success
        assert len(service.repo) == 1
        assert await service.get_checkout(result.controller.checkout_id) is result.controller

    @pytest.mark.asyncio
    async def test_invalid_cart_not_stored(self, service: CheckoutService) -> None:
        result = await service.create_checkout([])

        assert not result.success
        assert result.error_code == "INVALID_CART"
        assert len(service.repo) == 0

    @pytest.mark.asyncio
    async def test_unknown_checkout(self, service: CheckoutService) -> None:
        result = await service.select_provider("chk_missing", ProviderKind.REDIRECT)
        assert result.error_code == "CHECKOUT_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_fresh_entry_resume_not_stored(self, service: CheckoutService) -> None:
        result = await service.resume("https://shop.example/checkout")

        assert result.success
        assert result.outcome is None
        assert result.controller.status == CheckoutStatus.IDLE
        assert len(service.repo) == 0

    @pytest.mark.asyncio
    async def test_resume_stores_degraded_outcome(self, service: CheckoutService) -> None:
        result = await service.resume(RETURN_URL)

        assert result.outcome.kind.value == "degraded"
        assert await service.get_checkout(result.controller.checkout_id) is result.controller

    @pytest.mark.asyncio
    async def test_confirmed_resume_not_stored(
        self, service: CheckoutService, backend: BackendStub
    ) -> None:
        backend.orders["sess_123"] = order_body()
        result = await service.resume(RETURN_URL)

        assert result.outcome.kind.value == "confirmed"
        assert result.controller.status == CheckoutStatus.CONFIRMED
        assert len(service.repo) == 0

    @pytest.mark.asyncio
    async def test_confirmed_widget_callback_evicts(
        self,
        service: CheckoutService,
        backend: BackendStub,
        logo_design: list[CartItem],
        customer: CustomerInfo,
    ) -> None:
        backend.orders["PAYPAL-ORDER-1"] = order_body(transaction_id="PAYPAL-ORDER-1")
        checkout_id = (await service.create_checkout(logo_design)).controller.checkout_id
        await service.select_provider(checkout_id, ProviderKind.WIDGET)
        await service.initiate(checkout_id, customer)

        result = await service.handle_widget_callback(
            checkout_id, {"clientReference": "PAYPAL-ORDER-1"}
        )

        assert result.controller.status == CheckoutStatus.CONFIRMED
        assert await service.get_checkout(checkout_id) is None

    @pytest.mark.asyncio
    async def test_confirmed_retry_evicts(
        self, service: CheckoutService, backend: BackendStub
    ) -> None:
        checkout_id = (await service.resume(RETURN_URL)).controller.checkout_id
        backend.orders["sess_123"] = order_body()

        result = await service.retry_reconciliation(checkout_id)

        assert result.outcome.kind.value == "confirmed"
        assert len(service.repo) == 0

    @pytest.mark.asyncio
    async def test_restart_rekeys(
        self,
        service: CheckoutService,
        logo_design: list[CartItem],
        customer: CustomerInfo,
    ) -> None:
        checkout_id = (await service.create_checkout(logo_design)).controller.checkout_id
        await service.select_provider(checkout_id, ProviderKind.WIDGET)
        await service.initiate(checkout_id, customer)
        await service.handle_widget_callback(checkout_id, {"code": "card_declined"})

        result = await service.restart(checkout_id)

        assert result.success
        new_id = result.controller.checkout_id
        assert new_id != checkout_id
        assert await service.get_checkout(checkout_id) is None
        assert await service.get_checkout(new_id) is result.controller
        assert len(service.repo) == 1

    @pytest.mark.asyncio
    async def test_domain_errors_become_results(
        self, service: CheckoutService, logo_design: list[CartItem]
    ) -> None:
        checkout_id = (await service.create_checkout(logo_design)).controller.checkout_id
        result = await service.retry_reconciliation(checkout_id)

        assert not result.success
        assert result.error_code == "INVALID_STATE"
        assert result.details["current_state"] == "config_ready"


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestCheckoutSessionRepository:
    """Tests for session expiry in the in-memory repository."""

    def test_expires_after_ttl(self, make_controller) -> None:
        clock = FakeClock()
        repo = CheckoutSessionRepository(ttl_seconds=60, clock=clock)
        controller = make_controller()
        repo.save(controller)

        clock.now = 59
        assert repo.get(controller.checkout_id) is controller
        clock.now = 59 + 60
        assert repo.get(controller.checkout_id) is None
        assert len(repo) == 0

    def test_access_extends_expiry(self, make_controller) -> None:
        clock = FakeClock()
        repo = CheckoutSessionRepository(ttl_seconds=60, clock=clock)
        controller = make_controller()
        repo.save(controller)

        for now in (50, 100, 150):
            clock.now = now
            assert repo.get(controller.checkout_id) is controller

    def test_save_drops_expired_sessions(self, make_controller) -> None:
        """A redirect session abandoned in the awaiting state does not linger."""
        clock = FakeClock()
        repo = CheckoutSessionRepository(ttl_seconds=60, clock=clock)
        repo.save(make_controller())
        repo.save(make_controller())

        clock.now = 120
        fresh = make_controller()
        repo.save(fresh)

        assert len(repo) == 1
        assert repo.get(fresh.checkout_id) is fresh

    def test_remove(self, make_controller) -> None:
        repo = CheckoutSessionRepository()
        controller = make_controller()
        repo.save(controller)
        repo.remove(controller.checkout_id)
        repo.remove(controller.checkout_id)
        assert len(repo) == 0
