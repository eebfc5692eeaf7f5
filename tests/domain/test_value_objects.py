"""Tests for domain value objects."""

from decimal import Decimal

import pytest

from checkoutflow.domain import (
    BillingSettings,
    CartItem,
    PaymentReference,
    ProviderKind,
    ReferenceSignal,
)
from checkoutflow.domain.value_objects import quantize_money, to_decimal


class TestMoneyHelpers:
    def test_quantize_half_up(self) -> None:
        assert quantize_money(Decimal("1.005")) == Decimal("1.01")
        assert quantize_money(Decimal("1.004")) == Decimal("1.00")

    def test_to_decimal_from_float_uses_str(self) -> None:
        assert to_decimal(500.1) == Decimal("500.1")

    @pytest.mark.parametrize("value", [None, True, "twelve"])
    def test_to_decimal_rejects_non_numeric(self, value) -> None:
        with pytest.raises(ValueError):
            to_decimal(value)


    @pytest.mark.parametrize(
        "value", ["NaN", "Infinity", "-inf", float("inf"), float("nan"), Decimal("NaN")]
    )
    def test_to_decimal_rejects_non_finite(self, value) -> None:
        with pytest.raises(ValueError):
            to_decimal(value)


class TestCartItem:
    def test_line_total_is_exact(self) -> None:
        item = CartItem(id="1", name="Hosting", unit_price=Decimal("0.333"), quantity=3)
        assert item.line_total == Decimal("0.999")

    def test_payload_shape(self) -> None:
        item = CartItem(id="7", name="Logo Design", unit_price=Decimal("500.00"), quantity=1, product_id=42)
        assert item.to_payload() == {
            "id": "7",
            "productId": 42,
            "name": "Logo Design",
            "price": 500.0,
            "quantity": 1,
        }


class TestBillingSettings:
    """Tests for BillingSettings."""

    def test_both_providers_enabled(self) -> None:
        settings = BillingSettings(
            tax_rate_percent=Decimal("10"),
            currency_code="aud",
            redirect_provider_public_key="pk_test",
            widget_provider_client_id="client",
        )
        assert settings.currency_code == "AUD"
        assert settings.enabled_providers == [ProviderKind.REDIRECT, ProviderKind.WIDGET]
        assert settings.has_any_provider

    def test_no_providers(self) -> None:
        settings = BillingSettings(tax_rate_percent=Decimal("10"), currency_code="AUD")
        assert settings.enabled_providers == []
        assert not settings.has_any_provider

    def test_only_widget(self) -> None:
        settings = BillingSettings(
            tax_rate_percent=Decimal("10"),
            currency_code="AUD",
            widget_provider_client_id="client",
        )
        assert settings.enabled_providers == [ProviderKind.WIDGET]


class TestPaymentReference:
    def test_completed(self) -> None:
        reference = PaymentReference.completed("sess_1", ProviderKind.REDIRECT)
        assert reference.signal == ReferenceSignal.COMPLETED
        assert reference.is_present

    def test_cancelled_without_token(self) -> None:
        reference = PaymentReference.cancelled(ProviderKind.REDIRECT)
        assert reference.token is None
        assert not reference.is_present

    def test_blank_token_is_absent(self) -> None:
        assert not PaymentReference.completed("   ", ProviderKind.WIDGET).is_present

    def test_amount_charged_not_part_of_equality(self) -> None:
        a = PaymentReference.completed("ref", ProviderKind.WIDGET, amount_charged=Decimal("550.00"))
        b = PaymentReference.completed("ref", ProviderKind.WIDGET)
        assert a == b
