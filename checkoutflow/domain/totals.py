"""Totals calculation.

Pure and deterministic: the same cart and tax rate always produce the same
``Totals``, so amounts shown to the customer, sent to a provider, and
reported to analytics agree to the cent.
"""

from decimal import Decimal, InvalidOperation
from typing import Iterable

from checkoutflow.domain.exceptions import InvalidCartError
from checkoutflow.domain.value_objects import CartItem, Totals, quantize_money, to_decimal

HUNDRED = Decimal("100")


def calculate_totals(items: Iterable[CartItem], tax_rate_percent: Decimal) -> Totals:
    """Compute subtotal, tax, and grand total for a cart.

    Tax is rounded half-up to 2 places when it is computed, and the total is
    the sum of the rounded parts.

    Args:
        items: Cart lines.
        tax_rate_percent: Tax rate in percent (``10`` means 10%).

    Returns:
        Totals with ``total == subtotal + tax``.

    Raises:
        InvalidCartError: If the cart is empty or a line has a non-positive
            quantity or unit price, or when the amounts are out of range.
    """
    lines = list(items)
    if not lines:
        raise InvalidCartError("cart is empty")

    subtotal = Decimal("0")
    for item in lines:
        if isinstance(item.quantity, bool) or not isinstance(item.quantity, int):
            raise InvalidCartError("quantity must be an integer", item_id=item.id)
        if item.quantity <= 0:
            raise InvalidCartError("quantity must be positive", item_id=item.id)
        try:
            unit_price = to_decimal(item.unit_price)
        except ValueError as e:
            raise InvalidCartError("unit price must be numeric", item_id=item.id) from e
        if unit_price <= 0:
            raise InvalidCartError("unit price must be positive", item_id=item.id)
        subtotal += unit_price * item.quantity

    try:
        subtotal = quantize_money(subtotal)
        tax = quantize_money(subtotal * to_decimal(tax_rate_percent) / HUNDRED)
    except InvalidOperation as e:
        raise InvalidCartError("amount out of range") from e
    return Totals(subtotal=subtotal, tax=tax, total=subtotal + tax)
