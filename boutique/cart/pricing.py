"""
Cart pricing.

Pure functions over line items and an optional coupon. Totals are derived
on every read and never stored, so they cannot drift from the items.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from boutique.cart.models import CartLineItem, Coupon, CouponType
from boutique.services.money import multiply, percent, round_money, subtract, to_float

ZERO = Decimal("0")


@dataclass(frozen=True)
class CartTotals:
    """Derived cart figures."""
    item_count: int
    subtotal: Decimal
    discount: Decimal
    total: Decimal

    def to_dict(self) -> dict:
        return {
            "item_count": self.item_count,
            "subtotal": to_float(self.subtotal),
            "discount": to_float(self.discount),
            "total": to_float(self.total),
        }


def calculate_item_count(items: Iterable[CartLineItem]) -> int:
    return sum(item.quantity for item in items)


def calculate_subtotal(items: Iterable[CartLineItem]) -> Decimal:
    """Σ price × quantity, exact."""
    return sum((item.line_total for item in items), ZERO)


def calculate_discount(subtotal: Decimal, coupon: Optional[Coupon]) -> Decimal:
    """
    Discount granted by a coupon on the given subtotal.

    Percentage coupons are capped by max_discount when set; fixed coupons
    never exceed the subtotal.
    """
    if coupon is None or subtotal <= 0:
        return ZERO

    if coupon.type == CouponType.PERCENTAGE:
        discount = percent(subtotal, coupon.discount)
        if coupon.max_discount is not None:
            discount = min(discount, coupon.max_discount)
    else:
        discount = min(coupon.discount, subtotal)

    return round_money(discount)


def calculate_totals(items: Iterable[CartLineItem], coupon: Optional[Coupon] = None) -> CartTotals:
    """Compute item count, subtotal, discount and total for a cart."""
    items = list(items)
    subtotal = calculate_subtotal(items)
    discount = calculate_discount(subtotal, coupon)
    return CartTotals(
        item_count=calculate_item_count(items),
        subtotal=subtotal,
        discount=discount,
        total=max(ZERO, subtract(subtotal, discount)),
    )


def calculate_savings(items: Iterable[CartLineItem]) -> Decimal:
    """Savings against original prices, for items sold below their reference price."""
    savings = ZERO
    for item in items:
        if item.original_price is not None and item.original_price > item.price:
            savings += multiply(subtract(item.original_price, item.price), item.quantity)
    return savings
