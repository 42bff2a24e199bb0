"""Cart package: models, pricing, coupons and manager facade."""
from .models import CartLineItem, Coupon, CouponType, CouponValidationResult, Product
from .pricing import CartTotals, calculate_totals
from .service import CartManager, build_cart_manager, get_cart_manager

__all__ = [
    "CartLineItem",
    "CartManager",
    "CartTotals",
    "Coupon",
    "CouponType",
    "CouponValidationResult",
    "Product",
    "build_cart_manager",
    "calculate_totals",
    "get_cart_manager",
]
