"""
Common Error Constants and Exceptions

Centralized error messages to avoid string duplication (SonarQube S1192).
Business-rule rejections travel as result objects carrying a ReasonCode;
only contract violations and transport failures are raised.
"""
from enum import Enum


# Cart errors
ERROR_PRODUCT_OUT_OF_STOCK = "Product out of stock"
ERROR_INVALID_QUANTITY = "Quantity must be a positive integer"

# Coupon errors
ERROR_COUPON_INVALID_FORMAT = "Invalid coupon code format"
ERROR_COUPON_NOT_FOUND = "Coupon not found"
ERROR_COUPON_INACTIVE = "Coupon is inactive"
ERROR_COUPON_EXPIRED = "Coupon has expired"
ERROR_COUPON_NOT_STARTED = "Coupon is not yet active"
ERROR_COUPON_EXHAUSTED = "Coupon usage limit reached"
ERROR_COUPON_MIN_VALUE = "Order subtotal is below the coupon minimum"
ERROR_COUPON_LOOKUP_TIMEOUT = "Coupon lookup timed out"
ERROR_COUPON_LOOKUP_FAILED = "Coupon catalog unavailable"

# Wishlist errors
ERROR_WISHLIST_DUPLICATE = "Already in wishlist"
ERROR_WISHLIST_ID_REQUIRED = "Wishlist item id is required"
ERROR_WISHLIST_NAME_REQUIRED = "Wishlist item name is required"
ERROR_WISHLIST_PRICE_INVALID = "Wishlist item price must be a non-negative number"

# Storage errors
ERROR_STORAGE_UNAVAILABLE = "Snapshot storage unavailable"


class ReasonCode(str, Enum):
    """Machine-readable outcome reasons returned to callers."""
    OUT_OF_STOCK = "out_of_stock"
    DUPLICATE = "duplicate"
    INVALID_FORMAT = "invalid_format"
    NOT_FOUND = "not_found"
    INACTIVE = "inactive"
    EXPIRED = "expired"
    NOT_STARTED = "not_started"
    EXHAUSTED = "exhausted"
    BELOW_MINIMUM = "below_minimum"
    LOOKUP_TIMEOUT = "lookup_timeout"


class BoutiqueError(Exception):
    """Base class for errors raised by the cart and wishlist engines."""


class InvalidProductError(BoutiqueError, ValueError):
    """Product reference data passed to the cart is missing required fields."""


class InvalidWishlistItemError(BoutiqueError, ValueError):
    """Wishlist item passed for insertion is missing required fields."""


class CouponLookupError(BoutiqueError):
    """The coupon catalog could not be reached."""


class StorageError(BoutiqueError):
    """A snapshot store backend failed. Never leaves the storage adapter."""
