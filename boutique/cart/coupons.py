"""Coupon catalog lookup and eligibility rules.

The catalog is an external collaborator; the cart only needs
find_coupon(code) -> Coupon | None. Eligibility checks are pure and run
against the cart subtotal at application time.
"""
import re
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, Optional, Protocol

import httpx
from pydantic import ValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from boutique.cart.models import Coupon, CouponType, CouponValidationResult
from boutique.cart.pricing import calculate_discount
from boutique.db import get_supabase
from boutique.errors import (
    ERROR_COUPON_EXHAUSTED,
    ERROR_COUPON_EXPIRED,
    ERROR_COUPON_INACTIVE,
    ERROR_COUPON_LOOKUP_FAILED,
    ERROR_COUPON_MIN_VALUE,
    ERROR_COUPON_NOT_FOUND,
    ERROR_COUPON_NOT_STARTED,
    CouponLookupError,
    ReasonCode,
)
from boutique.logging import get_logger, sanitize_string_for_logging

logger = get_logger(__name__)

COUPON_CODE_PATTERN = re.compile(r"^[A-Z0-9_-]{3,32}$")

# promotions.type values that map onto a cart coupon
_PROMOTION_TYPES = {
    "percentage": CouponType.PERCENTAGE,
    "fixed_amount": CouponType.FIXED,
    "fixed": CouponType.FIXED,
}


def normalize_code(code: Optional[str]) -> Optional[str]:
    """Upper-case and trim a coupon code; None if it is not a valid code."""
    if not isinstance(code, str):
        return None
    normalized = code.strip().upper()
    if not COUPON_CODE_PATTERN.match(normalized):
        return None
    return normalized


def _rejected(code: Optional[str], reason: ReasonCode, message: str) -> CouponValidationResult:
    return CouponValidationResult(valid=False, code=code, reason=reason, error_message=message)


def validate_coupon(
    coupon: Optional[Coupon],
    subtotal: Decimal,
    code: Optional[str] = None,
    now: Optional[datetime] = None,
) -> CouponValidationResult:
    """Check a looked-up coupon against the current cart subtotal."""
    if coupon is None:
        return _rejected(code, ReasonCode.NOT_FOUND, ERROR_COUPON_NOT_FOUND)

    now = now or datetime.now(timezone.utc)
    code = coupon.code

    if not coupon.is_active:
        return _rejected(code, ReasonCode.INACTIVE, ERROR_COUPON_INACTIVE)
    if coupon.starts_at and now < coupon.starts_at:
        return _rejected(code, ReasonCode.NOT_STARTED, ERROR_COUPON_NOT_STARTED)
    if coupon.expires_at and now > coupon.expires_at:
        return _rejected(code, ReasonCode.EXPIRED, ERROR_COUPON_EXPIRED)
    if coupon.usage_limit is not None and coupon.used_count >= coupon.usage_limit:
        return _rejected(code, ReasonCode.EXHAUSTED, ERROR_COUPON_EXHAUSTED)
    if coupon.min_value is not None and subtotal < coupon.min_value:
        return _rejected(code, ReasonCode.BELOW_MINIMUM, ERROR_COUPON_MIN_VALUE)

    return CouponValidationResult(
        valid=True,
        code=code,
        coupon=coupon,
        discount=calculate_discount(subtotal, coupon),
    )


class CouponCatalog(Protocol):
    """External coupon lookup."""

    async def find_coupon(self, code: str) -> Optional[Coupon]: ...


class StaticCouponCatalog:
    """In-memory catalog keyed by normalized code."""

    def __init__(self, coupons: Iterable[Coupon] = ()):
        self._coupons = {coupon.code: coupon for coupon in coupons}

    def add(self, coupon: Coupon) -> None:
        self._coupons[coupon.code] = coupon

    async def find_coupon(self, code: str) -> Optional[Coupon]:
        return self._coupons.get(code.strip().upper())


def coupon_from_promotion(row: dict) -> Optional[Coupon]:
    """Map a promotions table row to a Coupon. Non-coupon promotions map to None."""
    coupon_type = _PROMOTION_TYPES.get(row.get("type", ""))
    if coupon_type is None or not row.get("code"):
        return None

    try:
        return Coupon(
            id=row.get("id"),
            code=row["code"],
            discount=row.get("value", 0),
            type=coupon_type,
            min_value=row.get("min_order_value") or None,
            max_discount=row.get("max_discount_amount"),
            is_active=bool(row.get("is_active", False)),
            starts_at=row.get("start_date"),
            expires_at=row.get("end_date"),
            usage_limit=row.get("usage_limit"),
            used_count=row.get("used_count") or 0,
        )
    except ValidationError as e:
        logger.warning(
            "Skipping malformed promotion %s: %d validation errors",
            sanitize_string_for_logging(row.get("code")),
            e.error_count(),
        )
        return None


class SupabaseCouponCatalog:
    """Coupon lookup against the storefront's promotions table."""

    TABLE = "promotions"

    def __init__(self, client=None):
        self._client = client

    async def _get_client(self):
        if self._client is None:
            self._client = await get_supabase()
        return self._client

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, max=2),
        reraise=True,
    )
    async def _fetch(self, code: str) -> list:
        client = await self._get_client()
        result = await client.table(self.TABLE).select("*").eq("code", code).limit(1).execute()
        return result.data or []

    async def find_coupon(self, code: str) -> Optional[Coupon]:
        code = code.strip().upper()
        try:
            rows = await self._fetch(code)
        except Exception as e:
            logger.error(
                "Coupon lookup failed for %s: %s",
                sanitize_string_for_logging(code),
                type(e).__name__,
            )
            raise CouponLookupError(ERROR_COUPON_LOOKUP_FAILED) from e

        if not rows:
            return None
        return coupon_from_promotion(rows[0])


__all__ = [
    "COUPON_CODE_PATTERN",
    "CouponCatalog",
    "StaticCouponCatalog",
    "SupabaseCouponCatalog",
    "coupon_from_promotion",
    "normalize_code",
    "validate_coupon",
]
