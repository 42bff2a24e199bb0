"""Cart manager: in-memory line items persisted through a snapshot store."""
import asyncio
import json
from dataclasses import replace
from decimal import Decimal
from typing import List, Mapping, Optional, Union

from pydantic import ValidationError

from boutique.cart.coupons import (
    CouponCatalog,
    StaticCouponCatalog,
    SupabaseCouponCatalog,
    normalize_code,
    validate_coupon,
)
from boutique.cart.models import (
    NO_COLOR,
    NO_SIZE,
    CartLineItem,
    Coupon,
    CouponValidationResult,
    Product,
    clamp_quantity,
    normalize_variant,
)
from boutique.cart.pricing import CartTotals, calculate_savings, calculate_totals
from boutique.config import Settings, get_settings
from boutique.db import StorageKeys
from boutique.errors import (
    ERROR_COUPON_INVALID_FORMAT,
    ERROR_COUPON_LOOKUP_FAILED,
    ERROR_COUPON_LOOKUP_TIMEOUT,
    ERROR_INVALID_QUANTITY,
    ERROR_PRODUCT_OUT_OF_STOCK,
    CouponLookupError,
    InvalidProductError,
    ReasonCode,
)
from boutique.i18n import get_text
from boutique.logging import get_logger, sanitize_id_for_logging, sanitize_string_for_logging
from boutique.models import OperationResult
from boutique.observers import Observable
from boutique.services.money import format_money, to_float
from boutique.services.notifications import (
    LoggingNotifier,
    NotificationKind,
    Notifier,
    safe_notify,
)
from boutique.snapshots import LEGACY_VERSION, decode_snapshot, encode_snapshot, load_entries
from boutique.storage import SnapshotStore, get_snapshot_store

logger = get_logger(__name__)

ProductInput = Union[Product, Mapping]


def _is_quantity(value) -> bool:
    # bool is an int subclass
    return isinstance(value, int) and not isinstance(value, bool)


class CartManager(Observable):
    """
    Owns the shopper's cart for the lifetime of the process.

    Features:
    - Merge-on-add by (product_id, size, color)
    - Quantities clamped to known stock
    - At most one coupon, validated against the catalog
    - Best-effort persistence: the in-memory cart is authoritative
    """

    def __init__(
        self,
        store: SnapshotStore,
        notifier: Optional[Notifier] = None,
        catalog: Optional[CouponCatalog] = None,
        language: str = "pt",
        currency: str = "BRL",
        coupon_timeout: Optional[float] = None,
        autoload: bool = True,
    ):
        super().__init__()
        self.store = store
        self.notifier = notifier or LoggingNotifier()
        self.catalog = catalog or StaticCouponCatalog()
        self.language = language
        self.currency = currency
        self.coupon_timeout = coupon_timeout

        self._items: List[CartLineItem] = []
        self._coupon: Optional[Coupon] = None
        self._is_open = False
        self._legacy_coupon_pending = False

        if autoload:
            self.load()

    # ==================== Persistence ====================

    def load(self) -> None:
        """Replace the in-memory cart with the stored snapshot, if any."""
        data = decode_snapshot(self.store.load(StorageKeys.CART), label="cart snapshot")
        if data is None:
            self._items, self._coupon = [], None
            return

        loaded = load_entries(data["items"], CartLineItem.from_dict, label="cart item")
        self._items = self._merge_duplicates(loaded)

        coupon_data = data.get("coupon")
        if coupon_data is None and data["version"] == LEGACY_VERSION:
            raw_coupon = self.store.load(StorageKeys.LEGACY_CART_COUPON)
            coupon_data = self._legacy_coupon(raw_coupon) if raw_coupon else None
            self._legacy_coupon_pending = raw_coupon is not None
        self._coupon = self._read_coupon(coupon_data)

        logger.info("Loaded cart with %d line items", len(self._items))

    @staticmethod
    def _legacy_coupon(raw: str) -> Optional[dict]:
        # Legacy coupon key holds the bare coupon object
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return None
        return data if isinstance(data, dict) else None

    @staticmethod
    def _read_coupon(data) -> Optional[Coupon]:
        if not isinstance(data, dict):
            return None
        try:
            return Coupon.model_validate(data)
        except ValidationError as e:
            logger.warning("Dropping unreadable stored coupon: %d validation errors", e.error_count())
            return None

    @staticmethod
    def _merge_duplicates(items: List[CartLineItem]) -> List[CartLineItem]:
        merged: List[CartLineItem] = []
        by_identity = {}
        for item in items:
            existing = by_identity.get(item.identity)
            if existing is None:
                by_identity[item.identity] = item
                merged.append(item)
            else:
                existing.quantity = clamp_quantity(existing.quantity + item.quantity, existing.stock)
        return merged

    def _persist(self) -> None:
        snapshot = encode_snapshot(
            [item.to_dict() for item in self._items],
            coupon=self._coupon.to_dict() if self._coupon else None,
        )
        if self.store.save(StorageKeys.CART, snapshot) and self._legacy_coupon_pending:
            self._legacy_coupon_pending = not self.store.delete(StorageKeys.LEGACY_CART_COUPON)

    def _commit(self) -> None:
        self._persist()
        self._emit()

    def _notify(self, kind: NotificationKind, key: str, **kwargs) -> None:
        safe_notify(self.notifier, kind, get_text(f"cart.{key}", self.language, **kwargs))

    # ==================== Queries ====================

    @property
    def items(self) -> List[CartLineItem]:
        """Copies of the line items, in insertion order."""
        return [replace(item) for item in self._items]

    @property
    def coupon(self) -> Optional[Coupon]:
        return self._coupon

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def totals(self) -> CartTotals:
        return calculate_totals(self._items, self._coupon)

    @property
    def item_count(self) -> int:
        return self.totals.item_count

    @property
    def subtotal(self) -> Decimal:
        return self.totals.subtotal

    @property
    def discount(self) -> Decimal:
        return self.totals.discount

    @property
    def total(self) -> Decimal:
        return self.totals.total

    @property
    def savings(self) -> Decimal:
        return calculate_savings(self._items)

    def get_item(self, item_id: str) -> Optional[CartLineItem]:
        item = self._find(item_id)
        return replace(item) if item else None

    def _find(self, item_id: str) -> Optional[CartLineItem]:
        return next((item for item in self._items if item.id == item_id), None)

    def _find_by_identity(self, identity: tuple) -> Optional[CartLineItem]:
        return next((item for item in self._items if item.identity == identity), None)

    # ==================== Mutations ====================

    @staticmethod
    def _coerce_product(product: ProductInput) -> Product:
        if isinstance(product, Product):
            return product
        try:
            return Product.model_validate(product)
        except ValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            raise InvalidProductError(f"Invalid product data: {fields}") from e

    def add_item(
        self,
        product: ProductInput,
        size: Optional[str] = None,
        color: Optional[str] = None,
        quantity: int = 1,
    ) -> OperationResult:
        """Add a product variant, merging with an existing line for the same variant."""
        if not _is_quantity(quantity) or quantity < 1:
            raise ValueError(ERROR_INVALID_QUANTITY)
        product = self._coerce_product(product)
        size = normalize_variant(size, NO_SIZE)
        color = normalize_variant(color, NO_COLOR)
        item_id = CartLineItem.make_id(product.id, size, color)

        if product.stock == 0:
            logger.info("Rejected add of out-of-stock item %s", sanitize_id_for_logging(item_id))
            self._notify(NotificationKind.ERROR, "out_of_stock", name=product.name)
            return OperationResult(
                success=False,
                reason=ReasonCode.OUT_OF_STOCK,
                message=ERROR_PRODUCT_OUT_OF_STOCK,
                item_id=item_id,
            )

        existing = self._find_by_identity((product.id, size, color))
        if existing:
            # Caller supplies current reference data; keep the line in sync with it
            stock = product.stock if product.stock is not None else existing.stock
            existing.price = product.price
            existing.original_price = product.original_price
            existing.stock = stock
            existing.quantity = clamp_quantity(existing.quantity + quantity, stock)
            action = "merged"
        else:
            self._items.append(
                CartLineItem(
                    id=item_id,
                    product_id=product.id,
                    sku=product.sku,
                    name=product.name,
                    price=product.price,
                    original_price=product.original_price,
                    image=product.primary_image,
                    size=size,
                    color=color,
                    quantity=clamp_quantity(quantity, product.stock),
                    stock=product.stock,
                    category=product.category,
                    brand=product.brand,
                )
            )
            action = "added"

        self._commit()
        self._notify(NotificationKind.SUCCESS, "item_added")
        return OperationResult(success=True, item_id=item_id, action=action)

    def remove_item(self, item_id: str) -> bool:
        """Remove a line item. Unknown ids are ignored."""
        item = self._find(item_id)
        if item is None:
            return False

        self._items.remove(item)
        self._commit()
        self._notify(NotificationKind.SUCCESS, "item_removed")
        return True

    def update_quantity(self, item_id: str, quantity: int) -> Optional[CartLineItem]:
        """
        Set a line item's quantity.

        Quantities below 1 remove the item; others are clamped to [1, stock].
        Returns the updated line, or None when the item is gone or unknown.
        Non-integer quantities raise ValueError.
        """
        if not _is_quantity(quantity):
            raise ValueError(ERROR_INVALID_QUANTITY)
        if quantity < 1:
            self.remove_item(item_id)
            return None

        item = self._find(item_id)
        if item is None:
            return None

        item.quantity = clamp_quantity(quantity, item.stock)
        self._commit()
        return replace(item)

    def clear_cart(self) -> None:
        """Empty the cart and drop the coupon."""
        self._items = []
        self._coupon = None
        self._commit()
        self._notify(NotificationKind.SUCCESS, "cleared")

    # ==================== Coupons ====================

    async def apply_coupon(self, code: str, timeout: Optional[float] = None) -> CouponValidationResult:
        """
        Look up and attach a coupon, replacing any previous one.

        Business-rule rejections come back as an invalid result. Only a
        catalog transport failure raises (CouponLookupError); a lookup that
        exceeds the timeout is reported as a rejection.
        """
        normalized = normalize_code(code)
        if normalized is None:
            self._notify(NotificationKind.ERROR, "coupon_invalid")
            return CouponValidationResult(
                valid=False,
                reason=ReasonCode.INVALID_FORMAT,
                error_message=ERROR_COUPON_INVALID_FORMAT,
            )

        timeout = timeout if timeout is not None else self.coupon_timeout
        try:
            coupon = await asyncio.wait_for(self.catalog.find_coupon(normalized), timeout)
        except asyncio.TimeoutError:
            logger.warning("Coupon lookup timed out for %s", sanitize_string_for_logging(normalized))
            self._notify(NotificationKind.ERROR, "coupon_timeout")
            return CouponValidationResult(
                valid=False,
                code=normalized,
                reason=ReasonCode.LOOKUP_TIMEOUT,
                error_message=ERROR_COUPON_LOOKUP_TIMEOUT,
            )
        except CouponLookupError:
            raise
        except Exception as e:
            raise CouponLookupError(ERROR_COUPON_LOOKUP_FAILED) from e

        # Subtotal is read after the lookup; the cart may have changed meanwhile
        result = validate_coupon(coupon, self.subtotal, code=normalized)
        if not result.valid:
            logger.info(
                "Coupon %s rejected: %s",
                sanitize_string_for_logging(normalized),
                result.reason.value if result.reason else "unknown",
            )
            self._notify_coupon_rejection(result, coupon)
            return result

        self._coupon = result.coupon
        self._commit()
        self._notify(NotificationKind.SUCCESS, "coupon_applied", code=result.code)
        return result

    def _notify_coupon_rejection(self, result: CouponValidationResult, coupon: Optional[Coupon]) -> None:
        if result.reason == ReasonCode.BELOW_MINIMUM and coupon is not None:
            self._notify(
                NotificationKind.ERROR,
                "coupon_min_value",
                code=result.code,
                min_value=format_money(coupon.min_value, self.currency),
            )
        elif result.reason == ReasonCode.EXHAUSTED:
            self._notify(NotificationKind.ERROR, "coupon_exhausted", code=result.code)
        else:
            self._notify(NotificationKind.ERROR, "coupon_invalid")

    def remove_coupon(self) -> bool:
        """Detach the current coupon. No-op when none is attached."""
        if self._coupon is None:
            return False
        self._coupon = None
        self._commit()
        self._notify(NotificationKind.SUCCESS, "coupon_removed")
        return True

    # ==================== Visibility ====================

    def open_cart(self) -> None:
        self._is_open = True
        self._emit()

    def close_cart(self) -> None:
        self._is_open = False
        self._emit()

    def toggle_cart(self) -> None:
        self._is_open = not self._is_open
        self._emit()

    # ==================== Summary ====================

    def summary(self) -> dict:
        """Cart summary for UI rendering."""
        totals = self.totals
        if not self._items:
            return {
                "is_empty": True,
                "item_count": 0,
                "items": [],
                "subtotal": 0.0,
                "discount": 0.0,
                "total": 0.0,
                "savings": 0.0,
                "coupon": self._coupon.code if self._coupon else None,
                "currency": self.currency,
                "display_total": format_money(0, self.currency),
            }

        return {
            "is_empty": False,
            "item_count": totals.item_count,
            "items": [
                {
                    "id": item.id,
                    "product_id": item.product_id,
                    "name": item.name,
                    "size": item.size,
                    "color": item.color,
                    "quantity": item.quantity,
                    "unit_price": to_float(item.price),
                    "total": to_float(item.line_total),
                    "display_total": format_money(item.line_total, self.currency),
                }
                for item in self._items
            ],
            "subtotal": to_float(totals.subtotal),
            "discount": to_float(totals.discount),
            "total": to_float(totals.total),
            "savings": to_float(self.savings),
            "coupon": self._coupon.code if self._coupon else None,
            "currency": self.currency,
            "display_total": format_money(totals.total, self.currency),
        }


def build_cart_manager(
    settings: Optional[Settings] = None,
    store: Optional[SnapshotStore] = None,
    notifier: Optional[Notifier] = None,
) -> CartManager:
    """Wire a CartManager from configuration."""
    settings = settings or get_settings()
    if settings.supabase_url and settings.supabase_service_role_key:
        catalog: CouponCatalog = SupabaseCouponCatalog()
    else:
        catalog = StaticCouponCatalog()

    return CartManager(
        store=store or get_snapshot_store(),
        notifier=notifier,
        catalog=catalog,
        language=settings.language,
        currency=settings.currency,
        coupon_timeout=settings.coupon_timeout,
    )


# Singleton instance
_cart_manager: Optional[CartManager] = None


def get_cart_manager() -> CartManager:
    """Get CartManager singleton."""
    global _cart_manager
    if _cart_manager is None:
        _cart_manager = build_cart_manager()
    return _cart_manager
