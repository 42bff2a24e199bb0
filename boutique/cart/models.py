"""Cart models with Decimal-based pricing."""
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from boutique.errors import ReasonCode
from boutique.services.money import multiply, to_decimal

PLACEHOLDER_IMAGE = "/placeholder-product.jpg"

# Placeholders used in line item ids for a missing variant
NO_SIZE = "no-size"
NO_COLOR = "no-color"


def _first(data: dict, *keys: str, default: Any = None) -> Any:
    """Return the first present key; snapshots may use snake or camel case."""
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return default


def _name_of(value: Any) -> Any:
    # Catalog rows embed category/brand as {"name": ...}
    if isinstance(value, dict):
        return value.get("name")
    return value


def _optional_int(value: Any) -> Optional[int]:
    return None if value is None else int(value)


def _optional_decimal(value: Any) -> Optional[Decimal]:
    return None if value is None else to_decimal(value)


def normalize_variant(value: Any, placeholder: str) -> Optional[str]:
    """Blank values and the id placeholder all mean "no variant"."""
    if value is None:
        return None
    value = str(value).strip()
    if not value or value == placeholder:
        return None
    return value


def clamp_quantity(quantity: int, stock: Optional[int]) -> int:
    """Constrain a requested quantity to [1, stock].

    Unknown stock (None) and zero stock only enforce the lower bound.
    """
    quantity = max(1, quantity)
    if stock is not None and stock > 0:
        quantity = min(quantity, stock)
    return quantity


class Product(BaseModel):
    """Product reference data handed to the cart at add time."""
    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    sku: str = ""
    name: str = Field(min_length=1)
    price: Decimal = Field(ge=0)
    original_price: Optional[Decimal] = Field(
        default=None, ge=0, validation_alias=AliasChoices("original_price", "originalPrice")
    )
    images: List[str] = Field(default_factory=list)
    image: Optional[str] = None
    stock: Optional[int] = Field(
        default=None, ge=0, validation_alias=AliasChoices("stock", "stock_quantity")
    )
    category: Optional[str] = None
    brand: Optional[str] = None

    @field_validator("id", "name", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("category", "brand", mode="before")
    @classmethod
    def _flatten_name(cls, value):
        return _name_of(value)

    @property
    def primary_image(self) -> str:
        if self.images:
            return self.images[0]
        return self.image or PLACEHOLDER_IMAGE


@dataclass
class CartLineItem:
    """One product variant in the cart."""
    id: str
    product_id: str
    name: str
    price: Decimal
    quantity: int
    sku: str = ""
    stock: Optional[int] = None  # None = unknown, no clamp
    original_price: Optional[Decimal] = None
    image: str = PLACEHOLDER_IMAGE
    size: Optional[str] = None
    color: Optional[str] = None
    category: Optional[str] = None
    brand: Optional[str] = None

    def __post_init__(self):
        self.price = to_decimal(self.price)
        if self.original_price is not None:
            self.original_price = to_decimal(self.original_price)
        self.size = normalize_variant(self.size, NO_SIZE)
        self.color = normalize_variant(self.color, NO_COLOR)

    @staticmethod
    def make_id(product_id: str, size: Optional[str] = None, color: Optional[str] = None) -> str:
        """Stable line item id for a variant identity."""
        size = normalize_variant(size, NO_SIZE) or NO_SIZE
        color = normalize_variant(color, NO_COLOR) or NO_COLOR
        return f"{product_id}-{size}-{color}"

    @property
    def identity(self) -> tuple:
        return (self.product_id, self.size, self.color)

    @property
    def line_total(self) -> Decimal:
        """Price for all units of this line."""
        return multiply(self.price, self.quantity)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "product_id": self.product_id,
            "sku": self.sku,
            "name": self.name,
            "price": str(self.price),
            "original_price": str(self.original_price) if self.original_price is not None else None,
            "image": self.image,
            "size": self.size,
            "color": self.color,
            "quantity": self.quantity,
            "stock": self.stock,
            "category": self.category,
            "brand": self.brand,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CartLineItem":
        """Create from dictionary. Missing optional fields fall back to defaults."""
        product_id = str(_first(data, "product_id", "productId"))
        size = _first(data, "size")
        color = _first(data, "color")
        quantity = int(data["quantity"])
        if quantity < 1:
            raise ValueError(f"quantity must be >= 1, got {quantity}")

        return cls(
            id=_first(data, "id", default=None) or cls.make_id(product_id, size, color),
            product_id=product_id,
            sku=_first(data, "sku", default="") or "",
            name=str(data["name"]),
            price=to_decimal(data["price"]),
            original_price=_optional_decimal(_first(data, "original_price", "originalPrice")),
            image=_first(data, "image", default=PLACEHOLDER_IMAGE),
            size=size,
            color=color,
            quantity=quantity,
            stock=_optional_int(_first(data, "stock")),
            category=_name_of(_first(data, "category")),
            brand=_name_of(_first(data, "brand")),
        )


class CouponType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class Coupon(BaseModel):
    """Named discount rule. Code comparison is case-insensitive."""
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    code: str = Field(min_length=1)
    discount: Decimal = Field(ge=0)
    type: CouponType
    min_value: Optional[Decimal] = Field(
        default=None, ge=0, validation_alias=AliasChoices("min_value", "minValue")
    )
    max_discount: Optional[Decimal] = Field(
        default=None, ge=0, validation_alias=AliasChoices("max_discount", "maxDiscount")
    )
    is_active: bool = Field(default=True, validation_alias=AliasChoices("is_active", "isActive"))
    starts_at: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("starts_at", "startsAt")
    )
    expires_at: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("expires_at", "expiresAt")
    )
    usage_limit: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("usage_limit", "usageLimit")
    )
    used_count: int = Field(default=0, validation_alias=AliasChoices("used_count", "usedCount"))

    @field_validator("code", mode="before")
    @classmethod
    def _normalize_code(cls, value):
        return value.strip().upper() if isinstance(value, str) else value

    @field_validator("starts_at", "expires_at")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")


class CouponValidationResult(BaseModel):
    """Result of coupon validation."""
    valid: bool
    code: Optional[str] = None
    coupon: Optional[Coupon] = None
    discount: Decimal = Decimal("0")
    reason: Optional[ReasonCode] = None
    error_message: Optional[str] = None
