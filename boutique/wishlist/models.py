"""Wishlist models."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from boutique.services.money import to_decimal


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    """Read an ISO-8601 timestamp; naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _text(value: Any) -> str:
    if isinstance(value, dict):
        value = value.get("name")
    return "" if value is None else str(value)


class WishlistEntry(BaseModel):
    """Required fields of an item handed to the wishlist."""
    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    price: Decimal = Field(ge=0)
    original_price: Optional[Decimal] = Field(
        default=None, ge=0, validation_alias=AliasChoices("original_price", "originalPrice")
    )

    @field_validator("id", "name", mode="before")
    @classmethod
    def _strip(cls, value):
        # Storefront ids are sometimes numeric
        return str(value).strip() if value is not None else value


@dataclass
class WishlistItem:
    """A saved product. added_at is set once, at insertion."""
    id: str
    name: str
    price: Decimal
    sku: str = ""
    brand: str = ""
    original_price: Optional[Decimal] = None
    image: str = ""
    category: str = ""
    added_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        self.price = to_decimal(self.price)
        if self.original_price is not None:
            self.original_price = to_decimal(self.original_price)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "brand": self.brand,
            "price": str(self.price),
            "original_price": str(self.original_price) if self.original_price is not None else None,
            "image": self.image,
            "category": self.category,
            "added_at": self.added_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WishlistItem":
        """Create from dictionary (snake_case or the older camelCase keys)."""
        original_price = data.get("original_price", data.get("originalPrice"))
        added_at = data.get("added_at", data.get("addedAt"))
        return cls(
            id=str(data["id"]).strip(),
            sku=_text(data.get("sku")),
            name=str(data["name"]),
            brand=_text(data.get("brand")),
            price=to_decimal(data.get("price")),
            original_price=to_decimal(original_price) if original_price is not None else None,
            image=_text(data.get("image")),
            category=_text(data.get("category")),
            added_at=parse_timestamp(added_at) if added_at else utcnow(),
        )
