"""Wishlist Manager.

Handles the shopper's saved products. The collection keeps insertion
order, which is also the display order, and is persisted through the
same snapshot store as the cart under its own key.
"""
from dataclasses import replace
from typing import List, Mapping, Optional, Union

from pydantic import ValidationError

from boutique.config import Settings, get_settings
from boutique.db import StorageKeys
from boutique.errors import (
    ERROR_WISHLIST_DUPLICATE,
    ERROR_WISHLIST_ID_REQUIRED,
    ERROR_WISHLIST_NAME_REQUIRED,
    ERROR_WISHLIST_PRICE_INVALID,
    InvalidWishlistItemError,
    ReasonCode,
)
from boutique.i18n import get_text
from boutique.logging import get_logger, sanitize_id_for_logging
from boutique.models import OperationResult
from boutique.observers import Observable
from boutique.services.notifications import (
    LoggingNotifier,
    NotificationKind,
    Notifier,
    safe_notify,
)
from boutique.snapshots import decode_snapshot, encode_snapshot, load_entries
from boutique.storage import SnapshotStore, get_snapshot_store

from .models import WishlistEntry, WishlistItem, utcnow

logger = get_logger(__name__)

_FIELD_ERRORS = {
    "id": ERROR_WISHLIST_ID_REQUIRED,
    "name": ERROR_WISHLIST_NAME_REQUIRED,
    "price": ERROR_WISHLIST_PRICE_INVALID,
}

WishlistInput = Union[WishlistItem, Mapping]


class WishlistManager(Observable):
    """Wishlist domain service.

    Provides clean interface for wishlist operations.
    """

    def __init__(
        self,
        store: SnapshotStore,
        notifier: Optional[Notifier] = None,
        language: str = "pt",
        autoload: bool = True,
    ) -> None:
        super().__init__()
        self.store = store
        self.notifier = notifier or LoggingNotifier()
        self.language = language
        self._items: List[WishlistItem] = []

        if autoload:
            self.load()

    def load(self) -> None:
        """Replace the in-memory wishlist with the stored snapshot, if any."""
        data = decode_snapshot(self.store.load(StorageKeys.WISHLIST), label="wishlist snapshot")
        if data is None:
            self._items = []
            return

        items: List[WishlistItem] = []
        seen = set()
        for item in load_entries(data["items"], WishlistItem.from_dict, label="wishlist item"):
            if item.id in seen:
                continue
            seen.add(item.id)
            items.append(item)
        self._items = items
        logger.info("Loaded wishlist with %d items", len(items))

    def _commit(self) -> None:
        self.store.save(
            StorageKeys.WISHLIST,
            encode_snapshot([item.to_dict() for item in self._items]),
        )
        self._emit()

    def _notify(self, kind: NotificationKind, key: str) -> None:
        safe_notify(self.notifier, kind, get_text(f"wishlist.{key}", self.language))

    @property
    def items(self) -> List[WishlistItem]:
        """Copies of the saved items, oldest first."""
        return [replace(item) for item in self._items]

    @property
    def item_count(self) -> int:
        return len(self._items)

    def get_item(self, item_id: str) -> Optional[WishlistItem]:
        item = next((item for item in self._items if item.id == item_id), None)
        return replace(item) if item else None

    def is_in_wishlist(self, item_id: str) -> bool:
        """Check if a product is saved."""
        return any(item.id == item_id for item in self._items)

    @staticmethod
    def _as_dict(item: WishlistInput) -> dict:
        if isinstance(item, WishlistItem):
            return item.to_dict()
        if isinstance(item, Mapping):
            return dict(item)
        raise InvalidWishlistItemError(f"Unsupported wishlist item type: {type(item).__name__}")

    @classmethod
    def _coerce_item(cls, item: WishlistInput) -> WishlistItem:
        data = cls._as_dict(item)

        try:
            WishlistEntry.model_validate(data)
        except ValidationError as e:
            failed = [str(err["loc"][0]) for err in e.errors() if err["loc"]]
            field_name = failed[0] if failed else ""
            raise InvalidWishlistItemError(
                _FIELD_ERRORS.get(field_name, f"Invalid wishlist item: {', '.join(failed)}")
            ) from e

        try:
            return WishlistItem.from_dict(data)
        except (KeyError, ValueError, TypeError) as e:
            raise InvalidWishlistItemError(f"Invalid wishlist item: {e}") from e

    def add_item(self, item: WishlistInput) -> OperationResult:
        """Save a product.

        Args:
            item: Wishlist item data; any added_at it carries is ignored

        Returns:
            Success, or a duplicate rejection when the id is already saved

        """
        new_item = self._coerce_item(item)

        if self.is_in_wishlist(new_item.id):
            self._notify(NotificationKind.ERROR, "duplicate")
            return OperationResult(
                success=False,
                reason=ReasonCode.DUPLICATE,
                message=ERROR_WISHLIST_DUPLICATE,
                item_id=new_item.id,
            )

        new_item.added_at = utcnow()
        self._items.append(new_item)
        self._commit()
        logger.debug("Wishlist add %s", sanitize_id_for_logging(new_item.id))
        self._notify(NotificationKind.SUCCESS, "item_added")
        return OperationResult(success=True, item_id=new_item.id, action="added")

    def remove_item(self, item_id: str) -> bool:
        """Remove a product. Unknown ids are ignored."""
        remaining = [item for item in self._items if item.id != item_id]
        if len(remaining) == len(self._items):
            return False

        self._items = remaining
        self._commit()
        self._notify(NotificationKind.SUCCESS, "item_removed")
        return True

    def clear_wishlist(self) -> None:
        self._items = []
        self._commit()
        self._notify(NotificationKind.SUCCESS, "cleared")

    def toggle_item(self, item: WishlistInput) -> OperationResult:
        """Remove the item if saved, save it otherwise."""
        # Removal only needs the id
        item_id = str(self._as_dict(item).get("id") or "").strip()
        if item_id and self.is_in_wishlist(item_id):
            self.remove_item(item_id)
            return OperationResult(success=True, item_id=item_id, action="removed")
        return self.add_item(item)


def build_wishlist_manager(
    settings: Optional[Settings] = None,
    store: Optional[SnapshotStore] = None,
    notifier: Optional[Notifier] = None,
) -> WishlistManager:
    """Wire a WishlistManager from configuration."""
    settings = settings or get_settings()
    return WishlistManager(
        store=store or get_snapshot_store(),
        notifier=notifier,
        language=settings.language,
    )


# Singleton instance
_wishlist_manager: Optional[WishlistManager] = None


def get_wishlist_manager() -> WishlistManager:
    """Get WishlistManager singleton."""
    global _wishlist_manager
    if _wishlist_manager is None:
        _wishlist_manager = build_wishlist_manager()
    return _wishlist_manager
