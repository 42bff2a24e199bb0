"""Wishlist package: saved products and their manager."""
from .models import WishlistItem
from .service import WishlistManager, build_wishlist_manager, get_wishlist_manager

__all__ = [
    "WishlistItem",
    "WishlistManager",
    "build_wishlist_manager",
    "get_wishlist_manager",
]
