"""Client-held shopping cart and wishlist engine for the boutique storefront."""

__version__ = "1.0.0"
