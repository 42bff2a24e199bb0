"""Pytest configuration and fixtures"""
import os
from datetime import datetime, timedelta, timezone

import pytest

# Set test environment variables
os.environ.setdefault("BOUTIQUE_STORAGE_BACKEND", "memory")
os.environ.setdefault("BOUTIQUE_LANGUAGE", "en")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from boutique.cart import CartManager, Coupon  # noqa: E402
from boutique.cart.coupons import StaticCouponCatalog  # noqa: E402
from boutique.services.notifications import RecordingNotifier  # noqa: E402
from boutique.storage import MemorySnapshotStore  # noqa: E402
from boutique.wishlist import WishlistManager  # noqa: E402


class FailingStore(MemorySnapshotStore):
    """Store whose backend is down."""

    backend = "failing"

    def _read(self, key):
        raise ConnectionError("backend down")

    def _write(self, key, snapshot):
        raise ConnectionError("backend down")

    def _remove(self, key):
        raise ConnectionError("backend down")


@pytest.fixture
def memory_store():
    """Empty in-memory snapshot store"""
    return MemorySnapshotStore()


@pytest.fixture
def failing_store():
    """Snapshot store that fails every operation"""
    return FailingStore()


@pytest.fixture
def notifier():
    """Notifier that records messages"""
    return RecordingNotifier()


@pytest.fixture
def sample_coupons():
    """Coupons covering each eligibility rule"""
    now = datetime.now(timezone.utc)
    return [
        Coupon(code="SAVE50", discount=50, type="fixed", min_value=100),
        Coupon(code="BIGSPENDER", discount=50, type="fixed", min_value=500),
        Coupon(code="DESCONTO10", discount=10, type="percentage"),
        Coupon(code="CAPPED20", discount=20, type="percentage", max_discount=25),
        Coupon(code="PAUSED", discount=10, type="percentage", is_active=False),
        Coupon(code="OLDPROMO", discount=10, type="percentage", expires_at=now - timedelta(days=1)),
        Coupon(code="SOON", discount=10, type="percentage", starts_at=now + timedelta(days=1)),
        Coupon(code="SOLDOUT", discount=10, type="percentage", usage_limit=5, used_count=5),
    ]


@pytest.fixture
def coupon_catalog(sample_coupons):
    """Static coupon catalog"""
    return StaticCouponCatalog(sample_coupons)


@pytest.fixture
def cart(memory_store, notifier, coupon_catalog):
    """Empty cart backed by the in-memory store"""
    return CartManager(
        store=memory_store,
        notifier=notifier,
        catalog=coupon_catalog,
        language="en",
    )


@pytest.fixture
def wishlist(memory_store, notifier):
    """Empty wishlist backed by the in-memory store"""
    return WishlistManager(store=memory_store, notifier=notifier, language="en")


@pytest.fixture
def sample_product():
    """Sample product data as the storefront passes it"""
    return {
        "id": "prod-123",
        "sku": "VST-001",
        "name": "Vestido Floral",
        "price": "100.00",
        "originalPrice": "129.90",
        "images": ["/img/vestido-1.jpg", "/img/vestido-2.jpg"],
        "stock": 5,
        "category": {"name": "Vestidos"},
        "brand": "Maria Flor",
    }


@pytest.fixture
def sample_wishlist_item():
    """Sample wishlist item data"""
    return {
        "id": "p1",
        "sku": "BLS-010",
        "name": "Blusa de Seda",
        "brand": "Maria Flor",
        "price": "89.90",
        "originalPrice": "99.90",
        "image": "/img/blusa.jpg",
        "category": "Blusas",
    }
