"""
Tests for Cart Manager
"""

import json
from decimal import Decimal

import pytest

from boutique.cart import CartLineItem, CartManager, Product
from boutique.db import StorageKeys
from boutique.errors import InvalidProductError, ReasonCode
from boutique.services.notifications import NotificationKind


def product(product_id="prod-1", price="100", stock=5, **extra):
    data = {"id": product_id, "name": f"Product {product_id}", "price": price, "stock": stock}
    data.update(extra)
    return data


class TestCartLineItem:
    """Tests for CartLineItem dataclass."""

    def test_make_id(self):
        """Test id derivation from the variant identity."""
        assert CartLineItem.make_id("prod-1", "M", "azul") == "prod-1-M-azul"
        assert CartLineItem.make_id("prod-1") == "prod-1-no-size-no-color"

    def test_line_total(self):
        """Test price for all units."""
        item = CartLineItem(
            id="prod-1-M-no-color",
            product_id="prod-1",
            name="Test",
            price="19.90",
            quantity=3,
            size="M",
        )

        assert item.line_total == Decimal("59.70")

    def test_from_dict_camel_case(self):
        """Test reading an older snapshot entry."""
        data = {
            "id": "prod-1-P-preto",
            "productId": "prod-1",
            "sku": "SKU-1",
            "name": "Test",
            "price": 49.9,
            "originalPrice": 59.9,
            "image": "/img.jpg",
            "size": "P",
            "color": "preto",
            "quantity": 2,
            "stock": 999,
        }

        item = CartLineItem.from_dict(data)

        assert item.product_id == "prod-1"
        assert item.price == Decimal("49.9")
        assert item.original_price == Decimal("59.9")
        assert item.identity == ("prod-1", "P", "preto")
        assert item.category is None

    def test_from_dict_rejects_zero_quantity(self):
        """Test that stored entries with quantity below 1 are unreadable."""
        with pytest.raises(ValueError):
            CartLineItem.from_dict({"product_id": "p", "name": "x", "price": "1", "quantity": 0})


class TestAddItem:
    """Tests for CartManager.add_item."""

    def test_merge_and_clamp_scenario(self, cart):
        """Test repeated adds of one variant merge and clamp to stock."""
        cart.add_item(product("A", stock=5), size="M", quantity=2)
        assert len(cart.items) == 1
        assert cart.items[0].quantity == 2

        cart.add_item(product("A", stock=5), size="M", quantity=2)
        assert len(cart.items) == 1
        assert cart.items[0].quantity == 4

        result = cart.add_item(product("A", stock=5), size="M", quantity=5)
        assert result.success is True
        assert result.action == "merged"
        assert len(cart.items) == 1
        assert cart.items[0].quantity == 5

    def test_variants_are_separate_lines(self, cart):
        """Test that size and color are part of the identity."""
        cart.add_item(product("A"), size="M")
        cart.add_item(product("A"), size="G")
        cart.add_item(product("A"), size="M", color="azul")

        assert [item.id for item in cart.items] == [
            "A-M-no-color",
            "A-G-no-color",
            "A-M-azul",
        ]

    @pytest.mark.parametrize("size,color", [
        ("", None),
        ("  ", ""),
        ("no-size", "no-color"),
    ])
    def test_blank_variant_matches_no_variant(self, cart, size, color):
        """Test that blank or placeholder variants merge into the plain line."""
        cart.add_item(product("A", stock=None))
        result = cart.add_item(product("A", stock=None), size=size, color=color)

        assert result.action == "merged"
        assert [(item.id, item.size, item.color) for item in cart.items] == [
            ("A-no-size-no-color", None, None),
        ]
        assert cart.items[0].quantity == 2

        assert cart.remove_item("A-no-size-no-color") is True
        assert cart.items == []

    def test_new_item_clamped_to_stock(self, cart):
        """Test that a first add above stock is clamped, not dropped."""
        cart.add_item(product("A", stock=3), quantity=10)

        assert cart.items[0].quantity == 3

    def test_unknown_stock_is_not_clamped(self, cart):
        """Test that products without stock information are not limited."""
        cart.add_item(product("A", stock=None), quantity=50)

        assert cart.items[0].quantity == 50
        assert cart.items[0].stock is None

    def test_zero_stock_rejected(self, cart, notifier):
        """Test that out-of-stock products are reported and not added."""
        result = cart.add_item(product("A", stock=0))

        assert result.success is False
        assert result.reason == ReasonCode.OUT_OF_STOCK
        assert cart.items == []
        assert notifier.last[0] == NotificationKind.ERROR

    def test_product_fields_copied(self, cart, sample_product):
        """Test that reference data is copied onto the line item."""
        cart.add_item(sample_product, size="M", color="rosa")

        item = cart.get_item("prod-123-M-rosa")
        assert item is not None
        assert item.sku == "VST-001"
        assert item.image == "/img/vestido-1.jpg"
        assert item.category == "Vestidos"
        assert item.brand == "Maria Flor"
        assert item.original_price == Decimal("129.90")

    def test_merge_refreshes_price(self, cart):
        """Test that a merge keeps the line in sync with current price."""
        cart.add_item(product("A", price="100"))
        cart.add_item(product("A", price="80"))

        assert cart.items[0].price == Decimal("80")
        assert cart.subtotal == Decimal("160")

    def test_accepts_product_model(self, cart):
        """Test adding a Product instance."""
        cart.add_item(Product(id="A", name="Saia", price=Decimal("59.90")))

        assert cart.items[0].name == "Saia"
        assert cart.items[0].image == "/placeholder-product.jpg"

    def test_missing_name_raises(self, cart):
        """Test that incomplete product data fails loudly."""
        with pytest.raises(InvalidProductError):
            cart.add_item({"id": "A", "price": "10"})

    def test_negative_price_raises(self, cart):
        """Test that invalid prices fail loudly."""
        with pytest.raises(InvalidProductError):
            cart.add_item(product("A", price="-1"))

    def test_invalid_quantity_raises(self, cart):
        """Test that add quantities below 1 are rejected."""
        with pytest.raises(ValueError):
            cart.add_item(product("A"), quantity=0)

    def test_success_notification(self, cart, notifier):
        """Test notification on add."""
        cart.add_item(product("A"))

        assert notifier.last == (NotificationKind.SUCCESS, "Product added to cart!")


class TestQuantityAndRemoval:
    """Tests for update_quantity, remove_item and clear_cart."""

    def test_update_within_stock(self, cart):
        cart.add_item(product("A", stock=10))

        updated = cart.update_quantity("A-no-size-no-color", 7)

        assert updated.quantity == 7
        assert cart.item_count == 7

    def test_update_clamped_to_stock(self, cart):
        cart.add_item(product("A", stock=4))

        updated = cart.update_quantity("A-no-size-no-color", 40)

        assert updated.quantity == 4

    @pytest.mark.parametrize("quantity", [0, -1, -100])
    def test_update_below_one_removes(self, cart, quantity):
        cart.add_item(product("A"))

        assert cart.update_quantity("A-no-size-no-color", quantity) is None
        assert cart.items == []

    @pytest.mark.parametrize("quantity", [2.5, "3", True, None])
    def test_update_non_integer_raises(self, cart, memory_store, quantity):
        """Test that fractional or non-numeric quantities never reach the line."""
        cart.add_item(product("A", price="10"))
        saved = memory_store.data[StorageKeys.CART]

        with pytest.raises(ValueError):
            cart.update_quantity("A-no-size-no-color", quantity)

        assert cart.items[0].quantity == 1
        assert cart.subtotal == Decimal("10")
        assert memory_store.data[StorageKeys.CART] == saved

    def test_update_unknown_id_is_noop(self, cart):
        cart.add_item(product("A"))

        assert cart.update_quantity("missing", 3) is None
        assert cart.items[0].quantity == 1

    def test_remove_item(self, cart):
        cart.add_item(product("A"))
        cart.add_item(product("B"))

        assert cart.remove_item("A-no-size-no-color") is True
        assert [item.product_id for item in cart.items] == ["B"]

    def test_remove_unknown_id_is_noop(self, cart):
        assert cart.remove_item("missing") is False

    @pytest.mark.asyncio
    async def test_clear_cart_drops_coupon(self, cart):
        cart.add_item(product("A", price="200"))
        await cart.apply_coupon("SAVE50")

        cart.clear_cart()

        assert cart.items == []
        assert cart.coupon is None
        assert cart.total == 0

    def test_items_are_copies(self, cart):
        """Test that callers cannot mutate the cart through returned items."""
        cart.add_item(product("A"))

        cart.items[0].quantity = 99

        assert cart.items[0].quantity == 1


class TestCoupons:
    """Tests for coupon application."""

    @pytest.mark.asyncio
    async def test_fixed_coupon_scenario(self, cart):
        """Test subtotal 200 with a 50 off coupon above its minimum."""
        cart.add_item(product("A", price="200"))

        result = await cart.apply_coupon("SAVE50")

        assert result.valid is True
        assert cart.coupon.code == "SAVE50"
        assert cart.total == Decimal("150")

    @pytest.mark.asyncio
    async def test_below_minimum_rejected(self, cart, notifier):
        """Test that an order below the coupon floor is left unchanged."""
        cart.add_item(product("A", price="200"))

        result = await cart.apply_coupon("BIGSPENDER")

        assert result.valid is False
        assert result.reason == ReasonCode.BELOW_MINIMUM
        assert cart.coupon is None
        assert cart.total == Decimal("200")
        assert "R$ 500,00" in notifier.last[1]

    @pytest.mark.asyncio
    async def test_code_is_case_insensitive(self, cart):
        cart.add_item(product("A", price="200"))

        result = await cart.apply_coupon("  save50 ")

        assert result.valid is True
        assert result.code == "SAVE50"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "code,reason",
        [
            ("NOPE", ReasonCode.NOT_FOUND),
            ("PAUSED", ReasonCode.INACTIVE),
            ("OLDPROMO", ReasonCode.EXPIRED),
            ("SOON", ReasonCode.NOT_STARTED),
            ("SOLDOUT", ReasonCode.EXHAUSTED),
            ("!!", ReasonCode.INVALID_FORMAT),
            ("", ReasonCode.INVALID_FORMAT),
        ],
    )
    async def test_rejections(self, cart, code, reason):
        cart.add_item(product("A", price="200"))

        result = await cart.apply_coupon(code)

        assert result.valid is False
        assert result.reason == reason
        assert cart.coupon is None

    @pytest.mark.asyncio
    async def test_new_coupon_replaces_previous(self, cart):
        cart.add_item(product("A", price="200"))
        await cart.apply_coupon("SAVE50")

        await cart.apply_coupon("DESCONTO10")

        assert cart.coupon.code == "DESCONTO10"
        assert cart.total == Decimal("180.00")

    @pytest.mark.asyncio
    async def test_rejected_coupon_keeps_previous(self, cart):
        cart.add_item(product("A", price="200"))
        await cart.apply_coupon("SAVE50")

        await cart.apply_coupon("PAUSED")

        assert cart.coupon.code == "SAVE50"

    @pytest.mark.asyncio
    async def test_apply_then_remove_restores_total(self, cart):
        cart.add_item(product("A", price="120"), quantity=2)
        before = cart.total

        await cart.apply_coupon("CAPPED20")
        assert cart.total == Decimal("215.00")

        assert cart.remove_coupon() is True
        assert cart.total == before

    def test_remove_coupon_without_coupon(self, cart):
        assert cart.remove_coupon() is False

    @pytest.mark.asyncio
    async def test_lookup_timeout_is_reported(self, memory_store, notifier):
        """Test that a slow catalog produces a failure result, not an exception."""
        import asyncio

        class SlowCatalog:
            async def find_coupon(self, code):
                await asyncio.sleep(1)

        cart = CartManager(store=memory_store, notifier=notifier, catalog=SlowCatalog(), language="en")
        cart.add_item(product("A", price="200"))

        result = await cart.apply_coupon("SAVE50", timeout=0.01)

        assert result.valid is False
        assert result.reason == ReasonCode.LOOKUP_TIMEOUT
        assert notifier.last[0] == NotificationKind.ERROR

    @pytest.mark.asyncio
    async def test_transport_failure_raises(self, memory_store, notifier):
        """Test that catalog failures surface as CouponLookupError."""
        from boutique.errors import CouponLookupError

        class BrokenCatalog:
            async def find_coupon(self, code):
                raise ConnectionError("catalog down")

        cart = CartManager(store=memory_store, notifier=notifier, catalog=BrokenCatalog())

        with pytest.raises(CouponLookupError):
            await cart.apply_coupon("SAVE50")


class TestPersistence:
    """Tests for snapshot load/save through the store."""

    @pytest.mark.asyncio
    async def test_round_trip(self, memory_store, notifier, coupon_catalog):
        cart = CartManager(store=memory_store, notifier=notifier, catalog=coupon_catalog)
        cart.add_item(product("A", price="19.90", stock=5), size="M", quantity=3)
        cart.add_item(product("B", price="5.05", stock=None), color="azul", quantity=2)
        await cart.apply_coupon("DESCONTO10")

        restored = CartManager(store=memory_store, notifier=notifier, catalog=coupon_catalog)

        assert restored.items == cart.items
        assert restored.coupon.code == cart.coupon.code
        assert restored.coupon.discount == cart.coupon.discount
        assert restored.total == cart.total

    def test_snapshot_layout(self, cart, memory_store):
        cart.add_item(product("A"))

        data = json.loads(memory_store.data[StorageKeys.CART])

        assert data["version"] == 1
        assert data["items"][0]["product_id"] == "A"
        assert data["coupon"] is None

    def test_starts_empty_without_snapshot(self, memory_store):
        cart = CartManager(store=memory_store)

        assert cart.items == []
        assert cart.total == 0

    def test_corrupted_snapshot_starts_empty(self, memory_store):
        memory_store.data[StorageKeys.CART] = "{not json"

        cart = CartManager(store=memory_store)

        assert cart.items == []

    def test_legacy_snapshot_with_separate_coupon(self, memory_store, notifier):
        """Test loading the older list layout plus its coupon key."""
        memory_store.data[StorageKeys.CART] = json.dumps([
            {
                "id": "A-M-no-color",
                "productId": "A",
                "sku": "",
                "name": "Legacy",
                "price": 100,
                "image": "/x.jpg",
                "size": "M",
                "quantity": 2,
                "stock": 999,
            },
            {"productId": "B", "name": "Broken"},
        ])
        memory_store.data[StorageKeys.LEGACY_CART_COUPON] = json.dumps(
            {"id": "2", "code": "FRETE50", "discount": 50, "type": "fixed", "isActive": True}
        )

        cart = CartManager(store=memory_store, notifier=notifier)

        assert len(cart.items) == 1
        assert cart.items[0].quantity == 2
        assert cart.coupon.code == "FRETE50"
        assert cart.total == Decimal("150")

        cart.update_quantity("A-M-no-color", 3)

        assert StorageKeys.LEGACY_CART_COUPON not in memory_store.data
        assert json.loads(memory_store.data[StorageKeys.CART])["coupon"]["code"] == "FRETE50"

    def test_duplicate_entries_merged_on_load(self, memory_store):
        entry = {"product_id": "A", "name": "A", "price": "10", "quantity": 3, "stock": 4}
        memory_store.data[StorageKeys.CART] = json.dumps({"version": 1, "items": [entry, entry]})

        cart = CartManager(store=memory_store)

        assert len(cart.items) == 1
        assert cart.items[0].quantity == 4

    def test_unknown_fields_ignored(self, memory_store):
        entry = {"product_id": "A", "name": "A", "price": "10", "quantity": 1, "gift_wrap": True}
        memory_store.data[StorageKeys.CART] = json.dumps(
            {"version": 7, "items": [entry], "shipping": {"zip": "01000-000"}}
        )

        cart = CartManager(store=memory_store)

        assert cart.items[0].product_id == "A"

    def test_failing_store_does_not_break_mutations(self, failing_store, notifier):
        cart = CartManager(store=failing_store, notifier=notifier)

        result = cart.add_item(product("A"), quantity=2)
        cart.update_quantity("A-no-size-no-color", 3)

        assert result.success is True
        assert cart.items[0].quantity == 3


class TestObserversAndVisibility:
    """Tests for subscriptions and the open/closed flag."""

    def test_listener_sees_every_transition(self, cart):
        seen = []
        cart.subscribe(lambda manager: seen.append(manager.item_count))

        cart.add_item(product("A"))
        cart.add_item(product("A"))
        cart.remove_item("A-no-size-no-color")

        assert seen == [1, 2, 0]

    def test_unsubscribe(self, cart):
        seen = []
        unsubscribe = cart.subscribe(lambda manager: seen.append(True))
        unsubscribe()

        cart.add_item(product("A"))

        assert seen == []

    def test_failing_listener_is_isolated(self, cart):
        def broken(manager):
            raise RuntimeError("render failed")

        cart.subscribe(broken)
        result = cart.add_item(product("A"))

        assert result.success is True
        assert cart.item_count == 1

    def test_open_close_toggle(self, cart, memory_store):
        assert cart.is_open is False
        cart.open_cart()
        assert cart.is_open is True
        cart.close_cart()
        assert cart.is_open is False
        cart.toggle_cart()
        assert cart.is_open is True
        assert StorageKeys.CART not in memory_store.data


class TestSummary:
    """Tests for the UI summary."""

    def test_empty_summary(self, cart):
        summary = cart.summary()

        assert summary["is_empty"] is True
        assert summary["total"] == 0.0

    def test_summary_with_items(self, cart, sample_product):
        cart.add_item(sample_product, size="M", quantity=2)

        summary = cart.summary()

        assert summary["is_empty"] is False
        assert summary["item_count"] == 2
        assert summary["subtotal"] == 200.0
        assert summary["savings"] == pytest.approx(59.8)
        assert summary["items"][0]["display_total"] == "R$ 200,00"
        assert summary["display_total"] == "R$ 200,00"
