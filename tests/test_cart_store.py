"""
Tests for CartStore: clamping, removal rules, dangling entries, persistence.
"""
from datetime import datetime, timezone
from decimal import Decimal
import asyncio
import json
import pytest

from storefront.core.errors import (
    InvalidQuantityError,
    NotFoundError,
    OutOfStockError,
    PersistenceError,
)
from storefront.domain.repositories.kv_backend import InMemoryBackend
from storefront.domain.services.cart_store import CartStore
from storefront.domain.services.catalog_store import CatalogStore


class FailingBackend(InMemoryBackend):
    """Reads work, writes fail until `fail` is switched off."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.fail = True
        self.fail_reads = False

    async def get(self, key):
        if self.fail_reads:
            raise PersistenceError("read down")
        return await super().get(key)

    async def put(self, key, value):
        if self.fail:
            raise PersistenceError("disk full")
        await super().put(key, value)


class SlowFirstWriteBackend(InMemoryBackend):
    """The first put stalls, so a later write could land before it."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.puts = 0

    async def put(self, key, value):
        self.puts += 1
        await asyncio.sleep(0.05 if self.puts == 1 else 0)
        await super().put(key, value)


def stored(backend, key="cart"):
    return json.loads(backend.data[key])


class TestWorkedExample:
    async def test_totals_and_counts(self, cart):
        await cart.add("a", 2)
        assert cart.total() == 20
        await cart.add("b", 1)
        assert cart.total() == 25
        assert cart.count() == 3
        await cart.update_quantity("a", 0)
        assert [line.product.id for line in cart.items()] == ["b"]
        assert cart.total() == 5


class TestAdd:
    async def test_new_entry(self, cart):
        entry = await cart.add("a")
        assert entry.quantity == 1
        assert cart.get("a").quantity == 1

    @pytest.mark.parametrize("existing,q,expected", [
        (0, 1, 1),
        (0, 99, 99),
        (0, 150, 99),
        (50, 49, 99),
        (50, 60, 99),
        (98, 1, 99),
        (99, 5, 99),
    ])
    async def test_quantity_is_clamped(self, cart, existing, q, expected):
        if existing:
            await cart.add("a", existing)
        await cart.add("a", q)
        assert cart.get("a").quantity == expected
        assert cart.items()[0].quantity == min(existing + q, cart.max_quantity)

    async def test_merges_into_one_entry(self, cart):
        await cart.add("a")
        await cart.add("a", 3)
        assert len(cart.entries()) == 1
        assert cart.get("a").quantity == 4

    async def test_added_at_set_once(self, simple_catalog, backend):
        times = iter([
            datetime(2024, 1, 1, tzinfo=timezone.utc),
            datetime(2024, 6, 1, tzinfo=timezone.utc),
        ])
        cart = await CartStore.open(simple_catalog, backend, storage_key="cart", clock=lambda: next(times))
        await cart.add("a")
        await cart.add("a")
        await cart.update_quantity("a", 7)
        assert cart.get("a").added_at == datetime(2024, 1, 1, tzinfo=timezone.utc)

    async def test_keeps_insertion_order(self, cart):
        await cart.add("b")
        await cart.add("a")
        await cart.add("b")
        assert [line.product.id for line in cart.items()] == ["b", "a"]

    async def test_unknown_product(self, cart):
        with pytest.raises(NotFoundError):
            await cart.add("nope")
        assert cart.entries() == []

    async def test_out_of_stock_leaves_cart_unchanged(self, backend):
        catalog = CatalogStore()
        catalog.load([
            {"id": "a", "price": 10, "in_stock": True},
            {"id": "gone", "price": 3, "in_stock": False},
        ])
        cart = await CartStore.open(catalog, backend, storage_key="cart")
        await cart.add("a", 2)
        before = [e.model_dump() for e in cart.entries()]
        blob_before = backend.data["cart"]

        with pytest.raises(OutOfStockError):
            await cart.add("gone")

        assert [e.model_dump() for e in cart.entries()] == before
        assert len(cart.entries()) == 1
        assert backend.data["cart"] == blob_before

    @pytest.mark.parametrize("q", [0, -1])
    async def test_non_positive_add_rejected(self, cart, q):
        with pytest.raises(InvalidQuantityError):
            await cart.add("a", q)
        assert cart.entries() == []


class TestUpdateAndRemove:
    @pytest.mark.parametrize("q", [0, -5])
    async def test_non_positive_update_removes(self, cart, q):
        await cart.add("a", 3)
        await cart.add("b", 1)
        await cart.update_quantity("a", q)
        assert cart.get("a") is None
        assert [e.product_id for e in cart.entries()] == ["b"]

    async def test_update_overwrites_and_clamps(self, cart):
        await cart.add("a", 3)
        await cart.update_quantity("a", 10)
        assert cart.get("a").quantity == 10
        await cart.update_quantity("a", 500)
        assert cart.get("a").quantity == 99

    async def test_update_absent_is_noop(self, cart, backend):
        await cart.update_quantity("a", 5)
        assert cart.entries() == []
        assert "cart" not in backend.data

    async def test_remove_is_idempotent(self, cart):
        await cart.add("a")
        await cart.remove("a")
        await cart.remove("a")
        await cart.remove("never-there")
        assert "a" not in [line.product.id for line in cart.items()]
        assert cart.entries() == []

    async def test_clear(self, cart, backend):
        await cart.add("a")
        await cart.add("b")
        await cart.clear()
        assert cart.entries() == []
        assert stored(backend) == []


class TestDanglingEntries:
    async def test_hidden_from_views_but_kept_in_storage(self, cart, simple_catalog, backend):
        await cart.add("a", 2)
        await cart.add("b", 1)
        simple_catalog.load([{"id": "b", "price": 5, "in_stock": True}])

        assert [line.product.id for line in cart.items()] == ["b"]
        assert cart.total() == Decimal("5")
        assert cart.count() == 1
        assert [e.product_id for e in cart.entries()] == ["a", "b"]
        assert [e["productId"] for e in stored(backend)] == ["a", "b"]

    async def test_prune(self, cart, simple_catalog, backend):
        await cart.add("a", 2)
        await cart.add("b", 1)
        simple_catalog.load([{"id": "b", "price": 5, "in_stock": True}])
        assert await cart.prune() == 1
        assert [e["productId"] for e in stored(backend)] == ["b"]
        assert await cart.prune() == 0


class TestPersistence:
    async def test_every_mutation_writes_full_cart(self, cart, backend):
        await cart.add("a", 2)
        assert stored(backend) == [
            {"productId": "a", "quantity": 2, "addedAt": cart.get("a").model_dump(mode="json", by_alias=True)["addedAt"]}
        ]
        await cart.add("b")
        assert [(e["productId"], e["quantity"]) for e in stored(backend)] == [("a", 2), ("b", 1)]
        assert cart.is_saved

    async def test_round_trip(self, cart, simple_catalog, backend):
        await cart.add("a", 4)
        await cart.add("b", 2)
        restored = await CartStore.open(simple_catalog, backend, storage_key="cart")
        assert restored.entries() == cart.entries()
        assert restored.total() == cart.total()

    async def test_overlapping_mutations_store_the_latest_state(self, simple_catalog):
        backend = SlowFirstWriteBackend()
        cart = await CartStore.open(simple_catalog, backend, storage_key="cart")
        await asyncio.gather(cart.add("a", 1), cart.add("b", 1))
        assert [e.product_id for e in cart.entries()] == ["a", "b"]
        assert [e["productId"] for e in stored(backend)] == ["a", "b"]
        assert cart.is_saved
        restored = await CartStore.open(simple_catalog, backend, storage_key="cart")
        assert restored.entries() == cart.entries()

    async def test_remove_waits_for_pending_add(self, simple_catalog):
        backend = SlowFirstWriteBackend()
        cart = await CartStore.open(simple_catalog, backend, storage_key="cart")
        await asyncio.gather(cart.add("a", 2), cart.update_quantity("a", 0))
        assert cart.entries() == []
        assert stored(backend) == []

    async def test_restores_browser_format(self, simple_catalog):
        blob = json.dumps([{"productId": "a", "quantity": 3, "addedAt": "2024-05-01T10:00:00.000Z"}])
        cart = await CartStore.open(simple_catalog, InMemoryBackend({"cart": blob}), storage_key="cart")
        assert cart.get("a").quantity == 3
        assert cart.total() == 30

    async def test_restore_clamps_oversized_quantities(self, simple_catalog):
        blob = json.dumps([{"productId": "a", "quantity": 500, "addedAt": "2024-05-01T10:00:00Z"}])
        cart = await CartStore.open(simple_catalog, InMemoryBackend({"cart": blob}), storage_key="cart")
        assert cart.get("a").quantity == 99

    @pytest.mark.parametrize("blob", [
        "{not json",
        json.dumps({"productId": "a"}),
        json.dumps([{"productId": "a", "quantity": 0}]),
        json.dumps([{"quantity": 2}]),
        json.dumps(["a"]),
    ])
    async def test_corrupt_data_resets_to_empty(self, simple_catalog, blob):
        cart = await CartStore.open(simple_catalog, InMemoryBackend({"cart": blob}), storage_key="cart")
        assert cart.entries() == []
        assert cart.items() == []

    async def test_missing_slot_is_empty(self, simple_catalog):
        cart = await CartStore.open(simple_catalog, InMemoryBackend(), storage_key="cart")
        assert cart.entries() == []
        assert cart.is_saved

    async def test_read_failure_gives_empty_cart(self, simple_catalog):
        backend = FailingBackend({"cart": "[]"})
        backend.fail_reads = True
        cart = await CartStore.open(simple_catalog, backend, storage_key="cart")
        assert cart.entries() == []
        assert not cart.is_saved

    async def test_write_failure_degrades_to_memory(self, simple_catalog):
        backend = FailingBackend()
        cart = await CartStore.open(simple_catalog, backend, storage_key="cart")
        await cart.add("a", 2)
        assert cart.total() == 20
        assert not cart.is_saved
        assert "cart" not in backend.data

        backend.fail = False
        await cart.add("b")
        assert cart.is_saved
        assert [(e["productId"], e["quantity"]) for e in stored(backend)] == [("a", 2), ("b", 1)]

    async def test_duplicate_stored_entries_first_wins(self, simple_catalog):
        blob = json.dumps([
            {"productId": "a", "quantity": 1, "addedAt": "2024-05-01T10:00:00Z"},
            {"productId": "a", "quantity": 7, "addedAt": "2024-05-02T10:00:00Z"},
        ])
        cart = await CartStore.open(simple_catalog, InMemoryBackend({"cart": blob}), storage_key="cart")
        assert cart.get("a").quantity == 1
        assert len(cart.entries()) == 1


def test_max_quantity_must_be_positive(simple_catalog):
    with pytest.raises(ValueError):
        CartStore(simple_catalog, InMemoryBackend(), max_quantity=0)
