from __future__ import annotations
from collections import OrderedDict
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, List, Optional
from pydantic import ValidationError
import asyncio
import json
import logging

from storefront.core.errors import (
    InvalidQuantityError,
    NotFoundError,
    OutOfStockError,
    PersistenceError,
)
from storefront.domain.models.cart import CartEntry, CartLine
from storefront.domain.repositories.kv_backend import KeyValueBackend
from storefront.domain.services.catalog_store import CatalogStore
from storefront.domain.services.constants import DEFAULT_MAX_QTY
from storefront.utils.cache import kv_get_json, kv_set_json

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CartStore:
    """
    The shopper's cart: one entry per product id, in insertion order.

    Quantities always stay within [1, max_quantity]; anything above is clamped
    silently and anything reaching 0 removes the entry. Every mutation writes
    the full cart to the backend slot. A failed write is logged and the cart
    keeps working in memory (`is_saved` stays False until a write succeeds).
    Mutations are serialized: each one holds the cart lock until its write
    has resolved, so the stored blob always matches the last mutation.

    Entries whose product later disappears from the catalog ("dangling")
    stay stored until removed, but are left out of items(), count() and
    total().
    """

    def __init__(
        self,
        catalog: CatalogStore,
        backend: KeyValueBackend,
        *,
        storage_key: str = "shopping_cart",
        max_quantity: int = DEFAULT_MAX_QTY,
        clock: Optional[Clock] = None,
    ):
        if max_quantity < 1:
            raise ValueError("max_quantity must be >= 1")
        self.catalog = catalog
        self.backend = backend
        self.storage_key = storage_key
        self.max_quantity = max_quantity
        self._clock = clock or _utcnow
        self._entries: "OrderedDict[str, CartEntry]" = OrderedDict()
        self._saved = False
        self._lock = asyncio.Lock()

    @classmethod
    async def open(cls, catalog: CatalogStore, backend: KeyValueBackend, **kwargs) -> "CartStore":
        """Build a cart and restore it from the backend slot."""
        cart = cls(catalog, backend, **kwargs)
        await cart.restore()
        return cart

    @property
    def is_saved(self) -> bool:
        return self._saved

    def _clamp(self, quantity: int) -> int:
        return min(quantity, self.max_quantity)

    # ----- Persistence ----------------------------------------------------------

    def _parse(self, raw: Any) -> "OrderedDict[str, CartEntry]":
        if not isinstance(raw, list):
            raise ValueError(f"stored cart is {type(raw).__name__}, expected list")
        entries: "OrderedDict[str, CartEntry]" = OrderedDict()
        for item in raw:
            entry = CartEntry.model_validate(item)
            if entry.product_id in entries:
                continue  # first one wins
            if entry.quantity > self.max_quantity:
                entry = entry.model_copy(update={"quantity": self.max_quantity})
            entries[entry.product_id] = entry
        return entries

    async def restore(self) -> None:
        """
        Replace in-memory state with the stored cart. Missing, corrupt or
        unreadable data yields an empty cart; nothing is raised.
        """
        async with self._lock:
            await self._restore()

    async def _restore(self) -> None:
        try:
            raw = await kv_get_json(self.backend, self.storage_key)
        except PersistenceError as e:
            logger.warning("cart restore failed key=%s err=%s", self.storage_key, e)
            self._entries = OrderedDict()
            self._saved = False
            return
        except (ValueError, TypeError) as e:  # json.JSONDecodeError is a ValueError
            logger.warning("cart restore: corrupt data discarded key=%s err=%s", self.storage_key, e)
            self._entries = OrderedDict()
            self._saved = False
            return

        if raw is None:
            self._entries = OrderedDict()
            self._saved = True
            return

        try:
            self._entries = self._parse(raw)
            self._saved = True
        except (ValueError, ValidationError) as e:
            logger.warning("cart restore: malformed entries discarded key=%s err=%s", self.storage_key, e)
            self._entries = OrderedDict()
            self._saved = False
        logger.debug("cart restored entries=%s", len(self._entries))

    def to_json(self) -> List[dict]:
        return [e.model_dump(mode="json", by_alias=True) for e in self._entries.values()]

    async def _persist(self) -> None:
        self._saved = False
        try:
            await kv_set_json(self.backend, self.storage_key, self.to_json())
        except PersistenceError as e:
            logger.warning("cart save failed key=%s entries=%s err=%s", self.storage_key, len(self._entries), e)
            return
        self._saved = True

    # ----- Mutations ------------------------------------------------------------

    async def add(self, product_id: str, quantity: int = 1) -> CartEntry:
        if quantity < 1:
            raise InvalidQuantityError(f"Quantity to add must be >= 1, got {quantity}")
        async with self._lock:
            product = self.catalog.get_by_id(product_id)
            if product is None:
                raise NotFoundError(product_id)
            if not product.in_stock:
                raise OutOfStockError(product_id)

            existing = self._entries.get(product_id)
            if existing is not None:
                entry = existing.model_copy(update={"quantity": self._clamp(existing.quantity + quantity)})
            else:
                entry = CartEntry(product_id=product_id, quantity=self._clamp(quantity), added_at=self._clock())
            self._entries[product_id] = entry
            logger.debug("cart add id=%s qty=%s -> %s", product_id, quantity, entry.quantity)
            await self._persist()
            return entry

    async def update_quantity(self, product_id: str, quantity: int) -> None:
        async with self._lock:
            if quantity <= 0:
                await self._remove(product_id)
                return
            existing = self._entries.get(product_id)
            if existing is None:
                return
            self._entries[product_id] = existing.model_copy(update={"quantity": self._clamp(quantity)})
            logger.debug("cart update id=%s qty=%s", product_id, quantity)
            await self._persist()

    async def _remove(self, product_id: str) -> None:
        # caller holds the lock
        if self._entries.pop(product_id, None) is not None:
            logger.debug("cart remove id=%s", product_id)
        await self._persist()

    async def remove(self, product_id: str) -> None:
        async with self._lock:
            await self._remove(product_id)

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()
            await self._persist()

    async def prune(self) -> int:
        """Drop dangling entries from storage. Returns how many were removed."""
        async with self._lock:
            dangling = [pid for pid in self._entries if self.catalog.get_by_id(pid) is None]
            for pid in dangling:
                del self._entries[pid]
            if dangling:
                logger.info("cart prune removed=%s", dangling)
                await self._persist()
            return len(dangling)

    # ----- Views ----------------------------------------------------------------

    def entries(self) -> List[CartEntry]:
        """Raw stored entries, dangling ones included."""
        return list(self._entries.values())

    def get(self, product_id: str) -> Optional[CartEntry]:
        return self._entries.get(product_id)

    def items(self) -> List[CartLine]:
        lines: List[CartLine] = []
        for entry in self._entries.values():
            product = self.catalog.get_by_id(entry.product_id)
            if product is None:
                continue
            lines.append(CartLine(product=product, quantity=entry.quantity, added_at=entry.added_at))
        return lines

    def count(self) -> int:
        return sum(line.quantity for line in self.items())

    def total(self) -> Decimal:
        return sum((line.line_total for line in self.items()), Decimal("0"))
