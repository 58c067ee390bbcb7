from __future__ import annotations
from decimal import Decimal
from typing import Any, Callable, List, Optional, Union
import logging

from storefront.core.errors import EmptyCartError
from storefront.domain.models.cart import OrderMessage
from storefront.domain.models.product import Product
from storefront.domain.models.query import FilterSpec, SortKey
from storefront.domain.repositories.kv_backend import KeyValueBackend
from storefront.domain.services.cart_store import CartStore
from storefront.domain.services.catalog_store import CatalogStore
from storefront.domain.services.order_formatter import OrderFormatter
from storefront.domain.services.query_svc import ProductQueryService
from storefront.domain.services.search_index import SearchIndex
from storefront.utils.debounce import Debouncer

logger = logging.getLogger(__name__)

ViewCallback = Callable[[List[Product]], Any]


class Storefront:
    """
    One shopping session: owns the catalog, its search index, the view
    resolver, the order formatter and (once opened) the cart.

    A rendering layer talks to it only through intents (set_search,
    set_category, add_to_cart, checkout...) and receives recomputed views,
    either as return values or through `on_view`.
    """

    def __init__(self, settings, backend: KeyValueBackend, on_view: Optional[ViewCallback] = None):
        self.settings = settings
        self.backend = backend
        self.on_view = on_view

        self.catalog = CatalogStore()
        self.index = SearchIndex(
            threshold=settings.search_threshold,
            min_match_chars=settings.search_min_match_chars,
        )
        # the index follows every catalog load
        self.catalog.add_listener(self.index.build)
        self.queries = ProductQueryService(self.catalog, self.index)
        self.formatter = OrderFormatter.from_settings(settings)
        self.cart: Optional[CartStore] = None

        self.search_text = ""
        self.filters = FilterSpec()
        self.sort_key = SortKey.FEATURED
        self._search_debouncer = Debouncer(settings.search_debounce_ms / 1000, self._apply_search)

    # ----- Setup ----------------------------------------------------------------

    def load_catalog(self, document: Any) -> None:
        self.catalog.load_document(document)

    async def open_cart(self) -> CartStore:
        self.cart = await CartStore.open(
            self.catalog,
            self.backend,
            storage_key=self.settings.cart_storage_key,
            max_quantity=self.settings.max_quantity_per_item,
        )
        return self.cart

    def _require_cart(self) -> CartStore:
        if self.cart is None:
            raise RuntimeError("Cart not opened; call open_cart() first")
        return self.cart

    # ----- View intents ---------------------------------------------------------

    def view(self) -> List[Product]:
        return self.queries.resolve_view(self.search_text, self.filters, self.sort_key)

    def _apply(
        self,
        search_text: Optional[str] = None,
        filters: Optional[FilterSpec] = None,
        sort_key: Optional[SortKey] = None,
    ) -> List[Product]:
        """Resolve the view for the new state; the state changes only if that succeeds."""
        text = self.search_text if search_text is None else search_text
        filters = self.filters if filters is None else filters
        sort_key = self.sort_key if sort_key is None else sort_key
        products = self.queries.resolve_view(text, filters, sort_key)
        self.search_text, self.filters, self.sort_key = text, filters, sort_key
        if self.on_view is not None:
            self.on_view(products)
        return products

    def set_search(self, text: str) -> None:
        """Debounced: only the last text of a typing burst is applied."""
        self._search_debouncer.trigger(text)

    def _apply_search(self, text: str) -> None:
        self._apply(search_text=text or "")

    async def flush_search(self) -> None:
        await self._search_debouncer.wait()

    def set_category(self, category: str) -> List[Product]:
        return self._apply(filters=self.filters.model_copy(update={"category": category or ""}))

    def set_in_stock(self, in_stock: bool) -> List[Product]:
        return self._apply(filters=self.filters.model_copy(update={"in_stock": bool(in_stock)}))

    def set_max_price(self, max_price: Union[Decimal, int, float, str, None]) -> List[Product]:
        value = None if max_price is None else Decimal(str(max_price))
        return self._apply(filters=self.filters.model_copy(update={"max_price": value}))

    def set_sort(self, sort_key: Union[SortKey, str]) -> List[Product]:
        return self._apply(sort_key=SortKey(sort_key))

    # ----- Cart intents ---------------------------------------------------------

    async def add_to_cart(self, product_id: str, quantity: int = 1) -> None:
        await self._require_cart().add(product_id, quantity)

    async def increase_quantity(self, product_id: str) -> bool:
        """
        One more of a product already in the cart. Returns False, changing
        nothing, when the line is missing or already at the maximum.
        """
        cart = self._require_cart()
        entry = cart.get(product_id)
        if entry is None or entry.quantity >= cart.max_quantity:
            return False
        await cart.update_quantity(product_id, entry.quantity + 1)
        return True

    async def decrease_quantity(self, product_id: str) -> None:
        """One less; going from 1 to 0 removes the line."""
        cart = self._require_cart()
        entry = cart.get(product_id)
        if entry is not None:
            await cart.update_quantity(product_id, entry.quantity - 1)

    async def remove_from_cart(self, product_id: str) -> None:
        await self._require_cart().remove(product_id)

    def checkout(self, customer_name: str = "", notes: str = "") -> OrderMessage:
        cart = self._require_cart()
        items = cart.items()
        if not items:
            raise EmptyCartError("Your cart is empty")
        message = self.formatter.format(items, cart.total(), customer_name, notes)
        logger.info("checkout lines=%s count=%s total=%s", len(items), cart.count(), cart.total())
        return OrderMessage(message=message, share_uri=self.formatter.to_share_uri(message))
