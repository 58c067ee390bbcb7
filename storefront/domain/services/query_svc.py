from __future__ import annotations
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Union
import logging
import time

from storefront.core.errors import CatalogNotLoadedError
from storefront.domain.models.product import Product
from storefront.domain.models.query import FilterSpec, SortKey
from storefront.domain.services.catalog_store import CatalogStore, apply_filters
from storefront.domain.services.search_index import SearchIndex

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def sort_products(products: Sequence[Product], sort_key: Union[SortKey, str, None] = SortKey.FEATURED) -> List[Product]:
    """
    Stable sort for every key: products with equal keys keep their incoming
    order (catalog order for a plain listing, relevance order for a search).
    Unknown keys fall back to "featured".
    """
    try:
        key = SortKey(sort_key) if sort_key else SortKey.FEATURED
    except ValueError:
        key = SortKey.FEATURED

    if key is SortKey.PRICE_ASC:
        return sorted(products, key=lambda p: p.price)
    if key is SortKey.PRICE_DESC:
        return sorted(products, key=lambda p: p.price, reverse=True)
    if key is SortKey.NEWEST:
        # undated products go last
        return sorted(products, key=lambda p: p.last_modified or _EPOCH, reverse=True)
    return [p for p in products if p.featured] + [p for p in products if not p.featured]


class ProductQueryService:
    """Composes search, filters and sort into the product list to display."""

    def __init__(self, catalog: CatalogStore, index: SearchIndex):
        self.catalog = catalog
        self.index = index

    def resolve_view(
        self,
        search_text: str = "",
        filters: Optional[FilterSpec] = None,
        sort_key: Union[SortKey, str, None] = SortKey.FEATURED,
    ) -> List[Product]:
        if not self.catalog.is_loaded:
            raise CatalogNotLoadedError("Catalog has not been loaded yet")

        t0 = time.perf_counter()
        if search_text and search_text.strip():
            candidates = self.index.query(search_text)
        else:
            candidates = self.catalog.get_all()

        # filters apply after search; search never bypasses them
        products = apply_filters(candidates, filters)
        products = sort_products(products, sort_key)
        logger.debug(
            "resolve_view q=%r filters=%s sort=%s candidates=%s results=%s time=%.4fs",
            search_text, filters, sort_key, len(candidates), len(products), time.perf_counter() - t0,
        )
        return products
