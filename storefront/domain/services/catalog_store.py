from __future__ import annotations
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence
from pydantic import ValidationError
import logging

from storefront.core.errors import DataError
from storefront.domain.models.product import Product
from storefront.domain.models.query import FilterSpec

logger = logging.getLogger(__name__)

CatalogListener = Callable[[Sequence[Product]], None]


def apply_filters(products: Iterable[Product], spec: Optional[FilterSpec]) -> List[Product]:
    """
    Keep the products matching every predicate of `spec`, preserving order.
    Shared by CatalogStore.filter and the view resolver.
    """
    if spec is None or spec.is_empty():
        return list(products)
    out: List[Product] = []
    for p in products:
        if spec.category and p.category != spec.category:
            continue
        if spec.in_stock and not p.in_stock:
            continue
        if spec.max_price is not None and p.price > spec.max_price:
            continue
        out.append(p)
    return out


def _validate_products(raw: Any) -> List[Product]:
    if isinstance(raw, (str, bytes)) or not isinstance(raw, Sequence):
        raise DataError(f"Catalog must be a list of products, got {type(raw).__name__}")

    products: List[Product] = []
    seen: set[str] = set()
    for i, rec in enumerate(raw):
        if isinstance(rec, Product):
            product = rec
        else:
            if not isinstance(rec, Mapping):
                raise DataError(f"Product #{i} is not an object")
            try:
                product = Product.model_validate(rec)
            except ValidationError as e:
                fields = ",".join(".".join(str(x) for x in err["loc"]) for err in e.errors())
                raise DataError(f"Product #{i} (id={rec.get('id')!r}) is invalid: {fields}") from e
        if product.id in seen:
            raise DataError(f"Duplicate product id: {product.id}")
        seen.add(product.id)
        products.append(product)
    return products


class CatalogStore:
    """
    In-memory product catalog for one session.
    Load order is the default display order; an id map sits beside the list
    for O(1) lookups. A load either replaces everything or changes nothing.
    """

    def __init__(self):
        self._products: List[Product] = []
        self._by_id: Dict[str, Product] = {}
        self._loaded = False
        self._listeners: List[CatalogListener] = []

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def __len__(self) -> int:
        return len(self._products)

    def add_listener(self, listener: CatalogListener) -> None:
        """Call `listener(products)` after every successful load."""
        self._listeners.append(listener)

    # ----- Loading ------------------------------------------------------------

    def load(self, products: Sequence[Any]) -> None:
        validated = _validate_products(products)
        # build both structures before swapping so a failure leaves nothing half-loaded
        by_id = {p.id: p for p in validated}
        self._products, self._by_id = validated, by_id
        self._loaded = True
        logger.info("catalog loaded products=%s categories=%s", len(validated), len(self.get_categories()))
        for listener in self._listeners:
            listener(self._products)

    def load_document(self, document: Any) -> None:
        """Load a `{"products": [...]}` document; a missing key is an empty catalog."""
        if not isinstance(document, Mapping):
            raise DataError("Catalog document must be a JSON object")
        products = document.get("products")
        self.load([] if products is None else products)

    # ----- Reads --------------------------------------------------------------

    def get_all(self) -> List[Product]:
        return list(self._products)

    def get_by_id(self, product_id: str) -> Optional[Product]:
        return self._by_id.get(product_id)

    def get_categories(self) -> List[str]:
        # blank is "no category", never a selectable filter value
        return sorted({p.category for p in self._products if p.category})

    def filter(self, spec: Optional[FilterSpec] = None) -> List[Product]:
        return apply_filters(self._products, spec)

    def to_document(self) -> dict:
        return {"products": [p.model_dump(mode="json") for p in self._products]}
