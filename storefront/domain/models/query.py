from enum import Enum
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel

class SortKey(str, Enum):
    FEATURED = "featured"
    PRICE_ASC = "price-asc"
    PRICE_DESC = "price-desc"
    NEWEST = "newest"

class FilterSpec(BaseModel):
    """
    Catalog filter. Every predicate is optional and they are ANDed;
    the default instance lets everything through.
    """
    category: str = ""                   # exact match, "" = any
    in_stock: bool = False               # True = only in_stock products
    max_price: Optional[Decimal] = None  # inclusive

    model_config = {"frozen": True}

    def is_empty(self) -> bool:
        return not self.category and not self.in_stock and self.max_price is None
