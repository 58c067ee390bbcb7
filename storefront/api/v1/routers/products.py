# storefront/api/v1/routers/products.py

from fastapi import APIRouter, Depends, Query, HTTPException
from decimal import Decimal
from typing import Optional
import time

from storefront.api.deps import storefront_dep
from storefront.api.v1.schemas.storefront import CategoriesOut, ProductListOut
from storefront.domain.models.product import Product
from storefront.domain.models.query import FilterSpec, SortKey

import logging
logger = logging.getLogger(__name__)

router = APIRouter(tags=["products"])


@router.get("/products", response_model=ProductListOut, summary="Search, filter and sort the catalog")
async def list_products(
    q: str = Query("", description="Free text, typo tolerant. Empty = whole catalog"),
    category: str = Query("", description="Exact category, empty = any"),
    in_stock: bool = Query(False, description="Only products in stock"),
    max_price: Optional[Decimal] = Query(None, ge=0, description="Inclusive price ceiling"),
    sort: SortKey = Query(SortKey.FEATURED),
    storefront = Depends(storefront_dep),
):
    """
    Products to display: search first (relevance order), then filters,
    then the requested sort.
    """
    logger.info("Request: list_products q=%r category=%r in_stock=%s max_price=%s sort=%s",
                q, category, in_stock, max_price, sort.value)
    t0 = time.perf_counter()
    filters = FilterSpec(category=category, in_stock=in_stock, max_price=max_price)
    items = storefront.queries.resolve_view(q, filters, sort)
    logger.info("Response: list_products returned %s items in %.4fs", len(items), time.perf_counter() - t0)
    return {"items": items, "count": len(items)}


@router.get("/products/{product_id}", response_model=Product)
async def get_product(product_id: str, storefront = Depends(storefront_dep)):
    product = storefront.catalog.get_by_id(product_id)
    if product is None:
        raise HTTPException(status_code=404, detail=f"Product not found: {product_id}")
    return product


@router.get("/categories", response_model=CategoriesOut)
async def list_categories(storefront = Depends(storefront_dep)):
    items = storefront.catalog.get_categories()
    return {"items": items, "count": len(items)}
