# storefront/api/v1/routers/orders.py
from datetime import datetime, timezone
from decimal import Decimal
from fastapi import APIRouter, Depends
from typing import List
import logging

from storefront.api.deps import storefront_dep
from storefront.api.v1.schemas.storefront import OrderPreviewIn, OrderPreviewOut
from storefront.core.errors import EmptyCartError
from storefront.domain.models.cart import CartLine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["orders"])


@router.post("/orders/preview", response_model=OrderPreviewOut)
async def preview_order(body: OrderPreviewIn, storefront = Depends(storefront_dep)):
    """
    Render the order transcript and deep link for a client-held cart.
    Nothing is stored: lines are resolved against the live catalog, unknown
    ids are skipped (and reported), quantities are clamped to [1, max].
    """
    max_qty = storefront.settings.max_quantity_per_item
    merged: dict[str, int] = {}
    skipped: List[str] = []
    for line in body.items:
        if storefront.catalog.get_by_id(line.product_id) is None:
            skipped.append(line.product_id)
            continue
        if line.quantity <= 0:
            continue
        merged[line.product_id] = min(merged.get(line.product_id, 0) + line.quantity, max_qty)

    now = datetime.now(timezone.utc)
    lines: List[CartLine] = []
    for pid, qty in merged.items():
        product = storefront.catalog.get_by_id(pid)
        lines.append(CartLine(product=product, quantity=qty, added_at=now))

    if not lines:
        raise EmptyCartError("Your cart is empty")

    total = sum((l.line_total for l in lines), Decimal("0"))
    message = storefront.formatter.format(lines, total, body.customer_name, body.notes)
    logger.info("Response: preview_order lines=%s skipped=%s total=%s", len(lines), len(skipped), total)
    return {
        "message": message,
        "share_uri": storefront.formatter.to_share_uri(message),
        "total": total,
        "count": sum(l.quantity for l in lines),
        "skipped": skipped,
    }
