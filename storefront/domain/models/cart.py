from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime, timezone
from decimal import Decimal
from storefront.domain.models.product import Product

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

class CartEntry(BaseModel):
    """
    One persisted cart line. Field aliases keep the stored JSON shape
    ({productId, quantity, addedAt}) compatible with carts saved by the
    browser storefront.
    """
    product_id: str = Field(alias="productId", min_length=1)
    quantity: int = Field(ge=1)
    added_at: datetime = Field(alias="addedAt", default_factory=_utcnow)

    model_config = ConfigDict(populate_by_name=True)

class CartLine(BaseModel):
    """A cart entry resolved against the live catalog."""
    product: Product
    quantity: int
    added_at: datetime

    model_config = {"frozen": True}

    @property
    def line_total(self) -> Decimal:
        return self.product.price * self.quantity

class OrderMessage(BaseModel):
    message: str
    share_uri: str
    model_config = {"frozen": True}
