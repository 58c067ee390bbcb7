# storefront/api/v1/schemas/storefront.py
from decimal import Decimal
from pydantic import BaseModel, Field
from typing import List
from storefront.domain.models.product import Product

class ProductListOut(BaseModel):
    items: List[Product]
    count: int

class CategoriesOut(BaseModel):
    items: List[str]
    count: int

class OrderLineIn(BaseModel):
    product_id: str
    quantity: int = 1

class OrderPreviewIn(BaseModel):
    items: List[OrderLineIn] = Field(default_factory=list)
    customer_name: str = ""
    notes: str = ""

class OrderPreviewOut(BaseModel):
    message: str
    share_uri: str
    total: Decimal
    count: int
    skipped: List[str] = Field(default_factory=list)

class LoginIn(BaseModel):
    password: str = ""

class LoginOut(BaseModel):
    success: bool
    token: str

class CatalogUpdateOut(BaseModel):
    success: bool
    products: int
    categories: List[str]
