from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime, timezone
from decimal import Decimal

class Product(BaseModel):
    id: str = Field(min_length=1)
    name: str = ""
    description: str = ""
    category: str = ""
    price: Decimal = Field(ge=0)
    in_stock: bool = False
    featured: bool = False
    tags: List[str] = []
    images: List[str] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"frozen": True}

    @field_validator("description", "category", "name", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return "" if v is None else v

    @field_validator("tags", "images", mode="before")
    @classmethod
    def _none_to_list(cls, v):
        return [] if v is None else v

    @field_validator("created_at", "updated_at")
    @classmethod
    def _assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        # naive and aware timestamps must stay comparable for "newest"
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def last_modified(self) -> Optional[datetime]:
        return self.updated_at or self.created_at
