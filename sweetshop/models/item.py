import math
import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import CheckConstraint, Column, DateTime, Float, Integer, String

from ..db.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


# SQLAlchemy model for the inventory_items table
class InventoryItem(Base):
    __tablename__ = "inventory_items"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_inventory_items_quantity_non_negative"),
        CheckConstraint("price >= 0", name="ck_inventory_items_price_non_negative"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), unique=True, index=True, nullable=False)
    category = Column(String(100), index=True, nullable=False)
    price = Column(Float, nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    # Informational only, not a foreign key
    created_by = Column(String(36), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)


# Pydantic model for creating an item (request body)
class ItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    category: str = Field(..., min_length=1, max_length=100)
    price: float = Field(..., ge=0, allow_inf_nan=False)
    quantity: int = Field(0, ge=0)


# Pydantic model for updating an item (request body - all fields optional)
class ItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    quantity: Optional[int] = Field(None, ge=0)


class RestockRequest(BaseModel):
    # No coercion from true or "3"
    quantity: int = Field(..., gt=0, strict=True)


# Pydantic model for representing an item in responses
class ItemOut(BaseModel):
    id: str
    name: str
    category: str
    price: float
    quantity: int
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Result of purchase / restock
class StockLevel(BaseModel):
    id: str
    name: str
    quantity: int


class StockChangeOut(StockLevel):
    message: str


def parse_price(raw: Optional[str]) -> Optional[float]:
    """Parses a price query parameter; anything unusable counts as absent."""
    if raw is None:
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return value


class SearchFilters(BaseModel):
    """Optional filters combined with AND; None means no constraint."""

    name: Optional[str] = None
    category: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None

    @classmethod
    def from_query(cls, name=None, category=None, min_price=None, max_price=None) -> "SearchFilters":
        return cls(
            name=name or None,
            category=category or None,
            min_price=parse_price(min_price),
            max_price=parse_price(max_price),
        )

    def matches(self, item) -> bool:
        if self.name is not None and self.name.casefold() not in item.name.casefold():
            return False
        if self.category is not None and item.category != self.category:
            return False
        if self.min_price is not None and item.price < self.min_price:
            return False
        if self.max_price is not None and item.price > self.max_price:
            return False
        return True
