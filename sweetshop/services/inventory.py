"""
Inventory operations.

Each public method receives the caller's Identity explicitly. Admin checks
and input validation run before anything is written, and stock changes go
through the repository's conditional UPDATEs so quantity never drops below
zero, however many purchases race on the same item.
"""

import logging
from contextlib import contextmanager
from typing import List

from sqlalchemy.exc import SQLAlchemyError

from ..db.crud import ItemRepository
from ..errors import (
    DuplicateNameError,
    InternalError,
    NotFoundError,
    OutOfStockError,
    ValidationError,
)
from ..models.account import Identity
from ..models.item import InventoryItem, ItemCreate, ItemUpdate, SearchFilters, StockLevel
from ..security.auth import require_admin

logger = logging.getLogger(__name__)

# Fields that may not be cleared once an item exists
REQUIRED_FIELDS = ("name", "category", "price", "quantity")


class InventoryService:
    def __init__(self, items: ItemRepository):
        self.items = items

    @contextmanager
    def _storage(self, action: str):
        """Rolls back and reports storage failures without leaking their detail."""
        try:
            yield
        except SQLAlchemyError as exc:
            self.items.db.rollback()
            logger.exception("Storage failure while trying to %s", action)
            raise InternalError() from exc

    def _get_or_404(self, item_id: str) -> InventoryItem:
        item = self.items.get(item_id)
        if item is None:
            raise NotFoundError(f"Item {item_id} not found")
        return item

    # --- Reads (any authenticated identity) ---

    def read_all(self, identity: Identity) -> List[InventoryItem]:
        with self._storage("list items"):
            return self.items.list_all()

    def search(self, identity: Identity, filters: SearchFilters) -> List[InventoryItem]:
        """Returns the items matching every supplied filter."""
        with self._storage("search items"):
            candidates = self.items.list_filtered(
                category=filters.category,
                min_price=filters.min_price,
                max_price=filters.max_price,
            )
        # Name matching is plain containment, never a pattern
        return [item for item in candidates if filters.matches(item)]

    def get(self, identity: Identity, item_id: str) -> InventoryItem:
        with self._storage("read item"):
            return self._get_or_404(item_id)

    # --- Admin mutations ---

    def create(self, identity: Identity, data: ItemCreate) -> InventoryItem:
        require_admin(identity)
        with self._storage("create item"):
            if self.items.find_by_name(data.name) is not None:
                raise DuplicateNameError(f"An item named '{data.name}' already exists")
            item = InventoryItem(
                name=data.name,
                category=data.category,
                price=data.price,
                quantity=data.quantity,
                created_by=identity.id,
            )
            item = self.items.add(item)
        logger.info("Account %s created item %s (%s)", identity.id, item.id, item.name)
        return item

    def update(self, identity: Identity, item_id: str, data: ItemUpdate) -> InventoryItem:
        require_admin(identity)
        changes = data.model_dump(exclude_unset=True)
        cleared = [field for field in REQUIRED_FIELDS if field in changes and changes[field] is None]
        if cleared:
            raise ValidationError(f"Field(s) cannot be null: {', '.join(cleared)}")

        with self._storage("update item"):
            item = self._get_or_404(item_id)
            if not changes:
                return item
            new_name = changes.get("name")
            if new_name is not None and new_name != item.name:
                clash = self.items.find_by_name(new_name)
                if clash is not None and clash.id != item.id:
                    raise DuplicateNameError(f"An item named '{new_name}' already exists")
            for key, value in changes.items():
                setattr(item, key, value)
            item = self.items.save(item)
        logger.info("Account %s updated item %s: %s", identity.id, item.id, sorted(changes))
        return item

    def delete(self, identity: Identity, item_id: str) -> None:
        require_admin(identity)
        with self._storage("delete item"):
            item = self._get_or_404(item_id)
            self.items.delete(item)
        logger.info("Account %s deleted item %s", identity.id, item_id)

    # --- Stock ---

    def purchase(self, identity: Identity, item_id: str) -> StockLevel:
        """Takes one unit off the shelf; rejects at exactly zero."""
        with self._storage("purchase item"):
            if not self.items.decrement_if_in_stock(item_id):
                self.items.db.rollback()
                if self.items.stock_level(item_id) is None:
                    raise NotFoundError(f"Item {item_id} not found")
                logger.warning("Purchase of item %s rejected: out of stock", item_id)
                raise OutOfStockError()
            level = self.items.stock_level(item_id)
            self.items.db.commit()
        return StockLevel(id=level.id, name=level.name, quantity=level.quantity)

    def restock(self, identity: Identity, item_id: str, amount) -> StockLevel:
        require_admin(identity)
        # bool is an int subclass; True is not a quantity
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValidationError("Quantity must be greater than zero")

        with self._storage("restock item"):
            if not self.items.increment(item_id, amount):
                self.items.db.rollback()
                raise NotFoundError(f"Item {item_id} not found")
            level = self.items.stock_level(item_id)
            self.items.db.commit()
        logger.info("Account %s restocked item %s by %d (now %d)", identity.id, item_id, amount, level.quantity)
        return StockLevel(id=level.id, name=level.name, quantity=level.quantity)
