from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import DuplicateEmailError, DuplicateNameError
from ..models.account import Account, Role, normalize_email
from ..models.item import InventoryItem
from ..security.hashing import PasswordHasher

# --- Account operations ---

class AccountStore:
    """Credential store: account lookup and creation."""

    def __init__(self, db: Session, hasher: PasswordHasher):
        self.db = db
        self.hasher = hasher

    def get(self, account_id: str) -> Optional[Account]:
        return self.db.query(Account).filter(Account.id == account_id).first()

    def find_by_email(self, email: str) -> Optional[Account]:
        email = normalize_email(email)
        return self.db.query(Account).filter(Account.email == email).first()

    def create(self, email: str, raw_password: str, role: Role = Role.user) -> Account:
        email = normalize_email(email)
        if self.find_by_email(email) is not None:
            raise DuplicateEmailError()
        account = Account(email=email, hashed_password=self.hasher.hash(raw_password), role=role)
        self.db.add(account)
        try:
            self.db.commit()
        except IntegrityError as exc:
            # Lost a race with a concurrent registration for the same email
            self.db.rollback()
            raise DuplicateEmailError() from exc
        self.db.refresh(account)
        return account


# --- Inventory operations ---

class ItemRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, item_id: str) -> Optional[InventoryItem]:
        return self.db.query(InventoryItem).filter(InventoryItem.id == item_id).first()

    def find_by_name(self, name: str) -> Optional[InventoryItem]:
        return self.db.query(InventoryItem).filter(InventoryItem.name == name).first()

    def list_all(self) -> List[InventoryItem]:
        return self.db.query(InventoryItem).order_by(InventoryItem.created_at, InventoryItem.id).all()

    def list_filtered(self, category=None, min_price=None, max_price=None) -> List[InventoryItem]:
        """Applies the exact-match and range filters in SQL."""
        query = self.db.query(InventoryItem)
        if category is not None:
            query = query.filter(InventoryItem.category == category)
        if min_price is not None:
            query = query.filter(InventoryItem.price >= min_price)
        if max_price is not None:
            query = query.filter(InventoryItem.price <= max_price)
        return query.order_by(InventoryItem.created_at, InventoryItem.id).all()

    def add(self, item: InventoryItem) -> InventoryItem:
        self.db.add(item)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise DuplicateNameError() from exc
        self.db.refresh(item)
        return item

    def save(self, item: InventoryItem) -> InventoryItem:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise DuplicateNameError() from exc
        self.db.refresh(item)
        return item

    def delete(self, item: InventoryItem) -> None:
        self.db.delete(item)
        self.db.commit()

    # Stock changes are single conditional UPDATEs, so concurrent requests
    # against one row are serialized by the database and never oversell.

    def decrement_if_in_stock(self, item_id: str) -> bool:
        """Takes one unit; False when the row is missing or already at zero."""
        updated = (
            self.db.query(InventoryItem)
            .filter(InventoryItem.id == item_id, InventoryItem.quantity > 0)
            .update({InventoryItem.quantity: InventoryItem.quantity - 1}, synchronize_session=False)
        )
        return updated == 1

    def increment(self, item_id: str, amount: int) -> bool:
        updated = (
            self.db.query(InventoryItem)
            .filter(InventoryItem.id == item_id)
            .update({InventoryItem.quantity: InventoryItem.quantity + amount}, synchronize_session=False)
        )
        return updated == 1

    def stock_level(self, item_id: str):
        """Reads (id, name, quantity) straight from the row, bypassing the identity map."""
        return (
            self.db.query(InventoryItem.id, InventoryItem.name, InventoryItem.quantity)
            .filter(InventoryItem.id == item_id)
            .first()
        )
