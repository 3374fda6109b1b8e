from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..db.crud import ItemRepository
from ..db.database import get_db
from ..models.account import Identity
from ..models.item import ItemCreate, ItemOut, ItemUpdate, RestockRequest, SearchFilters, StockChangeOut
from ..security.auth import get_admin_identity, get_current_identity
from ..services.inventory import InventoryService

router = APIRouter(
    prefix="/api/sweets",
    tags=["Inventory"],
    dependencies=[Depends(get_current_identity)],  # Protect all routes in this router
)


def get_inventory_service(db: Session = Depends(get_db)) -> InventoryService:
    return InventoryService(ItemRepository(db))


@router.post("", response_model=ItemOut, status_code=status.HTTP_201_CREATED)
def create_item(
    item: ItemCreate,
    admin: Identity = Depends(get_admin_identity),
    service: InventoryService = Depends(get_inventory_service),
):
    return service.create(admin, item)


@router.get("", response_model=List[ItemOut])
def read_items(
    identity: Identity = Depends(get_current_identity),
    service: InventoryService = Depends(get_inventory_service),
):
    return service.read_all(identity)


@router.get("/search", response_model=List[ItemOut])
def search_items(
    name: Optional[str] = None,
    category: Optional[str] = None,
    # Kept as strings: malformed numbers are ignored rather than rejected
    min_price: Optional[str] = Query(None, alias="minPrice"),
    max_price: Optional[str] = Query(None, alias="maxPrice"),
    identity: Identity = Depends(get_current_identity),
    service: InventoryService = Depends(get_inventory_service),
):
    filters = SearchFilters.from_query(name=name, category=category, min_price=min_price, max_price=max_price)
    return service.search(identity, filters)


@router.get("/{item_id}", response_model=ItemOut)
def read_item(
    item_id: str,
    identity: Identity = Depends(get_current_identity),
    service: InventoryService = Depends(get_inventory_service),
):
    return service.get(identity, item_id)


@router.put("/{item_id}", response_model=ItemOut)
def update_item(
    item_id: str,
    item_update: ItemUpdate,
    admin: Identity = Depends(get_admin_identity),
    service: InventoryService = Depends(get_inventory_service),
):
    return service.update(admin, item_id, item_update)


@router.delete("/{item_id}")
def delete_item(
    item_id: str,
    admin: Identity = Depends(get_admin_identity),
    service: InventoryService = Depends(get_inventory_service),
):
    service.delete(admin, item_id)
    return {"message": "Item deleted successfully"}


@router.post("/{item_id}/purchase", response_model=StockChangeOut)
def purchase_item(
    item_id: str,
    identity: Identity = Depends(get_current_identity),
    service: InventoryService = Depends(get_inventory_service),
):
    """Decreases quantity by one."""
    level = service.purchase(identity, item_id)
    return StockChangeOut(message="Purchase successful", **level.model_dump())


@router.post("/{item_id}/restock", response_model=StockChangeOut)
def restock_item(
    item_id: str,
    restock: RestockRequest,
    admin: Identity = Depends(get_admin_identity),
    service: InventoryService = Depends(get_inventory_service),
):
    level = service.restock(admin, item_id, restock.quantity)
    return StockChangeOut(message="Item restocked successfully", **level.model_dump())
