from fastapi import APIRouter, Depends, Query, status
from typing import List
from uuid import UUID
from sqlalchemy.orm import Session

from ferreteria.database.database import get_db
from ferreteria.modules.auth.dependencies import AuthDependencies
from ferreteria.modules.auth.schemas import AuthContext
from ferreteria.modules.inventory.service import InventoryService
from ferreteria.modules.inventory.schemas import (
    InventoryItemCreate, InventoryItemUpdate, InventoryItemOut, InventoryItemForSale,
    InventoryItemList, StockIncrease, QuantityUpdate, SortOrder
)

inventory_router = APIRouter(prefix="/inventory", tags=["Inventory"])


@inventory_router.get("/", response_model=InventoryItemList)
def list_items(
    sort_field: str = Query("name", description="Campo de ordenamiento"),
    sort_order: SortOrder = Query(SortOrder.ASC),
    search: str = Query("", description="Texto a buscar en nombre, código, categoría, proveedor o unidad"),
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    """List inventory items."""
    items = InventoryService(db).list_items(sort_field, sort_order, search)
    return InventoryItemList(items=items, total=len(items))


@inventory_router.get("/for-sale", response_model=List[InventoryItemForSale])
def list_items_for_sale(
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_seller())
):
    """Items with current stock and price for the sale form."""
    return InventoryService(db).list_items_for_sale()


@inventory_router.get("/low-stock", response_model=List[InventoryItemOut])
def list_low_stock_items(
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    """Items at or below their minimum stock."""
    return InventoryService(db).low_stock_items()


@inventory_router.get("/{item_id}", response_model=InventoryItemOut)
def get_item(
    item_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    return InventoryService(db).get_item(item_id)


@inventory_router.post("/", response_model=InventoryItemOut, status_code=status.HTTP_201_CREATED)
def add_item(
    item_data: InventoryItemCreate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_inventory_writer())
):
    """Create an item; its CC-SS-NNNNN code is generated from the category and shelf prefixes."""
    return InventoryService(db).add_item(item_data)


@inventory_router.patch("/{item_id}", response_model=InventoryItemOut)
def update_item_details(
    item_id: UUID,
    item_data: InventoryItemUpdate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_inventory_writer())
):
    return InventoryService(db).update_item_details(item_id, item_data)


@inventory_router.post("/stock/increase", response_model=InventoryItemOut)
def increase_stock(
    stock_data: StockIncrease,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_inventory_writer())
):
    """Add received stock to the item with the given code."""
    return InventoryService(db).increase_stock_by_code(stock_data)


@inventory_router.put("/{item_id}/quantity", response_model=InventoryItemOut)
def set_item_quantity(
    item_id: UUID,
    quantity_data: QuantityUpdate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_inventory_writer())
):
    return InventoryService(db).set_item_quantity(item_id, quantity_data.quantity)


@inventory_router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_item(
    item_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_inventory_writer())
):
    InventoryService(db).delete_item(item_id)
