from decimal import Decimal
from typing import List
from uuid import UUID
import logging

from fastapi import HTTPException, status
from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ferreteria.common.mixins import utcnow
from ferreteria.common.validators import format_item_code, get_category_name, parse_item_code_sequence
from ferreteria.modules.inventory.models import InventoryItem, UnitType
from ferreteria.modules.inventory.schemas import (
    InventoryItemCreate, InventoryItemUpdate, StockIncrease, SortOrder
)

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = {
    "name": InventoryItem.name,
    "code": InventoryItem.code,
    "quantity": InventoryItem.quantity,
    "unit_price": InventoryItem.unit_price,
    "stock_minimo": InventoryItem.stock_minimo,
    "daily_sales": InventoryItem.daily_sales,
    "category": InventoryItem.category,
    "supplier": InventoryItem.supplier,
    "last_updated": InventoryItem.last_updated,
}


class InventoryService:
    """Service for inventory management operations."""

    def __init__(self, db: Session):
        self.db = db

    def list_items(
        self,
        sort_field: str = "name",
        sort_order: SortOrder = SortOrder.ASC,
        search: str = ""
    ) -> List[InventoryItem]:
        """List items, optionally filtered by name, code, category, supplier or unit name."""
        column = SORTABLE_FIELDS.get(sort_field)
        if column is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Campo de ordenamiento no válido: {sort_field}"
            )

        query = self.db.query(InventoryItem)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(
                InventoryItem.name.ilike(pattern),
                InventoryItem.code.ilike(pattern),
                InventoryItem.category.ilike(pattern),
                InventoryItem.supplier.ilike(pattern),
                InventoryItem.unit_name.ilike(pattern),
            ))

        order = column.desc() if sort_order == SortOrder.DESC else column.asc()
        return query.order_by(order).all()

    def list_items_for_sale(self) -> List[InventoryItem]:
        """Items offered in the sale form: only the fields the form needs, sorted by name."""
        return self.db.query(InventoryItem).order_by(InventoryItem.name.asc()).all()

    def low_stock_items(self) -> List[InventoryItem]:
        return self.db.query(InventoryItem).filter(
            InventoryItem.quantity <= InventoryItem.stock_minimo
        ).order_by(InventoryItem.quantity.asc()).all()

    def get_item(self, item_id: UUID) -> InventoryItem:
        item = self.db.get(InventoryItem, item_id)
        if not item:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Artículo no encontrado"
            )
        return item

    def generate_next_item_code(self, category_prefix: str, shelf_prefix: str) -> str:
        """Next CC-SS-NNNNN code: highest sequence within the category/shelf prefix plus one."""
        shelf_prefix = shelf_prefix.upper()
        prefix = f"{category_prefix}-{shelf_prefix}-"
        last_code = self.db.query(InventoryItem.code).filter(
            InventoryItem.code.like(f"{prefix}%")
        ).order_by(InventoryItem.code.desc()).limit(1).scalar()

        next_sequence = parse_item_code_sequence(last_code) + 1 if last_code else 1
        return format_item_code(category_prefix, shelf_prefix, next_sequence)

    def add_item(self, item_data: InventoryItemCreate) -> InventoryItem:
        """Create an item with a generated code; the category name comes from the code prefix."""
        code = self.generate_next_item_code(item_data.category_code_prefix, item_data.shelf_code_prefix)

        item = InventoryItem(
            code=code,
            name=item_data.name,
            quantity=item_data.quantity,
            unit_price=item_data.unit_price,
            stock_minimo=item_data.stock_minimo,
            daily_sales=item_data.daily_sales,
            category=get_category_name(item_data.category_code_prefix),
            supplier=item_data.supplier,
            unit_type=UnitType(item_data.unit_type.value),
            unit_name=item_data.unit_name,
        )

        try:
            self.db.add(item)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Un artículo con el código \"{code}\" ya existe"
            )

        self.db.refresh(item)
        logger.info(f"Inventory item created: {item.code} ({item.name})")
        return item

    def update_item_details(self, item_id: UUID, item_data: InventoryItemUpdate) -> InventoryItem:
        """Update descriptive fields. Quantity and code are never touched here."""
        item = self.get_item(item_id)

        update_data = item_data.model_dump(exclude_unset=True)
        if not update_data:
            return item

        for field, value in update_data.items():
            if field == "unit_type" and value is not None:
                value = UnitType(value.value if hasattr(value, "value") else value)
            setattr(item, field, value)

        self.db.commit()
        self.db.refresh(item)
        return item

    def increase_stock_by_code(self, stock_data: StockIncrease) -> InventoryItem:
        """Atomically add stock to the item identified by its code."""
        result = self.db.execute(
            update(InventoryItem)
            .where(InventoryItem.code == stock_data.code)
            .values(
                quantity=InventoryItem.quantity + stock_data.quantity_to_add,
                last_updated=utcnow()
            )
        )
        if result.rowcount == 0:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"No se encontró un artículo con el código {stock_data.code}"
            )
        self.db.commit()

        item = self.db.query(InventoryItem).filter(InventoryItem.code == stock_data.code).one()
        self.db.refresh(item)
        logger.info(f"Stock increased for {item.code}: +{stock_data.quantity_to_add} -> {item.quantity}")
        return item

    def set_item_quantity(self, item_id: UUID, new_quantity: Decimal) -> InventoryItem:
        if new_quantity < 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="La cantidad no puede ser negativa"
            )
        item = self.get_item(item_id)
        item.quantity = new_quantity
        self.db.commit()
        self.db.refresh(item)
        return item

    def delete_item(self, item_id: UUID) -> None:
        """Delete an item. Historical sales keep their own snapshot of it."""
        item = self.get_item(item_id)
        self.db.delete(item)
        self.db.commit()
        logger.info(f"Inventory item deleted: {item.code}")
