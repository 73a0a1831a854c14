"""
Control de existencias para ventas.

Todas las operaciones se ejecutan sobre la sesión de la transacción de venta:
validate() revisa todas las líneas antes de tocar nada, apply() descuenta con
UPDATE condicional y restore() devuelve el stock al eliminar una venta.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Protocol
from uuid import UUID
import logging

from sqlalchemy import update
from sqlalchemy.orm import Session

from ferreteria.common.mixins import utcnow
from ferreteria.modules.inventory.models import InventoryItem
from ferreteria.modules.sales.exceptions import (
    ProductNotFoundError, InsufficientStockError, ConcurrentStockConflictError
)

logger = logging.getLogger(__name__)


class StockLine(Protocol):
    """Cualquier objeto con producto y cantidad: SaleItemCreate o SaleItem."""
    product_id: UUID
    product_name: str
    quantity: Decimal


@dataclass
class RestoreResult:
    restored: List[Dict[str, str]] = field(default_factory=list)
    skipped_product_ids: List[str] = field(default_factory=list)


class StockLedgerGuard:

    def __init__(self, session: Session):
        self.session = session

    def validate(self, lines: Iterable[StockLine]) -> Dict[UUID, InventoryItem]:
        """
        Verificar que cada producto exista y alcance la cantidad pedida.

        Las cantidades de un mismo producto repetido en varias líneas se suman
        antes de comparar contra el stock disponible. No modifica nada.
        """
        requested: Dict[UUID, Decimal] = {}
        items: Dict[UUID, InventoryItem] = {}

        for line in lines:
            item = items.get(line.product_id) or self.session.get(InventoryItem, line.product_id)
            if item is None:
                raise ProductNotFoundError(line.product_id, line.product_name)
            items[line.product_id] = item

            requested[line.product_id] = requested.get(line.product_id, Decimal("0")) + Decimal(line.quantity)
            if item.quantity < requested[line.product_id]:
                raise InsufficientStockError(
                    product_name=item.name,
                    available=item.quantity,
                    requested=requested[line.product_id],
                    unit_name=item.unit_name
                )

        return items

    def apply(self, lines: Iterable[StockLine]) -> None:
        """
        Descontar el stock de cada línea con un UPDATE condicional.

        Si ninguna fila cumple quantity >= n, otra transacción consumió el stock
        después de validate(); la venta completa se aborta.
        """
        for line in lines:
            quantity = Decimal(line.quantity)
            result = self.session.execute(
                update(InventoryItem)
                .where(InventoryItem.id == line.product_id, InventoryItem.quantity >= quantity)
                .values(quantity=InventoryItem.quantity - quantity, last_updated=utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                logger.warning(
                    f"Conditional stock decrement matched no row for product {line.product_id} "
                    f"(requested {quantity})"
                )
                raise ConcurrentStockConflictError(line.product_id, line.product_name)

    def restore(self, lines: Iterable[StockLine]) -> RestoreResult:
        """Devolver al inventario la cantidad de cada línea. Los productos eliminados se omiten."""
        result = RestoreResult()
        for line in lines:
            quantity = Decimal(line.quantity)
            updated = self.session.execute(
                update(InventoryItem)
                .where(InventoryItem.id == line.product_id)
                .values(quantity=InventoryItem.quantity + quantity, last_updated=utcnow())
                .execution_options(synchronize_session=False)
            )
            if updated.rowcount == 0:
                logger.warning(
                    f"Product {line.product_id} ({line.product_name}) no longer exists; "
                    f"{quantity} units not restored"
                )
                result.skipped_product_ids.append(str(line.product_id))
                continue
            result.restored.append({"product_id": str(line.product_id), "quantity": str(quantity)})
        return result
