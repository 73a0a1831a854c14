"""
Armado del documento de venta a partir de las líneas enviadas.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional, Sequence
from uuid import UUID

from ferreteria.modules.sales.exceptions import SaleValidationError
from ferreteria.modules.sales.models import Sale, SaleItem, PaymentMethod
from ferreteria.modules.sales.schemas import SaleItemCreate

# Escala de las columnas sale_items.quantity y unit_price_at_sale
QUANTITY_DECIMAL_PLACES = 3
PRICE_DECIMAL_PLACES = 2


@dataclass(frozen=True)
class CustomerRef:
    """Cliente resuelto dentro de la transacción."""
    id: UUID
    name: str


def calculate_subtotal(quantity: Decimal, unit_price_at_sale: Decimal) -> Decimal:
    return Decimal(quantity) * Decimal(unit_price_at_sale)


def calculate_total(subtotals: Iterable[Decimal]) -> Decimal:
    return sum(subtotals, Decimal("0"))


def _decimal_places(value) -> int:
    exponent = Decimal(value).normalize().as_tuple().exponent
    return max(0, -exponent) if isinstance(exponent, int) else 0


def validate_sale_lines(items: Sequence[SaleItemCreate]) -> None:
    """Reglas de entrada que no dependen del almacén."""
    if not items:
        raise SaleValidationError("Debe haber al menos un producto en la venta.")
    for item in items:
        if item.quantity is None or Decimal(item.quantity) <= 0:
            raise SaleValidationError(f"La cantidad de \"{item.product_name}\" debe ser mayor que 0.")
        if item.unit_price_at_sale is None or Decimal(item.unit_price_at_sale) < 0:
            raise SaleValidationError(f"El precio de \"{item.product_name}\" no puede ser negativo.")
        if _decimal_places(item.quantity) > QUANTITY_DECIMAL_PLACES:
            raise SaleValidationError(f"La cantidad de \"{item.product_name}\" admite hasta 3 decimales.")
        if _decimal_places(item.unit_price_at_sale) > PRICE_DECIMAL_PLACES:
            raise SaleValidationError(f"El precio de \"{item.product_name}\" admite hasta 2 decimales.")


def build_sale(
    items: Sequence[SaleItemCreate],
    customer: Optional[CustomerRef],
    payment_method: PaymentMethod,
    actor_user_id: UUID,
    seller_name: str,
    sale_number: str,
    now: datetime
) -> Sale:
    """
    Crear la venta con sus líneas, sin agregarla a la sesión.

    Los subtotales usan el precio capturado al enviar la venta, no el precio
    actual del inventario. Sin cliente, customer_id y customer_name quedan en None.
    """
    sale_items = []
    for position, item in enumerate(items):
        sale_items.append(SaleItem(
            position=position,
            product_id=item.product_id,
            product_code=item.product_code,
            product_name=item.product_name,
            quantity=Decimal(item.quantity),
            unit_price_at_sale=Decimal(item.unit_price_at_sale),
            subtotal=calculate_subtotal(item.quantity, item.unit_price_at_sale),
        ))

    return Sale(
        sale_number=sale_number,
        date=now,
        customer_id=customer.id if customer else None,
        customer_name=customer.name if customer else None,
        items=sale_items,
        total_amount=calculate_total(line.subtotal for line in sale_items),
        payment_method=PaymentMethod(getattr(payment_method, "value", payment_method)),
        user_id=actor_user_id,
        seller_name=seller_name,
        last_updated=now,
    )
