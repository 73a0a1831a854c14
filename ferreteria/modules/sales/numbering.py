"""
Numeración de ventas: V + contador de 5 dígitos (V00001, V00002, ...).
"""
from typing import Optional
import logging

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from ferreteria.modules.sales.models import Sale

logger = logging.getLogger(__name__)

SALE_NUMBER_PREFIX = "V"
SALE_NUMBER_WIDTH = 5


def parse_sale_number(sale_number: Optional[str]) -> int:
    """Contador numérico de un número de venta. Devuelve 0 si no se puede interpretar."""
    if not sale_number:
        return 0
    value = sale_number.strip()
    if value[:1].upper() == SALE_NUMBER_PREFIX:
        value = value[1:]
    if not (value.isascii() and value.isdigit()):
        return 0
    return int(value)


def format_sale_number(counter: int) -> str:
    return f"{SALE_NUMBER_PREFIX}{counter:0{SALE_NUMBER_WIDTH}d}"


def allocate_next_sale_number(session: Session) -> str:
    """
    Calcular el siguiente número de venta dentro de la transacción en curso.

    El mayor número existente se busca por longitud y luego por texto, lo que
    equivale a orden numérico para números con el mismo prefijo (V100000 va
    después de V99999). Si otra transacción confirma el mismo número antes,
    la restricción única de sales.sale_number rechaza la inserción.
    """
    last_number = session.execute(
        select(Sale.sale_number)
        .order_by(func.length(Sale.sale_number).desc(), Sale.sale_number.desc())
        .limit(1)
    ).scalar_one_or_none()

    next_number = format_sale_number(parse_sale_number(last_number) + 1)
    logger.debug(f"Allocated sale number {next_number} (previous: {last_number})")
    return next_number
