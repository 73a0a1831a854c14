from ferreteria.database.database import Base
from ferreteria.common.mixins import UUIDPrimaryKeyMixin, TimestampMixin
from sqlalchemy import Column, String, Numeric, Enum, CheckConstraint
import enum


class UnitType(str, enum.Enum):
    """Tipo de unidad del artículo"""
    COUNTABLE = "countable"     # Unidades enteras (piezas, cajas)
    MEASURABLE = "measurable"   # Unidades fraccionables (litros, metros)


class InventoryItem(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """
    Artículo en existencia.

    quantity nunca puede ser negativa; las ventas la modifican solo a través
    de decrementos condicionales (ver sales/stock_guard.py).
    """
    __tablename__ = "inventory_items"

    code = Column(String(11), unique=True, nullable=False, index=True)  # CC-SS-NNNNN
    name = Column(String(200), nullable=False, index=True)
    quantity = Column(Numeric(14, 3), nullable=False, default=0)
    unit_price = Column(Numeric(14, 2), nullable=False, default=0)
    stock_minimo = Column(Numeric(14, 3), nullable=False, default=0)
    daily_sales = Column(Numeric(14, 3), nullable=False, default=0)
    category = Column(String(100), nullable=True)
    supplier = Column(String(200), nullable=True)
    unit_type = Column(Enum(UnitType), nullable=False, default=UnitType.COUNTABLE)
    unit_name = Column(String(30), nullable=False, default="unidad")

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_inventory_items_quantity_non_negative"),
        CheckConstraint("unit_price >= 0", name="ck_inventory_items_unit_price_non_negative"),
    )
