from ferreteria.database.database import Base
from ferreteria.common.mixins import UUIDPrimaryKeyMixin, TimestampMixin, utcnow
from sqlalchemy import Column, String, Numeric, Integer, DateTime, ForeignKey, Enum, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship
import enum


class PaymentMethod(str, enum.Enum):
    """Métodos de pago aceptados en ventas"""
    CASH = "efectivo"
    CARD = "tarjeta"


class Sale(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """
    Venta registrada.

    Los nombres de cliente y vendedor son copias tomadas al momento de la venta.
    customer_id/customer_name en NULL significan "Consumidor Final".
    """
    __tablename__ = "sales"

    sale_number = Column(String(20), nullable=False)  # V00001
    date = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    # Sin FK: borrar un cliente no altera el historial de ventas
    customer_id = Column(Uuid(as_uuid=True), nullable=True, index=True)
    customer_name = Column(String(200), nullable=True)

    total_amount = Column(Numeric(18, 5), nullable=False)
    payment_method = Column(Enum(PaymentMethod), nullable=False)

    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    seller_name = Column(String(120), nullable=True)

    items = relationship(
        "SaleItem",
        back_populates="sale",
        cascade="all, delete-orphan",
        order_by="SaleItem.position",
        lazy="selectin"
    )

    __table_args__ = (
        # Una colisión de numeración aborta la transacción completa
        UniqueConstraint("sale_number", name="uq_sales_sale_number"),
    )


class SaleItem(Base, UUIDPrimaryKeyMixin):
    """Línea de venta. Conserva código, nombre y precio del artículo al momento de vender."""
    __tablename__ = "sale_items"

    sale_id = Column(Uuid(as_uuid=True), ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    # Referencia, no propiedad: el artículo puede eliminarse después de la venta
    product_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    product_code = Column(String(11), nullable=False)
    product_name = Column(String(200), nullable=False)

    quantity = Column(Numeric(14, 3), nullable=False)
    unit_price_at_sale = Column(Numeric(14, 2), nullable=False)
    subtotal = Column(Numeric(18, 5), nullable=False)

    sale = relationship("Sale", back_populates="items")
