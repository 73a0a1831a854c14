from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from uuid import UUID
from datetime import datetime
from decimal import Decimal
from enum import Enum


class PaymentMethod(str, Enum):
    CASH = "efectivo"
    CARD = "tarjeta"


# Sale Item schemas
class SaleItemCreate(BaseModel):
    """Línea enviada por el vendedor; el precio queda fijado al momento de enviar."""
    product_id: UUID
    product_code: str = Field(..., min_length=1, max_length=11)
    product_name: str = Field(..., min_length=1, max_length=200)
    quantity: Decimal = Field(..., gt=0, max_digits=14, decimal_places=3, description="Cantidad vendida (fraccionable en unidades medibles)")
    unit_price_at_sale: Decimal = Field(..., ge=0, max_digits=14, decimal_places=2, description="Precio unitario al momento de la venta")


class SaleItemOut(BaseModel):
    id: UUID
    product_id: UUID
    product_code: str
    product_name: str
    quantity: Decimal
    unit_price_at_sale: Decimal
    subtotal: Decimal

    model_config = {"from_attributes": True}


# Sale schemas
class SaleCreate(BaseModel):
    customer_id: Optional[UUID] = Field(None, description="Cliente; vacío = Consumidor Final")
    items: List[SaleItemCreate] = Field(..., min_length=1, description="Debe haber al menos un producto en la venta")
    payment_method: PaymentMethod


class SaleUpdate(BaseModel):
    """
    Edición de metadatos de una venta.

    Omitir customer_id deja el cliente como está; enviarlo en null lo quita
    (la venta pasa a "Consumidor Final").
    """
    customer_id: Optional[UUID] = None
    payment_method: Optional[PaymentMethod] = None

    @field_validator("payment_method", mode="before")
    @classmethod
    def blank_payment_method_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def touches_customer(self) -> bool:
        return "customer_id" in self.model_fields_set


class SaleOut(BaseModel):
    id: UUID
    sale_number: str
    date: datetime
    customer_id: Optional[UUID] = None
    customer_name: Optional[str] = None
    items: List[SaleItemOut]
    total_amount: Decimal
    payment_method: PaymentMethod
    user_id: UUID
    seller_name: Optional[str] = None
    last_updated: datetime

    model_config = {"from_attributes": True}


class SaleList(BaseModel):
    sales: List[SaleOut]
    total: int


class SaleErrorOut(BaseModel):
    """Cuerpo de las respuestas de error del motor de ventas."""
    detail: str
    code: str
    retryable: bool = False
    product_id: Optional[str] = None
    product_name: Optional[str] = None
    available: Optional[str] = None
    requested: Optional[str] = None
