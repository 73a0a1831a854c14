from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from uuid import UUID
from datetime import datetime
from decimal import Decimal
from enum import Enum

from ferreteria.common.validators import (
    CATEGORY_CODE_PATTERN, SHELF_CODE_PATTERN, validate_item_code
)


class UnitType(str, Enum):
    COUNTABLE = "countable"
    MEASURABLE = "measurable"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class InventoryItemCreate(BaseModel):
    category_code_prefix: str = Field(..., description="Código de categoría de 2 dígitos")
    shelf_code_prefix: str = Field(..., description="Código de estante alfanumérico de 2 caracteres")
    name: str = Field(..., min_length=3, max_length=200)
    quantity: Decimal = Field(Decimal("0"), ge=0, max_digits=14, decimal_places=3)
    unit_price: Decimal = Field(Decimal("0"), ge=0, max_digits=14, decimal_places=2)
    stock_minimo: Decimal = Field(Decimal("0"), ge=0, max_digits=14, decimal_places=3)
    daily_sales: Decimal = Field(Decimal("0"), ge=0, max_digits=14, decimal_places=3)
    supplier: Optional[str] = Field(None, max_length=200)
    unit_type: UnitType = UnitType.COUNTABLE
    unit_name: str = Field("unidad", min_length=1, max_length=30)

    @field_validator("category_code_prefix")
    @classmethod
    def validate_category_prefix(cls, v: str) -> str:
        if not CATEGORY_CODE_PATTERN.match(v):
            raise ValueError("El código de categoría debe tener 2 dígitos.")
        return v

    @field_validator("shelf_code_prefix")
    @classmethod
    def validate_shelf_prefix(cls, v: str) -> str:
        if not SHELF_CODE_PATTERN.match(v):
            raise ValueError("El código de estante debe ser alfanumérico de 2 caracteres.")
        return v.upper()

    @field_validator("supplier")
    @classmethod
    def blank_supplier_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def countable_quantities_are_whole(self):
        if self.unit_type == UnitType.COUNTABLE and self.quantity != self.quantity.to_integral_value():
            raise ValueError("Los artículos contables requieren una cantidad entera.")
        return self


class InventoryItemUpdate(BaseModel):
    """Edición de detalles; la cantidad y el código no se editan por esta vía."""
    name: Optional[str] = Field(None, min_length=3, max_length=200)
    unit_price: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=2)
    stock_minimo: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=3)
    daily_sales: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=3)
    category: Optional[str] = Field(None, max_length=100)
    supplier: Optional[str] = Field(None, max_length=200)
    unit_type: Optional[UnitType] = None
    unit_name: Optional[str] = Field(None, min_length=1, max_length=30)


class StockIncrease(BaseModel):
    code: str = Field(..., description="Código CC-SS-NNNNN")
    quantity_to_add: Decimal = Field(..., gt=0, max_digits=14, decimal_places=3)

    @field_validator("code")
    @classmethod
    def validate_code(cls, v: str) -> str:
        if not validate_item_code(v):
            raise ValueError("El código debe tener el formato CC-SS-NNNNN (ej: 01-A1-00001)")
        return v.upper()


class QuantityUpdate(BaseModel):
    quantity: Decimal = Field(..., ge=0, max_digits=14, decimal_places=3)


class InventoryItemOut(BaseModel):
    id: UUID
    code: str
    name: str
    quantity: Decimal
    unit_price: Decimal
    stock_minimo: Decimal
    daily_sales: Decimal
    category: Optional[str] = None
    supplier: Optional[str] = None
    unit_type: UnitType
    unit_name: str
    last_updated: datetime

    model_config = {"from_attributes": True}


class InventoryItemForSale(BaseModel):
    id: UUID
    code: str
    name: str
    quantity: Decimal
    unit_price: Decimal

    model_config = {"from_attributes": True}


class InventoryItemList(BaseModel):
    items: List[InventoryItemOut]
    total: int
