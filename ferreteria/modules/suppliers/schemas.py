from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List
from uuid import UUID
from datetime import datetime


def _split_products(v):
    """Acepta una lista o un texto separado por comas ("Tornillos, Clavos")."""
    if v is None:
        return v
    if isinstance(v, str):
        v = v.split(",")
    return [p.strip() for p in v if isinstance(p, str) and p.strip()]


def _blank_to_none(v):
    if isinstance(v, str) and not v.strip():
        return None
    return v


class SupplierBase(BaseModel):
    name: str = Field(..., min_length=2, max_length=200)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None
    contact_name: Optional[str] = Field(None, max_length=200, description="Persona de contacto")
    supplied_products: List[str] = Field(default_factory=list)

    @field_validator("phone", "email", "contact_name", mode="before")
    @classmethod
    def blank_is_none(cls, v):
        return _blank_to_none(v)

    @field_validator("supplied_products", mode="before")
    @classmethod
    def parse_products(cls, v):
        return _split_products(v) or []


class SupplierCreate(SupplierBase):
    pass


class SupplierUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=200)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None
    contact_name: Optional[str] = Field(None, max_length=200)
    supplied_products: Optional[List[str]] = None

    @field_validator("phone", "email", "contact_name", mode="before")
    @classmethod
    def blank_is_none(cls, v):
        return _blank_to_none(v)

    @field_validator("supplied_products", mode="before")
    @classmethod
    def parse_products(cls, v):
        return _split_products(v)


class SupplierOut(SupplierBase):
    id: UUID
    last_updated: datetime

    model_config = {"from_attributes": True}


class SupplierList(BaseModel):
    suppliers: List[SupplierOut]
    total: int
