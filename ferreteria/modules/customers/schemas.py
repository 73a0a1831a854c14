from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List
from uuid import UUID
from datetime import datetime


class CustomerBase(BaseModel):
    name: str = Field(..., min_length=2, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=500)
    ruc: Optional[str] = Field(None, max_length=20, description="Registro único de contribuyente")

    @field_validator("email", "phone", "address", "ruc", mode="before")
    @classmethod
    def blank_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class CustomerCreate(CustomerBase):
    pass


class CustomerUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=500)
    ruc: Optional[str] = Field(None, max_length=20)


class CustomerOut(CustomerBase):
    id: UUID
    registration_date: datetime
    last_updated: datetime

    model_config = {"from_attributes": True}


class CustomerList(BaseModel):
    customers: List[CustomerOut]
    total: int
