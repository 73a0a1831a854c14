"""
Servicios de negocio para el módulo de Clientes
"""

from fastapi import HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from sqlalchemy import or_
from typing import List, Optional
from uuid import UUID

from ferreteria.modules.customers.models import Customer
from ferreteria.modules.customers.schemas import CustomerCreate, CustomerUpdate


class CustomerService:
    """Servicio para gestión de clientes"""

    def __init__(self, db: Session):
        self.db = db

    def find_customer(self, customer_id: UUID) -> Optional[Customer]:
        return self.db.get(Customer, customer_id)

    def get_customer(self, customer_id: UUID) -> Customer:
        customer = self.find_customer(customer_id)
        if not customer:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Cliente no encontrado"
            )
        return customer

    def get_customers(self, search: str = "") -> List[Customer]:
        query = self.db.query(Customer)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(
                Customer.name.ilike(pattern),
                Customer.email.ilike(pattern),
                Customer.ruc.ilike(pattern),
            ))
        return query.order_by(Customer.name).all()

    def create_customer(self, customer_data: CustomerCreate) -> Customer:
        customer = Customer(**customer_data.model_dump())
        try:
            self.db.add(customer)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Ya existe un cliente con el RUC {customer_data.ruc}"
            )
        self.db.refresh(customer)
        return customer

    def update_customer(self, customer_id: UUID, customer_data: CustomerUpdate) -> Customer:
        customer = self.get_customer(customer_id)

        update_data = customer_data.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            setattr(customer, field, value)

        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Error de integridad al actualizar el cliente"
            )
        self.db.refresh(customer)
        return customer

    def delete_customer(self, customer_id: UUID) -> None:
        """Eliminar cliente; sus ventas conservan el nombre copiado."""
        customer = self.get_customer(customer_id)
        self.db.delete(customer)
        self.db.commit()
