"""
Servicios de negocio para el módulo de Proveedores
"""

from fastapi import HTTPException, status
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID
import logging

from ferreteria.modules.suppliers.models import Supplier
from ferreteria.modules.suppliers.schemas import SupplierCreate, SupplierUpdate

logger = logging.getLogger(__name__)


class SupplierService:
    """Servicio para gestión de proveedores"""

    def __init__(self, db: Session):
        self.db = db

    def get_supplier(self, supplier_id: UUID) -> Supplier:
        supplier = self.db.get(Supplier, supplier_id)
        if not supplier:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Proveedor no encontrado"
            )
        return supplier

    def get_suppliers(self) -> List[Supplier]:
        return self.db.query(Supplier).order_by(Supplier.name).all()

    def create_supplier(self, supplier_data: SupplierCreate) -> Supplier:
        supplier = Supplier(**supplier_data.model_dump())
        self.db.add(supplier)
        self.db.commit()
        self.db.refresh(supplier)
        logger.info(f"Supplier created: {supplier.name}")
        return supplier

    def update_supplier(self, supplier_id: UUID, supplier_data: SupplierUpdate) -> Supplier:
        supplier = self.get_supplier(supplier_id)

        update_data = supplier_data.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            if field == "supplied_products" and value is None:
                value = []
            setattr(supplier, field, value)

        self.db.commit()
        self.db.refresh(supplier)
        return supplier

    def delete_supplier(self, supplier_id: UUID) -> None:
        """Eliminar proveedor; los artículos conservan el nombre del proveedor como texto."""
        supplier = self.get_supplier(supplier_id)
        self.db.delete(supplier)
        self.db.commit()
        logger.info(f"Supplier deleted: {supplier.name}")
