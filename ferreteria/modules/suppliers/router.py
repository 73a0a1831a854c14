from fastapi import APIRouter, Depends, status
from uuid import UUID
from sqlalchemy.orm import Session

from ferreteria.database.database import get_db
from ferreteria.modules.auth.dependencies import AuthDependencies
from ferreteria.modules.auth.schemas import AuthContext
from ferreteria.modules.suppliers.service import SupplierService
from ferreteria.modules.suppliers.schemas import (
    SupplierCreate, SupplierUpdate, SupplierOut, SupplierList
)

suppliers_router = APIRouter(prefix="/suppliers", tags=["Suppliers"])


@suppliers_router.get("/", response_model=SupplierList)
def get_suppliers(
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    suppliers = SupplierService(db).get_suppliers()
    return SupplierList(suppliers=suppliers, total=len(suppliers))


@suppliers_router.get("/{supplier_id}", response_model=SupplierOut)
def get_supplier(
    supplier_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    return SupplierService(db).get_supplier(supplier_id)


@suppliers_router.post("/", response_model=SupplierOut, status_code=status.HTTP_201_CREATED)
def create_supplier(
    supplier_data: SupplierCreate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_inventory_writer())
):
    return SupplierService(db).create_supplier(supplier_data)


@suppliers_router.patch("/{supplier_id}", response_model=SupplierOut)
def update_supplier(
    supplier_id: UUID,
    supplier_data: SupplierUpdate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_inventory_writer())
):
    return SupplierService(db).update_supplier(supplier_id, supplier_data)


@suppliers_router.delete("/{supplier_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_supplier(
    supplier_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_inventory_writer())
):
    SupplierService(db).delete_supplier(supplier_id)
