from fastapi import APIRouter, Depends, Query, status
from uuid import UUID
from sqlalchemy.orm import Session

from ferreteria.database.database import get_db
from ferreteria.modules.auth.dependencies import AuthDependencies
from ferreteria.modules.auth.schemas import AuthContext
from ferreteria.modules.customers.service import CustomerService
from ferreteria.modules.customers.schemas import (
    CustomerCreate, CustomerUpdate, CustomerOut, CustomerList
)

customers_router = APIRouter(prefix="/customers", tags=["Customers"])


@customers_router.get("/", response_model=CustomerList)
def get_customers(
    search: str = Query("", description="Buscar por nombre, email o RUC"),
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_seller())
):
    customers = CustomerService(db).get_customers(search)
    return CustomerList(customers=customers, total=len(customers))


@customers_router.get("/{customer_id}", response_model=CustomerOut)
def get_customer(
    customer_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_seller())
):
    return CustomerService(db).get_customer(customer_id)


@customers_router.post("/", response_model=CustomerOut, status_code=status.HTTP_201_CREATED)
def create_customer(
    customer_data: CustomerCreate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_seller())
):
    return CustomerService(db).create_customer(customer_data)


@customers_router.patch("/{customer_id}", response_model=CustomerOut)
def update_customer(
    customer_id: UUID,
    customer_data: CustomerUpdate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_seller())
):
    return CustomerService(db).update_customer(customer_id, customer_data)


@customers_router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_customer(
    customer_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_admin())
):
    CustomerService(db).delete_customer(customer_id)
