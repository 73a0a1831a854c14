from fastapi import APIRouter, Depends, status
from uuid import UUID

from ferreteria.dependencies.dbDependencies import db_dependency, session_factory_dependency
from ferreteria.modules.auth.dependencies import AuthDependencies
from ferreteria.modules.auth.schemas import AuthContext
from ferreteria.modules.sales.service import SaleService
from ferreteria.modules.sales.schemas import (
    SaleCreate, SaleUpdate, SaleOut, SaleList, SaleErrorOut
)

sales_router = APIRouter(prefix="/sales", tags=["Sales"])

ERROR_RESPONSES = {
    400: {"model": SaleErrorOut, "description": "Datos de venta inválidos"},
    404: {"model": SaleErrorOut, "description": "Venta no encontrada"},
    409: {"model": SaleErrorOut, "description": "Stock insuficiente o conflicto de concurrencia"},
    503: {"model": SaleErrorOut, "description": "La transacción excedió el tiempo máximo"},
}


@sales_router.post(
    "/",
    response_model=SaleOut,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    summary="Registrar venta",
    description="""
    Registra una venta y descuenta el inventario en una sola transacción.

    **Proceso:**
    1. Valida que todos los productos existan y tengan stock suficiente
    2. Descuenta el stock de cada línea
    3. Asigna el número de venta (V00001, V00002, ...)
    4. Guarda la venta con copia de nombres y precios

    Si cualquier paso falla no se aplica ningún cambio.
    """
)
def create_sale(
    sale_data: SaleCreate,
    db: db_dependency,
    session_factory: session_factory_dependency,
    auth_context: AuthContext = Depends(AuthDependencies.require_seller())
):
    return SaleService(db, session_factory).create_sale(auth_context, sale_data)


@sales_router.get("/", response_model=SaleList)
def list_sales(
    db: db_dependency,
    session_factory: session_factory_dependency,
    auth_context: AuthContext = Depends(AuthDependencies.require_seller())
):
    sales = SaleService(db, session_factory).list_sales()
    return SaleList(sales=sales, total=len(sales))


@sales_router.get("/{sale_id}", response_model=SaleOut, responses={404: ERROR_RESPONSES[404]})
def get_sale(
    sale_id: UUID,
    db: db_dependency,
    session_factory: session_factory_dependency,
    auth_context: AuthContext = Depends(AuthDependencies.require_seller())
):
    return SaleService(db, session_factory).get_sale(sale_id)


@sales_router.patch("/{sale_id}", response_model=SaleOut, responses=ERROR_RESPONSES)
def update_sale(
    sale_id: UUID,
    sale_data: SaleUpdate,
    db: db_dependency,
    session_factory: session_factory_dependency,
    auth_context: AuthContext = Depends(AuthDependencies.require_admin())
):
    """Cambiar cliente o método de pago. customer_id en null = Consumidor Final."""
    return SaleService(db, session_factory).update_sale_metadata(auth_context, sale_id, sale_data)


@sales_router.delete("/{sale_id}", status_code=status.HTTP_204_NO_CONTENT, responses=ERROR_RESPONSES)
def delete_sale(
    sale_id: UUID,
    db: db_dependency,
    session_factory: session_factory_dependency,
    auth_context: AuthContext = Depends(AuthDependencies.require_admin())
):
    """Eliminar la venta y devolver su stock al inventario."""
    SaleService(db, session_factory).delete_sale(auth_context, sale_id)
