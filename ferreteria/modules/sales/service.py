"""
Servicios de negocio para el módulo de Ventas

Este módulo implementa:
- Creación de ventas: validación de stock, descuento, numeración y registro en una sola transacción
- Eliminación de ventas con devolución del stock
- Edición de cliente y método de pago
- Consultas de ventas
- Registro de auditoría de cada cambio confirmado
"""

from datetime import datetime
from typing import Callable, Dict, List, Optional, Any
from uuid import UUID
import logging

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ferreteria.common.mixins import utcnow
from ferreteria.modules.audit.schemas import AuditActionType
from ferreteria.modules.audit.service import AuditService
from ferreteria.modules.auth.models import User
from ferreteria.modules.auth.schemas import AuthContext, UNKNOWN_USER_NAME
from ferreteria.modules.auth.service import get_user_by_id
from ferreteria.modules.customers.models import Customer
from ferreteria.modules.sales.builder import CustomerRef, build_sale, validate_sale_lines
from ferreteria.modules.sales.exceptions import (
    SaleValidationError, SaleNotFoundError, PersistenceError
)
from ferreteria.modules.sales.models import Sale, PaymentMethod
from ferreteria.modules.sales.numbering import allocate_next_sale_number
from ferreteria.modules.sales.orchestrator import SaleTransaction, TransactionOrchestrator, TransactionState
from ferreteria.modules.sales.schemas import SaleCreate, SaleUpdate, SaleOut
from ferreteria.modules.sales.stock_guard import StockLedgerGuard

logger = logging.getLogger(__name__)


def resolve_customer(session: Session, customer_id: Optional[UUID]) -> Optional[CustomerRef]:
    if customer_id is None:
        return None
    customer = session.get(Customer, customer_id)
    if customer is None:
        raise SaleValidationError("El cliente seleccionado no existe.")
    return CustomerRef(id=customer.id, name=customer.name)


def resolve_seller_name(session: Session, user_id: UUID) -> str:
    user = get_user_by_id(session, user_id)
    return user.nombre if user and user.nombre else UNKNOWN_USER_NAME


class SaleService:
    """Servicio para gestión de ventas"""

    def __init__(
        self,
        db: Session,
        session_factory: sessionmaker,
        orchestrator: Optional[TransactionOrchestrator] = None,
        stock_guard_factory: Callable[[Session], StockLedgerGuard] = StockLedgerGuard,
        audit_service: Optional[AuditService] = None,
        now: Callable[[], datetime] = utcnow
    ):
        self.db = db
        self.session_factory = session_factory
        self.orchestrator = orchestrator or TransactionOrchestrator(session_factory)
        self.stock_guard_factory = stock_guard_factory
        self.audit_service = audit_service or AuditService(session_factory)
        self.now = now

    # ===== MUTACIONES =====

    def create_sale(self, actor: AuthContext, sale_data: SaleCreate) -> SaleOut:
        """
        Registrar una venta.

        Valida el stock de todas las líneas antes de descontar cualquiera,
        descuenta con UPDATE condicional, asigna el número de venta e inserta
        el documento, todo en la misma transacción. Si algo falla no queda
        ningún cambio aplicado.
        """
        validate_sale_lines(sale_data.items)

        def unit(tx: SaleTransaction) -> SaleOut:
            session = tx.session
            customer = resolve_customer(session, sale_data.customer_id)
            guard = self.stock_guard_factory(session)
            guard.validate(sale_data.items)

            tx.transition(TransactionState.APPLYING)
            guard.apply(sale_data.items)
            sale_number = allocate_next_sale_number(session)
            seller_name = resolve_seller_name(session, actor.user_id)

            tx.transition(TransactionState.COMMITTING)
            sale = build_sale(
                items=sale_data.items,
                customer=customer,
                payment_method=sale_data.payment_method,
                actor_user_id=actor.user_id,
                seller_name=seller_name,
                sale_number=sale_number,
                now=self.now()
            )
            session.add(sale)
            session.flush()
            return SaleOut.model_validate(sale)

        sale = self.orchestrator.run("create_sale", unit)
        logger.info(f"Sale {sale.sale_number} created by {actor.user_id} for {sale.total_amount}")

        self.audit_service.record(actor.user_id, AuditActionType.CREATE_SALE, {
            "sale_id": str(sale.id),
            "sale_number": sale.sale_number,
            "total_amount": str(sale.total_amount),
            "payment_method": sale.payment_method.value,
            "customer_id": str(sale.customer_id) if sale.customer_id else None,
            "customer_name": sale.customer_name,
            "items": [
                {
                    "product_id": str(item.product_id),
                    "product_name": item.product_name,
                    "quantity": str(item.quantity),
                    "unit_price_at_sale": str(item.unit_price_at_sale),
                }
                for item in sale.items
            ],
        })
        return sale

    def delete_sale(self, actor: AuthContext, sale_id: UUID) -> None:
        """Eliminar una venta devolviendo al inventario el stock de cada línea, en una sola transacción."""

        def unit(tx: SaleTransaction) -> Dict[str, Any]:
            session = tx.session
            sale = session.get(Sale, sale_id)
            if sale is None:
                raise SaleNotFoundError(sale_id)

            tx.transition(TransactionState.APPLYING)
            restored = self.stock_guard_factory(session).restore(sale.items)

            tx.transition(TransactionState.COMMITTING)
            details = {
                "sale_id": str(sale.id),
                "sale_number": sale.sale_number,
                "total_amount": str(sale.total_amount),
                "stock_restored": True,
                "restored_items": restored.restored,
                "skipped_product_ids": restored.skipped_product_ids,
            }
            session.delete(sale)
            session.flush()
            return details

        details = self.orchestrator.run("delete_sale", unit)
        logger.info(f"Sale {details['sale_number']} deleted by {actor.user_id}, stock restored")
        self.audit_service.record(actor.user_id, AuditActionType.DELETE_SALE, details)

    def update_sale_metadata(self, actor: AuthContext, sale_id: UUID, sale_data: SaleUpdate) -> SaleOut:
        """
        Cambiar cliente y/o método de pago con un único UPDATE.

        Las líneas, el total y el stock no se tocan. Sin cambios se devuelve
        la venta tal como está.
        """
        values: Dict[str, Any] = {}
        if sale_data.touches_customer:
            customer = resolve_customer(self.db, sale_data.customer_id)
            values["customer_id"] = customer.id if customer else None
            values["customer_name"] = customer.name if customer else None
        if sale_data.payment_method is not None:
            values["payment_method"] = PaymentMethod(sale_data.payment_method.value)

        if not values:
            return self.get_sale(sale_id)

        values["last_updated"] = self.now()
        try:
            result = self.db.execute(
                update(Sale)
                .where(Sale.id == sale_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                self.db.rollback()
                raise SaleNotFoundError(sale_id)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error(f"Failed to update sale {sale_id}", exc_info=True)
            raise PersistenceError()

        sale = self.get_sale(sale_id)
        changes = {
            key: (value.value if isinstance(value, PaymentMethod) else value)
            for key, value in values.items()
            if key != "last_updated"
        }
        if "customer_id" in changes and changes["customer_id"] is not None:
            changes["customer_id"] = str(changes["customer_id"])

        self.audit_service.record(actor.user_id, AuditActionType.UPDATE_SALE_DETAILS, {
            "sale_id": str(sale.id),
            "sale_number": sale.sale_number,
            "changes": changes,
        })
        return sale

    # ===== CONSULTAS =====

    def get_sale(self, sale_id: UUID) -> SaleOut:
        sale = self.db.execute(
            select(Sale).where(Sale.id == sale_id).execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if sale is None:
            raise SaleNotFoundError(sale_id)
        return self._with_seller_names([sale])[0]

    def list_sales(self) -> List[SaleOut]:
        """Ventas ordenadas de la más reciente a la más antigua."""
        sales = self.db.execute(
            select(Sale).order_by(Sale.date.desc(), Sale.sale_number.desc())
        ).scalars().all()
        return self._with_seller_names(sales)

    def _with_seller_names(self, sales) -> List[SaleOut]:
        """Completar seller_name desde la tabla de usuarios en ventas que no lo tienen guardado."""
        missing = {sale.user_id for sale in sales if not sale.seller_name}
        names: Dict[UUID, str] = {}
        if missing:
            users = self.db.execute(select(User).where(User.id.in_(missing))).scalars().all()
            names = {user.id: user.nombre for user in users}

        result = []
        for sale in sales:
            out = SaleOut.model_validate(sale)
            if not out.seller_name:
                out = out.model_copy(update={"seller_name": names.get(sale.user_id, UNKNOWN_USER_NAME)})
            result.append(out)
        return result
