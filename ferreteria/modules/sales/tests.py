"""
Tests para el módulo de Ventas

Cubren:
- Numeración de ventas (V00001, ...)
- Cálculo de subtotales y total
- Validación, descuento y devolución de stock
- Estados, timeout y reintentos de la transacción
- Escenarios completos de venta, eliminación y edición
- Endpoints HTTP, códigos de error y roles
"""

import sqlite3
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import UniqueConstraint, select, update
from sqlalchemy.exc import DBAPIError, OperationalError

from ferreteria.database.errors import is_retryable_error, is_timeout_error
from ferreteria.modules.audit.models import AuditLog
from ferreteria.modules.auth.schemas import AuthContext
from ferreteria.modules.inventory.models import InventoryItem, UnitType
from ferreteria.modules.inventory.service import InventoryService
from ferreteria.modules.sales.builder import CustomerRef, build_sale, calculate_total, validate_sale_lines
from ferreteria.modules.sales.exceptions import (
    SaleValidationError, ProductNotFoundError, InsufficientStockError, ConcurrencyError,
    ConcurrentStockConflictError, SaleNumberCollisionError, SaleTimeoutError,
    PersistenceError, SaleNotFoundError
)
from ferreteria.modules.sales.models import Sale, PaymentMethod as ModelPaymentMethod
from ferreteria.modules.sales.numbering import (
    allocate_next_sale_number, format_sale_number, parse_sale_number
)
from ferreteria.modules.sales.orchestrator import TransactionOrchestrator, TransactionState
from ferreteria.modules.sales.schemas import SaleCreate, SaleItemCreate, SaleUpdate, PaymentMethod
from ferreteria.modules.sales.service import SaleService
from ferreteria.modules.sales.stock_guard import StockLedgerGuard


# ===== HELPERS =====

class FakeClock:
    """Reloj monotónico controlado por el test."""

    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class RacingGuard(StockLedgerGuard):
    """Simula otra venta que se confirma entre la validación y el descuento."""

    def __init__(self, session, competitor):
        super().__init__(session)
        self.competitor = competitor

    def validate(self, lines):
        items = super().validate(lines)
        self.competitor()
        return items


class FakePgError(Exception):
    def __init__(self, message, pgcode):
        super().__init__(message)
        self.pgcode = pgcode


def sale_line(item, quantity, unit_price=None) -> SaleItemCreate:
    return SaleItemCreate(
        product_id=item.id,
        product_code=item.code,
        product_name=item.name,
        quantity=Decimal(str(quantity)),
        unit_price_at_sale=Decimal(str(unit_price)) if unit_price is not None else item.unit_price,
    )


def stock_of(session_factory, item_id) -> Decimal:
    with session_factory() as session:
        return session.get(InventoryItem, item_id).quantity


def sale_count(session_factory) -> int:
    with session_factory() as session:
        return len(session.execute(select(Sale)).scalars().all())


def audit_entries(session_factory, action_type):
    with session_factory() as session:
        return session.execute(
            select(AuditLog).where(AuditLog.action_type == action_type)
        ).scalars().all()


def insert_sale(session_factory, sale_number, user_id, seller_name="Vendedor", date=None):
    with session_factory() as session, session.begin():
        session.add(Sale(
            sale_number=sale_number,
            date=date or datetime.now(timezone.utc),
            total_amount=Decimal("0"),
            payment_method=ModelPaymentMethod.CASH,
            user_id=user_id,
            seller_name=seller_name,
        ))


@pytest.fixture
def sale_service(db_session, session_factory):
    return SaleService(db_session, session_factory)


# ===== TESTS DE NUMERACIÓN =====

class TestSaleNumbering:
    """Tests para el cálculo del número de venta"""

    def test_parse_sale_number(self):
        assert parse_sale_number("V00007") == 7
        assert parse_sale_number("v00012") == 12
        assert parse_sale_number("V100000") == 100000

    def test_parse_unparseable_sale_number(self):
        assert parse_sale_number(None) == 0
        assert parse_sale_number("") == 0
        assert parse_sale_number("V") == 0
        assert parse_sale_number("VABC") == 0
        assert parse_sale_number("V-12") == 0

    def test_format_sale_number(self):
        assert format_sale_number(1) == "V00001"
        assert format_sale_number(42) == "V00042"
        assert format_sale_number(100000) == "V100000"

    def test_first_sale_number(self, session_factory):
        with session_factory() as session:
            assert allocate_next_sale_number(session) == "V00001"

    def test_next_after_highest(self, session_factory, admin_user):
        for number in ("V00003", "V00007", "V00005"):
            insert_sale(session_factory, number, admin_user.id)
        with session_factory() as session:
            assert allocate_next_sale_number(session) == "V00008"

    def test_numeric_order_beyond_five_digits(self, session_factory, admin_user):
        insert_sale(session_factory, "V99999", admin_user.id)
        insert_sale(session_factory, "V100000", admin_user.id)
        with session_factory() as session:
            assert allocate_next_sale_number(session) == "V100001"

    def test_sale_number_has_one_unique_constraint(self):
        table = Sale.__table__
        assert not [ix for ix in table.indexes if "sale_number" in ix.columns]
        unique = [c for c in table.constraints
                  if isinstance(c, UniqueConstraint) and "sale_number" in c.columns]
        assert [c.name for c in unique] == ["uq_sales_sale_number"]

    def test_unparseable_existing_number_restarts_counter(self, session_factory, admin_user):
        insert_sale(session_factory, "VXYZ", admin_user.id)
        with session_factory() as session:
            assert allocate_next_sale_number(session) == "V00001"


# ===== TESTS DE ARMADO DE LA VENTA =====

class TestSaleBuilder:
    """Tests para subtotales, total y copia de datos"""

    def test_subtotals_and_total(self):
        product_a, product_b = uuid4(), uuid4()
        items = [
            SaleItemCreate(product_id=product_a, product_code="01-A1-00001", product_name="Martillo",
                           quantity=Decimal("3"), unit_price_at_sale=Decimal("5.00")),
            SaleItemCreate(product_id=product_b, product_code="02-B2-00001", product_name="Cable",
                           quantity=Decimal("2.5"), unit_price_at_sale=Decimal("4.10")),
        ]
        sale = build_sale(items, None, PaymentMethod.CASH, uuid4(), "Pedro", "V00001",
                          datetime.now(timezone.utc))

        assert [line.subtotal for line in sale.items] == [Decimal("15.00"), Decimal("10.250")]
        assert sale.total_amount == Decimal("25.25")
        assert sale.total_amount == calculate_total(line.subtotal for line in sale.items)
        for line in sale.items:
            assert line.subtotal == line.quantity * line.unit_price_at_sale

    def test_walk_in_customer_has_no_id_or_name(self):
        items = [SaleItemCreate(product_id=uuid4(), product_code="01-A1-00001", product_name="Martillo",
                                quantity=Decimal("1"), unit_price_at_sale=Decimal("5.00"))]
        sale = build_sale(items, None, PaymentMethod.CARD, uuid4(), "Pedro", "V00002",
                          datetime.now(timezone.utc))

        assert sale.customer_id is None
        assert sale.customer_name is None
        assert sale.payment_method == ModelPaymentMethod.CARD

    def test_customer_snapshot_and_item_order(self):
        customer = CustomerRef(id=uuid4(), name="Ana Torres")
        items = [
            SaleItemCreate(product_id=uuid4(), product_code=f"01-A1-0000{i}", product_name=f"Artículo {i}",
                           quantity=Decimal("1"), unit_price_at_sale=Decimal("1.00"))
            for i in range(1, 4)
        ]
        sale = build_sale(items, customer, PaymentMethod.CASH, uuid4(), "Pedro", "V00003",
                          datetime.now(timezone.utc))

        assert sale.customer_id == customer.id
        assert sale.customer_name == "Ana Torres"
        assert [line.product_name for line in sale.items] == ["Artículo 1", "Artículo 2", "Artículo 3"]
        assert [line.position for line in sale.items] == [0, 1, 2]

    def test_empty_items_rejected(self):
        with pytest.raises(SaleValidationError):
            validate_sale_lines([])

    def test_non_positive_quantity_rejected(self):
        item = SaleItemCreate.model_construct(
            product_id=uuid4(), product_code="01-A1-00001", product_name="Martillo",
            quantity=Decimal("0"), unit_price_at_sale=Decimal("5.00")
        )
        with pytest.raises(SaleValidationError):
            validate_sale_lines([item])

    def test_negative_price_rejected(self):
        item = SaleItemCreate.model_construct(
            product_id=uuid4(), product_code="01-A1-00001", product_name="Martillo",
            quantity=Decimal("1"), unit_price_at_sale=Decimal("-1")
        )
        with pytest.raises(SaleValidationError):
            validate_sale_lines([item])

    def test_schema_rejects_excess_decimals(self):
        with pytest.raises(ValueError):
            SaleItemCreate(product_id=uuid4(), product_code="03-C1-00001", product_name="Cable",
                           quantity=Decimal("0.0004"), unit_price_at_sale=Decimal("1.00"))
        with pytest.raises(ValueError):
            SaleItemCreate(product_id=uuid4(), product_code="03-C1-00001", product_name="Cable",
                           quantity=Decimal("1"), unit_price_at_sale=Decimal("1.005"))

    def test_excess_decimals_rejected_without_schema(self):
        quantity_line = SaleItemCreate.model_construct(
            product_id=uuid4(), product_code="03-C1-00001", product_name="Cable",
            quantity=Decimal("0.0004"), unit_price_at_sale=Decimal("1.00")
        )
        price_line = SaleItemCreate.model_construct(
            product_id=uuid4(), product_code="03-C1-00001", product_name="Cable",
            quantity=Decimal("1.250"), unit_price_at_sale=Decimal("1.005")
        )
        with pytest.raises(SaleValidationError):
            validate_sale_lines([quantity_line])
        with pytest.raises(SaleValidationError):
            validate_sale_lines([price_line])

    def test_schema_rejects_empty_items(self):
        with pytest.raises(ValueError):
            SaleCreate(items=[], payment_method="efectivo")


# ===== TESTS DE CONTROL DE STOCK =====

class TestStockLedgerGuard:
    """Tests para validate / apply / restore"""

    def test_validate_missing_product(self, session_factory):
        line = SaleItemCreate(product_id=uuid4(), product_code="01-A1-00099", product_name="Fantasma",
                              quantity=Decimal("1"), unit_price_at_sale=Decimal("1.00"))
        with session_factory() as session:
            with pytest.raises(ProductNotFoundError) as exc_info:
                StockLedgerGuard(session).validate([line])
        assert exc_info.value.product_name == "Fantasma"

    def test_validate_insufficient_stock(self, session_factory, make_item):
        item = make_item(quantity="2")
        with session_factory() as session:
            with pytest.raises(InsufficientStockError) as exc_info:
                StockLedgerGuard(session).validate([sale_line(item, 5)])
        assert exc_info.value.available == Decimal("2")
        assert exc_info.value.requested == Decimal("5")
        assert exc_info.value.product_name == item.name

    def test_validate_adds_up_repeated_product(self, session_factory, make_item):
        item = make_item(quantity="10")
        with session_factory() as session:
            with pytest.raises(InsufficientStockError) as exc_info:
                StockLedgerGuard(session).validate([sale_line(item, 6), sale_line(item, 6)])
        assert exc_info.value.requested == Decimal("12")

    def test_apply_decrements(self, session_factory, make_item):
        item = make_item(quantity="10")
        with session_factory() as session, session.begin():
            StockLedgerGuard(session).apply([sale_line(item, 3)])
        assert stock_of(session_factory, item.id) == Decimal("7")

    def test_apply_refuses_negative_stock(self, session_factory, make_item):
        item = make_item(quantity="2")
        with session_factory() as session:
            with pytest.raises(ConcurrentStockConflictError):
                with session.begin():
                    StockLedgerGuard(session).apply([sale_line(item, 3)])
        assert stock_of(session_factory, item.id) == Decimal("2")

    def test_fractional_decrements_down_to_zero(self, session_factory, make_item):
        item = make_item(quantity="0.75", unit_type=UnitType.MEASURABLE, unit_name="metro")
        with session_factory() as session, session.begin():
            StockLedgerGuard(session).apply([sale_line(item, "0.5")])
        with session_factory() as session, session.begin():
            StockLedgerGuard(session).apply([sale_line(item, "0.25")])
        assert stock_of(session_factory, item.id) == Decimal("0")

    def test_restore_adds_back_and_skips_missing(self, session_factory, make_item):
        item = make_item(quantity="4")
        ghost = SaleItemCreate(product_id=uuid4(), product_code="01-A1-00099", product_name="Fantasma",
                               quantity=Decimal("1"), unit_price_at_sale=Decimal("1.00"))
        with session_factory() as session, session.begin():
            result = StockLedgerGuard(session).restore([sale_line(item, 6), ghost])

        assert stock_of(session_factory, item.id) == Decimal("10")
        assert result.skipped_product_ids == [str(ghost.product_id)]
        assert result.restored == [{"product_id": str(item.id), "quantity": "6"}]


# ===== TESTS DEL ORQUESTADOR =====

class TestTransactionOrchestrator:
    """Tests para estados, timeout y reintentos"""

    def test_commit_walks_all_states(self, session_factory, make_item):
        item = make_item(quantity="10")
        orchestrator = TransactionOrchestrator(session_factory)

        def unit(tx):
            tx.transition(TransactionState.APPLYING)
            tx.session.execute(update(InventoryItem).where(InventoryItem.id == item.id).values(quantity=1))
            tx.transition(TransactionState.COMMITTING)
            return "ok"

        assert orchestrator.run("test", unit) == "ok"
        assert orchestrator.last_transaction.history == [
            TransactionState.IDLE, TransactionState.VALIDATING, TransactionState.APPLYING,
            TransactionState.COMMITTING, TransactionState.COMMITTED,
        ]
        assert stock_of(session_factory, item.id) == Decimal("1")

    def test_business_error_aborts_and_rolls_back(self, session_factory, make_item):
        item = make_item(quantity="10")
        orchestrator = TransactionOrchestrator(session_factory)
        attempts = []

        def unit(tx):
            attempts.append(tx.attempt)
            tx.session.execute(update(InventoryItem).where(InventoryItem.id == item.id).values(quantity=0))
            raise InsufficientStockError("Martillo", Decimal("0"), Decimal("1"))

        with pytest.raises(InsufficientStockError):
            orchestrator.run("test", unit)
        assert attempts == [1]
        assert orchestrator.last_transaction.state == TransactionState.ABORTED
        assert stock_of(session_factory, item.id) == Decimal("10")

    def test_persistence_error_marks_failed(self, session_factory):
        orchestrator = TransactionOrchestrator(session_factory)

        def unit(tx):
            raise DBAPIError("INSERT INTO sales ...", {}, Exception("disk I/O error"))

        with pytest.raises(PersistenceError) as exc_info:
            orchestrator.run("test", unit)
        assert "disk" not in exc_info.value.message
        assert orchestrator.last_transaction.state == TransactionState.FAILED

    def test_deadline_between_phases(self, session_factory, make_item):
        item = make_item(quantity="10")
        clock = FakeClock()
        orchestrator = TransactionOrchestrator(session_factory, timeout_seconds=5, clock=clock)

        def unit(tx):
            tx.session.execute(update(InventoryItem).where(InventoryItem.id == item.id).values(quantity=0))
            clock.advance(10)
            tx.transition(TransactionState.APPLYING)

        with pytest.raises(SaleTimeoutError):
            orchestrator.run("test", unit)
        assert orchestrator.last_transaction.state == TransactionState.ABORTED
        assert stock_of(session_factory, item.id) == Decimal("10")

    def test_deadline_before_commit(self, session_factory, make_item):
        item = make_item(quantity="10")
        clock = FakeClock()
        orchestrator = TransactionOrchestrator(session_factory, timeout_seconds=5, clock=clock)

        def unit(tx):
            tx.transition(TransactionState.APPLYING)
            tx.session.execute(update(InventoryItem).where(InventoryItem.id == item.id).values(quantity=0))
            tx.transition(TransactionState.COMMITTING)
            clock.advance(6)
            return "late"

        with pytest.raises(SaleTimeoutError):
            orchestrator.run("test", unit)
        assert stock_of(session_factory, item.id) == Decimal("10")

    def test_store_timeout_is_translated(self, session_factory):
        orchestrator = TransactionOrchestrator(session_factory)

        def unit(tx):
            raise OperationalError("UPDATE inventory_items ...", {},
                                   FakePgError("canceling statement due to statement timeout", "57014"))

        with pytest.raises(SaleTimeoutError):
            orchestrator.run("test", unit)

    def test_transient_conflict_is_retried(self, session_factory):
        orchestrator = TransactionOrchestrator(session_factory, max_retries=2)
        attempts = []

        def unit(tx):
            attempts.append(tx.attempt)
            if len(attempts) == 1:
                raise OperationalError("UPDATE inventory_items ...", {}, sqlite3.OperationalError("database is locked"))
            return "ok"

        assert orchestrator.run("test", unit) == "ok"
        assert attempts == [1, 2]
        assert orchestrator.last_transaction.state == TransactionState.COMMITTED

    def test_retries_are_bounded(self, session_factory):
        orchestrator = TransactionOrchestrator(session_factory, max_retries=2)
        attempts = []

        def unit(tx):
            attempts.append(tx.attempt)
            raise OperationalError("UPDATE inventory_items ...", {}, FakePgError("could not serialize access", "40001"))

        with pytest.raises(ConcurrencyError) as exc_info:
            orchestrator.run("test", unit)
        assert attempts == [1, 2, 3]
        assert exc_info.value.error_code == "concurrency_conflict"

    def test_error_classification(self):
        serialization = OperationalError("SELECT 1", {}, FakePgError("could not serialize", "40001"))
        deadlock = OperationalError("SELECT 1", {}, FakePgError("deadlock detected", "40P01"))
        timeout = OperationalError("SELECT 1", {}, FakePgError("canceling statement", "57014"))
        other = DBAPIError("SELECT 1", {}, Exception("boom"))

        assert is_retryable_error(serialization)
        assert is_retryable_error(deadlock)
        assert not is_retryable_error(timeout)
        assert not is_retryable_error(other)
        assert not is_retryable_error(ValueError("not a store error"))
        assert is_timeout_error(timeout)
        assert not is_timeout_error(serialization)


# ===== TESTS DEL SERVICIO =====

class TestSaleService:
    """Escenarios completos de creación, eliminación y edición"""

    def test_create_sale_happy_path(self, sale_service, session_factory, seller_actor, make_item):
        """Stock 10, venta de 3 a 5.00"""
        item = make_item(quantity="10", unit_price="5.00")

        sale = sale_service.create_sale(seller_actor, SaleCreate(
            items=[sale_line(item, 3)], payment_method="efectivo"
        ))

        assert sale.sale_number == "V00001"
        assert sale.total_amount == Decimal("15.00")
        assert sale.seller_name == "Pedro Vendedor"
        assert sale.customer_id is None and sale.customer_name is None
        assert stock_of(session_factory, item.id) == Decimal("7")

        entries = audit_entries(session_factory, "CREATE_SALE")
        assert len(entries) == 1
        assert entries[0].actor_name == "Pedro Vendedor"
        assert entries[0].actor_role == "empleado"
        assert entries[0].details["sale_number"] == "V00001"
        assert entries[0].details["sale_id"] == str(sale.id)

    def test_insufficient_stock_changes_nothing(self, sale_service, session_factory, seller_actor, make_item):
        item = make_item(quantity="2")

        with pytest.raises(InsufficientStockError) as exc_info:
            sale_service.create_sale(seller_actor, SaleCreate(
                items=[sale_line(item, 5)], payment_method="efectivo"
            ))

        assert exc_info.value.available == Decimal("2")
        assert exc_info.value.requested == Decimal("5")
        assert stock_of(session_factory, item.id) == Decimal("2")
        assert sale_count(session_factory) == 0
        assert audit_entries(session_factory, "CREATE_SALE") == []

    def test_lost_race_aborts_second_sale(self, db_session, session_factory, seller_actor, admin_actor, make_item):
        """Dos ventas de 6 sobre stock 10: solo una se confirma"""
        item = make_item(quantity="10")
        competitor = SaleService(db_session, session_factory)

        def competing_sale():
            competitor.create_sale(admin_actor, SaleCreate(items=[sale_line(item, 6)], payment_method="tarjeta"))

        racing_service = SaleService(
            db_session,
            session_factory,
            orchestrator=TransactionOrchestrator(session_factory, max_retries=0),
            stock_guard_factory=lambda session: RacingGuard(session, competing_sale)
        )

        with pytest.raises(ConcurrentStockConflictError):
            racing_service.create_sale(seller_actor, SaleCreate(
                items=[sale_line(item, 6)], payment_method="efectivo"
            ))

        assert stock_of(session_factory, item.id) == Decimal("4")
        assert sale_count(session_factory) == 1
        assert racing_service.orchestrator.last_transaction.state == TransactionState.ABORTED

    def test_sale_number_follows_highest(self, sale_service, session_factory, admin_user, seller_actor, make_item):
        insert_sale(session_factory, "V00007", admin_user.id)
        item = make_item(quantity="10")

        sale = sale_service.create_sale(seller_actor, SaleCreate(items=[sale_line(item, 1)], payment_method="efectivo"))

        assert sale.sale_number == "V00008"

    def test_sequential_sales_get_unique_numbers(self, sale_service, seller_actor, make_item):
        item = make_item(quantity="10")
        numbers = [
            sale_service.create_sale(seller_actor, SaleCreate(
                items=[sale_line(item, 1)], payment_method="efectivo"
            )).sale_number
            for _ in range(3)
        ]
        assert numbers == ["V00001", "V00002", "V00003"]

    def test_number_collision_aborts(self, sale_service, session_factory, admin_user, seller_actor, make_item, monkeypatch):
        insert_sale(session_factory, "V00001", admin_user.id)
        item = make_item(quantity="10")
        monkeypatch.setattr(
            "ferreteria.modules.sales.service.allocate_next_sale_number",
            lambda session: "V00001"
        )

        with pytest.raises(SaleNumberCollisionError):
            sale_service.create_sale(seller_actor, SaleCreate(items=[sale_line(item, 2)], payment_method="efectivo"))

        assert stock_of(session_factory, item.id) == Decimal("10")
        assert sale_count(session_factory) == 1

    def test_failing_line_leaves_earlier_lines_untouched(self, sale_service, session_factory, seller_actor, make_item):
        hammer = make_item(name="Martillo", quantity="10")
        saw = make_item(name="Serrucho", quantity="10")
        drill = make_item(name="Taladro", quantity="1")

        with pytest.raises(InsufficientStockError) as exc_info:
            sale_service.create_sale(seller_actor, SaleCreate(
                items=[sale_line(hammer, 2), sale_line(saw, 2), sale_line(drill, 5)],
                payment_method="efectivo"
            ))

        assert exc_info.value.product_name == "Taladro"
        assert stock_of(session_factory, hammer.id) == Decimal("10")
        assert stock_of(session_factory, saw.id) == Decimal("10")
        assert sale_count(session_factory) == 0

    def test_missing_product_aborts(self, sale_service, session_factory, seller_actor, make_item):
        item = make_item(quantity="10")
        ghost = SaleItemCreate(product_id=uuid4(), product_code="01-A1-00099", product_name="Fantasma",
                               quantity=Decimal("1"), unit_price_at_sale=Decimal("1.00"))

        with pytest.raises(ProductNotFoundError):
            sale_service.create_sale(seller_actor, SaleCreate(
                items=[sale_line(item, 1), ghost], payment_method="efectivo"
            ))
        assert stock_of(session_factory, item.id) == Decimal("10")

    def test_fractional_quantities(self, sale_service, session_factory, seller_actor, make_item):
        cable = make_item(name="Cable eléctrico", quantity="10", unit_price="4.10",
                          unit_type=UnitType.MEASURABLE, unit_name="metro")

        sale = sale_service.create_sale(seller_actor, SaleCreate(
            items=[sale_line(cable, "2.5")], payment_method="tarjeta"
        ))

        assert sale.items[0].subtotal == Decimal("10.25")
        assert sale.total_amount == Decimal("10.25")
        assert stock_of(session_factory, cable.id) == Decimal("7.5")

    def test_reloaded_sale_keeps_exact_subtotal(self, sale_service, session_factory, seller_actor, make_item):
        cable = make_item(name="Cable gemelo", quantity="10", unit_price="2.50",
                          unit_type=UnitType.MEASURABLE, unit_name="metro")

        created = sale_service.create_sale(seller_actor, SaleCreate(
            items=[sale_line(cable, "1.375")], payment_method="efectivo"
        ))
        reloaded = sale_service.get_sale(created.id)

        line = reloaded.items[0]
        assert line.quantity == Decimal("1.375")
        assert line.subtotal == line.quantity * line.unit_price_at_sale
        assert reloaded.total_amount == Decimal("3.4375")
        assert stock_of(session_factory, cable.id) == Decimal("8.625")

    def test_price_is_taken_from_submission(self, sale_service, seller_actor, make_item):
        item = make_item(quantity="10", unit_price="5.00")

        sale = sale_service.create_sale(seller_actor, SaleCreate(
            items=[sale_line(item, 2, unit_price="4.50")], payment_method="efectivo"
        ))

        assert sale.items[0].unit_price_at_sale == Decimal("4.50")
        assert sale.total_amount == Decimal("9.00")

    def test_customer_name_is_copied(self, sale_service, seller_actor, make_item, sample_customer):
        item = make_item(quantity="10")

        sale = sale_service.create_sale(seller_actor, SaleCreate(
            customer_id=sample_customer.id, items=[sale_line(item, 1)], payment_method="efectivo"
        ))

        assert sale.customer_id == sample_customer.id
        assert sale.customer_name == "Ana Torres"

    def test_unknown_customer_is_rejected(self, sale_service, session_factory, seller_actor, make_item):
        item = make_item(quantity="10")

        with pytest.raises(SaleValidationError):
            sale_service.create_sale(seller_actor, SaleCreate(
                customer_id=uuid4(), items=[sale_line(item, 1)], payment_method="efectivo"
            ))
        assert stock_of(session_factory, item.id) == Decimal("10")

    def test_unknown_seller_gets_placeholder_name(self, sale_service, session_factory, make_item):
        item = make_item(quantity="10")
        ghost_actor = AuthContext(user_id=uuid4(), user_name=None, user_role=None)

        sale = sale_service.create_sale(ghost_actor, SaleCreate(items=[sale_line(item, 1)], payment_method="efectivo"))

        assert sale.seller_name == "Usuario Desconocido"
        entry = audit_entries(session_factory, "CREATE_SALE")[0]
        assert entry.actor_name == "Usuario Desconocido"
        assert entry.actor_role == "Desconocido"

    def test_delete_restores_stock_and_skips_deleted_items(
        self, sale_service, db_session, session_factory, admin_actor, seller_actor, make_item
    ):
        hammer = make_item(name="Martillo", quantity="10")
        saw = make_item(name="Serrucho", quantity="10")
        sale = sale_service.create_sale(seller_actor, SaleCreate(
            items=[sale_line(hammer, 2), sale_line(saw, 3)], payment_method="efectivo"
        ))
        InventoryService(db_session).delete_item(saw.id)

        sale_service.delete_sale(admin_actor, sale.id)

        assert stock_of(session_factory, hammer.id) == Decimal("10")
        assert sale_count(session_factory) == 0
        entry = audit_entries(session_factory, "DELETE_SALE")[0]
        assert entry.details["stock_restored"] is True
        assert entry.details["sale_number"] == sale.sale_number
        assert entry.details["skipped_product_ids"] == [str(saw.id)]

    def test_delete_missing_sale(self, sale_service, session_factory, admin_actor):
        with pytest.raises(SaleNotFoundError):
            sale_service.delete_sale(admin_actor, uuid4())
        assert audit_entries(session_factory, "DELETE_SALE") == []

    def test_update_payment_method_only(self, sale_service, admin_actor, seller_actor, make_item, sample_customer):
        item = make_item(quantity="10")
        sale = sale_service.create_sale(seller_actor, SaleCreate(
            customer_id=sample_customer.id, items=[sale_line(item, 2)], payment_method="efectivo"
        ))

        updated = sale_service.update_sale_metadata(admin_actor, sale.id, SaleUpdate(payment_method="tarjeta"))

        assert updated.payment_method == PaymentMethod.CARD
        assert updated.customer_id == sample_customer.id
        assert updated.customer_name == "Ana Torres"
        assert updated.total_amount == sale.total_amount
        assert [i.quantity for i in updated.items] == [i.quantity for i in sale.items]
        assert updated.sale_number == sale.sale_number

    def test_update_clears_customer_with_explicit_null(self, sale_service, session_factory, admin_actor,
                                                      seller_actor, make_item, sample_customer):
        item = make_item(quantity="10")
        sale = sale_service.create_sale(seller_actor, SaleCreate(
            customer_id=sample_customer.id, items=[sale_line(item, 1)], payment_method="efectivo"
        ))

        updated = sale_service.update_sale_metadata(
            admin_actor, sale.id, SaleUpdate.model_validate({"customer_id": None})
        )

        assert updated.customer_id is None
        assert updated.customer_name is None
        assert updated.payment_method == PaymentMethod.CASH
        entry = audit_entries(session_factory, "UPDATE_SALE_DETAILS")[0]
        assert entry.details["changes"] == {"customer_id": None, "customer_name": None}

    def test_update_without_changes_returns_sale(self, sale_service, session_factory, admin_actor,
                                                 seller_actor, make_item):
        item = make_item(quantity="10")
        sale = sale_service.create_sale(seller_actor, SaleCreate(items=[sale_line(item, 1)], payment_method="efectivo"))

        unchanged = sale_service.update_sale_metadata(admin_actor, sale.id, SaleUpdate())

        assert unchanged.id == sale.id
        assert audit_entries(session_factory, "UPDATE_SALE_DETAILS") == []

    def test_update_unknown_customer(self, sale_service, admin_actor, seller_actor, make_item):
        item = make_item(quantity="10")
        sale = sale_service.create_sale(seller_actor, SaleCreate(items=[sale_line(item, 1)], payment_method="efectivo"))

        with pytest.raises(SaleValidationError):
            sale_service.update_sale_metadata(admin_actor, sale.id, SaleUpdate(customer_id=uuid4()))

    def test_update_missing_sale(self, sale_service, admin_actor):
        with pytest.raises(SaleNotFoundError):
            sale_service.update_sale_metadata(admin_actor, uuid4(), SaleUpdate(payment_method="tarjeta"))

    def test_get_sale_fills_missing_seller_name(self, sale_service, session_factory, admin_user):
        insert_sale(session_factory, "V00001", admin_user.id, seller_name=None)
        with session_factory() as session:
            sale_id = session.execute(select(Sale.id)).scalar_one()

        sale = sale_service.get_sale(sale_id)

        assert sale.seller_name == "Carla Admin"

    def test_list_sales_newest_first(self, db_session, session_factory, seller_actor, make_item):
        item = make_item(quantity="10")
        earlier = datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)
        later = earlier + timedelta(hours=2)

        SaleService(db_session, session_factory, now=lambda: earlier).create_sale(
            seller_actor, SaleCreate(items=[sale_line(item, 1)], payment_method="efectivo")
        )
        SaleService(db_session, session_factory, now=lambda: later).create_sale(
            seller_actor, SaleCreate(items=[sale_line(item, 1)], payment_method="efectivo")
        )

        sales = SaleService(db_session, session_factory).list_sales()
        assert [s.sale_number for s in sales] == ["V00002", "V00001"]


# ===== TESTS DE API =====

class TestSaleAPI:
    """Tests de endpoints de ventas"""

    def test_create_sale_endpoint(self, client, session_factory, seller_headers, make_item):
        item = make_item(quantity="10", unit_price="5.00")

        response = client.post("/api/v1/sales/", headers=seller_headers, json={
            "items": [{
                "product_id": str(item.id),
                "product_code": item.code,
                "product_name": item.name,
                "quantity": "3",
                "unit_price_at_sale": "5.00",
            }],
            "payment_method": "efectivo",
        })

        assert response.status_code == 201
        data = response.json()
        assert data["sale_number"] == "V00001"
        assert Decimal(data["total_amount"]) == Decimal("15")
        assert data["customer_id"] is None
        assert data["seller_name"] == "Pedro Vendedor"
        assert stock_of(session_factory, item.id) == Decimal("7")

    def test_insufficient_stock_response(self, client, seller_headers, make_item):
        item = make_item(quantity="2")

        response = client.post("/api/v1/sales/", headers=seller_headers, json={
            "items": [{
                "product_id": str(item.id),
                "product_code": item.code,
                "product_name": item.name,
                "quantity": "5",
                "unit_price_at_sale": "5.00",
            }],
            "payment_method": "efectivo",
        })

        assert response.status_code == 409
        data = response.json()
        assert data["code"] == "insufficient_stock"
        assert data["product_name"] == item.name
        assert Decimal(data["available"]) == Decimal("2")
        assert Decimal(data["requested"]) == Decimal("5")

    def test_unknown_product_response(self, client, seller_headers):
        response = client.post("/api/v1/sales/", headers=seller_headers, json={
            "items": [{
                "product_id": str(uuid4()),
                "product_code": "01-A1-00099",
                "product_name": "Fantasma",
                "quantity": "1",
                "unit_price_at_sale": "1.00",
            }],
            "payment_method": "tarjeta",
        })

        assert response.status_code == 409
        assert response.json()["code"] == "product_not_found"

    def test_excess_decimals_are_rejected(self, client, session_factory, seller_headers, make_item):
        item = make_item(quantity="10", unit_type=UnitType.MEASURABLE, unit_name="metro")

        response = client.post("/api/v1/sales/", headers=seller_headers, json={
            "items": [{
                "product_id": str(item.id),
                "product_code": item.code,
                "product_name": item.name,
                "quantity": "0.0004",
                "unit_price_at_sale": "5.00",
            }],
            "payment_method": "efectivo",
        })

        assert response.status_code == 422
        assert sale_count(session_factory) == 0
        assert stock_of(session_factory, item.id) == Decimal("10")

    def test_empty_sale_is_rejected(self, client, seller_headers):
        response = client.post("/api/v1/sales/", headers=seller_headers, json={
            "items": [],
            "payment_method": "efectivo",
        })
        assert response.status_code == 422

    def test_inventory_manager_cannot_sell(self, client, inventory_headers, make_item):
        item = make_item(quantity="10")
        response = client.post("/api/v1/sales/", headers=inventory_headers, json={
            "items": [{
                "product_id": str(item.id),
                "product_code": item.code,
                "product_name": item.name,
                "quantity": "1",
                "unit_price_at_sale": "5.00",
            }],
            "payment_method": "efectivo",
        })
        assert response.status_code == 403

    def test_requires_token(self, client):
        response = client.get("/api/v1/sales/")
        assert response.status_code in (401, 403)

    def test_list_and_get(self, client, sale_service, seller_actor, seller_headers, make_item):
        item = make_item(quantity="10")
        sale = sale_service.create_sale(seller_actor, SaleCreate(items=[sale_line(item, 1)], payment_method="efectivo"))

        listing = client.get("/api/v1/sales/", headers=seller_headers)
        assert listing.status_code == 200
        assert listing.json()["total"] == 1

        detail = client.get(f"/api/v1/sales/{sale.id}", headers=seller_headers)
        assert detail.status_code == 200
        assert detail.json()["sale_number"] == "V00001"
        assert len(detail.json()["items"]) == 1

    def test_get_missing_sale(self, client, seller_headers):
        response = client.get(f"/api/v1/sales/{uuid4()}", headers=seller_headers)
        assert response.status_code == 404
        assert response.json()["code"] == "sale_not_found"

    def test_edit_and_delete_are_admin_only(self, client, sale_service, seller_actor, seller_headers, make_item):
        item = make_item(quantity="10")
        sale = sale_service.create_sale(seller_actor, SaleCreate(items=[sale_line(item, 1)], payment_method="efectivo"))

        assert client.patch(f"/api/v1/sales/{sale.id}", headers=seller_headers,
                            json={"payment_method": "tarjeta"}).status_code == 403
        assert client.delete(f"/api/v1/sales/{sale.id}", headers=seller_headers).status_code == 403

    def test_patch_clears_customer(self, client, sale_service, seller_actor, admin_headers,
                                   make_item, sample_customer):
        item = make_item(quantity="10")
        sale = sale_service.create_sale(seller_actor, SaleCreate(
            customer_id=sample_customer.id, items=[sale_line(item, 1)], payment_method="efectivo"
        ))

        kept = client.patch(f"/api/v1/sales/{sale.id}", headers=admin_headers, json={"payment_method": "tarjeta"})
        assert kept.status_code == 200
        assert kept.json()["customer_name"] == "Ana Torres"
        assert kept.json()["payment_method"] == "tarjeta"

        cleared = client.patch(f"/api/v1/sales/{sale.id}", headers=admin_headers, json={"customer_id": None})
        assert cleared.status_code == 200
        assert cleared.json()["customer_id"] is None
        assert cleared.json()["customer_name"] is None

    def test_delete_endpoint_restores_stock(self, client, session_factory, sale_service, seller_actor,
                                            admin_headers, make_item):
        item = make_item(quantity="10")
        sale = sale_service.create_sale(seller_actor, SaleCreate(items=[sale_line(item, 4)], payment_method="efectivo"))
        assert stock_of(session_factory, item.id) == Decimal("6")

        response = client.delete(f"/api/v1/sales/{sale.id}", headers=admin_headers)

        assert response.status_code == 204
        assert stock_of(session_factory, item.id) == Decimal("10")
        assert client.get(f"/api/v1/sales/{sale.id}", headers=admin_headers).status_code == 404
