"""
Fixtures compartidas para los tests de todos los módulos.

Cada test usa su propia base SQLite en tmp_path; la aplicación nunca se
conecta a PostgreSQL durante los tests.
"""
import os
import tempfile

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(tempfile.gettempdir(), 'ferreteria_test.db')}")

import pytest
from decimal import Decimal
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from ferreteria.main import app
from ferreteria.database.database import Base, build_engine, get_db, get_session_factory
from ferreteria.modules.auth.models import User
from ferreteria.modules.auth.schemas import AuthContext, UserRole
from ferreteria.modules.auth.utils import create_access_token
from ferreteria.modules.customers.models import Customer
from ferreteria.modules.inventory.models import InventoryItem, UnitType


# ===== BASE DE DATOS =====

# SQLite guarda Numeric como REAL: las pruebas de stock usan fracciones exactas en binario (0.5, 0.25).
# En PostgreSQL las columnas son NUMERIC exactas.
@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'ferreteria.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory) -> Session:
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    """TestClient con las dependencias de base de datos apuntando a la base del test."""
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    yield TestClient(app)
    app.dependency_overrides.clear()


# ===== USUARIOS =====

def _create_user(db: Session, nombre: str, email: str, rol: str) -> User:
    user = User(nombre=nombre, email=email, rol=rol)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def admin_user(db_session):
    return _create_user(db_session, "Carla Admin", "admin@ferreteria.test", UserRole.ADMIN.value)


@pytest.fixture
def seller_user(db_session):
    return _create_user(db_session, "Pedro Vendedor", "vendedor@ferreteria.test", UserRole.EMPLEADO.value)


@pytest.fixture
def inventory_user(db_session):
    return _create_user(db_session, "Inés Bodega", "bodega@ferreteria.test", UserRole.INVENTORY_MANAGER.value)


@pytest.fixture
def admin_actor(admin_user) -> AuthContext:
    return AuthContext(user_id=admin_user.id, user_name=admin_user.nombre, user_role=admin_user.rol)


@pytest.fixture
def seller_actor(seller_user) -> AuthContext:
    return AuthContext(user_id=seller_user.id, user_name=seller_user.nombre, user_role=seller_user.rol)


def headers_for(user: User) -> dict:
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin_user):
    return headers_for(admin_user)


@pytest.fixture
def seller_headers(seller_user):
    return headers_for(seller_user)


@pytest.fixture
def inventory_headers(inventory_user):
    return headers_for(inventory_user)


# ===== INVENTARIO Y CLIENTES =====

@pytest.fixture
def make_item(db_session):
    """Fábrica de artículos de inventario."""
    counter = {"next": 1}

    def _make_item(
        name: str = "Martillo de uña",
        quantity: str = "10",
        unit_price: str = "5.00",
        unit_type: UnitType = UnitType.COUNTABLE,
        unit_name: str = "unidad",
        code: str = None,
        stock_minimo: str = "0"
    ) -> InventoryItem:
        if code is None:
            code = f"01-A1-{counter['next']:05d}"
            counter["next"] += 1
        item = InventoryItem(
            code=code,
            name=name,
            quantity=Decimal(quantity),
            unit_price=Decimal(unit_price),
            stock_minimo=Decimal(stock_minimo),
            daily_sales=Decimal("0"),
            category="Herramientas",
            unit_type=unit_type,
            unit_name=unit_name,
        )
        db_session.add(item)
        db_session.commit()
        db_session.refresh(item)
        return item

    return _make_item


@pytest.fixture
def sample_customer(db_session):
    customer = Customer(name="Ana Torres", email="ana@example.com", phone="0991234567", ruc="0912345678001")
    db_session.add(customer)
    db_session.commit()
    db_session.refresh(customer)
    return customer
