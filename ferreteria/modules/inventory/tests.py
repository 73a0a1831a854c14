"""
Tests para el módulo de Inventario

- Generación de códigos CC-SS-NNNNN
- Alta, edición y eliminación de artículos
- Ingreso de stock por código
- Búsqueda, ordenamiento y stock bajo
- Permisos por rol
"""

import pytest
from decimal import Decimal
from fastapi import HTTPException
from uuid import uuid4

from ferreteria.common.validators import (
    format_item_code, get_category_name, parse_item_code_sequence, validate_item_code
)
from ferreteria.modules.inventory.models import InventoryItem, UnitType
from ferreteria.modules.inventory.schemas import (
    InventoryItemCreate, InventoryItemUpdate, QuantityUpdate, StockIncrease, SortOrder
)
from ferreteria.modules.inventory.service import InventoryService


# ===== TESTS DE CÓDIGOS =====

class TestItemCodes:
    """Tests para el formato de códigos de artículo"""

    def test_validate_item_code(self):
        assert validate_item_code("01-A1-00001")
        assert validate_item_code("10-zz-12345")
        assert not validate_item_code("1-A1-00001")
        assert not validate_item_code("01-A1-0001")
        assert not validate_item_code("")

    def test_format_and_parse(self):
        assert format_item_code("03", "b2", 7) == "03-B2-00007"
        assert parse_item_code_sequence("03-B2-00007") == 7
        assert parse_item_code_sequence("no-es-codigo") == 0

    def test_category_names(self):
        assert get_category_name("01") == "Herramientas"
        assert get_category_name("10") == "Limpieza"
        assert get_category_name("99") is None


# ===== TESTS DEL SERVICIO =====

class TestInventoryService:
    """Tests de operaciones de inventario"""

    def test_add_item_generates_code(self, db_session):
        service = InventoryService(db_session)
        item = service.add_item(InventoryItemCreate(
            category_code_prefix="01", shelf_code_prefix="a1", name="Martillo de uña",
            quantity=Decimal("10"), unit_price=Decimal("7.50")
        ))

        assert item.code == "01-A1-00001"
        assert item.category == "Herramientas"
        assert item.unit_type == UnitType.COUNTABLE

    def test_code_sequence_is_per_prefix(self, db_session, make_item):
        make_item(code="01-A1-00004")
        make_item(code="01-B1-00009")
        service = InventoryService(db_session)

        assert service.generate_next_item_code("01", "a1") == "01-A1-00005"
        assert service.generate_next_item_code("01", "B1") == "01-B1-00010"
        assert service.generate_next_item_code("02", "A1") == "02-A1-00001"

    def test_countable_item_requires_whole_quantity(self):
        with pytest.raises(ValueError):
            InventoryItemCreate(
                category_code_prefix="01", shelf_code_prefix="A1", name="Martillo",
                quantity=Decimal("1.5"), unit_type="countable"
            )

    def test_measurable_item_accepts_fractions(self):
        data = InventoryItemCreate(
            category_code_prefix="03", shelf_code_prefix="C1", name="Cable 12 AWG",
            quantity=Decimal("12.75"), unit_type="measurable", unit_name="metro"
        )
        assert data.quantity == Decimal("12.75")

    def test_update_details_never_touches_quantity(self, db_session, make_item):
        item = make_item(quantity="10", unit_price="5.00")
        service = InventoryService(db_session)

        updated = service.update_item_details(item.id, InventoryItemUpdate(
            name="Martillo reforzado", unit_price=Decimal("6.25")
        ))

        assert updated.name == "Martillo reforzado"
        assert updated.unit_price == Decimal("6.25")
        assert updated.quantity == Decimal("10")
        assert updated.code == item.code

    def test_increase_stock_by_code(self, db_session, make_item):
        item = make_item(quantity="3")
        service = InventoryService(db_session)

        updated = service.increase_stock_by_code(StockIncrease(code=item.code.lower(), quantity_to_add=Decimal("4")))

        assert updated.id == item.id
        assert updated.quantity == Decimal("7")

    def test_increase_stock_unknown_code(self, db_session):
        with pytest.raises(HTTPException) as exc_info:
            InventoryService(db_session).increase_stock_by_code(
                StockIncrease(code="09-Z9-00001", quantity_to_add=Decimal("1"))
            )
        assert exc_info.value.status_code == 404

    def test_stock_increase_rejects_bad_input(self):
        with pytest.raises(ValueError):
            StockIncrease(code="09Z900001", quantity_to_add=Decimal("1"))
        with pytest.raises(ValueError):
            StockIncrease(code="09-Z9-00001", quantity_to_add=Decimal("0"))

    def test_quantities_beyond_three_decimals_rejected(self):
        with pytest.raises(ValueError):
            StockIncrease(code="03-C1-00001", quantity_to_add=Decimal("0.0001"))
        with pytest.raises(ValueError):
            QuantityUpdate(quantity=Decimal("2.0005"))
        assert QuantityUpdate(quantity=Decimal("2.125")).quantity == Decimal("2.125")

    def test_prices_beyond_two_decimals_rejected(self):
        with pytest.raises(ValueError):
            InventoryItemCreate(
                category_code_prefix="01", shelf_code_prefix="A1", name="Martillo",
                quantity=Decimal("1"), unit_price=Decimal("7.505")
            )
        with pytest.raises(ValueError):
            InventoryItemUpdate(unit_price=Decimal("0.001"))

    def test_set_quantity(self, db_session, make_item):
        item = make_item(quantity="3")
        service = InventoryService(db_session)

        assert service.set_item_quantity(item.id, Decimal("12")).quantity == Decimal("12")
        with pytest.raises(HTTPException) as exc_info:
            service.set_item_quantity(item.id, Decimal("-1"))
        assert exc_info.value.status_code == 400

    def test_search_and_sort(self, db_session, make_item):
        make_item(name="Taladro percutor", quantity="2")
        make_item(name="Brocha 2 pulgadas", quantity="8")
        make_item(name="Alicate", quantity="5")
        service = InventoryService(db_session)

        assert [i.name for i in service.list_items()] == ["Alicate", "Brocha 2 pulgadas", "Taladro percutor"]
        by_quantity = service.list_items(sort_field="quantity", sort_order=SortOrder.DESC)
        assert [i.name for i in by_quantity] == ["Brocha 2 pulgadas", "Alicate", "Taladro percutor"]
        assert [i.name for i in service.list_items(search="taladro")] == ["Taladro percutor"]

    def test_invalid_sort_field(self, db_session):
        with pytest.raises(HTTPException) as exc_info:
            InventoryService(db_session).list_items(sort_field="password")
        assert exc_info.value.status_code == 400

    def test_low_stock_items(self, db_session, make_item):
        make_item(name="Lija", quantity="2", stock_minimo="5")
        make_item(name="Clavos", quantity="50", stock_minimo="10")

        assert [i.name for i in InventoryService(db_session).low_stock_items()] == ["Lija"]

    def test_delete_item(self, db_session, make_item):
        item = make_item()
        service = InventoryService(db_session)

        service.delete_item(item.id)

        assert db_session.get(InventoryItem, item.id) is None
        with pytest.raises(HTTPException) as exc_info:
            service.get_item(uuid4())
        assert exc_info.value.status_code == 404


# ===== TESTS DE API =====

class TestInventoryAPI:
    """Tests de endpoints de inventario"""

    def test_inventory_manager_creates_item(self, client, inventory_headers):
        response = client.post("/api/v1/inventory/", headers=inventory_headers, json={
            "category_code_prefix": "02",
            "shelf_code_prefix": "f3",
            "name": "Llave de paso 1/2",
            "quantity": "15",
            "unit_price": "3.80",
        })

        assert response.status_code == 201
        assert response.json()["code"] == "02-F3-00001"
        assert response.json()["category"] == "Fontanería"

    def test_seller_cannot_create_item(self, client, seller_headers):
        response = client.post("/api/v1/inventory/", headers=seller_headers, json={
            "category_code_prefix": "02",
            "shelf_code_prefix": "F3",
            "name": "Llave de paso 1/2",
        })
        assert response.status_code == 403

    def test_seller_lists_items_for_sale(self, client, seller_headers, make_item):
        make_item(name="Martillo", quantity="4", unit_price="5.00")

        response = client.get("/api/v1/inventory/for-sale", headers=seller_headers)

        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["name"] == "Martillo"
        assert Decimal(data[0]["quantity"]) == Decimal("4")

    def test_increase_stock_endpoint(self, client, admin_headers, make_item):
        item = make_item(quantity="1")

        response = client.post("/api/v1/inventory/stock/increase", headers=admin_headers, json={
            "code": item.code,
            "quantity_to_add": "9",
        })

        assert response.status_code == 200
        assert Decimal(response.json()["quantity"]) == Decimal("10")

    def test_set_quantity_rejects_excess_decimals(self, client, admin_headers, make_item):
        item = make_item(quantity="3", unit_type=UnitType.MEASURABLE, unit_name="metro")

        response = client.put(f"/api/v1/inventory/{item.id}/quantity", headers=admin_headers, json={
            "quantity": "1.0004",
        })

        assert response.status_code == 422
        assert Decimal(client.get(f"/api/v1/inventory/{item.id}", headers=admin_headers).json()["quantity"]) == Decimal("3")
