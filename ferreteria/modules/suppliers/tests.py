"""
Tests para el módulo de Proveedores
"""

import pytest
from fastapi import HTTPException
from uuid import uuid4

from ferreteria.modules.suppliers.schemas import SupplierCreate, SupplierUpdate
from ferreteria.modules.suppliers.service import SupplierService


@pytest.fixture
def sample_supplier(db_session):
    return SupplierService(db_session).create_supplier(SupplierCreate(
        name="Distribuidora Andina", phone="042600100", contact_name="Marta Ríos",
        supplied_products="Tornillos, Clavos"
    ))


class TestSupplierSchemas:
    """Tests de validación de proveedores"""

    def test_products_from_comma_text(self):
        data = SupplierCreate(name="Aceros del Sur", supplied_products=" Varilla , ,Alambre ")
        assert data.supplied_products == ["Varilla", "Alambre"]

    def test_blank_optionals_are_none(self):
        data = SupplierCreate(name="Aceros del Sur", phone=" ", email="", contact_name="")
        assert data.phone is None
        assert data.email is None
        assert data.contact_name is None
        assert data.supplied_products == []

    def test_name_requires_two_characters(self):
        with pytest.raises(ValueError):
            SupplierCreate(name="A")


class TestSupplierService:
    """Tests de operaciones de proveedores"""

    def test_create_and_get(self, db_session, sample_supplier):
        supplier = SupplierService(db_session).get_supplier(sample_supplier.id)
        assert supplier.name == "Distribuidora Andina"
        assert supplier.supplied_products == ["Tornillos", "Clavos"]
        assert supplier.email is None

    def test_list_sorted_by_name(self, db_session, sample_supplier):
        service = SupplierService(db_session)
        service.create_supplier(SupplierCreate(name="Aceros del Sur"))
        service.create_supplier(SupplierCreate(name="Pinturas Cóndor"))

        assert [s.name for s in service.get_suppliers()] == [
            "Aceros del Sur", "Distribuidora Andina", "Pinturas Cóndor"
        ]

    def test_update_touches_only_sent_fields(self, db_session, sample_supplier):
        before = sample_supplier.last_updated
        updated = SupplierService(db_session).update_supplier(
            sample_supplier.id, SupplierUpdate(supplied_products=["Pernos"])
        )

        assert updated.supplied_products == ["Pernos"]
        assert updated.phone == "042600100"
        assert updated.last_updated >= before

    def test_delete_and_missing(self, db_session, sample_supplier):
        service = SupplierService(db_session)
        service.delete_supplier(sample_supplier.id)

        with pytest.raises(HTTPException) as exc_info:
            service.get_supplier(sample_supplier.id)
        assert exc_info.value.status_code == 404
        with pytest.raises(HTTPException) as exc_info:
            service.delete_supplier(uuid4())
        assert exc_info.value.status_code == 404


class TestSupplierAPI:
    """Tests de endpoints de proveedores"""

    def test_inventory_manager_creates_supplier(self, client, inventory_headers):
        response = client.post("/api/v1/suppliers/", headers=inventory_headers, json={
            "name": "Ferro Import",
            "email": "ventas@ferroimport.ec",
            "supplied_products": "Candados, Bisagras",
        })

        assert response.status_code == 201
        assert response.json()["supplied_products"] == ["Candados", "Bisagras"]

    def test_seller_reads_but_cannot_write(self, client, seller_headers, sample_supplier):
        response = client.get("/api/v1/suppliers/", headers=seller_headers)
        assert response.status_code == 200
        assert response.json()["total"] == 1

        url = f"/api/v1/suppliers/{sample_supplier.id}"
        assert client.patch(url, headers=seller_headers, json={"phone": "099"}).status_code == 403
        assert client.delete(url, headers=seller_headers).status_code == 403

    def test_admin_deletes_supplier(self, client, admin_headers, sample_supplier):
        url = f"/api/v1/suppliers/{sample_supplier.id}"
        assert client.delete(url, headers=admin_headers).status_code == 204
        assert client.get(url, headers=admin_headers).status_code == 404
