"""
Tests para el módulo de Clientes
"""

import pytest
from fastapi import HTTPException
from uuid import uuid4

from ferreteria.modules.customers.schemas import CustomerCreate, CustomerUpdate
from ferreteria.modules.customers.service import CustomerService


class TestCustomerService:
    """Tests de operaciones de clientes"""

    def test_create_and_get(self, db_session):
        service = CustomerService(db_session)
        customer = service.create_customer(CustomerCreate(
            name="Luis Mora", email="luis@example.com", phone="", ruc="1790012345001"
        ))

        assert customer.phone is None
        assert service.get_customer(customer.id).name == "Luis Mora"

    def test_duplicate_ruc(self, db_session, sample_customer):
        with pytest.raises(HTTPException) as exc_info:
            CustomerService(db_session).create_customer(CustomerCreate(name="Otra Ana", ruc=sample_customer.ruc))
        assert exc_info.value.status_code == 409

    def test_search(self, db_session, sample_customer):
        service = CustomerService(db_session)
        service.create_customer(CustomerCreate(name="Ferretería El Tornillo"))

        assert [c.name for c in service.get_customers("torres")] == ["Ana Torres"]
        assert len(service.get_customers()) == 2

    def test_update(self, db_session, sample_customer):
        updated = CustomerService(db_session).update_customer(
            sample_customer.id, CustomerUpdate(phone="042555000")
        )
        assert updated.phone == "042555000"
        assert updated.name == "Ana Torres"

    def test_missing_customer(self, db_session):
        with pytest.raises(HTTPException) as exc_info:
            CustomerService(db_session).get_customer(uuid4())
        assert exc_info.value.status_code == 404


class TestCustomerAPI:
    """Tests de endpoints de clientes"""

    def test_seller_creates_customer(self, client, seller_headers):
        response = client.post("/api/v1/customers/", headers=seller_headers, json={
            "name": "Carlos Vega",
            "email": "carlos@example.com",
        })
        assert response.status_code == 201
        assert response.json()["name"] == "Carlos Vega"

    def test_only_admin_deletes(self, client, seller_headers, admin_headers, sample_customer):
        url = f"/api/v1/customers/{sample_customer.id}"
        assert client.delete(url, headers=seller_headers).status_code == 403
        assert client.delete(url, headers=admin_headers).status_code == 204
        assert client.get(url, headers=admin_headers).status_code == 404
