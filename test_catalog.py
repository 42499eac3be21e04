"""Medicine upsert by name, categories, and supplier creation."""
from decimal import Decimal
from unittest import mock

import pytest

from pharmadesk.core.exceptions import ConflictError, NotFoundError, ValidationError
from pharmadesk.models import Medicine, MEDICINE_CATEGORIES
from pharmadesk.services import catalog_service


def test_clean_text_and_price():
    assert catalog_service.clean_text("  Dolo 650 ") == "Dolo 650"
    assert catalog_service.clean_text("   ") is None
    assert catalog_service.to_price("3.456") == Decimal("3.46")
    assert catalog_service.to_price(None) == Decimal("0.00")
    with pytest.raises(ValidationError, match="must be a number"):
        catalog_service.to_price("abc")
    with pytest.raises(ValidationError, match="cannot be negative"):
        catalog_service.to_price(-1, "Unit price")


def test_upsert_inserts_then_updates(db):
    medicine, created = catalog_service.upsert_medicine(
        db, name=" Dolo 650 ", category="Pain & Inflammation Relief", unit="tablets", price="3.00"
    )
    assert created
    assert medicine.name == "Dolo 650"

    updated, created = catalog_service.upsert_medicine(db, name="Dolo 650", unit="strips", price=30)
    assert not created
    assert updated.id == medicine.id
    assert updated.unit == "strips"
    assert updated.price == Decimal("30.00")
    assert db.query(Medicine).count() == 1


def test_upsert_rejects_bad_input(db):
    with pytest.raises(ValidationError, match="Medicine name is required"):
        catalog_service.upsert_medicine(db, name="  ")
    with pytest.raises(ValidationError, match="Unknown category"):
        catalog_service.upsert_medicine(db, name="Dolo 650", category="Snacks")
    with pytest.raises(ValidationError, match="cannot be negative"):
        catalog_service.upsert_medicine(db, name="Dolo 650", price=-5)
    assert db.query(Medicine).count() == 0


def test_twelve_categories():
    assert len(MEDICINE_CATEGORIES) == 12
    assert "Over-The-Counter (OTC) & First Aid" in MEDICINE_CATEGORIES


def test_find_by_name_is_exact(db, catalog):
    assert catalog_service.find_medicine_by_name(db, " Paracetamol ").id == catalog["paracetamol"].id
    assert catalog_service.find_medicine_by_name(db, "Paracet") is None
    with pytest.raises(NotFoundError):
        catalog_service.get_medicine(db, 999)


def test_list_medicines_sorted_and_searchable(db, catalog):
    assert [m.name for m in catalog_service.list_medicines(db)] == ["Amoxicillin", "Cetirizine", "Paracetamol"]
    assert [m.name for m in catalog_service.list_medicines(db, search="ceti")] == ["Cetirizine"]


def test_upsert_same_name_race_is_conflict(db, catalog):
    # the lookup misses a row another request has just inserted
    with mock.patch.object(catalog_service, "find_medicine_by_name", return_value=None):
        with pytest.raises(ConflictError, match="already exists"):
            catalog_service.upsert_medicine(db, name="Paracetamol", price="2.00")

    assert db.query(Medicine).filter(Medicine.name == "Paracetamol").count() == 1
    assert db.query(Medicine).count() == 3


def test_create_supplier_and_duplicate(db):
    supplier = catalog_service.create_supplier(db, name=" Apollo Wholesale ", phone=" 022-555 ")
    assert supplier.name == "Apollo Wholesale"
    assert supplier.phone == "022-555"
    assert supplier.email is None

    with pytest.raises(ConflictError):
        catalog_service.create_supplier(db, name="Apollo Wholesale")
    with pytest.raises(ValidationError):
        catalog_service.create_supplier(db, name="")


def test_medicine_api(client, auth_headers, catalog):
    resp = client.post("/medicines", headers=auth_headers, json={
        "name": "Paracetamol", "unit": "strips", "price": "25.00",
    })
    assert resp.status_code == 200
    body = resp.json()
    assert body["created"] is False
    assert body["message"] == "Medicine updated successfully"
    assert body["medicine"]["price"] == 25.0

    created = client.post("/medicines", headers=auth_headers, json={"name": "ORS Sachet", "price": 20})
    assert created.json()["created"] is True

    listed = client.get("/medicines", headers=auth_headers, params={"search": "ors"})
    assert [m["name"] for m in listed.json()] == ["ORS Sachet"]
    assert len(client.get("/medicines/categories", headers=auth_headers).json()) == 12

    bad = client.post("/medicines", headers=auth_headers, json={"name": "X", "price": -1})
    assert bad.status_code == 400
    assert bad.json()["detail"] == "Price cannot be negative"


def test_supplier_api(client, auth_headers, catalog):
    resp = client.post("/suppliers", headers=auth_headers, json={"name": "Apollo Wholesale"})
    assert resp.status_code == 201
    assert resp.json()["name"] == "Apollo Wholesale"

    dup = client.post("/suppliers", headers=auth_headers, json={"name": "Healthline Pharma"})
    assert dup.status_code == 409

    names = [s["name"] for s in client.get("/suppliers", headers=auth_headers).json()]
    assert names == ["Apollo Wholesale", "City Medical Distributors", "Healthline Pharma"]
