"""
Sale recording: validation, availability, item subtotals, FIFO deduction
and the warning returned when deduction fails after the sale is saved.
"""
from datetime import datetime
from decimal import Decimal
from unittest import mock

import pytest

from pharmadesk.core.exceptions import InsufficientStockError, NotFoundError, ValidationError
from pharmadesk.models import Sale, SaleItem, StockItem
from pharmadesk.schemas.sale import SaleItemResponse, SaleResponse
from pharmadesk.schemas.stock import StockReceiptResponse
from pharmadesk.services import sale_service
from pharmadesk.services.sale_service import SaleLine
from pharmadesk.services.stock_service import DeductionResult


def test_line_subtotal_and_total():
    lines = [SaleLine("Paracetamol", 3, Decimal("2.50")), SaleLine("Cetirizine", 2, "1.25")]
    assert sale_service.line_subtotal(3, Decimal("2.50")) == Decimal("7.50")
    assert sale_service.compute_sale_total(lines) == Decimal("10.00")


def test_patient_name_required(db, catalog, paracetamol_stock):
    with pytest.raises(ValidationError, match="Patient name is required"):
        sale_service.record_sale(db, "   ", [SaleLine("Paracetamol", 1, "2.00")])
    assert db.query(Sale).count() == 0


def test_at_least_one_line_required(db, catalog):
    with pytest.raises(ValidationError, match="At least one medicine is required"):
        sale_service.record_sale(db, "Ravi", [])


@pytest.mark.parametrize("line", [
    SaleLine("", 1, "2.00"),
    SaleLine("Paracetamol", 0, "2.00"),
    SaleLine("Paracetamol", -2, "2.00"),
    SaleLine("Paracetamol", 1, "-1"),
])
def test_invalid_lines_rejected(db, catalog, paracetamol_stock, line):
    with pytest.raises(ValidationError) as exc_info:
        sale_service.record_sale(db, "Ravi", [line])
    assert exc_info.value.message == sale_service.INVALID_LINE_MESSAGE
    assert db.query(Sale).count() == 0


def test_unknown_medicine_rejected(db, catalog):
    with pytest.raises(ValidationError) as exc_info:
        sale_service.record_sale(db, "Ravi", [SaleLine("Unobtainium", 1, "2.00")])
    assert exc_info.value.message == sale_service.UNKNOWN_MEDICINE_MESSAGE


def test_submitted_total_must_match_items(db, catalog, paracetamol_stock):
    with pytest.raises(ValidationError, match="does not match"):
        sale_service.record_sale(
            db, "Ravi", [SaleLine("Paracetamol", 2, "2.00")], expected_total=Decimal("5.00")
        )
    assert db.query(Sale).count() == 0


def test_insufficient_stock_writes_nothing(db, catalog, paracetamol_stock):
    with pytest.raises(InsufficientStockError) as exc_info:
        sale_service.record_sale(db, "Ravi", [SaleLine("Paracetamol", 20, "2.00")])

    assert "• Paracetamol: Need 20, Available 15" in exc_info.value.message
    assert db.query(Sale).count() == 0
    assert db.query(SaleItem).count() == 0
    assert sorted(q for (q,) in db.query(StockItem.quantity).all()) == [5, 10]


def test_record_sale_deducts_fifo(db, catalog, paracetamol_stock, user):
    batch_a, batch_b = paracetamol_stock

    outcome = sale_service.record_sale(
        db, " Ravi Kumar ", [SaleLine("Paracetamol", 8, "2.00")],
        description="Fever", expected_total="16.00", user=user,
    )

    assert outcome.warning is None
    assert outcome.deduction.success
    sale = outcome.sale
    assert sale.patient_name == "Ravi Kumar"
    assert sale.total_amount == Decimal("16.00")
    assert sale.description == "Fever"
    assert [(i.quantity, i.subtotal) for i in sale.items] == [(8, Decimal("16.00"))]
    assert db.get(StockItem, batch_a.id).quantity == 0
    assert db.get(StockItem, batch_b.id).quantity == 7


def test_sale_total_equals_sum_of_items(db, catalog, paracetamol_stock):
    outcome = sale_service.record_sale(db, "Meena", [
        SaleLine("Paracetamol", 3, "2.25"),
        SaleLine("Paracetamol", 4, "2.00"),
    ])

    sale = outcome.sale
    assert sale.total_amount == Decimal("14.75")
    assert sum(i.subtotal for i in sale.items) == sale.total_amount
    assert sale_service.sale_totals_match(sale)
    assert outcome.deduction.deducted_for(catalog["paracetamol"].id) == 7


def test_sub_cent_price_rounded_once_for_total_and_items(db, catalog, paracetamol_stock):
    # 0.125 is stored as 0.12 on the item, so the sale total is 8 x 0.12
    assert sale_service.line_subtotal(8, "0.125") == Decimal("0.96")

    with pytest.raises(ValidationError, match="does not match"):
        sale_service.record_sale(db, "Ravi", [SaleLine("Paracetamol", 8, "0.125")], expected_total="1.00")
    assert db.query(Sale).count() == 0

    outcome = sale_service.record_sale(
        db, "Ravi", [SaleLine("Paracetamol", 8, "0.125"), SaleLine("Paracetamol", 3, "1.005")],
        expected_total="3.96",
    )

    sale = outcome.sale
    assert sale.total_amount == Decimal("3.96")
    assert [(i.unit_price, i.subtotal) for i in sale.items] == [
        (Decimal("0.12"), Decimal("0.96")),
        (Decimal("1.00"), Decimal("3.00")),
    ]
    assert sale_service.sale_totals_match(sale)


def test_response_lists_not_shared_between_instances():
    first = SaleResponse(id=1, patient_name="Ravi", total_amount=0)
    second = SaleResponse(id=2, patient_name="Meena", total_amount=0)
    first.items.append(SaleItemResponse(
        id=1, medicine_id=1, medicine_name="Paracetamol", unit="tablets",
        quantity=1, unit_price=2.0, subtotal=2.0,
    ))
    assert second.items == []
    assert StockReceiptResponse(id=1, supplier_id=1, total_value=0).items == []


def test_failed_deduction_keeps_sale_and_warns(db, catalog, paracetamol_stock):
    failed = DeductionResult(
        success=False,
        error="Could not fully deduct Paracetamol. Remaining: 2",
        failed_medicine="Paracetamol",
        remaining=2,
    )
    with mock.patch.object(sale_service, "deduct_stock_fifo", return_value=failed):
        outcome = sale_service.record_sale(db, "Ravi", [SaleLine("Paracetamol", 4, "2.00")])

    assert outcome.warning == (
        "Sale completed but stock deduction failed: Could not fully deduct Paracetamol. Remaining: 2"
        "\n\nPlease manually adjust stock levels."
    )
    assert db.query(Sale).count() == 1
    assert db.query(SaleItem).count() == 1


def test_sales_history_newest_first_with_search(db, catalog, paracetamol_stock):
    first = sale_service.record_sale(db, "Ravi", [SaleLine("Paracetamol", 1, "2.00")]).sale
    second = sale_service.record_sale(db, "Meena", [SaleLine("Paracetamol", 1, "2.00")]).sale
    first.created_at = datetime(2026, 5, 1, 10, 0)
    second.created_at = datetime(2026, 5, 2, 10, 0)
    db.commit()

    assert [s.id for s in sale_service.list_sales(db)] == [second.id, first.id]
    assert [s.patient_name for s in sale_service.list_sales(db, search="rav")] == ["Ravi"]


def test_get_sale_not_found(db):
    with pytest.raises(NotFoundError):
        sale_service.get_sale(db, 999)


# ------------------------------------------------------------------------------
# API
# ------------------------------------------------------------------------------

def test_record_sale_api(client, auth_headers, db, catalog, paracetamol_stock):
    resp = client.post("/sales", headers=auth_headers, json={
        "patient_name": "Ravi",
        "description": "Headache",
        "items": [{"medicine_name": "Paracetamol", "quantity": 8, "unit_price": "2.00"}],
        "total_amount": "16.00",
    })

    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["stock_deducted"] is True
    assert body["warning"] is None
    assert body["sale"]["total_amount"] == 16.0
    assert body["sale"]["items"][0]["medicine_name"] == "Paracetamol"
    assert [d["quantity_after"] for d in body["deductions"]] == [0, 7]


def test_record_sale_api_insufficient_stock(client, auth_headers, catalog, paracetamol_stock):
    resp = client.post("/sales", headers=auth_headers, json={
        "patient_name": "Ravi",
        "items": [
            {"medicine_name": "Paracetamol", "quantity": 20, "unit_price": "2.00"},
            {"medicine_name": "Amoxicillin", "quantity": 1, "unit_price": "8.00"},
        ],
    })

    assert resp.status_code == 409
    body = resp.json()
    assert body["detail"].startswith("Insufficient stock for:")
    assert [s["medicine_name"] for s in body["shortfalls"]] == ["Paracetamol", "Amoxicillin"]


def test_record_sale_requires_auth(client, catalog):
    resp = client.post("/sales", json={"patient_name": "Ravi", "items": []})
    assert resp.status_code == 401


def test_sale_detail_history_and_export(client, auth_headers, catalog, paracetamol_stock):
    created = client.post("/sales", headers=auth_headers, json={
        "patient_name": "Meena",
        "items": [{"medicine_name": "Paracetamol", "quantity": 2, "unit_price": "2.50"}],
    }).json()
    sale_id = created["sale"]["id"]

    detail = client.get(f"/sales/{sale_id}", headers=auth_headers)
    assert detail.status_code == 200
    assert detail.json()["items"][0]["subtotal"] == 5.0

    history = client.get("/sales", headers=auth_headers, params={"search": "mee"})
    assert [s["id"] for s in history.json()] == [sale_id]

    export = client.get("/sales/export", headers=auth_headers)
    assert export.status_code == 200
    assert export.headers["content-type"].startswith("text/csv")
    lines = export.text.strip().splitlines()
    assert lines[0].startswith("Date,Sale ID,Patient")
    assert "Meena,Paracetamol,2,2.5,5.0,5.0" in lines[1]

    assert client.get("/sales/999", headers=auth_headers).status_code == 404
