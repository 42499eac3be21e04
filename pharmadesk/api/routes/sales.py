"""Sales: record a sale, history, detail, CSV export."""
import csv
import io
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from pharmadesk.api.deps import get_db, get_current_user
from pharmadesk.core.audit import AuditLog
from pharmadesk.models.sale import Sale
from pharmadesk.models.user import User
from pharmadesk.schemas.sale import SaleCreate, SaleRecordResponse, SaleResponse
from pharmadesk.services import sale_service

router = APIRouter()


def serialize_sale(sale: Sale) -> dict:
    return {
        "id": sale.id,
        "patient_name": sale.patient_name,
        "total_amount": float(sale.total_amount),
        "description": sale.description,
        "created_at": sale.created_at,
        "items": [
            {
                "id": i.id,
                "medicine_id": i.medicine_id,
                "medicine_name": i.medicine.name if i.medicine else "",
                "unit": (i.medicine.unit if i.medicine else None) or "units",
                "quantity": i.quantity,
                "unit_price": float(i.unit_price),
                "subtotal": float(i.subtotal),
            }
            for i in sale.items
        ],
    }


@router.post("", response_model=SaleRecordResponse, status_code=status.HTTP_201_CREATED)
def record_sale(
    data: SaleCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Record a sale and deduct stock oldest batch first.

    409 when stock is short (nothing written). A deduction that fails after
    the sale is saved still returns 201, with `warning` set.
    """
    lines = [
        sale_service.SaleLine(medicine_name=i.medicine_name, quantity=i.quantity, unit_price=i.unit_price)
        for i in data.items
    ]
    outcome = sale_service.record_sale(
        db,
        patient_name=data.patient_name,
        lines=lines,
        description=data.description,
        expected_total=data.total_amount,
        user=current_user,
    )
    AuditLog.log_action(
        "record", "sale", outcome.sale.id, current_user,
        changes={"total_amount": str(outcome.sale.total_amount), "stock_deducted": outcome.deduction.success},
    )
    return {
        "sale": serialize_sale(outcome.sale),
        "stock_deducted": outcome.deduction.success,
        "deductions": [
            {
                "stock_item_id": d.stock_item_id,
                "stock_id": d.stock_id,
                "medicine_id": d.medicine_id,
                "quantity_before": d.quantity_before,
                "deducted": d.deducted,
                "quantity_after": d.quantity_after,
            }
            for d in outcome.deduction.deductions
        ],
        "warning": outcome.warning,
        "message": "Sale saved successfully",
    }


@router.get("", response_model=List[SaleResponse])
def sales_history(
    search: Optional[str] = Query(None, description="Patient name contains"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return [serialize_sale(s) for s in sale_service.list_sales(db, search)]


@router.get("/export")
def export_sales_csv(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """One CSV row per sale item."""
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(["Date", "Sale ID", "Patient", "Medicine", "Quantity", "Unit Price (₹)", "Subtotal (₹)", "Sale Total (₹)"])

    for sale in sale_service.list_sales(db):
        for item in sale.items:
            writer.writerow([
                sale.created_at.strftime("%Y-%m-%d %H:%M") if sale.created_at else "",
                sale.id,
                sale.patient_name,
                item.medicine.name if item.medicine else "",
                item.quantity,
                float(item.unit_price),
                float(item.subtotal),
                float(sale.total_amount),
            ])

    output.seek(0)
    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=sales_{date.today()}.csv"}
    )


@router.get("/{sale_id}", response_model=SaleResponse)
def get_sale(
    sale_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return serialize_sale(sale_service.get_sale(db, sale_id))
