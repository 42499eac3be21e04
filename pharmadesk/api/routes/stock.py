"""Stock: receipts, availability, overview, low stock, expiry, value, CSV export."""
import csv
import io
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from pharmadesk.api.deps import get_db, get_current_user
from pharmadesk.core.audit import AuditLog
from pharmadesk.core.exceptions import ValidationError
from pharmadesk.models.user import User
from pharmadesk.schemas.stock import AvailabilityRequest, StockReceiptCreate, StockReceiptResponse
from pharmadesk.services import report_service, stock_service
from pharmadesk.services.catalog_service import find_medicine_by_name

router = APIRouter()


@router.post("/receipts", response_model=StockReceiptResponse, status_code=status.HTTP_201_CREATED)
def receive_stock(
    data: StockReceiptCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Record a supplier delivery."""
    lines = [
        stock_service.ReceiptLine(
            medicine_name=i.medicine_name,
            quantity=i.quantity,
            unit_price=i.unit_price,
            expiry_date=i.expiry_date,
            batch_number=i.batch_number,
        )
        for i in data.items
    ]
    stock = stock_service.receive_stock(db, data.supplier_name, lines)
    AuditLog.log_action(
        "receive", "stock", stock.id, current_user,
        changes={"supplier_id": stock.supplier_id, "lines": len(lines), "total_value": str(stock.total_value)},
    )
    return stock


@router.post("/availability")
def check_availability(
    data: AvailabilityRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Whether the requested quantities can be sold. Nothing is written."""
    requests = []
    for i in data.items:
        medicine = find_medicine_by_name(db, i.medicine_name)
        if not medicine:
            raise ValidationError(f"Medicine '{i.medicine_name}' not found")
        if i.quantity < 1:
            raise ValidationError("Quantity must be greater than 0")
        requests.append(stock_service.StockRequest(medicine.id, medicine.name, i.quantity))

    result = stock_service.check_stock_availability(db, requests)
    return {
        "is_valid": result.is_valid,
        "message": result.message,
        "checks": [c.as_dict() for c in result.checks],
    }


@router.get("", response_model=list)
def stock_overview(
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return stock_service.stock_overview(db, search)


@router.get("/low-stock", response_model=list)
def low_stock(
    search: Optional[str] = Query(None),
    threshold: Optional[int] = Query(None, ge=1, description="Alert when a medicine's total is below this"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return stock_service.low_stock_medicines(db, search=search, threshold=threshold)


@router.get("/expiring")
def expiring(
    days: Optional[int] = Query(None, ge=0, description="Alert for items expiring within N days"),
    limit: Optional[int] = Query(None, ge=1),
    search: Optional[str] = Query(None),
    grouped: bool = Query(False, description="Group into expired / urgent / warning"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    items = stock_service.expiring_items(db, days=days, limit=limit, search=search)
    if grouped:
        return stock_service.group_by_urgency(items)
    return items


@router.get("/value")
def stock_value(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return report_service.stock_value_summary(db)


@router.get("/export")
def export_stock_csv(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Stock overview as a CSV download."""
    rows = stock_service.stock_overview(db)

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(["Medicine", "Supplier", "Quantity", "Unit", "Unit Price (₹)", "Expiry Date", "Batch", "Status"])
    for r in rows:
        writer.writerow([
            r["medicine_name"],
            r["supplier_name"],
            r["quantity"],
            r["unit"],
            r["unit_price"],
            r["expiry_date"] or "",
            r["batch_number"] or "",
            r["status"],
        ])

    output.seek(0)
    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=stock_{date.today()}.csv"}
    )
