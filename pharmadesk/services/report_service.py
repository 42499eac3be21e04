"""
Dashboard and analytics aggregation.

Rows are fetched with plain queries and grouped / summed here. Revenue is
always taken from sale item subtotals, not from Sale.total_amount.
"""
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from pharmadesk.core.formatting import format_quantity_compact, format_rupees_compact
from pharmadesk.models.medicine import Medicine
from pharmadesk.models.sale import Sale, SaleItem
from pharmadesk.models.supplier import Supplier
from pharmadesk.services.catalog_service import clean_text
from pharmadesk.services import stock_service

MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
SORT_OPTIONS = ("quantity", "revenue", "frequency")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def total_revenue(db: Session) -> Decimal:
    return Decimal(str(db.query(func.coalesce(func.sum(SaleItem.subtotal), 0)).scalar() or 0))


def monthly_revenue(db: Session, now: Optional[datetime] = None) -> dict:
    """Revenue per month of the current year, six-month window.

    From June on the window ends at the current month, before that it is Jan-Jun.
    """
    now = now or _utcnow()
    year_start = datetime(now.year, 1, 1)
    rows = (
        db.query(SaleItem.subtotal, Sale.created_at)
        .join(Sale, SaleItem.sale_id == Sale.id)
        .filter(Sale.created_at >= year_start)
        .all()
    )

    per_month = [0.0] * 12
    for subtotal, created_at in rows:
        if created_at is None or created_at.year != now.year:
            continue
        per_month[created_at.month - 1] += float(subtotal or 0)

    current = now.month - 1
    if current >= 5:
        window = slice(current - 5, current + 1)
    else:
        window = slice(0, 6)
    return {"labels": MONTHS[window], "values": per_month[window]}


def sales_analytics(
    db: Session,
    days: int = 30,
    sort_by: str = "quantity",
    search: Optional[str] = None,
    now: Optional[datetime] = None,
) -> List[dict]:
    """Per-medicine sales figures over the last `days` days."""
    since = (now or _utcnow()) - timedelta(days=days)
    rows = (
        db.query(SaleItem, Medicine, Sale.id)
        .join(Medicine, SaleItem.medicine_id == Medicine.id)
        .join(Sale, SaleItem.sale_id == Sale.id)
        .filter(Sale.created_at >= since)
        .order_by(SaleItem.id)
        .all()
    )

    stats: "OrderedDict[int, dict]" = OrderedDict()
    for item, medicine, sale_id in rows:
        s = stats.setdefault(medicine.id, {
            "id": medicine.id,
            "name": medicine.name,
            "unit": medicine.unit or "units",
            "total_quantity": 0,
            "total_revenue": Decimal("0"),
            "sales_count": 0,
            "sale_ids": set(),
        })
        s["total_quantity"] += item.quantity
        s["total_revenue"] += Decimal(str(item.subtotal))
        s["sales_count"] += 1
        s["sale_ids"].add(sale_id)

    result = []
    for s in stats.values():
        quantity = s["total_quantity"]
        revenue = s["total_revenue"]
        result.append({
            "id": s["id"],
            "name": s["name"],
            "unit": s["unit"],
            "total_quantity": quantity,
            "total_revenue": float(revenue),
            "sales_count": s["sales_count"],
            "frequency": len(s["sale_ids"]),
            "average_quantity": quantity / s["sales_count"],
            "average_price": float(revenue / quantity) if quantity else 0.0,
        })

    term = (clean_text(search) or "").lower()
    if term:
        result = [r for r in result if term in r["name"].lower()]

    key = {
        "quantity": "total_quantity",
        "revenue": "total_revenue",
        "frequency": "frequency",
    }.get(sort_by, "total_quantity")
    return sorted(result, key=lambda r: r[key], reverse=True)


def top_selling_medicines(db: Session, limit: int = 5, days: int = 30, now: Optional[datetime] = None) -> List[dict]:
    return sales_analytics(db, days=days, sort_by="quantity", now=now)[:limit]


def overview(db: Session, now: Optional[datetime] = None) -> dict:
    """Figures for the dashboard cards and chart."""
    medicines_count = db.query(func.count(Medicine.id)).scalar() or 0
    suppliers_count = db.query(func.count(Supplier.id)).scalar() or 0
    sales_count = db.query(func.count(Sale.id)).scalar() or 0
    total_stock = stock_service.total_stock_quantity(db)
    low_stock_count = len(stock_service.low_stock_medicines(db))
    revenue = total_revenue(db)

    return {
        "medicines_count": medicines_count,
        "suppliers_count": suppliers_count,
        "total_stock": total_stock,
        "total_stock_label": format_quantity_compact(total_stock),
        "low_stock_count": low_stock_count,
        "sales_count": sales_count,
        "total_revenue": float(revenue),
        "total_revenue_label": format_rupees_compact(revenue),
        "monthly_chart": monthly_revenue(db, now=now),
    }


def stock_value_summary(db: Session) -> dict:
    value = stock_service.stock_value(db)
    return {"total_value": float(value), "label": format_rupees_compact(value)}
