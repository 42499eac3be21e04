"""
Analytics API - dashboard figures.

- Summary cards (counts, stock, revenue) with the monthly revenue chart
- Per-medicine sales analytics over a period
- Top-selling medicines
"""
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from pharmadesk.api.deps import get_db, get_current_user
from pharmadesk.models.user import User
from pharmadesk.services import report_service

router = APIRouter()


@router.get("/summary")
def get_summary(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return report_service.overview(db)


@router.get("/monthly-revenue")
def get_monthly_revenue(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Returns: {labels: ["Jan", ...], values: [1500.0, ...]}"""
    return report_service.monthly_revenue(db)


@router.get("/sales")
def get_sales_analytics(
    days: int = Query(30, ge=1, description="Look back N days (7, 30, 90)"),
    sort_by: Literal["quantity", "revenue", "frequency"] = Query("quantity"),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return report_service.sales_analytics(db, days=days, sort_by=sort_by, search=search)


@router.get("/top-selling")
def get_top_selling(
    limit: int = Query(5, ge=1, description="Number of medicines to return"),
    days: int = Query(30, ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return report_service.top_selling_medicines(db, limit=limit, days=days)
