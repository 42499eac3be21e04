"""Suppliers: list and add."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from pharmadesk.api.deps import get_db, get_current_user
from pharmadesk.core.audit import AuditLog
from pharmadesk.models.user import User
from pharmadesk.schemas.catalog import SupplierCreate, SupplierResponse
from pharmadesk.services import catalog_service

router = APIRouter()


@router.get("", response_model=List[SupplierResponse])
def list_suppliers(
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return catalog_service.list_suppliers(db, search)


@router.post("", response_model=SupplierResponse, status_code=status.HTTP_201_CREATED)
def create_supplier(
    data: SupplierCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    supplier = catalog_service.create_supplier(
        db, name=data.name, phone=data.phone, email=data.email, address=data.address
    )
    AuditLog.log_action("create", "supplier", supplier.id, current_user, changes={"name": supplier.name})
    return supplier
