"""Medicines catalog: list, detail, add-or-update by name."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from pharmadesk.api.deps import get_db, get_current_user
from pharmadesk.core.audit import AuditLog
from pharmadesk.models.medicine import MEDICINE_CATEGORIES
from pharmadesk.models.user import User
from pharmadesk.schemas.catalog import MedicineResponse, MedicineSaveResult, MedicineUpsert
from pharmadesk.services import catalog_service

router = APIRouter()


@router.get("", response_model=List[MedicineResponse])
def list_medicines(
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return catalog_service.list_medicines(db, search)


@router.get("/categories", response_model=List[str])
def list_categories(current_user: User = Depends(get_current_user)):
    return MEDICINE_CATEGORIES


@router.get("/{medicine_id}", response_model=MedicineResponse)
def get_medicine(
    medicine_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return catalog_service.get_medicine(db, medicine_id)


@router.post("", response_model=MedicineSaveResult)
def save_medicine(
    data: MedicineUpsert,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Add a medicine, or update the existing one with the same name."""
    medicine, created = catalog_service.upsert_medicine(
        db,
        name=data.name,
        category=data.category,
        unit=data.unit,
        description=data.description,
        price=data.price,
    )
    AuditLog.log_action(
        "create" if created else "update", "medicine", medicine.id, current_user,
        changes={"name": medicine.name, "price": str(medicine.price)},
    )
    return MedicineSaveResult(
        medicine=MedicineResponse.model_validate(medicine),
        created=created,
        message=f"Medicine {'added' if created else 'updated'} successfully",
    )
