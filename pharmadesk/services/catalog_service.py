"""Medicine and supplier catalog. Name lookups are exact after trimming."""
import logging
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pharmadesk.core.exceptions import ConflictError, NotFoundError, ValidationError
from pharmadesk.models.medicine import Medicine, MEDICINE_CATEGORIES
from pharmadesk.models.supplier import Supplier

logger = logging.getLogger(__name__)


def clean_text(value: Optional[str]) -> Optional[str]:
    """Trim; blank becomes None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def to_price(value, field: str = "Price") -> Decimal:
    try:
        price = Decimal(str(value if value is not None else 0))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not price.is_finite():
        raise ValidationError(f"{field} must be a number")
    if price < 0:
        raise ValidationError(f"{field} cannot be negative")
    return price.quantize(Decimal("0.01"))


# ------------------------------------------------------------------------------
# Medicines
# ------------------------------------------------------------------------------

def list_medicines(db: Session, search: Optional[str] = None) -> List[Medicine]:
    q = db.query(Medicine)
    term = clean_text(search)
    if term:
        q = q.filter(Medicine.name.ilike(f"%{term}%"))
    return q.order_by(Medicine.name).all()


def get_medicine(db: Session, medicine_id: int) -> Medicine:
    medicine = db.query(Medicine).filter(Medicine.id == medicine_id).first()
    if not medicine:
        raise NotFoundError("Medicine not found")
    return medicine


def find_medicine_by_name(db: Session, name: str) -> Optional[Medicine]:
    name = clean_text(name)
    if not name:
        return None
    return db.query(Medicine).filter(Medicine.name == name).first()


def upsert_medicine(
    db: Session,
    name: str,
    category: Optional[str] = None,
    unit: Optional[str] = None,
    description: Optional[str] = None,
    price=0,
) -> Tuple[Medicine, bool]:
    """Insert a medicine, or update the one with the same name.

    Returns (medicine, created).
    """
    name = clean_text(name)
    if not name:
        raise ValidationError("Medicine name is required")
    price_value = to_price(price)
    category = clean_text(category)
    if category and category not in MEDICINE_CATEGORIES:
        raise ValidationError(f"Unknown category '{category}'")

    medicine = find_medicine_by_name(db, name)
    created = medicine is None
    if created:
        medicine = Medicine(name=name)
        db.add(medicine)

    medicine.category = category
    medicine.unit = clean_text(unit)
    medicine.description = clean_text(description)
    medicine.price = price_value

    try:
        db.commit()
    except IntegrityError:
        # Another insert of the same name won the race
        db.rollback()
        raise ConflictError("A medicine with this name already exists")
    db.refresh(medicine)
    logger.info(f"[CATALOG] {'Added' if created else 'Updated'} medicine {medicine.id} '{medicine.name}'")
    return medicine, created


# ------------------------------------------------------------------------------
# Suppliers
# ------------------------------------------------------------------------------

def list_suppliers(db: Session, search: Optional[str] = None) -> List[Supplier]:
    q = db.query(Supplier)
    term = clean_text(search)
    if term:
        q = q.filter(Supplier.name.ilike(f"%{term}%"))
    return q.order_by(Supplier.name).all()


def find_supplier_by_name(db: Session, name: str) -> Optional[Supplier]:
    name = clean_text(name)
    if not name:
        return None
    return db.query(Supplier).filter(Supplier.name == name).first()


def create_supplier(
    db: Session,
    name: str,
    phone: Optional[str] = None,
    email: Optional[str] = None,
    address: Optional[str] = None,
) -> Supplier:
    name = clean_text(name)
    if not name:
        raise ValidationError("Supplier name is required")
    if find_supplier_by_name(db, name):
        raise ConflictError("A supplier with this name already exists")

    supplier = Supplier(
        name=name,
        phone=clean_text(phone),
        email=clean_text(email),
        address=clean_text(address),
    )
    db.add(supplier)
    try:
        db.commit()
    except IntegrityError:
        # Unique constraint lost a race with another insert
        db.rollback()
        raise ConflictError("A supplier with this name already exists")
    db.refresh(supplier)
    logger.info(f"[CATALOG] Added supplier {supplier.id} '{supplier.name}'")
    return supplier
