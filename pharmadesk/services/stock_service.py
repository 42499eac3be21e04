"""
Stock: availability checks, FIFO deduction, receipts and stock views.

FIFO ORDER:
- A medicine's batches are the StockItem rows with quantity > 0
- Oldest parent Stock (created_at) is depleted first
- Ties on created_at fall back to Stock.id, then StockItem.id

CONSISTENCY:
- Each deducted row is committed on its own; nothing is rolled back
- No row locks: two concurrent sales can both pass the availability check,
  the later deduction then runs out of rows and reports the remainder
"""
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pharmadesk.core.config import settings
from pharmadesk.core.exceptions import InsufficientStockError, ValidationError
from pharmadesk.models.medicine import Medicine
from pharmadesk.models.stock import Stock, StockItem
from pharmadesk.models.supplier import Supplier
from pharmadesk.services.catalog_service import clean_text, find_medicine_by_name, find_supplier_by_name, to_price

logger = logging.getLogger(__name__)


@dataclass
class StockRequest:
    """Quantity of one medicine wanted from stock."""
    medicine_id: int
    medicine_name: str
    quantity: int


@dataclass
class AvailabilityCheck:
    medicine_id: int
    medicine_name: str
    required: int
    available: int

    @property
    def sufficient(self) -> bool:
        return self.available >= self.required

    def as_dict(self) -> dict:
        return {
            "medicine_id": self.medicine_id,
            "medicine_name": self.medicine_name,
            "required": self.required,
            "available": self.available,
            "sufficient": self.sufficient,
        }


@dataclass
class AvailabilityResult:
    checks: List[AvailabilityCheck] = field(default_factory=list)

    @property
    def shortfalls(self) -> List[AvailabilityCheck]:
        return [c for c in self.checks if not c.sufficient]

    @property
    def is_valid(self) -> bool:
        return not self.shortfalls

    @property
    def message(self) -> Optional[str]:
        if self.is_valid:
            return None
        lines = "\n".join(
            f"• {c.medicine_name}: Need {c.required}, Available {c.available}"
            for c in self.shortfalls
        )
        return f"Insufficient stock for:\n{lines}"


@dataclass
class BatchDeduction:
    stock_item_id: int
    stock_id: int
    medicine_id: int
    quantity_before: int
    deducted: int

    @property
    def quantity_after(self) -> int:
        return self.quantity_before - self.deducted


@dataclass
class DeductionResult:
    success: bool
    deductions: List[BatchDeduction] = field(default_factory=list)
    error: Optional[str] = None
    failed_medicine: Optional[str] = None
    remaining: int = 0

    def deducted_for(self, medicine_id: int) -> int:
        return sum(d.deducted for d in self.deductions if d.medicine_id == medicine_id)


@dataclass
class ReceiptLine:
    medicine_name: str
    quantity: int
    unit_price: Decimal
    expiry_date: Optional[date] = None
    batch_number: Optional[str] = None


# ------------------------------------------------------------------------------
# Availability
# ------------------------------------------------------------------------------

def merge_requests(requests: Iterable[StockRequest]) -> List[StockRequest]:
    """Sum quantities of repeated medicines, keeping first-seen order."""
    merged: "OrderedDict[int, StockRequest]" = OrderedDict()
    for r in requests:
        if r.medicine_id in merged:
            merged[r.medicine_id].quantity += r.quantity
        else:
            merged[r.medicine_id] = StockRequest(r.medicine_id, r.medicine_name, r.quantity)
    return list(merged.values())


def fifo_batches(db: Session, medicine_id: int) -> List[StockItem]:
    """Stock rows of a medicine that still hold quantity, oldest batch first."""
    return (
        db.query(StockItem)
        .join(Stock, StockItem.stock_id == Stock.id)
        .filter(StockItem.medicine_id == medicine_id, StockItem.quantity > 0)
        .order_by(Stock.created_at.asc(), Stock.id.asc(), StockItem.id.asc())
        .all()
    )


def available_quantity(db: Session, medicine_id: int) -> int:
    total = (
        db.query(func.coalesce(func.sum(StockItem.quantity), 0))
        .filter(StockItem.medicine_id == medicine_id, StockItem.quantity > 0)
        .scalar()
    )
    return int(total or 0)


def check_stock_availability(db: Session, requests: Iterable[StockRequest]) -> AvailabilityResult:
    """Compare each request with the medicine's total on hand. Read-only."""
    result = AvailabilityResult()
    for r in merge_requests(requests):
        result.checks.append(
            AvailabilityCheck(
                medicine_id=r.medicine_id,
                medicine_name=r.medicine_name,
                required=r.quantity,
                available=available_quantity(db, r.medicine_id),
            )
        )
    return result


def ensure_stock_available(db: Session, requests: Iterable[StockRequest]) -> AvailabilityResult:
    """Raise InsufficientStockError listing every shortfall."""
    result = check_stock_availability(db, requests)
    if not result.is_valid:
        logger.info(f"[STOCK] Availability rejected: {len(result.shortfalls)} shortfall(s)")
        raise InsufficientStockError(
            result.message,
            shortfalls=[c.as_dict() for c in result.shortfalls],
        )
    return result


# ------------------------------------------------------------------------------
# FIFO deduction
# ------------------------------------------------------------------------------

def deduct_stock_fifo(db: Session, requests: Iterable[StockRequest]) -> DeductionResult:
    """Deplete stock oldest batch first, committing each row's new quantity.

    Stops at the first medicine that cannot be fully satisfied. Rows already
    committed stay committed.
    """
    result = DeductionResult(success=True)

    for r in merge_requests(requests):
        remaining = r.quantity
        try:
            for item in fifo_batches(db, r.medicine_id):
                if remaining <= 0:
                    break
                on_hand = item.quantity
                take = min(remaining, on_hand)
                if take <= 0:
                    continue
                item.quantity = on_hand - take
                db.commit()
                result.deductions.append(
                    BatchDeduction(
                        stock_item_id=item.id,
                        stock_id=item.stock_id,
                        medicine_id=r.medicine_id,
                        quantity_before=on_hand,
                        deducted=take,
                    )
                )
                remaining -= take
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error(f"[STOCK] Deduction failed for {r.medicine_name}: {exc}", exc_info=True)
            result.success = False
            result.failed_medicine = r.medicine_name
            result.remaining = remaining
            result.error = f"Failed to update stock for {r.medicine_name}: {getattr(exc, 'orig', None) or exc}"
            return result

        if remaining > 0:
            logger.warning(f"[STOCK] Could not fully deduct {r.medicine_name}, remaining {remaining}")
            result.success = False
            result.failed_medicine = r.medicine_name
            result.remaining = remaining
            result.error = f"Could not fully deduct {r.medicine_name}. Remaining: {remaining}"
            return result

        logger.info(f"[STOCK] Deducted {r.quantity} of {r.medicine_name}")

    return result


# ------------------------------------------------------------------------------
# Receipts
# ------------------------------------------------------------------------------

def receive_stock(db: Session, supplier_name: str, lines: List[ReceiptLine]) -> Stock:
    """Record one supplier delivery with its medicine lines."""
    if not clean_text(supplier_name):
        raise ValidationError("Supplier name is required")
    if not lines:
        raise ValidationError("At least one medicine is required")

    for line in lines:
        if not clean_text(line.medicine_name) or line.quantity is None or line.quantity < 1:
            raise ValidationError("Please fill all medicine fields correctly")
        to_price(line.unit_price, "Unit price")

    supplier = find_supplier_by_name(db, supplier_name)
    if not supplier:
        raise ValidationError("Supplier not found. Please select a valid supplier from the dropdown.")

    medicines: Dict[str, Medicine] = {}
    for line in lines:
        name = clean_text(line.medicine_name)
        medicine = medicines.get(name) or find_medicine_by_name(db, name)
        if not medicine:
            raise ValidationError(f"Medicine '{name}' not found. Please select a valid medicine from the dropdown.")
        medicines[name] = medicine

    total_value = sum(
        (Decimal(line.quantity) * to_price(line.unit_price, "Unit price") for line in lines),
        Decimal("0"),
    )
    stock = Stock(supplier_id=supplier.id, total_value=total_value)
    db.add(stock)
    db.flush()

    for line in lines:
        db.add(StockItem(
            stock_id=stock.id,
            medicine_id=medicines[clean_text(line.medicine_name)].id,
            quantity=int(line.quantity),
            unit_price=to_price(line.unit_price, "Unit price"),
            expiry_date=line.expiry_date,
            batch_number=clean_text(line.batch_number),
        ))

    db.commit()
    db.refresh(stock)
    logger.info(f"[STOCK] Received stock {stock.id} from '{supplier.name}': {len(lines)} line(s), value {total_value}")
    return stock


# ------------------------------------------------------------------------------
# Views
# ------------------------------------------------------------------------------

def stock_status(quantity: int, threshold: Optional[int] = None) -> str:
    threshold = settings.LOW_STOCK_THRESHOLD if threshold is None else threshold
    return "Low Stock" if quantity < threshold else "In Stock"


def stock_overview(db: Session, search: Optional[str] = None) -> List[dict]:
    """Every stock row with its medicine and supplier, largest quantity first."""
    rows = (
        db.query(StockItem, Medicine, Stock, Supplier)
        .join(Medicine, StockItem.medicine_id == Medicine.id)
        .join(Stock, StockItem.stock_id == Stock.id)
        .join(Supplier, Stock.supplier_id == Supplier.id)
        .order_by(StockItem.quantity.desc(), StockItem.id.asc())
        .all()
    )
    term = (clean_text(search) or "").lower()
    result = []
    for item, medicine, stock, supplier in rows:
        if term and term not in medicine.name.lower() and term not in supplier.name.lower():
            continue
        result.append({
            "id": item.id,
            "medicine_id": medicine.id,
            "medicine_name": medicine.name,
            "unit": medicine.unit or "units",
            "supplier_name": supplier.name,
            "quantity": item.quantity,
            "unit_price": float(item.unit_price),
            "subtotal": float(item.subtotal),
            "expiry_date": item.expiry_date.isoformat() if item.expiry_date else None,
            "batch_number": item.batch_number,
            "received_at": stock.created_at.isoformat() if stock.created_at else None,
            "status": stock_status(item.quantity),
        })
    return result


def low_stock_medicines(db: Session, search: Optional[str] = None, threshold: Optional[int] = None) -> List[dict]:
    """Medicines whose total across all batches is below the threshold."""
    threshold = settings.LOW_STOCK_THRESHOLD if threshold is None else threshold
    rows = (
        db.query(StockItem, Medicine, Supplier)
        .join(Medicine, StockItem.medicine_id == Medicine.id)
        .join(Stock, StockItem.stock_id == Stock.id)
        .join(Supplier, Stock.supplier_id == Supplier.id)
        .order_by(StockItem.quantity.asc(), StockItem.id.asc())
        .all()
    )

    groups: "OrderedDict[int, dict]" = OrderedDict()
    for item, medicine, supplier in rows:
        group = groups.setdefault(medicine.id, {
            "id": medicine.id,
            "name": medicine.name,
            "unit": medicine.unit or "units",
            "total_quantity": 0,
            "suppliers": [],
        })
        group["total_quantity"] += item.quantity
        if item.quantity > 0:
            group["suppliers"].append({
                "name": supplier.name,
                "quantity": item.quantity,
                "unit_price": float(item.unit_price),
                "contact": supplier.phone,
                "email": supplier.email,
            })

    low = [g for g in groups.values() if g["total_quantity"] < threshold]
    term = (clean_text(search) or "").lower()
    if term:
        low = [
            g for g in low
            if term in g["name"].lower() or any(term in s["name"].lower() for s in g["suppliers"])
        ]
    return sorted(low, key=lambda g: (g["total_quantity"], g["name"]))


def days_until_expiry(expiry: date, today: Optional[date] = None) -> int:
    return (expiry - (today or date.today())).days


def urgency_level(days_left: int) -> str:
    if days_left < 0:
        return "expired"
    if days_left <= settings.URGENT_EXPIRY_DAYS:
        return "urgent"
    return "warning"


def expiring_items(
    db: Session,
    days: Optional[int] = None,
    limit: Optional[int] = None,
    search: Optional[str] = None,
    today: Optional[date] = None,
) -> List[dict]:
    """Stock still on hand that expires within the window (already expired included)."""
    today = today or date.today()
    days = settings.EXPIRY_WINDOW_DAYS if days is None else days
    cutoff = today + timedelta(days=days)

    q = (
        db.query(StockItem, Medicine, Stock, Supplier)
        .join(Medicine, StockItem.medicine_id == Medicine.id)
        .join(Stock, StockItem.stock_id == Stock.id)
        .join(Supplier, Stock.supplier_id == Supplier.id)
        .filter(
            StockItem.expiry_date.isnot(None),
            StockItem.expiry_date <= cutoff,
            StockItem.quantity > 0,
        )
        .order_by(StockItem.expiry_date.asc(), StockItem.id.asc())
    )
    term = clean_text(search)
    if term:
        q = q.filter(Medicine.name.ilike(f"%{term}%") | Supplier.name.ilike(f"%{term}%"))
    if limit:
        q = q.limit(limit)

    result = []
    for item, medicine, stock, supplier in q.all():
        days_left = days_until_expiry(item.expiry_date, today)
        result.append({
            "id": item.id,
            "medicine_name": medicine.name,
            "unit": medicine.unit or "units",
            "supplier_name": supplier.name,
            "quantity": item.quantity,
            "unit_price": float(item.unit_price),
            "batch_number": item.batch_number,
            "expiry_date": item.expiry_date.isoformat(),
            "days_left": days_left,
            "urgency": urgency_level(days_left),
        })
    return result


def group_by_urgency(items: List[dict]) -> Dict[str, List[dict]]:
    groups = {"expired": [], "urgent": [], "warning": []}
    for item in items:
        groups[item["urgency"]].append(item)
    return groups


def stock_value(db: Session) -> Decimal:
    items = db.query(StockItem.quantity, StockItem.unit_price).all()
    return sum(
        (Decimal(q or 0) * Decimal(str(p or 0)) for q, p in items),
        Decimal("0"),
    )


def total_stock_quantity(db: Session) -> int:
    return int(db.query(func.coalesce(func.sum(StockItem.quantity), 0)).scalar() or 0)
