"""
Sale recording and sales history.

WRITE SEQUENCE (not atomic):
1. Validate input and check stock availability - no writes on failure
2. Create the Sale row (committed)
3. Create the SaleItem rows (committed)
4. FIFO stock deduction (each row committed)

A failure in a later step leaves the earlier steps in place. A failed
deduction is reported back as a warning on the recorded sale.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from pharmadesk.core.audit import AuditLog
from pharmadesk.core.exceptions import NotFoundError, ValidationError
from pharmadesk.models.medicine import Medicine
from pharmadesk.models.sale import Sale, SaleItem
from pharmadesk.models.user import User
from pharmadesk.services.catalog_service import clean_text, find_medicine_by_name, to_price
from pharmadesk.services.stock_service import (
    DeductionResult,
    StockRequest,
    deduct_stock_fifo,
    ensure_stock_available,
)

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

INVALID_LINE_MESSAGE = (
    "Please ensure all medicines have:\n"
    "• Valid name\n"
    "• Quantity greater than 0\n"
    "• Price greater than or equal to 0"
)
UNKNOWN_MEDICINE_MESSAGE = (
    "Some medicines are not found in the database. "
    "Please select valid medicines from the dropdown."
)


@dataclass
class SaleLine:
    medicine_name: str
    quantity: int
    unit_price: Decimal


@dataclass
class SaleOutcome:
    sale: Sale
    deduction: DeductionResult
    warning: Optional[str] = None


def line_subtotal(quantity: int, unit_price) -> Decimal:
    """Price is rounded to the cent first, the same way the stored SaleItem price is."""
    return (Decimal(quantity) * to_price(unit_price)).quantize(CENT)


def compute_sale_total(lines: Sequence[SaleLine]) -> Decimal:
    return sum((line_subtotal(l.quantity, l.unit_price) for l in lines), Decimal("0")).quantize(CENT)


def _valid_line(line: SaleLine) -> bool:
    if not clean_text(line.medicine_name):
        return False
    if line.quantity is None or isinstance(line.quantity, bool) or int(line.quantity) != line.quantity:
        return False
    if line.quantity <= 0:
        return False
    try:
        to_price(line.unit_price)
    except ValidationError:
        return False
    return True


def validate_sale(
    db: Session,
    patient_name: str,
    lines: Sequence[SaleLine],
    expected_total=None,
) -> Tuple[List[Tuple[SaleLine, Medicine]], Decimal]:
    """Check the sale before anything is written.

    Returns the lines paired with their medicines, and the computed total.
    """
    if not clean_text(patient_name):
        raise ValidationError("Patient name is required")
    if not lines:
        raise ValidationError("At least one medicine is required")
    if not all(_valid_line(line) for line in lines):
        raise ValidationError(INVALID_LINE_MESSAGE)

    resolved = []
    for line in lines:
        medicine = find_medicine_by_name(db, line.medicine_name)
        if not medicine:
            raise ValidationError(UNKNOWN_MEDICINE_MESSAGE)
        resolved.append((line, medicine))

    total = compute_sale_total(lines)
    if expected_total is not None:
        submitted = Decimal(str(expected_total)).quantize(CENT)
        if submitted != total:
            raise ValidationError(
                f"Sale total {submitted} does not match the sum of its items {total}"
            )
    return resolved, total


def sale_totals_match(sale: Sale) -> bool:
    items_total = sum((Decimal(str(i.subtotal)) for i in sale.items), Decimal("0"))
    return items_total.quantize(CENT) == Decimal(str(sale.total_amount)).quantize(CENT)


def record_sale(
    db: Session,
    patient_name: str,
    lines: Sequence[SaleLine],
    description: Optional[str] = None,
    expected_total=None,
    user: Optional[User] = None,
) -> SaleOutcome:
    resolved, total = validate_sale(db, patient_name, lines, expected_total)
    requests = [
        StockRequest(medicine_id=m.id, medicine_name=m.name, quantity=int(line.quantity))
        for line, m in resolved
    ]
    ensure_stock_available(db, requests)

    sale = Sale(
        patient_name=clean_text(patient_name),
        total_amount=total,
        description=clean_text(description),
    )
    db.add(sale)
    db.commit()
    db.refresh(sale)
    logger.info(f"[SALE] Created sale {sale.id} for '{sale.patient_name}', total {total}")

    try:
        for line, medicine in resolved:
            unit_price = to_price(line.unit_price)
            db.add(SaleItem(
                sale_id=sale.id,
                medicine_id=medicine.id,
                quantity=int(line.quantity),
                unit_price=unit_price,
                subtotal=line_subtotal(line.quantity, unit_price),
            ))
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        AuditLog.log_partial_write("sale", sale.id, "sale_items", str(exc), user)
        raise

    db.refresh(sale)
    if not sale_totals_match(sale):
        logger.warning(f"[SALE] Sale {sale.id} total {sale.total_amount} differs from its item subtotals")

    deduction = deduct_stock_fifo(db, requests)
    warning = None
    if not deduction.success:
        warning = (
            f"Sale completed but stock deduction failed: {deduction.error}\n\n"
            "Please manually adjust stock levels."
        )
        AuditLog.log_partial_write("sale", sale.id, "stock_deduction", deduction.error, user)

    db.refresh(sale)
    return SaleOutcome(sale=sale, deduction=deduction, warning=warning)


# ------------------------------------------------------------------------------
# History
# ------------------------------------------------------------------------------

def _with_items(q):
    return q.options(joinedload(Sale.items).joinedload(SaleItem.medicine))


def list_sales(db: Session, search: Optional[str] = None) -> List[Sale]:
    q = _with_items(db.query(Sale))
    term = clean_text(search)
    if term:
        q = q.filter(Sale.patient_name.ilike(f"%{term}%"))
    return q.order_by(Sale.created_at.desc(), Sale.id.desc()).all()


def get_sale(db: Session, sale_id: int) -> Sale:
    sale = _with_items(db.query(Sale)).filter(Sale.id == sale_id).first()
    if not sale:
        raise NotFoundError("Sale not found")
    return sale
