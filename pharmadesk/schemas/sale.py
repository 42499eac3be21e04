from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field


class SaleLineIn(BaseModel):
    medicine_name: str
    quantity: int
    unit_price: Decimal = Decimal("0.00")


class SaleCreate(BaseModel):
    patient_name: str
    items: List[SaleLineIn]
    description: Optional[str] = None  # reason for sale
    total_amount: Optional[Decimal] = None  # when sent, must equal the sum of the items


class SaleItemResponse(BaseModel):
    id: int
    medicine_id: int
    medicine_name: str
    unit: str
    quantity: int
    unit_price: float
    subtotal: float


class SaleResponse(BaseModel):
    id: int
    patient_name: str
    total_amount: float
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    items: List[SaleItemResponse] = Field(default_factory=list)


class BatchDeductionResponse(BaseModel):
    stock_item_id: int
    stock_id: int
    medicine_id: int
    quantity_before: int
    deducted: int
    quantity_after: int


class SaleRecordResponse(BaseModel):
    sale: SaleResponse
    stock_deducted: bool
    deductions: List[BatchDeductionResponse] = Field(default_factory=list)
    warning: Optional[str] = None
    message: str
