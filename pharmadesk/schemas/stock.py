from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator


class ReceiptLineIn(BaseModel):
    medicine_name: str
    quantity: int
    unit_price: Decimal = Decimal("0.00")
    expiry_date: Optional[date] = None
    batch_number: Optional[str] = None

    @field_validator('expiry_date', mode='before')
    @classmethod
    def blank_expiry_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class StockReceiptCreate(BaseModel):
    supplier_name: str
    items: List[ReceiptLineIn]


class StockItemResponse(BaseModel):
    id: int
    medicine_id: int
    quantity: int
    unit_price: float
    expiry_date: Optional[date] = None
    batch_number: Optional[str] = None

    class Config:
        from_attributes = True


class StockReceiptResponse(BaseModel):
    id: int
    supplier_id: int
    total_value: float
    created_at: Optional[datetime] = None
    items: List[StockItemResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


class StockRequestIn(BaseModel):
    medicine_name: str
    quantity: int


class AvailabilityRequest(BaseModel):
    items: List[StockRequestIn]
