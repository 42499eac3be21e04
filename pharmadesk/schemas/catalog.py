from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel


class MedicineUpsert(BaseModel):
    name: str
    category: Optional[str] = None
    unit: Optional[str] = None
    description: Optional[str] = None
    price: Decimal = Decimal("0.00")


class MedicineResponse(BaseModel):
    id: int
    name: str
    category: Optional[str] = None
    unit: Optional[str] = None
    description: Optional[str] = None
    price: float
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MedicineSaveResult(BaseModel):
    medicine: MedicineResponse
    created: bool
    message: str


class SupplierCreate(BaseModel):
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None


class SupplierResponse(BaseModel):
    id: int
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
