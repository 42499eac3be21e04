"""
Stock receipts.

Stock is one supplier delivery (a batch); each StockItem is the quantity of
one medicine within that delivery. Sales deplete StockItem.quantity oldest
Stock first, so Stock.created_at is the FIFO key.
"""
from decimal import Decimal

from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, DateTime, Date, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from pharmadesk.db.base import Base


class Stock(Base):
    __tablename__ = "stock"

    id = Column(Integer, primary_key=True, index=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.id", ondelete="RESTRICT"), nullable=False)
    total_value = Column(Numeric(12, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    supplier = relationship("Supplier", backref="deliveries")
    items = relationship("StockItem", back_populates="stock", order_by="StockItem.id")


class StockItem(Base):
    __tablename__ = "stock_items"
    __table_args__ = (CheckConstraint("unit_price >= 0", name="stock_items_unit_price_check"),)

    id = Column(Integer, primary_key=True, index=True)
    stock_id = Column(Integer, ForeignKey("stock.id", ondelete="CASCADE"), nullable=False)
    medicine_id = Column(Integer, ForeignKey("medicines.id", ondelete="RESTRICT"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=0)
    unit_price = Column(Numeric(12, 2), nullable=False, default=0)
    expiry_date = Column(Date, nullable=True)
    batch_number = Column(String(128), nullable=True)

    stock = relationship("Stock", back_populates="items")
    medicine = relationship("Medicine", backref="stock_items")

    @property
    def subtotal(self) -> Decimal:
        return Decimal(self.quantity or 0) * Decimal(str(self.unit_price or 0))
