from sqlalchemy import Column, Integer, String, Numeric, DateTime, Text, CheckConstraint
from sqlalchemy.sql import func
from pharmadesk.db.base import Base


MEDICINE_CATEGORIES = [
    "Anti-Infectives",
    "Pain & Inflammation Relief",
    "Cardiovascular Medicines",
    "Respiratory Medicines",
    "Gastrointestinal Medicines",
    "Endocrine & Metabolic",
    "Dermatology",
    "Neurology & Psychiatry",
    "Ophthalmic & ENT",
    "Emergency & Critical Care",
    "Vaccines & Immunizations",
    "Over-The-Counter (OTC) & First Aid",
]


class Medicine(Base):
    __tablename__ = "medicines"
    __table_args__ = (CheckConstraint("price >= 0", name="medicines_price_check"),)

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, nullable=False, index=True)
    unit = Column(String(64), nullable=True)  # tablets, ml, strips ...
    category = Column(String(128), nullable=True)
    description = Column(Text, nullable=True)
    price = Column(Numeric(12, 2), nullable=False, default=0)  # ₹ per unit
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Medicine id={self.id} name={self.name!r}>"
