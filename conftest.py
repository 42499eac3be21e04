"""
Shared test setup: in-memory SQLite, a seeded catalog, and an API client.

Environment is set before pharmadesk is imported so Settings picks it up.
"""
import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ["RATE_LIMIT_ENABLED"] = "false"

from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from pharmadesk.api.deps import get_db
from pharmadesk.core.security import create_access_token, get_password_hash
from pharmadesk.db.base import Base
from pharmadesk.main import app
from pharmadesk.models import Medicine, Stock, StockItem, Supplier, User
from pharmadesk import models  # noqa: F401 - register models


def setup_test_db():
    """Create an in-memory DB shared by every session of one test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine, sessionmaker(autocommit=False, autoflush=False, bind=engine)


def add_delivery(db, supplier, rows, created_at):
    """rows: (medicine, quantity, unit_price[, expiry_date[, batch]])"""
    total = sum((Decimal(r[1]) * Decimal(str(r[2])) for r in rows), Decimal("0"))
    stock = Stock(supplier_id=supplier.id, total_value=total, created_at=created_at)
    db.add(stock)
    db.flush()
    for row in rows:
        medicine, quantity, price = row[:3]
        expiry = row[3] if len(row) > 3 else None
        batch = row[4] if len(row) > 4 else None
        db.add(StockItem(
            stock_id=stock.id,
            medicine_id=medicine.id,
            quantity=quantity,
            unit_price=Decimal(str(price)),
            expiry_date=expiry,
            batch_number=batch,
        ))
    db.commit()
    db.refresh(stock)
    return stock


@pytest.fixture
def session_factory():
    engine, factory = setup_test_db()
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def catalog(db):
    """Two suppliers and a few medicines, no stock."""
    items = {
        "city": Supplier(name="City Medical Distributors", phone="+91 98200 11111"),
        "healthline": Supplier(name="Healthline Pharma", email="sales@healthline.in"),
        "paracetamol": Medicine(name="Paracetamol", unit="tablets", price=Decimal("2.00"),
                                category="Pain & Inflammation Relief"),
        "amoxicillin": Medicine(name="Amoxicillin", unit="capsules", price=Decimal("8.00"),
                                category="Anti-Infectives"),
        "cetirizine": Medicine(name="Cetirizine", unit="tablets", price=Decimal("1.50")),
    }
    db.add_all(items.values())
    db.commit()
    for obj in items.values():
        db.refresh(obj)
    return items


@pytest.fixture
def paracetamol_stock(db, catalog):
    """Paracetamol: batch A (older) holds 5, batch B holds 10."""
    base = datetime(2026, 1, 10, 9, 0, 0)
    batch_a = add_delivery(db, catalog["city"], [(catalog["paracetamol"], 5, "1.80")], base)
    batch_b = add_delivery(db, catalog["healthline"], [(catalog["paracetamol"], 10, "1.90")],
                           base + timedelta(days=3))
    return batch_a.items[0], batch_b.items[0]


@pytest.fixture
def user(db):
    staff = User(
        email="pharmacist@clinicmail.com",
        full_name="Asha Pharmacist",
        hashed_password=get_password_hash("secret123"),
    )
    db.add(staff)
    db.commit()
    db.refresh(staff)
    return staff


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(subject=str(user.id))}"}
