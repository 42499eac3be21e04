"""Seed the catalog with common medicines, two suppliers and two stock deliveries."""
from datetime import date, timedelta
from decimal import Decimal

from pharmadesk.core.formatting import format_rupees
from pharmadesk.db.init_db import init_db
from pharmadesk.db.session import SessionLocal
from pharmadesk.services import catalog_service, stock_service

MEDICINES = [
    {"name": "Paracetamol 500mg", "category": "Pain & Inflammation Relief", "unit": "tablets", "price": 2.50},
    {"name": "Dolo 650", "category": "Pain & Inflammation Relief", "unit": "tablets", "price": 3.00},
    {"name": "Amoxicillin 500mg", "category": "Anti-Infectives", "unit": "capsules", "price": 8.00},
    {"name": "Azithromycin 500mg", "category": "Anti-Infectives", "unit": "tablets", "price": 22.00},
    {"name": "Cetirizine 10mg", "category": "Respiratory Medicines", "unit": "tablets", "price": 1.50},
    {"name": "Pantoprazole 40mg", "category": "Gastrointestinal Medicines", "unit": "tablets", "price": 6.00},
    {"name": "ORS Sachet", "category": "Over-The-Counter (OTC) & First Aid", "unit": "sachets", "price": 20.00},
    {"name": "Metformin 500mg", "category": "Endocrine & Metabolic", "unit": "tablets", "price": 2.00},
    {"name": "Amlodipine 5mg", "category": "Cardiovascular Medicines", "unit": "tablets", "price": 3.50},
    {"name": "Benadryl Cough Syrup", "category": "Respiratory Medicines", "unit": "ml", "price": 95.00},
]

SUPPLIERS = [
    {"name": "City Medical Distributors", "phone": "+91 98200 11111", "email": "orders@citymed.in"},
    {"name": "Healthline Pharma", "phone": "+91 98200 22222", "email": "sales@healthline.in"},
]


def seed_pharmacy():
    init_db()
    db = SessionLocal()
    try:
        for med in MEDICINES:
            catalog_service.upsert_medicine(db, **med)
        print(f"Seeded {len(MEDICINES)} medicines")

        for sup in SUPPLIERS:
            if not catalog_service.find_supplier_by_name(db, sup["name"]):
                catalog_service.create_supplier(db, **sup)
        print(f"Seeded {len(SUPPLIERS)} suppliers")

        today = date.today()
        deliveries = [
            ("City Medical Distributors", [
                ("Paracetamol 500mg", 5, "2.00", today + timedelta(days=20), "PCM-A1"),
                ("Amoxicillin 500mg", 60, "6.50", today + timedelta(days=5), "AMX-07"),
                ("Cetirizine 10mg", 8, "1.10", today + timedelta(days=200), None),
            ]),
            ("Healthline Pharma", [
                ("Paracetamol 500mg", 10, "2.10", today + timedelta(days=365), "PCM-B4"),
                ("Dolo 650", 150, "2.40", today + timedelta(days=300), "DL-22"),
                ("Benadryl Cough Syrup", 4, "80.00", today - timedelta(days=3), "BEN-01"),
            ]),
        ]
        for supplier_name, rows in deliveries:
            lines = [
                stock_service.ReceiptLine(name, qty, Decimal(price), expiry, batch)
                for name, qty, price, expiry, batch in rows
            ]
            stock = stock_service.receive_stock(db, supplier_name, lines)
            print(f"Received stock #{stock.id} from {supplier_name}: value {format_rupees(stock.total_value)}")
    finally:
        db.close()


if __name__ == "__main__":
    seed_pharmacy()
