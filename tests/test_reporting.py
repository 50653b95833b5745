import os
import sys
from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from app.db.session import Base
from app.crud.inventory import create_material
from app.crud.orders import create_order, record_consumption
from app.crud.purchases import create_purchase
from app.services.reporting import consumption_by_material, inventory_valuation, purchases_by_supplier

# Ensure models are registered so metadata tables are created
from app.models import inventory as inventory_model  # noqa: F401
from app.models import order as order_model  # noqa: F401
from app.models import purchase as purchase_model  # noqa: F401


@pytest.fixture()
def db_session():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False})
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


def test_inventory_valuation_uses_purchase_rates(db_session):
    create_material(db_session, {"material_name": "Fabric", "unit": "kg", "opening_stock": 3, "purchase_rate": 10.005})
    create_material(db_session, {"material_name": "Ink", "unit": "l", "opening_stock": 2})

    report = inventory_valuation(db_session)

    rows = {row["material_name"]: row for row in report["materials"]}
    assert rows["Fabric"]["stock_value"] == Decimal("30.02")
    assert rows["Ink"]["stock_value"] == Decimal("0.00")
    assert report["total_value"] == Decimal("30.02")
    assert report["unpriced_materials"] == 1


def test_purchases_by_supplier_counts_completed_only(db_session):
    fabric = create_material(db_session, {"material_name": "Fabric", "unit": "kg"})
    line = {"material_id": fabric.id, "alt_quantity": 10, "alt_unit_price": 10, "gst_percentage": 5}
    create_purchase(
        db_session,
        {"supplier_name": "Om Traders", "purchase_date": "2024-05-01", "status": "completed", "transport_charge": 20, "items": [line]},
    )
    create_purchase(
        db_session,
        {"supplier_name": "Om Traders", "purchase_date": "2024-05-20", "status": "completed", "items": [line]},
    )
    create_purchase(
        db_session,
        {"supplier_name": "Om Traders", "purchase_date": "2024-05-21", "status": "pending", "items": [line]},
    )
    create_purchase(
        db_session,
        {"supplier_name": "Shree Polymers", "purchase_date": "2024-04-01", "status": "completed", "items": [line]},
    )

    report = purchases_by_supplier(db_session)

    assert [row["supplier_name"] for row in report] == ["Om Traders", "Shree Polymers"]
    om = report[0]
    assert om["purchase_count"] == 2
    assert om["subtotal"] == Decimal("230.00")
    assert om["gst_total"] == Decimal("10.00")
    assert om["transport_total"] == Decimal("20.00")

    may_only = purchases_by_supplier(db_session, start_date="2024-05-01", end_date="2024-05-31")
    assert [row["supplier_name"] for row in may_only] == ["Om Traders"]


def test_consumption_by_material(db_session):
    fabric = create_material(db_session, {"material_name": "Fabric", "unit": "kg", "opening_stock": 20, "purchase_rate": 2})
    first = create_order(db_session, {"company_name": "A", "quantity": 100})
    second = create_order(db_session, {"company_name": "B", "quantity": 50})
    record_consumption(db_session, first, fabric.id, 4)
    record_consumption(db_session, second, fabric.id, 1.5)

    report = consumption_by_material(db_session)

    assert len(report) == 1
    assert report[0]["quantity"] == Decimal("5.500")
    assert report[0]["order_count"] == 2
    assert report[0]["value"] == Decimal("11.00")
