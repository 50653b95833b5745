import os
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from app.db.session import Base
from app.crud.inventory import create_material, update_material
from app.crud.orders import create_order, get_order, list_orders, update_order
from app.crud.parties import (
    company_orders,
    create_company,
    create_supplier,
    delete_company,
    delete_supplier,
    get_company,
    list_companies,
    list_suppliers,
    resolve_supplier,
    supplier_purchases,
    update_company,
    update_supplier,
)
from app.crud.purchases import create_purchase, get_purchase, list_purchases, update_purchase

# Ensure models are imported so metadata is populated
from app.models import inventory as inventory_model  # noqa: F401
from app.models import order as order_model  # noqa: F401
from app.models import party as party_model  # noqa: F401
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


@pytest.fixture()
def fabric(db_session):
    return create_material(db_session, {"material_name": "Fabric", "unit": "kg"})


def _purchase(fabric, **overrides):
    payload = {
        "purchase_date": "2024-05-01",
        "items": [{"material_id": fabric.id, "alt_quantity": 10, "alt_unit_price": 5}],
    }
    payload.update(overrides)
    return payload


def test_supplier_crud_and_search(db_session):
    supplier = create_supplier(
        db_session,
        {"name": "  Shree Polymers ", "contact_person": "Anil", "payment_terms": "30 days", "phone": ""},
    )
    create_supplier(db_session, {"name": "Laxmi Threads", "status": "inactive"})

    assert supplier.name == "Shree Polymers"
    assert supplier.status == "active"
    assert supplier.phone is None
    assert [s.name for s in list_suppliers(db_session)] == ["Laxmi Threads", "Shree Polymers"]
    assert [s.name for s in list_suppliers(db_session, search="anil")] == ["Shree Polymers"]
    assert [s.name for s in list_suppliers(db_session, status="inactive")] == ["Laxmi Threads"]

    updated = update_supplier(db_session, supplier, {"email": "sales@shree.example", "status": "inactive"})
    assert updated.email == "sales@shree.example"
    assert updated.status == "inactive"
    assert updated.payment_terms == "30 days"


def test_party_names_are_unique_ignoring_case(db_session):
    create_supplier(db_session, {"name": "Shree Polymers"})
    other = create_supplier(db_session, {"name": "Laxmi Threads"})
    create_company(db_session, {"name": "Green Mart"})

    with pytest.raises(ValueError, match="supplier 'shree polymers' already exists"):
        create_supplier(db_session, {"name": "shree polymers"})
    with pytest.raises(ValueError, match="already exists"):
        update_supplier(db_session, other, {"name": "SHREE POLYMERS"})
    with pytest.raises(ValueError, match="company 'Green Mart' already exists"):
        create_company(db_session, {"name": "Green Mart"})
    with pytest.raises(ValueError, match="status"):
        create_company(db_session, {"name": "Blue Bazaar", "status": "closed"})
    with pytest.raises(ValueError, match="name is required"):
        create_company(db_session, {"name": " "})


def test_linked_purchase_takes_the_supplier_name(db_session, fabric):
    supplier = create_supplier(db_session, {"name": "Shree Polymers"})

    linked = create_purchase(db_session, _purchase(fabric, supplier_id=supplier.id, supplier_name="ignored"))
    free_text = create_purchase(db_session, _purchase(fabric, supplier_name="Walk-in Trader"))

    assert (linked.supplier_id, linked.supplier_name) == (supplier.id, "Shree Polymers")
    assert (free_text.supplier_id, free_text.supplier_name) == (None, "Walk-in Trader")
    assert [p.id for p in supplier_purchases(db_session, supplier)] == [linked.id]
    assert [p.id for p in list_purchases(db_session, supplier_id=supplier.id)] == [linked.id]

    with pytest.raises(ValueError, match="supplier not found"):
        create_purchase(db_session, _purchase(fabric, supplier_id=999))

    relinked = update_purchase(db_session, free_text, {"supplier_id": supplier.id})
    assert (relinked.supplier_id, relinked.supplier_name) == (supplier.id, "Shree Polymers")


def test_resolve_supplier_needs_a_link_or_a_name(db_session):
    with pytest.raises(ValueError, match="supplier_name is required"):
        resolve_supplier(db_session, None, "   ")
    assert resolve_supplier(db_session, None, " Walk-in ") == (None, "Walk-in")


def test_deleting_a_supplier_keeps_purchase_history(db_session, fabric):
    supplier = create_supplier(db_session, {"name": "Shree Polymers"})
    update_material(db_session, fabric, {"supplier_id": supplier.id})
    purchase = create_purchase(db_session, _purchase(fabric, supplier_id=supplier.id))

    delete_supplier(db_session, supplier)

    purchase = get_purchase(db_session, purchase.id)
    db_session.refresh(fabric)
    assert purchase.supplier_id is None
    assert purchase.supplier_name == "Shree Polymers"
    assert fabric.supplier_id is None
    assert list_suppliers(db_session) == []


def test_material_supplier_must_exist(db_session):
    with pytest.raises(ValueError, match="supplier not found"):
        create_material(db_session, {"material_name": "Zip", "unit": "pcs", "supplier_id": 42})


def test_company_rename_is_copied_to_its_orders(db_session):
    company = create_company(db_session, {"name": "Green Mart", "contact_person": "Rita"})
    order = create_order(db_session, {"company_id": company.id, "quantity": 100, "order_date": "2024-06-01"})
    other = create_order(db_session, {"company_name": "Green Mart", "quantity": 5, "order_date": "2024-06-01"})

    assert (order.company_id, order.company_name) == (company.id, "Green Mart")
    assert other.company_id is None

    update_company(db_session, company, {"name": "Green Mart Retail"})

    assert get_order(db_session, order.id).company_name == "Green Mart Retail"
    assert get_order(db_session, other.id).company_name == "Green Mart"
    assert [o.id for o in list_orders(db_session, company_id=company.id)] == [order.id]


def test_order_can_be_moved_between_companies(db_session):
    first = create_company(db_session, {"name": "Green Mart"})
    second = create_company(db_session, {"name": "Blue Bazaar"})
    order = create_order(db_session, {"company_id": first.id, "quantity": 10})

    moved = update_order(db_session, order, {"company_id": second.id})

    assert (moved.company_id, moved.company_name) == (second.id, "Blue Bazaar")
    with pytest.raises(ValueError, match="company not found"):
        update_order(db_session, moved, {"company_id": 999})
    with pytest.raises(ValueError, match="company_name is required"):
        create_order(db_session, {"quantity": 10})


def test_deleting_a_company_detaches_its_orders(db_session):
    company = create_company(db_session, {"name": "Green Mart"})
    order = create_order(db_session, {"company_id": company.id, "quantity": 10})

    assert delete_company(db_session, company) == 0

    order = get_order(db_session, order.id)
    assert order is not None
    assert order.company_id is None
    assert order.company_name == "Green Mart"
    assert list_companies(db_session) == []


def test_deleting_a_company_can_delete_its_orders(db_session):
    company = create_company(db_session, {"name": "Green Mart"})
    keep = create_company(db_session, {"name": "Blue Bazaar"})
    doomed = [create_order(db_session, {"company_id": company.id, "quantity": q}).id for q in (10, 20)]
    survivor = create_order(db_session, {"company_id": keep.id, "quantity": 5})

    assert delete_company(db_session, company, delete_orders=True) == 2

    assert all(get_order(db_session, order_id) is None for order_id in doomed)
    assert get_order(db_session, survivor.id) is not None
    assert get_company(db_session, company.id) is None
    assert [o.id for o in company_orders(db_session, keep)] == [survivor.id]
