"""CRUD helpers for suppliers and customer companies."""

from __future__ import annotations

import logging
from typing import Type, TypeVar

from sqlalchemy import desc, func, or_, select, update
from sqlalchemy.orm import Session

from ..core.dates import utcnow_iso
from ..models.inventory import Material
from ..models.order import Order
from ..models.party import PARTY_STATUSES, Company, Supplier
from ..models.purchase import Purchase

logger = logging.getLogger(__name__)

Party = TypeVar("Party", Supplier, Company)

CONTACT_FIELDS = ("contact_person", "phone", "email", "address")
SUPPLIER_FIELDS = CONTACT_FIELDS + ("materials_provided", "payment_terms")


def _clean_name(value: str | None) -> str:
    name = (value or "").strip()
    if not name:
        raise ValueError("name is required")
    return name


def _clean_status(value: str | None) -> str:
    status = (value or "active").strip().lower()
    if status not in PARTY_STATUSES:
        raise ValueError(f"status must be one of {', '.join(PARTY_STATUSES)}")
    return status


def _by_name(db: Session, model: Type[Party], name: str) -> Party | None:
    stmt = select(model).where(func.lower(model.name) == name.strip().lower())
    return db.execute(stmt).scalars().first()


def _ensure_unique(db: Session, model: Type[Party], name: str, current_id: int | None = None) -> None:
    existing = _by_name(db, model, name)
    if existing and existing.id != current_id:
        raise ValueError(f"{model.__name__.lower()} '{name}' already exists")


def _list(db: Session, model: Type[Party], search: str | None, status: str | None, limit: int, offset: int):
    stmt = select(model)
    if status:
        stmt = stmt.where(model.status == status.strip().lower())
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(or_(model.name.ilike(pattern), model.contact_person.ilike(pattern)))
    stmt = stmt.order_by(model.name).limit(limit).offset(offset)
    return db.execute(stmt).scalars().all()


def _apply_fields(party, payload: dict, fields: tuple[str, ...]) -> None:
    for field in fields:
        if field in payload:
            value = payload.get(field)
            setattr(party, field, (value.strip() or None) if isinstance(value, str) else value)


# ---------- Suppliers ----------


def list_suppliers(
    db: Session,
    *,
    search: str | None = None,
    status: str | None = None,
    limit: int = 200,
    offset: int = 0,
) -> list[Supplier]:
    return _list(db, Supplier, search, status, limit, offset)


def get_supplier(db: Session, supplier_id: int) -> Supplier | None:
    return db.get(Supplier, supplier_id)


def create_supplier(db: Session, payload: dict) -> Supplier:
    name = _clean_name(payload.get("name"))
    _ensure_unique(db, Supplier, name)
    now = utcnow_iso()
    supplier = Supplier(name=name, status=_clean_status(payload.get("status")), created_at=now, updated_at=now)
    _apply_fields(supplier, payload, SUPPLIER_FIELDS)
    db.add(supplier)
    db.commit()
    db.refresh(supplier)
    logger.info("supplier.created", extra={"extra_data": {"supplier_id": supplier.id}})
    return supplier


def update_supplier(db: Session, supplier: Supplier, payload: dict) -> Supplier:
    if "name" in payload:
        name = _clean_name(payload.get("name"))
        _ensure_unique(db, Supplier, name, supplier.id)
        supplier.name = name
    if payload.get("status") is not None:
        supplier.status = _clean_status(payload["status"])
    _apply_fields(supplier, payload, SUPPLIER_FIELDS)
    supplier.updated_at = utcnow_iso()
    db.commit()
    db.refresh(supplier)
    return supplier


def delete_supplier(db: Session, supplier: Supplier) -> None:
    """Delete a supplier; its purchases keep the supplier name they were saved with."""

    supplier_id = supplier.id
    db.execute(update(Purchase).where(Purchase.supplier_id == supplier_id).values(supplier_id=None))
    db.execute(update(Material).where(Material.supplier_id == supplier_id).values(supplier_id=None))
    db.delete(supplier)
    db.commit()
    logger.info("supplier.deleted", extra={"extra_data": {"supplier_id": supplier_id}})


def supplier_purchases(db: Session, supplier: Supplier) -> list[Purchase]:
    stmt = (
        select(Purchase)
        .where(Purchase.supplier_id == supplier.id)
        .order_by(desc(Purchase.purchase_date), desc(Purchase.id))
    )
    return db.execute(stmt).scalars().all()


def resolve_supplier(db: Session, supplier_id: int | None, supplier_name: str | None) -> tuple[int | None, str]:
    """The ``(supplier_id, supplier_name)`` pair to store on a purchase.

    A linked supplier's own name wins; without a link a free-text name is
    required.
    """

    if supplier_id is not None:
        supplier = get_supplier(db, supplier_id)
        if not supplier:
            raise ValueError("supplier not found")
        return supplier.id, supplier.name
    name = (supplier_name or "").strip()
    if not name:
        raise ValueError("supplier_name is required")
    return None, name


# ---------- Companies ----------


def list_companies(
    db: Session,
    *,
    search: str | None = None,
    status: str | None = None,
    limit: int = 200,
    offset: int = 0,
) -> list[Company]:
    return _list(db, Company, search, status, limit, offset)


def get_company(db: Session, company_id: int) -> Company | None:
    return db.get(Company, company_id)


def create_company(db: Session, payload: dict) -> Company:
    name = _clean_name(payload.get("name"))
    _ensure_unique(db, Company, name)
    now = utcnow_iso()
    company = Company(name=name, status=_clean_status(payload.get("status")), created_at=now, updated_at=now)
    _apply_fields(company, payload, CONTACT_FIELDS)
    db.add(company)
    db.commit()
    db.refresh(company)
    logger.info("company.created", extra={"extra_data": {"company_id": company.id}})
    return company


def update_company(db: Session, company: Company, payload: dict) -> Company:
    """Edit a company; a rename is copied onto its orders."""

    if "name" in payload:
        name = _clean_name(payload.get("name"))
        _ensure_unique(db, Company, name, company.id)
        if name != company.name:
            db.execute(update(Order).where(Order.company_id == company.id).values(company_name=name))
        company.name = name
    if payload.get("status") is not None:
        company.status = _clean_status(payload["status"])
    _apply_fields(company, payload, CONTACT_FIELDS)
    company.updated_at = utcnow_iso()
    db.commit()
    db.refresh(company)
    return company


def delete_company(db: Session, company: Company, *, delete_orders: bool = False) -> int:
    """Delete a company, either detaching its orders or deleting them too.

    Returns the number of orders that were deleted.
    """

    company_id = company.id
    orders = company_orders(db, company)
    try:
        if delete_orders:
            for order in orders:
                db.delete(order)
        else:
            for order in orders:
                order.company_id = None
        db.delete(company)
        db.commit()
    except Exception:
        db.rollback()
        raise
    deleted = len(orders) if delete_orders else 0
    logger.info(
        "company.deleted",
        extra={"extra_data": {"company_id": company_id, "orders_deleted": deleted}},
    )
    return deleted


def company_orders(db: Session, company: Company) -> list[Order]:
    stmt = select(Order).where(Order.company_id == company.id).order_by(desc(Order.order_date), desc(Order.id))
    return db.execute(stmt).scalars().all()


def resolve_company(db: Session, company_id: int | None, company_name: str | None) -> tuple[int | None, str]:
    if company_id is not None:
        company = get_company(db, company_id)
        if not company:
            raise ValueError("company not found")
        return company.id, company.name
    name = (company_name or "").strip()
    if not name:
        raise ValueError("company_name is required")
    return None, name
