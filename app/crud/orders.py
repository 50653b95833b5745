from __future__ import annotations

import logging

from sqlalchemy import desc, or_, select
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.dates import today_iso, utcnow_iso
from ..models.inventory import InventoryTransactionLog, Material
from ..models.order import ORDER_STATUSES, Order
from ..services.change_feed import publish_inventory_change
from .inventory import apply_stock_change
from .numbering import next_document_number
from .parties import resolve_company

logger = logging.getLogger(__name__)

ORDER_FIELDS = ("product_name", "rate", "order_date", "delivery_date", "notes")


def list_orders(
    db: Session,
    *,
    status: str | None = None,
    search: str | None = None,
    company_id: int | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[Order]:
    stmt = select(Order)
    if status:
        stmt = stmt.where(Order.status == status.strip().lower())
    if company_id is not None:
        stmt = stmt.where(Order.company_id == company_id)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(
            or_(
                Order.company_name.ilike(pattern),
                Order.order_number.ilike(pattern),
                Order.product_name.ilike(pattern),
            )
        )
    stmt = stmt.order_by(desc(Order.order_date), desc(Order.id)).limit(limit).offset(offset)
    return db.execute(stmt).scalars().all()


def get_order(db: Session, order_id: int) -> Order | None:
    return db.get(Order, order_id)


def _clean_status(value: str | None) -> str:
    status = (value or "pending").strip().lower()
    if status not in ORDER_STATUSES:
        raise ValueError(f"status must be one of {', '.join(ORDER_STATUSES)}")
    return status


def _clean_quantity(value) -> int:
    try:
        quantity = int(value)
    except (TypeError, ValueError):
        raise ValueError("quantity must be a whole number") from None
    if quantity <= 0:
        raise ValueError("quantity must be greater than zero")
    return quantity


def create_order(db: Session, payload: dict) -> Order:
    company_id, company_name = resolve_company(db, payload.get("company_id"), payload.get("company_name"))
    quantity = _clean_quantity(payload.get("quantity"))
    rate = payload.get("rate")
    if rate is not None and float(rate) < 0:
        raise ValueError("rate cannot be negative")
    order_date = payload.get("order_date") or today_iso(settings.TZ)
    now = utcnow_iso()
    order = Order(
        order_number=next_document_number(db, Order.order_number, "ORD", order_date),
        company_id=company_id,
        company_name=company_name,
        product_name=(payload.get("product_name") or None),
        quantity=quantity,
        rate=rate,
        status=_clean_status(payload.get("status")),
        order_date=order_date,
        delivery_date=payload.get("delivery_date") or None,
        notes=payload.get("notes") or None,
        created_at=now,
        updated_at=now,
    )
    db.add(order)
    db.commit()
    db.refresh(order)
    logger.info(
        "order.created",
        extra={"extra_data": {"order_id": order.id, "order_number": order.order_number, "quantity": quantity}},
    )
    return order


def update_order(db: Session, order: Order, payload: dict) -> Order:
    company = None
    if "company_id" in payload or "company_name" in payload:
        company = resolve_company(db, payload.get("company_id"), payload.get("company_name"))
    if payload.get("rate") is not None and float(payload["rate"]) < 0:
        raise ValueError("rate cannot be negative")
    quantity = _clean_quantity(payload["quantity"]) if payload.get("quantity") is not None else order.quantity
    status = _clean_status(payload["status"]) if payload.get("status") is not None else order.status
    order.quantity = quantity
    order.status = status
    if company is not None:
        order.company_id, order.company_name = company
    for field in ORDER_FIELDS:
        if field in payload:
            value = payload.get(field)
            setattr(order, field, value.strip() if isinstance(value, str) else value)
    order.updated_at = utcnow_iso()
    db.commit()
    db.refresh(order)
    return order


def delete_order(db: Session, order: Order) -> None:
    db.delete(order)
    db.commit()


def record_consumption(
    db: Session,
    order: Order,
    material_id: int,
    quantity: float,
    notes: str | None = None,
) -> InventoryTransactionLog:
    """Take material out of stock for an order's production run."""

    material = db.get(Material, material_id)
    if not material:
        raise ValueError("material not found")
    quantity = float(quantity or 0.0)
    if quantity <= 0:
        raise ValueError("quantity must be greater than zero")
    available = float(material.quantity or 0.0)
    if quantity > available:
        raise ValueError(
            f"insufficient stock for {material.material_name}: {available:g} {material.unit} available"
        )
    try:
        entry = apply_stock_change(
            db,
            material,
            -quantity,
            transaction_type="consumption",
            reference_type="Order",
            reference_id=order.id,
            reference_number=order.order_number,
            notes=notes or f"Consumed for {order.company_name}",
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(entry)
    publish_inventory_change([material.id], source="order:consumption")
    return entry


def order_consumption(db: Session, order: Order) -> list[InventoryTransactionLog]:
    stmt = (
        select(InventoryTransactionLog)
        .where(
            InventoryTransactionLog.reference_type == "Order",
            InventoryTransactionLog.reference_id == str(order.id),
            InventoryTransactionLog.deleted_at.is_(None),
        )
        .order_by(InventoryTransactionLog.transaction_date, InventoryTransactionLog.id)
    )
    return db.execute(stmt).scalars().all()
