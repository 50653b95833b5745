"""Supplier purchases: pricing, numbering and the stock they bring in.

Stock only moves while a purchase is ``completed``. Completing one adds each
line's inventory quantity to stock; cancelling or deleting it takes that
quantity back out, stopping at zero when some of it was already used. Edits
of a completed purchase reverse the old lines in full and apply the new ones
inside a single database transaction, so only the net difference reaches
stock; an edit that would leave a material below zero is rejected.
"""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.dates import today_iso, utcnow_iso
from ..models.inventory import Material
from ..models.purchase import PURCHASE_STATUSES, Purchase, PurchaseItem
from ..services.change_feed import publish_inventory_change
from ..services.costing import CostAllocation, CostLine, allocate_costs
from .inventory import apply_stock_change
from .numbering import next_document_number
from .parties import resolve_supplier

logger = logging.getLogger(__name__)

HEADER_FIELDS = ("purchase_date", "invoice_number", "notes")


def list_purchases(
    db: Session,
    *,
    status: str | None = None,
    supplier: str | None = None,
    supplier_id: int | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[Purchase]:
    stmt = select(Purchase)
    if status:
        stmt = stmt.where(Purchase.status == status.strip().lower())
    if supplier and supplier.strip():
        stmt = stmt.where(Purchase.supplier_name.ilike(f"%{supplier.strip()}%"))
    if supplier_id is not None:
        stmt = stmt.where(Purchase.supplier_id == supplier_id)
    stmt = stmt.order_by(desc(Purchase.purchase_date), desc(Purchase.id)).limit(limit).offset(offset)
    return db.execute(stmt).scalars().all()


def get_purchase(db: Session, purchase_id: int) -> Purchase | None:
    return db.get(Purchase, purchase_id)


def _clean_status(value: str | None) -> str:
    status = (value or "pending").strip().lower()
    if status not in PURCHASE_STATUSES:
        raise ValueError(f"status must be one of {', '.join(PURCHASE_STATUSES)}")
    return status


def _price_lines(db: Session, lines: Iterable[dict], transport_charge: float) -> tuple[CostAllocation, list[Material], list[dict]]:
    """Validate purchase lines and run them through the cost allocator."""

    lines = list(lines or [])
    if not lines:
        raise ValueError("a purchase needs at least one line")
    if transport_charge < 0:
        raise ValueError("transport_charge cannot be negative")

    materials: list[Material] = []
    cost_lines: list[CostLine] = []
    for index, line in enumerate(lines, start=1):
        material = db.get(Material, line.get("material_id")) if line.get("material_id") else None
        if not material:
            raise ValueError(f"line {index}: material not found")
        alt_quantity = float(line.get("alt_quantity") or 0.0)
        if alt_quantity <= 0:
            raise ValueError(f"line {index}: alt_quantity must be greater than zero")
        alt_unit_price = float(line.get("alt_unit_price") or 0.0)
        if alt_unit_price < 0:
            raise ValueError(f"line {index}: alt_unit_price cannot be negative")
        gst = float(line.get("gst_percentage") or 0.0)
        if gst < 0:
            raise ValueError(f"line {index}: gst_percentage cannot be negative")
        materials.append(material)
        cost_lines.append(
            CostLine(
                alt_quantity=alt_quantity,
                alt_unit_price=alt_unit_price,
                gst_percentage=gst,
                conversion_rate=material.conversion_rate,
                material_id=material.id,
            )
        )
    return allocate_costs(cost_lines, transport_charge), materials, lines


def _build_items(allocation: CostAllocation, materials: list[Material], lines: list[dict]) -> list[PurchaseItem]:
    items = []
    for priced, material, line in zip(allocation.lines, materials, lines):
        actual_meter = line.get("actual_meter")
        items.append(
            PurchaseItem(
                material=material,
                material_id=material.id,
                quantity=priced.main_quantity,
                alt_quantity=priced.alt_quantity,
                alt_unit_price=priced.alt_unit_price,
                gst_percentage=priced.gst_percentage,
                gst_amount=priced.gst_amount,
                base_amount=priced.base_amount,
                transport_share=priced.transport_share,
                unit_price=priced.unit_price,
                line_total=priced.line_total,
                actual_meter=float(actual_meter) if actual_meter else None,
            )
        )
    return items


def _apply_to_stock(db: Session, purchase: Purchase) -> set[int]:
    touched: set[int] = set()
    for item in purchase.items:
        material = item.material or db.get(Material, item.material_id)
        apply_stock_change(
            db,
            material,
            item.inventory_quantity,
            transaction_type="purchase",
            reference_type="Purchase",
            reference_id=purchase.id,
            reference_number=purchase.purchase_number,
            notes=f"Purchase from {purchase.supplier_name}",
        )
        material.purchase_rate = item.unit_price
        touched.add(material.id)
    return touched


def _reverse_stock(db: Session, purchase: Purchase, reason: str, *, exact: bool = False) -> set[int]:
    touched: set[int] = set()
    for item in purchase.items:
        material = item.material or db.get(Material, item.material_id)
        apply_stock_change(
            db,
            material,
            -item.inventory_quantity,
            transaction_type="purchase-reversal",
            reference_type="Purchase",
            reference_id=purchase.id,
            reference_number=purchase.purchase_number,
            notes=reason,
            floor_at_zero=not exact,
        )
        touched.add(material.id)
    return touched


def _check_not_negative(db: Session, material_ids: Iterable[int]) -> None:
    for material_id in sorted(material_ids):
        material = db.get(Material, material_id)
        if material is not None and (material.quantity or 0.0) < -settings.DEDUP_TOLERANCE:
            raise ValueError(
                f"{material.material_name}: this change would leave {material.quantity:g} {material.unit} "
                "in stock; part of the purchase was already used"
            )


def _commit_or_rollback(db: Session, purchase: Purchase, action: str) -> None:
    try:
        db.commit()
    except Exception:
        db.rollback()
        logger.exception(
            "purchase.write_failed",
            extra={"extra_data": {"purchase_id": purchase.id, "action": action}},
        )
        raise


def create_purchase(db: Session, payload: dict) -> Purchase:
    supplier_id, supplier_name = resolve_supplier(db, payload.get("supplier_id"), payload.get("supplier_name"))
    status = _clean_status(payload.get("status"))
    transport_charge = float(payload.get("transport_charge") or 0.0)
    allocation, materials, lines = _price_lines(db, payload.get("items"), transport_charge)

    purchase_date = payload.get("purchase_date") or today_iso(settings.TZ)
    now = utcnow_iso()
    purchase = Purchase(
        purchase_number=next_document_number(db, Purchase.purchase_number, "PUR", purchase_date),
        supplier_id=supplier_id,
        supplier_name=supplier_name,
        purchase_date=purchase_date,
        invoice_number=(payload.get("invoice_number") or None),
        notes=(payload.get("notes") or None),
        status=status,
        transport_charge=allocation.transport_charge,
        subtotal=allocation.subtotal,
        total_amount=allocation.total_amount,
        created_at=now,
        updated_at=now,
    )
    purchase.items = _build_items(allocation, materials, lines)
    touched: set[int] = set()
    try:
        db.add(purchase)
        db.flush()
        if status == "completed":
            touched = _apply_to_stock(db, purchase)
    except Exception:
        db.rollback()
        raise
    _commit_or_rollback(db, purchase, "create")
    db.refresh(purchase)
    logger.info(
        "purchase.created",
        extra={
            "extra_data": {
                "purchase_id": purchase.id,
                "purchase_number": purchase.purchase_number,
                "status": purchase.status,
                "total_amount": purchase.total_amount,
            }
        },
    )
    publish_inventory_change(touched, source="purchase:create")
    return purchase


def set_purchase_status(db: Session, purchase: Purchase, status: str) -> Purchase:
    """Move a purchase between statuses, bringing stock in or taking it out."""

    new_status = _clean_status(status)
    old_status = purchase.status
    if new_status == old_status:
        return purchase
    touched: set[int] = set()
    try:
        if old_status == "completed":
            touched |= _reverse_stock(db, purchase, f"Purchase {purchase.purchase_number} marked {new_status}")
        if new_status == "completed":
            touched |= _apply_to_stock(db, purchase)
        purchase.status = new_status
        purchase.updated_at = utcnow_iso()
    except Exception:
        db.rollback()
        raise
    _commit_or_rollback(db, purchase, "status")
    db.refresh(purchase)
    logger.info(
        "purchase.status_changed",
        extra={"extra_data": {"purchase_id": purchase.id, "from": old_status, "to": new_status}},
    )
    publish_inventory_change(touched, source="purchase:status")
    return purchase


def complete_purchase(db: Session, purchase: Purchase) -> Purchase:
    return set_purchase_status(db, purchase, "completed")


def update_purchase(db: Session, purchase: Purchase, payload: dict) -> Purchase:
    """Edit a purchase; a completed one is reversed and re-applied atomically.

    Header fields, status, transport charge and lines may all change. When
    ``items`` is present the lines are replaced wholesale and re-priced;
    otherwise the existing lines are re-priced against the new transport
    charge. Validation happens before anything is written, and any failure
    after that rolls back the header, the lines and the stock movements
    together.
    """

    supplier = None
    if "supplier_id" in payload or "supplier_name" in payload:
        supplier = resolve_supplier(db, payload.get("supplier_id"), payload.get("supplier_name"))
    new_status = _clean_status(payload.get("status") or purchase.status)
    transport_charge = float(
        payload["transport_charge"] if payload.get("transport_charge") is not None else purchase.transport_charge or 0.0
    )
    if "items" in payload:
        lines = payload.get("items")
    else:
        lines = [
            {
                "material_id": item.material_id,
                "alt_quantity": item.alt_quantity,
                "alt_unit_price": item.alt_unit_price,
                "gst_percentage": item.gst_percentage,
                "actual_meter": item.actual_meter,
            }
            for item in purchase.items
        ]
    allocation, materials, lines = _price_lines(db, lines, transport_charge)

    was_completed = purchase.status == "completed"
    touched: set[int] = set()
    try:
        if was_completed:
            touched |= _reverse_stock(
                db,
                purchase,
                f"Purchase {purchase.purchase_number} updated",
                exact=new_status == "completed",
            )
        if supplier is not None:
            purchase.supplier_id, purchase.supplier_name = supplier
        for field in HEADER_FIELDS:
            if field in payload:
                value = payload.get(field)
                setattr(purchase, field, value.strip() if isinstance(value, str) else value)
        purchase.items = _build_items(allocation, materials, lines)
        purchase.transport_charge = allocation.transport_charge
        purchase.subtotal = allocation.subtotal
        purchase.total_amount = allocation.total_amount
        purchase.status = new_status
        purchase.updated_at = utcnow_iso()
        db.flush()
        if new_status == "completed":
            touched |= _apply_to_stock(db, purchase)
        _check_not_negative(db, touched)
    except ValueError:
        db.rollback()
        raise
    except Exception:
        db.rollback()
        logger.exception("purchase.update_failed", extra={"extra_data": {"purchase_id": purchase.id}})
        raise
    _commit_or_rollback(db, purchase, "update")
    db.refresh(purchase)
    logger.info(
        "purchase.updated",
        extra={
            "extra_data": {
                "purchase_id": purchase.id,
                "reapplied": was_completed and new_status == "completed",
                "total_amount": purchase.total_amount,
            }
        },
    )
    publish_inventory_change(touched, source="purchase:update")
    return purchase


def delete_purchase(db: Session, purchase: Purchase) -> None:
    """Delete a purchase, first taking a completed one's stock back out."""

    touched: set[int] = set()
    purchase_id = purchase.id
    try:
        if purchase.status == "completed":
            touched = _reverse_stock(db, purchase, f"Purchase {purchase.purchase_number} deleted")
        db.delete(purchase)
    except Exception:
        db.rollback()
        raise
    _commit_or_rollback(db, purchase, "delete")
    logger.info("purchase.deleted", extra={"extra_data": {"purchase_id": purchase_id}})
    publish_inventory_change(touched, source="purchase:delete")
