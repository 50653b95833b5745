"""Material CRUD and the single path through which stock levels change."""

from __future__ import annotations

import logging

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from ..core.dates import utcnow_iso
from ..models.inventory import InventoryTransactionLog, Material
from ..models.party import Supplier
from ..services.change_feed import publish_inventory_change

logger = logging.getLogger(__name__)

MATERIAL_FIELDS = ("unit", "alt_unit", "conversion_rate", "purchase_rate", "reorder_level")


def _clean_supplier_id(db: Session, supplier_id: int | None) -> int | None:
    if supplier_id is not None and db.get(Supplier, supplier_id) is None:
        raise ValueError("supplier not found")
    return supplier_id


def list_materials(db: Session, search: str | None = None, limit: int = 200, offset: int = 0) -> list[Material]:
    stmt = select(Material)
    if search and search.strip():
        stmt = stmt.where(Material.material_name.ilike(f"%{search.strip()}%"))
    stmt = stmt.order_by(Material.material_name).limit(limit).offset(offset)
    return db.execute(stmt).scalars().all()


def get_material(db: Session, material_id: int) -> Material | None:
    return db.get(Material, material_id)


def get_material_by_name(db: Session, name: str) -> Material | None:
    stmt = select(Material).where(func.lower(Material.material_name) == name.strip().lower())
    return db.execute(stmt).scalars().first()


def create_material(db: Session, payload: dict) -> Material:
    name = (payload.get("material_name") or "").strip()
    if not name:
        raise ValueError("material_name is required")
    if get_material_by_name(db, name):
        raise ValueError(f"material '{name}' already exists")
    now = utcnow_iso()
    supplier_id = _clean_supplier_id(db, payload.get("supplier_id"))
    material = Material(
        material_name=name,
        unit=(payload.get("unit") or "unit").strip(),
        alt_unit=(payload.get("alt_unit") or None),
        conversion_rate=payload.get("conversion_rate"),
        purchase_rate=payload.get("purchase_rate"),
        reorder_level=payload.get("reorder_level"),
        supplier_id=supplier_id,
        quantity=0.0,
        created_at=now,
        updated_at=now,
    )
    db.add(material)
    db.flush()
    opening = float(payload.get("opening_stock") or 0.0)
    if opening:
        apply_stock_change(
            db,
            material,
            opening,
            transaction_type="manual-increase",
            notes="Opening stock",
        )
    db.commit()
    db.refresh(material)
    if opening:
        publish_inventory_change([material.id], source="material:create")
    return material


def update_material(db: Session, material: Material, payload: dict) -> Material:
    if "material_name" in payload:
        name = (payload.get("material_name") or "").strip()
        if not name:
            raise ValueError("material_name is required")
        existing = get_material_by_name(db, name)
        if existing and existing.id != material.id:
            raise ValueError(f"material '{name}' already exists")
        material.material_name = name
    if "supplier_id" in payload:
        material.supplier_id = _clean_supplier_id(db, payload.get("supplier_id"))
    for field in MATERIAL_FIELDS:
        if field in payload:
            setattr(material, field, payload.get(field))
    material.updated_at = utcnow_iso()
    db.commit()
    db.refresh(material)
    return material


def apply_stock_change(
    db: Session,
    material: Material,
    change: float,
    *,
    transaction_type: str,
    reference_type: str | None = None,
    reference_id: str | int | None = None,
    reference_number: str | None = None,
    notes: str | None = None,
    floor_at_zero: bool = False,
) -> InventoryTransactionLog:
    """Move ``material`` stock by ``change`` and log the row describing it.

    Nothing is committed; callers group several changes into one transaction.
    With ``floor_at_zero`` the stock never drops below zero and the logged
    delta is what was actually removed.
    """

    previous = float(material.quantity or 0.0)
    new = previous + change
    if floor_at_zero and new < 0:
        new = 0.0
    now = utcnow_iso()
    material.quantity = new
    material.updated_at = now
    entry = InventoryTransactionLog(
        material_id=material.id,
        transaction_type=transaction_type,
        quantity=new - previous,
        previous_quantity=previous,
        new_quantity=new,
        transaction_date=now,
        reference_type=reference_type,
        reference_id=str(reference_id) if reference_id is not None else None,
        reference_number=reference_number,
        notes=notes,
        created_at=now,
    )
    db.add(entry)
    logger.info(
        "inventory.stock_changed",
        extra={
            "extra_data": {
                "material_id": material.id,
                "transaction_type": transaction_type,
                "previous": previous,
                "new": new,
                "reference_type": reference_type,
                "reference_id": entry.reference_id,
            }
        },
    )
    return entry


def adjust_stock(db: Session, material: Material, change: float, note: str | None = None) -> InventoryTransactionLog:
    """Manual stock correction from a stock take or write-off."""

    if not change:
        raise ValueError("change must be non-zero")
    if change < 0 and (material.quantity or 0.0) + change < 0:
        raise ValueError(
            f"cannot remove {abs(change):g} {material.unit}; only {material.quantity:g} in stock"
        )
    entry = apply_stock_change(
        db,
        material,
        change,
        transaction_type="manual-increase" if change > 0 else "manual-decrease",
        notes=(note or "").strip() or "Manual adjustment",
    )
    db.commit()
    db.refresh(entry)
    publish_inventory_change([material.id], source="inventory:adjust")
    return entry


def get_inventory_summary(db: Session) -> list[dict[str, object]]:
    """Per-material stock, valuation and last movement for dashboards."""

    last_activity = (
        select(
            InventoryTransactionLog.material_id,
            func.max(InventoryTransactionLog.transaction_date).label("last_activity"),
        )
        .where(InventoryTransactionLog.deleted_at.is_(None))
        .group_by(InventoryTransactionLog.material_id)
        .subquery()
    )
    stmt = (
        select(Material, last_activity.c.last_activity)
        .outerjoin(last_activity, last_activity.c.material_id == Material.id)
        .order_by(Material.material_name)
    )
    rows = db.execute(stmt).all()
    return [
        {
            "material_id": material.id,
            "material_name": material.material_name,
            "unit": material.unit,
            "quantity": float(material.quantity or 0.0),
            "purchase_rate": material.purchase_rate,
            "stock_value": material.stock_value,
            "last_activity": activity,
        }
        for material, activity in rows
    ]


def list_low_stock(db: Session) -> list[Material]:
    stmt = (
        select(Material)
        .where(Material.reorder_level.is_not(None), Material.quantity <= Material.reorder_level)
        .order_by(desc(Material.reorder_level - Material.quantity))
    )
    return db.execute(stmt).scalars().all()
