"""Queries over the inventory transaction log and its reconciled views."""

from __future__ import annotations

from sqlalchemy import asc, desc, func, or_, select
from sqlalchemy.orm import Session

from ..core.dates import utcnow_iso
from ..models.inventory import InventoryTransactionLog, Material
from ..schemas.inventory import TransactionLogOut
from ..services.reconciliation import (
    consolidate_purchase_updates,
    deduplicate_transactions,
    with_running_balance,
)


def _conditions(
    *,
    material_id: int | None = None,
    transaction_type: str | None = None,
    reference_type: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    search: str | None = None,
) -> list:
    log = InventoryTransactionLog
    conditions = [log.deleted_at.is_(None)]
    if material_id:
        conditions.append(log.material_id == material_id)
    if transaction_type:
        conditions.append(log.transaction_type.ilike(f"%{transaction_type.strip()}%"))
    if reference_type:
        if reference_type.strip().lower() == "manual":
            conditions.append(log.reference_type.is_(None))
        else:
            conditions.append(func.lower(log.reference_type) == reference_type.strip().lower())
    if start_date:
        conditions.append(log.transaction_date >= start_date)
    if end_date:
        # Date-only bounds include the whole final day.
        bound = end_date + "T23:59:59Z" if len(end_date) == 10 else end_date
        conditions.append(log.transaction_date <= bound)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        conditions.append(or_(log.notes.ilike(pattern), log.reference_number.ilike(pattern)))
    return conditions


def _filtered(**filters):
    return select(InventoryTransactionLog).where(*_conditions(**filters))


def list_transactions(
    db: Session,
    *,
    limit: int = 100,
    offset: int = 0,
    **filters,
) -> tuple[list[InventoryTransactionLog], int]:
    """Return a page of log rows (newest first) and the unpaged row count."""

    conditions = _conditions(**filters)
    total = db.execute(select(func.count(InventoryTransactionLog.id)).where(*conditions)).scalar_one()
    page = (
        select(InventoryTransactionLog)
        .where(*conditions)
        .order_by(desc(InventoryTransactionLog.transaction_date), desc(InventoryTransactionLog.id))
        .limit(limit)
        .offset(offset)
    )
    return db.execute(page).scalars().all(), int(total)


def get_transaction(db: Session, transaction_id: int) -> InventoryTransactionLog | None:
    return db.get(InventoryTransactionLog, transaction_id)


def material_transactions(db: Session, material_id: int) -> list[TransactionLogOut]:
    stmt = (
        _filtered(material_id=material_id)
        .order_by(asc(InventoryTransactionLog.transaction_date), asc(InventoryTransactionLog.id))
    )
    rows = db.execute(stmt).scalars().all()
    return [TransactionLogOut.model_validate(row, from_attributes=True) for row in rows]


def material_history(db: Session, material: Material) -> list[TransactionLogOut]:
    """Deduplicated history with the stock level after each entry, newest first."""

    logical = deduplicate_transactions(material_transactions(db, material.id))
    balanced = with_running_balance(logical, material.quantity or 0.0)
    return list(reversed(balanced))


def material_clean_view(db: Session, material: Material) -> list[TransactionLogOut]:
    """History with each edited purchase shown once, newest first."""

    return consolidate_purchase_updates(material_transactions(db, material.id))


def soft_delete_transaction(db: Session, entry: InventoryTransactionLog) -> InventoryTransactionLog:
    """Hide a log row from every view; the stock level is left untouched."""

    if entry.deleted_at:
        return entry
    entry.deleted_at = utcnow_iso()
    db.commit()
    db.refresh(entry)
    return entry


def soft_delete_material_transactions(db: Session, material_id: int) -> int:
    rows = db.execute(_filtered(material_id=material_id)).scalars().all()
    now = utcnow_iso()
    for row in rows:
        row.deleted_at = now
    db.commit()
    return len(rows)
