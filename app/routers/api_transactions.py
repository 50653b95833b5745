from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..crud.inventory import get_material
from ..crud.transactions import (
    get_transaction,
    list_transactions,
    material_clean_view,
    material_history,
    soft_delete_material_transactions,
    soft_delete_transaction,
)
from ..db.session import get_db
from ..schemas.inventory import TransactionLogOut, TransactionPage

router = APIRouter(prefix="/api/v1/transactions", tags=["transactions"])


def _material_or_404(db: Session, material_id: int):
    material = get_material(db, material_id)
    if not material:
        raise HTTPException(status_code=404, detail="Material not found")
    return material


@router.get("", response_model=TransactionPage)
def api_list_transactions(
    material_id: int | None = Query(default=None),
    transaction_type: str | None = Query(default=None),
    reference_type: str | None = Query(default=None),
    start_date: str | None = Query(default=None),
    end_date: str | None = Query(default=None),
    search: str | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    rows, total = list_transactions(
        db,
        limit=limit,
        offset=offset,
        material_id=material_id,
        transaction_type=transaction_type,
        reference_type=reference_type,
        start_date=start_date,
        end_date=end_date,
        search=search,
    )
    return TransactionPage(
        items=[TransactionLogOut.model_validate(row, from_attributes=True) for row in rows],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/materials/{material_id}/history", response_model=list[TransactionLogOut])
def api_material_history(material_id: int, db: Session = Depends(get_db)):
    return material_history(db, _material_or_404(db, material_id))


@router.get("/materials/{material_id}/clean", response_model=list[TransactionLogOut])
def api_material_clean_view(material_id: int, db: Session = Depends(get_db)):
    return material_clean_view(db, _material_or_404(db, material_id))


@router.delete("/materials/{material_id}")
def api_delete_material_transactions(material_id: int, db: Session = Depends(get_db)):
    material = _material_or_404(db, material_id)
    return {"status": "deleted", "count": soft_delete_material_transactions(db, material.id)}


@router.get("/{transaction_id}", response_model=TransactionLogOut)
def api_get_transaction(transaction_id: int, db: Session = Depends(get_db)):
    entry = get_transaction(db, transaction_id)
    if not entry or entry.deleted_at:
        raise HTTPException(status_code=404, detail="Not found")
    return entry


@router.delete("/{transaction_id}")
def api_delete_transaction(transaction_id: int, db: Session = Depends(get_db)):
    entry = get_transaction(db, transaction_id)
    if not entry or entry.deleted_at:
        raise HTTPException(status_code=404, detail="Not found")
    soft_delete_transaction(db, entry)
    return {"status": "deleted"}
