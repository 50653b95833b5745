from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..crud.parties import (
    create_supplier,
    delete_supplier,
    get_supplier,
    list_suppliers,
    supplier_purchases,
    update_supplier,
)
from ..db.session import get_db
from ..schemas.party import SupplierCreate, SupplierOut, SupplierUpdate
from ..schemas.purchase import PurchaseOut

router = APIRouter(prefix="/api/v1/suppliers", tags=["suppliers"])


def _supplier_or_404(db: Session, supplier_id: int):
    supplier = get_supplier(db, supplier_id)
    if not supplier:
        raise HTTPException(status_code=404, detail="Supplier not found")
    return supplier


@router.get("", response_model=list[SupplierOut])
def api_list_suppliers(
    search: str | None = Query(default=None),
    status: str | None = Query(default=None),
    limit: int = Query(default=200, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return list_suppliers(db, search=search, status=status, limit=limit, offset=offset)


@router.post("", response_model=SupplierOut, status_code=201)
def api_create_supplier(payload: SupplierCreate, db: Session = Depends(get_db)):
    try:
        return create_supplier(db, payload.model_dump())
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.get("/{supplier_id}", response_model=SupplierOut)
def api_get_supplier(supplier_id: int, db: Session = Depends(get_db)):
    return _supplier_or_404(db, supplier_id)


@router.patch("/{supplier_id}", response_model=SupplierOut)
def api_update_supplier(supplier_id: int, payload: SupplierUpdate, db: Session = Depends(get_db)):
    supplier = _supplier_or_404(db, supplier_id)
    try:
        return update_supplier(db, supplier, payload.model_dump(exclude_unset=True))
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.delete("/{supplier_id}")
def api_delete_supplier(supplier_id: int, db: Session = Depends(get_db)):
    delete_supplier(db, _supplier_or_404(db, supplier_id))
    return {"status": "deleted"}


@router.get("/{supplier_id}/purchases", response_model=list[PurchaseOut])
def api_supplier_purchases(supplier_id: int, db: Session = Depends(get_db)):
    return supplier_purchases(db, _supplier_or_404(db, supplier_id))
