from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from ..crud.purchases import (
    create_purchase,
    delete_purchase,
    get_purchase,
    list_purchases,
    set_purchase_status,
    update_purchase,
)
from ..db.session import get_db
from ..schemas.purchase import (
    CostPreviewOut,
    CostPreviewRequest,
    PurchaseCreate,
    PurchaseOut,
    PurchaseStatusChange,
    PurchaseUpdate,
)
from ..services.costing import CostLine, allocate_costs
from ..services.documents import render_purchase_pdf

router = APIRouter(prefix="/api/v1/purchases", tags=["purchases"])


def _purchase_or_404(db: Session, purchase_id: int):
    purchase = get_purchase(db, purchase_id)
    if not purchase:
        raise HTTPException(status_code=404, detail="Purchase not found")
    return purchase


@router.get("", response_model=list[PurchaseOut])
def api_list_purchases(
    status: str | None = Query(default=None),
    supplier: str | None = Query(default=None),
    supplier_id: int | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return list_purchases(db, status=status, supplier=supplier, supplier_id=supplier_id, limit=limit, offset=offset)


@router.post("/preview", response_model=CostPreviewOut)
def api_preview_costs(payload: CostPreviewRequest):
    lines = [CostLine(**line.model_dump()) for line in payload.items]
    return CostPreviewOut.model_validate(allocate_costs(lines, payload.transport_charge), from_attributes=True)


@router.post("", response_model=PurchaseOut, status_code=201)
def api_create_purchase(payload: PurchaseCreate, db: Session = Depends(get_db)):
    try:
        return create_purchase(db, payload.model_dump())
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.get("/{purchase_id}", response_model=PurchaseOut)
def api_get_purchase(purchase_id: int, db: Session = Depends(get_db)):
    return _purchase_or_404(db, purchase_id)


@router.patch("/{purchase_id}", response_model=PurchaseOut)
def api_update_purchase(purchase_id: int, payload: PurchaseUpdate, db: Session = Depends(get_db)):
    purchase = _purchase_or_404(db, purchase_id)
    try:
        return update_purchase(db, purchase, payload.model_dump(exclude_unset=True))
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.post("/{purchase_id}/status", response_model=PurchaseOut)
def api_set_purchase_status(purchase_id: int, payload: PurchaseStatusChange, db: Session = Depends(get_db)):
    purchase = _purchase_or_404(db, purchase_id)
    try:
        return set_purchase_status(db, purchase, payload.status)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.delete("/{purchase_id}")
def api_delete_purchase(purchase_id: int, db: Session = Depends(get_db)):
    purchase = _purchase_or_404(db, purchase_id)
    delete_purchase(db, purchase)
    return {"status": "deleted"}


@router.get("/{purchase_id}/pdf")
def api_purchase_pdf(purchase_id: int, db: Session = Depends(get_db)) -> Response:
    purchase = _purchase_or_404(db, purchase_id)
    pdf_bytes = render_purchase_pdf(purchase)
    headers = {"Content-Disposition": f'attachment; filename="{purchase.purchase_number}.pdf"'}
    return Response(content=pdf_bytes, media_type="application/pdf", headers=headers)
