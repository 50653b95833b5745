from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from ..crud.dispatch import (
    create_dispatch,
    delete_batch,
    get_batch,
    get_dispatch,
    list_dispatches,
    split_into_batches,
    update_batch,
)
from ..crud.orders import (
    create_order,
    delete_order,
    get_order,
    list_orders,
    order_consumption,
    record_consumption,
    update_order,
)
from ..db.session import get_db
from ..schemas.inventory import TransactionLogOut
from ..schemas.order import (
    BatchOut,
    BatchPlanOut,
    BatchPlanRequest,
    BatchUpdate,
    ConsumptionIn,
    DispatchCreate,
    DispatchOut,
    OrderCreate,
    OrderOut,
    OrderUpdate,
)
from ..services.documents import render_dispatch_receipt_pdf

router = APIRouter(prefix="/api/v1/orders", tags=["orders"])


def _order_or_404(db: Session, order_id: int):
    order = get_order(db, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


def _batch_or_404(db: Session, batch_id: int):
    batch = get_batch(db, batch_id)
    if not batch:
        raise HTTPException(status_code=404, detail="Batch not found")
    return batch


@router.get("", response_model=list[OrderOut])
def api_list_orders(
    status: str | None = Query(default=None),
    search: str | None = Query(default=None),
    company_id: int | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return list_orders(db, status=status, search=search, company_id=company_id, limit=limit, offset=offset)


@router.post("", response_model=OrderOut, status_code=201)
def api_create_order(payload: OrderCreate, db: Session = Depends(get_db)):
    try:
        return create_order(db, payload.model_dump())
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.get("/{order_id}", response_model=OrderOut)
def api_get_order(order_id: int, db: Session = Depends(get_db)):
    return _order_or_404(db, order_id)


@router.patch("/{order_id}", response_model=OrderOut)
def api_update_order(order_id: int, payload: OrderUpdate, db: Session = Depends(get_db)):
    order = _order_or_404(db, order_id)
    try:
        return update_order(db, order, payload.model_dump(exclude_unset=True))
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.delete("/{order_id}")
def api_delete_order(order_id: int, db: Session = Depends(get_db)):
    delete_order(db, _order_or_404(db, order_id))
    return {"status": "deleted"}


@router.get("/{order_id}/consumption", response_model=list[TransactionLogOut])
def api_order_consumption(order_id: int, db: Session = Depends(get_db)):
    return order_consumption(db, _order_or_404(db, order_id))


@router.post("/{order_id}/consumption", response_model=TransactionLogOut, status_code=201)
def api_record_consumption(order_id: int, payload: ConsumptionIn, db: Session = Depends(get_db)):
    order = _order_or_404(db, order_id)
    try:
        return record_consumption(db, order, payload.material_id, payload.quantity, payload.notes)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.post("/{order_id}/batch-plan", response_model=list[BatchPlanOut])
def api_plan_batches(order_id: int, payload: BatchPlanRequest, db: Session = Depends(get_db)):
    order = _order_or_404(db, order_id)
    try:
        return split_into_batches(payload.num_batches, payload.total_quantity or order.quantity, payload.delivery_date)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.get("/{order_id}/dispatches", response_model=list[DispatchOut])
def api_list_dispatches(order_id: int, db: Session = Depends(get_db)):
    order = _order_or_404(db, order_id)
    return list_dispatches(db, order_id=order.id)


@router.post("/{order_id}/dispatches", response_model=DispatchOut, status_code=201)
def api_create_dispatch(order_id: int, payload: DispatchCreate, db: Session = Depends(get_db)):
    order = _order_or_404(db, order_id)
    try:
        return create_dispatch(db, order, payload.model_dump())
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.patch("/batches/{batch_id}", response_model=BatchOut)
def api_update_batch(batch_id: int, payload: BatchUpdate, db: Session = Depends(get_db)):
    batch = _batch_or_404(db, batch_id)
    try:
        return update_batch(db, batch, payload.model_dump(exclude_unset=True))
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.delete("/batches/{batch_id}", response_model=DispatchOut)
def api_delete_batch(batch_id: int, db: Session = Depends(get_db)):
    batch = _batch_or_404(db, batch_id)
    try:
        return delete_batch(db, batch)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.get("/dispatches/{dispatch_id}/pdf")
def api_dispatch_receipt_pdf(dispatch_id: int, db: Session = Depends(get_db)) -> Response:
    dispatch = get_dispatch(db, dispatch_id)
    if not dispatch:
        raise HTTPException(status_code=404, detail="Dispatch not found")
    pdf_bytes = render_dispatch_receipt_pdf(dispatch.order, dispatch)
    filename = f"dispatch-{dispatch.order.order_number}-{dispatch.id}.pdf"
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    return Response(content=pdf_bytes, media_type="application/pdf", headers=headers)
