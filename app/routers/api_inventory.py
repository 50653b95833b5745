from __future__ import annotations

import asyncio
import queue
from typing import AsyncGenerator

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ..crud.inventory import (
    adjust_stock,
    create_material,
    get_inventory_summary,
    get_material,
    list_low_stock,
    list_materials,
    update_material,
)
from ..db.session import get_db
from ..schemas.inventory import (
    InventoryChangeOut,
    InventoryChangePage,
    InventorySummaryItem,
    MaterialCreate,
    MaterialOut,
    MaterialUpdate,
    StockAdjustment,
    TransactionLogOut,
)
from ..services.change_feed import change_event, feed, heartbeat_event, reset_event

router = APIRouter(prefix="/api/v1/inventory", tags=["inventory"])

STREAM_POLL_SECONDS = 15


def _material_or_404(db: Session, material_id: int):
    material = get_material(db, material_id)
    if not material:
        raise HTTPException(status_code=404, detail="Material not found")
    return material


@router.get("/materials", response_model=list[MaterialOut])
def api_list_materials(
    search: str | None = Query(default=None),
    limit: int = Query(default=200, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return list_materials(db, search=search, limit=limit, offset=offset)


@router.post("/materials", response_model=MaterialOut, status_code=201)
def api_create_material(payload: MaterialCreate, db: Session = Depends(get_db)):
    try:
        return create_material(db, payload.model_dump())
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.get("/materials/{material_id}", response_model=MaterialOut)
def api_get_material(material_id: int, db: Session = Depends(get_db)):
    return _material_or_404(db, material_id)


@router.patch("/materials/{material_id}", response_model=MaterialOut)
def api_update_material(material_id: int, payload: MaterialUpdate, db: Session = Depends(get_db)):
    material = _material_or_404(db, material_id)
    try:
        return update_material(db, material, payload.model_dump(exclude_unset=True))
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.post("/materials/{material_id}/adjust", response_model=TransactionLogOut, status_code=201)
def api_adjust_stock(material_id: int, payload: StockAdjustment, db: Session = Depends(get_db)):
    material = _material_or_404(db, material_id)
    try:
        return adjust_stock(db, material, payload.change, payload.note)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.get("/summary", response_model=list[InventorySummaryItem])
def api_inventory_summary(db: Session = Depends(get_db)):
    return get_inventory_summary(db)


@router.get("/low-stock", response_model=list[MaterialOut])
def api_low_stock(db: Session = Depends(get_db)):
    return list_low_stock(db)


@router.get("/changes", response_model=InventoryChangePage)
def api_inventory_changes(after: int = Query(default=0, ge=0)):
    changes, truncated = feed.replay_since(after)
    return InventoryChangePage(
        changes=[InventoryChangeOut.model_validate(change, from_attributes=True) for change in changes],
        last_id=feed.last_id,
        reset=truncated,
    )


async def _change_stream(request: Request, after: int | None) -> AsyncGenerator[str, None]:
    q = feed.subscribe()
    try:
        if after is not None:
            replay, truncated = feed.replay_since(after)
            if truncated:
                yield reset_event(after, feed.last_id)
            for change in replay:
                yield change_event(change)
        while True:
            if await request.is_disconnected():
                break
            try:
                change = await asyncio.to_thread(q.get, True, STREAM_POLL_SECONDS)
                yield change_event(change)
            except queue.Empty:
                yield heartbeat_event(feed.last_id)
    finally:
        feed.unsubscribe(q)


@router.get("/changes/stream")
async def api_inventory_change_stream(request: Request, after: int | None = Query(default=None, ge=0)):
    last_event_id = request.headers.get("last-event-id")
    if after is None and last_event_id and last_event_id.isdigit():
        after = int(last_event_id)
    return StreamingResponse(
        _change_stream(request, after),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )
