"""Dispatching an order in one or more delivery batches."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.dates import today_iso, utcnow_iso
from ..models.order import BATCH_STATUSES, DispatchBatch, Order, OrderDispatch

logger = logging.getLogger(__name__)


def split_into_batches(num_batches: int, total_quantity: int, delivery_date: str) -> list[dict]:
    """Divide ``total_quantity`` into ``num_batches`` near-equal whole batches.

    Sizes differ by at most one; the earlier batches take the remainder.
    ``split_into_batches(3, 10, d)`` gives quantities ``[4, 3, 3]``.
    """

    num_batches = int(num_batches)
    total_quantity = int(total_quantity)
    if num_batches < 1:
        raise ValueError("num_batches must be at least 1")
    if total_quantity < num_batches:
        raise ValueError("total_quantity must be at least one per batch")
    base, remainder = divmod(total_quantity, num_batches)
    return [
        {
            "batch_number": index + 1,
            "quantity": base + (1 if index < remainder else 0),
            "delivery_date": delivery_date,
            "notes": None,
        }
        for index in range(num_batches)
    ]


def validate_dispatch(order: Order, payload: dict) -> list[dict]:
    """Reject an incomplete dispatch before anything is written."""

    if not (payload.get("recipient_name") or "").strip():
        raise ValueError("recipient_name is required")
    if not (payload.get("delivery_address") or "").strip():
        raise ValueError("delivery_address is required")
    batches = list(payload.get("batches") or [])
    if not batches:
        raise ValueError("at least one batch is required")
    for index, batch in enumerate(batches, start=1):
        if not batch.get("delivery_date"):
            raise ValueError(f"batch {index}: delivery_date is required")
        if int(batch.get("quantity") or 0) <= 0:
            raise ValueError(f"batch {index}: quantity must be greater than zero")
    total = sum(int(batch["quantity"]) for batch in batches)
    if total != order.quantity:
        raise ValueError(f"batch quantities add up to {total} but the order is for {order.quantity}")
    return batches


def create_dispatch(db: Session, order: Order, payload: dict) -> OrderDispatch:
    batches = validate_dispatch(order, payload)
    dispatch = OrderDispatch(
        order_id=order.id,
        recipient_name=payload["recipient_name"].strip(),
        delivery_address=payload["delivery_address"].strip(),
        tracking_number=(payload.get("tracking_number") or None),
        notes=(payload.get("notes") or None),
        dispatch_date=payload.get("dispatch_date") or today_iso(settings.TZ),
        created_at=utcnow_iso(),
    )
    dispatch.batches = [
        DispatchBatch(
            batch_number=index,
            quantity=int(batch["quantity"]),
            delivery_date=batch["delivery_date"],
            notes=batch.get("notes") or None,
            status="pending",
        )
        for index, batch in enumerate(batches, start=1)
    ]
    try:
        db.add(dispatch)
        order.status = "dispatched"
        order.updated_at = utcnow_iso()
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(dispatch)
    logger.info(
        "dispatch.created",
        extra={
            "extra_data": {
                "order_id": order.id,
                "dispatch_id": dispatch.id,
                "batch_count": len(dispatch.batches),
            }
        },
    )
    return dispatch


def list_dispatches(db: Session, order_id: int | None = None) -> list[OrderDispatch]:
    stmt = select(OrderDispatch)
    if order_id:
        stmt = stmt.where(OrderDispatch.order_id == order_id)
    return db.execute(stmt.order_by(OrderDispatch.id)).scalars().all()


def get_dispatch(db: Session, dispatch_id: int) -> OrderDispatch | None:
    return db.get(OrderDispatch, dispatch_id)


def get_batch(db: Session, batch_id: int) -> DispatchBatch | None:
    return db.get(DispatchBatch, batch_id)


def update_batch(db: Session, batch: DispatchBatch, payload: dict) -> DispatchBatch:
    if payload.get("quantity") is not None and int(payload["quantity"]) <= 0:
        raise ValueError("quantity must be greater than zero")
    if payload.get("status") is not None and payload["status"] not in BATCH_STATUSES:
        raise ValueError(f"status must be one of {', '.join(BATCH_STATUSES)}")
    if "delivery_date" in payload and not payload.get("delivery_date"):
        raise ValueError("delivery_date is required")
    if payload.get("quantity") is not None:
        batch.quantity = int(payload["quantity"])
    for field in ("delivery_date", "notes", "status"):
        if payload.get(field) is not None:
            setattr(batch, field, payload[field])
    db.commit()
    db.refresh(batch)
    return batch


def delete_batch(db: Session, batch: DispatchBatch) -> OrderDispatch:
    """Remove a batch and renumber the rest ``1..n``; the last one stays."""

    dispatch = batch.dispatch
    if len(dispatch.batches) <= 1:
        raise ValueError("a dispatch must keep at least one batch")
    dispatch.batches.remove(batch)
    for number, remaining in enumerate(sorted(dispatch.batches, key=lambda b: b.batch_number), start=1):
        remaining.batch_number = number
    db.commit()
    db.refresh(dispatch)
    return dispatch
