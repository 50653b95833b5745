from __future__ import annotations

from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..core.dates import compact_date


def next_document_number(db: Session, column, prefix: str, on_date: str) -> str:
    """Sequential per-day document numbers: ``{PREFIX}-{YYYYMMDD}-{NNN}``.

    Example: ``PUR-20240501-003``. The sequence continues from the highest
    number issued for the day, so deleting a document never frees its number
    for reuse by the next one.
    """

    stem = f"{prefix}-{compact_date(on_date)}-"
    latest = db.execute(
        select(column).where(column.like(stem + "%")).order_by(desc(column)).limit(1)
    ).scalar_one_or_none()
    seq = 0
    if latest:
        suffix = latest[len(stem):]
        seq = int(suffix) if suffix.isdigit() else 0
    return f"{stem}{seq + 1:03d}"
