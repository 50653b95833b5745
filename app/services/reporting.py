from __future__ import annotations

from collections import defaultdict
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models.inventory import InventoryTransactionLog, Material
from ..models.purchase import Purchase

TWOPLACES = Decimal("0.01")
QUANTITY_PLACES = Decimal("0.001")


def _to_decimal(value: Any) -> Decimal:
    """Best-effort conversion of incoming values to Decimal for currency math."""

    if isinstance(value, Decimal):
        return value
    if value is None:
        return Decimal("0")
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, str):
        cleaned = value.strip().replace(",", "")
        if not cleaned:
            return Decimal("0")
        try:
            return Decimal(cleaned)
        except InvalidOperation:
            return Decimal("0")
    return Decimal("0")


def _quantize_currency(value: Decimal) -> Decimal:
    return value.quantize(TWOPLACES, rounding=ROUND_HALF_UP) if value else Decimal("0.00")


def _quantize_quantity(value: Decimal) -> Decimal:
    return value.quantize(QUANTITY_PLACES, rounding=ROUND_HALF_UP) if value else Decimal("0")


def _in_range(column, start_date: str | None, end_date: str | None) -> list:
    conditions = []
    if start_date:
        conditions.append(column >= start_date)
    if end_date:
        conditions.append(column <= (end_date + "T23:59:59Z" if len(end_date) == 10 else end_date))
    return conditions


def inventory_valuation(db: Session) -> Dict[str, Any]:
    """Stock on hand valued at each material's latest purchase rate."""

    materials = db.execute(select(Material).order_by(Material.material_name)).scalars().all()
    rows = []
    total = Decimal("0")
    unpriced = 0
    for material in materials:
        quantity = _to_decimal(material.quantity)
        rate = _to_decimal(material.purchase_rate)
        if material.purchase_rate is None:
            unpriced += 1
        value = _quantize_currency(quantity * rate)
        total += value
        rows.append(
            {
                "material_id": material.id,
                "material_name": material.material_name,
                "unit": material.unit,
                "quantity": _quantize_quantity(quantity),
                "purchase_rate": _quantize_currency(rate),
                "stock_value": value,
            }
        )
    return {
        "materials": rows,
        "total_value": _quantize_currency(total),
        "unpriced_materials": unpriced,
    }


def purchases_by_supplier(
    db: Session, start_date: str | None = None, end_date: str | None = None
) -> list[Dict[str, Any]]:
    """Totals of completed purchases per supplier, largest spend first."""

    stmt = select(Purchase).where(
        Purchase.status == "completed", *_in_range(Purchase.purchase_date, start_date, end_date)
    )
    purchases = db.execute(stmt).scalars().all()

    suppliers: Dict[str, Dict[str, Any]] = defaultdict(
        lambda: {
            "purchase_count": 0,
            "subtotal": Decimal("0"),
            "gst_total": Decimal("0"),
            "transport_total": Decimal("0"),
        }
    )
    for purchase in purchases:
        entry = suppliers[purchase.supplier_name.strip()]
        entry["purchase_count"] += 1
        entry["subtotal"] += _to_decimal(purchase.subtotal)
        entry["gst_total"] += _to_decimal(purchase.gst_total)
        entry["transport_total"] += _to_decimal(purchase.transport_charge)

    report = [
        {
            "supplier_name": name,
            "purchase_count": entry["purchase_count"],
            "subtotal": _quantize_currency(entry["subtotal"]),
            "gst_total": _quantize_currency(entry["gst_total"]),
            "transport_total": _quantize_currency(entry["transport_total"]),
        }
        for name, entry in suppliers.items()
    ]
    report.sort(key=lambda row: (-row["subtotal"], row["supplier_name"].lower()))
    return report


def consumption_by_material(
    db: Session, start_date: str | None = None, end_date: str | None = None
) -> list[Dict[str, Any]]:
    """Quantity consumed by orders per material, with its value at current rates."""

    stmt = (
        select(InventoryTransactionLog)
        .where(
            InventoryTransactionLog.transaction_type == "consumption",
            InventoryTransactionLog.deleted_at.is_(None),
            *_in_range(InventoryTransactionLog.transaction_date, start_date, end_date),
        )
    )
    entries = db.execute(stmt).scalars().all()

    totals: Dict[int, Dict[str, Any]] = {}
    for entry in entries:
        material = entry.material
        row = totals.setdefault(
            entry.material_id,
            {
                "material_id": entry.material_id,
                "material_name": material.material_name if material else None,
                "unit": material.unit if material else None,
                "quantity": Decimal("0"),
                "rate": _to_decimal(material.purchase_rate if material else None),
                "orders": set(),
            },
        )
        row["quantity"] += abs(_to_decimal(entry.quantity))
        if entry.reference_id:
            row["orders"].add(entry.reference_id)

    report = []
    for row in totals.values():
        report.append(
            {
                "material_id": row["material_id"],
                "material_name": row["material_name"],
                "unit": row["unit"],
                "quantity": _quantize_quantity(row["quantity"]),
                "order_count": len(row["orders"]),
                "value": _quantize_currency(row["quantity"] * row["rate"]),
            }
        )
    report.sort(key=lambda row: (-row["quantity"], row["material_name"] or ""))
    return report


__all__ = ["consumption_by_material", "inventory_valuation", "purchases_by_supplier"]
