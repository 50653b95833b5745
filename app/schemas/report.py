from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class ValuationRow(BaseModel):
    material_id: int
    material_name: str
    unit: str
    quantity: Decimal
    purchase_rate: Decimal
    stock_value: Decimal


class InventoryValuation(BaseModel):
    materials: list[ValuationRow]
    total_value: Decimal
    unpriced_materials: int


class SupplierTotals(BaseModel):
    supplier_name: str
    purchase_count: int
    subtotal: Decimal
    gst_total: Decimal
    transport_total: Decimal


class MaterialConsumption(BaseModel):
    material_id: int
    material_name: Optional[str] = None
    unit: Optional[str] = None
    quantity: Decimal
    order_count: int
    value: Decimal
