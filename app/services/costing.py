"""Purchase costing: spread one transport charge over the purchase lines.

Each line is priced in the supplier's alternate unit (``alt_quantity`` ×
``alt_unit_price``). The shipment-level transport charge is shared out in
proportion to ``alt_quantity``, GST is charged per line on the base amount,
and the resulting ``line_total`` already includes both, so a purchase's
subtotal is simply the sum of its line totals.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

logger = logging.getLogger(__name__)


@dataclass
class CostLine:
    alt_quantity: float
    alt_unit_price: float
    gst_percentage: float = 0.0
    conversion_rate: Optional[float] = None
    material_id: Any = None


@dataclass
class AllocatedLine:
    material_id: Any
    alt_quantity: float
    alt_unit_price: float
    gst_percentage: float
    main_quantity: float
    base_amount: float
    gst_amount: float
    transport_share: float
    unit_price: float
    line_total: float


@dataclass
class CostAllocation:
    transport_charge: float
    per_unit_transport_rate: float
    lines: list[AllocatedLine] = field(default_factory=list)
    subtotal: float = 0.0
    total_amount: float = 0.0
    unallocated_transport: float = 0.0

    @property
    def base_total(self) -> float:
        return sum(line.base_amount for line in self.lines)

    @property
    def gst_total(self) -> float:
        return sum(line.gst_amount for line in self.lines)

    @property
    def transport_allocated(self) -> float:
        return sum(line.transport_share for line in self.lines)


def _as_float(value: object) -> float:
    if value is None or value == "":
        return 0.0
    return float(value)


def safe_div(numerator: float, denominator: float) -> float:
    return float(numerator) / float(denominator) if denominator else 0.0


def main_quantity(alt_quantity: float, conversion_rate: Optional[float]) -> float:
    """Convert an alternate-unit quantity to the main inventory unit."""

    if conversion_rate and conversion_rate > 0:
        return alt_quantity / conversion_rate
    return alt_quantity


def allocate_line(line: CostLine, per_unit_transport_rate: float) -> AllocatedLine:
    alt_quantity = _as_float(line.alt_quantity)
    alt_unit_price = _as_float(line.alt_unit_price)
    gst_percentage = _as_float(line.gst_percentage)

    base_amount = alt_quantity * alt_unit_price
    gst_amount = base_amount * gst_percentage / 100
    transport_share = alt_quantity * per_unit_transport_rate
    quantity = main_quantity(alt_quantity, line.conversion_rate)
    unit_price = safe_div(base_amount + transport_share, quantity)
    return AllocatedLine(
        material_id=line.material_id,
        alt_quantity=alt_quantity,
        alt_unit_price=alt_unit_price,
        gst_percentage=gst_percentage,
        main_quantity=quantity,
        base_amount=base_amount,
        gst_amount=gst_amount,
        transport_share=transport_share,
        unit_price=unit_price,
        line_total=base_amount + gst_amount + transport_share,
    )


def allocate_costs(lines: Iterable[CostLine], transport_charge: float = 0.0) -> CostAllocation:
    """Price every line and apportion ``transport_charge`` by alternate quantity.

    When no line carries a positive quantity the charge cannot be spread; it
    is reported as ``unallocated_transport`` and left out of the subtotal.
    """

    items = list(lines)
    charge = _as_float(transport_charge)
    total_alt_qty = sum(_as_float(line.alt_quantity) for line in items)
    rate = safe_div(charge, total_alt_qty) if total_alt_qty > 0 else 0.0

    allocated = [allocate_line(line, rate) for line in items]
    subtotal = sum(line.line_total for line in allocated)
    unallocated = charge if charge and total_alt_qty <= 0 else 0.0
    if unallocated:
        logger.warning(
            "costing.transport_unallocated",
            extra={"extra_data": {"transport_charge": charge, "line_count": len(items)}},
        )
    return CostAllocation(
        transport_charge=charge,
        per_unit_transport_rate=rate,
        lines=allocated,
        subtotal=subtotal,
        total_amount=subtotal,
        unallocated_transport=unallocated,
    )


__all__ = [
    "AllocatedLine",
    "CostAllocation",
    "CostLine",
    "allocate_costs",
    "allocate_line",
    "main_quantity",
    "safe_div",
]
