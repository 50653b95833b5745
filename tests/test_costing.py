import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from app.services.costing import CostLine, allocate_costs, main_quantity


def test_transport_is_shared_by_alternate_quantity():
    allocation = allocate_costs(
        [
            CostLine(alt_quantity=10, alt_unit_price=5, gst_percentage=0),
            CostLine(alt_quantity=30, alt_unit_price=2, gst_percentage=0),
        ],
        transport_charge=40,
    )

    assert allocation.per_unit_transport_rate == pytest.approx(1.0)
    assert [line.transport_share for line in allocation.lines] == pytest.approx([10.0, 30.0])
    assert [line.base_amount for line in allocation.lines] == pytest.approx([50.0, 60.0])
    assert [line.line_total for line in allocation.lines] == pytest.approx([60.0, 90.0])
    assert allocation.subtotal == pytest.approx(150.0)
    assert allocation.total_amount == allocation.subtotal
    assert allocation.unallocated_transport == 0.0


def test_gst_is_charged_on_base_amount_only():
    allocation = allocate_costs(
        [CostLine(alt_quantity=4, alt_unit_price=25, gst_percentage=18)],
        transport_charge=20,
    )
    line = allocation.lines[0]

    assert line.base_amount == pytest.approx(100.0)
    assert line.gst_amount == pytest.approx(18.0)
    assert line.transport_share == pytest.approx(20.0)
    assert line.line_total == pytest.approx(138.0)
    # Unit price carries transport but not GST.
    assert line.unit_price == pytest.approx(30.0)


@pytest.mark.parametrize(
    "quantities, prices, gst, transport",
    [
        ([1, 2, 3], [10, 20, 30], [0, 5, 12], 17.5),
        ([0.333, 7.25], [99.99, 0.01], [28, 0], 1000),
        ([1000], [0], [0], 3.3),
    ],
)
def test_every_line_total_adds_up_and_transport_is_fully_spread(quantities, prices, gst, transport):
    lines = [
        CostLine(alt_quantity=q, alt_unit_price=p, gst_percentage=g)
        for q, p, g in zip(quantities, prices, gst)
    ]
    allocation = allocate_costs(lines, transport)

    for line in allocation.lines:
        assert line.line_total == line.base_amount + line.gst_amount + line.transport_share
    assert allocation.transport_allocated == pytest.approx(transport)
    assert allocation.subtotal == pytest.approx(
        allocation.base_total + allocation.gst_total + transport
    )


def test_conversion_rate_drives_main_quantity_and_unit_price():
    allocation = allocate_costs(
        [CostLine(alt_quantity=200, alt_unit_price=3, conversion_rate=50)],
        transport_charge=100,
    )
    line = allocation.lines[0]

    assert line.main_quantity == pytest.approx(4.0)
    assert line.unit_price == pytest.approx((600 + 100) / 4)


def test_main_quantity_ignores_missing_or_non_positive_rates():
    assert main_quantity(12, None) == 12
    assert main_quantity(12, 0) == 12
    assert main_quantity(12, -3) == 12
    assert main_quantity(12, 4) == 3


def test_no_lines_gives_zero_totals():
    allocation = allocate_costs([], transport_charge=0)

    assert allocation.lines == []
    assert allocation.subtotal == 0
    assert allocation.total_amount == 0


def test_transport_without_quantity_is_reported_unallocated(caplog):
    with caplog.at_level("WARNING", logger="app.services.costing"):
        allocation = allocate_costs(
            [CostLine(alt_quantity=0, alt_unit_price=10)],
            transport_charge=75,
        )

    assert allocation.per_unit_transport_rate == 0
    assert allocation.lines[0].transport_share == 0
    assert allocation.lines[0].unit_price == 0
    assert allocation.subtotal == 0
    assert allocation.unallocated_transport == pytest.approx(75.0)
    assert any(record.getMessage() == "costing.transport_unallocated" for record in caplog.records)
