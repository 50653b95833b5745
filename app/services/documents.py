"""Printable PDF documents: purchase orders and dispatch receipts."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from ..core.config import settings
from ..models.order import Order, OrderDispatch
from ..models.purchase import Purchase

logger = logging.getLogger(__name__)

# Core PDF fonts only cover latin-1.
PDF_FONT_FAMILY = "Helvetica"
CURRENCY = "Rs."


def _latin1(value: object) -> str:
    text = "" if value is None else str(value)
    return text.encode("latin-1", "replace").decode("latin-1")


def _money(value: Optional[float]) -> str:
    return f"{CURRENCY} {float(value or 0.0):,.2f}"


def _qty(value: Optional[float]) -> str:
    return f"{float(value or 0.0):,.3f}".rstrip("0").rstrip(".")


def _new_document(title: str, subtitle: str) -> tuple[FPDF, float]:
    pdf = FPDF(unit="mm", format="A4")
    pdf.set_auto_page_break(auto=True, margin=15)
    pdf.add_page()
    width = pdf.w - pdf.l_margin - pdf.r_margin

    pdf.set_font(PDF_FONT_FAMILY, "B", 16)
    pdf.cell(width, 9, _latin1(settings.APP_NAME), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_font(PDF_FONT_FAMILY, "B", 13)
    pdf.cell(width, 7, _latin1(title), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_font(PDF_FONT_FAMILY, size=10)
    pdf.cell(width, 5, _latin1(subtitle), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    generated_at = datetime.now(timezone.utc).astimezone()
    pdf.cell(
        width,
        5,
        _latin1(f"Generated: {generated_at.strftime('%Y-%m-%d %H:%M %Z')}"),
        new_x=XPos.LMARGIN,
        new_y=YPos.NEXT,
    )
    pdf.ln(4)
    return pdf, width


def _details(pdf: FPDF, width: float, rows: Iterable[tuple[str, object]]) -> None:
    label_width = 45
    for label, value in rows:
        pdf.set_font(PDF_FONT_FAMILY, "B", 10)
        pdf.cell(label_width, 6, _latin1(label))
        pdf.set_font(PDF_FONT_FAMILY, size=10)
        pdf.multi_cell(
            width - label_width,
            6,
            _latin1(value if value not in (None, "") else "N/A"),
            new_x=XPos.LMARGIN,
            new_y=YPos.NEXT,
        )
    pdf.ln(3)


def _table(
    pdf: FPDF,
    headers: Sequence[str],
    widths: Sequence[float],
    rows: Iterable[Sequence[str]],
    footer: Optional[Sequence[str]] = None,
) -> None:
    pdf.set_font(PDF_FONT_FAMILY, "B", 9)
    pdf.set_fill_color(230, 230, 230)
    for header, cell_width in zip(headers, widths):
        pdf.cell(cell_width, 7, _latin1(header), border=1, fill=True)
    pdf.ln()
    pdf.set_font(PDF_FONT_FAMILY, size=9)
    for row in rows:
        for value, cell_width in zip(row, widths):
            pdf.cell(cell_width, 6, _latin1(value), border=1)
        pdf.ln()
    if footer:
        pdf.set_font(PDF_FONT_FAMILY, "B", 9)
        for value, cell_width in zip(footer, widths):
            pdf.cell(cell_width, 7, _latin1(value), border=1)
        pdf.ln()
    pdf.ln(4)


def _notes(pdf: FPDF, width: float, notes: Optional[str]) -> None:
    if not notes:
        return
    pdf.set_font(PDF_FONT_FAMILY, "B", 11)
    pdf.cell(width, 6, "Notes", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_font(PDF_FONT_FAMILY, size=10)
    pdf.multi_cell(width, 5, _latin1(notes), new_x=XPos.LMARGIN, new_y=YPos.NEXT)


def _output(pdf: FPDF) -> bytes:
    output = pdf.output()
    if isinstance(output, str):
        return output.encode("latin1")
    return bytes(output)


def render_purchase_pdf(purchase: Purchase) -> bytes:
    """Render a purchase with its priced lines and totals."""

    pdf, width = _new_document("Purchase Order", f"Purchase #{purchase.purchase_number}")
    _details(
        pdf,
        width,
        [
            ("Supplier:", purchase.supplier_name),
            ("Purchase date:", purchase.purchase_date),
            ("Invoice number:", purchase.invoice_number),
            ("Status:", (purchase.status or "").title()),
            ("Transport charge:", _money(purchase.transport_charge)),
        ],
    )

    rows = [
        (
            item.material_name or f"#{item.material_id}",
            _qty(item.inventory_quantity),
            _money(item.unit_price),
            f"{item.gst_percentage or 0:g}%",
            _money(item.transport_share),
            _money(item.line_total),
        )
        for item in purchase.items
    ]
    _table(
        pdf,
        ["Material", "Quantity", "Unit price", "GST", "Transport", "Total"],
        [50, 22, 30, 16, 28, 34],
        rows,
        footer=["", "", "", "", "Total", _money(purchase.total_amount)],
    )
    _notes(pdf, width, purchase.notes)
    logger.info(
        "documents.purchase_rendered",
        extra={"extra_data": {"purchase_id": purchase.id, "line_count": len(rows)}},
    )
    return _output(pdf)


def render_dispatch_receipt_pdf(order: Order, dispatch: OrderDispatch) -> bytes:
    """Render a delivery receipt listing each batch of a dispatch."""

    pdf, width = _new_document("Dispatch Receipt", f"Order #{order.order_number}")
    _details(
        pdf,
        width,
        [
            ("Company:", order.company_name),
            ("Product:", order.product_name),
            ("Recipient:", dispatch.recipient_name),
            ("Delivery address:", dispatch.delivery_address),
            ("Dispatch date:", dispatch.dispatch_date),
            ("Tracking number:", dispatch.tracking_number),
        ],
    )
    rows = [
        (f"Batch {batch.batch_number}", str(batch.quantity), batch.delivery_date, batch.status, batch.notes or "")
        for batch in dispatch.batches
    ]
    _table(
        pdf,
        ["Batch", "Quantity", "Delivery date", "Status", "Notes"],
        [25, 25, 35, 30, 65],
        rows,
        footer=["Total", str(dispatch.total_quantity), "", "", ""],
    )
    _notes(pdf, width, dispatch.notes)
    return _output(pdf)


__all__ = ["render_dispatch_receipt_pdf", "render_purchase_pdf"]
