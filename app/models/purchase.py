"""SQLAlchemy models for supplier purchases and their line items."""

from __future__ import annotations

from sqlalchemy import Column, Float, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from ..db.session import Base
from .party import Supplier

PURCHASE_STATUSES = ("pending", "completed", "cancelled")


class Purchase(Base):
    """A supplier invoice. Stock only moves once the status is ``completed``."""

    __tablename__ = "purchases"

    id = Column(Integer, primary_key=True, index=True)
    purchase_number = Column(Text, nullable=False, unique=True, index=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.id", ondelete="SET NULL"), nullable=True, index=True)
    # Copied from the supplier record when linked; kept if the supplier is deleted.
    supplier_name = Column(Text, nullable=False)
    purchase_date = Column(Text, nullable=False)
    invoice_number = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default="pending")
    transport_charge = Column(Float, nullable=False, default=0.0)
    subtotal = Column(Float, nullable=False, default=0.0)
    total_amount = Column(Float, nullable=False, default=0.0)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    supplier = relationship(Supplier)
    items = relationship(
        "PurchaseItem",
        back_populates="purchase",
        cascade="all, delete-orphan",
        order_by="PurchaseItem.id",
    )

    @property
    def gst_total(self) -> float:
        return sum(item.gst_amount or 0.0 for item in self.items)


class PurchaseItem(Base):
    __tablename__ = "purchase_items"

    id = Column(Integer, primary_key=True, index=True)
    purchase_id = Column(Integer, ForeignKey("purchases.id", ondelete="CASCADE"), nullable=False, index=True)
    material_id = Column(Integer, ForeignKey("inventory.id"), nullable=False, index=True)
    quantity = Column(Float, nullable=False, default=0.0)
    alt_quantity = Column(Float, nullable=False, default=0.0)
    alt_unit_price = Column(Float, nullable=False, default=0.0)
    gst_percentage = Column(Float, nullable=False, default=0.0)
    gst_amount = Column(Float, nullable=False, default=0.0)
    base_amount = Column(Float, nullable=False, default=0.0)
    transport_share = Column(Float, nullable=False, default=0.0)
    unit_price = Column(Float, nullable=False, default=0.0)
    line_total = Column(Float, nullable=False, default=0.0)
    # Measured length received; overrides ``quantity`` for stock when > 0.
    actual_meter = Column(Float, nullable=True)

    purchase = relationship("Purchase", back_populates="items")
    material = relationship("Material", lazy="joined")

    @property
    def material_name(self) -> str | None:
        return self.material.material_name if self.material else None

    @property
    def inventory_quantity(self) -> float:
        if self.actual_meter and self.actual_meter > 0:
            return self.actual_meter
        return self.quantity or 0.0


__all__ = ["PURCHASE_STATUSES", "Purchase", "PurchaseItem"]
