"""Materials held in stock and the log of every change to their quantity."""

from __future__ import annotations

from sqlalchemy import Column, Float, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from ..db.session import Base
from .party import Supplier


class Material(Base):
    """A raw material (fabric, handle, thread...) tracked in the main unit.

    ``conversion_rate`` relates the alternate purchasing unit to the main
    unit: ``main_quantity = alt_quantity / conversion_rate``.
    """

    __tablename__ = "inventory"

    id = Column(Integer, primary_key=True, index=True)
    material_name = Column(Text, nullable=False, unique=True, index=True)
    unit = Column(Text, nullable=False, default="unit")
    alt_unit = Column(Text, nullable=True)
    conversion_rate = Column(Float, nullable=True)
    quantity = Column(Float, nullable=False, default=0.0)
    purchase_rate = Column(Float, nullable=True)
    reorder_level = Column(Float, nullable=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    supplier = relationship(Supplier)

    @property
    def stock_value(self) -> float | None:
        if self.purchase_rate is None:
            return None
        return (self.quantity or 0.0) * self.purchase_rate

    @property
    def below_reorder_level(self) -> bool:
        if self.reorder_level is None:
            return False
        return (self.quantity or 0.0) <= self.reorder_level


class InventoryTransactionLog(Base):
    """One row per physical stock change.

    ``quantity`` is the signed delta; ``previous_quantity``/``new_quantity``
    capture the stock level around the change. Rows are never edited, only
    soft-deleted through ``deleted_at``.
    """

    __tablename__ = "inventory_transaction_log"

    id = Column(Integer, primary_key=True, index=True)
    material_id = Column(Integer, ForeignKey("inventory.id"), nullable=False, index=True)
    transaction_type = Column(Text, nullable=False)
    quantity = Column(Float, nullable=False)
    previous_quantity = Column(Float, nullable=False)
    new_quantity = Column(Float, nullable=False)
    transaction_date = Column(Text, nullable=False, index=True)
    reference_type = Column(Text, nullable=True)
    reference_id = Column(Text, nullable=True, index=True)
    reference_number = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False)
    deleted_at = Column(Text, nullable=True)

    material = relationship("Material", lazy="joined")

    @property
    def material_name(self) -> str | None:
        return self.material.material_name if self.material else None

    @property
    def unit(self) -> str | None:
        return self.material.unit if self.material else None


__all__ = ["Material", "InventoryTransactionLog"]
