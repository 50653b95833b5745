"""SQLAlchemy models for customer orders and their dispatches."""

from __future__ import annotations

from sqlalchemy import Column, Float, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from ..db.session import Base
from .party import Company

ORDER_STATUSES = ("pending", "in_production", "dispatched", "completed", "cancelled")
BATCH_STATUSES = ("pending", "dispatched", "delivered")


class Order(Base):
    """A customer order for a quantity of finished bags."""

    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(Text, nullable=False, unique=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="SET NULL"), nullable=True, index=True)
    company_name = Column(Text, nullable=False)
    product_name = Column(Text, nullable=True)
    quantity = Column(Integer, nullable=False)
    rate = Column(Float, nullable=True)
    status = Column(Text, nullable=False, default="pending")
    order_date = Column(Text, nullable=False)
    delivery_date = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    company = relationship(Company)
    dispatches = relationship(
        "OrderDispatch",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderDispatch.id",
    )

    @property
    def order_value(self) -> float | None:
        if self.rate is None:
            return None
        return self.rate * self.quantity


class OrderDispatch(Base):
    __tablename__ = "order_dispatches"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    recipient_name = Column(Text, nullable=False)
    delivery_address = Column(Text, nullable=False)
    tracking_number = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    dispatch_date = Column(Text, nullable=False)
    created_at = Column(Text, nullable=False)

    order = relationship("Order", back_populates="dispatches")
    batches = relationship(
        "DispatchBatch",
        back_populates="dispatch",
        cascade="all, delete-orphan",
        order_by="DispatchBatch.batch_number",
    )

    @property
    def total_quantity(self) -> int:
        return sum(batch.quantity for batch in self.batches)


class DispatchBatch(Base):
    __tablename__ = "dispatch_batches"

    id = Column(Integer, primary_key=True, index=True)
    order_dispatch_id = Column(
        Integer, ForeignKey("order_dispatches.id", ondelete="CASCADE"), nullable=False, index=True
    )
    batch_number = Column(Integer, nullable=False)
    quantity = Column(Integer, nullable=False)
    delivery_date = Column(Text, nullable=False)
    notes = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default="pending")

    dispatch = relationship("OrderDispatch", back_populates="batches")


__all__ = ["ORDER_STATUSES", "BATCH_STATUSES", "Order", "OrderDispatch", "DispatchBatch"]
