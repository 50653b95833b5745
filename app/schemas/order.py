from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

OrderStatus = Literal["pending", "in_production", "dispatched", "completed", "cancelled"]
BatchStatus = Literal["pending", "dispatched", "delivered"]


class OrderCreate(BaseModel):
    company_id: Optional[int] = None
    company_name: Optional[str] = None
    product_name: Optional[str] = None
    quantity: int = Field(gt=0)
    rate: Optional[float] = Field(default=None, ge=0)
    status: OrderStatus = "pending"
    order_date: Optional[str] = None
    delivery_date: Optional[str] = None
    notes: Optional[str] = None


class OrderUpdate(BaseModel):
    company_id: Optional[int] = None
    company_name: Optional[str] = None
    product_name: Optional[str] = None
    quantity: Optional[int] = Field(default=None, gt=0)
    rate: Optional[float] = Field(default=None, ge=0)
    status: Optional[OrderStatus] = None
    order_date: Optional[str] = None
    delivery_date: Optional[str] = None
    notes: Optional[str] = None


class OrderOut(BaseModel):
    id: int
    order_number: str
    company_id: Optional[int] = None
    company_name: str
    product_name: Optional[str] = None
    quantity: int
    rate: Optional[float] = None
    order_value: Optional[float] = None
    status: str
    order_date: str
    delivery_date: Optional[str] = None
    notes: Optional[str] = None
    created_at: str
    updated_at: str

    class Config:
        from_attributes = True


class ConsumptionIn(BaseModel):
    material_id: int
    quantity: float = Field(gt=0)
    notes: Optional[str] = None


class BatchIn(BaseModel):
    quantity: int = Field(gt=0)
    delivery_date: str = Field(min_length=1)
    notes: Optional[str] = None


class BatchPlanRequest(BaseModel):
    num_batches: int = Field(ge=1)
    total_quantity: Optional[int] = Field(default=None, gt=0)
    delivery_date: str = Field(min_length=1)


class BatchPlanOut(BaseModel):
    batch_number: int
    quantity: int
    delivery_date: str
    notes: Optional[str] = None


class DispatchCreate(BaseModel):
    recipient_name: str
    delivery_address: str
    tracking_number: Optional[str] = None
    notes: Optional[str] = None
    dispatch_date: Optional[str] = None
    batches: list[BatchIn] = Field(min_length=1)


class BatchUpdate(BaseModel):
    quantity: Optional[int] = Field(default=None, gt=0)
    delivery_date: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[BatchStatus] = None


class BatchOut(BaseModel):
    id: int
    batch_number: int
    quantity: int
    delivery_date: str
    notes: Optional[str] = None
    status: str

    class Config:
        from_attributes = True


class DispatchOut(BaseModel):
    id: int
    order_id: int
    recipient_name: str
    delivery_address: str
    tracking_number: Optional[str] = None
    notes: Optional[str] = None
    dispatch_date: str
    created_at: str
    total_quantity: int
    batches: list[BatchOut] = Field(default_factory=list)

    class Config:
        from_attributes = True
