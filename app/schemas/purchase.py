from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

PurchaseStatus = Literal["pending", "completed", "cancelled"]


class PurchaseLineIn(BaseModel):
    material_id: int
    alt_quantity: float = Field(gt=0)
    alt_unit_price: float = Field(ge=0)
    gst_percentage: float = Field(default=0.0, ge=0)
    actual_meter: Optional[float] = Field(default=None, ge=0)


class PurchaseCreate(BaseModel):
    supplier_id: Optional[int] = None
    supplier_name: Optional[str] = None
    purchase_date: Optional[str] = None
    invoice_number: Optional[str] = None
    notes: Optional[str] = None
    status: PurchaseStatus = "pending"
    transport_charge: float = Field(default=0.0, ge=0)
    items: list[PurchaseLineIn] = Field(min_length=1)


class PurchaseUpdate(BaseModel):
    supplier_id: Optional[int] = None
    supplier_name: Optional[str] = None
    purchase_date: Optional[str] = None
    invoice_number: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[PurchaseStatus] = None
    transport_charge: Optional[float] = Field(default=None, ge=0)
    items: Optional[list[PurchaseLineIn]] = Field(default=None, min_length=1)


class PurchaseStatusChange(BaseModel):
    status: PurchaseStatus


class PurchaseItemOut(BaseModel):
    id: int
    material_id: int
    material_name: Optional[str] = None
    quantity: float
    alt_quantity: float
    alt_unit_price: float
    gst_percentage: float
    gst_amount: float
    base_amount: float
    transport_share: float
    unit_price: float
    line_total: float
    actual_meter: Optional[float] = None
    inventory_quantity: float

    class Config:
        from_attributes = True


class PurchaseOut(BaseModel):
    id: int
    purchase_number: str
    supplier_id: Optional[int] = None
    supplier_name: str
    purchase_date: str
    invoice_number: Optional[str] = None
    notes: Optional[str] = None
    status: str
    transport_charge: float
    subtotal: float
    total_amount: float
    gst_total: float
    created_at: str
    updated_at: str
    items: list[PurchaseItemOut] = Field(default_factory=list)

    class Config:
        from_attributes = True


class CostPreviewLine(BaseModel):
    alt_quantity: float = Field(ge=0)
    alt_unit_price: float = Field(ge=0)
    gst_percentage: float = Field(default=0.0, ge=0)
    conversion_rate: Optional[float] = None
    material_id: Optional[int] = None


class CostPreviewRequest(BaseModel):
    transport_charge: float = Field(default=0.0, ge=0)
    items: list[CostPreviewLine] = Field(default_factory=list)


class AllocatedLineOut(BaseModel):
    material_id: Optional[int] = None
    alt_quantity: float
    alt_unit_price: float
    gst_percentage: float
    main_quantity: float
    base_amount: float
    gst_amount: float
    transport_share: float
    unit_price: float
    line_total: float

    class Config:
        from_attributes = True


class CostPreviewOut(BaseModel):
    transport_charge: float
    per_unit_transport_rate: float
    subtotal: float
    total_amount: float
    unallocated_transport: float
    lines: list[AllocatedLineOut]

    class Config:
        from_attributes = True
