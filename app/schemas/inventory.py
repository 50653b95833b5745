from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, model_validator


class MaterialBase(BaseModel):
    material_name: str
    unit: str = "unit"
    alt_unit: Optional[str] = None
    conversion_rate: Optional[float] = Field(default=None, gt=0)
    purchase_rate: Optional[float] = Field(default=None, ge=0)
    reorder_level: Optional[float] = Field(default=None, ge=0)
    supplier_id: Optional[int] = None


class MaterialCreate(MaterialBase):
    opening_stock: float = Field(default=0.0, ge=0)


class MaterialUpdate(BaseModel):
    material_name: Optional[str] = None
    unit: Optional[str] = None
    alt_unit: Optional[str] = None
    conversion_rate: Optional[float] = Field(default=None, gt=0)
    purchase_rate: Optional[float] = Field(default=None, ge=0)
    reorder_level: Optional[float] = Field(default=None, ge=0)
    supplier_id: Optional[int] = None


class MaterialOut(MaterialBase):
    id: int
    quantity: float
    stock_value: Optional[float] = None
    below_reorder_level: bool = False
    created_at: str
    updated_at: str

    class Config:
        from_attributes = True


class StockAdjustment(BaseModel):
    change: float
    note: Optional[str] = None

    @model_validator(mode="after")
    def validate_change(self) -> "StockAdjustment":
        if not self.change:
            raise ValueError("change must be non-zero")
        return self


class TransactionLogOut(BaseModel):
    """A transaction log row plus the fields derived when it is displayed."""

    id: int
    material_id: int
    transaction_type: str
    quantity: float
    previous_quantity: float
    new_quantity: float
    transaction_date: str
    reference_type: Optional[str] = None
    reference_id: Optional[str] = None
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    material_name: Optional[str] = None
    unit: Optional[str] = None

    balance_after: Optional[float] = None
    is_updated: bool = False
    original_transaction_date: Optional[str] = None
    update_count: int = 0

    class Config:
        from_attributes = True


class TransactionPage(BaseModel):
    items: list[TransactionLogOut]
    total: int
    limit: int
    offset: int


class InventorySummaryItem(BaseModel):
    material_id: int
    material_name: str
    unit: str
    quantity: float
    purchase_rate: Optional[float]
    stock_value: Optional[float]
    last_activity: Optional[str]


class InventoryChangeOut(BaseModel):
    id: int
    material_ids: list[int]
    source: str
    timestamp: str


class InventoryChangePage(BaseModel):
    changes: list[InventoryChangeOut]
    last_id: int
    reset: bool = False
