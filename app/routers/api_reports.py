from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..db.session import get_db
from ..schemas.report import InventoryValuation, MaterialConsumption, SupplierTotals
from ..services.reporting import consumption_by_material, inventory_valuation, purchases_by_supplier

router = APIRouter(prefix="/api/v1/reports", tags=["reports"])


@router.get("/inventory-valuation", response_model=InventoryValuation)
def api_inventory_valuation(db: Session = Depends(get_db)):
    return inventory_valuation(db)


@router.get("/purchases-by-supplier", response_model=list[SupplierTotals])
def api_purchases_by_supplier(
    start_date: str | None = Query(default=None),
    end_date: str | None = Query(default=None),
    db: Session = Depends(get_db),
):
    return purchases_by_supplier(db, start_date=start_date, end_date=end_date)


@router.get("/consumption", response_model=list[MaterialConsumption])
def api_consumption(
    start_date: str | None = Query(default=None),
    end_date: str | None = Query(default=None),
    db: Session = Depends(get_db),
):
    return consumption_by_material(db, start_date=start_date, end_date=end_date)
