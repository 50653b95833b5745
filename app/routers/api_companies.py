from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..crud.parties import (
    company_orders,
    create_company,
    delete_company,
    get_company,
    list_companies,
    update_company,
)
from ..db.session import get_db
from ..schemas.order import OrderOut
from ..schemas.party import CompanyCreate, CompanyOut, CompanyUpdate

router = APIRouter(prefix="/api/v1/companies", tags=["companies"])


def _company_or_404(db: Session, company_id: int):
    company = get_company(db, company_id)
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")
    return company


@router.get("", response_model=list[CompanyOut])
def api_list_companies(
    search: str | None = Query(default=None),
    status: str | None = Query(default=None),
    limit: int = Query(default=200, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return list_companies(db, search=search, status=status, limit=limit, offset=offset)


@router.post("", response_model=CompanyOut, status_code=201)
def api_create_company(payload: CompanyCreate, db: Session = Depends(get_db)):
    try:
        return create_company(db, payload.model_dump())
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.get("/{company_id}", response_model=CompanyOut)
def api_get_company(company_id: int, db: Session = Depends(get_db)):
    return _company_or_404(db, company_id)


@router.patch("/{company_id}", response_model=CompanyOut)
def api_update_company(company_id: int, payload: CompanyUpdate, db: Session = Depends(get_db)):
    company = _company_or_404(db, company_id)
    try:
        return update_company(db, company, payload.model_dump(exclude_unset=True))
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.delete("/{company_id}")
def api_delete_company(
    company_id: int,
    delete_orders: bool = Query(default=False),
    db: Session = Depends(get_db),
):
    deleted = delete_company(db, _company_or_404(db, company_id), delete_orders=delete_orders)
    return {"status": "deleted", "orders_deleted": deleted}


@router.get("/{company_id}/orders", response_model=list[OrderOut])
def api_company_orders(company_id: int, db: Session = Depends(get_db)):
    return company_orders(db, _company_or_404(db, company_id))
