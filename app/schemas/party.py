from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

PartyStatus = Literal["active", "inactive"]


class ContactFields(BaseModel):
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None


class SupplierCreate(ContactFields):
    name: str = Field(min_length=1)
    materials_provided: Optional[str] = None
    payment_terms: Optional[str] = None
    status: PartyStatus = "active"


class SupplierUpdate(ContactFields):
    name: Optional[str] = Field(default=None, min_length=1)
    materials_provided: Optional[str] = None
    payment_terms: Optional[str] = None
    status: Optional[PartyStatus] = None


class SupplierOut(ContactFields):
    id: int
    name: str
    materials_provided: Optional[str] = None
    payment_terms: Optional[str] = None
    status: str
    created_at: str
    updated_at: str

    class Config:
        from_attributes = True


class CompanyCreate(ContactFields):
    name: str = Field(min_length=1)
    status: PartyStatus = "active"


class CompanyUpdate(ContactFields):
    name: Optional[str] = Field(default=None, min_length=1)
    status: Optional[PartyStatus] = None


class CompanyOut(ContactFields):
    id: int
    name: str
    status: str
    created_at: str
    updated_at: str

    class Config:
        from_attributes = True
