"""Master records for the businesses we buy from and sell to."""

from __future__ import annotations

from sqlalchemy import Column, Integer, Text

from ..db.session import Base

PARTY_STATUSES = ("active", "inactive")


class Supplier(Base):
    """A vendor of raw materials; purchases and materials may point at one."""

    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False, unique=True, index=True)
    contact_person = Column(Text, nullable=True)
    phone = Column(Text, nullable=True)
    email = Column(Text, nullable=True)
    address = Column(Text, nullable=True)
    materials_provided = Column(Text, nullable=True)
    payment_terms = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default="active")
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)


class Company(Base):
    """A customer placing bag orders."""

    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False, unique=True, index=True)
    contact_person = Column(Text, nullable=True)
    phone = Column(Text, nullable=True)
    email = Column(Text, nullable=True)
    address = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default="active")
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)


__all__ = ["PARTY_STATUSES", "Company", "Supplier"]
