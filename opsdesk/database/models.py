"""
Database Models

Mappings for the hosted Postgres tables the analytics routes read from.
The tables are owned and migrated by the backend service; only the
columns used by this service are mapped.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


class Store(Base):
    """Tenant storefront"""
    __tablename__ = "stores"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[Optional[str]] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class DeliveryCompany(Base):
    """Courier company fulfilling orders"""
    __tablename__ = "delivery_companies"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[Optional[str]] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class User(Base):
    """Platform user"""
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    email: Mapped[Optional[str]] = mapped_column(String(255))
    role: Mapped[Optional[str]] = mapped_column(String(50))
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), index=True)


class Order(Base):
    """
    Customer order

    ``status`` is free text in the source table; values outside the known
    lifecycle are kept as-is.
    """
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    total: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    status: Mapped[Optional[str]] = mapped_column(String(50))
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), index=True)
    created_by: Mapped[Optional[str]] = mapped_column(String(36), index=True)
    store_id: Mapped[Optional[str]] = mapped_column(ForeignKey("stores.id"))
    delivery_company_id: Mapped[Optional[str]] = mapped_column(ForeignKey("delivery_companies.id"))


class Campaign(Base):
    """Marketing campaign with delivery counters"""
    __tablename__ = "campaigns"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[Optional[str]] = mapped_column(String(255))
    status: Mapped[Optional[str]] = mapped_column(String(50))
    recipients_count: Mapped[Optional[int]] = mapped_column(Integer)
    opened_count: Mapped[Optional[int]] = mapped_column(Integer)
    clicked_count: Mapped[Optional[int]] = mapped_column(Integer)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), index=True)
