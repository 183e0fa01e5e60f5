"""SQLAlchemy ORM models read by the insights engine.

This module defines the schema for:
- Reference data (Stores, Products, Employees)
- Fact tables (Inventory levels, Invoices and their line items, Mechanic labor)

The engine only reads these tables. Inventory is written by the inventory
sync, invoices by the CSV import.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# =============================================================================
# Reference Tables
# =============================================================================


class Store(Base):
    """Retail store / service location."""

    __tablename__ = "stores"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    code: Mapped[str] = mapped_column(String(20), unique=True)  # POS location code
    name: Mapped[str] = mapped_column(String(100))


class Product(Base):
    """Tire or part as known to the point-of-sale catalog."""

    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    sku: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)
    manufacturer_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    description: Mapped[str | None] = mapped_column(String(200), nullable=True)
    brand: Mapped[str | None] = mapped_column(String(100), nullable=True)
    pattern: Mapped[str | None] = mapped_column(String(100), nullable=True)
    size: Mapped[str | None] = mapped_column(String(50), nullable=True)
    type: Mapped[str] = mapped_column(String(30), default="OTHER")  # PASSENGER | LIGHT_TRUCK | ...
    quality: Mapped[str] = mapped_column(String(20), default="UNKNOWN")  # PREMIUM | STANDARD | ...
    is_tire: Mapped[bool] = mapped_column(Boolean, default=True)
    unit_price: Mapped[float] = mapped_column(Float, default=0.0)


employee_stores = Table(
    "employee_stores",
    Base.metadata,
    Column("employee_id", ForeignKey("employees.id", ondelete="CASCADE"), primary_key=True),
    Column("store_id", ForeignKey("stores.id", ondelete="CASCADE"), primary_key=True),
)


class Employee(Base):
    """Store employee; mechanics bill labor on invoices."""

    __tablename__ = "employees"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    first_name: Mapped[str] = mapped_column(String(50))
    last_name: Mapped[str] = mapped_column(String(50))
    is_mechanic: Mapped[bool] = mapped_column(Boolean, default=False)
    status: Mapped[str] = mapped_column(String(20), default="ACTIVE")  # ACTIVE | INACTIVE

    stores: Mapped[list[Store]] = relationship(secondary=employee_stores)


# =============================================================================
# Fact Tables
# =============================================================================


class InventoryLevel(Base):
    """Current on-hand quantity of a product at a store."""

    __tablename__ = "inventory_levels"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    product_id: Mapped[str] = mapped_column(ForeignKey("products.id", ondelete="CASCADE"), index=True)
    store_id: Mapped[str] = mapped_column(ForeignKey("stores.id", ondelete="CASCADE"), index=True)
    quantity: Mapped[int] = mapped_column(Integer, default=0)

    __table_args__ = (UniqueConstraint("product_id", "store_id", name="uq_inventory_product_store"),)


class Invoice(Base):
    """Point-of-sale invoice header."""

    __tablename__ = "invoices"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    invoice_number: Mapped[str] = mapped_column(String(50), unique=True)
    store_id: Mapped[str] = mapped_column(ForeignKey("stores.id", ondelete="RESTRICT"), index=True)
    invoice_date: Mapped[date] = mapped_column(Date, index=True)
    status: Mapped[str] = mapped_column(String(20), default="ACTIVE")  # ACTIVE | VOIDED

    __table_args__ = (Index("idx_invoice_store_date", "store_id", "invoice_date"),)


class InvoiceLineItem(Base):
    """Single invoice line: a sale of a product, service or part."""

    __tablename__ = "invoice_line_items"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    invoice_id: Mapped[int] = mapped_column(ForeignKey("invoices.id", ondelete="CASCADE"), index=True)
    product_id: Mapped[str | None] = mapped_column(
        ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True
    )
    quantity: Mapped[float] = mapped_column(Float, default=0.0)
    category: Mapped[str | None] = mapped_column(String(30), nullable=True)  # TIRES | SERVICES | ...
    description: Mapped[str | None] = mapped_column(String(200), nullable=True)
    product_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    line_total: Mapped[float] = mapped_column(Float, default=0.0)
    gross_profit: Mapped[float] = mapped_column(Float, default=0.0)


class MechanicLabor(Base):
    """Labor billed by a mechanic on an invoice."""

    __tablename__ = "mechanic_labor"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    invoice_number: Mapped[str] = mapped_column(String(50), index=True)
    mechanic_name: Mapped[str] = mapped_column(String(100), index=True)  # "FIRST LAST"
    category: Mapped[str] = mapped_column(String(100))
    quantity: Mapped[float] = mapped_column(Float, default=0.0)
    labor: Mapped[float] = mapped_column(Float, default=0.0)
