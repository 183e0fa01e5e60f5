"""Pydantic schemas for API responses."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field


class ProductOut(BaseModel):
    """Product reference data."""

    id: str
    name: str
    type: str
    sku: str | None = None
    manufacturer_code: str | None = None
    brand: str | None = None
    pattern: str | None = None
    size: str | None = None

    class Config:
        from_attributes = True


# Inventory risk schemas
class RiskItem(BaseModel):
    """Stock risk of one product at one store."""

    product: ProductOut
    store_id: str
    store_name: str
    quantity: int
    daily_velocity: float = Field(..., description="Units per day over the lookback window")
    units_sold_in_window: float
    units_sold_prior_window: float
    last_sale_date: date | None = None
    min_stock_level: int
    days_of_supply: float
    days_out_of_stock: int
    suggested_order_qty: int
    status: str = Field(..., description="OK, LowStock, OutOfStock or Overstock")
    suggestion: str

    class Config:
        from_attributes = True


# Transfer schemas
class StoreStockOut(BaseModel):
    store_id: str
    store_name: str
    quantity: int
    status: str

    class Config:
        from_attributes = True


class HistoryPointOut(BaseModel):
    d: date
    quantity: float

    class Config:
        from_attributes = True


class TransferItem(BaseModel):
    """Scored cross-store transfer recommendation."""

    product: ProductOut
    source_store_id: str
    source_store_name: str
    target_store_id: str
    target_store_name: str
    quantity: int
    source_velocity: float
    target_velocity: float
    source_status: str
    target_status: str
    confidence_score: int = Field(..., ge=0, le=100)
    confidence_level: str = Field(..., description="High, Medium or Low")
    velocity_diff: float
    source_days_of_supply: float
    target_days_of_supply: float
    source_days_after_transfer: float
    target_days_after_transfer: float
    avg_install_qty: int
    min_stock_level: int
    reason: str
    rationale_hash: str
    all_stores_inventory: list[StoreStockOut]
    source_history: list[HistoryPointOut]
    target_history: list[HistoryPointOut]

    class Config:
        from_attributes = True


class TransferResponse(BaseModel):
    """Transfer recommendations of one run."""

    items: list[TransferItem]
    partial: bool = Field(False, description="True when the analysis budget ran out")
    unanalyzed_product_ids: list[str] = Field(default_factory=list)

    class Config:
        from_attributes = True


# Auxiliary analyzer schemas
class DeadStockOut(BaseModel):
    type: str
    product_id: str
    product_name: str
    sku: str | None = None
    manufacturer_code: str | None = None
    brand: str | None = None
    store_id: str
    store_name: str
    quantity: int
    value: float
    message: str

    class Config:
        from_attributes = True


class MarginAlertOut(BaseModel):
    type: str
    category: str | None = None
    current_margin: float
    target_margin: float
    revenue: float
    profit: float
    message: str

    class Config:
        from_attributes = True


class AttachmentRateOut(BaseModel):
    metric: str
    value: float
    unit: str
    total_tire_invoices: int
    invoices_with_alignment: int
    potential_revenue: float
    message: str

    class Config:
        from_attributes = True


class UtilizationOut(BaseModel):
    metric: str
    value: float
    unit: str
    tech_count: int
    total_billed_hours: float
    capacity_hours: float
    insight: str
    message: str

    class Config:
        from_attributes = True


class MonthlyPointOut(BaseModel):
    month: str
    quantity: float

    class Config:
        from_attributes = True


class TopTireOut(BaseModel):
    product_id: str
    product_name: str
    total_sold: float
    current_quantity: int
    days_of_supply: float
    rank: int
    history: list[MonthlyPointOut]

    class Config:
        from_attributes = True
