"""Inventory risk classification and reorder suggestions.

Business logic for calculating:
- Days of supply at current velocity
- Days a product has been out of stock
- Reorder quantity against an outlook horizon and a minimum stock floor
- Stock status (OK, LowStock, OutOfStock, Overstock)

NO DATA ACCESS - pure functions only. Data access happens in services layer.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from typing import Iterable

from tire_insights.domain.inventory.velocity import VelocityProfile

STATUS_OK = "OK"
STATUS_LOW_STOCK = "LowStock"
STATUS_OUT_OF_STOCK = "OutOfStock"
STATUS_OVERSTOCK = "Overstock"

INDEFINITE_SUPPLY_DAYS = 999.0

DEFAULT_OUTLOOK_DAYS = 30
OVERSTOCK_DAYS = 180
OVERSTOCK_MIN_QTY = 4


@dataclass(frozen=True)
class ProductInfo:
    """Reference data of a product, carried for display."""

    id: str
    name: str
    type: str = "OTHER"
    sku: str | None = None
    manufacturer_code: str | None = None
    brand: str | None = None
    pattern: str | None = None
    size: str | None = None


@dataclass(frozen=True)
class InventoryPosition:
    """On-hand quantity of a product at a store."""

    product: ProductInfo
    store_id: str
    store_name: str
    quantity: int


@dataclass(frozen=True)
class RiskAssessment:
    """Stock risk of one product at one store."""

    product: ProductInfo
    store_id: str
    store_name: str
    quantity: int
    daily_velocity: float
    units_sold_in_window: float
    units_sold_prior_window: float
    last_sale_date: date | None
    min_stock_level: int
    days_of_supply: float
    days_out_of_stock: int
    suggested_order_qty: int
    status: str
    suggestion: str

    @property
    def product_id(self) -> str:
        return self.product.id


def days_of_supply(quantity: int, velocity: float) -> float:
    """Runway in days at current velocity.

    Returns 999 for stock that is not selling and 0 when there is neither
    stock nor sales.

    Examples:
        >>> days_of_supply(20, 0.05)
        400.0
        >>> days_of_supply(5, 0.0)
        999.0
        >>> days_of_supply(0, 0.0)
        0.0

    """
    if velocity > 0:
        return quantity / velocity
    return INDEFINITE_SUPPLY_DAYS if quantity > 0 else 0.0


def days_out_of_stock(quantity: int, last_sale_date: date | None, as_of: date) -> int:
    """Whole days since the last sale of an out-of-stock item (0 otherwise)."""
    if quantity > 0 or last_sale_date is None:
        return 0
    return abs((as_of - last_sale_date).days)


def reorder_target(velocity: float, min_stock: int, outlook_days: int) -> int:
    """Stock needed to cover the outlook, never below the minimum stock level."""
    needed_for_outlook = math.ceil(velocity * outlook_days)
    return max(needed_for_outlook, min_stock)


def suggested_order(quantity: int, velocity: float, min_stock: int, outlook_days: int) -> int:
    """Units to reorder; single-unit orders are suppressed as noise.

    Only selling products get a suggestion.

    Examples:
        >>> suggested_order(0, 0.1, 4, 30)
        4
        >>> suggested_order(3, 0.1, 4, 30)
        0

    """
    if velocity <= 0:
        return 0
    order = reorder_target(velocity, min_stock, outlook_days) - quantity
    return order if order > 1 else 0


def classify_status(
    quantity: int,
    suggested: int,
    supply_days: float,
    *,
    overstock_days: int = OVERSTOCK_DAYS,
    overstock_min_qty: int = OVERSTOCK_MIN_QTY,
) -> str:
    """Stock status from the reorder suggestion and runway."""
    if suggested > 0:
        return STATUS_OUT_OF_STOCK if quantity <= 0 else STATUS_LOW_STOCK
    if supply_days > overstock_days and quantity > overstock_min_qty:
        return STATUS_OVERSTOCK
    return STATUS_OK


def _suggestion_text(status: str, suggested: int, target: int, min_stock: int) -> str:
    if status in (STATUS_LOW_STOCK, STATUS_OUT_OF_STOCK):
        return f"Order {suggested} units (Target: {target}, Min: {min_stock})"
    if status == STATUS_OVERSTOCK:
        return "Consider transfer or promotion"
    return ""


def assess_risk(
    position: InventoryPosition,
    profile: VelocityProfile,
    min_stock: int,
    *,
    as_of: date,
    outlook_days: int = DEFAULT_OUTLOOK_DAYS,
    overstock_days: int = OVERSTOCK_DAYS,
    overstock_min_qty: int = OVERSTOCK_MIN_QTY,
) -> RiskAssessment:
    """Combine inventory, velocity and minimum stock into a risk assessment."""
    quantity = position.quantity
    velocity = profile.daily_velocity

    supply_days = days_of_supply(quantity, velocity)
    order = suggested_order(quantity, velocity, min_stock, outlook_days)
    status = classify_status(
        quantity,
        order,
        supply_days,
        overstock_days=overstock_days,
        overstock_min_qty=overstock_min_qty,
    )
    target = reorder_target(velocity, min_stock, outlook_days)

    return RiskAssessment(
        product=position.product,
        store_id=position.store_id,
        store_name=position.store_name,
        quantity=quantity,
        daily_velocity=velocity,
        units_sold_in_window=profile.units_sold_in_window,
        units_sold_prior_window=profile.units_sold_prior_window,
        last_sale_date=profile.last_sale_date,
        min_stock_level=min_stock,
        days_of_supply=supply_days,
        days_out_of_stock=days_out_of_stock(quantity, profile.last_sale_date, as_of),
        suggested_order_qty=order,
        status=status,
        suggestion=_suggestion_text(status, order, target, min_stock),
    )


def is_restock_alert(assessment: RiskAssessment, days_out_of_stock_threshold: int) -> bool:
    """Recently out of stock, or low and about to run out, with a real order."""
    if assessment.suggested_order_qty <= 1:
        return False
    if assessment.quantity <= 0:
        if assessment.last_sale_date is None:
            return False
        return assessment.days_out_of_stock < days_out_of_stock_threshold
    return assessment.status == STATUS_LOW_STOCK


def filter_restock_alerts(
    assessments: Iterable[RiskAssessment], days_out_of_stock_threshold: int
) -> list[RiskAssessment]:
    """Restrict to restock alerts, largest suggested order first.

    A threshold of 0 or less disables filtering and keeps input order.
    """
    items = list(assessments)
    if days_out_of_stock_threshold <= 0:
        return items
    alerts = [a for a in items if is_restock_alert(a, days_out_of_stock_threshold)]
    return sorted(alerts, key=lambda a: a.suggested_order_qty, reverse=True)
