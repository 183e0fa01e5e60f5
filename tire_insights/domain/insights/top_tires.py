"""Best-selling tires per category with monthly history and runway."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from itertools import groupby
from typing import Iterable

from tire_insights.domain.inventory.risk import INDEFINITE_SUPPLY_DAYS, ProductInfo

EXCLUDED_TYPES = frozenset(
    {"OTHER", "LAWN_GARDEN", "ATV_UTV", "AGRICULTURAL", "INDUSTRIAL", "OTR"}
)
PLACEHOLDER_SKU_RANGE = ("OP01", "OP20")
LOOKBACK_DAYS = 180
PER_CATEGORY = 3
HISTORY_MONTHS = 6


@dataclass(frozen=True)
class ProductSales:
    """Units a product sold in the lookback, with its current stock."""

    product: ProductInfo
    total_sold: float
    current_quantity: int


@dataclass(frozen=True)
class MonthlyPoint:
    month: str  # YYYY-MM
    quantity: float


@dataclass(frozen=True)
class TopTire:
    """Ranked best seller of a tire category."""

    product_id: str
    product_name: str
    total_sold: float
    current_quantity: int
    days_of_supply: float
    rank: int
    history: tuple[MonthlyPoint, ...]


def is_placeholder_sku(sku: str | None) -> bool:
    """Option/placeholder SKUs OP01..OP20 are not real tires."""
    if sku is None:
        return False
    low, high = PLACEHOLDER_SKU_RANGE
    return low <= sku <= high


def is_ranked_tire(product: ProductInfo) -> bool:
    """Graded tire types with a real, non-placeholder SKU."""
    if product.sku is None or product.type in EXCLUDED_TYPES:
        return False
    return not is_placeholder_sku(product.sku)


def display_type_name(product_type: str) -> str:
    """LIGHT_TRUCK -> Light Truck."""
    return product_type.replace("_", " ").title()


def month_keys(as_of: date, months: int = HISTORY_MONTHS) -> list[str]:
    """YYYY-MM keys of the last ``months`` months, oldest first."""
    keys = []
    for back in range(months - 1, -1, -1):
        index = as_of.year * 12 + (as_of.month - 1) - back
        keys.append(f"{index // 12:04d}-{index % 12 + 1:02d}")
    return keys


def runway_days(current_quantity: int, total_sold: float, lookback_days: int) -> float:
    velocity = total_sold / lookback_days if lookback_days > 0 else 0.0
    if velocity > 0:
        return current_quantity / velocity
    return INDEFINITE_SUPPLY_DAYS


def build_top_tires(
    sales: Iterable[ProductSales],
    monthly_sales: dict[str, dict[str, float]],
    *,
    as_of: date,
    per_category: int = PER_CATEGORY,
    lookback_days: int = LOOKBACK_DAYS,
    months: int = HISTORY_MONTHS,
) -> dict[str, list[TopTire]]:
    """Rank best sellers per tire type.

    Args:
        sales: Per-product sales totals in the lookback window
        monthly_sales: product_id -> {YYYY-MM: units}
        as_of: Analysis date, anchors the monthly history
        per_category: How many products to keep per type
        lookback_days: Length of the sales window, for runway
        months: Length of the monthly history

    Returns:
        Display type name -> ranked top sellers

    """
    eligible = sorted(
        (s for s in sales if is_ranked_tire(s.product)),
        key=lambda s: (s.product.type, -s.total_sold, s.product.id),
    )
    keys = month_keys(as_of, months)

    result: dict[str, list[TopTire]] = {}
    for product_type, group in groupby(eligible, key=lambda s: s.product.type):
        ranked = []
        for rank, s in enumerate(list(group)[:per_category], start=1):
            by_month = monthly_sales.get(s.product.id, {})
            ranked.append(
                TopTire(
                    product_id=s.product.id,
                    product_name=s.product.name,
                    total_sold=s.total_sold,
                    current_quantity=s.current_quantity,
                    days_of_supply=round(
                        runway_days(s.current_quantity, s.total_sold, lookback_days), 1
                    ),
                    rank=rank,
                    history=tuple(MonthlyPoint(k, by_month.get(k, 0.0)) for k in keys),
                )
            )
        result[display_type_name(product_type)] = ranked
    return result
