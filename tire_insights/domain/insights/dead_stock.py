"""Dead stock: products sitting on the shelf without a recent sale."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from tire_insights.domain.inventory.risk import ProductInfo

DEAD_STOCK_DAYS = 90
DEAD_STOCK_MIN_QTY = 4


@dataclass(frozen=True)
class StockedProduct:
    """On-hand product with its unit price."""

    product: ProductInfo
    store_id: str
    store_name: str
    quantity: int
    unit_price: float


@dataclass(frozen=True)
class DeadStockItem:
    """Stock tying up capital with no sale in the lookback window."""

    type: str
    product_id: str
    product_name: str
    sku: str | None
    manufacturer_code: str | None
    brand: str | None
    store_id: str
    store_name: str
    quantity: int
    value: float
    message: str


def detect_dead_stock(
    stocked: Iterable[StockedProduct],
    sold_product_ids: set[str],
    *,
    min_qty: int = DEAD_STOCK_MIN_QTY,
    days: int = DEAD_STOCK_DAYS,
) -> list[DeadStockItem]:
    """Flag stock above ``min_qty`` whose product did not sell in ``days`` days.

    Args:
        stocked: Inventory rows to inspect
        sold_product_ids: Products with at least one sale in the window
        min_qty: Quantity a row must exceed to count
        days: Window length, used in the message

    Returns:
        Dead stock items, highest value first

    """
    items = [
        DeadStockItem(
            type="DEAD_STOCK",
            product_id=s.product.id,
            product_name=s.product.name,
            sku=s.product.sku,
            manufacturer_code=s.product.manufacturer_code,
            brand=s.product.brand,
            store_id=s.store_id,
            store_name=s.store_name,
            quantity=s.quantity,
            value=round(s.unit_price * s.quantity, 2),
            message=(
                f"Dead Stock: {s.quantity} units of {s.product.name} "
                f"haven't sold in {days} days."
            ),
        )
        for s in stocked
        if s.quantity > min_qty and s.product.id not in sold_product_ids
    ]
    return sorted(items, key=lambda i: (-i.value, i.product_id, i.store_id))
