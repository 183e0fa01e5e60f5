"""Cross-store transfer matching for a single product.

Pairs stores holding surplus with stores running low, sizing each move so
the donor keeps a protected reserve and both stores end on even stock.

NO DATA ACCESS - pure functions only. Data access happens in services layer.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from tire_insights.domain.inventory.risk import STATUS_LOW_STOCK, RiskAssessment

MIN_SOURCE_QTY = 8
CUSHION_DAYS = 90
RESERVE_DAYS = 60
MIN_TRANSFER_QTY = 4


@dataclass(frozen=True)
class TransferMatch:
    """Feasible move of one product between two stores, before scoring."""

    source: RiskAssessment
    target: RiskAssessment
    quantity: int
    source_needs: int
    source_excess: int
    min_stock_level: int

    @property
    def product_id(self) -> str:
        return self.target.product_id


def is_source_candidate(assessment: RiskAssessment, min_source_qty: int = MIN_SOURCE_QTY) -> bool:
    """Store holds enough units to be considered a donor."""
    return assessment.quantity >= min_source_qty


def is_target_candidate(assessment: RiskAssessment) -> bool:
    """Store is low on a product that actually sells there."""
    return assessment.status == STATUS_LOW_STOCK and assessment.daily_velocity > 0


def passes_velocity_guard(
    source: RiskAssessment, target: RiskAssessment, cushion_days: int = CUSHION_DAYS
) -> bool:
    """Stock moves toward the faster-selling store.

    A faster-selling donor may still give stock when it holds at least
    ``cushion_days`` of supply.
    """
    if source.daily_velocity > target.daily_velocity and source.days_of_supply < cushion_days:
        return False
    return True


def protected_reserve(velocity: float, min_stock: int, reserve_days: int = RESERVE_DAYS) -> int:
    """Units a donor keeps: its reserve window of sales, at least one job's worth."""
    return max(math.ceil(velocity * reserve_days), min_stock)


def adjust_for_parity(amount: int, source_qty: int, target_qty: int) -> int:
    """Round a transfer so both stores are left holding full pairs.

    When both stores hold an odd count an odd amount evens both out;
    otherwise the move is rounded down to a multiple of two.

    Examples:
        >>> adjust_for_parity(6, 21, 3)
        5
        >>> adjust_for_parity(5, 20, 0)
        4
        >>> adjust_for_parity(4, 20, 0)
        4

    """
    both_odd = source_qty % 2 != 0 and target_qty % 2 != 0
    if both_odd:
        return amount - 1 if amount % 2 == 0 else amount
    return amount - 1 if amount % 2 != 0 else amount


def propose_transfer(
    source: RiskAssessment,
    target: RiskAssessment,
    *,
    cushion_days: int = CUSHION_DAYS,
    reserve_days: int = RESERVE_DAYS,
    min_transfer_qty: int = MIN_TRANSFER_QTY,
) -> TransferMatch | None:
    """Size a move from ``source`` to ``target``, or None when not worth it."""
    if source.store_id == target.store_id:
        return None
    if not passes_velocity_guard(source, target, cushion_days):
        return None

    min_stock = source.min_stock_level
    needs = protected_reserve(source.daily_velocity, min_stock, reserve_days)
    excess = source.quantity - needs
    if excess <= 0:
        return None

    amount = min(excess, target.suggested_order_qty)
    amount = adjust_for_parity(amount, source.quantity, target.quantity)
    if amount < min_transfer_qty:
        return None

    return TransferMatch(
        source=source,
        target=target,
        quantity=amount,
        source_needs=needs,
        source_excess=excess,
        min_stock_level=min_stock,
    )


def match_product_transfers(
    assessments: Sequence[RiskAssessment],
    *,
    target_store_id: str | None = None,
    min_source_qty: int = MIN_SOURCE_QTY,
    cushion_days: int = CUSHION_DAYS,
    reserve_days: int = RESERVE_DAYS,
    min_transfer_qty: int = MIN_TRANSFER_QTY,
) -> list[TransferMatch]:
    """Match donors against low-stock stores for one product.

    Args:
        assessments: Risk assessments of a single product across stores
        target_store_id: Only propose moves into this store (optional)
        min_source_qty: On-hand needed to act as a donor
        cushion_days: Donor runway that allows feeding a slower store
        reserve_days: Donor sales window kept back
        min_transfer_qty: Smallest move emitted

    Returns:
        Feasible matches, grouped by target in input order

    """
    sources = [a for a in assessments if is_source_candidate(a, min_source_qty)]
    targets = [a for a in assessments if is_target_candidate(a)]
    if target_store_id is not None:
        targets = [t for t in targets if t.store_id == target_store_id]

    matches = []
    for target in targets:
        for source in sources:
            match = propose_transfer(
                source,
                target,
                cushion_days=cushion_days,
                reserve_days=reserve_days,
                min_transfer_qty=min_transfer_qty,
            )
            if match is not None:
                matches.append(match)
    return matches
