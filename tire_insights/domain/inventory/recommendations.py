"""Transfer recommendations: scored matches with display context."""

from __future__ import annotations

import hashlib
import math
from dataclasses import dataclass
from typing import Iterable, Sequence

from tire_insights.domain.inventory.confidence import ConfidenceBreakdown
from tire_insights.domain.inventory.min_stock import min_stock_level
from tire_insights.domain.inventory.risk import ProductInfo, RiskAssessment
from tire_insights.domain.inventory.transfers import TransferMatch
from tire_insights.domain.inventory.velocity import HistoryPoint


@dataclass(frozen=True)
class StoreStock:
    """Per-store inventory line shown next to a recommendation."""

    store_id: str
    store_name: str
    quantity: int
    status: str


@dataclass(frozen=True)
class TransferCandidate:
    """Scored cross-store transfer recommendation."""

    product: ProductInfo
    source_store_id: str
    source_store_name: str
    target_store_id: str
    target_store_name: str
    quantity: int
    source_velocity: float
    target_velocity: float
    source_status: str
    target_status: str
    confidence_score: int
    confidence_level: str
    velocity_diff: float
    source_days_of_supply: float
    target_days_of_supply: float
    source_days_after_transfer: float
    target_days_after_transfer: float
    avg_install_qty: int
    min_stock_level: int
    reason: str
    rationale_hash: str
    all_stores_inventory: tuple[StoreStock, ...]
    source_history: tuple[HistoryPoint, ...]
    target_history: tuple[HistoryPoint, ...]

    @property
    def product_id(self) -> str:
        return self.product.id


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def generate_reason(match: TransferMatch, breakdown: ConfidenceBreakdown) -> str:
    """Human-readable rationale of a transfer."""
    source, target = match.source, match.target
    return (
        f"Transfer {match.quantity} units from {source.store_name} to {target.store_name}. "
        f"{target.store_name} sells {breakdown.velocity_diff:.2f} more units/day "
        f"(60-day avg) than {source.store_name}. Min stock level: {match.min_stock_level}."
    )


def generate_hash(match: TransferMatch, breakdown: ConfidenceBreakdown) -> str:
    """Deterministic hash of the transfer rationale.

    Identical snapshots produce identical hashes, so callers can dedupe
    recommendations across runs.
    """
    rationale_str = (
        f"{match.product_id}|{match.source.store_id}|{match.target.store_id}|"
        f"{match.quantity}|{match.source.quantity}|{match.target.quantity}|"
        f"{breakdown.velocity_diff:.4f}|{breakdown.score:.2f}"
    )
    return hashlib.sha256(rationale_str.encode()).hexdigest()


def store_inventory_snapshot(assessments: Iterable[RiskAssessment]) -> tuple[StoreStock, ...]:
    """Inventory of a product across stores, largest holding first."""
    lines = [StoreStock(a.store_id, a.store_name, a.quantity, a.status) for a in assessments]
    return tuple(sorted(lines, key=lambda s: (-s.quantity, s.store_name, s.store_id)))


def build_candidate(
    match: TransferMatch,
    breakdown: ConfidenceBreakdown,
    *,
    product_assessments: Sequence[RiskAssessment],
    source_history: Sequence[HistoryPoint],
    target_history: Sequence[HistoryPoint],
    avg_units_per_transaction: float | None = None,
) -> TransferCandidate:
    """Attach display context to a scored match."""
    source, target = match.source, match.target
    return TransferCandidate(
        product=target.product,
        source_store_id=source.store_id,
        source_store_name=source.store_name,
        target_store_id=target.store_id,
        target_store_name=target.store_name,
        quantity=match.quantity,
        source_velocity=source.daily_velocity,
        target_velocity=target.daily_velocity,
        source_status=source.status,
        target_status=target.status,
        confidence_score=_round_half_up(breakdown.score),
        confidence_level=breakdown.level,
        velocity_diff=round(breakdown.velocity_diff, 2),
        source_days_of_supply=round(source.days_of_supply, 1),
        target_days_of_supply=round(target.days_of_supply, 1),
        source_days_after_transfer=round(breakdown.source_days_after, 1),
        target_days_after_transfer=round(breakdown.target_days_after, 1),
        avg_install_qty=min_stock_level(avg_units_per_transaction, target.product.type),
        min_stock_level=match.min_stock_level,
        reason=generate_reason(match, breakdown),
        rationale_hash=generate_hash(match, breakdown),
        all_stores_inventory=store_inventory_snapshot(product_assessments),
        source_history=tuple(source_history),
        target_history=tuple(target_history),
    )


def rank_transfers(candidates: Iterable[TransferCandidate]) -> list[TransferCandidate]:
    """Highest confidence first; ties broken by product and store ids."""
    return sorted(
        candidates,
        key=lambda c: (-c.confidence_score, c.product_id, c.source_store_id, c.target_store_id),
    )
