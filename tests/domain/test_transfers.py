"""Tests for cross-store transfer matching."""

from __future__ import annotations

import pytest

from tire_insights.domain.inventory.risk import (
    STATUS_LOW_STOCK,
    STATUS_OK,
    STATUS_OUT_OF_STOCK,
    STATUS_OVERSTOCK,
    ProductInfo,
    RiskAssessment,
    days_of_supply,
)
from tire_insights.domain.inventory.transfers import (
    adjust_for_parity,
    match_product_transfers,
    passes_velocity_guard,
    propose_transfer,
    protected_reserve,
)

PRODUCT = ProductInfo(id="P1", name="Michelin Defender 225/65R17", type="PASSENGER")


def _assessment(
    store_id: str,
    quantity: int,
    velocity: float,
    status: str,
    *,
    suggested: int = 0,
    min_stock: int = 4,
) -> RiskAssessment:
    return RiskAssessment(
        product=PRODUCT,
        store_id=store_id,
        store_name=f"Store {store_id}",
        quantity=quantity,
        daily_velocity=velocity,
        units_sold_in_window=velocity * 180,
        units_sold_prior_window=0.0,
        last_sale_date=None,
        min_stock_level=min_stock,
        days_of_supply=days_of_supply(quantity, velocity),
        days_out_of_stock=0,
        suggested_order_qty=suggested,
        status=status,
        suggestion="",
    )


def test_basic_transfer():
    """Overstocked slow store feeds a low store selling faster."""
    target = _assessment("A", 0, 0.1, STATUS_LOW_STOCK, suggested=4)
    source = _assessment("B", 20, 0.05, STATUS_OVERSTOCK)

    match = propose_transfer(source, target)

    assert match is not None
    assert match.source_needs == 4  # max(ceil(0.05 * 60), 4)
    assert match.source_excess == 16
    assert match.quantity == 4


def test_protected_reserve():
    assert protected_reserve(0.05, 4) == 4
    assert protected_reserve(0.5, 4) == 30
    assert protected_reserve(0.0, 2) == 2


def test_parity_adjustment():
    """Moves leave both stores on an even count where possible."""
    # Both odd: amount becomes odd
    assert adjust_for_parity(6, 21, 3) == 5
    assert adjust_for_parity(5, 21, 3) == 5
    # Otherwise: amount becomes even
    assert adjust_for_parity(5, 20, 0) == 4
    assert adjust_for_parity(5, 21, 2) == 4
    assert adjust_for_parity(6, 20, 1) == 6


def test_parity_can_push_below_floor():
    """Rounding 5 down to 4 keeps it, rounding 4 down to 3 drops it."""
    target = _assessment("A", 3, 0.5, STATUS_LOW_STOCK, suggested=4)
    source = _assessment("B", 21, 0.05, STATUS_OVERSTOCK)

    # Both odd: 4 -> 3, under the 4-unit floor
    assert propose_transfer(source, target) is None


def test_velocity_guard():
    """A faster donor only gives stock when it has a 90-day cushion."""
    slow_target = _assessment("A", 1, 0.1, STATUS_LOW_STOCK, suggested=4)
    thin_fast_source = _assessment("B", 20, 0.5, STATUS_OK)  # 40 days of supply
    deep_fast_source = _assessment("C", 100, 0.5, STATUS_OK)  # 200 days of supply
    exact_cushion_source = _assessment("D", 45, 0.5, STATUS_OK)  # exactly 90 days

    assert not passes_velocity_guard(thin_fast_source, slow_target)
    assert passes_velocity_guard(deep_fast_source, slow_target)
    assert passes_velocity_guard(exact_cushion_source, slow_target)


def test_no_excess_no_transfer():
    target = _assessment("A", 0, 0.5, STATUS_LOW_STOCK, suggested=15)
    source = _assessment("B", 10, 0.2, STATUS_OK)  # needs max(12, 4) = 12

    assert propose_transfer(source, target) is None


def test_self_pair_is_skipped():
    a = _assessment("A", 20, 0.1, STATUS_LOW_STOCK, suggested=4)

    assert propose_transfer(a, a) is None


def test_out_of_stock_store_is_not_a_target():
    """Only LowStock stores with sales are targets."""
    assessments = [
        _assessment("A", 0, 0.1, STATUS_OUT_OF_STOCK, suggested=4),
        _assessment("B", 20, 0.05, STATUS_OVERSTOCK),
    ]

    assert match_product_transfers(assessments) == []


def test_match_filters_by_target_store():
    assessments = [
        _assessment("A", 1, 0.2, STATUS_LOW_STOCK, suggested=5),
        _assessment("C", 2, 0.2, STATUS_LOW_STOCK, suggested=4),
        _assessment("B", 40, 0.05, STATUS_OVERSTOCK),
    ]

    all_matches = match_product_transfers(assessments)
    into_c = match_product_transfers(assessments, target_store_id="C")

    assert [(m.source.store_id, m.target.store_id) for m in all_matches] == [
        ("B", "A"),
        ("B", "C"),
    ]
    assert [m.target.store_id for m in into_c] == ["C"]


@pytest.mark.parametrize(
    ("source_qty", "target_qty", "suggested"),
    [(8, 0, 10), (9, 1, 6), (20, 2, 4), (21, 3, 7), (40, 1, 30), (13, 0, 5)],
)
def test_transfer_never_exceeds_excess_or_need(source_qty, target_qty, suggested):
    """Emitted moves are at least 4 and within both limits."""
    target = _assessment("A", target_qty, 0.3, STATUS_LOW_STOCK, suggested=suggested)
    source = _assessment("B", source_qty, 0.02, STATUS_OK)

    match = propose_transfer(source, target)

    if match is not None:
        assert match.quantity >= 4
        assert match.quantity <= match.source_excess
        assert match.quantity <= target.suggested_order_qty
