"""Tests for the dead stock, margin, attachment and utilization analyzers."""

from __future__ import annotations

import pytest

from tire_insights.domain.insights.attachment import attachment_rate
from tire_insights.domain.insights.dead_stock import StockedProduct, detect_dead_stock
from tire_insights.domain.insights.margin import CategoryTotals, gross_margin_pct, margin_leakage
from tire_insights.domain.insights.utilization import (
    LaborRecord,
    billed_hours,
    technician_utilization,
    utilization_insight,
)
from tire_insights.domain.inventory.risk import ProductInfo


def _stocked(pid: str, qty: int, price: float, store_id: str = "S1") -> StockedProduct:
    return StockedProduct(
        product=ProductInfo(id=pid, name=f"Tire {pid}", sku=f"SKU-{pid}"),
        store_id=store_id,
        store_name="Downtown",
        quantity=qty,
        unit_price=price,
    )


# Dead stock


def test_dead_stock_excludes_sold_and_small_quantities():
    stocked = [_stocked("P1", 10, 100.0), _stocked("P2", 12, 50.0), _stocked("P3", 4, 500.0)]

    items = detect_dead_stock(stocked, sold_product_ids={"P1"})

    assert [i.product_id for i in items] == ["P2"]
    assert items[0].value == 600.0
    assert items[0].message == "Dead Stock: 12 units of Tire P2 haven't sold in 90 days."


def test_dead_stock_sorted_by_value():
    stocked = [_stocked("P1", 5, 10.0), _stocked("P2", 5, 90.0), _stocked("P3", 6, 40.0)]

    items = detect_dead_stock(stocked, sold_product_ids=set())

    assert [i.value for i in items] == [450.0, 240.0, 50.0]


# Margin leakage


def test_gross_margin_pct():
    assert gross_margin_pct(1000.0, 150.0) == pytest.approx(15.0)
    assert gross_margin_pct(0.0, 10.0) == 0.0


def test_margin_leakage_alerts_below_target():
    totals = [
        CategoryTotals("TIRES", 3600.0, 360.0),  # 10% < 15%
        CategoryTotals("SERVICES", 1000.0, 700.0),  # 70% >= 60%
        CategoryTotals("PARTS", 1000.0, 50.0),  # 5% < 30%
        CategoryTotals("FEES", 0.0, 0.0),  # no revenue, skipped
    ]

    alerts = margin_leakage(totals)

    assert [a.category for a in alerts] == ["PARTS", "TIRES"]
    assert alerts[1].current_margin == 10.0
    assert alerts[1].target_margin == 15.0
    assert alerts[1].message == "Low Margin Alert: TIRES margin is 10.0% (Target: 15%)."


def test_unknown_category_uses_default_target():
    alerts = margin_leakage([CategoryTotals("BATTERIES", 100.0, 19.0)])

    assert len(alerts) == 1
    assert alerts[0].target_margin == 20.0


# Attachment rate


def test_attachment_rate():
    result = attachment_rate(6, 1)

    assert result.value == 16.7
    assert result.potential_revenue == pytest.approx(449.95)
    assert result.message == "Alignment attachment rate is 16.7%. 5 missed opportunities."


def test_attachment_rate_without_tire_invoices():
    result = attachment_rate(0, 0)

    assert result.value == 0.0
    assert result.message == "No tire invoices found in last 30 days."


# Technician utilization


def test_billed_hours():
    """Hourly categories bill quantity, others are estimated from revenue."""
    assert billed_hours(LaborRecord("AL4 4 Wheel Alignment", 1.5, 89.99)) == 1.5
    assert billed_hours(LaborRecord("TIRE MOUNT", 4, 100.0)) == 2.0
    assert billed_hours(LaborRecord("AL4 4 Wheel Alignment", 0, 100.0)) == 2.0
    assert billed_hours(LaborRecord("TIRE MOUNT", 1, 0.0)) == 0.0


def test_utilization_insight():
    assert utilization_insight(95) == "Overworked - Consider Hiring"
    assert utilization_insight(75) == "Optimal"
    assert utilization_insight(40) == "Underutilized - Check Scheduling"


def test_technician_utilization():
    records = [LaborRecord("SVPL Service Parts/Labor", 100.0, 0.0), LaborRecord("X", 0, 2000.0)]

    result = technician_utilization(1, records)

    # (100 + 40) hours over 1 tech * 40h * 4 weeks
    assert result.total_billed_hours == 140.0
    assert result.capacity_hours == 160.0
    assert result.value == 87.5
    assert result.insight == "Optimal"


def test_no_technicians():
    result = technician_utilization(0, [LaborRecord("X", 0, 500.0)])

    assert result.value == 0.0
    assert result.message == "No active technicians found."
