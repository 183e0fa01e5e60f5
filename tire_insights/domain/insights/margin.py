"""Margin leakage: categories selling below their target gross margin."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

DEFAULT_MARGIN_TARGETS = {"TIRES": 15.0, "SERVICES": 60.0, "PARTS": 30.0, "OTHER": 20.0}
DEFAULT_TARGET = 20.0


@dataclass(frozen=True)
class CategoryTotals:
    """Revenue and gross profit of one line-item category."""

    category: str | None
    revenue: float
    profit: float


@dataclass(frozen=True)
class MarginAlert:
    """Category whose margin is under target."""

    type: str
    category: str | None
    current_margin: float
    target_margin: float
    revenue: float
    profit: float
    message: str


def gross_margin_pct(revenue: float, profit: float) -> float:
    """Gross margin in percent (0 for no revenue)."""
    if revenue == 0:
        return 0.0
    return profit / revenue * 100


def margin_leakage(
    totals: Iterable[CategoryTotals],
    targets: dict[str, float] | None = None,
    default_target: float = DEFAULT_TARGET,
) -> list[MarginAlert]:
    """Alerts for categories under target, worst margin first.

    Categories without revenue are skipped.
    """
    targets = DEFAULT_MARGIN_TARGETS if targets is None else targets
    alerts = []

    for t in totals:
        if t.revenue == 0:
            continue

        margin = gross_margin_pct(t.revenue, t.profit)
        target = targets.get(t.category or "", default_target) or default_target

        if margin < target:
            alerts.append(
                MarginAlert(
                    type="MARGIN_LEAKAGE",
                    category=t.category,
                    current_margin=round(margin, 1),
                    target_margin=target,
                    revenue=t.revenue,
                    profit=t.profit,
                    message=(
                        f"Low Margin Alert: {t.category} margin is {margin:.1f}% "
                        f"(Target: {target:g}%)."
                    ),
                )
            )

    return sorted(alerts, key=lambda a: a.current_margin)
