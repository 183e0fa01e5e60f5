"""Sales velocity aggregation over day-bucketed sale events.

NO DATA ACCESS - pure functions only. Data access happens in services layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from itertools import groupby
from operator import attrgetter
from typing import Iterable

RISK_LOOKBACK_DAYS = 180
LAST_SALE_LOOKBACK_DAYS = 365
PRIOR_WINDOW_DAYS = 90


@dataclass(frozen=True)
class SaleEvent:
    """Units of a product sold at a store on one day."""

    product_id: str
    store_id: str
    d: date
    quantity: float


@dataclass(frozen=True)
class VelocityProfile:
    """Sales signals for one product at one store."""

    product_id: str
    store_id: str
    daily_velocity: float
    units_sold_in_window: float
    last_sale_date: date | None
    units_sold_prior_window: float

    @classmethod
    def empty(cls, product_id: str, store_id: str) -> VelocityProfile:
        """Profile of a pair with no sales history."""
        return cls(product_id, store_id, 0.0, 0.0, None, 0.0)


@dataclass(frozen=True)
class HistoryPoint:
    """One day of a sales history series."""

    d: date
    quantity: float


_event_key = attrgetter("product_id", "store_id")


def daily_velocity(units_sold: float, window_days: int) -> float:
    """Average units sold per day over a window.

    Examples:
        >>> daily_velocity(18, 180)
        0.1
        >>> daily_velocity(0, 180)
        0.0

    """
    if window_days <= 0:
        return 0.0
    return float(units_sold) / window_days


def _profile_for_pair(
    product_id: str,
    store_id: str,
    events: list[SaleEvent],
    *,
    as_of: date,
    window_days: int,
    last_sale_lookback_days: int,
    prior_window_days: int,
) -> VelocityProfile:
    window_start = as_of - timedelta(days=window_days - 1)
    last_sale_start = as_of - timedelta(days=last_sale_lookback_days)

    in_window = sum(e.quantity for e in events if window_start <= e.d <= as_of)
    sale_dates = [e.d for e in events if last_sale_start <= e.d <= as_of]
    last_sale = max(sale_dates) if sale_dates else None

    prior = 0.0
    if last_sale is not None:
        prior_start = last_sale - timedelta(days=prior_window_days)
        prior = sum(e.quantity for e in events if prior_start <= e.d <= last_sale)

    return VelocityProfile(
        product_id=product_id,
        store_id=store_id,
        daily_velocity=daily_velocity(in_window, window_days),
        units_sold_in_window=float(in_window),
        last_sale_date=last_sale,
        units_sold_prior_window=float(prior),
    )


def build_velocity_profiles(
    events: Iterable[SaleEvent],
    *,
    as_of: date,
    window_days: int = RISK_LOOKBACK_DAYS,
    last_sale_lookback_days: int = LAST_SALE_LOOKBACK_DAYS,
    prior_window_days: int = PRIOR_WINDOW_DAYS,
) -> dict[tuple[str, str], VelocityProfile]:
    """Fold sale events into one velocity profile per (product, store).

    Pairs without any event get no entry; use ``profile_for`` to read
    with a zero fallback.

    Args:
        events: Day-bucketed sale events, in any order
        as_of: Analysis date (events after it are ignored)
        window_days: Velocity window
        last_sale_lookback_days: How far back the last sale is searched
        prior_window_days: Window ending at the last sale, for trend comparison

    Returns:
        Mapping (product_id, store_id) -> VelocityProfile

    """
    ordered = sorted(events, key=_event_key)
    return {
        key: _profile_for_pair(
            key[0],
            key[1],
            list(group),
            as_of=as_of,
            window_days=window_days,
            last_sale_lookback_days=last_sale_lookback_days,
            prior_window_days=prior_window_days,
        )
        for key, group in groupby(ordered, key=_event_key)
    }


def profile_for(
    profiles: dict[tuple[str, str], VelocityProfile], product_id: str, store_id: str
) -> VelocityProfile:
    """Look up a profile, falling back to a zero-sales profile."""
    return profiles.get((product_id, store_id)) or VelocityProfile.empty(product_id, store_id)


def daily_history(events: Iterable[SaleEvent], *, as_of: date, days: int) -> list[HistoryPoint]:
    """Zero-filled daily series of units sold, oldest day first.

    Covers ``days`` days ending at ``as_of`` inclusive. Events outside
    that range are dropped.
    """
    start = as_of - timedelta(days=days - 1)
    totals = {start + timedelta(days=i): 0.0 for i in range(days)}
    for e in events:
        if e.d in totals:
            totals[e.d] += e.quantity
    return [HistoryPoint(d=d, quantity=q) for d, q in sorted(totals.items())]


def units_since(history: Iterable[HistoryPoint], since: date) -> float:
    """Sum a history series from ``since`` (inclusive) onwards."""
    return sum(p.quantity for p in history if p.d >= since)


__all__ = [
    "SaleEvent",
    "VelocityProfile",
    "HistoryPoint",
    "daily_velocity",
    "build_velocity_profiles",
    "profile_for",
    "daily_history",
    "units_since",
]
