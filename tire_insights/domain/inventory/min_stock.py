"""Minimum stock level from historical units per transaction."""

from __future__ import annotations

FULL_SET_TYPES = frozenset({"PASSENGER", "LIGHT_TRUCK"})


def round_install_qty(avg_qty: float) -> int:
    """Round an average units-per-transaction to a typical install quantity.

    Examples:
        >>> round_install_qty(1.3)
        2
        >>> round_install_qty(3.7)
        4
        >>> round_install_qty(7.5)
        8
        >>> round_install_qty(12)
        10

    """
    if avg_qty < 2:
        return 2
    if avg_qty > 8:
        return 10
    if avg_qty > 6:
        return 8
    if avg_qty > 2:
        return 4
    return 2


def default_units_per_transaction(product_type: str | None) -> int:
    """Assumed units per job when a product has no sales history."""
    return 4 if product_type in FULL_SET_TYPES else 2


def min_stock_level(avg_units_per_transaction: float | None, product_type: str | None) -> int:
    """Stock needed to complete one typical job.

    A missing or zero average falls back to the type default.
    """
    avg = avg_units_per_transaction or default_units_per_transaction(product_type)
    return round_install_qty(avg)
