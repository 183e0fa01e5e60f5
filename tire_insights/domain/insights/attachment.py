"""Alignment attachment rate on tire invoices."""

from __future__ import annotations

from dataclasses import dataclass

ALIGNMENT_PRICE = 89.99


@dataclass(frozen=True)
class AttachmentRate:
    """Share of tire invoices that also sold an alignment."""

    metric: str
    value: float
    unit: str
    total_tire_invoices: int
    invoices_with_alignment: int
    potential_revenue: float
    message: str


def attachment_rate(
    total_tire_invoices: int,
    invoices_with_alignment: int,
    *,
    alignment_price: float = ALIGNMENT_PRICE,
    window_days: int = 30,
) -> AttachmentRate:
    """Compute the alignment attachment rate.

    No tire invoices is not an error: the result is zeroed with an
    advisory message.
    """
    if total_tire_invoices == 0:
        return AttachmentRate(
            metric="Alignment Attachment Rate",
            value=0.0,
            unit="%",
            total_tire_invoices=0,
            invoices_with_alignment=0,
            potential_revenue=0.0,
            message=f"No tire invoices found in last {window_days} days.",
        )

    rate = invoices_with_alignment / total_tire_invoices * 100
    missed = total_tire_invoices - invoices_with_alignment

    return AttachmentRate(
        metric="Alignment Attachment Rate",
        value=round(rate, 1),
        unit="%",
        total_tire_invoices=total_tire_invoices,
        invoices_with_alignment=invoices_with_alignment,
        potential_revenue=round(missed * alignment_price, 2),
        message=f"Alignment attachment rate is {rate:.1f}%. {missed} missed opportunities.",
    )
