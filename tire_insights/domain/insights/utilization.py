"""Technician utilization: billed labor hours against capacity."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

# Labor categories billed by the hour; everything else is estimated from revenue
HOURLY_CATEGORIES = frozenset(
    {
        "MTPL Medium Truck-Repairs/Labor",
        "SRVT Service Truck",
        "LUBL Lube Parts/Labor",
        "LSTR LABOR-TRANSMISSION",
        "ALHD HD ALIGNMENT",
        "ALFE Alignments & Front End",
        "AL4 4 Wheel Alignment",
        "ALD Alignment - Dually",
        "SRVL Service Truck Labor",
        "SUBO Sublet Outside Labor",
        "SVPL Service Parts/Labor",
        r"MISC MISC PARTS\SERVICE\LAB",
        "LTMS TIRE MISC-LABOR",
        "LTSR TIRE MISC-SERVICE/REPAIR",
    }
)

ESTIMATED_RATE = 50.0
HOURS_PER_WEEK = 40
WEEKS = 4


@dataclass(frozen=True)
class LaborRecord:
    """Labor line billed by a mechanic."""

    category: str
    quantity: float
    labor: float


@dataclass(frozen=True)
class TechnicianUtilization:
    """Billed hours over technician capacity."""

    metric: str
    value: float
    unit: str
    tech_count: int
    total_billed_hours: float
    capacity_hours: float
    insight: str
    message: str


def billed_hours(record: LaborRecord, estimated_rate: float = ESTIMATED_RATE) -> float:
    """Hours represented by one labor line."""
    if record.category in HOURLY_CATEGORIES and record.quantity > 0:
        return record.quantity
    if record.labor > 0:
        return record.labor / estimated_rate
    return 0.0


def utilization_insight(utilization: float) -> str:
    if utilization > 90:
        return "Overworked - Consider Hiring"
    if utilization < 60:
        return "Underutilized - Check Scheduling"
    return "Optimal"


def technician_utilization(
    tech_count: int,
    records: Iterable[LaborRecord],
    *,
    weeks: int = WEEKS,
    hours_per_week: int = HOURS_PER_WEEK,
    estimated_rate: float = ESTIMATED_RATE,
) -> TechnicianUtilization:
    """Utilization of active technicians over ``weeks`` weeks."""
    metric = f"Technician Utilization ({weeks} Weeks)"
    if tech_count == 0:
        return TechnicianUtilization(
            metric=metric,
            value=0.0,
            unit="%",
            tech_count=0,
            total_billed_hours=0.0,
            capacity_hours=0.0,
            insight="",
            message="No active technicians found.",
        )

    total_hours = sum(billed_hours(r, estimated_rate) for r in records)
    capacity = tech_count * hours_per_week * weeks
    utilization = total_hours / capacity * 100 if capacity > 0 else 0.0

    return TechnicianUtilization(
        metric=metric,
        value=round(utilization, 1),
        unit="%",
        tech_count=tech_count,
        total_billed_hours=round(total_hours, 1),
        capacity_hours=float(capacity),
        insight=utilization_insight(utilization),
        message=(
            f"Technician utilization is {utilization:.1f}%. "
            f"(Based on billed hours vs capacity)"
        ),
    )
