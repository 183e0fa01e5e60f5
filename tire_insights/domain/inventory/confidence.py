"""Confidence scoring of transfer matches.

The base score rewards a short-window velocity advantage at the target.
Post-transfer runway is projected with the long-window velocity, and two
guards protect the donor: a faster donor left under the precedence floor
keeps its stock (score 0), and any donor left under the hard floor halves
the score.

NO DATA ACCESS - pure functions only. Data access happens in services layer.
"""

from __future__ import annotations

from dataclasses import dataclass

from tire_insights.domain.inventory.risk import INDEFINITE_SUPPLY_DAYS
from tire_insights.domain.inventory.transfers import TransferMatch

LEVEL_HIGH = "High"
LEVEL_MEDIUM = "Medium"
LEVEL_LOW = "Low"

CONFIDENCE_WINDOW_DAYS = 60
FULL_SCALE_VELOCITY_DIFF = 0.6
PRECEDENCE_FLOOR_DAYS = 35
HARD_FLOOR_DAYS = 30


@dataclass(frozen=True)
class ConfidenceBreakdown:
    """Score of a transfer match with the signals that produced it."""

    score: float
    level: str
    velocity_diff: float
    source_velocity_short: float
    target_velocity_short: float
    source_days_after: float
    target_days_after: float
    precedence_applied: bool
    hard_floor_applied: bool


def short_window_velocity(units_sold: float, window_days: int = CONFIDENCE_WINDOW_DAYS) -> float:
    """Units per day over the short confidence window."""
    if window_days <= 0:
        return 0.0
    return units_sold / window_days


def base_confidence(velocity_diff: float, full_scale: float = FULL_SCALE_VELOCITY_DIFF) -> float:
    """Map a velocity advantage onto 0-100.

    Examples:
        >>> round(base_confidence(0.06), 6)
        10.0
        >>> base_confidence(0.9)
        100.0
        >>> base_confidence(-0.2)
        0.0

    """
    if full_scale <= 0:
        return 0.0
    return max(0.0, min((velocity_diff / full_scale) * 100.0, 100.0))


def days_after_transfer(quantity_after: int, velocity: float) -> float:
    """Projected runway once a transfer has landed."""
    if velocity > 0:
        return quantity_after / velocity
    return INDEFINITE_SUPPLY_DAYS


def source_keeps_precedence(
    source_days_after: float,
    source_velocity: float,
    target_velocity: float,
    floor_days: int = PRECEDENCE_FLOOR_DAYS,
) -> bool:
    """A faster-selling donor is never stripped near its critical zone."""
    return source_days_after < floor_days and source_velocity > target_velocity


def below_hard_floor(source_days_after: float, floor_days: int = HARD_FLOOR_DAYS) -> bool:
    """Donor runway would drop under the guaranteed outlook."""
    return source_days_after < floor_days


def confidence_level(score: float) -> str:
    """Bucket a score into High / Medium / Low."""
    if score >= 80:
        return LEVEL_HIGH
    if score >= 50:
        return LEVEL_MEDIUM
    return LEVEL_LOW


def score_transfer(
    match: TransferMatch,
    source_units_short: float,
    target_units_short: float,
    *,
    window_days: int = CONFIDENCE_WINDOW_DAYS,
    full_scale: float = FULL_SCALE_VELOCITY_DIFF,
    precedence_floor_days: int = PRECEDENCE_FLOOR_DAYS,
    hard_floor_days: int = HARD_FLOOR_DAYS,
) -> ConfidenceBreakdown:
    """Score a transfer match.

    Args:
        match: Sized transfer
        source_units_short: Units the donor sold in the short window
        target_units_short: Units the receiver sold in the short window
        window_days: Length of the short window
        full_scale: Velocity advantage worth a full score
        precedence_floor_days: Donor runway floor for the precedence guard
        hard_floor_days: Donor runway floor for the halving penalty

    Returns:
        ConfidenceBreakdown with a score in [0, 100]

    """
    source, target = match.source, match.target

    source_short = short_window_velocity(source_units_short, window_days)
    target_short = short_window_velocity(target_units_short, window_days)
    velocity_diff = target_short - source_short

    score = base_confidence(velocity_diff, full_scale)

    # Long-window velocity: a structural move should not follow short-term noise
    source_after = days_after_transfer(source.quantity - match.quantity, source.daily_velocity)
    target_after = days_after_transfer(target.quantity + match.quantity, target.daily_velocity)

    precedence = source_keeps_precedence(
        source_after, source.daily_velocity, target.daily_velocity, precedence_floor_days
    )
    if precedence:
        score = 0.0

    hard_floor = below_hard_floor(source_after, hard_floor_days)
    if hard_floor:
        score *= 0.5

    return ConfidenceBreakdown(
        score=score,
        level=confidence_level(score),
        velocity_diff=velocity_diff,
        source_velocity_short=source_short,
        target_velocity_short=target_short,
        source_days_after=source_after,
        target_days_after=target_after,
        precedence_applied=precedence,
        hard_floor_applied=hard_floor,
    )
