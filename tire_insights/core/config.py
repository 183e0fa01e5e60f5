"""Configuration management with pydantic-settings.

Provides type-safe configuration with environment variable validation.
Business thresholds of the inventory engine live here so they can be
tuned per deployment without touching the domain code.
"""

from __future__ import annotations

import json
from functools import lru_cache

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable validation."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Application ===
    app_version: str = Field("1.4.0", description="Reported application version")
    environment: str = Field("production", description="Deployment environment label")
    log_level: str = Field("INFO", description="Root log level")

    # === Database ===
    database_url: str = Field(
        "sqlite:///./tire_insights.db",
        description="Database URL (read-only replica in production)",
    )
    db_pool_size: int = Field(5, description="Connection pool size")
    db_max_overflow: int = Field(5, description="Extra connections allowed above pool size")
    db_pool_timeout_seconds: int = Field(30, description="Seconds to wait for a pooled connection")

    # === Analysis worker pool ===
    analysis_max_workers: int = Field(4, description="Max concurrent per-product workers")
    analysis_timeout_seconds: float = Field(
        60.0, description="Budget for the per-product fan-out before returning a partial result"
    )

    # === Inventory risk ===
    risk_lookback_days: int = Field(180, description="Velocity lookback window")
    last_sale_lookback_days: int = Field(365, description="Window searched for the last sale")
    prior_window_days: int = Field(90, description="Comparable window before the last sale")
    default_outlook_days: int = Field(30, description="Default reorder horizon")
    overstock_days: int = Field(180, description="Days of supply above which stock is excess")
    overstock_min_qty: int = Field(4, description="Quantity above which overstock can apply")

    # === Cross-store transfers ===
    transfer_min_source_qty: int = Field(8, description="Minimum on-hand to act as a donor")
    transfer_cushion_days: int = Field(
        90, description="Donor days of supply that allow moving stock to a slower store"
    )
    transfer_reserve_days: int = Field(60, description="Donor velocity reserve window")
    transfer_min_qty: int = Field(4, description="Smallest transfer worth the logistics")
    confidence_window_days: int = Field(60, description="Short window for confidence velocity")
    confidence_full_scale: float = Field(
        0.6, description="Velocity advantage (units/day) that yields full confidence"
    )
    precedence_floor_days: int = Field(
        35, description="Donor days after transfer below which a faster donor keeps its stock"
    )
    hard_floor_days: int = Field(30, description="Donor days after transfer that halve confidence")
    history_days: int = Field(180, description="Daily history series length for charts")

    # === Auxiliary analyzers ===
    dead_stock_days: int = Field(90, description="Days without a sale that mark dead stock")
    dead_stock_min_qty: int = Field(4, description="On-hand quantity above which dead stock counts")
    margin_window_days: int = Field(30, description="Margin leakage window")
    margin_targets_json: str = Field(
        '{"TIRES": 15, "SERVICES": 60, "PARTS": 30, "OTHER": 20}',
        description="Target gross margin % per category (JSON)",
    )
    margin_default_target: float = Field(20.0, description="Target margin for unknown categories")
    attachment_window_days: int = Field(30, description="Attachment rate window")
    alignment_price: float = Field(89.99, description="Average alignment ticket")
    utilization_weeks: int = Field(4, description="Technician utilization window in weeks")
    utilization_hours_per_week: int = Field(40, description="Capacity per technician per week")
    utilization_estimated_rate: float = Field(
        50.0, description="Labor $/hour used to estimate hours from revenue"
    )
    top_tires_per_category: int = Field(3, description="Top sellers reported per tire type")
    top_tires_history_months: int = Field(6, description="Monthly history length for top sellers")

    @property
    def margin_targets(self) -> dict[str, float]:
        """Get category margin targets, empty on malformed JSON."""
        try:
            raw = json.loads(self.margin_targets_json or "{}")
        except json.JSONDecodeError:
            return {}
        return {str(k): float(v) for k, v in raw.items()}


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Raises:
        RuntimeError: If environment variables fail validation.

    """
    try:
        return Settings()
    except ValidationError as e:
        bad_fields = [str(error["loc"][0]).upper() for error in e.errors() if error["loc"]]

        error_msg = (
            f"Configuration error: invalid environment variables: "
            f"{', '.join(bad_fields)}\n"
            f"Please fix them in .env file or in the environment."
        )
        raise RuntimeError(error_msg) from e


__all__ = ["Settings", "get_settings"]
