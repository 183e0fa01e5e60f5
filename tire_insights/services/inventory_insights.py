"""Inventory insights service facade.

Reads snapshots through InsightsRepository and runs the pure domain
functions over them. Nothing here writes to the database.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FuturesTimeoutError
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, timedelta
from itertools import groupby
from typing import Callable

from sqlalchemy.orm import Session

from tire_insights.core.config import Settings, get_settings
from tire_insights.core.errors import AnalysisUnavailableError
from tire_insights.core.logging import get_logger
from tire_insights.core.metrics import (
    analysis_duration_seconds,
    analysis_runs_total,
    transfer_candidates_total,
)
from tire_insights.db.session import SessionLocal
from tire_insights.domain.insights.attachment import AttachmentRate, attachment_rate
from tire_insights.domain.insights.dead_stock import DeadStockItem
from tire_insights.domain.insights.dead_stock import detect_dead_stock as find_dead_stock
from tire_insights.domain.insights.margin import MarginAlert, margin_leakage
from tire_insights.domain.insights.top_tires import TopTire, build_top_tires, month_keys
from tire_insights.domain.insights.utilization import TechnicianUtilization
from tire_insights.domain.insights.utilization import (
    technician_utilization as compute_utilization,
)
from tire_insights.domain.inventory.confidence import score_transfer
from tire_insights.domain.inventory.min_stock import min_stock_level
from tire_insights.domain.inventory.recommendations import (
    TransferCandidate,
    build_candidate,
    rank_transfers,
)
from tire_insights.domain.inventory.risk import (
    RiskAssessment,
    assess_risk,
    filter_restock_alerts,
)
from tire_insights.domain.inventory.transfers import (
    is_source_candidate,
    is_target_candidate,
    match_product_transfers,
)
from tire_insights.domain.inventory.velocity import (
    build_velocity_profiles,
    daily_history,
    profile_for,
    units_since,
)
from tire_insights.services.repository import InsightsRepository

log = get_logger("tire_insights.services.insights")

SessionFactory = Callable[[], Session]


@dataclass(frozen=True)
class RiskSnapshot:
    """Risk assessments plus the install sizes they were built from."""

    assessments: list[RiskAssessment]
    avg_units: dict[str, float]


@dataclass(frozen=True)
class TransferReport:
    """Ranked transfer candidates of one run.

    ``partial`` is set when the worker budget ran out; the products whose
    scoring did not finish are listed in ``unanalyzed_product_ids``.
    """

    candidates: list[TransferCandidate]
    partial: bool = False
    unanalyzed_product_ids: tuple[str, ...] = field(default_factory=tuple)


@contextmanager
def _tracked(analysis: str):
    """Record duration and outcome of an analysis run."""
    run = {"status": "success"}
    start = time.time()
    try:
        yield run
    except AnalysisUnavailableError:
        run["status"] = "unavailable"
        raise
    finally:
        analysis_runs_total.labels(analysis=analysis, status=run["status"]).inc()
        analysis_duration_seconds.labels(analysis=analysis).observe(time.time() - start)


def _risk_snapshot(
    repo: InsightsRepository,
    settings: Settings,
    *,
    store_id: str | None,
    outlook_days: int,
    as_of: date,
) -> RiskSnapshot:
    positions = repo.inventory_snapshot(store_id)
    if not positions:
        return RiskSnapshot(assessments=[], avg_units={})

    # Reach back far enough to find the last sale and its prior window
    since = as_of - timedelta(days=settings.last_sale_lookback_days + settings.prior_window_days)
    events = repo.sale_events(since, as_of, store_id=store_id)
    profiles = build_velocity_profiles(
        events,
        as_of=as_of,
        window_days=settings.risk_lookback_days,
        last_sale_lookback_days=settings.last_sale_lookback_days,
        prior_window_days=settings.prior_window_days,
    )

    avg_units = repo.average_units_per_transaction(sorted({p.product.id for p in positions}))

    assessments = [
        assess_risk(
            p,
            profile_for(profiles, p.product.id, p.store_id),
            min_stock_level(avg_units.get(p.product.id), p.product.type),
            as_of=as_of,
            outlook_days=outlook_days,
            overstock_days=settings.overstock_days,
            overstock_min_qty=settings.overstock_min_qty,
        )
        for p in positions
    ]
    return RiskSnapshot(assessments=assessments, avg_units=avg_units)


def analyze_inventory_risk(
    db: Session,
    *,
    store_id: str | None = None,
    outlook_days: int | None = None,
    oos_threshold: int = 0,
    as_of: date | None = None,
) -> list[RiskAssessment]:
    """Assess stock risk of every graded tire at every store.

    Args:
        db: Database session
        store_id: Restrict to one store (optional)
        outlook_days: Reorder horizon, defaults to the configured outlook
        oos_threshold: When positive, keep only restock alerts
        as_of: Analysis date (defaults to today)

    Returns:
        Risk assessments; restock alerts sorted by order size when filtered

    Raises:
        AnalysisUnavailableError: If the data source fails

    """
    settings = get_settings()
    as_of = as_of or date.today()
    outlook = outlook_days if outlook_days is not None else settings.default_outlook_days

    with _tracked("inventory_risk"):
        repo = InsightsRepository(db, analysis="inventory_risk")
        snapshot = _risk_snapshot(
            repo, settings, store_id=store_id, outlook_days=outlook, as_of=as_of
        )
        results = filter_restock_alerts(snapshot.assessments, oos_threshold)

    log.info(
        "inventory_risk_complete",
        extra={
            "store_id": store_id,
            "outlook_days": outlook,
            "oos_threshold": oos_threshold,
            "assessed": len(snapshot.assessments),
            "returned": len(results),
        },
    )
    return results


def _score_product(
    session_factory: SessionFactory,
    product_assessments: list[RiskAssessment],
    *,
    target_store_id: str | None,
    avg_units: float | None,
    as_of: date,
    settings: Settings,
    stop: threading.Event | None = None,
) -> list[TransferCandidate]:
    """Match, fetch history and score the transfers of one product.

    Returns no candidates once ``stop`` is set, without touching the database.
    """
    matches = match_product_transfers(
        product_assessments,
        target_store_id=target_store_id,
        min_source_qty=settings.transfer_min_source_qty,
        cushion_days=settings.transfer_cushion_days,
        reserve_days=settings.transfer_reserve_days,
        min_transfer_qty=settings.transfer_min_qty,
    )
    if not matches:
        return []

    product_id = matches[0].product_id
    since = as_of - timedelta(days=settings.history_days - 1)

    if stop is not None and stop.is_set():
        return []

    # Own session per worker, history fetched once for all stores
    with session_factory() as db:
        if stop is not None and stop.is_set():
            return []
        repo = InsightsRepository(db, analysis="transfers")
        events = repo.sale_events(since, as_of, product_id=product_id)

    store_ids = {m.source.store_id for m in matches} | {m.target.store_id for m in matches}
    histories = {
        sid: daily_history(
            [e for e in events if e.store_id == sid], as_of=as_of, days=settings.history_days
        )
        for sid in store_ids
    }

    short_since = as_of - timedelta(days=settings.confidence_window_days - 1)
    candidates = []
    for match in matches:
        source_history = histories[match.source.store_id]
        target_history = histories[match.target.store_id]
        breakdown = score_transfer(
            match,
            units_since(source_history, short_since),
            units_since(target_history, short_since),
            window_days=settings.confidence_window_days,
            full_scale=settings.confidence_full_scale,
            precedence_floor_days=settings.precedence_floor_days,
            hard_floor_days=settings.hard_floor_days,
        )
        candidates.append(
            build_candidate(
                match,
                breakdown,
                product_assessments=product_assessments,
                source_history=source_history,
                target_history=target_history,
                avg_units_per_transaction=avg_units,
            )
        )
    return candidates


def _has_pairing(assessments: list[RiskAssessment], settings: Settings) -> bool:
    has_source = any(is_source_candidate(a, settings.transfer_min_source_qty) for a in assessments)
    return has_source and any(is_target_candidate(a) for a in assessments)


def find_transfer_opportunities(
    db: Session,
    *,
    store_id: str | None = None,
    as_of: date | None = None,
    session_factory: SessionFactory | None = None,
    max_workers: int | None = None,
    timeout: float | None = None,
) -> TransferReport:
    """Recommend cross-store transfers of low-stock products.

    Risk is assessed across all stores, then every product with both a
    donor and a low-stock store is scored in the worker pool.

    Args:
        db: Database session for the risk snapshot
        store_id: Only recommend transfers into this store (optional)
        as_of: Analysis date (defaults to today)
        session_factory: Opens the per-worker sessions
        max_workers: Worker pool size (defaults to settings)
        timeout: Seconds to wait for the workers (defaults to settings)

    Returns:
        TransferReport with candidates ranked by confidence

    Raises:
        AnalysisUnavailableError: If the data source fails

    """
    settings = get_settings()
    as_of = as_of or date.today()
    session_factory = session_factory or SessionLocal
    max_workers = max(1, max_workers or settings.analysis_max_workers)
    timeout = timeout if timeout is not None else settings.analysis_timeout_seconds

    with _tracked("transfers") as run:
        repo = InsightsRepository(db, analysis="transfers")
        snapshot = _risk_snapshot(
            repo,
            settings,
            store_id=None,
            outlook_days=settings.default_outlook_days,
            as_of=as_of,
        )

        ordered = sorted(snapshot.assessments, key=lambda a: (a.product_id, a.store_id))
        work = {}
        for product_id, group in groupby(ordered, key=lambda a: a.product_id):
            assessments = list(group)
            if _has_pairing(assessments, settings):
                work[product_id] = assessments

        candidates: list[TransferCandidate] = []
        unanalyzed: list[str] = []

        if work:
            stop = threading.Event()
            executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="transfers")
            futures = {
                executor.submit(
                    _score_product,
                    session_factory,
                    assessments,
                    target_store_id=store_id,
                    avg_units=snapshot.avg_units.get(product_id),
                    as_of=as_of,
                    settings=settings,
                    stop=stop,
                ): product_id
                for product_id, assessments in work.items()
            }
            collected = set()
            try:
                for future in as_completed(futures, timeout=timeout):
                    candidates.extend(future.result())
                    collected.add(future)
            except FuturesTimeoutError:
                for future, product_id in futures.items():
                    if future in collected:
                        continue
                    if future.done() and not future.cancelled():
                        candidates.extend(future.result())
                    else:
                        unanalyzed.append(product_id)
                run["status"] = "partial"
                log.warning(
                    "transfer_analysis_partial",
                    extra={"timeout_seconds": timeout, "unanalyzed": len(unanalyzed)},
                )
            finally:
                stop.set()
                executor.shutdown(wait=False, cancel_futures=True)

        ranked = rank_transfers(candidates)

    for candidate in ranked:
        transfer_candidates_total.labels(confidence_level=candidate.confidence_level).inc()

    log.info(
        "transfer_analysis_complete",
        extra={
            "store_id": store_id,
            "products_scored": len(work),
            "candidates": len(ranked),
            "partial": bool(unanalyzed),
        },
    )
    return TransferReport(
        candidates=ranked,
        partial=bool(unanalyzed),
        unanalyzed_product_ids=tuple(sorted(unanalyzed)),
    )


# --- Auxiliary analyzers ---


def detect_dead_stock(
    db: Session, *, store_id: str | None = None, as_of: date | None = None
) -> list[DeadStockItem]:
    """Graded tires over the minimum quantity with no sale in the window."""
    settings = get_settings()
    as_of = as_of or date.today()
    since = as_of - timedelta(days=settings.dead_stock_days)

    with _tracked("dead_stock"):
        repo = InsightsRepository(db, analysis="dead_stock")
        stocked = repo.stocked_products(min_qty=settings.dead_stock_min_qty, store_id=store_id)
        sold = repo.units_sold(since, as_of, store_id=store_id, active_only=True)
        sold_ids = {product_id for product_id, _ in sold}
        items = find_dead_stock(
            stocked,
            sold_ids,
            min_qty=settings.dead_stock_min_qty,
            days=settings.dead_stock_days,
        )

    log.info("dead_stock_complete", extra={"store_id": store_id, "items": len(items)})
    return items


def compute_margin_leakage(
    db: Session, *, store_id: str | None = None, as_of: date | None = None
) -> list[MarginAlert]:
    """Categories whose gross margin is under target."""
    settings = get_settings()
    as_of = as_of or date.today()
    since = as_of - timedelta(days=settings.margin_window_days)

    with _tracked("margin_leakage"):
        repo = InsightsRepository(db, analysis="margin_leakage")
        totals = repo.category_totals(since, store_id=store_id)
        alerts = margin_leakage(
            totals,
            targets=settings.margin_targets,
            default_target=settings.margin_default_target,
        )

    log.info("margin_leakage_complete", extra={"store_id": store_id, "alerts": len(alerts)})
    return alerts


def compute_attachment_rate(
    db: Session, *, store_id: str | None = None, as_of: date | None = None
) -> AttachmentRate:
    """Share of tire invoices that also sold an alignment."""
    settings = get_settings()
    as_of = as_of or date.today()
    since = as_of - timedelta(days=settings.attachment_window_days)

    with _tracked("attachment_rate"):
        repo = InsightsRepository(db, analysis="attachment_rate")
        invoice_ids = repo.tire_invoice_ids(since, store_id=store_id)
        with_alignment = repo.alignment_invoice_count(invoice_ids)
        result = attachment_rate(
            len(invoice_ids),
            with_alignment,
            alignment_price=settings.alignment_price,
            window_days=settings.attachment_window_days,
        )

    return result


def technician_utilization(
    db: Session, *, store_id: str | None = None, as_of: date | None = None
) -> TechnicianUtilization:
    """Billed hours of active technicians against their capacity."""
    settings = get_settings()
    as_of = as_of or date.today()
    since = as_of - timedelta(weeks=settings.utilization_weeks)

    with _tracked("technician_utilization"):
        repo = InsightsRepository(db, analysis="technician_utilization")
        names = repo.active_technician_names(store_id=store_id)
        records = repo.labor_records(since, names, store_id=store_id)
        result = compute_utilization(
            len(names),
            records,
            weeks=settings.utilization_weeks,
            hours_per_week=settings.utilization_hours_per_week,
            estimated_rate=settings.utilization_estimated_rate,
        )

    return result


def top_tires_by_category(
    db: Session, *, store_id: str | None = None, as_of: date | None = None
) -> dict[str, list[TopTire]]:
    """Best-selling tires per type with monthly sales history."""
    settings = get_settings()
    as_of = as_of or date.today()
    since = as_of - timedelta(days=settings.risk_lookback_days)

    with _tracked("top_tires"):
        repo = InsightsRepository(db, analysis="top_tires")
        sales = repo.product_sales(since, store_id=store_id)
        top = build_top_tires(
            sales,
            {},
            as_of=as_of,
            per_category=settings.top_tires_per_category,
            lookback_days=settings.risk_lookback_days,
            months=settings.top_tires_history_months,
        )
        product_ids = sorted(t.product_id for ranked in top.values() for t in ranked)
        if product_ids:
            first_month = month_keys(as_of, settings.top_tires_history_months)[0]
            history_since = date.fromisoformat(f"{first_month}-01")
            monthly = repo.monthly_sales(history_since, product_ids, store_id=store_id)
            top = build_top_tires(
                sales,
                monthly,
                as_of=as_of,
                per_category=settings.top_tires_per_category,
                lookback_days=settings.risk_lookback_days,
                months=settings.top_tires_history_months,
            )

    return top
