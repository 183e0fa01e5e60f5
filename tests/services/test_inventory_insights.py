"""Tests for the inventory insights service against a seeded database."""

from __future__ import annotations

import threading

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session

from tire_insights.core.config import get_settings
from tire_insights.core.errors import AnalysisUnavailableError
from tire_insights.services.inventory_insights import (
    _score_product,
    analyze_inventory_risk,
    compute_attachment_rate,
    compute_margin_leakage,
    detect_dead_stock,
    find_transfer_opportunities,
    technician_utilization,
    top_tires_by_category,
)
from tire_insights.services.repository import InsightsRepository


def test_inventory_risk_all_stores(db, seeded):
    """Every graded tire row is assessed, placeholders excluded."""
    results = analyze_inventory_risk(db, as_of=seeded)

    assert [(a.product_id, a.store_id) for a in results] == [
        ("P1", "S1"),
        ("P1", "S2"),
        ("P1", "S3"),
        ("P2", "S2"),
    ]

    downtown, northside, airport, truck = results
    assert downtown.daily_velocity == pytest.approx(0.2)
    assert downtown.min_stock_level == 4
    assert downtown.suggested_order_qty == 4
    assert downtown.status == "LowStock"
    assert northside.status == "Overstock"
    assert airport.status == "OK"
    assert airport.days_of_supply == 0.0
    # No sales history: light truck default of 4
    assert truck.min_stock_level == 4
    assert truck.days_of_supply == 999.0


def test_inventory_risk_store_filter_and_threshold(db, seeded):
    only_north = analyze_inventory_risk(db, store_id="S2", as_of=seeded)
    alerts = analyze_inventory_risk(db, oos_threshold=10, as_of=seeded)

    assert {a.store_id for a in only_north} == {"S2"}
    assert [(a.product_id, a.store_id) for a in alerts] == [("P1", "S1")]


def test_unknown_store_is_empty(db, seeded):
    assert analyze_inventory_risk(db, store_id="NOPE", as_of=seeded) == []


def test_transfer_opportunities(db, session_factory, seeded):
    """Idle Northside stock is sent to Downtown with full confidence."""
    report = find_transfer_opportunities(db, session_factory=session_factory, as_of=seeded)

    assert not report.partial
    assert len(report.candidates) == 1

    candidate = report.candidates[0]
    assert candidate.product_id == "P1"
    assert candidate.source_store_id == "S2"
    assert candidate.target_store_id == "S1"
    assert candidate.quantity == 4
    assert candidate.confidence_score == 100
    assert candidate.confidence_level == "High"
    assert len(candidate.source_history) == 180
    assert sum(p.quantity for p in candidate.target_history) == 36
    assert candidate.source_history[-1].d == seeded
    assert [s.store_id for s in candidate.all_stores_inventory] == ["S2", "S1", "S3"]


def test_transfer_target_store_filter(db, session_factory, seeded):
    """Filtering by store keeps only transfers into that store."""
    into_downtown = find_transfer_opportunities(
        db, store_id="S1", session_factory=session_factory, as_of=seeded
    )
    into_northside = find_transfer_opportunities(
        db, store_id="S2", session_factory=session_factory, as_of=seeded
    )

    assert len(into_downtown.candidates) == 1
    assert into_northside.candidates == []


def test_pipeline_is_idempotent(db, session_factory, seeded):
    """Two runs over the same snapshot give identical results."""
    first_risk = analyze_inventory_risk(db, as_of=seeded)
    second_risk = analyze_inventory_risk(db, as_of=seeded)
    first = find_transfer_opportunities(db, session_factory=session_factory, as_of=seeded)
    second = find_transfer_opportunities(db, session_factory=session_factory, as_of=seeded)

    assert first_risk == second_risk
    assert first.candidates == second.candidates
    assert first.candidates[0].rationale_hash == second.candidates[0].rationale_hash


def test_timeout_reports_partial_result(db, session_factory, seeded):
    """Unfinished products are reported instead of silently dropped."""
    release = threading.Event()

    def slow_factory():
        release.wait(5)
        return session_factory()

    try:
        report = find_transfer_opportunities(
            db, session_factory=slow_factory, as_of=seeded, timeout=0.05
        )
    finally:
        release.set()

    assert report.partial
    assert report.unanalyzed_product_ids == ("P1",)
    assert report.candidates == []


def test_stopped_worker_skips_history_fetch(db, engine, session_factory, seeded):
    """A worker released after the deadline returns without querying."""
    assessments = analyze_inventory_risk(db, as_of=seeded)
    p1 = [a for a in assessments if a.product_id == "P1"]
    stop = threading.Event()
    statements = []

    def late_factory():
        stop.set()
        return session_factory()

    def record(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    event.listen(engine, "before_cursor_execute", record)
    try:
        result = _score_product(
            late_factory,
            p1,
            target_store_id=None,
            avg_units=4.0,
            as_of=seeded,
            settings=get_settings(),
            stop=stop,
        )
    finally:
        event.remove(engine, "before_cursor_execute", record)

    assert result == []
    assert statements == []


def test_worker_scores_when_not_stopped(db, session_factory, seeded):
    assessments = analyze_inventory_risk(db, as_of=seeded)
    p1 = [a for a in assessments if a.product_id == "P1"]

    result = _score_product(
        session_factory,
        p1,
        target_store_id=None,
        avg_units=4.0,
        as_of=seeded,
        settings=get_settings(),
        stop=threading.Event(),
    )

    assert [(c.source_store_id, c.target_store_id) for c in result] == [("S2", "S1")]


def test_storage_failure_is_unavailable(tmp_path):
    """A broken data source fails the analysis as a whole."""
    engine = create_engine(f"sqlite:///{tmp_path / 'empty.db'}")

    with Session(engine) as db:
        with pytest.raises(AnalysisUnavailableError) as exc_info:
            analyze_inventory_risk(db)

    assert exc_info.value.analysis == "inventory_risk"
    engine.dispose()


def test_repository_returns_zero_not_none(db, seeded):
    """Lookups for unknown products come back empty, not None."""
    repo = InsightsRepository(db)

    assert repo.average_units_per_transaction(["NOPE"]) == {}
    assert repo.average_units_per_transaction([]) == {}
    assert repo.units_sold(seeded, seeded, store_id="NOPE") == {}
    assert repo.alignment_invoice_count([]) == 0


def test_dead_stock(db, seeded):
    items = detect_dead_stock(db, as_of=seeded)

    assert [(i.product_id, i.store_id) for i in items] == [("P2", "S2")]
    assert items[0].value == 2400.0
    assert items[0].product_name == "BFGoodrich KO2 265/70R17"


def test_margin_leakage(db, seeded):
    alerts = compute_margin_leakage(db, as_of=seeded)

    assert [a.category for a in alerts] == ["TIRES"]
    assert alerts[0].current_margin == 10.0


def test_attachment_rate(db, seeded):
    result = compute_attachment_rate(db, as_of=seeded)

    assert result.total_tire_invoices == 6
    assert result.invoices_with_alignment == 1
    assert result.value == 16.7


def test_technician_utilization(db, seeded):
    result = technician_utilization(db, as_of=seeded)

    assert result.tech_count == 1
    assert result.total_billed_hours == 3.5
    assert result.capacity_hours == 160.0
    assert result.insight == "Underutilized - Check Scheduling"


def test_top_tires(db, seeded):
    top = top_tires_by_category(db, as_of=seeded)

    assert list(top) == ["Passenger"]
    best = top["Passenger"][0]
    assert best.product_id == "P1"
    assert best.total_sold == 44
    assert best.current_quantity == 42
    assert sum(p.quantity for p in best.history) == 44
