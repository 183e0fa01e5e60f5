"""Inventory, margin and workforce insight endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query

from tire_insights.services import inventory_insights
from tire_insights.web.deps import DBSession, SessionFactory, StoreId
from tire_insights.web.schemas import (
    AttachmentRateOut,
    DeadStockOut,
    MarginAlertOut,
    RiskItem,
    TopTireOut,
    TransferItem,
    TransferResponse,
    UtilizationOut,
)

router = APIRouter()


@router.get("/inventory/restock", response_model=list[RiskItem])
def get_restock_alerts(
    db: DBSession,
    store_id: StoreId = None,
    outlook_days: int = Query(30, ge=1, description="Reorder horizon in days"),
    oos_threshold: int = Query(
        0, ge=0, description="Max days out of stock to alert on (0 returns every item)"
    ),
) -> list[RiskItem]:
    """Get inventory risk with reorder suggestions.

    With ``oos_threshold`` > 0 only restock alerts are returned, largest
    suggested order first.
    """
    assessments = inventory_insights.analyze_inventory_risk(
        db, store_id=store_id, outlook_days=outlook_days, oos_threshold=oos_threshold
    )
    return [RiskItem.model_validate(a) for a in assessments]


@router.get("/inventory/transfers", response_model=TransferResponse)
def get_transfer_recommendations(
    db: DBSession,
    session_factory: SessionFactory,
    store_id: StoreId = None,
) -> TransferResponse:
    """Get cross-store transfer recommendations ranked by confidence.

    When ``store_id`` is given only transfers into that store are returned.
    """
    report = inventory_insights.find_transfer_opportunities(
        db, store_id=store_id, session_factory=session_factory
    )
    return TransferResponse(
        items=[TransferItem.model_validate(c) for c in report.candidates],
        partial=report.partial,
        unanalyzed_product_ids=list(report.unanalyzed_product_ids),
    )


@router.get("/inventory/dead-stock", response_model=list[DeadStockOut])
def get_dead_stock(db: DBSession, store_id: StoreId = None) -> list[DeadStockOut]:
    """Get stock that has not sold in the dead-stock window."""
    items = inventory_insights.detect_dead_stock(db, store_id=store_id)
    return [DeadStockOut.model_validate(i) for i in items]


@router.get("/inventory/top-tires", response_model=dict[str, list[TopTireOut]])
def get_top_tires(db: DBSession, store_id: StoreId = None) -> dict[str, list[TopTireOut]]:
    """Get best-selling tires per type with monthly history."""
    top = inventory_insights.top_tires_by_category(db, store_id=store_id)
    return {
        category: [TopTireOut.model_validate(t) for t in ranked] for category, ranked in top.items()
    }


@router.get("/workforce/utilization", response_model=UtilizationOut)
def get_technician_utilization(db: DBSession, store_id: StoreId = None) -> UtilizationOut:
    """Get billed hours of active technicians against capacity."""
    result = inventory_insights.technician_utilization(db, store_id=store_id)
    return UtilizationOut.model_validate(result)


@router.get("/margin/leakage", response_model=list[MarginAlertOut])
def get_margin_leakage(db: DBSession, store_id: StoreId = None) -> list[MarginAlertOut]:
    """Get categories whose margin is below target."""
    alerts = inventory_insights.compute_margin_leakage(db, store_id=store_id)
    return [MarginAlertOut.model_validate(a) for a in alerts]


@router.get("/margin/attachment", response_model=AttachmentRateOut)
def get_attachment_rate(db: DBSession, store_id: StoreId = None) -> AttachmentRateOut:
    """Get the alignment attachment rate on tire invoices."""
    result = inventory_insights.compute_attachment_rate(db, store_id=store_id)
    return AttachmentRateOut.model_validate(result)
