"""Read-only data access for the insights engine.

Every query tolerates missing rows: sums come back as zero and lookups
as empty mappings, never None. Any SQLAlchemy failure is raised as
AnalysisUnavailableError so callers never see a silently truncated result.
"""

from __future__ import annotations

import time
from collections import defaultdict
from datetime import date

from sqlalchemy import distinct, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tire_insights.core.errors import AnalysisUnavailableError
from tire_insights.core.logging import get_logger
from tire_insights.core.metrics import db_query_duration_seconds
from tire_insights.db.models import (
    Employee,
    InventoryLevel,
    Invoice,
    InvoiceLineItem,
    MechanicLabor,
    Product,
    Store,
)
from tire_insights.domain.insights.dead_stock import StockedProduct
from tire_insights.domain.insights.margin import CategoryTotals
from tire_insights.domain.insights.top_tires import ProductSales
from tire_insights.domain.insights.utilization import LaborRecord
from tire_insights.domain.inventory.risk import InventoryPosition, ProductInfo
from tire_insights.domain.inventory.velocity import SaleEvent

log = get_logger("tire_insights.repository")

RISK_QUALITIES = ("PREMIUM", "STANDARD", "ECONOMY")
ACTIVE = "ACTIVE"


def product_name(product: Product) -> str:
    """Catalog description, or brand/pattern/size when missing."""
    if product.description:
        return product.description
    parts = [product.brand, product.pattern, product.size]
    return " ".join(p for p in parts if p)


def product_info(product: Product) -> ProductInfo:
    return ProductInfo(
        id=product.id,
        name=product_name(product),
        type=product.type or "OTHER",
        sku=product.sku,
        manufacturer_code=product.manufacturer_code,
        brand=product.brand,
        pattern=product.pattern,
        size=product.size,
    )


class InsightsRepository:
    """Queries backing one analysis run.

    Args:
        db: Session owned by the caller
        analysis: Name reported in errors and logs

    """

    def __init__(self, db: Session, analysis: str = "insights"):
        self.db = db
        self.analysis = analysis

    def _all(self, query_type: str, stmt) -> list:
        start = time.time()
        try:
            return list(self.db.execute(stmt).all())
        except SQLAlchemyError as e:
            log.error(
                "query_failed",
                extra={"analysis": self.analysis, "query_type": query_type, "error": str(e)},
                exc_info=True,
            )
            raise AnalysisUnavailableError(self.analysis, f"{query_type} query failed") from e
        finally:
            db_query_duration_seconds.labels(query_type=query_type).observe(time.time() - start)

    # --- Inventory risk & transfers ---

    def inventory_snapshot(self, store_id: str | None = None) -> list[InventoryPosition]:
        """Current on-hand rows for graded tires, one per (product, store)."""
        stmt = (
            select(Product, Store.id, Store.name, InventoryLevel.quantity)
            .join(InventoryLevel, InventoryLevel.product_id == Product.id)
            .join(Store, InventoryLevel.store_id == Store.id)
            .where(Product.is_tire.is_(True))
            .where(Product.quality.in_(RISK_QUALITIES))
            .order_by(Product.id, Store.id)
        )
        if store_id:
            stmt = stmt.where(Store.id == store_id)

        return [
            InventoryPosition(
                product=product_info(product),
                store_id=sid,
                store_name=name,
                quantity=int(qty or 0),
            )
            for product, sid, name, qty in self._all("inventory_snapshot", stmt)
        ]

    def sale_events(
        self,
        since: date,
        until: date,
        *,
        store_id: str | None = None,
        product_id: str | None = None,
    ) -> list[SaleEvent]:
        """Units sold per (product, store, day) between two dates inclusive."""
        qty = func.coalesce(func.sum(InvoiceLineItem.quantity), 0)
        stmt = (
            select(InvoiceLineItem.product_id, Invoice.store_id, Invoice.invoice_date, qty)
            .join(Invoice, InvoiceLineItem.invoice_id == Invoice.id)
            .where(InvoiceLineItem.product_id.is_not(None))
            .where(Invoice.invoice_date >= since)
            .where(Invoice.invoice_date <= until)
            .group_by(InvoiceLineItem.product_id, Invoice.store_id, Invoice.invoice_date)
        )
        if store_id:
            stmt = stmt.where(Invoice.store_id == store_id)
        if product_id:
            stmt = stmt.where(InvoiceLineItem.product_id == product_id)

        return [
            SaleEvent(product_id=pid, store_id=sid, d=d, quantity=float(q or 0))
            for pid, sid, d, q in self._all("sale_events", stmt)
        ]

    def units_sold(
        self,
        start: date,
        end: date,
        *,
        store_id: str | None = None,
        active_only: bool = False,
    ) -> dict[tuple[str, str], float]:
        """Summed units per (product, store) in a date range.

        Pairs without sales are absent; read with ``.get(key, 0.0)``.
        """
        stmt = (
            select(
                InvoiceLineItem.product_id,
                Invoice.store_id,
                func.coalesce(func.sum(InvoiceLineItem.quantity), 0),
            )
            .join(Invoice, InvoiceLineItem.invoice_id == Invoice.id)
            .where(InvoiceLineItem.product_id.is_not(None))
            .where(Invoice.invoice_date >= start)
            .where(Invoice.invoice_date <= end)
            .group_by(InvoiceLineItem.product_id, Invoice.store_id)
        )
        if store_id:
            stmt = stmt.where(Invoice.store_id == store_id)
        if active_only:
            stmt = stmt.where(Invoice.status == ACTIVE)

        return {(pid, sid): float(q or 0) for pid, sid, q in self._all("units_sold", stmt)}

    def average_units_per_transaction(self, product_ids: list[str]) -> dict[str, float]:
        """Mean line quantity per product across all stores and time."""
        if not product_ids:
            return {}
        stmt = (
            select(InvoiceLineItem.product_id, func.avg(InvoiceLineItem.quantity))
            .where(InvoiceLineItem.product_id.in_(product_ids))
            .group_by(InvoiceLineItem.product_id)
        )
        return {
            pid: float(avg or 0) for pid, avg in self._all("avg_units_per_transaction", stmt)
        }

    # --- Auxiliary analyzers ---

    def stocked_products(self, *, min_qty: int, store_id: str | None = None) -> list[StockedProduct]:
        """Graded tires holding more than ``min_qty`` units."""
        stmt = (
            select(Product, Store.id, Store.name, InventoryLevel.quantity)
            .join(InventoryLevel, InventoryLevel.product_id == Product.id)
            .join(Store, InventoryLevel.store_id == Store.id)
            .where(InventoryLevel.quantity > min_qty)
            .where(Product.is_tire.is_(True))
            .where(Product.quality != "UNKNOWN")
            .order_by(Product.id, Store.id)
        )
        if store_id:
            stmt = stmt.where(Store.id == store_id)

        return [
            StockedProduct(
                product=product_info(product),
                store_id=sid,
                store_name=name,
                quantity=int(qty),
                unit_price=float(product.unit_price or 0),
            )
            for product, sid, name, qty in self._all("stocked_products", stmt)
        ]

    def category_totals(self, since: date, *, store_id: str | None = None) -> list[CategoryTotals]:
        """Revenue and gross profit per line category on active invoices."""
        stmt = (
            select(
                InvoiceLineItem.category,
                func.coalesce(func.sum(InvoiceLineItem.line_total), 0),
                func.coalesce(func.sum(InvoiceLineItem.gross_profit), 0),
            )
            .join(Invoice, InvoiceLineItem.invoice_id == Invoice.id)
            .where(Invoice.invoice_date >= since)
            .where(Invoice.status == ACTIVE)
            .group_by(InvoiceLineItem.category)
            .order_by(InvoiceLineItem.category)
        )
        if store_id:
            stmt = stmt.where(Invoice.store_id == store_id)

        return [
            CategoryTotals(category=cat, revenue=float(rev or 0), profit=float(gp or 0))
            for cat, rev, gp in self._all("category_totals", stmt)
        ]

    def tire_invoice_ids(self, since: date, *, store_id: str | None = None) -> list[int]:
        """Active invoices with at least one tire line."""
        stmt = (
            select(distinct(Invoice.id))
            .join(InvoiceLineItem, InvoiceLineItem.invoice_id == Invoice.id)
            .where(Invoice.invoice_date >= since)
            .where(Invoice.status == ACTIVE)
            .where(InvoiceLineItem.category == "TIRES")
        )
        if store_id:
            stmt = stmt.where(Invoice.store_id == store_id)

        return [row[0] for row in self._all("tire_invoices", stmt)]

    def alignment_invoice_count(self, invoice_ids: list[int]) -> int:
        """How many of the given invoices include an alignment line."""
        if not invoice_ids:
            return 0
        stmt = select(func.count(distinct(InvoiceLineItem.invoice_id))).where(
            InvoiceLineItem.invoice_id.in_(invoice_ids),
            or_(
                InvoiceLineItem.description.ilike("%alignment%"),
                InvoiceLineItem.product_code.ilike("%ALIGN%"),
            ),
        )
        rows = self._all("alignment_invoices", stmt)
        return int(rows[0][0] or 0) if rows else 0

    def active_technician_names(self, *, store_id: str | None = None) -> list[str]:
        """Upper-cased full names of active mechanics."""
        stmt = (
            select(Employee.first_name, Employee.last_name)
            .where(Employee.is_mechanic.is_(True))
            .where(Employee.status == ACTIVE)
            .order_by(Employee.id)
        )
        if store_id:
            stmt = stmt.where(Employee.stores.any(Store.id == store_id))

        return [f"{first} {last}".upper() for first, last in self._all("technicians", stmt)]

    def labor_records(
        self, since: date, mechanic_names: list[str], *, store_id: str | None = None
    ) -> list[LaborRecord]:
        """Labor billed by the given mechanics on active invoices."""
        if not mechanic_names:
            return []
        stmt = (
            select(MechanicLabor.category, MechanicLabor.quantity, MechanicLabor.labor)
            .join(Invoice, MechanicLabor.invoice_number == Invoice.invoice_number)
            .where(Invoice.invoice_date >= since)
            .where(Invoice.status == ACTIVE)
            .where(func.upper(MechanicLabor.mechanic_name).in_(mechanic_names))
        )
        if store_id:
            stmt = stmt.where(Invoice.store_id == store_id)

        return [
            LaborRecord(category=cat, quantity=float(qty or 0), labor=float(labor or 0))
            for cat, qty, labor in self._all("labor_records", stmt)
        ]

    def product_sales(self, since: date, *, store_id: str | None = None) -> list[ProductSales]:
        """Tire units sold per product since a date, with current stock."""
        sold = func.sum(InvoiceLineItem.quantity)
        sales_stmt = (
            select(Product, sold)
            .join(InvoiceLineItem, InvoiceLineItem.product_id == Product.id)
            .join(Invoice, InvoiceLineItem.invoice_id == Invoice.id)
            .where(Invoice.invoice_date >= since)
            .where(Invoice.status == ACTIVE)
            .where(Product.is_tire.is_(True))
            .group_by(Product.id)
        )
        stock_stmt = select(
            InventoryLevel.product_id, func.coalesce(func.sum(InventoryLevel.quantity), 0)
        ).group_by(InventoryLevel.product_id)
        if store_id:
            sales_stmt = sales_stmt.where(Invoice.store_id == store_id)
            stock_stmt = stock_stmt.where(InventoryLevel.store_id == store_id)

        stock = {pid: int(q or 0) for pid, q in self._all("product_stock", stock_stmt)}
        return [
            ProductSales(
                product=product_info(product),
                total_sold=float(total or 0),
                current_quantity=stock.get(product.id, 0),
            )
            for product, total in self._all("product_sales", sales_stmt)
        ]

    def monthly_sales(
        self, since: date, product_ids: list[str], *, store_id: str | None = None
    ) -> dict[str, dict[str, float]]:
        """Units sold per product per YYYY-MM on active invoices."""
        if not product_ids:
            return {}
        stmt = (
            select(
                InvoiceLineItem.product_id,
                Invoice.invoice_date,
                func.coalesce(func.sum(InvoiceLineItem.quantity), 0),
            )
            .join(Invoice, InvoiceLineItem.invoice_id == Invoice.id)
            .where(Invoice.invoice_date >= since)
            .where(Invoice.status == ACTIVE)
            .where(InvoiceLineItem.product_id.in_(product_ids))
            .group_by(InvoiceLineItem.product_id, Invoice.invoice_date)
        )
        if store_id:
            stmt = stmt.where(Invoice.store_id == store_id)

        by_product: dict[str, dict[str, float]] = defaultdict(lambda: defaultdict(float))
        for pid, d, qty in self._all("monthly_sales", stmt):
            by_product[pid][d.strftime("%Y-%m")] += float(qty or 0)
        return {pid: dict(months) for pid, months in by_product.items()}
