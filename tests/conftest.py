"""Shared pytest fixtures and configuration."""

from __future__ import annotations

from datetime import date, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from tire_insights.db.models import (
    Base,
    Employee,
    InventoryLevel,
    Invoice,
    InvoiceLineItem,
    MechanicLabor,
    Product,
    Store,
)


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite so worker threads get their own connections."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'insights.db'}", connect_args={"check_same_thread": False}
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, future=True)


@pytest.fixture
def db(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def _invoice(session: Session, number: str, store_id: str, d: date, lines: list[dict]) -> Invoice:
    invoice = Invoice(invoice_number=number, store_id=store_id, invoice_date=d, status="ACTIVE")
    session.add(invoice)
    session.flush()
    for line in lines:
        session.add(InvoiceLineItem(invoice_id=invoice.id, **line))
    return invoice


@pytest.fixture
def seeded(db) -> date:
    """Three-store network, dated relative to today.

    P1 (passenger) sells fast at Downtown, which is down to 2 units, and
    sits idle at Northside with 40. P2 (light truck) has never sold.

    Returns:
        The analysis date (today)

    """
    today = date.today()

    downtown = Store(id="S1", code="DT", name="Downtown")
    northside = Store(id="S2", code="NS", name="Northside")
    airport = Store(id="S3", code="AP", name="Airport")
    db.add_all([downtown, northside, airport])

    db.add_all(
        [
            Product(
                id="P1",
                sku="MI-DEF-2256517",
                description="Michelin Defender 225/65R17",
                brand="Michelin",
                type="PASSENGER",
                quality="PREMIUM",
                unit_price=150.0,
            ),
            Product(
                id="P2",
                sku="BF-KO2-2657017",
                brand="BFGoodrich",
                pattern="KO2",
                size="265/70R17",
                type="LIGHT_TRUCK",
                quality="STANDARD",
                unit_price=200.0,
            ),
            Product(
                id="P3",
                sku="OP05",
                description="Road hazard option",
                type="OTHER",
                quality="UNKNOWN",
                unit_price=25.0,
            ),
        ]
    )
    db.flush()

    db.add_all(
        [
            InventoryLevel(product_id="P1", store_id="S1", quantity=2),
            InventoryLevel(product_id="P1", store_id="S2", quantity=40),
            InventoryLevel(product_id="P1", store_id="S3", quantity=0),
            InventoryLevel(product_id="P2", store_id="S2", quantity=12),
            InventoryLevel(product_id="P3", store_id="S1", quantity=50),
        ]
    )

    # Downtown: 9 sets of 4 in the last 45 days
    for i in range(1, 10):
        lines = [
            {
                "product_id": "P1",
                "quantity": 4,
                "category": "TIRES",
                "description": "Michelin Defender 225/65R17",
                "line_total": 600.0,
                "gross_profit": 60.0,
            }
        ]
        if i == 1:
            lines.append(
                {
                    "quantity": 1,
                    "category": "SERVICES",
                    "description": "4 Wheel Alignment",
                    "product_code": "ALIGN4",
                    "line_total": 89.99,
                    "gross_profit": 80.0,
                }
            )
        _invoice(db, f"DT-{i}", "S1", today - timedelta(days=5 * i), lines)

    # Northside: two sets of 4, both older than 60 days
    for i, days_ago in enumerate((100, 120), start=1):
        _invoice(
            db,
            f"NS-{i}",
            "S2",
            today - timedelta(days=days_ago),
            [
                {
                    "product_id": "P1",
                    "quantity": 4,
                    "category": "TIRES",
                    "line_total": 600.0,
                    "gross_profit": 90.0,
                }
            ],
        )

    mechanic = Employee(first_name="John", last_name="Smith", is_mechanic=True, status="ACTIVE")
    mechanic.stores.append(downtown)
    retired = Employee(first_name="Ann", last_name="Lee", is_mechanic=True, status="INACTIVE")
    db.add_all([mechanic, retired])

    db.add_all(
        [
            MechanicLabor(
                invoice_number="DT-1",
                mechanic_name="JOHN SMITH",
                category="AL4 4 Wheel Alignment",
                quantity=1.5,
                labor=89.99,
            ),
            MechanicLabor(
                invoice_number="DT-2",
                mechanic_name="JOHN SMITH",
                category="TIRE MOUNT & BALANCE",
                quantity=4,
                labor=100.0,
            ),
        ]
    )

    db.commit()
    return today
