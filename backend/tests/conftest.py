import os

# Must be set before backoffice.config is imported anywhere
os.environ["DATABASE_URL"] = "sqlite://"

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from backoffice.database import Base, get_db
from backoffice.main import app
from backoffice.models import Order, OrderItem, Product


@pytest.fixture()
def engine():
    # One shared in-memory connection so the TestClient thread sees the same data
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def make_product(db):
    def _make(code: str, name: str = "", cost_price=None, source: str = "shopee") -> Product:
        product = Product(code=f"{source}_{code}", name=name or code, cost_price=cost_price, source=source)
        db.add(product)
        db.flush()
        return product
    return _make


@pytest.fixture()
def make_order(db):
    """Insert an order with (product, quantity, unit_price) lines and commit."""
    def _make(
        order_id: str,
        order_date: datetime,
        total: float,
        channel: str = "shopee",
        status: str = "Concluído",
        lines=(),
        **fields,
    ) -> Order:
        order = Order(
            order_id=order_id,
            channel=channel,
            order_date=order_date,
            total_price=total,
            status=status,
            quantity=sum(q for _, q, _ in lines),
            product_name=" | ".join(p.name for p, _, _ in lines),
            **fields,
        )
        db.add(order)
        db.flush()
        for product, quantity, unit_price in lines:
            db.add(OrderItem(
                order_id=order.id,
                channel=channel,
                product_code=product.code.split("_", 1)[1],
                name=product.name,
                unit_price=unit_price,
                quantity=quantity,
                line_total=round(unit_price * quantity, 2),
                product_id=product.id,
            ))
        db.commit()
        return order
    return _make
