"""
Inventory ledger: opening quantities minus units sold since the stock start date.

  - Only products / groups with a recorded opening quantity appear; there is no
    implicit zero opening.
  - A product that belongs to a group is counted only through its group.
  - Sales count when the order is dated on or after the start date (calendar day)
    and its status passes is_order_valid_for_accounting().
  - current = max(0, opening - sold): oversell from inconsistent data is absorbed.
"""
import logging
from collections import defaultdict
from datetime import datetime, time
from statistics import mean
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from ..errors import NotFoundError, ValidationFailed
from ..models.orders import Order, OrderItem
from ..models.products import (
    InventoryConfig, Product, ProductGroup, ProductGroupItem, ProductGroupStock, ProductStock,
)
from ..schemas.inventory import (
    InventoryConfigOut, ProductStockRow, ProjectionLine, StockLine, StockProjection, StockReport,
)
from ..schemas.products import ProductRef
from ..utils.order_status import is_order_valid_for_accounting
from ..utils.parsing import is_blank, parse_date_only_as_noon

logger = logging.getLogger(__name__)

_CONFIG_ID = 1


# =============================================================================
# Config
# =============================================================================

def _config_row(db: Session) -> Optional[InventoryConfig]:
    return db.get(InventoryConfig, _CONFIG_ID)


def get_config(db: Session) -> InventoryConfigOut:
    row = _config_row(db)
    start = row.stock_start_date if row else None
    return InventoryConfigOut(stock_start_date=start.date() if start else None)


def set_stock_start_date(db: Session, raw: Optional[str]) -> InventoryConfigOut:
    value = parse_date_only_as_noon(raw)
    if value is None and not is_blank(raw):
        raise ValidationFailed(f"Invalid stock start date {raw!r}: expected YYYY-MM-DD")
    row = _config_row(db)
    if row is None:
        row = InventoryConfig(id=_CONFIG_ID)
        db.add(row)
    row.stock_start_date = value
    db.commit()
    logger.info("Stock start date set to %s", value.date() if value else None)
    return get_config(db)


def stock_cutoff(db: Session) -> Optional[datetime]:
    """Start of the configured calendar day, or None when no start date is set."""
    row = _config_row(db)
    if row is None or row.stock_start_date is None:
        return None
    return datetime.combine(row.stock_start_date.date(), time.min)


# =============================================================================
# Opening quantities
# =============================================================================

def list_product_stock(db: Session) -> list[ProductStockRow]:
    rows = (
        db.query(ProductStock)
        .options(selectinload(ProductStock.product))
        .join(Product, Product.id == ProductStock.product_id)
        .order_by(Product.name)
        .all()
    )
    return [
        ProductStockRow(
            product_id=r.product_id,
            product=ProductRef.model_validate(r.product),
            quantity=r.quantity,
        )
        for r in rows
    ]


def set_product_stock(db: Session, product_id: int, quantity: int) -> ProductStockRow:
    if quantity < 0:
        raise ValidationFailed("Opening quantity cannot be negative")
    product = db.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product", product_id)
    row = db.query(ProductStock).filter(ProductStock.product_id == product_id).first()
    if row is None:
        row = ProductStock(product_id=product_id)
        db.add(row)
    row.quantity = quantity
    db.commit()
    return ProductStockRow(product_id=product_id, product=ProductRef.model_validate(product), quantity=quantity)


def set_group_stock(db: Session, product_group_id: int, quantity: int) -> dict:
    if quantity < 0:
        raise ValidationFailed("Opening quantity cannot be negative")
    if db.get(ProductGroup, product_group_id) is None:
        raise NotFoundError("ProductGroup", product_group_id)
    row = (
        db.query(ProductGroupStock)
        .filter(ProductGroupStock.product_group_id == product_group_id)
        .first()
    )
    if row is None:
        row = ProductGroupStock(product_group_id=product_group_id)
        db.add(row)
    row.quantity = quantity
    db.commit()
    return {"product_group_id": product_group_id, "quantity": quantity}


# =============================================================================
# Ledger
# =============================================================================

def units_sold_by_product(db: Session, since: Optional[datetime]) -> dict[int, int]:
    q = (
        db.query(OrderItem.product_id, OrderItem.quantity, Order.status)
        .join(Order, Order.id == OrderItem.order_id)
        .filter(OrderItem.product_id.isnot(None))
    )
    if since is not None:
        q = q.filter(Order.order_date >= since)

    sold: dict[int, int] = defaultdict(int)
    for product_id, quantity, status in q.all():
        if is_order_valid_for_accounting(status):
            sold[product_id] += quantity or 0
    return sold


def _as_float(val) -> Optional[float]:
    return float(val) if val is not None else None


def _group_cost(products: list[Product]) -> Optional[float]:
    costs = [float(p.cost_price) for p in products if p.cost_price is not None]
    return round(mean(costs), 2) if costs else None


def current_stock(db: Session) -> StockReport:
    cutoff = stock_cutoff(db)
    sold = units_sold_by_product(db, cutoff)
    grouped = {pk for (pk,) in db.query(ProductGroupItem.product_id).all()}

    items: list[StockLine] = []

    standalone = (
        db.query(ProductStock, Product)
        .join(Product, Product.id == ProductStock.product_id)
        .order_by(Product.name)
        .all()
    )
    for stock, product in standalone:
        if product.id in grouped:
            continue
        product_sold = sold.get(product.id, 0)
        items.append(StockLine(
            type="product",
            product_id=product.id,
            code=product.code,
            name=product.name,
            opening=stock.quantity,
            sold=product_sold,
            current=max(0, stock.quantity - product_sold),
            cost_price=_as_float(product.cost_price),
        ))

    groups = (
        db.query(ProductGroup)
        .join(ProductGroupStock, ProductGroupStock.product_group_id == ProductGroup.id)
        .options(
            selectinload(ProductGroup.items).selectinload(ProductGroupItem.product),
            selectinload(ProductGroup.stock),
        )
        .order_by(ProductGroup.name)
        .all()
    )
    for group in groups:
        members = [gi.product for gi in group.items]
        group_sold = sum(sold.get(p.id, 0) for p in members)
        opening = group.stock.quantity
        items.append(StockLine(
            type="group",
            product_group_id=group.id,
            name=group.name,
            opening=opening,
            sold=group_sold,
            current=max(0, opening - group_sold),
            cost_price=_group_cost(members),
            product_names=[p.name for p in members],
        ))

    return StockReport(
        stock_start_date=cutoff.date() if cutoff else None,
        items=items,
    )


def average_unit_prices(db: Session) -> dict[int, list[float]]:
    """Observed positive unit prices per product across all order items."""
    prices: dict[int, list[float]] = defaultdict(list)
    rows = (
        db.query(OrderItem.product_id, OrderItem.unit_price)
        .filter(OrderItem.product_id.isnot(None), OrderItem.unit_price > 0)
        .all()
    )
    for product_id, unit_price in rows:
        prices[product_id].append(float(unit_price))
    return prices


def stock_projection(db: Session) -> StockProjection:
    """
    Value remaining stock as if it sold out: average observed unit price first,
    cost price when the product never sold at a positive price, else 0.
    Projected cost always uses cost price (0 when unset).
    """
    report = current_stock(db)
    prices = average_unit_prices(db)
    members_by_group: dict[int, list[int]] = defaultdict(list)
    for group_id, product_id in db.query(ProductGroupItem.product_group_id, ProductGroupItem.product_id).all():
        members_by_group[group_id].append(product_id)

    details: list[ProjectionLine] = []
    for line in report.items:
        if line.type == "group":
            observed = [p for pk in members_by_group.get(line.product_group_id, []) for p in prices.get(pk, [])]
        else:
            observed = prices.get(line.product_id, [])
        cost = line.cost_price or 0.0
        unit_price = round(mean(observed), 2) if observed else cost
        details.append(ProjectionLine(
            type=line.type,
            product_id=line.product_id,
            product_group_id=line.product_group_id,
            name=line.name,
            current=line.current,
            unit_price=unit_price,
            revenue=round(line.current * unit_price, 2),
            cost=round(line.current * cost, 2),
        ))

    return StockProjection(
        stock_start_date=report.stock_start_date,
        projected_revenue=round(sum(d.revenue for d in details), 2),
        projected_cost=round(sum(d.cost for d in details), 2),
        details=details,
    )
