"""
Product catalogue, manual product grouping and price suggestion.

Grouping rules:
  - A group needs at least two distinct member products.
  - A product belongs to at most one group (unique product_group_items.product_id).
    Violations raise AlreadyGroupedError before anything is written.
"""
import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from ..errors import AlreadyGroupedError, NotFoundError, ValidationFailed
from ..models.orders import OrderItem
from ..models.products import Product, ProductGroup, ProductGroupItem
from ..schemas.products import (
    ChannelPricing, PricingRow, ProductGroupOut, ProductOut, ProductRef,
)

logger = logging.getLogger(__name__)

MIN_GROUP_SIZE = 2


# =============================================================================
# Products
# =============================================================================

def _product_query(db: Session):
    counts = (
        db.query(OrderItem.product_id, func.count(OrderItem.id).label("n"))
        .filter(OrderItem.product_id.isnot(None))
        .group_by(OrderItem.product_id)
        .subquery()
    )
    q = (
        db.query(Product, func.coalesce(counts.c.n, 0), ProductGroupItem.product_group_id)
        .outerjoin(counts, counts.c.product_id == Product.id)
        .outerjoin(ProductGroupItem, ProductGroupItem.product_id == Product.id)
    )
    return q


def _product_out(p: Product, n, group_id: Optional[int]) -> ProductOut:
    return ProductOut(
        id=p.id,
        code=p.code,
        name=p.name,
        cost_price=float(p.cost_price) if p.cost_price is not None else None,
        source=p.source,
        order_item_count=int(n),
        product_group_id=group_id,
    )


def list_products(db: Session, search: Optional[str] = None, channel: Optional[str] = None) -> list[ProductOut]:
    q = _product_query(db)
    if search:
        pattern = f"%{search.strip()}%"
        q = q.filter(Product.name.ilike(pattern) | Product.code.ilike(pattern))
    if channel:
        q = q.filter(Product.source == channel)

    return [_product_out(p, n, group_id) for p, n, group_id in q.order_by(Product.name).all()]


def get_product(db: Session, product_id: int) -> Product:
    product = db.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product", product_id)
    return product


def update_product(db: Session, product_id: int, cost_price: Optional[float], name: Optional[str] = None) -> Product:
    """Set (or clear, with None) the manual cost price; optionally rename."""
    product = get_product(db, product_id)
    product.cost_price = cost_price
    if name and name.strip():
        product.name = name.strip()
    db.commit()
    db.refresh(product)
    return product


def product_out(db: Session, product_id: int) -> ProductOut:
    row = _product_query(db).filter(Product.id == product_id).first()
    if row is None:
        raise NotFoundError("Product", product_id)
    return _product_out(*row)


# =============================================================================
# Groups
# =============================================================================

def _group_out(group: ProductGroup) -> ProductGroupOut:
    return ProductGroupOut(
        id=group.id,
        name=group.name,
        products=[ProductRef.model_validate(gi.product) for gi in group.items],
        stock_quantity=group.stock.quantity if group.stock else None,
        created_at=group.created_at,
    )


def _load_group(db: Session, group_id: int) -> ProductGroup:
    group = (
        db.query(ProductGroup)
        .options(selectinload(ProductGroup.items).selectinload(ProductGroupItem.product))
        .filter(ProductGroup.id == group_id)
        .first()
    )
    if group is None:
        raise NotFoundError("ProductGroup", group_id)
    return group


def _validate_members(db: Session, product_ids: list[int], group_id: Optional[int] = None) -> list[int]:
    ids = list(dict.fromkeys(product_ids))
    if len(ids) < MIN_GROUP_SIZE:
        raise ValidationFailed(f"A product group needs at least {MIN_GROUP_SIZE} distinct products")

    found = {pk for (pk,) in db.query(Product.id).filter(Product.id.in_(ids)).all()}
    missing = [pk for pk in ids if pk not in found]
    if missing:
        raise NotFoundError("Product", missing[0] if len(missing) == 1 else missing)

    q = db.query(ProductGroupItem.product_id).filter(ProductGroupItem.product_id.in_(ids))
    if group_id is not None:
        q = q.filter(ProductGroupItem.product_group_id != group_id)
    taken = sorted(pk for (pk,) in q.all())
    if taken:
        raise AlreadyGroupedError(taken)
    return ids


def list_groups(db: Session) -> list[ProductGroupOut]:
    groups = (
        db.query(ProductGroup)
        .options(
            selectinload(ProductGroup.items).selectinload(ProductGroupItem.product),
            selectinload(ProductGroup.stock),
        )
        .order_by(ProductGroup.name)
        .all()
    )
    return [_group_out(g) for g in groups]


def create_group(db: Session, name: str, product_ids: list[int]) -> ProductGroupOut:
    ids = _validate_members(db, product_ids)
    group = ProductGroup(name=name.strip())
    group.items = [ProductGroupItem(product_id=pk) for pk in ids]
    db.add(group)
    try:
        db.commit()
    except IntegrityError as exc:
        # Lost a race with a concurrent grouping of the same product
        db.rollback()
        raise AlreadyGroupedError(ids) from exc
    logger.info("Created product group %d (%s) with %d products", group.id, group.name, len(ids))
    return _group_out(_load_group(db, group.id))


def update_group(db: Session, group_id: int, name: Optional[str], product_ids: Optional[list[int]]) -> ProductGroupOut:
    group = _load_group(db, group_id)
    if product_ids is not None:
        ids = _validate_members(db, product_ids, group_id=group_id)
        current = {gi.product_id: gi for gi in group.items}
        for pk, gi in current.items():
            if pk not in ids:
                group.items.remove(gi)
        db.flush()
        for pk in ids:
            if pk not in current:
                group.items.append(ProductGroupItem(product_id=pk))
    if name and name.strip():
        group.name = name.strip()
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise AlreadyGroupedError(list(product_ids or [])) from exc
    return _group_out(_load_group(db, group_id))


def delete_group(db: Session, group_id: int) -> None:
    """Delete a group (and its opening stock); member products are kept."""
    group = _load_group(db, group_id)
    db.delete(group)
    db.commit()
    logger.info("Deleted product group %d", group_id)


# =============================================================================
# Pricing
# =============================================================================

def suggested_sale_price(cost: Optional[float], pricing: ChannelPricing) -> Optional[float]:
    """
    Price P such that the percentage components of P leave exactly the cost:
    P * (1 - total%) = cost  →  P = cost / (1 - total%).
    """
    if cost is None:
        return None
    divisor = 1 - pricing.total_percent / 100
    if divisor <= 0:
        return None
    return round(cost / divisor, 2)


def pricing_table(db: Session, pricing: ChannelPricing, channel: Optional[str] = None,
                  search: Optional[str] = None) -> list[PricingRow]:
    return [
        PricingRow(
            product_id=p.id,
            code=p.code,
            name=p.name,
            cost_price=p.cost_price,
            suggested_price=suggested_sale_price(p.cost_price, pricing),
        )
        for p in list_products(db, search=search, channel=channel)
    ]
