"""
Order ingestion: channel export → canonical Order / OrderItem rows.

Duplicate behaviour:
  - Orders are upserted by (order_id, channel); items by (order, channel, product_code).
    Re-importing the same file leaves the store unchanged.
  - Rows without an order id or a parseable date are skipped and counted as rejected.
  - The whole file is one transaction: any database error rolls back every row.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..constants import Channel
from ..errors import ConflictError, FileFormatError, ValidationFailed
from ..models.finance import ImportLog
from ..models.orders import Order, OrderItem
from ..models.products import Product, ProductGroup, ProductGroupItem, ProductGroupStock, ProductStock
from ..schemas.uploads import IngestResult, ItemsIngestResult, PurgeResult
from ..utils.normalizers import (
    LINE_ITEM_CHANNELS,
    ORDER_ID_HEADERS,
    TRAY_ORDER_ID,
    ItemFields,
    NormalizedRow,
    normalize_row,
    normalize_tray_item_row,
)
from ..utils.product_resolver import ProductResolver
from ..utils.spreadsheet import read_rows
from .products import MIN_GROUP_SIZE

logger = logging.getLogger(__name__)

_IN_CHUNK = 500
_NAME_SEPARATOR = " | "

# Free-text fields are clipped to their column width so one verbose row cannot fail the batch
_ORDER_LABEL_LEN = Order.__table__.c.product_name.type.length
_STATUS_LEN = Order.__table__.c.status.type.length
_PAYMENT_TYPE_LEN = Order.__table__.c.payment_type.type.length
_ITEM_NAME_LEN = OrderItem.__table__.c.name.type.length


# =============================================================================
# Aggregation (pure)
# =============================================================================

@dataclass
class AggregatedOrder:
    order_id: str
    channel: str
    order_date: datetime
    status: str = ""
    product_name: str = ""
    quantity: int = 0
    total_price: float = 0.0
    freight: Optional[float] = None
    payment_type: Optional[str] = None
    commission_fee: Optional[float] = None
    service_fee: Optional[float] = None
    items: list[ItemFields] = field(default_factory=list)


def _max_reported(values: Iterable[Optional[float]]) -> Optional[float]:
    reported = [v for v in values if v is not None]
    return max(reported) if reported else None


def _first_text(values: Iterable[Optional[str]]) -> Optional[str]:
    return next((v for v in values if v), None)


def merge_items(items: Iterable[ItemFields]) -> list[ItemFields]:
    """Collapse lines sharing a product code (same SKU listed twice in one order)."""
    merged: dict[str, ItemFields] = {}
    for item in items:
        prev = merged.get(item.product_code)
        if prev is None:
            merged[item.product_code] = item
            continue
        quantity = prev.quantity + item.quantity
        line_total = round(prev.line_total + item.line_total, 2)
        merged[item.product_code] = ItemFields(
            product_code=item.product_code,
            name=item.name or prev.name,
            unit_price=round(line_total / quantity, 2) if quantity else prev.unit_price,
            quantity=quantity,
            line_total=line_total,
            discount=round(prev.discount + item.discount, 2),
        )
    return list(merged.values())


def clip(text: Optional[str], limit: int) -> Optional[str]:
    if text is None or len(text) <= limit:
        return text
    return text[:limit - 1] + "…"


def join_names(names: Iterable[str]) -> str:
    seen: list[str] = []
    for name in names:
        if name and name not in seen:
            seen.append(name)
    return _NAME_SEPARATOR.join(seen)


def aggregate_rows(channel: Channel, rows: list[NormalizedRow]) -> list[AggregatedOrder]:
    """
    Group normalized rows by order id (file order preserved) into one record per order.

    Line-item channels: quantities summed, total = order-level total when the
    export reports one, else the sum of line totals. Order-level channels: the
    last row for an order id wins.
    """
    groups: dict[str, list[NormalizedRow]] = {}
    for row in rows:
        groups.setdefault(row.order.order_id, []).append(row)

    result: list[AggregatedOrder] = []
    for order_id, group in groups.items():
        if Channel(channel) not in LINE_ITEM_CHANNELS:
            o = group[-1].order
            result.append(AggregatedOrder(
                order_id=order_id,
                channel=o.channel,
                order_date=o.order_date,
                status=o.status,
                product_name=o.product_name,
                quantity=o.quantity,
                total_price=o.total_price or 0.0,
                freight=o.freight,
                payment_type=o.payment_type,
                commission_fee=o.commission_fee,
                service_fee=o.service_fee,
            ))
            continue

        orders = [r.order for r in group]
        items = merge_items(r.item for r in group if r.item is not None)
        quantity = sum(r.item.quantity if r.item else r.order.quantity for r in group)
        reported_total = _max_reported(o.total_price for o in orders)
        if reported_total:
            total_price = reported_total
        else:
            total_price = round(sum(r.item.line_total for r in group if r.item), 2)

        result.append(AggregatedOrder(
            order_id=order_id,
            channel=orders[0].channel,
            order_date=min(o.order_date for o in orders),
            status=_first_text(o.status for o in orders) or "",
            product_name=join_names(o.product_name for o in orders),
            quantity=quantity,
            total_price=total_price,
            freight=_max_reported(o.freight for o in orders),
            payment_type=_first_text(o.payment_type for o in orders),
            commission_fee=_max_reported(o.commission_fee for o in orders),
            service_fee=_max_reported(o.service_fee for o in orders),
            items=items,
        ))
    return result


# =============================================================================
# Persistence helpers
# =============================================================================

def _chunks(values: list, size: int = _IN_CHUNK):
    for i in range(0, len(values), size):
        yield values[i:i + size]


def _fetch_orders(db: Session, channel: str, order_ids: list[str]) -> dict[str, Order]:
    found: dict[str, Order] = {}
    for chunk in _chunks(order_ids):
        for order in (
            db.query(Order)
            .filter(Order.channel == channel, Order.order_id.in_(chunk))
            .all()
        ):
            found[order.order_id] = order
    return found


def _fetch_items(db: Session, order_pks: list[int]) -> dict[tuple[int, str], OrderItem]:
    found: dict[tuple[int, str], OrderItem] = {}
    for chunk in _chunks(order_pks):
        for item in db.query(OrderItem).filter(OrderItem.order_id.in_(chunk)).all():
            found[(item.order_id, item.product_code)] = item
    return found


def _upsert_item(
    db: Session,
    existing: dict[tuple[int, str], OrderItem],
    order: Order,
    item: ItemFields,
    product_id: int,
) -> None:
    row = existing.get((order.id, item.product_code))
    if row is None:
        row = OrderItem(order_id=order.id, channel=order.channel, product_code=item.product_code)
        db.add(row)
        existing[(order.id, item.product_code)] = row
    row.name = clip(item.name, _ITEM_NAME_LEN)
    row.unit_price = item.unit_price
    row.quantity = item.quantity
    row.line_total = item.line_total
    row.discount = item.discount
    row.product_id = product_id


def _apply_order_fields(order: Order, agg: AggregatedOrder, keep_item_aggregate: bool) -> None:
    order.order_date = agg.order_date
    order.status = clip(agg.status, _STATUS_LEN)
    order.total_price = agg.total_price
    if not keep_item_aggregate:
        order.product_name = clip(agg.product_name, _ORDER_LABEL_LEN)
        order.quantity = agg.quantity
    # Optional channel fields are only overwritten when this export reports them
    if agg.freight is not None:
        order.freight = agg.freight
    if agg.payment_type is not None:
        order.payment_type = clip(agg.payment_type, _PAYMENT_TYPE_LEN)
    if agg.commission_fee is not None:
        order.commission_fee = agg.commission_fee
    if agg.service_fee is not None:
        order.service_fee = agg.service_fee


def _record_failure(db: Session, source_type: str, channel: str, filename: str, message: str) -> None:
    db.add(ImportLog(
        source_type=source_type,
        channel=channel,
        file_name=filename,
        end_time=datetime.now(timezone.utc).replace(tzinfo=None),
        status="failed",
        error_message=message,
    ))
    db.commit()


def _read(db: Session, content: bytes, filename: str, channel: Channel, source_type: str,
          required_any: list[str]) -> list[dict]:
    try:
        return read_rows(content, filename, channel, required_any=required_any)
    except FileFormatError as exc:
        logger.warning("Rejected %s upload %s: %s", channel.value, filename, exc)
        _record_failure(db, source_type, channel.value, filename, str(exc))
        raise


# =============================================================================
# Primary orders export
# =============================================================================

def ingest(db: Session, content: bytes, filename: str, channel: Channel) -> IngestResult:
    """Parse a channel orders export and upsert it as one all-or-nothing batch."""
    channel = Channel(channel)
    raw_rows = _read(db, content, filename, channel, "orders", ORDER_ID_HEADERS[channel])

    normalized: list[NormalizedRow] = []
    for idx, row in enumerate(raw_rows, start=1):
        parsed = normalize_row(channel, row)
        if parsed is None:
            logger.debug("%s row %d skipped: missing order id or date", filename, idx)
            continue
        normalized.append(parsed)

    rejected = len(raw_rows) - len(normalized)
    aggregated = aggregate_rows(channel, normalized)
    result = IngestResult(
        channel=channel.value,
        file_name=filename,
        rows_parsed=len(raw_rows),
        accepted=len(normalized),
        rejected=rejected,
    )

    try:
        existing = _fetch_orders(db, channel.value, [a.order_id for a in aggregated])
        existing_items = _fetch_items(db, [o.id for o in existing.values()])
        orders_with_items = {pk for pk, _ in existing_items}
        resolver = ProductResolver(db)

        for agg in aggregated:
            order = existing.get(agg.order_id)
            if order is None:
                order = Order(order_id=agg.order_id, channel=channel.value)
                db.add(order)
                _apply_order_fields(order, agg, keep_item_aggregate=False)
                db.flush()
                existing[agg.order_id] = order
                result.orders_created += 1
            else:
                # Tray quantity/name come from the items export once it has been loaded
                keep = channel not in LINE_ITEM_CHANNELS and order.id in orders_with_items
                _apply_order_fields(order, agg, keep_item_aggregate=keep)
                result.orders_updated += 1

            for item in agg.items:
                product_id = resolver.ensure_product(channel.value, item.product_code, clip(item.name, _ITEM_NAME_LEN))
                _upsert_item(db, existing_items, order, item, product_id)
                result.items += 1

        result.products_created = resolver.created
        log = ImportLog(
            source_type="orders",
            channel=channel.value,
            file_name=filename,
            end_time=datetime.now(timezone.utc).replace(tzinfo=None),
            status="success",
            records_imported=len(aggregated),
            records_rejected=rejected,
        )
        db.add(log)
        db.flush()
        result.import_log_id = log.id
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.warning("IntegrityError during %s ingest of %s: all rows rolled back", channel.value, filename)
        raise ConflictError("Database conflict: no rows were imported. Try re-uploading.") from exc
    except Exception:
        db.rollback()
        raise

    logger.info(
        "Ingested %s (%s): %d rows, %d accepted, %d rejected, %d orders created, %d updated, %d items",
        filename, channel.value, result.rows_parsed, result.accepted, result.rejected,
        result.orders_created, result.orders_updated, result.items,
    )
    return result


# =============================================================================
# Secondary items export (tray)
# =============================================================================

ITEMS_EXPORT_CHANNELS = {Channel.TRAY}


def recompute_order_aggregate(order: Order, items: list[OrderItem]) -> None:
    """Aggregate quantity and label from items. Never touches total_price."""
    order.quantity = sum(i.quantity or 0 for i in items)
    order.product_name = clip(join_names(i.name for i in items), _ORDER_LABEL_LEN)


def ingest_items(db: Session, content: bytes, filename: str, channel: Channel = Channel.TRAY) -> ItemsIngestResult:
    """
    Attach line items to already-ingested orders of a channel whose primary
    export has no item detail. The order-level total stays authoritative.
    """
    channel = Channel(channel)
    if channel not in ITEMS_EXPORT_CHANNELS:
        raise ValidationFailed(f"Channel '{channel.value}' has no separate items export")

    raw_rows = _read(db, content, filename, channel, "items", TRAY_ORDER_ID)
    parsed = [normalize_tray_item_row(r) for r in raw_rows]
    valid = [p for p in parsed if p is not None]

    by_order: dict[str, list[ItemFields]] = {}
    for p in valid:
        by_order.setdefault(p.order_id, []).append(p.item)

    result = ItemsIngestResult(
        channel=channel.value,
        file_name=filename,
        rows_parsed=len(raw_rows),
        items=0,
        orders_updated=0,
        rejected=len(raw_rows) - len(valid),
        unmatched=0,
    )

    try:
        orders = _fetch_orders(db, channel.value, list(by_order))
        existing_items = _fetch_items(db, [o.id for o in orders.values()])
        resolver = ProductResolver(db)

        for order_id, items in by_order.items():
            order = orders.get(order_id)
            if order is None:
                result.unmatched += len(items)
                result.unmatched_order_ids.append(order_id)
                continue
            for item in merge_items(items):
                product_id = resolver.ensure_product(channel.value, item.product_code, clip(item.name, _ITEM_NAME_LEN))
                _upsert_item(db, existing_items, order, item, product_id)
                result.items += 1
            db.flush()
            order_items = [row for (pk, _), row in existing_items.items() if pk == order.id]
            recompute_order_aggregate(order, order_items)
            result.orders_updated += 1

        log = ImportLog(
            source_type="items",
            channel=channel.value,
            file_name=filename,
            end_time=datetime.now(timezone.utc).replace(tzinfo=None),
            status="success",
            records_imported=result.items,
            records_rejected=result.rejected + result.unmatched,
        )
        db.add(log)
        db.flush()
        result.import_log_id = log.id
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.warning("IntegrityError during items ingest of %s: all rows rolled back", filename)
        raise ConflictError("Database conflict: no items were imported. Try re-uploading.") from exc
    except Exception:
        db.rollback()
        raise

    if result.unmatched:
        logger.warning("%s: %d item rows reference unknown orders", filename, result.unmatched)
    logger.info(
        "Ingested items %s: %d items, %d orders updated, %d rejected",
        filename, result.items, result.orders_updated, result.rejected,
    )
    return result


# =============================================================================
# Bulk channel purge
# =============================================================================

def _drop_undersized_groups(db: Session) -> int:
    """Delete groups left with fewer than MIN_GROUP_SIZE members, with their opening stock."""
    counts = (
        db.query(ProductGroup.id, func.count(ProductGroupItem.id))
        .outerjoin(ProductGroupItem, ProductGroupItem.product_group_id == ProductGroup.id)
        .group_by(ProductGroup.id)
        .all()
    )
    group_ids = [pk for pk, n in counts if n < MIN_GROUP_SIZE]
    if not group_ids:
        return 0
    db.query(ProductGroupStock).filter(ProductGroupStock.product_group_id.in_(group_ids)).delete(
        synchronize_session=False
    )
    db.query(ProductGroupItem).filter(ProductGroupItem.product_group_id.in_(group_ids)).delete(
        synchronize_session=False
    )
    deleted = db.query(ProductGroup).filter(ProductGroup.id.in_(group_ids)).delete(synchronize_session=False)
    logger.info("Dissolved %d product group(s) left with fewer than %d members", deleted, MIN_GROUP_SIZE)
    return deleted


def purge_channel(db: Session, channel: Channel, include_products: bool = False) -> PurgeResult:
    """Delete every order (and its items) of a channel, optionally its products too."""
    channel = Channel(channel)
    try:
        order_pks = [pk for (pk,) in db.query(Order.id).filter(Order.channel == channel.value).all()]
        items_deleted = 0
        for chunk in _chunks(order_pks):
            items_deleted += (
                db.query(OrderItem)
                .filter(OrderItem.order_id.in_(chunk))
                .delete(synchronize_session=False)
            )
        orders_deleted = (
            db.query(Order)
            .filter(Order.channel == channel.value)
            .delete(synchronize_session=False)
        )

        products_deleted = 0
        groups_deleted = 0
        if include_products:
            product_ids = [
                pk for (pk,) in db.query(Product.id).filter(Product.source == channel.value).all()
            ]
            for chunk in _chunks(product_ids):
                db.query(ProductGroupItem).filter(ProductGroupItem.product_id.in_(chunk)).delete(
                    synchronize_session=False
                )
                db.query(ProductStock).filter(ProductStock.product_id.in_(chunk)).delete(
                    synchronize_session=False
                )
                db.query(OrderItem).filter(OrderItem.product_id.in_(chunk)).update(
                    {OrderItem.product_id: None}, synchronize_session=False
                )
                products_deleted += (
                    db.query(Product).filter(Product.id.in_(chunk)).delete(synchronize_session=False)
                )
            groups_deleted = _drop_undersized_groups(db)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "Purged channel %s: %d orders, %d items, %d products, %d groups",
        channel.value, orders_deleted, items_deleted, products_deleted, groups_deleted,
    )
    return PurgeResult(
        channel=channel.value,
        orders_deleted=orders_deleted,
        items_deleted=items_deleted,
        products_deleted=products_deleted,
        groups_deleted=groups_deleted,
    )
