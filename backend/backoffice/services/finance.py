"""
Financial rollups over canonical orders: sales dashboards, ROAS, P&L simulation,
plus the ad spend and payment-type fee tables that feed them.

Every rollup counts only orders whose status passes is_order_valid_for_accounting().
"""
import logging
from calendar import monthrange
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import NamedTuple, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..config import settings
from ..constants import (
    ALL_CHANNELS, ALL_CHANNELS_SCOPE, Channel, MARKETPLACE_FEE_CHANNELS, PAYMENT_FEE_CHANNEL,
)
from ..errors import NotFoundError, ValidationFailed
from ..models.finance import AdSpend, PaymentTypeFee
from ..models.orders import Order, OrderItem
from ..models.products import Product
from ..schemas.finance import (
    AdsCell, AdsDashboard, AdsKpis, AdsMonthRow, NamedValue, SalesByDay, SalesDashboard,
    SalesDayRow, SalesKpis, SalesMonthRow, SimulationResult, TopProduct,
)
from ..utils.order_status import is_order_valid_for_accounting
from ..utils.parsing import month_bounds, month_key

logger = logging.getLogger(__name__)

RANGE_DAYS = {"7d": 7, "30d": 30, "90d": 90}
TOP_PRODUCTS_LIMIT = 10


class MonthChannel(NamedTuple):
    month: str          # YYYY-MM
    channel: str


def _money(val) -> float:
    return float(val) if val is not None else 0.0


def _roas(revenue: float, spend: float) -> Optional[float]:
    return round(revenue / spend, 4) if spend else None


def _valid_orders(db: Session, start: Optional[datetime] = None, end: Optional[datetime] = None,
                  channel: Optional[str] = None) -> list[Order]:
    q = db.query(Order).filter(Order.order_date.isnot(None))
    if start is not None:
        q = q.filter(Order.order_date >= start)
    if end is not None:
        q = q.filter(Order.order_date < end)
    if channel and channel != ALL_CHANNELS_SCOPE:
        q = q.filter(Order.channel == channel)
    return [o for o in q.all() if is_order_valid_for_accounting(o.status)]


def _check_scope(channel: str) -> str:
    channel = (channel or ALL_CHANNELS_SCOPE).strip().lower()
    if channel != ALL_CHANNELS_SCOPE and channel not in ALL_CHANNELS:
        raise ValidationFailed(
            f"Unknown channel {channel!r}: expected one of {', '.join([ALL_CHANNELS_SCOPE] + ALL_CHANNELS)}"
        )
    return channel


# =============================================================================
# Sales dashboards
# =============================================================================

def sales_dashboard(db: Session, range_key: str = "30d", today: Optional[date] = None) -> SalesDashboard:
    """
    KPIs, channel split and top products over the last N days; the monthly
    series always covers the full history so the chart has context.
    """
    if range_key not in RANGE_DAYS:
        raise ValidationFailed(f"Invalid range {range_key!r}: expected one of {', '.join(RANGE_DAYS)}")
    today = today or datetime.now(timezone.utc).date()
    date_from = today - timedelta(days=RANGE_DAYS[range_key] - 1)
    since = datetime.combine(date_from, datetime.min.time())
    until = datetime.combine(today + timedelta(days=1), datetime.min.time())

    all_orders = _valid_orders(db)
    recent = [o for o in all_orders if since <= o.order_date < until]

    revenue = sum(_money(o.total_price) for o in recent)
    kpis = SalesKpis(
        revenue=round(revenue, 2),
        orders=len(recent),
        average_ticket=round(revenue / len(recent), 2) if recent else 0.0,
    )

    channel_totals: dict[str, float] = defaultdict(float)
    for o in recent:
        channel_totals[o.channel] += _money(o.total_price)
    by_channel = [
        NamedValue(name=ch, value=round(v, 2))
        for ch, v in sorted(channel_totals.items(), key=lambda kv: -kv[1])
    ]

    months: dict[str, dict[str, float]] = defaultdict(lambda: {ch: 0.0 for ch in ALL_CHANNELS})
    month_orders: dict[str, int] = defaultdict(int)
    for o in all_orders:
        key = month_key(o.order_date)
        months[key][o.channel] = months[key].get(o.channel, 0.0) + _money(o.total_price)
        month_orders[key] += 1
    by_month = [
        SalesMonthRow(
            month=key,
            by_channel={ch: round(v, 2) for ch, v in months[key].items()},
            total=round(sum(months[key].values()), 2),
            orders=month_orders[key],
        )
        for key in sorted(months)
    ]

    return SalesDashboard(
        range=range_key,
        date_from=date_from,
        kpis=kpis,
        by_channel=by_channel,
        by_month=by_month,
        top_products=_top_products(db, [o.id for o in recent]),
    )


def _top_products(db: Session, order_ids: list[int]) -> list[TopProduct]:
    if not order_ids:
        return []
    totals: dict[str, list] = defaultdict(lambda: [0, 0.0])
    # Chunk to stay under SQLite's bound-parameter limit
    for i in range(0, len(order_ids), 500):
        chunk = order_ids[i:i + 500]
        rows = (
            db.query(OrderItem.name, Product.name, OrderItem.quantity, OrderItem.line_total)
            .outerjoin(Product, Product.id == OrderItem.product_id)
            .filter(OrderItem.order_id.in_(chunk))
            .all()
        )
        for item_name, product_name, qty, line_total in rows:
            name = product_name or item_name or "(sem nome)"
            totals[name][0] += qty or 0
            totals[name][1] += _money(line_total)

    ranked = sorted(totals.items(), key=lambda kv: (-kv[1][1], -kv[1][0], kv[0]))
    return [
        TopProduct(name=name, quantity=qty, total=round(total, 2))
        for name, (qty, total) in ranked[:TOP_PRODUCTS_LIMIT]
    ]


def sales_by_day(db: Session, month: date) -> SalesByDay:
    """Per-day revenue per channel for one month, zero-filled."""
    start, end = month_bounds(month)
    days_in_month = monthrange(month.year, month.month)[1]
    buckets: dict[date, dict[str, float]] = {
        date(month.year, month.month, d): {ch: 0.0 for ch in ALL_CHANNELS}
        for d in range(1, days_in_month + 1)
    }
    for o in _valid_orders(db, start, end):
        day = buckets[o.order_date.date()]
        day[o.channel] = day.get(o.channel, 0.0) + _money(o.total_price)

    return SalesByDay(
        month=month_key(month),
        channels=list(ALL_CHANNELS),
        days=[
            SalesDayRow(
                day=d,
                label=d.strftime("%d/%m"),
                by_channel={ch: round(v, 2) for ch, v in values.items()},
                total=round(sum(values.values()), 2),
            )
            for d, values in buckets.items()
        ],
    )


# =============================================================================
# Ad spend + ROAS
# =============================================================================

def upsert_ad_spend(db: Session, month: date, channel: str, amount: float, notes: str = "") -> AdSpend:
    row = db.query(AdSpend).filter(AdSpend.month == month, AdSpend.channel == channel).first()
    if row is None:
        row = AdSpend(month=month, channel=channel)
        db.add(row)
    row.amount = amount
    row.notes = notes or ""
    db.commit()
    db.refresh(row)
    logger.info("Ad spend %s/%s set to %.2f", month_key(month), channel, amount)
    return row


def list_ad_spend(db: Session, month: Optional[date] = None) -> list[AdSpend]:
    q = db.query(AdSpend)
    if month is not None:
        q = q.filter(AdSpend.month == month)
    return q.order_by(AdSpend.month.desc(), AdSpend.channel).all()


def delete_ad_spend(db: Session, ad_spend_id: int) -> None:
    row = db.get(AdSpend, ad_spend_id)
    if row is None:
        raise NotFoundError("AdSpend", ad_spend_id)
    db.delete(row)
    db.commit()


def ads_dashboard(db: Session, date_from: Optional[date] = None, date_to: Optional[date] = None) -> AdsDashboard:
    """
    Revenue of valid orders against ad spend, per (month, channel) cell.
    date_from / date_to are first-of-month dates; both ends are inclusive months.
    """
    start = month_bounds(date_from)[0] if date_from else None
    end = month_bounds(date_to)[1] if date_to else None

    cells: dict[MonthChannel, list[float]] = defaultdict(lambda: [0.0, 0.0])   # [revenue, spend]
    for o in _valid_orders(db, start, end):
        cells[MonthChannel(month_key(o.order_date), o.channel)][0] += _money(o.total_price)

    spend_q = db.query(AdSpend)
    if date_from:
        spend_q = spend_q.filter(AdSpend.month >= date_from)
    if date_to:
        spend_q = spend_q.filter(AdSpend.month <= date_to)
    for row in spend_q.all():
        cells[MonthChannel(month_key(row.month), row.channel)][1] += _money(row.amount)

    channels = sorted({key.channel for key in cells})

    month_cells: dict[str, list[AdsCell]] = defaultdict(list)
    channel_totals: dict[str, list[float]] = defaultdict(lambda: [0.0, 0.0])
    for key in sorted(cells):
        revenue, spend = cells[key]
        month_cells[key.month].append(
            AdsCell(channel=key.channel, revenue=round(revenue, 2), spend=round(spend, 2),
                    roas=_roas(revenue, spend))
        )
        channel_totals[key.channel][0] += revenue
        channel_totals[key.channel][1] += spend

    by_month = []
    for month in sorted(month_cells):
        revenue = sum(c.revenue for c in month_cells[month])
        spend = sum(c.spend for c in month_cells[month])
        by_month.append(AdsMonthRow(
            month=month, revenue=round(revenue, 2), spend=round(spend, 2),
            roas=_roas(revenue, spend), by_channel=month_cells[month],
        ))

    by_channel = sorted(
        (AdsCell(channel=ch, revenue=round(r, 2), spend=round(s, 2), roas=_roas(r, s))
         for ch, (r, s) in channel_totals.items()),
        key=lambda c: -c.revenue,
    )

    total_revenue = sum(r for r, _ in cells.values())
    total_spend = sum(s for _, s in cells.values())
    return AdsDashboard(
        kpis=AdsKpis(revenue=round(total_revenue, 2), spend=round(total_spend, 2),
                     roas=_roas(total_revenue, total_spend)),
        channels=channels,
        by_month=by_month,
        by_channel=by_channel,
    )


# =============================================================================
# Payment type fees
# =============================================================================

def _fee_key(label: Optional[str]) -> str:
    return " ".join((label or "").split()).lower()


def upsert_payment_type_fee(db: Session, month: date, channel: str, payment_type: str,
                            percent: float) -> PaymentTypeFee:
    row = (
        db.query(PaymentTypeFee)
        .filter(
            PaymentTypeFee.month == month,
            PaymentTypeFee.channel == channel,
            PaymentTypeFee.payment_type == payment_type,
        )
        .first()
    )
    if row is None:
        row = PaymentTypeFee(month=month, channel=channel, payment_type=payment_type)
        db.add(row)
    row.percent = percent
    db.commit()
    db.refresh(row)
    return row


def list_payment_type_fees(db: Session, month: Optional[date] = None,
                           channel: Optional[str] = None) -> list[PaymentTypeFee]:
    q = db.query(PaymentTypeFee)
    if month is not None:
        q = q.filter(PaymentTypeFee.month == month)
    if channel:
        q = q.filter(PaymentTypeFee.channel == channel)
    return q.order_by(PaymentTypeFee.month.desc(), PaymentTypeFee.payment_type).all()


def delete_payment_type_fee(db: Session, fee_id: int) -> None:
    row = db.get(PaymentTypeFee, fee_id)
    if row is None:
        raise NotFoundError("PaymentTypeFee", fee_id)
    db.delete(row)
    db.commit()


def list_payment_types(db: Session) -> list[str]:
    """Distinct payment type labels seen on orders of the card / PIX channel."""
    rows = (
        db.query(Order.payment_type)
        .filter(Order.channel == PAYMENT_FEE_CHANNEL, Order.payment_type.isnot(None))
        .distinct()
        .all()
    )
    return sorted({label.strip() for (label,) in rows if label and label.strip()})


# =============================================================================
# P&L simulation
# =============================================================================

def _production_cost(db: Session, order_ids: list[int]) -> float:
    total = 0.0
    for i in range(0, len(order_ids), 500):
        chunk = order_ids[i:i + 500]
        rows = (
            db.query(OrderItem.quantity, Product.cost_price)
            .join(Product, Product.id == OrderItem.product_id)
            .filter(OrderItem.order_id.in_(chunk), Product.cost_price.isnot(None))
            .all()
        )
        total += sum((qty or 0) * float(cost) for qty, cost in rows)
    return total


def simulate(
    db: Session,
    month: date,
    channel: str = ALL_CHANNELS_SCOPE,
    fixed_cost: Optional[float] = None,
    card_pix_percent: Optional[float] = None,
    tax_percent: Optional[float] = None,
) -> SimulationResult:
    """
    Monthly P&L for one channel or all of them.

    Deductions: ad spend, marketplace commission + service fees (shopee, tiktok),
    card / PIX processor fees (tray, by payment type with a default fallback),
    freight, production cost (item quantity x product cost price), fixed cost
    and a flat tax on gross revenue. A single channel carries the share of the
    fixed cost matching its share of the month's revenue; "all" carries it whole.
    """
    channel = _check_scope(channel)
    fixed_cost = settings.default_fixed_cost if fixed_cost is None else fixed_cost
    card_pix_percent = settings.default_card_pix_percent if card_pix_percent is None else card_pix_percent
    tax_percent = settings.simulation_tax_percent if tax_percent is None else tax_percent

    start, end = month_bounds(month)
    month_orders = _valid_orders(db, start, end)
    orders = [o for o in month_orders if channel == ALL_CHANNELS_SCOPE or o.channel == channel]

    revenue = sum(_money(o.total_price) for o in orders)
    month_revenue = sum(_money(o.total_price) for o in month_orders)

    spend_q = db.query(func.coalesce(func.sum(AdSpend.amount), 0)).filter(AdSpend.month == month)
    if channel != ALL_CHANNELS_SCOPE:
        spend_q = spend_q.filter(AdSpend.channel == channel)
    ads_spend = _money(spend_q.scalar())

    marketplace_fees = {ch: 0.0 for ch in MARKETPLACE_FEE_CHANNELS}
    for o in orders:
        if o.channel in marketplace_fees:
            marketplace_fees[o.channel] += _money(o.commission_fee) + _money(o.service_fee)

    fee_rules = {
        _fee_key(r.payment_type): float(r.percent)
        for r in list_payment_type_fees(db, month=month, channel=PAYMENT_FEE_CHANNEL)
    }
    card_pix_fees = 0.0
    fallback_orders = 0
    for o in orders:
        if o.channel != PAYMENT_FEE_CHANNEL:
            continue
        pct = fee_rules.get(_fee_key(o.payment_type))
        if pct is None:
            pct = card_pix_percent
            fallback_orders += 1
        card_pix_fees += _money(o.total_price) * pct / 100
    if fallback_orders:
        logger.debug("Simulation %s/%s: %d order(s) used the default card/PIX percent",
                     month_key(month), channel, fallback_orders)

    freight = sum(_money(o.freight) for o in orders)
    production_cost = _production_cost(db, [o.id for o in orders])

    if channel == ALL_CHANNELS_SCOPE:
        allocated_fixed = fixed_cost
    else:
        allocated_fixed = fixed_cost * (revenue / month_revenue) if month_revenue else 0.0

    tax = revenue * tax_percent / 100

    shopee_fees = marketplace_fees[Channel.SHOPEE.value]
    tiktok_fees = marketplace_fees[Channel.TIKTOK.value]
    net_profit = revenue - (
        ads_spend + shopee_fees + tiktok_fees + card_pix_fees
        + freight + production_cost + allocated_fixed + tax
    )

    def pct_of_revenue(amount: float) -> float:
        return round(amount / revenue * 100, 2) if revenue else 0.0

    return SimulationResult(
        month=month_key(month),
        channel=channel,
        orders=len(orders),
        gross_revenue=round(revenue, 2),
        ads_spend=round(ads_spend, 2),
        ads_percent=pct_of_revenue(ads_spend),
        shopee_fees=round(shopee_fees, 2),
        shopee_fees_percent=pct_of_revenue(shopee_fees),
        tiktok_fees=round(tiktok_fees, 2),
        tiktok_fees_percent=pct_of_revenue(tiktok_fees),
        card_pix_fees=round(card_pix_fees, 2),
        card_pix_fees_percent=pct_of_revenue(card_pix_fees),
        card_pix_fallback_orders=fallback_orders,
        freight=round(freight, 2),
        freight_percent=pct_of_revenue(freight),
        production_cost=round(production_cost, 2),
        production_cost_percent=pct_of_revenue(production_cost),
        fixed_cost=round(allocated_fixed, 2),
        fixed_cost_percent=pct_of_revenue(allocated_fixed),
        tax=round(tax, 2),
        tax_percent=tax_percent,
        net_profit=round(net_profit, 2),
        margin_percent=pct_of_revenue(net_profit),
    )
