from datetime import date, datetime, time, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session, selectinload

from ..constants import Channel
from ..database import get_db
from ..models.orders import Order
from ..schemas.orders import OrderOut, OrderPage
from ..schemas.uploads import PurgeResult
from ..services.ingestion import purge_channel

router = APIRouter()


@router.get("", response_model=OrderPage)
def list_orders(
    channel: Optional[Channel] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    search: Optional[str] = Query(None, description="Order id or product name fragment"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    q = db.query(Order)
    if channel:
        q = q.filter(Order.channel == channel.value)
    if start_date:
        q = q.filter(Order.order_date >= datetime.combine(start_date, time.min))
    if end_date:
        q = q.filter(Order.order_date < datetime.combine(end_date + timedelta(days=1), time.min))
    if search:
        pattern = f"%{search.strip()}%"
        q = q.filter(Order.order_id.ilike(pattern) | Order.product_name.ilike(pattern))

    total = q.count()
    orders = (
        q.options(selectinload(Order.items))
        .order_by(Order.order_date.desc(), Order.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return OrderPage(
        total=total,
        limit=limit,
        offset=offset,
        orders=[OrderOut.model_validate(o) for o in orders],
    )


@router.delete("", response_model=PurgeResult, summary="Delete every order of a channel")
def delete_channel_orders(
    channel: Channel = Query(...),
    include_products: bool = Query(False, description="Also delete the channel's products"),
    db: Session = Depends(get_db),
):
    return purge_channel(db, channel, include_products=include_products)
