from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel


class OrderItemOut(BaseModel):
    id: int
    product_code: str
    name: str
    unit_price: Optional[float] = None
    quantity: int
    line_total: Optional[float] = None
    discount: Optional[float] = None
    product_id: Optional[int] = None

    class Config:
        from_attributes = True


class OrderOut(BaseModel):
    id: int
    order_id: str
    channel: str
    order_date: Optional[datetime] = None
    product_name: Optional[str] = None
    quantity: int
    total_price: Optional[float] = None
    status: Optional[str] = None
    freight: Optional[float] = None
    payment_type: Optional[str] = None
    commission_fee: Optional[float] = None
    service_fee: Optional[float] = None
    items: List[OrderItemOut] = []

    class Config:
        from_attributes = True


class OrderPage(BaseModel):
    total: int
    limit: int
    offset: int
    orders: List[OrderOut]
