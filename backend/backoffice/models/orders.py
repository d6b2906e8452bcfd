from sqlalchemy import (
    Column, Integer, String, DateTime, Numeric, ForeignKey, func, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from ..database import Base


class Order(Base):
    """
    Grain: (order_id, channel)
    One row per marketplace order. Upserted on every ingestion pass.
    """
    __tablename__ = "orders"

    id             = Column(Integer, primary_key=True)
    order_id       = Column(String(100), nullable=False)   # business id, channel-scoped
    channel        = Column(String(20), nullable=False)
    order_date     = Column(DateTime, nullable=False)
    product_name   = Column(String(2000), nullable=False, default="")
    quantity       = Column(Integer, nullable=False, default=0)
    total_price    = Column(Numeric(14, 2), nullable=False, default=0)
    status         = Column(String(200), nullable=False, default="")   # free text from source
    # Channel-specific optional fields
    freight        = Column(Numeric(14, 2))
    payment_type   = Column(String(200))       # tray: "Cartão de crédito", "PIX", ...
    commission_fee = Column(Numeric(14, 2))    # shopee / tiktok
    service_fee    = Column(Numeric(14, 2))    # shopee / tiktok
    created_at     = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at     = Column(DateTime, onupdate=func.now())

    __table_args__ = (UniqueConstraint("order_id", "channel"),)

    items = relationship(
        "OrderItem", back_populates="order",
        cascade="all, delete-orphan", passive_deletes=True,
    )


class OrderItem(Base):
    """
    Grain: (order, channel, product_code)
    One row per distinct product line within an order.
    """
    __tablename__ = "order_items"

    id           = Column(Integer, primary_key=True)
    order_id     = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    channel      = Column(String(20), nullable=False)
    product_code = Column(String(200), nullable=False)    # channel-specific code
    name         = Column(String(500), nullable=False, default="")
    unit_price   = Column(Numeric(14, 2), nullable=False, default=0)
    quantity     = Column(Integer, nullable=False, default=0)
    line_total   = Column(Numeric(14, 2), nullable=False, default=0)
    discount     = Column(Numeric(14, 2), nullable=False, default=0)
    product_id   = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"))

    __table_args__ = (UniqueConstraint("order_id", "channel", "product_code"),)

    order   = relationship("Order",   back_populates="items")
    product = relationship("Product", back_populates="order_items")
