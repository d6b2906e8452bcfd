from sqlalchemy import (
    Column, Integer, String, DateTime, Numeric, ForeignKey, func,
)
from sqlalchemy.orm import relationship
from ..database import Base


class Product(Base):
    __tablename__ = "products"

    id         = Column(Integer, primary_key=True)
    code       = Column(String(300), unique=True, nullable=False)   # "{channel}_{channel code}"
    name       = Column(String(500), nullable=False)
    cost_price = Column(Numeric(14, 2))      # set manually, never by ingestion
    source     = Column(String(20), nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, onupdate=func.now())

    order_items = relationship("OrderItem",        back_populates="product")
    group_item  = relationship("ProductGroupItem", back_populates="product", uselist=False)
    stock       = relationship("ProductStock",     back_populates="product", uselist=False)


class ProductGroup(Base):
    """
    Several channel-specific products treated as one physical item for inventory.
    """
    __tablename__ = "product_groups"

    id         = Column(Integer, primary_key=True)
    name       = Column(String(300), nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, onupdate=func.now())

    items = relationship(
        "ProductGroupItem", back_populates="group",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    stock = relationship(
        "ProductGroupStock", back_populates="group", uselist=False,
        cascade="all, delete-orphan", passive_deletes=True,
    )


class ProductGroupItem(Base):
    __tablename__ = "product_group_items"

    id               = Column(Integer, primary_key=True)
    product_group_id = Column(Integer, ForeignKey("product_groups.id", ondelete="CASCADE"), nullable=False)
    # unique: a product belongs to at most one group
    product_id       = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, unique=True)

    group   = relationship("ProductGroup", back_populates="items")
    product = relationship("Product",      back_populates="group_item")


class ProductStock(Base):
    """Opening quantity for a standalone product, as of the stock start date."""
    __tablename__ = "product_stock"

    id         = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, unique=True)
    quantity   = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    product = relationship("Product", back_populates="stock")


class ProductGroupStock(Base):
    """Opening quantity for a product group, as of the stock start date."""
    __tablename__ = "product_group_stock"

    id               = Column(Integer, primary_key=True)
    product_group_id = Column(Integer, ForeignKey("product_groups.id", ondelete="CASCADE"), nullable=False, unique=True)
    quantity         = Column(Integer, nullable=False, default=0)
    updated_at       = Column(DateTime, server_default=func.now(), onupdate=func.now())

    group = relationship("ProductGroup", back_populates="stock")


class InventoryConfig(Base):
    """Singleton (id = 1). Sales before stock_start_date never deplete stock."""
    __tablename__ = "inventory_config"

    id               = Column(Integer, primary_key=True)
    stock_start_date = Column(DateTime)     # anchored at 12:00 UTC
    updated_at       = Column(DateTime, server_default=func.now(), onupdate=func.now())
