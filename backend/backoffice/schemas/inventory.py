from datetime import date
from typing import Literal, Optional, List

from pydantic import BaseModel, Field

from .products import ProductRef


class InventoryConfigIn(BaseModel):
    stock_start_date: Optional[str] = None      # YYYY-MM-DD, null clears it


class InventoryConfigOut(BaseModel):
    stock_start_date: Optional[date] = None


class ProductStockIn(BaseModel):
    product_id: int
    quantity: int = Field(..., ge=0)


class GroupStockIn(BaseModel):
    product_group_id: int
    quantity: int = Field(..., ge=0)


class ProductStockRow(BaseModel):
    product_id: int
    product: ProductRef
    quantity: int


class StockLine(BaseModel):
    type: Literal["product", "group"]
    product_id: Optional[int] = None
    product_group_id: Optional[int] = None
    code: Optional[str] = None
    name: str
    opening: int
    sold: int
    current: int
    cost_price: Optional[float] = None
    product_names: List[str] = []


class StockReport(BaseModel):
    stock_start_date: Optional[date] = None
    items: List[StockLine]


class ProjectionLine(BaseModel):
    type: Literal["product", "group"]
    product_id: Optional[int] = None
    product_group_id: Optional[int] = None
    name: str
    current: int
    unit_price: float
    revenue: float
    cost: float


class StockProjection(BaseModel):
    stock_start_date: Optional[date] = None
    projected_revenue: float
    projected_cost: float
    details: List[ProjectionLine]
