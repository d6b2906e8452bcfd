from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, Field, field_validator


class ProductOut(BaseModel):
    id: int
    code: str
    name: str
    cost_price: Optional[float] = None
    source: str
    order_item_count: int = 0
    product_group_id: Optional[int] = None

    class Config:
        from_attributes = True


class ProductUpdate(BaseModel):
    cost_price: Optional[float] = Field(None, ge=0)
    name: Optional[str] = None


class ProductRef(BaseModel):
    id: int
    code: str
    name: str

    class Config:
        from_attributes = True


class ProductGroupIn(BaseModel):
    name: str
    product_ids: List[int]

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be empty")
        return v


class ProductGroupOut(BaseModel):
    id: int
    name: str
    products: List[ProductRef]
    stock_quantity: Optional[int] = None
    created_at: Optional[datetime] = None


class ChannelPricing(BaseModel):
    """Percentages of the sale price reserved for each cost / margin component."""
    commission_percent: float = 0.0
    ads_percent: float = 0.0
    fixed_cost_percent: float = 0.0
    tax_percent: float = 0.0
    profit_percent: float = 0.0

    @property
    def total_percent(self) -> float:
        return (
            self.commission_percent + self.ads_percent + self.fixed_cost_percent
            + self.tax_percent + self.profit_percent
        )


class PricingRow(BaseModel):
    product_id: int
    code: str
    name: str
    cost_price: Optional[float] = None
    suggested_price: Optional[float] = None
