from datetime import date
from typing import Dict, Optional, List

from pydantic import BaseModel, Field, field_validator


# ---------------------------------------------------------------------------
# Sales dashboards
# ---------------------------------------------------------------------------

class SalesKpis(BaseModel):
    revenue: float
    orders: int
    average_ticket: float


class NamedValue(BaseModel):
    name: str
    value: float


class SalesMonthRow(BaseModel):
    month: str                          # YYYY-MM
    by_channel: Dict[str, float]
    total: float
    orders: int


class TopProduct(BaseModel):
    name: str
    quantity: int
    total: float


class SalesDashboard(BaseModel):
    range: str
    date_from: date
    kpis: SalesKpis
    by_channel: List[NamedValue]
    by_month: List[SalesMonthRow]
    top_products: List[TopProduct]


class SalesDayRow(BaseModel):
    day: date
    label: str                          # dd/mm
    by_channel: Dict[str, float]
    total: float


class SalesByDay(BaseModel):
    month: str
    channels: List[str]
    days: List[SalesDayRow]


# ---------------------------------------------------------------------------
# Ad spend / ROAS
# ---------------------------------------------------------------------------

class AdSpendIn(BaseModel):
    month: str                          # YYYY-MM
    channel: str
    amount: float = Field(..., ge=0)
    notes: str = ""

    @field_validator("channel")
    @classmethod
    def _normalize_channel(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError("channel must not be empty")
        return v


class AdSpendOut(BaseModel):
    id: int
    month: date
    channel: str
    amount: float
    notes: str

    class Config:
        from_attributes = True


class AdsCell(BaseModel):
    channel: str
    revenue: float
    spend: float
    roas: Optional[float] = None        # None when spend is 0


class AdsMonthRow(BaseModel):
    month: str
    revenue: float
    spend: float
    roas: Optional[float] = None
    by_channel: List[AdsCell]


class AdsKpis(BaseModel):
    revenue: float
    spend: float
    roas: Optional[float] = None


class AdsDashboard(BaseModel):
    kpis: AdsKpis
    channels: List[str]
    by_month: List[AdsMonthRow]
    by_channel: List[AdsCell]


# ---------------------------------------------------------------------------
# Payment type fees
# ---------------------------------------------------------------------------

class PaymentTypeFeeIn(BaseModel):
    month: str
    channel: str = "tray"
    payment_type: str
    percent: float = Field(..., ge=0, le=100)

    @field_validator("payment_type")
    @classmethod
    def _strip_label(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("payment_type must not be empty")
        return v


class PaymentTypeFeeOut(BaseModel):
    id: int
    month: date
    channel: str
    payment_type: str
    percent: float

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# P&L simulation
# ---------------------------------------------------------------------------

class SimulationResult(BaseModel):
    month: str
    channel: str
    orders: int
    gross_revenue: float
    ads_spend: float
    ads_percent: float
    shopee_fees: float
    shopee_fees_percent: float
    tiktok_fees: float
    tiktok_fees_percent: float
    card_pix_fees: float
    card_pix_fees_percent: float
    card_pix_fallback_orders: int       # tray orders priced with the default percent
    freight: float
    freight_percent: float
    production_cost: float
    production_cost_percent: float
    fixed_cost: float
    fixed_cost_percent: float
    tax: float
    tax_percent: float
    net_profit: float
    margin_percent: float
