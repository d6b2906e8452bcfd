from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ..constants import ALL_CHANNELS_SCOPE
from ..database import get_db
from ..schemas.finance import (
    AdsDashboard, AdSpendIn, AdSpendOut, PaymentTypeFeeIn, PaymentTypeFeeOut,
    SalesByDay, SalesDashboard, SimulationResult,
)
from ..services import finance as svc
from ..utils.parsing import parse_month

router = APIRouter()


def _month(token: Optional[str]) -> Optional[date]:
    if not token:
        return None
    try:
        return parse_month(token)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))


# =============================================================================
# Sales
# =============================================================================

@router.get("/dashboard", response_model=SalesDashboard)
def sales_dashboard(
    range: str = Query("30d", pattern="^(7d|30d|90d)$"),
    db: Session = Depends(get_db),
):
    return svc.sales_dashboard(db, range)


@router.get("/sales-by-day", response_model=SalesByDay)
def sales_by_day(month: str = Query(..., description="YYYY-MM"), db: Session = Depends(get_db)):
    return svc.sales_by_day(db, _month(month))


# =============================================================================
# Ad spend / ROAS
# =============================================================================

@router.get("/ad-spend", response_model=List[AdSpendOut])
def list_ad_spend(month: Optional[str] = Query(None), db: Session = Depends(get_db)):
    return svc.list_ad_spend(db, _month(month))


@router.post("/ad-spend", response_model=AdSpendOut)
def upsert_ad_spend(body: AdSpendIn, db: Session = Depends(get_db)):
    return svc.upsert_ad_spend(db, _month(body.month), body.channel, body.amount, body.notes)


@router.delete("/ad-spend/{ad_spend_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_ad_spend(ad_spend_id: int, db: Session = Depends(get_db)):
    svc.delete_ad_spend(db, ad_spend_id)


@router.get("/ads-dashboard", response_model=AdsDashboard, summary="Revenue vs ad spend (ROAS) by month and channel")
def ads_dashboard(
    date_from: Optional[str] = Query(None, alias="from", description="YYYY-MM"),
    date_to: Optional[str] = Query(None, alias="to", description="YYYY-MM"),
    db: Session = Depends(get_db),
):
    return svc.ads_dashboard(db, _month(date_from), _month(date_to))


# =============================================================================
# Payment type fees
# =============================================================================

@router.get("/payment-type-fees", response_model=List[PaymentTypeFeeOut])
def list_payment_type_fees(
    month: Optional[str] = Query(None),
    channel: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    return svc.list_payment_type_fees(db, _month(month), channel)


@router.post("/payment-type-fees", response_model=PaymentTypeFeeOut)
def upsert_payment_type_fee(body: PaymentTypeFeeIn, db: Session = Depends(get_db)):
    return svc.upsert_payment_type_fee(db, _month(body.month), body.channel, body.payment_type, body.percent)


@router.delete("/payment-type-fees/{fee_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_payment_type_fee(fee_id: int, db: Session = Depends(get_db)):
    svc.delete_payment_type_fee(db, fee_id)


@router.get("/payment-types", response_model=List[str], summary="Payment type labels seen on tray orders")
def list_payment_types(db: Session = Depends(get_db)):
    return svc.list_payment_types(db)


# =============================================================================
# Simulation
# =============================================================================

@router.get("/simulation", response_model=SimulationResult, summary="Monthly P&L simulation")
def simulation(
    month: str = Query(..., description="YYYY-MM"),
    channel: str = Query(ALL_CHANNELS_SCOPE, description="'all' or a channel"),
    fixed_cost: Optional[float] = Query(None, ge=0),
    card_pix_percent: Optional[float] = Query(None, ge=0, le=100),
    tax_percent: Optional[float] = Query(None, ge=0, le=100),
    db: Session = Depends(get_db),
):
    return svc.simulate(
        db,
        _month(month),
        channel=channel,
        fixed_cost=fixed_cost,
        card_pix_percent=card_pix_percent,
        tax_percent=tax_percent,
    )
