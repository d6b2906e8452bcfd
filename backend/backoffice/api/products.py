from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..constants import Channel
from ..database import get_db
from ..schemas.products import (
    ChannelPricing, PricingRow, ProductGroupIn, ProductGroupOut, ProductOut, ProductUpdate,
)
from ..services import products as svc

router = APIRouter()


# =============================================================================
# Products
# =============================================================================

@router.get("/products", response_model=List[ProductOut])
def list_products(
    search: Optional[str] = Query(None),
    channel: Optional[Channel] = Query(None),
    db: Session = Depends(get_db),
):
    return svc.list_products(db, search=search, channel=channel.value if channel else None)


@router.put("/products/{product_id}", response_model=ProductOut)
def update_product(product_id: int, body: ProductUpdate, db: Session = Depends(get_db)):
    svc.update_product(db, product_id, cost_price=body.cost_price, name=body.name)
    return svc.product_out(db, product_id)


@router.get("/products/pricing", response_model=List[PricingRow])
def pricing(
    channel: Optional[Channel] = Query(None),
    search: Optional[str] = Query(None),
    commission_percent: float = Query(0.0, ge=0, le=100),
    ads_percent: float = Query(0.0, ge=0, le=100),
    fixed_cost_percent: float = Query(0.0, ge=0, le=100),
    tax_percent: float = Query(0.0, ge=0, le=100),
    profit_percent: float = Query(0.0, ge=0, le=100),
    db: Session = Depends(get_db),
):
    """Suggested sale price per product; null where the percentages leave no room for the cost."""
    params = ChannelPricing(
        commission_percent=commission_percent,
        ads_percent=ads_percent,
        fixed_cost_percent=fixed_cost_percent,
        tax_percent=tax_percent,
        profit_percent=profit_percent,
    )
    return svc.pricing_table(db, params, channel=channel.value if channel else None, search=search)


# =============================================================================
# Product groups
# =============================================================================

@router.get("/product-groups", response_model=List[ProductGroupOut])
def list_groups(db: Session = Depends(get_db)):
    return svc.list_groups(db)


@router.post("/product-groups", response_model=ProductGroupOut, status_code=status.HTTP_201_CREATED)
def create_group(body: ProductGroupIn, db: Session = Depends(get_db)):
    return svc.create_group(db, body.name, body.product_ids)


@router.put("/product-groups/{group_id}", response_model=ProductGroupOut)
def update_group(group_id: int, body: ProductGroupIn, db: Session = Depends(get_db)):
    return svc.update_group(db, group_id, body.name, body.product_ids)


@router.delete("/product-groups/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_group(group_id: int, db: Session = Depends(get_db)):
    svc.delete_group(db, group_id)
