from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.inventory import (
    GroupStockIn, InventoryConfigIn, InventoryConfigOut, ProductStockIn, ProductStockRow,
    StockProjection, StockReport,
)
from ..services import inventory as svc

router = APIRouter()


@router.get("/config", response_model=InventoryConfigOut)
def get_config(db: Session = Depends(get_db)):
    return svc.get_config(db)


@router.post("/config", response_model=InventoryConfigOut)
def set_config(body: InventoryConfigIn, db: Session = Depends(get_db)):
    return svc.set_stock_start_date(db, body.stock_start_date)


@router.get("/product-stock", response_model=List[ProductStockRow])
def list_product_stock(db: Session = Depends(get_db)):
    return svc.list_product_stock(db)


@router.put("/product-stock", response_model=ProductStockRow)
def set_product_stock(body: ProductStockIn, db: Session = Depends(get_db)):
    return svc.set_product_stock(db, body.product_id, body.quantity)


@router.put("/group-stock")
def set_group_stock(body: GroupStockIn, db: Session = Depends(get_db)):
    return svc.set_group_stock(db, body.product_group_id, body.quantity)


@router.get("/current", response_model=StockReport, summary="Opening quantity minus units sold since the start date")
def current_stock(db: Session = Depends(get_db)):
    return svc.current_stock(db)


@router.get("/projection", response_model=StockProjection, summary="Revenue and cost if the remaining stock sold out")
def stock_projection(db: Session = Depends(get_db)):
    return svc.stock_projection(db)
