from fastapi import APIRouter
from .uploads import router as uploads_router
from .orders import router as orders_router
from .products import router as products_router
from .inventory import router as inventory_router
from .finance import router as finance_router
from .bills import router as bills_router

api_router = APIRouter()
api_router.include_router(uploads_router,   prefix="/uploads",   tags=["Uploads"])
api_router.include_router(orders_router,    prefix="/orders",    tags=["Orders"])
api_router.include_router(products_router,                       tags=["Products"])
api_router.include_router(inventory_router, prefix="/inventory", tags=["Inventory"])
api_router.include_router(finance_router,   prefix="/finance",   tags=["Finance"])
api_router.include_router(bills_router,     prefix="/bills",     tags=["Bills"])
