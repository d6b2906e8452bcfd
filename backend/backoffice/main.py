import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import models  # noqa: F401  (registers every table on Base.metadata)
from .api import api_router
from .config import settings
from .database import engine, Base
from .errors import BackofficeError, FileFormatError

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)

# Create tables on startup (no-op if they already exist; non-fatal so the
# server starts even if the DB is temporarily unreachable).
try:
    Base.metadata.create_all(bind=engine)
except Exception as exc:
    logger.warning("create_all skipped, DB not reachable at startup: %s", exc)

app = FastAPI(
    title="Marketplace Back-Office API",
    description="Order ingestion, inventory and financial reports for multi-channel e-commerce",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BackofficeError)
async def backoffice_error_handler(request: Request, exc: BackofficeError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(FileFormatError)
async def file_format_error_handler(request: Request, exc: FileFormatError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


app.include_router(api_router, prefix="/api")


@app.get("/health")
def health():
    return {"status": "ok"}
