"""
File upload API.

GET  /api/uploads/channels           : list supported channels
POST /api/uploads/orders?channel=    : ingest a channel orders export
POST /api/uploads/items?channel=tray : attach line items from the tray items export

Each upload is one all-or-nothing batch: malformed rows are skipped and
counted, but a database conflict rolls back the whole file.
"""

import logging

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlalchemy.orm import Session

from ..config import settings
from ..constants import Channel
from ..database import get_db
from ..errors import ColumnMismatchError, FileFormatError
from ..schemas.uploads import CHANNEL_UPLOAD_META, ChannelInfo, IngestResult, ItemsIngestResult
from ..services.ingestion import ingest, ingest_items

router = APIRouter()
logger = logging.getLogger(__name__)


async def _read_upload(file: UploadFile) -> tuple[str, bytes]:
    filename = file.filename or "upload"
    content = await file.read()
    if len(content) > settings.max_upload_mb * 1024 * 1024:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds {settings.max_upload_mb} MB limit",
        )
    return filename, content


def _format_error(channel: Channel, exc: FileFormatError) -> HTTPException:
    if isinstance(exc, ColumnMismatchError):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "message": (
                    f"The uploaded file does not look like a '{channel.value}' export. "
                    "It may be a different version of the export. Please check the column names."
                ),
                "missing_columns": exc.missing,
                "columns_found_in_file": exc.found,
            },
        )
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={"message": str(exc)},
    )


# =============================================================================
# GET /channels
# =============================================================================

@router.get("/channels", response_model=list[ChannelInfo], summary="List supported sales channels")
def list_channels():
    return [
        ChannelInfo(
            value=ch.value,
            label=meta["label"],
            description=meta["description"],
            accepts_items_export=meta["accepts_items_export"],
        )
        for ch, meta in CHANNEL_UPLOAD_META.items()
    ]


# =============================================================================
# POST /orders
# =============================================================================

@router.post(
    "/orders",
    response_model=IngestResult,
    summary="Upload a channel orders export",
    description=(
        "Parse the file with the channel's column mapping and upsert orders by "
        "(order id, channel). Re-uploading the same file is idempotent."
    ),
)
async def upload_orders(
    channel: Channel = Query(..., description="Sales channel the export came from"),
    file: UploadFile = File(..., description="The CSV or Excel export"),
    db: Session = Depends(get_db),
):
    filename, content = await _read_upload(file)
    try:
        return ingest(db, content, filename, channel)
    except FileFormatError as exc:
        raise _format_error(channel, exc)


# =============================================================================
# POST /items
# =============================================================================

@router.post(
    "/items",
    response_model=ItemsIngestResult,
    summary="Upload the tray items-sold export",
    description=(
        "Adds line items to orders already imported from the tray orders export. "
        "Order totals are never changed; items of unknown orders are counted as unmatched."
    ),
)
async def upload_items(
    channel: Channel = Query(Channel.TRAY, description="Channel with a separate items export"),
    file: UploadFile = File(..., description="The items-sold CSV export"),
    db: Session = Depends(get_db),
):
    filename, content = await _read_upload(file)
    try:
        return ingest_items(db, content, filename, channel)
    except FileFormatError as exc:
        raise _format_error(channel, exc)
