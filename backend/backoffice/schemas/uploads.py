"""
Pydantic schemas for the file upload API.
"""
from typing import Optional

from pydantic import BaseModel

from ..constants import Channel


CHANNEL_UPLOAD_META: dict[Channel, dict] = {
    Channel.TRAY: {
        "label": "Site Tray",
        "description": "Tray orders export (CSV, ';' delimited): one row per order, no item detail",
        "accepts_items_export": True,
    },
    Channel.SHOPEE: {
        "label": "Shopee",
        "description": "Shopee orders export (XLSX): one row per line item",
        "accepts_items_export": False,
    },
    Channel.TIKTOK: {
        "label": "TikTok Shop",
        "description": "TikTok Shop orders export (XLSX/CSV): one row per line item",
        "accepts_items_export": False,
    },
}


class ChannelInfo(BaseModel):
    value: str
    label: str
    description: str
    accepts_items_export: bool


class IngestResult(BaseModel):
    channel: str
    file_name: str
    rows_parsed: int
    accepted: int
    rejected: int
    orders_created: int = 0
    orders_updated: int = 0
    items: int = 0
    products_created: int = 0
    import_log_id: Optional[int] = None


class ItemsIngestResult(BaseModel):
    channel: str
    file_name: str
    rows_parsed: int
    items: int
    orders_updated: int
    rejected: int
    unmatched: int
    unmatched_order_ids: list[str] = []
    import_log_id: Optional[int] = None


class PurgeResult(BaseModel):
    channel: str
    orders_deleted: int
    items_deleted: int
    products_deleted: int
    groups_deleted: int = 0
