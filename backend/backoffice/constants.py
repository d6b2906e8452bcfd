"""
Shared constants for the back office.
Used by the normalizers, the services and the API layer.
"""
from enum import Enum


# ---------------------------------------------------------------------------
# Sales channels (must match `orders.channel` in DB)
# ---------------------------------------------------------------------------
class Channel(str, Enum):
    TRAY = "tray"       # own web store: order-level export + separate items export
    SHOPEE = "shopee"   # marketplace: one row per line item
    TIKTOK = "tiktok"   # marketplace: one row per line item, SKU optional


ALL_CHANNELS = [c.value for c in Channel]

CHANNEL_LABELS: dict[str, str] = {
    Channel.TRAY.value:   "Site Tray",
    Channel.SHOPEE.value: "Shopee",
    Channel.TIKTOK.value: "TikTok",
}

# Channels whose marketplace charges commission + service fees per order
MARKETPLACE_FEE_CHANNELS = (Channel.SHOPEE.value, Channel.TIKTOK.value)

# Channel whose payments go through a card / PIX processor (fee by payment type)
PAYMENT_FEE_CHANNEL = Channel.TRAY.value

# Pseudo-channel accepted by report endpoints
ALL_CHANNELS_SCOPE = "all"

# ---------------------------------------------------------------------------
# Bill status values (derived, see services/bills.py)
# ---------------------------------------------------------------------------
BILL_PENDING = "pending"
BILL_PARTIAL = "partial"
BILL_PAID    = "paid"

ALL_BILL_STATUSES = [BILL_PENDING, BILL_PARTIAL, BILL_PAID]
