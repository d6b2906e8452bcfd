"""
Per-channel row normalizers.

Each normalizer is a pure function ``row -> NormalizedRow | None``:
  - ``row`` is one header-keyed spreadsheet row (cells default to "").
  - Header names drift between export versions and locales, so every logical
    field probes an ordered list of known header variants; first non-empty wins.
  - Rows without an order id or a parseable order date return None and are
    counted as rejected by the caller. They are never fatal.

The normalizer for a file is chosen from NORMALIZERS by the channel declared
at upload time, never by sniffing the row shape.
"""

import re
import unicodedata
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from ..constants import Channel
from .parsing import (
    clean_text,
    is_blank,
    parse_date_and_time,
    parse_flexible_date,
    parse_int_quantity,
    parse_locale_number,
    pick,
)


# =============================================================================
# Canonical records
# =============================================================================

@dataclass(frozen=True)
class OrderFields:
    order_id: str
    channel: str
    order_date: datetime
    status: str = ""
    product_name: str = ""
    quantity: int = 0
    # None = not reported by this export (as opposed to a reported 0)
    total_price: Optional[float] = None
    freight: Optional[float] = None
    payment_type: Optional[str] = None
    commission_fee: Optional[float] = None
    service_fee: Optional[float] = None


@dataclass(frozen=True)
class ItemFields:
    product_code: str
    name: str
    unit_price: float
    quantity: int
    line_total: float
    discount: float = 0.0


@dataclass(frozen=True)
class NormalizedRow:
    order: OrderFields
    item: Optional[ItemFields] = None


@dataclass(frozen=True)
class TrayItemRow:
    """One row of the tray "items sold" export, linked to an order by id."""
    order_id: str
    item: ItemFields


# =============================================================================
# Stable pseudo product codes
# =============================================================================

def string_hash(text: str) -> int:
    """32-bit multiplicative string hash; stable across processes and runs."""
    h = 0
    for ch in text:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    return h


def slugify(text: str) -> str:
    normalized = unicodedata.normalize("NFKD", text)
    ascii_text = "".join(c for c in normalized if not unicodedata.combining(c)).lower()
    return re.sub(r"[^a-z0-9]+", "-", ascii_text).strip("-")


def pseudo_product_code(name: str, variation: str = "") -> str:
    """Deterministic code for rows that carry no SKU: hash of name + variation slug."""
    slug = slugify(f"{name} {variation}")
    return f"h{string_hash(slug):08x}"


# =============================================================================
# Shared helpers
# =============================================================================

def _optional_number(row: dict, keys: list[str]) -> Optional[float]:
    val = pick(row, keys)
    return None if val is None else parse_locale_number(val)


def _optional_text(row: dict, keys: list[str]) -> Optional[str]:
    val = clean_text(pick(row, keys))
    return val or None


def _order_id(row: dict, keys: list[str]) -> str:
    val = pick(row, keys)
    if val is None:
        return ""
    text = str(val).strip()
    # Excel-typed numeric ids come back as "123456.0"
    if text.endswith(".0") and text[:-2].isdigit():
        text = text[:-2]
    return text.lstrip("'`")


def _item_amounts(unit_price: float, line_total: float, quantity: int) -> tuple[float, float]:
    """Fill in whichever of unit price / line total the export left blank."""
    if line_total == 0 and unit_price and quantity:
        line_total = round(unit_price * quantity, 2)
    if unit_price == 0 and line_total and quantity:
        unit_price = round(line_total / quantity, 2)
    return unit_price, line_total


def _build_item(
    row: dict,
    code_keys: list[str],
    name_keys: list[str],
    variation_keys: list[str],
    qty_keys: list[str],
    unit_keys: list[str],
    total_keys: list[str],
    discount_keys: list[str],
) -> Optional[ItemFields]:
    name = clean_text(pick(row, name_keys))
    variation = clean_text(pick(row, variation_keys)) if variation_keys else ""
    code = clean_text(pick(row, code_keys)).lstrip("'`")
    if not code:
        if not name:
            return None
        code = pseudo_product_code(name, variation)

    quantity = parse_int_quantity(pick(row, qty_keys))
    unit_price, line_total = _item_amounts(
        parse_locale_number(pick(row, unit_keys)),
        parse_locale_number(pick(row, total_keys)),
        quantity,
    )
    display = f"{name} - {variation}" if name and variation else (name or code)
    return ItemFields(
        product_code=code,
        name=display,
        unit_price=unit_price,
        quantity=quantity,
        line_total=line_total,
        discount=abs(parse_locale_number(pick(row, discount_keys))),
    )


# =============================================================================
# Tray: order-level export (semicolon CSV), items come from a second export
# =============================================================================

TRAY_ORDER_ID = [
    "Número do pedido", "Numero do pedido", "Número do Pedido", "Pedido",
    "Código do pedido", "Codigo do pedido", "ID do pedido", "Nº Pedido",
]
TRAY_DATE = ["Data do pedido", "Data", "Data da venda", "Data de criação", "Data do Pedido"]
TRAY_TIME = ["Hora do pedido", "Hora", "Horário", "Horario"]
TRAY_STATUS = ["Status do pedido", "Status", "Situação", "Situacao", "Status do Pedido"]
TRAY_TOTAL = ["Valor total", "Valor Total", "Total do pedido", "Total"]
TRAY_FREIGHT = ["Valor do frete", "Frete", "Valor frete", "Valor do Frete"]
TRAY_PAYMENT = ["Forma de pagamento", "Forma de Pagamento", "Meio de pagamento", "Pagamento"]
TRAY_QTY = ["Quantidade de itens", "Qtd. itens", "Quantidade", "Itens"]
TRAY_PRODUCTS = ["Produtos", "Produto", "Itens do pedido"]

TRAY_ITEM_CODE = [
    "Código do produto", "Codigo do produto", "Referência", "Referencia",
    "SKU", "ID do produto",
]
TRAY_ITEM_NAME = ["Nome do produto", "Produto", "Nome"]
TRAY_ITEM_VARIATION = ["Variação", "Variacao"]
TRAY_ITEM_QTY = ["Quantidade", "Qtd", "Qtde"]
TRAY_ITEM_UNIT = ["Preço unitário", "Preco unitario", "Valor unitário", "Valor unitario", "Preço"]
TRAY_ITEM_TOTAL = ["Valor total", "Subtotal", "Total"]
TRAY_ITEM_DISCOUNT = ["Desconto", "Valor do desconto"]


def normalize_tray(row: dict) -> Optional[NormalizedRow]:
    order_id = _order_id(row, TRAY_ORDER_ID)
    if not order_id:
        return None
    order_date = parse_date_and_time(pick(row, TRAY_DATE), pick(row, TRAY_TIME))
    if order_date is None:
        return None

    return NormalizedRow(
        order=OrderFields(
            order_id=order_id,
            channel=Channel.TRAY.value,
            order_date=order_date,
            status=clean_text(pick(row, TRAY_STATUS)),
            product_name=clean_text(pick(row, TRAY_PRODUCTS)),
            quantity=parse_int_quantity(pick(row, TRAY_QTY)),
            total_price=parse_locale_number(pick(row, TRAY_TOTAL)),
            freight=_optional_number(row, TRAY_FREIGHT),
            payment_type=_optional_text(row, TRAY_PAYMENT),
        ),
        item=None,
    )


def normalize_tray_item_row(row: dict) -> Optional[TrayItemRow]:
    order_id = _order_id(row, TRAY_ORDER_ID)
    if not order_id:
        return None
    item = _build_item(
        row,
        TRAY_ITEM_CODE, TRAY_ITEM_NAME, TRAY_ITEM_VARIATION,
        TRAY_ITEM_QTY, TRAY_ITEM_UNIT, TRAY_ITEM_TOTAL, TRAY_ITEM_DISCOUNT,
    )
    if item is None:
        return None
    return TrayItemRow(order_id=order_id, item=item)


# =============================================================================
# Shopee: one row per line item; order totals and fees repeat on every row
# =============================================================================

SHOPEE_ORDER_ID = ["ID do pedido", "ID do Pedido", "ID do Pedido (Order ID)", "Order ID", "ID Pedido"]
SHOPEE_DATE = [
    "Data de criação do pedido", "Data de Criação do Pedido",
    "Data do pedido", "Data", "Created Time",
]
SHOPEE_STATUS = ["Status do pedido", "Status do Pedido", "Status", "Order Status"]
SHOPEE_PRODUCT = ["Nome do Produto", "Nome do produto", "Produto", "Product Name", "Nome"]
SHOPEE_VARIATION = ["Nome da variação", "Nome da Variação", "Variação", "Variation Name"]
SHOPEE_SKU = [
    "Número de referência SKU", "Nº de referência do SKU principal",
    "Referência SKU", "SKU", "SKU Reference No.",
]
SHOPEE_QTY = ["Quantidade", "Qty", "Quantity", "Quantidade do produto"]
SHOPEE_UNIT_PRICE = ["Preço acordado", "Preço Acordado", "Deal Price", "Preço original"]
SHOPEE_LINE_TOTAL = ["Subtotal do produto", "Subtotal do Produto", "Product Subtotal"]
SHOPEE_ORDER_TOTAL = ["Total global", "Valor Total", "Preço Final Total", "Grand Total"]
SHOPEE_DISCOUNT = ["Desconto do vendedor", "Cupom do vendedor", "Seller Discount"]
SHOPEE_COMMISSION = ["Taxa de comissão", "Taxa de Comissão", "Commission Fee"]
SHOPEE_SERVICE = ["Taxa de serviço", "Taxa de Serviço", "Service Fee"]
SHOPEE_FREIGHT = [
    "Valor estimado do frete", "Taxa de envio pagas pelo comprador", "Shipping Fee",
]
SHOPEE_PAYMENT = ["Método de pagamento", "Forma de pagamento", "Payment Method"]


def normalize_shopee(row: dict) -> Optional[NormalizedRow]:
    order_id = _order_id(row, SHOPEE_ORDER_ID)
    if not order_id:
        return None
    order_date = parse_flexible_date(pick(row, SHOPEE_DATE))
    if order_date is None:
        return None

    item = _build_item(
        row,
        SHOPEE_SKU, SHOPEE_PRODUCT, SHOPEE_VARIATION,
        SHOPEE_QTY, SHOPEE_UNIT_PRICE, SHOPEE_LINE_TOTAL, SHOPEE_DISCOUNT,
    )
    commission = _optional_number(row, SHOPEE_COMMISSION)
    service = _optional_number(row, SHOPEE_SERVICE)
    return NormalizedRow(
        order=OrderFields(
            order_id=order_id,
            channel=Channel.SHOPEE.value,
            order_date=order_date,
            status=clean_text(pick(row, SHOPEE_STATUS)),
            product_name=item.name if item else clean_text(pick(row, SHOPEE_PRODUCT)),
            quantity=item.quantity if item else parse_int_quantity(pick(row, SHOPEE_QTY)),
            total_price=_optional_number(row, SHOPEE_ORDER_TOTAL),
            freight=_optional_number(row, SHOPEE_FREIGHT),
            payment_type=_optional_text(row, SHOPEE_PAYMENT),
            # Shopee reports fees as negatives in some export versions
            commission_fee=abs(commission) if commission is not None else None,
            service_fee=abs(service) if service is not None else None,
        ),
        item=item,
    )


# =============================================================================
# TikTok Shop: one row per line item; SKU is optional
# =============================================================================

TIKTOK_ORDER_ID = ["Order ID", "Order Id", "ID do pedido"]
TIKTOK_DATE = ["Created Time", "Order Created Time", "Data de criação", "Paid Time"]
TIKTOK_STATUS = ["Order Status", "Status do pedido", "Order Substatus"]
TIKTOK_PRODUCT = ["Product Name", "Nome do produto"]
TIKTOK_VARIATION = ["Variation", "Variação"]
TIKTOK_SKU = ["Seller SKU", "SKU do vendedor", "SKU ID"]
TIKTOK_QTY = ["Quantity", "Quantidade"]
TIKTOK_UNIT_PRICE = ["SKU Unit Original Price", "Preço unitário original do SKU"]
TIKTOK_LINE_TOTAL = ["SKU Subtotal After Discount", "Subtotal do SKU após desconto"]
TIKTOK_DISCOUNT = ["SKU Seller Discount", "Desconto do vendedor no SKU"]
TIKTOK_ORDER_TOTAL = ["Order Amount", "Valor do pedido"]
TIKTOK_FREIGHT = ["Shipping Fee After Discount", "Original Shipping Fee", "Frete"]
TIKTOK_COMMISSION = ["Platform Commission", "Comissão da plataforma", "Taxa de comissão"]
TIKTOK_SERVICE = ["Transaction Fee", "Taxa de transação", "Taxa de serviço"]
TIKTOK_PAYMENT = ["Payment Method", "Método de pagamento"]


def normalize_tiktok(row: dict) -> Optional[NormalizedRow]:
    order_id = _order_id(row, TIKTOK_ORDER_ID)
    if not order_id:
        return None
    order_date = parse_flexible_date(pick(row, TIKTOK_DATE))
    if order_date is None:
        return None

    item = _build_item(
        row,
        TIKTOK_SKU, TIKTOK_PRODUCT, TIKTOK_VARIATION,
        TIKTOK_QTY, TIKTOK_UNIT_PRICE, TIKTOK_LINE_TOTAL, TIKTOK_DISCOUNT,
    )
    if item is not None and not is_blank(pick(row, TIKTOK_LINE_TOTAL)) and item.quantity:
        # Unit price after discount is what the buyer actually paid
        item = ItemFields(
            product_code=item.product_code,
            name=item.name,
            unit_price=round(item.line_total / item.quantity, 2),
            quantity=item.quantity,
            line_total=item.line_total,
            discount=item.discount,
        )
    commission = _optional_number(row, TIKTOK_COMMISSION)
    service = _optional_number(row, TIKTOK_SERVICE)
    return NormalizedRow(
        order=OrderFields(
            order_id=order_id,
            channel=Channel.TIKTOK.value,
            order_date=order_date,
            status=clean_text(pick(row, TIKTOK_STATUS)),
            product_name=item.name if item else clean_text(pick(row, TIKTOK_PRODUCT)),
            quantity=item.quantity if item else parse_int_quantity(pick(row, TIKTOK_QTY)),
            total_price=_optional_number(row, TIKTOK_ORDER_TOTAL),
            freight=_optional_number(row, TIKTOK_FREIGHT),
            payment_type=_optional_text(row, TIKTOK_PAYMENT),
            commission_fee=abs(commission) if commission is not None else None,
            service_fee=abs(service) if service is not None else None,
        ),
        item=item,
    )


# =============================================================================
# Registry
# =============================================================================

Normalizer = Callable[[dict], Optional[NormalizedRow]]

NORMALIZERS: dict[Channel, Normalizer] = {
    Channel.TRAY: normalize_tray,
    Channel.SHOPEE: normalize_shopee,
    Channel.TIKTOK: normalize_tiktok,
}

# A file that has none of these headers is the wrong export, not a bad row
ORDER_ID_HEADERS: dict[Channel, list[str]] = {
    Channel.TRAY: TRAY_ORDER_ID,
    Channel.SHOPEE: SHOPEE_ORDER_ID,
    Channel.TIKTOK: TIKTOK_ORDER_ID,
}

# Channels whose primary export is already line-item granular
LINE_ITEM_CHANNELS = {Channel.SHOPEE, Channel.TIKTOK}


def normalize_row(channel: Channel, row: dict) -> Optional[NormalizedRow]:
    """Entry point used by the ingestion service."""
    return NORMALIZERS[Channel(channel)](row)
