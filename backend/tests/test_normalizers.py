from datetime import datetime

from backoffice.constants import Channel
from backoffice.utils.normalizers import (
    NORMALIZERS,
    normalize_row,
    normalize_shopee,
    normalize_tiktok,
    normalize_tray,
    normalize_tray_item_row,
    pseudo_product_code,
    slugify,
    string_hash,
)


def test_every_channel_has_a_normalizer():
    assert set(NORMALIZERS) == set(Channel)


def test_string_hash_is_stable_32_bit():
    assert string_hash("") == 0
    assert string_hash("a") == 97
    assert string_hash("ab") == 97 * 31 + 98
    assert 0 <= string_hash("x" * 500) <= 0xFFFFFFFF


def test_pseudo_product_code_ignores_case_and_accents():
    assert slugify("Vela Aromática  200g") == "vela-aromatica-200g"
    code = pseudo_product_code("Vela Aromática", "200g")
    assert code == pseudo_product_code("vela aromatica", "200G")
    assert code.startswith("h") and len(code) == 9


def test_tray_row_is_order_level():
    row = {
        "Número do pedido": "5001",
        "Data do pedido": "13/01/2026",
        "Hora do pedido": "14:05",
        "Status do pedido": "Pagamento aprovado",
        "Valor total": "R$ 150,00",
        "Valor do frete": "R$ 20,00",
        "Forma de pagamento": "Cartão de crédito",
        "Quantidade de itens": "2",
        "Produtos": "Vela Lavanda",
    }
    parsed = normalize_tray(row)
    assert parsed.item is None
    assert parsed.order.order_id == "5001"
    assert parsed.order.order_date == datetime(2026, 1, 13, 14, 5)
    assert parsed.order.total_price == 150.0
    assert parsed.order.freight == 20.0
    assert parsed.order.payment_type == "Cartão de crédito"
    assert parsed.order.quantity == 2


def test_rows_without_order_id_or_date_are_skipped():
    assert normalize_tray({"Número do pedido": "", "Data do pedido": "13/01/2026"}) is None
    assert normalize_tray({"Número do pedido": "1", "Data do pedido": "ontem"}) is None
    assert normalize_shopee({"ID do pedido": "A1", "Data de criação do pedido": ""}) is None
    assert normalize_tiktok({"Order ID": "", "Created Time": "13/01/2026"}) is None


def test_excel_typed_order_ids_lose_the_float_suffix():
    parsed = normalize_tray({"Número do pedido": "5001.0", "Data do pedido": "13/01/2026"})
    assert parsed.order.order_id == "5001"


def test_shopee_row_carries_item_and_positive_fees():
    row = {
        "ID do pedido": "2601A",
        "Data de criação do pedido": "2026-01-10 09:30",
        "Status do pedido": "Concluído",
        "Nome do Produto": "Vela Lavanda",
        "Número de referência SKU": "VL-01",
        "Quantidade": "2",
        "Preço acordado": "30.00",
        "Subtotal do produto": "60.00",
        "Total global": "85.00",
        "Taxa de comissão": "-8.50",
        "Taxa de serviço": "-3.00",
    }
    parsed = normalize_shopee(row)
    assert parsed.order.order_date == datetime(2026, 1, 10, 9, 30)
    assert parsed.order.total_price == 85.0
    assert parsed.order.commission_fee == 8.5
    assert parsed.order.service_fee == 3.0
    assert parsed.item.product_code == "VL-01"
    assert parsed.item.quantity == 2
    assert parsed.item.line_total == 60.0


def test_shopee_missing_line_total_is_derived():
    row = {
        "ID do pedido": "2601A",
        "Data de criação do pedido": "2026-01-10",
        "Nome do Produto": "Vela",
        "Número de referência SKU": "VL-01",
        "Quantidade": "3",
        "Preço acordado": "10,00",
    }
    parsed = normalize_shopee(row)
    assert parsed.item.line_total == 30.0
    assert parsed.order.total_price is None


def test_tiktok_without_seller_sku_uses_pseudo_code():
    row = {
        "Order ID": "5777",
        "Order Status": "Completed",
        "Created Time": "13/01/2026 10:00:00",
        "Product Name": "Vela Lavanda",
        "Variation": "200g",
        "Seller SKU": "",
        "Quantity": "2",
        "SKU Unit Original Price": "40.00",
        "SKU Subtotal After Discount": "70.00",
        "Order Amount": "75.00",
    }
    parsed = normalize_tiktok(row)
    assert parsed.item.product_code == pseudo_product_code("Vela Lavanda", "200g")
    assert parsed.item.name == "Vela Lavanda - 200g"
    # Unit price reflects the discounted subtotal
    assert parsed.item.unit_price == 35.0
    assert parsed.order.total_price == 75.0


def test_tiktok_prefers_seller_sku_over_sku_id():
    row = {
        "Order ID": "5778",
        "Created Time": "2026-01-13T10:00:00",
        "Product Name": "Difusor",
        "Seller SKU": "DF-1",
        "SKU ID": "172999",
        "Quantity": "1",
    }
    assert normalize_tiktok(row).item.product_code == "DF-1"
    row["Seller SKU"] = ""
    assert normalize_tiktok(row).item.product_code == "172999"


def test_tray_item_row():
    row = {
        "Número do pedido": "5001",
        "Código do produto": "VL-01",
        "Nome do produto": "Vela Lavanda",
        "Quantidade": "2",
        "Preço unitário": "65,00",
        "Valor total": "130,00",
    }
    parsed = normalize_tray_item_row(row)
    assert parsed.order_id == "5001"
    assert parsed.item.product_code == "VL-01"
    assert parsed.item.unit_price == 65.0
    assert parsed.item.line_total == 130.0
    assert normalize_tray_item_row({"Número do pedido": "5001"}) is None


def test_normalize_row_dispatches_by_channel():
    row = {"Order ID": "1", "Created Time": "2026-01-13", "Product Name": "X", "Quantity": "1"}
    assert normalize_row(Channel.TIKTOK, row).order.channel == "tiktok"
    assert normalize_row("tiktok", row).order.channel == "tiktok"
