"""
HTTP-level tests: routing, status codes and error mapping.
Business rules are covered by the service tests.
"""

SHOPEE_CSV = (
    "ID do pedido,Data de criação do pedido,Status do pedido,Nome do Produto,"
    "Número de referência SKU,Quantidade,Preço acordado,Subtotal do produto,Total global\n"
    "3001,2026-01-10 09:30,Concluído,Vela Lavanda,VL-01,2,30.00,60.00,60.00\n"
    "3002,2026-01-12 15:00,Concluído,Difusor Bambu,DB-02,1,25.00,25.00,25.00\n"
    "3003,2025-12-01 08:00,Concluído,Sabonete Argila,SB-03,1,15.00,15.00,15.00\n"
).encode("utf-8")


def _upload(client, csv=SHOPEE_CSV, channel="shopee", kind="orders", filename="export.csv"):
    return client.post(
        f"/api/uploads/{kind}",
        params={"channel": channel},
        files={"file": (filename, csv, "text/csv")},
    )


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_list_channels(client):
    resp = client.get("/api/uploads/channels")
    assert resp.status_code == 200
    channels = {c["value"]: c for c in resp.json()}
    assert set(channels) == {"tray", "shopee", "tiktok"}
    assert channels["tray"]["accepts_items_export"] is True
    assert channels["shopee"]["accepts_items_export"] is False


# =============================================================================
# Uploads / orders
# =============================================================================

def test_upload_then_list_orders(client):
    resp = _upload(client)
    assert resp.status_code == 200
    body = resp.json()
    assert body["accepted"] == 3
    assert body["orders_created"] == 3
    assert body["import_log_id"] is not None

    page = client.get("/api/orders", params={"channel": "shopee"}).json()
    assert page["total"] == 3
    # Newest first
    assert [o["order_id"] for o in page["orders"]] == ["3002", "3001", "3003"]
    assert page["orders"][1]["items"][0]["product_code"] == "VL-01"

    page = client.get("/api/orders", params={"search": "vela"}).json()
    assert [o["order_id"] for o in page["orders"]] == ["3001"]

    page = client.get("/api/orders", params={"start_date": "2026-01-11", "end_date": "2026-01-12"}).json()
    assert [o["order_id"] for o in page["orders"]] == ["3002"]


def test_upload_unknown_channel_is_rejected(client):
    assert _upload(client, channel="mercadolivre").status_code == 422


def test_upload_wrong_export_reports_columns(client):
    tiktok_csv = b"Order ID,Created Time,Order Amount\n5777,13/01/2026 10:00:00,75.00\n"
    resp = _upload(client, csv=tiktok_csv, channel="tray")
    assert resp.status_code == 422
    detail = resp.json()["detail"]
    assert "tray" in detail["message"]
    assert "Order ID" in detail["columns_found_in_file"]


def test_upload_unreadable_file(client):
    resp = _upload(client, csv=b"PK\x03\x04 not really a zip", filename="export.xlsx")
    assert resp.status_code == 422
    assert "message" in resp.json()["detail"]


def test_items_export_only_for_tray(client):
    resp = _upload(client, kind="items", channel="shopee")
    assert resp.status_code == 422


def test_purge_channel(client):
    _upload(client)
    resp = client.delete("/api/orders", params={"channel": "shopee", "include_products": "true"})
    assert resp.status_code == 200
    assert client.get("/api/orders").json()["total"] == 0
    assert client.get("/api/products").json() == []


# =============================================================================
# Products / groups
# =============================================================================

def test_product_cost_and_groups(client):
    _upload(client)
    products = {p["name"]: p for p in client.get("/api/products").json()}
    vela, difusor, sabonete = products["Vela Lavanda"], products["Difusor Bambu"], products["Sabonete Argila"]

    resp = client.put(f"/api/products/{vela['id']}", json={"cost_price": 12.5})
    assert resp.status_code == 200
    assert resp.json()["cost_price"] == 12.5

    assert client.put("/api/products/999", json={"cost_price": 1}).status_code == 404

    resp = client.post("/api/product-groups", json={"name": "Aromas", "product_ids": [vela["id"], difusor["id"]]})
    assert resp.status_code == 201
    group_id = resp.json()["id"]

    # Vela is already grouped
    resp = client.post("/api/product-groups", json={"name": "Outro", "product_ids": [vela["id"], sabonete["id"]]})
    assert resp.status_code == 409

    # A group needs at least two products
    resp = client.post("/api/product-groups", json={"name": "Solo", "product_ids": [sabonete["id"]]})
    assert resp.status_code == 422

    assert client.post("/api/product-groups", json={"name": "  ", "product_ids": []}).status_code == 422

    assert client.delete(f"/api/product-groups/{group_id}").status_code == 204
    assert client.delete(f"/api/product-groups/{group_id}").status_code == 404


# =============================================================================
# Inventory / finance
# =============================================================================

def test_inventory_config_validation(client):
    assert client.post("/api/inventory/config", json={"stock_start_date": "2026-13-40"}).status_code == 422

    resp = client.post("/api/inventory/config", json={"stock_start_date": "2026-01-01"})
    assert resp.status_code == 200
    assert resp.json()["stock_start_date"] == "2026-01-01"
    assert client.get("/api/inventory/config").json()["stock_start_date"] == "2026-01-01"


def test_inventory_reports(client):
    _upload(client)
    vela = next(p for p in client.get("/api/products").json() if p["name"] == "Vela Lavanda")
    resp = client.put("/api/inventory/product-stock", json={"product_id": vela["id"], "quantity": 10})
    assert resp.status_code == 200

    report = client.get("/api/inventory/current").json()
    [line] = report["items"]
    assert (line["opening"], line["sold"], line["current"]) == (10, 2, 8)

    projection = client.get("/api/inventory/projection").json()
    assert projection["projected_revenue"] == 240.0

    resp = client.put("/api/inventory/product-stock", json={"product_id": vela["id"], "quantity": -1})
    assert resp.status_code == 422


def test_simulation_rejects_bad_month(client):
    resp = client.get("/api/finance/simulation", params={"month": "2026-13"})
    assert resp.status_code == 422


def test_simulation_and_ads(client):
    _upload(client)
    resp = client.post("/api/finance/ad-spend", json={"month": "2026-01", "channel": " Shopee ", "amount": 17})
    assert resp.status_code == 200
    assert resp.json()["channel"] == "shopee"

    result = client.get(
        "/api/finance/simulation",
        params={"month": "2026-01", "channel": "shopee", "fixed_cost": 0, "tax_percent": 0},
    ).json()
    assert result["gross_revenue"] == 85.0
    assert result["ads_spend"] == 17.0
    assert result["ads_percent"] == 20.0
    assert result["net_profit"] == 68.0

    ads = client.get("/api/finance/ads-dashboard", params={"from": "2026-01", "to": "2026-01"}).json()
    assert ads["kpis"]["roas"] == 5.0


def test_sales_dashboard_range_validation(client):
    assert client.get("/api/finance/dashboard", params={"range": "1y"}).status_code == 422
    assert client.get("/api/finance/dashboard", params={"range": "7d"}).status_code == 200


# =============================================================================
# Bills
# =============================================================================

def test_bill_lifecycle(client):
    resp = client.post("/api/bills", json={"description": "Embalagens", "total_amount": "300,00",
                                           "due_date": "2026-01-20"})
    assert resp.status_code == 201
    bill = resp.json()
    assert bill["status"] == "pending"
    assert bill["due_date"] == "2026-01-20"

    resp = client.post(f"/api/bills/{bill['id']}/payments",
                       json={"amount": 300, "due_date": "2026-01-20", "paid_at": "2026-01-19"})
    assert resp.status_code == 201
    assert resp.json()["status"] == "paid"
    payment_id = resp.json()["payments"][0]["id"]

    resp = client.patch(f"/api/bills/{bill['id']}/payments/{payment_id}", json={"paid_at": None})
    assert resp.status_code == 200
    assert resp.json()["status"] == "pending"

    resp = client.put(f"/api/bills/{bill['id']}", json={"description": "Embalagens kraft"})
    assert resp.json()["description"] == "Embalagens kraft"
    assert resp.json()["due_date"] == "2026-01-20"

    resp = client.get("/api/bills/dashboard")
    assert resp.status_code == 200
    assert resp.json()["total"] == 300.0

    assert client.delete(f"/api/bills/{bill['id']}").status_code == 204
    assert client.get(f"/api/bills/{bill['id']}").status_code == 404


def test_bill_validation(client):
    assert client.post("/api/bills", json={"description": "", "total_amount": 10}).status_code == 422
    assert client.post("/api/bills", json={"description": "X", "total_amount": 0}).status_code == 422
    assert client.post("/api/bills", json={"description": "X", "total_amount": 10,
                                           "due_date": "20/01/2026"}).status_code == 422
    assert client.get("/api/bills", params={"status": "late"}).status_code == 422
