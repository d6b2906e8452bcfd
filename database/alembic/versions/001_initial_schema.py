"""Initial back-office schema: orders, products, inventory, finance, bills

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-17

Tables:
  - orders / order_items          canonical orders per (order_id, channel)
  - products / product_groups / product_group_items
  - product_stock / product_group_stock / inventory_config
  - ad_spend / payment_type_fees
  - bills / bill_payments
  - import_logs                   one row per uploaded file
"""
from alembic import op

revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ── Orders ────────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE IF NOT EXISTS orders (
            id             SERIAL         PRIMARY KEY,
            order_id       VARCHAR(100)   NOT NULL,
            channel        VARCHAR(20)    NOT NULL,
            order_date     TIMESTAMP      NOT NULL,
            product_name   VARCHAR(2000)  NOT NULL DEFAULT '',
            quantity       INTEGER        NOT NULL DEFAULT 0,
            total_price    NUMERIC(14, 2) NOT NULL DEFAULT 0,
            status         VARCHAR(200)   NOT NULL DEFAULT '',
            freight        NUMERIC(14, 2),
            payment_type   VARCHAR(200),
            commission_fee NUMERIC(14, 2),
            service_fee    NUMERIC(14, 2),
            created_at     TIMESTAMP      NOT NULL DEFAULT NOW(),
            updated_at     TIMESTAMP,
            UNIQUE (order_id, channel)
        );
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_orders_date    ON orders (order_date DESC);")
    op.execute("CREATE INDEX IF NOT EXISTS idx_orders_channel ON orders (channel, order_date DESC);")

    # ── Products ──────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE IF NOT EXISTS products (
            id          SERIAL         PRIMARY KEY,
            code        VARCHAR(300)   NOT NULL UNIQUE,
            name        VARCHAR(500)   NOT NULL,
            cost_price  NUMERIC(14, 2),
            source      VARCHAR(20)    NOT NULL,
            created_at  TIMESTAMP      NOT NULL DEFAULT NOW(),
            updated_at  TIMESTAMP
        );
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS order_items (
            id           SERIAL         PRIMARY KEY,
            order_id     INTEGER        NOT NULL REFERENCES orders(id) ON DELETE CASCADE,
            channel      VARCHAR(20)    NOT NULL,
            product_code VARCHAR(200)   NOT NULL,
            name         VARCHAR(500)   NOT NULL DEFAULT '',
            unit_price   NUMERIC(14, 2) NOT NULL DEFAULT 0,
            quantity     INTEGER        NOT NULL DEFAULT 0,
            line_total   NUMERIC(14, 2) NOT NULL DEFAULT 0,
            discount     NUMERIC(14, 2) NOT NULL DEFAULT 0,
            product_id   INTEGER        REFERENCES products(id) ON DELETE SET NULL,
            UNIQUE (order_id, channel, product_code)
        );
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_order_items_product ON order_items (product_id);")

    op.execute("""
        CREATE TABLE IF NOT EXISTS product_groups (
            id          SERIAL        PRIMARY KEY,
            name        VARCHAR(300)  NOT NULL,
            created_at  TIMESTAMP     NOT NULL DEFAULT NOW(),
            updated_at  TIMESTAMP
        );
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS product_group_items (
            id               SERIAL  PRIMARY KEY,
            product_group_id INTEGER NOT NULL REFERENCES product_groups(id) ON DELETE CASCADE,
            product_id       INTEGER NOT NULL UNIQUE REFERENCES products(id) ON DELETE CASCADE
        );
    """)

    # ── Inventory ─────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE IF NOT EXISTS product_stock (
            id          SERIAL    PRIMARY KEY,
            product_id  INTEGER   NOT NULL UNIQUE REFERENCES products(id) ON DELETE CASCADE,
            quantity    INTEGER   NOT NULL DEFAULT 0,
            updated_at  TIMESTAMP DEFAULT NOW()
        );
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS product_group_stock (
            id               SERIAL    PRIMARY KEY,
            product_group_id INTEGER   NOT NULL UNIQUE REFERENCES product_groups(id) ON DELETE CASCADE,
            quantity         INTEGER   NOT NULL DEFAULT 0,
            updated_at       TIMESTAMP DEFAULT NOW()
        );
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS inventory_config (
            id               INTEGER   PRIMARY KEY,
            stock_start_date TIMESTAMP,
            updated_at       TIMESTAMP DEFAULT NOW()
        );
    """)

    # ── Finance ───────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE IF NOT EXISTS ad_spend (
            id          SERIAL         PRIMARY KEY,
            month       DATE           NOT NULL,
            channel     VARCHAR(50)    NOT NULL,
            amount      NUMERIC(14, 2) NOT NULL DEFAULT 0,
            notes       TEXT           NOT NULL DEFAULT '',
            updated_at  TIMESTAMP      DEFAULT NOW(),
            UNIQUE (month, channel)
        );
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS payment_type_fees (
            id           SERIAL        PRIMARY KEY,
            month        DATE          NOT NULL,
            channel      VARCHAR(20)   NOT NULL,
            payment_type VARCHAR(200)  NOT NULL,
            percent      NUMERIC(8, 4) NOT NULL DEFAULT 0,
            updated_at   TIMESTAMP     DEFAULT NOW(),
            UNIQUE (month, channel, payment_type)
        );
    """)

    # ── Bills ─────────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE IF NOT EXISTS bills (
            id             SERIAL         PRIMARY KEY,
            description    VARCHAR(500)   NOT NULL,
            invoice_number VARCHAR(100),
            total_amount   NUMERIC(14, 2) NOT NULL,
            due_date       TIMESTAMP,
            status         VARCHAR(20)    NOT NULL DEFAULT 'pending'
                               CHECK (status IN ('pending', 'partial', 'paid')),
            created_at     TIMESTAMP      NOT NULL DEFAULT NOW(),
            updated_at     TIMESTAMP
        );
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS bill_payments (
            id        SERIAL         PRIMARY KEY,
            bill_id   INTEGER        NOT NULL REFERENCES bills(id) ON DELETE CASCADE,
            amount    NUMERIC(14, 2) NOT NULL,
            due_date  TIMESTAMP      NOT NULL,
            paid_at   TIMESTAMP,
            notes     TEXT           NOT NULL DEFAULT ''
        );
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_bill_payments_due ON bill_payments (due_date);")

    # ── Audit ─────────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE IF NOT EXISTS import_logs (
            id               SERIAL       PRIMARY KEY,
            source_type      VARCHAR(30)  NOT NULL,
            channel          VARCHAR(20)  NOT NULL,
            file_name        VARCHAR(500),
            start_time       TIMESTAMP    NOT NULL DEFAULT NOW(),
            end_time         TIMESTAMP,
            status           VARCHAR(20)  NOT NULL DEFAULT 'running'
                                 CHECK (status IN ('running', 'success', 'failed')),
            records_imported INTEGER      DEFAULT 0,
            records_rejected INTEGER      DEFAULT 0,
            error_message    TEXT
        );
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_import_logs_start ON import_logs (start_time DESC);")


def downgrade() -> None:
    op.drop_table("import_logs",         checkfirst=True)
    op.drop_table("bill_payments",       checkfirst=True)
    op.drop_table("bills",               checkfirst=True)
    op.drop_table("payment_type_fees",   checkfirst=True)
    op.drop_table("ad_spend",            checkfirst=True)
    op.drop_table("inventory_config",    checkfirst=True)
    op.drop_table("product_group_stock", checkfirst=True)
    op.drop_table("product_stock",       checkfirst=True)
    op.drop_table("product_group_items", checkfirst=True)
    op.drop_table("product_groups",      checkfirst=True)
    op.drop_table("order_items",         checkfirst=True)
    op.drop_table("products",            checkfirst=True)
    op.drop_table("orders",              checkfirst=True)
