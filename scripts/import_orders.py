"""
Ingest a channel export from disk, exactly as the upload API does.

Usage:
    python scripts/import_orders.py --channel shopee --file "exports/Order.all.20260101_20260131.xlsx"
    python scripts/import_orders.py --channel tray --file pedidos.csv
    python scripts/import_orders.py --channel tray --file itens_vendidos.csv --items

Re-running with the same file is safe: orders are upserted by (order id, channel).
"""
import argparse
import logging
import os
import sys
import time

sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "backend"))

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
)
logger = logging.getLogger("import_orders")


def main():
    from backoffice.constants import ALL_CHANNELS, Channel
    from backoffice.database import Base, SessionLocal, engine
    from backoffice.errors import BackofficeError, FileFormatError
    from backoffice.services.ingestion import ingest, ingest_items

    parser = argparse.ArgumentParser(description="Import a marketplace orders export into the back office.")
    parser.add_argument("--channel", required=True, choices=ALL_CHANNELS)
    parser.add_argument("--file", required=True, help="Path to the CSV / XLSX export")
    parser.add_argument(
        "--items",
        action="store_true",
        help="The file is the tray items-sold export (attaches line items to imported orders)",
    )
    args = parser.parse_args()

    if not os.path.exists(args.file):
        logger.error("File not found: %r", args.file)
        sys.exit(1)

    with open(args.file, "rb") as fh:
        content = fh.read()

    Base.metadata.create_all(bind=engine)
    channel = Channel(args.channel)
    filename = os.path.basename(args.file)

    t0 = time.time()
    db = SessionLocal()
    try:
        if args.items:
            result = ingest_items(db, content, filename, channel)
        else:
            result = ingest(db, content, filename, channel)
    except (FileFormatError, BackofficeError) as exc:
        logger.error("Import failed: %s", exc)
        sys.exit(1)
    finally:
        db.close()

    logger.info("Done in %.1fs: %s", time.time() - t0, result.model_dump_json())


if __name__ == "__main__":
    main()
