"""
Delete every order (and its line items) imported from one channel.

Usage:
    python scripts/purge_channel.py --channel tray
    python scripts/purge_channel.py --channel shopee --include-products --yes
"""
import argparse
import logging
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "backend"))

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
)
logger = logging.getLogger("purge_channel")


def main():
    from backoffice.constants import ALL_CHANNELS, Channel
    from backoffice.database import SessionLocal
    from backoffice.services.ingestion import purge_channel

    parser = argparse.ArgumentParser(description="Delete all orders of a sales channel.")
    parser.add_argument("--channel", required=True, choices=ALL_CHANNELS)
    parser.add_argument(
        "--include-products",
        action="store_true",
        help="Also delete the channel's products (cost prices, groups and stock rows go with them)",
    )
    parser.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")
    args = parser.parse_args()

    if not args.yes:
        answer = input(f"Delete ALL '{args.channel}' orders{' and products' if args.include_products else ''}? [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            logger.info("Aborted")
            return

    db = SessionLocal()
    try:
        result = purge_channel(db, Channel(args.channel), include_products=args.include_products)
    finally:
        db.close()

    logger.info(
        "Deleted %d orders, %d items, %d products (channel=%s)",
        result.orders_deleted, result.items_deleted, result.products_deleted, result.channel,
    )


if __name__ == "__main__":
    main()
