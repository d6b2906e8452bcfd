"""
Resolves (channel, channel product code) pairs to canonical Product ids.

Products are created lazily the first time an ingested item references their
code; re-imports only refresh the display name (cost price is owned by the user).

Uses a simple dict cache per resolver instance to avoid N+1 queries per file.
One ProductResolver instance should be created per upload request and discarded after.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..models.products import Product

logger = logging.getLogger(__name__)


def product_code(channel: str, channel_code: str) -> str:
    return f"{channel}_{channel_code.strip()}"


class ProductResolver:
    def __init__(self, db: Session):
        self._db = db
        self._cache: dict[str, Product] = {}
        # Tracks which channels have been bulk-loaded into _cache already
        self._channels_loaded: set[str] = set()
        self.created = 0

    def _load_channel(self, channel: str) -> None:
        # Bulk-load all products of this channel on first access: 1 query instead of N
        if channel in self._channels_loaded:
            return
        rows = self._db.query(Product).filter(Product.code.like(f"{channel}\\_%", escape="\\")).all()
        for row in rows:
            self._cache[row.code] = row
        self._channels_loaded.add(channel)

    def ensure_product(self, channel: str, channel_code: str, name: str) -> int:
        """Upsert by composite code and return the product id."""
        code = product_code(channel, channel_code)
        self._load_channel(channel)

        product: Optional[Product] = self._cache.get(code)
        if product is None:
            product = Product(code=code, name=name or channel_code, source=channel)
            self._db.add(product)
            self._db.flush()
            self._cache[code] = product
            self.created += 1
            logger.debug("Created product %s (%s)", code, name)
        elif name and product.name != name:
            product.name = name
        return product.id
