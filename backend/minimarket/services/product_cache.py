# Overview: In-process mirror of the catalog, kept newest first and reconciled from the change feed.

from __future__ import annotations

import logging
import threading
from typing import Iterable, Optional

from ..models import Product, product_from_row
from .product_store import ChangeEvent, ChangeKind

logger = logging.getLogger(__name__)


class ProductCache:
    """
    Id-indexed product list.

    Two paths write here: the local confirm-after-remote path (`upsert`,
    `remove`) and the change feed (`apply_change`). Both are last-write-wins
    by id, so a change that arrives through both paths lands once.
    """

    def __init__(self, products: Iterable[Product] = ()):
        self._lock = threading.RLock()
        self._items: list[Product] = []
        self.load(products)

    def load(self, products: Iterable[Product]) -> None:
        """Replace the whole contents, keeping the given order."""
        with self._lock:
            seen = set()
            items = []
            for product in products:
                if product.id in seen:
                    continue
                seen.add(product.id)
                items.append(product)
            self._items = items

    def snapshot(self) -> list[Product]:
        with self._lock:
            return list(self._items)

    def get(self, product_id: str) -> Optional[Product]:
        with self._lock:
            for product in self._items:
                if product.id == product_id:
                    return product
        return None

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, product_id) -> bool:
        return self.get(product_id) is not None

    def upsert(self, product: Product) -> None:
        with self._lock:
            if not self._replace(product):
                self._items.insert(0, product)

    def remove(self, product_id: str) -> None:
        with self._lock:
            self._items = [p for p in self._items if p.id != product_id]

    def apply_change(self, change: ChangeEvent) -> None:
        """
        Reconcile one change-feed event.

        INSERT of an id already present is a replay and is skipped. UPDATE of
        an unknown id is ignored; the next full load picks it up.
        """
        product_id = str(change.row["id"])
        with self._lock:
            if change.event is ChangeKind.INSERT:
                if any(p.id == product_id for p in self._items):
                    return
                self._items.insert(0, product_from_row(change.row))
            elif change.event is ChangeKind.UPDATE:
                self._replace(product_from_row(change.row))
            elif change.event is ChangeKind.DELETE:
                self.remove(product_id)
            else:
                raise ValueError(f"Unknown change event: {change.event}")
        logger.debug("Applied %s for product %s", change.event.value, product_id)

    def _replace(self, product: Product) -> bool:
        for i, existing in enumerate(self._items):
            if existing.id == product.id:
                self._items[i] = product
                return True
        return False
