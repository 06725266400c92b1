# Overview: Product Store client; CRUD against the hosted catalog table plus its change feed.

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from flask import Flask, current_app, has_app_context
from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, object_session

from ..extensions import db
from ..models import Product, ProductRecord, product_from_row, product_to_row
from ..validation import RemoteStoreError

logger = logging.getLogger(__name__)

"""
Product Store contract

- list() returns every product, newest first by created_at.
- update_many() writes all rows in ONE transaction: all or nothing.
- Any database failure is rolled back and surfaces as RemoteStoreError.
- Change events are published only after the transaction commits, and are
  dropped on rollback. A subscriber never sees a change that did not happen.
"""


class ChangeKind(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True)
class ChangeEvent:
    """One committed row change. `row` uses wire column names."""
    event: ChangeKind
    row: dict


Subscriber = Callable[[ChangeEvent], None]


class ProductStore:
    """
    Catalog CRUD bound to one Flask app.

    Change capture rides on SQLAlchemy mapper events for ProductRecord:
    each insert/update/delete is buffered in `session.info` and flushed to
    subscribers from the session's after_commit hook. Events raised under a
    different app are ignored, so several apps in one process keep separate
    feeds.
    """

    def __init__(self, app: Flask):
        self.app = app
        self._buffer_key = ("minimarket.product_changes", id(self))
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()
        self._listeners = (
            (ProductRecord, "after_insert", self._on_insert),
            (ProductRecord, "after_update", self._on_update),
            (ProductRecord, "after_delete", self._on_delete),
            (Session, "after_commit", self._on_commit),
            (Session, "after_rollback", self._on_rollback),
        )
        for target, name, fn in self._listeners:
            event.listen(target, name, fn)

    def close(self) -> None:
        """Detach the change feed listeners."""
        for target, name, fn in self._listeners:
            if event.contains(target, name, fn):
                event.remove(target, name, fn)
        with self._lock:
            self._subscribers.clear()

    # -- Reads --

    def list(self) -> list[Product]:
        try:
            records = (
                db.session.query(ProductRecord)
                .order_by(ProductRecord.created_at.desc(), ProductRecord.id.desc())
                .all()
            )
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error("Product Store list failed: %s", e)
            raise RemoteStoreError("could not load products") from e
        return [product_from_row(r.to_row()) for r in records]

    def get(self, product_id: str) -> Optional[Product]:
        try:
            record = db.session.get(ProductRecord, product_id)
        except SQLAlchemyError as e:
            db.session.rollback()
            raise RemoteStoreError("could not load product") from e
        return product_from_row(record.to_row()) if record is not None else None

    # -- Writes --

    def insert(self, product: Product) -> Product:
        with self._transaction("insert"):
            record = ProductRecord(**product_to_row(product))
            db.session.add(record)
            db.session.flush()
            row = record.to_row()
        return product_from_row(row)

    def update(self, product: Product) -> Product:
        return self.update_many([product])[0]

    def update_many(self, products: list[Product]) -> list[Product]:
        with self._transaction("update"):
            records = []
            for product in products:
                record = self._require(product.id)
                for column, value in product_to_row(product).items():
                    if column != "id":
                        setattr(record, column, value)
                records.append(record)
            db.session.flush()
            rows = [record.to_row() for record in records]
        return [product_from_row(row) for row in rows]

    def delete(self, product_id: str) -> None:
        with self._transaction("delete"):
            db.session.delete(self._require(product_id))

    # -- Change feed --

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a change listener. Returns a function that unsubscribes it."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _require(self, product_id: str) -> ProductRecord:
        record = db.session.get(ProductRecord, product_id)
        if record is None:
            raise RemoteStoreError("product not found")
        return record

    @contextmanager
    def _transaction(self, op: str):
        try:
            yield
            db.session.commit()
        except RemoteStoreError:
            db.session.rollback()
            raise
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error("Product Store %s failed: %s", op, e)
            raise RemoteStoreError(f"product {op} failed") from e

    def _owns_current_app(self) -> bool:
        return has_app_context() and current_app._get_current_object() is self.app

    def _buffer(self, target: ProductRecord, kind: ChangeKind) -> None:
        if not self._owns_current_app():
            return
        session = object_session(target)
        if session is None:
            return
        session.info.setdefault(self._buffer_key, []).append(ChangeEvent(kind, target.to_row()))

    def _on_insert(self, mapper, connection, target):
        self._buffer(target, ChangeKind.INSERT)

    def _on_update(self, mapper, connection, target):
        self._buffer(target, ChangeKind.UPDATE)

    def _on_delete(self, mapper, connection, target):
        self._buffer(target, ChangeKind.DELETE)

    def _on_rollback(self, session):
        session.info.pop(self._buffer_key, None)

    def _on_commit(self, session):
        pending = session.info.pop(self._buffer_key, None)
        if not pending:
            return
        with self._lock:
            subscribers = list(self._subscribers)
        for change in pending:
            for callback in subscribers:
                try:
                    callback(change)
                except Exception:
                    logger.exception("Product change subscriber failed for %s %s", change.event.value, change.row.get("id"))
