# Overview: Key/value text storage for the locally persisted state subset.

from __future__ import annotations

import threading
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import LocalBlob
from ..time_utils import utcnow


class MemoryBlobStore:
    """Dict-backed blob store, for tests and for running without a local database."""

    def __init__(self, initial: Optional[dict] = None):
        self._data: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value


class SqlBlobStore:
    """
    Blob store on the `local` bind (table `local_blobs`).

    Must be used inside an application context. Each `set` is its own
    commit; a blob write never rides along with a Product Store transaction.
    """

    def get(self, key: str) -> Optional[str]:
        row = db.session.get(LocalBlob, key)
        return row.value if row is not None else None

    def set(self, key: str, value: str) -> None:
        try:
            row = db.session.get(LocalBlob, key)
            if row is None:
                row = LocalBlob(key=key, value=value, updated_at=utcnow())
                db.session.add(row)
            else:
                row.value = value
                row.updated_at = utcnow()
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise
