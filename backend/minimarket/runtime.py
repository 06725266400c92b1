# Overview: Per-app holder for the state container, Product Store and catalog service.

from __future__ import annotations

import logging
import threading

from flask import Flask, current_app

from .services.audit_service import append_audit_event
from .services.blob_store import SqlBlobStore
from .services.catalog_service import CatalogService
from .services.product_cache import ProductCache
from .services.product_store import ProductStore
from .services.receipt_service import BusinessInfo
from .state import StateContainer

logger = logging.getLogger(__name__)


class Runtime:
    """
    Everything a request handler needs, bound to one app.

    WHY: the initial load reads both databases, and `flask catalog init-db`
    must be able to run before those tables exist. So `load()` runs on the
    first request (or explicitly), never inside create_app.
    """

    def __init__(self, app: Flask):
        self.store = ProductStore(app)
        self.cache = ProductCache()
        self.container = StateContainer(SqlBlobStore(), self.cache, audit_sink=append_audit_event)
        self.catalog = CatalogService(self.store, self.container)
        self.business = BusinessInfo.from_config(app.config)
        self.unsubscribe = self.store.subscribe(self.cache.apply_change)
        self.loaded = False
        self._load_lock = threading.Lock()

    def load(self) -> None:
        """Restore the local state and fetch the catalog. Runs once."""
        with self._load_lock:
            if self.loaded:
                return
            self.container.restore()
            self.catalog.refresh()
            self.loaded = True
            logger.info("Runtime loaded: %d products", len(self.cache))

    def close(self) -> None:
        self.unsubscribe()
        self.store.close()


def init_runtime(app: Flask) -> Runtime:
    runtime = Runtime(app)
    app.extensions["minimarket"] = runtime

    @app.before_request
    def ensure_loaded():
        runtime.load()

    return runtime


def get_runtime() -> Runtime:
    runtime = current_app.extensions.get("minimarket")
    if runtime is None:
        raise RuntimeError("Runtime not initialized.")
    return runtime
