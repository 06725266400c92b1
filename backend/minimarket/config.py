# backend/minimarket/config.py
from __future__ import annotations
import os

from sqlalchemy.engine import make_url


REQUIRED_SETTINGS = ("PRODUCT_STORE_URL", "PRODUCT_STORE_KEY")


class ConfigError(RuntimeError):
    """Raised when the application cannot start with the given configuration."""


class Config:
    # Hosted catalog database. Both values are mandatory; there is no fallback.
    PRODUCT_STORE_URL = os.environ.get("PRODUCT_STORE_URL")
    PRODUCT_STORE_KEY = os.environ.get("PRODUCT_STORE_KEY")

    # Local blob store (the persisted sales / kardex / sessions / alerts subset)
    LOCAL_CACHE_URL = os.environ.get(
        "LOCAL_CACHE_URL",
        "sqlite:///minimarket_local.sqlite3",
    )

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Printed at the top of every receipt
    BUSINESS_NAME = os.environ.get("BUSINESS_NAME", "Minimarket Karito")
    BUSINESS_TAX_ID = os.environ.get("BUSINESS_TAX_ID", "12345678901")
    BUSINESS_ADDRESS = os.environ.get("BUSINESS_ADDRESS", "Jr. Ejemplo 123, Lima")
    BUSINESS_PHONE = os.environ.get("BUSINESS_PHONE", "958-077-827")


class TestingConfig(Config):
    TESTING = True
    PRODUCT_STORE_URL = "sqlite:///:memory:"
    PRODUCT_STORE_KEY = "test-key"
    LOCAL_CACHE_URL = "sqlite:///:memory:"


def check_required_config(config) -> None:
    """Fail fast when a Product Store credential is absent."""
    missing = [name for name in REQUIRED_SETTINGS if not (config.get(name) or "").strip()]
    if missing:
        raise ConfigError(f"Missing required configuration: {', '.join(missing)}")


def build_store_uri(url: str, key: str) -> str:
    """
    Combine the Product Store URL and key into a SQLAlchemy URI.

    The key is the connection password. SQLite has no credentials, so the
    URL is used untouched there.
    """
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite":
        return url
    return parsed.set(password=key).render_as_string(hide_password=False)
