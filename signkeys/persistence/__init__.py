"""Persistence layer for signing keys."""

from __future__ import annotations

import os
from typing import Optional

from ..config import SignKeysConfig, load_config
from ..errors import ConfigError
from .repository import SigningKeyStore
from .postgres import PostgresSigningKeyStore
from .sqlite import SQLiteSigningKeyStore

_store_instance: SigningKeyStore | None = None


def get_store(
    database_url: Optional[str] = None, config: Optional[SignKeysConfig] = None
) -> SigningKeyStore:
    """Factory function to obtain a signing key store.

    The backend is selected based on ``database_url`` which can be provided
    explicitly, via environment variable ``SIGNKEYS_DATABASE_URL`` or
    ``DATABASE_URL``, or from loaded configuration. ``sqlite://<path>`` and
    ``postgres://`` / ``postgresql://`` URLs are supported.
    """

    global _store_instance
    if _store_instance is not None and database_url is None and config is None:
        return _store_instance

    config = config or load_config()
    database_url = (
        database_url
        or os.getenv("SIGNKEYS_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or config.database_url
    )

    if not database_url:
        raise ConfigError("No database URL configured for the signing key store")

    if database_url.startswith("sqlite://"):
        path = database_url.replace("sqlite://", "", 1)
        _store_instance = SQLiteSigningKeyStore(path, tables=config.tables)
    elif database_url.startswith("postgres://") or database_url.startswith(
        "postgresql://"
    ):
        _store_instance = PostgresSigningKeyStore(database_url, tables=config.tables)
    else:
        raise ConfigError(f"Unsupported database backend: {database_url}")

    return _store_instance


__all__ = [
    "SigningKeyStore",
    "SQLiteSigningKeyStore",
    "PostgresSigningKeyStore",
    "get_store",
]
