"""PostgreSQL implementation of the signing key store."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import asyncpg

from ..config import TablesConfig
from ..errors import (
    ConfigError,
    DuplicateSigningKeyError,
    SchemaError,
    StorageQueryError,
)
from ..models import SigningKey, SigningKeyRecord, is_misclassified
from ..schema import schema_statements
from .repository import SigningKeyStore, map_rows

logger = logging.getLogger(__name__)

# Errors raised by asyncpg for failed statements and broken connections.
_DRIVER_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


class PostgresSigningKeyStore(SigningKeyStore):
    """Persist signing keys in PostgreSQL.

    Reads use ``SELECT ... FOR UPDATE`` so that two transactions rotating
    keys for the same tenant are serialized by the database. Only rows that
    already exist are locked; for a tenant without keys, concurrent writers
    are arbitrated by the primary key instead.
    """

    def __init__(self, dsn: Optional[str] = None, tables: Optional[TablesConfig] = None):
        self._dsn = dsn
        self._tables = tables or TablesConfig()

    @property
    def table_name(self) -> str:
        return self._tables.signing_keys_table_name

    async def connect(self) -> asyncpg.Connection:
        if not self._dsn:
            raise ConfigError("No PostgreSQL DSN configured")
        return await asyncpg.connect(self._dsn)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection]:
        conn = await self.connect()
        try:
            async with conn.transaction():
                yield conn
        finally:
            await conn.close()

    # ------------------------------------------------------------------
    async def ensure_schema(self, conn: asyncpg.Connection) -> None:
        for statement in schema_statements(self._tables, "postgresql"):
            try:
                await conn.execute(statement)
            except _DRIVER_ERRORS as exc:
                logger.error(f"Schema provisioning failed for {self.table_name}: {exc}")
                raise SchemaError(f"Could not provision {self.table_name}: {exc}") from exc
        logger.info(f"Schema ready for {self.table_name}")

    async def get_signing_keys(
        self, tenant_id: str, conn: asyncpg.Connection
    ) -> list[SigningKey]:
        if not conn.is_in_transaction():
            logger.warning(
                f"Reading signing keys for tenant={tenant_id} outside a transaction; "
                "row locks are released immediately"
            )
        rows = await self._fetch(tenant_id, conn, " FOR UPDATE")
        logger.debug(f"Locked {len(rows)} signing keys for tenant={tenant_id}")
        return map_rows(tenant_id, rows)

    async def list_signing_keys(
        self, tenant_id: str, conn: asyncpg.Connection
    ) -> list[SigningKey]:
        return map_rows(tenant_id, await self._fetch(tenant_id, conn, ""))

    async def _fetch(
        self, tenant_id: str, conn: asyncpg.Connection, lock_clause: str
    ) -> list[asyncpg.Record]:
        query = (
            f"SELECT key_id, key_string, algorithm, created_at FROM {self.table_name}"
            f" WHERE tenant_id = $1 ORDER BY created_at DESC{lock_clause}"
        )
        try:
            return await conn.fetch(query, tenant_id)
        except _DRIVER_ERRORS as exc:
            raise StorageQueryError(
                f"Failed to read signing keys for tenant {tenant_id!r}: {exc}"
            ) from exc

    async def insert_signing_key(
        self, tenant_id: str, record: SigningKeyRecord, conn: asyncpg.Connection
    ) -> None:
        if is_misclassified(record):
            logger.warning(
                f"Signing key {record.key_id} for tenant={tenant_id} "
                "will be read back as a different key type"
            )
        try:
            await conn.execute(
                f"INSERT INTO {self.table_name}"
                " (tenant_id, key_id, key_string, created_at, algorithm)"
                " VALUES ($1, $2, $3, $4, $5)",
                tenant_id,
                record.key_id,
                record.key_string,
                record.created_at,
                record.algorithm,
            )
        except asyncpg.UniqueViolationError as exc:
            logger.warning(
                f"Signing key {record.key_id} already exists for tenant={tenant_id}"
            )
            raise DuplicateSigningKeyError(tenant_id, record.key_id) from exc
        except _DRIVER_ERRORS as exc:
            raise StorageQueryError(
                f"Failed to insert signing key {record.key_id!r} "
                f"for tenant {tenant_id!r}: {exc}"
            ) from exc
        logger.debug(f"Inserted signing key {record.key_id} for tenant={tenant_id}")
