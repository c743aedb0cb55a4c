"""SQLite implementation of the signing key store."""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

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


class SQLiteSigningKeyStore(SigningKeyStore):
    """Persist signing keys using SQLite.

    SQLite has no row locks. The read path instead opens the transaction
    with ``BEGIN IMMEDIATE``, which takes the database write lock until the
    caller commits or rolls back. When the caller has already begun a
    transaction, the lock is taken inside it instead; if another connection
    holds it and this one has already read, the read fails rather than
    continuing unlocked. This serializes rotations across all tenants,
    which is acceptable for local and test deployments.
    """

    def __init__(
        self,
        db_path: str | Path,
        tables: Optional[TablesConfig] = None,
        timeout: float = 5.0,
    ):
        self.db_path = str(db_path)
        self._tables = tables or TablesConfig()
        self._timeout = timeout
        if self._tables.schema_name is not None:
            raise ConfigError("SQLite backend does not support table schemas")

    @property
    def table_name(self) -> str:
        return self._tables.signing_keys_table_name

    async def connect(self) -> sqlite3.Connection:
        """Open a connection with foreign keys enforced.

        ``timeout`` bounds how long a read waits for another transaction's
        lock before failing.
        """
        conn = sqlite3.connect(
            self.db_path, timeout=self._timeout, check_same_thread=False
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[sqlite3.Connection]:
        conn = await self.connect()
        try:
            yield conn
            await asyncio.to_thread(conn.commit)
        except BaseException:
            await asyncio.to_thread(conn.rollback)
            raise
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Helper methods
    def _execute_schema(self, conn: sqlite3.Connection) -> None:
        for statement in schema_statements(self._tables, "sqlite"):
            conn.execute(statement)
        conn.commit()

    def _select(
        self, conn: sqlite3.Connection, tenant_id: str, lock: bool
    ) -> list[sqlite3.Row]:
        if lock and not conn.in_transaction:
            conn.execute("BEGIN IMMEDIATE")
        elif lock:
            # An empty write takes the RESERVED lock inside the caller's
            # transaction; it fails if another writer already holds it.
            conn.execute(f"DELETE FROM {self.table_name} WHERE 0")
        cur = conn.execute(
            f"SELECT key_id, key_string, algorithm, created_at FROM {self.table_name}"
            " WHERE tenant_id = ? ORDER BY created_at DESC",
            (tenant_id,),
        )
        return cur.fetchall()

    def _insert(
        self, conn: sqlite3.Connection, tenant_id: str, record: SigningKeyRecord
    ) -> None:
        conn.execute(
            f"INSERT INTO {self.table_name}"
            " (tenant_id, key_id, key_string, created_at, algorithm)"
            " VALUES (?, ?, ?, ?, ?)",
            (
                tenant_id,
                record.key_id,
                record.key_string,
                record.created_at,
                record.algorithm,
            ),
        )

    # ------------------------------------------------------------------
    # Store API
    async def ensure_schema(self, conn: sqlite3.Connection) -> None:
        try:
            await asyncio.to_thread(self._execute_schema, conn)
        except sqlite3.Error as exc:
            logger.error(f"Schema provisioning failed for {self.table_name}: {exc}")
            raise SchemaError(f"Could not provision {self.table_name}: {exc}") from exc
        logger.info(f"Schema ready for {self.table_name}")

    async def get_signing_keys(
        self, tenant_id: str, conn: sqlite3.Connection
    ) -> list[SigningKey]:
        rows = await self._fetch(tenant_id, conn, lock=True)
        logger.debug(f"Locked {len(rows)} signing keys for tenant={tenant_id}")
        return map_rows(tenant_id, rows)

    async def list_signing_keys(
        self, tenant_id: str, conn: sqlite3.Connection
    ) -> list[SigningKey]:
        return map_rows(tenant_id, await self._fetch(tenant_id, conn, lock=False))

    async def _fetch(
        self, tenant_id: str, conn: sqlite3.Connection, lock: bool
    ) -> list[sqlite3.Row]:
        try:
            return await asyncio.to_thread(self._select, conn, tenant_id, lock)
        except sqlite3.Error as exc:
            raise StorageQueryError(
                f"Failed to read signing keys for tenant {tenant_id!r}: {exc}"
            ) from exc

    async def insert_signing_key(
        self, tenant_id: str, record: SigningKeyRecord, conn: sqlite3.Connection
    ) -> None:
        if is_misclassified(record):
            logger.warning(
                f"Signing key {record.key_id} for tenant={tenant_id} "
                "will be read back as a different key type"
            )
        try:
            await asyncio.to_thread(self._insert, conn, tenant_id, record)
        except sqlite3.IntegrityError as exc:
            # Foreign key failures are integrity errors too.
            if "UNIQUE constraint failed" not in str(exc):
                raise StorageQueryError(
                    f"Failed to insert signing key {record.key_id!r} "
                    f"for tenant {tenant_id!r}: {exc}"
                ) from exc
            logger.warning(
                f"Signing key {record.key_id} already exists for tenant={tenant_id}"
            )
            raise DuplicateSigningKeyError(tenant_id, record.key_id) from exc
        except sqlite3.Error as exc:
            raise StorageQueryError(
                f"Failed to insert signing key {record.key_id!r} "
                f"for tenant {tenant_id!r}: {exc}"
            ) from exc
        logger.debug(f"Inserted signing key {record.key_id} for tenant={tenant_id}")
