"""Table definition and provisioning statements for signing keys."""

from __future__ import annotations

from typing import Literal

from sqlalchemy import (
    BigInteger,
    Column,
    ForeignKeyConstraint,
    Index,
    MetaData,
    PrimaryKeyConstraint,
    String,
    Table,
    Text,
)
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Dialect
from sqlalchemy.schema import CreateIndex, CreateTable

from .config import TablesConfig
from .errors import ConfigError
from .models import DEFAULT_TENANT_ID

DialectName = Literal["postgresql", "sqlite"]

_DIALECTS = {
    "postgresql": postgresql.dialect,
    "sqlite": sqlite.dialect,
}


def _dialect(name: DialectName, config: TablesConfig) -> Dialect:
    try:
        dialect = _DIALECTS[name]()
    except KeyError:
        raise ValueError(f"Unsupported SQL dialect: {name}") from None
    if name == "sqlite" and config.schema_name is not None:
        raise ConfigError("SQLite does not support table schemas")
    return dialect


def build_tables(config: TablesConfig) -> tuple[Table, Table]:
    """Return ``(signing_keys, tenants)`` table definitions for ``config``.

    The tenants table is owned elsewhere. Only its key column is declared,
    so the foreign key below has something to point at.
    """
    metadata = MetaData(schema=config.schema_name)
    table_name = config.prefixed(config.signing_keys_table)

    tenants = Table(
        config.prefixed(config.tenants_table),
        metadata,
        Column(config.tenants_id_column, String(64), primary_key=True),
    )
    signing_keys = Table(
        table_name,
        metadata,
        Column("tenant_id", String(64), server_default=DEFAULT_TENANT_ID),
        Column("key_id", String(255), nullable=False),
        Column("key_string", Text, nullable=False),
        Column("algorithm", String(10), nullable=False),
        # Insertion order only, see SigningKeyRecord.
        Column("created_at", BigInteger),
        PrimaryKeyConstraint("tenant_id", "key_id", name=f"{table_name}_pkey"),
        ForeignKeyConstraint(
            ["tenant_id"],
            [tenants.c[config.tenants_id_column]],
            name=f"{table_name}_tenant_id_fkey",
            ondelete="CASCADE",
        ),
    )
    Index(f"{table_name}_tenant_id_index", signing_keys.c.tenant_id)
    return signing_keys, tenants


def create_table_query(
    config: TablesConfig, dialect: DialectName = "postgresql"
) -> str:
    """Return the idempotent ``CREATE TABLE`` statement for signing keys."""
    signing_keys, _ = build_tables(config)
    ddl = CreateTable(signing_keys, if_not_exists=True)
    return str(ddl.compile(dialect=_dialect(dialect, config))).strip()


def create_tenant_index_query(
    config: TablesConfig, dialect: DialectName = "postgresql"
) -> str:
    """Return the idempotent ``CREATE INDEX`` statement on ``tenant_id``."""
    signing_keys, _ = build_tables(config)
    (index,) = signing_keys.indexes
    ddl = CreateIndex(index, if_not_exists=True)
    return str(ddl.compile(dialect=_dialect(dialect, config))).strip()


def schema_statements(
    config: TablesConfig, dialect: DialectName = "postgresql"
) -> list[str]:
    """All provisioning statements, in the order they must run."""
    return [
        create_table_query(config, dialect),
        create_tenant_index_query(config, dialect),
    ]
