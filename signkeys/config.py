from __future__ import annotations

import os
from typing import Optional

import yaml
from pydantic import BaseModel

DEFAULT_TABLE_SCHEMA = "public"


class TablesConfig(BaseModel):
    """Table naming settings shared by the schema manager and the stores."""

    table_schema: str = DEFAULT_TABLE_SCHEMA
    table_names_prefix: str = ""
    signing_keys_table: str = "jwt_signing_keys"
    tenants_table: str = "apps"
    tenants_id_column: str = "app_id"

    @property
    def schema_name(self) -> Optional[str]:
        """Schema to qualify table names with, ``None`` for the default schema."""
        if self.table_schema == DEFAULT_TABLE_SCHEMA:
            return None
        return self.table_schema

    def prefixed(self, name: str) -> str:
        return f"{self.table_names_prefix}{name}"

    def qualified_name(self, name: str) -> str:
        """Return ``name`` with the table prefix and, if needed, the schema."""
        prefixed = self.prefixed(name)
        if self.schema_name is None:
            return prefixed
        return f"{self.schema_name}.{prefixed}"

    @property
    def signing_keys_table_name(self) -> str:
        return self.qualified_name(self.signing_keys_table)

    @property
    def tenants_table_name(self) -> str:
        return self.qualified_name(self.tenants_table)


class SignKeysConfig(BaseModel):
    """Top-level configuration model."""

    tables: TablesConfig = TablesConfig()
    database_url: Optional[str] = None


def load_config(path: Optional[str] = None) -> SignKeysConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to SIGNKEYS_CONFIG env
            variable or 'config.yaml' in the current directory.
    """

    config_path = path or os.getenv("SIGNKEYS_CONFIG", "config.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = SignKeysConfig(**data)
    else:
        config = SignKeysConfig()

    env_db_url = os.getenv("SIGNKEYS_DATABASE_URL") or os.getenv("DATABASE_URL")
    if env_db_url:
        config.database_url = env_db_url
    return config
