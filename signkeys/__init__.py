"""signkeys: multi-tenant storage for JWT signing keys."""

from .config import SignKeysConfig, TablesConfig, load_config
from .errors import (
    ConfigError,
    DuplicateSigningKeyError,
    SchemaError,
    SignKeysError,
    StorageQueryError,
)
from .models import (
    DEFAULT_TENANT_ID,
    AsymmetricSigningKey,
    SigningKey,
    SigningKeyRecord,
    SymmetricSigningKey,
    is_asymmetric_key_string,
    signing_key_from_row,
)
from .persistence import SigningKeyStore, get_store
from .schema import create_table_query, create_tenant_index_query, schema_statements

__version__ = "0.1.0"
__all__ = [
    "AsymmetricSigningKey",
    "ConfigError",
    "DEFAULT_TENANT_ID",
    "DuplicateSigningKeyError",
    "SchemaError",
    "SignKeysConfig",
    "SignKeysError",
    "SigningKey",
    "SigningKeyRecord",
    "SigningKeyStore",
    "StorageQueryError",
    "SymmetricSigningKey",
    "TablesConfig",
    "create_table_query",
    "create_tenant_index_query",
    "get_store",
    "is_asymmetric_key_string",
    "load_config",
    "schema_statements",
    "signing_key_from_row",
]
