"""Exceptions raised by the signing key store."""

from __future__ import annotations


class SignKeysError(Exception):
    """Base class for all signkeys errors."""


class ConfigError(SignKeysError):
    """Raised when the store cannot be built from the given configuration."""


class SchemaError(SignKeysError):
    """Raised when a schema provisioning statement fails."""


class StorageQueryError(SignKeysError):
    """Raised when a read or write against the signing key table fails.

    The driver exception is available as ``__cause__``. The enclosing
    transaction is left untouched; rolling it back is up to the caller.
    """


class DuplicateSigningKeyError(StorageQueryError):
    """Raised when ``(tenant_id, key_id)`` already exists.

    Usually means a concurrent rotation committed first. Callers that want
    to recover should re-read the tenant's keys in a new transaction.
    """

    def __init__(self, tenant_id: str, key_id: str) -> None:
        super().__init__(
            f"Signing key {key_id!r} already exists for tenant {tenant_id!r}"
        )
        self.tenant_id = tenant_id
        self.key_id = key_id
