"""Store abstraction for signing key persistence."""

from __future__ import annotations

from typing import Any, AsyncContextManager, Iterable, Protocol

from pydantic import ValidationError

from ..errors import StorageQueryError
from ..models import SigningKey, SigningKeyRecord, signing_key_from_row


class SigningKeyStore(Protocol):
    """Protocol for signing key persistence backends.

    ``conn`` is always a driver connection owned by the caller, with a
    transaction open on it. Stores keep no state between calls.
    """

    async def ensure_schema(self, conn: Any) -> None:
        """Create the signing key table and its index if missing."""

    async def get_signing_keys(self, tenant_id: str, conn: Any) -> list[SigningKey]:
        """Return the tenant's keys, newest first, locking them for ``conn``."""

    async def list_signing_keys(self, tenant_id: str, conn: Any) -> list[SigningKey]:
        """Return the tenant's keys, newest first, without taking locks."""

    async def insert_signing_key(
        self, tenant_id: str, record: SigningKeyRecord, conn: Any
    ) -> None:
        """Insert one key for the tenant on ``conn``."""

    def transaction(self) -> AsyncContextManager[Any]:
        """Open a connection with a transaction, committing on clean exit."""


def map_rows(tenant_id: str, rows: Iterable[Any]) -> list[SigningKey]:
    """Map stored rows to signing keys, reporting bad rows as query failures."""
    try:
        return [signing_key_from_row(row) for row in rows]
    except ValidationError as exc:
        raise StorageQueryError(
            f"Stored signing key for tenant {tenant_id!r} is invalid: {exc}"
        ) from exc
