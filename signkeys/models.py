"""Signing key records and the row mapping used by every store backend."""

from __future__ import annotations

from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_TENANT_ID = "public"

# Asymmetric key strings join their components with these characters.
KEY_STRING_DELIMITERS = ("|", ";")


class SigningKeyRecord(BaseModel):
    """One row of the signing key table, without its tenant.

    ``created_at`` only orders keys by insertion. It says nothing about
    validity or expiry, since keys may later be supplied from outside with
    arbitrary timestamps.
    """

    model_config = ConfigDict(frozen=True)

    key_id: str = Field(min_length=1, max_length=255)
    key_string: str = Field(min_length=1)
    algorithm: str = Field(min_length=1, max_length=10)
    created_at: int


class SymmetricSigningKey(SigningKeyRecord):
    """A shared secret; ``key_string`` is the key value itself."""

    kind: Literal["symmetric"] = "symmetric"

    @property
    def key_value(self) -> str:
        return self.key_string


class AsymmetricSigningKey(SigningKeyRecord):
    """A key pair whose components are packed into ``key_string``.

    The packed string is carried through as stored; splitting it into its
    public and private parts is left to the code that signs tokens.
    """

    kind: Literal["asymmetric"] = "asymmetric"


SigningKey = Union[SymmetricSigningKey, AsymmetricSigningKey]


def is_asymmetric_key_string(key_string: str) -> bool:
    """Return ``True`` if ``key_string`` will be read back as asymmetric."""
    return any(delimiter in key_string for delimiter in KEY_STRING_DELIMITERS)


def is_misclassified(record: SigningKeyRecord) -> bool:
    """Return ``True`` if ``record`` would come back as the other key type.

    Symmetric secrets that contain a delimiter are stored fine but are
    indistinguishable from asymmetric keys once read.
    """
    if isinstance(record, SymmetricSigningKey):
        return is_asymmetric_key_string(record.key_string)
    if isinstance(record, AsymmetricSigningKey):
        return not is_asymmetric_key_string(record.key_string)
    return False


def signing_key_from_row(row: Any) -> SigningKey:
    """Build a typed signing key from a database row.

    ``row`` only needs item access by column name, so asyncpg records and
    ``sqlite3.Row`` objects both work. There is no type column: a key string
    containing ``|`` or ``;`` is asymmetric, anything else is symmetric.
    """
    key_string = row["key_string"]
    fields = {
        "key_id": row["key_id"],
        "key_string": key_string,
        "algorithm": row["algorithm"],
        # created_at is nullable in the table; missing values sort as oldest.
        "created_at": row["created_at"] or 0,
    }
    if is_asymmetric_key_string(key_string):
        return AsymmetricSigningKey(**fields)
    return SymmetricSigningKey(**fields)
