"""Command line interface for provisioning and inspecting signing keys."""

from __future__ import annotations

import asyncio
from typing import Optional

import typer

from signkeys.config import load_config
from signkeys.errors import SignKeysError
from signkeys.models import SigningKey
from signkeys.persistence import SigningKeyStore, get_store
from signkeys.schema import schema_statements

app = typer.Typer(help="CLI for JWT signing key storage")

# Command groups
schema_app = typer.Typer(help="Commands for the signing key table")
keys_app = typer.Typer(help="Commands for inspecting signing keys")

app.add_typer(schema_app, name="schema")
app.add_typer(keys_app, name="keys")

DATABASE_URL_OPTION = typer.Option(
    None, "--database-url", help="Database URL (sqlite://PATH or postgresql://...)"
)


@app.callback()
def main() -> None:
    """signkeys CLI entry point."""
    pass


@schema_app.command("show")
def schema_show(
    dialect: str = typer.Option("postgresql", help="SQL dialect: postgresql or sqlite"),
) -> None:
    """Print the statements that provision the signing key table."""
    config = load_config()
    try:
        statements = schema_statements(config.tables, dialect)  # type: ignore[arg-type]
    except (ValueError, SignKeysError) as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)
    for statement in statements:
        typer.echo(f"{statement};")


async def _apply_schema(store: SigningKeyStore) -> None:
    async with store.transaction() as conn:
        await store.ensure_schema(conn)


@schema_app.command("apply")
def schema_apply(database_url: Optional[str] = DATABASE_URL_OPTION) -> None:
    """
    Create the signing key table and its tenant index if they are missing.

    Safe to run on every deployment. The tenants table must already exist
    on PostgreSQL, since the signing key table references it.

    Example:
        signkeys schema apply --database-url postgresql://localhost/auth
    """
    try:
        store = get_store(database_url, config=load_config())
        asyncio.run(_apply_schema(store))
    except SignKeysError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)
    typer.echo("Schema applied")


async def _read_keys(store: SigningKeyStore, tenant_id: str) -> list[SigningKey]:
    async with store.transaction() as conn:
        return await store.list_signing_keys(tenant_id, conn)


@keys_app.command("list")
def keys_list(
    tenant_id: str,
    database_url: Optional[str] = DATABASE_URL_OPTION,
) -> None:
    """
    List a tenant's signing keys, newest first.

    Shows key ID, key type, algorithm and creation marker. Key material is
    never printed. The listing takes no locks, so it does not hold up a
    rotation in progress.

    Example:
        signkeys keys list public
        # Output: s-2f1c    asymmetric    RS256    1700000000000
    """
    try:
        store = get_store(database_url, config=load_config())
        keys = asyncio.run(_read_keys(store, tenant_id))
    except SignKeysError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)

    if not keys:
        typer.echo(f"No signing keys found for tenant {tenant_id}")
        return

    for key in keys:
        typer.echo(f"{key.key_id}\t{key.kind}\t{key.algorithm}\t{key.created_at}")


if __name__ == "__main__":
    app()
