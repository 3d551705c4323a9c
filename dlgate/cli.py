"""
Command-line interface for the download gateway.
"""

from __future__ import annotations

import os
from datetime import datetime

import click
from sqlalchemy.exc import SQLAlchemyError

from dlgate.common.config import Config
from dlgate.common.exceptions import GatewayError
from dlgate.common.models import LicenseProfile, LicenseType
from dlgate.server import start_server
from dlgate.server.blob_store import build_blob_store
from dlgate.server.catalog import CatalogResolver, load_manifest
from dlgate.server.database import build_session_factory
from dlgate.server.license_store import LicenseStore, parse_products


@click.group()
def cli() -> None:
    """License-gated download gateway CLI"""


@cli.command()
@click.option(
    "--host",
    default=None,
    help="Host to bind server to (default: from DLGATE_SERVER_HOST env or 127.0.0.1)",
)
@click.option(
    "--port",
    default=None,
    type=int,
    help="Port to bind server to (default: from DLGATE_SERVER_PORT env or 3001)",
)
def serve(host: str | None, port: int | None) -> None:
    """Start the download gateway"""
    if host:
        os.environ["DLGATE_SERVER_HOST"] = host
    if port:
        os.environ["DLGATE_SERVER_PORT"] = str(port)
    start_server(Config())


@cli.group()
@click.option(
    "--database-url",
    default=None,
    help="License database URL (default: from DLGATE_DATABASE_URL env)",
)
@click.pass_context
def licenses(ctx: click.Context, database_url: str | None) -> None:
    """Manage license records"""
    config = Config()
    try:
        session_factory = build_session_factory(
            database_url or config.DATABASE_URL, config.DB_TIMEOUT
        )
    except SQLAlchemyError as e:
        msg = f"Cannot open license database: {e}"
        raise click.ClickException(msg) from e
    ctx.obj = LicenseStore(session_factory)


@licenses.command("add")
@click.option("--key", prompt="License Key")
@click.option("--organization", prompt="Organization")
@click.option(
    "--license-type",
    prompt="License Type",
    type=click.Choice([t.value for t in LicenseType]),
)
@click.option(
    "--expiry",
    prompt="Expiry Date (YYYY-MM-DD)",
    type=click.DateTime(formats=["%Y-%m-%d"]),
)
@click.option("--products", prompt="Products (comma-separated)", default="")
@click.option("--support-email", prompt="Support Email", default="")
@click.pass_obj
def add_license(  # noqa: PLR0913
    store: LicenseStore,
    key: str,
    organization: str,
    license_type: str,
    expiry: datetime,
    products: str,
    support_email: str,
) -> None:
    """Add a new license"""
    key = key.strip()
    if not key:
        msg = "License key must not be empty."
        raise click.ClickException(msg)
    profile = LicenseProfile(
        key=key,
        organization=organization,
        license_type=license_type,
        products=parse_products(products),
        expiry=expiry.date(),
        support_contact=support_email,
    )
    try:
        store.add(profile)
    except SQLAlchemyError as e:
        msg = f"Failed to add license: {e}"
        raise click.ClickException(msg) from e
    click.echo("License added successfully.")


@licenses.command("list")
@click.pass_obj
def list_licenses(store: LicenseStore) -> None:
    """List all licenses"""
    try:
        records = store.list_all()
    except SQLAlchemyError as e:
        msg = f"Failed to list licenses: {e}"
        raise click.ClickException(msg) from e
    if not records:
        click.echo("No licenses found.")
        return
    header = ("KEY", "ORGANIZATION", "TYPE", "EXPIRY", "PRODUCTS", "SUPPORT")
    rows = [
        (
            p.key,
            p.organization,
            p.license_type,
            p.expiry.isoformat(),
            ",".join(sorted(p.products)),
            p.support_contact,
        )
        for p in records
    ]
    widths = [max(len(r[i]) for r in [header, *rows]) for i in range(len(header))]
    for row in [header, *rows]:
        click.echo("  ".join(col.ljust(w) for col, w in zip(row, widths)).rstrip())


@licenses.command("remove")
@click.argument("key")
@click.pass_obj
def remove_license(store: LicenseStore, key: str) -> None:
    """Remove a license by key"""
    try:
        removed = store.remove(key)
    except SQLAlchemyError as e:
        msg = f"Failed to remove license: {e}"
        raise click.ClickException(msg) from e
    if removed:
        click.echo("License removed successfully.")
    else:
        click.echo("No license found with that key.", err=True)


@cli.command()
def catalog() -> None:
    """Refresh the catalog from the blob store and print it"""
    config = Config()
    resolver = CatalogResolver(
        build_blob_store(config), load_manifest(config.CATALOG_MANIFEST)
    )
    try:
        resolver.refresh()
    except GatewayError as e:
        msg = f"Catalog refresh failed: {e}"
        raise click.ClickException(msg) from e
    for entry in resolver.entries():
        products = ",".join(sorted(entry.required_products)) or "-"
        click.echo(f"{entry.file_id}\t{entry.storage_key}\t{products}\t{entry.version}")


if __name__ == "__main__":
    cli()
