"""CLI entry point for Flowboard admin auth."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

import click
from rich.console import Console
from rich.table import Table

from flowboard.config import SCHEMA_PATH, settings
from flowboard.models import AdminRole

console = Console()

T = TypeVar("T")


def _with_pool(fn: Callable[[], Awaitable[T]]) -> T:
    """Run ``fn`` with the database pool open."""
    from flowboard.db import close_pool, init_pool

    async def _run() -> T:
        await init_pool(min_size=1, max_size=2)
        try:
            return await fn()
        finally:
            await close_pool()

    return asyncio.run(_run())


def _service():
    from flowboard import events
    from flowboard.auth.service import AdminAuthService
    from flowboard.store.postgres import PostgresAdminStore

    return AdminAuthService.from_settings(PostgresAdminStore(), settings, emit=events.async_emit)


@click.group()
@click.option("--log-level", default=None, help="Override LOG_LEVEL.")
def main(log_level: str | None) -> None:
    """Flowboard admin authentication tools."""
    logging.basicConfig(
        level=(log_level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )


@main.command()
def status() -> None:
    """Show configuration (never secret values)."""
    console.print("[bold]Flowboard Admin Auth[/bold]")
    console.print(f"  Database: {settings.database_url.split('@')[-1]}")
    console.print(f"  Store backend: {settings.store_backend}")
    console.print(f"  Master key: {'set' if settings.flowboard_master_key else '[red]missing[/red]'}")
    console.print(f"  TOTP issuer: {settings.totp_issuer}")
    console.print(f"  Drift window: +-{settings.totp_drift_steps} step(s)")
    console.print(f"  Challenge TTL: {settings.challenge_ttl_seconds}s")
    console.print(f"  Recovery codes per enrollment: {settings.recovery_code_count}")


@main.command("db-init")
def db_init() -> None:
    """Create tables and indexes (idempotent)."""
    from flowboard.db import execute_script

    _with_pool(lambda: execute_script(SCHEMA_PATH.read_text()))
    console.print("[green]Schema applied[/green]")


@main.command("create-admin")
@click.option("--email", required=True)
@click.option("--name", required=True)
@click.option(
    "--role",
    type=click.Choice([r.value for r in AdminRole]),
    default=AdminRole.ADMIN.value,
    show_default=True,
)
@click.password_option()
def create_admin(email: str, name: str, role: str, password: str) -> None:
    """Provision an admin account."""
    from flowboard.store.base import DuplicateAccount

    try:
        account = _with_pool(lambda: _service().create_admin(email, name, password, AdminRole(role)))
    except DuplicateAccount:
        console.print(f"[red]An account already exists for {email}[/red]")
        raise SystemExit(1)
    console.print(f"[green]Created {account.role} {account.email}[/green] ({account.id})")


@main.command("reap-challenges")
def reap_challenges() -> None:
    """Delete expired login challenges."""
    removed = _with_pool(lambda: _service().reap_challenges())
    console.print(f"Removed {removed} expired challenge(s)")


@main.command("events")
@click.option("--account-id", default=None)
@click.option("--limit", default=20, show_default=True)
def list_events(account_id: str | None, limit: int) -> None:
    """Show recent auth events."""
    from flowboard.events import async_get_events

    rows = _with_pool(lambda: async_get_events(account_id=account_id, limit=limit))
    table = Table("Time", "Severity", "Event", "Account", "Message")
    for r in rows:
        table.add_row(
            r["timestamp"].strftime("%m/%d %H:%M:%S"),
            r["severity"],
            r["event_type"],
            str(r["account_id"] or "-"),
            r["message"],
        )
    console.print(table)


@main.command("totp-code")
@click.argument("secret")
def totp_code(secret: str) -> None:
    """Print the current code for a base32 SECRET (for testing authenticators)."""
    from flowboard.auth import totp
    from flowboard.auth.base32 import Base32Error

    try:
        console.print(totp.get_code(secret))
    except Base32Error as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)


@main.command()
@click.option("--host", default=None)
@click.option("--port", type=int, default=None)
def server(host: str | None, port: int | None) -> None:
    """Start the HTTP API."""
    import uvicorn

    from flowboard.api.app import create_app

    host = host or settings.api_host
    port = port or settings.api_port
    console.print(f"Starting Flowboard Admin Auth on http://{host}:{port}")
    uvicorn.run(create_app(), host=host, port=port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
