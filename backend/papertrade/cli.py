"""
PaperTrade CLI
PaperTrade Platform

Command-line interface for serving the API and database chores.

Usage:
    papertrade serve --port 8000
    papertrade init-db
    papertrade verify-db
    papertrade reset-db --yes
"""

import asyncio
import sys

import click
from loguru import logger

from papertrade.core.config import get_settings
from papertrade.db.repositories import (
    HoldingRepository,
    OrderRecordRepository,
    WalletRepository,
    WalletTransactionRepository,
)
from papertrade.db.session import Database
from papertrade.services.unit_of_work import UnitOfWork


# Configure logging
logger.remove()
logger.add(sys.stderr, level="INFO", format="{time:HH:mm:ss} | {level} | {message}")


def open_database() -> Database:
    settings = get_settings()
    return Database(settings.DATABASE_URL, settings.db)


async def _init_db() -> None:
    database = open_database()
    try:
        await database.init_db()
    finally:
        await database.close()


async def _reset_db() -> None:
    database = open_database()
    try:
        await database.drop_all()
        await database.init_db()
    finally:
        await database.close()


async def _verify_db() -> dict:
    database = open_database()
    try:
        if not await database.health_check():
            raise click.ClickException(f"Cannot connect to {database.engine.url.render_as_string(hide_password=True)}")
        
        async with UnitOfWork(database.session_factory) as uow:
            session = uow.session
            return {
                "wallets": await WalletRepository(session).count(),
                "wallet_transactions": await WalletTransactionRepository(session).count(),
                "holdings": await HoldingRepository(session).count(),
                "orders": await OrderRecordRepository(session).count(),
            }
    finally:
        await database.close()


@click.group()
def cli():
    """PaperTrade backend commands."""


@cli.command()
@click.option("--host", default=None, help="Bind address (default from API_HOST)")
@click.option("--port", default=None, type=int, help="Port (default from API_PORT)")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host, port, reload):
    """
    Run the API server.
    
    Always a single process: the simulated market and the per-user
    settlement locks live in memory and are not shared between workers.
    """
    import uvicorn
    
    api = get_settings().api
    uvicorn.run(
        "papertrade.main:app",
        host=host or api.host,
        port=port or api.port,
        reload=reload,
        workers=1,
    )


@cli.command("init-db")
def init_db():
    """Create all tables that do not exist yet."""
    asyncio.run(_init_db())
    click.echo("Database initialized")


@cli.command("reset-db")
@click.option("--yes", is_flag=True, help="Confirm dropping every wallet, holding and order")
def reset_db(yes):
    """Drop and recreate all tables."""
    if not yes:
        raise click.ClickException("Refusing to wipe the database without --yes")
    asyncio.run(_reset_db())
    click.echo("Database reset")


@cli.command("verify-db")
def verify_db():
    """Check connectivity and print row counts."""
    counts = asyncio.run(_verify_db())
    click.echo("Database OK")
    for table, count in counts.items():
        click.echo(f"  {table:<20} {count}")


def main():
    cli()


if __name__ == "__main__":
    main()
