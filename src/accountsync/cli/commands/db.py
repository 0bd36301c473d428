"""
Database management commands.

Usage:
    accountsync db ensure-indexes     # Create unique/lookup indexes
    accountsync db status             # Show collection counts
"""

import asyncio

import click
from loguru import logger


@click.command("ensure-indexes")
def ensure_indexes_command():
    """Create the users/activity_logs indexes (idempotent)."""
    asyncio.run(_ensure_indexes_async())


async def _ensure_indexes_async():
    from ...services.mongo import MongoService, ensure_indexes

    db = MongoService(create_indexes=False)
    try:
        database = await db.connect()
        await ensure_indexes(database)
        click.echo(f"Indexes ensured on database '{db.database_name}'")
    finally:
        await db.disconnect()


@click.command()
def status():
    """
    Show database status.

    Displays:
    - User counts per status
    - Activity log entry count
    """
    asyncio.run(_status_async())


async def _status_async():
    from ...models.entities import ActivityLogEntry, UserStatus
    from ...services.mongo import ACTIVITY_LOGS_COLLECTION, MongoService, Repository
    from ...services.users import users_repository

    db = MongoService(create_indexes=False)
    try:
        users = users_repository(db)
        logs = Repository(ActivityLogEntry, ACTIVITY_LOGS_COLLECTION, db=db)

        click.echo()
        click.echo(f"accountsync database '{db.database_name}'")
        click.echo("=" * 60)
        for user_status in UserStatus:
            count = await users.count({"status": user_status.value})
            click.echo(f"  users ({user_status.value}): {count}")
        click.echo(f"  activity log entries: {await logs.count()}")
        click.echo()
    except Exception as e:
        logger.error(f"Failed to read database status: {e}")
        raise click.ClickException(str(e))
    finally:
        await db.disconnect()


def register_commands(db_group):
    """Register all db commands."""
    db_group.add_command(ensure_indexes_command)
    db_group.add_command(status)
