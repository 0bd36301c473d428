"""
accountsync CLI entry point.

Usage:
    accountsync serve --reload
    accountsync db ensure-indexes
    accountsync db status
    accountsync webhook sign payload.json
"""

import sys

import click
from loguru import logger


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def cli(verbose: bool):
    """accountsync - user accounts synced from the identity provider."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")


@cli.group()
def db():
    """Database operations (indexes, status)."""
    pass


@cli.group()
def webhook():
    """Webhook development utilities."""
    pass


# Register commands
from .commands.db import register_commands as register_db_commands
from .commands.serve import register_command as register_serve_command
from .commands.webhook import register_commands as register_webhook_commands

register_db_commands(db)
register_webhook_commands(webhook)
register_serve_command(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
