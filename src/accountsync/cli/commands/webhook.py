"""
Webhook development utilities.

Usage:
    accountsync webhook sign payload.json
    accountsync webhook sign payload.json --secret whsec_...

Prints the svix-* headers for a payload so a local server can be exercised
with curl.
"""

import time
import uuid
from pathlib import Path

import click


@click.command()
@click.argument("payload_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--secret", default=None, help="Signing secret (defaults to CLERK__WEBHOOK_SECRET)")
@click.option("--msg-id", default=None, help="Message id (random if omitted)")
def sign(payload_file: Path, secret: str | None, msg_id: str | None):
    """Sign a webhook payload and print the headers."""
    from ...services.identity_events import WebhookVerifier

    try:
        verifier = WebhookVerifier(secret=secret)
    except ValueError as e:
        raise click.ClickException(str(e))

    payload = payload_file.read_bytes()
    msg_id = msg_id or f"msg_{uuid.uuid4().hex}"
    timestamp = int(time.time())

    click.echo(f"svix-id: {msg_id}")
    click.echo(f"svix-timestamp: {timestamp}")
    click.echo(f"svix-signature: {verifier.sign(msg_id, timestamp, payload)}")


def register_commands(webhook_group):
    """Register webhook commands."""
    webhook_group.add_command(sign)
