"""CLI: tink webhook sign"""

import json
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from tink.webhooks import SIGNATURE_HEADER, sign_body, sign_envelope

console = Console()


def _engine_config():
    from tink.cli.main import _engine_config
    return _engine_config()


@click.group()
def webhook():
    """Webhook utilities."""


@webhook.command("sign")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--secret", default=None, help="Defaults to the configured webhook secret")
@click.option("--embed", is_flag=True, help="Print the envelope with an embedded signature field")
def webhook_sign(path: Path, secret: Optional[str], embed: bool):
    """Sign a webhook body for delivery to the reconciler."""
    secret = secret or _engine_config().webhook_secret
    if not secret:
        console.print("[red]No webhook secret. Pass --secret or run `tink config set webhook_secret ...`.[/red]")
        raise SystemExit(1)

    body = path.read_bytes()
    if not embed:
        click.echo(f"{SIGNATURE_HEADER}: {sign_body(body, secret)}")
        return

    try:
        envelope = json.loads(body)
        event, data = envelope["event"], envelope["data"]
    except (ValueError, KeyError, TypeError):
        console.print("[red]File must be a JSON object with 'event' and 'data'.[/red]")
        raise SystemExit(1)
    envelope["signature"] = sign_envelope(event, data, secret)
    click.echo(json.dumps(envelope, indent=2))
