"""CLI: tink sig normalize"""

import json
from typing import Optional

import click
from rich.console import Console

from tink.errors import ValidationError
from tink.signature import normalize_signature_v, split_signature

console = Console()


def _engine_config():
    from tink.cli.main import _engine_config
    return _engine_config()


@click.group()
def sig():
    """Signature utilities."""


@sig.command("normalize")
@click.argument("signature")
@click.option("--chain-id", type=int, default=None, help="Defaults to the configured network")
@click.option("--json-output", "--json", is_flag=True)
def sig_normalize(signature: str, chain_id: Optional[int], json_output):
    """Rewrite the recovery byte of a 65-byte signature to 27/28."""
    chain_id = chain_id or _engine_config().chain.chain_id
    try:
        _, _, v_in = split_signature(signature)
        normalized = normalize_signature_v(signature, chain_id)
    except ValidationError as e:
        console.print(f"[red]{e.message}[/red]")
        raise SystemExit(1)

    if json_output:
        click.echo(json.dumps({"signature": normalized, "v_in": v_in, "v_out": int(normalized[-2:], 16)}, indent=2))
        return
    click.echo(normalized)
