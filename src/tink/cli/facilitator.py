"""CLI: tink facilitator supported"""

import json

import click
from rich.console import Console
from rich.table import Table

from tink.errors import TinkError

console = Console()


def _engine_config():
    from tink.cli.main import _engine_config
    return _engine_config()


def _run(coro):
    from tink.cli.main import _run
    return _run(coro)


@click.group()
def facilitator():
    """Facilitator commands."""


@facilitator.command("supported")
@click.option("--json-output", "--json", is_flag=True)
def facilitator_supported(json_output):
    """List schemes, networks and assets the facilitator accepts."""
    from tink.engine import AsyncTipEngine

    async def _supported():
        engine = AsyncTipEngine(config=_engine_config())
        try:
            with console.status("Querying facilitator..."):
                return await engine.supported()
        finally:
            await engine.close()

    try:
        result = _run(_supported())
    except TinkError as e:
        console.print(f"[red]{e.code}: {e.message}[/red]")
        raise SystemExit(1)

    if json_output:
        click.echo(json.dumps(result, indent=2))
        return
    console.print(f"Network: [bold]{result['network']}[/bold] (chain {result['chain_id']})")
    console.print(f"Schemes: {', '.join(result['schemes'])}")
    table = Table(title="Assets")
    table.add_column("Symbol", style="bold")
    table.add_column("Address")
    table.add_column("Decimals", justify="right")
    for asset in result["assets"]:
        table.add_row(asset["symbol"], asset["address"], str(asset["decimals"]))
    console.print(table)
