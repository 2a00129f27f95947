"""CLI: tink split <tip> [--share NAME=PCT]..."""

from decimal import Decimal, InvalidOperation

import click
from rich.console import Console
from rich.table import Table

from tink.errors import TinkError
from tink.models.split import SplitShare
from tink.splits import default_split_config, summarize_split, validate_split_config

console = Console()


def _parse_share(ctx, param, values):
    shares = []
    for raw in values:
        name, sep, pct = raw.rpartition("=")
        try:
            if not sep:
                raise InvalidOperation
            shares.append(SplitShare(name=name.strip(), percentage=Decimal(pct)))
        except InvalidOperation:
            raise click.BadParameter(f"expected NAME=PERCENT, got {raw!r}")
    return shares


@click.command("split")
@click.argument("tip")
@click.option("--share", "shares", multiple=True, callback=_parse_share,
              help="NAME=PERCENT; repeat for each share (default 60/30/10)")
@click.option("--json-output", "--json", is_flag=True)
def split_cmd(tip, shares, json_output):
    """Split a tip across staff shares."""
    shares = shares or default_split_config()
    try:
        validate_split_config(shares)
        amount = Decimal(tip)
        if not amount.is_finite() or amount <= 0:
            raise click.BadParameter("tip must be greater than 0", param_hint="TIP")
        summary = summarize_split(amount, shares)
    except InvalidOperation:
        raise click.BadParameter(f"{tip!r} is not a number", param_hint="TIP")
    except TinkError as e:
        console.print(f"[red]{e.message}[/red]")
        raise SystemExit(1)

    if json_output:
        click.echo(summary.model_dump_json(indent=2))
        return

    table = Table(title=f"${summary.tip_amount:.2f} tip split")
    table.add_column("Share", style="bold")
    table.add_column("Percent", justify="right")
    table.add_column("Amount", justify="right")
    for a in summary.splits:
        table.add_row(a.name, f"{a.percentage.normalize():f}%", f"${a.amount:.2f}")
    table.add_row("Total", "", f"${summary.total:.2f}")
    console.print(table)
