"""CLI: tink tips <bill>"""

import click
from rich.console import Console
from rich.table import Table

from tink.errors import TinkError
from tink.tips import tip_options

console = Console()


@click.command("tips")
@click.argument("bill")
@click.option("--json-output", "--json", is_flag=True)
def tips_cmd(bill, json_output):
    """Show preset tip options for a bill."""
    try:
        options = tip_options(bill)
    except TinkError as e:
        console.print(f"[red]{e.message}[/red]")
        raise SystemExit(1)

    if json_output:
        click.echo(options.model_dump_json(indent=2))
        return

    table = Table(title=f"Tips on ${options.bill_amount:.2f}")
    table.add_column("Tip", style="bold")
    table.add_column("Amount", justify="right")
    table.add_column("Total", justify="right")
    for opt in options.options:
        table.add_row(f"{opt.percentage}%", f"${opt.amount:.2f}", f"${opt.total:.2f}")
    round_up = options.round_up
    table.add_row("Round up", f"${round_up.tip_amount:.2f}", f"${round_up.total:.2f}")
    console.print(table)
