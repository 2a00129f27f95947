"""CLI: tink demo — one full session against the in-memory store and local facilitator."""

import click
from rich.console import Console
from rich.table import Table

from tink.engine import AsyncTipEngine
from tink.errors import TinkError
from tink.facilitator.local import LocalFacilitator, build_local_payload
from tink.money import from_atomic_units
from tink.store.memory import seed_demo_merchant

console = Console()

DEMO_PAYER = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"


def _engine_config():
    from tink.cli.main import _engine_config
    return _engine_config()


def _run(coro):
    from tink.cli.main import _run
    return _run(coro)


def _fail(step: str, error) -> None:
    console.print(f"[red]{step} failed: {error.code}: {error.message}[/red]")
    raise SystemExit(1)


@click.command("demo")
@click.option("--bill", default="42.50", help="Bill amount")
@click.option("--tip-percent", default="18", help="Tip percentage")
@click.option("--payer", default=DEMO_PAYER, help="Payer wallet address")
def demo_cmd(bill, tip_percent, payer):
    """Create, tip, prepare, verify and settle a session locally."""

    async def _demo():
        config = _engine_config().model_copy(update={"facilitator_url": None})
        engine = AsyncTipEngine(config=config, facilitator=LocalFacilitator(config))
        merchant = await seed_demo_merchant(engine.store)

        session = await engine.create_session(merchant.slug, bill)
        console.print(f"Session [bold]{session.id}[/bold] memo={session.memo} bill=${session.bill_amount:.2f}")

        session = await engine.select_tip(session.id, tip_percentage=tip_percent)
        console.print(f"Tip ${session.tip_amount:.2f} ({session.tip_percentage}%), total ${session.total_amount:.2f}")

        prepared = await engine.prepare_session(session.id)
        if prepared.error:
            _fail("prepare", prepared.error)
        req = prepared.requirement
        usdc = from_atomic_units(int(req.max_amount_required), config.asset_decimals)
        console.print(f"Requirement: {usdc:.2f} USDC ({req.max_amount_required} atomic units) to {req.pay_to}")

        payload = build_local_payload(req, payer)
        verified = await engine.verify_session(session.id, payload)
        if verified.error or not verified.valid:
            console.print(f"[red]verify rejected: {verified.invalid_reason or verified.error}[/red]")
            raise SystemExit(1)

        with console.status("Settling..."):
            settled = await engine.settle_session(session.id, payload, payer)
        if settled.error:
            _fail("settle", settled.error)
        console.print(f"[green]Settled: {settled.settlement_ref}[/green]")

        again = await engine.settle_session(session.id, payload, payer)
        console.print(f"Second settle: {again.error.code}, same reference: "
                      f"{again.settlement_ref == settled.settlement_ref}")

        status = await engine.payment_status(session.id)
        console.print(f"Explorer: {status.explorer_url}")

        summary = await engine.tip_split(merchant.id, session.tip_amount)
        table = Table(title="Tip split")
        table.add_column("Share", style="bold")
        table.add_column("Amount", justify="right")
        for a in summary.splits:
            table.add_row(f"{a.name} ({a.percentage.normalize():f}%)", f"${a.amount:.2f}")
        console.print(table)
        await engine.close()

    try:
        _run(_demo())
    except TinkError as e:
        _fail("demo", e)
