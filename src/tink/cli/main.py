"""
Tink CLI — `tink` command.

Commands:
  tink tips <bill>                 Preset tip options for a bill
  tink split <tip>                 Split a tip across staff shares
  tink sig normalize <sig>         Normalize an ECDSA recovery byte
  tink webhook sign <file>         Sign a webhook body
  tink facilitator supported       Query the configured facilitator
  tink demo                        Run a full session against a local facilitator
  tink config set|show             Manage ~/.tink/config.json
"""

import asyncio
import json
import logging
from pathlib import Path

try:
    import click
    from rich.console import Console
except ImportError:
    raise SystemExit("CLI requires extras: pip install tink-engine[cli]")

from tink.config import EngineConfig

console = Console()
CONFIG_FILE = Path.home() / ".tink" / "config.json"
CONFIG_KEYS = ("network", "webhook_secret", "facilitator_url", "facilitator_token", "session_ttl_seconds")


def _load_config() -> dict:
    try:
        return json.loads(CONFIG_FILE.read_text())
    except (FileNotFoundError, json.JSONDecodeError):
        return {}


def _save_config(cfg: dict) -> None:
    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    CONFIG_FILE.write_text(json.dumps(cfg, indent=2))


def _engine_config() -> EngineConfig:
    """Config file values, overridden by any TINK_* environment variables."""
    from_env = EngineConfig.from_env().model_dump(exclude_unset=True)
    return EngineConfig.model_validate({**_load_config(), **from_env})


def _run(coro):
    return asyncio.run(coro)


@click.group()
@click.version_option("0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Log engine activity to stderr")
def main(verbose):
    """Tink CLI — tip sessions and x402 settlement."""
    if verbose:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")


@main.group("config")
def config_cmd():
    """Show or change CLI configuration."""


@config_cmd.command("show")
def config_show():
    """Print the effective configuration."""
    cfg = _engine_config().model_dump()
    for secret in ("webhook_secret", "facilitator_token"):
        if cfg.get(secret):
            cfg[secret] = "***"
    click.echo(json.dumps(cfg, indent=2))


@config_cmd.command("set")
@click.argument("key", type=click.Choice(CONFIG_KEYS))
@click.argument("value")
def config_set(key, value):
    """Store a configuration value."""
    cfg = _load_config()
    cfg[key] = value
    try:
        EngineConfig.model_validate(cfg)
    except ValueError as e:
        console.print(f"[red]Invalid value for {key}: {e}[/red]")
        raise SystemExit(1)
    _save_config(cfg)
    console.print(f"[green]{key} saved to {CONFIG_FILE}[/green]")


# Register subcommands from separate modules
from tink.cli.tips import tips_cmd
from tink.cli.split import split_cmd
from tink.cli.sig import sig
from tink.cli.webhook import webhook
from tink.cli.facilitator import facilitator
from tink.cli.demo import demo_cmd

main.add_command(tips_cmd)
main.add_command(split_cmd)
main.add_command(sig)
main.add_command(webhook)
main.add_command(facilitator)
main.add_command(demo_cmd)


if __name__ == "__main__":
    main()
