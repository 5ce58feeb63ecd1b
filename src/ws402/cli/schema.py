"""CLI: ws402 schema, ws402 config"""

import json
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from ws402.client import AsyncStreamClient
from ws402.errors import ConfigError, NegotiationError

console = Console()


def _load_config(env_file, pairs, **extra):
    from ws402.cli.main import _load_config
    return _load_config(env_file, pairs, **extra)


def _configure_logging(level: str) -> None:
    from ws402.cli.main import _configure_logging
    _configure_logging(level)


def _run(coro):
    from ws402.cli.main import _run
    return _run(coro)


@click.command("schema")
@click.option("--env-file", default=".env", show_default=True)
@click.option("--set", "overrides", multiple=True, metavar="KEY=VALUE")
@click.option("--log-level", default=None)
@click.option("--json-output", "--json", is_flag=True)
def schema_cmd(env_file: str, overrides: tuple[str, ...], log_level: Optional[str], json_output: bool):
    """Pay for the stream schema and show the session descriptor."""
    cfg = _load_config(env_file, overrides)
    _configure_logging(log_level or cfg.log_level)

    async def _negotiate():
        async with AsyncStreamClient(cfg) as client:
            return await client.negotiate()

    try:
        with console.status("Negotiating x402 schema..."):
            descriptor = _run(_negotiate())
    except (ConfigError, NegotiationError) as e:
        console.print(f"[red]Negotiation failed: {e}[/red]")
        raise SystemExit(1)

    if json_output:
        click.echo(json.dumps(descriptor.model_dump(), indent=2))
        return
    table = Table(title="Session")
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Stream", descriptor.stream_id)
    table.add_row("Endpoint", descriptor.endpoint_url)
    table.add_row("Token", descriptor.token)
    table.add_row("Schema version", descriptor.schema_version)
    console.print(table)


@click.command("config")
@click.option("--env-file", default=".env", show_default=True)
@click.option("--set", "overrides", multiple=True, metavar="KEY=VALUE")
def config_cmd(env_file: str, overrides: tuple[str, ...]):
    """Show the resolved configuration."""
    cfg = _load_config(env_file, overrides)
    click.echo(json.dumps(cfg.redacted(), indent=2))
