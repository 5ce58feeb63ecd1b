"""
ws402 CLI — `ws402` command.

Commands:
  ws402 stream             Pay for the stream and consume events until closed
  ws402 schema             Pay for the schema only and show the session descriptor
  ws402 config             Show the resolved configuration (key redacted)
"""

import asyncio
import logging
from typing import Optional, Sequence

try:
    import click
    from rich.console import Console
    from rich.logging import RichHandler
except ImportError:
    raise SystemExit("CLI requires extras: pip install ws402-client[cli]")

from ws402 import __version__
from ws402.config import ClientConfig, load_config
from ws402.errors import ConfigError

console = Console()
err_console = Console(stderr=True)


def _parse_overrides(pairs: Sequence[str]) -> dict[str, str]:
    overrides: dict[str, str] = {}
    for pair in pairs:
        if "=" not in pair:
            raise click.BadParameter("Overrides must look like KEY=VALUE", param_hint="--set")
        key, value = pair.split("=", 1)
        key = key.strip()
        if not key:
            raise click.BadParameter("Override key must not be empty", param_hint="--set")
        overrides[key] = value
    return overrides


def _load_config(env_file: Optional[str], pairs: Sequence[str] = (), **extra: Optional[str]) -> ClientConfig:
    overrides = _parse_overrides(pairs)
    overrides.update({key: value for key, value in extra.items() if value is not None})
    try:
        return load_config(env_file=env_file, overrides=overrides)
    except ConfigError as e:
        err_console.print(f"[red]Invalid configuration: {e}[/red]")
        raise SystemExit(1)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False, markup=False)],
        force=True,
    )


def _run(coro):
    return asyncio.run(coro)


@click.group()
@click.version_option(__version__)
def main():
    """ws402 CLI — pay-per-second event streams over x402."""


# Register subcommands from separate modules
from ws402.cli.stream import stream_cmd
from ws402.cli.schema import config_cmd, schema_cmd

main.add_command(stream_cmd)
main.add_command(schema_cmd)
main.add_command(config_cmd)


if __name__ == "__main__":
    main()
