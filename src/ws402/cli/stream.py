"""CLI: ws402 stream"""

import asyncio
import logging
from typing import Optional

import click
from rich.console import Console

from ws402.client import AsyncStreamClient
from ws402.errors import ConfigError, NegotiationError, TransportError
from ws402.transport.websocket import CloseInfo

console = Console(stderr=True)
logger = logging.getLogger("ws402.cli")


def _load_config(env_file, pairs, **extra):
    from ws402.cli.main import _load_config
    return _load_config(env_file, pairs, **extra)


def _configure_logging(level: str) -> None:
    from ws402.cli.main import _configure_logging
    _configure_logging(level)


def _run(coro):
    from ws402.cli.main import _run
    return _run(coro)


@click.command("stream")
@click.option("--env-file", default=".env", show_default=True, help="Path to a .env file with ws402 settings")
@click.option("--set", "overrides", multiple=True, metavar="KEY=VALUE", help="Override a setting")
@click.option("--log-level", default=None, help="debug, info, warning or error (default: LOG_LEVEL)")
@click.option("--renew-method", type=click.Choice(["http", "inband"]), default=None)
@click.option("--summary/--full", "summary", default=None, help="Log transactions summarized or whole")
@click.option("--reconnect", is_flag=True, help="Buy a new session whenever the connection drops")
@click.option("--reconnect-delay", default=5.0, show_default=True, type=float)
def stream_cmd(
    env_file: str,
    overrides: tuple[str, ...],
    log_level: Optional[str],
    renew_method: Optional[str],
    summary: Optional[bool],
    reconnect: bool,
    reconnect_delay: float,
):
    """Pay for the stream and log events until the connection closes."""
    cfg = _load_config(
        env_file, overrides,
        RENEW_METHOD=renew_method,
        LOG_TRANSACTIONS=None if summary is None else ("summary" if summary else "full"),
    )
    _configure_logging(log_level or cfg.log_level)
    logger.info("Starting: base_url=%s renew_method=%s schema_path=%s",
                cfg.base_url, cfg.renew_method, cfg.schema_path)

    async def _stream() -> CloseInfo:
        while True:
            client = AsyncStreamClient(cfg)
            try:
                info = await client.run()
            except TransportError as e:
                info = CloseInfo(error=str(e))
            finally:
                await client.close()
            if not reconnect:
                return info
            logger.warning("Session ended (%r); reconnecting in %.1fs", info, reconnect_delay)
            await asyncio.sleep(reconnect_delay)

    try:
        info = _run(_stream())
    except (ConfigError, NegotiationError) as e:
        console.print(f"[red]Fatal error: {e}[/red]")
        raise SystemExit(1)
    except KeyboardInterrupt:
        console.print("[dim]Interrupted.[/dim]")
        return

    if info.error:
        console.print(f"[red]Connection failed: {info.error}[/red]")
        raise SystemExit(1)
