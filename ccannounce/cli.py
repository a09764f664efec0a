"""Command line interface for ccAnnounce.

Runs an announce loop against a tracker and prints the peers it returns.
"""

from __future__ import annotations

import asyncio
import binascii

import click
from rich.console import Console
from rich.table import Table

from ccannounce.announce import Announce
from ccannounce.config import init_config
from ccannounce.exceptions import CCAnnounceError
from ccannounce.models import PeerAddress
from ccannounce.session import AnnounceSession


def _parse_info_hash(value: str) -> bytes:
    if len(value) != 40:
        msg = "Info hash must be 40 hex characters"
        raise click.BadParameter(msg)
    try:
        return binascii.unhexlify(value)
    except binascii.Error as e:
        raise click.BadParameter(str(e)) from e


def _peer_table(leechers: int, seeders: int, interval: int, peers: list[PeerAddress]) -> Table:
    table = Table(
        title=f"{len(peers)} peer(s), seeders={seeders}, leechers={leechers}, next in {interval}s",
    )
    table.add_column("IP", style="cyan")
    table.add_column("Port", style="green", justify="right")
    for peer in peers:
        table.add_row(peer.ip, str(peer.port))
    return table


@click.group()
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to a ccannounce.toml configuration file",
)
@click.pass_context
def cli(ctx, config_file: str | None):
    """HTTP tracker announce client."""
    try:
        manager = init_config(config_file)
    except CCAnnounceError as e:
        raise click.ClickException(str(e)) from e
    manager.setup_logging()
    ctx.obj = manager


@cli.command("announce")
@click.argument("announce_url")
@click.option("--info-hash", "info_hash", required=True, help="Torrent info hash (hex)")
@click.option("--port", type=int, default=6881, show_default=True, help="Listening port")
@click.option("--ip", default="0.0.0.0", show_default=True, help="Address reported to the tracker")
@click.option("--left", type=int, default=0, show_default=True, help="Bytes left to download")
@click.option("--uploaded", type=int, default=0, show_default=True, help="Bytes uploaded")
@click.option("--downloaded", type=int, default=0, show_default=True, help="Bytes downloaded")
@click.option("--once", is_flag=True, help="Stop after the first tracker response")
@click.option(
    "--duration",
    type=float,
    default=None,
    help="Stop gracefully after this many seconds",
)
@click.pass_obj
def announce_cmd(
    manager,
    announce_url: str,
    info_hash: str,
    port: int,
    ip: str,
    left: int,
    uploaded: int,
    downloaded: int,
    once: bool,
    duration: float | None,
):
    """Announce to ANNOUNCE_URL and print the returned peers."""
    console = Console()
    session = AnnounceSession(
        info_hash=_parse_info_hash(info_hash),
        announce_url=announce_url,
        port=port,
        ip=ip,
        uploaded=uploaded,
        downloaded=downloaded,
        left=left,
    )

    async def _run() -> bool:
        loop = Announce(session, config=manager.config.announce)
        responded = asyncio.Event()

        def _print(leechers: int, seeders: int, interval: int, peers: list[PeerAddress]) -> None:
            console.print(_peer_table(leechers, seeders, interval, peers))
            responded.set()

        loop.register(_print)
        await loop.start()

        waiters = [asyncio.ensure_future(loop.wait_stopped())]
        if once:
            waiters.append(asyncio.ensure_future(responded.wait()))
        if duration is not None:
            waiters.append(asyncio.ensure_future(asyncio.sleep(duration)))

        try:
            await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in waiters:
                waiter.cancel()
            await loop.stop()

        return not loop.forced

    try:
        ok = asyncio.run(_run())
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted[/yellow]")
        return

    if not ok:
        raise click.ClickException("Announce loop stopped on a fatal error (see log)")


@cli.command("config")
@click.pass_obj
def show_config(manager):
    """Print the effective configuration as TOML."""
    click.echo(manager.export())


def main() -> None:
    """Console script entry point."""
    cli()
