"""
unipoller entry point.

Usage:
    unipoller --mock --sink sqlite            Poll the mock controller into SQLite
    unipoller --unifi-url https://unifi:8443 --unifi-pass ...
                                              Poll a live controller into InfluxDB
    unipoller --mode lambda ...               Run one collection and exit
    unipoller sites --mock                    List the controller's sites

Every option can also be set with a UP_* environment variable,
e.g. UP_INTERVAL=60 or UP_SITES="default ops".
"""

from __future__ import annotations

import logging

import click

from unipoller import __version__
from unipoller.collector import MetricsCollector
from unipoller.config import (
    DEFAULT_INFLUX_DB,
    DEFAULT_INTERVAL_SECONDS,
    DEFAULT_MAX_ERRORS,
    PollerConfig,
)
from unipoller.controller.base import Controller
from unipoller.controller.mock_controller import MockController
from unipoller.controller.unifi_client import UnifiController
from unipoller.errors import UnipollerError
from unipoller.poller import Poller, PollLoop
from unipoller.reporter import MetricsReporter
from unipoller.sites import SiteFilter
from unipoller.storage.base import PointSink
from unipoller.storage.influx_sink import InfluxSink, client_from_url
from unipoller.storage.sqlite_sink import SQLiteSink


log = logging.getLogger("unipoller")


def build_controller(config: PollerConfig, mock: bool) -> Controller:
    if mock:
        return MockController()
    return UnifiController(
        base_url=config.unifi_url,
        username=config.unifi_user,
        password=config.unifi_pass,
        unifi_os=config.unifi_os,
        verify_ssl=config.verify_ssl,
    )


def build_sink(config: PollerConfig) -> PointSink:
    if config.sink == "sqlite":
        return SQLiteSink(db_path=config.sqlite_path, database=config.influx_db)
    client = client_from_url(
        config.influx_url,
        database=config.influx_db,
        username=config.influx_user,
        password=config.influx_pass,
        verify_ssl=config.influx_verify_ssl,
    )
    return InfluxSink(client, database=config.influx_db, url=config.influx_url)


def build_poller(config: PollerConfig, controller: Controller, sink: PointSink) -> Poller:
    site_filter = SiteFilter(controller, sites=config.sites, mode=config.mode)
    collector = MetricsCollector(controller, site_filter, sink)
    reporter = MetricsReporter(sink)
    loop = PollLoop(collector, reporter, interval=config.interval, max_errors=config.max_errors)
    return Poller(site_filter, collector, reporter, loop, lambda_mode=config.is_lambda)


@click.group(invoke_without_command=True, context_settings={"auto_envvar_prefix": "UP"})
@click.version_option(version=__version__, prog_name="unipoller")
@click.option("--mock", is_flag=True, default=False, help="Use a simulated UniFi controller")
@click.option("--mode", default="daemon", show_default=True,
              help="'daemon' polls forever; anything containing 'lambda' runs once")
@click.option("--interval", default=DEFAULT_INTERVAL_SECONDS, show_default=True,
              help="Polling interval in seconds (rounded to whole seconds)")
@click.option("--site", "sites", multiple=True, default=("all",), show_default=True,
              envvar="UP_SITES", help="Site name to poll, repeatable. 'all' polls every site")
@click.option("--max-errors", default=DEFAULT_MAX_ERRORS, show_default=True,
              help="Stop after this many failed cycles. Negative means never stop")
@click.option("--unifi-url", default="https://127.0.0.1:8443", show_default=True,
              help="UniFi controller URL")
@click.option("--unifi-user", default="influx", show_default=True, help="Controller username")
@click.option("--unifi-pass", default="", help="Controller password")
@click.option("--unifi-os", is_flag=True, default=False,
              help="Controller is a UniFi OS console (UDM, UDR, Cloud Key Gen2+)")
@click.option("--verify-ssl/--no-verify-ssl", default=False, show_default=True,
              help="Verify the controller's TLS certificate")
@click.option("--sink", type=click.Choice(["influx", "sqlite"]), default="influx",
              show_default=True, help="Where to write points")
@click.option("--influx-url", default="http://127.0.0.1:8086", show_default=True,
              help="InfluxDB URL")
@click.option("--influx-db", default=DEFAULT_INFLUX_DB, show_default=True,
              help="InfluxDB database name")
@click.option("--influx-user", default=None, help="InfluxDB username")
@click.option("--influx-pass", default=None, help="InfluxDB password")
@click.option("--influx-verify-ssl/--no-influx-verify-ssl", default=True, show_default=True,
              help="Verify InfluxDB's TLS certificate when --influx-url is https")
@click.option("--db", "sqlite_path", default="unipoller.db", show_default=True,
              help="SQLite database path when --sink sqlite")
@click.option("--verbose", is_flag=True, default=False, help="Enable debug logging")
@click.option("--quiet", is_flag=True, default=False, help="Only log warnings and errors")
@click.pass_context
def cli(ctx, mock: bool, mode: str, interval: float, sites: tuple, max_errors: int,
        unifi_url: str, unifi_user: str, unifi_pass: str, unifi_os: bool, verify_ssl: bool,
        sink: str, influx_url: str, influx_db: str, influx_user: str, influx_pass: str,
        influx_verify_ssl: bool, sqlite_path: str, verbose: bool, quiet: bool):
    """unipoller - ships UniFi controller metrics to InfluxDB."""
    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    config = PollerConfig(
        mode=mode,
        interval=interval,
        sites=list(sites),
        max_errors=max_errors,
        unifi_url=unifi_url,
        unifi_user=unifi_user,
        unifi_pass=unifi_pass,
        unifi_os=unifi_os,
        verify_ssl=verify_ssl,
        sink=sink,
        influx_url=influx_url,
        influx_db=influx_db,
        influx_user=influx_user,
        influx_pass=influx_pass,
        influx_verify_ssl=influx_verify_ssl,
        sqlite_path=sqlite_path,
    )
    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["mock"] = mock

    if not mock and not unifi_pass:
        click.echo("Please specify a data source: --mock or --unifi-pass <password>")
        raise SystemExit(1)

    # If no subcommand, run the poller
    if ctx.invoked_subcommand is not None:
        return

    controller = build_controller(config, mock)
    point_sink = build_sink(config)
    log.info("unipoller v%s: %s -> %s", __version__, controller.name(), point_sink.name())

    try:
        build_poller(config, controller, point_sink).start()
    except KeyboardInterrupt:
        log.info("Poller stopped")
    except UnipollerError as e:
        log.error("Exiting: %s", e)
        raise SystemExit(1)
    finally:
        point_sink.close()
        controller.close()


@cli.command()
@click.pass_context
def sites(ctx):
    """List the controller's sites and which ones will be polled."""
    from rich.console import Console
    from rich.table import Table

    config = ctx.obj["config"]
    controller = build_controller(config, ctx.obj["mock"])
    site_filter = SiteFilter(controller, sites=config.sites, mode=config.mode)

    try:
        found = controller.fetch_sites()
        polled = {s.name for s in site_filter.get_filtered_sites()}
    except UnipollerError as e:
        click.echo(f"Could not read sites from {controller.name()}: {e}")
        raise SystemExit(1)
    finally:
        controller.close()

    console = Console()
    table = Table(title=controller.name(), show_header=True, header_style="bold")
    table.add_column("Site")
    table.add_column("Description")
    table.add_column("Subsystems", justify="right")
    table.add_column("Polled", justify="center")

    for site in found:
        table.add_row(
            f"[cyan]{site.name}[/cyan]",
            site.desc,
            str(len(site.health)),
            "[green]yes[/green]" if site.name in polled else "[dim]no[/dim]",
        )
    console.print(table)

    for name in site_filter.missing_sites(found):
        console.print(f"[yellow]Configured site not found on controller:[/yellow] {name}")


if __name__ == "__main__":
    cli()
