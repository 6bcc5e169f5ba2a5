"""Command-line interface for plotted.

Provides CLI commands for serving the route map, aggregating routes from the
terminal, and maintaining the polyline cache.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, NoReturn

import click

from plotted import __version__
from plotted.config import DEFAULT_CONFIG_PATH, load_config

if TYPE_CHECKING:
    from plotted.config import Config


class Context:
    """State shared by plotted commands.

    ``-v`` raises both the console log level and how much per-activity
    progress commands echo; ``--quiet`` and ``--json`` silence progress.
    """

    def __init__(self) -> None:
        self.config: Config | None = None
        self.verbose: int = 0
        self.quiet: bool = False
        self.json_output: bool = False

    def log(self, message: str, level: int = 0) -> None:
        """Echo progress once the ``-v`` count reaches ``level``."""
        if self.json_output or self.quiet or level > self.verbose:
            return
        click.echo(message)

    def emit(self, data: dict[str, Any]) -> None:
        """Print a command result as JSON."""
        click.echo(json.dumps(data, indent=2, default=str))

    def fail(self, message: str, code: int = 1) -> NoReturn:
        """Report an error and exit with ``code``."""
        if self.json_output:
            self.emit({"status": "error", "error": message})
        else:
            click.echo(f"Error: {message}", err=True)
        sys.exit(code)

    def require_config(self) -> Config:
        if self.config is None:
            self.fail("Configuration not loaded")
        return self.config


pass_context = click.make_pass_decorator(Context, ensure=True)


@click.group()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help=f"Configuration file path (default: {DEFAULT_CONFIG_PATH})",
)
@click.option(
    "--data-dir",
    "-d",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help="Data directory for cache and logs (default: ./data)",
)
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity (can be repeated: -v, -vv)",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    help="Suppress non-error output",
)
@click.option(
    "--json",
    "json_output",
    is_flag=True,
    help="Output in JSON format",
)
@click.version_option(version=__version__, prog_name="plotted")
@pass_context
def main(
    ctx: Context,
    config_path: Path | None,
    data_dir: Path | None,
    verbose: int,
    quiet: bool,
    json_output: bool,
) -> None:
    """Plot your Strava routes on one map.

    Authorize with Strava in the browser, then every route recorded in a
    date range is drawn on an interactive map.
    """
    from plotted.lib.logging import setup_logging

    ctx.verbose = verbose
    ctx.quiet = quiet
    ctx.json_output = json_output

    ctx.config = load_config(config_path)

    if data_dir is not None:
        ctx.config.data.directory = data_dir

    setup_logging(ctx.config.data.logs_dir, verbose=verbose, quiet=quiet or json_output)


@main.command()
@click.option(
    "--host",
    default=None,
    help="Server host (default: 127.0.0.1)",
)
@click.option(
    "--port",
    type=int,
    default=None,
    help="Server port (default: 8888)",
)
@click.option(
    "--strava-client-id",
    "client_id",
    help="Strava API client ID",
)
@click.option(
    "--strava-secret",
    "client_secret",
    help="Strava API client secret",
)
@click.option(
    "--mapbox",
    "mapbox_token",
    help="Mapbox API access token",
)
@click.option(
    "--no-open",
    is_flag=True,
    help="Don't open the landing page in a browser",
)
@pass_context
def serve(
    ctx: Context,
    host: str | None,
    port: int | None,
    client_id: str | None,
    client_secret: str | None,
    mapbox_token: str | None,
    no_open: bool,
) -> None:
    """Start the local map server.

    Prints a Strava authorization URL; completing it redirects to the map.
    """
    from plotted.views.server import start_server

    config = ctx.require_config()

    if client_id:
        config.strava.client_id = client_id
    if client_secret:
        config.strava.client_secret = client_secret
    if mapbox_token:
        config.mapbox.token = mapbox_token

    try:
        start_server(config, host=host, port=port, open_browser=not no_open)
    except OSError as e:
        ctx.fail(f"Server failed: {e}")


@main.command()
@click.option(
    "--after",
    required=True,
    help="First day of the range (DD/MM/YYYY)",
)
@click.option(
    "--before",
    required=True,
    help="Last day of the range (DD/MM/YYYY)",
)
@click.option(
    "--token",
    help="Strava access token (or use env: STRAVA_ACCESS_TOKEN)",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    help="Write the map page to this HTML file",
)
@pass_context
def routes(
    ctx: Context,
    after: str,
    before: str,
    token: str | None,
    output: Path | None,
) -> None:
    """Aggregate routes for a date range.

    Uses an existing access token instead of the browser flow.
    """
    from plotted.errors import InvalidDateError, NotAuthenticatedError
    from plotted.lib.dates import parse_date
    from plotted.services.cache import PolylineCache
    from plotted.services.routes import RouteAggregator
    from plotted.services.strava import ActivityClient
    from plotted.views.map import render_map_page

    config = ctx.require_config()

    try:
        after_date = parse_date(after, "after")
        before_date = parse_date(before, "before")
        client = ActivityClient(
            token or config.strava.access_token, timeout=config.strava.timeout
        )
    except (InvalidDateError, NotAuthenticatedError) as e:
        ctx.fail(str(e), code=2)

    aggregator = RouteAggregator(client, PolylineCache(config.data.cache_dir))
    result = aggregator.aggregate(
        after_date,
        before_date,
        log_callback=ctx.log,
    )

    if output:
        output.write_text(render_map_page(result.routes, config.mapbox.token), encoding="utf-8")
        ctx.log(f"Map saved to {output}")

    if ctx.json_output:
        ctx.emit({"status": "success", **result.to_dict()})
    else:
        ctx.log(
            f"\n{len(result.routes)} routes from {result.listed} activities "
            f"({result.cache_hits} cached, {result.fetched} fetched)"
        )
        if result.skipped:
            ctx.log(f"Skipped: {len(result.skipped)}")


@main.group()
def cache() -> None:
    """Inspect or clear the polyline cache."""
    pass


@cache.command(name="info")
@pass_context
def cache_info(ctx: Context) -> None:
    """Show cache location and size."""
    from plotted.services.cache import PolylineCache

    config = ctx.require_config()

    store = PolylineCache(config.data.cache_dir)
    count = store.size()

    if ctx.json_output:
        ctx.emit({"directory": str(store.directory), "records": count})
    else:
        ctx.log(f"Cache directory: {store.directory}")
        ctx.log(f"Cached routes: {count}")


@cache.command(name="clear")
@click.confirmation_option(prompt="Delete all cached polylines?")
@pass_context
def cache_clear(ctx: Context) -> None:
    """Delete every cached polyline."""
    from plotted.services.cache import PolylineCache

    config = ctx.require_config()

    try:
        removed = PolylineCache(config.data.cache_dir).clear()
    except OSError as e:
        ctx.fail(f"Cache clear failed: {e}")

    if ctx.json_output:
        ctx.emit({"status": "success", "removed": removed})
    else:
        ctx.log(f"Removed {removed} cached routes")


if __name__ == "__main__":
    main()
