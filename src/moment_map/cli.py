"""Command-line interface for moment-map.

Provides CLI commands for inspecting a collection, rendering its map page,
serving pages locally, and exporting a static site.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click

from moment_map import __version__
from moment_map.config import DEFAULT_CONFIG_PATH, load_config, validate_config
from moment_map.lib.logging import setup_logging

if TYPE_CHECKING:
    from moment_map.config import Config
    from moment_map.services.supabase import SupabaseClient

EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_NOT_FOUND = 3


class JSONOutput:
    """Helper for JSON output formatting."""

    def __init__(self, enabled: bool = False) -> None:
        self.enabled = enabled
        self._data: dict[str, Any] = {}

    def set(self, key: str, value: Any) -> None:
        """Set a value in the output."""
        self._data[key] = value

    def update(self, data: dict[str, Any]) -> None:
        """Update with multiple values."""
        self._data.update(data)

    def output(self) -> None:
        """Print JSON output if enabled."""
        if self.enabled:
            click.echo(json.dumps(self._data, indent=2, default=str))


class Context:
    """CLI context holding shared configuration and state."""

    def __init__(self) -> None:
        self.config: Config | None = None
        self.verbose: int = 0
        self.quiet: bool = False
        self.json_output: bool = False
        self.output: JSONOutput = JSONOutput()

    def log(self, message: str, level: int = 0) -> None:
        """Log a message if verbosity allows.

        Args:
            message: Message to log.
            level: Required verbosity level (0=normal, 1=-v, 2=-vv).
        """
        if self.json_output:
            return
        if self.quiet and level == 0:
            return
        if level <= self.verbose or level == 0:
            click.echo(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        if self.json_output:
            self.output.set("error", message)
            self.output.set("status", "error")
        else:
            click.echo(f"Error: {message}", err=True)

    def fail(self, message: str, code: int = EXIT_FAILURE) -> None:
        """Report an error and exit."""
        self.error(message)
        if self.json_output:
            self.output.output()
        sys.exit(code)

    def client(self) -> SupabaseClient:
        """Create a backend client from the loaded configuration."""
        from moment_map.services.supabase import SupabaseClient

        if self.config is None:
            self.fail("Configuration not loaded")
        assert self.config is not None

        try:
            validate_config(self.config)
        except ValueError as e:
            self.fail(str(e), EXIT_USAGE)

        return SupabaseClient.from_config(self.config)


pass_context = click.make_pass_decorator(Context, ensure=True)


@click.group()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help=f"Configuration file path (default: ./.moment-map.toml or {DEFAULT_CONFIG_PATH})",
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
@click.version_option(version=__version__, prog_name="moment-map")
@pass_context
def main(
    ctx: Context,
    config_path: Path | None,
    verbose: int,
    quiet: bool,
    json_output: bool,
) -> None:
    """Travel memories world map.

    Fetch a collection of geotagged moments and view them as pins on an
    interactive map with a stats dock.
    """
    ctx.verbose = verbose
    ctx.quiet = quiet
    ctx.json_output = json_output
    ctx.output = JSONOutput(json_output)

    ctx.config = load_config(config_path)

    setup_logging(
        ctx.config,
        console_level=logging.DEBUG if verbose else logging.INFO,
        # JSON output must stay parseable, so console logging is errors only
        quiet=quiet or json_output,
    )


@main.command()
@click.argument("collection_id")
@pass_context
def show(ctx: Context, collection_id: str) -> None:
    """Summarize a collection: stats dock and map locations."""
    from moment_map.views.dock import format_dock_text
    from moment_map.views.page import CollectionNotFoundError, load_collection_page

    client = ctx.client()

    try:
        page = load_collection_page(client, collection_id)
    except CollectionNotFoundError as e:
        ctx.fail(str(e), EXIT_NOT_FOUND)
        return

    try:
        if page.view == "empty":
            if ctx.json_output:
                ctx.output.update({"status": "success", **page.to_dict()})
                ctx.output.output()
            else:
                ctx.log(page.collection.name)
                ctx.log("No moments with location data yet.")
            return

        interface = page.build_interface(ctx.config.map if ctx.config else None)

        if ctx.json_output:
            ctx.output.update({
                "status": "success",
                **page.to_dict(),
                "stats": interface.stats.to_dict(),
                "locations": [
                    {
                        "id": loc.id,
                        "lat": loc.lat,
                        "lng": loc.lng,
                        "moments": [m.title for m in loc.moments],
                    }
                    for loc in interface.world_map.locations
                ],
            })
            ctx.output.output()
            return

        ctx.log(format_dock_text(interface.dock()))
        ctx.log(f"Completed:  {interface.stats.completed_moments:>6}")
        ctx.log("")
        ctx.log("Locations:")
        for loc in interface.world_map.locations:
            ctx.log(f"  {loc.id} ({loc.lat:.4f}, {loc.lng:.4f})")
            for moment in loc.moments:
                ctx.log(f"    - {moment.started_at:%Y-%m-%d} {moment.title}", 1)

        unmapped = len(page.moments) - sum(
            len(loc.moments) for loc in interface.world_map.locations
        )
        if unmapped:
            ctx.log(f"\n{unmapped} moments have locations without known coordinates")

    except Exception as e:
        ctx.fail(f"Failed to summarize collection: {e}")


@main.command(name="map")
@click.argument("collection_id")
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    help="Output HTML file (default: stdout)",
)
@click.option(
    "--serve",
    is_flag=True,
    help="Start local HTTP server to view the page",
)
@click.option(
    "--port",
    type=int,
    default=None,
    help="Server port (default: from config, 8080)",
)
@pass_context
def map_cmd(
    ctx: Context,
    collection_id: str,
    output: Path | None,
    serve: bool,
    port: int | None,
) -> None:
    """Render the interactive map page of a collection."""
    from moment_map.views.page import (
        CollectionNotFoundError,
        load_collection_page,
        render_page,
    )
    from moment_map.views.server import start_server

    client = ctx.client()
    assert ctx.config is not None

    try:
        page = load_collection_page(client, collection_id)
    except CollectionNotFoundError as e:
        ctx.fail(str(e), EXIT_NOT_FOUND)
        return

    try:
        html = render_page(page, ctx.config.map)

        if serve:
            server_port = port if port is not None else ctx.config.server.port
            ctx.log(f"Starting server at http://{ctx.config.server.host}:{server_port}/{collection_id}")
            start_server(
                client,
                ctx.config.map,
                host=ctx.config.server.host,
                port=server_port,
                open_browser=False,
            )
        elif output:
            output.write_text(html, encoding="utf-8")
            ctx.log(f"Map saved to {output}")
            if ctx.json_output:
                ctx.output.update({"status": "success", "output": str(output), **page.to_dict()})
                ctx.output.output()
        else:
            click.echo(html)

    except Exception as e:
        ctx.fail(f"Map generation failed: {e}")


@main.command()
@click.option(
    "--port",
    type=int,
    default=None,
    help="Server port (default: from config, 8080)",
)
@click.option(
    "--host",
    default=None,
    help="Server host (default: from config, 127.0.0.1)",
)
@click.option(
    "--no-open",
    is_flag=True,
    help="Don't automatically open browser",
)
@pass_context
def serve(ctx: Context, port: int | None, host: str | None, no_open: bool) -> None:
    """Start a local web server for all collection pages."""
    from moment_map.views.server import start_server

    client = ctx.client()
    assert ctx.config is not None

    server_host = host if host is not None else ctx.config.server.host
    server_port = port if port is not None else ctx.config.server.port

    try:
        ctx.log(f"Starting server at http://{server_host}:{server_port}")
        start_server(
            client,
            ctx.config.map,
            host=server_host,
            port=server_port,
            open_browser=not no_open,
        )
    except Exception as e:
        ctx.fail(f"Server failed: {e}")


@main.command()
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(path_type=Path),
    default=Path("./site"),
    help="Output directory (default: ./site)",
)
@pass_context
def export(ctx: Context, output_dir: Path) -> None:
    """Export every collection page as a static site."""
    from moment_map.views.server import export_site

    client = ctx.client()
    assert ctx.config is not None

    try:
        result = export_site(
            client,
            ctx.config.map,
            output_dir,
            log_callback=ctx.log if not ctx.json_output else None,
        )

        if ctx.json_output:
            ctx.output.update({"status": "success", **result})
            ctx.output.output()
        else:
            ctx.log(f"\nExported {result['exported']} collections to {output_dir}")
            if result["skipped"]:
                ctx.log(f"Skipped {result['skipped']} collections")
            if result["failed"]:
                ctx.log(f"Failed: {result['failed']}")

    except Exception as e:
        ctx.fail(f"Export failed: {e}")


if __name__ == "__main__":
    main()
