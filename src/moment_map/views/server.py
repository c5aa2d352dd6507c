"""Local preview server and static export for moment-map.

Serves the collection index at / and each collection page at
/<collection_id>, mirroring the hosted site's routes, and can write the
same pages out as a static site.
"""

from __future__ import annotations

import http.server
import json
import logging
import socketserver
import webbrowser
from pathlib import Path
from typing import TYPE_CHECKING, Any
from urllib.parse import unquote, urlparse

from moment_map.views.page import (
    CollectionNotFoundError,
    generate_static_params,
    load_collection_page,
    render_index,
    render_page,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from moment_map.config import MapConfig
    from moment_map.services.supabase import SupabaseClient

logger = logging.getLogger("moment_map.server")


def is_safe_path_segment(name: str) -> bool:
    """Whether name can be used as a single directory name under the export root."""
    return name not in ("", ".", "..") and "/" not in name and "\\" not in name


class CollectionRequestHandler(http.server.BaseHTTPRequestHandler):
    """HTTP request handler for collection pages."""

    client: SupabaseClient  # Set by make_handler()
    map_config: MapConfig  # Set by make_handler()

    def do_GET(self) -> None:
        """Handle GET requests."""
        path = unquote(urlparse(self.path).path)

        if path in ("/", "/index.html"):
            self._serve_index()
        elif path.startswith("/api/collections/"):
            collection_id = path[len("/api/collections/"):].strip("/")
            self._serve_collection_json(collection_id)
        elif path.strip("/") and "/" not in path.strip("/"):
            self._serve_collection(path.strip("/"))
        else:
            self.send_error(404, "Not Found")

    def _serve_index(self) -> None:
        params = generate_static_params(self.client)
        self._send_html(render_index([p["collection_id"] for p in params]))

    def _serve_collection(self, collection_id: str) -> None:
        """Serve the map or empty-state page of a collection."""
        try:
            page = load_collection_page(self.client, collection_id)
        except CollectionNotFoundError:
            self.send_error(404, "Collection not found")
            return
        self._send_html(render_page(page, self.map_config))

    def _serve_collection_json(self, collection_id: str) -> None:
        """Serve the page state of a collection as JSON."""
        try:
            page = load_collection_page(self.client, collection_id)
        except CollectionNotFoundError:
            self.send_error(404, "Collection not found")
            return

        data = page.to_dict()
        if page.view == "map":
            data["interface"] = page.build_interface(self.map_config).to_state()
        self._send_json(data)

    def _send_html(self, content: str) -> None:
        """Send HTML response."""
        encoded = content.encode("utf-8")
        self.send_response(200)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(encoded)))
        self.end_headers()
        self.wfile.write(encoded)

    def _send_json(self, data: Any) -> None:
        """Send JSON response."""
        encoded = json.dumps(data, default=str).encode("utf-8")
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(encoded)))
        self.end_headers()
        self.wfile.write(encoded)

    def log_message(self, format: str, *args: object) -> None:
        logger.debug("%s - %s", self.address_string(), format % args)


def make_handler(
    client: SupabaseClient,
    map_config: MapConfig,
) -> type[CollectionRequestHandler]:
    """Bind a backend client and map settings to a handler class."""

    class Handler(CollectionRequestHandler):
        pass

    Handler.client = client
    Handler.map_config = map_config
    return Handler


def start_server(
    client: SupabaseClient,
    map_config: MapConfig,
    host: str = "127.0.0.1",
    port: int = 8080,
    open_browser: bool = True,
) -> None:
    """Start the preview server.

    Args:
        client: Backend client.
        map_config: Tile and zoom settings.
        host: Server host.
        port: Server port.
        open_browser: Open browser automatically.
    """
    # Allow port reuse to avoid "Address already in use" errors
    socketserver.TCPServer.allow_reuse_address = True

    with socketserver.ThreadingTCPServer((host, port), make_handler(client, map_config)) as httpd:
        url = f"http://{host}:{port}/"
        print(f"Travel map available at {url}")
        print("Press Ctrl+C to stop")

        if open_browser:
            webbrowser.open(url)

        try:
            httpd.serve_forever()
        except KeyboardInterrupt:
            print("\nServer stopped")


def export_site(
    client: SupabaseClient,
    map_config: MapConfig,
    output_dir: Path,
    log_callback: Callable[[str, int], None] | None = None,
) -> dict[str, Any]:
    """Write every collection page as a static site.

    Produces output_dir/index.html and output_dir/<collection_id>/index.html.

    Args:
        client: Backend client.
        map_config: Tile and zoom settings.
        output_dir: Directory to write to.
        log_callback: Optional callback for progress messages.

    Returns:
        Dictionary with export results.
    """

    def log(msg: str, level: int = 0) -> None:
        if log_callback:
            log_callback(msg, level)

    output_dir.mkdir(parents=True, exist_ok=True)
    params = generate_static_params(client)
    collection_ids = [p["collection_id"] for p in params]
    exportable = [cid for cid in collection_ids if is_safe_path_segment(cid)]
    logger.info("Exporting %d collections to %s", len(collection_ids), output_dir)

    exported = 0
    skipped = 0
    failed = 0
    details: list[dict[str, Any]] = []

    for collection_id in collection_ids:
        if not is_safe_path_segment(collection_id):
            logger.warning("Refusing to export collection with unsafe id %r", collection_id)
            skipped += 1
            details.append(
                {"collection_id": collection_id, "status": "skipped", "reason": "unsafe id"}
            )
            log(f"Skipped {collection_id!r}: id is not a valid directory name", 1)
            continue

        try:
            page = load_collection_page(client, collection_id)
        except CollectionNotFoundError:
            # Listed but gone (or unreadable) by the time it was fetched
            skipped += 1
            details.append({"collection_id": collection_id, "status": "skipped"})
            log(f"Skipped {collection_id}: not found", 1)
            continue

        try:
            page_dir = output_dir / collection_id
            page_dir.mkdir(parents=True, exist_ok=True)
            (page_dir / "index.html").write_text(render_page(page, map_config), encoding="utf-8")
        except OSError as e:
            logger.error("Failed to write page for %s: %s", collection_id, e)
            failed += 1
            details.append({"collection_id": collection_id, "status": "failed", "error": str(e)})
            continue

        exported += 1
        details.append(
            {"collection_id": collection_id, "status": "exported", "view": page.view}
        )
        log(f"Exported {collection_id} ({page.view})", 1)

    (output_dir / "index.html").write_text(render_index(exportable), encoding="utf-8")

    return {
        "exported": exported,
        "skipped": skipped,
        "failed": failed,
        "output_dir": str(output_dir),
        "details": details,
    }
