"""Local web server for plotted.

Serves the landing page, completes the Strava OAuth callback and renders the
route map. Routing lives in ``PlottedApp`` so it can be exercised without a
socket; ``PlottedHandler`` only adapts it to ``http.server``.
"""

from __future__ import annotations

import http.server
import json
import webbrowser
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import parse_qs, urlencode, urlparse

from plotted.config import Config
from plotted.errors import (
    InvalidDateError,
    NotAuthenticatedError,
    StateMismatch,
    TokenExchangeError,
)
from plotted.lib.dates import parse_date
from plotted.lib.logging import get_logger
from plotted.models.activity import AggregationResult
from plotted.models.session import Session
from plotted.services.cache import PolylineCache
from plotted.services.routes import RouteAggregator
from plotted.services.strava import ActivityClient, OAuthCoordinator
from plotted.views.map import render_error_page, render_landing_page, render_map_page

logger = get_logger("plotted.server")


@dataclass
class Response:
    """Status, headers and body produced for one request."""

    status: int
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def html(cls, content: str, status: int = 200) -> Response:
        return cls(status, content.encode("utf-8"), {"Content-Type": "text/html; charset=utf-8"})

    @classmethod
    def json(cls, data: Any, status: int = 200) -> Response:
        body = json.dumps(data, indent=2, default=str).encode("utf-8")
        return cls(status, body, {"Content-Type": "application/json"})

    @classmethod
    def error(cls, status: int, message: str) -> Response:
        return cls.html(render_error_page(status, message), status)

    @classmethod
    def redirect(cls, location: str) -> Response:
        return cls(302, b"", {"Location": location})


class PlottedApp:
    """Request routing for the plotted web server.

    Holds the operator's session. There is exactly one session per app, so
    whoever completes the OAuth flow last owns the token.
    """

    def __init__(
        self,
        config: Config,
        session: Session | None = None,
        oauth: OAuthCoordinator | None = None,
        cache: PolylineCache | None = None,
    ) -> None:
        """Initialize the app.

        Args:
            config: Application configuration.
            session: Operator session (a fresh one by default).
            oauth: OAuth coordinator (built from config by default).
            cache: Polyline cache (built from config by default).
        """
        self.config = config
        self.session = session or Session(access_token=config.strava.access_token or None)
        self.oauth = oauth or OAuthCoordinator(
            client_id=config.strava.client_id,
            client_secret=config.strava.client_secret,
            redirect_uri=f"{config.server.public_url}/auth_callback",
        )
        self.cache = cache or PolylineCache(config.data.cache_dir)

    def default_map_url(self) -> str:
        """Map URL with the configured default date range."""
        query = urlencode(
            {"after": self.config.map.default_after, "before": self.config.map.default_before}
        )
        return f"/map?{query}"

    def authorization_url(self) -> str:
        """Issue an authorization URL with a fresh nonce."""
        return self.oauth.authorization_url(self.session)

    def handle(self, path: str) -> Response:
        """Route a GET request.

        Args:
            path: Request path including query string.

        Returns:
            Response to send.
        """
        parsed = urlparse(path)
        query = {k: v[0] for k, v in parse_qs(parsed.query).items()}

        if parsed.path in ("/", "/index.html"):
            return self._landing()
        if parsed.path == "/auth_callback":
            return self._auth_callback(query)
        if parsed.path == "/map":
            return self._map(query)
        if parsed.path == "/api/routes":
            return self._routes_json(query)
        return Response.error(404, "Not Found")

    def _landing(self) -> Response:
        return Response.html(render_landing_page(self.authorization_url()))

    def _auth_callback(self, query: dict[str, str]) -> Response:
        try:
            self.oauth.handle_callback(self.session, query.get("code"), query.get("state"))
        except StateMismatch as e:
            return Response.error(400, str(e))
        except TokenExchangeError as e:
            return Response.error(500, str(e))
        return Response.redirect(self.default_map_url())

    def _aggregate(self, query: dict[str, str]) -> AggregationResult:
        after = parse_date(query.get("after"), "after")
        before = parse_date(query.get("before"), "before")
        client = ActivityClient(self.session.access_token, timeout=self.config.strava.timeout)
        return RouteAggregator(client, self.cache).aggregate(after, before)

    def _map(self, query: dict[str, str]) -> Response:
        try:
            result = self._aggregate(query)
        except InvalidDateError as e:
            return Response.error(400, str(e))
        except NotAuthenticatedError:
            return Response.redirect("/")
        return Response.html(render_map_page(result.routes, self.config.mapbox.token))

    def _routes_json(self, query: dict[str, str]) -> Response:
        try:
            result = self._aggregate(query)
        except InvalidDateError as e:
            return Response.json({"status": "error", "error": str(e)}, 400)
        except NotAuthenticatedError as e:
            return Response.json({"status": "error", "error": str(e)}, 401)
        return Response.json({"status": "success", **result.to_dict()})


class PlottedHTTPServer(http.server.ThreadingHTTPServer):
    """Threaded server that can rebind a port left in TIME_WAIT."""

    allow_reuse_address = True


class PlottedHandler(http.server.BaseHTTPRequestHandler):
    """HTTP request handler delegating to ``PlottedApp``."""

    app: PlottedApp  # Set by create_server()

    def do_GET(self) -> None:
        """Handle GET requests."""
        try:
            response = self.app.handle(self.path)
        except Exception:
            logger.exception("Unhandled error serving %s", self.path)
            response = Response.error(500, "Internal Server Error")

        self.send_response(response.status)
        for name, value in response.headers.items():
            self.send_header(name, value)
        self.send_header("Content-Length", str(len(response.body)))
        self.end_headers()
        self.wfile.write(response.body)

    def log_message(self, format: str, *args: object) -> None:
        """Route access logs to the plotted logger."""
        logger.debug("%s - %s", self.address_string(), format % args)


def create_server(app: PlottedApp, host: str, port: int) -> PlottedHTTPServer:
    """Bind an HTTP server for ``app``.

    Args:
        app: Application to serve.
        host: Server host.
        port: Server port (0 picks a free one).

    Returns:
        Bound, not yet serving, server.
    """
    handler = type("BoundPlottedHandler", (PlottedHandler,), {"app": app})
    return PlottedHTTPServer((host, port), handler)


def start_server(
    config: Config,
    host: str | None = None,
    port: int | None = None,
    open_browser: bool = True,
) -> None:
    """Start the plotted web server.

    Prints an authorization URL for the operator, then serves until
    interrupted.

    Args:
        config: Application configuration.
        host: Server host (default from config).
        port: Server port (default from config).
        open_browser: Open the landing page in a browser.
    """
    if host:
        config.server.host = host
    if port is not None:
        config.server.port = port
    host, port = config.server.host, config.server.port
    app = PlottedApp(config)

    with create_server(app, host, port) as httpd:
        url = f"http://{host}:{httpd.server_address[1]}/"
        print(f"Authorize at {app.authorization_url()}")
        print(f"plotted available at {url}")
        print("Press Ctrl+C to stop")

        if open_browser:
            webbrowser.open(url)

        try:
            httpd.serve_forever()
        except KeyboardInterrupt:
            print("\nServer stopped")
