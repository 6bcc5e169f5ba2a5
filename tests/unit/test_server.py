"""Unit tests for the plotted web server."""

from __future__ import annotations

import http.client
import http.server
import json
import threading
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, urlparse

import pytest
import responses

from plotted.config import Config
from plotted.models.session import Session
from plotted.services.strava import API_BASE_URL, OAuthCoordinator
from plotted.views.server import PlottedApp, PlottedHTTPServer, create_server

SINGLE_POINT = "_p~iF~ps|U"


class StubStravalibClient:
    """Stand-in for stravalib.Client used by the OAuth coordinator."""

    exchanged: list[str] = []

    def authorization_url(self, **kwargs: Any) -> str:
        return f"https://www.strava.com/oauth/authorize?state={kwargs['state']}"

    def exchange_code_for_token(self, **kwargs: Any) -> dict[str, Any]:
        if kwargs["code"] == "bad":
            raise RuntimeError("invalid code")
        StubStravalibClient.exchanged.append(kwargs["code"])
        return {"access_token": "new-token"}


@pytest.fixture
def config(temp_data_dir: Path) -> Config:
    config = Config()
    config.data.directory = temp_data_dir
    config.mapbox.token = "pk.test"
    return config


@pytest.fixture
def app(config: Config) -> PlottedApp:
    StubStravalibClient.exchanged = []
    oauth = OAuthCoordinator(
        "12345", "secret", "http://localhost:8888/auth_callback", StubStravalibClient
    )
    return PlottedApp(config, session=Session(), oauth=oauth)


def _state_from(body: bytes) -> str:
    text = body.decode()
    start = text.index("state=") + len("state=")
    end = text.index('"', start)
    return text[start:end]


class TestLanding:
    """Tests for GET /."""

    def test_landing_embeds_authorization_url(self, app: PlottedApp) -> None:
        """Verify the landing page links to Strava with the pending nonce."""
        response = app.handle("/")

        assert response.status == 200
        assert b"https://www.strava.com/oauth/authorize" in response.body
        assert _state_from(response.body) == app.session.pending_state

    def test_each_visit_issues_new_nonce(self, app: PlottedApp) -> None:
        """Verify the nonce is regenerated per authorization attempt."""
        first = _state_from(app.handle("/").body)
        second = _state_from(app.handle("/").body)

        assert first != second

    def test_unknown_path_is_404(self, app: PlottedApp) -> None:
        assert app.handle("/nope").status == 404


class TestAuthCallback:
    """Tests for GET /auth_callback."""

    def test_state_mismatch_is_400(self, app: PlottedApp) -> None:
        """Verify a wrong state yields an error and no token exchange."""
        app.handle("/")

        response = app.handle("/auth_callback?code=abc&state=wrong")

        assert response.status == 400
        assert b"state verification failed" in response.body
        assert StubStravalibClient.exchanged == []
        assert app.session.access_token is None

    def test_exchange_failure_is_500(self, app: PlottedApp) -> None:
        state = _state_from(app.handle("/").body)

        response = app.handle(f"/auth_callback?code=bad&state={state}")

        assert response.status == 500
        assert app.session.access_token is None

    def test_success_redirects_to_default_map(self, app: PlottedApp) -> None:
        """Verify a good callback stores the token and redirects to /map."""
        state = _state_from(app.handle("/").body)

        response = app.handle(f"/auth_callback?code=abc&state={state}")

        assert response.status == 302
        location = urlparse(response.headers["Location"])
        assert location.path == "/map"
        assert parse_qs(location.query) == {"after": ["30/01/2018"], "before": ["30/09/2019"]}
        assert app.session.access_token == "new-token"


class TestMap:
    """Tests for GET /map and /api/routes."""

    def test_map_without_token_redirects_home(self, app: PlottedApp) -> None:
        response = app.handle("/map?after=01/01/2019&before=31/01/2019")

        assert response.status == 302
        assert response.headers["Location"] == "/"

    @pytest.mark.parametrize(
        "query",
        ["after=2019-01-01&before=31/01/2019", "after=01/01/2019", "before=31/01/2019"],
    )
    def test_invalid_date_is_400(self, app: PlottedApp, query: str) -> None:
        """Verify malformed or missing dates are rejected."""
        app.session.access_token = "tok"

        assert app.handle(f"/map?{query}").status == 400

    @responses.activate
    def test_map_renders_routes(self, app: PlottedApp) -> None:
        """Verify the map page embeds decoded routes and the tile token."""
        app.session.access_token = "tok"
        responses.add(responses.GET, f"{API_BASE_URL}/athlete/activities", json=[{"id": 7}])
        responses.add(responses.GET, f"{API_BASE_URL}/athlete/activities", json=[])
        responses.add(
            responses.GET,
            f"{API_BASE_URL}/activities/7",
            json={"id": 7, "map": {"polyline": SINGLE_POINT}},
        )

        response = app.handle("/map?after=01/01/2019&before=31/01/2019")

        assert response.status == 200
        assert response.headers["Content-Type"].startswith("text/html")
        assert b"[[[38.5, -120.2]]]" in response.body
        assert b"pk.test" in response.body
        assert app.cache.exists(7)

    @responses.activate
    def test_routes_json(self, app: PlottedApp) -> None:
        """Verify the JSON endpoint reports routes and counters."""
        app.session.access_token = "tok"
        app.cache.write(7, SINGLE_POINT.encode())
        responses.add(responses.GET, f"{API_BASE_URL}/athlete/activities", json=[{"id": 7}])
        responses.add(responses.GET, f"{API_BASE_URL}/athlete/activities", json=[])

        response = app.handle("/api/routes?after=01/01/2019&before=31/01/2019")

        data = json.loads(response.body)
        assert response.status == 200
        assert data["status"] == "success"
        assert data["routes"] == [{"activity_id": 7, "coords": [[38.5, -120.2]]}]
        assert data["cache_hits"] == 1

    def test_routes_json_requires_token(self, app: PlottedApp) -> None:
        response = app.handle("/api/routes?after=01/01/2019&before=31/01/2019")

        assert response.status == 401


class TestHttpServer:
    """Tests for the http.server adapter."""

    def test_serves_landing_page_over_http(self, app: PlottedApp) -> None:
        """Verify a real socket round-trip through PlottedHandler."""
        server = create_server(app, "127.0.0.1", 0)
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        try:
            conn = http.client.HTTPConnection("127.0.0.1", server.server_address[1], timeout=5)
            conn.request("GET", "/")
            response = conn.getresponse()
            body = response.read()
            conn.close()
        finally:
            server.shutdown()
            server.server_close()

        assert response.status == 200
        assert b"Connect with Strava" in body
        assert app.session.pending_state is not None

    def test_port_reuse_is_local_to_plotted_server(self, app: PlottedApp) -> None:
        """Verify create_server leaves the stdlib server class untouched."""
        server = create_server(app, "127.0.0.1", 0)
        server.server_close()

        assert isinstance(server, PlottedHTTPServer)
        assert server.allow_reuse_address
        assert "allow_reuse_address" not in http.server.ThreadingHTTPServer.__dict__
