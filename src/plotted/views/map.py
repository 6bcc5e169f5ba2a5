"""Map visualization for plotted.

Generates the landing page and the interactive Leaflet route map as HTML
strings.
"""

from __future__ import annotations

import html
import json
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from plotted.models.activity import DecodedRoute

MAPBOX_TILE_URL = (
    "https://api.mapbox.com/styles/v1/mapbox/outdoors-v12/tiles/{z}/{x}/{y}"
    "?access_token={accessToken}"
)
OSM_TILE_URL = "https://tile.openstreetmap.org/{z}/{x}/{y}.png"
ROUTE_COLOR = "#FC4C02"


def _map_view(routes: list[DecodedRoute]) -> tuple[list[float], int]:
    """Compute initial center and zoom from route bounds.

    Args:
        routes: Decoded routes.

    Returns:
        Tuple of ``[lat, lng]`` center and zoom level.
    """
    all_coords = [c for route in routes for c in route.coords]
    if not all_coords:
        return [0.0, 0.0], 2

    lats = [c[0] for c in all_coords]
    lngs = [c[1] for c in all_coords]
    center = [(min(lats) + max(lats)) / 2, (min(lngs) + max(lngs)) / 2]

    # Rough zoom calculation based on bounds
    span = max(max(lats) - min(lats), max(lngs) - min(lngs))
    if span < 0.01:
        zoom = 15
    elif span < 0.1:
        zoom = 12
    elif span < 1:
        zoom = 10
    elif span < 10:
        zoom = 7
    else:
        zoom = 4
    return center, zoom


def _tile_layer_js(mapbox_token: str) -> str:
    """JavaScript adding the base tile layer to ``map``."""
    if mapbox_token:
        return f"""L.tileLayer({json.dumps(MAPBOX_TILE_URL)}, {{
            maxZoom: 18,
            tileSize: 512,
            zoomOffset: -1,
            accessToken: {json.dumps(mapbox_token)},
            attribution: '&copy; <a href="https://www.mapbox.com/about/maps/">Mapbox</a> &copy; <a href="https://www.openstreetmap.org/copyright">OpenStreetMap</a>'
        }}).addTo(map);"""
    return f"""L.tileLayer({json.dumps(OSM_TILE_URL)}, {{
            maxZoom: 19,
            attribution: '&copy; <a href="https://www.openstreetmap.org/copyright">OpenStreetMap</a> contributors'
        }}).addTo(map);"""


def render_map_page(routes: list[DecodedRoute], mapbox_token: str = "") -> str:
    """Render the route map page.

    Args:
        routes: Decoded routes to draw, in listing order.
        mapbox_token: Mapbox access token; OpenStreetMap tiles are used
            when empty.

    Returns:
        HTML content.
    """
    center, zoom = _map_view(routes)
    routes_json = json.dumps([[list(c) for c in route.coords] for route in routes])
    # Keep "</script>" sequences out of the inline script
    routes_json = routes_json.replace("</", "<\\/")

    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>plotted</title>
    <link rel="stylesheet" href="https://unpkg.com/leaflet@1.9.4/dist/leaflet.css">
    <style>
        body {{ margin: 0; padding: 0; }}
        #map {{ position: absolute; top: 0; bottom: 0; width: 100%; }}
        .info {{
            padding: 6px 8px;
            font: 14px/16px Arial, Helvetica, sans-serif;
            background: rgba(255,255,255,0.9);
            box-shadow: 0 0 15px rgba(0,0,0,0.2);
            border-radius: 5px;
        }}
    </style>
</head>
<body>
    <div id="map"></div>
    <script src="https://unpkg.com/leaflet@1.9.4/dist/leaflet.js"></script>
    <script>
        var map = L.map('map', {{
            preferCanvas: true
        }}).setView({json.dumps(center)}, {zoom});

        {_tile_layer_js(mapbox_token)}

        var routes = {routes_json};
        var bounds = L.latLngBounds([]);

        routes.forEach(function(coords) {{
            var line = L.polyline(coords, {{
                color: '{ROUTE_COLOR}',
                weight: 2,
                opacity: 0.6
            }}).addTo(map);
            bounds.extend(line.getBounds());
        }});

        if (routes.length > 0) {{
            map.fitBounds(bounds, {{ padding: [20, 20] }});
        }}

        var info = L.control({{position: 'topright'}});
        info.onAdd = function(map) {{
            var div = L.DomUtil.create('div', 'info');
            div.innerHTML = '<b>Activities</b><br>' + routes.length + ' routes';
            return div;
        }};
        info.addTo(map);
    </script>
</body>
</html>"""


def render_landing_page(auth_url: str) -> str:
    """Render the landing page with the Strava authorization link.

    Args:
        auth_url: Authorization URL carrying the current nonce.

    Returns:
        HTML content.
    """
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>plotted</title>
    <style>
        body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
               margin: 0; padding: 40px; text-align: center; }}
        h1 {{ color: #fc4c02; }}
        a.connect {{ display: inline-block; padding: 12px 24px; background: #fc4c02;
                    color: #fff; text-decoration: none; border-radius: 4px; }}
    </style>
</head>
<body>
    <h1>plotted</h1>
    <p>Draw every route you have recorded on one map.</p>
    <a class="connect" href="{html.escape(auth_url, quote=True)}">Connect with Strava</a>
</body>
</html>"""


def render_error_page(status: int, message: str) -> str:
    """Render a minimal error page."""
    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{status}</title></head>
<body>
    <h1>{status}</h1>
    <p>{html.escape(message)}</p>
    <p><a href="/">Back</a></p>
</body>
</html>"""
