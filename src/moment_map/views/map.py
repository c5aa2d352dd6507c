"""World map for moment-map.

Groups moments into one marker per unique city/country, derives the
initial viewport from the marker set, keeps per-marker popup carousels,
and renders the interactive Leaflet page.
"""

from __future__ import annotations

import base64
import html
import json
import logging
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Any, NamedTuple
from urllib.parse import urlparse

from moment_map.lib.geocode import get_coordinates
from moment_map.views.dock import render_dock_html

if TYPE_CHECKING:
    from collections.abc import Callable

    from moment_map.config import MapConfig
    from moment_map.models.moment import Moment
    from moment_map.views.interface import MapInterface

logger = logging.getLogger("moment_map.map")

DEFAULT_CENTER = (20.0, 0.0)
DEFAULT_ZOOM = 2
SINGLE_LOCATION_PADDING = 5.0
SINGLE_LOCATION_MIN_ZOOM = 8

# (max span in degrees, zoom) pairs, checked in order
ZOOM_BY_SPAN = (
    (1, 10),
    (5, 8),
    (10, 6),
    (20, 5),
    (40, 4),
    (80, 3),
)

VIDEO_EXTENSIONS = {".mp4", ".mov", ".webm", ".m4v", ".ogv", ".avi"}


@dataclass
class LocationData:
    """Moments sharing one city/country, shown as a single marker."""

    id: str
    city: str
    country: str
    lat: float
    lng: float
    moments: list[Moment] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "city": self.city,
            "country": self.country,
            "lat": self.lat,
            "lng": self.lng,
            "moment_ids": [m.id for m in self.moments],
            "icon": location_icon(self.moments).to_dict(),
        }


@dataclass(frozen=True)
class Bounds:
    """Axis-aligned lat/lng box."""

    south: float
    west: float
    north: float
    east: float

    @property
    def center(self) -> tuple[float, float]:
        return ((self.south + self.north) / 2, (self.west + self.east) / 2)

    @property
    def max_span(self) -> float:
        return max(self.north - self.south, self.east - self.west)

    def to_list(self) -> list[list[float]]:
        """Leaflet corner form: [[south, west], [north, east]]."""
        return [[self.south, self.west], [self.north, self.east]]


WORLD_BOUNDS = Bounds(-90.0, -180.0, 90.0, 180.0)


class MarkerIcon(NamedTuple):
    """Marker glyph chosen from a location's moment categories."""

    kind: str
    color: str
    svg: str

    @property
    def url(self) -> str:
        encoded = base64.b64encode(self.svg.encode("utf-8")).decode("ascii")
        return f"data:image/svg+xml;base64,{encoded}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "url": self.url,
            "size": [32, 32],
            "anchor": [16, 32],
            "popup_anchor": [0, -32],
        }


def _heart_icon(color: str = "#ef4444") -> MarkerIcon:
    svg = (
        '<svg width="32" height="32" viewBox="0 0 32 32" fill="none" xmlns="http://www.w3.org/2000/svg">'
        '<path d="M16 28C16 28 4 18 4 11C4 7.5 7 4.5 10.5 4.5C13 4.5 15 6 16 8C17 6 19 4.5 21.5 4.5'
        f'C25 4.5 28 7.5 28 11C28 18 16 28 16 28Z" fill="{color}" stroke="white" stroke-width="3"/>'
        "</svg>"
    )
    return MarkerIcon("heart", color, svg)


def _star_icon(color: str = "#f59e0b") -> MarkerIcon:
    svg = (
        '<svg width="32" height="32" viewBox="0 0 32 32" fill="none" xmlns="http://www.w3.org/2000/svg">'
        '<path d="M16 2L20.12 10.24L29.36 11.64L22.68 18.16L24.24 27.36L16 23L7.76 27.36L9.32 18.16'
        f'L2.64 11.64L11.88 10.24L16 2Z" fill="{color}" stroke="white" stroke-width="3"/>'
        "</svg>"
    )
    return MarkerIcon("star", color, svg)


def _circle_icon(color: str = "#3b82f6") -> MarkerIcon:
    svg = (
        '<svg width="32" height="32" viewBox="0 0 32 32" fill="none" xmlns="http://www.w3.org/2000/svg">'
        f'<circle cx="16" cy="16" r="12" fill="{color}" stroke="white" stroke-width="3"/>'
        '<circle cx="16" cy="16" r="7" fill="white" opacity="0.8"/>'
        "</svg>"
    )
    return MarkerIcon("circle", color, svg)


def location_icon(moments: list[Moment]) -> MarkerIcon:
    """Pick the marker glyph for a location.

    Priority: anniversary (heart) > favourite (star) > default (circle).

    Args:
        moments: Moments at the location.

    Returns:
        MarkerIcon to draw.
    """
    categories = {m.category for m in moments}
    if "anniversary" in categories:
        return _heart_icon()
    if "favourite" in categories:
        return _star_icon()
    return _circle_icon()


def media_kind(url: str) -> str:
    """Classify a media URL as "video" or "image" by its extension."""
    suffix = PurePosixPath(urlparse(url).path).suffix.lower()
    return "video" if suffix in VIDEO_EXTENSIONS else "image"


def group_locations(moments: list[Moment]) -> list[LocationData]:
    """Group moments into one LocationData per city/country.

    Groups keep first-seen order and each group keeps the moments' order.
    Moments without a location, or whose location is not in the lookup
    table, are left off the map.

    Args:
        moments: Moments in display order.

    Returns:
        Location groups.
    """
    groups: dict[str, LocationData] = {}

    for moment in moments:
        if not moment.has_location:
            continue

        key = moment.location_key
        existing = groups.get(key)
        if existing is not None:
            existing.moments.append(moment)
            continue

        city, country = moment.city or "", moment.country or ""
        coordinates = get_coordinates(city, country)
        if coordinates is None:
            logger.debug("No coordinates for %s, moment %s not mapped", key, moment.id)
            continue

        groups[key] = LocationData(
            id=key,
            city=city,
            country=country,
            lat=coordinates.lat,
            lng=coordinates.lng,
            moments=[moment],
        )

    return list(groups.values())


def compute_bounds(locations: list[LocationData]) -> Bounds | None:
    """Box enclosing every location.

    A single location gets a box padded by five degrees on each side.

    Args:
        locations: Location groups.

    Returns:
        Bounds, or None when there are no locations.
    """
    if not locations:
        return None
    if len(locations) == 1:
        loc = locations[0]
        pad = SINGLE_LOCATION_PADDING
        return Bounds(loc.lat - pad, loc.lng - pad, loc.lat + pad, loc.lng + pad)

    lats = [loc.lat for loc in locations]
    lngs = [loc.lng for loc in locations]
    return Bounds(min(lats), min(lngs), max(lats), max(lngs))


def compute_initial_view(
    bounds: Bounds | None,
    location_count: int,
) -> tuple[int, tuple[float, float]]:
    """Derive the starting zoom and center from the marker bounds.

    Args:
        bounds: Bounds from compute_bounds().
        location_count: Number of location groups.

    Returns:
        Tuple of (zoom, (lat, lng) center).
    """
    if bounds is None:
        return DEFAULT_ZOOM, DEFAULT_CENTER

    span = bounds.max_span
    zoom = DEFAULT_ZOOM
    for limit, span_zoom in ZOOM_BY_SPAN:
        if span < limit:
            zoom = span_zoom
            break

    if location_count == 1:
        zoom = max(zoom, SINGLE_LOCATION_MIN_ZOOM)

    return zoom, bounds.center


class LocationPopup:
    """Carousel over the moments of one marker.

    Every user-driven index change reports the newly shown moment through
    on_moment_select; show() moves the carousel silently.
    """

    def __init__(
        self,
        location: LocationData,
        on_moment_select: Callable[[Moment], Any] | None = None,
    ) -> None:
        self.location = location
        self.on_moment_select = on_moment_select
        self.index = 0

    @property
    def current_moment(self) -> Moment:
        return self.location.moments[self.index]

    @property
    def has_multiple(self) -> bool:
        return len(self.location.moments) > 1

    @property
    def can_navigate_prev(self) -> bool:
        return self.index > 0

    @property
    def can_navigate_next(self) -> bool:
        return self.index < len(self.location.moments) - 1

    def _emit(self) -> None:
        if self.on_moment_select is not None:
            self.on_moment_select(self.current_moment)

    def navigate(self, direction: str) -> bool:
        """Step the carousel.

        Args:
            direction: "prev" or "next".

        Returns:
            True if the shown moment changed.

        Raises:
            ValueError: If direction is not "prev" or "next".
        """
        if direction == "prev":
            new_index = self.index - 1 if self.can_navigate_prev else self.index
        elif direction == "next":
            new_index = self.index + 1 if self.can_navigate_next else self.index
        else:
            raise ValueError(f"Unknown direction: {direction!r}")

        if new_index == self.index:
            return False
        self.index = new_index
        self._emit()
        return True

    def select(self, index: int) -> None:
        """Jump to a moment via its dot.

        Raises:
            IndexError: If index is outside the carousel.
        """
        if not 0 <= index < len(self.location.moments):
            raise IndexError(f"Popup index {index} out of range")
        self.index = index
        self._emit()

    def show(self, moment: Moment) -> bool:
        """Display a moment without reporting it back.

        Returns:
            False if the moment is not at this location.
        """
        for index, candidate in enumerate(self.location.moments):
            if candidate.id == moment.id:
                self.index = index
                return True
        return False

    def reset(self) -> None:
        self.index = 0


class WorldMap:
    """Marker set plus viewport state (center, zoom, open popup)."""

    def __init__(
        self,
        moments: list[Moment],
        on_moment_select: Callable[[Moment], Any] | None = None,
        min_zoom: int = 4,
        max_zoom: int = 18,
    ) -> None:
        """Initialize the map.

        Args:
            moments: Moments to place.
            on_moment_select: Called when the user picks a moment on the map.
            min_zoom: Lowest allowed zoom.
            max_zoom: Highest allowed zoom.
        """
        self.on_moment_select = on_moment_select
        self.min_zoom = min_zoom
        self.max_zoom = max_zoom

        self._moments: list[Moment] | None = None
        self.locations: list[LocationData] = []
        self.popups: dict[str, LocationPopup] = {}
        self.bounds: Bounds | None = None
        self.initial_zoom = DEFAULT_ZOOM
        self.initial_center = DEFAULT_CENTER

        self.center = DEFAULT_CENTER
        self.zoom = self.clamp_zoom(DEFAULT_ZOOM)
        self.open_location_id: str | None = None

        self.set_moments(moments)

    def clamp_zoom(self, zoom: int) -> int:
        return max(self.min_zoom, min(self.max_zoom, zoom))

    def set_moments(self, moments: list[Moment]) -> bool:
        """Replace the moment list, regrouping only if it actually changed.

        Args:
            moments: New moment list.

        Returns:
            True if the location groups were recomputed.
        """
        # Field-wise dataclass equality, so an edited city regroups too
        if self._moments is not None and list(moments) == self._moments:
            return False
        self._moments = list(moments)

        self.locations = group_locations(moments)
        self.popups = {
            loc.id: LocationPopup(loc, self._emit_selection) for loc in self.locations
        }
        self.bounds = compute_bounds(self.locations)
        self.initial_zoom, self.initial_center = compute_initial_view(
            self.bounds, len(self.locations)
        )

        self.center = self.initial_center
        self.zoom = self.clamp_zoom(self.initial_zoom)
        self.open_location_id = None

        logger.debug(
            "Grouped %d moments into %d locations", len(moments), len(self.locations)
        )
        return True

    def _emit_selection(self, moment: Moment) -> None:
        if self.on_moment_select is not None:
            self.on_moment_select(moment)

    def find_location(self, moment: Moment) -> LocationData | None:
        """Location group containing the moment's city and country."""
        if not moment.has_location:
            return None
        for location in self.locations:
            if location.city == moment.city and location.country == moment.country:
                return location
        return None

    def sync_selection(self, moment: Moment) -> bool:
        """Center on a moment selected elsewhere and open its popup.

        Keeps the current zoom. The popup is opened programmatically, so
        no selection is reported back.

        Args:
            moment: Newly selected moment.

        Returns:
            True if the moment is on the map.
        """
        location = self.find_location(moment)
        if location is None:
            return False

        self.center = (location.lat, location.lng)
        self.open_location_id = location.id
        self.popups[location.id].show(moment)
        return True

    def open_popup(self, location_id: str) -> Moment:
        """Handle a click on a marker.

        The carousel restarts at the location's first moment, which becomes
        the selected moment.

        Args:
            location_id: Location group id.

        Returns:
            The moment now selected.

        Raises:
            KeyError: If there is no marker with that id.
        """
        popup = self.popups[location_id]
        self.open_location_id = location_id
        popup.reset()
        self._emit_selection(popup.current_moment)
        return popup.current_moment

    def close_popup(self) -> None:
        self.open_location_id = None

    @property
    def open_popup_state(self) -> LocationPopup | None:
        if self.open_location_id is None:
            return None
        return self.popups.get(self.open_location_id)

    def set_zoom(self, zoom: int) -> int:
        self.zoom = self.clamp_zoom(zoom)
        return self.zoom

    def to_state(self) -> dict[str, Any]:
        """Serialize markers and viewport for the page script.

        Returns:
            JSON-compatible dictionary.
        """
        return {
            "locations": [loc.to_dict() for loc in self.locations],
            "bounds": self.bounds.to_list() if self.bounds else None,
            "initial_zoom": self.initial_zoom,
            "initial_center": list(self.initial_center),
            "center": list(self.center),
            "zoom": self.zoom,
            "open_location_id": self.open_location_id,
            "popup_index": {loc_id: p.index for loc_id, p in self.popups.items()},
            "world_bounds": WORLD_BOUNDS.to_list(),
            "min_zoom": self.min_zoom,
            "max_zoom": self.max_zoom,
        }


def _script_json(data: Any) -> str:
    """JSON for embedding inside a <script> element."""
    return json.dumps(data, default=str).replace("</", "<\\/")


def render_map_html(interface: MapInterface, map_config: MapConfig) -> str:
    """Render the full-screen map page with the stats dock overlay.

    Args:
        interface: Map interface holding moments, selection and map state.
        map_config: Tile and zoom settings.

    Returns:
        HTML content.
    """
    state = interface.to_state()
    dock_html = render_dock_html(interface.dock())
    title = html.escape(interface.collection.name)
    tiles = {"url": map_config.tile_url, "attribution": map_config.attribution}

    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{title} - Travel Memories</title>
    <link rel="stylesheet" href="https://unpkg.com/leaflet@1.9.4/dist/leaflet.css">
    <style>
        body {{ margin: 0; padding: 0; font: 14px/1.4 -apple-system, "Segoe UI", Arial, sans-serif; }}
        #map {{ position: absolute; top: 0; bottom: 0; width: 100%; z-index: 0; }}
        .stats-dock {{
            position: absolute;
            bottom: 24px;
            left: 50%;
            transform: translateX(-50%);
            z-index: 1000;
            display: flex;
            align-items: center;
            background: rgba(255,255,255,0.9);
            border-radius: 16px;
            box-shadow: 0 10px 40px rgba(0,0,0,0.25);
        }}
        .dock-nav {{
            border: none;
            background: transparent;
            font-size: 28px;
            padding: 16px;
            cursor: pointer;
            color: #374151;
        }}
        .dock-nav:disabled {{ color: #d1d5db; cursor: not-allowed; }}
        .dock-content {{ padding: 12px 16px; text-align: center; }}
        .dock-collection {{ font-size: 20px; margin: 0 0 8px; color: #7c3aed; }}
        .dock-current h3 {{ margin: 0; font-size: 14px; }}
        .dock-current p {{ margin: 2px 0 8px; font-size: 12px; color: #4b5563; }}
        .dock-stats {{ display: flex; gap: 24px; justify-content: center; }}
        .dock-stat-value {{ font-size: 18px; font-weight: bold; }}
        .dock-stat-label {{ font-size: 12px; color: #4b5563; }}
        .moment-popup {{ width: 320px; }}
        .moment-popup h3 {{ margin: 0 0 8px; font-size: 16px; }}
        .moment-popup h4 {{ margin: 0 0 6px; font-size: 14px; }}
        .moment-popup img, .moment-popup video {{ max-width: 100%; border-radius: 4px; }}
        .moment-popup .moment-content {{ font-size: 12px; color: #4b5563; }}
        .moment-popup .moment-meta {{ font-size: 12px; color: #6b7280; display: flex; gap: 8px; align-items: center; }}
        .moment-popup .badge-completed {{ background: #dcfce7; color: #166534; border-radius: 999px; padding: 2px 8px; }}
        .popup-nav {{ display: flex; justify-content: center; align-items: center; gap: 4px; padding-top: 8px; }}
        .popup-nav button {{ border: none; background: transparent; cursor: pointer; }}
        .popup-nav button:disabled {{ color: #d1d5db; cursor: not-allowed; }}
        .popup-dot {{ width: 8px; height: 8px; border-radius: 50%; background: #d1d5db; padding: 0; }}
        .popup-dot.active {{ background: #2563eb; }}
    </style>
</head>
<body>
    <div id="map"></div>
    {dock_html}

    <script src="https://unpkg.com/leaflet@1.9.4/dist/leaflet.js"></script>
    <script>
        var STATE = {_script_json(state)};
        var TILES = {_script_json(tiles)};
        var VIDEO_EXTENSIONS = {_script_json(sorted(VIDEO_EXTENSIONS))};

        var moments = STATE.moments;
        var mapState = STATE.map;
        var locations = mapState.locations;
        var currentIndex = STATE.selected_index;
        var popupIndex = Object.assign({{}}, mapState.popup_index);
        var markers = {{}};
        // Set while the page opens a popup itself, so popupopen does not
        // report a selection back to the dock.
        var syncing = false;

        function esc(value) {{
            return String(value == null ? '' : value)
                .replace(/&/g, '&amp;').replace(/</g, '&lt;').replace(/>/g, '&gt;')
                .replace(/"/g, '&quot;').replace(/'/g, '&#39;');
        }}

        function momentById(id) {{
            for (var i = 0; i < moments.length; i++) {{
                if (moments[i].id === id) return i;
            }}
            return -1;
        }}

        function locationById(id) {{
            for (var i = 0; i < locations.length; i++) {{
                if (locations[i].id === id) return locations[i];
            }}
            return null;
        }}

        function mediaHtml(m) {{
            if (!m.media_url) return '';
            var path = m.media_url.split('?')[0].toLowerCase();
            var isVideo = VIDEO_EXTENSIONS.some(function (ext) {{ return path.endsWith(ext); }});
            if (isVideo) {{
                return '<video src="' + esc(m.media_url) + '" controls preload="metadata"></video>';
            }}
            return '<img src="' + esc(m.media_url) + '" alt="' + esc(m.title) + '" title="' + esc(m.title) + '">';
        }}

        function renderPopup(loc) {{
            var idx = popupIndex[loc.id] || 0;
            var m = moments[momentById(loc.moment_ids[idx])];
            var out = '<div class="moment-popup">';
            out += '<h3>&#128205; ' + esc(loc.city) + ', ' + esc(loc.country) + '</h3>';
            out += '<h4>' + esc(m.title) + '</h4>';
            out += mediaHtml(m);
            if (m.content) out += '<p class="moment-content">' + esc(m.content) + '</p>';
            out += '<div class="moment-meta">';
            if (m.media_url) out += '<span>&#128247;</span>';
            out += '<span>' + esc(new Date(m.started_at).toLocaleDateString()) + '</span>';
            if (m.completed_at) out += '<span class="badge-completed">Completed</span>';
            out += '</div>';
            if (loc.moment_ids.length > 1) {{
                out += '<div class="popup-nav">';
                out += '<button data-popup-action="prev" data-location="' + esc(loc.id) + '"' +
                    (idx > 0 ? '' : ' disabled') + '>&#8249;</button>';
                for (var i = 0; i < loc.moment_ids.length; i++) {{
                    out += '<button class="popup-dot' + (i === idx ? ' active' : '') +
                        '" data-popup-action="select" data-index="' + i +
                        '" data-location="' + esc(loc.id) + '"></button>';
                }}
                out += '<button data-popup-action="next" data-location="' + esc(loc.id) + '"' +
                    (idx < loc.moment_ids.length - 1 ? '' : ' disabled') + '>&#8250;</button>';
                out += '</div>';
            }}
            return out + '</div>';
        }}

        function renderDock() {{
            var m = moments[currentIndex];
            var current = document.getElementById('dock-current');
            if (m) {{
                current.hidden = false;
                document.getElementById('dock-current-title').textContent = m.title;
                document.getElementById('dock-current-position').textContent =
                    m.city + ', ' + m.country + ' \\u2022 ' + (currentIndex + 1) + ' of ' + moments.length;
            }} else {{
                current.hidden = true;
            }}
            document.getElementById('dock-prev').disabled = currentIndex <= 0;
            document.getElementById('dock-next').disabled = currentIndex >= moments.length - 1;
        }}

        // Selection reported by the map: update the dock only.
        function selectMoment(id) {{
            var idx = momentById(id);
            if (idx < 0) return;
            currentIndex = idx;
            renderDock();
        }}

        // Selection made in the dock: center the map and open the popup.
        function syncSelection() {{
            var m = moments[currentIndex];
            if (!m || !m.location_id) return;
            var loc = locationById(m.location_id);
            if (!loc) return;
            popupIndex[loc.id] = loc.moment_ids.indexOf(m.id);
            map.setView([loc.lat, loc.lng], map.getZoom(), {{ animate: false }});
            var marker = markers[loc.id];
            syncing = true;
            try {{
                if (marker.isPopupOpen()) {{
                    marker.setPopupContent(renderPopup(loc));
                }} else {{
                    marker.openPopup();
                }}
            }} finally {{
                syncing = false;
            }}
        }}

        function navigate(direction) {{
            var next = currentIndex;
            if (direction === 'prev' && currentIndex > 0) next -= 1;
            if (direction === 'next' && currentIndex < moments.length - 1) next += 1;
            if (next === currentIndex) return;
            currentIndex = next;
            renderDock();
            syncSelection();
        }}

        function setPopupIndex(loc, idx) {{
            if (idx < 0 || idx >= loc.moment_ids.length) return;
            popupIndex[loc.id] = idx;
            markers[loc.id].setPopupContent(renderPopup(loc));
            selectMoment(loc.moment_ids[idx]);
        }}

        var map = L.map('map', {{
            zoomControl: true,
            scrollWheelZoom: true,
            maxBounds: mapState.world_bounds,
            maxBoundsViscosity: 1.0,
            worldCopyJump: false,
            minZoom: mapState.min_zoom,
            maxZoom: mapState.max_zoom
        }});

        L.tileLayer(TILES.url, {{ attribution: TILES.attribution }}).addTo(map);

        if (mapState.bounds) {{
            map.fitBounds(mapState.bounds, {{ padding: [20, 20] }});
        }} else {{
            map.setView(mapState.initial_center, mapState.initial_zoom);
        }}

        locations.forEach(function (loc) {{
            var icon = L.icon({{
                iconUrl: loc.icon.url,
                iconSize: loc.icon.size,
                iconAnchor: loc.icon.anchor,
                popupAnchor: loc.icon.popup_anchor
            }});
            var marker = L.marker([loc.lat, loc.lng], {{ icon: icon }}).addTo(map);
            marker.bindPopup(function () {{ return renderPopup(loc); }}, {{
                maxWidth: 400,
                className: 'custom-popup'
            }});
            marker.on('popupopen', function () {{
                if (syncing) return;
                popupIndex[loc.id] = 0;
                marker.setPopupContent(renderPopup(loc));
                selectMoment(loc.moment_ids[0]);
            }});
            markers[loc.id] = marker;
        }});

        document.addEventListener('click', function (event) {{
            var dockButton = event.target.closest('[data-dock-action]');
            if (dockButton) {{
                navigate(dockButton.getAttribute('data-dock-action'));
                return;
            }}
            var popupButton = event.target.closest('[data-popup-action]');
            if (!popupButton) return;
            var loc = locationById(popupButton.getAttribute('data-location'));
            if (!loc) return;
            var action = popupButton.getAttribute('data-popup-action');
            var idx = popupIndex[loc.id] || 0;
            if (action === 'prev') setPopupIndex(loc, idx - 1);
            else if (action === 'next') setPopupIndex(loc, idx + 1);
            else if (action === 'select') setPopupIndex(loc, parseInt(popupButton.getAttribute('data-index'), 10));
        }});

        renderDock();
        syncSelection();
    </script>
</body>
</html>"""
