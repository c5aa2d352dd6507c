"""Collection page composition.

Resolves a collection id to its page: the collection, its owner and its
moments are fetched, moments without a location are dropped, and the page
is either the empty state or the interactive map.
"""

from __future__ import annotations

import html
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from moment_map.models.moment import filter_located
from moment_map.views.interface import MapInterface
from moment_map.views.map import WorldMap, render_map_html

if TYPE_CHECKING:
    from moment_map.config import MapConfig
    from moment_map.models.moment import Collection, Moment, User
    from moment_map.services.supabase import SupabaseClient

logger = logging.getLogger("moment_map.page")


class CollectionNotFoundError(LookupError):
    """Raised when a collection id does not resolve to a collection."""

    def __init__(self, collection_id: str) -> None:
        super().__init__(f"Collection not found: {collection_id}")
        self.collection_id = collection_id


@dataclass
class CollectionPage:
    """Everything needed to render one collection."""

    collection: Collection
    user: User | None
    moments: list[Moment] = field(default_factory=list)
    total_fetched: int = 0

    @property
    def view(self) -> str:
        """"map" when any moment has a location, otherwise "empty"."""
        return "map" if self.moments else "empty"

    def build_interface(self, map_config: MapConfig | None = None) -> MapInterface:
        """Create the map interface for this page's moments."""
        world_map = None
        if map_config is not None:
            world_map = WorldMap(
                self.moments,
                min_zoom=map_config.min_zoom,
                max_zoom=map_config.max_zoom,
            )
        return MapInterface(self.moments, self.collection, self.user, world_map=world_map)

    def to_dict(self) -> dict[str, Any]:
        return {
            "view": self.view,
            "collection": self.collection.to_dict(),
            "user": self.user.to_dict() if self.user else None,
            "moments_fetched": self.total_fetched,
            "moments_located": len(self.moments),
        }


def load_collection_page(client: SupabaseClient, collection_id: str) -> CollectionPage:
    """Fetch and filter everything a collection page shows.

    Args:
        client: Backend client.
        collection_id: Collection to load.

    Returns:
        CollectionPage with located moments only.

    Raises:
        CollectionNotFoundError: If the collection cannot be fetched.
    """
    collection = client.get_collection(collection_id)
    if collection is None:
        raise CollectionNotFoundError(collection_id)

    # The owner and the moments do not depend on each other
    with ThreadPoolExecutor(max_workers=2) as executor:
        user_future = executor.submit(client.get_user, collection.user_id)
        moments_future = executor.submit(client.get_moments, collection.id)
        user = user_future.result()
        moments = moments_future.result()

    located = filter_located(moments)
    logger.info(
        "Collection %s: %d moments, %d with locations",
        collection.id,
        len(moments),
        len(located),
    )

    return CollectionPage(
        collection=collection,
        user=user,
        moments=located,
        total_fetched=len(moments),
    )


def render_empty_state(collection: Collection) -> str:
    """Render the page shown when no moment has a location.

    Args:
        collection: Collection being shown.

    Returns:
        HTML content.
    """
    name = html.escape(collection.name)
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{name} - Travel Memories</title>
    <style>
        body {{
            margin: 0;
            min-height: 100vh;
            font: 16px/1.5 -apple-system, "Segoe UI", Arial, sans-serif;
            background: linear-gradient(135deg, #eff6ff, #ffffff, #faf5ff);
        }}
        .container {{ max-width: 640px; margin: 0 auto; padding: 64px 16px; text-align: center; }}
        .card {{ background: white; border-radius: 8px; box-shadow: 0 10px 30px rgba(0,0,0,0.1); padding: 48px; }}
        .globe {{ font-size: 64px; color: #9ca3af; }}
        .card p {{ color: #4b5563; margin-bottom: 32px; }}
        .home-link {{
            display: inline-block;
            background: #2563eb;
            color: white;
            padding: 12px 24px;
            border-radius: 8px;
            text-decoration: none;
        }}
        .home-link:hover {{ background: #1d4ed8; }}
    </style>
</head>
<body>
    <div class="container">
        <h1>{name}</h1>
        <div class="card">
            <div class="globe">&#127760;</div>
            <h2>No Locations Found</h2>
            <p>This collection doesn&apos;t have any moments with location data yet.
            Add some cities and countries to your moments to see them on the world map!</p>
            <a class="home-link" href="/">&#8592; Back to Home</a>
        </div>
    </div>
</body>
</html>"""


def render_page(page: CollectionPage, map_config: MapConfig) -> str:
    """Render a collection page as HTML.

    Args:
        page: Loaded collection page.
        map_config: Tile and zoom settings.

    Returns:
        HTML content.
    """
    if page.view == "empty":
        return render_empty_state(page.collection)
    return render_map_html(page.build_interface(map_config), map_config)


def generate_static_params(client: SupabaseClient) -> list[dict[str, str]]:
    """List the route parameters of every collection page.

    Args:
        client: Backend client.

    Returns:
        One {"collection_id": id} per collection; empty on fetch error.
    """
    return [{"collection_id": cid} for cid in client.list_collection_ids()]


def render_index(collection_ids: list[str]) -> str:
    """Render the home page linking to every collection.

    Args:
        collection_ids: Collection ids to list.

    Returns:
        HTML content.
    """
    if collection_ids:
        items = "\n".join(
            f'            <li><a href="/{html.escape(cid, quote=True)}/">{html.escape(cid)}</a></li>'
            for cid in collection_ids
        )
        listing = f"<ul>\n{items}\n        </ul>"
    else:
        listing = "<p>No collections yet.</p>"

    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Travel Memories</title>
    <style>
        body {{ margin: 0; font: 16px/1.5 -apple-system, "Segoe UI", Arial, sans-serif; }}
        .container {{ max-width: 640px; margin: 0 auto; padding: 64px 16px; }}
        li {{ margin: 4px 0; }}
    </style>
</head>
<body>
    <div class="container">
        <h1>Travel Memories</h1>
        {listing}
    </div>
</body>
</html>"""
