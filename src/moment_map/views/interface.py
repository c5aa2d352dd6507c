"""Map interface: selected-moment state and aggregate statistics.

Owns the index of the currently selected moment. Dock navigation moves the
index and pushes the new moment down to the world map; selections coming
up from the map only update the index, so a change never travels back to
where it started.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any

from moment_map.views.dock import StatsDock
from moment_map.views.map import WorldMap

if TYPE_CHECKING:
    from moment_map.models.moment import Collection, Moment, User

logger = logging.getLogger("moment_map.interface")

DIRECTIONS = ("prev", "next")


@dataclass(frozen=True)
class MomentStats:
    """Aggregate counts over a list of moments."""

    total_countries: int
    total_cities: int
    total_photos: int
    total_moments: int
    completed_moments: int

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def compute_stats(moments: list[Moment]) -> MomentStats:
    """Count distinct places, photos and completed moments.

    Args:
        moments: Moments to summarize.

    Returns:
        MomentStats for the list.
    """
    countries: set[str] = set()
    cities: set[str] = set()
    total_photos = 0
    completed = 0

    for moment in moments:
        if moment.country:
            countries.add(moment.country)
        if moment.city:
            cities.add(moment.city)
        if moment.media_url:
            total_photos += 1
        if moment.completed_at:
            completed += 1

    return MomentStats(
        total_countries=len(countries),
        total_cities=len(cities),
        total_photos=total_photos,
        total_moments=len(moments),
        completed_moments=completed,
    )


class MapInterface:
    """Selection state shared by the world map and the stats dock."""

    def __init__(
        self,
        moments: list[Moment],
        collection: Collection,
        user: User | None = None,
        world_map: WorldMap | None = None,
    ) -> None:
        """Initialize the interface.

        Args:
            moments: Located moments in display order.
            collection: Collection being shown.
            user: Owner of the collection, if it could be fetched.
            world_map: Map to drive; one is created when omitted.
        """
        self.moments = list(moments)
        self.collection = collection
        self.user = user
        self.stats = compute_stats(self.moments)

        self.current_index = 0
        self.selected_moment: Moment | None = self.moments[0] if self.moments else None

        if world_map is None:
            world_map = WorldMap(self.moments)
        self.world_map = world_map
        self.world_map.on_moment_select = self.select_moment
        if self.selected_moment is not None:
            self.world_map.sync_selection(self.selected_moment)

    @property
    def can_navigate_prev(self) -> bool:
        return self.current_index > 0

    @property
    def can_navigate_next(self) -> bool:
        return self.current_index < len(self.moments) - 1

    def navigate(self, direction: str) -> bool:
        """Move the selection one step and center the map on it.

        Args:
            direction: "prev" or "next".

        Returns:
            True if the selection changed, False at either end of the list.

        Raises:
            ValueError: If direction is not "prev" or "next".
        """
        if direction not in DIRECTIONS:
            raise ValueError(f"Unknown direction: {direction!r}")
        if not self.moments:
            return False

        new_index = self.current_index
        if direction == "prev" and self.can_navigate_prev:
            new_index -= 1
        elif direction == "next" and self.can_navigate_next:
            new_index += 1

        if new_index == self.current_index:
            return False

        self.current_index = new_index
        self.selected_moment = self.moments[new_index]
        logger.debug("Navigated %s to moment %s", direction, self.selected_moment.id)
        self.world_map.sync_selection(self.selected_moment)
        return True

    def select_moment(self, moment: Moment) -> bool:
        """Adopt a selection made on the map.

        Args:
            moment: Moment chosen from a marker popup.

        Returns:
            True if the moment belongs to this interface and was selected.
        """
        for index, candidate in enumerate(self.moments):
            if candidate.id == moment.id:
                self.current_index = index
                self.selected_moment = candidate
                return True
        logger.debug("Ignoring selection of unknown moment %s", moment.id)
        return False

    def dock(self) -> StatsDock:
        """Build the dock view-model for the current selection."""
        return StatsDock(
            collection_name=self.collection.name,
            total_countries=self.stats.total_countries,
            total_cities=self.stats.total_cities,
            total_photos=self.stats.total_photos,
            total_moments=self.stats.total_moments,
            current_moment=self.selected_moment,
            current_index=self.current_index,
            can_navigate_prev=self.can_navigate_prev,
            can_navigate_next=self.can_navigate_next,
        )

    def to_state(self) -> dict[str, Any]:
        """Serialize the interface for the page script and the JSON API.

        Returns:
            JSON-compatible dictionary.
        """
        location_ids = {
            moment.id: location.id
            for location in self.world_map.locations
            for moment in location.moments
        }
        return {
            "collection": self.collection.to_dict(),
            "user": self.user.to_dict() if self.user else None,
            "stats": self.stats.to_dict(),
            "selected_index": self.current_index,
            "moments": [
                {**moment.to_dict(), "location_id": location_ids.get(moment.id)}
                for moment in self.moments
            ],
            "map": self.world_map.to_state(),
        }
