"""Stats dock for moment-map.

The dock is purely presentational: everything it shows comes from the map
interface. It renders as an HTML overlay on the map page and as plain text
for the CLI.
"""

from __future__ import annotations

import html
from dataclasses import dataclass

from moment_map.models.moment import Moment


@dataclass(frozen=True)
class QuickStat:
    """One number in the dock's stats row."""

    key: str
    label: str
    value: int
    color: str


@dataclass
class StatsDock:
    """View-model for the navigation and summary dock."""

    collection_name: str
    total_countries: int
    total_cities: int
    total_photos: int
    total_moments: int
    current_moment: Moment | None
    current_index: int
    can_navigate_prev: bool
    can_navigate_next: bool

    @property
    def quick_stats(self) -> list[QuickStat]:
        return [
            QuickStat("countries", "Countries", self.total_countries, "#2563eb"),
            QuickStat("cities", "Cities", self.total_cities, "#16a34a"),
            QuickStat("photos", "Photos", self.total_photos, "#9333ea"),
            QuickStat("moments", "Memories", self.total_moments, "#dc2626"),
        ]

    @property
    def position_label(self) -> str | None:
        """Location and position of the current moment, e.g. "Paris, France • 2 of 5"."""
        if self.current_moment is None:
            return None
        moment = self.current_moment
        return (
            f"{moment.city}, {moment.country} • "
            f"{self.current_index + 1} of {self.total_moments}"
        )


def render_dock_html(dock: StatsDock) -> str:
    """Render the dock as an HTML fragment.

    Element ids are stable so the page script can update the dock in place
    when the selection changes.

    Args:
        dock: Dock view-model.

    Returns:
        HTML fragment.
    """
    prev_disabled = "" if dock.can_navigate_prev else " disabled"
    next_disabled = "" if dock.can_navigate_next else " disabled"

    title = html.escape(dock.current_moment.title) if dock.current_moment else ""
    position = html.escape(dock.position_label or "")
    hidden = "" if dock.current_moment else " hidden"

    stats_html = "\n".join(
        f'''            <div class="dock-stat" data-stat="{stat.key}">
                <div class="dock-stat-value" style="color: {stat.color}">{stat.value}</div>
                <div class="dock-stat-label">{stat.label}</div>
            </div>'''
        for stat in dock.quick_stats
    )

    return f'''<div id="stats-dock" class="stats-dock">
        <button id="dock-prev" class="dock-nav dock-nav-prev" data-dock-action="prev" aria-label="Previous moment"{prev_disabled}>&#8249;</button>
        <div class="dock-content">
            <h1 class="dock-collection">{html.escape(dock.collection_name)}</h1>
            <div id="dock-current" class="dock-current"{hidden}>
                <h3 id="dock-current-title">{title}</h3>
                <p id="dock-current-position">{position}</p>
            </div>
            <div class="dock-stats">
{stats_html}
            </div>
        </div>
        <button id="dock-next" class="dock-nav dock-nav-next" data-dock-action="next" aria-label="Next moment"{next_disabled}>&#8250;</button>
    </div>'''


def format_dock_text(dock: StatsDock) -> str:
    """Format the dock as plain text for terminal output.

    Args:
        dock: Dock view-model.

    Returns:
        Multi-line summary.
    """
    lines = [dock.collection_name, "=" * len(dock.collection_name)]

    if dock.current_moment is not None:
        lines.append(f"Current: {dock.current_moment.title}")
        lines.append(f"         {dock.position_label}")

    lines.append("")
    for stat in dock.quick_stats:
        lines.append(f"{stat.label + ':':<12}{stat.value:>6}")

    return "\n".join(lines)
