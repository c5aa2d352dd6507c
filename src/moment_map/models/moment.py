"""Collection, user and moment models.

Rows come from the hosted backend as JSON objects; these dataclasses are
the in-memory form used by the map and dock views.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from dateutil.parser import isoparse


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO 8601 timestamp as returned by PostgREST.

    Accepts fractional seconds of any length ("10:00:00.12+00:00"), as
    PostgREST trims trailing zeros.

    Args:
        value: Timestamp string, datetime, or None.

    Returns:
        Parsed datetime, or None if value is empty.

    Raises:
        ValueError: If value is a string that is not ISO 8601.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return isoparse(str(value))


def _split_extra(data: dict[str, Any], known: set[str]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if k not in known}


@dataclass
class Collection:
    """A named group of moments belonging to one user."""

    id: str
    name: str
    user_id: str
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Collection:
        """Create a Collection from a backend row.

        Args:
            data: Row dictionary.

        Returns:
            Collection instance.

        Raises:
            KeyError: If id or user_id is missing.
        """
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "Untitled collection",
            user_id=str(data["user_id"]),
            extra=_split_extra(data, {"id", "name", "user_id"}),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert collection to dictionary for JSON serialization."""
        return {**self.extra, "id": self.id, "name": self.name, "user_id": self.user_id}


@dataclass
class User:
    """Owner of a collection."""

    id: str
    username: str | None = None
    display_name: str | None = None
    avatar_url: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> User:
        """Create a User from a backend row."""
        return cls(
            id=str(data["id"]),
            username=data.get("username"),
            display_name=data.get("display_name") or data.get("full_name"),
            avatar_url=data.get("avatar_url"),
            extra=_split_extra(
                data, {"id", "username", "display_name", "full_name", "avatar_url"}
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert user to dictionary for JSON serialization."""
        return {
            **self.extra,
            "id": self.id,
            "username": self.username,
            "display_name": self.display_name,
            "avatar_url": self.avatar_url,
        }


@dataclass
class Moment:
    """A single geotagged memory entry."""

    id: str
    collection_id: str
    title: str
    started_at: datetime
    content: str | None = None
    media_url: str | None = None
    city: str | None = None
    country: str | None = None
    category: str | None = None
    completed_at: datetime | None = None

    @property
    def has_location(self) -> bool:
        """Whether both city and country are set."""
        return bool(self.city) and bool(self.country)

    @property
    def location_key(self) -> str:
        """Grouping key shared by every moment at the same place."""
        return f"{self.city}, {self.country}"

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Moment:
        """Create a Moment from a backend row.

        Args:
            data: Row dictionary.

        Returns:
            Moment instance.

        Raises:
            KeyError: If a required column is missing.
            ValueError: If started_at is missing or not a valid timestamp.
        """
        started_at = parse_timestamp(data.get("started_at"))
        if started_at is None:
            raise ValueError(f"Moment {data.get('id')} has no started_at")

        return cls(
            id=str(data["id"]),
            collection_id=str(data["collection_id"]),
            title=data.get("title") or "Untitled",
            started_at=started_at,
            content=data.get("content"),
            media_url=data.get("media_url"),
            city=data.get("city"),
            country=data.get("country"),
            category=data.get("category"),
            completed_at=parse_timestamp(data.get("completed_at")),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert moment to dictionary for JSON serialization.

        Returns:
            Dictionary representation.
        """
        return {
            "id": self.id,
            "collection_id": self.collection_id,
            "title": self.title,
            "content": self.content,
            "media_url": self.media_url,
            "city": self.city,
            "country": self.country,
            "category": self.category,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


def filter_located(moments: list[Moment]) -> list[Moment]:
    """Keep only moments that can be shown on the map.

    Args:
        moments: Moments in display order.

    Returns:
        Moments with both city and country set, order preserved.
    """
    return [m for m in moments if m.has_location]
