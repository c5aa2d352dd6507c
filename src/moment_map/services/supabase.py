"""Read-only client for the hosted Supabase (PostgREST) backend.

Issues the three queries the map needs (collection by id, user by id,
moments by collection ordered by start time) plus the id listing used for
static export. Fetch errors are logged and mapped to None or an empty list.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import requests

from moment_map.models.moment import Collection, Moment, User

if TYPE_CHECKING:
    from collections.abc import Callable

    from moment_map.config import Config

logger = logging.getLogger("moment_map.supabase")

REST_PREFIX = "/rest/v1"
SINGLE_OBJECT_MEDIA_TYPE = "application/vnd.pgrst.object+json"


class SupabaseClient:
    """Thin wrapper over the PostgREST HTTP interface."""

    def __init__(
        self,
        url: str,
        key: str,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            url: Project URL, e.g. https://xyz.supabase.co.
            key: Anonymous (public) API key.
            timeout: Per-request timeout in seconds.
            session: Optional pre-configured requests session.

        Raises:
            ValueError: If url or key is empty.
        """
        if not url:
            raise ValueError("Supabase URL is required")
        if not key:
            raise ValueError("Supabase key is required")

        self.url = url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "apikey": key,
                "Authorization": f"Bearer {key}",
                "Accept": "application/json",
            }
        )

    @classmethod
    def from_config(cls, config: Config) -> SupabaseClient:
        """Create a client from application configuration."""
        return cls(config.supabase.url, config.supabase.key, timeout=config.supabase.timeout)

    def _get(
        self,
        table: str,
        params: dict[str, str],
        single: bool = False,
    ) -> Any:
        """Run a select against a table.

        Args:
            table: Table name.
            params: PostgREST query parameters.
            single: Request exactly one row as a JSON object.

        Returns:
            Decoded JSON body.

        Raises:
            requests.RequestException: On transport or HTTP status errors.
            ValueError: If the body is not JSON.
        """
        headers = {"Accept": SINGLE_OBJECT_MEDIA_TYPE} if single else None
        endpoint = f"{self.url}{REST_PREFIX}/{table}"
        logger.debug("GET %s %s", endpoint, params)

        response = self.session.get(
            endpoint, params=params, headers=headers, timeout=self.timeout
        )
        response.raise_for_status()
        return response.json()

    def _select_one(self, table: str, row_id: str) -> dict[str, Any] | None:
        try:
            data = self._get(table, {"id": f"eq.{row_id}", "select": "*"}, single=True)
        except (requests.RequestException, ValueError) as e:
            logger.error("Error fetching %s %s: %s", table, row_id, e)
            return None

        if not isinstance(data, dict):
            logger.error("Unexpected response for %s %s: %r", table, row_id, data)
            return None
        return data

    def _select_many(self, table: str, params: dict[str, str]) -> list[dict[str, Any]]:
        try:
            data = self._get(table, params)
        except (requests.RequestException, ValueError) as e:
            logger.error("Error fetching %s: %s", table, e)
            return []

        if not isinstance(data, list):
            logger.error("Unexpected response for %s: %r", table, data)
            return []
        return data

    def get_collection(self, collection_id: str) -> Collection | None:
        """Fetch a collection by id.

        Args:
            collection_id: Collection identifier.

        Returns:
            Collection, or None if missing or on fetch error.
        """
        row = self._select_one("collections", collection_id)
        return _parse_row(Collection.from_dict, row, "collection") if row else None

    def get_user(self, user_id: str) -> User | None:
        """Fetch a user by id.

        Args:
            user_id: User identifier.

        Returns:
            User, or None if missing or on fetch error.
        """
        row = self._select_one("users", user_id)
        return _parse_row(User.from_dict, row, "user") if row else None

    def get_moments(self, collection_id: str) -> list[Moment]:
        """Fetch all moments of a collection, oldest first.

        Args:
            collection_id: Parent collection identifier.

        Returns:
            Moments ordered by started_at ascending; empty on fetch error.
        """
        rows = self._select_many(
            "moments",
            {
                "collection_id": f"eq.{collection_id}",
                "select": "*",
                "order": "started_at.asc",
            },
        )

        moments: list[Moment] = []
        for row in rows:
            moment = _parse_row(Moment.from_dict, row, "moment")
            if moment is not None:
                moments.append(moment)
        logger.debug("Fetched %d moments for collection %s", len(moments), collection_id)
        return moments

    def list_collection_ids(self) -> list[str]:
        """List the ids of every collection.

        Returns:
            Collection ids; empty on fetch error.
        """
        rows = self._select_many("collections", {"select": "id"})
        return [str(row["id"]) for row in rows if isinstance(row, dict) and "id" in row]


def _parse_row(factory: Callable[[dict[str, Any]], Any], row: dict[str, Any], kind: str) -> Any:
    """Build a model from a row, skipping malformed rows."""
    try:
        return factory(row)
    except (KeyError, TypeError, ValueError) as e:
        logger.warning("Skipping malformed %s row %r: %s", kind, row.get("id"), e)
        return None
