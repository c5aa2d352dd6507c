"""Shared fixtures for moment-map tests.

Backend rows mimic what the hosted PostgREST API returns; HTTP is mocked
with responses.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pytest
import responses
from click.testing import CliRunner
from responses import matchers

from moment_map.models.moment import Collection, Moment
from moment_map.services.supabase import SupabaseClient

if TYPE_CHECKING:
    from collections.abc import Generator

SUPABASE_URL = "https://test-project.supabase.co"
SUPABASE_KEY = "anon-test-key"
REST_URL = f"{SUPABASE_URL}/rest/v1"


def make_moment(
    moment_id: str,
    city: str | None = "Paris",
    country: str | None = "France",
    *,
    title: str | None = None,
    started_at: datetime | None = None,
    **kwargs: Any,
) -> Moment:
    """Build a Moment with sensible defaults."""
    return Moment(
        id=moment_id,
        collection_id="col-1",
        title=title or f"Moment {moment_id}",
        started_at=started_at or datetime(2024, 1, 1, 12, 0, 0),
        city=city,
        country=country,
        **kwargs,
    )


def add_backend_routes(
    rsps: responses.RequestsMock,
    collection_row: dict[str, Any],
    user_row: dict[str, Any] | None,
    moment_rows: list[dict[str, Any]],
) -> None:
    """Register the PostgREST endpoints for one collection."""
    collection_id = collection_row["id"]
    rsps.add(
        responses.GET,
        f"{REST_URL}/collections",
        json=collection_row,
        match=[matchers.query_param_matcher({"id": f"eq.{collection_id}", "select": "*"})],
    )
    rsps.add(
        responses.GET,
        f"{REST_URL}/collections",
        json=[{"id": collection_id}],
        match=[matchers.query_param_matcher({"select": "id"})],
    )
    if user_row is not None:
        rsps.add(
            responses.GET,
            f"{REST_URL}/users",
            json=user_row,
            match=[matchers.query_param_matcher({"id": f"eq.{user_row['id']}", "select": "*"})],
        )
    else:
        rsps.add(
            responses.GET,
            f"{REST_URL}/users",
            json={"message": "JSON object requested, multiple (or no) rows returned"},
            status=406,
        )
    rsps.add(
        responses.GET,
        f"{REST_URL}/moments",
        json=moment_rows,
        match=[
            matchers.query_param_matcher(
                {
                    "collection_id": f"eq.{collection_id}",
                    "select": "*",
                    "order": "started_at.asc",
                }
            )
        ],
    )
    rsps.add(
        responses.GET,
        f"{REST_URL}/collections",
        json={"message": "JSON object requested, multiple (or no) rows returned"},
        status=406,
        match=[matchers.query_param_matcher({"id": "eq.missing", "select": "*"})],
    )


@pytest.fixture
def collection_row() -> dict[str, Any]:
    """A collection owned by user-1."""
    return {
        "id": "col-1",
        "name": "Europe Trip",
        "user_id": "user-1",
        "created_at": "2024-01-01T00:00:00+00:00",
    }


@pytest.fixture
def user_row() -> dict[str, Any]:
    """The owner of the collection."""
    return {"id": "user-1", "username": "traveller", "display_name": "A. Traveller"}


@pytest.fixture
def moment_rows() -> list[dict[str, Any]]:
    """Moments as returned by the backend, oldest first.

    Paris has two moments, London one; one moment lacks a city and one
    is at a place the lookup table does not know.
    """
    return [
        {
            "id": "m1",
            "collection_id": "col-1",
            "title": "Eiffel Tower",
            "content": "Sunset from the top.",
            "media_url": "https://cdn.example.com/eiffel.jpg",
            "city": "Paris",
            "country": "France",
            "category": "favourite",
            "started_at": "2024-01-05T10:00:00Z",
            "completed_at": None,
        },
        {
            "id": "m2",
            "collection_id": "col-1",
            "title": "Tower Bridge",
            "content": None,
            "media_url": None,
            "city": "London",
            "country": "United Kingdom",
            "category": None,
            "started_at": "2024-02-10T09:30:00Z",
            "completed_at": None,
        },
        {
            "id": "m3",
            "collection_id": "col-1",
            "title": "Anniversary dinner",
            "content": "Five years!",
            "media_url": "https://cdn.example.com/dinner.mp4",
            "city": "Paris",
            "country": "France",
            "category": "anniversary",
            "started_at": "2024-03-14T19:00:00Z",
            "completed_at": "2024-03-14T22:00:00Z",
        },
        {
            "id": "m4",
            "collection_id": "col-1",
            "title": "Somewhere on a train",
            "content": None,
            "media_url": None,
            "city": None,
            "country": "France",
            "category": None,
            "started_at": "2024-03-20T08:00:00Z",
            "completed_at": None,
        },
        {
            "id": "m5",
            "collection_id": "col-1",
            "title": "Lost city",
            "content": None,
            "media_url": None,
            "city": "Atlantis",
            "country": "Ocean",
            "category": None,
            "started_at": "2024-04-01T08:00:00Z",
            "completed_at": None,
        },
    ]


@pytest.fixture
def moments(moment_rows: list[dict[str, Any]]) -> list[Moment]:
    """Parsed moments from moment_rows."""
    return [Moment.from_dict(row) for row in moment_rows]


@pytest.fixture
def collection(collection_row: dict[str, Any]) -> Collection:
    return Collection.from_dict(collection_row)


@pytest.fixture
def client() -> SupabaseClient:
    """Backend client pointed at the mocked project."""
    return SupabaseClient(SUPABASE_URL, SUPABASE_KEY)


@pytest.fixture
def mock_backend(
    collection_row: dict[str, Any],
    user_row: dict[str, Any],
    moment_rows: list[dict[str, Any]],
) -> Generator[responses.RequestsMock, None, None]:
    """Mocked backend serving one collection."""
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        add_backend_routes(rsps, collection_row, user_row, moment_rows)
        yield rsps


@pytest.fixture
def cli_runner() -> CliRunner:
    """Click test runner."""
    return CliRunner()


@pytest.fixture
def cli_env(tmp_path: Path) -> dict[str, str]:
    """Environment for CLI invocations against the mocked backend."""
    return {
        "SUPABASE_URL": SUPABASE_URL,
        "SUPABASE_ANON_KEY": SUPABASE_KEY,
        "MOMENT_MAP_CONFIG": str(tmp_path / "no-such-config.toml"),
        "MOMENT_MAP_LOG_DIR": str(tmp_path / "logs"),
    }


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Drop handlers a CLI invocation attached to its (now closed) streams."""
    yield
    for name in ("moment_map", "urllib3"):
        log = logging.getLogger(name)
        for handler in list(log.handlers):
            if isinstance(handler, logging.NullHandler):
                continue
            handler.close()
            log.removeHandler(handler)
