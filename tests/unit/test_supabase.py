"""Unit tests for the Supabase data access layer."""

from __future__ import annotations

from typing import Any

import pytest
import requests
import responses
from responses import matchers

from moment_map.services.supabase import SINGLE_OBJECT_MEDIA_TYPE, SupabaseClient
from tests.conftest import REST_URL, SUPABASE_KEY, SUPABASE_URL


class TestClientInit:
    """Tests for SupabaseClient construction."""

    @pytest.mark.ai_generated
    def test_strips_trailing_slash(self) -> None:
        client = SupabaseClient(f"{SUPABASE_URL}/", SUPABASE_KEY)
        assert client.url == SUPABASE_URL

    @pytest.mark.ai_generated
    def test_requires_url(self) -> None:
        with pytest.raises(ValueError, match="URL is required"):
            SupabaseClient("", SUPABASE_KEY)

    @pytest.mark.ai_generated
    def test_requires_key(self) -> None:
        with pytest.raises(ValueError, match="key is required"):
            SupabaseClient(SUPABASE_URL, "")


class TestQueries:
    """Tests for the read queries against a mocked backend."""

    @pytest.mark.ai_generated
    def test_get_collection_sends_auth_and_single_object_headers(
        self,
        client: SupabaseClient,
        mock_backend: responses.RequestsMock,
    ) -> None:
        """Verify collection lookup asks for exactly one object."""
        collection = client.get_collection("col-1")

        assert collection is not None
        assert collection.name == "Europe Trip"
        request = mock_backend.calls[0].request
        assert request.headers["apikey"] == SUPABASE_KEY
        assert request.headers["Authorization"] == f"Bearer {SUPABASE_KEY}"
        assert request.headers["Accept"] == SINGLE_OBJECT_MEDIA_TYPE

    @pytest.mark.ai_generated
    def test_get_collection_missing_returns_none(
        self,
        client: SupabaseClient,
        mock_backend: responses.RequestsMock,
    ) -> None:
        """Verify a 406 (no rows) is logged and mapped to None."""
        assert client.get_collection("missing") is None

    @pytest.mark.ai_generated
    def test_get_user(self, client: SupabaseClient, mock_backend: responses.RequestsMock) -> None:
        user = client.get_user("user-1")

        assert user is not None
        assert user.username == "traveller"

    @pytest.mark.ai_generated
    def test_get_moments_ordered_query(
        self,
        client: SupabaseClient,
        mock_backend: responses.RequestsMock,
    ) -> None:
        """Verify moments are filtered by collection and ordered by start time."""
        moments = client.get_moments("col-1")

        assert [m.id for m in moments] == ["m1", "m2", "m3", "m4", "m5"]
        request = mock_backend.calls[0].request
        assert "order=started_at.asc" in request.url
        assert request.headers["Accept"] == "application/json"

    @pytest.mark.ai_generated
    def test_list_collection_ids(
        self,
        client: SupabaseClient,
        mock_backend: responses.RequestsMock,
    ) -> None:
        assert client.list_collection_ids() == ["col-1"]


class TestFailureHandling:
    """Fetch errors are logged and mapped to None or an empty list."""

    @pytest.mark.ai_generated
    @responses.activate
    def test_server_error_on_moments_returns_empty(
        self, client: SupabaseClient, caplog: pytest.LogCaptureFixture
    ) -> None:
        responses.add(responses.GET, f"{REST_URL}/moments", json={"message": "boom"}, status=500)

        with caplog.at_level("ERROR", logger="moment_map.supabase"):
            assert client.get_moments("col-1") == []

        assert "Error fetching moments" in caplog.text

    @pytest.mark.ai_generated
    @responses.activate
    def test_connection_error_returns_none(self, client: SupabaseClient) -> None:
        responses.add(
            responses.GET,
            f"{REST_URL}/users",
            body=requests.ConnectionError("network down"),
        )

        assert client.get_user("user-1") is None

    @pytest.mark.ai_generated
    @responses.activate
    def test_invalid_json_returns_empty(self, client: SupabaseClient) -> None:
        responses.add(responses.GET, f"{REST_URL}/moments", body="<html>not json</html>")

        assert client.get_moments("col-1") == []

    @pytest.mark.ai_generated
    @responses.activate
    def test_unexpected_shape_returns_none(self, client: SupabaseClient) -> None:
        """A list where one object was requested is treated as an error."""
        responses.add(responses.GET, f"{REST_URL}/collections", json=[{"id": "col-1"}])

        assert client.get_collection("col-1") is None

    @pytest.mark.ai_generated
    @responses.activate
    def test_malformed_rows_are_skipped(
        self,
        client: SupabaseClient,
        moment_rows: list[dict[str, Any]],
    ) -> None:
        """Verify one bad row does not hide the rest."""
        bad_row = {"id": "broken", "collection_id": "col-1", "title": "No date"}
        responses.add(
            responses.GET,
            f"{REST_URL}/moments",
            json=[moment_rows[0], bad_row, moment_rows[1]],
            match=[matchers.query_param_matcher(
                {"collection_id": "eq.col-1", "select": "*", "order": "started_at.asc"}
            )],
        )

        moments = client.get_moments("col-1")

        assert [m.id for m in moments] == ["m1", "m2"]

    @pytest.mark.ai_generated
    @responses.activate
    def test_trimmed_fractional_seconds_are_kept(
        self,
        client: SupabaseClient,
        moment_rows: list[dict[str, Any]],
    ) -> None:
        """Verify rows with PostgREST-trimmed timestamps are not dropped."""
        row = {**moment_rows[0], "started_at": "2024-06-01T10:00:00.12+00:00"}
        responses.add(responses.GET, f"{REST_URL}/moments", json=[row])

        moments = client.get_moments("col-1")

        assert [m.id for m in moments] == ["m1"]
        assert moments[0].started_at.microsecond == 120000
