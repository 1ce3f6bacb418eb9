"""Tests for the Clockify client."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from claude_tracker.clockify import (
    BASE_URL,
    PAGE_SIZE,
    ClockifyClient,
    ClockifyError,
    status_hint,
)

from conftest import utc


def _response(status_code=200, body=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.ok = 200 <= status_code < 300
    if isinstance(body, Exception):
        resp.json.side_effect = body
    else:
        resp.json.return_value = body
    return resp


@pytest.fixture
def client():
    c = ClockifyClient(api_key="test-key")
    c.session = MagicMock()
    return c


class TestInit:
    def test_sets_api_key_header(self):
        c = ClockifyClient(api_key="secret-key")
        assert c.session.headers["X-Api-Key"] == "secret-key"
        assert c.session.headers["Content-Type"] == "application/json"

    def test_base_url_strips_trailing_slash(self):
        c = ClockifyClient(api_key="k", base_url="https://clockify.example.com/api/v1/")
        assert c.base_url == "https://clockify.example.com/api/v1"

    def test_from_keyring(self):
        with patch("claude_tracker.clockify.get_secret", return_value="from-keychain") as mock_get:
            c = ClockifyClient.from_keyring()
        mock_get.assert_called_once_with("clockify_api_key")
        assert c.session.headers["X-Api-Key"] == "from-keychain"


class TestPostTimeEntry:
    def test_success_returns_entry_id(self, client):
        client.session.request.return_value = _response(201, {"id": "entry-abc"})

        entry_id = client.post_time_entry(
            "proj-1",
            utc("2026-02-04T09:00:00Z"),
            utc("2026-02-04T15:00:00Z"),
            "ws-1",
        )

        assert entry_id == "entry-abc"
        method, url = client.session.request.call_args.args
        kwargs = client.session.request.call_args.kwargs
        assert method == "post"
        assert url == f"{BASE_URL}/workspaces/ws-1/time-entries"
        assert kwargs["json"] == {
            "projectId": "proj-1",
            "start": "2026-02-04T09:00:00Z",
            "end": "2026-02-04T15:00:00Z",
            "description": "Development",
        }
        assert kwargs["timeout"] == client.timeout

    @pytest.mark.parametrize(
        "status,fragment",
        [
            (400, "invalid project ID"),
            (401, "API key"),
            (403, "forbidden"),
            (404, "not found"),
            (422, "time range"),
            (500, "unexpected error"),
        ],
    )
    def test_http_error_includes_status_and_hint(self, client, status, fragment):
        client.session.request.return_value = _response(status, {"message": "nope"})

        with pytest.raises(ClockifyError) as excinfo:
            client.post_time_entry("proj-1", utc("2026-02-04T09:00:00Z"), utc("2026-02-04T10:00:00Z"), "ws-1")

        assert excinfo.value.status_code == status
        assert str(status) in str(excinfo.value)
        assert fragment in str(excinfo.value)

    def test_network_error(self, client):
        client.session.request.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(ClockifyError, match="Network error"):
            client.post_time_entry("proj-1", utc("2026-02-04T09:00:00Z"), utc("2026-02-04T10:00:00Z"), "ws-1")

    def test_unparseable_body(self, client):
        client.session.request.return_value = _response(201, ValueError("bad json"))

        with pytest.raises(ClockifyError, match="parse"):
            client.post_time_entry("proj-1", utc("2026-02-04T09:00:00Z"), utc("2026-02-04T10:00:00Z"), "ws-1")

    def test_missing_id(self, client):
        client.session.request.return_value = _response(201, {"description": "Development"})

        with pytest.raises(ClockifyError, match="id"):
            client.post_time_entry("proj-1", utc("2026-02-04T09:00:00Z"), utc("2026-02-04T10:00:00Z"), "ws-1")


class TestListProjects:
    def test_single_page(self, client):
        client.session.request.return_value = _response(200, [
            {"id": "p1", "name": "Alpha", "archived": False},
            {"id": "p2", "name": "Beta", "archived": True},
        ])

        projects = client.list_projects("ws-1")

        assert [(p.id, p.name, p.archived) for p in projects] == [
            ("p1", "Alpha", False),
            ("p2", "Beta", True),
        ]
        kwargs = client.session.request.call_args.kwargs
        assert kwargs["params"] == {"page-size": PAGE_SIZE, "page": 1}

    def test_follows_pagination_until_short_page(self, client):
        full_page = [{"id": f"p{i}", "name": f"Project {i}"} for i in range(PAGE_SIZE)]
        client.session.request.side_effect = [
            _response(200, full_page),
            _response(200, [{"id": "last", "name": "Last"}]),
        ]

        projects = client.list_projects("ws-1")

        assert len(projects) == PAGE_SIZE + 1
        assert projects[-1].id == "last"
        pages = [c.kwargs["params"]["page"] for c in client.session.request.call_args_list]
        assert pages == [1, 2]

    def test_error_status(self, client):
        client.session.request.return_value = _response(401)

        with pytest.raises(ClockifyError, match="401"):
            client.list_projects("ws-1")


def test_status_hint_unknown_code():
    assert status_hint(418) == "unexpected error"
