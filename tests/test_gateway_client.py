"""
Tests for the client-side gateway HTTP client.
"""

import pytest
import requests
from unittest.mock import Mock, patch

from quicknotes.client.gateway_client import (
    GatewayClient,
    GatewayRequestError,
    GatewayUnauthorizedError,
)
from quicknotes.github.models import RepositoryRef

REPO = RepositoryRef(owner="acme", name="notes")


def _response(status_code=200, payload=None):
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.reason = "Error"
    response.json.return_value = payload if payload is not None else {}
    return response


@pytest.fixture
def client():
    return GatewayClient("http://gateway.test/")


@pytest.mark.asyncio
async def test_search_parses_issues(client):
    payload = {
        "issues": [
            {
                "number": 3,
                "title": "Crash on save",
                "url": "https://github.com/acme/notes/issues/3",
                "state": "closed",
                "updated_at": "2026-10-01T12:00:00Z",
            }
        ]
    }
    with patch("quicknotes.client.gateway_client.requests.request", return_value=_response(payload=payload)) as request:
        issues = await client.search_issues("ghp_test", "crash", REPO)

    assert issues[0].number == 3
    assert issues[0].state == "closed"
    assert issues[0].updated_at.year == 2026
    assert request.call_args.args == ("GET", "http://gateway.test/search-issues")
    assert request.call_args.kwargs["params"] == {"q": "crash", "owner": "acme", "repo": "notes"}
    assert request.call_args.kwargs["headers"] == {"Authorization": "Bearer ghp_test"}


@pytest.mark.asyncio
async def test_create_issue_payload(client):
    payload = {"number": 42, "url": "https://github.com/acme/notes/issues/42", "title": "T"}
    with patch("quicknotes.client.gateway_client.requests.request", return_value=_response(payload=payload)) as request:
        created = await client.create_issue("ghp_test", "T", "B", ["bug"], REPO)

    assert created.number == 42
    assert request.call_args.kwargs["json"] == {
        "title": "T",
        "body": "B",
        "labels": ["bug"],
        "repoOwner": "acme",
        "repoName": "notes",
    }


@pytest.mark.asyncio
async def test_401_raises_unauthorized(client):
    response = _response(401, {"error": "Invalid token or failed to authenticate"})
    with patch("quicknotes.client.gateway_client.requests.request", return_value=response):
        with pytest.raises(GatewayUnauthorizedError) as excinfo:
            await client.get_user("ghp_revoked")

    assert excinfo.value.status_code == 401


@pytest.mark.asyncio
async def test_server_error_message(client):
    response = _response(500, {"error": "Failed to add comment"})
    with patch("quicknotes.client.gateway_client.requests.request", return_value=response):
        with pytest.raises(GatewayRequestError) as excinfo:
            await client.add_comment("ghp_test", 7, "B", REPO)

    assert excinfo.value.message == "Failed to add comment"
    assert not isinstance(excinfo.value, GatewayUnauthorizedError)


@pytest.mark.asyncio
async def test_network_error_is_wrapped(client):
    with patch(
        "quicknotes.client.gateway_client.requests.request",
        side_effect=requests.Timeout("timed out"),
    ):
        with pytest.raises(GatewayRequestError):
            await client.list_labels("ghp_test", REPO)


def _html_response(status_code=200):
    response = _response(status_code)
    response.json.side_effect = requests.JSONDecodeError("Expecting value", "<html>", 0)
    return response


@pytest.mark.asyncio
async def test_non_json_success_body_is_wrapped(client):
    """Test that a 2xx reply with an HTML body becomes a GatewayRequestError."""
    with patch("quicknotes.client.gateway_client.requests.request", return_value=_html_response()):
        with pytest.raises(GatewayRequestError) as excinfo:
            await client.get_user("ghp_test")

    assert excinfo.value.status_code == 200
    assert excinfo.value.message == "Gateway returned an invalid response"


@pytest.mark.asyncio
async def test_error_body_that_is_not_an_object(client):
    response = _response(502, ["upstream", "down"])
    response.reason = "Bad Gateway"
    with patch("quicknotes.client.gateway_client.requests.request", return_value=response):
        with pytest.raises(GatewayRequestError) as excinfo:
            await client.search_issues("ghp_test", "crash", REPO)

    assert excinfo.value.message == "Bad Gateway"
    assert excinfo.value.status_code == 502


@pytest.mark.asyncio
async def test_error_without_json_falls_back_to_status(client):
    response = _html_response(503)
    response.reason = ""
    with patch("quicknotes.client.gateway_client.requests.request", return_value=response):
        with pytest.raises(GatewayRequestError) as excinfo:
            await client.list_labels("ghp_test", REPO)

    assert excinfo.value.message == "HTTP 503"
