"""
Tests for the debounced issue search.
"""

import asyncio
import pytest
from unittest.mock import Mock

from conftest import make_issue
from quicknotes.client.gateway_client import GatewayRequestError, GatewayUnauthorizedError
from quicknotes.client.search_controller import SearchController
from quicknotes.github.models import RepositoryRef

DEBOUNCE = 0.05


@pytest.fixture
def credentials():
    provider = Mock()
    provider.current_token.return_value = "ghp_test"
    return provider


@pytest.fixture
def repo():
    return RepositoryRef(owner="acme", name="notes")


@pytest.fixture
def controller(gateway, credentials, repo):
    ctrl = SearchController(gateway, credentials, lambda: repo, debounce_seconds=DEBOUNCE)
    yield ctrl
    ctrl.close()


@pytest.mark.asyncio
async def test_rapid_typing_issues_single_search(controller, gateway, repo):
    """Test that keystrokes inside the quiet period collapse into one call."""
    gateway.search_issues.return_value = [make_issue(7)]

    controller.set_query("b")
    await asyncio.sleep(DEBOUNCE / 5)
    controller.set_query("bu")
    await asyncio.sleep(DEBOUNCE / 5)
    controller.set_query("bug")
    await controller.wait_idle()

    gateway.search_issues.assert_awaited_once_with("ghp_test", "bug", repo)
    assert [issue.number for issue in controller.results] == [7]
    assert not controller.is_searching


@pytest.mark.asyncio
async def test_stale_response_never_overwrites_newer_results(controller, gateway):
    """Test that a late response for an older query is discarded."""
    release_old = asyncio.Event()

    async def fake_search(token, query, repo):
        if query == "old":
            await release_old.wait()
            return [make_issue(1, "old")]
        return [make_issue(2, "new")]

    gateway.search_issues.side_effect = fake_search

    controller.set_query("old")
    await asyncio.sleep(DEBOUNCE * 2)
    assert controller.is_searching

    controller.set_query("new")
    await asyncio.sleep(DEBOUNCE * 2)
    assert [issue.number for issue in controller.results] == [2]

    release_old.set()
    await controller.wait_idle()

    assert [issue.number for issue in controller.results] == [2]
    assert gateway.search_issues.await_count == 2
    assert not controller.is_searching


@pytest.mark.asyncio
async def test_clearing_query_cancels_pending_search(controller, gateway):
    """Test that whitespace input empties suggestions synchronously."""
    controller.results = [make_issue(3)]

    controller.set_query("bug")
    assert controller.has_pending
    controller.set_query("   ")

    assert controller.results == []
    assert not controller.is_searching
    assert not controller.has_pending

    await asyncio.sleep(DEBOUNCE * 2)
    gateway.search_issues.assert_not_awaited()


@pytest.mark.asyncio
async def test_clearing_query_ignores_inflight_response(controller, gateway):
    """Test that a response arriving after the box was cleared is ignored."""
    release = asyncio.Event()

    async def slow_search(token, query, repo):
        await release.wait()
        return [make_issue(4)]

    gateway.search_issues.side_effect = slow_search

    controller.set_query("bug")
    await asyncio.sleep(DEBOUNCE * 2)
    controller.set_query("")
    release.set()
    await controller.wait_idle()

    assert controller.results == []
    assert not controller.is_searching


@pytest.mark.asyncio
async def test_failure_degrades_to_empty_results(controller, gateway, notifier):
    """Test that search errors only result in missing suggestions."""
    controller.results = [make_issue(5)]
    gateway.search_issues.side_effect = GatewayRequestError("Failed to search issues", 500)

    controller.set_query("bug")
    await controller.wait_idle()

    assert controller.results == []
    assert not controller.is_searching
    assert len(notifier.history) == 0


@pytest.mark.asyncio
async def test_missing_credential_skips_call(controller, gateway, credentials):
    """Test that no request is sent without a token."""
    credentials.current_token.return_value = None

    controller.set_query("bug")
    await controller.wait_idle()

    gateway.search_issues.assert_not_awaited()
    assert controller.results == []


@pytest.mark.asyncio
async def test_unauthorized_search_invalidates_credential(controller, gateway, credentials):
    """Test that a 401 during search is reported to the credential provider."""
    gateway.search_issues.side_effect = GatewayUnauthorizedError("Invalid token", 401)

    controller.set_query("bug")
    await controller.wait_idle()

    credentials.handle_unauthorized.assert_called_once()
    assert controller.results == []


@pytest.mark.asyncio
async def test_results_are_capped(controller, gateway):
    """Test that at most five suggestions are kept."""
    gateway.search_issues.return_value = [make_issue(n) for n in range(1, 9)]

    controller.set_query("issue")
    await controller.wait_idle()

    assert [issue.number for issue in controller.results] == [1, 2, 3, 4, 5]


@pytest.mark.asyncio
async def test_zero_result_limit_is_respected(gateway, credentials, repo):
    """Test that an explicit limit of zero keeps no suggestions."""
    ctrl = SearchController(gateway, credentials, lambda: repo, debounce_seconds=DEBOUNCE, result_limit=0)
    gateway.search_issues.return_value = [make_issue(1), make_issue(2)]

    ctrl.set_query("issue")
    await ctrl.wait_idle()
    ctrl.close()

    gateway.search_issues.assert_awaited_once()
    assert ctrl.result_limit == 0
    assert ctrl.results == []


@pytest.mark.asyncio
async def test_show_selection_does_not_search(controller, gateway):
    """Test that writing a selection into the box does not trigger a search."""
    controller.results = [make_issue(6)]

    controller.show_selection("#6 Issue 6")
    await asyncio.sleep(DEBOUNCE * 2)

    assert controller.query == "#6 Issue 6"
    assert controller.results == []
    gateway.search_issues.assert_not_awaited()


@pytest.mark.asyncio
async def test_close_cancels_pending_timer(controller, gateway):
    """Test that teardown prevents a dangling search."""
    controller.set_query("bug")
    controller.close()
    await asyncio.sleep(DEBOUNCE * 2)

    assert not controller.has_pending
    gateway.search_issues.assert_not_awaited()


@pytest.mark.asyncio
async def test_listeners_see_searching_flag(controller, gateway):
    """Test that subscribers are told when a search starts and finishes."""
    seen = []
    controller.subscribe(lambda ctrl: seen.append(ctrl.is_searching))
    gateway.search_issues.return_value = [make_issue(8)]

    controller.set_query("bug")
    await controller.wait_idle()

    assert seen == [True, False]
