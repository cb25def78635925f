import pytest
from unittest.mock import AsyncMock, Mock

from quicknotes.client.credential_store import CredentialStore
from quicknotes.client.credentials import AuthSession
from quicknotes.client.gateway_client import GatewayClient
from quicknotes.client.notifications import Notifier
from quicknotes.github.models import Credential, GitHubUser, Issue, Label


def make_issue(number: int, title: str = None, state: str = "open") -> Issue:
    return Issue(
        number=number,
        title=title or f"Issue {number}",
        url=f"https://github.com/acme/notes/issues/{number}",
        state=state,
    )


@pytest.fixture
def store(tmp_path):
    """Empty credential store backed by a temp file."""
    return CredentialStore(str(tmp_path / "storage.json")).load()


@pytest.fixture
def notifier():
    """Notifier that never auto-dismisses."""
    return Notifier(dismiss_after=0)


@pytest.fixture
def user():
    return GitHubUser(login="octocat", name="The Octocat")


@pytest.fixture
def gateway(user):
    """Mock gateway client with async methods."""
    gw = Mock(spec=GatewayClient)
    gw.get_user = AsyncMock(return_value=user)
    gw.list_labels = AsyncMock(
        return_value=[
            Label(name="bug", color="d73a4a"),
            Label(name="bugfix", color="a2eeef"),
            Label(name="feature", color="0e8a16"),
        ]
    )
    gw.search_issues = AsyncMock(return_value=[])
    gw.create_issue = AsyncMock()
    gw.add_comment = AsyncMock()
    return gw


@pytest.fixture
def session(store, gateway, notifier, user):
    """Session already holding a validated credential."""
    auth = AuthSession(store, gateway, notifier)
    auth.credential = Credential(token="ghp_test", source="manual")
    auth.user = user
    return auth
