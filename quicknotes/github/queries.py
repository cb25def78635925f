"""
Search query composition and attribution footer helpers.
Shared by the gateway operations that talk to the GitHub REST API.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from quicknotes.github.models import GitHubUser, RepositoryRef

UNKNOWN_ACTOR = "Unknown User"

# Footer templates for notes written through the gateway
CREATED_FOOTER = "\n\n---\n*Created via Quick Notes by {actor} at {timestamp}*"
ADDED_FOOTER = "\n\n---\n*Added via Quick Notes by {actor} at {timestamp}*"


def compose_search_query(repo: RepositoryRef, query: str) -> str:
    """
    Build a repository-scoped issue search query.

    Args:
        repo: Repository to scope the search to
        query: Free text typed by the user

    Returns:
        Query string of the form ``repo:<owner>/<name> <query> in:title,body``
    """
    return f"repo:{repo.full_name} {query.strip()} in:title,body"


def exclude_pull_requests(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Drop pull requests from a search result page.

    The search endpoint returns issues and pull requests together; pull
    requests are the items carrying a ``pull_request`` key.
    """
    return [item for item in items if not item.get("pull_request")]


def format_actor(user: Optional[GitHubUser]) -> str:
    """
    Format the acting user for the attribution footer.

    Args:
        user: Authenticated user, or None when the lookup failed

    Returns:
        ``"Name (@login)"``, ``"login"`` or ``"Unknown User"``
    """
    if user is None:
        return UNKNOWN_ACTOR
    if user.name:
        return f"{user.name} (@{user.login})"
    return user.login


def iso_timestamp(now: Optional[datetime] = None) -> str:
    """UTC ISO-8601 timestamp with millisecond precision and a Z suffix."""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def append_footer(
    body: str,
    user: Optional[GitHubUser],
    template: str = CREATED_FOOTER,
    now: Optional[datetime] = None,
) -> str:
    """
    Append the attribution footer to an issue or comment body.

    Args:
        body: Note text as entered by the user
        user: Acting user (None falls back to "Unknown User")
        template: CREATED_FOOTER for issues, ADDED_FOOTER for comments
        now: Override for the timestamp

    Returns:
        Body with the footer appended
    """
    return body + template.format(actor=format_actor(user), timestamp=iso_timestamp(now))
