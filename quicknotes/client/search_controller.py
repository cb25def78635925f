"""
Debounced issue search.

Every query change cancels the pending timer and bumps a generation
counter. A search result is committed only if its generation is still the
latest one, so a slow response for an old query never overwrites the
suggestions for a newer one.
"""

import asyncio
from typing import Callable, List, Optional
from quicknotes.client.credentials import CredentialProvider
from quicknotes.client.gateway_client import GatewayClient, GatewayUnauthorizedError
from quicknotes.config import settings
from quicknotes.github.models import Issue, RepositoryRef
from quicknotes.utils.logger import get_logger

logger = get_logger(__name__)


class SearchController:
    """Turns query edits into at most one repository-scoped search per quiet period."""

    def __init__(
        self,
        gateway: GatewayClient,
        credentials: CredentialProvider,
        repository: Callable[[], RepositoryRef],
        debounce_seconds: Optional[float] = None,
        result_limit: Optional[int] = None,
    ):
        self.gateway = gateway
        self.credentials = credentials
        self.repository = repository
        self.debounce_seconds = (
            settings.SEARCH_DEBOUNCE_MS / 1000 if debounce_seconds is None else debounce_seconds
        )
        self.result_limit = settings.SEARCH_RESULT_LIMIT if result_limit is None else result_limit

        self.query = ""
        self.results: List[Issue] = []
        self._generation = 0
        self._searching_generation: Optional[int] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._inflight: List[asyncio.Task] = []
        self._listeners: List[Callable[["SearchController"], None]] = []

    def subscribe(self, callback: Callable[["SearchController"], None]):
        self._listeners.append(callback)

    def _changed(self):
        for callback in self._listeners:
            callback(self)

    @property
    def is_searching(self) -> bool:
        return self._searching_generation is not None

    @property
    def has_pending(self) -> bool:
        return self._timer is not None

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def set_query(self, query: str):
        """Record a keystroke; schedules a search after the quiet period."""
        self.query = query
        self._cancel_timer()
        self._generation += 1

        if not query.strip():
            self.clear_suggestions()
            return

        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(
            self.debounce_seconds, self._fire, self._generation, query
        )

    def clear_suggestions(self):
        """Drop suggestions and the searching flag; late results are ignored."""
        self._cancel_timer()
        self._generation += 1
        self._searching_generation = None
        self.results = []
        self._changed()

    def show_selection(self, text: str):
        """Put a chosen issue's display text in the box without searching."""
        self.query = text
        self.clear_suggestions()

    def _fire(self, generation: int, query: str):
        self._timer = None
        if generation != self._generation:
            return
        self._searching_generation = generation
        self._changed()
        task = asyncio.ensure_future(self._run(generation, query))
        self._inflight.append(task)
        task.add_done_callback(self._inflight.remove)

    async def _run(self, generation: int, query: str):
        issues: List[Issue] = []
        token = self.credentials.current_token()
        if token:
            try:
                found = await self.gateway.search_issues(token, query, self.repository())
                issues = found[: self.result_limit]
            except GatewayUnauthorizedError:
                logger.warning("Search rejected with 401")
                self.credentials.handle_unauthorized()
            except Exception as e:
                logger.debug(f"Search failed for {query!r}: {e}")
        else:
            logger.debug("Search skipped: no credential")

        if self._searching_generation == generation:
            self._searching_generation = None
        if generation != self._generation:
            logger.debug(f"Discarding stale results for {query!r}")
            return
        self.results = issues
        self._changed()

    async def wait_idle(self):
        """Wait for the pending timer and any in-flight search to finish."""
        while self._timer is not None or self._inflight:
            if self._inflight:
                await asyncio.gather(*list(self._inflight), return_exceptions=True)
            else:
                await asyncio.sleep(self.debounce_seconds / 4 or 0.01)

    def close(self):
        """Teardown: no timer may fire after this, in-flight results are ignored."""
        self._cancel_timer()
        self._generation += 1
        self._searching_generation = None
