from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from portal_auth.models import Session
from portal_auth.token_store import TokenStore
from portal_client.constants import LOGGER
from portal_client.errors import AuthError, ErrorKind
from portal_client.messages import default_message

RefreshFn = Callable[[str], Awaitable[Session]]


def _retrieve_outcome(task: asyncio.Task) -> None:
    # Marks the exception as retrieved when every waiter was cancelled.
    if not task.cancelled():
        task.exception()


class RefreshCoordinator:
    """Runs at most one session refresh at a time.

    Every caller that arrives while a refresh is in flight awaits the same
    task and so observes the same outcome. The task is shielded from its
    waiters: cancelling a waiter never cancels the refresh.
    """

    def __init__(
        self,
        token_store: TokenStore,
        refresh_fn: RefreshFn,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._token_store = token_store
        self._refresh_fn = refresh_fn
        self._logger = logger or LOGGER
        self._current: asyncio.Task[Session] | None = None
        self._generation = 0
        self.refresh_count = 0

    @property
    def in_flight(self) -> bool:
        return self._current is not None

    async def refresh(self) -> Session:
        if self._current is None:
            self._current = asyncio.ensure_future(self._run(self._generation))
            self._current.add_done_callback(_retrieve_outcome)
        return await asyncio.shield(self._current)

    def invalidate(self) -> None:
        """Discard the result of any refresh that finishes after this call."""
        self._generation += 1

    async def _run(self, generation: int) -> Session:
        try:
            refresh_token = self._token_store.get_refresh_token()
            if not refresh_token:
                self._token_store.clear_session()
                raise AuthError(default_message(ErrorKind.AUTH))

            self.refresh_count += 1
            try:
                session = await self._refresh_fn(refresh_token)
            except Exception as error:
                self._logger.warning("Session refresh failed: %s", error)
                if generation == self._generation:
                    self._token_store.clear_session()
                raise AuthError(
                    default_message(ErrorKind.AUTH),
                    http_status=getattr(error, "http_status", None),
                    raw_body=getattr(error, "raw_body", None),
                ) from error

            if generation != self._generation:
                self._logger.info("Discarding session refresh that completed after logout.")
                raise AuthError(default_message(ErrorKind.AUTH))

            self._token_store.set_session(session.access_token, session.refresh_token)
            self._logger.info("Session refreshed.")
            return session
        finally:
            self._current = None
