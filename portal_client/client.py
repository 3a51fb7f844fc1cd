from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Mapping

import httpx

from portal_auth.coordinator import RefreshCoordinator, RefreshFn
from portal_auth.models import Session
from portal_auth.refresh import exchange_credentials, refresh_session
from portal_auth.token_store import CookieTokenStore, TokenStore
from portal_client.constants import DEFAULT_REFRESH_PATH, DEFAULT_TIMEOUT_SECONDS, LOGGER
from portal_client.env import ClientSettings
from portal_client.errors import AuthError, NotFoundError, SessionExpiredError
from portal_client.executor import RequestDescriptor, RequestExecutor
from portal_client.http import RetryTransport
from portal_client.normalizer import ResponseNormalizer

DEFAULT_LOGIN_PATH = "/api/auth/login"
MAX_SESSION_RETRIES = 1

SessionExpiredListener = Callable[[AuthError], "Awaitable[None] | None"]

_MISSING = object()


def build_http_client(
    base_url: str,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    max_retries: int = 0,
) -> httpx.AsyncClient:
    base_transport = transport or httpx.AsyncHTTPTransport()
    if max_retries > 0:
        base_transport = RetryTransport(base_transport, max_retries=max_retries)
    # Timeouts are enforced by RequestExecutor, not by httpx.
    return httpx.AsyncClient(
        base_url=base_url,
        transport=base_transport,
        follow_redirects=True,
        timeout=None,
    )


class PortalClient:
    """Authenticated client for the portal backend.

    A request that comes back 401 triggers one shared session refresh and is
    then sent again exactly once. When the session cannot be recovered the
    call raises ``AuthError`` and the session-expired listeners are notified
    once for the whole episode, however many requests failed with it.
    """

    def __init__(
        self,
        base_url: str,
        token_store: TokenStore,
        *,
        http_client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        refresh_path: str = DEFAULT_REFRESH_PATH,
        refresh_fn: RefreshFn | None = None,
        max_retries: int = 0,
        on_session_expired: SessionExpiredListener | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._owns_client = http_client is None
        self.http_client = http_client or build_http_client(
            base_url, transport=transport, max_retries=max_retries
        )
        self.token_store = token_store
        self.refresh_path = refresh_path
        self._logger = logger or LOGGER

        self.executor = RequestExecutor(
            self.http_client, token_store, timeout=timeout, logger=self._logger
        )
        self.normalizer = ResponseNormalizer()
        self.coordinator = RefreshCoordinator(
            token_store,
            refresh_fn or self._refresh_via_endpoint,
            logger=self._logger,
        )

        self._listeners: list[SessionExpiredListener] = []
        if on_session_expired is not None:
            self._listeners.append(on_session_expired)
        self._expiry_notified = False

    @classmethod
    def from_settings(
        cls,
        settings: ClientSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        **kwargs,
    ) -> "PortalClient":
        http_client = build_http_client(
            settings.base_url, transport=transport, max_retries=settings.max_retries
        )
        token_store = CookieTokenStore(
            http_client.cookies,
            secure=settings.cookie_secure,
            samesite=settings.cookie_samesite,
            access_ttl=settings.access_token_ttl,
            refresh_ttl=settings.refresh_token_ttl,
        )
        client = cls(
            settings.base_url,
            token_store,
            http_client=http_client,
            timeout=settings.timeout,
            refresh_path=settings.refresh_path,
            **kwargs,
        )
        client._owns_client = True
        return client

    async def __aenter__(self) -> "PortalClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.http_client.aclose()

    # -- session ----------------------------------------------------------------

    def set_session(self, session: Session) -> None:
        self.token_store.set_session(session.access_token, session.refresh_token)
        self._expiry_notified = False

    async def login(
        self,
        credentials: dict[str, str],
        *,
        path: str = DEFAULT_LOGIN_PATH,
        timeout: float | None = None,
    ) -> Session:
        try:
            session = await exchange_credentials(self.executor, path, credentials, timeout=timeout)
        except SessionExpiredError as error:
            raise AuthError(
                error.message, http_status=error.http_status, raw_body=error.raw_body
            ) from error
        self.set_session(session)
        return session

    def logout(self) -> None:
        """Forget the session locally; a refresh still in flight is discarded.

        No session-expired notification is sent until the next login.
        """
        self.coordinator.invalidate()
        self.token_store.clear_session()
        self._expiry_notified = True

    def add_session_expired_listener(self, listener: SessionExpiredListener) -> None:
        self._listeners.append(listener)

    def remove_session_expired_listener(self, listener: SessionExpiredListener) -> None:
        self._listeners.remove(listener)

    async def _refresh_via_endpoint(self, refresh_token: str) -> Session:
        return await refresh_session(self.executor, self.refresh_path, refresh_token)

    async def _notify_session_expired(self, error: AuthError) -> None:
        if self._expiry_notified:
            return
        self._expiry_notified = True
        self._logger.warning("Session expired; notifying %s listener(s).", len(self._listeners))

        for listener in list(self._listeners):
            try:
                result = listener(error)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                self._logger.exception("Session-expired listener %r failed.", listener)

    # -- requests ---------------------------------------------------------------

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        content: bytes | str | None = None,
        data: Mapping[str, Any] | None = None,
        files: Any = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
        authenticate: bool = True,
        not_found_default: Any = _MISSING,
    ) -> Any:
        descriptor = RequestDescriptor(
            method=method,
            url=path,
            headers=headers or {},
            params=params,
            json=json,
            content=content,
            data=data,
            files=files,
            timeout=timeout,
            authenticate=authenticate,
        )
        try:
            return await self._send(descriptor)
        except NotFoundError:
            if not_found_default is _MISSING:
                raise
            return not_found_default

    async def _send(self, descriptor: RequestDescriptor) -> Any:
        session_retries = 0
        while True:
            response = await self.executor.execute(descriptor)
            try:
                result = self.normalizer.normalize(response)
            except SessionExpiredError as error:
                if not descriptor.authenticate:
                    raise AuthError(
                        error.message, http_status=error.http_status, raw_body=error.raw_body
                    ) from error
                if session_retries >= MAX_SESSION_RETRIES:
                    self._logger.warning(
                        "Still unauthorized after session refresh (%s %s).",
                        descriptor.method,
                        descriptor.url,
                    )
                    auth_error = AuthError(
                        error.message, http_status=error.http_status, raw_body=error.raw_body
                    )
                    await self._notify_session_expired(auth_error)
                    raise auth_error from error
            else:
                return result

            session_retries += 1
            await self._recover_session(response)

    async def _recover_session(self, response: httpx.Response) -> None:
        sent = response.request.headers.get("authorization")
        if self._session_replaced(sent):
            self._logger.debug("Session already refreshed by a concurrent request; retrying.")
            return

        try:
            await self.coordinator.refresh()
        except AuthError as error:
            # A login during a discarded refresh leaves a usable session behind.
            if self._session_replaced(sent):
                self._logger.debug("Session replaced while refreshing; retrying.")
                return
            await self._notify_session_expired(error)
            raise
        self._expiry_notified = False

    def _session_replaced(self, sent_authorization: str | None) -> bool:
        current = self.token_store.get_access_token()
        return bool(current) and sent_authorization != f"Bearer {current}"

    async def get(self, path: str, **kwargs) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, json: Any = None, **kwargs) -> Any:
        return await self.request("POST", path, json=json, **kwargs)

    async def put(self, path: str, json: Any = None, **kwargs) -> Any:
        return await self.request("PUT", path, json=json, **kwargs)

    async def patch(self, path: str, json: Any = None, **kwargs) -> Any:
        return await self.request("PATCH", path, json=json, **kwargs)

    async def delete(self, path: str, **kwargs) -> Any:
        return await self.request("DELETE", path, **kwargs)
