from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

import httpx

from portal_auth.token_store import TokenStore
from portal_client.constants import DEFAULT_HEADERS, DEFAULT_TIMEOUT_SECONDS, LOGGER
from portal_client.errors import ErrorKind, NetworkError, RequestTimeoutError
from portal_client.messages import default_message


@dataclass(frozen=True)
class RequestDescriptor:
    """Everything needed to send a request again after a session refresh."""

    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    params: Mapping[str, Any] | None = None
    json: Any = None
    content: bytes | str | None = None
    data: Mapping[str, Any] | None = None
    files: Any = None
    timeout: float | None = None
    authenticate: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))


class RequestExecutor:
    def __init__(
        self,
        http_client: httpx.AsyncClient,
        token_store: TokenStore,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        logger: logging.Logger | None = None,
    ) -> None:
        self._client = http_client
        self._token_store = token_store
        self._timeout = timeout
        self._logger = logger or LOGGER

    def build_request(self, descriptor: RequestDescriptor) -> httpx.Request:
        headers = dict(DEFAULT_HEADERS)
        headers.update(descriptor.headers)
        if descriptor.authenticate:
            access_token = self._token_store.get_access_token()
            if access_token:
                headers["Authorization"] = f"Bearer {access_token}"

        return self._client.build_request(
            descriptor.method,
            descriptor.url,
            headers=headers,
            params=descriptor.params,
            json=descriptor.json,
            content=descriptor.content,
            data=descriptor.data,
            files=descriptor.files,
        )

    async def execute(self, descriptor: RequestDescriptor) -> httpx.Response:
        """Send exactly one attempt, bounded by the descriptor's timeout."""
        request = self.build_request(descriptor)
        timeout = descriptor.timeout if descriptor.timeout is not None else self._timeout
        started = time.monotonic()

        try:
            response = await asyncio.wait_for(self._client.send(request), timeout)
        except asyncio.TimeoutError as error:
            self._logger.warning(
                "Request timed out after %ss (%s %s)", timeout, request.method, request.url
            )
            raise RequestTimeoutError(default_message(ErrorKind.TIMEOUT)) from error
        except httpx.TimeoutException as error:
            self._logger.warning(
                "Transport timeout (%s %s): %s", request.method, request.url, error
            )
            raise RequestTimeoutError(default_message(ErrorKind.TIMEOUT)) from error
        except httpx.TransportError as error:
            self._logger.warning(
                "Network failure (%s %s): %s", request.method, request.url, error
            )
            raise NetworkError(default_message(ErrorKind.NETWORK)) from error
        except httpx.RequestError as error:
            # Redirect loops and undecodable bodies.
            self._logger.warning(
                "Request failed (%s %s): %s", request.method, request.url, error
            )
            raise NetworkError(default_message(ErrorKind.NETWORK)) from error

        self._logger.debug(
            "Response status=%s (%s %s) in %.3fs",
            response.status_code,
            request.method,
            request.url,
            time.monotonic() - started,
        )
        return response
