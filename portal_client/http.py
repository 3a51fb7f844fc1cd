from __future__ import annotations

import asyncio
import logging

import httpx

from .constants import IDEMPOTENT_METHODS, LOGGER

RETRYABLE_STATUSES = {502, 503, 504}


def _seconds_from_retry_after(header: str | None) -> int | None:
    if header is None:
        return None
    try:
        return max(0, int(header.strip()))
    except ValueError:
        return None


class RetryTransport(httpx.AsyncBaseTransport):
    """Retries idempotent requests on transient gateway failures.

    502/503/504 back off exponentially up to ``max_retries``; 429 is retried
    once after ``Retry-After``. 401 is never retried here, the client owns
    session recovery.
    """

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport,
        *,
        max_retries: int = 2,
        sleep=asyncio.sleep,
        logger: logging.Logger | None = None,
    ) -> None:
        self._transport = transport
        self._max_retries = max(0, max_retries)
        self._sleep = sleep
        self._logger = logger or LOGGER

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        if self._max_retries == 0 or request.method not in IDEMPOTENT_METHODS:
            return await self._transport.handle_async_request(request)

        body = await request.aread()
        retries = 0

        while True:
            next_request = httpx.Request(
                method=request.method,
                url=request.url,
                headers=request.headers,
                content=body,
                extensions=request.extensions,
            )
            response = await self._transport.handle_async_request(next_request)

            if response.status_code == 429 and retries < min(self._max_retries, 1):
                wait_seconds = _seconds_from_retry_after(response.headers.get("retry-after"))
                if wait_seconds is None:
                    wait_seconds = 1
                self._logger.warning(
                    "Retrying 429 after %ss (%s %s)",
                    wait_seconds,
                    request.method,
                    request.url,
                )
                await response.aclose()
                await self._sleep(wait_seconds)
                retries += 1
                continue

            if response.status_code in RETRYABLE_STATUSES and retries < self._max_retries:
                backoff_seconds = 2**retries
                self._logger.warning(
                    "Retrying %s after %ss (%s %s)",
                    response.status_code,
                    backoff_seconds,
                    request.method,
                    request.url,
                )
                await response.aclose()
                await self._sleep(backoff_seconds)
                retries += 1
                continue

            return response

    async def aclose(self) -> None:
        await self._transport.aclose()
