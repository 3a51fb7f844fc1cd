from __future__ import annotations

from portal_auth.models import Session
from portal_client.errors import AuthError
from portal_client.executor import RequestDescriptor, RequestExecutor
from portal_client.normalizer import ResponseNormalizer


async def _token_request(
    executor: RequestExecutor,
    url: str,
    payload: dict[str, str],
    *,
    previous_refresh_token: str | None = None,
    timeout: float | None = None,
) -> Session:
    descriptor = RequestDescriptor(
        method="POST",
        url=url,
        json=payload,
        timeout=timeout,
        authenticate=False,
    )
    response = await executor.execute(descriptor)
    body = ResponseNormalizer().normalize(response)
    try:
        return Session.from_payload(body, previous_refresh_token=previous_refresh_token)
    except RuntimeError as error:
        # 2xx without a usable token pair.
        raise AuthError(str(error), http_status=response.status_code, raw_body=body) from error


async def exchange_credentials(
    executor: RequestExecutor,
    url: str,
    credentials: dict[str, str],
    *,
    timeout: float | None = None,
) -> Session:
    return await _token_request(executor, url, credentials, timeout=timeout)


async def refresh_session(
    executor: RequestExecutor,
    url: str,
    refresh_token: str,
    *,
    timeout: float | None = None,
) -> Session:
    """POST ``{refreshToken}`` and return the new pair.

    The backend may rotate the refresh token; when it does not, the current
    one is kept.
    """
    return await _token_request(
        executor,
        url,
        {"refreshToken": refresh_token},
        previous_refresh_token=refresh_token,
        timeout=timeout,
    )
