from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    NETWORK = "NetworkError"
    TIMEOUT = "TimeoutError"
    VALIDATION = "ValidationError"
    PERMISSION = "PermissionError"
    NOT_FOUND = "NotFoundError"
    SESSION_EXPIRED = "SessionExpired"
    AUTH = "AuthError"
    SERVER = "ServerError"


class ApiError(RuntimeError):
    """A classified request failure.

    ``http_status`` is ``None`` when no response was received (network
    failures and timeouts). ``raw_body`` is the parsed body as received, kept
    for diagnostics.
    """

    kind: ErrorKind = ErrorKind.SERVER

    def __init__(
        self,
        message: str,
        *,
        http_status: int | None = None,
        raw_body: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.http_status = http_status
        self.raw_body = raw_body

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(kind={self.kind.value!r}, "
            f"http_status={self.http_status!r}, message={self.message!r})"
        )


class NetworkError(ApiError):
    kind = ErrorKind.NETWORK


class RequestTimeoutError(ApiError):
    kind = ErrorKind.TIMEOUT


class ValidationError(ApiError):
    kind = ErrorKind.VALIDATION


class PermissionDeniedError(ApiError):
    kind = ErrorKind.PERMISSION


class NotFoundError(ApiError):
    kind = ErrorKind.NOT_FOUND


class SessionExpiredError(ApiError):
    kind = ErrorKind.SESSION_EXPIRED


class AuthError(ApiError):
    kind = ErrorKind.AUTH


class ServerError(ApiError):
    kind = ErrorKind.SERVER


ERROR_CLASSES: dict[ErrorKind, type[ApiError]] = {
    cls.kind: cls
    for cls in (
        NetworkError,
        RequestTimeoutError,
        ValidationError,
        PermissionDeniedError,
        NotFoundError,
        SessionExpiredError,
        AuthError,
        ServerError,
    )
}


def build_error(
    kind: ErrorKind,
    message: str,
    *,
    http_status: int | None = None,
    raw_body: Any = None,
) -> ApiError:
    return ERROR_CLASSES[kind](message, http_status=http_status, raw_body=raw_body)
