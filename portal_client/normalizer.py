from __future__ import annotations

from typing import Any

import httpx

from .constants import LOGGER
from .errors import ApiError, ErrorKind, build_error
from .messages import PARSE_FAILURE_MESSAGE, default_message, translate

MAX_TEXT_MESSAGE_LENGTH = 500


def parse_body(response: httpx.Response) -> Any:
    """Decode the body as JSON when the content type says so, else as text.

    Never raises: an undecodable body becomes a fallback message object.
    """
    if not response.content:
        return None

    content_type = response.headers.get("content-type", "")
    try:
        if "json" in content_type.lower():
            return response.json()
        return response.text
    except (ValueError, UnicodeDecodeError) as error:
        LOGGER.warning(
            "Could not parse response body status=%s content_type=%s error=%s",
            response.status_code,
            content_type,
            error,
        )
        return {"message": PARSE_FAILURE_MESSAGE}


def _message_from_value(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    if isinstance(value, dict):
        for key in ("message", "msg"):
            nested = value.get(key)
            if isinstance(nested, str) and nested.strip():
                return nested.strip()
    return None


def extract_message(body: Any) -> str | None:
    if isinstance(body, dict):
        for key in ("message", "error"):
            message = _message_from_value(body.get(key))
            if message:
                return message

        errors = body.get("errors")
        if isinstance(errors, list):
            for item in errors:
                message = _message_from_value(item)
                if message:
                    return message
        return None

    if isinstance(body, str) and body.strip():
        return body.strip()[:MAX_TEXT_MESSAGE_LENGTH]
    return None


def classify_status(status_code: int) -> ErrorKind | None:
    if status_code == 401:
        return ErrorKind.SESSION_EXPIRED
    if status_code in {400, 422}:
        return ErrorKind.VALIDATION
    if status_code == 403:
        return ErrorKind.PERMISSION
    if status_code == 404:
        return ErrorKind.NOT_FOUND
    if status_code >= 500:
        return ErrorKind.SERVER
    if 200 <= status_code <= 299:
        return None
    if status_code == 408:
        return ErrorKind.TIMEOUT
    if 400 <= status_code < 500:
        return ErrorKind.VALIDATION
    return ErrorKind.SERVER


def unwrap_envelope(body: Any) -> Any:
    if isinstance(body, dict) and body.get("status") == "success" and "data" in body:
        return body["data"]
    return body


class ResponseNormalizer:
    """Turn a raw response into a payload or a classified ``ApiError``."""

    def classify(self, response: httpx.Response) -> Any | ApiError:
        body = parse_body(response)
        kind = classify_status(response.status_code)
        if kind is None:
            return unwrap_envelope(body)

        extracted = extract_message(body)
        message = translate(extracted) if extracted else default_message(kind)
        return build_error(
            kind,
            message,
            http_status=response.status_code,
            raw_body=body,
        )

    def normalize(self, response: httpx.Response) -> Any:
        result = self.classify(response)
        if isinstance(result, ApiError):
            LOGGER.debug(
                "Classified response status=%s kind=%s message=%s",
                result.http_status,
                result.kind.value,
                result.message,
            )
            raise result
        return result
