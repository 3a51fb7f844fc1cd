from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

from dotenv import load_dotenv

from .constants import (
    ACCESS_TOKEN_TTL_SECONDS,
    DEFAULT_REFRESH_PATH,
    DEFAULT_TIMEOUT_SECONDS,
    LOGGER,
    REFRESH_TOKEN_TTL_SECONDS,
    SAMESITE_VALUES,
)


def is_truthy(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_env_int(key: str, default: int) -> int:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{key} must be an integer value.")


def load_env(env_path: str | Path | None = None) -> None:
    path = Path(env_path) if env_path else Path.cwd() / ".env"
    if not path.exists():
        return
    load_dotenv(path, override=True)


@dataclass(frozen=True)
class ClientSettings:
    base_url: str
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    refresh_path: str = DEFAULT_REFRESH_PATH
    access_token_ttl: int = ACCESS_TOKEN_TTL_SECONDS
    refresh_token_ttl: int = REFRESH_TOKEN_TTL_SECONDS
    cookie_secure: bool = False
    cookie_samesite: str = "lax"
    max_retries: int = 0

    @classmethod
    def from_env(cls) -> "ClientSettings":
        base_url = os.getenv("PORTAL_API_URL", "").strip()
        if not base_url:
            raise RuntimeError("Missing required environment variable: PORTAL_API_URL")

        timeout_ms = _get_env_int("PORTAL_API_TIMEOUT_MS", int(DEFAULT_TIMEOUT_SECONDS * 1000))
        settings = cls(
            base_url=base_url.rstrip("/"),
            timeout=timeout_ms / 1000,
            refresh_path=os.getenv("PORTAL_REFRESH_PATH", "").strip() or DEFAULT_REFRESH_PATH,
            access_token_ttl=_get_env_int(
                "PORTAL_ACCESS_TOKEN_TTL_SECONDS", ACCESS_TOKEN_TTL_SECONDS
            ),
            refresh_token_ttl=_get_env_int(
                "PORTAL_REFRESH_TOKEN_TTL_SECONDS", REFRESH_TOKEN_TTL_SECONDS
            ),
            cookie_secure=is_truthy(os.getenv("PORTAL_COOKIE_SECURE")),
            cookie_samesite=os.getenv("PORTAL_COOKIE_SAMESITE", "lax").strip().lower() or "lax",
            max_retries=_get_env_int("PORTAL_MAX_RETRIES", 0),
        )
        validate_settings(settings)
        return settings


def validate_settings(settings: ClientSettings) -> None:
    parsed = urlparse(settings.base_url)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise RuntimeError(
            "PORTAL_API_URL must be an http(s) URL (for example: https://api.example.gov.vn)."
        )
    if parsed.scheme == "http" and settings.cookie_secure:
        LOGGER.warning(
            "PORTAL_COOKIE_SECURE is set but PORTAL_API_URL is not HTTPS; "
            "token cookies will not be sent to the backend."
        )

    if settings.timeout <= 0:
        raise RuntimeError("PORTAL_API_TIMEOUT_MS must be greater than zero.")
    if settings.access_token_ttl <= 0 or settings.refresh_token_ttl <= 0:
        raise RuntimeError("Token TTL values must be greater than zero.")
    if settings.cookie_samesite not in SAMESITE_VALUES:
        raise RuntimeError("PORTAL_COOKIE_SAMESITE must be one of: lax, strict.")
    if settings.max_retries < 0:
        raise RuntimeError("PORTAL_MAX_RETRIES must not be negative.")


def setup_logging() -> bool:
    debug_enabled = is_truthy(os.getenv("PORTAL_API_DEBUG", "0"))
    if debug_enabled:
        logging.basicConfig(level=logging.INFO)
        LOGGER.setLevel(logging.INFO)
    return debug_enabled
