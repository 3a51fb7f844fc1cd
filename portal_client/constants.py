from __future__ import annotations

import logging

IDEMPOTENT_METHODS = {"GET", "HEAD", "OPTIONS", "PUT", "DELETE"}

LOGGER = logging.getLogger("portal_client.api")
APP_VERSION = "0.1.0"

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_REFRESH_PATH = "/api/auth/refresh"

ACCESS_TOKEN_COOKIE = "accessToken"
REFRESH_TOKEN_COOKIE = "refreshToken"
ACCESS_TOKEN_TTL_SECONDS = 24 * 60 * 60
REFRESH_TOKEN_TTL_SECONDS = 7 * 24 * 60 * 60
SAMESITE_VALUES = {"lax", "strict"}

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "Cache-Control": "no-cache",
    "X-Requested-With": "XMLHttpRequest",
    "User-Agent": f"portal-client/{APP_VERSION}",
}
