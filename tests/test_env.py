import logging

import httpx
import pytest

from portal_auth.token_store import CookieTokenStore
from portal_client.client import PortalClient
from portal_client.constants import LOGGER
from portal_client.env import ClientSettings, load_env, setup_logging

ENV_KEYS = (
    "PORTAL_API_URL",
    "PORTAL_API_TIMEOUT_MS",
    "PORTAL_REFRESH_PATH",
    "PORTAL_ACCESS_TOKEN_TTL_SECONDS",
    "PORTAL_REFRESH_TOKEN_TTL_SECONDS",
    "PORTAL_COOKIE_SECURE",
    "PORTAL_COOKIE_SAMESITE",
    "PORTAL_MAX_RETRIES",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults(monkeypatch) -> None:
    monkeypatch.setenv("PORTAL_API_URL", "https://api.example.gov.vn/")

    settings = ClientSettings.from_env()

    assert settings.base_url == "https://api.example.gov.vn"
    assert settings.timeout == 30.0
    assert settings.refresh_path == "/api/auth/refresh"
    assert settings.access_token_ttl == 86400
    assert settings.refresh_token_ttl == 604800
    assert settings.cookie_secure is False
    assert settings.cookie_samesite == "lax"
    assert settings.max_retries == 0


def test_overrides(monkeypatch) -> None:
    monkeypatch.setenv("PORTAL_API_URL", "https://api.example.gov.vn")
    monkeypatch.setenv("PORTAL_API_TIMEOUT_MS", "60000")
    monkeypatch.setenv("PORTAL_COOKIE_SECURE", "true")
    monkeypatch.setenv("PORTAL_COOKIE_SAMESITE", "Strict")
    monkeypatch.setenv("PORTAL_MAX_RETRIES", "2")

    settings = ClientSettings.from_env()

    assert settings.timeout == 60.0
    assert settings.cookie_secure is True
    assert settings.cookie_samesite == "strict"
    assert settings.max_retries == 2


def test_missing_url_raises() -> None:
    with pytest.raises(RuntimeError, match="PORTAL_API_URL"):
        ClientSettings.from_env()


@pytest.mark.parametrize(
    ("key", "value"),
    [
        ("PORTAL_API_TIMEOUT_MS", "soon"),
        ("PORTAL_API_TIMEOUT_MS", "0"),
        ("PORTAL_COOKIE_SAMESITE", "none"),
        ("PORTAL_MAX_RETRIES", "-1"),
    ],
)
def test_invalid_values_raise(monkeypatch, key: str, value: str) -> None:
    monkeypatch.setenv("PORTAL_API_URL", "https://api.example.gov.vn")
    monkeypatch.setenv(key, value)

    with pytest.raises(RuntimeError):
        ClientSettings.from_env()


def test_non_http_url_raises(monkeypatch) -> None:
    monkeypatch.setenv("PORTAL_API_URL", "ftp://api.example.gov.vn")

    with pytest.raises(RuntimeError, match="http"):
        ClientSettings.from_env()


def test_load_env_reads_dotenv_file(tmp_path, monkeypatch) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("PORTAL_API_URL=https://from-dotenv.example.gov.vn\n", encoding="utf-8")
    monkeypatch.setenv("PORTAL_API_URL", "https://placeholder.example.gov.vn")

    load_env(env_file)

    assert ClientSettings.from_env().base_url == "https://from-dotenv.example.gov.vn"


def test_load_env_missing_file_is_ignored(tmp_path) -> None:
    load_env(tmp_path / "absent.env")


def test_setup_logging(monkeypatch) -> None:
    monkeypatch.setenv("PORTAL_API_DEBUG", "yes")

    assert setup_logging() is True
    assert LOGGER.level == logging.INFO
    LOGGER.setLevel(logging.NOTSET)


@pytest.mark.asyncio
async def test_client_from_settings_uses_cookie_store() -> None:
    seen: list[str | None] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers.get("authorization"))
        return httpx.Response(200, json={"status": "success", "data": {"ok": True}})

    settings = ClientSettings(base_url="https://api.example.gov.vn", cookie_samesite="strict")
    client = PortalClient.from_settings(settings, transport=httpx.MockTransport(handler))

    async with client:
        assert isinstance(client.token_store, CookieTokenStore)
        assert client.token_store.cookies is client.http_client.cookies
        client.token_store.set_session("access-1", "refresh-1")
        assert await client.get("/api/areas") == {"ok": True}

    assert seen == ["Bearer access-1"]
