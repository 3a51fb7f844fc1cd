from __future__ import annotations

import json
import os
import tempfile
import time
from abc import ABC, abstractmethod
from dataclasses import asdict
from http.cookiejar import Cookie
from pathlib import Path

import httpx

from portal_auth.models import Session, StoredToken
from portal_client.constants import (
    ACCESS_TOKEN_COOKIE,
    ACCESS_TOKEN_TTL_SECONDS,
    REFRESH_TOKEN_COOKIE,
    REFRESH_TOKEN_TTL_SECONDS,
    SAMESITE_VALUES,
)


class TokenStore(ABC):
    """Synchronous access to the access/refresh token pair.

    Both tokens are always written together and cleared together. A token
    past its TTL reads as absent.
    """

    def __init__(
        self,
        *,
        access_ttl: float = ACCESS_TOKEN_TTL_SECONDS,
        refresh_ttl: float = REFRESH_TOKEN_TTL_SECONDS,
        clock=time.time,
    ) -> None:
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self._clock = clock

    def get_access_token(self) -> str | None:
        return self._get_valid(ACCESS_TOKEN_COOKIE)

    def get_refresh_token(self) -> str | None:
        return self._get_valid(REFRESH_TOKEN_COOKIE)

    def get_session(self) -> Session | None:
        access_token = self.get_access_token()
        refresh_token = self.get_refresh_token()
        if access_token is None or refresh_token is None:
            return None
        return Session(access_token=access_token, refresh_token=refresh_token)

    def set_session(
        self,
        access_token: str,
        refresh_token: str,
        access_ttl: float | None = None,
        refresh_ttl: float | None = None,
    ) -> None:
        if not access_token or not refresh_token:
            raise ValueError("Both access_token and refresh_token are required.")

        now = self._clock()
        self._write_tokens(
            {
                ACCESS_TOKEN_COOKIE: StoredToken(
                    access_token, now + (self.access_ttl if access_ttl is None else access_ttl)
                ),
                REFRESH_TOKEN_COOKIE: StoredToken(
                    refresh_token, now + (self.refresh_ttl if refresh_ttl is None else refresh_ttl)
                ),
            }
        )

    def clear_session(self) -> None:
        self._clear_tokens()

    def _get_valid(self, name: str) -> str | None:
        token = self._read_token(name)
        if token is None or token.is_expired(self._clock()):
            return None
        return token.value

    @abstractmethod
    def _read_token(self, name: str) -> StoredToken | None:
        raise NotImplementedError

    @abstractmethod
    def _write_tokens(self, tokens: dict[str, StoredToken]) -> None:
        raise NotImplementedError

    @abstractmethod
    def _clear_tokens(self) -> None:
        raise NotImplementedError


class MemoryTokenStore(TokenStore):
    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._tokens: dict[str, StoredToken] = {}

    def _read_token(self, name: str) -> StoredToken | None:
        return self._tokens.get(name)

    def _write_tokens(self, tokens: dict[str, StoredToken]) -> None:
        self._tokens = dict(tokens)

    def _clear_tokens(self) -> None:
        self._tokens = {}


class FileTokenStore(TokenStore):
    def __init__(self, path: str | Path = ".portal_session.json", **kwargs) -> None:
        super().__init__(**kwargs)
        self._path = Path(path)

    def _read_token(self, name: str) -> StoredToken | None:
        payload = self._read_all().get(name)
        if payload is None:
            return None
        return StoredToken(**payload)

    def _write_tokens(self, tokens: dict[str, StoredToken]) -> None:
        self._write_all({name: asdict(token) for name, token in tokens.items()})

    def _clear_tokens(self) -> None:
        if self._path.exists():
            self._path.unlink()

    def _read_all(self) -> dict[str, dict]:
        if not self._path.exists():
            return {}

        raw = json.loads(self._path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise RuntimeError("Session file is invalid; expected top-level JSON object.")
        return raw

    def _write_all(self, payload: dict[str, dict]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f"{self._path.name}.",
            suffix=".tmp",
            dir=self._path.parent,
        )
        tmp_path = Path(tmp_name)

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2, sort_keys=True)
            os.replace(tmp_path, self._path)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()


class CookieTokenStore(TokenStore):
    """Keeps the tokens as ``accessToken`` / ``refreshToken`` cookies.

    Pass the HTTP client's own ``httpx.Cookies`` to have the cookies sent to
    the backend as well.
    """

    def __init__(
        self,
        cookies: httpx.Cookies | None = None,
        *,
        domain: str = "",
        path: str = "/",
        secure: bool = False,
        samesite: str = "lax",
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        if samesite.lower() not in SAMESITE_VALUES:
            raise ValueError("samesite must be one of: lax, strict.")
        self.cookies = cookies if cookies is not None else httpx.Cookies()
        self._domain = domain
        self._path = path
        self._secure = secure
        self._samesite = samesite.capitalize()

    def _read_token(self, name: str) -> StoredToken | None:
        for cookie in self.cookies.jar:
            if cookie.name != name or cookie.path != self._path:
                continue
            if self._domain and cookie.domain != self._domain:
                continue
            if cookie.value is None:
                return None
            expires_at = float(cookie.expires) if cookie.expires is not None else float("inf")
            return StoredToken(cookie.value, expires_at)
        return None

    def _write_tokens(self, tokens: dict[str, StoredToken]) -> None:
        self._clear_tokens()
        for name, token in tokens.items():
            self.cookies.jar.set_cookie(self._build_cookie(name, token))

    def _clear_tokens(self) -> None:
        names = {ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE}
        stale = [
            cookie
            for cookie in self.cookies.jar
            if cookie.name in names
            and cookie.path == self._path
            and (not self._domain or cookie.domain == self._domain)
        ]
        for cookie in stale:
            self.cookies.jar.clear(cookie.domain, cookie.path, cookie.name)

    def _build_cookie(self, name: str, token: StoredToken) -> Cookie:
        return Cookie(
            version=0,
            name=name,
            value=token.value,
            port=None,
            port_specified=False,
            domain=self._domain,
            domain_specified=bool(self._domain),
            domain_initial_dot=self._domain.startswith("."),
            path=self._path,
            path_specified=True,
            secure=self._secure,
            expires=int(token.expires_at),
            discard=False,
            comment=None,
            comment_url=None,
            rest={"SameSite": self._samesite},
            rfc2109=False,
        )
