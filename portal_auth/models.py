from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Session:
    access_token: str
    refresh_token: str

    def __repr__(self) -> str:
        return "Session(access_token=***, refresh_token=***)"

    @classmethod
    def from_payload(cls, payload: Any, *, previous_refresh_token: str | None = None) -> "Session":
        """Build a session from a login or refresh response body.

        Accepted shapes: ``{accessToken, refreshToken?}``, ``{tokens: {...}}``
        and either of those wrapped in ``{status: "success", data: ...}``.
        A missing refresh token falls back to ``previous_refresh_token``.
        """
        if isinstance(payload, dict) and payload.get("status") == "success":
            payload = payload.get("data")
        if not isinstance(payload, dict):
            raise RuntimeError("Token response must be a JSON object.")

        tokens = payload.get("tokens")
        if isinstance(tokens, dict):
            payload = tokens

        access_token = payload.get("accessToken")
        refresh_token = payload.get("refreshToken") or previous_refresh_token

        if not isinstance(access_token, str) or not access_token:
            raise RuntimeError("Token response missing accessToken.")
        if not isinstance(refresh_token, str) or not refresh_token:
            raise RuntimeError("Token response missing refreshToken.")

        return cls(access_token=access_token, refresh_token=refresh_token)


@dataclass
class StoredToken:
    value: str
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at
