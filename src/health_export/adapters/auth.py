"""
Access tokens as explicit short-lived values.

Callers hold the current ``AccessToken`` in a local, pass it to adapter
factories, and call ``refresh_if_needed`` before each batch of remote
operations. Nothing caches a token on an adapter instance.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Protocol

import httpx
from loguru import logger

from ..errors import AppError, AuthError, map_http_status, map_transport_error
from ..result import Err, Ok, Result
from ..utils import utc_now

EXPIRY_SKEW = timedelta(seconds=60)


@dataclass(frozen=True)
class AccessToken:
    value: str
    expires_at: Optional[datetime] = None

    def expires_soon(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or utc_now()) + EXPIRY_SKEW >= self.expires_at

    @property
    def header(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.value}"}


class TokenProvider(Protocol):
    async def fetch_token(self) -> Result[AccessToken, AppError]: ...


class StaticTokenProvider:
    """Token supplied by the host, e.g. from an env var."""

    def __init__(self, token: Optional[str]) -> None:
        self._token = token

    async def fetch_token(self) -> Result[AccessToken, AppError]:
        if not self._token:
            return Err(AuthError("No access token configured. Sign in first.", "NO_TOKEN"))
        return Ok(AccessToken(self._token))


class RefreshTokenProvider:
    """OAuth2 refresh-token grant."""

    def __init__(
        self,
        client_id: str,
        refresh_token: str,
        *,
        client_secret: Optional[str] = None,
        token_url: str = "https://oauth2.googleapis.com/token",
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._refresh_token = refresh_token
        self._token_url = token_url
        self._client = client

    async def fetch_token(self) -> Result[AccessToken, AppError]:
        form = {
            "grant_type": "refresh_token",
            "client_id": self._client_id,
            "refresh_token": self._refresh_token,
        }
        if self._client_secret:
            form["client_secret"] = self._client_secret

        try:
            if self._client is not None:
                resp = await self._client.post(self._token_url, data=form)
            else:
                async with httpx.AsyncClient() as client:
                    resp = await client.post(self._token_url, data=form)

            if resp.status_code == 400 and _error_code(resp) == "invalid_grant":
                logger.error("[Auth] Refresh token revoked")
                return Err(AuthError("Authorization was revoked. Sign in again.", "AUTH_REVOKED"))
            if resp.status_code >= 400:
                return Err(map_http_status(resp.status_code, "token refresh"))

            body = resp.json()
            expires_in = int(body.get("expires_in", 3600))
            token = AccessToken(body["access_token"], utc_now() + timedelta(seconds=expires_in))
            logger.debug(f"[Auth] Access token refreshed (expires in {expires_in}s)")
            return Ok(token)
        except Exception as e:
            return Err(map_transport_error(e, "token refresh"))


def _error_code(resp: httpx.Response) -> Optional[str]:
    try:
        return resp.json().get("error")
    except ValueError:
        return None


async def refresh_if_needed(
    provider: TokenProvider, token: Optional[AccessToken]
) -> Result[AccessToken, AppError]:
    """Return ``token`` if still usable, otherwise fetch a fresh one."""
    if token is not None and not token.expires_soon():
        return Ok(token)
    return await provider.fetch_token()
