"""
Google OpenID Connect client (authorization-code flow).

Only the three endpoints the login flow needs are used: the authorization
endpoint (browser redirect), the token endpoint (code exchange) and the
userinfo endpoint (identity claims).
"""

from __future__ import annotations

from urllib.parse import urlencode

import httpx
import structlog
from pydantic import ValidationError

from app.core.config import get_settings
from taskhub_shared.schemas.users import OIDCClaims

log = structlog.get_logger()
settings = get_settings()

GOOGLE_AUTHORIZATION_ENDPOINT = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_ENDPOINT = "https://openidconnect.googleapis.com/v1/userinfo"
SCOPES = "openid email profile"


class OIDCError(Exception):
    """The identity provider rejected a request or returned garbage."""


class GoogleOIDCClient:
    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def authorization_url(self, state: str) -> str:
        query = urlencode(
            {
                "client_id": self.client_id,
                "redirect_uri": self.redirect_uri,
                "response_type": "code",
                "scope": SCOPES,
                "state": state,
                "access_type": "online",
                "prompt": "select_account",
            }
        )
        return f"{GOOGLE_AUTHORIZATION_ENDPOINT}?{query}"

    async def exchange_code(self, code: str) -> dict:
        """Trade an authorization code for the provider's token response."""
        try:
            response = await self._http().post(
                GOOGLE_TOKEN_ENDPOINT,
                data={
                    "code": code,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "redirect_uri": self.redirect_uri,
                    "grant_type": "authorization_code",
                },
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            log.error("oidc.token_error", status=exc.response.status_code)
            raise OIDCError("Token exchange failed") from exc
        except httpx.HTTPError as exc:
            log.error("oidc.token_unreachable", error=str(exc))
            raise OIDCError("Identity provider unreachable") from exc

        tokens = response.json()
        if "access_token" not in tokens:
            raise OIDCError("Token response has no access_token")
        return tokens

    async def fetch_userinfo(self, access_token: str) -> OIDCClaims:
        """Fetch the signed-in user's identity claims."""
        try:
            response = await self._http().get(
                GOOGLE_USERINFO_ENDPOINT,
                headers={"Authorization": f"Bearer {access_token}"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            log.error("oidc.userinfo_error", status=exc.response.status_code)
            raise OIDCError("Userinfo request failed") from exc
        except httpx.HTTPError as exc:
            log.error("oidc.userinfo_unreachable", error=str(exc))
            raise OIDCError("Identity provider unreachable") from exc

        try:
            return OIDCClaims.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise OIDCError("Malformed userinfo response") from exc

    async def authenticate(self, code: str) -> OIDCClaims:
        tokens = await self.exchange_code(code)
        return await self.fetch_userinfo(tokens["access_token"])


_oidc_client: GoogleOIDCClient | None = None


def get_oidc_client() -> GoogleOIDCClient:
    """FastAPI dependency: the process-wide Google client."""
    global _oidc_client
    if _oidc_client is None:
        _oidc_client = GoogleOIDCClient(
            settings.google_client_id,
            settings.google_client_secret,
            settings.google_redirect_uri,
        )
    return _oidc_client


async def close_oidc_client() -> None:
    global _oidc_client
    if _oidc_client is not None:
        await _oidc_client.close()
        _oidc_client = None
