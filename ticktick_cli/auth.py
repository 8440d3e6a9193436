"""OAuth2 token lifecycle for the TickTick Open API.

``TokenManager`` guarantees every outbound API call carries a valid bearer
token: it is asked once per request and refreshes the stored token set when
it is within a minute of expiring. ``AuthOperations`` backs the ``auth``
command group and MCP tool.
"""

from __future__ import annotations

import logging
import secrets
import string
import time
from datetime import datetime, timezone
from pathlib import Path
from urllib.parse import urlencode

import httpx

from ticktick_cli.config import Credentials
from ticktick_cli.errors import (
    NotAuthenticated,
    TokenExchangeFailed,
    TokenRefreshFailed,
    ValidationError,
)
from ticktick_cli.tokens import TokenSet, TokenStore

logger = logging.getLogger(__name__)

EXPIRY_BUFFER_MS = 60_000
OAUTH_SCOPE = "tasks:read tasks:write"
_STATE_ALPHABET = string.ascii_letters + string.digits


def now_ms() -> int:
    return int(time.time() * 1000)


def is_expired(tokens: TokenSet, now: int | None = None) -> bool:
    """True once ``now`` is within EXPIRY_BUFFER_MS of ``expires_at``."""
    current = now_ms() if now is None else now
    return current >= tokens.expires_at - EXPIRY_BUFFER_MS


def generate_state(length: int = 32) -> str:
    return "".join(secrets.choice(_STATE_ALPHABET) for _ in range(length))


def iso_from_ms(ms: int) -> str:
    dt = datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class TokenManager:
    """Obtains, validates and refreshes access tokens."""

    def __init__(
        self,
        credentials: Credentials,
        store: TokenStore,
        http: httpx.AsyncClient,
    ) -> None:
        self.credentials = credentials
        self.store = store
        self._http = http

    def is_expired(self, tokens: TokenSet, now: int | None = None) -> bool:
        return is_expired(tokens, now)

    def authorization_url(self) -> tuple[str, str]:
        """Build the region's authorize URL. Returns (url, state)."""
        endpoints = self.credentials.endpoints
        state = generate_state()
        params = {
            "client_id": self.credentials.client_id,
            "redirect_uri": self.credentials.redirect_uri,
            "response_type": "code",
            "scope": OAUTH_SCOPE,
            "state": state,
        }
        return f"{endpoints.authorize_url}?{urlencode(params)}", state

    async def exchange_code(self, code: str) -> TokenSet:
        """Authorization-code grant."""
        data = await self._token_request(
            {
                "client_id": self.credentials.client_id,
                "client_secret": self.credentials.client_secret,
                "code": code,
                "grant_type": "authorization_code",
                "redirect_uri": self.credentials.redirect_uri,
            },
            TokenExchangeFailed,
        )
        logger.info("Exchanged authorization code for tokens")
        return self._token_set(data)

    async def refresh(self, refresh_token: str) -> TokenSet:
        """Refresh-token grant. Keeps ``refresh_token`` if none is returned."""
        data = await self._token_request(
            {
                "client_id": self.credentials.client_id,
                "client_secret": self.credentials.client_secret,
                "refresh_token": refresh_token,
                "grant_type": "refresh_token",
            },
            TokenRefreshFailed,
        )
        logger.info("Access token refreshed")
        return self._token_set(data, fallback_refresh=refresh_token)

    async def get_valid_access_token(self) -> str:
        tokens = self.store.load()
        if tokens is None or not tokens.access_token:
            raise NotAuthenticated()

        if not self.is_expired(tokens):
            return tokens.access_token

        if not tokens.refresh_token:
            raise NotAuthenticated(
                "Access token expired and no refresh token is stored. Run: ticktick auth login"
            )
        fresh = await self.refresh(tokens.refresh_token)
        self.store.save(fresh)
        return fresh.access_token

    async def _token_request(self, form: dict, error_cls) -> dict:
        token_url = self.credentials.endpoints.token_url
        response = await self._http.post(
            token_url,
            data=form,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        if not response.is_success:
            raise error_cls(response.text)
        try:
            data = response.json()
        except ValueError:
            raise error_cls(response.text) from None
        if not isinstance(data, dict) or not data.get("access_token") or "expires_in" not in data:
            raise error_cls(response.text)
        return data

    def _token_set(self, data: dict, fallback_refresh: str | None = None) -> TokenSet:
        now = now_ms()
        return TokenSet(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token") or fallback_refresh,
            expires_at=now + int(data["expires_in"]) * 1000,
            token_type=data.get("token_type"),
            stored_at=now,
        )


class AuthOperations:
    """The ``auth`` commands: status, login, exchange, refresh, logout."""

    def __init__(self, manager: TokenManager | None, store: TokenStore, token_path: Path | None = None) -> None:
        self._m = manager
        self._store = store
        self.token_path = token_path

    def status(self) -> dict:
        tokens = self._store.load()
        if tokens is None or not tokens.access_token:
            return {
                "authenticated": False,
                "message": "Not authenticated. Run: ticktick auth login",
            }

        expired = is_expired(tokens)
        expires_in = 0 if expired else (tokens.expires_at - now_ms()) // 1000
        return {
            "authenticated": True,
            "expired": expired,
            "expiresAt": iso_from_ms(tokens.expires_at),
            "expiresIn": f"{expires_in} seconds",
            "tokenPath": str(self.token_path) if self.token_path else None,
        }

    def login(self) -> dict:
        url, state = self._m.authorization_url()
        return {
            "message": "Open the authorization URL in your browser",
            "url": url,
            "state": state,
            "nextStep": "After authorizing, run: ticktick auth exchange YOUR_CODE",
        }

    async def exchange(self, code: str) -> dict:
        code = (code or "").strip()
        if not code:
            raise ValidationError("Authorization code is required")
        tokens = await self._m.exchange_code(code)
        self._store.save(tokens)
        return {
            "success": True,
            "message": "Authentication successful!",
            "expiresAt": iso_from_ms(tokens.expires_at),
            "tokenPath": str(self.token_path) if self.token_path else None,
        }

    async def refresh(self) -> dict:
        tokens = self._store.load()
        if tokens is None or not tokens.refresh_token:
            raise NotAuthenticated("No refresh token available. Run: ticktick auth login")
        fresh = await self._m.refresh(tokens.refresh_token)
        self._store.save(fresh)
        return {
            "success": True,
            "message": "Token refreshed successfully!",
            "expiresAt": iso_from_ms(fresh.expires_at),
        }

    def logout(self) -> dict:
        self._store.clear()
        return {"success": True, "message": "Logged out. Tokens cleared."}
