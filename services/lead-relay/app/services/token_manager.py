"""
Kommo OAuth2 access-token lifecycle

One shared access token per process. Refresh is single-flight: callers that
find the cache cold while an exchange is running wait for it instead of
issuing their own. Every successful exchange rotates the refresh token, so the
new one is always persisted.

The persisted refresh token assumes a single writer. Two processes refreshing
against the same row can rotate the token out from under each other.
"""
import asyncio
import logging
import time
from typing import Callable, Optional

import httpx

from app.core.errors import AuthError, TokenStoreError
from app.services.token_store import TokenStore

logger = logging.getLogger(__name__)

DEFAULT_SAFETY_MARGIN_SECONDS = 3600


class TokenManager:
    """Owns the cached access token and its expiry watermark"""

    def __init__(
        self,
        store: TokenStore,
        http_client: httpx.AsyncClient,
        base_url: str,
        client_id: str,
        client_secret: str,
        safety_margin: int = DEFAULT_SAFETY_MARGIN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.http_client = http_client
        self.token_url = f"{base_url.rstrip('/')}/oauth2/access_token"
        self.client_id = client_id
        self.client_secret = client_secret
        self.safety_margin = safety_margin
        self.clock = clock

        self._access_token: Optional[str] = None
        self._expires_at: float = 0.0
        self._lock = asyncio.Lock()

    @property
    def is_warm(self) -> bool:
        return self._access_token is not None and self.clock() < self._expires_at

    async def get_access_token(self) -> str:
        if self.is_warm:
            return self._access_token

        async with self._lock:
            # Another caller may have refreshed while we waited
            if self.is_warm:
                return self._access_token
            return await self._refresh()

    def invalidate(self) -> None:
        """Force the next get_access_token() to run a refresh exchange"""
        self._access_token = None
        self._expires_at = 0.0
        logger.info("access_token.invalidated")

    async def _refresh(self) -> str:
        logger.info("access_token.refreshing")
        try:
            refresh_token = await self.store.get_refresh_token()
        except TokenStoreError as exc:
            logger.error("access_token.refresh_failed", extra={"error": exc.message})
            raise AuthError(f"Failed to authenticate with Kommo: {exc.message}") from exc

        try:
            response = await self.http_client.post(
                self.token_url,
                json={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "grant_type": "refresh_token",
                    "refresh_token": refresh_token,
                },
            )
        except httpx.HTTPError as exc:
            logger.error("access_token.refresh_failed", extra={"error": str(exc)})
            raise AuthError(f"Failed to authenticate with Kommo: {exc}") from exc

        if response.is_error:
            body = response_body(response)
            logger.error(
                "access_token.refresh_failed",
                extra={"status_code": response.status_code, "error": str(body)},
            )
            raise AuthError("Failed to authenticate with Kommo", status_code=response.status_code, body=body)

        data = response_body(response)
        access_token = data.get("access_token") if isinstance(data, dict) else None
        if not access_token:
            raise AuthError("Kommo token response has no access_token", status_code=response.status_code, body=data)

        try:
            expires_in = int(data.get("expires_in") or 0)
        except (TypeError, ValueError) as exc:
            logger.error("access_token.refresh_failed", extra={"error": f"expires_in={data.get('expires_in')!r}"})
            await self._persist(data.get("refresh_token"))
            raise AuthError(
                "Kommo token response has an invalid expires_in",
                status_code=response.status_code,
                body=data,
            ) from exc

        lifetime = expires_in - self.safety_margin
        if lifetime <= 0:
            logger.warning("access_token.short_lived", extra={"error": f"expires_in={expires_in}"})
            lifetime = 0

        self._access_token = access_token
        self._expires_at = self.clock() + lifetime
        logger.info("access_token.refreshed")

        await self._persist(data.get("refresh_token"))
        return access_token

    async def _persist(self, new_refresh_token: Optional[str]) -> None:
        # The old refresh token is already spent server-side; losing the new one
        # means the next refresh fails until an operator re-seeds it.
        if not new_refresh_token:
            logger.critical("refresh_token.missing_in_response")
            return
        try:
            await self.store.save_refresh_token(new_refresh_token)
        except Exception as exc:
            logger.critical("refresh_token.persist_failed", exc_info=True, extra={"error": str(exc)})


def response_body(response: httpx.Response):
    try:
        return response.json()
    except ValueError:
        return response.text
