"""
Helpers for retrieving and refreshing the Garmin OAuth2 access token.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional, Protocol

import httpx
from pydantic import ValidationError

from garmin_broker.clients.garmin_auth import (
    CredentialsMissingError,
    ExchangeRejectedError,
    RefreshFailedError,
    TokenPayloadError,
    UpstreamUnavailableError,
)
from garmin_broker.clients.kv_store import CredentialStore
from garmin_broker.core.config import OAUTH1_TOKEN_KEY, OAUTH2_TOKEN_KEY
from garmin_broker.models import OAuth1Credential, OAuth2Credential

logger = logging.getLogger(__name__)

_REFRESH_ERRORS = (
    ExchangeRejectedError,
    UpstreamUnavailableError,
    TokenPayloadError,
    httpx.HTTPError,
)


class TokenExchanger(Protocol):
    async def exchange(self, oauth1: OAuth1Credential) -> OAuth2Credential:
        ...


class GarminTokenService:
    """Hands out a usable access token, refreshing it lazily when stale.

    The in-process cache lives only as long as this object; build one per
    invocation so every request starts from the durable store.
    """

    SAFETY_MARGIN_SECONDS = 60

    def __init__(
        self,
        store: CredentialStore,
        exchange_client: TokenExchanger,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._exchange = exchange_client
        self._clock = clock
        self._cached: Optional[OAuth2Credential] = None
        self._lock = asyncio.Lock()

    def invalidate(self) -> None:
        """Drop the in-process token so the next call reloads or refreshes."""
        self._cached = None

    async def get_access_token(self) -> str:
        """Return an access token valid for at least the safety margin."""
        cached = self._cached
        if cached is not None and cached.is_usable(self._clock(), self.SAFETY_MARGIN_SECONDS):
            return cached.access_token

        # Concurrent reads inside one invocation share a single refresh.
        async with self._lock:
            cached = self._cached
            if cached is not None and cached.is_usable(
                self._clock(), self.SAFETY_MARGIN_SECONDS
            ):
                return cached.access_token

            credential = self._load(OAUTH2_TOKEN_KEY, OAuth2Credential)
            if credential is None:
                raise CredentialsMissingError(
                    OAUTH2_TOKEN_KEY,
                    "No OAuth2 token in the credential store. Upload tokens first.",
                )

            if not credential.is_usable(self._clock(), self.SAFETY_MARGIN_SECONDS):
                credential = await self._refresh()

            self._cached = credential
            return credential.access_token

    async def _refresh(self) -> OAuth2Credential:
        oauth1 = self._load(OAUTH1_TOKEN_KEY, OAuth1Credential)
        if oauth1 is None:
            raise CredentialsMissingError(
                OAUTH1_TOKEN_KEY,
                "No OAuth1 token in the credential store. "
                "Re-run the bootstrap login and re-upload tokens.",
            )

        logger.info("OAuth2 access token is stale; exchanging OAuth1 token")
        try:
            return await self._exchange.exchange(oauth1)
        except _REFRESH_ERRORS as exc:
            logger.error("OAuth2 token refresh failed: %s", type(exc).__name__)
            raise RefreshFailedError(exc) from exc

    def _load(self, key: str, model):
        raw = self._store.read(key)
        if raw is None:
            return None
        try:
            return model.model_validate_json(raw)
        except ValidationError as exc:
            raise TokenPayloadError(f"Stored {key} record is malformed.") from exc


__all__ = ["GarminTokenService", "TokenExchanger"]
