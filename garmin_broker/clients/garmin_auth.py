"""
Garmin Connect OAuth utilities.

These helpers fetch the shared consumer key and trade the stored OAuth1
token for a fresh OAuth2 credential.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

import httpx
from pydantic import ValidationError

from garmin_broker.clients.kv_store import CredentialStore
from garmin_broker.clients.oauth1 import OAuth1Signer
from garmin_broker.core.config import (
    OAUTH2_TOKEN_KEY,
    OAUTH_CONSUMER_KEY,
    GarminSettings,
)
from garmin_broker.models import (
    ConsumerKeyPair,
    OAuth1Credential,
    OAuth2Credential,
    OAuth2TokenResponse,
)

logger = logging.getLogger(__name__)

CONSUMER_TTL_SECONDS = 86400


class CredentialsMissingError(Exception):
    """Raised when a required credential record is absent from the store."""

    def __init__(self, key: str, message: Optional[str] = None) -> None:
        self.key = key
        super().__init__(message or f"No {key} in the credential store.")


class UpstreamUnavailableError(Exception):
    """Raised when the consumer key source cannot be reached or read."""


class ExchangeRejectedError(Exception):
    """Raised when the exchange endpoint answers with a non-2xx status."""

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"OAuth2 token exchange failed ({status_code}): {body}")


class TokenPayloadError(Exception):
    """Raised when a token payload does not have the expected shape."""


class RefreshFailedError(Exception):
    """Raised when a stale access token could not be replaced."""

    def __init__(self, cause: Exception) -> None:
        self.cause = cause
        super().__init__(f"Token refresh failed: {cause}")


class ConsumerKeyCache:
    """Serve the shared OAuth1 consumer key, cached in the durable store for a day."""

    def __init__(
        self,
        store: CredentialStore,
        settings: GarminSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._store = store
        self._settings = settings
        self._transport = transport
        self._pair: Optional[ConsumerKeyPair] = None

    async def get(self) -> ConsumerKeyPair:
        if self._pair is not None:
            return self._pair

        cached = self._store.read(OAUTH_CONSUMER_KEY)
        if cached is not None:
            try:
                self._pair = ConsumerKeyPair.model_validate_json(cached)
                return self._pair
            except ValidationError:
                logger.warning("Ignoring malformed cached consumer key record")

        self._pair = await self._fetch()
        self._store.write(
            OAUTH_CONSUMER_KEY,
            self._pair.model_dump_json().encode("utf-8"),
            ttl=CONSUMER_TTL_SECONDS,
        )
        return self._pair

    async def _fetch(self) -> ConsumerKeyPair:
        logger.info("Fetching OAuth consumer key from %s", self._settings.consumer_url)
        try:
            async with httpx.AsyncClient(
                timeout=self._settings.timeout_seconds, transport=self._transport
            ) as client:
                response = await client.get(self._settings.consumer_url)
        except httpx.HTTPError as exc:
            raise UpstreamUnavailableError(
                f"Failed to fetch OAuth consumer keys: {exc}"
            ) from exc

        if not response.is_success:
            raise UpstreamUnavailableError(
                f"Failed to fetch OAuth consumer keys: {response.status_code}"
            )
        try:
            return ConsumerKeyPair.model_validate_json(response.content)
        except ValidationError as exc:
            raise UpstreamUnavailableError(
                "Consumer key source returned an unexpected payload."
            ) from exc


class GarminTokenExchangeClient:
    """Exchange the OAuth1 token for an OAuth2 credential and persist it."""

    def __init__(
        self,
        store: CredentialStore,
        consumer_keys: ConsumerKeyCache,
        settings: GarminSettings,
        *,
        signer: Optional[OAuth1Signer] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._consumer_keys = consumer_keys
        self._settings = settings
        self._signer = signer or OAuth1Signer(clock=clock)
        self._transport = transport
        self._clock = clock

    async def exchange(self, oauth1: OAuth1Credential) -> OAuth2Credential:
        consumer = await self._consumer_keys.get()
        signed = self._signer.sign(
            consumer, oauth1, "POST", self._settings.exchange_url
        )

        headers = {
            "Authorization": signed.header,
            "Content-Type": "application/x-www-form-urlencoded",
            "User-Agent": self._settings.user_agent,
        }
        async with httpx.AsyncClient(
            timeout=self._settings.timeout_seconds, transport=self._transport
        ) as client:
            response = await client.post(self._settings.exchange_url, headers=headers)

        if not response.is_success:
            logger.error("OAuth2 token exchange rejected with %s", response.status_code)
            raise ExchangeRejectedError(response.status_code, response.text)

        try:
            payload = OAuth2TokenResponse.model_validate_json(response.content)
        except ValidationError as exc:
            raise TokenPayloadError(
                "Exchange endpoint returned an incomplete token payload."
            ) from exc

        credential = payload.to_credential(int(self._clock()))
        self._store.write(
            OAUTH2_TOKEN_KEY, credential.model_dump_json().encode("utf-8")
        )
        logger.info("Stored refreshed OAuth2 token expiring at %s", credential.expires_at)
        return credential


__all__ = [
    "ConsumerKeyCache",
    "CredentialsMissingError",
    "ExchangeRejectedError",
    "GarminTokenExchangeClient",
    "RefreshFailedError",
    "TokenPayloadError",
    "UpstreamUnavailableError",
]
