"""
Garmin Connect data API client.

Every call carries the current bearer token; an auth rejection clears the
cached token and the call is retried once.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

import httpx

from garmin_broker.core.config import GarminSettings

logger = logging.getLogger(__name__)

_AUTH_FAILURES = (401, 403)


class ApiError(Exception):
    """Raised when the data API returns a non-2xx status after the retry policy."""

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"Garmin API error ({status_code}): {body}")


class AccessTokenSupplier(Protocol):
    async def get_access_token(self) -> str:
        ...

    def invalidate(self) -> None:
        ...


class GarminClient:
    """Authenticated request executor for ``connectapi.garmin.com``."""

    def __init__(
        self,
        token_supplier: AccessTokenSupplier,
        settings: GarminSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._tokens = token_supplier
        self._settings = settings
        self._transport = transport

    async def get(self, path: str, params: Optional[Dict[str, str]] = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, body: Any) -> Any:
        return await self.request("POST", path, json_body=body)

    async def put(self, path: str, body: Any) -> Any:
        return await self.request("PUT", path, json_body=body)

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, str]] = None,
        json_body: Any = None,
    ) -> Any:
        """Issue an authenticated request and return the decoded JSON body.

        Returns ``None`` for 204 and empty responses.
        """
        url = f"{self._settings.api_base_url}{path}"
        async with httpx.AsyncClient(
            timeout=self._settings.timeout_seconds, transport=self._transport
        ) as client:
            token = await self._tokens.get_access_token()
            response = await self._send(client, method, url, token, params, json_body)

            if response.status_code in _AUTH_FAILURES:
                logger.warning(
                    "Garmin API rejected token (%s) for %s %s; retrying once",
                    response.status_code,
                    method,
                    path,
                )
                self._tokens.invalidate()
                token = await self._tokens.get_access_token()
                response = await self._send(client, method, url, token, params, json_body)

        if response.status_code == 204:
            return None
        if not response.is_success:
            raise ApiError(response.status_code, response.text)
        if not response.content:
            return None
        return response.json()

    async def _send(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        token: str,
        params: Optional[Dict[str, str]],
        json_body: Any,
    ) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {token}",
            "User-Agent": self._settings.user_agent,
        }
        if json_body is not None:
            return await client.request(
                method, url, params=params, json=json_body, headers=headers
            )
        return await client.request(method, url, params=params, headers=headers)


__all__ = ["AccessTokenSupplier", "ApiError", "GarminClient"]
