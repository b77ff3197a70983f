"""
FastAPI routes exposing the Garmin tools.
"""

from __future__ import annotations

import hmac
import logging
from http import HTTPStatus
from typing import Annotated, Any, Optional

import httpx
from fastapi import APIRouter, Depends, Header, HTTPException

from garmin_broker.clients.garmin import ApiError
from garmin_broker.clients.garmin_auth import (
    CredentialsMissingError,
    RefreshFailedError,
    TokenPayloadError,
)
from garmin_broker.clients.kv_store import CredentialStoreError
from garmin_broker.dependencies import get_app_settings, get_garmin_tools
from garmin_broker.schemas import ToolArguments, ToolResponse
from garmin_broker.services import GarminTools

router = APIRouter()
logger = logging.getLogger(__name__)

_TOOL_ERRORS = (
    ApiError,
    CredentialStoreError,
    CredentialsMissingError,
    RefreshFailedError,
    TokenPayloadError,
    httpx.HTTPError,
    ValueError,
)


def require_api_key(
    settings: Annotated[Any, Depends(get_app_settings)],
    authorization: Optional[str] = Header(default=None),
) -> None:
    """Reject requests that do not carry the configured bearer key."""
    expected = f"Bearer {settings.security.api_key}"
    if not authorization or not hmac.compare_digest(
        authorization.encode("utf-8"), expected.encode("utf-8")
    ):
        raise HTTPException(status_code=HTTPStatus.UNAUTHORIZED, detail="Unauthorized")


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.get(
    "/tools",
    status_code=HTTPStatus.OK,
    dependencies=[Depends(require_api_key)],
)
async def list_tools(
    tools: Annotated[GarminTools, Depends(get_garmin_tools)],
) -> dict:
    return {"tools": tools.names()}


@router.post(
    "/tools/{name}",
    status_code=HTTPStatus.OK,
    response_model=ToolResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(require_api_key)],
)
async def call_tool(
    name: str,
    tools: Annotated[GarminTools, Depends(get_garmin_tools)],
    arguments: Optional[ToolArguments] = None,
) -> ToolResponse:
    """Run a named tool and render the outcome as a structured payload."""
    if not tools.has(name):
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=f"Unknown tool: {name}")

    kwargs = arguments.model_dump(exclude_none=True) if arguments else {}
    try:
        result = await tools.call(name, kwargs)
    except _TOOL_ERRORS as exc:
        logger.warning("Tool %s failed: %s", name, type(exc).__name__)
        return ToolResponse(success=False, error=str(exc))

    return ToolResponse(success=True, date=result.date, count=result.count, data=result.data)


__all__ = ["router", "require_api_key"]
