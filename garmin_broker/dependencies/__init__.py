"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    build_credential_store,
    get_credential_store,
    get_garmin_client,
    get_garmin_tools,
    get_token_service,
)
from .config import get_app_settings

__all__ = [
    "build_credential_store",
    "get_app_settings",
    "get_credential_store",
    "get_garmin_client",
    "get_garmin_tools",
    "get_token_service",
]
