"""
Factory functions to provide clients and services as FastAPI dependencies.

The durable store is shared by the process. Everything holding an
in-process token cache is built per request.
"""

from functools import lru_cache

from fastapi import Depends

from garmin_broker.clients import (
    ConsumerKeyCache,
    CredentialStore,
    DynamoDBKVStore,
    EncryptedKVStore,
    GarminClient,
    GarminTokenExchangeClient,
    SQLiteKVStore,
)
from garmin_broker.core.config import StorageSettings, get_settings
from garmin_broker.services import (
    GarminTokenService,
    GarminTools,
    TokenCipherService,
)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


def build_credential_store(storage: StorageSettings) -> CredentialStore:
    """Create the configured store, encrypted when a secret is set."""
    store: CredentialStore
    if storage.backend == "dynamodb":
        store = DynamoDBKVStore(storage)
    else:
        store = SQLiteKVStore(storage.sqlite_path)
    secret = storage.encryption_secret
    if secret:
        store = EncryptedKVStore(store, TokenCipherService(secret=secret))
    return store


@lru_cache()
def get_credential_store() -> CredentialStore:
    """Provide the shared durable credential store."""
    return build_credential_store(_settings().storage)


def get_token_service(
    store: CredentialStore = Depends(get_credential_store),
) -> GarminTokenService:
    """Build an invocation-scoped token supplier."""
    settings = _settings()
    consumer_keys = ConsumerKeyCache(store, settings.garmin)
    exchange_client = GarminTokenExchangeClient(store, consumer_keys, settings.garmin)
    return GarminTokenService(store, exchange_client)


def get_garmin_client(
    token_service: GarminTokenService = Depends(get_token_service),
) -> GarminClient:
    """Build the authenticated data API client for this request."""
    return GarminClient(token_service, _settings().garmin)


def get_garmin_tools(
    client: GarminClient = Depends(get_garmin_client),
) -> GarminTools:
    """Build the tool registry for this request."""
    return GarminTools(client, display_name=_settings().garmin.display_name)


__all__ = [
    "build_credential_store",
    "get_credential_store",
    "get_garmin_client",
    "get_garmin_tools",
    "get_token_service",
]
