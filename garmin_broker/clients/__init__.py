"""Expose constructed client wrappers."""

from .dynamodb import DynamoDBKVStore
from .garmin import ApiError, GarminClient
from .garmin_auth import ConsumerKeyCache, GarminTokenExchangeClient
from .kv_store import (
    CredentialStore,
    CredentialStoreError,
    EncryptedKVStore,
    SQLiteKVStore,
)
from .oauth1 import OAuth1Signer, SignedRequest

__all__ = [
    "ApiError",
    "ConsumerKeyCache",
    "CredentialStore",
    "CredentialStoreError",
    "DynamoDBKVStore",
    "EncryptedKVStore",
    "GarminClient",
    "GarminTokenExchangeClient",
    "OAuth1Signer",
    "SQLiteKVStore",
    "SignedRequest",
]
