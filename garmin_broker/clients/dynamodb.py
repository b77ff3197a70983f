"""
Credential store backed by a DynamoDB table.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from garmin_broker.clients.kv_store import CredentialStoreError
from garmin_broker.core.config import StorageSettings


class DynamoDBKVStore:
    """Key-value records stored as ``{pk, value, ttl}`` items."""

    def __init__(
        self,
        settings: StorageSettings,
        *,
        table: Any = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if table is None:
            if not settings.dynamodb_table_name:
                raise ValueError("DYNAMODB_TABLE_NAME must be set for the dynamodb backend.")
            resource = boto3.resource("dynamodb", region_name=settings.region_name)
            table = resource.Table(settings.dynamodb_table_name)
        self._table = table
        self._clock = clock

    def write(self, key: str, value: bytes, ttl: Optional[int] = None) -> None:
        """Put an item, replacing any previous value for the key."""
        item: Dict[str, Any] = {"pk": key, "value": value}
        if ttl is not None:
            item["ttl"] = int(self._clock()) + ttl
        try:
            self._table.put_item(Item=item)
        except (BotoCoreError, ClientError) as exc:
            raise CredentialStoreError(f"Failed to write {key}: {exc}") from exc

    def read(self, key: str) -> Optional[bytes]:
        """Return the stored bytes, treating lapsed items as absent."""
        try:
            response = self._table.get_item(Key={"pk": key}, ConsistentRead=True)
        except (BotoCoreError, ClientError) as exc:
            raise CredentialStoreError(f"Failed to read {key}: {exc}") from exc
        item = response.get("Item")
        if not item:
            return None
        # DynamoDB removes expired items lazily, so check the attribute here.
        expires = item.get("ttl")
        if expires is not None and int(expires) <= self._clock():
            return None
        value = item["value"]
        # boto3 hands binary attributes back wrapped in ``Binary``.
        return bytes(getattr(value, "value", value))


__all__ = ["DynamoDBKVStore"]
