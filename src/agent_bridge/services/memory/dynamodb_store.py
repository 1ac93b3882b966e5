"""DynamoDB-backed [`ThreadStore`](interface.py).

One table per agent. Item layout:

- hash key  `thread_id`: namespaced thread id
- range key `sort_key`:  `THREAD` for the thread item, `MSG#<iso-ts>#<id>` for messages
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

import boto3
from boto3.dynamodb.types import TypeDeserializer, TypeSerializer
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .interface import MemoryStoreError, MessageRole, Thread, ThreadMessage, ThreadStore


_THREAD_SORT_KEY = "THREAD"
_MESSAGE_PREFIX = "MSG#"

_deserializer = TypeDeserializer()
_serializer = TypeSerializer()


def _serialize(item: dict[str, Any]) -> dict[str, Any]:
    return {k: _serializer.serialize(v) for k, v in item.items()}


def _deserialize(raw: dict[str, Any]) -> dict[str, Any]:
    return {k: _deserializer.deserialize(v) for k, v in raw.items()}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class DynamoThreadStore(ThreadStore):
    def __init__(self, table_name: str, *, region: str | None = None, client: Any | None = None) -> None:
        self._table = table_name
        self._ddb = client or boto3.client(
            "dynamodb",
            region_name=region,
            config=Config(retries={"max_attempts": 5, "mode": "standard"}),
        )

    def get_or_create_thread(self, thread_id: str, resource_id: str) -> Thread:
        key = _serialize({"thread_id": thread_id, "sort_key": _THREAD_SORT_KEY})
        try:
            resp = self._ddb.get_item(TableName=self._table, Key=key)
            if resp.get("Item"):
                return Thread.model_validate(_deserialize(resp["Item"]))

            now = _now_iso()
            self._ddb.put_item(
                TableName=self._table,
                Item=_serialize(
                    {
                        "thread_id": thread_id,
                        "sort_key": _THREAD_SORT_KEY,
                        "resource_id": resource_id,
                        "created_at": now,
                        "updated_at": now,
                    }
                ),
            )
        except (BotoCoreError, ClientError) as e:
            raise MemoryStoreError(f"DynamoDB thread upsert failed on {self._table}: {e}") from e
        return Thread(thread_id=thread_id, resource_id=resource_id, created_at=now, updated_at=now)

    def list_messages(self, thread_id: str, *, limit: int | None = None) -> list[ThreadMessage]:
        if limit is not None and limit <= 0:
            return []

        query: dict[str, Any] = {
            "TableName": self._table,
            "KeyConditionExpression": "thread_id = :t AND begins_with(sort_key, :p)",
            "ExpressionAttributeValues": _serialize({":t": thread_id, ":p": _MESSAGE_PREFIX}),
            # Newest first so `Limit` keeps the most recent messages.
            "ScanIndexForward": False,
        }
        items: list[dict[str, Any]] = []
        try:
            while True:
                if limit is not None:
                    query["Limit"] = limit - len(items)
                resp = self._ddb.query(**query)
                items.extend(resp.get("Items", []))
                last_key = resp.get("LastEvaluatedKey")
                if not last_key or (limit is not None and len(items) >= limit):
                    break
                query["ExclusiveStartKey"] = last_key
        except (BotoCoreError, ClientError) as e:
            raise MemoryStoreError(f"DynamoDB query failed on {self._table}: {e}") from e

        messages = [ThreadMessage.model_validate(_deserialize(raw)) for raw in items]
        messages.reverse()
        return messages

    def append_message(self, thread_id: str, resource_id: str, role: MessageRole, content: str) -> ThreadMessage:
        self.get_or_create_thread(thread_id, resource_id)

        now = _now_iso()
        message_id = uuid.uuid4().hex
        item = {
            "thread_id": thread_id,
            "sort_key": f"{_MESSAGE_PREFIX}{now}#{message_id}",
            "message_id": message_id,
            "role": role.value,
            "content": content,
            "created_at": now,
        }
        try:
            self._ddb.put_item(TableName=self._table, Item=_serialize(item))
            self._ddb.update_item(
                TableName=self._table,
                Key=_serialize({"thread_id": thread_id, "sort_key": _THREAD_SORT_KEY}),
                UpdateExpression="SET updated_at = :u",
                ExpressionAttributeValues=_serialize({":u": now}),
            )
        except (BotoCoreError, ClientError) as e:
            raise MemoryStoreError(f"DynamoDB write failed on {self._table}: {e}") from e
        return ThreadMessage.model_validate(item)

    def delete_thread(self, thread_id: str) -> None:
        try:
            resp = self._ddb.query(
                TableName=self._table,
                KeyConditionExpression="thread_id = :t",
                ExpressionAttributeValues=_serialize({":t": thread_id}),
                ProjectionExpression="thread_id, sort_key",
            )
            keys = resp.get("Items", [])
            if not keys:
                raise KeyError(thread_id)
            for key in keys:
                self._ddb.delete_item(TableName=self._table, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise MemoryStoreError(f"DynamoDB delete failed on {self._table}: {e}") from e
