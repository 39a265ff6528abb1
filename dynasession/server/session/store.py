from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import math
import time
from decimal import Decimal
from pathlib import Path
from typing import Any, Mapping, Optional

import boto3
from boto3.dynamodb.types import TypeDeserializer, TypeSerializer
from botocore.exceptions import BotoCoreError, ClientError

from .models import SESSION_TYPE, SessionRecord
from .schemas import StoreOptions

logger = logging.getLogger(__name__)

ONE_DAY_MS = 24 * 60 * 60 * 1000

_SERIALIZER = TypeSerializer()
_DESERIALIZER = TypeDeserializer()


def _now_ms() -> int:
    return int(time.time() * 1000)


class DynamoDBSessionStore:
    """DynamoDB-backed session store with lazy expiry and a periodic reap sweep."""

    def __init__(self, options: Optional[StoreOptions] = None, *, client: Any = None, **overrides: Any) -> None:
        if options is None:
            options = StoreOptions(**overrides)
        elif overrides:
            options = StoreOptions(**{**options.model_dump(), **overrides})
        self._options = options
        self._client = client if client is not None else _build_client(options)
        self._reap_task: Optional[asyncio.Task] = None
        self._pending: set[asyncio.Task] = set()

    @property
    def options(self) -> StoreOptions:
        return self._options

    @property
    def client(self) -> Any:
        return self._client

    @property
    def prefix(self) -> str:
        return self._options.prefix

    @property
    def table(self) -> str:
        return self._options.table

    async def init(self) -> None:
        """Make sure the table exists and arm the reap timer."""
        await asyncio.to_thread(self._ensure_table)
        if self._options.reap_interval > 0 and self._reap_task is None:
            self._reap_task = asyncio.create_task(self._reap_periodically())
            logger.info(
                "Session reap sweep on table %s armed every %d ms",
                self.table,
                self._options.reap_interval,
            )

    async def close(self) -> None:
        task = self._reap_task
        self.clear_interval()
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def __aenter__(self) -> "DynamoDBSessionStore":
        await self.init()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def composed_key(self, sid: str) -> str:
        return f"{self.prefix}{sid}"

    def strip_prefix(self, key: str) -> str:
        return key[len(self.prefix):]

    async def get(self, sid: str) -> Optional[dict[str, Any]]:
        now = _now_ms()
        response = await asyncio.to_thread(
            self._client.get_item,
            TableName=self.table,
            Key={"id": {"S": self.composed_key(sid)}},
        )
        item = response.get("Item")
        if not item:
            return None
        record = SessionRecord.from_item(_deserialize(item))
        if record.is_expired(now):
            return None
        return record.session

    async def set(self, sid: str, session: Mapping[str, Any]) -> None:
        record = SessionRecord(
            id=self.composed_key(sid),
            expires=_expires_at(session, _now_ms()),
            type=SESSION_TYPE,
            session=_normalise(session),
        )
        await asyncio.to_thread(
            self._client.put_item,
            TableName=self.table,
            Item=_serialize(record.to_item()),
        )

    async def touch(self, sid: str, session: Mapping[str, Any]) -> bool:
        expires = _expires_at(session, _now_ms())
        try:
            await asyncio.to_thread(
                self._client.update_item,
                TableName=self.table,
                Key={"id": {"S": self.composed_key(sid)}},
                UpdateExpression="SET #expires = :expires",
                ConditionExpression="attribute_exists(#id)",
                ExpressionAttributeNames={"#id": "id", "#expires": "expires"},
                ExpressionAttributeValues={":expires": {"N": str(expires)}},
            )
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                return False
            raise
        return True

    async def destroy(self, sid: str) -> None:
        await asyncio.to_thread(
            self._client.delete_item,
            TableName=self.table,
            Key={"id": {"S": self.composed_key(sid)}},
        )

    def destroy_nowait(self, sid: str) -> asyncio.Task:
        """Schedule a deletion without waiting for it; failures are dropped."""
        task = asyncio.create_task(self._destroy_quietly(sid))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def reap(self) -> int:
        """Delete every record whose expiry has passed, one at a time.

        A failing scan propagates and nothing is deleted. Failures of single
        deletions are logged and the sweep moves on to the next record.
        Returns the number of expired records found.
        """
        keys = await asyncio.to_thread(self._scan_expired, _now_ms())
        for key in keys:
            try:
                await self.destroy(self.strip_prefix(key))
            except Exception as exc:  # noqa: BLE001 - one bad delete must not stop the sweep
                logger.warning("Failed to reap session %s: %s", key, exc)
        logger.debug("Reaped %d expired sessions from %s", len(keys), self.table)
        return len(keys)

    def clear_interval(self) -> None:
        task, self._reap_task = self._reap_task, None
        if task is not None and not task.done():
            task.cancel()
            logger.info("Session reap sweep on table %s cancelled", self.table)

    async def _reap_periodically(self) -> None:
        interval = self._options.reap_interval / 1000
        while True:
            await asyncio.sleep(interval)
            try:
                await self.reap()
            except Exception:  # noqa: BLE001 - keep the timer alive
                logger.exception("Session reap sweep on table %s failed", self.table)

    async def _destroy_quietly(self, sid: str) -> None:
        try:
            await self.destroy(sid)
        except Exception as exc:  # noqa: BLE001
            logger.debug("Ignoring failed delete of session %s: %s", sid, exc)

    def _ensure_table(self) -> None:
        try:
            self._client.describe_table(TableName=self.table)
            return
        except (BotoCoreError, ClientError) as exc:
            logger.info("Session table %s not available (%s); creating it", self.table, exc)

        try:
            self._client.create_table(
                TableName=self.table,
                AttributeDefinitions=[{"AttributeName": "id", "AttributeType": "S"}],
                KeySchema=[{"AttributeName": "id", "KeyType": "HASH"}],
                ProvisionedThroughput={
                    "ReadCapacityUnits": self._options.read_capacity_units,
                    "WriteCapacityUnits": self._options.write_capacity_units,
                },
            )
        except (BotoCoreError, ClientError) as exc:
            logger.warning("Failed to create session table %s: %s", self.table, exc)
            return
        logger.info("Created session table %s", self.table)

    def _scan_expired(self, now: int) -> list[str]:
        params: dict[str, Any] = {
            "TableName": self.table,
            "FilterExpression": "#expires < :now",
            "ProjectionExpression": "#id",
            "ExpressionAttributeNames": {"#id": "id", "#expires": "expires"},
            "ExpressionAttributeValues": {":now": {"N": str(now)}},
        }
        keys: list[str] = []
        while True:
            response = self._client.scan(**params)
            keys.extend(item["id"]["S"] for item in response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return keys
            params["ExclusiveStartKey"] = last_key


def _expires_at(session: Mapping[str, Any], now: int) -> int:
    cookie = session.get("cookie") if isinstance(session, Mapping) else None
    max_age = cookie.get("maxAge") if isinstance(cookie, Mapping) else None
    if isinstance(max_age, (int, float)) and not isinstance(max_age, bool) and math.isfinite(max_age):
        return now + int(max_age)
    return now + ONE_DAY_MS


_NOT_DATA = object()


def _normalise(session: Mapping[str, Any]) -> dict[str, Any]:
    """Snapshot the payload as plain JSON data.

    Mapping entries holding anything else are dropped, list members become
    None, and so do non-finite numbers. DynamoDB rejects float, so numbers
    come back as Decimal.
    """
    plain = _plain_data(session)
    if not isinstance(plain, dict):
        return {}
    return json.loads(json.dumps(plain, allow_nan=False), parse_float=Decimal)


def _plain_data(value: Any) -> Any:
    if value is None or isinstance(value, (str, bool, int)):
        return value
    if isinstance(value, (float, Decimal)):
        if not math.isfinite(value):
            return None
        return value if isinstance(value, float) else float(value)
    if isinstance(value, Mapping):
        result = {}
        for key, item in value.items():
            if not _is_plain_key(key):
                continue
            item = _plain_data(item)
            if item is not _NOT_DATA:
                result[key] = item
        return result
    if isinstance(value, (list, tuple)):
        return [None if item is _NOT_DATA else item for item in map(_plain_data, value)]
    return _NOT_DATA


def _is_plain_key(key: Any) -> bool:
    if isinstance(key, float):
        return math.isfinite(key)
    return key is None or isinstance(key, (str, int))


def _serialize(item: Mapping[str, Any]) -> dict[str, Any]:
    return {key: _SERIALIZER.serialize(value) for key, value in item.items()}


def _deserialize(item: Mapping[str, Any]) -> dict[str, Any]:
    return {key: _DESERIALIZER.deserialize(value) for key, value in item.items()}


def _build_client(options: StoreOptions) -> Any:
    if options.aws_config_path:
        credentials = _load_aws_config(options.aws_config_path)
        session = boto3.session.Session(
            aws_access_key_id=credentials.get("accessKeyId"),
            aws_secret_access_key=credentials.get("secretAccessKey"),
            aws_session_token=credentials.get("sessionToken"),
            region_name=credentials.get("region") or options.region,
        )
    else:
        session = boto3.session.Session(region_name=options.region)
    return session.client("dynamodb", endpoint_url=options.endpoint_url)


def _load_aws_config(path: str) -> dict[str, Any]:
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ValueError(f"Cannot read AWS config from {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"AWS config at {path} must be a JSON object")
    return data
