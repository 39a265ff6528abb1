import copy
import threading
import time
from decimal import Decimal

import pytest
from botocore.exceptions import ClientError

from dynasession.server.session import store as store_module
from dynasession.server.session.store import DynamoDBSessionStore

BASE_TIME_MS = 1_700_000_000_000


def client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class FakeDynamoDBClient:
    """In-memory stand-in for the boto3 DynamoDB client calls the store makes."""

    def __init__(self, tables=("sessions",)):
        self.tables = {name: {} for name in tables}
        self.created = []
        self.errors = {}
        self.fail_deletes = set()
        self.page_size = None
        self.delete_calls = []
        self.in_flight_deletes = 0
        self.max_in_flight_deletes = 0
        self._lock = threading.Lock()

    def items(self, table="sessions"):
        return self.tables[table]

    def _maybe_fail(self, operation):
        error = self.errors.get(operation)
        if error is not None:
            raise error

    def _table(self, name, operation):
        if name not in self.tables:
            raise client_error("ResourceNotFoundException", operation)
        return self.tables[name]

    def describe_table(self, TableName):
        self._maybe_fail("describe_table")
        self._table(TableName, "DescribeTable")
        return {"Table": {"TableName": TableName, "TableStatus": "ACTIVE"}}

    def create_table(self, **params):
        self._maybe_fail("create_table")
        self.created.append(params)
        self.tables.setdefault(params["TableName"], {})
        return {"TableDescription": {"TableName": params["TableName"], "TableStatus": "CREATING"}}

    def get_item(self, TableName, Key):
        self._maybe_fail("get_item")
        item = self._table(TableName, "GetItem").get(Key["id"]["S"])
        return {"Item": copy.deepcopy(item)} if item is not None else {}

    def put_item(self, TableName, Item):
        self._maybe_fail("put_item")
        self._table(TableName, "PutItem")[Item["id"]["S"]] = copy.deepcopy(Item)
        return {}

    def update_item(self, TableName, Key, ExpressionAttributeValues, **_):
        self._maybe_fail("update_item")
        table = self._table(TableName, "UpdateItem")
        item = table.get(Key["id"]["S"])
        if item is None:
            raise client_error("ConditionalCheckFailedException", "UpdateItem")
        item["expires"] = dict(ExpressionAttributeValues[":expires"])
        return {}

    def delete_item(self, TableName, Key):
        key = Key["id"]["S"]
        with self._lock:
            self.in_flight_deletes += 1
            self.max_in_flight_deletes = max(self.max_in_flight_deletes, self.in_flight_deletes)
        try:
            time.sleep(0.002)
            self.delete_calls.append(key)
            self._maybe_fail("delete_item")
            if key in self.fail_deletes:
                raise client_error("ProvisionedThroughputExceededException", "DeleteItem")
            self._table(TableName, "DeleteItem").pop(key, None)
            return {}
        finally:
            with self._lock:
                self.in_flight_deletes -= 1

    def scan(self, TableName, ExpressionAttributeValues, ExclusiveStartKey=None, **_):
        self._maybe_fail("scan")
        now = Decimal(ExpressionAttributeValues[":now"]["N"])
        keys = sorted(self._table(TableName, "Scan"))
        if ExclusiveStartKey is not None:
            keys = [key for key in keys if key > ExclusiveStartKey["id"]["S"]]
        page = keys if self.page_size is None else keys[: self.page_size]
        matches = []
        for key in page:
            expires = self.tables[TableName][key].get("expires")
            if expires is not None and Decimal(expires["N"]) < now:
                matches.append({"id": {"S": key}})
        response = {"Items": matches, "Count": len(matches)}
        if self.page_size is not None and len(keys) > len(page):
            response["LastEvaluatedKey"] = {"id": {"S": page[-1]}}
        return response


class Clock:
    def __init__(self, now: int = BASE_TIME_MS) -> None:
        self.now = now

    def advance(self, ms: int) -> None:
        self.now += ms

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def clock(monkeypatch):
    fake_clock = Clock()
    monkeypatch.setattr(store_module, "_now_ms", fake_clock)
    return fake_clock


@pytest.fixture
def dynamodb():
    return FakeDynamoDBClient()


@pytest.fixture
def store(dynamodb, clock):
    return DynamoDBSessionStore(client=dynamodb, reap_interval=0)
