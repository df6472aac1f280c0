import os

os.environ.setdefault("SUPABASE_URL", "https://multiplier-test.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-service-key")
os.environ.setdefault("SECRET_KEY", "test-secret-key-with-enough-length-for-hs256")

import pytest
from fastapi.testclient import TestClient
from postgrest.exceptions import APIError

from multiplier_api.auth import create_session_token
from multiplier_api.config import get_settings
from multiplier_api.crud import RecordStore
from multiplier_api.dependencies import get_database_client
from multiplier_api.main import app


ID_COLUMNS = {
    "multiplier_freq_array": "array_id",
    "multiplier_index_array": "array_id",
    "multiplier_preset": "preset_id",
}

UNIQUE_KEYS = {
    "multiplier_freq_array": ("user_id", "preset_number"),
    "multiplier_preset": ("user_id", "preset_number"),
}


class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Just enough of the postgrest query builder for the record store."""

    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.op = "select"
        self.payload = None
        self.filters = []
        self.order_by = None
        self.descending = False
        self.limit_to = None

    def select(self, *columns):
        self.op = "select"
        return self

    def insert(self, row):
        self.op = "insert"
        self.payload = dict(row)
        return self

    def update(self, row):
        self.op = "update"
        self.payload = dict(row)
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self.order_by = column
        self.descending = desc
        return self

    def limit(self, count):
        self.limit_to = count
        return self

    def _matching(self, rows):
        return [r for r in rows if all(r.get(c) == v for c, v in self.filters)]

    def execute(self):
        self.db.calls.append((self.table, self.op))
        if (self.table, self.op) in self.db.failures:
            raise APIError({"code": "XX000", "message": f"{self.op} failed", "details": "", "hint": ""})

        rows = self.db.tables.setdefault(self.table, [])
        if self.op == "select":
            found = [dict(r) for r in self._matching(rows)]
            if self.order_by:
                found.sort(key=lambda r: r[self.order_by], reverse=self.descending)
            if self.limit_to is not None:
                found = found[:self.limit_to]
            return FakeResponse(found)

        if self.op == "insert":
            hook = self.db.before_insert.pop(self.table, None)
            if hook:
                hook()
            key = UNIQUE_KEYS.get(self.table)
            if key and any(all(r.get(k) == self.payload.get(k) for k in key) for r in rows):
                raise APIError({
                    "code": "23505",
                    "message": "duplicate key value violates unique constraint",
                    "details": "",
                    "hint": "",
                })
            return FakeResponse([dict(self.db.add(self.table, self.payload))])

        if self.op == "update":
            matched = self._matching(rows)
            for r in matched:
                r.update(self.payload)
            return FakeResponse([dict(r) for r in matched])

        matched = self._matching(rows)
        self.db.tables[self.table] = [r for r in rows if r not in matched]
        return FakeResponse([dict(r) for r in matched])


class FakeSupabase:
    """In-memory stand-in for the Supabase client."""

    def __init__(self):
        self.tables = {}
        self.counters = {}
        self.failures = set()
        self.before_insert = {}
        self.calls = []

    def table(self, name):
        return FakeQuery(self, name)

    def add(self, table, row):
        id_column = ID_COLUMNS.get(table, "id")
        self.counters[table] = self.counters.get(table, 0) + 1
        stored = dict(row)
        stored[id_column] = self.counters[table]
        self.tables.setdefault(table, []).append(stored)
        return stored

    def rows(self, table):
        return self.tables.get(table, [])

    def add_meta(self, user_id, key, value):
        self.add("multiplier_user_meta", {"user_id": user_id, "meta_key": key, "meta_value": value})


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def fake_db():
    return FakeSupabase()


@pytest.fixture
def store(fake_db):
    return RecordStore(fake_db)


@pytest.fixture
def client(fake_db):
    app.dependency_overrides[get_database_client] = lambda: fake_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def session_headers(settings):
    def _headers(user_id=0, is_admin=False):
        return {settings.nonce_header: create_session_token(user_id, is_admin)}
    return _headers
