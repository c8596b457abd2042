import os

# settings are read at import time
os.environ.setdefault("SUPABASE_URL", "https://example.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")

import pytest
from fastapi.testclient import TestClient

from database.data_client import DataClientError
from utils.display import parse_timestamp

COOKIE = "jupagaba"


def _ordered(value):
    if isinstance(value, (int, float)):
        return value
    ts = parse_timestamp(value)
    return ts if ts is not None else value


def _matches(row, filters):
    for column, cond in (filters or {}).items():
        op, operand = cond if isinstance(cond, tuple) else ("eq", cond)
        value = row.get(column)
        if op == "eq":
            ok = value == operand
        elif op == "neq":
            ok = value != operand
        elif op == "in":
            ok = value in list(operand)
        elif op == "is":
            ok = value is operand
        elif op == "not.is":
            ok = value is not operand
        elif value is None:
            ok = False
        else:
            a, b = _ordered(value), _ordered(operand)
            ok = {"gt": a > b, "gte": a >= b, "lt": a < b, "lte": a <= b}[op]
        if not ok:
            return False
    return True


class FakeDataClient:
    """In-memory stand-in for DataClient (same async surface, no projection)"""

    def __init__(self, tables=None, rpcs=None, token="session-token"):
        self.tables = {name: [dict(r) for r in rows] for name, rows in (tables or {}).items()}
        self.rpcs = dict(rpcs or {})
        self.failures = {}
        self.calls = []
        self.authenticated = bool(token)
        self.closed = False

    def fail(self, method, name, message="boom", code=None):
        self.failures[(method, name)] = DataClientError(message, code=code, status_code=400)

    def _check(self, method, name):
        if (method, name) in self.failures:
            raise self.failures[(method, name)]

    def _rows(self, table, filters=None):
        return [r for r in self.tables.get(table, []) if _matches(r, filters)]

    def calls_to(self, method, name=None):
        return [c for c in self.calls if c[0] == method and (name is None or c[1] == name)]

    async def rpc(self, fn, params=None):
        self.calls.append(("rpc", fn, params))
        self._check("rpc", fn)
        handler = self.rpcs.get(fn)
        if isinstance(handler, Exception):
            raise handler
        if callable(handler):
            return handler(params or {})
        if fn not in self.rpcs:
            raise DataClientError(f"function {fn} does not exist", code="PGRST202", status_code=404)
        return handler

    async def select(self, table, columns="*", filters=None, order=None, limit=None, offset=None):
        self.calls.append(("select", table, filters))
        self._check("select", table)
        rows = [dict(r) for r in self._rows(table, filters)]
        for item in reversed(list(order or [])):
            column, _, direction = item.partition(".")
            rows.sort(key=lambda r: (r.get(column) is None, r.get(column)), reverse=direction == "desc")
        if offset:
            rows = rows[offset:]
        if limit is not None:
            rows = rows[:limit]
        return rows

    async def select_one(self, table, columns="*", filters=None, order=None):
        rows = await self.select(table, columns, filters, order=order, limit=1)
        return rows[0] if rows else None

    async def select_page(self, table, columns="*", filters=None, order=None, offset=0, limit=20):
        total = len(self._rows(table, filters))
        return await self.select(table, columns, filters, order, limit, offset), total

    async def count(self, table, filters=None):
        self.calls.append(("count", table, filters))
        self._check("count", table)
        return len(self._rows(table, filters))

    async def insert(self, table, rows):
        self.calls.append(("insert", table, None))
        self._check("insert", table)
        stored = self.tables.setdefault(table, [])
        created = []
        for row in rows:
            row = dict(row)
            if "id" not in row:
                row["id"] = max((r.get("id") or 0 for r in stored), default=0) + 1
            stored.append(row)
            created.append(dict(row))
        return created

    async def update(self, table, values, filters):
        self.calls.append(("update", table, filters))
        self._check("update", table)
        changed = []
        for row in self._rows(table, filters):
            row.update(values)
            changed.append(dict(row))
        return changed

    async def delete(self, table, filters):
        self.calls.append(("delete", table, filters))
        self._check("delete", table)
        keep = [r for r in self.tables.get(table, []) if not _matches(r, filters)]
        self.tables[table] = keep

    async def aclose(self):
        self.closed = True


# =========================================================
# Sample data: one faculty / major / room, two advisors, one round
# =========================================================

ROUND_ID = 25681


def sample_tables():
    window = {"around_id": ROUND_ID, "start_date": "2025-06-01 00:00:00", "end_date": "2099-12-31 23:59:59"}
    return {
        "faculties": [{"id": 1, "faculty_name": "วิศวกรรมศาสตร์"}],
        "majors": [{"id": 10, "major_name": "คอมพิวเตอร์", "faculty_id": 1}],
        "rooms": [{"id": 100, "room_code": "CPE-1", "major_id": 10}],
        "teacher_relationship": [
            {"teacher_id": 7, "room_id": 100},
            {"teacher_id": 8, "room_id": 100},
        ],
        "teachers": [
            {"id": 7, "teacher_name": "อ.สมชาย"},
            {"id": 8, "teacher_name": "อ.สมหญิง"},
        ],
        "students": [
            {"id": 1, "student_id": "6501", "student_name": "นายเอ", "room_id": 100},
            {"id": 2, "student_id": "6502", "student_name": "นางสาวบี", "room_id": 100},
        ],
        "admins": [{"id": 1, "admin_name": "ผู้ดูแล"}],
        "executives": [{"id": 1, "executive_name": "ผู้บริหาร"}],
        "sessions": [{"session_token": "session-token"}],
        "assessment_head": [
            {"id": 1, "around_id": ROUND_ID, "section1": 1, "head_description": "การให้คำปรึกษา", "description": ""},
        ],
        "assessment_detail": [
            {"id": 11, "section1": 1, "section2": "1", "detail": "ด้านวิชาการ", "type": "head",
             "min_score": None, "max_score": None, **window},
            {"id": 12, "section1": 1, "section2": "1.1", "detail": "ให้คำแนะนำการลงทะเบียน", "type": "score",
             "min_score": 1, "max_score": 5, **window},
            {"id": 13, "section1": 1, "section2": "1.2", "detail": "ติดตามผลการเรียน", "type": "score",
             "min_score": 1, "max_score": 5, **window},
            {"id": 14, "section1": 1, "section2": "2", "detail": "ข้อเสนอแนะ", "type": "head",
             "min_score": None, "max_score": None, **window},
            {"id": 15, "section1": 1, "section2": "2.1", "detail": "ความคิดเห็นเพิ่มเติม", "type": "text",
             "min_score": None, "max_score": None, **window},
        ],
        "assessment_answer": [],
        "avg_teacher": [],
        "avg_major": [],
        "avg_faculty": [],
    }


@pytest.fixture
def tables():
    return sample_tables()


def make_fake(role=None, db_id=None, tables=None, token="session-token"):
    rpcs = {"get_current_role_id": role, "get_my_db_id": db_id}
    return FakeDataClient(tables if tables is not None else sample_tables(), rpcs, token=token)


@pytest.fixture
def fake_client():
    """Factory: fake_client(role=..., db_id=..., tables=...)"""
    return make_fake


@pytest.fixture
def api():
    """TestClient factory bound to a fake data client; redirects are not followed"""
    from dependencies.session import get_anon_client, get_data_client
    from main import app

    def build(fake, token="session-token", anon=None):
        app.dependency_overrides[get_data_client] = lambda: fake
        app.dependency_overrides[get_anon_client] = lambda: anon or fake
        client = TestClient(app, follow_redirects=False)
        if token:
            client.cookies.set(COOKIE, token)
        return client

    yield build
    app.dependency_overrides.clear()
