"""
Shared fixtures: an in-memory stand-in for the Motor database and an
authenticated TestClient.

The fake supports the subset of the Motor API the services use:
find_one / find / count_documents / insert_one / update_one /
find_one_and_update / aggregate ($match + $group), with equality, $regex,
$in, $gte, $lte and $or filters and $set, $inc and $max updates.
"""

import copy
import re
from datetime import datetime

import pytest
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

_MISSING = object()


def _get(doc, dotted_key):
    value = doc
    for part in dotted_key.split("."):
        if not isinstance(value, dict) or part not in value:
            return _MISSING
        value = value[part]
    return value


def _matches(doc, query):
    for key, condition in query.items():
        if key == "$or":
            if not any(_matches(doc, branch) for branch in condition):
                return False
            continue
        value = _get(doc, key)
        if isinstance(condition, dict) and any(op.startswith("$") for op in condition):
            for op, arg in condition.items():
                if op == "$options":
                    continue
                if op == "$regex":
                    flags = re.IGNORECASE if "i" in condition.get("$options", "") else 0
                    if not isinstance(value, str) or not re.search(arg, value, flags):
                        return False
                elif op == "$in":
                    if value is _MISSING or value not in arg:
                        return False
                elif op == "$gte":
                    if value is _MISSING or value is None or value < arg:
                        return False
                elif op == "$lte":
                    if value is _MISSING or value is None or value > arg:
                        return False
                else:
                    raise NotImplementedError(op)
        else:
            if value is _MISSING:
                value = None
            if value != condition:
                return False
    return True


def _parent(doc, dotted_key):
    parts = dotted_key.split(".")
    for part in parts[:-1]:
        doc = doc.setdefault(part, {})
    return doc, parts[-1]


def _apply_update(doc, update):
    for op, fields in update.items():
        for key, value in fields.items():
            parent, leaf = _parent(doc, key)
            if op == "$set":
                parent[leaf] = copy.deepcopy(value)
            elif op == "$inc":
                parent[leaf] = parent.get(leaf, 0) + value
            elif op == "$max":
                parent[leaf] = value if leaf not in parent else max(parent[leaf], value)
            else:
                raise NotImplementedError(op)


def _expr(doc, expr):
    if isinstance(expr, str) and expr.startswith("$"):
        value = _get(doc, expr[1:])
        return None if value is _MISSING else value
    if isinstance(expr, dict) and "$eq" in expr:
        left, right = expr["$eq"]
        return _expr(doc, left) == _expr(doc, right)
    if isinstance(expr, dict) and "$cond" in expr:
        condition, then, otherwise = expr["$cond"]
        return _expr(doc, then) if _expr(doc, condition) else _expr(doc, otherwise)
    return expr


def _sum_value(doc, expr):
    value = _expr(doc, expr)
    return value if isinstance(value, (int, float)) and not isinstance(value, bool) else 0


class Result:
    def __init__(self, **kwargs):
        self.__dict__.update(kwargs)


class FakeCursor:
    def __init__(self, docs):
        self._docs = docs
        self._skip = 0
        self._limit = 0

    def sort(self, key, direction=None):
        keys = key if isinstance(key, list) else [(key, direction or 1)]
        for field, order in reversed(keys):
            self._docs.sort(
                key=lambda d: (_get(d, field) is _MISSING, _get(d, field) if _get(d, field) is not _MISSING else 0),
                reverse=order == -1
            )
        return self

    def skip(self, count):
        self._skip = count
        return self

    def limit(self, count):
        self._limit = count
        return self

    def _window(self):
        docs = self._docs[self._skip:]
        if self._limit:
            docs = docs[:self._limit]
        return [copy.deepcopy(d) for d in docs]

    def __aiter__(self):
        self._iter = iter(self._window())
        return self

    async def __anext__(self):
        try:
            return next(self._iter)
        except StopIteration:
            raise StopAsyncIteration

    async def to_list(self, length=None):
        docs = self._window()
        return docs[:length] if length else docs


class FakeCollection:
    def __init__(self, unique_fields=()):
        self.docs = []
        self.unique_fields = ("_id",) + tuple(unique_fields)

    def _check_unique(self, new_doc, ignore=None):
        for field in self.unique_fields:
            value = _get(new_doc, field)
            if value is _MISSING:
                continue
            for doc in self.docs:
                if doc is not ignore and _get(doc, field) == value:
                    raise DuplicateKeyError(f"E11000 duplicate key error: {field}={value!r}", 11000)

    async def insert_one(self, doc):
        doc = copy.deepcopy(doc)
        doc.setdefault("_id", f"fake-{len(self.docs) + 1}")
        self._check_unique(doc)
        self.docs.append(doc)
        return Result(inserted_id=doc["_id"])

    async def find_one(self, query=None, sort=None):
        cursor = self.find(query or {})
        if sort:
            cursor.sort(sort)
        docs = await cursor.limit(1).to_list()
        return docs[0] if docs else None

    def find(self, query=None, projection=None):
        return FakeCursor([d for d in self.docs if _matches(d, query or {})])

    async def count_documents(self, query):
        return len([d for d in self.docs if _matches(d, query)])

    def aggregate(self, pipeline):
        """$match followed by a single-bucket $group of $sum accumulators"""
        docs = list(self.docs)
        for stage in pipeline:
            if "$match" in stage:
                docs = [d for d in docs if _matches(d, stage["$match"])]
            elif "$group" in stage:
                if not docs:
                    return FakeCursor([])
                group = {"_id": None}
                for field, accumulator in stage["$group"].items():
                    if field != "_id":
                        group[field] = sum(_sum_value(d, accumulator["$sum"]) for d in docs)
                docs = [group]
            else:
                raise NotImplementedError(stage)
        return FakeCursor(docs)

    def _upsert_doc(self, query):
        doc = {k: copy.deepcopy(v) for k, v in query.items() if not isinstance(v, dict)}
        self.docs.append(doc)
        return doc

    async def update_one(self, query, update, upsert=False):
        for doc in self.docs:
            if _matches(doc, query):
                _apply_update(doc, update)
                return Result(matched_count=1, modified_count=1, upserted_id=None)
        if upsert:
            doc = self._upsert_doc(query)
            _apply_update(doc, update)
            return Result(matched_count=0, modified_count=0, upserted_id=doc.get("_id"))
        return Result(matched_count=0, modified_count=0, upserted_id=None)

    async def find_one_and_update(self, query, update, upsert=False, return_document=ReturnDocument.BEFORE):
        for doc in self.docs:
            if _matches(doc, query):
                before = copy.deepcopy(doc)
                _apply_update(doc, update)
                return copy.deepcopy(doc) if return_document == ReturnDocument.AFTER else before
        if upsert:
            doc = self._upsert_doc(query)
            _apply_update(doc, update)
            return copy.deepcopy(doc) if return_document == ReturnDocument.AFTER else None
        return None


class FakeDatabase:
    def __init__(self):
        self._collections = {"invoices": FakeCollection(unique_fields=("invoice_number",))}

    def __getitem__(self, name):
        return self._collections.setdefault(name, FakeCollection())

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        return self[name]


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def sale_doc():
    return {
        "_id": "sale-1",
        "type": "service",
        "service_id": "svc-1",
        "service_name": "Haircut",
        "quantity": 2,
        "unit_price": 15000.0,
        "total_amount": 30000.0,
        "barber_id": "barber-1",
        "barber_name": "Carlos",
        "payment_method": "nequi",
        "customer_name": "Juan Perez",
        "status": "completed",
    }


# ============================================================
# HTTP CLIENT
# ============================================================

@pytest.fixture
def admin_user():
    from models.user import User
    return User(id="user-admin", email="admin@barbershop.test", name="Admin",
                role="admin", created_at=datetime(2026, 1, 1))


@pytest.fixture
def barber_user():
    from models.user import User
    return User(id="user-barber", email="carlos@barbershop.test", name="Carlos",
                role="barber", barber_id="barber-1", created_at=datetime(2026, 1, 1))


def _client_for(fake_db, user):
    from fastapi.testclient import TestClient
    from server import app
    from database.mongodb import get_database
    from services.auth_deps import get_current_user

    async def override_database():
        return fake_db

    async def override_user():
        return user

    app.dependency_overrides[get_database] = override_database
    app.dependency_overrides[get_current_user] = override_user
    return TestClient(app)


@pytest.fixture
def api_client(fake_db, admin_user):
    """TestClient authenticated as an admin, backed by fake_db"""
    from server import app
    yield _client_for(fake_db, admin_user)
    app.dependency_overrides.clear()


@pytest.fixture
def barber_client(fake_db, barber_user):
    """TestClient authenticated as barber-1, backed by fake_db"""
    from server import app
    yield _client_for(fake_db, barber_user)
    app.dependency_overrides.clear()
