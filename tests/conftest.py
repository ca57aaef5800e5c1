import logging
import random
import re
from datetime import datetime

import pytest
import pytz

from hpksessions.database.interfaces import BaseStore
from hpksessions.database.models import QueryPage, UserSession
from hpksessions.exceptions import PointReadError
from hpksessions.generator import SessionGenerator

FIXED_NOW = datetime(2025, 1, 10, 12, 0, 0, tzinfo=pytz.utc)

_CONDITION = re.compile(r"c\.(\w+) = (@\w+)")


class InMemoryStore(BaseStore):
    """テスト用のインメモリストア。c.<field> = @param の AND 条件のみ評価する。"""

    def __init__(self, page_size: int = 2, request_charge: float = 2.5):
        self.items = {}
        self.page_size = page_size
        self.request_charge = request_charge
        self.query_calls = []
        self.upsert_calls = 0

    def upsert(self, key, document):
        self.upsert_calls += 1
        self.items[(key.segments, document["id"])] = dict(document)
        return document

    def point_read(self, key, item_id):
        try:
            return self.items[(key.segments, item_id)]
        except KeyError:
            raise PointReadError(f"Item {item_id} not found", item_id=item_id, key=str(key)) from None

    def last_request_charge(self):
        return 1.0

    def query(self, key_scope, query, parameters):
        self.query_calls.append((key_scope, query, parameters))
        values = {parameter["name"]: parameter["value"] for parameter in parameters}
        conditions = [(field, values[name]) for field, name in _CONDITION.findall(query)]

        matched = [
            document
            for (segments, _), document in self.items.items()
            if (key_scope is None or segments[: key_scope.depth] == key_scope.segments)
            and all(document.get(field) == value for field, value in conditions)
        ]
        for start in range(0, len(matched), self.page_size):
            yield QueryPage(items=matched[start : start + self.page_size], request_charge=self.request_charge)


def make_session(tenant_id="MidMarket-Inc", user_id="user-192", session_id="session-5af6ab47", **kwargs) -> UserSession:
    """テスト用の UserSession を作成するヘルパー"""
    values = {
        "id": kwargs.pop("id", f"{tenant_id}-{user_id}-{session_id}"),
        "tenant_id": tenant_id,
        "user_id": user_id,
        "session_id": session_id,
        "activity": kwargs.pop("activity", "login"),
        "timestamp": kwargs.pop("timestamp", FIXED_NOW),
    }
    return UserSession(**values)


@pytest.fixture(autouse=True)
def capture_package_logs(caplog):
    """create_logger のロガーは伝搬しないため、caplog のハンドラを直接追加する"""
    loggers = [logging.getLogger(name) for name in list(logging.root.manager.loggerDict) if name.startswith("hpksessions")]
    for logger in loggers:
        logger.addHandler(caplog.handler)
    yield
    for logger in loggers:
        logger.removeHandler(caplog.handler)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def generator():
    return SessionGenerator(rng=random.Random(42), now=lambda: FIXED_NOW)
