from datetime import datetime
from typing import Dict, List, Optional, Tuple
from unittest.mock import patch

import pytest
from sqlalchemy import create_engine, insert
from sqlalchemy.pool import StaticPool

from contestbot.core.engine import ConversationEngine
from contestbot.extractor.base import FieldExtractor, Verdict
from contestbot.extractor.rules import RuleBasedExtractor
from contestbot.ledger.db import codes, create_schema
from contestbot.ledger.repo import CodeLedger
from contestbot.notify.whatsapp import Notifier
from contestbot.store.session_repo import SessionRepository, SessionStore, SessionStoreError


class InMemorySessionStore(SessionStore):
    def __init__(self):
        self.data: Dict[str, Dict[str, str]] = {}
        self.ttls: Dict[str, int] = {}
        self.fail_on = set()  # method names that raise SessionStoreError

    def _check(self, op: str):
        if op in self.fail_on:
            raise SessionStoreError(f"{op} unavailable")

    def get(self, key):
        self._check("get")
        return dict(self.data.get(key, {}))

    def set_fields(self, key, fields):
        self._check("set_fields")
        self.data.setdefault(key, {}).update(fields)

    def delete(self, key):
        self._check("delete")
        self.data.pop(key, None)
        self.ttls.pop(key, None)

    def expire(self, key, seconds):
        self._check("expire")
        if key in self.data:
            if seconds <= 0:
                # Redis drops a key whose TTL is set to zero or less.
                self.data.pop(key, None)
                self.ttls.pop(key, None)
            else:
                self.ttls[key] = seconds


class RecordingNotifier(Notifier):
    def __init__(self):
        self.sent: List[Tuple[str, str]] = []
        self.fail = False

    def send(self, to, body):
        self.sent.append((to, body))
        return not self.fail

    @property
    def last(self) -> Optional[str]:
        return self.sent[-1][1] if self.sent else None


class ScriptedExtractor(FieldExtractor):
    """Rule-based by default; queue Verdicts to force specific answers."""

    def __init__(self):
        self.rules = RuleBasedExtractor(code_length=6)
        self.queued: List[Verdict] = []
        self.calls = []

    def extract(self, text, step, session_snapshot):
        self.calls.append((text, step, dict(session_snapshot)))
        if self.queued:
            return self.queued.pop(0)
        return self.rules.extract(text, step, session_snapshot)


@pytest.fixture(autouse=True)
def metrics_redis():
    # Counters are best-effort; keep tests off a real Redis.
    with patch("contestbot.observability.metrics.get_redis") as mock_get_redis:
        yield mock_get_redis


@pytest.fixture
def db_engine():
    eng = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    create_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def seed_code(db_engine):
    def _seed(code: str, code_id: str, status: str = "active", **fields):
        with db_engine.begin() as conn:
            conn.execute(insert(codes).values(code=code, code_id=code_id, status=status, **fields))
    return _seed


@pytest.fixture
def ledger(db_engine):
    return CodeLedger(db_engine)


@pytest.fixture
def session_store():
    return InMemorySessionStore()


@pytest.fixture
def sessions(session_store):
    return SessionRepository(session_store, ttl_sec=1800, prefix="session:")


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def extractor():
    return ScriptedExtractor()


@pytest.fixture
def engine(sessions, ledger, extractor, notifier):
    return ConversationEngine(sessions=sessions, ledger=ledger, extractor=extractor, notifier=notifier)


@pytest.fixture
def claimed_at():
    return datetime(2025, 9, 1, 10, 0, 0)
