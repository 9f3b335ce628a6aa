import threading
from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine, insert, select
from sqlalchemy.exc import OperationalError

from contestbot.ledger.db import codes, create_schema
from contestbot.ledger.repo import CodeLedger, LedgerError


def _row(db_engine, code):
    with db_engine.connect() as conn:
        return conn.execute(select(codes).where(codes.c.code == code)).mappings().first()


def _registrant(seed_code, code, code_id, when, **extra):
    fields = dict(
        status="inactive",
        name="Asha Rao",
        phone_number="+919800000000",
        city="Pune",
        email=f"{code_id}@example.com",
        created_at=when,
    )
    fields.update(extra)
    seed_code(code, code_id, **fields)


def test_find_active_code_only_matches_active(ledger, seed_code):
    seed_code("ABC123", "cid-1")
    seed_code("USED99", "cid-2", status="inactive")

    assert ledger.find_active_code("ABC123") == {"code": "ABC123", "code_id": "cid-1"}
    assert ledger.find_active_code("USED99") is None
    assert ledger.find_active_code("NOPE00") is None


def test_claim_binds_registrant_and_deactivates(ledger, seed_code, db_engine):
    seed_code("ABC123", "cid-1")

    ok = ledger.claim("ABC123", name="John Doe", email="john@example.com", city="Mumbai", phone="+911234567")

    assert ok is True
    row = _row(db_engine, "ABC123")
    assert row["status"] == "inactive"
    assert row["name"] == "John Doe"
    assert row["phone_number"] == "+911234567"
    assert row["created_at"] is not None


def test_second_claim_of_same_code_is_rejected(ledger, seed_code, db_engine):
    seed_code("ABC123", "cid-1")
    assert ledger.claim("ABC123", name="A One", email="a@example.com", city="Pune", phone="+91111")

    again = ledger.claim("ABC123", name="B Two", email="b@example.com", city="Delhi", phone="+91222")

    assert again is False
    row = _row(db_engine, "ABC123")
    assert row["phone_number"] == "+91111"
    assert row["email"] == "a@example.com"


def test_claim_of_unknown_code_returns_false(ledger):
    assert ledger.claim("NOPE00", name="A", email="a@example.com", city="Pune", phone="+91") is False


def test_concurrent_claims_bind_exactly_one_registrant(tmp_path):
    db_engine = create_engine(
        f"sqlite:///{tmp_path / 'ledger.db'}",
        connect_args={"check_same_thread": False, "timeout": 10},
    )
    create_schema(db_engine)
    with db_engine.begin() as conn:
        conn.execute(insert(codes).values(code="RACE01", code_id="cid-race"))
    ledger = CodeLedger(db_engine)

    workers = 4
    barrier = threading.Barrier(workers)
    results = [None] * workers

    def attempt(i):
        barrier.wait()
        try:
            results[i] = ledger.claim(
                "RACE01", name=f"User {i}", email=f"u{i}@example.com", city="Pune", phone=f"+91{i}"
            )
        except LedgerError:
            results[i] = "error"

    threads = [threading.Thread(target=attempt, args=(i,)) for i in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(True) == 1
    assert all(r in (True, False, "error") for r in results)
    winner = results.index(True)
    row = _row(db_engine, "RACE01")
    assert row["phone_number"] == f"+91{winner}"
    db_engine.dispose()


def test_email_claimed_counts_only_completed_registrations(ledger, seed_code):
    seed_code("ACT111", "cid-1", email="pending@example.com")
    seed_code("OLD222", "cid-2", status="inactive", email="done@example.com")

    assert ledger.is_email_claimed("done@example.com") is True
    assert ledger.is_email_claimed("pending@example.com") is False
    assert ledger.is_email_claimed("new@example.com") is False


def test_storage_failure_raises_ledger_error():
    db_engine = MagicMock()
    db_engine.connect.side_effect = OperationalError("SELECT 1", {}, Exception("server closed the connection"))
    ledger = CodeLedger(db_engine)

    with pytest.raises(LedgerError):
        ledger.find_active_code("ABC123")
    with pytest.raises(LedgerError):
        ledger.is_email_claimed("a@example.com")


def test_claim_storage_failure_raises_ledger_error():
    db_engine = MagicMock()
    db_engine.begin.side_effect = OperationalError("UPDATE codes", {}, Exception("connection reset"))
    ledger = CodeLedger(db_engine)

    with pytest.raises(LedgerError):
        ledger.claim("ABC123", name="A", email="a@example.com", city="Pune", phone="+91")


def test_registration_stats(ledger, seed_code, claimed_at):
    _registrant(seed_code, "AAA111", "c1", claimed_at)
    _registrant(seed_code, "BBB222", "c2", claimed_at + timedelta(hours=5))
    _registrant(seed_code, "CCC333", "c3", claimed_at + timedelta(days=1))
    _registrant(seed_code, "DDD444", "c4", claimed_at + timedelta(days=2), is_winner=True, name="Ravi Kumar")
    seed_code("EEE555", "c5")

    stats = ledger.registration_stats()

    assert stats["registrations"] == 4
    assert stats["codeScansPerDay"] == 2
    assert stats["winnersSelected"] == [{"name": "Ravi Kumar", "phone": "+919800000000", "city": "Pune"}]


def test_registration_stats_empty(ledger):
    assert ledger.registration_stats() == {"registrations": 0, "codeScansPerDay": 0, "winnersSelected": []}


def test_recent_activity_lists_registrations_newest_first(ledger, seed_code, claimed_at):
    _registrant(seed_code, "AAA111", "c1", claimed_at)
    _registrant(seed_code, "BBB222", "c2", claimed_at + timedelta(days=3), is_winner=True)
    # Incomplete rows are left out.
    _registrant(seed_code, "CCC333", "c3", claimed_at, city=None)
    seed_code("DDD444", "c4")

    entries = ledger.recent_activity()

    assert [e["id"] for e in entries] == ["c2", "c1"]
    first = entries[0]
    assert first["status"] == "Registered"
    assert first["date"] == "2025-09-04"
    assert first["isWinner"] is True
    assert first["code"] == "BBB222"
    assert entries[1]["isWinner"] is False


def test_set_winners_replaces_previous_selection(ledger, seed_code, claimed_at):
    _registrant(seed_code, "AAA111", "c1", claimed_at, is_winner=True)
    _registrant(seed_code, "BBB222", "c2", claimed_at)
    _registrant(seed_code, "CCC333", "c3", claimed_at, name=None)
    seed_code("DDD444", "c4")

    chosen = ledger.set_winners(["c2", "c3", "c4"])

    assert sorted(w["id"] for w in chosen) == ["c2", "c3"]
    names = {w["id"]: w["name"] for w in chosen}
    assert names["c3"] == "N/A"
    assert sorted(w["id"] for w in ledger.list_winners()) == ["c2", "c3"]


def test_list_winners_fills_missing_fields(ledger, seed_code, claimed_at):
    _registrant(seed_code, "AAA111", "c1", claimed_at, is_winner=True, phone_number=None, city=None)

    (winner,) = ledger.list_winners()

    assert winner == {
        "id": "c1",
        "code": "AAA111",
        "name": "Asha Rao",
        "email": "c1@example.com",
        "phone": "N/A",
        "city": "N/A",
    }
