"""
Registration Flow Counters
--------------------------
Lightweight Redis counters for the conversational flow, consumed by
/admin/metrics. Every write is best-effort: a Redis outage must never
turn a user reply into a failure, so errors are logged and dropped.
"""
from __future__ import annotations
import time
from typing import Dict

from redis.exceptions import RedisError

from contestbot.store.redis_conn import get_redis
from contestbot.observability.logging import log

K_EVENTS = "metrics:events:received"
K_REGISTERED = "metrics:registrations:completed"
K_CLAIM_REJECTED = "metrics:claims:rejected"
K_EMAIL_DUPLICATE = "metrics:emails:duplicate"
K_EXTRACTOR_FAIL = "metrics:extractor:failures"
K_SEND_FAIL = "metrics:replies:send_failed"

ALL_KEYS = {
    "events_received": K_EVENTS,
    "registrations_completed": K_REGISTERED,
    "claims_rejected": K_CLAIM_REJECTED,
    "duplicate_emails": K_EMAIL_DUPLICATE,
    "extractor_failures": K_EXTRACTOR_FAIL,
    "reply_send_failures": K_SEND_FAIL,
}


def _incr(key: str) -> None:
    try:
        get_redis().incr(key, 1)
    except RedisError as e:
        log(event="metrics_write_failed", key=key, error=str(e)[:200])


def increment_events_received() -> None:
    _incr(K_EVENTS)

def increment_registrations() -> None:
    _incr(K_REGISTERED)

def increment_claims_rejected() -> None:
    _incr(K_CLAIM_REJECTED)

def increment_duplicate_emails() -> None:
    _incr(K_EMAIL_DUPLICATE)

def increment_extractor_failures() -> None:
    _incr(K_EXTRACTOR_FAIL)

def increment_send_failures() -> None:
    _incr(K_SEND_FAIL)


def get_metrics_snapshot() -> Dict[str, int]:
    """All counters as ints; missing keys (first boot) read as 0."""
    r = get_redis()
    names = list(ALL_KEYS.keys())
    raw = r.mget([ALL_KEYS[n] for n in names])
    out: Dict[str, int] = {}
    for name, val in zip(names, raw):
        try:
            out[name] = int(val or 0)
        except (TypeError, ValueError):
            out[name] = 0
    out["snapshot_at"] = int(time.time())
    return out
