"""
Process-wide collaborators, built lazily on first use.
Routes take them through FastAPI Depends so tests can override each one.
"""
from functools import lru_cache

from contestbot.core.engine import ConversationEngine
from contestbot.extractor.base import FieldExtractor
from contestbot.extractor.llm import LLMFieldExtractor
from contestbot.extractor.rules import RuleBasedExtractor
from contestbot.ledger.db import get_engine as get_db_engine
from contestbot.ledger.repo import CodeLedger
from contestbot.notify.email import EmailSender
from contestbot.notify.whatsapp import Notifier, WhatsAppNotifier
from contestbot.settings import settings
from contestbot.store.redis_conn import get_redis
from contestbot.store.session_repo import RedisSessionStore, SessionRepository


@lru_cache(maxsize=1)
def get_session_repo() -> SessionRepository:
    return SessionRepository(RedisSessionStore(get_redis()))


@lru_cache(maxsize=1)
def get_code_ledger() -> CodeLedger:
    return CodeLedger(get_db_engine())


@lru_cache(maxsize=1)
def get_extractor() -> FieldExtractor:
    if settings.EXTRACTOR_MODE == "rules":
        return RuleBasedExtractor()
    fallback = RuleBasedExtractor() if settings.EXTRACTOR_FALLBACK_TO_RULES else None
    return LLMFieldExtractor(fallback=fallback)


@lru_cache(maxsize=1)
def get_notifier() -> Notifier:
    return WhatsAppNotifier()


@lru_cache(maxsize=1)
def get_email_sender() -> EmailSender:
    return EmailSender()


def get_conversation_engine() -> ConversationEngine:
    return ConversationEngine(
        sessions=get_session_repo(),
        ledger=get_code_ledger(),
        extractor=get_extractor(),
        notifier=get_notifier(),
    )
