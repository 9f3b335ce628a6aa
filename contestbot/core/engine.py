from dataclasses import dataclass
from typing import Optional

from contestbot.core import messages
from contestbot.core import state_machine as sm
from contestbot.extractor.base import FieldExtractor
from contestbot.ledger.repo import CodeLedger, LedgerError
from contestbot.notify.whatsapp import Notifier
from contestbot.observability.logging import log
from contestbot.store.models import Session
from contestbot.store.session_repo import SessionRepository, SessionStoreError
import contestbot.observability.metrics as metrics

# Outcomes reported per inbound message
WELCOMED = "welcomed"
ADVANCED = "advanced"
INVALID_INPUT = "invalid_input"
EMAIL_TAKEN = "email_taken"
CODE_INVALID = "code_invalid"
CLAIM_REJECTED = "claim_rejected"
REGISTERED = "registered"
STORE_ERROR = "store_error"
LEDGER_ERROR = "ledger_error"
CLAIM_ERROR = "claim_error"


@dataclass
class EngineResult:
    outcome: str
    # Step the address is in after this message; None means no session.
    step: Optional[str]
    reply: str
    delivered: bool


class ConversationEngine:
    """
    Registration state machine: one inbound message in, exactly one reply out.

    Order inside a step is always: validate -> persist -> reply. A failed
    reply never rolls back persisted state, and a failed store/ledger call
    never advances the step.
    """

    def __init__(
        self,
        sessions: SessionRepository,
        ledger: CodeLedger,
        extractor: FieldExtractor,
        notifier: Notifier,
    ):
        self.sessions = sessions
        self.ledger = ledger
        self.extractor = extractor
        self.notifier = notifier

    def handle_message(self, address: str, text: str) -> EngineResult:
        metrics.increment_events_received()
        text = (text or "").strip()

        try:
            session = self.sessions.load(address)
        except SessionStoreError as e:
            log(event="session_load_failed", address=address, error=str(e)[:300])
            return self._reply(address, None, STORE_ERROR, messages.TECHNICAL_ISSUE)

        if session is None:
            return self._welcome(address)

        try:
            if session.step in (sm.ASK_NAME, sm.ASK_CITY):
                return self._free_field(session, text)
            if session.step == sm.ASK_EMAIL:
                return self._ask_email(session, text)
            return self._ask_code(session, text)
        except SessionStoreError as e:
            log(event="session_write_failed", address=address, step=session.step, error=str(e)[:300])
            return self._reply(address, session.step, STORE_ERROR, messages.STEP_TECHNICAL_ISSUE[session.step])
        except LedgerError as e:
            log(event="ledger_read_failed", address=address, step=session.step, error=str(e)[:300])
            return self._reply(address, session.step, LEDGER_ERROR, messages.STEP_TECHNICAL_ISSUE[session.step])

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------
    def _welcome(self, address: str) -> EngineResult:
        # The first message's text is not an answer to anything; it is dropped.
        try:
            self.sessions.start(address, sm.ASK_NAME)
        except SessionStoreError as e:
            log(event="session_start_failed", address=address, error=str(e)[:300])
            return self._reply(address, None, STORE_ERROR, messages.TECHNICAL_ISSUE)
        return self._reply(address, sm.ASK_NAME, WELCOMED, messages.welcome())

    def _free_field(self, session: Session, text: str) -> EngineResult:
        # Name and city have no outside constraint: the extractor's reply stands either way.
        verdict = self.extractor.extract(text, session.step, session.snapshot())
        if not verdict.is_valid:
            return self._reply(session.address, session.step, INVALID_INPUT, verdict.message)

        next_step = sm.NEXT_STEP[session.step]
        field = sm.FIELD_FOR_STEP[session.step]
        self.sessions.update(session.address, **{"step": next_step, field: verdict.value})
        return self._reply(session.address, next_step, ADVANCED, verdict.message)

    def _ask_email(self, session: Session, text: str) -> EngineResult:
        verdict = self.extractor.extract(text, session.step, session.snapshot())
        if not verdict.is_valid:
            return self._reply(session.address, session.step, INVALID_INPUT, verdict.message)

        email = verdict.value.strip().lower()
        if self.ledger.is_email_claimed(email):
            metrics.increment_duplicate_emails()
            return self._reply(session.address, session.step, EMAIL_TAKEN, messages.EMAIL_ALREADY_REGISTERED)

        self.sessions.update(session.address, step=sm.ASK_CITY, email=email)
        return self._reply(session.address, sm.ASK_CITY, ADVANCED, verdict.message)

    def _ask_code(self, session: Session, text: str) -> EngineResult:
        verdict = self.extractor.extract(text, session.step, session.snapshot())
        if not verdict.is_valid:
            return self._reply(session.address, session.step, INVALID_INPUT, verdict.message)

        code = verdict.value.strip()
        if self.ledger.find_active_code(code) is None:
            metrics.increment_claims_rejected()
            return self._reply(session.address, session.step, CODE_INVALID, messages.INVALID_CODE)

        # A stale session (its clear failed after an earlier claim) must not
        # bind a second code to an email that is already registered.
        if session.email and self.ledger.is_email_claimed(session.email):
            metrics.increment_duplicate_emails()
            self.sessions.update(session.address, step=sm.ASK_EMAIL)
            return self._reply(session.address, sm.ASK_EMAIL, EMAIL_TAKEN, messages.EMAIL_ALREADY_REGISTERED)

        self.sessions.update(session.address, code=code)

        try:
            claimed = self.ledger.claim(
                code,
                name=session.name,
                email=session.email,
                city=session.city,
                phone=session.address,
            )
        except LedgerError as e:
            # Outcome unknown: if the update did commit, a retry fails the
            # active-status precondition rather than claiming twice.
            log(event="code_claim_failed", address=session.address, code=code, error=str(e)[:300])
            return self._reply(session.address, session.step, CLAIM_ERROR, messages.claim_uncertain(code))

        if not claimed:
            # Lost a race between lookup and claim.
            metrics.increment_claims_rejected()
            return self._reply(session.address, session.step, CLAIM_REJECTED, messages.REGISTRATION_FAILED)

        metrics.increment_registrations()
        log(event="registration_completed", address=session.address, code=code)
        try:
            self.sessions.clear(session.address)
        except SessionStoreError as e:
            log(event="session_clear_failed", address=session.address, error=str(e)[:300])
            self._retire(session.address)
        return self._reply(session.address, None, REGISTERED, messages.REGISTRATION_COMPLETE)

    def _retire(self, address: str) -> None:
        # Registration stands either way; a session that survives this is
        # still blocked by the email check in _ask_code.
        try:
            self.sessions.retire(address)
        except SessionStoreError as e:
            log(event="session_retire_failed", address=address, error=str(e)[:300])

    # ------------------------------------------------------------------
    def _reply(self, address: str, step: Optional[str], outcome: str, body: str) -> EngineResult:
        delivered = self.notifier.send(address, body)
        if not delivered:
            metrics.increment_send_failures()
            log(event="reply_send_failed", address=address, outcome=outcome)
        log(event="conversation_step", address=address, outcome=outcome, step=step or "", delivered=delivered)
        return EngineResult(outcome=outcome, step=step, reply=body, delivered=delivered)
