import re
from typing import Dict

from contestbot.core import state_machine as sm
from contestbot.extractor.base import FieldExtractor, Verdict
from contestbot.settings import settings

NAME_PREFIXES = re.compile(
    r"^\s*(?:hi|hello|hey)?[\s,!.]*(?:my\s+(?:full\s+)?name\s+is|name\s*[:\-]|i\s+am|i'm|im|this\s+is)\s+",
    re.IGNORECASE,
)
NAME_RE = re.compile(r"^[A-Za-z][A-Za-z\s'\-]*[A-Za-z]$")

EMAIL_RE = re.compile(r"[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}")

CITY_PREFIXES = re.compile(
    r"^\s*(?:i\s+(?:live|stay)\s+in|i\s+am\s+from|i'm\s+from|im\s+from|from|city\s*[:\-]|my\s+city\s+is|in)\s+",
    re.IGNORECASE,
)
CITY_RE = re.compile(r"^[A-Za-z][A-Za-z\s.\-]*[A-Za-z]$")
COUNTRY_SUFFIX = re.compile(r"\b(?:india|bharat)\b\.?$", re.IGNORECASE)


def _collapse(s: str) -> str:
    return re.sub(r"\s+", " ", s or "").strip()


class RuleBasedExtractor(FieldExtractor):
    """
    Deterministic format checks with light conversational stripping.
    Used in tests and as the degraded-mode fallback for the hosted model.
    """

    def __init__(self, code_length: int = None):
        self.code_length = int(code_length or settings.CODE_LENGTH)
        self._code_re = re.compile(rf"\b[A-Za-z0-9]{{{self.code_length}}}\b")

    def extract(self, text: str, step: str, session_snapshot: Dict[str, str]) -> Verdict:
        text = _collapse(text)
        if step == sm.ASK_NAME:
            return self._name(text)
        if step == sm.ASK_EMAIL:
            return self._email(text)
        if step == sm.ASK_CITY:
            return self._city(text)
        if step == sm.ASK_CODE:
            return self._code(text)
        return Verdict.retry()

    def _name(self, text: str) -> Verdict:
        name = _collapse(NAME_PREFIXES.sub("", text)).rstrip(".!")
        if len(name) >= 2 and NAME_RE.match(name):
            return Verdict(
                message=f"Great to meet you, {name}! Now please share your email address.",
                is_valid=True,
                value=name,
            )
        return Verdict(
            message="That doesn't look like a valid name. Please enter your full name "
                    "(letters, spaces, hyphens or apostrophes only).",
            is_valid=False,
        )

    def _email(self, text: str) -> Verdict:
        m = EMAIL_RE.search(text)
        if m:
            email = m.group(0).rstrip(".")
            return Verdict(
                message="Thanks! Which city in India do you live in?",
                is_valid=True,
                value=email,
            )
        return Verdict(
            message="That doesn't look like a valid email address. Please enter an email like name@example.com.",
            is_valid=False,
        )

    def _city(self, text: str) -> Verdict:
        city = CITY_PREFIXES.sub("", text)
        parts = [p.strip() for p in city.split(",") if p.strip()]
        city = parts[0] if parts else ""
        city = _collapse(COUNTRY_SUFFIX.sub("", city)).rstrip(".!")
        if len(city) >= 2 and CITY_RE.match(city):
            city = city.title()
            return Verdict(
                message=f"Awesome, {city} it is! Finally, please enter the "
                        f"{self.code_length}-character scratch code from your pack.",
                is_valid=True,
                value=city,
            )
        return Verdict(
            message="Please enter the name of the city in India where you live.",
            is_valid=False,
        )

    def _code(self, text: str) -> Verdict:
        for m in self._code_re.finditer(text):
            token = m.group(0)
            if any(c.isalpha() for c in token) and any(c.isdigit() for c in token):
                return Verdict(message="Checking your code...", is_valid=True, value=token)
        return Verdict(
            message=f"The scratch code must be exactly {self.code_length} characters, "
                    "a mix of letters and numbers. Please try again.",
            is_valid=False,
        )
