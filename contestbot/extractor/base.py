from dataclasses import dataclass
from typing import Dict

RETRY_MESSAGE = "Sorry, I'm having trouble processing your input. Please try again."


@dataclass(frozen=True)
class Verdict:
    """Extractor answer for one user message at one step."""
    message: str
    is_valid: bool
    value: str = ""

    @classmethod
    def retry(cls) -> "Verdict":
        return cls(message=RETRY_MESSAGE, is_valid=False, value="")

    @classmethod
    def from_dict(cls, data: dict) -> "Verdict":
        message = str(data.get("message") or "").strip()
        value = str(data.get("value") or "").strip()
        raw_valid = data.get("is_valid", False)
        if isinstance(raw_valid, str):
            is_valid = raw_valid.strip().lower() == "true"
        else:
            is_valid = bool(raw_valid)
        if not message:
            return cls.retry()
        # A "valid" answer with nothing extracted cannot advance the flow.
        if is_valid and not value:
            return cls.retry()
        return cls(message=message, is_valid=is_valid, value=value if is_valid else "")


class FieldExtractor:
    """
    Validates and extracts one field from free-form text.

    Implementations must not raise: internal failures come back as
    Verdict.retry() (or another invalid verdict).
    """

    def extract(self, text: str, step: str, session_snapshot: Dict[str, str]) -> Verdict:
        raise NotImplementedError
