import json
from typing import Any, Dict, Optional

from contestbot.extractor.base import FieldExtractor, Verdict
from contestbot.llm.chat_client import chat_completion
from contestbot.observability.logging import log
from contestbot.settings import settings
import contestbot.observability.metrics as metrics


def build_system_prompt(step: str, session_snapshot: Dict[str, str]) -> str:
    n = int(settings.CODE_LENGTH)
    return f"""You validate answers in the {settings.CONTEST_NAME} contest registration chat.
The registrant answers four questions in order:
1. ASK_NAME: their full name
2. ASK_EMAIL: their email address
3. ASK_CITY: the city they live in (must be in India)
4. ASK_CODE: the scratch code printed on their pack

Current step: {step}
Answers so far: {json.dumps(session_snapshot, ensure_ascii=False)}

People often answer in a sentence ("My name is John Smith", "I live in Mumbai, India",
"the code is ABC123"). Pull out only the relevant value.

Rules:
- NAME: at least 2 characters; letters, spaces, hyphens and apostrophes only.
- EMAIL: a syntactically valid address. Do NOT judge whether it is already registered.
- CITY: a real city in India. Return just the city name, even if a state or country is given.
- CODE: exactly {n} characters mixing letters and digits. Do NOT judge whether it exists.

Reply with one JSON object and nothing else:
{{"message": "...", "is_valid": true/false, "value": "..."}}

When valid: message is an upbeat confirmation that asks for the next item
(for CODE, just acknowledge); value is the cleaned value only.
When invalid: message explains what is wrong and asks again; value is "".
"""


def build_user_prompt(text: str, step: str) -> str:
    return (
        f"Current step: {step}\n"
        f"User input: {json.dumps(text, ensure_ascii=False)}\n\n"
        "Validate this input for the current step."
    )


def _extract_json(text: str) -> Dict[str, Any]:
    """
    Parse the model output as JSON, tolerating prose or code fences around
    the first object.
    """
    if not text:
        raise ValueError("Empty model output")

    s = text.strip()
    try:
        return json.loads(s)
    except ValueError:
        pass

    start = s.find("{")
    if start == -1:
        raise ValueError("No JSON object found in model output")

    decoder = json.JSONDecoder()
    obj, _ = decoder.raw_decode(s[start:])
    return obj


class LLMFieldExtractor(FieldExtractor):
    """
    Hosted-model extractor. Never raises: any call/parse failure yields the
    generic retry verdict, or the fallback extractor's verdict when one is set.
    """

    def __init__(self, fallback: Optional[FieldExtractor] = None):
        self.fallback = fallback

    def extract(self, text: str, step: str, session_snapshot: Dict[str, str]) -> Verdict:
        try:
            out = chat_completion(
                build_system_prompt(step, session_snapshot),
                build_user_prompt(text, step),
                temperature=0.1,
                max_tokens=200,
                json_mode=True,
            )
            data = _extract_json(out)
            if not isinstance(data, dict):
                raise ValueError("Model output is not a JSON object")
            verdict = Verdict.from_dict(data)
            log(event="extractor_verdict", step=step, isValid=verdict.is_valid)
            return verdict
        except Exception as e:
            metrics.increment_extractor_failures()
            log(
                event="extractor_failed",
                step=step,
                errorType=type(e).__name__,
                error=str(e)[:300],
                fallback=bool(self.fallback),
            )
            if self.fallback is not None:
                return self.fallback.extract(text, step, session_snapshot)
            return Verdict.retry()
