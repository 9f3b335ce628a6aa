import json
from unittest.mock import patch

from contestbot.observability.logging import log
from contestbot.settings import settings


def _last_line(capsys):
    return json.loads(capsys.readouterr().out.strip().splitlines()[-1])


def test_registrant_details_are_redacted(capsys):
    with patch.object(settings, "ENABLE_PII_REDACTION", True):
        log(event="webhook_message", address="+91", text="John Doe", extra={"email": "a@b.com", "step": "ASK_EMAIL"})

    line = _last_line(capsys)
    assert line["event"] == "webhook_message"
    assert line["address"] == "+91"
    assert line["text"] == "[REDACTED:8chars]"
    assert line["extra"]["email"] == "[REDACTED:7chars]"
    assert line["extra"]["step"] == "ASK_EMAIL"


def test_redaction_can_be_disabled(capsys):
    with patch.object(settings, "ENABLE_PII_REDACTION", False):
        log(event="x", name="John")

    assert _last_line(capsys)["name"] == "John"
