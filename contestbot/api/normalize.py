from typing import Any, Optional

from contestbot.api.schemas import InboundMessage


def _first(items: Any) -> Optional[dict]:
    if isinstance(items, list) and items and isinstance(items[0], dict):
        return items[0]
    return None


def extract_inbound_message(payload: Any) -> Optional[InboundMessage]:
    """
    Pull the first user message out of a WhatsApp Cloud API webhook body:

    {"entry": [{"changes": [{"value": {"messages": [{"from": "...", "id": "...",
                                                    "text": {"body": "..."}}]}}]}]}

    Returns None for status-only callbacks, malformed bodies, or messages
    without a sender. Non-text messages (images, stickers) come back with
    empty text.
    """
    if not isinstance(payload, dict):
        return None

    entry = _first(payload.get("entry"))
    change = _first(entry.get("changes")) if entry else None
    value = change.get("value") if change else None
    msg = _first(value.get("messages")) if isinstance(value, dict) else None
    if not msg:
        return None

    sender = str(msg.get("from") or "").strip()
    if not sender:
        return None

    text_obj = msg.get("text")
    body = text_obj.get("body") if isinstance(text_obj, dict) else None
    text = (body or "").strip() if isinstance(body, str) else ""

    return InboundMessage.model_validate({"from": sender, "text": text, "id": msg.get("id")})
