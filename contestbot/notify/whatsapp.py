from typing import Optional

import httpx

from contestbot.settings import settings
from contestbot.observability.logging import log

GRAPH_BASE_URL = "https://graph.facebook.com"


class Notifier:
    """send(address, text) -> True on delivery to the provider, False otherwise. Never raises."""

    def send(self, to: str, body: str) -> bool:
        raise NotImplementedError


class WhatsAppNotifier(Notifier):
    def __init__(
        self,
        token: str = None,
        phone_number_id: str = None,
        *,
        api_version: str = None,
        timeout_sec: float = None,
        client: Optional[httpx.Client] = None,
    ):
        self.token = token if token is not None else settings.WHATSAPP_TOKEN
        self.phone_number_id = phone_number_id if phone_number_id is not None else settings.WHATSAPP_PHONE_NUMBER_ID
        self.api_version = api_version or settings.WHATSAPP_API_VERSION
        self._client = client or httpx.Client(timeout=timeout_sec or settings.WHATSAPP_TIMEOUT_SEC)

    @property
    def messages_url(self) -> str:
        return f"{GRAPH_BASE_URL}/{self.api_version}/{self.phone_number_id}/messages"

    def send(self, to: str, body: str) -> bool:
        if not to or not body:
            log(event="whatsapp_send_skipped", to=to or "", reason="missing_recipient_or_body")
            return False
        if not self.token or not self.phone_number_id:
            log(event="whatsapp_send_skipped", to=to, reason="credentials_not_configured")
            return False

        payload = {
            "messaging_product": "whatsapp",
            "to": to,
            "text": {"body": body},
        }
        headers = {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
        }
        try:
            resp = self._client.post(self.messages_url, headers=headers, json=payload)
        except httpx.HTTPError as e:
            log(event="whatsapp_send_exception", to=to, errorType=type(e).__name__, error=str(e)[:300])
            return False

        if 200 <= resp.status_code < 300:
            log(event="whatsapp_send_success", to=to, statusCode=int(resp.status_code))
            return True

        log(
            event="whatsapp_send_failed",
            to=to,
            statusCode=int(resp.status_code),
            responseText=(resp.text or "")[:300],
        )
        return False
