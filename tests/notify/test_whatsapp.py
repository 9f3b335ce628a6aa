from unittest.mock import MagicMock

import httpx

from contestbot.notify.whatsapp import WhatsAppNotifier


def _notifier(client, token="tok", phone_number_id="12345"):
    return WhatsAppNotifier(token, phone_number_id, api_version="v22.0", client=client)


def test_send_posts_text_message():
    client = MagicMock()
    client.post.return_value = MagicMock(status_code=200, text="{}")

    ok = _notifier(client).send("+911234567", "hello")

    assert ok is True
    url = client.post.call_args.args[0]
    kwargs = client.post.call_args.kwargs
    assert url == "https://graph.facebook.com/v22.0/12345/messages"
    assert kwargs["headers"]["Authorization"] == "Bearer tok"
    assert kwargs["json"] == {
        "messaging_product": "whatsapp",
        "to": "+911234567",
        "text": {"body": "hello"},
    }


def test_non_2xx_is_failure():
    client = MagicMock()
    client.post.return_value = MagicMock(status_code=401, text='{"error": "bad token"}')

    assert _notifier(client).send("+91", "hello") is False


def test_transport_error_is_failure():
    client = MagicMock()
    client.post.side_effect = httpx.ConnectError("no route")

    assert _notifier(client).send("+91", "hello") is False


def test_missing_credentials_skip_without_call():
    client = MagicMock()

    assert _notifier(client, token="").send("+91", "hello") is False
    assert _notifier(client, phone_number_id="").send("+91", "hello") is False
    client.post.assert_not_called()


def test_missing_recipient_or_body_skips():
    client = MagicMock()

    assert _notifier(client).send("", "hello") is False
    assert _notifier(client).send("+91", "") is False
    client.post.assert_not_called()
