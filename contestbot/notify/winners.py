from typing import Any, Dict, List

from contestbot.core import messages
from contestbot.ledger.repo import CodeLedger
from contestbot.notify.email import EmailSender
from contestbot.notify.whatsapp import Notifier
from contestbot.observability.logging import log


def _notify_one(winner: Dict[str, Any], notifier: Notifier, mailer: EmailSender) -> Dict[str, Any]:
    name = winner.get("name") if winner.get("name") not in (None, "N/A") else "Winner"
    phone = winner.get("phone") if winner.get("phone") != "N/A" else None
    email = winner.get("email")
    body = messages.winner_text(name, winner.get("code") or "", winner.get("city") or "")

    result = {
        "name": name,
        "phone": phone,
        "email": email,
        "whatsappStatus": "skipped",
        "emailStatus": "skipped",
        "errors": [],
    }

    if phone:
        if notifier.send(phone, body):
            result["whatsappStatus"] = "sent"
        else:
            result["whatsappStatus"] = "failed"
            result["errors"].append("WhatsApp: send failed")

    if email:
        if mailer.send(email, messages.winner_email_subject(), body):
            result["emailStatus"] = "sent"
        else:
            result["emailStatus"] = "failed"
            result["errors"].append("Email: send failed")

    return result


def _summary_message(emails_sent: int, emails_failed: int, wa_sent: int, wa_failed: int) -> str:
    ok = []
    if emails_sent:
        ok.append(f"{emails_sent} email(s) sent")
    if wa_sent:
        ok.append(f"{wa_sent} WhatsApp message(s) sent")
    message = f"{', '.join(ok)} successfully!" if ok else "Congratulations notifications sent successfully!"

    failed = []
    if emails_failed:
        failed.append(f"{emails_failed} email(s) failed")
    if wa_failed:
        failed.append(f"{wa_failed} WhatsApp message(s) failed")
    if failed:
        message += f" {' and '.join(failed)}."
    return message


def notify_winners(ledger: CodeLedger, notifier: Notifier, mailer: EmailSender) -> Dict[str, Any]:
    """
    Send the congratulation text and email to every current winner.
    Each winner and channel is independent; failures are counted, not raised.
    """
    winners = ledger.list_winners()
    results: List[Dict[str, Any]] = [_notify_one(w, notifier, mailer) for w in winners]

    emails_sent = sum(1 for r in results if r["emailStatus"] == "sent")
    emails_failed = sum(1 for r in results if r["emailStatus"] == "failed")
    wa_sent = sum(1 for r in results if r["whatsappStatus"] == "sent")
    wa_failed = sum(1 for r in results if r["whatsappStatus"] == "failed")

    log(
        event="winner_notifications_done",
        totalWinners=len(winners),
        emailsSent=emails_sent,
        emailsFailed=emails_failed,
        whatsappSent=wa_sent,
        whatsappFailed=wa_failed,
    )
    return {
        "success": True,
        "totalWinners": len(winners),
        "emailsSent": emails_sent,
        "emailsFailed": emails_failed,
        "whatsappSent": wa_sent,
        "whatsappFailed": wa_failed,
        "results": results,
        "message": _summary_message(emails_sent, emails_failed, wa_sent, wa_failed),
    }
