import smtplib
from email.message import EmailMessage

from contestbot.settings import settings
from contestbot.observability.logging import log


class EmailSender:
    """Plain-text mail over SMTP with STARTTLS. send() returns False instead of raising."""

    def __init__(
        self,
        host: str = None,
        port: int = None,
        *,
        user: str = None,
        password: str = None,
        sender: str = None,
        timeout_sec: float = None,
    ):
        self.host = host or settings.SMTP_HOST
        self.port = int(port or settings.SMTP_PORT)
        self.user = user if user is not None else settings.SMTP_USER
        self.password = password if password is not None else settings.SMTP_PASSWORD
        self.sender = sender or settings.SENDER_EMAIL or self.user
        self.timeout_sec = float(timeout_sec or settings.SMTP_TIMEOUT_SEC)

    def send(self, to: str, subject: str, body: str) -> bool:
        if not to:
            return False
        if not self.sender:
            log(event="email_send_skipped", reason="sender_not_configured")
            return False

        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(body)

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout_sec) as smtp:
                smtp.starttls()
                if self.user:
                    smtp.login(self.user, self.password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            log(event="email_send_failed", errorType=type(e).__name__, error=str(e)[:300])
            return False

        log(event="email_send_success")
        return True
