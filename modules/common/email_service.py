# modules/common/email_service.py
import html
import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.message import EmailMessage
from typing import List, Optional

logger = logging.getLogger(__name__)


@dataclass
class OutgoingMail:
    subject: str
    to: List[str]
    html: str
    text: Optional[str] = None


def meeting_invitation(title: str, room: Optional[str], start, end, online_link: Optional[str],
                       organizer: Optional[str], to: str) -> OutgoingMail:
    """Invitation sent when an organizer adds someone to a meeting."""
    when = f"{start:%Y-%m-%d %H:%M} - {end:%Y-%m-%d %H:%M}"
    safe_title, safe_room, safe_link, safe_organizer = (
        html.escape(v or "-") for v in (title, room, online_link, organizer)
    )
    body = (
        "<h3>You have been invited to a meeting</h3>"
        f"<p><b>Title:</b> {safe_title}</p>"
        f"<p><b>Room:</b> {safe_room}</p>"
        f"<p><b>Time:</b> {when}</p>"
        f"<p><b>Online link:</b> {safe_link}</p>"
        f"<p><b>Organizer:</b> {safe_organizer}</p>"
        "<p>Open the app to accept or decline.</p>"
    )
    text = f"You have been invited to '{title}' ({when}, room {room or '-'})."
    return OutgoingMail(subject=f"[Meeting invitation] {title}", to=[to], html=body, text=text)


class EmailService:
    """Fail-safe mail sender: ``deliver`` logs problems and returns False instead of raising."""

    def __init__(self, settings):
        self.s = settings

    def _build(self, mail: OutgoingMail) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = f"{self.s.EMAIL_FROM_NAME} <{self.s.EMAIL_FROM or 'noreply@localhost'}>"
        msg["To"] = ", ".join(mail.to)
        msg["Subject"] = mail.subject
        msg.set_content(mail.text or " ")
        if mail.html:
            msg.add_alternative(mail.html, subtype="html")
        return msg

    def _connect(self, context: ssl.SSLContext) -> smtplib.SMTP:
        if self.s.EMAIL_USE_SSL:
            return smtplib.SMTP_SSL(self.s.EMAIL_HOST, self.s.EMAIL_PORT, context=context, timeout=20)
        return smtplib.SMTP(self.s.EMAIL_HOST, self.s.EMAIL_PORT, timeout=20)

    def _send_smtp(self, mail: OutgoingMail) -> bool:
        if not self.s.EMAIL_HOST or not self.s.EMAIL_PORT:
            logger.error("EMAIL_HOST/EMAIL_PORT not configured")
            return False
        context = ssl.create_default_context()
        try:
            # handshake and login inside the block so a failure still closes the socket
            with self._connect(context) as server:
                if not self.s.EMAIL_USE_SSL and self.s.EMAIL_USE_TLS:
                    server.starttls(context=context)
                if self.s.EMAIL_USERNAME:
                    server.login(self.s.EMAIL_USERNAME, self.s.EMAIL_PASSWORD)
                server.send_message(self._build(mail))
        except (smtplib.SMTPException, OSError) as e:
            logger.exception("SMTP failed (%s): %s", e.__class__.__name__, e)
            return False
        logger.info("[Email] Sent via SMTP: %s -> %s", mail.subject, mail.to)
        return True

    def deliver(self, mail: OutgoingMail) -> bool:
        mail.to = sorted({(e or "").strip().lower() for e in mail.to if e and "@" in e})
        if not mail.to:
            return False

        if not self.s.EMAIL_ENABLED:
            logger.info("[Email] Suppressed (EMAIL_ENABLED=False): %s -> %s", mail.subject, mail.to)
            return False

        if (self.s.EMAIL_BACKEND or "").lower() == "console":
            logger.info("[Email console] %s -> %s\n%s", mail.subject, ", ".join(mail.to), mail.text or mail.html)
            return True

        return self._send_smtp(mail)
