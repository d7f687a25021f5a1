"""Email notifications for account approval decisions.

Message bodies are Jinja2 templates under ``src/templates``. Delivery is best
effort: a failure is logged and never propagates to the request that
triggered it.
"""

import logging
import smtplib
from email.message import EmailMessage

import jinja2

from config import (
    FRONTEND_URL,
    SMTP_HOST,
    SMTP_PASSWORD,
    SMTP_PORT,
    SMTP_SENDER_NAME,
    SMTP_TIMEOUT,
    SMTP_USER,
    TEMPLATE_DIR,
)
from models.user import ROLE_NAMES, UserModel
from utils.clock import utcnow

logger = logging.getLogger(__name__)

_environment = jinja2.Environment(
    loader=jinja2.FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=jinja2.select_autoescape(["html"]),
)


def render(template_name: str, **context) -> str:
    """Render an email template with the common context filled in."""
    context.setdefault("frontend_url", FRONTEND_URL)
    context.setdefault("year", utcnow().year)
    return _environment.get_template(template_name).render(**context)


class Notifier:
    """Sends HTML email through SMTP over SSL."""

    def send(self, to: str, subject: str, html: str) -> bool:
        """Send one message.

        Returns:
            True if the relay accepted the message, False otherwise.
        """
        if not SMTP_USER or not SMTP_PASSWORD:
            logger.info("SMTP not configured; skipping email '%s' to %s", subject, to)
            return False

        message = EmailMessage()
        message["From"] = f"{SMTP_SENDER_NAME} <{SMTP_USER}>"
        message["To"] = to
        message["Subject"] = subject
        message.set_content("Abra este e-mail em um cliente com suporte a HTML.")
        message.add_alternative(html, subtype="html")

        try:
            with smtplib.SMTP_SSL(SMTP_HOST, SMTP_PORT, timeout=SMTP_TIMEOUT) as smtp:
                smtp.login(SMTP_USER, SMTP_PASSWORD)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError):
            logger.exception("Failed to send email '%s' to %s", subject, to)
            return False
        logger.info("Sent email '%s' to %s", subject, to)
        return True

    def notify_approved(self, user: UserModel, role: int) -> bool:
        html = render(
            "account_approved.html",
            username=user.username,
            role_name=ROLE_NAMES.get(role, "Profissional"),
        )
        return self.send(user.email, "Evolvere - Conta aprovada", html)

    def notify_rejected(self, user: UserModel, role: int) -> bool:
        html = render(
            "account_rejected.html",
            username=user.username,
            role_name=ROLE_NAMES.get(role, "Profissional"),
        )
        return self.send(user.email, "Evolvere - Conta não aprovada", html)

