"""
Verification / reset emails: templates, SMTP transport and dispatch.
"""
from __future__ import annotations

import html
import logging
import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Dict, Optional, Protocol

from app.config import Settings
from app.errors import EMAIL_FAILURE, EMAIL_TRANSPORTER_FAILURE, AccountError

log = logging.getLogger("app.email")

VERIFY_EMAIL = "verify_email"
EMAIL_CHANGE = "email_change"
PASSWORD_RESET = "password_reset"


@dataclass
class OutgoingEmail:
    to: str
    subject: str
    text: str
    html: str
    template_key: str = ""


class MailTransportError(RuntimeError):
    """No usable transport: missing credentials or the server refused us."""


class MailSender(Protocol):
    def send(self, message: OutgoingEmail) -> None: ...


def _effective_from(email_from: str | None, email_user: str | None, smtp_server: str, app_name: str) -> str:
    # Gmail rewrites or blocks mail whose From differs from the login.
    if "gmail" in (smtp_server or "").lower() and email_user:
        address = email_user
    else:
        address = email_from or email_user or "noreply@waw.local"
    return f'"{app_name}" <{address}>'


class SmtpMailSender:
    def __init__(self, settings: Settings, timeout: float = 30):
        self.settings = settings
        self.timeout = timeout

    def send(self, message: OutgoingEmail) -> None:
        """
        Send over STARTTLS. Failing to connect or log in raises
        MailTransportError; errors after login propagate as they are.
        """
        s = self.settings
        if not (s.email_user and s.email_password):
            raise MailTransportError("Email credentials not configured. Set EMAIL_USER and EMAIL_PASSWORD.")

        msg = MIMEMultipart("alternative")
        msg["Subject"] = message.subject
        msg["From"] = _effective_from(s.email_from, s.email_user, s.smtp_server, s.app_name)
        msg["To"] = message.to
        msg.attach(MIMEText(message.text, "plain", "utf-8"))
        msg.attach(MIMEText(message.html, "html", "utf-8"))

        logged_in = False
        try:
            with smtplib.SMTP(s.smtp_server, s.smtp_port, timeout=self.timeout) as server:
                server.starttls()
                server.login(s.email_user, s.email_password)
                logged_in = True
                server.sendmail(msg["From"], [message.to], msg.as_string())
        except OSError as exc:
            # SMTPException is an OSError
            if logged_in:
                raise
            raise MailTransportError(f"SMTP connection to {s.smtp_server}:{s.smtp_port} failed: {exc}") from exc


def _code_html(title: str, greeting: str, intro: str, code: str, minutes: str) -> str:
    return f"""<!doctype html>
<html>
  <body style="font-family: Arial, sans-serif;">
    <h2>{html.escape(title)}</h2>
    <p>{html.escape(greeting)}</p>
    <p>{html.escape(intro)}</p>
    <p style="font-size: 1.6rem; letter-spacing: 0.3rem;"><strong>{html.escape(code)}</strong></p>
    <p>This code expires in {html.escape(minutes)} minute(s).</p>
  </body>
</html>
"""


def format_email(template_key: str, to: str, variables: Dict[str, str], app_name: str = "WAW") -> OutgoingEmail:
    name = variables.get("name") or to
    code = variables.get("code", "")
    minutes = str(variables.get("minutes", "1"))
    greeting = f"Hi {name},"

    if template_key == VERIFY_EMAIL:
        subject = f"Code to verify your {app_name} email: {code}"
        intro = (
            f"Thanks for registering with {app_name}! "
            "Use the following code to complete the email verification process:"
        )
        title = "Verify your email"
    elif template_key == EMAIL_CHANGE:
        subject = f"Code to confirm your new {app_name} email: {code}"
        intro = "Use the following code to confirm this address as your new account email:"
        title = "Confirm your new email"
    elif template_key == PASSWORD_RESET:
        subject = f"Code to reset your {app_name} password: {code}"
        intro = "Use the following code to reset your password. If you did not request this, ignore the email."
        title = "Reset your password"
    else:
        raise ValueError(f"unknown email template: {template_key}")

    text = f"{greeting}\n\n{intro} {code}\n\nThis code expires in {minutes} minute(s)."
    return OutgoingEmail(
        to=to,
        subject=subject,
        text=text,
        html=_code_html(title, greeting, intro, code, minutes),
        template_key=template_key,
    )


def deliver(
    settings: Settings,
    mailer: Optional[MailSender],
    request_id: str,
    to: str,
    template_key: str,
    variables: Dict[str, str],
) -> None:
    """
    Format and send one email. Skipped in the test environment. Transport
    problems become a 500 for the current request; nothing is retried.
    """
    if settings.is_test:
        return
    if mailer is None:
        raise AccountError(500, EMAIL_TRANSPORTER_FAILURE)

    variables = {"minutes": f"{settings.code_expiry_minutes:g}", **variables}
    message = format_email(template_key, to, variables, app_name=settings.app_name)
    try:
        mailer.send(message)
    except MailTransportError as exc:
        log.error("[%s] email transport unavailable: %s", request_id, exc)
        raise AccountError(500, EMAIL_TRANSPORTER_FAILURE) from exc
    except Exception as exc:
        log.error("[%s] sending %s email failed: %s", request_id, template_key, exc)
        raise AccountError(500, EMAIL_FAILURE) from exc
    log.info("[%s] sent %s email", request_id, template_key)


__all__ = [
    "VERIFY_EMAIL",
    "EMAIL_CHANGE",
    "PASSWORD_RESET",
    "OutgoingEmail",
    "MailTransportError",
    "MailSender",
    "SmtpMailSender",
    "format_email",
    "deliver",
]
