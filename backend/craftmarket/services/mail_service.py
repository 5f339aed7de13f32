# Overview: Outbound account mail (verification codes, password reset links) via Resend.

"""
Mail delivery

Mail is a side channel: a failed send is logged and reported back as
(False, reason), never raised. The account change that triggered the mail
has already been committed by then.

With no RESEND_API_KEY configured nothing is sent, which is the normal
state for development and tests.
"""

from __future__ import annotations

from html import escape
from urllib.parse import urlencode

import resend
from flask import current_app

from ..config import Settings


def _send(settings: Settings, payload: dict) -> tuple[bool, str | None]:
    api_key = (settings.resend_api_key or "").strip()
    if not api_key:
        current_app.logger.info("Mail not sent to %s: Resend API key is not configured.", payload["to"])
        return False, "Resend API key is not configured."

    resend.api_key = api_key
    try:
        response = resend.Emails.send(payload)
    except Exception as exc:
        current_app.logger.exception("Failed to send mail to %s", payload["to"])
        return False, str(exc)

    if not isinstance(response, dict) or not response.get("id"):
        current_app.logger.error("Unexpected Resend response for %s: %r", payload["to"], response)
        return False, str(response)

    return True, None


def send_verification_email(settings: Settings, email: str, name: str | None, otp: str) -> tuple[bool, str | None]:
    greeting = f"Hi {name}," if name else "Hi,"
    html_greeting = f"Hi {escape(name)}," if name else "Hi,"
    minutes = int(settings.otp_ttl.total_seconds() // 60)
    text = (
        f"{greeting}\n\n"
        f"Your Craft Market verification code is {otp}. "
        f"It expires in {minutes} minutes.\n"
    )
    html = (
        f"<p>{html_greeting}</p>"
        f"<p>Your Craft Market verification code is <strong>{otp}</strong>.</p>"
        f"<p>It expires in {minutes} minutes.</p>"
    )
    return _send(settings, {
        "from": settings.mail_sender,
        "to": [email],
        "subject": "Verify your Craft Market account",
        "html": html,
        "text": text,
    })


def password_reset_link(settings: Settings, user_id: int, token: str) -> str:
    base = (settings.frontend_url or settings.app_url).rstrip("/")
    return f"{base}/reset-password?{urlencode({'id': user_id, 'token': token})}"


def send_password_reset_email(
    settings: Settings, email: str, name: str | None, user_id: int, token: str
) -> tuple[bool, str | None]:
    link = password_reset_link(settings, user_id, token)
    minutes = int(settings.reset_token_ttl.total_seconds() // 60)
    greeting = f"Hi {name}," if name else "Hi,"
    html_greeting = f"Hi {escape(name)}," if name else "Hi,"
    return _send(settings, {
        "from": settings.mail_sender,
        "to": [email],
        "subject": "Reset your Craft Market password",
        "html": (
            f"<p>{html_greeting}</p>"
            f"<p><a href=\"{escape(link)}\">Reset your password</a>. "
            f"The link is valid for {minutes} minutes.</p>"
        ),
        "text": f"{greeting}\n\nReset your password: {link}\nThe link is valid for {minutes} minutes.\n",
    })
