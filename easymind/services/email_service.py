#!/usr/bin/env python3
"""
EasyMind - Email Service
========================
Send admin verification codes and teacher approval notices via Resend.

Setup:
1. Add RESEND_API_KEY to .env file
2. Verify your sending domain at https://resend.com/domains
3. Optionally set RESEND_FROM_EMAIL
"""

import logging

import resend

from easymind.config import RESEND_API_KEY, RESEND_FROM_EMAIL, VERIFICATION_CODE_TTL_MINUTES

logger = logging.getLogger(__name__)


class EasyMindEmailer:
    """Send console emails via Resend API."""

    def __init__(self, api_key: str = None, from_email: str = None):
        self.api_key = api_key if api_key is not None else RESEND_API_KEY
        self.from_email = from_email or RESEND_FROM_EMAIL
        self.resend_available = bool(self.api_key)
        if self.resend_available:
            resend.api_key = self.api_key

    def send_email(self, to_email: str, subject: str, text: str, html: str = None) -> bool:
        """
        Send a single email via Resend.

        Returns:
            True if successful
        """
        if not self.resend_available:
            logger.warning("Resend API key not configured, not sending '%s' to %s", subject, to_email)
            return False

        params = {
            "from": self.from_email,
            "to": [to_email],
            "subject": subject,
            "text": text,
        }
        if html:
            params["html"] = html

        try:
            response = resend.Emails.send(params)
        except Exception as e:
            logger.error("Failed to send '%s' to %s: %s", subject, to_email, e)
            return False

        if response and response.get('id'):
            logger.info("Sent '%s' to %s", subject, to_email)
            return True
        logger.error("Failed to send '%s' to %s: no response ID", subject, to_email)
        return False

    def send_verification_code(self, email: str, code: str) -> bool:
        """Send the admin second-step code."""
        ttl = VERIFICATION_CODE_TTL_MINUTES
        text = (
            f"Your verification code is: {code}. It expires in {ttl} minutes. "
            "If you did not attempt to sign in, please contact support."
        )
        html = (
            f"<p>Your verification code is: <strong>{code}</strong>.</p>"
            f"<p>It expires in {ttl} minutes.</p>"
            "<p>If you did not attempt to sign in, please contact support.</p>"
        )
        return self.send_email(email, "Your Admin Verification Code", text, html)

    def send_approval_notice(self, email: str, teacher_name: str) -> bool:
        """Tell a teacher their account was approved and activated."""
        text = f"""Hi {teacher_name},

Your EasyMind teacher account has been approved and is now active.
You can sign in to the teacher dashboard with the email and password you registered with.

EasyMind Admin
"""
        html = (
            f"<p>Hi {teacher_name},</p>"
            "<p>Your EasyMind teacher account has been <strong>approved</strong> and is now active.</p>"
            "<p>You can sign in to the teacher dashboard with the email and password you registered with.</p>"
            "<p>EasyMind Admin</p>"
        )
        return self.send_email(email, "Your EasyMind account is active", text, html)


_emailer = None


def get_emailer():
    """Get or create the shared emailer."""
    global _emailer
    if _emailer is None:
        _emailer = EasyMindEmailer()
    return _emailer
