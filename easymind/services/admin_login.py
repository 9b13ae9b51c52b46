"""
Two-step admin sign-in.

Step one checks the password and the 'admin' role claim, then emails a
six-digit code. Step two compares the code stored on users/{uid} and marks
the admin as verified. Failed password attempts are counted per email; the
fourth failure switches the screen to the password reset prompt.
"""
import logging
import secrets
import threading
import time
from collections import OrderedDict
from datetime import datetime, timezone

from easymind import auth, identity, store
from easymind.config import (
    LOGIN_ATTEMPT_WINDOW_MINUTES, MAX_LOGIN_ATTEMPTS, MAX_TRACKED_LOGINS,
    VERIFICATION_CODE_TTL_MINUTES,
)
from easymind.errors import AccessDenied, EasyMindError, NotFoundError, VerificationError
from easymind.identity import IdentityError
from easymind.services.email_service import get_emailer

logger = logging.getLogger(__name__)


class LoginError(EasyMindError):
    status_code = 401

    def __init__(self, message, show_reset=False, attempts_remaining=None):
        super().__init__(message)
        self.show_reset = show_reset
        self.attempts_remaining = attempts_remaining

    def to_dict(self):
        data = {"error": self.message, "show_reset": self.show_reset}
        if self.attempts_remaining is not None:
            data["attempts_remaining"] = self.attempts_remaining
        return data


class LoginAttemptTracker:
    """Failed sign-in counter keyed by lowercase email.

    A counter lives for window_seconds from its first failure. At most
    max_entries emails are tracked; the oldest counter is dropped first.
    """

    def __init__(self, max_attempts=MAX_LOGIN_ATTEMPTS,
                 window_seconds=LOGIN_ATTEMPT_WINDOW_MINUTES * 60,
                 max_entries=MAX_TRACKED_LOGINS, clock=time.monotonic):
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.max_entries = max_entries
        self.clock = clock
        # email -> (failures, first failure time), oldest first
        self._counts = OrderedDict()
        self._lock = threading.Lock()

    @staticmethod
    def _key(email):
        return str(email or '').strip().lower()

    def _prune(self, now):
        while self._counts:
            key, (_, first) = next(iter(self._counts.items()))
            if now - first < self.window_seconds:
                break
            del self._counts[key]

    def record_failure(self, email):
        with self._lock:
            now = self.clock()
            self._prune(now)
            key = self._key(email)
            failures, first = self._counts.get(key, (0, now))
            if key not in self._counts:
                while len(self._counts) >= self.max_entries:
                    self._counts.popitem(last=False)
            self._counts[key] = (failures + 1, first)
            return failures + 1

    def reset(self, email):
        with self._lock:
            self._counts.pop(self._key(email), None)

    def count(self, email):
        with self._lock:
            self._prune(self.clock())
            return self._counts.get(self._key(email), (0, None))[0]

    def __len__(self):
        with self._lock:
            return len(self._counts)


attempts = LoginAttemptTracker()


def generate_verification_code():
    """Six-digit code in 100000..999999."""
    return str(100000 + secrets.randbelow(900000))


def _login_failure(email, error):
    """Count a failed attempt and build the error the screen shows."""
    failed = attempts.record_failure(email)
    logger.info("Admin sign-in failed for %s (%d/%d)", email, failed, attempts.max_attempts)
    if failed >= attempts.max_attempts:
        return LoginError(
            "You have exceeded the maximum login attempts. Please reset your password.",
            show_reset=True,
            attempts_remaining=0,
        )
    if isinstance(error, IdentityError) and error.code == 'auth/invalid-credential':
        remaining = attempts.max_attempts - failed
        return LoginError(
            f"Invalid admin credentials. {remaining} attempt(s) remaining.",
            attempts_remaining=remaining,
        )
    if isinstance(error, (IdentityError, EasyMindError)):
        return LoginError(error.message)
    logger.error("Admin sign-in error for %s: %s", email, error)
    return LoginError("Sign-in failed. Please try again.")


def password_step(email, password, emailer=None):
    """Check admin credentials and send the verification code.

    Any failure along the way, including the code write and the email
    send, counts as a failed attempt.
    """
    try:
        account = identity.sign_in_with_password(email, password)
        claims = auth.validate_token(account['id_token']) or {}
        if claims.get('role') != 'admin':
            raise AccessDenied("Access denied: Only admins can sign in at this time.")

        code = generate_verification_code()
        store.set_document(store.USERS, account['uid'], {
            "email": account['email'],
            "verificationCode": code,
            "codeTimestamp": store.SERVER_TIMESTAMP,
            "verified": False,
            "createdAt": store.SERVER_TIMESTAMP,
        }, merge=True)

        emailer = emailer or get_emailer()
        email_sent = emailer.send_verification_code(account['email'], code)
    except Exception as e:
        raise _login_failure(email, e) from e

    attempts.reset(email)

    return {
        "uid": account['uid'],
        "email": account['email'],
        "id_token": account['id_token'],
        "refresh_token": account['refresh_token'],
        "email_sent": email_sent,
        "message": "A verification code has been sent to your email.",
    }


def verify_code(uid, code, now=None):
    """Second step: accept the emailed code if it matches and is fresh."""
    user = store.get_document(store.USERS, uid)
    if user is None:
        raise NotFoundError("User not found.")

    now = now or datetime.now(timezone.utc)
    issued = store.to_datetime(user.get('codeTimestamp'))
    age_minutes = (now - issued).total_seconds() / 60 if issued else float('inf')
    if age_minutes > VERIFICATION_CODE_TTL_MINUTES:
        raise VerificationError("Verification code has expired. Please sign in again.")

    if user.get('verificationCode') != str(code or '').strip():
        raise VerificationError("Invalid verification code.")

    store.update_document(store.USERS, uid, {
        "verified": True,
        "verificationCode": None,
        "codeTimestamp": None,
    })
    logger.info("Admin %s verified", uid)
    return {"verified": True}


def forgot_password(email):
    try:
        identity.send_password_reset(email)
    except IdentityError as e:
        raise EasyMindError(e.message)
    attempts.reset(email)
    return {"message": "Password reset email sent. Please check your inbox."}


def session_state(uid, role):
    """Where the admin portal sends an already signed-in user.

    Returns {'next': 'dashboard' | 'verify' | 'teacher-dashboard' | 'denied', ...}
    """
    if role == 'admin':
        user = store.get_document(store.USERS, uid)
        if user and user.get('verified'):
            return {"next": "dashboard"}
        return {"next": "verify"}

    if role == 'teacher':
        teacher = store.get_document(store.TEACHER_REQUESTS, uid)
        if teacher and teacher.get('status') in ('Approved', 'Active'):
            return {"next": "teacher-dashboard"}
        return {"next": "denied", "error": "Your account is not yet approved by an admin."}

    return {"next": "denied", "error": "Access denied: Invalid role."}
