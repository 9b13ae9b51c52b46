"""
Firebase Authentication REST client.

Password sign-in, sign-up and the out-of-band emails (password reset, email
verification) are only exposed through the Identity Toolkit REST API, so they
are called with requests. Provider error codes are translated into the client
codes the console screens already speak (auth/invalid-credential, ...).
"""
import logging

import requests

from .config import FIREBASE_WEB_API_KEY

logger = logging.getLogger(__name__)

IDENTITY_URL = "https://identitytoolkit.googleapis.com/v1/accounts:{action}"
REQUEST_TIMEOUT = 10

PROVIDER_ERROR_CODES = {
    'INVALID_LOGIN_CREDENTIALS': 'auth/invalid-credential',
    'INVALID_PASSWORD': 'auth/wrong-password',
    'EMAIL_NOT_FOUND': 'auth/user-not-found',
    'USER_DISABLED': 'auth/user-disabled',
    'INVALID_EMAIL': 'auth/invalid-email',
    'MISSING_EMAIL': 'auth/invalid-email',
    'MISSING_PASSWORD': 'auth/missing-password',
    'EMAIL_EXISTS': 'auth/email-already-in-use',
    'WEAK_PASSWORD': 'auth/weak-password',
    'OPERATION_NOT_ALLOWED': 'auth/operation-not-allowed',
    'TOO_MANY_ATTEMPTS_TRY_LATER': 'auth/too-many-requests',
    'INVALID_ID_TOKEN': 'auth/invalid-user-token',
}


class IdentityError(Exception):
    """Raised when the auth provider rejects a request."""

    def __init__(self, code, message=None):
        super().__init__(message or code)
        self.code = code
        self.message = message or code


def _map_error(provider_message):
    # Messages look like "WEAK_PASSWORD : Password should be at least 6 characters"
    key = (provider_message or '').split(':')[0].strip()
    return PROVIDER_ERROR_CODES.get(key, 'auth/internal-error'), provider_message


def _post(action, payload):
    if not FIREBASE_WEB_API_KEY:
        raise IdentityError('auth/configuration-not-found', 'FIREBASE_WEB_API_KEY not configured')

    try:
        response = requests.post(
            IDENTITY_URL.format(action=action),
            params={"key": FIREBASE_WEB_API_KEY},
            json=payload,
            timeout=REQUEST_TIMEOUT,
        )
    except requests.RequestException as e:
        logger.error("Identity request %s failed: %s", action, e)
        raise IdentityError('auth/network-request-failed', str(e))

    data = response.json() if response.content else {}
    if response.status_code != 200:
        provider_message = (data.get('error') or {}).get('message', '')
        code, message = _map_error(provider_message)
        raise IdentityError(code, message)
    return data


def _account(data):
    return {
        "uid": data.get("localId"),
        "email": data.get("email", ""),
        "id_token": data.get("idToken"),
        "refresh_token": data.get("refreshToken"),
    }


def sign_in_with_password(email, password):
    """Check a password and return {uid, email, id_token, refresh_token}."""
    data = _post('signInWithPassword', {
        "email": email,
        "password": password,
        "returnSecureToken": True,
    })
    return _account(data)


def sign_up(email, password):
    """Create an email/password account and sign it in."""
    data = _post('signUp', {
        "email": email,
        "password": password,
        "returnSecureToken": True,
    })
    return _account(data)


def send_password_reset(email):
    _post('sendOobCode', {"requestType": "PASSWORD_RESET", "email": email})


def send_email_verification(id_token):
    _post('sendOobCode', {"requestType": "VERIFY_EMAIL", "idToken": id_token})
