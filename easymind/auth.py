"""
Firebase ID token authentication for EasyMind.
Validates Bearer tokens on all /api/ routes except public endpoints and gates
the admin and teacher consoles on the 'role' custom claim.
"""
import logging
from functools import wraps

import jwt
from flask import request, jsonify, g

from . import store
from .config import FIREBASE_PROJECT_ID

logger = logging.getLogger(__name__)

GOOGLE_JWKS_URL = (
    "https://www.googleapis.com/service_accounts/v1/jwk/"
    "securetoken@system.gserviceaccount.com"
)

# Routes that don't require authentication
PUBLIC_PREFIXES = []

PUBLIC_EXACT = [
    '/api/health',
    '/api/admin/login',
    '/api/admin/forgot-password',
    '/api/teacher/login',
    '/api/teacher/signup',
    '/api/teacher/forgot-password',
    '/api/teacher/qualifications',
]

_jwks_client = None


def get_jwks_client():
    """Get or create the cached client for Google's signing keys."""
    global _jwks_client
    if _jwks_client is None:
        _jwks_client = jwt.PyJWKClient(GOOGLE_JWKS_URL)
    return _jwks_client


def validate_token(token):
    """
    Validate a Firebase ID token and return the decoded payload.
    Returns None if invalid.
    """
    try:
        signing_key = get_jwks_client().get_signing_key_from_jwt(token)
        payload = jwt.decode(
            token,
            signing_key.key,
            algorithms=['RS256'],
            audience=FIREBASE_PROJECT_ID,
            issuer='https://securetoken.google.com/' + FIREBASE_PROJECT_ID,
        )
        return payload
    except jwt.ExpiredSignatureError:
        return None
    except jwt.PyJWKClientError as e:
        logger.warning("Could not resolve signing key: %s", e)
        return None
    except jwt.InvalidTokenError:
        return None


def is_public_route(path):
    """Check if a route is public (no auth required)."""
    if path in PUBLIC_EXACT:
        return True
    for prefix in PUBLIC_PREFIXES:
        if path.startswith(prefix):
            return True
    return False


def bearer_token():
    auth_header = request.headers.get('Authorization', '')
    if not auth_header.startswith('Bearer '):
        return None
    return auth_header[7:]  # Strip 'Bearer '


def init_auth(app):
    """
    Register the before_request auth hook on the Flask app.
    Call this BEFORE registering blueprints.
    """
    @app.before_request
    def check_auth():
        # Skip non-API routes
        if not request.path.startswith('/api/'):
            return None

        if request.method == 'OPTIONS':
            return None

        # Skip public routes
        if is_public_route(request.path):
            return None

        token = bearer_token()
        if token is None:
            return jsonify({'error': 'Authentication required'}), 401

        payload = validate_token(token)
        if payload is None:
            return jsonify({'error': 'Invalid or expired token'}), 401

        # Attach user info to Flask's g object for use in route handlers
        g.user_id = payload.get('user_id') or payload.get('sub')
        g.user_email = payload.get('email', '')
        g.role = payload.get('role')
        g.claims = payload


def _role_mismatch(required_role):
    role = getattr(g, 'role', None)
    message = f"Access denied: Role {role} does not match required role {required_role}."
    return jsonify({'error': message}), 403


def require_role(required_role):
    """Reject callers whose token does not carry the given role claim."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            if getattr(g, 'role', None) != required_role:
                return _role_mismatch(required_role)
            return fn(*args, **kwargs)
        return wrapper
    return decorator


def require_admin(fn):
    """Admin claim plus a completed verification-code step."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if getattr(g, 'role', None) != 'admin':
            return _role_mismatch('admin')
        try:
            user = store.get_document(store.USERS, g.user_id)
        except Exception as e:
            logger.error("Admin verification lookup failed: %s", e)
            return jsonify({'error': 'Failed to verify admin privileges.'}), 500
        if not user or not user.get('verified'):
            return jsonify({'error': 'Verification required.', 'verify': True}), 403
        return fn(*args, **kwargs)
    return wrapper


def require_teacher(fn):
    """Teacher claim plus an Active teacherRequests document."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if getattr(g, 'role', None) != 'teacher':
            return _role_mismatch('teacher')
        try:
            teacher = store.get_document(store.TEACHER_REQUESTS, g.user_id)
        except Exception as e:
            logger.error("Teacher authorization lookup failed: %s", e)
            return jsonify({'error': 'Authorization error: ' + str(e)}), 500
        if teacher is None:
            return jsonify({
                'error': f"Teacher request document does not exist for UID: {g.user_id}"
            }), 403
        status = teacher.get('status')
        if status != 'Active':
            return jsonify({
                'error': f"Teacher account status is {status}, but Active is required."
            }), 403
        g.teacher = teacher
        return fn(*args, **kwargs)
    return wrapper
