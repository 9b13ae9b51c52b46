"""
Auth Routes for EasyMind.
Admin two-step sign-in, teacher sign-in/sign-up/sign-out and the session
checks both consoles use to decide where a signed-in user belongs.
"""
import logging

from flask import Blueprint, request, g

from easymind.auth import require_role
from easymind.services import admin_login, teacher_accounts
from .common import ok, payload

auth_bp = Blueprint('auth', __name__)
logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════
# ADMIN
# ══════════════════════════════════════════════════════════════

@auth_bp.route('/api/admin/login', methods=['POST'])
def admin_password_step():
    """Step one: email and password. Emails the verification code."""
    data = payload()
    email = (data.get('email') or '').strip()
    password = data.get('password') or ''
    if not email or not password:
        return ok({"error": "Please enter your email and password."}, 400)
    return ok(admin_login.password_step(email, password))


@auth_bp.route('/api/admin/verify', methods=['POST'])
@require_role('admin')
def admin_verify():
    """Step two: the emailed six-digit code."""
    data = payload()
    return ok(admin_login.verify_code(g.user_id, data.get('code')))


@auth_bp.route('/api/admin/forgot-password', methods=['POST'])
def admin_forgot_password():
    email = (payload().get('email') or '').strip()
    if not email:
        return ok({"error": "Please enter your email address."}, 400)
    return ok(admin_login.forgot_password(email))


@auth_bp.route('/api/admin/session', methods=['GET'])
def admin_session():
    return ok(admin_login.session_state(g.user_id, g.role))


# ══════════════════════════════════════════════════════════════
# TEACHER
# ══════════════════════════════════════════════════════════════

@auth_bp.route('/api/teacher/login', methods=['POST'])
def teacher_login():
    data = payload()
    return ok(teacher_accounts.login(data.get('email') or '', data.get('password') or ''))


@auth_bp.route('/api/teacher/signup', methods=['POST'])
def teacher_signup():
    return ok(teacher_accounts.signup(payload()), 201)


@auth_bp.route('/api/teacher/qualifications', methods=['GET'])
def teacher_qualifications():
    return ok({"qualifications": teacher_accounts.SPED_QUALIFICATIONS})


@auth_bp.route('/api/teacher/forgot-password', methods=['POST'])
def teacher_forgot_password():
    email = (payload().get('email') or '').strip()
    if not email:
        return ok({"error": "Please enter your email address."}, 400)
    return ok(teacher_accounts.forgot_password(email))


@auth_bp.route('/api/teacher/logout', methods=['POST'])
@require_role('teacher')
def teacher_logout():
    return ok(teacher_accounts.logout(g.user_id, g.user_email))


# ══════════════════════════════════════════════════════════════
# SESSION
# ══════════════════════════════════════════════════════════════

@auth_bp.route('/api/auth/me', methods=['GET'])
def current_user():
    """Identity and role from the verified token."""
    return ok({
        "uid": g.user_id,
        "email": g.user_email,
        "role": g.role,
        "email_verified": g.claims.get('email_verified', False),
    })
