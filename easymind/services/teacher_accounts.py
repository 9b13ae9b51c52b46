"""
Teacher portal sign-in, sign-up and sign-out.
"""
import logging
import re
import time

from easymind import identity, store
from easymind.errors import AccessDenied, EasyMindError, NotFoundError, ValidationError
from easymind.identity import IdentityError
from easymind.services.formatting import clean_text, full_name

logger = logging.getLogger(__name__)

SPED_QUALIFICATIONS = [
    "Bachelor of Science in Elementary Education (BSEEd)",
    "Bachelor of Science in Elementary Education major in Special Education (BSEEd-Sped)",
    "Bachelor of Science in Secondary Education (BSEd)",
    "Bachelor of Science in Secondary Education major in Special Education (BSEd-Sped)",
    "Bachelor of Science in Education (BSE)",
    "Bachelor of Science in Education major in Special Education (BSE-Sped)",
    "Master of Arts in Education major in Special Education (MAEd-Sped)",
    "Master of Arts in Teaching major in Special Education (MAT-Sped)",
    "PhD in Special Education",
    "Others",
]

EMAIL_PATTERN = re.compile(r'\S+@\S+\.\S+')
CONTACT_PATTERN = re.compile(r'^\d{11}$')

LOGIN_ERRORS = {
    'auth/invalid-email': "Please enter a valid email address.",
    'auth/user-not-found': (
        "Account not found. Please sign up first or contact admin "
        "if you believe this is an error."
    ),
    'auth/wrong-password': "Incorrect password. Please try again.",
    'auth/invalid-credential': (
        "Invalid credentials. Please check your email and password, "
        "or sign up if you're a new teacher."
    ),
    'auth/too-many-requests': "Too many failed attempts. Please try again later.",
}

SIGNUP_ERRORS = {
    'auth/email-already-in-use': (
        "This email is already registered. Please use a different email or try signing in."
    ),
    'auth/weak-password': "Password is too weak. Please choose a stronger password.",
    'auth/invalid-email': "Please enter a valid email address.",
    'auth/operation-not-allowed': (
        "Email/password accounts are not enabled. Please contact support."
    ),
    'auth/network-request-failed': (
        "Network error. Please check your internet connection and try again."
    ),
}


def login(email, password):
    """Sign a teacher in and record the login.

    Returns the provider tokens plus the teacher's display name.
    """
    if not email or '@' not in email:
        raise ValidationError("Please enter a valid email address.")

    try:
        account = identity.sign_in_with_password(email, password)
    except IdentityError as e:
        message = LOGIN_ERRORS.get(e.code, "Login failed: " + e.message)
        raise EasyMindError(message, status_code=401)

    uid = account['uid']
    teacher = store.get_document(store.TEACHER_REQUESTS, uid)
    if teacher is None:
        raise NotFoundError("Teacher request not found. Please contact an admin.")
    if teacher.get('role') != 'teacher':
        raise AccessDenied(
            "Access denied: Only teachers can sign in to this portal. "
            "Please contact an admin to activate your account."
        )
    if teacher.get('status') != 'Active':
        raise AccessDenied("Your account is not yet active. Please wait for admin activation.")

    teacher_name = f"{teacher.get('firstName')} {teacher.get('lastName')}"

    store.update_document(store.TEACHER_REQUESTS, uid, {"lastLogin": store.SERVER_TIMESTAMP})
    store.add_document(store.LOGS, {
        "teacherId": uid,
        "teacherName": teacher_name,
        "activityDescription": "Logged in",
        "createdAt": store.SERVER_TIMESTAMP,
    })
    store.add_document(store.TEACHER_LOGINS, {
        "teacherId": uid,
        "loginTime": store.SERVER_TIMESTAMP,
    })
    logger.info("Teacher %s logged in", uid)

    return {
        "uid": uid,
        "email": account['email'],
        "id_token": account['id_token'],
        "refresh_token": account['refresh_token'],
        "teacher_name": teacher_name,
    }


def validate_signup(data):
    """Return a dict of field -> error for the sign-up form."""
    errors = {}
    first_name = clean_text(data.get('firstName'), "First name")
    last_name = clean_text(data.get('lastName'), "Last name")
    email = clean_text(data.get('email'), "Email")
    contact_no = re.sub(r'[^0-9]', '', clean_text(data.get('contactNo'), "Contact number"))
    qualification = data.get('qualification')

    if not first_name:
        errors['firstName'] = "First name is required"
    if not last_name:
        errors['lastName'] = "Last name is required"
    if not email:
        errors['email'] = "Email is required"
    elif not EMAIL_PATTERN.search(email):
        errors['email'] = "Need valid email"
    if not contact_no:
        errors['contactNo'] = "Contact number is required"
    elif not CONTACT_PATTERN.match(contact_no):
        errors['contactNo'] = "Contact number must be exactly 11 digits"
    if qualification not in SPED_QUALIFICATIONS:
        errors['qualification'] = "Qualification is required"
    if not data.get('password'):
        errors['password'] = "Password is required"
    if data.get('password') != data.get('confirmPassword'):
        errors['confirmPassword'] = "Passwords do not match"
    if not data.get('acceptedTerms'):
        errors['terms'] = "Acceptance of Terms is required"
    return errors


def signup(data):
    """Create a teacher account and its Pending request document."""
    errors = validate_signup(data)
    if 'terms' in errors and len(errors) == 1:
        raise ValidationError(
            "You must accept the Terms and Conditions to create an account.", errors
        )
    if errors:
        raise ValidationError("Please fill in all required fields before proceeding.", errors)

    email = data['email'].strip()
    try:
        account = identity.sign_up(email, data['password'])
    except IdentityError as e:
        raise EasyMindError(SIGNUP_ERRORS.get(e.code, e.message))

    try:
        identity.send_email_verification(account['id_token'])
    except IdentityError as e:
        logger.warning("Verification email failed for %s: %s", email, e.message)

    store.set_document(store.TEACHER_REQUESTS, account['uid'], {
        "firstName": data['firstName'].strip(),
        "lastName": data['lastName'].strip(),
        "email": email,
        "contactNo": re.sub(r'[^0-9]', '', data['contactNo']),
        "qualification": data['qualification'],
        "profilePhoto": None,
        "role": "teacher",
        "status": "Pending",
        "createdAt": store.SERVER_TIMESTAMP,
    })
    logger.info("Teacher request created for %s", account['uid'])

    return {
        "uid": account['uid'],
        "message": (
            "Account created successfully! Please verify your email address. "
            "Check your inbox and click the verification link."
        ),
    }


def logout(uid, email):
    """Record a 'Logged out' entry for the teacher."""
    teacher = store.get_document(store.TEACHER_REQUESTS, uid)
    if teacher is not None:
        teacher_name = full_name(teacher, default="Unnamed Teacher")
    else:
        logger.error("Teacher document not found for UID: %s", uid)
        teacher_name = (email or '').split('@')[0] or "Unnamed Teacher"

    store.set_document(store.LOGS, f"{uid}_{int(time.time() * 1000)}", {
        "teacherId": uid,
        "teacherName": teacher_name,
        "activityDescription": "Logged out",
        "createdAt": store.SERVER_TIMESTAMP,
    })
    return {"message": "Logged out"}


def forgot_password(email):
    try:
        identity.send_password_reset(email)
    except IdentityError as e:
        raise EasyMindError(e.message)
    return {"message": "Password reset email sent. Please check your inbox."}
