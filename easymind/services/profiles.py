"""
Admin account settings and the teacher profile page.
"""
import logging

from easymind import firebase, store
from easymind.errors import EasyMindError, ValidationError
from easymind.services.formatting import clean_text, image_data_url, name_from_email, to_local

logger = logging.getLogger(__name__)

# Fields a teacher may edit on their own profile
PROFILE_FIELDS = [
    "firstName", "lastName", "contactNo", "streetAddress", "barangay",
    "cityMunicipality", "province", "postalCode", "school", "qualification",
    "bio", "workPlace", "education", "languages", "interests",
]


# ---------------------------------------------------------------------------
# Admin settings
# ---------------------------------------------------------------------------

def admin_profile(uid, email=None):
    """Display name and photo, preferring the Firestore copy of the photo."""
    auth_user = None
    try:
        auth_user = firebase.get_auth().get_user(uid)
    except Exception as e:
        logger.error("Could not load auth user %s: %s", uid, e)

    admin = store.get_document(store.ADMINS, uid) or {}
    email = email or getattr(auth_user, 'email', None)
    display_name = (
        admin.get('displayName')
        or getattr(auth_user, 'display_name', None)
        or name_from_email(email)
    )
    return {
        "uid": uid,
        "email": email,
        "displayName": display_name,
        "photo": admin.get('profilePhotoBase64') or getattr(auth_user, 'photo_url', None),
    }


def update_admin_name(uid, display_name):
    display_name = clean_text(display_name, "Name")
    if not display_name:
        raise ValidationError("Name cannot be empty")
    try:
        firebase.get_auth().update_user(uid, display_name=display_name)
        store.set_document(store.ADMINS, uid, {"displayName": display_name}, merge=True)
    except Exception as e:
        raise EasyMindError("Error updating name: " + str(e), status_code=500)
    return {"message": "Name updated successfully", "displayName": display_name}


def update_admin_photo(uid, content_type, data):
    if not data:
        raise ValidationError("Please select a new photo.")
    photo = image_data_url(content_type, data)
    try:
        store.set_document(store.ADMINS, uid, {
            "profilePhotoBase64": photo,
            "updatedAt": store.now().isoformat(),
        }, merge=True)
    except Exception as e:
        logger.error("Admin photo update failed: %s", e)
        raise EasyMindError(
            "Error updating photo in Firestore. It may exceed the 1MB document limit.",
            status_code=500,
        )
    return {"message": "Profile photo updated successfully", "photo": photo}


# ---------------------------------------------------------------------------
# Teacher profile
# ---------------------------------------------------------------------------

def format_birth_date(value):
    if not value:
        return "Date of Birth not set"
    if isinstance(value, str):
        return value
    dt = to_local(value)
    if dt is None:
        return "Invalid Date"
    return f"{dt.strftime('%B')} {dt.day}, {dt.year}"


def format_address(profile):
    parts = [profile.get(k) for k in ('streetAddress', 'barangay', 'cityMunicipality', 'province')]
    parts = [p for p in parts if p]
    return ", ".join(parts) if parts else "Address not set"


def teacher_profile(uid, email=''):
    doc = store.get_document(store.TEACHER_REQUESTS, uid)
    if doc is None:
        doc = store.get_document(store.TEACHERS, uid)
    if doc is None:
        logger.error("User document not found in Firestore for UID: %s", uid)
        doc = {}

    profile = {field: doc.get(field) or "" for field in PROFILE_FIELDS}
    profile.update({
        "email": email or doc.get('email') or "",
        "profilePhoto": doc.get('profilePhoto') or "",
        "coverPhoto": doc.get('coverPhoto') or "",
        "dateOfBirth": format_birth_date(doc.get('dateOfBirth')),
        "role": doc.get('role') or "",
        "status": doc.get('status') or "",
        "createdAt": doc.get('createdAt') or "",
    })
    profile["address"] = format_address(profile)
    return profile


def update_teacher_profile(uid, data, profile_photo=None, cover_photo=None):
    """Save editable fields; photos are (content_type, bytes) or None."""
    first_name = clean_text(data.get('firstName'), "First name")
    last_name = clean_text(data.get('lastName'), "Last name")
    if not first_name or not last_name:
        raise ValidationError("First name and last name are required")

    updates = {field: data[field] for field in PROFILE_FIELDS if field in data}
    updates['firstName'] = first_name
    updates['lastName'] = last_name
    if profile_photo:
        updates['profilePhoto'] = image_data_url(*profile_photo)
    if cover_photo:
        updates['coverPhoto'] = image_data_url(*cover_photo)
    updates['updatedAt'] = store.SERVER_TIMESTAMP

    store.update_document(store.TEACHER_REQUESTS, uid, updates)
    if store.get_document(store.TEACHERS, uid) is not None:
        store.update_document(store.TEACHERS, uid, updates)
    return {"message": "Profile updated successfully"}
