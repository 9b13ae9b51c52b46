"""
Shared display helpers: names, dates, relative times and pagination.
"""
import base64
import math
import re
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from easymind.config import ALLOWED_IMAGE_TYPES, MAX_IMAGE_BYTES, PAGE_SIZE, TIMEZONE
from easymind.errors import ValidationError
from easymind.store import to_datetime


def local_tz():
    return ZoneInfo(TIMEZONE)


def to_local(value):
    """Timestamp in the console timezone, or None."""
    dt = to_datetime(value)
    if dt is None:
        return None
    return dt.astimezone(local_tz())


def full_name(doc, default="No Name"):
    """'First Last' from a teacher document."""
    doc = doc or {}
    name = f"{doc.get('firstName') or ''} {doc.get('lastName') or ''}".strip()
    return name or default


def clean_text(value, label="Value"):
    """Stripped string from a JSON field; None reads as empty."""
    if value is None:
        return ''
    if not isinstance(value, str):
        raise ValidationError(f"{label} must be text.")
    return value.strip()


def student_name(doc):
    """'First Middle Surname' with blanks dropped."""
    parts = [doc.get('firstName'), doc.get('middleName'), doc.get('surname')]
    return " ".join(p.strip() for p in parts if p and p.strip())


def format_datetime(value):
    """Absolute timestamp, e.g. 'Oct 19, 2026, 3:05 PM'."""
    if value is None or value == "":
        return "N/A"
    dt = to_local(value)
    if dt is None:
        return "Invalid Date"
    hour = dt.hour % 12 or 12
    suffix = "AM" if dt.hour < 12 else "PM"
    return f"{dt.strftime('%b')} {dt.day}, {dt.year}, {hour}:{dt.minute:02d} {suffix}"


def _plural(count, unit):
    return f"{count} {unit}{'s' if count != 1 else ''} ago"


def relative_time(value, now=None):
    """'3 mins ago', '2 weeks ago', ... for log rows."""
    if value is None or value == "":
        return "N/A"
    dt = to_datetime(value)
    if dt is None:
        return "Invalid Date"
    now = now or datetime.now(timezone.utc)

    diff_sec = math.floor((now - dt).total_seconds())
    diff_min = diff_sec // 60
    diff_hr = diff_min // 60
    diff_day = diff_hr // 24
    diff_week = diff_day // 7
    diff_month = diff_day // 30
    diff_year = diff_day // 365

    if diff_sec < 60:
        return _plural(diff_sec, "sec")
    if diff_min < 60:
        return _plural(diff_min, "min")
    if diff_hr < 24:
        return _plural(diff_hr, "hour")
    if diff_day < 7:
        return _plural(diff_day, "day")
    if diff_week < 4:
        return _plural(diff_week, "week")
    if diff_month < 12:
        return _plural(diff_month, "month")
    return _plural(diff_year, "year")


def name_from_email(email):
    """Display name guess from the local part of an email address."""
    if not email:
        return "N/A"
    prefix = email.split("@")[0]
    letters = re.sub(r'[^a-zA-Z]', '', prefix)
    return letters[:1].upper() + letters[1:]


def page_window(current_page, total_pages, max_pages=7):
    """Page numbers shown around the current page."""
    start = max(1, current_page - max_pages // 2)
    end = min(total_pages, start + max_pages - 1)
    if end - start + 1 < max_pages:
        start = max(1, end - max_pages + 1)
    return list(range(start, end + 1))


def paginate(items, page=1, per_page=PAGE_SIZE):
    """Slice a list for one table page.

    Out-of-range pages are clamped to the nearest valid page.
    """
    total = len(items)
    total_pages = math.ceil(total / per_page) if per_page else 1
    try:
        page = int(page)
    except (TypeError, ValueError):
        page = 1
    page = max(1, min(page, max(total_pages, 1)))
    start = (page - 1) * per_page
    return {
        "items": items[start:start + per_page],
        "page": page,
        "per_page": per_page,
        "total": total,
        "total_pages": total_pages,
        "page_numbers": page_window(page, total_pages),
    }


def serialize(value):
    """Make Firestore values JSON friendly (timestamps become ISO strings)."""
    if isinstance(value, datetime):
        return to_datetime(value).isoformat()
    if isinstance(value, dict):
        return {k: serialize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize(v) for v in value]
    return value


def round_half_up(value):
    """Round to the nearest integer with .5 going up."""
    return math.floor(value + 0.5)


def image_data_url(content_type, data, any_image=False,
                   type_error="Please select a valid image file (JPEG, PNG, or GIF).",
                   size_error="File size must be less than 5MB."):
    """Validate an uploaded image and return it as a base64 data URL.

    Profile photos accept JPEG/PNG/GIF only; any_image=True accepts any image/* type.
    """
    content_type = (content_type or '').lower()
    if any_image:
        valid = content_type.startswith('image/')
    else:
        valid = content_type in ALLOWED_IMAGE_TYPES
    if not valid:
        raise ValidationError(type_error)
    if len(data) > MAX_IMAGE_BYTES:
        raise ValidationError(size_error)
    encoded = base64.b64encode(data).decode('ascii')
    return f"data:{content_type};base64,{encoded}"
