"""
Report logs: teacher activity entries from the 'logs' collection.
"""
import logging
from datetime import datetime, timezone

from easymind import store
from easymind.errors import ValidationError
from easymind.services.formatting import format_datetime, local_tz, paginate, relative_time, to_local

logger = logging.getLogger(__name__)

# (badge, keywords) checked in order
BADGE_RULES = [
    ("log-in", ("logged in", "login")),
    ("log-out", ("logged out", "logout")),
    ("log-assessment", ("add", "created")),
    ("log-update", ("update", "edited")),
    ("log-delete", ("delete", "removed")),
]

def badge_class(activity):
    act = (activity or '').lower()
    for badge, keywords in BADGE_RULES:
        if any(k in act for k in keywords):
            return badge
    return "log-default"


def _int_or_none(value, low, high, label):
    if value in (None, ''):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {label}: {value}")
    if not low <= number <= high:
        raise ValidationError(f"Invalid {label}: {value}")
    return number


def filter_logs(logs, search='', month=None, day=None):
    month = _int_or_none(month, 1, 12, 'month')
    day = _int_or_none(day, 1, 31, 'day')
    term = (search or '').lower()

    rows = []
    for log in logs:
        if term and term not in (log.get('teacherName') or '').lower() \
                and term not in (log.get('activityDescription') or '').lower():
            continue
        if month or day:
            created = to_local(log.get('createdAt'))
            if created is None:
                continue
            if month and created.month != month:
                continue
            if day and created.day != day:
                continue
        rows.append(log)
    return rows


def todays_count(logs, now=None):
    today = (now or datetime.now(timezone.utc)).astimezone(local_tz()).date()
    count = 0
    for log in logs:
        created = to_local(log.get('createdAt'))
        if created is not None and created.date() == today:
            count += 1
    return count


def present(log, now=None):
    return {
        "id": log.get('id'),
        "teacherName": log.get('teacherName') or "Unknown",
        "activityDescription": log.get('activityDescription') or "",
        "badge": badge_class(log.get('activityDescription')),
        "relativeTime": relative_time(log.get('createdAt'), now),
        "date": format_datetime(log.get('createdAt')),
        "createdAt": log.get('createdAt'),
    }


def report_logs(search='', month=None, day=None, page=1, print_mode=False, now=None):
    """Filtered, paginated log rows plus the KPI counts.

    print_mode returns every filtered row on a single page.
    """
    logs = store.fetch_where(store.LOGS, order_by='createdAt', descending=True)
    filtered = [present(log, now) for log in filter_logs(logs, search, month, day)]

    if print_mode:
        result = {"items": filtered, "page": 1, "total": len(filtered), "total_pages": 1}
    else:
        result = paginate(filtered, page)
    result["total_activities"] = len(logs)
    result["todays_count"] = todays_count(logs, now)
    return result
