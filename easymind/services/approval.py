"""
Teacher request approval and teacher account management.

Approving a request moves it Pending -> Approved -> Active in one go, grants
the 'teacher' role claim and emails the teacher. Every status change is
recorded in adminActions for the dashboard feed.
"""
import logging

from easymind import firebase, store
from easymind.errors import NotFoundError, ValidationError
from easymind.services.email_service import get_emailer
from easymind.services.formatting import full_name, paginate

logger = logging.getLogger(__name__)

HISTORY_STATUSES = ["Approved", "Rejected", "Active"]
MANAGED_STATUSES = ["Active", "Inactive"]
DECISIONS = ("Approved", "Rejected")


def _matches(term, *values):
    term = (term or '').strip().lower()
    if not term:
        return True
    return any(term in (v or '').lower() for v in values)


def _newest_first(rows):
    return sorted(rows, key=store.sort_key_desc('createdAt'), reverse=True)


def pending_query():
    return store.where(store.collection(store.TEACHER_REQUESTS), 'status', '==', 'Pending')


def filter_pending(teachers, search=''):
    rows = [
        t for t in teachers
        if _matches(search, full_name(t), t.get('email'), t.get('contactNo'))
    ]
    return _newest_first(rows)


def list_pending(search=''):
    return filter_pending(store.query_to_list(pending_query()), search)


def list_history():
    teachers = store.fetch_where(
        store.TEACHER_REQUESTS, [('status', 'in', HISTORY_STATUSES)]
    )
    return _newest_first(teachers)


def log_admin_action(action, teacher_name, action_type, admin_email=None):
    """Append to adminActions. Failures are logged and ignored."""
    try:
        store.add_document(store.ADMIN_ACTIONS, {
            "action": f"{action} teacher {teacher_name}",
            "teacherName": teacher_name,
            "adminEmail": admin_email or "Admin",
            "timestamp": store.SERVER_TIMESTAMP,
            "type": action_type.lower(),
        })
    except Exception as e:
        logger.error("Error logging admin action: %s", e)


def grant_teacher_claim(uid):
    """Set role=teacher on the auth user, keeping any other claims."""
    auth = firebase.get_auth()
    user = auth.get_user(uid)
    claims = dict(user.custom_claims or {})
    if claims.get('role') == 'teacher':
        return False
    claims['role'] = 'teacher'
    auth.set_custom_user_claims(uid, claims)
    logger.info("Granted teacher role to %s", uid)
    return True


def change_status(ids, new_status, admin_email=None, emailer=None):
    """Approve or reject one or more pending teacher requests.

    Returns counts and a notification {message, type} for the console.
    """
    if new_status not in DECISIONS:
        raise ValidationError(f"Unsupported status: {new_status}")
    ids = [ids] if isinstance(ids, str) else list(ids or [])
    if not ids:
        raise ValidationError("No teachers selected.")

    emailer = emailer or get_emailer()
    updated = 0
    emails_sent = 0

    for teacher_id in ids:
        teacher = store.get_document(store.TEACHER_REQUESTS, teacher_id)
        if teacher is None or teacher.get('status') != 'Pending':
            continue
        teacher_name = full_name(teacher)

        try:
            store.update_document(store.TEACHER_REQUESTS, teacher_id, {
                "status": new_status,
                "updatedAt": store.SERVER_TIMESTAMP,
            })
            log_admin_action(new_status, teacher_name, new_status, admin_email)

            if new_status == "Approved":
                store.update_document(store.TEACHER_REQUESTS, teacher_id, {
                    "status": "Active",
                    "previousStatus": "Active",
                    "updatedAt": store.SERVER_TIMESTAMP,
                })
                log_admin_action("Activated", teacher_name, "active", admin_email)

                try:
                    grant_teacher_claim(teacher_id)
                except Exception as e:
                    logger.error("Could not set teacher claim for %s: %s", teacher_id, e)

                if teacher.get('email') and emailer.send_approval_notice(teacher['email'], teacher_name):
                    emails_sent += 1
            updated += 1
        except Exception as e:
            logger.error("Error updating status for %s: %s", teacher_name, e)

    if updated == 0:
        notification = {"message": "Failed to process any requests.", "type": "error"}
    else:
        action_text = "Approved and Activated" if new_status == "Approved" else new_status
        message = f"{updated} teacher(s) successfully {action_text}."
        if emails_sent:
            message += f" ({emails_sent} email(s) sent)"
        notification = {
            "message": message,
            "type": "success" if updated == len(ids) else "warning",
        }

    return {
        "updated": updated,
        "emails_sent": emails_sent,
        "requested": len(ids),
        "notification": notification,
    }


def status_counts(teachers):
    counts = {"All": len(teachers), "Active": 0, "Inactive": 0}
    for t in teachers:
        if t.get('status') in counts:
            counts[t['status']] += 1
    return counts


def list_managed(status='All', search='', page=1):
    """Active/Inactive teachers for the management table."""
    teachers = store.fetch_where(
        store.TEACHER_REQUESTS, [('status', 'in', MANAGED_STATUSES)]
    )
    rows = [
        t for t in teachers
        if (status in (None, '', 'All') or t.get('status') == status)
        and _matches(search, full_name(t), t.get('email'), t.get('contactNo'), t.get('qualification'))
    ]
    result = paginate(_newest_first(rows), page)
    result['counts'] = status_counts(teachers)
    return result


def toggle_status(teacher_id, new_status, admin_email=None):
    if new_status not in MANAGED_STATUSES:
        raise ValidationError("Status can only be changed between Active and Inactive.")
    teacher = store.get_document(store.TEACHER_REQUESTS, teacher_id)
    if teacher is None:
        raise NotFoundError("Teacher not found.")
    if teacher.get('status') == new_status:
        raise ValidationError(f"Teacher is already {new_status}.")

    store.update_document(store.TEACHER_REQUESTS, teacher_id, {
        "status": new_status,
        "updatedAt": store.SERVER_TIMESTAMP,
    })
    action = "Activated" if new_status == "Active" else "Deactivated"
    log_admin_action(action, full_name(teacher), new_status, admin_email)
    return {"id": teacher_id, "status": new_status}
