"""
Admin Console Routes for EasyMind.
Dashboard, teacher approval and management, student overview, report logs
and admin settings. Every route requires a verified admin.
"""
import logging

from flask import Blueprint, request, g

from easymind.auth import require_admin
from easymind.errors import EasyMindError
from easymind.services import activity_logs, approval, dashboard, profiles, students
from .common import failure, live_stream, ok, page_arg, payload, uploaded

admin_bp = Blueprint('admin', __name__)
logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════
# DASHBOARD
# ══════════════════════════════════════════════════════════════

@admin_bp.route('/api/admin/dashboard', methods=['GET'])
@require_admin
def admin_dashboard():
    try:
        return ok(dashboard.admin_dashboard())
    except EasyMindError:
        raise
    except Exception as e:
        return failure("Failed to load dashboard data. Please try again.", e)


@admin_bp.route('/api/admin/dashboard/recent-actions/stream', methods=['GET'])
@require_admin
def recent_actions_stream():
    """Live feed of the five newest admin actions."""
    return live_stream(
        dashboard.recent_actions_query(),
        lambda rows: {"recent_activities": [dashboard.map_recent_action(r) for r in rows]},
        "recent-actions",
    )


# ══════════════════════════════════════════════════════════════
# TEACHER APPROVAL
# ══════════════════════════════════════════════════════════════

@admin_bp.route('/api/admin/teachers/pending', methods=['GET'])
@require_admin
def pending_teachers():
    try:
        return ok({"teachers": approval.list_pending(request.args.get('search', ''))})
    except Exception as e:
        return failure("Failed to load teachers. Please try again.", e)


@admin_bp.route('/api/admin/teachers/pending/stream', methods=['GET'])
@require_admin
def pending_teachers_stream():
    """Live pending queue, re-sent on every change."""
    search = request.args.get('search', '')
    return live_stream(
        approval.pending_query(),
        lambda rows: {"teachers": approval.filter_pending(rows, search)},
        "pending-teachers",
    )


@admin_bp.route('/api/admin/teachers/history', methods=['GET'])
@require_admin
def teacher_history():
    try:
        return ok({"teachers": approval.list_history()})
    except Exception as e:
        return failure("Failed to load teacher history. Please try again.", e)


@admin_bp.route('/api/admin/teachers/status', methods=['POST'])
@require_admin
def change_teacher_status():
    """Approve or reject one or many pending requests.

    Body: {"ids": [...] | "id": "...", "status": "Approved" | "Rejected"}
    """
    data = payload()
    ids = data.get('ids') or data.get('id')
    return ok(approval.change_status(ids, data.get('status'), g.user_email))


# ══════════════════════════════════════════════════════════════
# TEACHER MANAGEMENT
# ══════════════════════════════════════════════════════════════

@admin_bp.route('/api/admin/teachers', methods=['GET'])
@require_admin
def managed_teachers():
    try:
        return ok(approval.list_managed(
            request.args.get('status', 'All'),
            request.args.get('search', ''),
            page_arg(),
        ))
    except EasyMindError:
        raise
    except Exception as e:
        return failure("Failed to load teachers. Please try again.", e)


@admin_bp.route('/api/admin/teachers/<teacher_id>/status', methods=['PUT'])
@require_admin
def toggle_teacher_status(teacher_id):
    data = payload()
    return ok(approval.toggle_status(teacher_id, data.get('status'), g.user_email))


# ══════════════════════════════════════════════════════════════
# STUDENT OVERVIEW
# ══════════════════════════════════════════════════════════════

@admin_bp.route('/api/admin/students', methods=['GET'])
@require_admin
def student_overview():
    try:
        return ok(students.student_overview(
            request.args.get('search', ''),
            request.args.get('progress', 'All'),
            page_arg(),
        ))
    except EasyMindError:
        raise
    except Exception as e:
        return failure("Failed to load students. Please try again.", e)


@admin_bp.route('/api/admin/students/<student_id>', methods=['GET'])
@require_admin
def student_overview_detail(student_id):
    return ok(students.student_overview_detail(student_id))


# ══════════════════════════════════════════════════════════════
# REPORT LOGS
# ══════════════════════════════════════════════════════════════

@admin_bp.route('/api/admin/logs', methods=['GET'])
@require_admin
def report_logs():
    args = request.args
    try:
        return ok(activity_logs.report_logs(
            search=args.get('search', ''),
            month=args.get('month'),
            day=args.get('day'),
            page=page_arg(),
            print_mode=args.get('print', '').lower() in ('1', 'true'),
        ))
    except EasyMindError:
        raise
    except Exception as e:
        return failure("Failed to load logs. Please try again.", e)


# ══════════════════════════════════════════════════════════════
# SETTINGS
# ══════════════════════════════════════════════════════════════

@admin_bp.route('/api/admin/settings', methods=['GET'])
@require_admin
def admin_settings():
    return ok(profiles.admin_profile(g.user_id, g.user_email))


@admin_bp.route('/api/admin/settings/name', methods=['PUT'])
@require_admin
def update_admin_name():
    return ok(profiles.update_admin_name(g.user_id, payload().get('displayName')))


@admin_bp.route('/api/admin/settings/photo', methods=['POST'])
@require_admin
def update_admin_photo():
    photo = uploaded('photo')
    if photo is None:
        return ok({"error": "Please select a new photo."}, 400)
    return ok(profiles.update_admin_photo(g.user_id, *photo))
