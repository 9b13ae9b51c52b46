"""
Teacher Dashboard Routes for EasyMind.
Dashboard charts, student roster, assessment results, reports with PDF
export and the teacher profile. Every route requires an Active teacher.
"""
import io
import logging

from flask import Blueprint, request, g, send_file

from easymind.auth import require_teacher
from easymind.errors import EasyMindError, NotFoundError
from easymind.services import dashboard, profiles, progress, reports, students
from .common import failure, ok, payload, uploaded

teacher_bp = Blueprint('teacher', __name__)
logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════
# DASHBOARD
# ══════════════════════════════════════════════════════════════

@teacher_bp.route('/api/teacher/dashboard', methods=['GET'])
@require_teacher
def teacher_dashboard():
    try:
        return ok(dashboard.teacher_dashboard(request.args.get('category', 'All')))
    except Exception as e:
        return failure("Failed to load dashboard data. Please try again.", e)


# ══════════════════════════════════════════════════════════════
# STUDENTS
# ══════════════════════════════════════════════════════════════

@teacher_bp.route('/api/teacher/students', methods=['GET'])
@require_teacher
def list_students():
    try:
        return ok({"students": students.roster(g.user_id, request.args.get('search', ''))})
    except Exception as e:
        return failure("Failed to fetch students. Please try again.", e)


@teacher_bp.route('/api/teacher/students', methods=['POST'])
@require_teacher
def add_student():
    result = students.add_student(g.user_id, payload(), uploaded('profileImage'))
    result["message"] = "Student added successfully!"
    return ok(result, 201)


@teacher_bp.route('/api/teacher/students/<student_id>', methods=['GET'])
@require_teacher
def get_student(student_id):
    return ok(students.student_detail(g.user_id, student_id))


@teacher_bp.route('/api/teacher/students/<student_id>', methods=['PUT'])
@require_teacher
def edit_student(student_id):
    result = students.edit_student(g.user_id, student_id, payload(), uploaded('profileImage'))
    result["message"] = (
        "Student updated successfully!" if result["updated"] else "No changes were made."
    )
    return ok(result)


@teacher_bp.route('/api/teacher/students/<student_id>', methods=['DELETE'])
@require_teacher
def delete_student(student_id):
    result = students.delete_student(g.user_id, student_id)
    result["message"] = "Student deleted successfully!"
    return ok(result)


# ══════════════════════════════════════════════════════════════
# ASSESSMENTS
# ══════════════════════════════════════════════════════════════

@teacher_bp.route('/api/teacher/assessments/categories', methods=['GET'])
@require_teacher
def assessment_categories():
    return ok({"categories": progress.ASSESSMENT_CATEGORIES})


@teacher_bp.route('/api/teacher/assessments/categories/<key>', methods=['GET'])
@require_teacher
def assessment_category(key):
    item = progress.category(key)
    if item is None:
        raise NotFoundError("Assessment category not found.")
    return ok(item)


@teacher_bp.route('/api/teacher/assessments/<assessment_type>/results', methods=['GET'])
@require_teacher
def assessment_results(assessment_type):
    try:
        return ok(progress.assessment_results(
            g.user_id, assessment_type, request.args.get('nickname')
        ))
    except Exception as e:
        return failure("Failed to load assessment results. Please try again.", e)


# ══════════════════════════════════════════════════════════════
# REPORTS
# ══════════════════════════════════════════════════════════════

@teacher_bp.route('/api/teacher/reports', methods=['GET'])
@require_teacher
def teacher_reports():
    try:
        report = reports.teacher_report(
            g.user_id,
            request.args.get('search', ''),
            request.args.get('tab', 'improved'),
        )
    except EasyMindError:
        raise
    except Exception as e:
        return failure("Failed to load student data. Please try again.", e)
    report.pop("all_students", None)
    return ok(report)


@teacher_bp.route('/api/teacher/reports/pdf', methods=['GET'])
@require_teacher
def export_report_pdf():
    """Download the filtered report as a PDF."""
    try:
        pdf = reports.export_pdf(
            g.user_id,
            request.args.get('search', ''),
            request.args.get('tab', 'improved'),
        )
    except Exception as e:
        return failure("Failed to generate the PDF report. Please try again.", e)
    return send_file(
        io.BytesIO(pdf),
        mimetype='application/pdf',
        as_attachment=True,
        download_name='student-progress-report.pdf',
    )


# ══════════════════════════════════════════════════════════════
# PROFILE
# ══════════════════════════════════════════════════════════════

@teacher_bp.route('/api/teacher/profile', methods=['GET'])
@require_teacher
def get_profile():
    return ok(profiles.teacher_profile(g.user_id, g.user_email))


@teacher_bp.route('/api/teacher/profile', methods=['PUT'])
@require_teacher
def update_profile():
    result = profiles.update_teacher_profile(
        g.user_id,
        payload(),
        profile_photo=uploaded('profilePhoto'),
        cover_photo=uploaded('coverPhoto'),
    )
    return ok(result)
