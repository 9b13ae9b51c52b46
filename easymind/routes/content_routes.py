"""
Content Routes for EasyMind.
The teacher's content library (quizzes, lessons, materials) and AI-assisted
lesson extraction from uploaded documents.
"""
import logging

from flask import Blueprint, request, g

from easymind.auth import require_teacher
from easymind.errors import EasyMindError
from easymind.services import contents
from .common import failure, ok, payload

content_bp = Blueprint('content', __name__)
logger = logging.getLogger(__name__)


def _list(assessments):
    args = request.args
    try:
        rows = contents.list_contents(
            g.user_id,
            assessments=assessments,
            time_range=args.get('range', 'all_time'),
            date=args.get('date'),
        )
    except EasyMindError:
        raise
    except Exception as e:
        return failure("Failed to load contents. Please try again.", e)
    return ok({"contents": rows})


@content_bp.route('/api/teacher/contents/materials', methods=['GET'])
@require_teacher
def list_materials():
    return _list(assessments=False)


@content_bp.route('/api/teacher/contents/assessments', methods=['GET'])
@require_teacher
def list_assessments():
    return _list(assessments=True)


@content_bp.route('/api/teacher/contents/assessments', methods=['POST'])
@require_teacher
def create_assessment():
    return ok(contents.create_assessment(g.user_id, payload()), 201)


@content_bp.route('/api/teacher/contents/<content_id>', methods=['DELETE'])
@require_teacher
def delete_content(content_id):
    return ok(contents.delete_content(g.user_id, content_id))


@content_bp.route('/api/teacher/contents/process-document', methods=['POST'])
@require_teacher
def process_document():
    """Extract lesson items from an uploaded PDF, Word or text file."""
    if 'file' not in request.files:
        return ok({"error": "No file uploaded"}, 400)

    file = request.files['file']
    if file.filename == '':
        return ok({"error": "No file uploaded"}, 400)

    content = contents.process_document(file.filename, file.mimetype, file.read())
    return ok({"success": True, "content": content})
