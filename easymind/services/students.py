"""
Teacher roster management and the admin student overview.
"""
import logging
import re
from datetime import datetime, timedelta, timezone

from easymind import store
from easymind.errors import NotFoundError, ValidationError
from easymind.services import progress
from easymind.services.formatting import (
    clean_text, format_datetime, full_name, image_data_url, local_tz, paginate, student_name,
)

logger = logging.getLogger(__name__)

NICKNAME_PATTERN = re.compile(r'^[a-zA-Z0-9]+$')
DEFAULT_SUPPORT_NEEDS = ["Autism Spectrum Disorder"]

PROGRESS_BANDS = ('All', 'Low', 'Medium', 'High')


def teacher_display_name(teacher_id):
    teacher = store.get_document(store.TEACHER_REQUESTS, teacher_id)
    return full_name(teacher, default="Unknown Teacher")


def add_log(teacher_id, description):
    store.add_document(store.LOGS, {
        "teacherId": teacher_id,
        "teacherName": teacher_display_name(teacher_id),
        "activityDescription": description,
        "createdAt": store.SERVER_TIMESTAMP,
    })


def teacher_students(teacher_id):
    return store.fetch_where(
        store.STUDENTS,
        [('createdBy', '==', teacher_id)],
        order_by='createdAt',
        descending=True,
    )


def generate_student_uid(now=None):
    """Next YYYYMM### id for the current month."""
    now = (now or datetime.now(timezone.utc)).astimezone(local_tz())
    prefix = f"{now.year}{now.month:02d}"
    existing = store.fetch_where(
        store.STUDENTS, [('uid', '>=', prefix + '000'), ('uid', '<=', prefix + '999')]
    )
    counters = [
        int(s['uid'][-3:]) for s in existing
        if (s.get('uid') or '').startswith(prefix) and s['uid'][-3:].isdigit()
    ]
    if not counters:
        return f"{prefix}001"
    return f"{prefix}{max(counters) + 1:03d}"


def _clean(data):
    support_needs = data.get('supportNeeds')
    if isinstance(support_needs, str):
        support_needs = [support_needs]
    return {
        "surname": clean_text(data.get('surname'), "Surname"),
        "firstName": clean_text(data.get('firstName'), "First Name"),
        "middleName": clean_text(data.get('middleName'), "Middle Name"),
        "nickname": clean_text(data.get('nickname'), "Nickname"),
        "supportNeeds": list(support_needs or []),
    }


def _student_image(image):
    if not image:
        return None
    content_type, data = image
    return image_data_url(
        content_type, data, any_image=True,
        type_error="Please select a valid image file",
        size_error="Image size should be less than 5MB",
    )


def _nickname_taken(students, nickname, exclude_id=None):
    nickname = nickname.lower()
    return any(
        s.get('id') != exclude_id and (s.get('nickname') or '').lower() == nickname
        for s in students
    )


def add_student(teacher_id, data, image=None, now=None):
    """Create a student for this teacher. image is (content_type, bytes) or None."""
    fields = _clean(data)
    if not (fields['surname'] and fields['firstName'] and fields['nickname'] and fields['supportNeeds']):
        raise ValidationError(
            "Please fill all required fields: Surname, First Name, Nickname, "
            "and Support Needs are required"
        )
    if not NICKNAME_PATTERN.match(fields['nickname']):
        raise ValidationError(
            "Nickname must contain only letters and numbers (no spaces or special characters)"
        )
    if _nickname_taken(teacher_students(teacher_id), fields['nickname']):
        raise ValidationError(
            "A student with this nickname already exists. Please choose a different nickname."
        )

    fields.update({
        "uid": generate_student_uid(now),
        "profileImage": _student_image(image),
        "createdBy": teacher_id,
        "createdAt": store.SERVER_TIMESTAMP,
    })
    student_id = store.add_document(store.STUDENTS, fields)
    add_log(teacher_id, f"Added student: {fields['firstName']} {fields['surname']}")
    logger.info("Teacher %s added student %s", teacher_id, student_id)
    return {"id": student_id, "uid": fields['uid']}


def _owned_student(teacher_id, student_id):
    student = store.get_document(store.STUDENTS, student_id)
    if student is None or student.get('createdBy') != teacher_id:
        raise NotFoundError("Student not found.")
    return student


def edit_student(teacher_id, student_id, data, image=None):
    """Update a student. Returns {'updated': False} when nothing changed."""
    student = _owned_student(teacher_id, student_id)
    fields = _clean(data)
    if not (fields['surname'] and fields['firstName'] and fields['nickname'] and fields['supportNeeds']):
        raise ValidationError("Please fill all required fields")
    if not NICKNAME_PATTERN.match(fields['nickname']):
        raise ValidationError(
            "Nickname must contain only letters and numbers (no spaces or special characters)"
        )
    if _nickname_taken(teacher_students(teacher_id), fields['nickname'], exclude_id=student_id):
        raise ValidationError(
            "A different student with this nickname already exists. "
            "Please choose a different nickname."
        )

    previous_needs = student.get('supportNeeds') or DEFAULT_SUPPORT_NEEDS
    unchanged = (
        image is None
        and all(fields[k] == (student.get(k) or '') for k in ('surname', 'firstName', 'middleName', 'nickname'))
        and sorted(fields['supportNeeds']) == sorted(previous_needs)
    )
    if unchanged:
        return {"id": student_id, "updated": False}

    fields["profileImage"] = _student_image(image) or student.get('profileImage')
    store.update_document(store.STUDENTS, student_id, fields)
    add_log(teacher_id, f"Edited Student Information for {fields['firstName']} {fields['surname']}")
    return {"id": student_id, "updated": True}


def delete_student(teacher_id, student_id):
    student = _owned_student(teacher_id, student_id)
    store.delete_document(store.STUDENTS, student_id)
    add_log(teacher_id, f"Deleted student: {student.get('firstName')} {student.get('surname')}")
    return {"id": student_id, "deleted": True}


def search_roster(students, search=''):
    term = (search or '').lower()
    rows = [
        s for s in students
        if term in (s.get('firstName') or '').lower()
        or term in (s.get('middleName') or '').lower()
        or term in (s.get('surname') or '').lower()
        or (search or '') in (s.get('uid') or '')
        or term in (s.get('nickname') or '').lower()
    ]
    return sorted(rows, key=lambda s: student_name(s).lower())


def roster(teacher_id, search=''):
    """The teacher's students with their progress summaries."""
    students = search_roster(teacher_students(teacher_id), search)
    activity = progress.load_activity([s.get('nickname') for s in students])
    for student in students:
        student['progress'] = progress.detailed_progress(student.get('nickname'), activity)
    return students


def student_detail(teacher_id, student_id):
    student = _owned_student(teacher_id, student_id)
    nickname = student.get('nickname')
    activity = progress.load_activity([nickname] if nickname else [])
    student['progress'] = progress.detailed_progress(nickname, activity)
    student['activity'] = progress.activity_detail(nickname, activity)
    return student


# ---------------------------------------------------------------------------
# Admin overview
# ---------------------------------------------------------------------------

def normalize_band(band):
    """Canonical progress band name; unknown bands are rejected."""
    if not band:
        return 'All'
    name = str(band).strip().capitalize()
    if name not in PROGRESS_BANDS:
        raise ValidationError(f"Invalid progress filter: {band}")
    return name


def in_band(percentage, band):
    band = normalize_band(band)
    if band == 'All':
        return True
    if band == 'Low':
        return percentage <= 50
    if band == 'Medium':
        return 50 < percentage <= 80
    if band == 'High':
        return percentage > 80
    return False


def overview_rows(now=None):
    now = now or datetime.now(timezone.utc)
    activity = progress.load_activity()
    teachers = {}
    rows = []

    for student in store.fetch_all(store.STUDENTS):
        summary = progress.detailed_progress(student.get('nickname'), activity)

        teacher_id = student.get('createdBy')
        if teacher_id and teacher_id not in teachers:
            try:
                teachers[teacher_id] = store.get_document(store.TEACHER_REQUESTS, teacher_id)
            except Exception as e:
                logger.error("Error fetching teacher %s: %s", teacher_id, e)
                teachers[teacher_id] = None
        teacher = teachers.get(teacher_id)

        last_login = store.to_datetime((teacher or {}).get('lastLogin'))
        rows.append({
            "id": student['id'],
            "nickname": student.get('nickname') or "N/A",
            "assignedTeacher": full_name(teacher, default="Unknown"),
            "teacherLoggedInRecently": bool(last_login and last_login > now - timedelta(days=7)),
            "progress": summary['progress'],
            "progressPercentage": summary['progress_percentage'],
            "recentAssessment": summary['recent_assessment'],
            "totalAttempts": summary['total_attempts'],
            "details": dict(
                surname=student.get('surname') or "N/A",
                firstName=student.get('firstName') or "N/A",
                middleName=student.get('middleName') or "N/A",
                supportNeeds=student.get('supportNeeds') or [],
                lastLogin=format_datetime(student['lastLogin']) if student.get('lastLogin') else "Never",
                **summary['stats'],
            ),
        })
    return rows, activity


def student_overview(search='', band='All', page=1, now=None):
    band = normalize_band(band)
    rows, _ = overview_rows(now)
    term = (search or '').lower()
    filtered = [
        r for r in rows
        if term in r['nickname'].lower() and in_band(r['progressPercentage'], band)
    ]
    return paginate(filtered, page)


def student_overview_detail(student_id, now=None):
    rows, activity = overview_rows(now)
    for row in rows:
        if row['id'] == student_id:
            row['activity'] = progress.activity_detail(row['nickname'], activity)
            return row
    raise NotFoundError("Student not found.")
