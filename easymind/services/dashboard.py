"""
Dashboard aggregation for both consoles.

Admin: KPI counts, distinct logins per weekday of the current week and the
recent admin actions feed. Teacher: class stats, weekly lesson progress,
pass/fail split, daily logins, overall performance and top students.
"""
import logging
from datetime import datetime, timedelta, timezone

from easymind import store
from easymind.services.formatting import local_tz, student_name, to_local

logger = logging.getLogger(__name__)

WEEKDAYS_SUN = ['Sun', 'Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat']
WEEKDAYS_MON = ['Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat', 'Sun']

MATERIAL_TYPES = ['lesson', 'interactive-lesson', 'material', 'uploaded-material']
BUILT_IN_MODULES = 15

IMPROVED_THRESHOLD = 0.7
NEEDS_IMPROVEMENT_THRESHOLD = 0.5
PASS_THRESHOLD = 0.7

# XP needed to reach each level
LEVEL_REQUIREMENTS = {
    1: 0,
    2: 100,
    3: 250,
    4: 450,
    5: 700,
    6: 1000,
    7: 1350,
    8: 1750,
    9: 2200,
    10: 2700,
}

TOP_STUDENT_CATEGORIES = ['All', 'High Performers', 'Active Learners', 'New Students', 'Need Support']


def sunday_index(dt):
    """0 for Sunday .. 6 for Saturday."""
    return (dt.weekday() + 1) % 7


def current_week(now=None):
    """(start, end) of the Sunday-to-Saturday week containing now, local time."""
    tz = local_tz()
    now = (now or datetime.now(timezone.utc)).astimezone(tz)
    start = (now - timedelta(days=sunday_index(now))).replace(hour=0, minute=0, second=0, microsecond=0)
    end = (start + timedelta(days=6)).replace(hour=23, minute=59, second=59, microsecond=999000)
    return start, end


# ---------------------------------------------------------------------------
# Admin dashboard
# ---------------------------------------------------------------------------

def admin_kpis():
    active = store.count_where(store.TEACHER_REQUESTS, [('status', '==', 'Active')])
    pending = store.count_where(store.TEACHER_REQUESTS, [('status', '==', 'Pending')])
    students = store.fetch_all(store.STUDENTS)
    return {
        "teacher_count": active,
        "pending_teacher_count": pending,
        "student_count": len(students),
        "nicknames": {s.get('nickname') for s in students if s.get('nickname')},
    }


def bucket_week_logins(student_logins, teacher_logins, known_nicknames, week_start, week_end):
    """Distinct student nicknames and teacher ids per weekday.

    Student logins only count when the nickname belongs to an existing student.
    """
    students = {day: set() for day in WEEKDAYS_SUN}
    teachers = {day: set() for day in WEEKDAYS_SUN}

    def day_of(login):
        when = to_local(login.get('loginTime'))
        if when is None or not (week_start <= when <= week_end):
            return None
        return WEEKDAYS_SUN[sunday_index(when)]

    for login in student_logins:
        nickname = login.get('nickname')
        if not nickname or nickname not in known_nicknames:
            continue
        day = day_of(login)
        if day:
            students[day].add(nickname)

    for login in teacher_logins:
        teacher_id = login.get('teacherId')
        if not teacher_id:
            continue
        day = day_of(login)
        if day:
            teachers[day].add(teacher_id)

    return [
        {"name": day, "students": len(students[day]), "teachers": len(teachers[day])}
        for day in WEEKDAYS_SUN
    ]


def _week_logins(collection_name, start, end):
    return store.fetch_where(
        collection_name,
        [('loginTime', '>=', start), ('loginTime', '<=', end)],
        order_by='loginTime',
        descending=True,
    )


def recent_actions_query(limit=5):
    return store.collection(store.ADMIN_ACTIONS).order_by(
        'timestamp', direction=store.DESCENDING
    ).limit(limit)


def map_recent_action(row):
    return {
        "id": row.get('id'),
        "action": row.get('action') or "Unknown action",
        "type": row.get('type') or "",
        "admin": "Admin",
        "timestamp": row.get('timestamp') or store.now(),
    }


def recent_actions(limit=5):
    return [map_recent_action(r) for r in store.query_to_list(recent_actions_query(limit))]


def admin_dashboard(now=None):
    kpis = admin_kpis()
    start, end = current_week(now)
    daily = bucket_week_logins(
        _week_logins(store.STUDENT_LOGINS, start, end),
        _week_logins(store.TEACHER_LOGINS, start, end),
        kpis['nicknames'],
        start,
        end,
    )
    return {
        "teacher_count": kpis['teacher_count'],
        "pending_teacher_count": kpis['pending_teacher_count'],
        "student_count": kpis['student_count'],
        "daily_active_users": daily,
        "pie": [
            {"name": "Teachers", "value": kpis['teacher_count']},
            {"name": "Students", "value": kpis['student_count']},
        ],
        "recent_activities": recent_actions(),
        "week": {"start": start.isoformat(), "end": end.isoformat()},
    }


# ---------------------------------------------------------------------------
# Teacher dashboard
# ---------------------------------------------------------------------------

def level_from_xp(xp):
    for level in range(10, 0, -1):
        if xp >= LEVEL_REQUIREMENTS[level]:
            return level
    return 1


def average(values):
    values = list(values)
    return sum(values) / len(values) if values else 0


def performance_by_nickname(results):
    grouped = {}
    for r in results:
        grouped.setdefault(r.get('nickname'), []).append(r.get('performance') or 0)
    return grouped


def improvement_counts(results):
    improved = 0
    needs_improvement = 0
    for performances in performance_by_nickname(results).values():
        avg = average(performances)
        if avg >= IMPROVED_THRESHOLD:
            improved += 1
        elif avg < NEEDS_IMPROVEMENT_THRESHOLD:
            needs_improvement += 1
    return improved, needs_improvement


def weekly_lesson_progress(lessons):
    """Lesson completions bucketed Mon..Sun."""
    data = [0] * 7
    for lesson in lessons:
        when = to_local(lesson.get('completedAt'))
        if when is not None:
            data[when.weekday()] += 1
    return {"labels": WEEKDAYS_MON, "data": data}


def pass_fail(results):
    passed = sum(1 for r in results if (r.get('performance') or 0) >= PASS_THRESHOLD)
    failed = len(results) - passed
    if passed == 0 and failed == 0:
        return {"labels": ['Passed', 'Failed'], "data": [1, 1], "placeholder": True}
    return {"labels": ['Passed', 'Failed'], "data": [passed, failed], "placeholder": False}


def daily_logins(logins, now=None):
    """Logins from the last 7 days bucketed Sun..Sat."""
    now = now or datetime.now(timezone.utc)
    data = [0] * 7
    for login in logins:
        when = store.to_datetime(login.get('loginTime'))
        if when is None:
            continue
        days_diff = (now - when).days
        if 0 <= days_diff < 7:
            data[sunday_index(when.astimezone(local_tz()))] += 1
    return {"labels": WEEKDAYS_SUN, "data": data}


def overall_performance(students):
    sums = [
        sum(s.get('assessmentScore') or 0 for s in students),
        sum(s.get('comprehensionScore') or 0 for s in students),
        sum(s.get('pronunciationScore') or 0 for s in students),
    ]
    placeholder = not any(sums)
    return {
        "labels": ['Assessments', 'Comprehension', 'Pronunciation'],
        "data": [1, 1, 1] if placeholder else sums,
        "placeholder": placeholder,
    }


def top_students(stats, students):
    profiles = {s['nickname']: s for s in students if s.get('nickname')}
    rows = []
    for stat in stats:
        nickname = stat.get('nickname')
        profile = profiles.get(nickname, {})
        xp = stat.get('totalXP') or 0
        if profile.get('firstName') and profile.get('surname'):
            name = student_name(profile)
        else:
            name = nickname or 'Unknown'
        rows.append({
            "name": nickname or 'Unknown',
            "full_name": name,
            "xp": xp,
            "score": f"{xp} XP",
            "level": stat.get('currentLevel') or 1,
            "calculated_level": level_from_xp(xp),
            "streak": stat.get('streakDays') or 0,
            "profile_image": profile.get('profileImage'),
        })
    return rows


def filter_top_students(rows, category='All'):
    if category == 'High Performers':
        return [r for r in rows if level_from_xp(r['xp']) >= 4]
    if category == 'Active Learners':
        return [r for r in rows if 2 <= level_from_xp(r['xp']) < 4]
    if category == 'New Students':
        return [r for r in rows if 1 <= level_from_xp(r['xp']) < 3]
    if category == 'Need Support':
        return [r for r in rows if level_from_xp(r['xp']) == 1 or r['streak'] < 2]
    return rows


def teacher_dashboard(category='All', now=None):
    now = now or datetime.now(timezone.utc)
    students = store.fetch_all(store.STUDENTS)
    results = store.fetch_where(store.ASSESSMENT_RESULTS, order_by='timestamp', descending=True)
    improved, needs_improvement = improvement_counts(results)
    materials = store.count_where(store.CONTENTS, [('type', 'in', MATERIAL_TYPES)])

    lessons = store.fetch_where(
        store.LESSON_RETENTION,
        [('completedAt', '>=', now - timedelta(days=7))],
        order_by='completedAt',
        descending=True,
    )
    logins = store.fetch_where(store.STUDENT_LOGINS, order_by='loginTime', descending=True, limit=50)
    stats = store.fetch_where(store.USER_STATS, order_by='totalXP', descending=True, limit=12)

    return {
        "stats": {
            "total_students": len(students),
            "improved_students": improved,
            "needs_improvement": needs_improvement,
            "teacher_materials": materials,
            "built_in_modules": BUILT_IN_MODULES,
        },
        "weekly_progress": weekly_lesson_progress(lessons),
        "assessment_results": pass_fail(results),
        "daily_logins": daily_logins(logins, now),
        "overall_performance": overall_performance(students),
        "top_students": filter_top_students(top_students(stats, students), category),
        "categories": TOP_STUDENT_CATEGORIES,
    }
