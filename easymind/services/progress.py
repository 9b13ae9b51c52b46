"""
Student activity joins and assessment attempt processing.

Activity is stored per student nickname across userStats,
adaptiveAssessmentResults, lessonRetention and visitTracking (games).
"""
import logging

from easymind import store
from easymind.services.dashboard import average
from easymind.services.formatting import round_half_up

logger = logging.getLogger(__name__)

PASSING_PERCENTAGE = 70

ASSESSMENT_CATEGORIES = [
    {
        "key": "functional-academics",
        "name": "Functional Academics",
        "description": "Reading, writing and practical math: alphabet, colors, shapes and numbers.",
        "types": [
            {"id": "alphabet", "name": "ALPHABET ASSESSMENT"},
            {"id": "colors", "name": "COLORS ASSESSMENT"},
            {"id": "shapes", "name": "SHAPES ASSESSMENT"},
            {"id": "numbers", "name": "NUMBERS ASSESSMENT"},
            {"id": "rhyme_and_read", "name": "RHYME AND READ ASSESSMENT"},
        ],
    },
    {
        "key": "communication-skills",
        "name": "Communication Skills",
        "description": "Verbal, non-verbal and comprehension abilities.",
        "types": [
            {"id": "picture_story", "name": "PICTURE STORY ASSESSMENT"},
            {"id": "daily_tasks", "name": "DAILY TASKS ASSESSMENT"},
            {"id": "verbal_communication", "name": "VERBAL COMMUNICATION ASSESSMENT"},
        ],
    },
    {
        "key": "pre-vocational-skills",
        "name": "Pre-vocational Skills",
        "description": "Foundational work readiness and job skills.",
        "types": [
            {"id": "job_readiness", "name": "JOB READINESS ASSESSMENT"},
            {"id": "work_habits", "name": "WORK HABITS ASSESSMENT"},
            {"id": "money_skills", "name": "MONEY SKILLS ASSESSMENT"},
        ],
    },
    {
        "key": "social-skills",
        "name": "Social Skills",
        "description": "Interaction, empathy and group participation.",
        "types": [
            {"id": "social_interaction", "name": "SOCIAL INTERACTION ASSESSMENT"},
            {"id": "general", "name": "GENERAL SOCIAL SKILLS ASSESSMENT"},
        ],
    },
]


def category(key):
    for item in ASSESSMENT_CATEGORIES:
        if item['key'] == key:
            return item
    return None


def group_by_nickname(rows):
    grouped = {}
    for row in rows:
        nickname = row.get('nickname')
        if nickname:
            grouped.setdefault(nickname, []).append(row)
    return grouped


def newest_first(rows, field='timestamp'):
    return sorted(rows, key=store.sort_key_desc(field), reverse=True)


def load_activity(nicknames=None):
    """Fetch stats, assessments, lessons and game visits keyed by nickname.

    With nicknames given, only those students' documents are read.
    """
    if nicknames is None:
        stats = store.fetch_all(store.USER_STATS)
        assessments = store.fetch_all(store.ASSESSMENT_RESULTS)
        lessons = store.fetch_all(store.LESSON_RETENTION)
        games = store.fetch_where(store.VISIT_TRACKING, [('itemType', '==', 'game')])
    else:
        nicknames = list(nicknames)
        stats = store.fetch_in(store.USER_STATS, 'nickname', nicknames)
        assessments = store.fetch_in(store.ASSESSMENT_RESULTS, 'nickname', nicknames)
        lessons = store.fetch_in(store.LESSON_RETENTION, 'nickname', nicknames)
        games = store.fetch_in(
            store.VISIT_TRACKING, 'nickname', nicknames, filters=[('itemType', '==', 'game')]
        )

    return {
        "stats": {s['nickname']: s for s in stats if s.get('nickname')},
        "assessments": group_by_nickname(assessments),
        "lessons": group_by_nickname(lessons),
        "games": group_by_nickname(games),
    }


def detailed_progress(nickname, activity):
    """Progress summary for one student from load_activity() output."""
    stats = activity['stats'].get(nickname, {})
    assessments = activity['assessments'].get(nickname, [])
    lessons = activity['lessons'].get(nickname, [])
    games = activity['games'].get(nickname, [])

    avg_performance = average(a.get('performance') or 0 for a in assessments)
    progress = round_half_up(avg_performance * 100)
    recent = newest_first(assessments)[0] if assessments else None

    return {
        "average_performance": avg_performance,
        "progress_percentage": progress,
        "progress": f"{progress}%",
        "recent_assessment": (recent or {}).get('assessmentType') or "No assessments yet",
        "total_attempts": len(assessments),
        "stats": {
            "totalXP": stats.get('totalXP') or 0,
            "level": stats.get('currentLevel') or 1,
            "streakDays": stats.get('streakDays') or 0,
            "lastActivity": stats.get('lastActivity'),
            "lessonsCompleted": len(lessons),
            "gamesPlayed": len(games),
            "totalActivities": len(assessments) + len(lessons) + len(games),
            "averageScore": progress,
        },
    }


def activity_detail(nickname, activity):
    """Raw activity rows for the detail view, newest first."""
    return {
        "assessments": newest_first(activity['assessments'].get(nickname, [])),
        "lessons": newest_first(activity['lessons'].get(nickname, []), 'completedAt'),
        "games": [
            {
                "gameType": g.get('itemName') or 'Unknown Game',
                "moduleName": g.get('moduleName') or 'Unknown Module',
                "visitedAt": g.get('visitedAt'),
            }
            for g in newest_first(activity['games'].get(nickname, []), 'visitedAt')
        ],
    }


def to_attempt(row):
    performance = row.get('performance') or 0
    percentage = round_half_up(performance * 100)
    return {
        "id": row.get('id'),
        "nickname": row.get('nickname') or "Unknown",
        "score": f"{row.get('correctAnswers') or 0}/{row.get('totalQuestions') or 0}",
        "percentage": percentage,
        "status": "Passed" if percentage >= PASSING_PERCENTAGE else "Failed",
        "timestamp": store.to_datetime(row.get('timestamp')) or store.to_datetime(0),
        "moduleName": row.get('moduleName') or "Unknown Module",
        "difficultyLevel": row.get('difficultyLevel') or "beginner",
        "timeSpent": row.get('timeSpent') or 0,
        "performance": performance,
        "correctAnswers": row.get('correctAnswers') or 0,
        "totalQuestions": row.get('totalQuestions') or 0,
    }


def process_attempts(rows):
    """Number each student's attempts chronologically and compute deltas.

    Returns (attempts newest first, {nickname: attempts oldest first}).
    """
    grouped = {}
    for attempt in map(to_attempt, rows):
        grouped.setdefault(attempt['nickname'], []).append(attempt)

    processed = []
    for nickname, attempts in grouped.items():
        attempts.sort(key=lambda a: a['timestamp'])
        for index, attempt in enumerate(attempts):
            attempt['attemptNumber'] = index + 1
            attempt['totalAttempts'] = len(attempts)
            attempt['progress'] = (
                attempt['percentage'] - attempts[index - 1]['percentage'] if index else 0
            )
            processed.append(attempt)

    processed.sort(key=lambda a: a['timestamp'], reverse=True)
    return processed, grouped


def student_progress_report(attempts):
    """Best/latest score and status for one student's attempts (oldest first)."""
    if not attempts:
        return None
    latest = attempts[-1]['percentage']
    return {
        "total_attempts": len(attempts),
        "best_score": max(a['percentage'] for a in attempts),
        "latest_score": latest,
        "status": "Good Progress" if latest >= PASSING_PERCENTAGE else "Needs Improvement",
        "attempts": attempts,
    }


def teacher_nicknames(teacher_id):
    students = store.fetch_where(store.STUDENTS, [('createdBy', '==', teacher_id)])
    return [s['nickname'] for s in students if s.get('nickname')]


def assessment_results(teacher_id, assessment_type, nickname=None):
    """Attempts of one assessment type by the teacher's own students."""
    nicknames = teacher_nicknames(teacher_id)
    if not nicknames:
        return {
            "attempts": [],
            "students": {},
            "error": "No students added by you, or no results yet.",
        }

    rows = store.fetch_in(
        store.ASSESSMENT_RESULTS, 'nickname', nicknames,
        filters=[('assessmentType', '==', assessment_type)],
    )
    attempts, grouped = process_attempts(rows)
    result = {"attempts": attempts, "students": grouped, "error": None}
    if nickname:
        result["report"] = student_progress_report(grouped.get(nickname, []))
    return result
