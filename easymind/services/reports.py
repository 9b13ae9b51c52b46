"""
Teacher reports: per-student summaries, weekly progress, daily active
students and the PDF export.
"""
import io
import logging
from datetime import datetime, timedelta, timezone

from reportlab.lib.colors import HexColor, black, lightgrey
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import PageBreak, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from easymind import store
from easymind.services import progress
from easymind.services.dashboard import IMPROVED_THRESHOLD, WEEKDAYS_MON, average, sunday_index
from easymind.services.formatting import format_datetime, local_tz, round_half_up, to_local

logger = logging.getLogger(__name__)

DEFAULT_SPECIAL_NEEDS = "Autism Spectrum Disorder"
CHART_WEEKS = 5


def summarize_student(student, activity):
    nickname = student.get('nickname')
    stats = activity['stats'].get(nickname, {})
    assessments = sorted(
        activity['assessments'].get(nickname, []),
        key=lambda a: store.to_datetime(a.get('timestamp')) or store.to_datetime(0),
    )
    lessons = activity['lessons'].get(nickname, [])
    games = activity['games'].get(nickname, [])

    avg = average(a.get('performance') or 0 for a in assessments)
    recent = assessments[-1] if assessments else None
    first = assessments[0] if assessments else None

    type_counts = {}
    for a in assessments:
        kind = a.get('assessmentType') or "unknown"
        type_counts[kind] = type_counts.get(kind, 0) + 1

    name = f"{student.get('firstName') or ''} {student.get('surname') or ''}".strip()
    return {
        "id": student.get('id'),
        "nickname": nickname or "",
        "name": name or nickname or "",
        "avatar": (nickname or "ST")[:2].upper(),
        "specialNeeds": ", ".join(student.get('supportNeeds') or []) or DEFAULT_SPECIAL_NEEDS,
        "assessment": (recent or {}).get('assessmentType') or "No assessments yet",
        "progress": {"completed": round_half_up(avg * 5), "total": 5, "target": 5},
        "attempts": len(assessments),
        "isImproved": bool(assessments) and avg >= IMPROVED_THRESHOLD,
        "totalXP": stats.get('totalXP') or 0,
        "level": stats.get('currentLevel') or student.get('currentLevel') or 1,
        "streakDays": stats.get('streakDays') or student.get('currentStreak') or 0,
        "lessonsCompleted": len(lessons),
        "gamesPlayed": len(games),
        "totalActivities": len(assessments) + len(lessons) + len(games),
        "assessmentDetails": {
            "totalAttempts": len(assessments),
            "averageScore": round_half_up(avg * 100),
            "bestScore": round_half_up(max((a.get('performance') or 0) for a in assessments) * 100) if assessments else 0,
            "latestScore": round_half_up((recent.get('performance') or 0) * 100) if recent else 0,
            "overallImprovement": round_half_up(
                ((recent.get('performance') or 0) - (first.get('performance') or 0)) * 100
            ) if assessments else 0,
            "assessmentTypeCounts": type_counts,
        },
    }


def week_start(dt):
    """Local Sunday 00:00 of the week containing dt."""
    local = dt.astimezone(local_tz())
    return (local - timedelta(days=sunday_index(local))).replace(hour=0, minute=0, second=0, microsecond=0)


def _chart_point(index, improved, needs):
    return {"name": f"Week {index + 1}", "Improved Students": improved, "Needs Improvement": needs}


def weekly_progress_chart(recent_results, nicknames, current_improved, current_needs):
    """Improved vs needs-improvement students for the last five weeks."""
    weeks = {}
    for row in recent_results:
        when = store.to_datetime(row.get('timestamp'))
        nickname = row.get('nickname')
        if when is None or nickname not in nicknames:
            continue
        key = week_start(when).date().isoformat()
        weeks.setdefault(key, {}).setdefault(nickname, []).append(row.get('performance') or 0)

    if not weeks:
        chart = [
            _chart_point(
                i,
                round_half_up(current_improved * (i + 1) / CHART_WEEKS),
                round_half_up(current_needs * (i + 1) / CHART_WEEKS),
            )
            for i in range(CHART_WEEKS)
        ]
        chart[-1] = _chart_point(CHART_WEEKS - 1, current_improved, current_needs)
        return chart

    keys = sorted(weeks)[-CHART_WEEKS:]
    keys = [None] * (CHART_WEEKS - len(keys)) + keys

    chart = []
    for index, key in enumerate(keys):
        if key is None:
            chart.append(_chart_point(index, 0, 0))
            continue
        improved = needs = 0
        for performances in weeks[key].values():
            if average(performances) >= IMPROVED_THRESHOLD:
                improved += 1
            else:
                needs += 1
        chart.append(_chart_point(index, improved, needs))

    last = chart[-1]
    if last["Improved Students"] + last["Needs Improvement"] < current_improved + current_needs:
        chart[-1] = _chart_point(CHART_WEEKS - 1, current_improved, current_needs)
    return chart


def daily_active_students(visits, nicknames, now=None):
    """Distinct active students per day, Monday..Sunday of the current week."""
    today = (now or datetime.now(timezone.utc)).astimezone(local_tz()).date()
    monday = today - timedelta(days=today.weekday())
    days = [monday + timedelta(days=i) for i in range(7)]
    active = {day: set() for day in days}

    for visit in visits:
        when = to_local(visit.get('timestamp'))
        nickname = visit.get('nickname')
        if when is None or nickname not in nicknames:
            continue
        if when.date() in active:
            active[when.date()].add(nickname)

    return [
        {"name": WEEKDAYS_MON[i], "Active Students": 0 if day > today else len(active[day])}
        for i, day in enumerate(days)
    ]


def filter_summaries(summaries, search='', tab='improved'):
    term = (search or '').lower()
    want_improved = tab != 'needsImprovement'
    return [
        s for s in summaries
        if s['isImproved'] == want_improved
        and (term in s['name'].lower() or term in s['nickname'].lower())
    ]


def teacher_report(teacher_id, search='', tab='improved', now=None):
    now = now or datetime.now(timezone.utc)
    students = store.fetch_where(store.STUDENTS, [('createdBy', '==', teacher_id)])
    nicknames = {s['nickname'] for s in students if s.get('nickname')}
    if not nicknames:
        return {
            "students": [],
            "all_students": [],
            "weekly_progress": weekly_progress_chart([], nicknames, 0, 0),
            "daily_active": daily_active_students([], nicknames, now),
        }

    activity = progress.load_activity(nicknames)
    summaries = [summarize_student(s, activity) for s in students]
    improved = sum(1 for s in summaries if s['isImproved'])

    recent = store.fetch_in(
        store.ASSESSMENT_RESULTS, 'nickname', nicknames,
        filters=[('timestamp', '>=', now - timedelta(days=35))],
    )
    local_now = now.astimezone(local_tz())
    monday = (local_now - timedelta(days=local_now.weekday())).replace(
        hour=0, minute=0, second=0, microsecond=0
    )
    visits = store.fetch_in(
        store.VISIT_TRACKING, 'nickname', nicknames,
        filters=[('timestamp', '>=', monday), ('timestamp', '<', monday + timedelta(days=7))],
    )

    return {
        "students": filter_summaries(summaries, search, tab),
        "all_students": summaries,
        "weekly_progress": weekly_progress_chart(recent, nicknames, improved, len(summaries) - improved),
        "daily_active": daily_active_students(visits, nicknames, now),
    }


# ---------------------------------------------------------------------------
# PDF export
# ---------------------------------------------------------------------------

def executive_summary(summaries):
    total = len(summaries)
    improved = sum(1 for s in summaries if s['isImproved'])
    total_assessments = sum(s['attempts'] for s in summaries)
    rate = round_half_up(improved / total * 100) if total else 0
    avg_score = round_half_up(sum(s['assessmentDetails']['averageScore'] for s in summaries) / total) if total else 0
    return {
        "Total Students": total,
        "Improved": improved,
        "Needs Work": total - improved,
        "Total Assessments": total_assessments,
        "Improvement Rate": f"{rate}%",
        "Avg Score": f"{avg_score}%",
        "insights": [
            f"{rate}% of students show positive progress trends",
            f"Average assessment score across all students is {avg_score}%",
            f"{total_assessments} total assessments completed",
            f"{sum(1 for s in summaries if s['totalXP'] > 0)} students actively earning XP",
        ],
    }


def build_report_pdf(all_students, exported, tab='improved', generated=None):
    """Render the progress report to PDF bytes."""
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        'ReportTitle', parent=styles['Heading1'],
        alignment=TA_CENTER, fontSize=20, spaceAfter=6
    )
    heading_style = ParagraphStyle(
        'ReportHeading', parent=styles['Heading2'],
        fontSize=14, spaceAfter=6, spaceBefore=12, textColor=HexColor('#4F46E5')
    )
    center_style = ParagraphStyle('Center', parent=styles['Normal'], alignment=TA_CENTER)
    normal_style = styles['Normal']

    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf, pagesize=A4,
        topMargin=0.6*inch, bottomMargin=0.6*inch,
        leftMargin=0.6*inch, rightMargin=0.6*inch,
        title="EasyMind Student Progress Report",
    )

    story = [
        Paragraph("EasyMind", title_style),
        Paragraph("Student Progress Report", center_style),
        Paragraph(f"Generated: {format_datetime(generated or store.now())}", center_style),
        Spacer(1, 0.3*inch),
        Paragraph("Executive Summary", heading_style),
    ]

    summary = executive_summary(all_students)
    labels = ["Total Students", "Improved", "Needs Work", "Total Assessments", "Improvement Rate", "Avg Score"]
    stat_rows = [
        [str(summary[label]) for label in labels[:3]],
        labels[:3],
        [str(summary[label]) for label in labels[3:]],
        labels[3:],
    ]
    stats_table = Table(stat_rows, colWidths=[2.2*inch] * 3)
    stats_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTNAME', (0, 2), (-1, 2), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, 0), 16),
        ('FONTSIZE', (0, 2), (-1, 2), 16),
        ('TEXTCOLOR', (0, 1), (-1, 1), HexColor('#646464')),
        ('TEXTCOLOR', (0, 3), (-1, 3), HexColor('#646464')),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
    ]))
    story.append(stats_table)

    story.append(Paragraph("Key Insights", heading_style))
    for insight in summary['insights']:
        story.append(Paragraph(f"&bull; {insight}", normal_style))

    story.append(PageBreak())
    label = "Improved" if tab != 'needsImprovement' else "Needs Improvement"
    story.append(Paragraph(f"Detailed Student Performance ({label} Students)", heading_style))

    rows = [["STUDENT NAME", "ASSESSMENT", "AVG", "BEST", "XP", "LVL", "STATUS"]]
    for s in exported:
        details = s['assessmentDetails']
        rows.append([
            s['name'][:22],
            s['assessment'][:20],
            f"{details['averageScore']}%",
            f"{details['bestScore']}%",
            str(s['totalXP']),
            str(s['level']),
            "Improved" if s['isImproved'] else "At Risk",
        ])
    if len(rows) == 1:
        rows.append(["No students to display", "", "", "", "", "", ""])

    table = Table(rows, repeatRows=1)
    table.setStyle(TableStyle([
        ('GRID', (0, 0), (-1, -1), 0.5, black),
        ('BACKGROUND', (0, 0), (-1, 0), lightgrey),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 9),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
    ]))
    story.append(table)

    doc.build(story)
    return buf.getvalue()


def export_pdf(teacher_id, search='', tab='improved', now=None):
    report = teacher_report(teacher_id, search, tab, now)
    logger.info("Exporting report PDF for teacher %s (%d students)", teacher_id, len(report['students']))
    return build_report_pdf(report['all_students'], report['students'], tab, now)
