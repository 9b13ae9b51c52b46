"""
EasyMind Services
=================

Screen logic for the admin console and the teacher dashboard.

Services:
- admin_login: two-step admin sign-in (password, then emailed code)
- teacher_accounts: teacher sign-in, sign-up and sign-out bookkeeping
- approval: teacher request approval workflow and teacher management
- dashboard: KPI counts and week-bucketed login aggregation
- students: teacher roster and the admin student overview
- progress: per-student progress, levels and assessment attempts
- reports: teacher reports and PDF export
- activity_logs: report logs filtering and formatting
- profiles: admin settings and teacher profile
- contents: teacher content library and document processing
- email_service: outgoing mail via Resend
"""

# Services are imported directly when needed to avoid circular imports
# Example: from easymind.services.approval import change_status

__all__ = [
    'admin_login',
    'teacher_accounts',
    'approval',
    'dashboard',
    'students',
    'progress',
    'reports',
    'activity_logs',
    'profiles',
    'contents',
    'email_service',
]
