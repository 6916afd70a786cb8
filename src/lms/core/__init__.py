"""Core business logic.

Modules:
- accounts: user account management
- admin: settings, inquiries, notifications, sessions, system overview
- auth: password hashing, login sessions, role checks
- dashboard: student exam listing and results
- errors: domain exceptions
- exam_session: starting exams, autosave, submission, countdown
- exams: examination and folder authoring
- grading: submission review and manual grading
- reports: instructor analytics
- scoring: auto-scoring, percentages and letter grades
"""

__all__ = [
    "accounts",
    "admin",
    "auth",
    "dashboard",
    "errors",
    "exam_session",
    "exams",
    "grading",
    "reports",
    "scoring",
]
