"""Route handlers for the Web API."""

from lms.web.routes.admin import router as admin_router
from lms.web.routes.auth import router as auth_router
from lms.web.routes.examinations import router as examinations_router
from lms.web.routes.folders import router as folders_router
from lms.web.routes.health import router as health_router
from lms.web.routes.inquiries import router as inquiries_router
from lms.web.routes.notifications import router as notifications_router
from lms.web.routes.reports import router as reports_router
from lms.web.routes.reviews import router as reviews_router
from lms.web.routes.student_exams import router as student_exams_router
from lms.web.routes.submissions import router as submissions_router
from lms.web.routes.users import router as users_router

__all__ = [
    "admin_router",
    "auth_router",
    "examinations_router",
    "folders_router",
    "health_router",
    "inquiries_router",
    "notifications_router",
    "reports_router",
    "reviews_router",
    "student_exams_router",
    "submissions_router",
    "users_router",
]
