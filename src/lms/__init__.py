"""Learning Management System: examinations, submissions, grading and reports."""

__version__ = "0.1.0"
