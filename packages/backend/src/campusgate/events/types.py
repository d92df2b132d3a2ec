"""Event type constants.

Centralizing event types as constants prevents typos and makes it easy to
discover every event the dashboard can receive. Names match the strings the
admin dashboard listens for.
"""

# ─── Students ────────────────────────────────────────────

STUDENT_ENROLLED = "studentEnrolled"
STUDENT_UPDATED = "studentUpdated"
STUDENT_DELETED = "studentDeleted"

# ─── Courses ─────────────────────────────────────────────

COURSE_CREATED = "courseCreated"
COURSE_UPDATED = "courseUpdated"
COURSE_DELETED = "courseDeleted"
